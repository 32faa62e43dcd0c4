"""カスタム例外

ストレージ関連のエラーを表す例外クラス。
バックエンド固有の例外（ClientError, OSError等）はここで定義した種別に変換して送出する。
"""


class StorageError(Exception):
    """ストレージ操作の基底例外"""
    pass


class InvalidKeyError(StorageError):
    """キーが不正、またはルート外を指している"""

    def __init__(self, root, key: str):
        self.root = root
        self.key = key
        root_name = getattr(root, 'name', root)
        super().__init__(f"Invalid key '{key}' for storage root '{root_name}'")


class InvalidDirectoryError(StorageError):
    """ディレクトリキーでないキーにディレクトリ操作を行った"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Key is not a directory: '{key}'")


class StorageNotFoundError(StorageError):
    """ファイルが見つからない"""
    pass


class MD5MismatchError(StorageError):
    """書き込んだ内容のチェックサムが期待値と一致しない"""
    pass


class UnsupportedOperationError(StorageError):
    """ルートが対応していない操作（非バージョニングバケットでのバージョン操作等）"""
    pass


class OutOfRangeError(StorageError, ValueError):
    """シーク位置がストリームの範囲外"""
    pass


class StorageAccessError(StorageError):
    """ストレージアクセスエラー（権限不足・通信障害等のバックエンドエラー）"""
    pass


class StorageConfigError(StorageError):
    """設定エラー"""
    pass


class BackendNotRegisteredError(StorageError):
    """バックエンドが未登録"""
    pass
