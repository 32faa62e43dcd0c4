"""ストレージルート抽象基底クラス

すべてのストレージルートが実装すべきインターフェースと、
インターフェースのみを使って一度だけ実装した汎用ツリー操作（コピー・移動・削除）を定義。
バックエンドがより効率的な方法を持つ場合は個別にオーバーライドする。

キーはルートからの相対パス形式。空文字列はルート自身を表す。
先頭が'/'のキーや'/'が連続するキーの動作は未定義。
"""

import io
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, BinaryIO, ContextManager, Dict, Iterable, List, Optional

from ..exceptions import InvalidDirectoryError
from ..integrity import base64_to_hex, md5_base64, md5_base64_of_io
from ..keys import join_key, relative_key
from ..tmpdir import get_tmpdir

logger = logging.getLogger(__name__)

# ツリー削除時の同時削除数
DELETE_WORKERS = 10


def to_timestamp(mtime: Any) -> float:
    """更新日時（datetimeまたはエポック秒）をエポック秒に変換"""
    if isinstance(mtime, datetime):
        return mtime.timestamp()
    return float(mtime)


def from_timestamp(value: Any) -> datetime:
    """エポック秒（文字列可）をUTCのdatetimeに変換"""
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


class Root(ABC):
    """ストレージルートの抽象基底クラス"""

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"

    # --- 基本情報（Basic Information） ---

    @property
    @abstractmethod
    def root_type(self) -> str:
        """ルートタイプ名（'filesystem', 's3'等）"""
        pass

    @abstractmethod
    def size(self, key: str) -> int:
        """
        コンテンツのサイズを返す

        Raises:
            StorageNotFoundError: キーが存在しない場合
        """
        pass

    @abstractmethod
    def mtime(self, key: str) -> Optional[datetime]:
        """コンテンツの更新日時を返す"""
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        """キーが存在するか確認する"""
        pass

    @abstractmethod
    def is_directory_key(self, key: str) -> bool:
        """キーがディレクトリを表すか確認する"""
        pass

    def md5_sum(self, key: str) -> str:
        """
        コンテンツのMD5をbase64形式で返す

        バックエンドによっては保存済みの値を参照するためにオーバーライドする。
        """
        with self.with_input_io(key) as input_io:
            return md5_base64_of_io(input_io)

    def hex_md5_sum(self, key: str) -> str:
        """コンテンツのMD5を16進形式で返す"""
        return base64_to_hex(self.md5_sum(key))

    # --- 一覧系メソッド（Listing Operations） ---

    @abstractmethod
    def file_keys(self, key: str, raise_if_not_directory: bool = True) -> List[str]:
        """
        直下のコンテンツキー一覧を返す

        Raises:
            InvalidDirectoryError: keyがディレクトリキーでなく、raise_if_not_directoryがTrueの場合
        """
        pass

    @abstractmethod
    def subdirectory_keys(self, key: str, raise_if_not_directory: bool = True) -> List[str]:
        """
        直下のディレクトリキー一覧を返す

        Raises:
            InvalidDirectoryError: keyがディレクトリキーでなく、raise_if_not_directoryがTrueの場合
        """
        pass

    def subtree_keys(self, key: str) -> List[str]:
        """
        配下の全コンテンツキーを返す

        file_keys/subdirectory_keysによる幅優先探索。再帰的な一覧取得ができる
        バックエンドはオーバーライドする。
        """
        if not self.is_directory_key(key):
            raise InvalidDirectoryError(key)
        files: List[str] = []
        directories = deque([key])
        while directories:
            directory_key = directories.popleft()
            files.extend(self.file_keys(directory_key))
            directories.extend(self.subdirectory_keys(directory_key))
        return files

    def unprefixed_subtree_keys(self, key: str) -> List[str]:
        """配下の全コンテンツキーをkeyからの相対キーで返す"""
        return [relative_key(k, key) for k in self.subtree_keys(key)]

    # --- 読み取り系メソッド（Read Operations） ---

    @abstractmethod
    def with_input_io(self, key: str) -> ContextManager[BinaryIO]:
        """
        コンテンツを読み取り可能なバイナリストリームとして提供するコンテキストマネージャ

        ブロックを抜けるとき（例外時も含む）にストリームは必ず閉じられる。

        使用例:
            with root.with_input_io('runs/1/log.txt') as io:
                data = io.read()
        """
        pass

    @abstractmethod
    def with_input_file(self, key: str, tmp_dir: Optional[str] = None) -> ContextManager[str]:
        """
        コンテンツを含むファイルのパスを提供するコンテキストマネージャ

        一時コピーを作成した場合はブロック終了時に削除される。実ファイルのパスが渡される
        場合もあるため、呼び出し側は読み取りのみ行うこと。
        ストリームで処理できない外部ツールに渡す用途向け。

        Args:
            key: コンテンツキー
            tmp_dir: 一時ファイルを作成するディレクトリ。Noneの場合はget_tmpdir()
        """
        pass

    def as_bytes(self, key: str) -> bytes:
        """コンテンツ全体をバイト列で返す（サイズに注意）"""
        with self.with_input_io(key) as input_io:
            return input_io.read()

    def as_string(self, key: str, encoding: str = 'utf-8') -> str:
        """コンテンツ全体を文字列で返す（サイズに注意）"""
        return self.as_bytes(key).decode(encoding)

    # --- 書き込み系メソッド（Write Operations） ---

    @abstractmethod
    def copy_io_to(self, key: str, input_io: BinaryIO, md5_sum: Optional[str], size: Optional[int],
                   metadata: Optional[Dict[str, Any]] = None) -> None:
        """
        ストリームの内容をkeyに書き込む

        Args:
            key: 書き込み先キー
            input_io: 読み取り可能なバイナリストリーム
            md5_sum: 期待するMD5（base64）。Noneの場合は検証もMD5の保存も行わない
            size: 内容のサイズ。不明な場合はNone（最大サイズを扱える経路を使う）
            metadata: 'mtime'（datetimeまたはエポック秒）等の付加情報

        Raises:
            MD5MismatchError: 書き込んだ内容のMD5が期待値と一致しない場合。
                              このときkeyに不完全な内容は残らない
        """
        pass

    def write_bytes_to(self, key: str, data: bytes, mtime: Optional[datetime] = None) -> None:
        """バイト列をkeyに書き込む"""
        mtime = mtime or datetime.now(timezone.utc)
        self.copy_io_to(key, io.BytesIO(data), md5_base64(data), len(data), {'mtime': mtime})

    def write_string_to(self, key: str, string: str, mtime: Optional[datetime] = None,
                        encoding: str = 'utf-8') -> None:
        """文字列をkeyに書き込む"""
        self.write_bytes_to(key, string.encode(encoding), mtime=mtime)

    @contextmanager
    def with_output_io(self, key: str, tmp_dir: Optional[str] = None):
        """
        書き込み用の一時ファイルを提供し、ブロック正常終了時にその内容をkeyへ書き込む

        ブロック内で例外が発生した場合は何も書き込まない。一時ファイルは必ず削除される。
        """
        tmp = tempfile.NamedTemporaryFile(mode='w+b', dir=tmp_dir or get_tmpdir(), delete=False)
        try:
            yield tmp
            tmp.flush()
            tmp.seek(0)
            md5_sum = md5_base64_of_io(tmp)
            size = tmp.tell()
            tmp.seek(0)
            self.copy_io_to(key, tmp, md5_sum, size)
        finally:
            tmp.close()
            try:
                os.unlink(tmp.name)
            except FileNotFoundError:
                pass

    def copy_content_to(self, key: str, source_root: 'Root', source_key: str,
                        metadata: Optional[Dict[str, Any]] = None) -> None:
        """
        別のルート（同じルートでもよい）のコンテンツをkeyにコピーする

        汎用実装はストリーム経由。同種バックエンド間でネイティブコピーできる場合はオーバーライドする。
        """
        copy_metadata: Dict[str, Any] = {'mtime': source_root.mtime(source_key)}
        copy_metadata.update(metadata or {})
        md5_sum = source_root.md5_sum(source_key)
        size = source_root.size(source_key)
        with source_root.with_input_io(source_key) as input_io:
            self.copy_io_to(key, input_io, md5_sum, size, copy_metadata)

    def copy_tree_to(self, key: str, source_root: 'Root', source_key: str) -> None:
        """source_key配下の全コンテンツを、相対パスを保ったままkey配下にコピーする"""
        for unprefixed_key in source_root.unprefixed_subtree_keys(source_key):
            self.copy_content_to(join_key(key, unprefixed_key), source_root,
                                 join_key(source_key, unprefixed_key))

    def move_content(self, source_key: str, target_key: str) -> None:
        """
        ルート内でコンテンツを移動する

        汎用実装はコピー後に削除するためアトミックではない。
        """
        self.copy_content_to(target_key, self, source_key)
        self.delete_content(source_key)

    # --- 削除系メソッド（Delete Operations） ---

    @abstractmethod
    def delete_content(self, key: str) -> None:
        """keyのコンテンツを削除する"""
        pass

    def delete_tree(self, key: str) -> None:
        """コンテンツキーならその内容を、ディレクトリキーなら配下の全コンテンツを削除する"""
        if self.is_directory_key(key):
            self._delete_keys(self.subtree_keys(key))
        else:
            self.delete_content(key)

    def delete_all_content(self) -> None:
        """ルート内の全コンテンツを削除する（主にテストの後始末用）"""
        self._delete_keys(self.subtree_keys(''))

    def _delete_keys(self, keys: Iterable[str]) -> None:
        """キーを並列に削除する。失敗があれば全削除の完了後に最初の例外を送出"""
        keys = list(keys)
        if not keys:
            return
        with ThreadPoolExecutor(max_workers=DELETE_WORKERS) as executor:
            futures = [executor.submit(self.delete_content, k) for k in keys]
        errors = [f.exception() for f in futures if f.exception() is not None]
        if errors:
            logger.error(f"Delete failed for {len(errors)} of {len(keys)} keys in root {self.name}")
            raise errors[0]
        logger.debug(f"Deleted {len(keys)} keys in root {self.name}")
