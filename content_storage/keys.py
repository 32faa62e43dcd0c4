"""キー操作ユーティリティ

ルート内のコンテンツを指す階層キーを扱う純粋関数群。

キーはルートからの相対パス形式の文字列で、空文字列はルート自身を表す。
区切り文字で終わるキー（または空文字列）はディレクトリキー、それ以外はコンテンツキー。
先頭の区切り文字や連続した区切り文字を含むキーの動作は未定義であり、ここでは補正しない。
"""

from .exceptions import InvalidKeyError

SEPARATOR = '/'


def is_directory_key(key: str) -> bool:
    """ディレクトリキーかどうか"""
    return key == '' or key.endswith(SEPARATOR)


def ensure_directory_key(key: str) -> str:
    """ディレクトリキー形式に変換（末尾に区切り文字を付与）"""
    return key if is_directory_key(key) else key + SEPARATOR


def add_prefix(prefix: str, key: str) -> str:
    """バックエンド上のキーに変換（プレフィックスを付与）"""
    return prefix + key


def remove_prefix(prefix: str, key: str) -> str:
    """
    バックエンド上のキーからプレフィックスを除去する

    Raises:
        InvalidKeyError: キーがプレフィックスで始まらない場合
    """
    if not key.startswith(prefix):
        raise InvalidKeyError(None, key)
    return key[len(prefix):]


def join_key(base: str, relative: str) -> str:
    """2つのキー断片を区切り文字1つで連結"""
    if base == '':
        return relative
    if relative == '':
        return base
    return base.rstrip(SEPARATOR) + SEPARATOR + relative.lstrip(SEPARATOR)


def relative_key(full_key: str, prefix_key: str) -> str:
    """
    prefix_key（ディレクトリとして扱う）配下にあるfull_keyの相対キーを返す

    Raises:
        InvalidKeyError: full_keyがprefix_key配下にない場合
    """
    if prefix_key == '':
        return full_key
    if full_key == prefix_key or full_key == ensure_directory_key(prefix_key):
        return ''
    return remove_prefix(ensure_directory_key(prefix_key), full_key)
