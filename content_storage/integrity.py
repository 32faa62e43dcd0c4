"""チェックサム計算・検証

コンテンツ全体のMD5（base64形式、S3のContent-MD5と同じ表現）と、
S3のマルチパートアップロードが返すETagをサーバーに依存せず再現する計算器を提供する。
"""

import base64
import hashlib
from typing import Any, BinaryIO, List, Optional

READ_BUFFER_SIZE = 64 * 1024


def md5_base64(data: bytes) -> str:
    """データのMD5をbase64で返す"""
    return base64.b64encode(hashlib.md5(data).digest()).decode('ascii')


def md5_base64_of_io(io: BinaryIO, buffer_size: int = READ_BUFFER_SIZE) -> str:
    """ストリームを最後まで読み、MD5をbase64で返す"""
    digest = hashlib.md5()
    while True:
        chunk = io.read(buffer_size)
        if not chunk:
            break
        digest.update(chunk)
    return base64.b64encode(digest.digest()).decode('ascii')


def base64_to_hex(md5_sum: str) -> str:
    """base64形式のMD5を16進形式に変換"""
    return base64.b64decode(md5_sum).hex()


def hex_to_base64(hexdigest: str) -> str:
    """16進形式のMD5をbase64形式に変換"""
    return base64.b64encode(bytes.fromhex(hexdigest)).decode('ascii')


def verify_md5(expected: Optional[str], actual: str) -> bool:
    """期待値が与えられていればbase64 MD5を比較する。期待値がNoneなら常にTrue"""
    if expected is None:
        return True
    return expected == actual


def etags_match(etag: Optional[str], other: Optional[str]) -> bool:
    """ETag同士を比較（前後のダブルクォートは無視）"""
    if etag is None or other is None:
        return False
    return etag.strip('"') == other.strip('"')


class EtagCalculator:
    """
    マルチパートアップロードのETag計算器

    各パートのMD5（バイナリ）を連結したもののMD5を16進化し、'-'とパート数を付けて
    ダブルクォートで囲んだものがS3の返すETagになる。最後のパート以外はすべて同じサイズであることを前提とする。

    使用例:
        calculator = EtagCalculator(5 * 1024 * 1024)
        calculator.update(chunk)
        calculator.etag  # '"<hex>-<part count>"'
    """

    def __init__(self, part_size: int):
        if part_size <= 0:
            raise ValueError(f"part_size must be positive: {part_size}")
        self.part_size = part_size
        self.digests: List[Any] = []
        self.active_digest = None
        self.bytes_to_go = 0
        self.total_bytes = 0

    def update(self, data: bytes) -> None:
        """データを追加する。パート境界をまたぐデータは分割して次のパートへ回す"""
        view = memoryview(data)
        offset = 0
        while offset < len(view):
            if self.bytes_to_go == 0:
                self.active_digest = hashlib.md5()
                self.digests.append(self.active_digest)
                self.bytes_to_go = self.part_size
            length = min(self.bytes_to_go, len(view) - offset)
            self.active_digest.update(view[offset:offset + length])
            offset += length
            self.bytes_to_go -= length
            self.total_bytes += length

    def __lshift__(self, data: bytes) -> 'EtagCalculator':
        self.update(data)
        return self

    @property
    def part_count(self) -> int:
        return len(self.digests)

    @property
    def etag(self) -> str:
        """これ以上データが追加されない前提でETagを返す"""
        binary_digests = b''.join(d.digest() for d in self.digests)
        return f'"{hashlib.md5(binary_digests).hexdigest()}-{self.part_count}"'
