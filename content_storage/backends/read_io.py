"""S3オブジェクトの範囲読み込みストリーム

オブジェクト全体をメモリに読み込まずに、Rangeリクエストでシーク可能な読み取りストリームを提供する。
オブジェクトを先頭から順に読む用途や、一部分だけを読む用途に向いている。
シークを多用する処理（巻き戻しを繰り返すファイル判定等）には向かない。
"""

import io
from typing import Optional

from ..exceptions import OutOfRangeError

# 1回のRangeリクエストで取得する最大バイト数
MAX_READ_LENGTH = 10 * 1024 * 1024
# BufferedReaderでラップする際のバッファサイズ
FILL_SIZE = 10 * 1024 * 1024


class S3ReadIO(io.RawIOBase):
    """
    ルートの get_bytes(key, start, length) をもとにしたシーク可能なバイナリストリーム

    使用例:
        with S3ReadIO.open_buffered(root, 'large/object.bin') as stream:
            stream.seek(-100, io.SEEK_END)
            tail = stream.read()
    """

    def __init__(self, root, key: str, size: Optional[int] = None):
        super().__init__()
        self.root = root
        self.key = key
        self.position = 0
        self._size = size

    @classmethod
    def open_buffered(cls, root, key: str, size: Optional[int] = None,
                      buffer_size: int = FILL_SIZE) -> io.BufferedReader:
        """内部バッファ付きのストリームとして開く"""
        return io.BufferedReader(cls(root, key, size=size), buffer_size=buffer_size)

    @property
    def size(self) -> int:
        """オブジェクトサイズ（初回アクセス時に取得してキャッシュ）"""
        if self._size is None:
            self._size = self.root.size(self.key)
        return self._size

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self.position

    def readinto(self, buffer) -> int:
        """
        現在位置からbufferの長さ分を読み込む

        MAX_READ_LENGTHを上限とするRangeリクエストを必要な回数だけ発行する。
        終端に達している場合は0を返す。
        """
        view = memoryview(buffer).cast('B')
        length = len(view)
        bytes_read = 0
        while bytes_read < length:
            read_length = min(MAX_READ_LENGTH, length - bytes_read, self.size - (self.position + bytes_read))
            if read_length <= 0:
                break
            data = self.root.get_bytes(self.key, self.position + bytes_read, read_length)
            if not data:
                break
            data = data[:read_length]
            view[bytes_read:bytes_read + len(data)] = data
            bytes_read += len(data)
        self.position += bytes_read
        return bytes_read

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        """
        読み取り位置を移動する

        Raises:
            OutOfRangeError: 移動先が [0, size] の範囲外の場合（位置は変わらない）
            ValueError: whenceが不正な場合
        """
        if whence == io.SEEK_SET:
            new_position = offset
        elif whence == io.SEEK_CUR:
            new_position = self.position + offset
        elif whence == io.SEEK_END:
            new_position = self.size + offset
        else:
            raise ValueError(f"Unrecognized seek whence: {whence}")
        if new_position < 0 or new_position > self.size:
            raise OutOfRangeError(f"Seek out of range: position {new_position} not in 0-{self.size}")
        self.position = new_position
        return self.position
