"""Range読み込みストリームのテスト"""

import io
from unittest.mock import patch

import pytest

from content_storage.backends.read_io import S3ReadIO
from content_storage.exceptions import OutOfRangeError


class BytesRoot:
    """get_bytes/sizeだけを持つテスト用ルート"""

    def __init__(self, data):
        self.data = data
        self.requests = []
        self.size_calls = 0

    def size(self, key):
        self.size_calls += 1
        return len(self.data)

    def get_bytes(self, key, start, length):
        self.requests.append((start, length))
        return self.data[start:start + length]


DATA = bytes(range(256)) * 4


class TestS3ReadIORead:
    """読み込みのテスト"""

    def test_sequential_reads(self):
        """正常系: 複数回のRange取得で内容を再構成"""
        root = BytesRoot(DATA)
        with patch('content_storage.backends.read_io.MAX_READ_LENGTH', 100):
            stream = S3ReadIO(root, 'data.bin')
            chunks = []
            while True:
                chunk = stream.read(300)
                if not chunk:
                    break
                chunks.append(chunk)

        assert b''.join(chunks) == DATA
        assert all(length <= 100 for _, length in root.requests)
        assert len(root.requests) > len(chunks)

    def test_read_at_end_returns_empty(self):
        """正常系: 終端では空のバイト列（エラーではない）"""
        stream = S3ReadIO(BytesRoot(b'abc'), 'abc.txt')
        stream.seek(0, io.SEEK_END)

        assert stream.read(10) == b''
        assert stream.readinto(bytearray(10)) == 0

    def test_size_cached(self):
        """正常系: サイズは初回のみ取得"""
        root = BytesRoot(DATA)
        stream = S3ReadIO(root, 'data.bin')
        stream.read(10)
        stream.seek(-5, io.SEEK_END)
        stream.read()

        assert root.size_calls == 1

    def test_size_given(self):
        """正常系: サイズ指定時は取得しない"""
        root = BytesRoot(DATA)
        stream = S3ReadIO(root, 'data.bin', size=len(DATA))
        stream.read(1)

        assert root.size_calls == 0

    def test_open_buffered(self):
        """正常系: BufferedReaderでラップ"""
        root = BytesRoot(DATA)
        with S3ReadIO.open_buffered(root, 'data.bin', buffer_size=64) as stream:
            assert stream.read(10) == DATA[:10]
            assert stream.read() == DATA[10:]


class TestS3ReadIOSeek:
    """シークのテスト"""

    def test_seek_from_end(self):
        """正常系: 終端からN バイト戻って読むと最後のNバイト"""
        stream = S3ReadIO(BytesRoot(DATA), 'data.bin')

        assert stream.seek(-100, io.SEEK_END) == len(DATA) - 100
        assert stream.read() == DATA[-100:]

    def test_seek_set_and_cur(self):
        """正常系: 先頭・現在位置からのシーク"""
        stream = S3ReadIO(BytesRoot(DATA), 'data.bin')
        stream.seek(10)
        stream.seek(5, io.SEEK_CUR)

        assert stream.tell() == 15
        assert stream.read(3) == DATA[15:18]

    def test_seek_to_end_is_allowed(self):
        """正常系: ちょうど終端へのシークは可能"""
        stream = S3ReadIO(BytesRoot(DATA), 'data.bin')

        assert stream.seek(len(DATA)) == len(DATA)

    @pytest.mark.parametrize('offset, whence', [
        (-1, io.SEEK_SET),
        (len(DATA) + 1, io.SEEK_SET),
        (-11, io.SEEK_CUR),
        (1, io.SEEK_END),
    ])
    def test_seek_out_of_range(self, offset, whence):
        """異常系: 範囲外へのシークは失敗し、位置は変わらない"""
        stream = S3ReadIO(BytesRoot(DATA), 'data.bin')
        stream.seek(10)

        with pytest.raises(OutOfRangeError):
            stream.seek(offset, whence)
        assert stream.tell() == 10

    def test_seek_bad_whence(self):
        """異常系: 不正なwhence"""
        stream = S3ReadIO(BytesRoot(DATA), 'data.bin')

        with pytest.raises(ValueError):
            stream.seek(0, 7)


class TestS3ReadIOWithRoot:
    """S3ルートと組み合わせたテスト"""

    def test_read_through_s3_root(self, s3_root):
        """正常系: S3ルートのget_bytesで読み込み"""
        s3_root.write_bytes_to('data.bin', DATA)

        with S3ReadIO.open_buffered(s3_root, 'data.bin') as stream:
            stream.seek(-20, io.SEEK_END)
            assert stream.read() == DATA[-20:]
            stream.seek(0)
            assert stream.read(20) == DATA[:20]
