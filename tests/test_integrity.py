"""チェックサム計算・検証のテスト"""

import base64
import hashlib
import io

import pytest

from content_storage.integrity import (
    EtagCalculator,
    base64_to_hex,
    etags_match,
    hex_to_base64,
    md5_base64,
    md5_base64_of_io,
    verify_md5,
)


def expected_etag(parts):
    """パートのリストからS3のマルチパートETagを計算"""
    digests = b''.join(hashlib.md5(p).digest() for p in parts)
    return f'"{hashlib.md5(digests).hexdigest()}-{len(parts)}"'


class TestMD5:
    """MD5ヘルパーのテスト"""

    def test_md5_base64(self):
        """正常系: base64形式のMD5"""
        assert md5_base64(b'joe\n') == base64.b64encode(hashlib.md5(b'joe\n').digest()).decode('ascii')

    def test_md5_of_io_matches_bytes(self):
        """正常系: バッファサイズより大きいストリームでもバイト列と同じ結果"""
        data = b'0123456789' * 1000
        assert md5_base64_of_io(io.BytesIO(data), buffer_size=7) == md5_base64(data)

    def test_hex_base64_conversion(self):
        """正常系: 16進形式とbase64形式の相互変換"""
        hexdigest = hashlib.md5(b'fred\n').hexdigest()
        md5_sum = hex_to_base64(hexdigest)
        assert md5_sum == md5_base64(b'fred\n')
        assert base64_to_hex(md5_sum) == hexdigest

    def test_verify_md5(self):
        """正常系: 期待値なしは常に一致扱い"""
        md5_sum = md5_base64(b'x')
        assert verify_md5(None, md5_sum)
        assert verify_md5(md5_sum, md5_sum)
        assert not verify_md5(md5_base64(b'y'), md5_sum)

    def test_etags_match_ignores_quotes(self):
        """正常系: ダブルクォートの有無は無視"""
        assert etags_match('"abc-2"', 'abc-2')
        assert not etags_match('"abc-2"', '"abc-3"')
        assert not etags_match(None, '"abc-2"')


class TestEtagCalculator:
    """マルチパートETag計算器のテスト"""

    def test_three_parts(self):
        """正常系: 'abcdefghijklm'をパートサイズ5で計算"""
        calculator = EtagCalculator(5)
        calculator.update(b'abcdefghijklm')

        assert calculator.part_count == 3
        assert calculator.total_bytes == 13
        assert calculator.etag == expected_etag([b'abcde', b'fghij', b'klm'])

    def test_chunking_independent(self):
        """正常系: 1バイトずつ追加しても一括追加と同じ結果"""
        data = bytes(range(256)) * 3
        whole = EtagCalculator(64)
        whole.update(data)

        single_bytes = EtagCalculator(64)
        for i in range(len(data)):
            single_bytes << data[i:i + 1]

        assert single_bytes.etag == whole.etag
        assert single_bytes.part_count == 12

    def test_exact_part_boundary(self):
        """正常系: パートサイズちょうどのデータは空のパートを作らない"""
        calculator = EtagCalculator(5)
        calculator.update(b'abcde')
        calculator.update(b'fghij')

        assert calculator.part_count == 2
        assert calculator.etag == expected_etag([b'abcde', b'fghij'])

    def test_empty_update_is_noop(self):
        """正常系: 空データの追加は何もしない"""
        calculator = EtagCalculator(5)
        calculator.update(b'')
        calculator.update(b'abc')
        calculator.update(b'')

        assert calculator.part_count == 1
        assert calculator.etag == expected_etag([b'abc'])

    def test_invalid_part_size(self):
        """異常系: パートサイズが0以下"""
        with pytest.raises(ValueError):
            EtagCalculator(0)
