"""バックエンドレジストリ・ルート集合のテスト"""

from unittest.mock import patch

import pytest

from content_storage.backends.local import FilesystemRoot
from content_storage.backends.s3 import S3Root
from content_storage.config import FilesystemRootConfig, RootSetConfig, S3RootConfig
from content_storage.exceptions import BackendNotRegisteredError, StorageConfigError
from content_storage.registry import BackendRegistry, create_root
from content_storage.service import RootSet, get_root_set


class TestBackendRegistry:
    """レジストリのテスト"""

    def test_builtin_types(self):
        """正常系: 標準のルートタイプが登録済み"""
        assert BackendRegistry.is_registered('filesystem')
        assert BackendRegistry.is_registered('S3')
        assert BackendRegistry.get('filesystem') is FilesystemRoot
        assert BackendRegistry.get('s3') is S3Root
        assert set(BackendRegistry.list_types()) >= {'filesystem', 's3'}

    def test_unknown_type(self):
        """異常系: 未登録のタイプ"""
        with pytest.raises(BackendNotRegisteredError):
            BackendRegistry.get('ftp')

    def test_register_and_clear(self):
        """正常系: 登録とクリア（終了後に元へ戻す）"""
        saved = dict(BackendRegistry._backends)
        try:
            @BackendRegistry.register('Memory')
            class MemoryRoot:
                pass

            assert BackendRegistry.get('memory') is MemoryRoot
            BackendRegistry.clear()
            assert BackendRegistry.list_types() == []
        finally:
            BackendRegistry._backends.update(saved)

    def test_create_root(self, tmp_path):
        """正常系: 設定のタイプに応じたルートを生成"""
        root = create_root(FilesystemRootConfig(name='main', path=str(tmp_path)))

        assert isinstance(root, FilesystemRoot)
        assert root.name == 'main'


class TestRootSet:
    """ルート集合のテスト"""

    def make_config(self, tmp_path):
        (tmp_path / 'a').mkdir()
        (tmp_path / 'b').mkdir()
        return RootSetConfig(roots=[
            FilesystemRootConfig(name='a', path=str(tmp_path / 'a')),
            FilesystemRootConfig(name='b', path=str(tmp_path / 'b')),
        ])

    def test_lookup(self, tmp_path):
        """正常系: 名前でルートを取得"""
        roots = RootSet(self.make_config(tmp_path))

        assert roots.names == ['a', 'b']
        assert roots.at('a').name == 'a'
        assert roots['b'] is roots.at('b')
        assert 'a' in roots
        assert 'c' not in roots
        assert len(roots) == 2

    def test_unknown_name(self, tmp_path):
        """異常系: 存在しない名前"""
        roots = RootSet(self.make_config(tmp_path))

        with pytest.raises(KeyError):
            roots['c']

    def test_duplicate_names(self, tmp_path):
        """異常系: ルート名の重複"""
        config = self.make_config(tmp_path)
        config.roots.append(FilesystemRootConfig(name='a', path=str(tmp_path / 'b')))

        with pytest.raises(StorageConfigError):
            RootSet(config)

    def test_mixed_backends(self, tmp_path):
        """正常系: ファイルシステムとS3の混在"""
        config = self.make_config(tmp_path)
        config.roots.append(S3RootConfig(name='archive', bucket='my-bucket'))

        with patch('content_storage.backends.s3.boto3'):
            roots = RootSet(config)

        assert isinstance(roots['archive'], S3Root)
        assert roots['archive'].bucket == 'my-bucket'

    def test_cross_root_copy(self, tmp_path):
        """正常系: ルート間でツリーをコピー"""
        roots = RootSet(self.make_config(tmp_path))
        roots['a'].write_string_to('runs/1/log.txt', 'log')

        roots['b'].copy_tree_to('backup', roots['a'], 'runs')

        assert roots['b'].as_string('backup/1/log.txt') == 'log'

    def test_singleton(self, tmp_path):
        """正常系: 初回の設定で生成したインスタンスを返し続ける"""
        first = get_root_set(self.make_config(tmp_path))

        assert get_root_set() is first
        RootSet.reset_instance()
        with patch.dict('os.environ', {'STORAGE_MODE': 'local', 'LOCAL_STORAGE_PATH': str(tmp_path / 'a')},
                        clear=True):
            second = get_root_set()
        assert second is not first
        assert second.names == ['filesystem']
