"""共通フィクスチャ"""

import pytest

from content_storage.backends.local import FilesystemRoot
from content_storage.config import FilesystemRootConfig
from content_storage.service import RootSet
from content_storage.tmpdir import set_tmpdir

from tests.fake_s3 import FakeS3Client, make_s3_root

# テスト用のファイルツリー（キー -> 内容）
FIXTURE_TREE = {
    'joe.txt': b'joe\n',
    'pete.txt': b'pete\n',
    'child/fred.txt': b'fred\n',
    'child/grandchild-1/dave.txt': b'dave\n',
    'child/grandchild-1/jim.txt': b'jim\n',
    'child/grandchild-2/mel.txt': b'mel\n',
}


@pytest.fixture(autouse=True)
def reset_state():
    """シングルトン・一時ディレクトリ設定をテストごとにリセット"""
    yield
    RootSet.reset_instance()
    set_tmpdir(None)


@pytest.fixture
def fixture_tree():
    return dict(FIXTURE_TREE)


@pytest.fixture
def fs_root(tmp_path):
    """フィクスチャツリーを持つファイルシステムルート"""
    root_path = tmp_path / 'fs-root'
    for key, content in FIXTURE_TREE.items():
        path = root_path / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    return FilesystemRoot(FilesystemRootConfig(name='fs', path=str(root_path)))


@pytest.fixture
def empty_fs_root(tmp_path):
    root_path = tmp_path / 'empty-fs-root'
    root_path.mkdir()
    return FilesystemRoot(FilesystemRootConfig(name='fs-empty', path=str(root_path)))


@pytest.fixture
def fake_s3():
    return FakeS3Client(bucket='test-bucket')


@pytest.fixture
def s3_root(fake_s3):
    """空のS3ルート"""
    return make_s3_root(fake_s3)


@pytest.fixture
def loaded_s3_root(s3_root):
    """フィクスチャツリーを持つS3ルート"""
    for key, content in FIXTURE_TREE.items():
        s3_root.write_bytes_to(key, content)
    return s3_root


@pytest.fixture
def prefixed_s3_root(fake_s3):
    """プレフィックス付きのS3ルート。同じバケットのプレフィックス外にもオブジェクトを置く"""
    fake_s3.put_object(Bucket=fake_s3.bucket, Key='outside.txt', Body=b'outside')
    fake_s3.put_object(Bucket=fake_s3.bucket, Key='other/inner.txt', Body=b'inner')
    root = make_s3_root(fake_s3, name='s3-prefixed', prefix='prefix/')
    for key, content in FIXTURE_TREE.items():
        root.write_bytes_to(key, content)
    return root


@pytest.fixture
def versioned_s3_root():
    """バージョニング有効バケットのS3ルート"""
    client = FakeS3Client(bucket='versioned-bucket', versioned=True)
    return make_s3_root(client, name='s3-versioned', versioned=True)
