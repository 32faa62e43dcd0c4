"""Content Storage - 名前付きストレージルート

ローカルファイルシステムとS3（互換ストレージ含む）を同じキー指定で扱うためのストレージ抽象化レイヤー。
ルート間コピー、ツリー単位の操作、MD5による整合性検証、S3のバージョン管理を提供する。
"""

from .config import FilesystemRootConfig, RootSetConfig, S3RootConfig, root_config_from_dict
from .exceptions import (
    BackendNotRegisteredError,
    InvalidDirectoryError,
    InvalidKeyError,
    MD5MismatchError,
    OutOfRangeError,
    StorageAccessError,
    StorageConfigError,
    StorageError,
    StorageNotFoundError,
    UnsupportedOperationError,
)
from .registry import BackendRegistry, create_root
from .service import RootSet, get_root_set
from .backends import FilesystemRoot, ObjectVersion, Root, S3ReadIO, S3Root

__all__ = [
    'FilesystemRootConfig',
    'S3RootConfig',
    'RootSetConfig',
    'root_config_from_dict',
    'BackendRegistry',
    'create_root',
    'RootSet',
    'get_root_set',
    'Root',
    'FilesystemRoot',
    'S3Root',
    'S3ReadIO',
    'ObjectVersion',
    'StorageError',
    'InvalidKeyError',
    'InvalidDirectoryError',
    'StorageNotFoundError',
    'MD5MismatchError',
    'UnsupportedOperationError',
    'OutOfRangeError',
    'StorageAccessError',
    'StorageConfigError',
    'BackendNotRegisteredError'
]

__version__ = '1.0.0'
