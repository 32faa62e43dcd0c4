"""ストレージルート実装

インポート時に各実装クラスがBackendRegistryへ登録される。
"""

from .base import Root
from .local import FilesystemRoot
from .read_io import S3ReadIO
from .s3 import ObjectVersion, S3Root

__all__ = [
    'Root',
    'FilesystemRoot',
    'S3Root',
    'S3ReadIO',
    'ObjectVersion'
]
