"""ストレージ設定クラス

環境変数・YAMLファイルからのルート設定読み込みを一元管理。

YAMLファイル例:
    roots:
      - name: main
        type: filesystem
        path: /data/storage
      - name: archive
        type: s3
        bucket: my-bucket
        region: ap-northeast-1
        prefix: archive/
        versioned: true
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Union
import os

import yaml

from .exceptions import StorageConfigError

DEFAULT_PART_SIZE = 5 * 1024 * 1024


@dataclass
class FilesystemRootConfig:
    """ファイルシステムルート固有設定"""
    name: str = "filesystem"
    path: str = "/data/storage"
    type: str = field(default="filesystem", init=False)

    @classmethod
    def from_env(cls, name: str = "filesystem") -> 'FilesystemRootConfig':
        """環境変数から設定を読み込み"""
        return cls(
            name=name,
            path=os.getenv('LOCAL_STORAGE_PATH', '/data/storage')
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FilesystemRootConfig':
        if not data.get('path'):
            raise StorageConfigError(f"Filesystem root '{data.get('name')}' requires 'path'")
        return cls(**_known_fields(cls, data))


@dataclass
class S3RootConfig:
    """S3ルート固有設定"""
    name: str = "s3"
    bucket: str = "content-storage"
    region: Optional[str] = "ap-northeast-1"
    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    prefix: str = ""
    force_path_style: bool = False
    versioned: bool = False
    copy_targets: List[str] = field(default_factory=list)
    part_size: int = DEFAULT_PART_SIZE
    type: str = field(default="s3", init=False)

    @classmethod
    def from_env(cls, name: str = "s3") -> 'S3RootConfig':
        """環境変数から設定を読み込み"""
        return cls(
            name=name,
            bucket=os.getenv('S3_BUCKET_NAME', 'content-storage'),
            endpoint_url=os.getenv('S3_ENDPOINT_URL'),
            region=os.getenv('AWS_DEFAULT_REGION', 'ap-northeast-1'),
            access_key_id=os.getenv('AWS_ACCESS_KEY_ID'),
            secret_access_key=os.getenv('AWS_SECRET_ACCESS_KEY'),
            prefix=os.getenv('S3_PREFIX', '')
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'S3RootConfig':
        if not data.get('bucket'):
            raise StorageConfigError(f"S3 root '{data.get('name')}' requires 'bucket'")
        values = _known_fields(cls, data)
        if 'copy_targets' in values:
            values['copy_targets'] = list(values['copy_targets'] or [])
        return cls(**values)


RootConfig = Union[FilesystemRootConfig, S3RootConfig]

_CONFIG_CLASSES = {
    'filesystem': FilesystemRootConfig,
    '': FilesystemRootConfig,
    's3': S3RootConfig,
}


def _known_fields(config_class, data: Dict[str, Any]) -> Dict[str, Any]:
    """dataclassの初期化引数として使える項目だけを抜き出す"""
    names = {f.name for f in fields(config_class) if f.init}
    return {k: v for k, v in data.items() if k in names}


def root_config_from_dict(data: Dict[str, Any]) -> RootConfig:
    """
    辞書からルート設定を生成する

    Args:
        data: 'name' と 'type' を含む設定辞書。typeが空・未指定の場合はfilesystem

    Raises:
        StorageConfigError: 必須項目不足・未知のtype
    """
    if not isinstance(data, dict):
        raise StorageConfigError(f"Root config must be a mapping: {data!r}")
    if not data.get('name'):
        raise StorageConfigError(f"Root config requires 'name': {data!r}")
    root_type = str(data.get('type') or '').lower()
    config_class = _CONFIG_CLASSES.get(root_type)
    if config_class is None:
        raise StorageConfigError(f"Unrecognized storage root type: {root_type}")
    return config_class.from_dict(data)


@dataclass
class RootSetConfig:
    """複数ルートの統合設定"""
    roots: List[RootConfig] = field(default_factory=list)

    @classmethod
    def from_list(cls, items: List[Dict[str, Any]]) -> 'RootSetConfig':
        """設定辞書のリストから読み込み"""
        return cls(roots=[root_config_from_dict(item) for item in items])

    @classmethod
    def from_yaml(cls, path: str) -> 'RootSetConfig':
        """YAMLファイルから読み込み"""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise StorageConfigError(f"Cannot read storage config: {path}") from e
        except yaml.YAMLError as e:
            raise StorageConfigError(f"Invalid YAML in storage config: {path}") from e

        roots = data.get('roots') if isinstance(data, dict) else None
        if not isinstance(roots, list):
            raise StorageConfigError(f"Storage config must have a 'roots' list: {path}")
        return cls.from_list(roots)

    @classmethod
    def from_env(cls) -> 'RootSetConfig':
        """
        環境変数から設定を読み込み

        STORAGE_ROOTS_CONFIG が設定されていればそのYAMLファイルを読み込む。
        未設定の場合はSTORAGE_MODE（'filesystem' or 's3'）に応じた単一ルートを構成する。
        """
        config_path = os.getenv('STORAGE_ROOTS_CONFIG')
        if config_path:
            return cls.from_yaml(config_path)

        mode = os.getenv('STORAGE_MODE', 's3').lower()
        if mode in ('local', 'filesystem'):
            return cls(roots=[FilesystemRootConfig.from_env()])
        if mode == 's3':
            return cls(roots=[S3RootConfig.from_env()])
        raise StorageConfigError(f"Unknown storage mode: {mode}")
