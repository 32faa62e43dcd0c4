"""バックエンドレジストリ

ストレージルート実装クラスの動的登録・取得と、設定からのルート生成を管理。
"""

import logging
from typing import Dict, Type, TYPE_CHECKING

from .exceptions import BackendNotRegisteredError

if TYPE_CHECKING:
    from .backends.base import Root
    from .config import RootConfig

logger = logging.getLogger(__name__)


class BackendRegistry:
    """ストレージルート実装のレジストリ"""

    _backends: Dict[str, Type['Root']] = {}

    @classmethod
    def register(cls, root_type: str):
        """
        ルート実装クラスを登録するデコレータ

        使用例:
            @BackendRegistry.register("s3")
            class S3Root(Root):
                ...
        """
        def decorator(root_class: Type['Root']):
            cls._backends[root_type.lower()] = root_class
            return root_class
        return decorator

    @classmethod
    def get(cls, root_type: str) -> Type['Root']:
        """
        タイプ名からルート実装クラスを取得

        Args:
            root_type: ルートタイプ名（'filesystem', 's3'等）

        Returns:
            ルート実装クラス

        Raises:
            BackendNotRegisteredError: 未登録のタイプが指定された場合
        """
        type_lower = root_type.lower()
        if type_lower not in cls._backends:
            available = ", ".join(cls._backends.keys())
            raise BackendNotRegisteredError(f"Unknown storage root type: {root_type}. Available: {available}")
        return cls._backends[type_lower]

    @classmethod
    def list_types(cls) -> list:
        """登録済みタイプ一覧を取得"""
        return list(cls._backends.keys())

    @classmethod
    def is_registered(cls, root_type: str) -> bool:
        """タイプが登録済みか確認"""
        return root_type.lower() in cls._backends

    @classmethod
    def clear(cls):
        """テスト用: レジストリをクリア"""
        cls._backends.clear()


def create_root(config: 'RootConfig') -> 'Root':
    """設定のtypeに対応するルートを生成する"""
    # 実装クラスの登録を確実にする
    from . import backends  # noqa: F401

    root_class = BackendRegistry.get(config.type)
    logger.debug(f"Creating storage root: name={config.name}, type={config.type}")
    return root_class(config)
