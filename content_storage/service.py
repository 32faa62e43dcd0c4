"""ストレージルート集合

設定された全ルートを名前で引けるようにまとめる。
ルート間のコピー（copy_content_to/copy_tree_to）はここで取得したルート同士で行う。
"""

import logging
from typing import Dict, List, Optional

from .backends.base import Root
from .config import RootSetConfig
from .exceptions import StorageConfigError
from .registry import create_root

logger = logging.getLogger(__name__)


class RootSet:
    """
    名前付きストレージルートの集合

    使用例:
        roots = RootSet(RootSetConfig.from_yaml('storage.yaml'))
        roots['main'].copy_tree_to('backup/', roots['staging'], 'runs/1/')
    """

    _instance: Optional['RootSet'] = None

    def __init__(self, config: Optional[RootSetConfig] = None):
        """
        設定の全ルートを生成する

        Raises:
            StorageConfigError: ルート名が重複している場合
        """
        self.config = config or RootSetConfig.from_env()
        self._roots: Dict[str, Root] = {}
        for root_config in self.config.roots:
            if root_config.name in self._roots:
                raise StorageConfigError(f"Duplicate storage root name: {root_config.name}")
            self._roots[root_config.name] = create_root(root_config)
        logger.info(f"RootSet initialized: roots={self.names}")

    @property
    def names(self) -> List[str]:
        """ルート名一覧（設定順）"""
        return list(self._roots.keys())

    def at(self, name: str) -> Root:
        """
        名前からルートを取得

        Raises:
            KeyError: 指定名のルートがない場合
        """
        try:
            return self._roots[name]
        except KeyError:
            raise KeyError(f"Unknown storage root: {name}") from None

    def __getitem__(self, name: str) -> Root:
        return self.at(name)

    def __contains__(self, name: str) -> bool:
        return name in self._roots

    def __len__(self) -> int:
        return len(self._roots)

    @classmethod
    def reset_instance(cls):
        """
        シングルトンインスタンスをリセット（テスト用）

        注意: 本番環境では使用しないこと
        """
        cls._instance = None


def get_root_set(config: Optional[RootSetConfig] = None) -> RootSet:
    """RootSetのシングルトンインスタンスを取得（初回のみconfigを使用）"""
    if RootSet._instance is None:
        RootSet._instance = RootSet(config)
    return RootSet._instance
