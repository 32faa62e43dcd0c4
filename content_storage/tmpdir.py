"""一時ディレクトリ設定

with_input_file 等で一時ファイルを作成する場所を決める。
EC2等でシステムの一時領域が小さい場合に、環境変数やコードから別の場所（EFS等）を指定できる。

優先順位:
1. set_tmpdir() で設定した値
2. 環境変数 CONTENT_STORAGE_TMPDIR
3. 環境変数 TMPDIR
4. tempfile.gettempdir()
"""

import os
import tempfile
from typing import Iterable, List, Optional, Tuple

_tmpdir: Optional[str] = None


def get_tmpdir() -> str:
    """プロセス全体で使用する一時ディレクトリを取得"""
    if _tmpdir is not None:
        return _tmpdir
    return os.getenv('CONTENT_STORAGE_TMPDIR') or os.getenv('TMPDIR') or tempfile.gettempdir()


def set_tmpdir(path: Optional[str]) -> None:
    """一時ディレクトリを設定（Noneで環境変数・デフォルトに戻す）"""
    global _tmpdir
    _tmpdir = path


class TmpDirPicker:
    """
    コンテンツサイズに応じて一時ディレクトリを選ぶ

    (サイズ閾値, パス) の組を受け取り、サイズ以下の閾値のうち最大のもののパスを返す。
    該当がなければ get_tmpdir() を返す。

    使用例:
        picker = TmpDirPicker([(1000, 'medium/path'), (250, 'small/path'), (30000, 'large/path')])
        picker.pick(30000)  # 'large/path'
        picker.pick(500)    # 'small/path'
        picker.pick(100)    # get_tmpdir()
    """

    def __init__(self, tmp_dir_specs: Iterable[Tuple[int, str]]):
        self.tmp_dir_specs: List[Tuple[int, str]] = sorted(
            tmp_dir_specs, key=lambda spec: spec[0], reverse=True
        )

    def pick(self, size: int) -> str:
        for threshold, path in self.tmp_dir_specs:
            if size >= threshold:
                return path
        return get_tmpdir()
