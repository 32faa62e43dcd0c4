"""ローカルファイルシステムストレージルート

キーはルートディレクトリからの相対パス。空文字列はルートディレクトリ自身を表す。
書き込みは同じディレクトリの一時ファイル経由で行い、rename で置き換えるためアトミック。
"""

import base64
import hashlib
import logging
import os
import shutil
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional

from ..config import FilesystemRootConfig
from ..exceptions import (
    InvalidDirectoryError,
    InvalidKeyError,
    MD5MismatchError,
    StorageAccessError,
    StorageConfigError,
    StorageNotFoundError,
)
from ..integrity import READ_BUFFER_SIZE, verify_md5
from ..registry import BackendRegistry
from .base import Root, from_timestamp, to_timestamp

logger = logging.getLogger(__name__)

# 書き込んだファイルのパーミッション
FILE_MODE = 0o640


@BackendRegistry.register("filesystem")
class FilesystemRoot(Root):
    """ローカルファイルシステムストレージルート"""

    def __init__(self, config: FilesystemRootConfig = None):
        """
        ファイルシステムルートを初期化

        Args:
            config: ファイルシステム設定。Noneの場合は環境変数から読み込み

        Raises:
            StorageConfigError: ルートディレクトリが存在しない場合
        """
        if config is None:
            config = FilesystemRootConfig.from_env()
        super().__init__(config.name)

        self.path = config.path
        self.base_path = Path(config.path)
        if not self.base_path.is_dir():
            raise StorageConfigError(f"Storage root directory does not exist: {self.path}")
        self.real_path = os.path.realpath(self.path)
        logger.info(f"FilesystemRoot initialized: name={self.name}, path={self.base_path}")

    @property
    def root_type(self) -> str:
        return 'filesystem'

    def path_to(self, key: Optional[str]) -> Path:
        """
        キーをファイルパスに変換する

        シンボリックリンク解決後のパスがルートの実パス配下にあることを確認するが、
        返すパスは設定されたルートパスを基準にする（ルートパス上のリンクが変わっても使えるように）。

        Raises:
            InvalidKeyError: 解決後のパスがルート外を指す場合
        """
        path = self.base_path / key if key else self.base_path
        resolved = os.path.realpath(path)
        if resolved != self.real_path and not resolved.startswith(self.real_path + os.sep):
            raise InvalidKeyError(self, key)
        return path

    def _key_for(self, path: Path) -> str:
        """パスをキーに変換"""
        return path.relative_to(self.base_path).as_posix()

    @contextmanager
    def _translate_os_errors(self, key: str):
        """OSErrorをストレージ例外に変換"""
        try:
            yield
        except (FileNotFoundError, NotADirectoryError) as e:
            raise StorageNotFoundError(f"Key not found in root {self.name}: {key}") from e
        except OSError as e:
            logger.error(f"Filesystem access failed: root={self.name}, key={key} - {e}")
            raise StorageAccessError(f"Filesystem access failed for key {key}: {e}") from e

    # --- 基本情報 ---

    def size(self, key: str) -> int:
        with self._translate_os_errors(key):
            return self.path_to(key).stat().st_size

    def mtime(self, key: str) -> datetime:
        with self._translate_os_errors(key):
            return from_timestamp(self.path_to(key).stat().st_mtime)

    def exists(self, key: str) -> bool:
        return self.path_to(key).exists()

    def is_directory_key(self, key: str) -> bool:
        return self.path_to(key).is_dir()

    def relative_path_from(self, full_key: str, prefix_key: str) -> str:
        """full_keyのprefix_keyからの相対パス"""
        relative = os.path.relpath(self.path_to(full_key), self.path_to(prefix_key))
        return '' if relative == '.' else Path(relative).as_posix()

    # --- 一覧系 ---

    def file_keys(self, key: str, raise_if_not_directory: bool = True) -> List[str]:
        return self._child_keys(key, raise_if_not_directory, lambda child: child.is_file())

    def subdirectory_keys(self, key: str, raise_if_not_directory: bool = True) -> List[str]:
        return self._child_keys(key, raise_if_not_directory, lambda child: child.is_dir())

    def _child_keys(self, key: str, raise_if_not_directory: bool, predicate) -> List[str]:
        if not self.is_directory_key(key):
            if raise_if_not_directory:
                raise InvalidDirectoryError(key)
            return []
        with self._translate_os_errors(key):
            children = list(self.path_to(key).iterdir())
        return sorted(self._key_for(child) for child in children if predicate(child))

    # --- 読み取り系 ---

    @contextmanager
    def with_input_io(self, key: str):
        path = self.path_to(key)
        with self._translate_os_errors(key):
            input_io = open(path, 'rb')
        try:
            yield input_io
        finally:
            input_io.close()

    @contextmanager
    def with_input_file(self, key: str, tmp_dir: Optional[str] = None):
        # 実ファイルをそのまま渡すため一時ファイルは作らない
        path = self.path_to(key)
        if not path.is_file():
            raise StorageNotFoundError(f"Key not found in root {self.name}: {key}")
        yield str(path)

    # --- 書き込み系 ---

    def _tmp_path_for(self, key: str, target: Path) -> Path:
        """書き込み先と同じディレクトリに置く一時ファイルのパス（キーのハッシュから決定）"""
        return target.parent / f".{hashlib.md5(key.encode('utf-8')).hexdigest()}.tmp"

    def copy_io_to(self, key: str, input_io: BinaryIO, md5_sum: Optional[str], size: Optional[int],
                   metadata: Optional[Dict[str, Any]] = None) -> None:
        metadata = metadata or {}
        target = self.path_to(key)
        if key == '' or target.is_dir():
            raise InvalidDirectoryError(key)
        tmp_path = self._tmp_path_for(key, target)
        try:
            with self._translate_os_errors(key):
                target.parent.mkdir(parents=True, exist_ok=True)
                actual_md5 = self._write_tmp_file(input_io, tmp_path)
                if not verify_md5(md5_sum, actual_md5):
                    logger.warning(f"MD5 mismatch writing {key} to root {self.name}: "
                                   f"expected={md5_sum}, actual={actual_md5}")
                    raise MD5MismatchError(f"MD5 mismatch for key {key}: expected {md5_sum}, got {actual_md5}")
                os.chmod(tmp_path, FILE_MODE)
                if metadata.get('mtime') is not None:
                    timestamp = to_timestamp(metadata['mtime'])
                    os.utime(tmp_path, (timestamp, timestamp))
                os.replace(tmp_path, target)
        except BaseException:
            if tmp_path.exists():
                tmp_path.unlink()
            raise
        logger.debug(f"Filesystem write success: root={self.name}, key={key}")

    def _write_tmp_file(self, input_io: BinaryIO, tmp_path: Path) -> str:
        """ストリームを一時ファイルに書き出し、内容のMD5（base64）を返す"""
        digest = hashlib.md5()
        with open(tmp_path, 'wb') as f:
            while True:
                chunk = input_io.read(READ_BUFFER_SIZE)
                if not chunk:
                    break
                f.write(chunk)
                digest.update(chunk)
        return base64.b64encode(digest.digest()).decode('ascii')

    def move_content(self, source_key: str, target_key: str) -> None:
        """rename によるアトミックな移動"""
        source = self.path_to(source_key)
        target = self.path_to(target_key)
        with self._translate_os_errors(source_key):
            target.parent.mkdir(parents=True, exist_ok=True)
            os.replace(source, target)
        logger.debug(f"Filesystem move success: root={self.name}, {source_key} -> {target_key}")

    # --- 削除系 ---

    def delete_content(self, key: str) -> None:
        with self._translate_os_errors(key):
            self.path_to(key).unlink()

    def delete_tree(self, key: str) -> None:
        """ディレクトリキーの場合はディレクトリごと削除する（ルート自身は残す）"""
        path = self.path_to(key)
        if not path.is_dir():
            self.delete_content(key)
            return
        with self._translate_os_errors(key):
            if os.path.realpath(path) == self.real_path:
                for child in path.iterdir():
                    if child.is_dir() and not child.is_symlink():
                        shutil.rmtree(child)
                    else:
                        child.unlink()
            else:
                shutil.rmtree(path)
        logger.debug(f"Filesystem delete_tree success: root={self.name}, key={key}")

    def delete_all_content(self) -> None:
        self.delete_tree('')
