"""S3ストレージルート

AWS S3およびS3互換ストレージ（MinIO等）に対応。
キーはバケット内のキーから設定されたプレフィックスを除いたもの。
'/'で終わるキー（または空文字列）をディレクトリキーとして扱う。

MD5と更新日時はユーザーメタデータ（rclone互換の名前）に保存する。
マルチパートアップロードのETagはコンテンツのMD5ではないため。
"""

import base64
import hashlib
import io
import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .. import keys
from ..config import S3RootConfig
from ..exceptions import (
    InvalidDirectoryError,
    MD5MismatchError,
    StorageAccessError,
    StorageNotFoundError,
    UnsupportedOperationError,
)
from ..integrity import EtagCalculator, etags_match, verify_md5
from ..registry import BackendRegistry
from ..tmpdir import get_tmpdir
from .base import Root, from_timestamp, to_timestamp
from .read_io import S3ReadIO

logger = logging.getLogger(__name__)

# rclone互換のメタデータ名
# md5chksum: コンテンツ全体のMD5（base64）、mtime: エポック秒
AMAZON_HEADERS = {
    'md5_sum': 'md5chksum',
    'mtime': 'mtime',
}

# 単一PUT/単一コピーの上限
AMAZON_CUTOFF_SIZE = 5 * 1024 * 1024 * 1024
AMAZON_PART_SIZE = 5 * 1024 * 1024
UPLOAD_BUFFER_SIZE = 64 * 1024
# これを超えるオブジェクトはRange読み込みで提供する
READ_IO_THRESHOLD = 100 * 1024 * 1024
PRESIGNED_URL_EXPIRES_IN = 7 * 24 * 60 * 60
DELETE_BATCH_SIZE = 1000

NOT_FOUND_CODES = {'404', 'NoSuchKey', 'NotFound', 'NoSuchVersion'}
DIGEST_ERROR_CODES = {'BadDigest', 'InvalidDigest'}

OBJECT_VERSIONS_FILTERS = ('all', 'old', 'latest')
DELETE_MARKER_HANDLINGS = ('include', 'remove', 'only')


@dataclass(frozen=True)
class ObjectVersion:
    """オブジェクトのバージョン情報"""
    key: str
    version_id: str
    is_latest: bool
    is_delete_marker: bool
    last_modified: Optional[datetime] = None


def _error_code(error: ClientError) -> str:
    return str(error.response.get('Error', {}).get('Code', ''))


@BackendRegistry.register("s3")
class S3Root(Root):
    """S3ストレージルート"""

    def __init__(self, config: S3RootConfig = None, client=None):
        """
        S3ルートを初期化

        Args:
            config: S3設定。Noneの場合は環境変数から読み込み
            client: boto3のS3クライアント。Noneの場合は設定から生成
        """
        if config is None:
            config = S3RootConfig.from_env()
        super().__init__(config.name)

        self.bucket = config.bucket
        self.region = config.region
        self.endpoint_url = config.endpoint_url
        self.prefix = config.prefix or ''
        self.versioned = config.versioned
        self.part_size = config.part_size or AMAZON_PART_SIZE
        # 自分自身へのコピーは常にサーバー側コピーできる
        self.copy_targets = set(config.copy_targets) | {self.name}
        self.client = client if client is not None else self._create_client(config)
        logger.info(f"S3Root initialized: name={self.name}, bucket={self.bucket}, prefix={self.prefix!r}")

    @staticmethod
    def _create_client(config: S3RootConfig):
        client_kwargs = {
            'aws_access_key_id': config.access_key_id,
            'aws_secret_access_key': config.secret_access_key,
            'region_name': config.region
        }

        if config.endpoint_url:
            client_kwargs['endpoint_url'] = config.endpoint_url
        if config.force_path_style:
            client_kwargs['config'] = Config(s3={'addressing_style': 'path'})

        return boto3.client('s3', **client_kwargs)

    @property
    def root_type(self) -> str:
        return 's3'

    @contextmanager
    def _client_errors(self, key: str):
        """ClientErrorをストレージ例外に変換"""
        try:
            yield
        except ClientError as e:
            code = _error_code(e)
            if code in NOT_FOUND_CODES:
                raise StorageNotFoundError(f"Key not found in root {self.name}: {key}") from e
            if code in DIGEST_ERROR_CODES:
                logger.warning(f"S3 rejected content digest: root={self.name}, key={key}")
                raise MD5MismatchError(f"MD5 mismatch for key {key}") from e
            logger.error(f"S3 request failed: root={self.name}, key={key} - {e}")
            raise StorageAccessError(f"S3 request failed for key {key}: {e}") from e
        except BotoCoreError as e:
            logger.error(f"S3 connection failed: root={self.name}, key={key} - {e}")
            raise StorageAccessError(f"S3 connection failed for key {key}: {e}") from e

    # --- キー変換 ---

    def add_prefix(self, key: str) -> str:
        return keys.add_prefix(self.prefix, key)

    def remove_prefix(self, key: str) -> str:
        return keys.remove_prefix(self.prefix, key)

    def is_directory_key(self, key: str) -> bool:
        return keys.is_directory_key(key)

    def ensure_directory_key(self, key: str) -> str:
        return keys.ensure_directory_key(key)

    # --- 基本情報 ---

    def info(self, key: str) -> Dict[str, Any]:
        """head_objectの結果を返す"""
        with self._client_errors(key):
            return self.client.head_object(Bucket=self.bucket, Key=self.add_prefix(key))

    def metadata(self, key: str) -> Dict[str, str]:
        """ユーザーメタデータを返す"""
        return self.info(key).get('Metadata', {})

    def md5_sum(self, key: str) -> str:
        md5_sum = self.metadata(key).get(AMAZON_HEADERS['md5_sum'])
        return md5_sum or super().md5_sum(key)

    def mtime(self, key: str) -> Optional[datetime]:
        info = self.info(key)
        value = info.get('Metadata', {}).get(AMAZON_HEADERS['mtime'])
        if value:
            try:
                return from_timestamp(value)
            except (ValueError, OverflowError, OSError):
                logger.warning(f"Invalid mtime metadata, using LastModified: root={self.name}, key={key}, value={value}")
        return info.get('LastModified')

    def size(self, key: str) -> int:
        return self.info(key)['ContentLength']

    def exists(self, key: str) -> bool:
        if key == '':
            return True
        if self.is_directory_key(key):
            with self._client_errors(key):
                response = self.client.list_objects_v2(
                    Bucket=self.bucket, Prefix=self.add_prefix(key), MaxKeys=1
                )
            return bool(response.get('Contents') or response.get('CommonPrefixes'))
        try:
            self.info(key)
            return True
        except StorageNotFoundError:
            return False

    def presigned_get_url(self, key: str, expires_in: int = PRESIGNED_URL_EXPIRES_IN, **params) -> str:
        """一時的にアクセスを許可するGET用の事前署名URLを生成する"""
        request_params = {'Bucket': self.bucket, 'Key': self.add_prefix(key)}
        request_params.update(params)
        with self._client_errors(key):
            return self.client.generate_presigned_url(
                'get_object',
                Params=request_params,
                ExpiresIn=expires_in
            )

    # --- 一覧系 ---

    def _list_pages(self, key: str, delimiter: Optional[str] = None) -> Iterator[Dict[str, Any]]:
        """list_objects_v2を継続トークンがなくなるまで呼び出す"""
        params = {
            'Bucket': self.bucket,
            'Prefix': self.add_prefix(key),
        }
        if delimiter:
            params['Delimiter'] = delimiter

        while True:
            with self._client_errors(key):
                response = self.client.list_objects_v2(**params)
            yield response

            continuation_token = response.get('NextContinuationToken')
            if response.get('IsTruncated') and continuation_token:
                params['ContinuationToken'] = continuation_token
            else:
                break

    def _listing_key(self, key: str, raise_if_not_directory: bool) -> str:
        if self.is_directory_key(key):
            return key
        if raise_if_not_directory:
            raise InvalidDirectoryError(key)
        return self.ensure_directory_key(key)

    def _content_keys(self, directory_key: str, delimiter: Optional[str]) -> List[str]:
        content_keys = []
        for response in self._list_pages(directory_key, delimiter):
            for obj in response.get('Contents', []):
                key = self.remove_prefix(obj['Key'])
                if not self.is_directory_key(key):
                    content_keys.append(key)
        return content_keys

    def file_keys(self, key: str, raise_if_not_directory: bool = True) -> List[str]:
        directory_key = self._listing_key(key, raise_if_not_directory)
        return self._content_keys(directory_key, delimiter=keys.SEPARATOR)

    def subdirectory_keys(self, key: str, raise_if_not_directory: bool = True) -> List[str]:
        directory_key = self._listing_key(key, raise_if_not_directory)
        subdirectory_keys = []
        for response in self._list_pages(directory_key, delimiter=keys.SEPARATOR):
            for common_prefix in response.get('CommonPrefixes', []):
                subdirectory_keys.append(self.remove_prefix(common_prefix['Prefix']))
        return subdirectory_keys

    def subtree_keys(self, key: str) -> List[str]:
        """区切り文字なしの一覧取得で配下の全コンテンツキーを返す"""
        directory_key = self._listing_key(key, raise_if_not_directory=True)
        return self._content_keys(directory_key, delimiter=None)

    # --- 読み取り系 ---

    def get_bytes(self, key: str, start: int, length: int) -> bytes:
        """startからlengthバイトをRange指定で取得する"""
        if length <= 0:
            return b''
        with self._client_errors(key):
            response = self.client.get_object(
                Bucket=self.bucket,
                Key=self.add_prefix(key),
                Range=f"bytes={start}-{start + length - 1}"
            )
            body = response['Body']
            try:
                return body.read()
            finally:
                body.close()

    @contextmanager
    def with_input_io(self, key: str):
        size = self.size(key)
        if size > READ_IO_THRESHOLD:
            stream = S3ReadIO.open_buffered(self, key, size=size)
        else:
            with self._client_errors(key):
                stream = self.client.get_object(Bucket=self.bucket, Key=self.add_prefix(key))['Body']
        try:
            yield stream
        finally:
            stream.close()

    @contextmanager
    def with_input_file(self, key: str, tmp_dir: Optional[str] = None):
        sub_dir = tempfile.mkdtemp(dir=tmp_dir or get_tmpdir())
        try:
            file_name = os.path.join(sub_dir, os.path.basename(key.rstrip(keys.SEPARATOR)) or 'content')
            with self.with_input_io(key) as input_io, open(file_name, 'wb') as f:
                shutil.copyfileobj(input_io, f)
            yield file_name
        finally:
            if os.path.isdir(sub_dir):
                shutil.rmtree(sub_dir)

    # --- 書き込み系 ---

    def _metadata_headers(self, md5_sum: Optional[str], metadata: Dict[str, Any]) -> Dict[str, str]:
        """メタデータをS3のユーザーメタデータに変換"""
        headers = {
            str(k): str(v) for k, v in metadata.items()
            if k not in AMAZON_HEADERS and v is not None
        }
        if md5_sum:
            headers[AMAZON_HEADERS['md5_sum']] = md5_sum
        if metadata.get('mtime') is not None:
            headers[AMAZON_HEADERS['mtime']] = str(to_timestamp(metadata['mtime']))
        return headers

    def copy_io_to(self, key: str, input_io: BinaryIO, md5_sum: Optional[str], size: Optional[int],
                   metadata: Optional[Dict[str, Any]] = None) -> None:
        metadata = metadata or {}
        if size is None or size >= AMAZON_CUTOFF_SIZE:
            self.copy_io_to_large(key, input_io, md5_sum, metadata)
        else:
            self.copy_io_to_small(key, input_io, md5_sum, metadata, size=size)

    def copy_io_to_small(self, key: str, input_io: BinaryIO, md5_sum: Optional[str],
                         metadata: Optional[Dict[str, Any]] = None, size: Optional[int] = None) -> None:
        """単一のput_objectでアップロードする。MD5はS3側で検証される"""
        args = {
            'Bucket': self.bucket,
            'Key': self.add_prefix(key),
            'Body': input_io,
            'Metadata': self._metadata_headers(md5_sum, metadata or {}),
        }
        if size is not None:
            args['ContentLength'] = size
        if md5_sum:
            args['ContentMD5'] = md5_sum
        with self._client_errors(key):
            self.client.put_object(**args)
        logger.debug(f"S3 upload success: root={self.name}, key={key}")

    def _read_part(self, input_io: BinaryIO) -> bytes:
        """入力からパート1つ分（最大part_sizeバイト）を読み込む"""
        chunks = []
        remaining = self.part_size
        while remaining > 0:
            chunk = input_io.read(min(UPLOAD_BUFFER_SIZE, remaining))
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        return b''.join(chunks)

    def copy_io_to_large(self, key: str, input_io: BinaryIO, md5_sum: Optional[str],
                         metadata: Optional[Dict[str, Any]] = None) -> None:
        """
        マルチパートアップロードでストリームをアップロードする

        送信するパートと同じデータからETagを計算し、S3が返したETagと比較する。
        期待するMD5が与えられていればコンテンツ全体のMD5を完了前に比較し、不一致ならアップロードを中止する。
        ETagが不一致の場合は今回アップロードしたオブジェクトを削除する。いずれもMD5MismatchErrorを送出する。
        """
        metadata = metadata or {}
        prefixed_key = self.add_prefix(key)
        part = self._read_part(input_io)
        if not part:
            # パート数0のマルチパートアップロードは作れない
            self.copy_io_to_small(key, io.BytesIO(b''), md5_sum, metadata, size=0)
            return

        object_already_exists = self.exists(key)
        calculator = EtagCalculator(self.part_size)
        content_digest = hashlib.md5()
        with self._client_errors(key):
            upload_id = self.client.create_multipart_upload(
                Bucket=self.bucket,
                Key=prefixed_key,
                Metadata=self._metadata_headers(md5_sum, metadata)
            )['UploadId']

        parts = []
        try:
            while part:
                calculator.update(part)
                content_digest.update(part)
                part_number = len(parts) + 1
                with self._client_errors(key):
                    response = self.client.upload_part(
                        Bucket=self.bucket,
                        Key=prefixed_key,
                        UploadId=upload_id,
                        PartNumber=part_number,
                        Body=part
                    )
                parts.append({'PartNumber': part_number, 'ETag': response['ETag']})
                part = self._read_part(input_io)

            # 完了前なら中止するだけで既存の内容は変わらない
            actual_md5 = base64.b64encode(content_digest.digest()).decode('ascii')
            if not verify_md5(md5_sum, actual_md5):
                logger.warning(f"MD5 mismatch in multipart upload: root={self.name}, key={key}, "
                               f"md5={actual_md5}, expected_md5={md5_sum}")
                raise MD5MismatchError(f"MD5 mismatch for key {key}: expected {md5_sum}, got {actual_md5}")

            with self._client_errors(key):
                result = self.client.complete_multipart_upload(
                    Bucket=self.bucket,
                    Key=prefixed_key,
                    UploadId=upload_id,
                    MultipartUpload={'Parts': parts}
                )
        except BaseException:
            self._abort_multipart_upload(key, upload_id)
            raise

        etag = result.get('ETag')
        if not etags_match(etag, calculator.etag):
            logger.warning(f"Multipart upload ETag mismatch: root={self.name}, key={key}, "
                           f"etag={etag}, expected_etag={calculator.etag}")
            self._remove_failed_upload(key, result.get('VersionId'), object_already_exists)
            raise MD5MismatchError(f"Multipart upload verification failed for key {key}")
        logger.debug(f"S3 multipart upload success: root={self.name}, key={key}, parts={len(parts)}")

    def _abort_multipart_upload(self, key: str, upload_id: str) -> None:
        try:
            self.client.abort_multipart_upload(
                Bucket=self.bucket,
                Key=self.add_prefix(key),
                UploadId=upload_id
            )
        except (ClientError, BotoCoreError) as e:
            # 元の例外を優先して送出する
            logger.warning(f"S3 abort multipart upload failed: root={self.name}, key={key} - {e}")

    def _remove_failed_upload(self, key: str, version_id: Optional[str], object_already_exists: bool) -> None:
        """
        検証に失敗したアップロードを削除する

        バージョンIDが分かればそのバージョンだけを削除する（以前の内容が最新に戻る）。
        分からない場合は、アップロード前に存在しなかったキーだけを削除する。
        """
        with self._client_errors(key):
            if version_id:
                self.client.delete_object(Bucket=self.bucket, Key=self.add_prefix(key), VersionId=version_id)
            elif not object_already_exists and self.exists(key):
                self.client.delete_object(Bucket=self.bucket, Key=self.add_prefix(key))

    # --- コピー・移動 ---

    def can_s3_copy_to(self, root_name: str) -> bool:
        """このルートから指定ルートへサーバー側コピーできるか"""
        return root_name in self.copy_targets

    def copy_content_to(self, key: str, source_root: Root, source_key: str,
                        metadata: Optional[Dict[str, Any]] = None) -> None:
        if isinstance(source_root, S3Root) and source_root.can_s3_copy_to(self.name):
            self._s3_copy_content_to(key, source_root, source_key, metadata)
        else:
            super().copy_content_to(key, source_root, source_key, metadata)

    def _s3_copy_content_to(self, key: str, source_root: 'S3Root', source_key: str,
                            metadata: Optional[Dict[str, Any]] = None) -> None:
        """
        サーバー側コピー

        metadataが与えられた場合はコピー元のメタデータに上書きマージしてREPLACEする。
        単一コピーの上限を超えるオブジェクトはboto3のマネージドコピー（マルチパート）を使う。
        """
        source_info = source_root.info(source_key)
        source_metadata = source_info.get('Metadata', {})
        copy_source = {'Bucket': source_root.bucket, 'Key': source_root.add_prefix(source_key)}
        new_metadata = None
        if metadata:
            new_metadata = dict(source_metadata)
            new_metadata.update(self._metadata_headers(None, metadata))

        with self._client_errors(key):
            if source_info['ContentLength'] >= AMAZON_CUTOFF_SIZE:
                self.client.copy(
                    copy_source,
                    self.bucket,
                    self.add_prefix(key),
                    ExtraArgs={
                        'Metadata': new_metadata if new_metadata is not None else source_metadata,
                        'MetadataDirective': 'REPLACE'
                    }
                )
            else:
                args = {
                    'Bucket': self.bucket,
                    'Key': self.add_prefix(key),
                    'CopySource': copy_source,
                    'MetadataDirective': 'COPY' if new_metadata is None else 'REPLACE',
                }
                if new_metadata is not None:
                    args['Metadata'] = new_metadata
                self.client.copy_object(**args)
        logger.debug(f"S3 copy success: {source_root.name}:{source_key} -> {self.name}:{key}")

    # --- 削除系 ---

    def delete_content(self, key: str) -> None:
        with self._client_errors(key):
            self.client.delete_object(Bucket=self.bucket, Key=self.add_prefix(key))

    # --- バージョン管理（バージョニング有効バケットのみ） ---

    def check_versioning(self) -> None:
        """
        Raises:
            UnsupportedOperationError: バージョニング有効として設定されていない場合
        """
        if not self.versioned:
            raise UnsupportedOperationError(f"Storage root {self.name} is not versioned")

    def enable_bucket_versioning(self) -> None:
        """バケットのバージョニングを有効にする（管理・テスト用）"""
        with self._client_errors(''):
            self.client.put_bucket_versioning(
                Bucket=self.bucket,
                VersioningConfiguration={'Status': 'Enabled'}
            )
        self.versioned = True

    def _version_pages(self, key: str, delimiter: Optional[str]) -> Iterator[Dict[str, Any]]:
        """list_object_versionsをマーカーがなくなるまで呼び出す"""
        params = {
            'Bucket': self.bucket,
            'Prefix': self.add_prefix(key),
        }
        if delimiter:
            params['Delimiter'] = delimiter

        while True:
            with self._client_errors(key):
                response = self.client.list_object_versions(**params)
            yield response

            if not response.get('IsTruncated'):
                break
            params['KeyMarker'] = response.get('NextKeyMarker')
            params['VersionIdMarker'] = response.get('NextVersionIdMarker')

    def delimited_prefix_versions(self, key: str, delimiter: Optional[str] = keys.SEPARATOR) -> List[ObjectVersion]:
        """
        プレフィックスに一致する全バージョン（削除マーカーを含む）を返す

        キーごとに新しい順。内容バージョンと削除マーカーは1つのリストにまとめる。
        同じ秒に作られたバージョンの並びは_version_sort_keyを参照。
        """
        self.check_versioning()
        entries = []
        for page_number, response in enumerate(self._version_pages(key, delimiter)):
            for version in response.get('Versions', []):
                entries.append((page_number, self._object_version(version, is_delete_marker=False)))
            for marker in response.get('DeleteMarkers', []):
                entries.append((page_number, self._object_version(marker, is_delete_marker=True)))
        entries.sort(key=_version_sort_key)
        return [version for _, version in entries]

    def _object_version(self, entry: Dict[str, Any], is_delete_marker: bool) -> ObjectVersion:
        return ObjectVersion(
            key=self.remove_prefix(entry['Key']),
            version_id=entry['VersionId'],
            is_latest=bool(entry.get('IsLatest')),
            is_delete_marker=is_delete_marker,
            last_modified=entry.get('LastModified')
        )

    def versions(self, key: str, object_versions: str = 'all',
                 delete_marker_handling: str = 'include') -> List[ObjectVersion]:
        """
        キーに完全一致する全バージョンを返す

        Args:
            key: コンテンツキー
            object_versions: 'all' | 'old'（最新以外） | 'latest'（最新のみ）
            delete_marker_handling: 'include' | 'remove'（削除マーカーを除く） | 'only'（削除マーカーのみ）

        Raises:
            UnsupportedOperationError: バージョニング無効のルートの場合
            ValueError: フィルタ指定が不正な場合
        """
        if object_versions not in OBJECT_VERSIONS_FILTERS:
            raise ValueError(f"Unknown object_versions filter: {object_versions}")
        if delete_marker_handling not in DELETE_MARKER_HANDLINGS:
            raise ValueError(f"Unknown delete_marker_handling: {delete_marker_handling}")

        versions = [v for v in self.delimited_prefix_versions(key) if v.key == key]
        if object_versions == 'old':
            versions = [v for v in versions if not v.is_latest]
        elif object_versions == 'latest':
            versions = [v for v in versions if v.is_latest]
        if delete_marker_handling == 'remove':
            versions = [v for v in versions if not v.is_delete_marker]
        elif delete_marker_handling == 'only':
            versions = [v for v in versions if v.is_delete_marker]
        return versions

    def delete_version(self, key: str, version_id: str) -> None:
        """指定バージョンを完全に削除する。最新バージョンだった場合は1つ前が最新になる"""
        self.check_versioning()
        with self._client_errors(key):
            self.client.delete_object(Bucket=self.bucket, Key=self.add_prefix(key), VersionId=version_id)

    def delete_tree_versions(self, key: str) -> None:
        """ディレクトリ配下の全キーの全バージョン（削除マーカーを含む）を完全に削除する。元に戻せない"""
        self.check_versioning()
        directory_key = self.ensure_directory_key(key)
        versions = self.delimited_prefix_versions(directory_key, delimiter=None)
        self._delete_versions(directory_key, versions)
        logger.info(f"Deleted {len(versions)} versions under {directory_key!r} in root {self.name}")

    def undelete_tree(self, key: str) -> List[str]:
        """
        ディレクトリ配下で最新バージョンが削除マーカーになっているキーから、その削除マーカーを削除する

        Returns:
            復元したキーの一覧
        """
        self.check_versioning()
        directory_key = self.ensure_directory_key(key)
        markers = [
            v for v in self.delimited_prefix_versions(directory_key, delimiter=None)
            if v.is_latest and v.is_delete_marker
        ]
        self._delete_versions(directory_key, markers)
        restored = [v.key for v in markers]
        logger.info(f"Undeleted {len(restored)} keys under {directory_key!r} in root {self.name}")
        return restored

    def _delete_versions(self, key: str, versions: List[ObjectVersion]) -> None:
        for start in range(0, len(versions), DELETE_BATCH_SIZE):
            batch = versions[start:start + DELETE_BATCH_SIZE]
            with self._client_errors(key):
                response = self.client.delete_objects(
                    Bucket=self.bucket,
                    Delete={
                        'Objects': [{'Key': self.add_prefix(v.key), 'VersionId': v.version_id} for v in batch],
                        'Quiet': True
                    }
                )
            errors = response.get('Errors', [])
            if errors:
                logger.error(f"S3 delete_objects failed for {len(errors)} versions in root {self.name}")
                raise StorageAccessError(f"Failed to delete versions: {errors[0]}")


def _version_sort_key(entry: Tuple[int, ObjectVersion]):
    # LastModifiedは秒単位なので同じ秒のバージョンが並ぶ。同時刻なら先のページを先に置き、
    # 同じページ内では内容バージョンを削除マーカーより先に置く（各リスト内の順序はソートが保つ）
    page_number, version = entry
    timestamp = version.last_modified.timestamp() if version.last_modified else 0
    return (version.key, not version.is_latest, -timestamp, page_number, version.is_delete_marker)
