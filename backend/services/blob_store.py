import os
import shutil
import tempfile
from typing import Iterator, Optional

import boto3
from botocore.exceptions import ClientError

from core.config import settings
from core.logger import logger

CHUNK_SIZE = 64 * 1024


class BlobStoreError(Exception):
    """Raised when the underlying byte storage cannot complete an operation."""


class BlobStore:
    """Opaque byte storage addressed by storage key.

    Keys are chosen by the caller and never derived from display names, so
    renaming or moving a node never touches the stored bytes.
    """

    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        raise NotImplementedError

    def open(self, key: str) -> Iterator[bytes]:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def copy(self, source_key: str, dest_key: str) -> None:
        raise NotImplementedError


class S3BlobStore(BlobStore):
    """Blob store backed by Cloudflare R2 (or any S3-compatible endpoint)."""

    def __init__(self, bucket: str = None, client=None):
        self.bucket = bucket or settings.R2_BUCKET_NAME
        self.s3_client = client or self._create_r2_client()

    def _create_r2_client(self):
        """Create and return a boto3 S3 client configured for Cloudflare R2"""

        return boto3.client(
            's3',
            endpoint_url=settings.R2_ENDPOINT_URL,
            aws_access_key_id=settings.R2_ACCESS_KEY_ID,
            aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
            region_name='auto'
        )

    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        upload_params = {
            'Bucket': self.bucket,
            'Key': key,
            'Body': data,
        }
        if content_type:
            upload_params['ContentType'] = content_type

        try:
            self.s3_client.put_object(**upload_params)
        except ClientError as e:
            raise BlobStoreError(f"Failed to upload object to R2: {str(e)}") from e

    def open(self, key: str) -> Iterator[bytes]:
        try:
            response = self.s3_client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            raise BlobStoreError(f"Failed to read object from R2: {str(e)}") from e
        return response['Body'].iter_chunks(chunk_size=CHUNK_SIZE)

    def delete(self, key: str) -> None:
        try:
            self.s3_client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            raise BlobStoreError(f"Failed to delete object from R2: {str(e)}") from e

    def copy(self, source_key: str, dest_key: str) -> None:
        try:
            self.s3_client.copy_object(
                Bucket=self.bucket,
                Key=dest_key,
                CopySource={'Bucket': self.bucket, 'Key': source_key}
            )
        except ClientError as e:
            raise BlobStoreError(f"Failed to copy object in R2: {str(e)}") from e


class LocalBlobStore(BlobStore):
    """Blob store on the local filesystem, for development and tests."""

    def __init__(self, root_dir: str = None):
        self.root_dir = os.path.abspath(root_dir or settings.LOCAL_STORAGE_DIR)
        os.makedirs(self.root_dir, exist_ok=True)

    def _path(self, key: str) -> str:
        path = os.path.abspath(os.path.join(self.root_dir, key))
        if os.path.commonpath([path, self.root_dir]) != self.root_dir:
            raise BlobStoreError(f"Invalid storage key: {key}")
        return path

    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        path = self._path(key)
        directory = os.path.dirname(path)
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            # Written under a temp name first; the final key appears atomically
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".upload-")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise BlobStoreError(f"Failed to write blob: {str(e)}") from e

    def open(self, key: str) -> Iterator[bytes]:
        path = self._path(key)
        if not os.path.exists(path):
            raise BlobStoreError(f"Blob not found: {key}")
        return self._iter_file(path)

    @staticmethod
    def _iter_file(path: str) -> Iterator[bytes]:
        with open(path, "rb") as f:
            while True:
                chunk = f.read(CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            if os.path.exists(path):
                os.remove(path)
        except OSError as e:
            raise BlobStoreError(f"Failed to delete blob: {str(e)}") from e

    def copy(self, source_key: str, dest_key: str) -> None:
        source = self._path(source_key)
        dest = self._path(dest_key)
        try:
            os.makedirs(os.path.dirname(dest), exist_ok=True)
            shutil.copyfile(source, dest)
        except OSError as e:
            raise BlobStoreError(f"Failed to copy blob: {str(e)}") from e


_blob_store: Optional[BlobStore] = None


def get_blob_store() -> BlobStore:
    """Get the configured blob store instance"""
    global _blob_store
    if _blob_store is None:
        if settings.STORAGE_BACKEND == "r2":
            _blob_store = S3BlobStore()
        else:
            _blob_store = LocalBlobStore()
        logger.info(f"Blob store initialised: {type(_blob_store).__name__}")
    return _blob_store
