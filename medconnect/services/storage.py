"""MinIO object storage for uploaded medical files."""

import asyncio
import io
import logging
from typing import Optional
from urllib.parse import quote

from minio import Minio
from minio.error import S3Error
from urllib3.exceptions import HTTPError

from medconnect import config
from medconnect.utils.error_handler import BackendError

logger = logging.getLogger(__name__)


def object_path(category: str, subject_id: str, file_name: str) -> str:
    """Storage key for a file: {category}/{subject_id}/{file_name}"""
    return f"{category}/{subject_id}/{file_name}"


class StorageService:
    """
    Upload, public URL and delete operations on a single bucket.

    The MinIO client is synchronous, so every call runs in a worker thread.
    S3 errors and connection failures (urllib3) both surface as BackendError.
    """

    def __init__(self, client: Optional[Minio] = None, bucket: Optional[str] = None) -> None:
        try:
            self.client = client or Minio(
                endpoint=config.MINIO_ENDPOINT,
                access_key=config.MINIO_ACCESS_KEY,
                secret_key=config.MINIO_SECRET_KEY,
                secure=config.MINIO_USE_SSL,
            )
        except Exception as e:
            logger.error(f"Failed to initialize MinIO client: {e}")
            raise BackendError(f"Storage client initialization failed: {e}", e)
        self.bucket = bucket or config.MINIO_BUCKET

    async def ensure_bucket(self) -> None:
        """Create the bucket if missing. Called on application startup."""

        def _ensure() -> None:
            if not self.client.bucket_exists(self.bucket):
                logger.info(f"Creating bucket: {self.bucket}")
                self.client.make_bucket(self.bucket)

        try:
            await asyncio.to_thread(_ensure)
        except (S3Error, HTTPError) as e:
            raise BackendError(f"Failed to create bucket {self.bucket}: {e}", e)

    async def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """
        Store bytes under path. Re-uploading the same name replaces the object.

        Returns:
            The storage path

        Raises:
            BackendError: If the upload fails
        """

        def _upload() -> None:
            self.client.put_object(
                bucket_name=self.bucket,
                object_name=path,
                data=io.BytesIO(data),
                length=len(data),
                content_type=content_type,
            )

        try:
            logger.debug(f"Uploading {path} ({len(data)} bytes)")
            await asyncio.to_thread(_upload)
        except (S3Error, HTTPError) as e:
            logger.error(f"Upload failed for {path}: {e}")
            raise BackendError(f"Failed to upload file: {e}", e)

        logger.info(f"File uploaded: {path}")
        return path

    def get_public_url(self, path: str) -> str:
        """Publicly resolvable URL for an object in the bucket"""
        base = config.STORAGE_PUBLIC_URL.rstrip("/")
        if not base:
            scheme = "https" if config.MINIO_USE_SSL else "http"
            base = f"{scheme}://{config.MINIO_ENDPOINT}"
        return f"{base}/{self.bucket}/{quote(path)}"

    async def delete(self, path: str) -> bool:
        """Remove an object from the bucket"""
        try:
            await asyncio.to_thread(self.client.remove_object, self.bucket, path)
        except (S3Error, HTTPError) as e:
            logger.error(f"Delete failed for {path}: {e}")
            raise BackendError(f"Failed to delete file: {e}", e)

        logger.info(f"File deleted: {path}")
        return True
