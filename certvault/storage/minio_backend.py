"""Minio backend implementation for the certvault object store."""

from __future__ import annotations

import io
import logging
from typing import Iterator

import urllib3
from minio import Minio
from minio.error import MinioException, S3Error

from ..errors import BackendError, ConfigError, NotFoundError
from .base import ObjectBackend, ObjectStat

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"NoSuchKey", "NoSuchObject", "ResourceNotFound", "NotFound"}


class MinioObjectBackend(ObjectBackend):
    """Object backend using the Minio client against any S3-compatible endpoint."""

    def __init__(
        self,
        endpoint: str,
        bucket: str,
        access_key: str | None = None,
        secret_key: str | None = None,
        secure: bool = True,
        region: str | None = None,
        create_bucket: bool = False,
        client: Minio | None = None,
    ) -> None:
        """Initialize the backend with connection details."""
        if not endpoint:
            raise ConfigError("endpoint is required")
        if not bucket:
            raise ConfigError("bucket is required")
        if client is None and not (access_key and secret_key):
            raise ConfigError("access key and secret key are required")
        self.bucket = bucket
        self.client = client or Minio(
            endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=secure,
            region=region,
        )
        if create_bucket:
            self._ensure_bucket()

    def _ensure_bucket(self) -> None:
        """Ensure the bucket exists in Minio; create if missing."""
        try:
            if not self.client.bucket_exists(self.bucket):
                logger.info("Creating bucket %s", self.bucket)
                self.client.make_bucket(self.bucket)
        except (MinioException, urllib3.exceptions.HTTPError) as e:
            raise BackendError(f"ensuring bucket {self.bucket} failed: {e}") from e

    def _translate(self, object_key: str, op: str, e: Exception) -> Exception:
        if isinstance(e, S3Error) and e.code in _NOT_FOUND_CODES:
            return NotFoundError(object_key)
        return BackendError(f"{op} {self.bucket}/{object_key} failed: {e}")

    def put(self, object_key: str, data: bytes) -> None:
        """Upload a payload as an object."""
        try:
            self.client.put_object(
                self.bucket,
                object_key,
                io.BytesIO(data),
                length=len(data),
                content_type="application/octet-stream",
            )
        except (MinioException, urllib3.exceptions.HTTPError) as e:
            raise self._translate(object_key, "put", e) from e

    def get(self, object_key: str) -> bytes:
        """Download an object's payload."""
        try:
            response = self.client.get_object(self.bucket, object_key)
        except (MinioException, urllib3.exceptions.HTTPError) as e:
            raise self._translate(object_key, "get", e) from e
        try:
            return response.read()
        except urllib3.exceptions.HTTPError as e:
            raise BackendError(f"reading {self.bucket}/{object_key} failed: {e}") from e
        finally:
            response.close()
            response.release_conn()

    def delete(self, object_key: str) -> None:
        """Remove an object from the bucket."""
        try:
            self.client.remove_object(self.bucket, object_key)
        except (MinioException, urllib3.exceptions.HTTPError) as e:
            err = self._translate(object_key, "delete", e)
            if isinstance(err, NotFoundError):
                return
            raise err from e

    def list(self, prefix: str) -> Iterator[str]:
        """List object keys in the bucket with the given prefix."""
        try:
            for obj in self.client.list_objects(self.bucket, prefix=prefix, recursive=True):
                if getattr(obj, "object_name", None) and not obj.is_dir:
                    yield obj.object_name
        except (MinioException, urllib3.exceptions.HTTPError) as e:
            raise BackendError(f"list {self.bucket}/{prefix} failed: {e}") from e

    def stat(self, object_key: str) -> ObjectStat:
        """Get size and modification time for an object."""
        try:
            st = self.client.stat_object(self.bucket, object_key)
        except (MinioException, urllib3.exceptions.HTTPError) as e:
            raise self._translate(object_key, "stat", e) from e
        return ObjectStat(
            object_key=object_key, size=st.size or 0, last_modified=st.last_modified
        )
