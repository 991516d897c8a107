"""boto3 backend implementation for the certvault object store."""

from __future__ import annotations

import logging
from typing import Any, Iterator

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import BackendError, ConfigError, NotFoundError
from .base import ObjectBackend, ObjectStat

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


class Boto3ObjectBackend(ObjectBackend):
    """Object backend using a boto3 S3 client (AWS or a custom endpoint)."""

    def __init__(
        self,
        bucket: str,
        endpoint_url: str | None = None,
        region: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        profile: str | None = None,
        create_bucket: bool = False,
        client: Any = None,
    ) -> None:
        """Initialize the backend with connection details."""
        if not bucket:
            raise ConfigError("bucket is required")
        if bool(access_key) != bool(secret_key):
            raise ConfigError("access key and secret key must be given together")
        self.bucket = bucket
        if client is None:
            if profile:
                session = boto3.Session(profile_name=profile, region_name=region)
            else:
                session = boto3.Session(
                    aws_access_key_id=access_key,
                    aws_secret_access_key=secret_key,
                    region_name=region,
                )
            client = session.client("s3", endpoint_url=endpoint_url)
        self.s3 = client
        if create_bucket:
            self._ensure_bucket(region)

    def _ensure_bucket(self, region: str | None) -> None:
        """Ensure the S3 bucket exists; create if missing."""
        try:
            self.s3.head_bucket(Bucket=self.bucket)
            return
        except ClientError as e:
            if _error_code(e) not in _NOT_FOUND_CODES | {"NoSuchBucket"}:
                raise BackendError(f"checking bucket {self.bucket} failed: {e}") from e
        except BotoCoreError as e:
            raise BackendError(f"checking bucket {self.bucket} failed: {e}") from e
        logger.info("Creating bucket %s", self.bucket)
        kwargs: dict[str, Any] = {"Bucket": self.bucket}
        if region and region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region}
        try:
            self.s3.create_bucket(**kwargs)
        except (BotoCoreError, ClientError) as e:
            raise BackendError(f"creating bucket {self.bucket} failed: {e}") from e

    def _translate(self, object_key: str, op: str, e: Exception) -> Exception:
        if isinstance(e, ClientError) and _error_code(e) in _NOT_FOUND_CODES:
            return NotFoundError(object_key)
        return BackendError(f"{op} {self.bucket}/{object_key} failed: {e}")

    def put(self, object_key: str, data: bytes) -> None:
        """Upload a payload as an object."""
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=object_key,
                Body=data,
                ContentType="application/octet-stream",
            )
        except (BotoCoreError, ClientError) as e:
            raise self._translate(object_key, "put", e) from e

    def get(self, object_key: str) -> bytes:
        """Download an object's payload."""
        try:
            response = self.s3.get_object(Bucket=self.bucket, Key=object_key)
        except (BotoCoreError, ClientError) as e:
            raise self._translate(object_key, "get", e) from e
        body = response["Body"]
        try:
            return body.read()
        except (BotoCoreError, ClientError) as e:
            raise BackendError(f"reading {self.bucket}/{object_key} failed: {e}") from e
        finally:
            body.close()

    def delete(self, object_key: str) -> None:
        """Remove an object from the bucket."""
        try:
            self.s3.delete_object(Bucket=self.bucket, Key=object_key)
        except (BotoCoreError, ClientError) as e:
            err = self._translate(object_key, "delete", e)
            if isinstance(err, NotFoundError):
                return
            raise err from e

    def list(self, prefix: str) -> Iterator[str]:
        """List object keys in the bucket with the given prefix."""
        paginator = self.s3.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for item in page.get("Contents", []):
                    yield item["Key"]
        except (BotoCoreError, ClientError) as e:
            raise BackendError(f"list {self.bucket}/{prefix} failed: {e}") from e

    def stat(self, object_key: str) -> ObjectStat:
        """Get size and modification time for an object."""
        try:
            response = self.s3.head_object(Bucket=self.bucket, Key=object_key)
        except (BotoCoreError, ClientError) as e:
            raise self._translate(object_key, "stat", e) from e
        return ObjectStat(
            object_key=object_key,
            size=response.get("ContentLength", 0),
            last_modified=response["LastModified"],
        )


def _error_code(e: ClientError) -> str:
    return str(e.response.get("Error", {}).get("Code", ""))
