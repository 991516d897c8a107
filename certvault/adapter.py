"""Storage adapter exposing the certificate manager's storage capability set."""

from __future__ import annotations

import threading

from .config import AppConfig, MinioStorageConfig, S3StorageConfig, StorageConfig
from .crypto import EncryptionLayer, validate_key
from .errors import ConfigError
from .locking import LockCoordinator, LockSettings
from .objstore import ObjectStoreClient
from .storage.base import CertStorage, FileInfo, ObjectBackend
from .storage.minio_backend import MinioObjectBackend
from .storage.s3_backend import Boto3ObjectBackend


class S3CertStorage(CertStorage):
    """Certificate storage over an S3-compatible bucket.

    Payloads go through the encryption layer; lock markers go straight to
    the object store client. Each call is a round trip to the backend and
    nothing is cached, so one instance can be shared between threads.
    """

    def __init__(
        self,
        backend: ObjectBackend,
        prefix: str = "",
        encryption_key: bytes | str | None = None,
        lock_settings: LockSettings | None = None,
    ) -> None:
        self.objects = ObjectStoreClient(backend, prefix)
        self.crypto = EncryptionLayer(self.objects, encryption_key)
        self.locks = LockCoordinator(self.objects, lock_settings)

    @classmethod
    def from_config(cls, cfg: AppConfig) -> S3CertStorage:
        """Build a storage adapter, validating the whole config up front."""
        key = cfg.resolve_encryption_key()
        # fail on a bad key before any client is built
        validate_key(key)
        return cls(
            backend_from_config(cfg.storage),
            prefix=cfg.prefix,
            encryption_key=key,
            lock_settings=cfg.lock.to_settings(),
        )

    def store(self, key: str, data: bytes, cancel: threading.Event | None = None) -> None:
        self.crypto.store(key, data, cancel)

    def load(self, key: str, cancel: threading.Event | None = None) -> bytes:
        return self.crypto.load(key, cancel)

    def delete(self, key: str, cancel: threading.Event | None = None) -> None:
        self.crypto.delete(key, cancel)

    def exists(self, key: str, cancel: threading.Event | None = None) -> bool:
        return self.crypto.exists(key, cancel)

    def list(
        self, prefix: str, recursive: bool, cancel: threading.Event | None = None
    ) -> list[str]:
        return self.crypto.list(prefix, recursive, cancel)

    def stat(self, key: str, cancel: threading.Event | None = None) -> FileInfo:
        return self.crypto.stat(key, cancel)

    def lock(self, key: str, cancel: threading.Event | None = None) -> None:
        self.locks.lock(key, cancel)

    def unlock(self, key: str, cancel: threading.Event | None = None) -> None:
        self.locks.unlock(key, cancel)

    def __repr__(self) -> str:
        return (
            f"S3CertStorage(bucket={self.objects.bucket!r}, prefix={self.objects.prefix!r}, "
            f"encrypted={self.crypto.enabled})"
        )


def backend_from_config(storage: StorageConfig) -> ObjectBackend:
    if isinstance(storage, MinioStorageConfig):
        return MinioObjectBackend(
            endpoint=storage.endpoint,
            bucket=storage.bucket,
            access_key=storage.access_key,
            secret_key=storage.secret_key,
            secure=storage.secure,
            region=storage.region,
            create_bucket=storage.create_bucket,
        )
    if isinstance(storage, S3StorageConfig):
        return Boto3ObjectBackend(
            bucket=storage.bucket,
            endpoint_url=storage.endpoint,
            region=storage.region,
            access_key=storage.access_key,
            secret_key=storage.secret_key,
            profile=storage.profile,
            create_bucket=storage.create_bucket,
        )
    raise ConfigError("Unsupported storage backend")


def storage_from_config(cfg: AppConfig) -> S3CertStorage:
    return S3CertStorage.from_config(cfg)
