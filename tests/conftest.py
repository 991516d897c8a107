"""Shared fixtures: an in-memory object backend and storage adapters built on it."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Iterator

import pytest

from certvault.adapter import S3CertStorage
from certvault.errors import BackendError, NotFoundError
from certvault.locking import LockSettings
from certvault.objstore import ObjectStoreClient
from certvault.storage.base import ObjectBackend, ObjectStat

TEST_PREFIX = "test-certs"
TEST_KEY = b"12345678901234567890123456789012"


class InMemoryBackend(ObjectBackend):
    """Dict-backed object store with optional failure injection."""

    def __init__(self, bucket: str = "certmagic-test-bucket") -> None:
        self.bucket = bucket
        self.objects: dict[str, tuple[bytes, datetime]] = {}
        self.fail_with: Exception | None = None
        self.calls: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def _check(self, op: str, object_key: str) -> None:
        self.calls.append((op, object_key))
        if self.fail_with is not None:
            raise self.fail_with

    def put(self, object_key: str, data: bytes) -> None:
        self._check("put", object_key)
        with self._lock:
            self.objects[object_key] = (bytes(data), datetime.now(timezone.utc))

    def get(self, object_key: str) -> bytes:
        self._check("get", object_key)
        with self._lock:
            if object_key not in self.objects:
                raise NotFoundError(object_key)
            return self.objects[object_key][0]

    def delete(self, object_key: str) -> None:
        self._check("delete", object_key)
        with self._lock:
            self.objects.pop(object_key, None)

    def list(self, prefix: str) -> Iterator[str]:
        self._check("list", prefix)
        with self._lock:
            keys = [k for k in self.objects if k.startswith(prefix)]
        yield from keys

    def stat(self, object_key: str) -> ObjectStat:
        self._check("stat", object_key)
        with self._lock:
            if object_key not in self.objects:
                raise NotFoundError(object_key)
            data, modified = self.objects[object_key]
        return ObjectStat(object_key=object_key, size=len(data), last_modified=modified)


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def client(backend) -> ObjectStoreClient:
    return ObjectStoreClient(backend, TEST_PREFIX)


@pytest.fixture
def fast_locks() -> LockSettings:
    return LockSettings(timeout=0.5, poll_interval=0.05)


@pytest.fixture
def storage(backend, fast_locks) -> S3CertStorage:
    return S3CertStorage(backend, prefix=TEST_PREFIX, lock_settings=fast_locks)


@pytest.fixture
def encrypted_storage(backend, fast_locks) -> S3CertStorage:
    return S3CertStorage(
        backend, prefix=TEST_PREFIX, encryption_key=TEST_KEY, lock_settings=fast_locks
    )


@pytest.fixture(params=[False, True], ids=["cleartext", "encrypted"])
def any_storage(request, backend, fast_locks) -> S3CertStorage:
    key = TEST_KEY if request.param else None
    return S3CertStorage(backend, prefix=TEST_PREFIX, encryption_key=key, lock_settings=fast_locks)


def backend_error() -> BackendError:
    return BackendError("connection refused")
