"""Object store client: maps logical keys onto prefixed object keys."""

from __future__ import annotations

import logging
import threading

from .errors import NotFoundError, StorageError
from .storage.base import FileInfo, ObjectBackend, ObjectStat, raise_if_cancelled

logger = logging.getLogger(__name__)

LOCK_SUFFIX = ".lock"


class ObjectStoreClient:
    """Scope every logical key under a configured prefix in one bucket.

    The prefix is an internal namespacing detail: callers pass and receive
    logical keys only.
    """

    def __init__(self, backend: ObjectBackend, prefix: str = "") -> None:
        self.backend = backend
        self.prefix = prefix.strip("/")

    @property
    def bucket(self) -> str:
        return self.backend.bucket

    def object_key(self, key: str) -> str:
        """Map a logical key to its physical object key."""
        if not self.prefix:
            return key
        return f"{self.prefix}/{key}"

    def logical_key(self, object_key: str) -> str:
        """Strip the configured prefix from a physical object key."""
        if not self.prefix:
            return object_key
        return object_key[len(self.prefix) + 1 :]

    # Raw object access, addressed by already-mapped object keys

    def put_object(self, object_key: str, data: bytes, cancel: threading.Event | None = None) -> None:
        raise_if_cancelled(cancel)
        logger.debug("put %s/%s (%d bytes)", self.bucket, object_key, len(data))
        self.backend.put(object_key, data)

    def get_object(self, object_key: str, cancel: threading.Event | None = None) -> bytes:
        raise_if_cancelled(cancel)
        logger.debug("get %s/%s", self.bucket, object_key)
        return self.backend.get(object_key)

    def stat_object(self, object_key: str, cancel: threading.Event | None = None) -> ObjectStat:
        raise_if_cancelled(cancel)
        return self.backend.stat(object_key)

    def delete_object(self, object_key: str, cancel: threading.Event | None = None) -> None:
        raise_if_cancelled(cancel)
        logger.debug("delete %s/%s", self.bucket, object_key)
        self.backend.delete(object_key)

    # Logical key operations

    def store(self, key: str, data: bytes, cancel: threading.Event | None = None) -> None:
        """Write ``data`` to ``key``, replacing any previous value."""
        self.put_object(self.object_key(key), data, cancel)

    def load(self, key: str, cancel: threading.Event | None = None) -> bytes:
        """Return the payload stored at ``key``.

        Raises:
            NotFoundError: if ``key`` was never stored or has been deleted.
            BackendError: on transport or server failure.
        """
        try:
            return self.get_object(self.object_key(key), cancel)
        except NotFoundError:
            raise NotFoundError(key) from None

    def delete(self, key: str, cancel: threading.Event | None = None) -> None:
        """Remove ``key``. Deleting an absent key is not an error."""
        self.delete_object(self.object_key(key), cancel)

    def exists(self, key: str, cancel: threading.Event | None = None) -> bool:
        """Report whether ``key`` exists; any failure reads as ``False``."""
        try:
            self.stat_object(self.object_key(key), cancel)
            return True
        except NotFoundError:
            return False
        except StorageError as e:
            logger.warning("Existence check for %s failed: %s", key, e)
            return False

    def list(
        self, prefix: str, recursive: bool, cancel: threading.Event | None = None
    ) -> list[str]:
        """List logical keys under ``prefix``.

        With ``recursive`` every nested key is returned. Without it, each
        entry is cut to the next path segment below ``prefix`` and
        duplicates are dropped. Lock markers are never listed. Order follows
        the backend listing and is not guaranteed to be sorted.
        """
        raise_if_cancelled(cancel)
        if not recursive and prefix:
            # directory-style listing: only keys strictly below prefix
            prefix = prefix.rstrip("/") + "/"
        scan = self.object_key(prefix) if prefix else (f"{self.prefix}/" if self.prefix else "")
        keys: list[str] = []
        seen: set[str] = set()
        for object_key in self.backend.list(scan):
            raise_if_cancelled(cancel)
            if object_key.endswith(LOCK_SUFFIX):
                continue
            key = self.logical_key(object_key)
            if not recursive:
                key = _next_segment(prefix, key)
            if key not in seen:
                seen.add(key)
                keys.append(key)
        return keys

    def stat(self, key: str, cancel: threading.Event | None = None) -> FileInfo:
        """Return ``FileInfo`` for ``key`` or raise ``NotFoundError``."""
        try:
            st = self.stat_object(self.object_key(key), cancel)
        except NotFoundError:
            raise NotFoundError(key) from None
        return FileInfo(key=key, size=st.size, modified=st.last_modified, is_terminal=True)


def _next_segment(prefix: str, key: str) -> str:
    head = key[len(prefix) :].split("/", 1)[0]
    return f"{prefix}{head}"
