"""Abstract interfaces for certvault storage: the host-facing capability set
and the narrow object-store collaborator it is built on."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator

from ..errors import OperationCancelledError


@dataclass(frozen=True)
class FileInfo:
    """Stat result for a logical key."""

    key: str
    size: int
    modified: datetime
    is_terminal: bool = True


@dataclass(frozen=True)
class ObjectStat:
    """Stat result for a physical object key."""

    object_key: str
    size: int
    last_modified: datetime


def raise_if_cancelled(cancel: threading.Event | None) -> None:
    """Raise OperationCancelledError if the caller's cancel event is set."""
    if cancel is not None and cancel.is_set():
        raise OperationCancelledError("operation cancelled by caller")


class ObjectBackend(ABC):
    """Object store client addressed by bucket and object key.

    Implementations must raise ``NotFoundError`` for missing objects and
    ``BackendError`` for every other failure.
    """

    bucket: str

    @abstractmethod
    def put(self, object_key: str, data: bytes) -> None:
        """Write an object, replacing any existing one."""
        raise NotImplementedError

    @abstractmethod
    def get(self, object_key: str) -> bytes:
        """Read an object's full payload."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, object_key: str) -> None:
        """Remove an object. Missing objects are not an error."""
        raise NotImplementedError

    @abstractmethod
    def list(self, prefix: str) -> Iterator[str]:
        """Yield every object key starting with ``prefix``."""
        raise NotImplementedError

    @abstractmethod
    def stat(self, object_key: str) -> ObjectStat:
        """Return size and modification time for an object."""
        raise NotImplementedError


class CertStorage(ABC):
    """Storage capability set expected by the certificate manager."""

    @abstractmethod
    def store(self, key: str, data: bytes, cancel: threading.Event | None = None) -> None:
        """Persist ``data`` under ``key``."""
        raise NotImplementedError

    @abstractmethod
    def load(self, key: str, cancel: threading.Event | None = None) -> bytes:
        """Return the bytes stored under ``key``."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str, cancel: threading.Event | None = None) -> None:
        """Remove ``key``."""
        raise NotImplementedError

    @abstractmethod
    def exists(self, key: str, cancel: threading.Event | None = None) -> bool:
        """Report whether ``key`` exists."""
        raise NotImplementedError

    @abstractmethod
    def list(
        self, prefix: str, recursive: bool, cancel: threading.Event | None = None
    ) -> list[str]:
        """List keys under ``prefix``."""
        raise NotImplementedError

    @abstractmethod
    def stat(self, key: str, cancel: threading.Event | None = None) -> FileInfo:
        """Return metadata for ``key``."""
        raise NotImplementedError

    @abstractmethod
    def lock(self, key: str, cancel: threading.Event | None = None) -> None:
        """Acquire the advisory lock for ``key``."""
        raise NotImplementedError

    @abstractmethod
    def unlock(self, key: str, cancel: threading.Event | None = None) -> None:
        """Release the advisory lock for ``key``."""
        raise NotImplementedError
