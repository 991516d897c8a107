"""Error taxonomy for certvault storage operations."""

from __future__ import annotations


class StorageError(Exception):
    """Base class for every error raised by certvault."""


class ConfigError(StorageError, ValueError):
    """Invalid construction input (bad key length, missing endpoint, ...)."""


class NotFoundError(StorageError, FileNotFoundError):
    """The requested key does not exist.

    Subclasses ``FileNotFoundError`` so hosts that branch on the
    filesystem "does not exist" condition treat it the same way.
    """

    def __init__(self, key: str) -> None:
        super().__init__(f"key does not exist: {key}")
        self.key = key


class BackendError(StorageError):
    """Transport, auth, or server-side failure from the object store."""


class CorruptionError(StorageError):
    """Stored payload failed decryption or authentication."""


class LockTimeoutError(StorageError, TimeoutError):
    """A lock could not be acquired within the configured timeout."""

    def __init__(self, key: str, timeout: float) -> None:
        super().__init__(f"acquiring lock for {key} failed after {timeout:g}s")
        self.key = key
        self.timeout = timeout


class OperationCancelledError(StorageError):
    """The caller cancelled the operation before it completed."""
