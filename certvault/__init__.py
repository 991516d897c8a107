"""S3-compatible certificate storage with at-rest encryption and advisory locks."""

from .adapter import S3CertStorage, storage_from_config
from .config import AppConfig
from .errors import (
    BackendError,
    ConfigError,
    CorruptionError,
    LockTimeoutError,
    NotFoundError,
    OperationCancelledError,
    StorageError,
)
from .locking import LockSettings
from .storage.base import CertStorage, FileInfo

__all__ = [
    "AppConfig",
    "BackendError",
    "CertStorage",
    "ConfigError",
    "CorruptionError",
    "FileInfo",
    "LockSettings",
    "LockTimeoutError",
    "NotFoundError",
    "OperationCancelledError",
    "S3CertStorage",
    "StorageError",
    "storage_from_config",
]
