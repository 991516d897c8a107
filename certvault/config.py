"""Configuration models and utilities for certvault."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

# type: ignore[import-untyped]
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .errors import ConfigError
from .locking import LockSettings


class MinioStorageConfig(BaseModel):
    """Configuration for the Minio storage backend."""

    type: Literal["minio"]
    endpoint: str
    bucket: str
    access_key: str
    secret_key: str
    secure: bool = True
    region: str | None = None
    create_bucket: bool = False


class S3StorageConfig(BaseModel):
    """Configuration for the boto3 storage backend."""

    type: Literal["s3"]
    bucket: str
    endpoint: str | None = None  # full URL, e.g. https://s3.example.com
    region: str | None = None
    access_key: str | None = None
    secret_key: str | None = None
    profile: str | None = None
    create_bucket: bool = False


StorageConfig = MinioStorageConfig | S3StorageConfig


class LockConfig(BaseModel):
    """Lock timing, in seconds."""

    timeout: float = Field(default=15.0, gt=0)
    stale_after: float | None = Field(default=None, gt=0)
    poll_interval: float = Field(default=1.0, gt=0)

    def to_settings(self) -> LockSettings:
        return LockSettings(
            timeout=self.timeout,
            stale_after=self.stale_after,
            poll_interval=self.poll_interval,
        )


class AppConfig(BaseModel):
    """Application configuration settings."""

    storage: StorageConfig = Field(discriminator="type")
    prefix: str = ""
    encryption_key: str | None = None
    encryption_key_file: str | None = None
    lock: LockConfig = Field(default_factory=LockConfig)

    @field_validator("prefix")
    @classmethod
    def strip_prefix(cls, v: str) -> str:
        """Drop leading and trailing slashes from the object prefix."""
        return v.strip("/")

    @model_validator(mode="after")
    def check_key_source(self) -> AppConfig:
        """Only one encryption key source may be set."""
        if self.encryption_key and self.encryption_key_file:
            raise ValueError("set encryption_key or encryption_key_file, not both")
        return self

    def resolve_encryption_key(self) -> bytes | None:
        """Return the configured encryption key bytes, if any."""
        if self.encryption_key_file:
            p = Path(self.encryption_key_file)
            try:
                raw = p.read_bytes()
            except OSError as e:
                raise ConfigError(f"cannot read encryption key file {p}: {e}") from e
            return raw.rstrip(b"\r\n") or None
        if self.encryption_key:
            return self.encryption_key.encode()
        return None

    @staticmethod
    def load(path: Path | str) -> AppConfig:
        """Load configuration from a YAML file."""
        p = Path(path)
        try:
            data = yaml.safe_load(p.read_text())
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"cannot read config {p}: {e}") from e
        return AppConfig.from_dict(data or {})

    @staticmethod
    def from_dict(data: dict) -> AppConfig:
        """Validate a configuration mapping."""
        try:
            return AppConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"invalid configuration: {e}") from e

    def save(self, path: Path | str) -> None:
        """Save configuration to a file."""
        p = Path(path)
        p.write_text(yaml.safe_dump(self.model_dump(mode="python"), sort_keys=False))
