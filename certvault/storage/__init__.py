"""Storage interfaces and object-store backends."""

from .base import CertStorage, FileInfo, ObjectBackend, ObjectStat
from .minio_backend import MinioObjectBackend
from .s3_backend import Boto3ObjectBackend

__all__ = [
    "CertStorage",
    "FileInfo",
    "ObjectBackend",
    "ObjectStat",
    "MinioObjectBackend",
    "Boto3ObjectBackend",
]
