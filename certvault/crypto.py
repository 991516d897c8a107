"""At-rest encryption of stored payloads using NaCl secretbox."""

from __future__ import annotations

import threading

from nacl import secret, utils
from nacl.exceptions import CryptoError

from .errors import ConfigError, CorruptionError
from .objstore import ObjectStoreClient
from .storage.base import FileInfo

KEY_SIZE = secret.SecretBox.KEY_SIZE
NONCE_SIZE = secret.SecretBox.NONCE_SIZE
MIN_SEALED_SIZE = NONCE_SIZE + secret.SecretBox.MACBYTES


def validate_key(key: bytes | str | None) -> bytes | None:
    """Return the key as bytes, or None when encryption is disabled."""
    if not key:
        return None
    if isinstance(key, str):
        key = key.encode()
    if len(key) != KEY_SIZE:
        raise ConfigError(f"encryption key must have exactly {KEY_SIZE} bytes")
    return bytes(key)


class EncryptionLayer:
    """Encrypt payloads on store and decrypt them on load.

    With no key configured the layer is a passthrough. Each store uses a
    fresh random nonce, so identical plaintexts produce different objects.
    """

    def __init__(self, client: ObjectStoreClient, key: bytes | str | None = None) -> None:
        key = validate_key(key)
        self.client = client
        self._box = secret.SecretBox(key) if key else None

    @property
    def enabled(self) -> bool:
        return self._box is not None

    def seal(self, plaintext: bytes) -> bytes:
        """Return ``nonce || ciphertext || tag`` (or ``plaintext`` if disabled)."""
        if self._box is None:
            return plaintext
        nonce = utils.random(NONCE_SIZE)
        return bytes(self._box.encrypt(plaintext, nonce))

    def open(self, blob: bytes) -> bytes:
        """Authenticate and decrypt a sealed blob."""
        if self._box is None:
            return blob
        if len(blob) < MIN_SEALED_SIZE:
            raise CorruptionError(
                f"encrypted payload too short ({len(blob)} < {MIN_SEALED_SIZE} bytes)"
            )
        try:
            return self._box.decrypt(blob)
        except CryptoError as e:
            raise CorruptionError("decryption failed: payload tampered or wrong key") from e

    def store(self, key: str, data: bytes, cancel: threading.Event | None = None) -> None:
        self.client.store(key, self.seal(data), cancel)

    def load(self, key: str, cancel: threading.Event | None = None) -> bytes:
        return self.open(self.client.load(key, cancel))

    def delete(self, key: str, cancel: threading.Event | None = None) -> None:
        self.client.delete(key, cancel)

    def exists(self, key: str, cancel: threading.Event | None = None) -> bool:
        return self.client.exists(key, cancel)

    def list(
        self, prefix: str, recursive: bool, cancel: threading.Event | None = None
    ) -> list[str]:
        return self.client.list(prefix, recursive, cancel)

    def stat(self, key: str, cancel: threading.Event | None = None) -> FileInfo:
        return self.client.stat(key, cancel)
