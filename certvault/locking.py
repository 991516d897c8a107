"""Advisory locks coordinated through marker objects in the object store."""

from __future__ import annotations

import json
import logging
import os
import socket
import threading
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone

from .errors import LockTimeoutError, NotFoundError, OperationCancelledError
from .objstore import LOCK_SUFFIX, ObjectStoreClient
from .storage.base import raise_if_cancelled

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockSettings:
    """Lock timing configuration, in seconds."""

    timeout: float = 15.0
    stale_after: float | None = None  # None: same as timeout
    poll_interval: float = 1.0

    @property
    def stale_threshold(self) -> float:
        return self.timeout if self.stale_after is None else self.stale_after


@dataclass
class LockInfo:
    """Contents of a lock marker."""

    created_at: datetime
    holder: str

    def to_json_bytes(self) -> bytes:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return json.dumps(data, sort_keys=True).encode()

    @staticmethod
    def parse(payload: bytes) -> LockInfo | None:
        """Parse a marker payload; returns None if it is unreadable."""
        try:
            data = json.loads(payload.decode())
            created_at = datetime.fromisoformat(data["created_at"])
        except (ValueError, KeyError, TypeError):
            return None
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return LockInfo(created_at=created_at, holder=str(data.get("holder", "")))

    def age(self, now: datetime | None = None) -> timedelta:
        return (now or datetime.now(timezone.utc)) - self.created_at


def _holder_id() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


class LockCoordinator:
    """Best-effort mutual exclusion on logical keys.

    A key is locked while its marker object exists. Acquisition polls until
    the marker disappears or the timeout elapses. A marker is stale when it
    is already older than the threshold the first time it is read, or when
    the same marker has been waited on for longer than the threshold.
    There is no compare-and-swap: two processes that both observe an absent
    marker within one round trip can both succeed.
    """

    def __init__(self, client: ObjectStoreClient, settings: LockSettings | None = None) -> None:
        self.client = client
        self.settings = settings or LockSettings()

    def marker_key(self, key: str) -> str:
        """Object key of the lock marker for ``key``."""
        return self.client.object_key(key) + LOCK_SUFFIX

    def lock(self, key: str, cancel: threading.Event | None = None) -> None:
        """Acquire the lock for ``key``.

        Raises:
            LockTimeoutError: the marker stayed fresh for ``settings.timeout``.
            OperationCancelledError: ``cancel`` was set while waiting.
            BackendError: the object store failed.
        """
        marker = self.marker_key(key)
        timeout = self.settings.timeout
        threshold = self.settings.stale_threshold
        started = time.monotonic()
        contended = False
        # marker currently being waited on, and when it was first read
        watched: LockInfo | None = None
        watched_since = started
        while True:
            try:
                payload = self.client.get_object(marker, cancel)
            except NotFoundError:
                self._write_marker(marker, cancel)
                if contended:
                    logger.info(
                        "Acquired lock for %s after %.1fs", key, time.monotonic() - started
                    )
                return

            info = LockInfo.parse(payload)
            if info is None or (info != watched and info.age().total_seconds() > threshold):
                self._reclaim(key, marker, info, cancel)
                return
            if info != watched:
                watched, watched_since = info, time.monotonic()

            contended = True
            now = time.monotonic()
            elapsed = now - started
            if elapsed >= timeout:
                raise LockTimeoutError(key, timeout)
            if now - watched_since > threshold:
                self._reclaim(key, marker, info, cancel)
                return
            wait = min(self.settings.poll_interval, timeout - elapsed)
            if cancel is None:
                time.sleep(wait)
            elif cancel.wait(wait):
                raise OperationCancelledError(f"lock for {key} cancelled by caller")

    def unlock(self, key: str, cancel: threading.Event | None = None) -> None:
        """Release the lock for ``key``; releasing a free lock is not an error."""
        self.client.delete_object(self.marker_key(key), cancel)

    def is_locked(self, key: str, cancel: threading.Event | None = None) -> bool:
        try:
            self.client.stat_object(self.marker_key(key), cancel)
            return True
        except NotFoundError:
            return False

    def lock_info(self, key: str, cancel: threading.Event | None = None) -> LockInfo | None:
        """Return the parsed marker for ``key``, or None if unlocked or unreadable."""
        try:
            payload = self.client.get_object(self.marker_key(key), cancel)
        except NotFoundError:
            return None
        return LockInfo.parse(payload)

    def _write_marker(self, marker: str, cancel: threading.Event | None) -> None:
        info = LockInfo(created_at=datetime.now(timezone.utc), holder=_holder_id())
        self.client.put_object(marker, info.to_json_bytes(), cancel)

    def _reclaim(
        self, key: str, marker: str, info: LockInfo | None, cancel: threading.Event | None
    ) -> None:
        logger.warning(
            "Reclaiming stale lock for %s (holder=%s)", key, info.holder if info else "unknown"
        )
        self.client.delete_object(marker, cancel)
        self._write_marker(marker, cancel)
