"""Single-slot leaderboard cache with atomic replacement."""

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

from .constants import (
    LEADERBOARD_CACHE_KEY,
    MAX_DOCUMENT_BYTES,
    SIZE_WARNING_RATIO,
    UPDATE_INTERVAL_SECONDS,
)
from .exceptions import CacheStoreError
from .types import LeaderboardDocument
from .utils import ensure_utc, json_default, parse_timestamp, utcnow

logger = logging.getLogger(__name__)


def serialize(document: dict) -> str:
    return json.dumps(document, default=json_default)


class CacheStore(ABC):
    """
    One logical slot holding the latest LeaderboardDocument.

    replace() overwrites the slot wholesale; readers see either the previous
    or the new document, never a mix. Every write stamps
    expires_at = write time + ttl.
    """

    key = LEADERBOARD_CACHE_KEY

    def __init__(
        self,
        ttl_seconds: float = UPDATE_INTERVAL_SECONDS,
        max_document_bytes: int = MAX_DOCUMENT_BYTES,
        size_warning_ratio: float = SIZE_WARNING_RATIO,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ttl = timedelta(seconds=ttl_seconds)
        self.max_document_bytes = max_document_bytes
        self.size_warning_ratio = size_warning_ratio
        self.clock = clock
        self.ready = False

    def initialize(self) -> bool:
        """Prepare the store. Returns False (and logs) if it is unreachable."""
        self.ready = True
        return True

    def replace(self, document: LeaderboardDocument) -> int:
        """
        Upsert the slot with `document`.
        Returns the serialized size in bytes. Raises CacheStoreError on failure.
        """
        stamped = dict(document)
        stamped["_id"] = self.key
        stamped["expires_at"] = self.clock() + self.ttl

        payload = serialize(stamped)
        size = len(payload.encode("utf-8"))
        self._check_size(size)
        self._write(stamped, payload)
        return size

    @abstractmethod
    def read(self) -> LeaderboardDocument | None:
        """Current document, or None if nothing has been written."""

    def purge_expired(self, now: datetime | None = None) -> bool:
        """
        TTL reaper: drop the slot if its expiry has passed.
        Returns True if a document was removed.
        """
        now = ensure_utc(now or self.clock())
        document = self.read()
        if document is None or document.get("expires_at") is None:
            return False
        if ensure_utc(document["expires_at"]) > now:
            return False
        self._delete()
        logger.info(f"Purged expired leaderboard cache (expired {document['expires_at']})")
        return True

    def _check_size(self, size: int):
        threshold = self.max_document_bytes * self.size_warning_ratio
        size_mb = size / (1024 * 1024)
        if size > threshold:
            limit_mb = self.max_document_bytes / (1024 * 1024)
            logger.warning(
                f"Leaderboard cache size: {size_mb:.2f}MB (approaching {limit_mb:.0f}MB document limit)"
            )
        else:
            logger.debug(f"Leaderboard cache size: {size_mb:.2f}MB")

    @abstractmethod
    def _write(self, document: dict, payload: str):
        """Persist `document` (already serialized as `payload`) into the slot."""

    @abstractmethod
    def _delete(self):
        """Empty the slot."""


class MemoryCacheStore(CacheStore):
    """In-process slot; replace() swaps a reference under a lock."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._lock = threading.Lock()
        self._document: LeaderboardDocument | None = None

    def read(self) -> LeaderboardDocument | None:
        with self._lock:
            return self._document

    def _write(self, document: dict, payload: str):
        with self._lock:
            self._document = document

    def _delete(self):
        with self._lock:
            self._document = None


class FileCacheStore(CacheStore):
    """Slot persisted as a JSON file, written atomically via temp file + rename."""

    def __init__(self, path: Path, **kwargs):
        super().__init__(**kwargs)
        self.path = path

    def initialize(self) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to initialize leaderboard cache at {self.path}: {e}")
            self.ready = False
            return False

        self.ready = True
        logger.info(f"Leaderboard cache initialized at {self.path}")
        return True

    def read(self) -> LeaderboardDocument | None:
        if not self.path.exists():
            return None

        try:
            with open(self.path) as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            raise CacheStoreError(f"Failed to read leaderboard cache from {self.path}: {e}") from e

        document["timestamp"] = parse_timestamp(document.get("timestamp"))
        document["expires_at"] = parse_timestamp(document.get("expires_at"))
        return document

    def _write(self, document: dict, payload: str):
        temp_path = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)

            with open(temp_path, "w") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())

            # Atomic rename (POSIX guarantees atomicity)
            temp_path.replace(self.path)
            logger.debug(f"Saved leaderboard cache to {self.path}")

        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise CacheStoreError(f"Failed to save leaderboard cache to {self.path}: {e}") from e

    def _delete(self):
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise CacheStoreError(f"Failed to delete leaderboard cache {self.path}: {e}") from e
