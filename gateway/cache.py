"""TTL cache — small in-memory map whose entries expire after a fixed age.

Readers never see an expired entry. Expired entries that nobody reads again
are removed by ``purge_expired``, which the scheduler calls periodically from
its worker thread; hence the lock.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class TTLCache:
    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        # Cache: {key: (stored_at, value)}
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any | None:
        """Return the value for ``key``, or None if missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at >= self._ttl:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, (stored_at, _) in self._entries.items() if now - stored_at >= self._ttl]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info(f"Purged {len(expired)} expired cache entr{'y' if len(expired) == 1 else 'ies'}")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
