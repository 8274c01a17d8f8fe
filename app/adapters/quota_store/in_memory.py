"""In-memory quota store.

Notes:
- Per-process only: every worker sees its own data, so limits are not shared.
- Thread-safe: uses a lock around shared state.
- Expiring keys are also tracked in a min-heap by deadline, so a write only
  touches entries that are already due. Keys without a TTL cost nothing.
"""

from __future__ import annotations

import heapq
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.quota_store.base import AbstractQuotaStore

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: bytes
    expires_at: float | None


class InMemoryQuotaStore(AbstractQuotaStore):
    """Dict-backed store with lazy TTL eviction."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the store.

        Args:
            clock: Time source returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}
        # (expires_at, key); stale after an overwrite, checked on pop
        self._deadlines: list[tuple[float, str]] = []

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryQuotaStore(size={len(self._entries)})"

    def _is_expired(self, entry: _Entry, now: float) -> bool:
        return entry.expires_at is not None and now >= entry.expires_at

    def _evict_expired_locked(self, now: float) -> None:
        evicted = 0
        while self._deadlines and self._deadlines[0][0] <= now:
            expires_at, key = heapq.heappop(self._deadlines)
            entry = self._entries.get(key)
            if entry is not None and entry.expires_at == expires_at:
                del self._entries[key]
                evicted += 1
        if evicted:
            logger.debug("quota_store.evicted", extra={"evicted": evicted})

    async def get(self, key: str) -> bytes | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._is_expired(entry, now):
                self._entries.pop(key, None)
                return None
            return entry.value

    async def put(self, key: str, value: bytes, ttl_seconds: int | None = None) -> None:
        if ttl_seconds is not None and ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1 or None")

        now = self._clock()
        expires_at = now + ttl_seconds if ttl_seconds is not None else None
        with self._lock:
            self._evict_expired_locked(now)
            self._entries[key] = _Entry(value=bytes(value), expires_at=expires_at)
            if expires_at is not None:
                heapq.heappush(self._deadlines, (expires_at, key))

    async def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    async def close(self) -> None:
        with self._lock:
            self._entries.clear()
            self._deadlines.clear()
