"""Sliding-window rate limiter backed by a quota store.

Notes:
- Best effort: the read-modify-write on ``rate_limit:<identity>`` is not
  atomic, so concurrent requests on different nodes can overshoot the limit.
- Each write stores the full timestamp list, never a delta.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math

from app.adapters.quota_store.base import AbstractQuotaStore
from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.core.errors import QuotaStoreError, QuotaStoreUnavailableAppError
from app.core.logging import hash_identity

logger = logging.getLogger(__name__)

KEY_PREFIX = "rate_limit:"


def rate_limit_key(identity: str) -> str:
    return f"{KEY_PREFIX}{identity}"


def _decode_window(raw: bytes | None) -> list[int]:
    """Decode a stored timestamp list.

    Raises:
        ValueError: If the bytes are not a JSON array of finite numbers.
    """
    if raw is None:
        return []
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError("rate window must be a JSON array")
    timestamps: list[int] = []
    for item in data:
        if isinstance(item, bool) or not isinstance(item, (int, float)):
            raise ValueError("rate window entries must be numbers")
        if isinstance(item, float) and not math.isfinite(item):
            raise ValueError("rate window entries must be finite")
        timestamps.append(int(item))
    return timestamps


class SlidingWindowRateLimiter(AbstractRateLimiter):
    """Allow at most ``max_requests`` per trailing ``window_ms`` per identity."""

    def __init__(
        self,
        store: AbstractQuotaStore,
        *,
        max_requests: int,
        window_ms: int,
        fail_open: bool = True,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Quota store holding the per-identity windows.
            max_requests: Maximum admitted requests per window.
            window_ms: Window size in milliseconds.
            fail_open: Admit requests when the store fails instead of raising.

        Raises:
            ValueError: If max_requests or window_ms are invalid.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_ms < 1000:
            raise ValueError("window_ms must be >= 1000")

        self._store = store
        self._max_requests = max_requests
        self._window_ms = window_ms
        self._fail_open = fail_open
        self._ttl_seconds = math.ceil(window_ms / 1000)

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_ms(self) -> int:
        return self._window_ms

    def _prune(self, timestamps: list[int], now_ms: int) -> list[int]:
        return [ts for ts in timestamps if now_ms - ts < self._window_ms]

    def _reset_at(self, timestamps: list[int], now_ms: int) -> int:
        oldest = min(timestamps) if timestamps else now_ms
        return math.ceil((oldest + self._window_ms) / 1000)

    def _store_failed(self, identity: str, now_ms: int, exc: Exception, stage: str) -> RateLimitResult:
        """Apply the configured failure policy."""
        logger.warning(
            "rate_limit.store_failed",
            extra={
                "stage": stage,
                "identity_hash": hash_identity(identity),
                "error_type": type(exc).__name__,
                "fail_open": self._fail_open,
            },
        )
        if not self._fail_open:
            raise QuotaStoreUnavailableAppError(
                code="quota_store_unavailable",
                message="Rate limit service is temporarily unavailable",
            ) from exc

        return RateLimitResult(
            allowed=True,
            limit=self._max_requests,
            remaining=self._max_requests,
            reset_at=math.ceil((now_ms + self._window_ms) / 1000),
            retry_after_seconds=None,
            degraded=True,
        )

    async def authorize(self, identity: str, now_ms: int) -> RateLimitResult:
        """Check the identity's window and record this request if admitted.

        Args:
            identity: Anonymous identity being metered.
            now_ms: Current UNIX time in milliseconds.

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If identity is empty.
            QuotaStoreUnavailableAppError: If the store fails and the limiter
                is configured fail-closed.
        """
        if not identity:
            raise ValueError("identity must be a non-empty string")

        key = rate_limit_key(identity)

        try:
            timestamps = _decode_window(await self._store.get(key))
        except (QuotaStoreError, ValueError) as exc:
            return self._store_failed(identity, now_ms, exc, "read")

        timestamps = self._prune(timestamps, now_ms)

        if len(timestamps) >= self._max_requests:
            oldest = min(timestamps)
            retry_after = math.ceil((oldest + self._window_ms - now_ms) / 1000)
            return RateLimitResult(
                allowed=False,
                limit=self._max_requests,
                remaining=0,
                reset_at=self._reset_at(timestamps, now_ms),
                retry_after_seconds=max(1, retry_after),
            )

        timestamps.append(now_ms)
        payload = json.dumps(timestamps, separators=(",", ":")).encode("utf-8")

        try:
            # Let an issued write finish even if the request is cancelled.
            await asyncio.shield(self._store.put(key, payload, self._ttl_seconds))
        except QuotaStoreError as exc:
            return self._store_failed(identity, now_ms, exc, "write")

        return RateLimitResult(
            allowed=True,
            limit=self._max_requests,
            remaining=max(0, self._max_requests - len(timestamps)),
            reset_at=self._reset_at(timestamps, now_ms),
            retry_after_seconds=None,
        )
