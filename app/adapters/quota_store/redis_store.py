"""Redis-backed quota store shared by all service instances."""

from __future__ import annotations

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.adapters.quota_store.base import AbstractQuotaStore
from app.core.errors import QuotaStoreError

logger = logging.getLogger(__name__)


class RedisQuotaStore(AbstractQuotaStore):
    """Quota store using plain GET/SET/DEL.

    No WATCH/MULTI is used: concurrent writers to the same key race and the
    last full snapshot wins.
    """

    def __init__(
        self,
        redis_url: str,
        *,
        timeout_seconds: float = 2.0,
        client: redis.Redis | None = None,
    ) -> None:
        """Initialize the Redis store.

        Args:
            redis_url: Connection URL (e.g. ``redis://localhost:6379/0``).
            timeout_seconds: Connect and socket timeout.
            client: Pre-built client (mainly for tests).
        """
        self._client = client or redis.from_url(
            redis_url,
            socket_connect_timeout=timeout_seconds,
            socket_timeout=timeout_seconds,
        )

    async def get(self, key: str) -> bytes | None:
        try:
            value = await self._client.get(key)
        except RedisError as exc:
            raise QuotaStoreError(f"redis get failed: {type(exc).__name__}") from exc
        if value is None:
            return None
        if isinstance(value, str):
            return value.encode("utf-8")
        return value

    async def put(self, key: str, value: bytes, ttl_seconds: int | None = None) -> None:
        if ttl_seconds is not None and ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1 or None")
        try:
            await self._client.set(key, value, ex=ttl_seconds)
        except RedisError as exc:
            raise QuotaStoreError(f"redis set failed: {type(exc).__name__}") from exc

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except RedisError as exc:
            raise QuotaStoreError(f"redis delete failed: {type(exc).__name__}") from exc

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except RedisError as exc:
            logger.warning("quota_store.close_failed", extra={"error_type": type(exc).__name__})
