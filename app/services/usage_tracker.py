"""Per-identity usage statistics.

Counters are informational only. Every failure here is logged and swallowed
so it can never influence an access decision.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone

from pydantic import ValidationError

from app.adapters.quota_store.base import AbstractQuotaStore
from app.core.errors import QuotaStoreError
from app.core.logging import hash_identity
from app.schemas.usage import UsageRecord

logger = logging.getLogger(__name__)

KEY_PREFIX = "user_stats:"


def usage_key(identity: str) -> str:
    return f"{KEY_PREFIX}{identity}"


def _utc_datetime(now_ms: int) -> datetime:
    return datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc)


def _day_start(day: str) -> datetime | None:
    try:
        parsed = date.fromisoformat(day)
    except ValueError:
        return None
    return datetime(parsed.year, parsed.month, parsed.day, tzinfo=timezone.utc)


class UsageTracker:
    """Maintain cumulative and daily request counters per identity."""

    def __init__(self, store: AbstractQuotaStore, *, retention_days: int = 30) -> None:
        if retention_days < 1:
            raise ValueError("retention_days must be >= 1")

        self._store = store
        self._retention = timedelta(days=retention_days)

    async def load(self, identity: str) -> UsageRecord | None:
        """Read the stored record.

        Raises:
            QuotaStoreError: On store failure.
            ValidationError: If the stored JSON does not match UsageRecord.
        """
        raw = await self._store.get(usage_key(identity))
        if raw is None:
            return None
        return UsageRecord.model_validate_json(raw)

    async def _save(self, identity: str, record: UsageRecord) -> None:
        payload = record.model_dump_json(by_alias=True).encode("utf-8")
        # No TTL: records live until the backend evicts them.
        await asyncio.shield(self._store.put(usage_key(identity), payload, None))

    def _prune(self, record: UsageRecord, now_ms: int) -> int:
        cutoff = _utc_datetime(now_ms) - self._retention
        stale = []
        for day in record.daily_requests:
            start = _day_start(day)
            if start is None or start < cutoff:
                stale.append(day)
        for day in stale:
            del record.daily_requests[day]
        return len(stale)

    async def initialize(self, identity: str, now_ms: int) -> None:
        """Write an empty record for a newly issued identity."""
        try:
            await self._save(identity, UsageRecord(created_at=now_ms))
        except QuotaStoreError as exc:
            logger.warning(
                "usage.initialize_failed",
                extra={
                    "identity_hash": hash_identity(identity),
                    "error_type": type(exc).__name__,
                },
            )

    async def record_and_prune(self, identity: str, now_ms: int) -> None:
        """Count one admitted request and drop daily buckets past retention.

        Args:
            identity: Anonymous identity that was admitted.
            now_ms: Admission time in epoch milliseconds.
        """
        try:
            try:
                record = await self.load(identity)
            except ValidationError:
                logger.warning(
                    "usage.record_corrupt",
                    extra={"identity_hash": hash_identity(identity)},
                )
                record = None

            if record is None:
                record = UsageRecord(created_at=now_ms)

            today = _utc_datetime(now_ms).date().isoformat()
            record.total_requests += 1
            record.last_request_at = now_ms
            record.daily_requests[today] = record.daily_requests.get(today, 0) + 1
            pruned = self._prune(record, now_ms)

            await self._save(identity, record)
        except QuotaStoreError as exc:
            logger.warning(
                "usage.update_failed",
                extra={
                    "identity_hash": hash_identity(identity),
                    "error_type": type(exc).__name__,
                },
            )
            return

        logger.debug(
            "usage.updated",
            extra={
                "identity_hash": hash_identity(identity),
                "total_requests": record.total_requests,
                "pruned_days": pruned,
            },
        )
