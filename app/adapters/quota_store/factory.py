"""Factory pattern for creating quota store instances."""

import time
from typing import Callable

from app.adapters.quota_store.base import AbstractQuotaStore
from app.adapters.quota_store.in_memory import InMemoryQuotaStore
from app.adapters.quota_store.redis_store import RedisQuotaStore
from app.core.config import StoreSettings
from app.core.errors import ValidationAppError


def create_quota_store(
    store_settings: StoreSettings,
    *,
    clock: Callable[[], float] = time.time,
) -> AbstractQuotaStore:
    """Instantiate the configured quota store backend.

    Args:
        store_settings: Store section of the application settings.
        clock: Time source for the in-memory backend.

    Returns:
        AbstractQuotaStore: Configured store instance.

    Raises:
        ValidationAppError: If the backend name is unknown.
    """
    backend = store_settings.backend.lower()

    if backend == "memory":
        return InMemoryQuotaStore(clock=clock)

    if backend == "redis":
        return RedisQuotaStore(
            store_settings.redis_url,
            timeout_seconds=store_settings.timeout_seconds,
        )

    raise ValidationAppError(
        code="store_unknown_backend",
        message=f"Unknown quota store backend: '{backend}'. Supported backends: memory, redis",
    )
