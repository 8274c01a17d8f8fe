"""Quota store adapters.

Small key-value abstraction for rate windows and usage records. The in-memory
store serves single-node setups and tests; the Redis store is shared by every
instance of the service.
"""

from app.adapters.quota_store.base import AbstractQuotaStore
from app.adapters.quota_store.factory import create_quota_store
from app.adapters.quota_store.in_memory import InMemoryQuotaStore
from app.adapters.quota_store.redis_store import RedisQuotaStore

__all__ = [
    "AbstractQuotaStore",
    "InMemoryQuotaStore",
    "RedisQuotaStore",
    "create_quota_store",
]
