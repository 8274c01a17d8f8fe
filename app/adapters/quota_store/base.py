"""Quota store interface.

Callers must not assume read-after-write visibility across nodes, nor any
atomic read-modify-write. Every backend failure surfaces as QuotaStoreError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractQuotaStore(ABC):
    """Async key-value store with optional per-key expiry."""

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the stored bytes, or None if the key is absent or expired.

        Raises:
            QuotaStoreError: On backend failure.
        """
        raise NotImplementedError

    @abstractmethod
    async def put(self, key: str, value: bytes, ttl_seconds: int | None = None) -> None:
        """Replace the value stored under key.

        Args:
            key: Storage key.
            value: Full serialized snapshot.
            ttl_seconds: Seconds until expiry, or None to keep indefinitely.

        Raises:
            QuotaStoreError: On backend failure.
        """
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key if present.

        Raises:
            QuotaStoreError: On backend failure.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release backend resources."""
        return None
