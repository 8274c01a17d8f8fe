"""Rate limiter interfaces.

The gateway depends on this abstraction (not the concrete implementation)
so the windowing strategy can change (e.g., an atomic counter) with minimal
changes elsewhere.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of one admission check for one identity.

    Attributes:
        allowed: The request was counted and may be forwarded.
        limit: Requests permitted per sliding window.
        remaining: Budget left after this request; 0 on denial.
        reset_at: UNIX epoch seconds when the oldest counted request leaves the window.
        retry_after_seconds: Whole seconds to wait before retrying, set only on denial.
        degraded: The store could not be read and the fail-open policy admitted the request.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None
    degraded: bool = False


class AbstractRateLimiter(ABC):
    """Interface for per-identity rate limiters."""

    @abstractmethod
    async def authorize(self, identity: str, now_ms: int) -> RateLimitResult:
        """Consume one request from the identity's budget if available.

        Args:
            identity: Anonymous identity being metered.
            now_ms: Current UNIX time in milliseconds.

        Returns:
            The decision; denied requests are not counted.
        """
        raise NotImplementedError
