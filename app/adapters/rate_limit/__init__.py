"""Rate limiting adapters.

This package keeps the HTTP layer independent of how request windows are
stored. The sliding window limiter persists its state through any
AbstractQuotaStore, so the same code runs against memory or Redis.
"""

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter

__all__ = ["AbstractRateLimiter", "RateLimitResult", "SlidingWindowRateLimiter"]
