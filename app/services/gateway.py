"""Authentication and metering gateway.

Composes credential verification, the per-identity rate limiter and usage
statistics behind the two operations the HTTP layer needs:

- issue a new anonymous credential
- authorize and meter a request carrying ``Authorization: Bearer <token>``

Request lifecycle:
    Unauthenticated -> CredentialPresented -> Verified | Rejected (401)
    Verified -> Admitted | Throttled (429)

Usage statistics for an admitted request are recorded separately via
``record_usage`` so the HTTP layer can run them after the decision is made.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.core.errors import AuthenticationAppError, CredentialError, QuotaExceededAppError
from app.core.logging import hash_identity
from app.services.credentials import CredentialCodec, CredentialPayload
from app.services.identity import IdentityGenerator
from app.services.usage_tracker import UsageTracker

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class IssuedToken:
    """Result of credential issuance, shaped for the token endpoint."""

    token: str
    user_id: str
    expires_at_ms: int
    max_requests: int
    window_ms: int


@dataclass(frozen=True)
class Admission:
    """An authenticated request that passed the rate limiter."""

    identity: str
    credential: CredentialPayload
    rate_limit: RateLimitResult
    admitted_at_ms: int


class AuthGateway:
    """Issue credentials and admit requests per identity."""

    def __init__(
        self,
        *,
        codec: CredentialCodec,
        identities: IdentityGenerator,
        rate_limiter: AbstractRateLimiter,
        usage: UsageTracker,
        token_ttl_seconds: int,
        max_requests: int,
        window_ms: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the gateway.

        Args:
            codec: Signs and verifies credentials.
            identities: Generates new anonymous identities.
            rate_limiter: Per-identity request limiter.
            usage: Usage statistics tracker.
            token_ttl_seconds: Lifetime of issued credentials.
            max_requests: Advertised requests per window.
            window_ms: Advertised window size in milliseconds.
            clock: Time source returning UNIX time in seconds.
        """
        self._codec = codec
        self._identities = identities
        self._rate_limiter = rate_limiter
        self._usage = usage
        self._token_ttl_seconds = token_ttl_seconds
        self._max_requests = max_requests
        self._window_ms = window_ms
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def issue_credential(self) -> IssuedToken:
        """Create a new identity and sign a credential for it."""
        now_ms = self._now_ms()
        identity = self._identities.generate()
        issued = self._codec.issue(identity, now_ms // 1000, self._token_ttl_seconds)

        await self._usage.initialize(identity, now_ms)

        logger.info(
            "credential.issued",
            extra={
                "identity_hash": hash_identity(identity),
                "expires_at": issued.payload.expires_at,
            },
        )
        return IssuedToken(
            token=issued.token,
            user_id=identity,
            expires_at_ms=issued.payload.expires_at * 1000,
            max_requests=self._max_requests,
            window_ms=self._window_ms,
        )

    def authenticate(self, authorization: str | None) -> CredentialPayload:
        """Verify a bearer Authorization header.

        Raises:
            AuthenticationAppError: Missing header or unacceptable credential.
                The precise reason is logged, not returned.
        """
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            logger.warning("credential.missing")
            raise AuthenticationAppError(
                code="missing_credentials",
                message="Missing or invalid authorization header",
            )

        token = authorization[len(BEARER_PREFIX):].strip()
        try:
            return self._codec.verify(token, self._now_ms() // 1000)
        except CredentialError as exc:
            logger.warning("credential.rejected", extra={"reason": exc.code})
            raise AuthenticationAppError(
                code="invalid_token",
                message="Invalid or expired token",
            ) from exc

    async def authorize_and_meter(self, authorization: str | None) -> Admission:
        """Authenticate the caller and consume one unit of its quota.

        Returns:
            Admission for the verified identity.

        Raises:
            AuthenticationAppError: Credential missing or invalid.
            QuotaExceededAppError: Identity exhausted its window.
            QuotaStoreUnavailableAppError: Store failed and limiter is fail-closed.
        """
        credential = self.authenticate(authorization)
        identity = credential.identity
        now_ms = self._now_ms()

        result = await self._rate_limiter.authorize(identity, now_ms)
        if not result.allowed:
            retry_after = result.retry_after_seconds or 1
            logger.warning(
                "rate_limit.exceeded",
                extra={
                    "identity_hash": hash_identity(identity),
                    "limit": result.limit,
                    "window_ms": self._window_ms,
                    "retry_after_s": retry_after,
                },
            )
            raise QuotaExceededAppError(
                code="rate_limit_exceeded",
                message="Rate limit exceeded",
                details={
                    "retry_after": retry_after,
                    "limit": result.limit,
                    "window_ms": self._window_ms,
                },
            )

        logger.info(
            "rate_limit.allowed",
            extra={
                "identity_hash": hash_identity(identity),
                "limit": result.limit,
                "remaining": result.remaining,
                "degraded": result.degraded,
            },
        )
        return Admission(
            identity=identity,
            credential=credential,
            rate_limit=result,
            admitted_at_ms=now_ms,
        )

    async def record_usage(self, identity: str, now_ms: int) -> None:
        """Update usage statistics for an admitted request. Never raises on store errors."""
        await self._usage.record_and_prune(identity, now_ms)
