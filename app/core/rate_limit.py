"""Rate limiting dependency for FastAPI routes.

Authentication happens first, then one unit of the identity's window is
consumed. Usage statistics are written in the dependency's teardown, once
the route has finished with the admission, whether it returned or raised.
"""

from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, Header

from app.core.auth import get_gateway
from app.services.gateway import Admission, AuthGateway


async def enforce_rate_limit(
    gateway: Annotated[AuthGateway, Depends(get_gateway)],
    authorization: Annotated[str | None, Header()] = None,
) -> AsyncIterator[Admission]:
    """FastAPI dependency enforcing per-identity quotas.

    Args:
        gateway: Application gateway.
        authorization: Raw Authorization header.

    Yields:
        Admission for the verified, admitted identity.

    Raises:
        AuthenticationAppError: 401 when the credential is missing or invalid.
        QuotaExceededAppError: 429 when the identity's window is full.
    """
    admission = await gateway.authorize_and_meter(authorization)
    try:
        yield admission
    finally:
        # Store errors are swallowed by the tracker; the decision stands.
        await gateway.record_usage(admission.identity, admission.admitted_at_ms)
