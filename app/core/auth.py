"""Bearer credential dependencies.

The gateway instance is built once by the app factory and kept on
``app.state``; routes reach it through these dependencies instead of a
module-level singleton.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, Request

from app.services.credentials import CredentialPayload
from app.services.gateway import AuthGateway


def get_gateway(request: Request) -> AuthGateway:
    """Return the gateway attached to the running application."""
    return request.app.state.gateway


async def verify_bearer_token(
    gateway: Annotated[AuthGateway, Depends(get_gateway)],
    authorization: Annotated[str | None, Header()] = None,
) -> CredentialPayload:
    """FastAPI dependency for anonymous bearer authentication.

    Validates ``Authorization: Bearer <token>`` without touching the quota.

    Raises:
        AuthenticationAppError: 401 when the credential is missing or invalid.
    """
    return gateway.authenticate(authorization)
