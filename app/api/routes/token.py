from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from app.core.auth import get_gateway, verify_bearer_token
from app.schemas.token import RateLimitInfo, SessionResponse, TokenResponse
from app.services.credentials import CredentialPayload
from app.services.gateway import AuthGateway

router = APIRouter(tags=["Token"])


@router.post("/token", response_model=TokenResponse)
async def issue_token(
    gateway: Annotated[AuthGateway, Depends(get_gateway)],
) -> TokenResponse:
    """Issue a new anonymous credential.

    Each call creates a fresh identity; nothing about the caller is stored
    besides an empty usage record.

    Returns:
        TokenResponse: Token, identity, expiry (epoch ms) and the quota that applies.
    """
    issued = await gateway.issue_credential()
    return TokenResponse(
        token=issued.token,
        user_id=issued.user_id,
        expires_at=issued.expires_at_ms,
        rate_limit=RateLimitInfo(
            max_requests=issued.max_requests,
            window_ms=issued.window_ms,
        ),
    )


@router.get("/session", response_model=SessionResponse)
async def describe_session(
    credential: Annotated[CredentialPayload, Depends(verify_bearer_token)],
) -> SessionResponse:
    """Describe the credential presented in the Authorization header.

    Does not consume quota.
    """
    return SessionResponse(
        user_id=credential.identity,
        is_anonymous=True,
        issued_at=credential.issued_at * 1000,
        expires_at=credential.expires_at * 1000,
    )
