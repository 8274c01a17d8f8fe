"""Pydantic schemas for the credential issuance endpoint."""

from pydantic import BaseModel, ConfigDict, Field


class RateLimitInfo(BaseModel):
    """Quota that applies to every issued identity."""

    model_config = ConfigDict(populate_by_name=True)

    max_requests: int = Field(..., alias="maxRequests", description="Requests allowed per window.")
    window_ms: int = Field(..., alias="windowMs", description="Window size in milliseconds.")


class TokenResponse(BaseModel):
    """Response of ``POST /api/token``."""

    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(..., description="Signed bearer credential.")
    user_id: str = Field(..., alias="userId", description="Anonymous identity embedded in the token.")
    expires_at: int = Field(
        ...,
        alias="expiresAt",
        description="Credential expiry in epoch milliseconds.",
    )
    rate_limit: RateLimitInfo = Field(..., alias="rateLimit")


class SessionResponse(BaseModel):
    """Response of ``GET /api/session`` describing a verified credential."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    is_anonymous: bool = Field(True, alias="isAnonymous")
    issued_at: int = Field(..., alias="issuedAt", description="Issuance in epoch milliseconds.")
    expires_at: int = Field(..., alias="expiresAt", description="Expiry in epoch milliseconds.")
