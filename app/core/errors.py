"""Domain errors raised by the gateway, its stores and the downstream client.

Each subclass of ``AppError`` maps to one HTTP status in
``app.core.exception_handlers``; ``QuotaStoreError`` never reaches a client
and is translated by the component that caught it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Keys a client may find under ``error.details``."""

    retry_after: int
    limit: int
    window_ms: int
    downstream_status: int


@dataclass
class AppError(Exception):
    """Failure that is rendered to the client as an error envelope.

    Attributes:
        code: Machine-readable code, stable across releases.
        message: Client-facing text; never carries secrets or token contents.
        details: Extra fields copied into ``error.details``.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input validation fails."""


class AuthenticationAppError(AppError):
    """Raised when a bearer credential is missing or not acceptable."""


class CredentialError(AuthenticationAppError):
    """Base class for token verification failures."""


class MalformedTokenError(CredentialError):
    """Token does not have the header.payload.signature shape."""


class BadSignatureError(CredentialError):
    """Signature does not match the header and payload."""


class ExpiredTokenError(CredentialError):
    """Token expiry lies in the past."""


class WrongKindError(CredentialError):
    """Token was not issued as an anonymous credential."""


class QuotaExceededAppError(AppError):
    """Raised when an identity has used up its request window."""

    @property
    def retry_after(self) -> int:
        return int((self.details or {}).get("retry_after", 0))


class DownstreamAppError(AppError):
    """Raised when the proxied downstream call fails."""


class QuotaStoreError(Exception):
    """Raised by quota store adapters on any backend failure."""


class QuotaStoreUnavailableAppError(AppError):
    """Raised when the quota store fails and the limiter is fail-closed."""
