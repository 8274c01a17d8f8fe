"""httpx-based downstream client."""

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from app.adapters.downstream.base import AbstractDownstreamClient, DownstreamResponse
from app.core.errors import DownstreamAppError
from app.core.logging import hash_identity

logger = logging.getLogger(__name__)


class HttpxDownstreamClient(AbstractDownstreamClient):
    """Forward JSON bodies with a shared ``httpx.AsyncClient``.

    Successful JSON object responses are annotated with ``processedAt``.
    """

    def __init__(
        self,
        url: str | None,
        *,
        api_key: str | None = None,
        timeout_seconds: float = 10.0,
        user_agent: str = "anon-quota-gateway/0.1",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the async HTTP client.

        Args:
            url: Downstream endpoint. Calls fail with 503 when unset.
            api_key: Optional bearer key for the downstream service.
            timeout_seconds: Timeout for requests in seconds.
            user_agent: User-Agent header value.
            transport: Custom transport (used by tests).
        """
        headers = {
            "Content-Type": "application/json",
            "User-Agent": user_agent,
        }
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self.url = url
        self.client = httpx.AsyncClient(
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    async def forward(self, payload: Any, *, identity: str) -> DownstreamResponse:
        if not self.url:
            logger.error("downstream.not_configured")
            raise DownstreamAppError(
                code="downstream_unavailable",
                message="External service unavailable",
            )

        identity_hash = hash_identity(identity)

        try:
            response = await self.client.post(self.url, json=payload)
        except httpx.TimeoutException as exc:
            logger.error(
                "downstream.timeout",
                extra={"identity_hash": identity_hash, "error_type": type(exc).__name__},
            )
            raise DownstreamAppError(
                code="downstream_timeout",
                message="External service unavailable",
            ) from exc
        except httpx.HTTPError as exc:
            logger.error(
                "downstream.failed",
                extra={"identity_hash": identity_hash, "error_type": type(exc).__name__},
            )
            raise DownstreamAppError(
                code="downstream_unavailable",
                message="External service unavailable",
            ) from exc

        # Parse and annotate JSON
        try:
            body = response.json()
        except ValueError as exc:
            logger.error(
                "downstream.invalid_json",
                extra={"identity_hash": identity_hash, "downstream_status": response.status_code},
            )
            raise DownstreamAppError(
                code="downstream_invalid_response",
                message="External service unavailable",
                details={"downstream_status": response.status_code},
            ) from exc

        if isinstance(body, dict):
            body = {**body, "processedAt": datetime.now(timezone.utc).isoformat()}

        logger.info(
            "downstream.processed",
            extra={"identity_hash": identity_hash, "downstream_status": response.status_code},
        )
        return DownstreamResponse(status_code=response.status_code, body=body)

    async def close(self) -> None:
        await self.client.aclose()
