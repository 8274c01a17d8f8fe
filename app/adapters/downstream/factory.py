"""Factory pattern for creating downstream client instances."""

from app.adapters.downstream.base import AbstractDownstreamClient
from app.adapters.downstream.httpx_client import HttpxDownstreamClient
from app.core.config import DownstreamSettings


def create_downstream_client(downstream_settings: DownstreamSettings) -> AbstractDownstreamClient:
    """Instantiate the downstream client from configuration.

    A missing URL is not an error here; the client reports 503 on use so the
    token endpoint keeps working without a downstream configured.

    Returns:
        AbstractDownstreamClient: Configured client instance.
    """
    return HttpxDownstreamClient(
        downstream_settings.url,
        api_key=downstream_settings.api_key,
        timeout_seconds=downstream_settings.timeout_seconds,
        user_agent=downstream_settings.user_agent,
    )
