"""Downstream adapter layer - forwards authorized requests to the third-party API."""

from app.adapters.downstream.base import AbstractDownstreamClient, DownstreamResponse
from app.adapters.downstream.factory import create_downstream_client
from app.adapters.downstream.httpx_client import HttpxDownstreamClient

__all__ = [
    "AbstractDownstreamClient",
    "DownstreamResponse",
    "HttpxDownstreamClient",
    "create_downstream_client",
]
