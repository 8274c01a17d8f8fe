"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It seeds the environment before app.core.config builds the global settings.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

# Set default env vars that all tests might need
os.environ.setdefault("AUTH_JWT_SECRET", "test-signing-secret")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Any, Callable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.adapters.downstream.base import AbstractDownstreamClient, DownstreamResponse
from app.adapters.quota_store.in_memory import InMemoryQuotaStore
from app.core.app_factory import create_app
from app.core.config import AuthSettings, RateLimitSettings, Settings


class FakeClock:
    """Settable time source returning UNIX seconds."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingDownstream(AbstractDownstreamClient):
    """Downstream double that echoes payloads and records calls."""

    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.calls: list[tuple[Any, str]] = []
        self.error: Exception | None = None

    async def forward(self, payload: Any, *, identity: str) -> DownstreamResponse:
        if self.error is not None:
            raise self.error
        self.calls.append((payload, identity))
        return DownstreamResponse(status_code=self.status_code, body={"echo": payload})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryQuotaStore:
    return InMemoryQuotaStore(clock=clock)


@pytest.fixture
def downstream() -> RecordingDownstream:
    return RecordingDownstream()


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    def _make(**rate_limit: Any) -> Settings:
        return Settings(
            auth=AuthSettings(jwt_secret="test-signing-secret"),
            rate_limit=RateLimitSettings(**rate_limit),
        )

    return _make


@pytest.fixture
def app(
    make_settings: Callable[..., Settings],
    store: InMemoryQuotaStore,
    downstream: RecordingDownstream,
    clock: FakeClock,
) -> FastAPI:
    return create_app(make_settings(), store=store, downstream=downstream, clock=clock)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create FastAPI test client."""
    return TestClient(app)
