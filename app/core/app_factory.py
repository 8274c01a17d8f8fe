"""Application factory for FastAPI app.

Centralizes app construction (settings, collaborators, middleware, handlers,
routers) so every component receives its configuration explicitly and tests
can build isolated apps with their own store, downstream client and clock.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.adapters.downstream import AbstractDownstreamClient, create_downstream_client
from app.adapters.quota_store import AbstractQuotaStore, create_quota_store
from app.adapters.rate_limit import SlidingWindowRateLimiter
from app.api.routes import health_router, proxy_router, token_router
from app.core.config import Settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.services.credentials import CredentialCodec
from app.services.gateway import AuthGateway
from app.services.identity import IdentityGenerator
from app.services.usage_tracker import UsageTracker

logger = logging.getLogger(__name__)


def build_gateway(
    app_settings: Settings,
    store: AbstractQuotaStore,
    *,
    clock: Callable[[], float] = time.time,
) -> AuthGateway:
    """Wire the gateway and its components from explicit settings."""
    rate_cfg = app_settings.rate_limit
    return AuthGateway(
        codec=CredentialCodec(app_settings.auth.jwt_secret),
        identities=IdentityGenerator(clock=clock),
        rate_limiter=SlidingWindowRateLimiter(
            store,
            max_requests=rate_cfg.max_requests,
            window_ms=rate_cfg.window_ms,
            fail_open=rate_cfg.fail_open,
        ),
        usage=UsageTracker(store, retention_days=app_settings.usage.retention_days),
        token_ttl_seconds=app_settings.auth.token_ttl_seconds,
        max_requests=rate_cfg.max_requests,
        window_ms=rate_cfg.window_ms,
        clock=clock,
    )


def create_app(
    app_settings: Settings | None = None,
    *,
    store: AbstractQuotaStore | None = None,
    downstream: AbstractDownstreamClient | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Resolved settings; loaded from environment when omitted.
        store: Quota store override; built from ``settings.store`` when omitted.
        downstream: Downstream client override; built from ``settings.downstream``
            when omitted.
        clock: Time source shared by every component.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    if app_settings is None:
        from app.core.config import settings as app_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(app_settings.log)

    quota_store = store if store is not None else create_quota_store(app_settings.store, clock=clock)
    downstream_client = (
        downstream if downstream is not None else create_downstream_client(app_settings.downstream)
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "app.startup",
            extra={
                "store_backend": type(quota_store).__name__,
                "max_requests": app_settings.rate_limit.max_requests,
                "window_ms": app_settings.rate_limit.window_ms,
                "fail_open": app_settings.rate_limit.fail_open,
            },
        )
        try:
            yield
        finally:
            await downstream_client.close()
            await quota_store.close()
            logger.info("app.shutdown")

    app = FastAPI(
        title="Anonymous Quota Gateway",
        description=(
            "Issues anonymous, HMAC-signed bearer tokens and proxies authenticated "
            "requests to an external JSON API under a per-identity sliding-window "
            "rate limit."
        ),
        version="0.1.0",
        debug=app_settings.app.debug,
        lifespan=lifespan,
    )

    app.state.settings = app_settings
    app.state.store = quota_store
    app.state.gateway = build_gateway(app_settings, quota_store, clock=clock)
    app.state.downstream = downstream_client

    # Middleware
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[app_settings.app.allowed_origin],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(token_router, prefix="/api")
    app.include_router(proxy_router, prefix="/api")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app)

    return app
