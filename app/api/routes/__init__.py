from __future__ import annotations

from app.api.routes.health import router as health_router
from app.api.routes.proxy import router as proxy_router
from app.api.routes.token import router as token_router

__all__ = ["health_router", "proxy_router", "token_router"]
