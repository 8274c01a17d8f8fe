from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.core.errors import QuotaStoreError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

PROBE_KEY = "health:probe"


@router.get("/health")
def health_check() -> dict:
    """Liveness: the process is up and serving."""

    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(request: Request) -> JSONResponse:
    """Readiness: the quota store answers a read.

    Admission keeps working against a failing store when the limiter fails
    open, so this only reports the condition; it does not gate traffic.
    """

    store = request.app.state.store
    try:
        await store.get(PROBE_KEY)
    except QuotaStoreError as exc:
        logger.warning("health.store_unreachable", extra={"error_type": type(exc).__name__})
        return JSONResponse(status_code=503, content={"status": "degraded", "store": "unreachable"})

    return JSONResponse(status_code=200, content={"status": "ok", "store": "reachable"})
