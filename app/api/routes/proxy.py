import json
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.adapters.downstream.base import AbstractDownstreamClient
from app.core.errors import ValidationAppError
from app.core.rate_limit import enforce_rate_limit
from app.services.gateway import Admission

router = APIRouter(tags=["Proxy"])


def get_downstream(request: Request) -> AbstractDownstreamClient:
    return request.app.state.downstream


@router.post("/external-service")
async def call_external_service(
    request: Request,
    admission: Annotated[Admission, Depends(enforce_rate_limit)],
    downstream: Annotated[AbstractDownstreamClient, Depends(get_downstream)],
) -> JSONResponse:
    """Forward the JSON body to the external service for an admitted identity.

    Authentication and quota are enforced by ``enforce_rate_limit`` before
    the body is read.

    Returns:
        JSONResponse: Downstream status code and body.

    Raises:
        ValidationAppError: 400 if the request body is not valid JSON.
        DownstreamAppError: 503 if the downstream call fails.
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationAppError(
            code="invalid_json",
            message="Invalid JSON in request body",
        ) from exc

    result = await downstream.forward(payload, identity=admission.identity)

    headers = {
        "X-RateLimit-Limit": str(admission.rate_limit.limit),
        "X-RateLimit-Remaining": str(admission.rate_limit.remaining),
        "X-RateLimit-Reset": str(admission.rate_limit.reset_at),
    }
    return JSONResponse(status_code=result.status_code, content=result.body, headers=headers)
