"""OpenAPI schema additions: bearer scheme, tag descriptions, public paths."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

SECURITY_SCHEME_NAME = "AnonymousBearer"

# Callable without a bearer token
PUBLIC_PATHS = ("/health", "/health/ready", "/api/token")

TAGS_METADATA = (
    {"name": "Token", "description": "Anonymous credential issuance and inspection."},
    {"name": "Proxy", "description": "Authenticated, rate-limited access to the external service."},
    {"name": "Health", "description": "Liveness and quota store readiness."},
)


def _add_security_scheme(schema: Dict[str, Any]) -> None:
    schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
    schemes.setdefault(
        SECURITY_SCHEME_NAME,
        {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "Token returned by POST /api/token, valid for 30 days by default.",
        },
    )
    schema.setdefault("security", [{SECURITY_SCHEME_NAME: []}])


def _add_tags(schema: Dict[str, Any]) -> None:
    tags = schema.setdefault("tags", [])
    known = {tag.get("name") for tag in tags}
    tags.extend(dict(tag) for tag in TAGS_METADATA if tag["name"] not in known)


def _exempt_public_paths(schema: Dict[str, Any]) -> None:
    for path, operations in schema.get("paths", {}).items():
        if path not in PUBLIC_PATHS:
            continue
        for operation in operations.values():
            if isinstance(operation, dict):
                operation["security"] = []


def apply_openapi_customizations(app: FastAPI) -> None:
    """Wrap ``app.openapi`` so the generated schema documents bearer auth."""

    generate = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = generate()
        _add_security_scheme(schema)
        _add_tags(schema)
        _exempt_public_paths(schema)
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
