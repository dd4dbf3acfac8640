"""OpenAPI customization.

Adds the bearer security scheme, tag descriptions, and documents the shared
429 response on every rate-limited operation.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_TAGS = [
    {"name": "Waitlist", "description": "Public waitlist signup (rate limited per IP)."},
    {"name": "Billing", "description": "Premium subscription checkout (per IP and per user)."},
    {"name": "Account", "description": "Current user lookup (rate limited per user)."},
    {"name": "Health", "description": "Liveness checks."},
]

_THROTTLED_RESPONSE = {
    "description": "Too many requests",
    "headers": {
        name: {"schema": {"type": "string"}}
        for name in ("X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After")
    },
    "content": {
        "application/json": {
            "schema": {
                "type": "object",
                "properties": {
                    "error": {"type": "string"},
                    "retryAfter": {"type": "integer"},
                    "resetTime": {"type": "string", "format": "date-time"},
                },
            }
        }
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation with security, tags and 429 docs."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        security_schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
        security_schemes.setdefault("BearerAuth", {"type": "http", "scheme": "bearer"})

        tags = schema.setdefault("tags", [])
        existing = {t.get("name") for t in tags}
        tags.extend(tag for tag in _TAGS if tag["name"] not in existing)

        for path, methods in schema.get("paths", {}).items():
            if path.endswith("/health"):
                continue
            for operation in methods.values():
                if isinstance(operation, dict):
                    operation.setdefault("responses", {}).setdefault("429", _THROTTLED_RESPONSE)
                    if not path.endswith("/waitlist"):
                        operation["security"] = [{"BearerAuth": []}]

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
