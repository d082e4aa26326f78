"""OpenAPI customization.

Enriches the generated schema with:
- Tags metadata
- Documented 429/503 responses on every throttled (``/v1``) operation

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

THROTTLED_PREFIX = "/v1/"

TAGS_METADATA = [
    {"name": "Users", "description": "Registration and login, throttled per client address."},
    {"name": "Self", "description": "Authenticated profile access, throttled per user."},
    {"name": "Health", "description": "Liveness and dependency checks."},
]

_THROTTLE_RESPONSES = {
    "429": {
        "description": "Rate limit exceeded",
        "headers": {
            "X-RateLimit-Limit": {
                "description": "Requests allowed per window",
                "schema": {"type": "integer"},
            },
            "X-RateLimit-Remaining": {
                "description": "Requests left in the current window",
                "schema": {"type": "integer"},
            },
        },
    },
    "503": {"description": "Rate limit store unavailable"},
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and throttling docs."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if not path.startswith(THROTTLED_PREFIX):
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    responses = method_obj.setdefault("responses", {})
                    for status_code, response in _THROTTLE_RESPONSES.items():
                        responses.setdefault(status_code, response)

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
