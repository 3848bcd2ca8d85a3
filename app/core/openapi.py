"""OpenAPI metadata and customization utilities.

Adds tags metadata and documents the optional ``X-API-Key`` header used as a
fallback for the ``apiKey`` body field. Health endpoints are marked as not
needing a key.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS_METADATA = [
    {
        "name": "Registry",
        "description": (
            "Company and financial lookups forwarded to the Checko registry. "
            "Each successful lookup spends one unit of the API key's daily quota."
        ),
    },
    {
        "name": "Health",
        "description": "Liveness checks.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and the key scheme."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "RegistryApiKey",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": (
                    "Checko API key. Used when the request body has no apiKey field."
                ),
            },
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                if path.endswith("/health"):
                    method_obj["security"] = []
                else:
                    method_obj.setdefault("security", [{}, {"RegistryApiKey": []}])

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
