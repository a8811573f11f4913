"""OpenAPI metadata customization.

Adds tag descriptions to the generated schema, keeping documentation
concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS_METADATA = [
    {
        "name": "Users",
        "description": "Tracked user ids and their cached profiles.",
    },
    {
        "name": "Relay",
        "description": "Forward JSON payloads to configured webhooks.",
    },
    {
        "name": "Health",
        "description": "Liveness checks.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags metadata."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        # Every route may answer 429 from the rate limiter
        for methods in schema.get("paths", {}).values():
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj.setdefault("responses", {}).setdefault(
                        "429", {"description": "Too many requests from this client"}
                    )

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
