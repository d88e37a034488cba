"""OpenAPI metadata and customization utilities.

Provides a helper to enrich the generated OpenAPI schema with:
- Tags metadata
- The admin shared-secret security scheme (``X-Admin-Password``), attached
  only to operations guarded by ``verify_admin``
- The 429 response documented on the rate-limited intake operation

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from app.core.auth import ADMIN_PASSWORD_HEADER

ADMIN_OPERATIONS: frozenset[tuple[str, str]] = frozenset(
    {
        ("/api/submissions/{submission_id}", "patch"),
        ("/api/admin/verify", "get"),
    }
)

RATE_LIMITED_OPERATIONS: frozenset[tuple[str, str]] = frozenset(
    {("/api/submissions", "post")}
)


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and security."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "AdminPassword",
            {
                "type": "apiKey",
                "in": "header",
                "name": ADMIN_PASSWORD_HEADER,
                "description": "Shared admin password required for review operations.",
            },
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": "Submissions",
                "description": "Incident report intake, listing and review.",
            },
            {
                "name": "Admin",
                "description": "Administrator session checks.",
            },
            {
                "name": "Health",
                "description": "Liveness checks.",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            for method, operation in methods.items():
                if not isinstance(operation, dict):
                    continue
                if (path, method) in ADMIN_OPERATIONS:
                    operation["security"] = [{"AdminPassword": []}]
                if (path, method) in RATE_LIMITED_OPERATIONS:
                    operation.setdefault("responses", {}).setdefault(
                        "429",
                        {"description": "Submission limit reached; retry after reset_time."},
                    )

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
