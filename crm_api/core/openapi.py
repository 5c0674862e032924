"""OpenAPI customization.

Adds the bearer security scheme, tag descriptions and the health-check
exemption to the generated schema.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS = [
    {"name": "Contacts", "description": "People and companies of the organization."},
    {"name": "Properties", "description": "Real estate managed by the organization."},
    {"name": "Activities", "description": "Calls, emails, meetings, notes, tasks and GBP syncs."},
    {
        "name": "GBP Profiles",
        "description": "Google Business Profile connections; OAuth tokens are write-only.",
    },
    {"name": "Organization", "description": "The caller's organization profile."},
    {"name": "Admin", "description": "Cross-tenant tooling; super admins only."},
    {"name": "Health", "description": "Liveness checks."},
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation.

    - Injects a ``BearerAuth`` HTTP bearer security scheme
    - Requires it on every operation, then exempts health endpoints with
      ``security: []``
    - Adds tags metadata if not present
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "BearerAuth",
            {
                "type": "http",
                "scheme": "bearer",
                "description": "Access token issued by the identity service.",
            },
        )
        schema.setdefault("security", [{"BearerAuth": []}])

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        tags.extend(tag for tag in TAGS if tag["name"] not in existing_tag_names)

        for path, methods in schema.get("paths", {}).items():
            if path.endswith("/health"):
                for method_obj in methods.values():
                    if isinstance(method_obj, dict):
                        method_obj["security"] = []

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
