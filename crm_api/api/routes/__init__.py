from __future__ import annotations

from crm_api.api.routes.activities import router as activities_router
from crm_api.api.routes.admin import router as admin_router
from crm_api.api.routes.contacts import router as contacts_router
from crm_api.api.routes.gbp_profiles import router as gbp_profiles_router
from crm_api.api.routes.health import router as health_router
from crm_api.api.routes.organization import router as organization_router
from crm_api.api.routes.properties import router as properties_router

__all__ = [
    "activities_router",
    "admin_router",
    "contacts_router",
    "gbp_profiles_router",
    "health_router",
    "organization_router",
    "properties_router",
]
