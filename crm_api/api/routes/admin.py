"""Super-admin tooling across all tenants.

Every route requires super-admin access and is rate limited per IP and per
user under the ``admin`` tier. These handlers use the unscoped store.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from crm_api.adapters.identity.base import AuthUser
from crm_api.adapters.store.base import TENANT_TABLES, AbstractDataStore
from crm_api.api.deps import get_data_store
from crm_api.core.auth import require_system_admin
from crm_api.core.errors import NotFoundAppError, ValidationAppError
from crm_api.core.rate_limit import UserRateLimit
from crm_api.core.responses import calculate_pagination, success_response
from crm_api.core.validation import validate_query
from crm_api.schemas.common import PageParams
from crm_api.schemas.organization import OrganizationSearchParams

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(UserRateLimit("admin")), Depends(require_system_admin)],
)

Store = Annotated[AbstractDataStore, Depends(get_data_store)]


@router.get("/stats")
async def get_system_stats(store: Store) -> dict:
    return success_response(await store.system_stats())


@router.get("/organizations")
async def list_organizations(request: Request, store: Store) -> dict:
    params = validate_query(PageParams, request.query_params.multi_items())
    page = await store.list_organizations(offset=params.offset, limit=params.limit)
    return success_response(
        page.items,
        pagination=calculate_pagination(params.page, params.limit, page.total),
    )


@router.get("/organizations/search")
async def search_organizations(request: Request, store: Store) -> dict:
    """Case-insensitive match on name, email or phone."""
    params = validate_query(OrganizationSearchParams, request.query_params.multi_items())
    return success_response(await store.search_organizations(params.q, limit=params.limit))


@router.get("/organizations/{organization_id}")
async def get_organization(organization_id: str, store: Store) -> dict:
    """One organization plus contact, property, activity and user counts."""
    row = await store.get_organization(organization_id)
    if row is None:
        raise NotFoundAppError(code="organization_not_found", message="Organization not found")
    stats = {
        table: await store.count(table, organization_id=organization_id)
        for table in (*TENANT_TABLES, "users")
    }
    return success_response({**row, "stats": stats})


@router.get("/users")
async def list_users(request: Request, store: Store) -> dict:
    params = validate_query(PageParams, request.query_params.multi_items())
    page = await store.list_users(offset=params.offset, limit=params.limit)
    return success_response(
        page.items,
        pagination=calculate_pagination(params.page, params.limit, page.total),
    )


@router.post("/users/{user_id}/super-admin")
async def grant_super_admin(
    user_id: str,
    store: Store,
    admin: Annotated[AuthUser, Depends(require_system_admin)],
) -> dict:
    await store.set_super_admin(user_id, True)
    logger.info("admin.super_admin_granted", extra={"target_user_id": user_id})
    return success_response(None, message="Super admin access granted")


@router.delete("/users/{user_id}/super-admin")
async def revoke_super_admin(
    user_id: str,
    store: Store,
    admin: Annotated[AuthUser, Depends(require_system_admin)],
) -> dict:
    if user_id == admin.id:
        raise ValidationAppError(
            code="cannot_revoke_self",
            message="Cannot revoke your own super admin access",
        )
    await store.set_super_admin(user_id, False)
    logger.info("admin.super_admin_revoked", extra={"target_user_id": user_id})
    return success_response(None, message="Super admin access revoked")
