"""The caller's own organization profile."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends

from crm_api.core.auth import AuthContext, require_auth
from crm_api.core.errors import NotFoundAppError
from crm_api.core.rate_limit import RateLimit
from crm_api.core.responses import success_response
from crm_api.core.validation import validate
from crm_api.schemas.common import dump_values
from crm_api.schemas.organization import OrganizationUpdate

router = APIRouter(
    prefix="/organization",
    tags=["Organization"],
    dependencies=[Depends(RateLimit("api"))],
)


def _not_found() -> NotFoundAppError:
    return NotFoundAppError(code="organization_not_found", message="Organization not found")


@router.get("")
async def get_organization(auth: Annotated[AuthContext, Depends(require_auth)]) -> dict:
    row = await auth.data.get_organization()
    if row is None:
        raise _not_found()
    return success_response(row)


@router.patch("")
async def update_organization(
    payload: Annotated[dict[str, Any], Body()],
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    changes = validate(OrganizationUpdate, payload)
    row = await auth.data.update_organization(dump_values(changes, partial=True))
    if row is None:
        raise _not_found()
    return success_response(row, message="Organization updated successfully")
