"""Property CRUD for the caller's organization."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Request, status

from crm_api.core.auth import AuthContext, require_auth
from crm_api.core.errors import NotFoundAppError
from crm_api.core.rate_limit import RateLimit, UserRateLimit
from crm_api.core.responses import calculate_pagination, success_response
from crm_api.core.validation import validate, validate_query, validate_record_id
from crm_api.schemas.common import dump_values
from crm_api.schemas.property import PropertyCreate, PropertyListParams, PropertyUpdate

router = APIRouter(prefix="/properties", tags=["Properties"])

TABLE = "properties"


def _not_found() -> NotFoundAppError:
    return NotFoundAppError(code="property_not_found", message="Property not found")


@router.get("", dependencies=[Depends(RateLimit("search"))])
async def list_properties(
    request: Request,
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    params = validate_query(PropertyListParams, request.query_params.multi_items())
    page = await auth.data.list(TABLE, params.to_query())
    return success_response(
        page.items,
        pagination=calculate_pagination(params.page, params.limit, page.total),
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(UserRateLimit("create"))],
)
async def create_property(
    payload: Annotated[dict[str, Any], Body()],
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    prop = validate(PropertyCreate, payload)
    row = await auth.data.insert(TABLE, dump_values(prop))
    return success_response(row, message="Property created successfully")


@router.get("/{property_id}", dependencies=[Depends(RateLimit("api"))])
async def get_property(
    property_id: str,
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    validate_record_id(property_id)
    row = await auth.data.get(TABLE, property_id)
    if row is None:
        raise _not_found()
    return success_response(row)


@router.patch("/{property_id}", dependencies=[Depends(RateLimit("api"))])
async def update_property(
    property_id: str,
    payload: Annotated[dict[str, Any], Body()],
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    validate_record_id(property_id)
    changes = validate(PropertyUpdate, payload)
    row = await auth.data.update(TABLE, property_id, dump_values(changes, partial=True))
    if row is None:
        raise _not_found()
    return success_response(row, message="Property updated successfully")


@router.delete("/{property_id}", dependencies=[Depends(RateLimit("api"))])
async def delete_property(
    property_id: str,
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    validate_record_id(property_id)
    if not await auth.data.delete(TABLE, property_id):
        raise _not_found()
    return success_response(None, message="Property deleted successfully")
