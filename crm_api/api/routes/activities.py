"""Activity log for the caller's organization.

Activities embed a short summary of their contact and property. The acting
user is always the authenticated caller.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Request, status

from crm_api.adapters.store.base import Relation
from crm_api.core.auth import AuthContext, require_auth
from crm_api.core.errors import NotFoundAppError
from crm_api.core.rate_limit import RateLimit, UserRateLimit
from crm_api.core.responses import calculate_pagination, success_response
from crm_api.core.validation import validate, validate_query, validate_record_id
from crm_api.schemas.activity import (
    ActivityComplete,
    ActivityCreate,
    ActivityListParams,
    ActivityUpdate,
)
from crm_api.schemas.common import dump_values

router = APIRouter(prefix="/activities", tags=["Activities"])

TABLE = "activities"

RELATIONS = {
    "contact": Relation(
        table="contacts",
        foreign_key="contact_id",
        columns=("id", "first_name", "last_name", "company_name", "contact_type"),
    ),
    "property": Relation(
        table="properties",
        foreign_key="property_id",
        columns=("id", "name", "address_line_1", "locality", "administrative_area"),
    ),
}


def _not_found() -> NotFoundAppError:
    return NotFoundAppError(code="activity_not_found", message="Activity not found")


@router.get("", dependencies=[Depends(RateLimit("search"))])
async def list_activities(
    request: Request,
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    """List activities; filter by ``activityType``, ``contactId`` or ``propertyId``."""
    params = validate_query(ActivityListParams, request.query_params.multi_items())
    page = await auth.data.list(TABLE, params.to_query(RELATIONS))
    return success_response(
        page.items,
        pagination=calculate_pagination(params.page, params.limit, page.total),
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(UserRateLimit("create"))],
)
async def create_activity(
    payload: Annotated[dict[str, Any], Body()],
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    activity = validate(ActivityCreate, payload)
    values = {**dump_values(activity), "user_id": auth.user.id}
    row = await auth.data.insert(TABLE, values, relations=RELATIONS)
    return success_response(row, message="Activity created successfully")


@router.get("/{activity_id}", dependencies=[Depends(RateLimit("api"))])
async def get_activity(
    activity_id: str,
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    validate_record_id(activity_id)
    row = await auth.data.get(TABLE, activity_id, relations=RELATIONS)
    if row is None:
        raise _not_found()
    return success_response(row)


@router.patch("/{activity_id}", dependencies=[Depends(RateLimit("api"))])
async def update_activity(
    activity_id: str,
    payload: Annotated[dict[str, Any], Body()],
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    validate_record_id(activity_id)
    changes = validate(ActivityUpdate, payload)
    row = await auth.data.update(TABLE, activity_id, dump_values(changes, partial=True))
    if row is None:
        raise _not_found()
    return success_response(row, message="Activity updated successfully")


@router.delete("/{activity_id}", dependencies=[Depends(RateLimit("api"))])
async def delete_activity(
    activity_id: str,
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    validate_record_id(activity_id)
    if not await auth.data.delete(TABLE, activity_id):
        raise _not_found()
    return success_response(None, message="Activity deleted successfully")


@router.post("/{activity_id}/complete", dependencies=[Depends(RateLimit("api"))])
async def complete_activity(
    activity_id: str,
    auth: Annotated[AuthContext, Depends(require_auth)],
    payload: Annotated[dict[str, Any] | None, Body()] = None,
) -> dict:
    """Mark an activity done; ``completed_at`` defaults to now (UTC)."""
    validate_record_id(activity_id)
    completion = validate(ActivityComplete, payload or {})
    values = dump_values(completion)
    values.setdefault("completed_at", datetime.now(timezone.utc).isoformat())
    row = await auth.data.update(TABLE, activity_id, values)
    if row is None:
        raise _not_found()
    return success_response(row, message="Activity completed successfully")
