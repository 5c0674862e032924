"""Contact CRUD for the caller's organization."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Request, status

from crm_api.core.auth import AuthContext, require_auth
from crm_api.core.errors import NotFoundAppError
from crm_api.core.rate_limit import RateLimit, UserRateLimit
from crm_api.core.responses import calculate_pagination, success_response
from crm_api.core.validation import validate, validate_query, validate_record_id
from crm_api.schemas.common import dump_values
from crm_api.schemas.contact import ContactCreate, ContactListParams, ContactUpdate

router = APIRouter(prefix="/contacts", tags=["Contacts"])

TABLE = "contacts"


def _not_found() -> NotFoundAppError:
    return NotFoundAppError(code="contact_not_found", message="Contact not found")


@router.get("", dependencies=[Depends(RateLimit("search"))])
async def list_contacts(
    request: Request,
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    """List contacts with paging, ordering and an optional ``contactType`` filter."""
    params = validate_query(ContactListParams, request.query_params.multi_items())
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
async def create_contact(
    payload: Annotated[dict[str, Any], Body()],
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    contact = validate(ContactCreate, payload)
    row = await auth.data.insert(TABLE, dump_values(contact))
    return success_response(row, message="Contact created successfully")


@router.get("/{contact_id}", dependencies=[Depends(RateLimit("api"))])
async def get_contact(
    contact_id: str,
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    validate_record_id(contact_id)
    row = await auth.data.get(TABLE, contact_id)
    if row is None:
        raise _not_found()
    return success_response(row)


@router.patch("/{contact_id}", dependencies=[Depends(RateLimit("api"))])
async def update_contact(
    contact_id: str,
    payload: Annotated[dict[str, Any], Body()],
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    validate_record_id(contact_id)
    changes = validate(ContactUpdate, payload)
    row = await auth.data.update(TABLE, contact_id, dump_values(changes, partial=True))
    if row is None:
        raise _not_found()
    return success_response(row, message="Contact updated successfully")


@router.delete("/{contact_id}", dependencies=[Depends(RateLimit("api"))])
async def delete_contact(
    contact_id: str,
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    validate_record_id(contact_id)
    if not await auth.data.delete(TABLE, contact_id):
        raise _not_found()
    return success_response(None, message="Contact deleted successfully")
