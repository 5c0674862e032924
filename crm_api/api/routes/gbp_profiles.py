"""Google Business Profile connections for the caller's organization.

Stored OAuth tokens never leave the API: responses carry ``has_access_token``
/ ``has_refresh_token`` flags instead.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Request, status

from crm_api.core.auth import AuthContext, require_auth
from crm_api.core.errors import NotFoundAppError
from crm_api.core.rate_limit import RateLimit, UserRateLimit
from crm_api.core.responses import calculate_pagination, success_response
from crm_api.core.validation import validate, validate_query, validate_record_id
from crm_api.schemas.common import dump_values
from crm_api.schemas.gbp_profile import (
    GBPProfileCreate,
    GBPProfileListParams,
    GBPProfileUpdate,
    GBPTokensUpdate,
    redact_tokens,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/gbp-profiles", tags=["GBP Profiles"])

TABLE = "gbp_profiles"


def _not_found() -> NotFoundAppError:
    return NotFoundAppError(code="gbp_profile_not_found", message="GBP profile not found")


@router.get("", dependencies=[Depends(RateLimit("search"))])
async def list_gbp_profiles(
    request: Request,
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    """List connections; filter by ``verificationStatus`` or ``syncEnabled``."""
    params = validate_query(GBPProfileListParams, request.query_params.multi_items())
    page = await auth.data.list(TABLE, params.to_query())
    return success_response(
        [redact_tokens(row) for row in page.items],
        pagination=calculate_pagination(params.page, params.limit, page.total),
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(UserRateLimit("create"))],
)
async def create_gbp_profile(
    payload: Annotated[dict[str, Any], Body()],
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    profile = validate(GBPProfileCreate, payload)
    row = await auth.data.insert(TABLE, dump_values(profile))
    return success_response(redact_tokens(row), message="GBP profile created successfully")


@router.get("/{profile_id}", dependencies=[Depends(RateLimit("api"))])
async def get_gbp_profile(
    profile_id: str,
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    validate_record_id(profile_id)
    row = await auth.data.get(TABLE, profile_id)
    if row is None:
        raise _not_found()
    return success_response(redact_tokens(row))


@router.patch("/{profile_id}", dependencies=[Depends(RateLimit("api"))])
async def update_gbp_profile(
    profile_id: str,
    payload: Annotated[dict[str, Any], Body()],
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    validate_record_id(profile_id)
    changes = validate(GBPProfileUpdate, payload)
    row = await auth.data.update(TABLE, profile_id, dump_values(changes, partial=True))
    if row is None:
        raise _not_found()
    return success_response(redact_tokens(row), message="GBP profile updated successfully")


@router.put("/{profile_id}/tokens", dependencies=[Depends(UserRateLimit("api"))])
async def update_gbp_tokens(
    profile_id: str,
    payload: Annotated[dict[str, Any], Body()],
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    """Store refreshed OAuth tokens; an omitted ``refresh_token`` keeps the old one."""
    validate_record_id(profile_id)
    tokens = validate(GBPTokensUpdate, payload)
    row = await auth.data.update(TABLE, profile_id, dump_values(tokens))
    if row is None:
        raise _not_found()
    logger.info("gbp.tokens_updated", extra={"profile_id": profile_id})
    return success_response(redact_tokens(row), message="GBP tokens updated successfully")


@router.delete("/{profile_id}", dependencies=[Depends(RateLimit("api"))])
async def delete_gbp_profile(
    profile_id: str,
    auth: Annotated[AuthContext, Depends(require_auth)],
) -> dict:
    validate_record_id(profile_id)
    if not await auth.data.delete(TABLE, profile_id):
        raise _not_found()
    return success_response(None, message="GBP profile deleted successfully")
