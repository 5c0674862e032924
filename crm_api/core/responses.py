"""Standard API response envelope.

Success: ``{"success": true, "data": ..., "message"?: ..., "pagination"?: {...}}``
Error:   ``{"success": false, "error": "..."}``
"""

from __future__ import annotations

import math
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Pagination(BaseModel):
    """Paging metadata for list endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(..., alias="totalPages")


class APIResponse(BaseModel, Generic[T]):
    """Success envelope; used as ``response_model`` for documentation."""

    success: bool = True
    data: T
    message: str | None = None
    pagination: Pagination | None = None


def calculate_pagination(page: int, limit: int, total: int) -> Pagination:
    """Build paging metadata; ``totalPages`` is ``ceil(total / limit)``."""
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit) if limit else 0,
    )


def success_response(
    data: Any,
    message: str | None = None,
    pagination: Pagination | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True, "data": data}
    if message is not None:
        body["message"] = message
    if pagination is not None:
        body["pagination"] = pagination.model_dump(by_alias=True)
    return body


def error_response(error: str, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": error}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body
