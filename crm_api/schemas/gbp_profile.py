"""Google Business Profile (GBP) connection schemas.

A profile links the organization to one GBP account/location. OAuth tokens
are written through :class:`GBPTokensUpdate` only and are never echoed back.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from crm_api.schemas.common import ListParams
from crm_api.schemas.organization import BusinessStatus

TOKEN_FIELDS = ("access_token", "refresh_token")


class GBPProfileFields(BaseModel):
    model_config = ConfigDict(extra="ignore")

    account_id: str | None = Field(default=None, min_length=1, max_length=255)
    location_id: str | None = Field(default=None, max_length=255)
    account_name: str | None = Field(default=None, max_length=255)
    location_name: str | None = Field(default=None, max_length=255)
    verification_status: BusinessStatus | None = None
    last_sync_at: datetime | None = None
    sync_enabled: bool | None = None
    profile_data: dict[str, Any] | None = None


class GBPProfileCreate(GBPProfileFields):
    """New connection; tokens may be supplied up front."""

    account_id: str = Field(..., min_length=1, max_length=255)
    verification_status: BusinessStatus = "pending"
    sync_enabled: bool = True
    access_token: str | None = Field(default=None, min_length=1)
    refresh_token: str | None = Field(default=None, min_length=1)
    token_expires_at: datetime | None = None


class GBPProfileUpdate(GBPProfileFields):
    """Partial update of profile metadata; token fields are ignored here."""


class GBPTokensUpdate(BaseModel):
    """Body of ``PUT /gbp-profiles/{id}/tokens`` after an OAuth refresh."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(..., min_length=1)
    refresh_token: str | None = Field(default=None, min_length=1)
    token_expires_at: datetime


class GBPProfileListParams(ListParams):
    SORT_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"created_at", "updated_at", "last_sync_at", "account_name", "location_name"}
    )

    verification_status: BusinessStatus | None = Field(
        default=None,
        validation_alias=AliasChoices("verificationStatus", "verification_status"),
    )
    sync_enabled: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("syncEnabled", "sync_enabled"),
    )

    def filters(self) -> dict[str, Any]:
        candidates = {
            "verification_status": self.verification_status,
            "sync_enabled": self.sync_enabled,
        }
        return {column: value for column, value in candidates.items() if value is not None}


def redact_tokens(row: dict[str, Any]) -> dict[str, Any]:
    """Replace stored OAuth tokens with ``has_<token>`` presence flags.

    Examples:
        >>> redact_tokens({"id": "p1", "access_token": "secret", "refresh_token": None})
        {'id': 'p1', 'has_access_token': True, 'has_refresh_token': False}
    """
    public = {k: v for k, v in row.items() if k not in TOKEN_FIELDS}
    for name in TOKEN_FIELDS:
        public[f"has_{name}"] = bool(row.get(name))
    return public
