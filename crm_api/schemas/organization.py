"""Organization profile schemas (tenant self-service and admin views)."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from crm_api.schemas.common import EMAIL_PATTERN, URL_PATTERN, AddressFields

BusinessStatus = Literal["pending", "verified", "suspended", "disabled"]


class OrganizationUpdate(AddressFields):
    """Fields a tenant may change on its own organization.

    Google Business Profile identifiers are included; plan and billing
    columns are not writable here.
    """

    model_config = ConfigDict(extra="ignore")

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    website_url: str | None = Field(default=None, max_length=2048, pattern=URL_PATTERN)
    phone: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    gbp_account_id: str | None = None
    gbp_location_id: str | None = None
    business_status: BusinessStatus | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    primary_category: str | None = None
    additional_categories: list[str] | None = None
    business_hours: dict[str, Any] | None = None
    social_profiles: dict[str, str] | None = None


class OrganizationSearchParams(BaseModel):
    model_config = ConfigDict(extra="ignore")

    q: str = Field(..., min_length=1, max_length=255)
    limit: int = Field(default=20, ge=1, le=100)
