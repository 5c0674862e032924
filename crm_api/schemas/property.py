"""Property request schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from crm_api.schemas.common import ListParams, RecordId

PropertyType = Literal["retail", "office", "industrial", "residential", "mixed_use", "land"]

MIN_YEAR_BUILT = 1800


class PropertyFields(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    property_type: PropertyType | None = None
    address_line_1: str | None = Field(default=None, min_length=1, max_length=255)
    address_line_2: str | None = Field(default=None, max_length=255)
    locality: str | None = Field(default=None, min_length=1, max_length=100)
    administrative_area: str | None = Field(default=None, min_length=1, max_length=100)
    postal_code: str | None = Field(default=None, min_length=1, max_length=20)
    country_code: str | None = Field(default=None, pattern=r"^[A-Z]{2}$")
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    square_feet: int | None = Field(default=None, gt=0)
    lot_size: float | None = Field(default=None, gt=0)
    year_built: int | None = None
    purchase_price: float | None = Field(default=None, gt=0)
    current_value: float | None = Field(default=None, gt=0)
    owner_contact_id: RecordId | None = None
    manager_contact_id: RecordId | None = None
    tags: list[str] | None = None
    custom_fields: dict[str, Any] | None = None

    @field_validator("year_built")
    @classmethod
    def check_year_built(cls, value: int | None) -> int | None:
        if value is None:
            return value
        latest = datetime.now().year + 5
        if not MIN_YEAR_BUILT <= value <= latest:
            raise ValueError(f"must be between {MIN_YEAR_BUILT} and {latest}")
        return value


class PropertyCreate(PropertyFields):
    """New property; the street address is required."""

    address_line_1: str = Field(..., min_length=1, max_length=255)
    locality: str = Field(..., min_length=1, max_length=100)
    administrative_area: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country_code: str | None = Field(default="US", pattern=r"^[A-Z]{2}$")
    tags: list[str] = Field(default_factory=list)


class PropertyUpdate(PropertyFields):
    pass


class PropertyListParams(ListParams):
    SORT_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"created_at", "updated_at", "name", "square_feet", "current_value", "year_built"}
    )

    property_type: PropertyType | None = Field(
        default=None,
        validation_alias=AliasChoices("propertyType", "property_type"),
    )

    def filters(self) -> dict[str, Any]:
        return {"property_type": self.property_type} if self.property_type else {}
