"""Shared request schemas: list parameters and reusable field groups."""

from __future__ import annotations

from typing import Annotated, Any, ClassVar, Literal

from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field, field_validator

from crm_api.adapters.store.base import ListQuery, Relation
from crm_api.core.validation import INVALID_UUID_MESSAGE, is_valid_uuid

COUNTRY_CODE_PATTERN = r"^[A-Z]{2}$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
URL_PATTERN = r"^https?://\S+$"


def check_record_id(value: str) -> str:
    if not is_valid_uuid(value):
        raise ValueError(INVALID_UUID_MESSAGE)
    return value


# Reference to another row (contact, property, ...).
RecordId = Annotated[str, AfterValidator(check_record_id)]


class ListParams(BaseModel):
    """Paging and ordering for list endpoints.

    Both camelCase (``sortBy``, ``sortOrder``) and snake_case (``sort_by``,
    ``sort_direction``) spellings are accepted. Unknown parameters are
    ignored.
    """

    model_config = ConfigDict(extra="ignore")

    SORT_FIELDS: ClassVar[frozenset[str]] = frozenset({"created_at", "updated_at"})

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=100)
    sort_by: str = Field(
        default="created_at",
        validation_alias=AliasChoices("sortBy", "sort_by"),
    )
    sort_order: Literal["asc", "desc"] = Field(
        default="desc",
        validation_alias=AliasChoices("sortOrder", "sort_direction", "sort_order"),
    )

    @field_validator("sort_by")
    @classmethod
    def check_sort_field(cls, value: str) -> str:
        if value not in cls.SORT_FIELDS:
            raise ValueError(f"must be one of: {', '.join(sorted(cls.SORT_FIELDS))}")
        return value

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def ascending(self) -> bool:
        return self.sort_order == "asc"

    def filters(self) -> dict[str, Any]:
        """Equality filters to apply; resources override this."""
        return {}

    def to_query(self, relations: dict[str, Relation] | None = None) -> ListQuery:
        return ListQuery(
            filters=self.filters(),
            sort_by=self.sort_by,
            ascending=self.ascending,
            offset=self.offset,
            limit=self.limit,
            relations=relations or {},
        )


class PageParams(BaseModel):
    """Plain paging (admin listings)."""

    model_config = ConfigDict(extra="ignore")

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class AddressFields(BaseModel):
    """Postal address columns shared by contacts and organizations."""

    address_line_1: str | None = Field(default=None, max_length=255)
    address_line_2: str | None = Field(default=None, max_length=255)
    locality: str | None = Field(default=None, max_length=100)
    administrative_area: str | None = Field(default=None, max_length=100)
    postal_code: str | None = Field(default=None, max_length=20)
    country_code: str | None = Field(default=None, pattern=COUNTRY_CODE_PATTERN)


def dump_values(model: BaseModel, *, partial: bool = False) -> dict[str, Any]:
    """Serialize a validated body to store columns.

    Creates drop unset optional fields; updates keep only fields the client sent.
    """
    if partial:
        return model.model_dump(mode="json", exclude_unset=True)
    return model.model_dump(mode="json", exclude_none=True)
