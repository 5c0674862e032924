"""Contact request schemas."""

from __future__ import annotations

from typing import Any, ClassVar, Literal

from pydantic import AliasChoices, ConfigDict, Field, model_validator

from crm_api.schemas.common import (
    EMAIL_PATTERN,
    URL_PATTERN,
    AddressFields,
    ListParams,
    RecordId,
)

ContactType = Literal["person", "company"]


class ContactFields(AddressFields):
    """Columns a client may write on a contact."""

    model_config = ConfigDict(extra="ignore")

    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    company_name: str | None = Field(default=None, max_length=255)
    title: str | None = Field(default=None, max_length=100)
    email: str | None = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    phone: str | None = Field(default=None, max_length=50)
    website_url: str | None = Field(default=None, max_length=2048, pattern=URL_PATTERN)
    social_profiles: dict[str, str] | None = None
    notes: str | None = None
    tags: list[str] | None = None
    company_id: RecordId | None = None


class ContactCreate(ContactFields):
    """New contact.

    A person needs a first or last name; a company needs a company name.
    """

    contact_type: ContactType = "person"
    country_code: str | None = Field(default="US", pattern=r"^[A-Z]{2}$")
    tags: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_name_for_type(self) -> "ContactCreate":
        if self.contact_type == "person" and not (self.first_name or self.last_name):
            raise ValueError("Person contacts require first_name or last_name")
        if self.contact_type == "company" and not self.company_name:
            raise ValueError("Company contacts require company_name")
        return self


class ContactUpdate(ContactFields):
    """Partial update; only fields present in the body are written."""

    contact_type: ContactType | None = None


class ContactListParams(ListParams):
    SORT_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"created_at", "updated_at", "first_name", "last_name", "company_name", "email"}
    )

    contact_type: ContactType | None = Field(
        default=None,
        validation_alias=AliasChoices("contactType", "contact_type"),
    )

    def filters(self) -> dict[str, Any]:
        return {"contact_type": self.contact_type} if self.contact_type else {}
