"""Activity request schemas.

``user_id`` is never accepted from the body; routes stamp it from the
authenticated caller.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from crm_api.schemas.common import ListParams, RecordId

ActivityType = Literal["call", "email", "meeting", "note", "task", "gbp_sync"]


class ActivityFields(BaseModel):
    model_config = ConfigDict(extra="ignore")

    activity_type: ActivityType | None = None
    subject: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    contact_id: RecordId | None = None
    property_id: RecordId | None = None
    scheduled_at: datetime | None = None
    completed_at: datetime | None = None
    duration_minutes: int | None = Field(default=None, gt=0)
    gbp_post_id: str | None = None
    gbp_review_id: str | None = None
    gbp_message_id: str | None = None
    tags: list[str] | None = None
    attachments: list[dict[str, Any]] | None = None


class ActivityCreate(ActivityFields):
    activity_type: ActivityType
    subject: str = Field(..., min_length=1, max_length=500)
    tags: list[str] = Field(default_factory=list)


class ActivityUpdate(ActivityFields):
    """Partial update; fields the client omits are left unchanged."""


class ActivityComplete(BaseModel):
    """Body of ``POST /activities/{id}/complete``; all fields optional."""

    model_config = ConfigDict(extra="ignore")

    completed_at: datetime | None = None
    duration_minutes: int | None = Field(default=None, gt=0)
    description: str | None = None


class ActivityListParams(ListParams):
    SORT_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"created_at", "updated_at", "scheduled_at", "completed_at", "activity_type", "subject"}
    )

    activity_type: ActivityType | None = Field(
        default=None,
        validation_alias=AliasChoices("activityType", "activity_type"),
    )
    contact_id: RecordId | None = Field(
        default=None,
        validation_alias=AliasChoices("contactId", "contact_id"),
    )
    property_id: RecordId | None = Field(
        default=None,
        validation_alias=AliasChoices("propertyId", "property_id"),
    )

    def filters(self) -> dict[str, Any]:
        candidates = {
            "activity_type": self.activity_type,
            "contact_id": self.contact_id,
            "property_id": self.property_id,
        }
        return {column: value for column, value in candidates.items() if value}
