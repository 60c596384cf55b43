# attendance_hub/schemas/meeting.py
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class EventCategory(str, Enum):
    """
    Closed set of meeting categories.

    Category-dependent behavior goes through the mapping tables below
    (`CATEGORY_CONTEXT_FIELDS`, `CATEGORY_LABELS`) so that every category is
    handled in exactly one place.
    """

    CELL_GROUP = "cell_group"
    PRAYER = "prayer"
    MINISTRY = "ministry"
    SERVICE = "service"
    CLASS = "class"
    OTHER = "other"

    @property
    def context_field(self) -> str | None:
        return CATEGORY_CONTEXT_FIELDS[self]

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


# Which context reference each category must carry (None = no context).
CATEGORY_CONTEXT_FIELDS: dict[EventCategory, str | None] = {
    EventCategory.CELL_GROUP: "cell_group_id",
    EventCategory.PRAYER: None,
    EventCategory.MINISTRY: "ministry_id",
    EventCategory.SERVICE: None,
    EventCategory.CLASS: "class_id",
    EventCategory.OTHER: None,
}

CATEGORY_LABELS: dict[EventCategory, str] = {
    EventCategory.CELL_GROUP: "Cell Group Meeting",
    EventCategory.PRAYER: "Prayer Meeting",
    EventCategory.MINISTRY: "Ministry Meeting",
    EventCategory.SERVICE: "Church Service",
    EventCategory.CLASS: "Class Session",
    EventCategory.OTHER: "Other Event",
}

CONTEXT_FIELDS = ("cell_group_id", "ministry_id", "class_id")


class RecurrencePattern(str, Enum):
    """
    Supported stepping rules for recurring meetings.
    """

    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class MeetingBase(BaseModel):
    """
    Attributes shared by every instance of a (possibly recurring) meeting.
    """

    event_category: EventCategory = Field(
        ...,
        description="Category of the meeting; decides which context reference is required.",
        examples=["cell_group"],
    )
    meeting_type: str = Field(
        "regular",
        description="Free-form meeting type (regular, special, ...).",
        examples=["regular"],
    )
    topic: str = Field(..., min_length=1, examples=["Sunday Fellowship"])
    location: str = Field(..., min_length=1, examples=["Main Hall"])
    notes: str | None = Field(None, description="Optional notes.")
    offering: float | None = Field(
        None,
        ge=0,
        description="Offering amount collected, if any.",
        examples=[150000.0],
    )
    cell_group_id: str | None = Field(None, description="Context reference for cell group meetings.")
    ministry_id: str | None = Field(None, description="Context reference for ministry meetings.")
    class_id: str | None = Field(None, description="Context reference for class sessions.")
    is_realtime: bool = Field(
        False,
        description="Whether the meeting is meant to be tracked live.",
    )

    @model_validator(mode="after")
    def _check_context_reference(self) -> "MeetingBase":
        required = self.event_category.context_field
        if required is not None and not getattr(self, required):
            raise ValueError(
                f"{required} is required for {self.event_category.value} meetings"
            )
        for field_name in CONTEXT_FIELDS:
            if field_name != required and getattr(self, field_name):
                raise ValueError(
                    f"{field_name} is not allowed for {self.event_category.value} meetings"
                )
        return self


class MeetingCreate(MeetingBase):
    """
    A single concrete meeting instance, pinned to one date.
    """

    meeting_date: date = Field(..., examples=["2025-01-08"])


class MeetingRead(MeetingCreate):
    """
    Public representation of a persisted meeting.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Identifier assigned by the backend.")
    live_checkin_active: bool = False
    live_checkin_expires_at: datetime | None = None
    created_at: datetime | None = None


class MeetingBatchCreated(BaseModel):
    """
    Response of `POST /attendance/meetings`.
    """

    created_count: int = Field(..., ge=0, examples=[5])
    ids: list[str] = Field(default_factory=list)


class MeetingRecurrenceRule(BaseModel):
    """
    Transient description of a recurring meeting, expanded at submission time.

    The rule itself is never persisted; only its generated instances are.
    """

    start_date: date
    end_date: date
    pattern: RecurrencePattern
    base_record: MeetingBase
