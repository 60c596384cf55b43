# attendance_hub/schemas/live_status.py
from __future__ import annotations

from datetime import date, datetime, timezone

from pydantic import BaseModel, Field

from attendance_hub.schemas.meeting import EventCategory

EXPIRED_REASON = "Live attendance has expired"
INACTIVE_REASON = "Please enable live attendance for this meeting first"


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class LiveAttendanceToggle(BaseModel):
    """
    Request body of `PATCH /attendance/meetings/{id}/live-attendance`.
    """

    active: bool = Field(..., description="Enable (true) or disable (false) live check-in.")
    expires_at: datetime | None = Field(
        None,
        description=(
            "When the live window closes. If omitted while enabling, the "
            "service applies its default window."
        ),
    )


class LiveStatusRead(BaseModel):
    """
    Response of `GET /attendance/meetings/{id}/live-status`.
    """

    id: str
    topic: str
    meeting_date: date
    location: str
    event_category: EventCategory
    live_checkin_active: bool = Field(..., description="Raw activation flag as stored.")
    live_checkin_expires_at: datetime | None = None
    is_active: bool = Field(
        ...,
        description="True when the flag is set and the window has not expired.",
    )
    is_expired: bool = Field(
        ...,
        description="True when the flag is set but the window has passed.",
    )


class LiveMeetingStatus(BaseModel):
    """
    Client-side view of a meeting's live check-in state.

    Check-in is permitted only while `active` is true and the expiry (if
    any) lies in the future.
    """

    active: bool
    expires_at: datetime | None = None
    expired: bool = Field(
        False,
        description="Expiry as already observed by the backend clock.",
    )

    @classmethod
    def from_status(cls, status: LiveStatusRead) -> "LiveMeetingStatus":
        return cls(
            active=status.live_checkin_active,
            expires_at=status.live_checkin_expires_at,
            expired=status.is_expired,
        )

    def is_expired(self, now: datetime) -> bool:
        if self.expired:
            return True
        if self.expires_at is None:
            return False
        return as_utc(now) >= as_utc(self.expires_at)

    def allows_checkin(self, now: datetime) -> bool:
        return self.active and not self.is_expired(now)

    def blocked_reason(self, now: datetime) -> str | None:
        """
        Operator-facing reason why scanning is blocked, or None when allowed.
        """
        if self.allows_checkin(now):
            return None
        if self.is_expired(now):
            return EXPIRED_REASON
        return INACTIVE_REASON
