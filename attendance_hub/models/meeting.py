# attendance_hub/models/meeting.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    String,
    Text,
)

from attendance_hub.db.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class AttendanceMeeting(Base):
    """
    A single dated meeting, optionally open for live QR check-in.
    """

    __tablename__ = "attendance_meetings"

    id = Column(String(36), primary_key=True, default=_new_id)

    event_category = Column(String(32), nullable=False, index=True)
    meeting_date = Column(Date, nullable=False, index=True)
    meeting_type = Column(String(32), nullable=False, default="regular")
    topic = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)
    offering = Column(Float, nullable=True)

    cell_group_id = Column(String(36), nullable=True, index=True)
    ministry_id = Column(String(36), nullable=True, index=True)
    class_id = Column(String(36), nullable=True, index=True)

    is_realtime = Column(Boolean, nullable=False, default=False)

    live_checkin_active = Column(Boolean, nullable=False, default=False)
    live_checkin_expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self) -> str:
        return (
            f"<AttendanceMeeting id={self.id} date={self.meeting_date} "
            f"category={self.event_category} live={self.live_checkin_active}>"
        )
