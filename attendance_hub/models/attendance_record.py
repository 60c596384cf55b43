# attendance_hub/models/attendance_record.py
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from attendance_hub.db.base import Base


class AttendanceRecord(Base):
    """
    Attendance of one member at one meeting.

    At most one row exists per (meeting_id, member_id); repeated check-ins
    reuse it.
    """

    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)

    meeting_id = Column(
        String(36),
        ForeignKey("attendance_meetings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    member_id = Column(
        String(36),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    status = Column(String(16), nullable=False, default="present")
    checked_in_at = Column(
        DateTime(timezone=True),
        nullable=True,
        default=lambda: datetime.now(tz=timezone.utc),
    )

    meeting = relationship("AttendanceMeeting", backref="attendance_records")
    member = relationship("Member")

    __table_args__ = (
        UniqueConstraint(
            "meeting_id",
            "member_id",
            name="uq_attendance_records_meeting_member",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<AttendanceRecord id={self.id} meeting_id={self.meeting_id} "
            f"member_id={self.member_id} status={self.status}>"
        )
