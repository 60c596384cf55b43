# attendance_hub/schemas/checkin.py
from enum import Enum

from pydantic import BaseModel, Field

MEMBER_ID_REGEX = r"^[0-9a-fA-F-]{36}$"


class LiveCheckinRequest(BaseModel):
    """
    Request body of `POST /attendance/meetings/{id}/live-checkin`.
    """

    member_id: str = Field(
        ...,
        pattern=MEMBER_ID_REGEX,
        description="UUID of the member being checked in.",
        examples=["11111111-1111-1111-1111-111111111111"],
    )


class CheckedInMember(BaseModel):
    """
    Denormalized identity snapshot returned with a check-in.
    """

    id: str
    first_name: str
    last_name: str
    email: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class LiveCheckinResponse(BaseModel):
    """
    Response of `POST /attendance/meetings/{id}/live-checkin`.
    """

    message: str = Field(..., examples=["Member checked in successfully"])
    member: CheckedInMember
    already_checked_in: bool = Field(
        False,
        description="True when the member had already been checked in to this meeting.",
    )


class CheckinPayload(BaseModel):
    """
    Structured form of a scanned `MEMBER_CHECKIN:...` payload.
    """

    member_id: str
    meeting_scope: str | None = Field(
        None,
        description="Meeting id the code was issued for, 'GENERAL', or None.",
    )


class CheckinErrorReason(str, Enum):
    """
    Why a scan attempt did not result in a check-in.
    """

    UNRECOGNIZED_FORMAT = "unrecognized_format"
    INVALID_MEMBER_ID = "invalid_member_id"
    MEETING_MISMATCH = "meeting_mismatch"
    MEETING_INACTIVE = "meeting_inactive"
    MEETING_EXPIRED = "meeting_expired"
    BACKEND_ERROR = "backend_error"
    SCAN_FAILED = "scan_failed"


class CheckinResult(BaseModel):
    """
    Outcome of one scan attempt as presented to the operator.
    """

    success: bool
    message: str
    already_checked_in: bool = False
    member: CheckedInMember | None = None
    error: CheckinErrorReason | None = None


class ScanStats(BaseModel):
    """
    Running counters for one scanning session.
    """

    total_scanned: int = 0
    successful_scans: int = 0
    errors: int = 0
