# attendance_hub/services/qr_payload.py
from __future__ import annotations

import io
import re
from enum import Enum

import qrcode
from qrcode.constants import ERROR_CORRECT_H

from attendance_hub.schemas.checkin import MEMBER_ID_REGEX, CheckinPayload

CHECKIN_PREFIX = "MEMBER_CHECKIN"
GENERAL_SCOPE = "GENERAL"

_MEMBER_ID_RE = re.compile(MEMBER_ID_REGEX)


class ParseErrorReason(str, Enum):
    UNRECOGNIZED_FORMAT = "unrecognized_format"
    INVALID_MEMBER_ID = "invalid_member_id"
    MEETING_MISMATCH = "meeting_mismatch"


class QRPayloadError(ValueError):
    """
    Base class for rejected check-in payloads.

    Raised before any network call is made; the scanner stays usable.
    """

    reason: ParseErrorReason


class UnrecognizedFormatError(QRPayloadError):
    reason = ParseErrorReason.UNRECOGNIZED_FORMAT


class InvalidMemberIdError(QRPayloadError):
    reason = ParseErrorReason.INVALID_MEMBER_ID


class MeetingMismatchError(QRPayloadError):
    reason = ParseErrorReason.MEETING_MISMATCH


def parse_checkin_payload(
    raw_text: str,
    target_meeting_id: str | None = None,
) -> CheckinPayload:
    """
    Parse a decoded `MEMBER_CHECKIN:<member_id>[:<meeting_id|GENERAL>]` string.

    Parameters
    ----------
    raw_text:
        Text produced by a capture adapter. Untrusted.
    target_meeting_id:
        Meeting currently being scanned. When given, a payload scoped to a
        different meeting is rejected.

    Raises
    ------
    UnrecognizedFormatError
        The text is not a member check-in payload.
    InvalidMemberIdError
        The member id is not UUID-shaped.
    MeetingMismatchError
        The payload was issued for another meeting.
    """
    text = (raw_text or "").strip()
    if not text.startswith(f"{CHECKIN_PREFIX}:"):
        raise UnrecognizedFormatError(
            "Invalid QR code. Please scan a member check-in QR code."
        )

    parts = text.split(":")
    member_id = parts[1]
    meeting_scope = parts[2] if len(parts) > 2 and parts[2] else None

    if not _MEMBER_ID_RE.match(member_id):
        raise InvalidMemberIdError("Invalid member ID format")

    if (
        meeting_scope is not None
        and meeting_scope != GENERAL_SCOPE
        and target_meeting_id is not None
        and meeting_scope != target_meeting_id
    ):
        raise MeetingMismatchError("QR code is for a different meeting")

    return CheckinPayload(member_id=member_id, meeting_scope=meeting_scope)


def encode_checkin_payload(member_id: str, meeting_id: str | None = None) -> str:
    """
    Build the payload a member shows to the scanner.

    Without a meeting the code is valid for any live meeting (`GENERAL`).
    """
    if not _MEMBER_ID_RE.match(member_id):
        raise InvalidMemberIdError("Invalid member ID format")
    return f"{CHECKIN_PREFIX}:{member_id}:{meeting_id or GENERAL_SCOPE}"


def render_checkin_qr_png(payload: str, box_size: int = 10, border: int = 4) -> bytes:
    """
    Render a payload as a PNG QR image (high error correction).
    """
    qr = qrcode.QRCode(
        error_correction=ERROR_CORRECT_H,
        box_size=box_size,
        border=border,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white").get_image().convert("RGB")

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
