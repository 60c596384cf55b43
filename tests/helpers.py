# tests/helpers.py
from datetime import datetime, timezone

MEMBER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_MEMBER_ID = "22222222-2222-2222-2222-222222222222"
MEETING_ID = "0b7f3a5e-6f38-4a4f-9a9c-3f1f5c3e2a10"
FIXED_NOW = datetime(2025, 1, 5, 9, 0, tzinfo=timezone.utc)
