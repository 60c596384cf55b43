# tests/test_meeting_planner.py
from datetime import date

import pytest

from attendance_hub.schemas.meeting import MeetingBatchCreated, MeetingBase, MeetingRecurrenceRule
from attendance_hub.services.meeting_planner import create_recurring_meetings


class FakePlannerClient:
    def __init__(self):
        self.batches: list = []

    async def create_meetings(self, meetings):
        self.batches.append(list(meetings))
        return MeetingBatchCreated(
            created_count=len(meetings),
            ids=[f"id-{i}" for i in range(len(meetings))],
        )


def _rule(start: date, end: date, pattern: str = "weekly") -> MeetingRecurrenceRule:
    return MeetingRecurrenceRule(
        start_date=start,
        end_date=end,
        pattern=pattern,
        base_record=MeetingBase(
            event_category="class",
            class_id="class-7",
            topic="Foundations",
            location="Room 4",
        ),
    )


@pytest.mark.asyncio
async def test_recurring_meetings_submitted_in_one_batch():
    client = FakePlannerClient()

    created = await create_recurring_meetings(client, _rule(date(2025, 1, 1), date(2025, 1, 15)))

    assert created.created_count == 3
    assert len(client.batches) == 1
    assert [m.meeting_date for m in client.batches[0]] == [
        date(2025, 1, 1),
        date(2025, 1, 8),
        date(2025, 1, 15),
    ]
    assert all(m.class_id == "class-7" for m in client.batches[0])


@pytest.mark.asyncio
async def test_empty_expansion_sends_nothing():
    client = FakePlannerClient()

    created = await create_recurring_meetings(client, _rule(date(2025, 2, 1), date(2025, 1, 1)))

    assert created.created_count == 0
    assert created.ids == []
    assert client.batches == []
