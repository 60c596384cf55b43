# attendance_hub/services/meeting_planner.py
from __future__ import annotations

import logging

from attendance_hub.schemas.meeting import MeetingBatchCreated, MeetingRecurrenceRule
from attendance_hub.services.api_client import AttendanceApiClient
from attendance_hub.services.recurrence import expand_rule

logger = logging.getLogger(__name__)


async def create_recurring_meetings(
    client: AttendanceApiClient,
    rule: MeetingRecurrenceRule,
) -> MeetingBatchCreated:
    """
    Expand `rule` and submit every instance to the backend in one batch.

    An empty expansion (start after end) sends nothing.
    """
    instances = expand_rule(rule)
    if not instances:
        logger.info(
            "Recurrence %s..%s produced no meetings; nothing submitted",
            rule.start_date,
            rule.end_date,
        )
        return MeetingBatchCreated(created_count=0, ids=[])

    logger.info(
        "Submitting %d %s meetings from %s to %s",
        len(instances),
        rule.pattern.value,
        instances[0].meeting_date,
        instances[-1].meeting_date,
    )
    return await client.create_meetings(instances)
