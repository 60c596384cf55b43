# attendance_hub/services/recurrence.py
from __future__ import annotations

import calendar
from collections.abc import Iterator
from datetime import date, timedelta

from attendance_hub.schemas.meeting import (
    MeetingBase,
    MeetingCreate,
    MeetingRecurrenceRule,
    RecurrencePattern,
)

_FIXED_STEPS: dict[RecurrencePattern, timedelta] = {
    RecurrencePattern.DAILY: timedelta(days=1),
    RecurrencePattern.WEEKLY: timedelta(days=7),
    RecurrencePattern.BIWEEKLY: timedelta(days=14),
}


class RecurrencePatternError(ValueError):
    """
    Raised when a recurrence pattern is not one of the supported values.
    """


def _coerce_pattern(pattern: RecurrencePattern | str) -> RecurrencePattern:
    if isinstance(pattern, RecurrencePattern):
        return pattern
    try:
        return RecurrencePattern(pattern)
    except ValueError as exc:
        raise RecurrencePatternError(f"Unknown recurrence pattern: {pattern!r}") from exc


def add_months(value: date, months: int) -> date:
    """
    Shift `value` by a number of calendar months, keeping the day of month
    and clamping it to the last day of shorter months (Jan 31 + 1 -> Feb 28).
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(value.day, last_day))


def iter_meeting_dates(
    start: date,
    end: date,
    pattern: RecurrencePattern | str,
) -> Iterator[date]:
    """
    Yield every meeting date of the series, in increasing order.

    Rules
    -----
    - The pattern is validated before stepping starts.
    - `start > end` yields nothing.
    - daily / weekly / biweekly step by 1 / 7 / 14 days from the cursor.
    - monthly is anchored on `start`: the k-th date is `start + k months`
      (clamped), so a short month does not drag later dates backwards.
    """
    resolved = _coerce_pattern(pattern)

    if resolved is RecurrencePattern.MONTHLY:
        step = 0
        cursor = start
        while cursor <= end:
            yield cursor
            step += 1
            cursor = add_months(start, step)
        return

    delta = _FIXED_STEPS[resolved]
    cursor = start
    while cursor <= end:
        yield cursor
        cursor = cursor + delta


def generate_meeting_instances(
    start: date,
    end: date,
    pattern: RecurrencePattern | str,
    base: MeetingBase,
) -> list[MeetingCreate]:
    """
    Expand a recurrence into concrete meeting payloads.

    Every instance copies all `base` attributes and carries its own
    `meeting_date`. Pure: no I/O, same input gives the same output.
    """
    shared = base.model_dump()
    return [
        MeetingCreate(**shared, meeting_date=meeting_date)
        for meeting_date in iter_meeting_dates(start, end, pattern)
    ]


def expand_rule(rule: MeetingRecurrenceRule) -> list[MeetingCreate]:
    return generate_meeting_instances(
        rule.start_date,
        rule.end_date,
        rule.pattern,
        rule.base_record,
    )
