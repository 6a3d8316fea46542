"""
Candidate slot generation for one professional on one day.

Candidates start at ``work_start`` and advance by the slot granularity while
the service still fits before ``work_end``. Stepping happens in UTC, so a DST
change inside working hours keeps every slot exactly one service long. Each candidate is kept only if
the conflict guard accepts it with the same inputs the write path uses.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional

from .conflict_guard import validate
from .entities import ScheduleCalendar, Slot, TimeWindow


def produce_slots(
    on_date: date,
    calendar: Optional[ScheduleCalendar],
    service_duration_minutes: int,
    existing: Iterable[TimeWindow],
    slot_granularity_minutes: int,
    now: datetime,
) -> List[Slot]:
    """Return bookable slots for the day, earliest first.

    An empty list means nothing fits: day off, service longer than the
    working window, or every candidate rejected.
    """
    if service_duration_minutes <= 0:
        raise ValueError("Service duration must be positive")
    if slot_granularity_minutes <= 0:
        raise ValueError("Slot granularity must be positive")
    if calendar is None:
        return []

    existing = list(existing)
    working = calendar.working_window_on(on_date)
    duration = timedelta(minutes=service_duration_minutes)
    step = timedelta(minutes=slot_granularity_minutes)

    slots: List[Slot] = []
    candidate_start = working.start.astimezone(timezone.utc)
    work_end = working.end.astimezone(timezone.utc)
    while candidate_start + duration <= work_end:
        candidate = TimeWindow(candidate_start, candidate_start + duration)
        if validate(candidate, calendar, existing, now).ok:
            local_start = candidate.start.astimezone(calendar.tz)
            slots.append(
                Slot(
                    start=candidate.start,
                    end=candidate.end,
                    label=local_start.strftime("%H:%M"),
                )
            )
        candidate_start = candidate_start + step

    return slots
