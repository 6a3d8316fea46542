"""
Validity predicate for a proposed appointment window.

The same function backs slot generation and the booking write path, so a
slot offered to a client is exactly a window the write path would accept
given the same inputs.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from .entities import ScheduleCalendar, TimeWindow


class RejectionReason(str, Enum):
    OUTSIDE_WORKING_HOURS = "OutsideWorkingHours"
    DURING_LUNCH = "DuringLunch"
    IN_THE_PAST = "InThePast"
    OVERLAPS_EXISTING_APPOINTMENT = "OverlapsExistingAppointment"
    CALENDAR_NOT_CONFIGURED = "CalendarNotConfigured"


REJECTION_MESSAGES = {
    RejectionReason.OUTSIDE_WORKING_HOURS: "Horário fora do expediente do profissional",
    RejectionReason.DURING_LUNCH: "Horário coincide com o intervalo de almoço",
    RejectionReason.IN_THE_PAST: "Não é possível agendar no passado",
    RejectionReason.OVERLAPS_EXISTING_APPOINTMENT: "Horário já ocupado por outro agendamento",
    RejectionReason.CALENDAR_NOT_CONFIGURED: "Horário de trabalho do profissional não configurado",
}


@dataclass(frozen=True)
class ValidationResult:
    reason: Optional[RejectionReason] = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @property
    def message(self) -> str:
        if self.reason is None:
            return "OK"
        return REJECTION_MESSAGES[self.reason]

    @classmethod
    def accepted(cls) -> "ValidationResult":
        return cls()

    @classmethod
    def rejected(cls, reason: RejectionReason) -> "ValidationResult":
        return cls(reason=reason)


def validate(
    proposed: TimeWindow,
    calendar: Optional[ScheduleCalendar],
    existing: Iterable[TimeWindow],
    now: datetime,
) -> ValidationResult:
    """Check a proposed window; the first failing rule wins.

    Args:
        proposed: Window being booked
        calendar: Calendar for the day, None when the professional is off
        existing: Windows already occupied (canceled appointments excluded)
        now: Current instant

    Returns:
        ValidationResult carrying the rejection reason, or OK
    """
    if proposed.start < now:
        return ValidationResult.rejected(RejectionReason.IN_THE_PAST)

    if calendar is None or not calendar.is_within_working_window(proposed):
        return ValidationResult.rejected(RejectionReason.OUTSIDE_WORKING_HOURS)

    if calendar.overlaps_lunch(proposed):
        return ValidationResult.rejected(RejectionReason.DURING_LUNCH)

    if any(proposed.overlaps(window) for window in existing):
        return ValidationResult.rejected(RejectionReason.OVERLAPS_EXISTING_APPOINTMENT)

    return ValidationResult.accepted()
