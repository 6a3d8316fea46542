"""
Domain entities - Pure business logic, no framework dependencies.

Following SOLID principles:
- Single Responsibility: Each entity represents one business concept
- Open/Closed: Entities can be extended without modification

All instants handled here are timezone-aware. Wall-clock times of day only
appear on ScheduleCalendar/WorkingHours, which know the timezone needed to
turn them into instants.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Any, Dict, Optional


def _is_aware(value: datetime) -> bool:
    return value.tzinfo is not None and value.utcoffset() is not None


@dataclass
class AuthUser:
    """Authenticated caller as resolved by the identity provider.

    ``id`` is the tenant key: every professional, service, client and
    appointment row is owned by one account id. Implements the Flask-Login
    interface explicitly, without UserMixin.
    """

    id: int
    email: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def is_active(self) -> bool:
        return True

    @property
    def is_anonymous(self) -> bool:
        return False

    def get_id(self) -> str:
        return str(self.id)


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELED = "canceled"
    NO_SHOW = "no_show"


# Terminal states have no outgoing transitions
ALLOWED_STATUS_TRANSITIONS = {
    AppointmentStatus.SCHEDULED: frozenset(
        {
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELED,
            AppointmentStatus.NO_SHOW,
        }
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval ``[start, end)`` between two absolute instants."""

    start: datetime
    end: datetime

    def __post_init__(self):
        if not _is_aware(self.start) or not _is_aware(self.end):
            raise ValueError("TimeWindow requires timezone-aware datetimes")
        if self.start >= self.end:
            raise ValueError("TimeWindow start must be before end")

    @classmethod
    def starting_at(cls, start: datetime, minutes: int) -> "TimeWindow":
        if minutes <= 0:
            raise ValueError("Duration must be positive")
        try:
            end = start + timedelta(minutes=minutes)
        except OverflowError as e:
            raise ValueError("Window end is out of range") from e
        return cls(start, end)

    def overlaps(self, other: "TimeWindow") -> bool:
        # Back-to-back windows share a boundary but do not overlap
        return self.start < other.end and self.end > other.start

    def contains(self, point: datetime) -> bool:
        return self.start <= point < self.end

    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


@dataclass(frozen=True)
class ScheduleCalendar:
    """A professional's working window and optional lunch break for a day.

    Times are local wall-clock times in ``tz``. The calendar is applied to
    the local date on which a proposed window starts.
    """

    work_start: time
    work_end: time
    lunch_start: Optional[time] = None
    lunch_end: Optional[time] = None
    tz: tzinfo = timezone.utc

    def __post_init__(self):
        if self.work_start >= self.work_end:
            raise ValueError("work_start must be before work_end")
        if (self.lunch_start is None) != (self.lunch_end is None):
            raise ValueError("Lunch break needs both start and end")
        if self.lunch_start is not None and self.lunch_end is not None:
            if not (
                self.work_start <= self.lunch_start < self.lunch_end <= self.work_end
            ):
                raise ValueError("Lunch break must fall inside working hours")

    @property
    def has_lunch(self) -> bool:
        return self.lunch_start is not None and self.lunch_end is not None

    def _instant(self, day: date, at: time) -> datetime:
        return datetime.combine(day, at, tzinfo=self.tz)

    def local_date_of(self, instant: datetime) -> date:
        return instant.astimezone(self.tz).date()

    def working_window_on(self, day: date) -> TimeWindow:
        return TimeWindow(
            self._instant(day, self.work_start), self._instant(day, self.work_end)
        )

    def lunch_window_on(self, day: date) -> Optional[TimeWindow]:
        if not self.has_lunch:
            return None
        return TimeWindow(
            self._instant(day, self.lunch_start), self._instant(day, self.lunch_end)
        )

    def is_within_working_window(self, window: TimeWindow) -> bool:
        working = self.working_window_on(self.local_date_of(window.start))
        return window.start >= working.start and window.end <= working.end

    def overlaps_lunch(self, window: TimeWindow) -> bool:
        lunch = self.lunch_window_on(self.local_date_of(window.start))
        return lunch is not None and lunch.overlaps(window)


@dataclass
class WorkingHours:
    """Raw working hours as stored at one configuration level.

    ``source`` names the level the hours came from (weekly schedule, date
    exception, business settings...) for logging.
    """

    work_start: Optional[time] = None
    work_end: Optional[time] = None
    lunch_start: Optional[time] = None
    lunch_end: Optional[time] = None
    source: str = ""

    @property
    def has_work_hours(self) -> bool:
        return self.work_start is not None or self.work_end is not None

    def to_calendar(self, tz: tzinfo) -> ScheduleCalendar:
        """Build a validated calendar; raises ValueError on malformed hours."""
        if self.work_start is None or self.work_end is None:
            raise ValueError("Working hours need both start and end")
        return ScheduleCalendar(
            work_start=self.work_start,
            work_end=self.work_end,
            lunch_start=self.lunch_start,
            lunch_end=self.lunch_end,
            tz=tz,
        )


@dataclass
class DateOverride:
    """A date-specific exception: either closed/off, or special hours."""

    closed: bool = False
    hours: Optional[WorkingHours] = None


@dataclass(frozen=True)
class Slot:
    """A bookable candidate window. Ephemeral: never persisted."""

    start: datetime
    end: datetime
    label: str

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start, self.end)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": to_utc_iso(self.start),
            "end": to_utc_iso(self.end),
            "label": self.label,
        }


@dataclass
class Service:
    """Domain entity for a bookable salon service."""

    id: Optional[int] = None
    owner_id: int = 0
    name: str = ""
    duration_minutes: int = 0
    price_cents: int = 0

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise ValueError("Duration must be positive")
        if self.price_cents < 0:
            raise ValueError("Price cannot be negative")


@dataclass
class Appointment:
    """Domain entity for Appointment business logic."""

    id: Optional[int] = None
    owner_id: int = 0
    professional_id: int = 0
    client_id: int = 0
    service_id: int = 0
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    duration_minutes: int = 0
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    price_cents: int = 0
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate business rules."""
        if self.start is None or self.end is None:
            raise ValueError("Appointment start and end are required")
        # Raises on naive or inverted instants
        TimeWindow(self.start, self.end)
        if self.duration_minutes <= 0:
            raise ValueError("Duration must be positive")
        if self.price_cents < 0:
            raise ValueError("Price cannot be negative")
        self.status = AppointmentStatus(self.status)

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start, self.end)

    @property
    def occupies_calendar(self) -> bool:
        return self.status != AppointmentStatus.CANCELED

    def can_transition_to(self, new_status: AppointmentStatus) -> bool:
        return new_status in ALLOWED_STATUS_TRANSITIONS[self.status]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "professional_id": self.professional_id,
            "client_id": self.client_id,
            "service_id": self.service_id,
            "start": to_utc_iso(self.start),
            "end": to_utc_iso(self.end),
            "duration_minutes": self.duration_minutes,
            "status": self.status.value,
            "price_cents": self.price_cents,
            "notes": self.notes,
            "created_at": to_utc_iso(self.created_at),
            "updated_at": to_utc_iso(self.updated_at),
        }


def to_utc_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialise an aware instant as UTC ISO-8601 with a ``Z`` suffix."""
    if value is None:
        return None
    if not _is_aware(value):
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
