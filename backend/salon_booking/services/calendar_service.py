"""
Calendar resolution service.

Working hours live at several levels. For one professional and one date the
effective calendar is resolved with this precedence:

1. Professional absence covering the date -> not working
2. Business closed on the date -> not working
3. Professional date exception -> day off, or its hours if set
4. Weekly schedule row for the weekday (0 = Sunday) -> its hours (no hours = day off)
5. Professional default hours
6. Business exception hours for the date
7. Business settings
8. Nothing configured -> CalendarConfigurationError
"""

import logging
from datetime import date, tzinfo
from typing import Optional

from salon_booking.core.exceptions import CalendarConfigurationError, NotFoundError
from salon_booking.domain.entities import ScheduleCalendar, WorkingHours
from salon_booking.domain.interfaces import ICalendarSource
from salon_booking.repositories.business_repo import BusinessHoursRepository
from salon_booking.repositories.professional_repo import ProfessionalRepository

logger = logging.getLogger(__name__)


def schedule_weekday(on_date: date) -> int:
    """Weekday as stored in professional_schedules: 0 = Sunday ... 6 = Saturday."""
    return on_date.isoweekday() % 7


class CalendarService(ICalendarSource):
    """Resolves a ScheduleCalendar from the stored hour levels."""

    def __init__(
        self,
        professional_repo: ProfessionalRepository,
        business_repo: BusinessHoursRepository,
        tz: tzinfo,
    ) -> None:
        self.professional_repo = professional_repo
        self.business_repo = business_repo
        self.tz = tz

    def get_calendar(
        self, owner_id: int, professional_id: int, on_date: date
    ) -> Optional[ScheduleCalendar]:
        default_hours = self.professional_repo.get_default_hours(
            owner_id, professional_id
        )
        if default_hours is None:
            raise NotFoundError("Professional", professional_id)

        if self.professional_repo.has_absence(owner_id, professional_id, on_date):
            return None

        business_exception = self.business_repo.get_exception(owner_id, on_date)
        if business_exception is not None and business_exception.closed:
            return None

        professional_exception = self.professional_repo.get_exception(
            owner_id, professional_id, on_date
        )
        if professional_exception is not None:
            if professional_exception.closed:
                return None
            # An exception row without hours defers to the next level
            if professional_exception.hours.has_work_hours:
                return self._build(professional_id, professional_exception.hours)

        weekly = self.professional_repo.get_weekly_hours(
            owner_id, professional_id, schedule_weekday(on_date)
        )
        if weekly is not None:
            if not weekly.has_work_hours:
                return None
            return self._build(professional_id, weekly)

        if default_hours.has_work_hours:
            return self._build(professional_id, default_hours)

        if business_exception is not None and business_exception.hours is not None:
            if business_exception.hours.has_work_hours:
                return self._build(professional_id, business_exception.hours)

        settings = self.business_repo.get_settings(owner_id)
        if settings is not None and settings.has_work_hours:
            return self._build(professional_id, settings)

        raise CalendarConfigurationError(professional_id, "no working hours configured")

    def _build(self, professional_id: int, hours: WorkingHours) -> ScheduleCalendar:
        try:
            return hours.to_calendar(self.tz)
        except ValueError as e:
            raise CalendarConfigurationError(
                professional_id, f"{hours.source}: {e}"
            ) from e
