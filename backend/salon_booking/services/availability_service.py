"""
Availability service - lists bookable slots for a professional on a day.

Reads run without locks. The returned slots are hints: the booking path
re-validates every request inside its own transaction.
"""

import logging
from datetime import date, datetime
from typing import Callable, List

from salon_booking.core.exceptions import CalendarConfigurationError, NotFoundError
from salon_booking.domain.availability import produce_slots
from salon_booking.domain.entities import Slot
from salon_booking.domain.interfaces import (
    IAppointmentWindowSource,
    ICalendarSource,
    IServiceDurationSource,
)

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Combines calendar, service duration and booked windows into slots."""

    def __init__(
        self,
        calendar_source: ICalendarSource,
        duration_source: IServiceDurationSource,
        window_source: IAppointmentWindowSource,
        slot_granularity_minutes: int,
        clock: Callable[[], datetime],
    ) -> None:
        self.calendar_source = calendar_source
        self.duration_source = duration_source
        self.window_source = window_source
        self.slot_granularity_minutes = slot_granularity_minutes
        self.clock = clock

    def get_available_slots(
        self, owner_id: int, professional_id: int, on_date: date, service_id: int
    ) -> List[Slot]:
        """Return the free slots, earliest first.

        Raises:
            NotFoundError: unknown service or professional for this owner
        """
        duration = self.duration_source.get_service_duration(owner_id, service_id)
        if duration is None:
            raise NotFoundError("Service", service_id)

        try:
            calendar = self.calendar_source.get_calendar(
                owner_id, professional_id, on_date
            )
        except CalendarConfigurationError as e:
            logger.error(
                "Calendar misconfigured; no availability offered",
                extra={
                    "context": {
                        "owner_id": owner_id,
                        "professional_id": professional_id,
                        "date": on_date.isoformat(),
                        "detail": e.detail,
                    }
                },
            )
            return []

        if calendar is None:
            logger.info(
                "Professional not working on requested date",
                extra={
                    "context": {
                        "professional_id": professional_id,
                        "date": on_date.isoformat(),
                    }
                },
            )
            return []

        working = calendar.working_window_on(on_date)
        existing = self.window_source.list_windows(
            professional_id, working.start, working.end
        )
        slots = produce_slots(
            on_date,
            calendar,
            duration,
            existing,
            self.slot_granularity_minutes,
            self.clock(),
        )

        logger.info(
            "Availability computed",
            extra={
                "context": {
                    "professional_id": professional_id,
                    "service_id": service_id,
                    "date": on_date.isoformat(),
                    "slots": len(slots),
                    "booked_windows": len(existing),
                }
            },
        )
        return slots
