"""
Domain layer for the salon booking engine.

Contains pure business logic with no framework dependencies: time windows,
schedule calendars, the conflict guard and the slot producer.
"""

from .entities import (
    Appointment,
    AppointmentStatus,
    AuthUser,
    ScheduleCalendar,
    Service,
    Slot,
    TimeWindow,
    WorkingHours,
)

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "AuthUser",
    "ScheduleCalendar",
    "Service",
    "Slot",
    "TimeWindow",
    "WorkingHours",
]
