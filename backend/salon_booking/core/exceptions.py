"""
Custom exceptions for the application.

Business rejections (in the past, outside working hours, during lunch,
overlapping) are NOT exceptions: they travel as typed results. The classes
below cover request problems, missing resources and data-integrity issues.
"""


class BookingError(Exception):
    """Base class for booking-engine errors."""

    pass


class NotFoundError(BookingError):
    """
    Raised when a resource does not exist or belongs to another owner.

    Foreign rows are reported exactly like missing ones.
    """

    def __init__(self, resource: str, resource_id=None):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found")


class CalendarConfigurationError(BookingError):
    """
    Raised when a professional's working hours are missing or malformed.

    Callers fail closed: no availability and every booking rejected until
    the profile is corrected.
    """

    def __init__(self, professional_id, detail: str):
        self.professional_id = professional_id
        self.detail = detail
        super().__init__(
            f"Calendar for professional {professional_id} is invalid: {detail}"
        )


class InvalidStatusTransitionError(BookingError):
    """Raised when an appointment status change is not allowed."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change status from '{current}' to '{requested}'")


class AppointmentNotReschedulableError(BookingError):
    """Raised when moving an appointment that is no longer scheduled."""

    def __init__(self, status: str):
        self.status = status
        super().__init__(
            f"Only scheduled appointments can be rescheduled (status: '{status}')"
        )


class StorageConflictError(BookingError):
    """
    Raised when the database rejects a commit because a concurrent writer
    claimed an overlapping window first.
    """

    pass
