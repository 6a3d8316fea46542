"""
Abstract interfaces for repositories following Interface Segregation Principle.

These interfaces define contracts without implementation details,
enabling dependency injection and easier testing.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Iterable, List, Optional

from .entities import (
    Appointment,
    AppointmentStatus,
    AuthUser,
    ScheduleCalendar,
    Service,
    TimeWindow,
)


class ICalendarSource(ABC):
    """Resolves the working calendar of a professional for one date."""

    @abstractmethod
    def get_calendar(
        self, owner_id: int, professional_id: int, on_date: date
    ) -> Optional[ScheduleCalendar]:
        """Return the calendar, or None when the professional is not working.

        Raises:
            CalendarConfigurationError: hours missing or malformed
        """
        pass


class IServiceDurationSource(ABC):
    """Read-only lookup of service durations."""

    @abstractmethod
    def get_service_duration(self, owner_id: int, service_id: int) -> Optional[int]:
        """Return the service duration in minutes, None if unknown."""
        pass


class IServiceReader(IServiceDurationSource):
    """Interface for service read operations."""

    @abstractmethod
    def get_by_id(self, owner_id: int, service_id: int) -> Optional[Service]:
        """Get service by ID."""
        pass


class IAppointmentWindowSource(ABC):
    """Lists the windows already occupied on a professional's calendar."""

    @abstractmethod
    def list_windows(
        self,
        professional_id: int,
        start: datetime,
        end: datetime,
        exclude_statuses: Iterable[AppointmentStatus] = (AppointmentStatus.CANCELED,),
        exclude_appointment_id: Optional[int] = None,
    ) -> List[TimeWindow]:
        """Windows intersecting ``[start, end)``, earliest first."""
        pass


class IAppointmentReader(IAppointmentWindowSource):
    """Interface for appointment read operations."""

    @abstractmethod
    def get_by_id(self, owner_id: int, appointment_id: int) -> Optional[Appointment]:
        """Get appointment by ID."""
        pass

    @abstractmethod
    def list_for_owner(
        self,
        owner_id: int,
        professional_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Appointment]:
        """List an owner's appointments, earliest first."""
        pass


class IAppointmentWriter(ABC):
    """Interface for appointment write operations."""

    @abstractmethod
    def create(self, appointment: Appointment) -> Appointment:
        """Create a new appointment."""
        pass

    @abstractmethod
    def update_window(
        self, owner_id: int, appointment_id: int, window: TimeWindow
    ) -> Optional[Appointment]:
        """Move an appointment to a new window."""
        pass

    @abstractmethod
    def update_status(
        self, owner_id: int, appointment_id: int, status: AppointmentStatus
    ) -> Optional[Appointment]:
        """Change the status of an appointment."""
        pass

    @abstractmethod
    def delete(self, owner_id: int, appointment_id: int) -> bool:
        """Hard delete an appointment."""
        pass


class IAppointmentRepository(IAppointmentReader, IAppointmentWriter):
    """Complete appointment repository interface."""

    pass


class IProfessionalLock(ABC):
    """Per-professional write lock taken at the start of a booking transaction."""

    @abstractmethod
    def lock_professional(self, owner_id: int, professional_id: int) -> bool:
        """Lock the professional row; False when it does not exist for the owner."""
        pass

    @abstractmethod
    def lock_for_appointment(self, owner_id: int, appointment_id: int) -> bool:
        """Lock the professional owning an appointment; False when not found."""
        pass


class IClientReader(ABC):
    """Interface for client read operations."""

    @abstractmethod
    def exists(self, owner_id: int, client_id: int) -> bool:
        """Whether the client exists for the owner."""
        pass


class IAuthAdapter(ABC):
    """Pluggable identity provider."""

    @abstractmethod
    def validate_token(self, token: str) -> Optional[AuthUser]:
        """Return the authenticated user for a bearer token, None if invalid."""
        pass
