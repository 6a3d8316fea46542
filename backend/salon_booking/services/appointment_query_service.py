"""Read-only appointment lookups for the owner-scoped API."""

from datetime import datetime
from typing import List, Optional

from salon_booking.core.exceptions import NotFoundError
from salon_booking.domain.entities import Appointment
from salon_booking.domain.interfaces import IAppointmentReader


class AppointmentQueryService:
    """Service layer for listing and fetching appointments."""

    def __init__(self, appointment_reader: IAppointmentReader) -> None:
        self.appointment_reader = appointment_reader

    def get_appointment(self, owner_id: int, appointment_id: int) -> Appointment:
        appointment = self.appointment_reader.get_by_id(owner_id, appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)
        return appointment

    def list_appointments(
        self,
        owner_id: int,
        professional_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Appointment]:
        return self.appointment_reader.list_for_owner(
            owner_id, professional_id=professional_id, start=start, end=end
        )
