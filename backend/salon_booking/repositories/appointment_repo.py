"""
Appointment repository implementation following SOLID principles.

Write methods flush but never commit: the booking coordinator owns the
transaction so the lock, the re-validation and the write commit together.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import select

from salon_booking.db.base import Appointment as DbAppointment
from salon_booking.domain.entities import Appointment as DomainAppointment
from salon_booking.domain.entities import AppointmentStatus, TimeWindow
from salon_booking.domain.interfaces import IAppointmentRepository


class AppointmentRepository(IAppointmentRepository):
    """Repository for Appointment persistence operations."""

    def __init__(self, db_session) -> None:
        self.db = db_session

    def _get_row(self, owner_id: int, appointment_id: int) -> Optional[DbAppointment]:
        return (
            self.db.query(DbAppointment)
            .filter_by(id=appointment_id, owner_id=owner_id)
            .first()
        )

    def get_by_id(
        self, owner_id: int, appointment_id: int
    ) -> Optional[DomainAppointment]:
        db_appointment = self._get_row(owner_id, appointment_id)
        return self._to_domain(db_appointment) if db_appointment else None

    def list_for_owner(
        self,
        owner_id: int,
        professional_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[DomainAppointment]:
        stmt = select(DbAppointment).where(DbAppointment.owner_id == owner_id)
        if professional_id is not None:
            stmt = stmt.where(DbAppointment.professional_id == professional_id)
        if start is not None:
            stmt = stmt.where(DbAppointment.end_at > start)
        if end is not None:
            stmt = stmt.where(DbAppointment.start_at < end)
        stmt = stmt.order_by(DbAppointment.start_at, DbAppointment.id)
        return [self._to_domain(row) for row in self.db.execute(stmt).scalars()]

    def list_windows(
        self,
        professional_id: int,
        start: datetime,
        end: datetime,
        exclude_statuses: Iterable[AppointmentStatus] = (AppointmentStatus.CANCELED,),
        exclude_appointment_id: Optional[int] = None,
    ) -> List[TimeWindow]:
        stmt = select(DbAppointment.start_at, DbAppointment.end_at).where(
            DbAppointment.professional_id == professional_id,
            DbAppointment.start_at < end,
            DbAppointment.end_at > start,
        )
        excluded = [AppointmentStatus(s).value for s in exclude_statuses]
        if excluded:
            stmt = stmt.where(DbAppointment.status.not_in(excluded))
        if exclude_appointment_id is not None:
            stmt = stmt.where(DbAppointment.id != exclude_appointment_id)
        stmt = stmt.order_by(DbAppointment.start_at)
        return [
            TimeWindow(row.start_at, row.end_at) for row in self.db.execute(stmt).all()
        ]

    def create(self, appointment: DomainAppointment) -> DomainAppointment:
        db_appointment = DbAppointment(
            owner_id=appointment.owner_id,
            professional_id=appointment.professional_id,
            client_id=appointment.client_id,
            service_id=appointment.service_id,
            start_at=appointment.start,
            end_at=appointment.end,
            duration_minutes=appointment.duration_minutes,
            status=appointment.status.value,
            price_cents=appointment.price_cents,
            notes=appointment.notes,
        )
        self.db.add(db_appointment)
        self.db.flush()
        return self._to_domain(db_appointment)

    def update_window(
        self, owner_id: int, appointment_id: int, window: TimeWindow
    ) -> Optional[DomainAppointment]:
        db_appointment = self._get_row(owner_id, appointment_id)
        if db_appointment is None:
            return None
        db_appointment.start_at = window.start
        db_appointment.end_at = window.end
        self.db.flush()
        return self._to_domain(db_appointment)

    def update_status(
        self, owner_id: int, appointment_id: int, status: AppointmentStatus
    ) -> Optional[DomainAppointment]:
        db_appointment = self._get_row(owner_id, appointment_id)
        if db_appointment is None:
            return None
        db_appointment.status = AppointmentStatus(status).value
        self.db.flush()
        return self._to_domain(db_appointment)

    def delete(self, owner_id: int, appointment_id: int) -> bool:
        db_appointment = self._get_row(owner_id, appointment_id)
        if db_appointment is None:
            return False
        self.db.delete(db_appointment)
        self.db.flush()
        return True

    def _to_domain(self, db_appointment: DbAppointment) -> DomainAppointment:
        """Convert database model to domain entity."""
        return DomainAppointment(
            id=db_appointment.id,
            owner_id=db_appointment.owner_id,
            professional_id=db_appointment.professional_id,
            client_id=db_appointment.client_id,
            service_id=db_appointment.service_id,
            start=db_appointment.start_at,
            end=db_appointment.end_at,
            duration_minutes=db_appointment.duration_minutes,
            status=AppointmentStatus(db_appointment.status),
            price_cents=db_appointment.price_cents,
            notes=db_appointment.notes,
            created_at=db_appointment.created_at,
            updated_at=db_appointment.updated_at,
        )
