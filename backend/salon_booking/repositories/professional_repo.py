"""
Professional repository: working-hour levels and the booking write lock.
"""

from datetime import date
from typing import Optional

from sqlalchemy import select, update

from salon_booking.db.base import Appointment as DbAppointment
from salon_booking.db.base import Professional as DbProfessional
from salon_booking.db.base import ProfessionalAbsence as DbAbsence
from salon_booking.db.base import ProfessionalException as DbException
from salon_booking.db.base import ProfessionalSchedule as DbSchedule
from salon_booking.domain.entities import DateOverride, WorkingHours
from salon_booking.domain.interfaces import IProfessionalLock


def hours_from_row(row, source: str) -> WorkingHours:
    """Copy the four hour columns shared by every hours table."""
    return WorkingHours(
        work_start=row.work_start,
        work_end=row.work_end,
        lunch_start=row.lunch_start,
        lunch_end=row.lunch_end,
        source=source,
    )


class ProfessionalRepository(IProfessionalLock):
    """Repository for professional hours and booking locks.

    Write methods never commit; the caller owns the transaction.
    """

    def __init__(self, db_session) -> None:
        self.db = db_session

    def lock_professional(self, owner_id: int, professional_id: int) -> bool:
        """Bump ``booking_version`` to take the row write lock.

        Must be the first statement of the transaction: on SQLite it takes
        the database write lock before any read, on PostgreSQL it holds the
        row lock until commit so concurrent bookings queue behind it.
        """
        stmt = (
            update(DbProfessional)
            .where(
                DbProfessional.id == professional_id,
                DbProfessional.owner_id == owner_id,
            )
            .values(booking_version=DbProfessional.booking_version + 1)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def lock_for_appointment(self, owner_id: int, appointment_id: int) -> bool:
        owning_professional = (
            select(DbAppointment.professional_id)
            .where(
                DbAppointment.id == appointment_id,
                DbAppointment.owner_id == owner_id,
            )
            .scalar_subquery()
        )
        stmt = (
            update(DbProfessional)
            .where(
                DbProfessional.id == owning_professional,
                DbProfessional.owner_id == owner_id,
            )
            .values(booking_version=DbProfessional.booking_version + 1)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def get_default_hours(
        self, owner_id: int, professional_id: int
    ) -> Optional[WorkingHours]:
        """Default hours of the professional; None if the professional is unknown."""
        db_professional = (
            self.db.query(DbProfessional)
            .filter_by(id=professional_id, owner_id=owner_id)
            .first()
        )
        if db_professional is None:
            return None
        return hours_from_row(db_professional, "professional_default")

    def has_absence(self, owner_id: int, professional_id: int, on_date: date) -> bool:
        stmt = select(DbAbsence.id).where(
            DbAbsence.owner_id == owner_id,
            DbAbsence.professional_id == professional_id,
            DbAbsence.start_date <= on_date,
            DbAbsence.end_date >= on_date,
        )
        return self.db.execute(stmt).first() is not None

    def get_exception(
        self, owner_id: int, professional_id: int, on_date: date
    ) -> Optional[DateOverride]:
        db_exception = (
            self.db.query(DbException)
            .filter_by(
                owner_id=owner_id,
                professional_id=professional_id,
                exception_date=on_date,
            )
            .first()
        )
        if db_exception is None:
            return None
        if db_exception.is_off:
            return DateOverride(closed=True)
        return DateOverride(
            closed=False, hours=hours_from_row(db_exception, "professional_exception")
        )

    def get_weekly_hours(
        self, owner_id: int, professional_id: int, weekday: int
    ) -> Optional[WorkingHours]:
        """Hours for a weekday (0 = Sunday); None when no row exists."""
        db_schedule = (
            self.db.query(DbSchedule)
            .filter_by(
                owner_id=owner_id,
                professional_id=professional_id,
                day_of_week=weekday,
            )
            .first()
        )
        if db_schedule is None:
            return None
        return hours_from_row(db_schedule, "weekly_schedule")
