"""
Database seeding helpers for integration tests.

Every helper commits immediately so the booking coordinator, which opens its
own sessions, sees the rows.
"""

from datetime import date, datetime, time, timezone
from typing import Optional

from salon_booking.db.base import Appointment as DbAppointment
from salon_booking.db.base import BusinessException as DbBusinessException
from salon_booking.db.base import BusinessSettings as DbBusinessSettings
from salon_booking.db.base import Client as DbClient
from salon_booking.db.base import Professional as DbProfessional
from salon_booking.db.base import ProfessionalAbsence as DbAbsence
from salon_booking.db.base import ProfessionalException as DbException
from salon_booking.db.base import ProfessionalSchedule as DbSchedule
from salon_booking.db.base import Service as DbService

# 2030-01-07 is a Monday; "now" is the day before at noon UTC
BOOKING_DAY = date(2030, 1, 7)
NOW = datetime(2030, 1, 6, 12, 0, tzinfo=timezone.utc)
OWNER_ID = 1
OTHER_OWNER_ID = 2


def utc(hour: int, minute: int = 0, day: date = BOOKING_DAY) -> datetime:
    """Aware UTC instant on the booking day."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


class SalonSeeder:
    """Insert salon rows with sensible defaults (09:00-18:00, lunch 12:00-13:00)."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def _add(self, row):
        with self.session_factory() as db:
            db.add(row)
            db.commit()
            return row.id

    def professional(
        self,
        owner_id: int = 1,
        name: str = "Ana",
        work_start: Optional[time] = time(9, 0),
        work_end: Optional[time] = time(18, 0),
        lunch_start: Optional[time] = time(12, 0),
        lunch_end: Optional[time] = time(13, 0),
    ) -> int:
        return self._add(
            DbProfessional(
                owner_id=owner_id,
                name=name,
                work_start=work_start,
                work_end=work_end,
                lunch_start=lunch_start,
                lunch_end=lunch_end,
            )
        )

    def service(
        self,
        owner_id: int = 1,
        name: str = "Corte",
        duration_minutes: int = 30,
        price_cents: int = 5000,
    ) -> int:
        return self._add(
            DbService(
                owner_id=owner_id,
                name=name,
                duration_minutes=duration_minutes,
                price_cents=price_cents,
            )
        )

    def client(self, owner_id: int = 1, name: str = "Bruna") -> int:
        return self._add(DbClient(owner_id=owner_id, name=name))

    def appointment(
        self,
        professional_id: int,
        client_id: int,
        service_id: int,
        start: datetime,
        end: datetime,
        owner_id: int = 1,
        status: str = "scheduled",
    ) -> int:
        return self._add(
            DbAppointment(
                owner_id=owner_id,
                professional_id=professional_id,
                client_id=client_id,
                service_id=service_id,
                start_at=start,
                end_at=end,
                duration_minutes=int((end - start).total_seconds() // 60),
                status=status,
                price_cents=0,
            )
        )

    def weekly_schedule(
        self,
        professional_id: int,
        day_of_week: int,
        work_start: Optional[time] = None,
        work_end: Optional[time] = None,
        lunch_start: Optional[time] = None,
        lunch_end: Optional[time] = None,
        owner_id: int = 1,
    ) -> int:
        return self._add(
            DbSchedule(
                owner_id=owner_id,
                professional_id=professional_id,
                day_of_week=day_of_week,
                work_start=work_start,
                work_end=work_end,
                lunch_start=lunch_start,
                lunch_end=lunch_end,
            )
        )

    def professional_exception(
        self,
        professional_id: int,
        on_date: date,
        is_off: bool = False,
        work_start: Optional[time] = None,
        work_end: Optional[time] = None,
        owner_id: int = 1,
    ) -> int:
        return self._add(
            DbException(
                owner_id=owner_id,
                professional_id=professional_id,
                exception_date=on_date,
                is_off=is_off,
                work_start=work_start,
                work_end=work_end,
            )
        )

    def absence(
        self, professional_id: int, start_date: date, end_date: date, owner_id: int = 1
    ) -> int:
        return self._add(
            DbAbsence(
                owner_id=owner_id,
                professional_id=professional_id,
                start_date=start_date,
                end_date=end_date,
            )
        )

    def business_settings(
        self,
        work_start: time = time(8, 0),
        work_end: time = time(20, 0),
        lunch_start: Optional[time] = None,
        lunch_end: Optional[time] = None,
        owner_id: int = 1,
    ) -> int:
        return self._add(
            DbBusinessSettings(
                owner_id=owner_id,
                work_start=work_start,
                work_end=work_end,
                lunch_start=lunch_start,
                lunch_end=lunch_end,
            )
        )

    def business_exception(
        self,
        on_date: date,
        is_closed: bool = True,
        work_start: Optional[time] = None,
        work_end: Optional[time] = None,
        owner_id: int = 1,
    ) -> int:
        return self._add(
            DbBusinessException(
                owner_id=owner_id,
                exception_date=on_date,
                is_closed=is_closed,
                work_start=work_start,
                work_end=work_end,
            )
        )

    def basic_salon(self, owner_id: int = 1, duration_minutes: int = 30) -> dict:
        """Professional + service + client for one owner."""
        return {
            "professional_id": self.professional(owner_id=owner_id),
            "service_id": self.service(
                owner_id=owner_id, duration_minutes=duration_minutes
            ),
            "client_id": self.client(owner_id=owner_id),
        }
