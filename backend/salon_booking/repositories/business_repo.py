"""
Salon-wide hours: default business settings and dated closures.
"""

from datetime import date
from typing import Optional

from salon_booking.db.base import BusinessException as DbBusinessException
from salon_booking.db.base import BusinessSettings as DbBusinessSettings
from salon_booking.domain.entities import DateOverride, WorkingHours
from salon_booking.repositories.professional_repo import hours_from_row


class BusinessHoursRepository:
    """Read-only access to business settings and business exceptions."""

    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_settings(self, owner_id: int) -> Optional[WorkingHours]:
        db_settings = (
            self.db.query(DbBusinessSettings).filter_by(owner_id=owner_id).first()
        )
        if db_settings is None:
            return None
        return hours_from_row(db_settings, "business_settings")

    def get_exception(self, owner_id: int, on_date: date) -> Optional[DateOverride]:
        db_exception = (
            self.db.query(DbBusinessException)
            .filter_by(owner_id=owner_id, exception_date=on_date)
            .first()
        )
        if db_exception is None:
            return None
        if db_exception.is_closed:
            return DateOverride(closed=True)
        return DateOverride(
            closed=False, hours=hours_from_row(db_exception, "business_exception")
        )
