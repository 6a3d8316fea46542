from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional

from sqlalchemy import (
    DDL,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
    event,
    func,
)
from sqlalchemy.dialects.postgresql import ExcludeConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from .session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime stored as UTC on every backend.

    SQLite has no timezone support, so values are written as naive UTC and
    tagged with UTC again when read back.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError("Naive datetimes cannot be stored; attach a timezone")
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Professional(Base):
    """Salon professional with default working hours."""

    __tablename__ = "professionals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    work_start: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    work_end: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    lunch_start: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    lunch_end: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # Bumped by every booking transaction; the UPDATE doubles as the
    # per-professional write lock
    booking_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime, default=_utcnow
    )


class ProfessionalSchedule(Base):
    """Weekly working hours of a professional (0 = Sunday ... 6 = Saturday)."""

    __tablename__ = "professional_schedules"
    __table_args__ = (
        UniqueConstraint("professional_id", "day_of_week", name="uq_schedule_day"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_schedule_weekday"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    professional_id: Mapped[int] = mapped_column(
        ForeignKey("professionals.id", ondelete="CASCADE"), nullable=False
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    work_start: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    work_end: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    lunch_start: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    lunch_end: Mapped[Optional[time]] = mapped_column(Time, nullable=True)


class ProfessionalException(Base):
    """Date-specific override of a professional's hours, or a day off."""

    __tablename__ = "professional_exceptions"
    __table_args__ = (
        UniqueConstraint(
            "professional_id", "exception_date", name="uq_professional_exception_date"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    professional_id: Mapped[int] = mapped_column(
        ForeignKey("professionals.id", ondelete="CASCADE"), nullable=False
    )
    exception_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_off: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    work_start: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    work_end: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    lunch_start: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    lunch_end: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class ProfessionalAbsence(Base):
    """Inclusive date range during which a professional does not work."""

    __tablename__ = "professional_absences"
    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_absence_range"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    professional_id: Mapped[int] = mapped_column(
        ForeignKey("professionals.id", ondelete="CASCADE"), nullable=False
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class BusinessSettings(Base):
    """Salon-wide default hours, one row per owner."""

    __tablename__ = "business_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    work_start: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    work_end: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    lunch_start: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    lunch_end: Mapped[Optional[time]] = mapped_column(Time, nullable=True)


class BusinessException(Base):
    """Salon-wide override for a date: closed, or special hours."""

    __tablename__ = "business_exceptions"
    __table_args__ = (
        UniqueConstraint("owner_id", "exception_date", name="uq_business_exception_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    exception_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    work_start: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    work_end: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    lunch_start: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    lunch_end: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class Service(Base):
    """Bookable service with its duration and list price."""

    __tablename__ = "services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Client(Base):
    """Salon client"""

    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime, default=_utcnow
    )


class Appointment(Base):
    """Booked appointment occupying ``[start_at, end_at)`` on a professional's calendar."""

    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("start_at < end_at", name="ck_appointment_window"),
        CheckConstraint(
            "status IN ('scheduled', 'completed', 'canceled', 'no_show')",
            name="ck_appointment_status",
        ),
        Index("ix_appointments_professional_start", "professional_id", "start_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    professional_id: Mapped[int] = mapped_column(
        ForeignKey("professionals.id"), nullable=False
    )
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id"), nullable=False)
    service_id: Mapped[int] = mapped_column(ForeignKey("services.id"), nullable=False)
    start_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="scheduled")
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime, default=_utcnow
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime, default=_utcnow, onupdate=_utcnow
    )


# PostgreSQL rejects any commit that would leave two live appointments of the
# same professional overlapping. Canceled rows are ignored.
_appointments = Appointment.__table__
_appointments.append_constraint(
    ExcludeConstraint(
        (_appointments.c.professional_id, "="),
        (func.tstzrange(_appointments.c.start_at, _appointments.c.end_at, "[)"), "&&"),
        where=_appointments.c.status != "canceled",
        using="gist",
        name="appointments_no_overlap",
    ).ddl_if(dialect="postgresql")
)

# btree_gist provides the "=" operator class for integers inside a GiST index
event.listen(
    Base.metadata,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
