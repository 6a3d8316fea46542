"""
Data Transfer Objects (DTOs) and validation schemas.

Following SOLID principles:
- Single Responsibility: Each schema validates one specific data contract
- Open/Closed: Schemas can be extended without modification

Instants cross the API as ISO-8601 strings with an explicit offset (``Z``
or ``+HH:MM``). Naive strings are rejected: they would have to be guessed
into a timezone.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Optional

from salon_booking.domain.entities import AppointmentStatus

MAX_NOTES_LENGTH = 2000
# Leaves room for timezone shifts and service durations around an instant
MIN_YEAR = 2
MAX_YEAR = 9998


def _check_year(year: int, field_name: str) -> None:
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValueError(
            f"{field_name} must fall between years {MIN_YEAR} and {MAX_YEAR}"
        )


def parse_instant(value: Any, field_name: str) -> datetime:
    """Parse an ISO-8601 instant that carries an explicit offset."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} is required (ISO-8601 with timezone offset)")
    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as e:
        raise ValueError(f"{field_name} is not a valid ISO-8601 datetime") from e
    if parsed.tzinfo is None or parsed.utcoffset() is None:
        raise ValueError(f"{field_name} must include a timezone offset")
    _check_year(parsed.year, field_name)
    return parsed


def parse_date(value: Any, field_name: str) -> date:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} is required (YYYY-MM-DD)")
    try:
        parsed = date.fromisoformat(value.strip())
    except ValueError as e:
        raise ValueError(f"{field_name} must be a date in YYYY-MM-DD format") from e
    _check_year(parsed.year, field_name)
    return parsed


def parse_id(value: Any, field_name: str) -> int:
    """Parse a positive integer identifier from JSON or a query string."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Valid {field_name} is required")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
    else:
        raise ValueError(f"Valid {field_name} is required")
    if parsed <= 0:
        raise ValueError(f"Valid {field_name} is required")
    return parsed


@dataclass
class BookingRequest:
    """DTO for appointment booking requests."""

    professional_id: int
    client_id: int
    service_id: int
    start: datetime
    price_cents: Optional[int] = None
    notes: Optional[str] = None

    def validate(self) -> None:
        """Validate the request data."""
        for field_name in ("professional_id", "client_id", "service_id"):
            parse_id(getattr(self, field_name), field_name)
        if self.start.tzinfo is None or self.start.utcoffset() is None:
            raise ValueError("start must include a timezone offset")
        if self.price_cents is not None:
            if isinstance(self.price_cents, bool) or not isinstance(
                self.price_cents, int
            ):
                raise ValueError("price_cents must be an integer")
            if self.price_cents < 0:
                raise ValueError("Price cannot be negative")
        if self.notes is not None:
            if not isinstance(self.notes, str):
                raise ValueError("notes must be a string")
            if len(self.notes) > MAX_NOTES_LENGTH:
                raise ValueError(f"notes must be at most {MAX_NOTES_LENGTH} characters")

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "BookingRequest":
        request = cls(
            professional_id=parse_id(data.get("professional_id"), "professional_id"),
            client_id=parse_id(data.get("client_id"), "client_id"),
            service_id=parse_id(data.get("service_id"), "service_id"),
            start=parse_instant(data.get("start"), "start"),
            price_cents=data.get("price_cents"),
            notes=data.get("notes"),
        )
        request.validate()
        return request


@dataclass
class RescheduleRequest:
    """DTO for moving an appointment to a new start."""

    start: datetime

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "RescheduleRequest":
        return cls(start=parse_instant(data.get("start"), "start"))


@dataclass
class StatusChangeRequest:
    """DTO for appointment status changes."""

    status: AppointmentStatus

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "StatusChangeRequest":
        raw = data.get("status")
        try:
            return cls(status=AppointmentStatus(raw))
        except ValueError as e:
            allowed = ", ".join(s.value for s in AppointmentStatus)
            raise ValueError(f"status must be one of: {allowed}") from e


@dataclass
class AvailabilityQuery:
    """DTO for availability lookups (query string)."""

    professional_id: int
    on_date: date
    service_id: int

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "AvailabilityQuery":
        return cls(
            professional_id=parse_id(args.get("professional_id"), "professional_id"),
            on_date=parse_date(args.get("date"), "date"),
            service_id=parse_id(args.get("service_id"), "service_id"),
        )


@dataclass
class AppointmentListQuery:
    """DTO for listing appointments with optional filters."""

    professional_id: Optional[int] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def validate(self) -> None:
        if self.start is not None and self.end is not None and self.start >= self.end:
            raise ValueError("start must be before end")

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "AppointmentListQuery":
        query = cls(
            professional_id=(
                parse_id(args.get("professional_id"), "professional_id")
                if args.get("professional_id") is not None
                else None
            ),
            start=(
                parse_instant(args.get("start"), "start")
                if args.get("start") is not None
                else None
            ),
            end=(
                parse_instant(args.get("end"), "end")
                if args.get("end") is not None
                else None
            ),
        )
        query.validate()
        return query

