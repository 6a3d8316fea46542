"""
Booking coordinator - atomic create/reschedule of appointments.

Every write runs read-validate-write inside one transaction that starts by
taking the per-professional write lock. Two requests for the same
professional are therefore serialised by the database, never by in-process
locks, and each re-validates against the windows committed before it.

On PostgreSQL an exclusion constraint backs this up: a commit that would
still create an overlap fails with SQLSTATE 23P01. Such storage conflicts
(and serialization failures/deadlocks) are re-validated once in a fresh
transaction and reported as a rejection; the write is never retried.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Callable, Optional

from sqlalchemy.exc import DBAPIError

from salon_booking.core.exceptions import (
    AppointmentNotReschedulableError,
    BookingError,
    CalendarConfigurationError,
    InvalidStatusTransitionError,
    NotFoundError,
    StorageConflictError,
)
from salon_booking.domain import conflict_guard
from salon_booking.domain.conflict_guard import RejectionReason, ValidationResult
from salon_booking.domain.entities import Appointment, AppointmentStatus, TimeWindow
from salon_booking.repositories.appointment_repo import AppointmentRepository
from salon_booking.repositories.business_repo import BusinessHoursRepository
from salon_booking.repositories.client_repo import ClientRepository
from salon_booking.repositories.professional_repo import ProfessionalRepository
from salon_booking.repositories.service_repo import ServiceRepository
from salon_booking.schemas.dtos import BookingRequest
from salon_booking.services.calendar_service import CalendarService

logger = logging.getLogger(__name__)

# exclusion_violation, serialization_failure, deadlock_detected
STORAGE_CONFLICT_SQLSTATES = frozenset({"23P01", "40001", "40P01"})


def is_storage_conflict(error: DBAPIError) -> bool:
    """Whether a DBAPI error means a concurrent writer won the race."""
    orig = getattr(error, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    return code in STORAGE_CONFLICT_SQLSTATES


@dataclass(frozen=True)
class BookingOutcome:
    """Result of a write: the stored appointment, or why it was rejected."""

    appointment: Optional[Appointment] = None
    reason: Optional[RejectionReason] = None

    @property
    def ok(self) -> bool:
        return self.reason is None and self.appointment is not None

    @property
    def message(self) -> str:
        if self.reason is None:
            return "OK"
        return ValidationResult.rejected(self.reason).message

    @classmethod
    def booked(cls, appointment: Appointment) -> "BookingOutcome":
        return cls(appointment=appointment)

    @classmethod
    def rejected(cls, reason: RejectionReason) -> "BookingOutcome":
        return cls(reason=reason)


class BookingCoordinator:
    """Creates, moves, transitions and deletes appointments atomically."""

    def __init__(
        self,
        session_factory: Callable,
        clock: Callable[[], datetime],
        tz: tzinfo,
    ) -> None:
        self.session_factory = session_factory
        self.clock = clock
        self.tz = tz

    # ------------------------------------------------------------------
    # Writes that claim calendar time
    # ------------------------------------------------------------------

    def book(self, owner_id: int, request: BookingRequest) -> BookingOutcome:
        """Book a new appointment.

        Raises:
            ValueError: malformed request
            NotFoundError: professional, service or client unknown for owner
            StorageConflictError: the database reported a conflict before the
                requested window could be evaluated
        """
        request.validate()
        proposed: Optional[TimeWindow] = None

        with self.session_factory() as db:
            try:
                professionals = ProfessionalRepository(db)
                if not professionals.lock_professional(
                    owner_id, request.professional_id
                ):
                    raise NotFoundError("Professional", request.professional_id)

                service = ServiceRepository(db).get_by_id(owner_id, request.service_id)
                if service is None:
                    raise NotFoundError("Service", request.service_id)
                if not ClientRepository(db).exists(owner_id, request.client_id):
                    raise NotFoundError("Client", request.client_id)

                proposed = TimeWindow.starting_at(
                    request.start, service.duration_minutes
                )
                result = self._check(
                    db, owner_id, request.professional_id, proposed, None
                )
                if not result.ok:
                    db.rollback()
                    self._log_rejection(
                        "book", owner_id, request.professional_id, proposed, result.reason
                    )
                    return BookingOutcome.rejected(result.reason)

                appointment = AppointmentRepository(db).create(
                    Appointment(
                        owner_id=owner_id,
                        professional_id=request.professional_id,
                        client_id=request.client_id,
                        service_id=request.service_id,
                        start=proposed.start,
                        end=proposed.end,
                        duration_minutes=service.duration_minutes,
                        status=AppointmentStatus.SCHEDULED,
                        price_cents=(
                            request.price_cents
                            if request.price_cents is not None
                            else service.price_cents
                        ),
                        notes=request.notes,
                    )
                )
                db.commit()
            except BookingError:
                db.rollback()
                raise
            except DBAPIError as e:
                db.rollback()
                if not is_storage_conflict(e):
                    raise
                if proposed is None:
                    raise StorageConflictError(
                        "Concurrent booking conflict, please try again"
                    ) from e
                self._log_storage_conflict("book", request.professional_id, proposed, e)
                return self._revalidate_after_conflict(
                    owner_id, request.professional_id, proposed, None
                )

        logger.info(
            "Appointment booked",
            extra={
                "context": {
                    "owner_id": owner_id,
                    "appointment_id": appointment.id,
                    "professional_id": appointment.professional_id,
                    "start": proposed.start.isoformat(),
                    "end": proposed.end.isoformat(),
                }
            },
        )
        return BookingOutcome.booked(appointment)

    def reschedule(
        self, owner_id: int, appointment_id: int, new_start: datetime
    ) -> BookingOutcome:
        """Move a scheduled appointment, keeping its cached duration.

        The appointment's own current window never conflicts with the move.

        Raises:
            NotFoundError: unknown appointment for owner
            AppointmentNotReschedulableError: appointment not scheduled
        """
        if new_start.tzinfo is None or new_start.utcoffset() is None:
            raise ValueError("start must include a timezone offset")
        proposed: Optional[TimeWindow] = None
        professional_id: Optional[int] = None

        with self.session_factory() as db:
            try:
                if not ProfessionalRepository(db).lock_for_appointment(
                    owner_id, appointment_id
                ):
                    raise NotFoundError("Appointment", appointment_id)

                appointments = AppointmentRepository(db)
                current = appointments.get_by_id(owner_id, appointment_id)
                if current is None:
                    raise NotFoundError("Appointment", appointment_id)
                if current.status != AppointmentStatus.SCHEDULED:
                    raise AppointmentNotReschedulableError(current.status.value)

                professional_id = current.professional_id
                proposed = TimeWindow.starting_at(new_start, current.duration_minutes)
                result = self._check(
                    db, owner_id, professional_id, proposed, appointment_id
                )
                if not result.ok:
                    db.rollback()
                    self._log_rejection(
                        "reschedule", owner_id, professional_id, proposed, result.reason
                    )
                    return BookingOutcome.rejected(result.reason)

                updated = appointments.update_window(owner_id, appointment_id, proposed)
                db.commit()
            except BookingError:
                db.rollback()
                raise
            except DBAPIError as e:
                db.rollback()
                if not is_storage_conflict(e):
                    raise
                if proposed is None:
                    raise StorageConflictError(
                        "Concurrent booking conflict, please try again"
                    ) from e
                self._log_storage_conflict("reschedule", professional_id, proposed, e)
                return self._revalidate_after_conflict(
                    owner_id, professional_id, proposed, appointment_id
                )

        logger.info(
            "Appointment rescheduled",
            extra={
                "context": {
                    "owner_id": owner_id,
                    "appointment_id": appointment_id,
                    "professional_id": professional_id,
                    "start": proposed.start.isoformat(),
                    "end": proposed.end.isoformat(),
                }
            },
        )
        return BookingOutcome.booked(updated)

    # ------------------------------------------------------------------
    # Writes that only release or keep calendar time
    # ------------------------------------------------------------------

    def update_status(
        self, owner_id: int, appointment_id: int, new_status: AppointmentStatus
    ) -> Appointment:
        """Apply a status transition; canceling frees the window at commit.

        Raises:
            NotFoundError: unknown appointment for owner
            InvalidStatusTransitionError: transition not allowed
        """
        new_status = AppointmentStatus(new_status)
        with self.session_factory() as db:
            try:
                if not ProfessionalRepository(db).lock_for_appointment(
                    owner_id, appointment_id
                ):
                    raise NotFoundError("Appointment", appointment_id)

                appointments = AppointmentRepository(db)
                current = appointments.get_by_id(owner_id, appointment_id)
                if current is None:
                    raise NotFoundError("Appointment", appointment_id)
                if not current.can_transition_to(new_status):
                    raise InvalidStatusTransitionError(
                        current.status.value, new_status.value
                    )

                updated = appointments.update_status(
                    owner_id, appointment_id, new_status
                )
                db.commit()
            except BookingError:
                db.rollback()
                raise
            except DBAPIError:
                db.rollback()
                raise

        logger.info(
            "Appointment status changed",
            extra={
                "context": {
                    "owner_id": owner_id,
                    "appointment_id": appointment_id,
                    "from": current.status.value,
                    "to": new_status.value,
                }
            },
        )
        return updated

    def delete(self, owner_id: int, appointment_id: int) -> None:
        """Hard delete an appointment owned by ``owner_id``.

        Raises:
            NotFoundError: unknown appointment for owner
        """
        with self.session_factory() as db:
            try:
                if not ProfessionalRepository(db).lock_for_appointment(
                    owner_id, appointment_id
                ):
                    raise NotFoundError("Appointment", appointment_id)
                if not AppointmentRepository(db).delete(owner_id, appointment_id):
                    raise NotFoundError("Appointment", appointment_id)
                db.commit()
            except BookingError:
                db.rollback()
                raise
            except DBAPIError:
                db.rollback()
                raise

        logger.info(
            "Appointment deleted",
            extra={
                "context": {"owner_id": owner_id, "appointment_id": appointment_id}
            },
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check(
        self,
        db,
        owner_id: int,
        professional_id: int,
        proposed: TimeWindow,
        exclude_appointment_id: Optional[int],
    ) -> ValidationResult:
        """Run the conflict guard against the current committed state."""
        now = self.clock()
        calendar_service = CalendarService(
            ProfessionalRepository(db), BusinessHoursRepository(db), self.tz
        )
        on_date = proposed.start.astimezone(self.tz).date()
        try:
            calendar = calendar_service.get_calendar(owner_id, professional_id, on_date)
        except CalendarConfigurationError as e:
            logger.error(
                "Calendar misconfigured; rejecting booking",
                extra={
                    "context": {
                        "owner_id": owner_id,
                        "professional_id": professional_id,
                        "date": on_date.isoformat(),
                        "detail": e.detail,
                    }
                },
            )
            # A past start is still reported as such
            past = conflict_guard.validate(proposed, None, [], now)
            if past.reason == RejectionReason.IN_THE_PAST:
                return past
            return ValidationResult.rejected(RejectionReason.CALENDAR_NOT_CONFIGURED)

        existing = []
        if calendar is not None:
            existing = AppointmentRepository(db).list_windows(
                professional_id,
                proposed.start,
                proposed.end,
                exclude_appointment_id=exclude_appointment_id,
            )
        return conflict_guard.validate(proposed, calendar, existing, now)

    def _revalidate_after_conflict(
        self,
        owner_id: int,
        professional_id: int,
        proposed: TimeWindow,
        exclude_appointment_id: Optional[int],
    ) -> BookingOutcome:
        """Re-check once in a fresh transaction after a storage conflict."""
        with self.session_factory() as db:
            result = self._check(
                db, owner_id, professional_id, proposed, exclude_appointment_id
            )
            db.rollback()

        reason = result.reason or RejectionReason.OVERLAPS_EXISTING_APPOINTMENT
        self._log_rejection("revalidate", owner_id, professional_id, proposed, reason)
        return BookingOutcome.rejected(reason)

    def _log_rejection(
        self,
        operation: str,
        owner_id: int,
        professional_id: int,
        proposed: TimeWindow,
        reason: RejectionReason,
    ) -> None:
        logger.info(
            "Booking rejected",
            extra={
                "context": {
                    "operation": operation,
                    "owner_id": owner_id,
                    "professional_id": professional_id,
                    "start": proposed.start.isoformat(),
                    "end": proposed.end.isoformat(),
                    "reason": reason.value,
                }
            },
        )

    def _log_storage_conflict(
        self,
        operation: str,
        professional_id: Optional[int],
        proposed: TimeWindow,
        error: DBAPIError,
    ) -> None:
        logger.warning(
            "Storage rejected overlapping write; re-validating",
            extra={
                "context": {
                    "operation": operation,
                    "professional_id": professional_id,
                    "start": proposed.start.isoformat(),
                    "end": proposed.end.isoformat(),
                    "error": str(getattr(error, "orig", error)),
                }
            },
        )
