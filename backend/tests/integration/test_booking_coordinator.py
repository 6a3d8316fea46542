"""
Integration tests for BookingCoordinator against a real SQLite database.
"""

from datetime import date, time, timezone
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError

from salon_booking.core.exceptions import (
    AppointmentNotReschedulableError,
    InvalidStatusTransitionError,
    NotFoundError,
)
from salon_booking.domain.conflict_guard import RejectionReason
from salon_booking.domain.entities import AppointmentStatus
from salon_booking.repositories.appointment_repo import AppointmentRepository
from salon_booking.schemas.dtos import BookingRequest
from salon_booking.services.booking_service import BookingCoordinator
from tests.fixtures.salon_fixtures import (
    BOOKING_DAY,
    NOW,
    OTHER_OWNER_ID,
    OWNER_ID,
    utc,
)


@pytest.fixture
def coordinator(session_factory, clock):
    return BookingCoordinator(session_factory, clock, timezone.utc)


@pytest.fixture
def salon(seed):
    return seed.basic_salon()


def request_for(salon, start, **overrides):
    fields = dict(
        professional_id=salon["professional_id"],
        client_id=salon["client_id"],
        service_id=salon["service_id"],
        start=start,
    )
    fields.update(overrides)
    return BookingRequest(**fields)


@pytest.mark.integration
@pytest.mark.database
@pytest.mark.appointment
class TestBook:
    def test_book_free_slot(self, coordinator, salon, db_session):
        outcome = coordinator.book(OWNER_ID, request_for(salon, utc(10)))

        assert outcome.ok
        appointment = outcome.appointment
        assert appointment.id is not None
        assert appointment.start == utc(10)
        assert appointment.end == utc(10, 30)
        assert appointment.duration_minutes == 30
        assert appointment.status is AppointmentStatus.SCHEDULED
        # Price defaults to the service price
        assert appointment.price_cents == 5000

        stored = AppointmentRepository(db_session).get_by_id(OWNER_ID, appointment.id)
        assert stored.start == utc(10)
        assert stored.start.tzinfo is not None

    def test_explicit_price_and_notes_are_kept(self, coordinator, salon):
        outcome = coordinator.book(
            OWNER_ID, request_for(salon, utc(10), price_cents=0, notes="Cortesia")
        )
        assert outcome.appointment.price_cents == 0
        assert outcome.appointment.notes == "Cortesia"

    def test_overlapping_booking_is_rejected(self, coordinator, salon, seed):
        other_client = seed.client(name="Carla")
        assert coordinator.book(OWNER_ID, request_for(salon, utc(14))).ok

        outcome = coordinator.book(
            OWNER_ID, request_for(salon, utc(14, 15), client_id=other_client)
        )
        assert not outcome.ok
        assert outcome.reason == RejectionReason.OVERLAPS_EXISTING_APPOINTMENT

    def test_back_to_back_bookings_are_accepted(self, coordinator, salon):
        assert coordinator.book(OWNER_ID, request_for(salon, utc(14))).ok
        assert coordinator.book(OWNER_ID, request_for(salon, utc(14, 30))).ok
        assert coordinator.book(OWNER_ID, request_for(salon, utc(13, 30))).ok

    def test_other_professional_is_independent(self, coordinator, salon, seed):
        second = seed.professional(name="Beatriz")
        assert coordinator.book(OWNER_ID, request_for(salon, utc(14))).ok
        assert coordinator.book(
            OWNER_ID, request_for(salon, utc(14), professional_id=second)
        ).ok

    @pytest.mark.parametrize(
        "start,reason",
        [
            (utc(8, 30), RejectionReason.OUTSIDE_WORKING_HOURS),
            (utc(17, 45), RejectionReason.OUTSIDE_WORKING_HOURS),
            (utc(12), RejectionReason.DURING_LUNCH),
            (utc(11, 45), RejectionReason.DURING_LUNCH),
            (utc(10, day=date(2030, 1, 5)), RejectionReason.IN_THE_PAST),
        ],
    )
    def test_guard_rejections(self, coordinator, salon, start, reason):
        outcome = coordinator.book(OWNER_ID, request_for(salon, start))
        assert outcome.reason == reason

    def test_rejection_writes_nothing(self, coordinator, salon, db_session):
        coordinator.book(OWNER_ID, request_for(salon, utc(12)))
        assert AppointmentRepository(db_session).list_for_owner(OWNER_ID) == []

    def test_unknown_resources_raise_not_found(self, coordinator, salon):
        with pytest.raises(NotFoundError):
            coordinator.book(OWNER_ID, request_for(salon, utc(10), professional_id=999))
        with pytest.raises(NotFoundError):
            coordinator.book(OWNER_ID, request_for(salon, utc(10), service_id=999))
        with pytest.raises(NotFoundError):
            coordinator.book(OWNER_ID, request_for(salon, utc(10), client_id=999))

    def test_foreign_professional_is_not_found(self, coordinator, salon):
        with pytest.raises(NotFoundError):
            coordinator.book(OTHER_OWNER_ID, request_for(salon, utc(10)))

    def test_day_off_exception_rejects(self, coordinator, salon, seed):
        seed.professional_exception(salon["professional_id"], BOOKING_DAY, is_off=True)
        outcome = coordinator.book(OWNER_ID, request_for(salon, utc(10)))
        assert outcome.reason == RejectionReason.OUTSIDE_WORKING_HOURS

    def test_absence_rejects(self, coordinator, salon, seed):
        seed.absence(salon["professional_id"], date(2030, 1, 1), date(2030, 1, 10))
        outcome = coordinator.book(OWNER_ID, request_for(salon, utc(10)))
        assert outcome.reason == RejectionReason.OUTSIDE_WORKING_HOURS

    def test_weekly_schedule_overrides_defaults(self, coordinator, salon, seed):
        # BOOKING_DAY is a Monday, stored as day 1
        seed.weekly_schedule(salon["professional_id"], 1, time(14), time(20))
        assert coordinator.book(OWNER_ID, request_for(salon, utc(19))).ok
        outcome = coordinator.book(OWNER_ID, request_for(salon, utc(10)))
        assert outcome.reason == RejectionReason.OUTSIDE_WORKING_HOURS

    def test_sunday_schedule_row_applies_on_sunday(self, coordinator, salon, seed):
        sunday = date(2030, 1, 13)
        seed.weekly_schedule(salon["professional_id"], 0, time(14), time(20))
        assert coordinator.book(OWNER_ID, request_for(salon, utc(19, day=sunday))).ok

    def test_schedule_row_does_not_leak_to_next_day(self, coordinator, salon, seed):
        # Monday row must not apply to Tuesday
        seed.weekly_schedule(salon["professional_id"], 1, time(14), time(20))
        tuesday = date(2030, 1, 8)
        assert coordinator.book(OWNER_ID, request_for(salon, utc(10, day=tuesday))).ok

    def test_unconfigured_calendar_is_rejected(self, coordinator, seed):
        salon = {
            "professional_id": seed.professional(
                work_start=None, work_end=None, lunch_start=None, lunch_end=None
            ),
            "service_id": seed.service(),
            "client_id": seed.client(),
        }
        outcome = coordinator.book(OWNER_ID, request_for(salon, utc(10)))
        assert outcome.reason == RejectionReason.CALENDAR_NOT_CONFIGURED

    def test_unconfigured_calendar_still_reports_past(self, coordinator, seed):
        salon = {
            "professional_id": seed.professional(
                work_start=None, work_end=None, lunch_start=None, lunch_end=None
            ),
            "service_id": seed.service(),
            "client_id": seed.client(),
        }
        past = utc(10, day=date(2030, 1, 5))
        outcome = coordinator.book(OWNER_ID, request_for(salon, past))
        assert outcome.reason == RejectionReason.IN_THE_PAST

    def test_business_settings_supply_missing_hours(self, coordinator, seed):
        seed.business_settings(work_start=time(8), work_end=time(20))
        salon = {
            "professional_id": seed.professional(
                work_start=None, work_end=None, lunch_start=None, lunch_end=None
            ),
            "service_id": seed.service(),
            "client_id": seed.client(),
        }
        assert coordinator.book(OWNER_ID, request_for(salon, utc(8))).ok


@pytest.mark.integration
@pytest.mark.database
@pytest.mark.appointment
class TestStorageConflict:
    def _conflict(self, pgcode):
        return IntegrityError(
            "INSERT INTO appointments ...", {}, SimpleNamespace(pgcode=pgcode)
        )

    def test_exclusion_violation_is_revalidated(self, coordinator, salon):
        with patch.object(
            AppointmentRepository, "create", side_effect=self._conflict("23P01")
        ):
            outcome = coordinator.book(OWNER_ID, request_for(salon, utc(10)))

        assert not outcome.ok
        assert outcome.reason == RejectionReason.OVERLAPS_EXISTING_APPOINTMENT

    def test_revalidation_reports_the_winning_reason(self, coordinator, salon, seed):
        def concurrent_winner(_appointment):
            # Another writer marked the day off before this commit
            seed.professional_exception(
                salon["professional_id"], BOOKING_DAY, is_off=True
            )
            raise self._conflict("40001")

        with patch.object(AppointmentRepository, "create", side_effect=concurrent_winner):
            outcome = coordinator.book(OWNER_ID, request_for(salon, utc(10)))

        assert outcome.reason == RejectionReason.OUTSIDE_WORKING_HOURS

    def test_other_integrity_errors_propagate(self, coordinator, salon):
        with patch.object(
            AppointmentRepository, "create", side_effect=self._conflict("23505")
        ):
            with pytest.raises(IntegrityError):
                coordinator.book(OWNER_ID, request_for(salon, utc(10)))


@pytest.mark.integration
@pytest.mark.database
@pytest.mark.appointment
class TestReschedule:
    def test_move_to_free_window(self, coordinator, salon):
        booked = coordinator.book(OWNER_ID, request_for(salon, utc(10))).appointment
        outcome = coordinator.reschedule(OWNER_ID, booked.id, utc(15))
        assert outcome.ok
        assert outcome.appointment.start == utc(15)
        assert outcome.appointment.end == utc(15, 30)

    def test_own_window_never_conflicts(self, coordinator, salon):
        booked = coordinator.book(OWNER_ID, request_for(salon, utc(10))).appointment
        # Shift by 15 minutes, overlapping only itself
        outcome = coordinator.reschedule(OWNER_ID, booked.id, utc(10, 15))
        assert outcome.ok
        assert outcome.appointment.start == utc(10, 15)

    def test_move_onto_another_appointment_is_rejected(self, coordinator, salon):
        first = coordinator.book(OWNER_ID, request_for(salon, utc(10))).appointment
        coordinator.book(OWNER_ID, request_for(salon, utc(11)))
        outcome = coordinator.reschedule(OWNER_ID, first.id, utc(11))
        assert outcome.reason == RejectionReason.OVERLAPS_EXISTING_APPOINTMENT

    def test_rejected_move_keeps_original_window(self, coordinator, salon, db_session):
        booked = coordinator.book(OWNER_ID, request_for(salon, utc(10))).appointment
        outcome = coordinator.reschedule(OWNER_ID, booked.id, utc(12))
        assert outcome.reason == RejectionReason.DURING_LUNCH
        stored = AppointmentRepository(db_session).get_by_id(OWNER_ID, booked.id)
        assert stored.start == utc(10)

    def test_keeps_cached_duration(self, coordinator, salon, seed):
        long_service = seed.service(name="Coloração", duration_minutes=90)
        booked = coordinator.book(
            OWNER_ID, request_for(salon, utc(9), service_id=long_service)
        ).appointment
        outcome = coordinator.reschedule(OWNER_ID, booked.id, utc(14))
        assert outcome.appointment.end == utc(15, 30)

    def test_only_scheduled_can_move(self, coordinator, salon):
        booked = coordinator.book(OWNER_ID, request_for(salon, utc(10))).appointment
        coordinator.update_status(OWNER_ID, booked.id, AppointmentStatus.COMPLETED)
        with pytest.raises(AppointmentNotReschedulableError):
            coordinator.reschedule(OWNER_ID, booked.id, utc(15))

    def test_foreign_appointment_is_not_found(self, coordinator, salon):
        booked = coordinator.book(OWNER_ID, request_for(salon, utc(10))).appointment
        with pytest.raises(NotFoundError):
            coordinator.reschedule(OTHER_OWNER_ID, booked.id, utc(15))

    def test_naive_start_is_rejected(self, coordinator, salon):
        booked = coordinator.book(OWNER_ID, request_for(salon, utc(10))).appointment
        with pytest.raises(ValueError):
            coordinator.reschedule(OWNER_ID, booked.id, utc(15).replace(tzinfo=None))


@pytest.mark.integration
@pytest.mark.database
@pytest.mark.appointment
class TestStatusAndDelete:
    def test_cancel_frees_the_window(self, coordinator, salon):
        booked = coordinator.book(OWNER_ID, request_for(salon, utc(10))).appointment
        canceled = coordinator.update_status(
            OWNER_ID, booked.id, AppointmentStatus.CANCELED
        )
        assert canceled.status is AppointmentStatus.CANCELED
        assert coordinator.book(OWNER_ID, request_for(salon, utc(10))).ok

    def test_completed_keeps_occupying(self, coordinator, salon):
        booked = coordinator.book(OWNER_ID, request_for(salon, utc(10))).appointment
        coordinator.update_status(OWNER_ID, booked.id, AppointmentStatus.COMPLETED)
        outcome = coordinator.book(OWNER_ID, request_for(salon, utc(10)))
        assert outcome.reason == RejectionReason.OVERLAPS_EXISTING_APPOINTMENT

    @pytest.mark.parametrize(
        "terminal",
        [
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELED,
            AppointmentStatus.NO_SHOW,
        ],
    )
    def test_terminal_states_are_final(self, coordinator, salon, terminal):
        booked = coordinator.book(OWNER_ID, request_for(salon, utc(10))).appointment
        coordinator.update_status(OWNER_ID, booked.id, terminal)
        with pytest.raises(InvalidStatusTransitionError):
            coordinator.update_status(OWNER_ID, booked.id, AppointmentStatus.SCHEDULED)

    def test_status_of_foreign_appointment_is_not_found(self, coordinator, salon):
        booked = coordinator.book(OWNER_ID, request_for(salon, utc(10))).appointment
        with pytest.raises(NotFoundError):
            coordinator.update_status(
                OTHER_OWNER_ID, booked.id, AppointmentStatus.CANCELED
            )

    def test_delete_frees_the_window(self, coordinator, salon, db_session):
        booked = coordinator.book(OWNER_ID, request_for(salon, utc(10))).appointment
        coordinator.delete(OWNER_ID, booked.id)
        assert AppointmentRepository(db_session).get_by_id(OWNER_ID, booked.id) is None
        assert coordinator.book(OWNER_ID, request_for(salon, utc(10))).ok

    def test_delete_unknown_is_not_found(self, coordinator):
        with pytest.raises(NotFoundError):
            coordinator.delete(OWNER_ID, 12345)

    def test_clock_is_read_per_write(self, session_factory, salon):
        instants = iter([NOW, utc(11)])
        coordinator = BookingCoordinator(
            session_factory, lambda: next(instants), timezone.utc
        )
        assert coordinator.book(OWNER_ID, request_for(salon, utc(10))).ok
        outcome = coordinator.book(OWNER_ID, request_for(salon, utc(10, 30)))
        assert outcome.reason == RejectionReason.IN_THE_PAST
