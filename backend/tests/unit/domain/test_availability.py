"""
Unit tests for slot generation.

The reference day is 09:00-18:00 with lunch 12:00-13:00 and a 30 minute
appointment already booked at 14:00.
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from salon_booking.domain.availability import produce_slots
from salon_booking.domain.conflict_guard import validate
from salon_booking.domain.entities import ScheduleCalendar, TimeWindow

DAY = date(2030, 1, 7)
NOW = datetime(2030, 1, 6, 12, 0, tzinfo=timezone.utc)


def at(hour, minute=0):
    return datetime(2030, 1, 7, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def calendar():
    return ScheduleCalendar(time(9), time(18), time(12), time(13))


@pytest.fixture
def booked():
    return [TimeWindow(at(14), at(14, 30))]


def labels(slots):
    return [slot.label for slot in slots]


@pytest.mark.unit
@pytest.mark.domain
@pytest.mark.availability
class TestProduceSlots:
    def test_reference_day(self, calendar, booked):
        slots = produce_slots(DAY, calendar, 30, booked, 30, NOW)
        result = labels(slots)

        assert "11:30" in result
        assert "13:00" in result
        assert "14:30" in result
        for excluded in ("12:00", "12:30", "14:00"):
            assert excluded not in result
        assert result[0] == "09:00"
        assert result[-1] == "17:30"
        # 18 half-hour starts minus two lunch starts minus the booked one
        assert len(result) == 15

    def test_slots_are_ordered_and_carry_duration(self, calendar, booked):
        slots = produce_slots(DAY, calendar, 45, booked, 15, NOW)
        starts = [slot.start for slot in slots]
        assert starts == sorted(starts)
        for slot in slots:
            assert slot.window.duration_minutes() == 45

    def test_every_slot_passes_the_guard(self, calendar, booked):
        for slot in produce_slots(DAY, calendar, 60, booked, 15, NOW):
            assert validate(slot.window, calendar, booked, NOW).ok

    def test_no_slot_overlaps_a_booking(self, calendar, booked):
        for slot in produce_slots(DAY, calendar, 60, booked, 30, NOW):
            assert not any(slot.window.overlaps(window) for window in booked)

    def test_generation_is_idempotent(self, calendar, booked):
        first = produce_slots(DAY, calendar, 30, booked, 30, NOW)
        second = produce_slots(DAY, calendar, 30, booked, 30, NOW)
        assert first == second

    def test_last_slot_ends_at_close(self, calendar):
        slots = produce_slots(DAY, calendar, 60, [], 30, NOW)
        assert slots[-1].end == at(18)
        assert labels(slots)[-1] == "17:00"

    def test_service_longer_than_day_yields_nothing(self, calendar):
        assert produce_slots(DAY, calendar, 10 * 60, [], 30, NOW) == []

    def test_no_calendar_yields_nothing(self):
        assert produce_slots(DAY, None, 30, [], 30, NOW) == []

    def test_past_candidates_are_dropped(self, calendar):
        now = at(15, 10)
        result = labels(produce_slots(DAY, calendar, 30, [], 30, now))
        assert result[0] == "15:30"

    def test_fully_booked_day_yields_nothing(self, calendar):
        booked = [TimeWindow(at(9), at(12)), TimeWindow(at(13), at(18))]
        assert produce_slots(DAY, calendar, 30, booked, 30, NOW) == []

    def test_labels_use_calendar_timezone(self):
        tz = ZoneInfo("America/Sao_Paulo")
        calendar = ScheduleCalendar(time(9), time(11), tz=tz)
        slots = produce_slots(DAY, calendar, 60, [], 60, NOW)
        assert labels(slots) == ["09:00", "10:00"]
        assert slots[0].start == at(12)
        assert slots[0].to_dict()["start"] == "2030-01-07T12:00:00Z"

    def test_dst_change_inside_working_hours(self):
        # Clocks jump from 02:00 to 03:00 in New York on 2030-03-10
        tz = ZoneInfo("America/New_York")
        calendar = ScheduleCalendar(time(0), time(6), tz=tz)
        slots = produce_slots(date(2030, 3, 10), calendar, 30, [], 30, NOW)

        assert len(slots) == 10
        assert all(slot.end - slot.start == timedelta(minutes=30) for slot in slots)
        starts = [slot.start for slot in slots]
        assert all(b - a == timedelta(minutes=30) for a, b in zip(starts, starts[1:]))
        assert labels(slots)[3:5] == ["01:30", "03:00"]
        assert slots[0].to_dict()["start"] == "2030-03-10T05:00:00Z"
        assert slots[-1].to_dict()["end"] == "2030-03-10T10:00:00Z"

    @pytest.mark.parametrize("duration,granularity", [(0, 30), (30, 0), (-5, 30)])
    def test_non_positive_inputs_raise(self, calendar, duration, granularity):
        with pytest.raises(ValueError):
            produce_slots(DAY, calendar, duration, [], granularity, NOW)
