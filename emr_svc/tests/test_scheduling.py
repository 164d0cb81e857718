"""
Unit tests for the working-hours rules and slot computation.
"""
import pytest

from core.datetime_utils import weekday_index, weekday_name
from core.exceptions import ValidationFailedError
from services.scheduling import (
    compute_slots,
    doctor_working_day,
    is_available,
    remove_booked,
    validate_effective_window,
    validate_weekly_schedule,
    validate_working_hours,
)


def test_weekday_numbering_starts_on_sunday():
    assert weekday_index("2025-03-16") == 0
    assert weekday_index("2025-03-17") == 1
    assert weekday_index("2025-03-22") == 6
    assert weekday_name("2025-03-17") == "monday"


@pytest.mark.parametrize("start,end,b_start,b_end", [
    ("17:00", "09:00", None, None),
    ("09:00", "09:00", None, None),
    ("09:00", "17:00", "12:00", None),
    ("09:00", "17:00", "13:00", "12:00"),
    ("09:00", "17:00", "08:30", "09:30"),
    ("09:00", "17:00", "16:30", "17:30"),
    ("9am", "17:00", None, None),
])
def test_invalid_working_hours(start, end, b_start, b_end):
    with pytest.raises(ValidationFailedError):
        validate_working_hours(start, end, b_start, b_end)


def test_break_may_touch_the_edges():
    validate_working_hours("09:00", "17:00", "09:00", "10:00")
    validate_working_hours("09:00", "17:00", "16:00", "17:00")


def test_weekly_schedule_skips_disabled_days():
    validate_weekly_schedule({
        "monday": {"enabled": True, "start": "09:00", "end": "17:00"},
        "saturday": {"enabled": False, "start": "18:00", "end": "08:00"},
    })


def test_weekly_schedule_error_names_the_day():
    with pytest.raises(ValidationFailedError) as exc_info:
        validate_weekly_schedule({"friday": {"enabled": True, "start": "10:00", "end": "09:00"}})
    assert exc_info.value.detail.startswith("friday")


def test_compute_slots_skips_overlapping_break():
    day = {"enabled": True, "start": "09:00", "end": "11:00", "break_start": "09:45", "break_end": "10:15"}
    assert compute_slots(day, 30) == [
        {"start": "09:00", "end": "09:30"},
        {"start": "10:30", "end": "11:00"},
    ]


def test_compute_slots_drops_partial_last_slot():
    day = {"enabled": True, "start": "09:00", "end": "10:10"}
    assert [s["start"] for s in compute_slots(day, 30)] == ["09:00", "09:30"]


def test_compute_slots_for_missing_or_disabled_day():
    assert compute_slots(None, 30) == []
    assert compute_slots({"enabled": False, "start": "09:00", "end": "17:00"}, 30) == []


def test_doctor_day_defaults_to_nine_to_five():
    day = doctor_working_day(None)
    assert len(compute_slots(day, 30)) == 16


def test_remove_booked_uses_half_open_ranges():
    slots = compute_slots({"enabled": True, "start": "09:00", "end": "11:00"}, 30)
    free = remove_booked(slots, [{"start_time": "09:30", "end_time": "10:15"}])
    assert [s["start"] for s in free] == ["09:00", "10:30"]


def test_is_available():
    row = {"start_time": "09:00", "end_time": "17:00", "break_start": "12:00", "break_end": "13:00",
           "is_active": True}
    assert is_available(row, "09:00")
    assert is_available(row, "17:00")
    assert not is_available(row, "12:00")
    assert is_available(row, "13:00")
    assert not is_available(row, "08:59")
    assert not is_available({**row, "is_active": False}, "10:00")
    assert not is_available(None, "10:00")


def test_effective_window():
    validate_effective_window("2025-01-01", None)
    validate_effective_window("2025-01-01", "2025-01-01")
    with pytest.raises(ValidationFailedError):
        validate_effective_window("2025-02-01", "2025-01-31")
