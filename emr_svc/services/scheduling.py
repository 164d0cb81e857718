"""
Working-hours rules and slot computation.

Pure functions shared by the doctor, location, user-schedule and
appointment services. Times are 'HH:MM' strings at the edges and minutes
after midnight inside.

    >>> day = {"enabled": True, "start": "09:00", "end": "11:00",
    ...        "break_start": "10:00", "break_end": "10:30"}
    >>> [s["start"] for s in compute_slots(day, 30)]
    ['09:00', '09:30', '10:30']
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from core.datetime_utils import WEEKDAY_NAMES, minutes_to_time, parse_time, ranges_overlap
from core.exceptions import ValidationFailedError

logger = logging.getLogger(__name__)

DEFAULT_WORK_START = "09:00"
DEFAULT_WORK_END = "17:00"
APPOINTMENT_SLOT_MINUTES = 30

Slot = Dict[str, str]


def validate_working_hours(
    start: str,
    end: str,
    break_start: Optional[str] = None,
    break_end: Optional[str] = None,
    label: str = "Schedule",
) -> None:
    """
    Check that a working window and its optional break are consistent.

    Args:
        start: Start of work, 'HH:MM'.
        end: End of work, 'HH:MM'.
        break_start: Optional start of the break.
        break_end: Optional end of the break.
        label: Prefix used in error messages (e.g. the weekday).

    Raises:
        ValidationFailedError: If start is not before end, only one break
            bound is given, or the break is empty or outside working hours.
    """
    try:
        start_min, end_min = parse_time(start), parse_time(end)
    except ValueError as e:
        raise ValidationFailedError(f"{label}: {e}")

    if start_min >= end_min:
        raise ValidationFailedError(f"{label}: start time must be before end time")

    if break_start is None and break_end is None:
        return
    if break_start is None or break_end is None:
        raise ValidationFailedError(f"{label}: break_start and break_end must be given together")

    try:
        b_start, b_end = parse_time(break_start), parse_time(break_end)
    except ValueError as e:
        raise ValidationFailedError(f"{label}: {e}")

    if b_start >= b_end:
        raise ValidationFailedError(f"{label}: break start must be before break end")
    if b_start < start_min or b_end > end_min:
        raise ValidationFailedError(f"{label}: break must be within working hours")


def validate_weekly_schedule(document: Mapping[str, Mapping[str, Any]]) -> None:
    """
    Validate every enabled day of a weekly schedule document.

    Disabled days are not checked beyond their keys.

    Raises:
        ValidationFailedError: On an unknown weekday key, an enabled day
            without start/end, or inconsistent hours.
    """
    for day_name, day in document.items():
        if day_name not in WEEKDAY_NAMES:
            raise ValidationFailedError(f"Unknown weekday: {day_name}")
        if not day.get("enabled", True):
            continue
        if not day.get("start") or not day.get("end"):
            raise ValidationFailedError(f"{day_name}: start and end are required for an enabled day")
        validate_working_hours(
            day["start"], day["end"], day.get("break_start"), day.get("break_end"), label=day_name
        )


def _break_range(day: Mapping[str, Any]) -> Optional[Tuple[int, int]]:
    if day.get("break_start") and day.get("break_end"):
        return parse_time(day["break_start"]), parse_time(day["break_end"])
    return None


def compute_slots(day: Optional[Mapping[str, Any]], duration: int) -> List[Slot]:
    """
    Split one day of a schedule into fixed-length slots.

    Walks from start to end in ``duration`` steps and yields each
    [t, t + duration) slot that fits inside the day and does not overlap
    the break. A disabled or missing day has no slots.

    Args:
        day: A day entry {enabled, start, end, break_start?, break_end?}.
        duration: Slot length in minutes.

    Returns:
        List of {"start": "HH:MM", "end": "HH:MM"} dicts in time order.
    """
    if not day or not day.get("enabled", True) or not day.get("start") or not day.get("end"):
        return []
    if duration <= 0:
        raise ValueError("Slot duration must be positive")

    start, end = parse_time(day["start"]), parse_time(day["end"])
    pause = _break_range(day)

    slots: List[Slot] = []
    t = start
    while t + duration <= end:
        if pause is None or not ranges_overlap(t, t + duration, pause[0], pause[1]):
            slots.append({"start": minutes_to_time(t), "end": minutes_to_time(t + duration)})
        t += duration
    return slots


def doctor_working_day(schedule_row: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Turn a doctor_schedules row into a day entry.

    Without an active row the default 09:00-17:00 window applies.
    """
    if schedule_row is None:
        return {"enabled": True, "start": DEFAULT_WORK_START, "end": DEFAULT_WORK_END}
    return {
        "enabled": True,
        "start": schedule_row["start_time"],
        "end": schedule_row["end_time"],
        "break_start": schedule_row.get("break_start"),
        "break_end": schedule_row.get("break_end"),
    }


def remove_booked(slots: Iterable[Slot], booked: Iterable[Mapping[str, str]]) -> List[Slot]:
    """Drop slots overlapping any booked {start_time, end_time} range."""
    ranges = [(parse_time(b["start_time"]), parse_time(b["end_time"])) for b in booked]
    free = []
    for slot in slots:
        s, e = parse_time(slot["start"]), parse_time(slot["end"])
        if not any(ranges_overlap(s, e, b_start, b_end) for b_start, b_end in ranges):
            free.append(slot)
    return free


def is_available(schedule_row: Optional[Mapping[str, Any]], time: str) -> bool:
    """
    Whether a doctor works at ``time`` according to one weekly row.

    True when the row exists and is active, start <= time <= end, and the
    time is not inside [break_start, break_end).
    """
    if schedule_row is None or not schedule_row.get("is_active", True):
        return False
    t = parse_time(time)
    if not parse_time(schedule_row["start_time"]) <= t <= parse_time(schedule_row["end_time"]):
        return False
    pause = _break_range(schedule_row)
    if pause and pause[0] <= t < pause[1]:
        return False
    return True


def validate_effective_window(effective_from: Optional[str], effective_to: Optional[str]) -> None:
    """Raise ValidationFailedError when effective_to precedes effective_from."""
    if effective_from and effective_to and effective_to < effective_from:
        raise ValidationFailedError("effective_to must not be before effective_from")
