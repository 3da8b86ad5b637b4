from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Sequence
from zoneinfo import ZoneInfo

from .entities import Shift

SLOT_MINUTES = 15
RESERVATION_DURATION_MINUTES = 90
MINUTES_PER_DAY = 24 * 60

_HHMM = re.compile(r"^(\d{2}):(\d{2})$")


def parse_time_to_minutes(value: str) -> int:
    """Parse "HH:MM" into minutes since midnight. "24:00" is accepted as end of day."""
    match = _HHMM.match(value)
    if match is None:
        raise ValueError(f"invalid time {value!r}, expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes > 59 or hours > 24 or (hours == 24 and minutes != 0):
        raise ValueError(f"invalid time {value!r}, expected HH:MM")
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def shift_bounds(shift: Shift) -> tuple[int, int]:
    """Return (start, end) minutes of a shift. Raises ValueError on a malformed or empty shift."""
    start = parse_time_to_minutes(shift.start)
    end = parse_time_to_minutes(shift.end)
    if start >= end:
        raise ValueError(f"shift {shift.start}-{shift.end} must start before it ends")
    return start, end


def _seconds_since_midnight(dt: datetime) -> int:
    return dt.hour * 3600 + dt.minute * 60 + dt.second


def is_within_shifts(
    start: datetime,
    end: datetime,
    tz_name: str,
    shifts: Sequence[Shift] | None,
) -> bool:
    """
    True when [start, end] lies entirely inside one shift, in the restaurant's local time.
    An interval straddling a shift boundary is rejected, never truncated.
    No shifts means the restaurant takes bookings around the clock.
    """
    if not shifts:
        return True
    if start.tzinfo is None or end.tzinfo is None:
        raise ValueError("start and end must be timezone-aware")

    tz = ZoneInfo(tz_name)
    local_start = start.astimezone(tz)
    local_end = end.astimezone(tz)
    start_seconds = _seconds_since_midnight(local_start)
    # Measured from the start's local midnight so an interval running past midnight
    # can never fit a same-day shift.
    days_apart = (local_end.date() - local_start.date()).days
    end_seconds = _seconds_since_midnight(local_end) + days_apart * MINUTES_PER_DAY * 60

    for shift in shifts:
        shift_start, shift_end = shift_bounds(shift)
        if shift_start * 60 <= start_seconds and end_seconds <= shift_end * 60:
            return True
    return False


def _windows(shifts: Sequence[Shift] | None) -> Iterable[tuple[int, int]]:
    if not shifts:
        return [(0, MINUTES_PER_DAY)]
    return [shift_bounds(shift) for shift in shifts]


def generate_day_slots(
    day: date,
    tz_name: str,
    shifts: Sequence[Shift] | None = None,
    *,
    slot_minutes: int = SLOT_MINUTES,
) -> list[datetime]:
    """
    Candidate start instants (UTC) for one local calendar day, ascending.

    Without shifts the whole day is covered (96 slots at 15 minutes). With shifts,
    slots step through each [start, end) window and never reach the shift end.
    """
    tz = ZoneInfo(tz_name)
    local_midnight = datetime.combine(day, time.min, tzinfo=tz)
    slots: set[datetime] = set()
    for window_start, window_end in _windows(shifts):
        for minutes in range(window_start, window_end, slot_minutes):
            local_slot = local_midnight + timedelta(minutes=minutes)
            slots.add(local_slot.astimezone(timezone.utc))
    return sorted(slots)


def reservation_end(start: datetime, *, minutes: int = RESERVATION_DURATION_MINUTES) -> datetime:
    return start + timedelta(minutes=minutes)
