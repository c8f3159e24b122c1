"""
Time and window arithmetic for schedule shifting and calendar rules

Parses the user-facing time strings used by the load flexibility
workflows ("15 - 18" peak periods, "HH:MM" clock times, "MM/DD-MM/DD"
seasons, "Mon/Tue/Wed" day sets) and converts hour-of-day windows into
time-step index ranges.

Days of week use Python's convention throughout: Monday=0 ... Sunday=6.

EnergyPlus Model Context Protocol Server (EnergyPlus-MCP)
Copyright (c) 2025, The Regents of the University of California,
through Lawrence Berkeley National Laboratory (subject to receipt of
any required approvals from the U.S. Dept. of Energy). All rights reserved.
"""

import logging
import math
import re
from dataclasses import dataclass
from datetime import date
from typing import FrozenSet, Iterable, Tuple, Union

from .exceptions import InvalidBreakpoint, InvalidDateRange, InvalidDayOfWeek, InvalidWindow

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24

DAY_ABBREVIATIONS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

WEEKDAYS: FrozenSet[int] = frozenset(range(5))
WEEKEND: FrozenSet[int] = frozenset({5, 6})
ALL_DAYS: FrozenSet[int] = frozenset(range(7))

_DAY_GROUPS = {
    "weekdays": WEEKDAYS,
    "weekends": WEEKEND,
    "alldays": ALL_DAYS,
}

MonthDay = Tuple[int, int]


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval [begin, end) in hours from the start of a day

    end may exceed 24 for windows that spill into the following day
    (a delayed destination window, for example).
    """
    begin: float
    end: float

    def __post_init__(self):
        if self.begin < 0:
            raise InvalidWindow(f"Window begin ({self.begin}) cannot be negative")
        if self.end <= self.begin:
            raise InvalidWindow(
                f"Window ({self.begin} - {self.end}) must have a positive length"
            )

    @property
    def width(self) -> float:
        return self.end - self.begin

    def delayed(self, hours: float) -> 'TimeWindow':
        """Window of equal width starting ``hours`` after this one ends"""
        return TimeWindow(self.end + hours, self.end + hours + self.width)

    def to_steps(self, steps_per_day: int) -> Tuple[int, int]:
        """Convert to a [begin, end) step-index range within one day block"""
        per_hour = steps_per_hour(steps_per_day)
        begin = self.begin * per_hour
        end = self.end * per_hour
        if begin != int(begin) or end != int(end):
            raise InvalidWindow(
                f"Window ({self.begin} - {self.end}) does not align with "
                f"{steps_per_day} steps per day"
            )
        return int(begin), int(end)

    def __str__(self) -> str:
        return f"{self.begin:g} - {self.end:g}"


def steps_per_hour(steps_per_day: int) -> int:
    """Number of time steps in one hour, requiring a whole number"""
    if steps_per_day <= 0 or steps_per_day % HOURS_PER_DAY != 0:
        raise InvalidWindow(
            f"Steps per day ({steps_per_day}) must be a positive multiple of {HOURS_PER_DAY}"
        )
    return steps_per_day // HOURS_PER_DAY


def parse_time_range(time_range: str) -> Tuple[int, int]:
    """
    Parse a peak period such as "15 - 18" into whole begin/end hours

    Only the format is checked here; an empty or reversed period is
    rejected when the shift is validated.
    """
    parts = [p.strip() for p in str(time_range).split("-")]
    if len(parts) != 2:
        raise InvalidWindow(f"Invalid time format specified for '{time_range}'.")

    try:
        begin_hour, end_hour = int(parts[0]), int(parts[1])
    except ValueError:
        raise InvalidWindow(f"Invalid time format specified for '{time_range}'.")

    for hour in (begin_hour, end_hour):
        if hour < 0 or hour > HOURS_PER_DAY:
            raise InvalidWindow(f"Hour {hour} in '{time_range}' is outside 0-24.")

    return begin_hour, end_hour


def split_fractional_hour(hours: float) -> Tuple[int, int]:
    """
    Decompose a fractional hour (e.g. 8.5) into whole hour and minute

    Raises InvalidBreakpoint for negative values and for anything past 24:00.
    """
    if hours is None or math.isnan(hours) or hours < 0:
        raise InvalidBreakpoint(f"Breakpoint time {hours} is outside 0-24h")

    hour = math.floor(hours)
    minute = int(round((hours - hour) * 60))
    if minute == 60:
        hour += 1
        minute = 0

    if hour > HOURS_PER_DAY or (hour == HOURS_PER_DAY and minute != 0):
        raise InvalidBreakpoint(f"Breakpoint time {hours} exceeds 24:00")

    return hour, minute


def format_clock(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}"


def parse_clock_time(value: str) -> float:
    """Convert "HH:MM" to fractional hours rounded to two decimals"""
    parts = str(value).strip().split(":")
    if len(parts) != 2:
        raise InvalidBreakpoint(f"Time '{value}' must use 24 hour HH:MM format")

    try:
        hour, minute = int(parts[0]), int(parts[1])
    except ValueError:
        raise InvalidBreakpoint(f"Time '{value}' must use 24 hour HH:MM format")

    if hour < 0 or minute < 0 or minute > 59:
        raise InvalidBreakpoint(f"Time '{value}' is not a valid clock time")

    hours = round(hour + minute / 60.0, 2)
    if hours > HOURS_PER_DAY:
        raise InvalidBreakpoint(f"Time '{value}' exceeds 24:00")
    return hours


def parse_clock_range(value: str) -> Tuple[float, float]:
    """Parse "HH:MM - HH:MM"; the end may be earlier than the start (overnight)"""
    parts = str(value).split("-")
    if len(parts) != 2:
        raise InvalidBreakpoint(f"Time range '{value}' must look like 'HH:MM - HH:MM'")
    return parse_clock_time(parts[0]), parse_clock_time(parts[1])


def _parse_month_day(token: str, season: str) -> MonthDay:
    pieces = token.split("/")
    if len(pieces) != 2:
        raise InvalidDateRange(f"Season '{season}' must use MM/DD-MM/DD format")
    try:
        month, day = int(pieces[0]), int(pieces[1])
        # Leap year so 02/29 is accepted
        date(2000, month, day)
    except ValueError:
        raise InvalidDateRange(f"Season '{season}' contains an invalid date '{token}'")
    return month, day


def parse_month_day(value: str) -> MonthDay:
    """Parse a single "MM/DD" date"""
    return _parse_month_day(str(value).replace(" ", ""), value)


def parse_season(season: str) -> Tuple[MonthDay, MonthDay]:
    """Parse "MM/DD-MM/DD" into ((month, day), (month, day))"""
    compact = str(season).replace(" ", "")
    tokens = compact.split("-")
    if len(tokens) != 2 or not all(tokens):
        raise InvalidDateRange(f"Season '{season}' must use MM/DD-MM/DD format")
    return _parse_month_day(tokens[0], season), _parse_month_day(tokens[1], season)


def format_month_day(month_day: MonthDay) -> str:
    return f"{month_day[0]:02d}/{month_day[1]:02d}"


def parse_days(days: Union[str, Iterable[Union[str, int]]]) -> FrozenSet[int]:
    """
    Parse a day-of-week subset

    Accepts "Mon/Tue/Wed", "Sat, Sun", full day names, the groups
    "Weekdays", "Weekends" and "AllDays", or an iterable of names or
    weekday integers.
    """
    if isinstance(days, str):
        tokens = [t for t in re.split(r"[/,\s]+", days) if t]
    else:
        tokens = list(days)

    result = set()
    for token in tokens:
        if isinstance(token, int):
            if token not in ALL_DAYS:
                raise InvalidDayOfWeek(f"Day index {token} is outside 0-6")
            result.add(token)
            continue

        key = str(token).strip().lower()
        if key in _DAY_GROUPS:
            result |= _DAY_GROUPS[key]
            continue

        matches = [i for i, name in enumerate(DAY_NAMES) if name.lower().startswith(key)]
        if len(key) < 3 or not matches:
            raise InvalidDayOfWeek(f"Unknown day of week '{token}'")
        result.add(matches[0])

    if not result:
        raise InvalidDayOfWeek(f"No days of week given in '{days}'")
    return frozenset(result)


def format_days(days: Iterable[int]) -> str:
    return "/".join(DAY_ABBREVIATIONS[d] for d in sorted(days))


def is_weekend(day: date) -> bool:
    return day.weekday() in WEEKEND


def season_contains(start: MonthDay, end: MonthDay, day: date) -> bool:
    """Whether ``day`` falls in the season; seasons with start after end wrap over new year"""
    key = (day.month, day.day)
    if start <= end:
        return start <= key <= end
    return key >= start or key <= end
