"""
Peak-period load shifting for tabular schedules

Moves each weekday's schedule values out of a peak window into a window
of equal length starting ``delay`` hours after the peak ends. A move is
skipped when the destination already holds load, so that repeated or
overlapping shifts never stack energy on top of existing use.

EnergyPlus Model Context Protocol Server (EnergyPlus-MCP)
Copyright (c) 2025, The Regents of the University of California,
through Lawrence Berkeley National Laboratory (subject to receipt of
any required approvals from the U.S. Dept. of Energy). All rights reserved.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Union

import numpy as np

from .exceptions import InvalidWindow, WindowTooLong
from .schedule_table import ScheduleTable
from .time_windows import HOURS_PER_DAY, TimeWindow, is_weekend, parse_time_range

logger = logging.getLogger(__name__)

MAX_SHIFT_HOURS = 12

# Outcomes of a single (column, day) shift
SHIFTED = "shifted"
STACKED = "stacked"
OUT_OF_RANGE = "out_of_range"


@dataclass(frozen=True)
class ShiftSpec:
    """Peak window, post-peak delay and the columns the shift applies to"""
    peak_begin: int
    peak_end: int
    delay_hours: int = 0
    enabled_columns: FrozenSet[str] = frozenset()
    max_shift_hours: float = MAX_SHIFT_HOURS

    @classmethod
    def from_arguments(
        cls,
        peak_period: str,
        delay_hours: int = 0,
        columns: Union[str, Mapping[str, bool], Iterable[str], None] = None,
        max_shift_hours: float = MAX_SHIFT_HOURS
    ) -> 'ShiftSpec':
        """Build from the measure-style arguments ("15 - 18", delay, column selection)"""
        begin_hour, end_hour = parse_time_range(peak_period)
        return cls(
            peak_begin=begin_hour,
            peak_end=end_hour,
            delay_hours=int(delay_hours),
            enabled_columns=enabled_columns(columns),
            max_shift_hours=max_shift_hours,
        )

    @property
    def peak_hours(self) -> int:
        return self.peak_end - self.peak_begin

    @property
    def peak(self) -> TimeWindow:
        return TimeWindow(self.peak_begin, self.peak_end)

    @property
    def destination(self) -> TimeWindow:
        return self.peak.delayed(self.delay_hours)

    def validate(self):
        """Raise InvalidWindow / WindowTooLong before any schedule is touched"""
        if self.peak_begin >= self.peak_end:
            raise InvalidWindow(
                f"Specified peak period ({self.peak_begin} - {self.peak_end}) "
                f"must be at least one hour long."
            )
        if self.peak_begin < 0 or self.peak_end > HOURS_PER_DAY:
            raise InvalidWindow(
                f"Specified peak period ({self.peak_begin} - {self.peak_end}) "
                f"must fall within 0 - {HOURS_PER_DAY}."
            )
        if self.delay_hours < 0:
            raise InvalidWindow(f"Peak period delay ({self.delay_hours}) cannot be negative.")
        if self.peak_hours + self.delay_hours > self.max_shift_hours:
            raise WindowTooLong(
                f"Specified peak period ({self.peak_begin} - {self.peak_end}), plus the delay "
                f"({self.delay_hours}), must be no longer than {self.max_shift_hours:g} hours."
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "peak_period": f"{self.peak_begin} - {self.peak_end}",
            "delay_hours": self.delay_hours,
            "destination_period": str(self.destination) if self.peak_end > self.peak_begin else None,
            "enabled_columns": sorted(self.enabled_columns),
        }


@dataclass
class Diagnostic:
    """One informational record produced while shifting"""
    kind: str  # stacking, out_of_range, missing_column
    column: str
    day: Optional[int]
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "column": self.column, "day": self.day, "message": self.message}


@dataclass
class ColumnShiftReport:
    """Per-column shift counts"""
    column: str
    shifted_days: int = 0
    unshifted_days: int = 0  # skipped to prevent stacking
    weekend_days: int = 0
    out_of_range_days: int = 0
    energy_moved: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "column": self.column,
            "shifted_days": self.shifted_days,
            "unshifted_days": self.unshifted_days,
            "weekend_days": self.weekend_days,
            "out_of_range_days": self.out_of_range_days,
            "energy_moved": round(self.energy_moved, 6),
        }


@dataclass
class ShiftResult:
    """Outcome of shifting a table: per-column reports plus diagnostics"""
    spec: ShiftSpec
    total_days: int
    steps_per_day: int
    reports: Dict[str, ColumnShiftReport] = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def missing_columns(self) -> List[str]:
        return [d.column for d in self.diagnostics if d.kind == "missing_column"]

    def stacking_messages(self) -> List[str]:
        return [
            f"To prevent stacking, {report.unshifted_days} days were not shifted "
            f"for the '{name}' schedule."
            for name, report in self.reports.items()
            if report.unshifted_days > 0
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "spec": self.spec.to_dict(),
            "total_days": self.total_days,
            "steps_per_day": self.steps_per_day,
            "columns": {name: report.to_dict() for name, report in self.reports.items()},
            "missing_columns": self.missing_columns,
            "messages": self.stacking_messages(),
        }


def enabled_columns(selection: Union[str, Mapping[str, bool], Iterable[str], None]) -> FrozenSet[str]:
    """
    Normalize a column selection into a set of names

    Accepts a {name: enabled} map, a comma-separated string
    ("dishwasher, clothes_washer"), or an iterable of names.
    """
    if selection is None:
        return frozenset()
    if isinstance(selection, str):
        return frozenset(name.strip() for name in selection.split(",") if name.strip())
    if isinstance(selection, Mapping):
        return frozenset(name for name, enabled in selection.items() if enabled)
    return frozenset(str(name) for name in selection)


def day_peak_shift(
    values: np.ndarray,
    peak_begin: int,
    peak_end: int,
    new_begin: int,
    new_end: int
) -> str:
    """
    Move values[peak_begin:peak_end] to values[new_begin:new_end] in place

    The destination must not hold any positive value; otherwise nothing
    changes and STACKED is returned. Ranges past the end of the array
    return OUT_OF_RANGE.
    """
    if peak_end > len(values) or new_end > len(values):
        return OUT_OF_RANGE

    if np.any(values[new_begin:new_end] > 0):
        return STACKED

    values[new_begin:new_end] = values[peak_begin:peak_end]
    values[peak_begin:peak_end] = 0.0
    return SHIFTED


def shift(
    table: ScheduleTable,
    spec: ShiftSpec,
    total_days: int,
    first_day: date,
    steps_per_day: Optional[int] = None
) -> ShiftResult:
    """
    Shift peak-period load for every enabled column of ``table`` in place

    Args:
        table: Schedule table to modify
        spec: Peak window, delay and enabled columns
        total_days: Number of days covered by the table
        first_day: Calendar date of day 0; weekend days are left alone
        steps_per_day: Time steps per day (inferred from the table when None)

    Returns:
        ShiftResult with per-column counts and diagnostics
    """
    spec.validate()
    if steps_per_day is None:
        steps_per_day = table.infer_steps_per_day(total_days)

    peak_begin, peak_end = spec.peak.to_steps(steps_per_day)
    new_begin, new_end = spec.destination.to_steps(steps_per_day)

    result = ShiftResult(spec=spec, total_days=total_days, steps_per_day=steps_per_day)

    for name in sorted(spec.enabled_columns - set(table.column_names)):
        logger.debug(f"Column '{name}' is not in the schedule table; ignoring")
        result.diagnostics.append(Diagnostic(
            kind="missing_column",
            column=name,
            day=None,
            message=f"Column '{name}' was enabled but is not present in the schedule file.",
        ))

    for name in table.column_names:
        if name not in spec.enabled_columns:
            continue

        values = table[name]
        report = ColumnShiftReport(column=name)

        for day in range(total_days):
            if is_weekend(first_day + timedelta(days=day)):
                report.weekend_days += 1
                continue

            offset = day * steps_per_day
            moved = float(np.sum(values[offset + peak_begin:offset + peak_end]))
            status = day_peak_shift(
                values,
                offset + peak_begin,
                offset + peak_end,
                offset + new_begin,
                offset + new_end,
            )

            if status == SHIFTED:
                report.shifted_days += 1
                report.energy_moved += moved
            elif status == STACKED:
                report.unshifted_days += 1
                result.diagnostics.append(Diagnostic(
                    kind="stacking",
                    column=name,
                    day=day,
                    message=f"Destination window already holds load on day {day}; not shifted.",
                ))
            else:
                report.out_of_range_days += 1
                result.diagnostics.append(Diagnostic(
                    kind="out_of_range",
                    column=name,
                    day=day,
                    message=f"Destination window on day {day} runs past the end of the schedule.",
                ))

        result.reports[name] = report

    for message in result.stacking_messages():
        logger.info(message)

    return result
