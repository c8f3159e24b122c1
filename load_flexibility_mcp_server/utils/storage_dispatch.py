"""
Dispatch schedules for thermal storage and water heater load flexibility

Builds the calendar rulesets that drive an ice thermal energy storage
(TES) plant from charge / discharge clock times, and inserts daily flex
periods into a water heater setpoint profile.

EnergyPlus Model Context Protocol Server (EnergyPlus-MCP)
Copyright (c) 2025, The Regents of the University of California,
through Lawrence Berkeley National Laboratory (subject to receipt of
any required approvals from the U.S. Dept. of Energy). All rights reserved.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

from .calendar_rules import CalendarRuleSet, DayProfile, RuleSpec, build_complex, build_simple
from .peak_shift import Diagnostic
from .time_windows import parse_clock_range, parse_clock_time

logger = logging.getLogger(__name__)

FULL_STORAGE = "Full Storage"
PARTIAL_STORAGE = "Partial Storage"
UPSTREAM_CHILLER = "Chiller"
UPSTREAM_STORAGE = "Storage"

# Storage setpoint that keeps the tank idle
TANK_OFF_SETPOINT = 99.0

WEEKDAY_SET = "Mon/Tue/Wed/Thu/Fri"
WEEKEND_SET = "Sat/Sun"

FLEX_NONE = "None"
FLEX_CHARGE_HEAT_PUMP = "Charge - Heat Pump"
FLEX_CHARGE_ELECTRIC = "Charge - Electric"
FLEX_FLOAT = "Float"
FLEX_OPTIONS = (FLEX_NONE, FLEX_CHARGE_HEAT_PUMP, FLEX_CHARGE_ELECTRIC, FLEX_FLOAT)


@dataclass
class IceStorageSchedules:
    """Rulesets for one ice storage installation"""
    availability: CalendarRuleSet
    storage_setpoint: CalendarRuleSet
    chiller_setpoint: CalendarRuleSet
    loop_setpoint: CalendarRuleSet
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def with_type_limits(self) -> List[Tuple[CalendarRuleSet, str]]:
        """Each ruleset paired with the ScheduleTypeLimits name it uses"""
        return [
            (self.availability, "OnOff"),
            (self.storage_setpoint, "Temperature"),
            (self.chiller_setpoint, "Temperature"),
            (self.loop_setpoint, "Temperature"),
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "availability": self.availability.to_dict(),
            "storage_setpoint": self.storage_setpoint.to_dict(),
            "chiller_setpoint": self.chiller_setpoint.to_dict(),
            "loop_setpoint": self.loop_setpoint.to_dict(),
            "warnings": [d.message for d in self.diagnostics],
        }


def _operating_setpoints(
    objective: str,
    upstream: str,
    loop_setpoint: float,
    intermediate_setpoint: float
) -> Tuple[float, float]:
    """(chiller setpoint, storage setpoint) while discharging"""
    if objective == FULL_STORAGE:
        return loop_setpoint, loop_setpoint
    if objective == PARTIAL_STORAGE:
        if upstream == UPSTREAM_CHILLER:
            return intermediate_setpoint, loop_setpoint
        if upstream == UPSTREAM_STORAGE:
            return loop_setpoint, intermediate_setpoint
        raise ValueError(f"Unknown upstream device '{upstream}'; use 'Chiller' or 'Storage'")
    raise ValueError(f"Unknown storage objective '{objective}'; use 'Full Storage' or 'Partial Storage'")


def _sorted_pairs(*pairs: Tuple[float, float]) -> List[Tuple[float, float]]:
    return sorted(pairs)


def build_ice_storage_schedules(
    charge_start: str,
    charge_end: str,
    discharge_start: str,
    discharge_end: str,
    season: str = "01/01-12/31",
    include_weekends: bool = False,
    objective: str = FULL_STORAGE,
    upstream: str = UPSTREAM_STORAGE,
    loop_setpoint: float = 6.7,
    charge_setpoint: float = -3.9,
    intermediate_setpoint: float = 8.9,
    storage_name: str = "Ice Thermal Storage",
    chiller_name: str = "Chiller",
    loop_name: str = "Chilled Water Loop"
) -> IceStorageSchedules:
    """
    Build availability and setpoint rulesets for an ice storage plant

    Charging runs from ``charge_start`` to ``charge_end`` and discharging
    from ``discharge_start`` to ``discharge_end`` (all "HH:MM"). Either
    window may wrap past midnight. Weekday and weekend rules are scoped to
    ``season``; weekends only charge unless ``include_weekends``.

    Raises:
        InvalidBreakpoint: a time is malformed or later than 24:00
        InvalidDateRange: the season is not MM/DD-MM/DD
        ValueError: unknown objective or upstream device
    """
    cs = parse_clock_time(charge_start)
    ce = parse_clock_time(charge_end)
    ds = parse_clock_time(discharge_start)
    de = parse_clock_time(discharge_end)
    season = season.replace(" ", "")

    diagnostics: List[Diagnostic] = []

    def _warn(message: str):
        logger.warning(message)
        diagnostics.append(Diagnostic(kind="warning", column=storage_name, day=None, message=message))

    if ds > de:
        _warn("Discharge start time is later than discharge end time (your ice will discharge "
              "overnight). Verify schedule inputs.")
    if ds - 0.01 <= cs <= de + 0.01 or ds - 0.01 <= ce <= de + 0.01:
        _warn("The tank charge and discharge periods overlap. Examine results for unexpected "
              "operation; verify schedule inputs.")

    chiller_sp, storage_sp = _operating_setpoints(objective, upstream, loop_setpoint, intermediate_setpoint)

    # Value held from the last transition until midnight
    if ce < cs:
        midnight_av, midnight_chiller, midnight_storage = 1, charge_setpoint, loop_setpoint
    elif de < ds:
        midnight_av, midnight_chiller, midnight_storage = 1, chiller_sp, storage_sp
    else:
        midnight_av, midnight_chiller, midnight_storage = 0, loop_setpoint, TANK_OFF_SETPOINT

    wk_av = _sorted_pairs((cs, 0), (ce, 1), (ds, 0), (de, 1), (24, midnight_av))
    wknd_av = _sorted_pairs((cs, 0), (ce, 1), (24, midnight_av))

    wk_storage = _sorted_pairs((cs, TANK_OFF_SETPOINT), (ce, loop_setpoint),
                               (ds, TANK_OFF_SETPOINT), (de, storage_sp), (24, midnight_storage))
    wknd_storage = _sorted_pairs((cs, TANK_OFF_SETPOINT), (ce, loop_setpoint), (24, midnight_storage))

    wk_chiller = _sorted_pairs((cs, loop_setpoint), (ce, charge_setpoint),
                               (ds, loop_setpoint), (de, chiller_sp), (24, midnight_chiller))
    wknd_chiller = _sorted_pairs((cs, loop_setpoint), (ce, charge_setpoint), (24, midnight_chiller))

    if include_weekends:
        wknd_av, wknd_storage, wknd_chiller = wk_av, wk_storage, wk_chiller

    availability = build_complex(
        default=[(24, 0)],
        winter_design=[(24, 0)],
        summer_design=wk_av,
        rules=[
            RuleSpec("Weekend", season, WEEKEND_SET, wknd_av),
            RuleSpec("Summer Weekday", season, WEEKDAY_SET, wk_av),
        ],
        name="Ice Availability Schedule (New)",
    )

    storage_setpoint = build_complex(
        default=[(24, TANK_OFF_SETPOINT)],
        winter_design=[(24, TANK_OFF_SETPOINT)],
        summer_design=wk_storage,
        rules=[
            RuleSpec("Weekend", season, WEEKEND_SET, wknd_storage),
            RuleSpec("Summer Weekday", season, WEEKDAY_SET, wk_storage),
        ],
        name=f"{storage_name} Setpoint Schedule (New)",
    )

    chiller_setpoint = build_complex(
        default=[(24, loop_setpoint)],
        winter_design=[(24, loop_setpoint)],
        summer_design=wk_chiller,
        rules=[
            RuleSpec("Weekend", season, WEEKEND_SET, wknd_chiller),
            RuleSpec("Summer Weekday", season, WEEKDAY_SET, wk_chiller),
        ],
        name=f"{chiller_name} Setpoint Schedule (New)",
    )

    loop_schedule = build_simple(
        default=[(24, loop_setpoint)],
        winter_design=[(24, loop_setpoint)],
        summer_design=[(24, loop_setpoint)],
        name=f"{loop_name} Setpoint Schedule (New)",
    )

    logger.info(
        f"Built ice storage schedules: charge {charge_start}-{charge_end}, "
        f"discharge {discharge_start}-{discharge_end}, season {season}"
    )
    return IceStorageSchedules(
        availability=availability,
        storage_setpoint=storage_setpoint,
        chiller_setpoint=chiller_setpoint,
        loop_setpoint=loop_schedule,
        diagnostics=diagnostics,
    )


def fahrenheit_to_celsius(value: float) -> float:
    return (value - 32.0) / 1.8


MAX_CHARGE_TEMP_F = 180.0


def check_flex_temperatures(max_temp_f: float, min_temp_f: float) -> Tuple[float, List[Diagnostic]]:
    """
    Sanity-check water heater flex temperatures in degrees F

    Returns the (possibly capped) maximum temperature and any warnings.
    """
    diagnostics: List[Diagnostic] = []

    def _warn(message: str):
        logger.warning(message)
        diagnostics.append(Diagnostic(kind="warning", column="water heater", day=None, message=message))

    if min_temp_f < 120:
        _warn("Minimum tank temperature is very low; consider increasing to at least 120F.")
        _warn("Do not store water for long periods at temperatures below 135-140F as those "
              "conditions facilitate the growth of Legionella.")
    if max_temp_f > MAX_CHARGE_TEMP_F:
        _warn(f"Maximum charging temperature exceeded practical limits; reset to {MAX_CHARGE_TEMP_F:g}F.")
        max_temp_f = MAX_CHARGE_TEMP_F
    if max_temp_f > 160:
        _warn(f"{max_temp_f:g}F is above or near the limit of the HP performance curves. "
              f"Consider setting max temp to less than 160F.")
    return max_temp_f, diagnostics


def flex_windows(periods: Sequence[Tuple[str, str]]) -> List[Tuple[str, float, float]]:
    """
    Expand (option, "HH:MM - HH:MM") flex periods into (option, begin, end) windows

    "None" periods are dropped. A period ending earlier than it starts
    wraps midnight and becomes two windows, [0, end) and [start, 24).
    """
    windows = []
    for option, hours in periods:
        if option == FLEX_NONE:
            continue
        if option not in FLEX_OPTIONS:
            raise ValueError(f"Unknown flex option '{option}'; choose from {list(FLEX_OPTIONS)}")

        start, end = parse_clock_range(hours)
        if end > start:
            windows.append((option, start, end))
        else:
            windows.append((option, 0.0, end))
            windows.append((option, start, 24.0))
    return windows


def apply_flex_periods(
    profile: DayProfile,
    periods: Sequence[Tuple[str, str]],
    max_temp: float,
    min_temp: float,
    name: str = None
) -> DayProfile:
    """
    Insert daily flex windows into a water heater setpoint profile

    "Charge - Heat Pump" holds ``max_temp`` during the window; "Charge -
    Electric" and "Float" hold ``min_temp``. Outside the windows the
    original profile is kept.
    """
    result = profile if name is None else profile.renamed(name)
    windows = flex_windows(periods)
    for option, begin, end in windows:
        value = max_temp if option == FLEX_CHARGE_HEAT_PUMP else min_temp
        if end > begin:
            result = result.with_window(begin, end, value)

    logger.info(f"A total of {len(windows)} flex periods were added to '{result.name}'")
    return result
