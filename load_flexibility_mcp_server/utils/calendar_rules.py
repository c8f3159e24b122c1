"""
Calendar rule schedules

A CalendarRuleSet is a default day profile plus design-day profiles and
season / day-of-week scoped rules, the same structure as an OpenStudio
ScheduleRuleset. Each day profile is an ordered list of "Until: HH:MM,
value" breakpoints ending at 24:00.

Rule precedence: among the rules whose season and day set contain a
date, the one with the narrowest scope (season days x weekdays) wins;
ties go to the rule listed first. Fallback rules are only consulted when
no regular rule matches.

EnergyPlus Model Context Protocol Server (EnergyPlus-MCP)
Copyright (c) 2025, The Regents of the University of California,
through Lawrence Berkeley National Laboratory (subject to receipt of
any required approvals from the U.S. Dept. of Energy). All rights reserved.
"""

import bisect
import logging
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from functools import lru_cache
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .exceptions import InvalidBreakpoint, ScheduleError
from .peak_shift import OUT_OF_RANGE, SHIFTED, Diagnostic, ShiftSpec, day_peak_shift
from .time_windows import (
    ALL_DAYS,
    DAY_NAMES,
    WEEKDAYS,
    WEEKEND,
    MonthDay,
    format_clock,
    format_days,
    format_month_day,
    parse_clock_time,
    parse_days,
    parse_month_day,
    parse_season,
    season_contains,
    split_fractional_hour,
)

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
REFERENCE_YEAR = 2009  # non-leap

FULL_YEAR: Tuple[MonthDay, MonthDay] = ((1, 1), (12, 31))


@dataclass(frozen=True)
class Breakpoint:
    """Value held until ``hour:minute``"""
    hour: int
    minute: int
    value: float

    @classmethod
    def from_hours(cls, hours: float, value: float) -> 'Breakpoint':
        hour, minute = split_fractional_hour(float(hours))
        return cls(hour, minute, float(value))

    @property
    def minutes(self) -> int:
        return self.hour * 60 + self.minute

    @property
    def hours(self) -> float:
        return self.minutes / 60.0

    @property
    def until(self) -> str:
        return format_clock(self.hour, self.minute)


BreakpointInput = Union[Breakpoint, Tuple[float, float], Sequence[float]]


def _to_breakpoint(item: BreakpointInput) -> Breakpoint:
    if isinstance(item, Breakpoint):
        return item
    try:
        hours, value = item
    except (TypeError, ValueError):
        raise InvalidBreakpoint(f"Breakpoint {item!r} must be a (time, value) pair")
    return Breakpoint.from_hours(hours, value)


@dataclass(frozen=True)
class DayProfile:
    """Step profile for one day; breakpoints strictly increase and end at 24:00"""
    name: str
    breakpoints: Tuple[Breakpoint, ...]

    def __post_init__(self):
        if not self.breakpoints:
            raise InvalidBreakpoint(f"Day profile '{self.name}' has no breakpoints")
        minutes = [bp.minutes for bp in self.breakpoints]
        if any(b <= a for a, b in zip(minutes, minutes[1:])):
            raise InvalidBreakpoint(f"Day profile '{self.name}' breakpoints must strictly increase")
        if minutes[0] <= 0:
            raise InvalidBreakpoint(f"Day profile '{self.name}' has a breakpoint at 00:00")
        if minutes[-1] != MINUTES_PER_DAY:
            raise InvalidBreakpoint(f"Day profile '{self.name}' must end with a 24:00 breakpoint")

    @classmethod
    def from_pairs(cls, pairs: Iterable[BreakpointInput], name: str = "") -> 'DayProfile':
        """
        Build from (fractional hour, value) pairs in any order

        A pair at 00:00 covers no time and is dropped; when two pairs share
        a time the later one wins.
        """
        by_minute: Dict[int, Breakpoint] = {}
        for item in pairs:
            bp = _to_breakpoint(item)
            if bp.minutes == 0:
                continue
            by_minute[bp.minutes] = bp
        return cls(name, tuple(by_minute[m] for m in sorted(by_minute)))

    @classmethod
    def constant(cls, value: float, name: str = "") -> 'DayProfile':
        return cls(name, (Breakpoint(24, 0, float(value)),))

    @classmethod
    def from_samples(cls, samples: Sequence[float], name: str = "") -> 'DayProfile':
        """Rebuild breakpoints from equal-width samples covering one day"""
        n = len(samples)
        if n == 0 or MINUTES_PER_DAY % n != 0:
            raise InvalidBreakpoint(f"{n} samples do not divide a day into whole minutes")
        step = MINUTES_PER_DAY // n

        breakpoints = []
        for i in range(1, n + 1):
            if i == n or samples[i] != samples[i - 1]:
                minutes = i * step
                breakpoints.append(Breakpoint(minutes // 60, minutes % 60, float(samples[i - 1])))
        return cls(name, tuple(breakpoints))

    def renamed(self, name: str) -> 'DayProfile':
        return replace(self, name=name)

    def value_at(self, hours: float) -> float:
        """Value attached to the first breakpoint at or after ``hours``"""
        minutes = hours * 60.0
        if minutes < 0 or minutes > MINUTES_PER_DAY:
            raise InvalidBreakpoint(f"Time {hours} is outside 0-24h")
        times = [bp.minutes for bp in self.breakpoints]
        return self.breakpoints[bisect.bisect_left(times, minutes)].value

    def sample(self, steps_per_day: int = MINUTES_PER_DAY) -> np.ndarray:
        """Value in effect during each of ``steps_per_day`` equal steps"""
        times = np.array([bp.minutes for bp in self.breakpoints], dtype=float)
        values = np.array([bp.value for bp in self.breakpoints], dtype=float)
        starts = np.arange(steps_per_day) * (MINUTES_PER_DAY / steps_per_day)
        return values[np.searchsorted(times, starts, side="right")]

    def with_window(self, begin: float, end: float, value: float, name: Optional[str] = None) -> 'DayProfile':
        """Copy with [begin, end) hours held at ``value``"""
        samples = self.sample()
        b_hour, b_min = split_fractional_hour(begin)
        e_hour, e_min = split_fractional_hour(end)
        samples[b_hour * 60 + b_min:e_hour * 60 + e_min] = value
        return DayProfile.from_samples(samples, self.name if name is None else name)

    def to_pairs(self) -> List[Tuple[float, float]]:
        return [(bp.hours, bp.value) for bp in self.breakpoints]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "values": [{"until": bp.until, "value": bp.value} for bp in self.breakpoints],
        }


@lru_cache(maxsize=None)
def _season_days(start: MonthDay, end: MonthDay) -> int:
    first = date(REFERENCE_YEAR, 1, 1)
    return sum(
        1 for offset in range(365)
        if season_contains(start, end, first + timedelta(days=offset))
    )


@dataclass(frozen=True)
class Rule:
    """
    Day profile applied within a season on a subset of weekdays

    A ``fallback`` rule only applies on days no regular rule matches.
    ``scope`` pins the precedence size of a rule split off a wider one.
    """
    label: str
    start: MonthDay
    end: MonthDay
    days: FrozenSet[int]
    profile: DayProfile
    fallback: bool = False
    scope: Optional[int] = None

    @property
    def season(self) -> str:
        return f"{format_month_day(self.start)}-{format_month_day(self.end)}"

    def contains(self, month_day: MonthDay, weekday: int) -> bool:
        if weekday not in self.days:
            return False
        # Leap year so 02/29 can be tested
        return season_contains(self.start, self.end, date(2000, *month_day))

    def applies(self, day: date) -> bool:
        return self.contains((day.month, day.day), day.weekday())

    @property
    def scope_size(self) -> int:
        if self.scope is not None:
            return self.scope
        return _season_days(self.start, self.end) * len(self.days)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "label": self.label,
            "season": self.season,
            "days": format_days(self.days),
            "profile": self.profile.to_dict(),
        }
        if self.fallback:
            data["fallback"] = True
        if self.scope is not None:
            data["scope"] = self.scope
        return data


@dataclass(frozen=True)
class RuleSpec:
    """Unparsed rule entry: label, "MM/DD-MM/DD" season, day set, breakpoints"""
    label: str
    season: str
    days: Union[str, Iterable[str]]
    breakpoints: Sequence[BreakpointInput]
    fallback: bool = False
    scope: Optional[int] = None


@dataclass(frozen=True)
class CalendarRuleSet:
    """Default profile, optional design days, and ordered scoped rules"""
    name: str
    default_profile: DayProfile
    winter_design: Optional[DayProfile] = None
    summer_design: Optional[DayProfile] = None
    rules: Tuple[Rule, ...] = field(default_factory=tuple)

    def active_index(self, month_day: MonthDay, weekday: int) -> Optional[int]:
        """Index of the winning rule for a calendar day and weekday, or None"""
        matches = [
            (rule.fallback, rule.scope_size, index)
            for index, rule in enumerate(self.rules)
            if rule.contains(month_day, weekday)
        ]
        if not matches:
            return None
        return min(matches)[2]

    def active_rule(self, day: date) -> Optional[Rule]:
        index = self.active_index((day.month, day.day), day.weekday())
        return None if index is None else self.rules[index]

    def profile_for(self, day: date, day_type: str = "normal") -> DayProfile:
        if day_type == "summer" and self.summer_design is not None:
            return self.summer_design
        if day_type == "winter" and self.winter_design is not None:
            return self.winter_design
        rule = self.active_rule(day)
        return self.default_profile if rule is None else rule.profile

    def evaluate(self, day: date, hours: float, day_type: str = "normal") -> float:
        return self.profile_for(day, day_type).value_at(hours)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "default_day": self.default_profile.to_dict(),
            "winter_design_day": self.winter_design.to_dict() if self.winter_design else None,
            "summer_design_day": self.summer_design.to_dict() if self.summer_design else None,
            "rules": [rule.to_dict() for rule in self.rules],
        }


def _profile(pairs: Optional[Iterable[BreakpointInput]], name: str) -> Optional[DayProfile]:
    if pairs is None:
        return None
    if isinstance(pairs, DayProfile):
        return pairs.renamed(name)
    return DayProfile.from_pairs(pairs, name)


def build_simple(
    default: Iterable[BreakpointInput] = ((24.0, 1.0),),
    winter_design: Iterable[BreakpointInput] = ((24.0, 0.0),),
    summer_design: Iterable[BreakpointInput] = ((24.0, 1.0),),
    name: str = "Schedule"
) -> CalendarRuleSet:
    """Ruleset with a default day and both design days but no dated rules"""
    return CalendarRuleSet(
        name=name,
        default_profile=_profile(default, f"{name} Schedule Week Day"),
        winter_design=_profile(winter_design, f"{name} Winter Design Day"),
        summer_design=_profile(summer_design, f"{name} Summer Design Day"),
    )


def _to_rule(entry: Union[RuleSpec, Sequence[Any]], ruleset_name: str) -> Rule:
    if not isinstance(entry, RuleSpec):
        label, season, days, breakpoints = entry
        entry = RuleSpec(label, season, days, breakpoints)

    start, end = parse_season(entry.season)
    return Rule(
        label=entry.label,
        start=start,
        end=end,
        days=parse_days(entry.days),
        profile=_profile(entry.breakpoints, f"{ruleset_name} {entry.label}"),
        fallback=entry.fallback,
        scope=entry.scope,
    )


def build_complex(
    default: Iterable[BreakpointInput] = ((24.0, 1.0),),
    winter_design: Optional[Iterable[BreakpointInput]] = None,
    summer_design: Optional[Iterable[BreakpointInput]] = None,
    rules: Iterable[Union[RuleSpec, Sequence[Any]]] = (),
    name: str = "Schedule",
    default_label: str = "AllDays"
) -> CalendarRuleSet:
    """
    Ruleset with a default day, optional design days, and scoped rules

    Args:
        default: Breakpoints for the default day
        winter_design: Winter design day breakpoints, or None
        summer_design: Summer design day breakpoints, or None
        rules: RuleSpec entries (or (label, season, days, breakpoints)
               tuples), kept in the given order
        name: Ruleset name; profile names are derived from it
        default_label: Label used to name the default day profile

    Raises:
        InvalidDateRange: a season is not MM/DD-MM/DD
        InvalidBreakpoint: a breakpoint time is not within 0-24h
        InvalidDayOfWeek: a day token is not recognized
    """
    built_rules = tuple(_to_rule(entry, name) for entry in rules)
    ruleset = CalendarRuleSet(
        name=name,
        default_profile=_profile(default, f"{name} {default_label}"),
        winter_design=_profile(winter_design, f"{name} Winter Design Day"),
        summer_design=_profile(summer_design, f"{name} Summer Design Day"),
        rules=built_rules,
    )
    logger.debug(f"Built ruleset '{name}' with {len(built_rules)} rules")
    return ruleset


def evaluate(ruleset: CalendarRuleSet, day: date, hours: float, day_type: str = "normal") -> float:
    """Value of ``ruleset`` on ``day`` at ``hours`` past midnight"""
    return ruleset.evaluate(day, hours, day_type)


def _pairs_from_definition(profile: Any) -> Optional[List[Tuple[float, float]]]:
    if profile is None:
        return None
    if isinstance(profile, Mapping):
        profile = profile.get("values", [])

    pairs = []
    for item in profile:
        if isinstance(item, Mapping):
            try:
                pairs.append((parse_clock_time(str(item["until"])), float(item["value"])))
            except KeyError as e:
                raise InvalidBreakpoint(f"Breakpoint {item!r} is missing {e}")
        else:
            pairs.append(tuple(item))
    return pairs


def from_dict(definition: Mapping[str, Any]) -> CalendarRuleSet:
    """
    Build a ruleset from a JSON-style definition

    Accepts the shape produced by ``CalendarRuleSet.to_dict`` as well as a
    shorthand where profiles are lists of [hours, value] pairs::

        {"name": "Dryer", "default": [[24, 0]],
         "rules": [{"label": "Summer Weekday", "season": "06/01-09/30",
                    "days": "weekdays", "breakpoints": [[10, 0], [11, 1], [24, 0]]}]}
    """
    default = definition.get("default", definition.get("default_day"))
    if default is None:
        raise InvalidBreakpoint("Ruleset definition has no default day profile")

    rules = []
    for rule in definition.get("rules", []):
        breakpoints = rule.get("breakpoints", rule.get("profile"))
        rules.append(RuleSpec(
            label=rule.get("label", "Rule"),
            season=rule.get("season", "01/01-12/31"),
            days=rule.get("days", "alldays"),
            breakpoints=_pairs_from_definition(breakpoints) or [],
            fallback=bool(rule.get("fallback", False)),
            scope=rule.get("scope"),
        ))

    return build_complex(
        default=_pairs_from_definition(default),
        winter_design=_pairs_from_definition(definition.get("winter_design", definition.get("winter_design_day"))),
        summer_design=_pairs_from_definition(definition.get("summer_design", definition.get("summer_design_day"))),
        rules=rules,
        name=definition.get("name", "Schedule"),
    )


# Schedule:Compact decoding ---------------------------------------------------

_DESIGN_DAY_TOKENS = {"summerdesignday": "summer", "winterdesignday": "winter"}
_IGNORED_DAY_TOKENS = {"holiday", "holidays", "customday1", "customday2"}

CompactBlock = Tuple[str, List[Tuple[float, float]]]


def _compact_day_types(text: str) -> Tuple[FrozenSet[int], FrozenSet[str], bool]:
    """Weekdays, design days and AllOtherDays flag named by a "For:" field"""
    weekdays = set()
    design = set()
    all_other = False
    for token in text.split():
        key = token.lower()
        if key == "allotherdays":
            all_other = True
        elif key == "alldays":
            weekdays |= ALL_DAYS
            design |= set(_DESIGN_DAY_TOKENS.values())
        elif key in _DESIGN_DAY_TOKENS:
            design.add(_DESIGN_DAY_TOKENS[key])
        elif key in _IGNORED_DAY_TOKENS:
            continue
        else:
            weekdays |= parse_days(token)
    return frozenset(weekdays), frozenset(design), all_other


def _compact_periods(name: str, fields: Iterable[Any]) -> List[Tuple[MonthDay, List[CompactBlock]]]:
    periods: List[Tuple[MonthDay, List[CompactBlock]]] = []
    until = None

    for raw in fields:
        text = str(raw).strip()
        if not text:
            continue
        keyword, sep, rest = text.partition(":")
        key = keyword.strip().lower() if sep else ""

        if key == "through":
            periods.append((parse_month_day(rest), []))
        elif key == "for":
            if not periods:
                raise ScheduleError(f"Schedule:Compact '{name}' has a For: field before any Through:")
            periods[-1][1].append((rest.strip(), []))
        elif key == "interpolate":
            continue
        elif key == "until":
            if not periods or not periods[-1][1]:
                raise ScheduleError(f"Schedule:Compact '{name}' has an Until: field before any For:")
            until = parse_clock_time(rest)
        else:
            if until is None:
                raise ScheduleError(f"Schedule:Compact '{name}' has value '{text}' without an Until: field")
            try:
                value = float(text)
            except ValueError:
                raise ScheduleError(f"Schedule:Compact '{name}' has a non-numeric value '{text}'")
            periods[-1][1][-1][1].append((until, value))
            until = None

    if not periods:
        raise ScheduleError(f"Schedule:Compact '{name}' has no Through: fields")
    return periods


def from_compact_fields(name: str, fields: Iterable[Any]) -> CalendarRuleSet:
    """
    Rebuild a ruleset from Schedule:Compact fields

    Within each Through: period the first For: block naming a day type
    wins and AllOtherDays takes whatever is left, as in EnergyPlus. The
    profile covering the most days becomes the default; every other
    (period, profile) pair becomes a rule. Holiday and custom day types
    are not represented and are skipped.
    """
    assignments: List[Tuple[MonthDay, MonthDay, Dict[int, Tuple[Breakpoint, ...]]]] = []
    design: Dict[str, Tuple[Breakpoint, ...]] = {}
    start: MonthDay = (1, 1)

    for end, blocks in _compact_periods(name, fields):
        days: Dict[int, Tuple[Breakpoint, ...]] = {}
        for day_types, pairs in blocks:
            weekdays, design_days, all_other = _compact_day_types(day_types)
            if all_other:
                weekdays = weekdays | (ALL_DAYS - set(days))
                design_days = design_days | (set(_DESIGN_DAY_TOKENS.values()) - set(design))
            breakpoints = DayProfile.from_pairs(pairs, name).breakpoints
            for weekday in weekdays:
                days.setdefault(weekday, breakpoints)
            for kind in design_days:
                design.setdefault(kind, breakpoints)
        assignments.append((start, end, days))
        # Leap year so a period can end on 02/29
        following = date(2000, *end) + timedelta(days=1)
        start = (following.month, following.day)

    coverage: Dict[Tuple[Breakpoint, ...], int] = {}
    for period_start, period_end, days in assignments:
        for breakpoints in days.values():
            coverage[breakpoints] = coverage.get(breakpoints, 0) + _season_days(period_start, period_end)
    if not coverage:
        raise ScheduleError(f"Schedule:Compact '{name}' assigns no profile to any day of the week")
    default = max(coverage, key=coverage.get)

    rules = []
    for period_start, period_end, days in assignments:
        groups: Dict[Tuple[Breakpoint, ...], List[int]] = {}
        for weekday in sorted(days):
            if days[weekday] != default:
                groups.setdefault(days[weekday], []).append(weekday)
        for breakpoints, weekdays in groups.items():
            label = f"Rule {len(rules) + 1}"
            rules.append(Rule(
                label=label,
                start=period_start,
                end=period_end,
                days=frozenset(weekdays),
                profile=DayProfile(f"{name} {label}", breakpoints),
            ))

    def _design(kind: str, title: str) -> Optional[DayProfile]:
        if kind not in design:
            return None
        return DayProfile(f"{name} {title} Design Day", design[kind])

    ruleset = CalendarRuleSet(
        name=name,
        default_profile=DayProfile(f"{name} Default", default),
        winter_design=_design("winter", "Winter"),
        summer_design=_design("summer", "Summer"),
        rules=tuple(rules),
    )
    logger.debug(f"Read Schedule:Compact '{name}' as {len(rules)} rules")
    return ruleset


# Schedule:Compact encoding ---------------------------------------------------

def _format_value(value: float) -> str:
    return f"{value:g}"


def _for_days(days: Sequence[int]) -> str:
    day_set = frozenset(days)
    if day_set == WEEKDAYS:
        return "Weekdays"
    if day_set == WEEKEND:
        return "Weekends"
    if day_set == ALL_DAYS:
        # "AllDays" would also claim the design days and holidays
        return "Weekdays Weekends"
    return " ".join(DAY_NAMES[d] for d in sorted(day_set))


def _until_fields(profile: DayProfile) -> List[str]:
    fields = []
    for bp in profile.breakpoints:
        fields.append(f"Until: {bp.until}")
        fields.append(_format_value(bp.value))
    return fields


def to_compact_fields(ruleset: CalendarRuleSet, year: int = REFERENCE_YEAR) -> List[str]:
    """
    Render a ruleset as Schedule:Compact fields (Through / For / Until)

    The year is cut into periods over which every weekday keeps the same
    active rule. Within a period, weekdays sharing a rule are grouped under
    one "For:" line; design days follow, and the default profile closes
    each period as "AllOtherDays".
    """
    first = date(year, 1, 1)
    n_days = (date(year + 1, 1, 1) - first).days

    periods: List[Tuple[date, Tuple[Optional[int], ...]]] = []
    for offset in range(n_days):
        day = first + timedelta(days=offset)
        signature = tuple(
            ruleset.active_index((day.month, day.day), weekday) for weekday in range(7)
        )
        if periods and periods[-1][1] == signature:
            periods[-1] = (day, signature)
        else:
            periods.append((day, signature))

    fields: List[str] = []
    for end_day, signature in periods:
        fields.append(f"Through: {end_day.month:02d}/{end_day.day:02d}")

        groups: Dict[int, List[int]] = {}
        for weekday, index in enumerate(signature):
            if index is not None:
                groups.setdefault(index, []).append(weekday)

        for index in sorted(groups, key=lambda i: min(groups[i])):
            fields.append(f"For: {_for_days(groups[index])}")
            fields.extend(_until_fields(ruleset.rules[index].profile))

        if ruleset.summer_design is not None:
            fields.append("For: SummerDesignDay")
            fields.extend(_until_fields(ruleset.summer_design))
        if ruleset.winter_design is not None:
            fields.append("For: WinterDesignDay")
            fields.extend(_until_fields(ruleset.winter_design))

        fields.append("For: AllOtherDays")
        fields.extend(_until_fields(ruleset.default_profile))

    return fields


# Peak shifting of rule-based schedules ---------------------------------------

def shift_profile(profile: DayProfile, spec: ShiftSpec) -> Tuple[DayProfile, str]:
    """
    Move a day profile's peak-window values into the delayed window

    Returns the new profile (the original when not shifted) and the
    shift outcome.
    """
    samples = profile.sample()
    peak_begin, peak_end = spec.peak.to_steps(MINUTES_PER_DAY)
    new_begin, new_end = spec.destination.to_steps(MINUTES_PER_DAY)

    status = day_peak_shift(samples, peak_begin, peak_end, new_begin, new_end)
    if status != SHIFTED:
        return profile, status
    return DayProfile.from_samples(samples, profile.name), status


def shift_ruleset(ruleset: CalendarRuleSet, spec: ShiftSpec) -> Tuple[CalendarRuleSet, List[Diagnostic]]:
    """
    Apply a peak-period shift to the weekday profiles of a ruleset

    Rules covering weekdays get their profile shifted; their weekend days
    keep the original profile through a split-off rule. The default
    profile is shifted through an added full-year fallback rule for
    weekdays, so it only applies where no original rule does. Design days
    are unchanged.
    """
    spec.validate()
    diagnostics: List[Diagnostic] = []
    rules: List[Rule] = []

    def _report(profile: DayProfile, status: str):
        kind = "out_of_range" if status == OUT_OF_RANGE else "stacking"
        message = (
            f"To prevent stacking, '{profile.name}' was not shifted."
            if kind == "stacking"
            else f"Destination window for '{profile.name}' runs past 24:00; not shifted."
        )
        logger.info(message)
        diagnostics.append(Diagnostic(kind=kind, column=profile.name, day=None, message=message))

    for rule in ruleset.rules:
        weekday_part = rule.days & WEEKDAYS
        if not weekday_part:
            rules.append(rule)
            continue

        shifted, status = shift_profile(rule.profile, spec)
        if status != SHIFTED:
            _report(rule.profile, status)
            rules.append(rule)
            continue

        # Both parts keep the precedence of the rule they were split from
        scope = rule.scope_size
        rules.append(replace(rule, days=weekday_part, profile=shifted, scope=scope))
        weekend_part = rule.days & WEEKEND
        if weekend_part:
            rules.append(replace(
                rule,
                label=f"{rule.label} Weekend",
                days=weekend_part,
                profile=rule.profile.renamed(f"{rule.profile.name} Weekend"),
                scope=scope,
            ))

    shifted_default, status = shift_profile(ruleset.default_profile, spec)
    if status == SHIFTED:
        rules.append(Rule(
            label="Peak Shift Weekday",
            start=FULL_YEAR[0],
            end=FULL_YEAR[1],
            days=WEEKDAYS,
            profile=shifted_default.renamed(f"{ruleset.name} Peak Shift Weekday"),
            fallback=True,
        ))
    else:
        _report(ruleset.default_profile, status)

    return replace(ruleset, rules=tuple(rules)), diagnostics
