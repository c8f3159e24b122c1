"""
Load flexibility workflows with configuration management

Wraps the schedule store, peak shifter, calendar rule engine and the
eppy model adapter into operations that take user-facing arguments and
return JSON results for the MCP tools.

EnergyPlus Model Context Protocol Server (EnergyPlus-MCP)
Copyright (c) 2025, The Regents of the University of California,
through Lawrence Berkeley National Laboratory (subject to receipt of
any required approvals from the U.S. Dept. of Energy). All rights reserved.
"""

import os
import json
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .config import get_config, Config
from .utils import calendar_rules, peak_shift, schedule_table, storage_dispatch
from .utils.exceptions import NotFound
from .utils.idf_schedules import IdfScheduleHost
from .utils.path_utils import resolve_path
from .utils.time_windows import parse_clock_time

logger = logging.getLogger(__name__)

ColumnSelection = Union[str, Mapping[str, bool], Sequence[str], None]


class LoadFlexibilityManager:
    """
    Manager class for schedule-based load flexibility operations

    Provides:
    - Inspecting and peak-shifting Schedule:File CSVs
    - Shifting every schedule CSV an IDF references
    - Building ice storage and water heater flex schedules into an IDF
    - Evaluating and shifting calendar rule schedules
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()
        logger.info("Load Flexibility Manager initialized")

    # Helpers ---------------------------------------------------------------

    def _first_day(self, first_day: Optional[str]) -> date:
        if first_day:
            return datetime.strptime(first_day, "%Y-%m-%d").date()
        return date(self.config.schedules.calendar_year, 1, 1)

    def _shift_spec(self, peak_period: Optional[str], delay_hours: Optional[int],
                    columns: ColumnSelection) -> peak_shift.ShiftSpec:
        spec = peak_shift.ShiftSpec.from_arguments(
            peak_period or self.config.schedules.default_peak_period,
            self.config.schedules.default_delay_hours if delay_hours is None else delay_hours,
            columns,
            max_shift_hours=self.config.schedules.max_shift_hours,
        )
        spec.validate()
        return spec

    def _host(self, idf_path: str) -> IdfScheduleHost:
        resolved = resolve_path(self.config, idf_path, file_types=[".idf"], description="IDF file")
        return IdfScheduleHost.from_file(
            resolved,
            idd_path=self.config.energyplus.idd_path,
            calendar_year=self.config.schedules.calendar_year,
        )

    def _output_idf_path(self, host: IdfScheduleHost, idf_path: str, output_path: Optional[str], suffix: str) -> str:
        if output_path:
            return resolve_path(self.config, output_path, file_types=[".idf"],
                                description="output IDF file", must_exist=False)
        base = os.path.splitext(os.path.basename(str(host.idf.idfname or idf_path)))[0]
        return os.path.join(self.config.paths.output_dir, f"{base}_{suffix}.idf")

    def _shift_table(self, csv_path: str, spec: peak_shift.ShiftSpec,
                     first_day: date) -> Tuple[schedule_table.ScheduleTable, peak_shift.ShiftResult]:
        table = schedule_table.load(csv_path)
        result = peak_shift.shift(
            table,
            spec,
            total_days=self.config.schedules.total_days,
            first_day=first_day,
            steps_per_day=self.config.schedules.steps_per_day,
        )
        return table, result

    def _save_shifted(self, csv_path: str, table: schedule_table.ScheduleTable,
                      result: peak_shift.ShiftResult, output_path: Optional[str] = None) -> Dict[str, Any]:
        written = schedule_table.save(table, output_path or csv_path, atomic=self.config.schedules.atomic_save)
        return {
            "input_file": csv_path,
            "output_file": written,
            **result.to_dict(),
            "diagnostics": [d.to_dict() for d in result.diagnostics if d.kind != "stacking"],
        }

    # Configuration ---------------------------------------------------------

    def get_configuration_info(self) -> str:
        """Get current configuration information"""
        try:
            config_info = {
                "energyplus": {
                    "idd_path": self.config.energyplus.idd_path,
                    "installation_path": self.config.energyplus.installation_path,
                    "version": self.config.energyplus.version,
                    "example_files_path": self.config.energyplus.example_files_path,
                    "idd_exists": os.path.exists(self.config.energyplus.idd_path) if self.config.energyplus.idd_path else False,
                },
                "paths": {
                    "workspace_root": self.config.paths.workspace_root,
                    "sample_files_path": self.config.paths.sample_files_path,
                    "temp_dir": self.config.paths.temp_dir,
                    "output_dir": self.config.paths.output_dir
                },
                "schedules": {
                    "default_peak_period": self.config.schedules.default_peak_period,
                    "default_delay_hours": self.config.schedules.default_delay_hours,
                    "max_shift_hours": self.config.schedules.max_shift_hours,
                    "total_days": self.config.schedules.total_days,
                    "calendar_year": self.config.schedules.calendar_year,
                    "steps_per_day": self.config.schedules.steps_per_day,
                    "atomic_save": self.config.schedules.atomic_save
                },
                "server": {
                    "name": self.config.server.name,
                    "version": self.config.server.version,
                    "log_level": self.config.server.log_level,
                    "tool_timeout": self.config.server.tool_timeout
                },
                "debug_mode": self.config.debug_mode
            }

            return json.dumps(config_info, indent=2)

        except Exception as e:
            logger.error(f"Error getting configuration info: {e}")
            raise RuntimeError(f"Error getting configuration info: {str(e)}")

    # Schedule files --------------------------------------------------------

    def inspect_schedule_file(self, csv_path: str) -> str:
        """Column names, row counts and per-column totals of a schedule CSV"""
        resolved = resolve_path(self.config, csv_path, file_types=[".csv"], description="schedule file")
        logger.info(f"Inspecting schedule file: {resolved}")
        table = schedule_table.load(resolved)

        try:
            steps_per_day = self.config.schedules.steps_per_day or table.infer_steps_per_day(
                self.config.schedules.total_days
            )
        except ValueError as e:
            logger.debug(f"Could not infer steps per day for {resolved}: {e}")
            steps_per_day = None

        result = {
            "file_path": resolved,
            "columns": table.column_names,
            "rows": table.n_rows,
            "rectangular": table.is_rectangular(),
            "steps_per_day": steps_per_day,
            "summary": table.summary(),
        }
        return json.dumps(result, indent=2)

    def shift_schedule_file(
        self,
        csv_path: str,
        columns: ColumnSelection,
        peak_period: Optional[str] = None,
        delay_hours: Optional[int] = None,
        output_path: Optional[str] = None,
        first_day: Optional[str] = None
    ) -> str:
        """
        Shift peak-period load for the selected columns of one schedule CSV

        The file is overwritten unless ``output_path`` is given. When no
        column is selected the file is left untouched and the result is
        marked not applicable.
        """
        spec = self._shift_spec(peak_period, delay_hours, columns)
        resolved = resolve_path(self.config, csv_path, file_types=[".csv"], description="schedule file")

        if not spec.enabled_columns:
            logger.info("No schedule columns selected; peak shift is not applicable")
            return json.dumps({
                "applicable": False,
                "message": "No schedules were selected to shift; nothing was changed.",
                "input_file": resolved,
            }, indent=2)

        target = None
        if output_path:
            target = resolve_path(self.config, output_path, file_types=[".csv"],
                                  description="output schedule file", must_exist=False)

        logger.info(f"Shifting {sorted(spec.enabled_columns)} in {resolved} ({spec.peak} -> {spec.destination})")
        table, shifted = self._shift_table(resolved, spec, self._first_day(first_day))
        result = self._save_shifted(resolved, table, shifted, target)
        result["applicable"] = True
        return json.dumps(result, indent=2)

    def list_schedule_files(self, idf_path: str) -> str:
        """Schedule:File objects of an IDF with their CSV paths and column names"""
        host = self._host(idf_path)
        refs = host.schedule_files()
        result = {
            "idf_path": str(host.idf.idfname),
            "schedule_files": [ref.to_dict() for ref in refs],
            "csv_columns": host.schedule_file_columns(),
            "rule_schedules": host.rule_schedule_names(),
        }
        logger.info(f"Found {len(refs)} Schedule:File objects in {idf_path}")
        return json.dumps(result, indent=2)

    def shift_idf_schedule_files(
        self,
        idf_path: str,
        columns: ColumnSelection,
        peak_period: Optional[str] = None,
        delay_hours: Optional[int] = None,
        first_day: Optional[str] = None
    ) -> str:
        """
        Shift the selected columns in every schedule CSV an IDF references

        Every CSV is loaded and shifted in memory before any is written, so
        a file that fails to parse leaves all of them untouched.
        """
        spec = self._shift_spec(peak_period, delay_hours, columns)
        host = self._host(idf_path)

        if not spec.enabled_columns:
            logger.info("No schedule columns selected; peak shift is not applicable")
            return json.dumps({
                "applicable": False,
                "message": "No schedules were selected to shift; nothing was changed.",
                "idf_path": str(host.idf.idfname),
            }, indent=2)

        day0 = self._first_day(first_day)
        shifted = []
        missing = []
        for csv_path, column_names in host.schedule_file_columns().items():
            if not spec.enabled_columns & set(column_names):
                logger.debug(f"No selected columns in {csv_path}; skipping")
                continue
            shifted.append((csv_path, *self._shift_table(csv_path, spec, day0)))

        files = [self._save_shifted(csv_path, table, result) for csv_path, table, result in shifted]

        for ref in host.schedule_files():
            if not ref.exists:
                missing.append(ref.file_path)

        found = set()
        for entry in files:
            found.update(entry["columns"])
        not_found = sorted(spec.enabled_columns - found)
        for name in not_found:
            logger.debug(f"Selected column '{name}' was not found in any schedule file")

        result = {
            "applicable": True,
            "idf_path": str(host.idf.idfname),
            "spec": spec.to_dict(),
            "files": files,
            "columns_not_found": not_found,
            "missing_schedule_files": sorted(set(missing)),
            "messages": [message for entry in files for message in entry["messages"]],
        }
        logger.info(f"Shifted {len(files)} schedule files referenced by {idf_path}")
        return json.dumps(result, indent=2)

    # Rule-based schedules --------------------------------------------------

    def evaluate_rule_schedule(
        self,
        ruleset: Mapping[str, Any],
        date_str: str,
        time_str: str,
        day_type: str = "normal"
    ) -> str:
        """Value of a ruleset definition at a date and "HH:MM" time"""
        built = calendar_rules.from_dict(ruleset)
        day = datetime.strptime(date_str, "%Y-%m-%d").date()
        hours = parse_clock_time(time_str)

        rule = built.active_rule(day)
        profile = built.profile_for(day, day_type)
        result = {
            "schedule": built.name,
            "date": day.isoformat(),
            "weekday": day.strftime("%A"),
            "time": time_str,
            "day_type": day_type,
            "active_rule": rule.label if rule is not None and profile is rule.profile else None,
            "active_profile": profile.name,
            "value": profile.value_at(hours),
        }
        return json.dumps(result, indent=2)

    def compact_rule_schedule(self, ruleset: Mapping[str, Any]) -> str:
        """Schedule:Compact fields for a ruleset definition"""
        built = calendar_rules.from_dict(ruleset)
        fields = calendar_rules.to_compact_fields(built, self.config.schedules.calendar_year)
        return json.dumps({"schedule": built.name, "fields": fields}, indent=2)

    def shift_rule_schedule(
        self,
        ruleset: Mapping[str, Any],
        peak_period: Optional[str] = None,
        delay_hours: Optional[int] = None,
        idf_path: Optional[str] = None,
        output_path: Optional[str] = None,
        type_limits: Optional[str] = None
    ) -> str:
        """
        Peak-shift the weekday profiles of a ruleset definition

        When ``idf_path`` is given the shifted ruleset is written into the
        model as a Schedule:Compact object (replacing one of the same name).
        """
        spec = self._shift_spec(peak_period, delay_hours, None)
        built = calendar_rules.from_dict(ruleset)
        shifted, diagnostics = calendar_rules.shift_ruleset(built, spec)

        result = {
            "spec": spec.to_dict(),
            "schedule": shifted.to_dict(),
            "diagnostics": [d.to_dict() for d in diagnostics],
        }

        if idf_path:
            host = self._host(idf_path)
            host.materialize(shifted, type_limits=type_limits)
            result["output_idf"] = host.save(self._output_idf_path(host, idf_path, output_path, "peak_shift"))

        return json.dumps(result, indent=2)

    def shift_model_rule_schedules(
        self,
        idf_path: str,
        schedule_names: ColumnSelection,
        peak_period: Optional[str] = None,
        delay_hours: Optional[int] = None,
        output_path: Optional[str] = None
    ) -> str:
        """
        Peak-shift Schedule:Compact objects of an IDF, selected by name

        Every named schedule is read and shifted before the model is
        changed; the shifted schedules replace the originals and the model
        is saved once. Names not present in the model are reported.
        """
        spec = self._shift_spec(peak_period, delay_hours, None)
        names = sorted(peak_shift.enabled_columns(schedule_names))
        host = self._host(idf_path)

        if not names:
            logger.info("No rule schedules selected; peak shift is not applicable")
            return json.dumps({
                "applicable": False,
                "message": "No schedules were selected to shift; nothing was changed.",
                "idf_path": str(host.idf.idfname),
            }, indent=2)

        shifted = []
        not_found = []
        for name in names:
            try:
                ruleset = host.read_rule_schedule(name)
            except NotFound:
                logger.debug(f"Rule schedule '{name}' is not in the model")
                not_found.append(name)
                continue
            new_ruleset, diagnostics = calendar_rules.shift_ruleset(ruleset, spec)
            shifted.append((new_ruleset, host.rule_schedule_type_limits(name), diagnostics))

        schedules = {}
        for ruleset, type_limits, diagnostics in shifted:
            host.materialize(ruleset, type_limits=type_limits)
            schedules[ruleset.name] = {
                "rules": len(ruleset.rules),
                "diagnostics": [d.to_dict() for d in diagnostics],
            }

        result = {
            "applicable": True,
            "spec": spec.to_dict(),
            "schedules": schedules,
            "schedules_not_found": not_found,
        }
        if shifted:
            result["output_idf"] = host.save(self._output_idf_path(host, idf_path, output_path, "peak_shift"))
        logger.info(f"Shifted {len(shifted)} rule schedules in {idf_path}")
        return json.dumps(result, indent=2)

    # Storage and water heating ---------------------------------------------

    def add_ice_storage_schedules(
        self,
        idf_path: str,
        charge_start: str,
        charge_end: str,
        discharge_start: str,
        discharge_end: str,
        season: str = "01/01-12/31",
        include_weekends: bool = False,
        objective: str = storage_dispatch.FULL_STORAGE,
        upstream: str = storage_dispatch.UPSTREAM_STORAGE,
        loop_setpoint: float = 6.7,
        charge_setpoint: float = -3.9,
        intermediate_setpoint: float = 8.9,
        output_path: Optional[str] = None
    ) -> str:
        """Build ice storage dispatch schedules and write them into an IDF"""
        schedules = storage_dispatch.build_ice_storage_schedules(
            charge_start,
            charge_end,
            discharge_start,
            discharge_end,
            season=season,
            include_weekends=include_weekends,
            objective=objective,
            upstream=upstream,
            loop_setpoint=loop_setpoint,
            charge_setpoint=charge_setpoint,
            intermediate_setpoint=intermediate_setpoint,
        )

        host = self._host(idf_path)
        names = []
        for ruleset, type_limits in schedules.with_type_limits():
            host.materialize(ruleset, type_limits=type_limits)
            names.append(ruleset.name)
        saved = host.save(self._output_idf_path(host, idf_path, output_path, "ice_storage"))

        result = {
            "output_idf": saved,
            "schedules_added": names,
            "warnings": [d.message for d in schedules.diagnostics],
        }
        logger.info(f"Added {len(names)} ice storage schedules to {saved}")
        return json.dumps(result, indent=2)

    def build_water_heater_flex_schedule(
        self,
        flex_periods: List[Tuple[str, str]],
        max_temp_f: float = 160.0,
        min_temp_f: float = 120.0,
        base_setpoint_c: float = 60.0,
        name: str = "Water Heater Setpoint Schedule (Flex)",
        idf_path: Optional[str] = None,
        output_path: Optional[str] = None
    ) -> str:
        """
        Water heater setpoint schedule with daily flex periods

        Starts from a constant ``base_setpoint_c`` day and applies each
        (option, "HH:MM - HH:MM") flex period.
        """
        max_temp_f, diagnostics = storage_dispatch.check_flex_temperatures(max_temp_f, min_temp_f)
        base = calendar_rules.DayProfile.constant(base_setpoint_c, f"{name} Default")
        profile = storage_dispatch.apply_flex_periods(
            base,
            flex_periods,
            max_temp=storage_dispatch.fahrenheit_to_celsius(max_temp_f),
            min_temp=storage_dispatch.fahrenheit_to_celsius(min_temp_f),
        )
        ruleset = calendar_rules.build_simple(
            default=profile,
            winter_design=[(24.0, base_setpoint_c)],
            summer_design=[(24.0, base_setpoint_c)],
            name=name,
        )

        result = {
            "schedule": ruleset.to_dict(),
            "warnings": [d.message for d in diagnostics],
        }

        if idf_path:
            host = self._host(idf_path)
            host.materialize(ruleset, type_limits="Temperature")
            result["output_idf"] = host.save(self._output_idf_path(host, idf_path, output_path, "hpwh_flex"))

        return json.dumps(result, indent=2)
