"""
Load Flexibility MCP Server with FastMCP

Exposes schedule peak shifting, calendar rule schedules and thermal
storage dispatch schedules for EnergyPlus models as MCP tools.

EnergyPlus Model Context Protocol Server (EnergyPlus-MCP)
Copyright (c) 2025, The Regents of the University of California,
through Lawrence Berkeley National Laboratory (subject to receipt of
any required approvals from the U.S. Dept. of Energy). All rights reserved.
"""

import os
import sys
import platform
import logging
import json
from typing import Optional, Dict, Any, List, Union
from pathlib import Path
from datetime import datetime

from mcp.server.fastmcp import FastMCP

from load_flexibility_mcp_server.flexibility_tools import LoadFlexibilityManager
from load_flexibility_mcp_server.config import get_config

logger = logging.getLogger(__name__)

# Record actual startup time for status reporting
_server_startup_time = datetime.now()

config = get_config()

mcp = FastMCP(config.server.name)

flex_manager = LoadFlexibilityManager(config)

logger.info("Load Flexibility MCP Server '%s' v%s initialized", config.server.name, config.server.version)


@mcp.tool()
async def inspect_schedule_file(csv_path: str) -> str:
    """
    Inspect a Schedule:File CSV: column names, row count and per-column totals

    Args:
        csv_path: Path to the schedule CSV (absolute, relative, or a filename in sample_files)

    Returns:
        JSON string with columns, rows, inferred steps per day and a per-column summary
    """
    try:
        logger.info("Inspecting schedule file: %s", csv_path)
        return flex_manager.inspect_schedule_file(csv_path)
    except FileNotFoundError as e:
        logger.warning("Schedule file not found: %s", csv_path)
        return json.dumps({"error": str(e)})
    except ValueError as e:
        logger.warning("Invalid schedule file %s: %s", csv_path, e)
        return json.dumps({"error": str(e)})
    except Exception as e:
        logger.error("Unexpected error inspecting schedule file %s: %s", csv_path, e)
        return json.dumps({"error": str(e)})


@mcp.tool()
async def shift_schedule_file(
    csv_path: str,
    columns: Union[str, List[str]],
    peak_period: Optional[str] = None,
    delay_hours: Optional[int] = None,
    output_path: Optional[str] = None,
    first_day: Optional[str] = None
) -> str:
    """
    Move weekday load out of a peak period in selected schedule CSV columns

    Each weekday, values in the peak period move to a window of the same
    length starting ``delay_hours`` after the peak ends. A day is skipped
    (and counted) when the destination already holds load.

    Args:
        csv_path: Schedule CSV to shift
        columns: Columns to shift, as a list or comma-separated string
                 (e.g. "clothes_dryer, dishwasher")
        peak_period: Peak hours as "HH - HH" (default from configuration, "15 - 18")
        delay_hours: Whole hours between the peak end and the new window (default 0)
        output_path: Where to write the result; the input is overwritten when omitted
        first_day: Calendar date of the first row as YYYY-MM-DD (default Jan 1 of the calendar year)

    Returns:
        JSON string with per-column shifted / skipped day counts and messages

    Examples:
        shift_schedule_file("schedules.csv", "clothes_dryer", peak_period="15 - 18", delay_hours=1)
    """
    try:
        logger.info("Shifting schedule file %s (columns=%s, peak=%s, delay=%s)",
                    csv_path, columns, peak_period, delay_hours)
        return flex_manager.shift_schedule_file(csv_path, columns, peak_period, delay_hours,
                                                output_path, first_day)
    except FileNotFoundError as e:
        logger.warning("Schedule file not found: %s", csv_path)
        return json.dumps({"error": str(e)})
    except ValueError as e:
        logger.warning("Invalid arguments for shift_schedule_file: %s", e)
        return json.dumps({"error": str(e)})
    except Exception as e:
        logger.error("Unexpected error shifting schedule file %s: %s", csv_path, e)
        return json.dumps({"error": str(e)})


@mcp.tool()
async def list_schedule_files(idf_path: str) -> str:
    """
    List the Schedule:File objects in an IDF with their CSV paths and column names

    Args:
        idf_path: Path to the IDF file

    Returns:
        JSON string with Schedule:File references, CSV column names and Schedule:Compact names
    """
    try:
        logger.info("Listing schedule files: %s", idf_path)
        return flex_manager.list_schedule_files(idf_path)
    except FileNotFoundError as e:
        logger.warning("IDF file not found: %s", idf_path)
        return json.dumps({"error": str(e)})
    except Exception as e:
        logger.error("Error listing schedule files for %s: %s", idf_path, e)
        return json.dumps({"error": str(e)})


@mcp.tool()
async def shift_idf_schedule_files(
    idf_path: str,
    columns: Union[str, List[str]],
    peak_period: Optional[str] = None,
    delay_hours: Optional[int] = None,
    first_day: Optional[str] = None
) -> str:
    """
    Peak-shift the selected columns in every schedule CSV referenced by an IDF

    Args:
        idf_path: Path to the IDF file
        columns: Column names to shift, as a list or comma-separated string
        peak_period: Peak hours as "HH - HH"
        delay_hours: Whole hours between the peak end and the new window
        first_day: Calendar date of the first row as YYYY-MM-DD

    Returns:
        JSON string with one result per CSV that was shifted
    """
    try:
        logger.info("Shifting schedule files of %s (columns=%s)", idf_path, columns)
        return flex_manager.shift_idf_schedule_files(idf_path, columns, peak_period, delay_hours, first_day)
    except FileNotFoundError as e:
        logger.warning("File not found: %s", e)
        return json.dumps({"error": str(e)})
    except ValueError as e:
        logger.warning("Invalid arguments for shift_idf_schedule_files: %s", e)
        return json.dumps({"error": str(e)})
    except Exception as e:
        logger.error("Unexpected error shifting schedule files for %s: %s", idf_path, e)
        return json.dumps({"error": str(e)})


@mcp.tool()
async def evaluate_rule_schedule(
    ruleset: Dict[str, Any],
    date: str,
    time: str,
    day_type: str = "normal"
) -> str:
    """
    Evaluate a calendar rule schedule at a date and time

    Args:
        ruleset: Schedule definition, e.g.
                 {"name": "Dryer", "default": [[24, 0]],
                  "rules": [{"label": "Summer Weekday", "season": "06/01-09/30",
                             "days": "Mon/Tue/Wed/Thu/Fri",
                             "breakpoints": [[9, 0], [17, 1], [24, 0]]}]}
        date: YYYY-MM-DD
        time: HH:MM
        day_type: "normal", "summer" or "winter" (design days)

    Returns:
        JSON string with the active rule, profile and value
    """
    try:
        return flex_manager.evaluate_rule_schedule(ruleset, date, time, day_type)
    except ValueError as e:
        logger.warning("Invalid arguments for evaluate_rule_schedule: %s", e)
        return json.dumps({"error": str(e)})
    except Exception as e:
        logger.error("Unexpected error evaluating rule schedule: %s", e)
        return json.dumps({"error": str(e)})


@mcp.tool()
async def compact_rule_schedule(ruleset: Dict[str, Any]) -> str:
    """
    Render a calendar rule schedule as Schedule:Compact fields

    Args:
        ruleset: Schedule definition (see evaluate_rule_schedule)

    Returns:
        JSON string with the Through / For / Until field list
    """
    try:
        return flex_manager.compact_rule_schedule(ruleset)
    except ValueError as e:
        logger.warning("Invalid arguments for compact_rule_schedule: %s", e)
        return json.dumps({"error": str(e)})
    except Exception as e:
        logger.error("Unexpected error encoding rule schedule: %s", e)
        return json.dumps({"error": str(e)})


@mcp.tool()
async def shift_rule_schedule(
    ruleset: Dict[str, Any],
    peak_period: Optional[str] = None,
    delay_hours: Optional[int] = None,
    idf_path: Optional[str] = None,
    output_path: Optional[str] = None,
    type_limits: Optional[str] = None
) -> str:
    """
    Peak-shift the weekday profiles of a calendar rule schedule

    Args:
        ruleset: Schedule definition (see evaluate_rule_schedule)
        peak_period: Peak hours as "HH - HH"
        delay_hours: Whole hours between the peak end and the new window
        idf_path: Optional IDF to write the shifted schedule into as Schedule:Compact
        output_path: Where to save the modified IDF (default: outputs/<name>_peak_shift.idf)
        type_limits: ScheduleTypeLimits name for the written schedule

    Returns:
        JSON string with the shifted schedule and any skipped profiles
    """
    try:
        logger.info("Shifting rule schedule (peak=%s, delay=%s)", peak_period, delay_hours)
        return flex_manager.shift_rule_schedule(ruleset, peak_period, delay_hours, idf_path,
                                                output_path, type_limits)
    except FileNotFoundError as e:
        logger.warning("IDF file not found: %s", idf_path)
        return json.dumps({"error": str(e)})
    except ValueError as e:
        logger.warning("Invalid arguments for shift_rule_schedule: %s", e)
        return json.dumps({"error": str(e)})
    except Exception as e:
        logger.error("Unexpected error shifting rule schedule: %s", e)
        return json.dumps({"error": str(e)})


@mcp.tool()
async def shift_model_rule_schedules(
    idf_path: str,
    schedule_names: Union[str, List[str]],
    peak_period: Optional[str] = None,
    delay_hours: Optional[int] = None,
    output_path: Optional[str] = None
) -> str:
    """
    Peak-shift Schedule:Compact objects of an IDF by name

    Args:
        idf_path: Path to the IDF file
        schedule_names: Schedule names as a list or comma-separated string
        peak_period: Peak hours as "HH - HH"
        delay_hours: Whole hours between the peak end and the new window
        output_path: Where to save the modified IDF (default: outputs/<name>_peak_shift.idf)

    Returns:
        JSON string with per-schedule diagnostics and names not found in the model
    """
    try:
        logger.info("Shifting rule schedules in %s: %s", idf_path, schedule_names)
        return flex_manager.shift_model_rule_schedules(idf_path, schedule_names, peak_period,
                                                       delay_hours, output_path)
    except FileNotFoundError as e:
        logger.warning("IDF file not found: %s", idf_path)
        return json.dumps({"error": str(e)})
    except ValueError as e:
        logger.warning("Invalid arguments for shift_model_rule_schedules: %s", e)
        return json.dumps({"error": str(e)})
    except Exception as e:
        logger.error("Unexpected error shifting rule schedules in %s: %s", idf_path, e)
        return json.dumps({"error": str(e)})


@mcp.tool()
async def add_ice_storage_schedules(
    idf_path: str,
    charge_start: str = "23:00",
    charge_end: str = "07:00",
    discharge_start: str = "12:00",
    discharge_end: str = "18:00",
    season: str = "01/01-12/31",
    include_weekends: bool = False,
    objective: str = "Full Storage",
    upstream: str = "Storage",
    loop_setpoint: float = 6.7,
    charge_setpoint: float = -3.9,
    intermediate_setpoint: float = 8.9,
    output_path: Optional[str] = None
) -> str:
    """
    Add ice storage availability and setpoint schedules to an IDF

    Args:
        idf_path: Path to the IDF file
        charge_start: Charge start time, HH:MM (24 hour)
        charge_end: Charge end time, HH:MM
        discharge_start: Discharge start time, HH:MM
        discharge_end: Discharge end time, HH:MM
        season: Operating season as MM/DD-MM/DD
        include_weekends: Discharge on weekends as well as weekdays
        objective: "Full Storage" or "Partial Storage"
        upstream: Device upstream in the loop for partial storage, "Chiller" or "Storage"
        loop_setpoint: Chilled water loop setpoint [C]
        charge_setpoint: Chiller setpoint while charging [C]
        intermediate_setpoint: Setpoint between chiller and storage for partial storage [C]
        output_path: Where to save the modified IDF (default: outputs/<name>_ice_storage.idf)

    Returns:
        JSON string with the schedules added and any input warnings
    """
    try:
        logger.info("Adding ice storage schedules to %s", idf_path)
        return flex_manager.add_ice_storage_schedules(
            idf_path, charge_start, charge_end, discharge_start, discharge_end,
            season=season, include_weekends=include_weekends, objective=objective,
            upstream=upstream, loop_setpoint=loop_setpoint, charge_setpoint=charge_setpoint,
            intermediate_setpoint=intermediate_setpoint, output_path=output_path,
        )
    except FileNotFoundError as e:
        logger.warning("IDF file not found: %s", idf_path)
        return json.dumps({"error": str(e)})
    except ValueError as e:
        logger.warning("Invalid arguments for add_ice_storage_schedules: %s", e)
        return json.dumps({"error": str(e)})
    except Exception as e:
        logger.error("Unexpected error adding ice storage schedules to %s: %s", idf_path, e)
        return json.dumps({"error": str(e)})


@mcp.tool()
async def build_water_heater_flex_schedule(
    flex_periods: List[List[str]],
    max_temp_f: float = 160.0,
    min_temp_f: float = 120.0,
    idf_path: Optional[str] = None,
    output_path: Optional[str] = None
) -> str:
    """
    Build a water heater setpoint schedule with daily flex periods

    Args:
        flex_periods: Up to four [option, "HH:MM - HH:MM"] pairs; option is one of
                      "None", "Charge - Heat Pump", "Charge - Electric", "Float"
        max_temp_f: Tank temperature while charging with the heat pump [F]
        min_temp_f: Tank temperature while floating or charging electrically [F]
        idf_path: Optional IDF to write the schedule into
        output_path: Where to save the modified IDF

    Returns:
        JSON string with the schedule and any temperature warnings
    """
    try:
        logger.info("Building water heater flex schedule (%d periods)", len(flex_periods))
        return flex_manager.build_water_heater_flex_schedule(
            [tuple(period) for period in flex_periods],
            max_temp_f=max_temp_f,
            min_temp_f=min_temp_f,
            idf_path=idf_path,
            output_path=output_path,
        )
    except FileNotFoundError as e:
        logger.warning("IDF file not found: %s", idf_path)
        return json.dumps({"error": str(e)})
    except ValueError as e:
        logger.warning("Invalid arguments for build_water_heater_flex_schedule: %s", e)
        return json.dumps({"error": str(e)})
    except Exception as e:
        logger.error("Unexpected error building water heater flex schedule: %s", e)
        return json.dumps({"error": str(e)})


@mcp.tool()
async def get_server_configuration() -> str:
    """
    Get current server configuration information

    Returns:
        JSON string with configuration details
    """
    try:
        logger.info("Getting server configuration")
        return flex_manager.get_configuration_info()
    except Exception as e:
        logger.error("Error getting configuration: %s", e)
        return json.dumps({"error": str(e)})


@mcp.tool()
async def get_server_status() -> str:
    """
    Get current server status and health information

    Returns:
        JSON string with server status
    """
    try:
        status_info = {
            "server": {
                "name": config.server.name,
                "version": config.server.version,
                "status": "running",
                "startup_time": _server_startup_time.isoformat(),
                "debug_mode": config.debug_mode
            },
            "system": {
                "python_version": sys.version,
                "platform": platform.platform(),
                "architecture": platform.architecture()[0]
            },
            "energyplus": {
                "version": config.energyplus.version,
                "idd_available": os.path.exists(config.energyplus.idd_path) if config.energyplus.idd_path else False
            },
            "paths": {
                "sample_files_available": os.path.exists(config.paths.sample_files_path),
                "temp_dir_available": os.path.exists(config.paths.temp_dir),
                "output_dir_available": os.path.exists(config.paths.output_dir)
            }
        }

        return json.dumps(status_info, indent=2)

    except Exception as e:
        logger.error("Error getting server status: %s", e)
        return json.dumps({"error": str(e)})


def _tail_log(log_file: Path, lines: int, missing_message: str) -> str:
    if not log_file.exists():
        return json.dumps({"message": missing_message})

    with open(log_file, 'r') as f:
        all_lines = f.readlines()
    recent_lines = all_lines[-lines:] if len(all_lines) > lines else all_lines

    return json.dumps({
        "log_file": str(log_file),
        "total_lines": len(all_lines),
        "showing_lines": len(recent_lines),
        "recent_logs": "".join(recent_lines)
    }, indent=2)


@mcp.tool()
async def get_server_logs(lines: int = 50) -> str:
    """
    Get recent server log entries

    Args:
        lines: Number of recent log lines to return (default 50)
    """
    try:
        log_file = Path(config.paths.workspace_root) / "logs" / "load_flexibility_mcp.log"
        return _tail_log(log_file, lines, "Log file not found. Server may be using console logging only.")
    except Exception as e:
        logger.error("Error reading server logs: %s", e)
        return json.dumps({"error": str(e)})


@mcp.tool()
async def get_error_logs(lines: int = 20) -> str:
    """
    Get recent error log entries

    Args:
        lines: Number of recent error lines to return (default 20)
    """
    try:
        log_file = Path(config.paths.workspace_root) / "logs" / "load_flexibility_mcp_errors.log"
        return _tail_log(log_file, lines, "Error log file not found. No errors logged yet.")
    except Exception as e:
        logger.error("Error reading error logs: %s", e)
        return json.dumps({"error": str(e)})


def main():
    logger.info("Starting %s v%s", config.server.name, config.server.version)
    logger.info("EnergyPlus IDD: %s", config.energyplus.idd_path)
    logger.info("Sample files path: %s", config.paths.sample_files_path)

    try:
        mcp.run(transport="stdio")
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
    except Exception as e:
        logger.error("Server error: %s", e)
        raise
    finally:
        logger.info("Server stopped")


if __name__ == "__main__":
    main()
