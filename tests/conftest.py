"""
Shared test fixtures for Load Flexibility MCP Server tests.

Provides mock configuration and small synthetic schedule tables to avoid
filesystem side-effects from Config.__post_init__.
"""

import os
from io import StringIO

import numpy as np
import pytest
from unittest.mock import patch

from load_flexibility_mcp_server.utils.schedule_table import ScheduleTable

STEPS_PER_DAY = 24


@pytest.fixture
def mock_config(tmp_path):
    """Build a Config with tmp_path-based directories, avoiding filesystem side-effects."""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    output_dir = tmp_path / "outputs"
    output_dir.mkdir()
    sample_files = tmp_path / "sample_files"
    sample_files.mkdir()
    logs_dir = workspace / "logs"
    logs_dir.mkdir()

    env_overrides = {
        "EPLUS_IDD_PATH": str(tmp_path / "Energy+.idd"),
        "LOADFLEX_MCP_WORKSPACE": str(workspace),
    }

    # Create a fake IDD file so path validation doesn't warn excessively
    (tmp_path / "Energy+.idd").touch()

    with patch.dict(os.environ, env_overrides):
        # Import here to avoid triggering module-level config at import time
        from load_flexibility_mcp_server.config import Config, PathConfig, ScheduleConfig

        paths = PathConfig(
            workspace_root=str(workspace),
            sample_files_path=str(sample_files),
            output_dir=str(output_dir),
        )
        schedules = ScheduleConfig()
        schedules.total_days = 7
        schedules.calendar_year = 2009
        schedules.steps_per_day = None

        config = Config.__new__(Config)
        # Manually set fields to avoid __post_init__ side-effects
        config.energyplus = type("EnergyPlusConfig", (), {
            "idd_path": str(tmp_path / "Energy+.idd"),
            "installation_path": str(tmp_path),
            "version": "25.1.0",
            "example_files_path": str(tmp_path / "ExampleFiles"),
        })()
        config.paths = paths
        config.schedules = schedules
        config.server = type("ServerConfig", (), {
            "name": "test-server",
            "version": "0.1.0-test",
            "log_level": "DEBUG",
            "tool_timeout": 5,
        })()
        config.debug_mode = False

        yield config


def peak_load_week(value: float = 1.0, days: int = 7) -> np.ndarray:
    """Hourly samples holding ``value`` from 15:00 to 18:00 each day, zero otherwise"""
    values = np.zeros(days * STEPS_PER_DAY)
    for day in range(days):
        values[day * STEPS_PER_DAY + 15:day * STEPS_PER_DAY + 18] = value
    return values


@pytest.fixture
def week_table():
    """One week of hourly data; two appliance columns with peak load, one flat column."""
    return ScheduleTable({
        "dishwasher": peak_load_week(0.5),
        "clothes_washer": peak_load_week(0.25),
        "refrigerator": np.full(7 * STEPS_PER_DAY, 0.1),
    })


@pytest.fixture
def dryer_table():
    """A year of 15-minute data: a single 1.0 at 16:00 on day 0, zero elsewhere."""
    values = np.zeros(365 * 96)
    values[16 * 4] = 1.0
    return ScheduleTable({"clothes_dryer": values})


@pytest.fixture
def schedule_csv(tmp_path, week_table):
    """The week table written as a CSV in column order dishwasher, clothes_washer, refrigerator."""
    path = tmp_path / "schedules.csv"
    week_table.to_dataframe().to_csv(path, index=False)
    return path


@pytest.fixture
def eppy_idd():
    """Register eppy's bundled IDD once for the test session."""
    from eppy.iddcurrent import iddcurrent
    from eppy.modeleditor import IDF

    if IDF.getiddname() is None:
        IDF.setiddname(StringIO(iddcurrent.iddtxt))
    return IDF


IDF_TEXT = """
Version,8.0;

ScheduleTypeLimits,
    Fraction,                !- Name
    0,                       !- Lower Limit Value
    1,                       !- Upper Limit Value
    Continuous;              !- Numeric Type

Schedule:File,
    Dishwasher Schedule,     !- Name
    Fraction,                !- Schedule Type Limits Name
    schedules.csv,           !- File Name
    1,                       !- Column Number
    1;                       !- Rows to Skip at Top

Schedule:File,
    Clothes Washer Schedule, !- Name
    Fraction,                !- Schedule Type Limits Name
    schedules.csv,           !- File Name
    2,                       !- Column Number
    1;                       !- Rows to Skip at Top

Schedule:File,
    Missing Schedule,        !- Name
    Fraction,                !- Schedule Type Limits Name
    missing.csv,             !- File Name
    1,                       !- Column Number
    1;                       !- Rows to Skip at Top

Schedule:Compact,
    Always On,               !- Name
    Fraction,                !- Schedule Type Limits Name
    Through: 12/31,          !- Field 1
    For: AllDays,            !- Field 2
    Until: 24:00,            !- Field 3
    1;                       !- Field 4

Schedule:Compact,
    Dryer Cycle,             !- Name
    Fraction,                !- Schedule Type Limits Name
    Through: 12/31,          !- Field 1
    For: Weekdays,           !- Field 2
    Until: 15:00,            !- Field 3
    0,                       !- Field 4
    Until: 18:00,            !- Field 5
    1,                       !- Field 6
    Until: 24:00,            !- Field 7
    0,                       !- Field 8
    For: AllOtherDays,       !- Field 9
    Until: 24:00,            !- Field 10
    0;                       !- Field 11
"""


@pytest.fixture
def idf_file(tmp_path, schedule_csv, eppy_idd):
    """An IDF next to schedules.csv, referencing two of its columns and one missing file."""
    path = tmp_path / "model.idf"
    path.write_text(IDF_TEXT)
    return path
