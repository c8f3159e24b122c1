"""
Configuration for the Load Flexibility MCP Server

Settings are grouped in dataclasses and filled from environment
variables. ``get_config()`` returns a process-wide instance.

EnergyPlus Model Context Protocol Server (EnergyPlus-MCP)
Copyright (c) 2025, The Regents of the University of California,
through Lawrence Berkeley National Laboratory (subject to receipt of
any required approvals from the U.S. Dept. of Energy). All rights reserved.
"""

import os
import logging
import logging.handlers
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_INSTALLATION_PATH = "/app/software/EnergyPlusV25-1-0"


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got '{value}'")


@dataclass
class EnergyPlusConfig:
    """EnergyPlus installation paths; only the IDD is required for schedule editing"""
    idd_path: str = ""
    installation_path: str = ""
    version: str = "25.1.0"
    example_files_path: str = ""


@dataclass
class PathConfig:
    """Workspace directories"""
    workspace_root: str = ""
    sample_files_path: str = ""
    output_dir: str = ""
    temp_dir: str = ""

    def __post_init__(self):
        if not self.workspace_root:
            self.workspace_root = os.getenv(
                "LOADFLEX_MCP_WORKSPACE",
                str(Path(__file__).resolve().parent.parent)
            )
        if not self.sample_files_path:
            self.sample_files_path = os.path.join(self.workspace_root, "sample_files")
        if not self.output_dir:
            self.output_dir = os.path.join(self.workspace_root, "outputs")
        if not self.temp_dir:
            self.temp_dir = os.path.join(self.output_dir, "tmp")


@dataclass
class ScheduleConfig:
    """Defaults for schedule shifting and calendar encoding"""
    default_peak_period: str = "15 - 18"
    default_delay_hours: int = 0
    max_shift_hours: int = 12
    total_days: int = 365
    calendar_year: int = 2009
    steps_per_day: Optional[int] = None  # None: rows / total_days
    atomic_save: bool = True

    def __post_init__(self):
        total_days = _env_int("LOADFLEX_TOTAL_DAYS")
        if total_days is not None:
            self.total_days = total_days
        calendar_year = _env_int("LOADFLEX_CALENDAR_YEAR")
        if calendar_year is not None:
            self.calendar_year = calendar_year
        steps_per_day = _env_int("LOADFLEX_STEPS_PER_DAY")
        if steps_per_day is not None:
            self.steps_per_day = steps_per_day


@dataclass
class ServerConfig:
    """MCP server settings"""
    name: str = "load-flexibility-mcp-server"
    version: str = "0.1.0"
    log_level: str = "INFO"
    tool_timeout: int = 60

    def __post_init__(self):
        self.log_level = os.getenv("LOADFLEX_LOG_LEVEL", self.log_level).upper()


@dataclass
class Config:
    """Top-level configuration"""
    energyplus: EnergyPlusConfig = field(default_factory=EnergyPlusConfig)
    paths: PathConfig = field(default_factory=PathConfig)
    schedules: ScheduleConfig = field(default_factory=ScheduleConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    debug_mode: bool = False

    def __post_init__(self):
        self.debug_mode = os.getenv("DEBUG", "false").lower() in ("1", "true", "yes")
        self._configure_energyplus()
        self._setup_logging()
        self._ensure_directories()
        self._validate_paths()

    def _configure_energyplus(self):
        idd_path = os.getenv("EPLUS_IDD_PATH")
        if idd_path:
            installation_path = os.path.dirname(idd_path)
        else:
            installation_path = DEFAULT_INSTALLATION_PATH
            idd_path = os.path.join(installation_path, "Energy+.idd")

        self.energyplus = EnergyPlusConfig(
            idd_path=idd_path,
            installation_path=installation_path,
            version=self.energyplus.version,
            example_files_path=os.path.join(installation_path, "ExampleFiles"),
        )

    def _setup_logging(self):
        """Console logging on stderr plus rotating log files in the workspace"""
        log_dir = Path(self.paths.workspace_root) / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        level = logging.DEBUG if self.debug_mode else getattr(logging, self.server.log_level, logging.INFO)
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

        root = logging.getLogger()
        root.setLevel(level)
        for handler in list(root.handlers):
            root.removeHandler(handler)

        # stdout carries the MCP stdio transport
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(formatter)
        root.addHandler(console)

        main_log = logging.handlers.RotatingFileHandler(
            log_dir / "load_flexibility_mcp.log", maxBytes=10 * 1024 * 1024, backupCount=5
        )
        main_log.setFormatter(formatter)
        root.addHandler(main_log)

        error_log = logging.handlers.RotatingFileHandler(
            log_dir / "load_flexibility_mcp_errors.log", maxBytes=5 * 1024 * 1024, backupCount=3
        )
        error_log.setLevel(logging.ERROR)
        error_log.setFormatter(formatter)
        root.addHandler(error_log)

    def _ensure_directories(self):
        for directory in (self.paths.output_dir, self.paths.temp_dir):
            os.makedirs(directory, exist_ok=True)

    def _validate_paths(self):
        if not os.path.exists(self.energyplus.idd_path):
            logger.warning(f"EnergyPlus IDD not found at {self.energyplus.idd_path}; IDF tools will fail")
        if not os.path.exists(self.paths.sample_files_path):
            logger.warning(f"Sample files directory not found: {self.paths.sample_files_path}")


def get_config() -> Config:
    """Return the process-wide configuration, creating it on first use"""
    if not hasattr(get_config, "_config"):
        get_config._config = Config()
    return get_config._config


def reload_config() -> Config:
    """Drop the cached configuration and build a new one"""
    if hasattr(get_config, "_config"):
        delattr(get_config, "_config")
    return get_config()
