"""
Error types raised by the schedule utilities

All errors derive from ValueError so callers that already treat bad
user input as ValueError keep working.

EnergyPlus Model Context Protocol Server (EnergyPlus-MCP)
Copyright (c) 2025, The Regents of the University of California,
through Lawrence Berkeley National Laboratory (subject to receipt of
any required approvals from the U.S. Dept. of Energy). All rights reserved.
"""


class ScheduleError(ValueError):
    """Base class for schedule parsing, shifting and rule-building errors"""


class ParseError(ScheduleError):
    """A retained schedule table cell is not numeric"""

    def __init__(self, message: str, column: str = None):
        super().__init__(message)
        self.column = column


class InvalidWindow(ScheduleError):
    """A peak period is empty, malformed, or outside the day"""


class WindowTooLong(ScheduleError):
    """Peak period plus delay exceeds the maximum shift length"""


class InvalidDateRange(ScheduleError):
    """A season string is not two MM/DD tokens"""


class InvalidBreakpoint(ScheduleError):
    """A breakpoint time cannot be expressed as hour and minute within 0-24h"""


class InvalidDayOfWeek(ScheduleError):
    """A day-of-week token is not recognized"""


class NotFound(ScheduleError, LookupError):
    """A named schedule or object does not exist in the host model"""
