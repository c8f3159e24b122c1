"""
Load Flexibility MCP Server

Peak-period schedule shifting, calendar schedule building and
ice-storage / water-heater dispatch schedules for EnergyPlus models.

EnergyPlus Model Context Protocol Server (EnergyPlus-MCP)
Copyright (c) 2025, The Regents of the University of California,
through Lawrence Berkeley National Laboratory (subject to receipt of
any required approvals from the U.S. Dept. of Energy). All rights reserved.
"""

__version__ = "0.1.0"
