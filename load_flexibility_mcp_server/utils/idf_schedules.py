"""
Schedule access for EnergyPlus IDF models through eppy

Lists the Schedule:File CSVs a model references (with their header
column names), reads Schedule:Compact objects by name into rulesets, and writes
CalendarRuleSets back into the model as Schedule:Compact objects.

EnergyPlus Model Context Protocol Server (EnergyPlus-MCP)
Copyright (c) 2025, The Regents of the University of California,
through Lawrence Berkeley National Laboratory (subject to receipt of
any required approvals from the U.S. Dept. of Energy). All rights reserved.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from eppy.modeleditor import IDF

from .calendar_rules import REFERENCE_YEAR, CalendarRuleSet, from_compact_fields, to_compact_fields
from .exceptions import NotFound, ParseError
from .schedule_table import read_column_names

logger = logging.getLogger(__name__)

SCHEDULE_FILE = "SCHEDULE:FILE"
SCHEDULE_COMPACT = "SCHEDULE:COMPACT"
SCHEDULE_TYPE_LIMITS = "SCHEDULETYPELIMITS"

# Defaults used when a referenced ScheduleTypeLimits object is missing
TYPE_LIMIT_DEFAULTS = {
    "OnOff": {
        "Lower_Limit_Value": 0,
        "Upper_Limit_Value": 1,
        "Numeric_Type": "Discrete",
    },
    "Fraction": {
        "Lower_Limit_Value": 0,
        "Upper_Limit_Value": 1,
        "Numeric_Type": "Continuous",
    },
    "Temperature": {
        "Numeric_Type": "Continuous",
    },
}


@dataclass
class ScheduleFileRef:
    """A Schedule:File object and the CSV it points at"""
    name: str
    file_path: str
    column_number: int
    rows_to_skip: int
    column_names: List[str] = field(default_factory=list)

    @property
    def exists(self) -> bool:
        return os.path.exists(self.file_path)

    @property
    def column_name(self) -> Optional[str]:
        """Header name of the referenced column, when the file has a header"""
        if self.rows_to_skip < 1 or not 1 <= self.column_number <= len(self.column_names):
            return None
        return self.column_names[self.column_number - 1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "file_path": self.file_path,
            "exists": self.exists,
            "column_number": self.column_number,
            "column_name": self.column_name,
            "rows_to_skip": self.rows_to_skip,
        }


def ensure_idd(idd_path: Optional[str]):
    """Register the IDD with eppy once per process"""
    if IDF.getiddname() is None:
        if not idd_path:
            raise FileNotFoundError("No EnergyPlus IDD configured; set EPLUS_IDD_PATH")
        IDF.setiddname(idd_path)


class IdfScheduleHost:
    """
    Host-model capability interface backed by an eppy IDF

    Provides (a) the schedule CSVs a model references and their column
    names, (b) named rule-based schedules, and (c) materialization of a
    CalendarRuleSet as a Schedule:Compact object.
    """

    def __init__(self, idf: IDF, base_dir: Optional[str] = None, calendar_year: int = REFERENCE_YEAR):
        self.idf = idf
        self.base_dir = base_dir or os.getcwd()
        self.calendar_year = calendar_year

    @classmethod
    def from_file(cls, idf_path: str, idd_path: Optional[str] = None, **kwargs) -> 'IdfScheduleHost':
        if not os.path.exists(idf_path):
            raise FileNotFoundError(f"IDF file not found: {idf_path}")
        ensure_idd(idd_path)
        idf = IDF(idf_path)
        return cls(idf, base_dir=os.path.dirname(os.path.abspath(idf_path)), **kwargs)

    def _resolve(self, file_name: str) -> str:
        if os.path.isabs(file_name):
            return file_name
        return os.path.abspath(os.path.join(self.base_dir, file_name))

    # (a) schedule files ------------------------------------------------------

    def schedule_files(self) -> List[ScheduleFileRef]:
        """Every Schedule:File object with its resolved CSV path and header"""
        headers: Dict[str, List[str]] = {}
        refs = []
        for obj in self.idf.idfobjects[SCHEDULE_FILE]:
            path = self._resolve(str(obj.File_Name))
            if path not in headers:
                headers[path] = self._header(path)
            refs.append(ScheduleFileRef(
                name=str(obj.Name),
                file_path=path,
                column_number=int(obj.Column_Number or 1),
                rows_to_skip=int(obj.Rows_to_Skip_at_Top or 0),
                column_names=headers[path],
            ))
        return refs

    def _header(self, path: str) -> List[str]:
        if not os.path.exists(path):
            logger.warning(f"Schedule file referenced by the model does not exist: {path}")
            return []
        try:
            return read_column_names(path)
        except ParseError as e:
            logger.warning(f"Could not read schedule file header {path}: {e}")
            return []

    def schedule_file_columns(self) -> Dict[str, List[str]]:
        """Existing referenced CSV paths mapped to their column names"""
        columns: Dict[str, List[str]] = {}
        for ref in self.schedule_files():
            if ref.exists and ref.file_path not in columns:
                columns[ref.file_path] = ref.column_names
        return columns

    # (b) rule-based schedules -----------------------------------------------

    def rule_schedule_names(self) -> List[str]:
        return [str(obj.Name) for obj in self.idf.idfobjects[SCHEDULE_COMPACT]]

    def get_rule_schedule(self, name: str):
        """Schedule:Compact object by (case-insensitive) name"""
        for obj in self.idf.idfobjects[SCHEDULE_COMPACT]:
            if str(obj.Name).upper() == name.upper():
                return obj
        raise NotFound(f"Schedule:Compact '{name}' not found in model")

    def read_rule_schedule(self, name: str) -> CalendarRuleSet:
        """Schedule:Compact object by name, decoded into a CalendarRuleSet"""
        obj = self.get_rule_schedule(name)
        # fieldvalues: object key, Name, Schedule Type Limits Name, then the compact fields
        return from_compact_fields(str(obj.Name), obj.fieldvalues[3:])

    def rule_schedule_type_limits(self, name: str) -> Optional[str]:
        return str(self.get_rule_schedule(name).Schedule_Type_Limits_Name) or None

    # (c) materialization ----------------------------------------------------

    def ensure_type_limits(self, name: str):
        existing = self.idf.getobject(SCHEDULE_TYPE_LIMITS, name)
        if existing is not None:
            return existing
        defaults = TYPE_LIMIT_DEFAULTS.get(name, {})
        logger.info(f"Adding ScheduleTypeLimits '{name}'")
        return self.idf.newidfobject(SCHEDULE_TYPE_LIMITS, Name=name, **defaults)

    def materialize(
        self,
        ruleset: CalendarRuleSet,
        type_limits: Optional[str] = None,
        replace_existing: bool = True
    ):
        """
        Write ``ruleset`` into the model as a Schedule:Compact object

        An existing schedule of the same name is replaced, or a ValueError
        raised when ``replace_existing`` is False.
        """
        try:
            existing = self.get_rule_schedule(ruleset.name)
        except NotFound:
            existing = None

        if existing is not None:
            if not replace_existing:
                raise ValueError(f"Schedule:Compact '{ruleset.name}' already exists")
            self.idf.removeidfobject(existing)

        if type_limits:
            self.ensure_type_limits(type_limits)

        compact_fields = to_compact_fields(ruleset, self.calendar_year)
        field_values = {f"Field_{i}": value for i, value in enumerate(compact_fields, start=1)}

        obj = self.idf.newidfobject(
            SCHEDULE_COMPACT,
            Name=ruleset.name,
            Schedule_Type_Limits_Name=type_limits or "",
            **field_values
        )
        logger.info(f"Added Schedule:Compact '{ruleset.name}' ({len(compact_fields)} fields)")
        return obj

    def save(self, output_path: Optional[str] = None) -> str:
        if output_path:
            self.idf.saveas(output_path)
            return output_path
        self.idf.save()
        return str(self.idf.idfname)
