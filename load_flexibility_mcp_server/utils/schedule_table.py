"""
Tabular schedule store for EnergyPlus Schedule:File CSVs

Loads a column-oriented time series (header row of column names, one row
per time step) into per-column numpy arrays, and writes it back in the
same column order.

EnergyPlus Model Context Protocol Server (EnergyPlus-MCP)
Copyright (c) 2025, The Regents of the University of California,
through Lawrence Berkeley National Laboratory (subject to receipt of
any required approvals from the U.S. Dept. of Energy). All rights reserved.
"""

import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .exceptions import ParseError, ScheduleError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ScheduleTable:
    """
    Named numeric time series loaded from a schedule CSV

    Column order is the order the columns were loaded (or given) in, and
    is the order they are written back out. The table owns its arrays:
    values passed in are copied.
    """

    def __init__(
        self,
        columns: Optional[Mapping[str, Sequence[float]]] = None,
        file_path: Optional[PathLike] = None
    ):
        self._columns: Dict[str, np.ndarray] = {}
        self.file_path = str(file_path) if file_path is not None else None
        for name, values in (columns or {}).items():
            self._columns[str(name)] = np.array(values, dtype=float)

    def __contains__(self, name: str) -> bool:
        return name in self._columns

    def __getitem__(self, name: str) -> np.ndarray:
        return self._columns[name]

    def __setitem__(self, name: str, values: Sequence[float]):
        self._columns[name] = np.array(values, dtype=float)

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def items(self) -> Iterator[Tuple[str, np.ndarray]]:
        return iter(self._columns.items())

    @property
    def column_names(self) -> List[str]:
        return list(self._columns)

    @property
    def n_rows(self) -> int:
        """Row count of the longest column"""
        if not self._columns:
            return 0
        return max(len(values) for values in self._columns.values())

    def is_rectangular(self) -> bool:
        return len({len(values) for values in self._columns.values()}) <= 1

    def infer_steps_per_day(self, total_days: int) -> int:
        """Steps per day implied by the row count over ``total_days`` days"""
        rows = self.n_rows
        if total_days <= 0 or rows == 0 or rows % total_days != 0:
            raise ScheduleError(
                f"Schedule with {rows} rows cannot be split into {total_days} days"
            )
        return rows // total_days

    def copy(self) -> 'ScheduleTable':
        return ScheduleTable(self._columns, file_path=self.file_path)

    def to_dataframe(self) -> pd.DataFrame:
        """DataFrame in stored column order; short columns are padded with NaN"""
        return pd.DataFrame({name: pd.Series(values) for name, values in self._columns.items()},
                            columns=self.column_names)

    def to_dict(self) -> Dict[str, List[float]]:
        return {name: values.tolist() for name, values in self._columns.items()}

    def summary(self) -> Dict[str, Dict[str, float]]:
        """Per-column row count, total, peak and nonzero count"""
        return {
            name: {
                "rows": int(len(values)),
                "total": float(np.sum(values)),
                "max": float(np.max(values)) if len(values) else 0.0,
                "nonzero_steps": int(np.count_nonzero(values)),
            }
            for name, values in self._columns.items()
        }


def _read_raw(path: PathLike, nrows: Optional[int] = None) -> pd.DataFrame:
    try:
        raw = pd.read_csv(
            path,
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
            nrows=nrows,
        )
    except pd.errors.EmptyDataError:
        raise ParseError(f"Schedule file is empty. [context: {path}]")
    except pd.errors.ParserError as e:
        raise ParseError(f"Schedule file is not a valid delimited table: {e} [context: {path}]")
    return raw.fillna("")


def read_column_names(path: PathLike) -> List[str]:
    """Column names from the header row, without reading the data"""
    raw = _read_raw(path, nrows=1)
    return [str(name).strip() for name in raw.iloc[0] if str(name).strip()]


def _trim_trailing_blanks(cells: List[str]) -> List[str]:
    end = len(cells)
    while end > 0 and cells[end - 1] == "":
        end -= 1
    return cells[:end]


def load(path: PathLike) -> ScheduleTable:
    """
    Load a schedule CSV into a ScheduleTable

    Row 0 holds the column names. Trailing blank cells of each column are
    dropped; every other cell must parse as a number or the whole load
    fails with a ParseError naming the column.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Schedule file not found: {path}")

    raw = _read_raw(path)
    columns: Dict[str, np.ndarray] = {}

    for position in range(raw.shape[1]):
        name = str(raw.iat[0, position]).strip()
        cells = _trim_trailing_blanks([str(c).strip() for c in raw.iloc[1:, position]])

        if not name:
            if not cells:
                # Trailing delimiter on every line
                continue
            raise ParseError(
                f"Schedule column {position + 1} has data but no name. [context: {path}]"
            )
        if name in columns:
            raise ParseError(f"Duplicate schedule column '{name}'. [context: {path}]", column=name)

        if "" in cells:
            raise ParseError(
                f"Schedule value must be numeric for column '{name}' "
                f"(blank cell at row {cells.index('') + 2}). [context: {path}]",
                column=name,
            )
        try:
            # Parsed by float() so every value is the correctly rounded double
            columns[name] = np.asarray(cells, dtype=float)
        except ValueError:
            raise ParseError(
                f"Schedule value must be numeric for column '{name}'. [context: {path}]",
                column=name,
            )

    table = ScheduleTable(columns, file_path=path)
    logger.debug(f"Loaded {len(table)} schedule columns ({table.n_rows} rows) from {path}")
    return table


def _file_mode(target: str) -> int:
    """Mode of the file being replaced, or the umask default for a new file"""
    if os.path.exists(target):
        return stat.S_IMODE(os.stat(target).st_mode)
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def save(table: ScheduleTable, path: Optional[PathLike] = None, atomic: bool = True) -> str:
    """
    Write a ScheduleTable back to CSV, overwriting ``path``

    Columns are written in stored order, one row per sample index. With
    ``atomic`` the data goes to a temporary file in the same directory
    which then replaces the target.

    Returns:
        The path written
    """
    target = path if path is not None else table.file_path
    if target is None:
        raise ValueError("No path given and the schedule table was not loaded from a file")
    target = str(target)

    df = table.to_dataframe()

    if not atomic:
        df.to_csv(target, index=False, na_rep="")
    else:
        directory = os.path.dirname(os.path.abspath(target))
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".schedule_", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", newline="") as handle:
                df.to_csv(handle, index=False, na_rep="")
            os.chmod(tmp_path, _file_mode(target))
            os.replace(tmp_path, target)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    logger.debug(f"Saved {len(table)} schedule columns ({table.n_rows} rows) to {target}")
    return target
