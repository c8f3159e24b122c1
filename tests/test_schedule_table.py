"""
Tests for the tabular schedule store (load / save of Schedule:File CSVs).
"""

import os
import stat

import numpy as np
import pytest

from load_flexibility_mcp_server.utils.exceptions import ParseError, ScheduleError
from load_flexibility_mcp_server.utils.schedule_table import (
    ScheduleTable,
    load,
    read_column_names,
    save,
)


def write_csv(tmp_path, text, name="schedule.csv"):
    path = tmp_path / name
    path.write_text(text)
    return path


class TestLoad:
    def test_column_order_is_load_order(self, tmp_path):
        path = write_csv(tmp_path, "zeta,alpha,mid\n1,2,3\n4,5,6\n")
        table = load(path)
        assert table.column_names == ["zeta", "alpha", "mid"]
        np.testing.assert_array_equal(table["alpha"], [2.0, 5.0])

    def test_trailing_blanks_dropped_per_column(self, tmp_path):
        path = write_csv(tmp_path, "a,b\n1,2\n3,\n5,\n")
        table = load(path)
        np.testing.assert_array_equal(table["a"], [1.0, 3.0, 5.0])
        np.testing.assert_array_equal(table["b"], [2.0])
        assert table.n_rows == 3
        assert not table.is_rectangular()

    def test_trailing_delimiter_ignored(self, tmp_path):
        path = write_csv(tmp_path, "a,b,\n1,2,\n3,4,\n")
        assert load(path).column_names == ["a", "b"]

    def test_non_numeric_cell_names_column(self, tmp_path):
        path = write_csv(tmp_path, "a,b\n1,2\n3,oops\n")
        with pytest.raises(ParseError, match="column 'b'") as excinfo:
            load(path)
        assert excinfo.value.column == "b"

    def test_interior_blank_rejected(self, tmp_path):
        path = write_csv(tmp_path, "a,b\n1,2\n,4\n5,6\n")
        with pytest.raises(ParseError) as excinfo:
            load(path)
        assert excinfo.value.column == "a"

    def test_duplicate_column_rejected(self, tmp_path):
        path = write_csv(tmp_path, "a,a\n1,2\n")
        with pytest.raises(ParseError, match="Duplicate"):
            load(path)

    def test_unnamed_column_with_data_rejected(self, tmp_path):
        path = write_csv(tmp_path, "a,\n1,2\n")
        with pytest.raises(ParseError, match="no name"):
            load(path)

    def test_empty_file(self, tmp_path):
        path = write_csv(tmp_path, "")
        with pytest.raises(ParseError):
            load(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load(tmp_path / "nope.csv")

    def test_header_only(self, tmp_path):
        path = write_csv(tmp_path, "a,b\n")
        table = load(path)
        assert table.column_names == ["a", "b"]
        assert table.n_rows == 0

    def test_read_column_names(self, schedule_csv):
        assert read_column_names(schedule_csv) == ["dishwasher", "clothes_washer", "refrigerator"]


class TestSave:
    def test_round_trip_untouched(self, tmp_path):
        text = "b,a\n0.1,1e-05\n0.3333333333333333,2\n0,7.25\n"
        path = write_csv(tmp_path, text)
        original = load(path)

        save(original, path)
        reloaded = load(path)

        assert reloaded.column_names == ["b", "a"]
        for name in original:
            np.testing.assert_array_equal(reloaded[name], original[name])

    def test_full_precision_values_exact(self, tmp_path):
        rng = np.random.default_rng(7)
        cells = [repr(float(v)) for v in rng.random(500)]
        text = "load\n" + "\n".join(cells) + "\n"
        path = write_csv(tmp_path, text)

        table = load(path)
        assert table["load"].tolist() == [float(c) for c in cells]

        save(table, path)
        assert load(path)["load"].tolist() == [float(c) for c in cells]

    def test_atomic_keeps_file_mode(self, tmp_path):
        path = write_csv(tmp_path, "a\n1\n")
        os.chmod(path, 0o644)

        save(load(path), path)
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o644

    def test_atomic_new_file_uses_umask(self, tmp_path):
        umask = os.umask(0o022)
        try:
            path = save(ScheduleTable({"a": [1.0]}), tmp_path / "new.csv")
        finally:
            os.umask(umask)
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o644

    def test_short_columns_written_blank(self, tmp_path):
        table = ScheduleTable({"long": [1, 2, 3], "short": [9]})
        path = save(table, tmp_path / "out.csv")

        lines = open(path).read().splitlines()
        assert lines[0] == "long,short"
        assert len(lines) == 4
        assert lines[2].endswith(",")

        reloaded = load(path)
        np.testing.assert_array_equal(reloaded["short"], [9.0])
        assert reloaded.n_rows == 3

    def test_defaults_to_loaded_path(self, schedule_csv):
        table = load(schedule_csv)
        table["refrigerator"][0] = 2.0
        assert save(table) == str(schedule_csv)
        assert load(schedule_csv)["refrigerator"][0] == 2.0

    def test_atomic_leaves_no_temp_files(self, tmp_path):
        save(ScheduleTable({"a": [1.0]}), tmp_path / "out.csv")
        assert sorted(os.listdir(tmp_path)) == ["out.csv"]

    def test_non_atomic(self, tmp_path):
        path = save(ScheduleTable({"a": [1.0, 2.0]}), tmp_path / "out.csv", atomic=False)
        np.testing.assert_array_equal(load(path)["a"], [1.0, 2.0])

    def test_no_path(self):
        with pytest.raises(ValueError):
            save(ScheduleTable({"a": [1.0]}))


class TestScheduleTable:
    def test_owns_its_arrays(self):
        source = np.zeros(3)
        table = ScheduleTable({"a": source})
        source[0] = 5
        assert table["a"][0] == 0

    def test_infer_steps_per_day(self):
        assert ScheduleTable({"a": np.zeros(8760)}).infer_steps_per_day(365) == 24
        assert ScheduleTable({"a": np.zeros(365 * 96)}).infer_steps_per_day(365) == 96

    def test_infer_steps_per_day_uneven(self):
        with pytest.raises(ScheduleError):
            ScheduleTable({"a": np.zeros(100)}).infer_steps_per_day(365)

    def test_copy_is_independent(self, week_table):
        copied = week_table.copy()
        copied["dishwasher"][:] = 0
        assert week_table["dishwasher"].sum() > 0

    def test_summary(self, week_table):
        summary = week_table.summary()
        assert summary["dishwasher"]["rows"] == 168
        assert summary["dishwasher"]["total"] == pytest.approx(0.5 * 3 * 7)
        assert summary["dishwasher"]["nonzero_steps"] == 21
