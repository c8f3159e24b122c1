"""
Tests for the peak-window shifter.

Covers validation boundaries, energy conservation, stacking prevention,
weekend exclusion, missing columns and out-of-range destination windows.
"""

import logging
from datetime import date

import numpy as np
import pytest

from load_flexibility_mcp_server.utils.exceptions import InvalidWindow, WindowTooLong
from load_flexibility_mcp_server.utils.peak_shift import (
    OUT_OF_RANGE,
    SHIFTED,
    STACKED,
    ShiftSpec,
    day_peak_shift,
    enabled_columns,
    shift,
)
from load_flexibility_mcp_server.utils.schedule_table import ScheduleTable

from conftest import STEPS_PER_DAY, peak_load_week

MONDAY = date(2009, 1, 5)
THURSDAY = date(2009, 1, 1)


def spec(begin=15, end=18, delay=0, columns=("dishwasher", "clothes_washer")):
    return ShiftSpec(peak_begin=begin, peak_end=end, delay_hours=delay, enabled_columns=frozenset(columns))


class TestShiftSpecValidation:
    def test_typical_window_valid(self):
        spec(15, 18, 0).validate()

    def test_empty_window(self):
        with pytest.raises(InvalidWindow, match="at least one hour long"):
            spec(15, 15, 0).validate()

    def test_reversed_window(self):
        with pytest.raises(InvalidWindow):
            spec(18, 15, 0).validate()

    def test_too_long(self):
        with pytest.raises(WindowTooLong, match="no longer than 12 hours"):
            spec(10, 20, 3).validate()

    def test_exactly_twelve_hours(self):
        spec(10, 20, 2).validate()

    def test_negative_delay(self):
        with pytest.raises(InvalidWindow):
            spec(15, 18, -1).validate()

    def test_from_arguments(self):
        built = ShiftSpec.from_arguments("15 - 18", 1, "clothes_dryer, dishwasher")
        assert (built.peak_begin, built.peak_end, built.delay_hours) == (15, 18, 1)
        assert built.enabled_columns == {"clothes_dryer", "dishwasher"}
        assert str(built.destination) == "19 - 22"

    def test_validation_happens_before_mutation(self, week_table):
        before = week_table.copy()
        with pytest.raises(WindowTooLong):
            shift(week_table, spec(10, 20, 3), total_days=7, first_day=MONDAY)
        for name in week_table:
            np.testing.assert_array_equal(week_table[name], before[name])


class TestEnabledColumns:
    def test_comma_separated(self):
        assert enabled_columns(" a, b ,,c") == {"a", "b", "c"}

    def test_boolean_map(self):
        assert enabled_columns({"a": True, "b": False}) == {"a"}

    def test_iterable(self):
        assert enabled_columns(["a", "b"]) == {"a", "b"}

    def test_none(self):
        assert enabled_columns(None) == frozenset()


class TestDayPeakShift:
    def test_moves_values(self):
        values = np.array([0, 2, 3, 0, 0, 0], dtype=float)
        assert day_peak_shift(values, 1, 3, 3, 5) == SHIFTED
        np.testing.assert_array_equal(values, [0, 0, 0, 2, 3, 0])

    def test_occupied_destination_untouched(self):
        values = np.array([0, 2, 3, 0, 1, 0], dtype=float)
        assert day_peak_shift(values, 1, 3, 3, 5) == STACKED
        np.testing.assert_array_equal(values, [0, 2, 3, 0, 1, 0])

    def test_past_end(self):
        values = np.array([0, 2, 3, 0], dtype=float)
        assert day_peak_shift(values, 1, 3, 3, 5) == OUT_OF_RANGE
        np.testing.assert_array_equal(values, [0, 2, 3, 0])


class TestShift:
    def test_clothes_dryer_scenario(self, dryer_table):
        result = shift(dryer_table, spec(15, 18, 1, ["clothes_dryer"]), total_days=365,
                       first_day=THURSDAY, steps_per_day=96)
        values = dryer_table["clothes_dryer"]

        # 16:00 sits one hour into the peak, so it lands one hour into 19:00 - 22:00
        assert values[16 * 4] == 0.0
        assert values[20 * 4] == 1.0
        assert values.sum() == 1.0

        report = result.reports["clothes_dryer"]
        assert report.shifted_days == 261
        assert report.weekend_days == 104
        assert report.unshifted_days == 0
        assert report.energy_moved == pytest.approx(1.0)

    def test_steps_per_day_inferred(self, dryer_table):
        result = shift(dryer_table, spec(15, 18, 1, ["clothes_dryer"]), total_days=365, first_day=THURSDAY)
        assert result.steps_per_day == 96

    def test_conservation(self, week_table):
        rng = np.random.default_rng(7)
        values = np.zeros(7 * STEPS_PER_DAY)
        for day in range(7):
            values[day * STEPS_PER_DAY + 15:day * STEPS_PER_DAY + 18] = rng.uniform(0.1, 2.0, 3)
        table = ScheduleTable({"dishwasher": values})
        before = values.copy()

        shift(table, spec(15, 18, 2, ["dishwasher"]), total_days=7, first_day=MONDAY)
        after = table["dishwasher"]

        for day in range(5):
            offset = day * STEPS_PER_DAY
            assert after[offset + 15:offset + 18].sum() == 0
            np.testing.assert_array_equal(after[offset + 20:offset + 23], before[offset + 15:offset + 18])
        assert after.sum() == pytest.approx(before.sum())

    def test_second_pass_is_all_stacking(self, week_table):
        first = shift(week_table, spec(), total_days=7, first_day=MONDAY)
        after_first = week_table.copy()
        second = shift(week_table, spec(), total_days=7, first_day=MONDAY)

        assert first.reports["dishwasher"].shifted_days == 5
        assert second.reports["dishwasher"].shifted_days == 0
        assert second.reports["dishwasher"].unshifted_days == 5
        for name in week_table:
            np.testing.assert_array_equal(week_table[name], after_first[name])

    def test_weekend_days_skipped_not_counted(self, week_table):
        result = shift(week_table, spec(), total_days=7, first_day=MONDAY)
        report = result.reports["dishwasher"]

        assert (report.shifted_days, report.unshifted_days, report.weekend_days) == (5, 0, 2)
        values = week_table["dishwasher"]
        for day in (5, 6):
            offset = day * STEPS_PER_DAY
            np.testing.assert_array_equal(values[offset + 15:offset + 18], [0.5, 0.5, 0.5])
            assert values[offset + 18:offset + 21].sum() == 0

    def test_adjacent_destination_checked(self):
        values = peak_load_week(1.0)
        values[18] = 0.2  # Monday 18:00 already used
        table = ScheduleTable({"dishwasher": values})

        result = shift(table, spec(15, 18, 0, ["dishwasher"]), total_days=7, first_day=MONDAY)

        assert result.reports["dishwasher"].unshifted_days == 1
        np.testing.assert_array_equal(table["dishwasher"][15:19], [1, 1, 1, 0.2])
        assert result.stacking_messages() == [
            "To prevent stacking, 1 days were not shifted for the 'dishwasher' schedule."
        ]

    def test_stacking_logged(self, caplog):
        values = peak_load_week(1.0)
        values[19] = 1.0
        table = ScheduleTable({"dishwasher": values})

        with caplog.at_level(logging.INFO, logger="load_flexibility_mcp_server.utils.peak_shift"):
            shift(table, spec(15, 18, 0, ["dishwasher"]), total_days=7, first_day=MONDAY)

        assert "1 days were not shifted for the 'dishwasher' schedule" in caplog.text

    def test_unselected_and_missing_columns(self, week_table):
        before = week_table["refrigerator"].copy()
        result = shift(week_table, spec(columns=["dishwasher", "oven"]), total_days=7, first_day=MONDAY)

        np.testing.assert_array_equal(week_table["refrigerator"], before)
        assert "clothes_washer" not in result.reports
        assert result.missing_columns == ["oven"]
        assert week_table["clothes_washer"][15] == 0.25

    def test_destination_past_end_of_table(self):
        values = np.zeros(2 * STEPS_PER_DAY)
        values[20:24] = 1.0
        values[44:48] = 1.0
        table = ScheduleTable({"dishwasher": values})

        result = shift(table, spec(20, 24, 2, ["dishwasher"]), total_days=2, first_day=MONDAY)
        report = result.reports["dishwasher"]

        assert (report.shifted_days, report.out_of_range_days, report.unshifted_days) == (1, 1, 0)
        # Day 0 spills into the early hours of day 1
        np.testing.assert_array_equal(table["dishwasher"][26:30], [1, 1, 1, 1])
        np.testing.assert_array_equal(table["dishwasher"][44:48], [1, 1, 1, 1])
        assert [d.kind for d in result.diagnostics] == ["out_of_range"]

    def test_result_to_dict(self, week_table):
        data = shift(week_table, spec(), total_days=7, first_day=MONDAY).to_dict()
        assert data["spec"]["peak_period"] == "15 - 18"
        assert data["spec"]["destination_period"] == "18 - 21"
        assert data["columns"]["clothes_washer"]["shifted_days"] == 5
        assert data["messages"] == []
