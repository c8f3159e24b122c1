"""
Tests for the eppy-backed host model adapter.

Uses the IDD bundled with eppy and a small IDF written next to a
schedule CSV (see conftest.IDF_TEXT).
"""

import os
from datetime import date

import pytest

from load_flexibility_mcp_server.utils.calendar_rules import build_complex, build_simple, evaluate
from load_flexibility_mcp_server.utils.exceptions import NotFound
from load_flexibility_mcp_server.utils.idf_schedules import IdfScheduleHost

WEDNESDAY = date(2009, 7, 15)
SUNDAY = date(2009, 7, 19)
WINTER_WEDNESDAY = date(2009, 1, 14)


@pytest.fixture
def host(idf_file):
    return IdfScheduleHost.from_file(str(idf_file))


class TestScheduleFiles:
    def test_lists_schedule_file_objects(self, host, schedule_csv):
        refs = host.schedule_files()
        assert [ref.name for ref in refs] == ["Dishwasher Schedule", "Clothes Washer Schedule", "Missing Schedule"]
        assert refs[0].file_path == os.path.abspath(str(schedule_csv))
        assert refs[0].column_name == "dishwasher"
        assert refs[1].column_name == "clothes_washer"

    def test_missing_file_has_no_columns(self, host):
        missing = host.schedule_files()[2]
        assert not missing.exists
        assert missing.column_name is None

    def test_columns_by_existing_file(self, host, schedule_csv):
        assert host.schedule_file_columns() == {
            os.path.abspath(str(schedule_csv)): ["dishwasher", "clothes_washer", "refrigerator"]
        }

    def test_missing_idf(self, tmp_path, eppy_idd):
        with pytest.raises(FileNotFoundError):
            IdfScheduleHost.from_file(str(tmp_path / "absent.idf"))


class TestRuleSchedules:
    def test_names(self, host):
        assert host.rule_schedule_names() == ["Always On", "Dryer Cycle"]

    def test_lookup_is_case_insensitive(self, host):
        assert host.get_rule_schedule("always on").Name == "Always On"

    def test_not_found(self, host):
        with pytest.raises(NotFound):
            host.get_rule_schedule("Nope")


class TestMaterialize:
    def test_writes_schedule_compact(self, host):
        ruleset = build_simple(default=[(24, 1)], name="Loop Setpoint")
        host.materialize(ruleset, type_limits="OnOff")

        obj = host.get_rule_schedule("Loop Setpoint")
        assert obj.Schedule_Type_Limits_Name == "OnOff"
        assert obj.Field_1 == "Through: 12/31"
        assert obj.Field_2 == "For: SummerDesignDay"
        assert host.idf.getobject("SCHEDULETYPELIMITS", "OnOff") is not None

    def test_existing_type_limits_kept(self, host):
        host.materialize(build_simple(name="Fraction Schedule"), type_limits="Fraction")
        assert len(host.idf.idfobjects["SCHEDULETYPELIMITS"]) == 1

    def test_replaces_same_name(self, host):
        host.materialize(build_simple(default=[(24, 0)], name="Always On"))
        assert sorted(host.rule_schedule_names()) == ["Always On", "Dryer Cycle"]
        assert host.get_rule_schedule("Always On").Field_1 == "Through: 12/31"

    def test_refuses_replace(self, host):
        with pytest.raises(ValueError, match="already exists"):
            host.materialize(build_simple(name="Always On"), replace_existing=False)

    def test_save_round_trip(self, host, tmp_path):
        host.materialize(build_simple(name="Saved Schedule"), type_limits="OnOff")
        out = host.save(str(tmp_path / "saved.idf"))

        reloaded = IdfScheduleHost.from_file(out)
        assert "Saved Schedule" in reloaded.rule_schedule_names()


class TestReadRuleSchedule:
    def test_weekday_profile_becomes_default(self, host):
        ruleset = host.read_rule_schedule("dryer cycle")

        assert ruleset.name == "Dryer Cycle"
        assert evaluate(ruleset, WEDNESDAY, 16) == 1
        assert evaluate(ruleset, SUNDAY, 16) == 0
        assert [sorted(rule.days) for rule in ruleset.rules] == [[5, 6]]
        assert ruleset.summer_design.value_at(16) == 0

    def test_all_days(self, host):
        ruleset = host.read_rule_schedule("Always On")
        assert ruleset.rules == ()
        assert evaluate(ruleset, SUNDAY, 3) == 1
        assert evaluate(ruleset, WEDNESDAY, 3, day_type="winter") == 1

    def test_not_found(self, host):
        with pytest.raises(NotFound):
            host.read_rule_schedule("Nope")

    def test_reads_back_materialized(self, host):
        written = build_complex(
            default=[(24, 0)],
            winter_design=[(24, 0.5)],
            rules=[("Summer Weekday", "06/01-09/30", "Weekdays", [(9, 0), (17, 1), (24, 0)])],
            name="Seasonal",
        )
        host.materialize(written, type_limits="Fraction")

        ruleset = host.read_rule_schedule("Seasonal")
        for day in (WEDNESDAY, SUNDAY, WINTER_WEDNESDAY):
            for hour in (8, 12, 20):
                assert evaluate(ruleset, day, hour) == evaluate(written, day, hour)
        assert ruleset.winter_design.value_at(12) == 0.5
        assert host.rule_schedule_type_limits("Seasonal") == "Fraction"
