"""
Tests for aggregation of segments and overrides into daily and range totals.
"""

import datetime
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# ruff: noqa: E402
from timetrack.core import approval
from timetrack.core.aggregation import aggregate, contributing_intervals, day_totals, payroll_totals
from timetrack.core.exceptions import RangeError
from timetrack.core.overrides import apply_override
from timetrack.core.recalculation import recalculate
from timetrack.database.database import SegmentCategory

MONDAY = datetime.date(2026, 10, 12)
SATURDAY = datetime.date(2026, 10, 17)
SUNDAY = datetime.date(2026, 10, 18)


@pytest.fixture
def weekend(test_db, make_interval, rules):
    """Saturday 07:00-18:00 and Sunday 00:00-02:00, both with segments."""
    saturday = make_interval("2026-10-17 07:00", "2026-10-17 18:00")
    sunday_night = make_interval("2026-10-18 00:00", "2026-10-18 02:00")
    recalculate(test_db, saturday.id, rules=rules)
    recalculate(test_db, sunday_night.id, rules=rules)
    return saturday, sunday_night


class TestWeekendAttribution:
    def test_sunday_early_morning_folds_into_saturday(self, test_db, employee, weekend, rules):
        report = aggregate(test_db, employee.id, SATURDAY, SUNDAY, rules=rules)

        assert [d.work_date for d in report.days] == [SATURDAY]
        assert report.days[0].hours[SegmentCategory.SATURDAY] == 13.0
        assert report.totals[SegmentCategory.SATURDAY] == 13.0
        assert report.totals[SegmentCategory.SUNDAY] == 0.0
        assert report.grand_total == 13.0

    def test_sunday_alone_is_empty(self, test_db, employee, weekend, rules):
        day = day_totals(test_db, employee.id, SUNDAY, rules)

        assert day.source == "empty"
        assert day.total == 0.0

    def test_saturday_contributors(self, test_db, employee, weekend, rules):
        saturday, sunday_night = weekend

        intervals = contributing_intervals(test_db, employee.id, SATURDAY, rules)

        assert [i.id for i in intervals] == [saturday.id, sunday_night.id]

    def test_range_ending_saturday_still_sees_sunday_morning(self, test_db, employee, weekend, rules):
        report = aggregate(test_db, employee.id, SATURDAY, SATURDAY, rules=rules)

        assert report.grand_total == 13.0


class TestRangeTotals:
    def test_totals_cover_every_clocked_hour(self, test_db, make_interval, employee, rules):
        """Without overrides the range total equals the sum of interval durations."""
        shifts = [
            ("2026-10-12 08:00", "2026-10-12 16:00"),
            ("2026-10-13 20:00", "2026-10-14 04:30"),
            ("2026-10-16 22:00", "2026-10-17 08:15"),
            ("2026-10-17 20:00", "2026-10-18 10:00"),
        ]
        for clock_in, clock_out in shifts:
            recalculate(test_db, make_interval(clock_in, clock_out).id, rules=rules)

        report = aggregate(test_db, employee.id, MONDAY, SUNDAY, rules=rules)

        assert report.grand_total == 8.0 + 8.5 + 10.25 + 14.0
        assert report.totals[SegmentCategory.NIGHT] == 6.5 + 8.0
        assert report.totals[SegmentCategory.SATURDAY] == 2.25 + 10.0
        assert report.totals[SegmentCategory.SUNDAY] == 4.0

    def test_override_replaces_segments_for_its_day(self, test_db, make_interval, employee, team_lead, rules):
        recalculate(test_db, make_interval("2026-10-12 08:00", "2026-10-12 16:00").id, rules=rules)
        recalculate(test_db, make_interval("2026-10-13 08:00", "2026-10-13 16:00").id, rules=rules)
        apply_override(test_db, employee.id, MONDAY, SegmentCategory.REGULAR, 6.0, actor=team_lead, rules=rules)

        report = aggregate(test_db, employee.id, MONDAY, MONDAY + datetime.timedelta(days=1), rules=rules)

        assert [d.source for d in report.days] == ["override", "segments"]
        assert report.grand_total == 14.0

    def test_open_intervals_contribute_nothing(self, test_db, make_interval, employee, rules):
        make_interval("2026-10-12 08:00", None)

        report = aggregate(test_db, employee.id, MONDAY, MONDAY, rules=rules)

        assert report.days == []
        assert report.grand_total == 0.0

    def test_inverted_range(self, test_db, employee, rules):
        with pytest.raises(RangeError):
            aggregate(test_db, employee.id, SUNDAY, MONDAY, rules=rules)


class TestPayrollView:
    def test_only_fully_approved_days_count(self, test_db, make_interval, employee, team_lead, rules):
        monday = make_interval("2026-10-12 08:00", "2026-10-12 16:00")
        tuesday = make_interval("2026-10-13 08:00", "2026-10-13 16:00")
        for interval in (monday, tuesday):
            recalculate(test_db, interval.id, rules=rules)
        approval.approve(test_db, monday.id, actor=team_lead, rules=rules)

        report = payroll_totals(test_db, employee.id, MONDAY, MONDAY + datetime.timedelta(days=1), rules=rules)

        assert report.approved_only
        assert [d.work_date for d in report.days] == [MONDAY]
        assert report.grand_total == 8.0

    def test_weekend_needs_sunday_interval_approved(self, test_db, employee, team_lead, weekend, rules):
        saturday, sunday_night = weekend
        approval.approve(test_db, saturday.id, actor=team_lead, rules=rules)

        assert payroll_totals(test_db, employee.id, SATURDAY, SUNDAY, rules=rules).grand_total == 0.0

        approval.approve(test_db, sunday_night.id, actor=team_lead, rules=rules)

        assert payroll_totals(test_db, employee.id, SATURDAY, SUNDAY, rules=rules).grand_total == 13.0
