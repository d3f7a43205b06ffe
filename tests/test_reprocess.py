"""
Tests for bulk reprocessing of stored intervals.
"""

import datetime
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# ruff: noqa: E402
from timetrack.core.aggregation import day_totals
from timetrack.core.exceptions import RangeError
from timetrack.core.overrides import apply_override
from timetrack.core.recalculation import recalculate
from timetrack.core.reprocess import reprocess
from timetrack.database.database import SegmentCategory, WorkInterval

MONDAY = datetime.date(2026, 10, 12)


@pytest.fixture
def week_of_shifts(make_interval):
    """Three closed weekday shifts without segments and one open interval."""
    return [
        make_interval("2026-10-12 08:00", "2026-10-12 16:00"),
        make_interval("2026-10-13 20:00", "2026-10-14 04:00"),
        make_interval("2026-10-15 08:00", "2026-10-15 16:00"),
        make_interval("2026-10-16 08:00", None),
    ]


class TestMissingSegments:
    def test_generates_segments_for_closed_intervals(self, test_db, week_of_shifts, rules):
        result = reprocess(test_db, "missing_segments", rules=rules, backoff_seconds=0)

        assert result.success
        assert result.processed == 3
        assert result.generated == 4
        assert result.errors == []
        assert test_db.get(WorkInterval, week_of_shifts[3].id).segments == []

    def test_second_run_finds_nothing(self, test_db, week_of_shifts, rules):
        reprocess(test_db, rules=rules, backoff_seconds=0)

        result = reprocess(test_db, rules=rules, backoff_seconds=0)

        assert result.processed == 0
        assert result.success

    def test_small_batches_cover_everything(self, test_db, week_of_shifts, rules):
        result = reprocess(test_db, "missing_segments", batch_size=2, rules=rules, backoff_seconds=0)

        assert result.processed == 3
        for interval in week_of_shifts[:3]:
            assert test_db.get(WorkInterval, interval.id).segments


class TestOtherModes:
    def test_needs_reprocessing_flag(self, test_db, week_of_shifts, rules):
        reprocess(test_db, rules=rules, backoff_seconds=0)
        flagged = test_db.get(WorkInterval, week_of_shifts[0].id)
        flagged.needs_reprocessing = True
        test_db.commit()

        result = reprocess(test_db, "needs_reprocessing", rules=rules, backoff_seconds=0)

        assert result.processed == 1
        assert test_db.get(WorkInterval, week_of_shifts[0].id).needs_reprocessing is False

    def test_date_range(self, test_db, week_of_shifts, rules):
        result = reprocess(
            test_db,
            "date_range",
            start_date=datetime.date(2026, 10, 13),
            end_date=datetime.date(2026, 10, 15),
            rules=rules,
            backoff_seconds=0,
        )

        assert result.processed == 2

    def test_reprocess_keeps_manual_overrides(self, test_db, week_of_shifts, employee, team_lead, rules):
        recalculate(test_db, week_of_shifts[0].id, rules=rules)
        apply_override(test_db, employee.id, MONDAY, SegmentCategory.REGULAR, 7.0, actor=team_lead, rules=rules)

        reprocess(test_db, "date_range", start_date=MONDAY, end_date=MONDAY, rules=rules, backoff_seconds=0)

        day = day_totals(test_db, employee.id, MONDAY, rules)
        assert day.source == "override"
        assert day.total == 7.0


class TestErrors:
    def test_failures_are_reported_per_interval(self, test_db, week_of_shifts, flaky_service, rules):
        result = reprocess(test_db, service=flaky_service(100), rules=rules, backoff_seconds=0)

        assert not result.success
        assert result.processed == 3
        assert result.generated == 0
        assert sorted(e.interval_id for e in result.errors) == sorted(i.id for i in week_of_shifts[:3])

    def test_date_range_needs_both_dates(self, test_db, rules):
        with pytest.raises(RangeError):
            reprocess(test_db, "date_range", start_date=MONDAY, rules=rules)

    def test_inverted_date_range(self, test_db, rules):
        with pytest.raises(RangeError):
            reprocess(
                test_db,
                "date_range",
                start_date=MONDAY,
                end_date=MONDAY - datetime.timedelta(days=1),
                rules=rules,
            )

    def test_unknown_mode(self, test_db, rules):
        with pytest.raises(ValueError):
            reprocess(test_db, "everything", rules=rules)

    def test_invalid_batch_size(self, test_db, rules):
        with pytest.raises(ValueError):
            reprocess(test_db, batch_size=0, rules=rules)
