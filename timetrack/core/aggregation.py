"""
Aggregation of segments and daily overrides into category totals.

Every view in the application goes through _build_days so day attribution
(weekend anchoring) and override precedence are applied the same way
everywhere.
"""

import datetime
import logging
from collections import defaultdict

from sqlalchemy.orm import Session

from timetrack.core.constants import AUTO_OVERRIDE_MARKER, MANUAL_OVERRIDE_MARKER
from timetrack.core.exceptions import RangeError
from timetrack.core.models import AggregateReport, CalendarRules, DayTotals, empty_hours
from timetrack.core.segments import anchored_work_date
from timetrack.core.storage import get_calendar_rules
from timetrack.core.time_utils import hours_between, round_hours
from timetrack.database.database import (
    ApprovalStatus,
    DailyOverride,
    Segment,
    SegmentCategory,
    WorkInterval,
)

logger = logging.getLogger(__name__)

# An interval is at most 24h long, so its segments can be anchored at most
# one day before or after its clock-in date.
_LOOKAROUND = datetime.timedelta(days=1)


def is_manual_override(override: DailyOverride | None) -> bool:
    return override is not None and (override.notes or "").startswith(MANUAL_OVERRIDE_MARKER)


def is_auto_override(override: DailyOverride | None) -> bool:
    return override is not None and (override.notes or "").startswith(AUTO_OVERRIDE_MARKER)


def override_hours(override: DailyOverride) -> dict[SegmentCategory, float]:
    return {category: round_hours(override.get_hours(category)) for category in SegmentCategory}


def aggregate(
    session: Session,
    employee_id: int,
    start_date: datetime.date,
    end_date: datetime.date,
    approved_only: bool = False,
    rules: CalendarRules | None = None,
) -> AggregateReport:
    """
    Category totals of an employee over an inclusive date range.

    Per day: a manual override wins; otherwise computed segments are summed,
    plus the auto-generated fallback for intervals that could not be
    decomposed. Days without any data are left out.

    Args:
        approved_only: Payroll view. Days that are not fully approved are left out.

    Raises:
        RangeError: end_date before start_date
    """
    if end_date < start_date:
        raise RangeError(f"End date {end_date} is before start date {start_date}")

    rules = rules or get_calendar_rules()
    days = _build_days(session, employee_id, start_date, end_date, rules)

    report = AggregateReport(
        employee_id=employee_id,
        start_date=start_date,
        end_date=end_date,
        approved_only=approved_only,
    )
    totals = empty_hours()

    for day in days.values():
        if day.source == "empty":
            continue
        if approved_only and not day.fully_approved:
            continue
        report.days.append(day)
        for category, hours in day.hours.items():
            totals[category] += hours

    report.totals = {category: round_hours(hours) for category, hours in totals.items()}
    report.grand_total = round_hours(sum(report.totals.values()))
    return report


def payroll_totals(
    session: Session,
    employee_id: int,
    start_date: datetime.date,
    end_date: datetime.date,
    rules: CalendarRules | None = None,
) -> AggregateReport:
    """Totals visible to payroll: only fully approved days count."""
    return aggregate(session, employee_id, start_date, end_date, approved_only=True, rules=rules)


def day_totals(
    session: Session,
    employee_id: int,
    work_date: datetime.date,
    rules: CalendarRules | None = None,
) -> DayTotals:
    """Totals of a single day, including empty days."""
    rules = rules or get_calendar_rules()
    return _build_days(session, employee_id, work_date, work_date, rules)[work_date]


def day_status(
    session: Session,
    employee_id: int,
    work_date: datetime.date,
    rules: CalendarRules | None = None,
) -> ApprovalStatus:
    """
    Approval status of an employee's day.

    A single pending interval demotes the whole day.
    """
    intervals = contributing_intervals(session, employee_id, work_date, rules)
    if intervals and all(i.approval_status == ApprovalStatus.APPROVED for i in intervals):
        return ApprovalStatus.APPROVED
    return ApprovalStatus.PENDING_REVIEW


def contributing_intervals(
    session: Session,
    employee_id: int,
    work_date: datetime.date,
    rules: CalendarRules | None = None,
) -> list[WorkInterval]:
    """Intervals clocked in on the day or with segments attributed to it."""
    rules = rules or get_calendar_rules()
    _, contributing = _collect(session, employee_id, work_date, work_date, rules)
    return sorted(contributing.get(work_date, ()), key=lambda i: i.clock_in_time)


def available_hours(intervals: list[WorkInterval]) -> float:
    """Clocked span of closed intervals."""
    return round_hours(
        sum(hours_between(i.clock_in_time, i.clock_out_time) for i in intervals if i.clock_out_time is not None)
    )


# === Private helpers ===


def _collect(
    session: Session,
    employee_id: int,
    start_date: datetime.date,
    end_date: datetime.date,
    rules: CalendarRules,
) -> tuple[dict[datetime.date, dict[SegmentCategory, float]], dict[datetime.date, set[WorkInterval]]]:
    """Segment hours and contributing intervals per anchored day."""
    window_start = datetime.datetime.combine(start_date - _LOOKAROUND, datetime.time(0, 0))
    window_end = datetime.datetime.combine(end_date + _LOOKAROUND * 2, datetime.time(0, 0))

    intervals = (
        session.query(WorkInterval)
        .filter(
            WorkInterval.employee_id == employee_id,
            WorkInterval.clock_in_time >= window_start,
            WorkInterval.clock_in_time < window_end,
        )
        .all()
    )

    segment_hours: dict[datetime.date, dict[SegmentCategory, float]] = defaultdict(empty_hours)
    contributing: dict[datetime.date, set[WorkInterval]] = defaultdict(set)

    for interval in intervals:
        clock_in_date = interval.clock_in_time.date()
        if start_date <= clock_in_date <= end_date:
            contributing[clock_in_date].add(interval)

        for segment in interval.segments:
            work_date = anchored_work_date(segment.segment_type, segment.start_time, rules)
            if not start_date <= work_date <= end_date:
                continue
            segment_hours[work_date][segment.segment_type] += segment.hours_decimal
            contributing[work_date].add(interval)

    return segment_hours, contributing


def _build_days(
    session: Session,
    employee_id: int,
    start_date: datetime.date,
    end_date: datetime.date,
    rules: CalendarRules,
) -> dict[datetime.date, DayTotals]:
    segment_hours, contributing = _collect(session, employee_id, start_date, end_date, rules)

    overrides = {
        o.work_date: o
        for o in session.query(DailyOverride)
        .filter(
            DailyOverride.employee_id == employee_id,
            DailyOverride.work_date >= start_date,
            DailyOverride.work_date <= end_date,
        )
        .all()
    }

    days: dict[datetime.date, DayTotals] = {}
    current = start_date
    while current <= end_date:
        override = overrides.get(current)
        intervals = contributing.get(current, set())

        if is_manual_override(override):
            hours, source = override_hours(override), "override"
        elif is_auto_override(override):
            # fallback covers only the intervals that have no segments
            fallback = override_hours(override)
            computed = segment_hours.get(current, empty_hours())
            hours = {c: round_hours(fallback[c] + computed[c]) for c in SegmentCategory}
            source = "fallback"
        elif current in segment_hours:
            hours, source = {c: round_hours(h) for c, h in segment_hours[current].items()}, "segments"
        else:
            hours, source = empty_hours(), "empty"

        days[current] = DayTotals(
            work_date=current,
            hours=hours,
            total=round_hours(sum(hours.values())),
            source=source,
            fully_approved=bool(intervals)
            and all(i.approval_status == ApprovalStatus.APPROVED for i in intervals),
        )
        current += datetime.timedelta(days=1)

    return days
