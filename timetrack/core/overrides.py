"""
Override reconciliation: supervisor entered day totals that replace computed segments.
"""

import datetime
import logging

from sqlalchemy.orm import Session

from timetrack.core.aggregation import (
    available_hours,
    contributing_intervals,
    day_totals,
    is_auto_override,
    is_manual_override,
)
from timetrack.core.audit import record_audit
from timetrack.core.config import SPAN_TOLERANCE_HOURS
from timetrack.core.constants import (
    AUTO_OVERRIDE_MARKER,
    HOURS_PER_DAY,
    MANUAL_OVERRIDE_MARKER,
    RESOURCE_DAILY_OVERRIDE,
)
from timetrack.core.exceptions import NotFoundError, RangeError, ValidationWarning
from timetrack.core.models import CalendarRules, DayTotals, OverrideResult, empty_hours
from timetrack.core.policy import can_override_beyond_span
from timetrack.core.segments import SPECIAL_DUTY_CATEGORIES
from timetrack.core.time_utils import day_bounds, hours_between, parse_shift_hint, round_hours, utc_now
from timetrack.database.database import DailyOverride, Employee, SegmentCategory, WorkInterval

logger = logging.getLogger(__name__)


def get_override(session: Session, employee_id: int, work_date: datetime.date) -> DailyOverride | None:
    return (
        session.query(DailyOverride)
        .filter(DailyOverride.employee_id == employee_id, DailyOverride.work_date == work_date)
        .first()
    )


def apply_override(
    session: Session,
    employee_id: int,
    work_date: datetime.date,
    category: SegmentCategory | str,
    new_value: float,
    actor: Employee | None = None,
    rules: CalendarRules | None = None,
) -> OverrideResult:
    """
    Set one category of an employee's day to a manual value.

    The other categories keep what the day currently shows (an earlier manual
    override, or the computed segments). The resulting sum is checked against
    the clocked span of the day plus 3 minutes: privileged actors get a
    warning and the save proceeds, everybody else is rejected.

    Raises:
        RangeError: Unknown category or new_value outside [0, 24]
        NotFoundError: No closed interval for the employee on that day
        ValidationWarning: Span exceeded by a non-privileged actor
    """
    try:
        category = SegmentCategory(category)
    except ValueError as e:
        raise RangeError(f"Unknown category: {category}") from e
    if not 0 <= new_value <= HOURS_PER_DAY:
        raise RangeError(f"Value {new_value} for {category.value} outside [0, {HOURS_PER_DAY}]")

    intervals = [i for i in contributing_intervals(session, employee_id, work_date, rules) if not i.is_open]
    if not intervals:
        raise NotFoundError("WorkInterval", f"employee {employee_id} on {work_date.isoformat()}")

    span = available_hours(intervals)
    current = day_totals(session, employee_id, work_date, rules)
    old_value = current.hours[category]

    new_hours = dict(current.hours)
    new_hours[category] = round_hours(new_value)
    total = round_hours(sum(new_hours.values()))

    warning = None
    if total > span + SPAN_TOLERANCE_HOURS:
        exceeded = ValidationWarning(total, span)
        if not can_override_beyond_span(actor.role if actor else None):
            logger.warning(
                "Override rejected for employee %s on %s: %s",
                employee_id,
                work_date,
                exceeded.message,
            )
            raise exceeded
        warning = exceeded.message
        logger.warning("Override saved beyond span for employee %s on %s: %s", employee_id, work_date, warning)

    override = get_override(session, employee_id, work_date)
    if override is None:
        override = DailyOverride(employee_id=employee_id, work_date=work_date)
        session.add(override)

    for cat, hours in new_hours.items():
        override.set_hours(cat, hours)

    if not is_manual_override(override):
        override.notes = f"{MANUAL_OVERRIDE_MARKER} Edited manually at {utc_now().isoformat()}"

    record_audit(
        session,
        actor.id if actor else None,
        "override_update",
        RESOURCE_DAILY_OVERRIDE,
        f"{employee_id}:{work_date.isoformat()}",
        {
            "employee_id": employee_id,
            "work_date": work_date.isoformat(),
            "category": category.value,
            "old_value": old_value,
            "new_value": new_hours[category],
            "warning": warning,
        },
    )
    session.commit()

    day = day_totals(session, employee_id, work_date, rules)
    return OverrideResult(
        employee_id=employee_id,
        work_date=work_date,
        hours=day.hours,
        total=day.total,
        available_hours=span,
        is_manual=True,
        notes=override.notes,
        warning=warning,
        day=day,
    )


def delete_override(
    session: Session,
    employee_id: int,
    work_date: datetime.date,
    actor: Employee | None = None,
    rules: CalendarRules | None = None,
) -> DayTotals:
    """Remove an override so the day falls back to computed segments."""
    override = get_override(session, employee_id, work_date)
    if override is None:
        raise NotFoundError("DailyOverride", f"employee {employee_id} on {work_date.isoformat()}")

    old_values = {c.value: override.get_hours(c) for c in SegmentCategory}
    session.delete(override)
    record_audit(
        session,
        actor.id if actor else None,
        "override_delete",
        RESOURCE_DAILY_OVERRIDE,
        f"{employee_id}:{work_date.isoformat()}",
        {"employee_id": employee_id, "work_date": work_date.isoformat(), "old_value": old_values},
    )
    session.commit()

    return day_totals(session, employee_id, work_date, rules)


def purge_manual_overrides(session: Session, employee_id: int, dates: set[datetime.date]) -> list[datetime.date]:
    """
    Delete manual overrides on the given days. Used when interval boundaries
    change and the overrides no longer describe the clocked time.

    Does not commit.
    """
    if not dates:
        return []

    overrides = (
        session.query(DailyOverride)
        .filter(DailyOverride.employee_id == employee_id, DailyOverride.work_date.in_(dates))
        .all()
    )

    purged = []
    for override in overrides:
        if is_manual_override(override):
            purged.append(override.work_date)
            session.delete(override)

    if purged:
        logger.info("Purged stale overrides for employee %s on %s", employee_id, sorted(purged))
    return sorted(purged)


def refresh_fallback_override(session: Session, employee_id: int, work_date: datetime.date) -> DailyOverride | None:
    """
    Rebuild the auto-generated fallback override of a day.

    The fallback carries the full hours of every closed interval clocked in on
    that day that has no segments, in its special-duty category or as regular
    time. Without such intervals the fallback is removed. Manual overrides are
    left alone.

    Does not commit.
    """
    session.flush()
    override = get_override(session, employee_id, work_date)
    if is_manual_override(override):
        return override

    day_start, day_end = day_bounds(work_date)
    undecomposed = (
        session.query(WorkInterval)
        .filter(
            WorkInterval.employee_id == employee_id,
            WorkInterval.clock_in_time >= day_start,
            WorkInterval.clock_in_time < day_end,
            WorkInterval.clock_out_time.isnot(None),
            ~WorkInterval.segments.any(),
        )
        .order_by(WorkInterval.clock_in_time)
        .all()
    )

    if not undecomposed:
        if override is not None and (is_auto_override(override) or not override.notes):
            session.delete(override)
        return None

    hours = empty_hours()
    for interval in undecomposed:
        category = SPECIAL_DUTY_CATEGORIES.get(parse_shift_hint(interval.notes), SegmentCategory.REGULAR)
        hours[category] += hours_between(interval.clock_in_time, interval.clock_out_time)

    if override is None:
        override = DailyOverride(employee_id=employee_id, work_date=work_date)
        session.add(override)

    for category, value in hours.items():
        override.set_hours(category, round_hours(value))
    override.notes = f"{AUTO_OVERRIDE_MARKER} Fallback for intervals {', '.join(str(i.id) for i in undecomposed)}"

    logger.warning(
        "Fallback override written for employee %s on %s (%d undecomposed interval(s))",
        employee_id,
        work_date,
        len(undecomposed),
    )
    return override
