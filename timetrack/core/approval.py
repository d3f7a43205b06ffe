"""
Approval state machine for work intervals.

    pending_review --approve--> approved
    approved --edit--> pending_review

Single-interval operations raise on failure. Team operations never raise
for a single interval: every outcome is collected in a BatchResult.
"""

import datetime
import logging
import time

from sqlalchemy.orm import Session

from timetrack.core.aggregation import day_totals
from timetrack.core.audit import record_audit
from timetrack.core.config import MAX_APPROVAL_HOURS, MIN_APPROVAL_HOURS, TEAM_RECALC_DELAY_SECONDS
from timetrack.core.constants import AUDIT_SCOPE_SINGLE, AUDIT_SCOPE_TEAM, DAYS_PER_WEEK, RESOURCE_WORK_INTERVAL
from timetrack.core.exceptions import ApprovalError, NotFoundError, RangeError, RecalculationFailure, TimetrackError
from timetrack.core.models import ApprovalOutcome, BatchResult, CalendarRules, RecalculationResult
from timetrack.core.overrides import refresh_fallback_override
from timetrack.core.recalculation import SegmentService, recalculate
from timetrack.core.time_utils import day_bounds, hours_between, parse_week_id, utc_now
from timetrack.database.database import ApprovalStatus, Employee, WorkInterval

logger = logging.getLogger(__name__)


def get_interval(session: Session, interval_id: int) -> WorkInterval:
    interval = session.get(WorkInterval, interval_id)
    if interval is None:
        raise NotFoundError("WorkInterval", interval_id)
    return interval


def approve(
    session: Session,
    interval_id: int,
    actor: Employee | None = None,
    notes: str | None = None,
    service: SegmentService | None = None,
    rules: CalendarRules | None = None,
) -> ApprovalOutcome:
    """
    Approve a closed interval.

    Approving an already approved interval is a no-op and writes no audit
    record. An interval without stored segments gets them computed first;
    if that fails the approval still stands.

    Raises:
        NotFoundError: Unknown interval
        ApprovalError: Open interval, or shorter than 10 minutes / longer than 24 hours
    """
    interval = get_interval(session, interval_id)

    if interval.approval_status == ApprovalStatus.APPROVED:
        logger.debug("Interval %s already approved", interval_id)
        return ApprovalOutcome(interval_id=interval_id, status=ApprovalStatus.APPROVED, changed=False)

    _check_approvable(interval)

    if not interval.segments:
        try:
            recalculate(session, interval_id, final_mode=True, actor=actor, service=service, rules=rules)
        except RecalculationFailure as e:
            logger.warning("Approving interval %s without segments: %s", interval_id, e.message)
        interval = get_interval(session, interval_id)

    interval.approval_status = ApprovalStatus.APPROVED
    interval.approved_at = utc_now()
    interval.approved_by = actor.id if actor else None
    interval.approval_notes = notes
    interval.needs_reprocessing = False

    record_audit(
        session,
        actor.id if actor else None,
        "approve",
        RESOURCE_WORK_INTERVAL,
        interval_id,
        {"employee_id": interval.employee_id, "notes": notes},
    )
    session.commit()

    logger.info("Interval %s approved by %s", interval_id, actor.id if actor else None)
    return ApprovalOutcome(
        interval_id=interval_id,
        status=ApprovalStatus.APPROVED,
        changed=True,
        day=day_totals(session, interval.employee_id, interval.clock_in_time.date(), rules),
    )


def edit(
    session: Session,
    interval_id: int,
    new_start: datetime.datetime | None = None,
    new_end: datetime.datetime | None = None,
    actor: Employee | None = None,
    scope: str = AUDIT_SCOPE_SINGLE,
    service: SegmentService | None = None,
    rules: CalendarRules | None = None,
    backoff_seconds: float | None = None,
) -> RecalculationResult:
    """
    Change the boundaries of an interval in any approval state.

    The interval goes back to pending_review and its segments are rebuilt;
    it is not approved again automatically.
    """
    get_interval(session, interval_id)

    kwargs = {}
    if backoff_seconds is not None:
        kwargs["backoff_seconds"] = backoff_seconds

    return recalculate(
        session,
        interval_id,
        new_start,
        new_end,
        final_mode=True,
        actor=actor,
        scope=scope,
        service=service,
        rules=rules,
        **kwargs,
    )


def delete(session: Session, interval_id: int, actor: Employee | None = None) -> None:
    """
    Delete an interval together with its segments.

    Manual overrides of the day are kept; only the auto-generated fallback
    of the day is rebuilt.
    """
    interval = get_interval(session, interval_id)
    employee_id = interval.employee_id
    work_date = interval.clock_in_time.date()

    record_audit(
        session,
        actor.id if actor else None,
        "delete",
        RESOURCE_WORK_INTERVAL,
        interval_id,
        {
            "employee_id": employee_id,
            "old_value": {
                "clock_in_time": interval.clock_in_time.isoformat(),
                "clock_out_time": interval.clock_out_time.isoformat() if interval.clock_out_time else None,
                "approval_status": interval.approval_status.value,
            },
        },
    )
    session.delete(interval)
    refresh_fallback_override(session, employee_id, work_date)
    session.commit()

    logger.info("Interval %s deleted by %s", interval_id, actor.id if actor else None)


def team_intervals(
    session: Session,
    team_id: int,
    week_id: str,
    day_of_week: int | None = None,
) -> list[WorkInterval]:
    """
    Intervals of a team's members clocked in during an ISO week.

    Args:
        week_id: "2026-W42" or any ISO date inside the week
        day_of_week: 0 = Monday ... 6 = Sunday, None for the whole week
    """
    monday = parse_week_id(week_id)
    if day_of_week is None:
        window_start, _ = day_bounds(monday)
        _, window_end = day_bounds(monday + datetime.timedelta(days=DAYS_PER_WEEK - 1))
    else:
        if not 0 <= day_of_week < DAYS_PER_WEEK:
            raise RangeError(f"day_of_week must be 0-6, got {day_of_week}")
        window_start, window_end = day_bounds(monday + datetime.timedelta(days=day_of_week))

    return (
        session.query(WorkInterval)
        .join(Employee, WorkInterval.employee_id == Employee.id)
        .filter(
            Employee.team_id == team_id,
            WorkInterval.clock_in_time >= window_start,
            WorkInterval.clock_in_time < window_end,
        )
        .order_by(WorkInterval.employee_id, WorkInterval.clock_in_time)
        .all()
    )


def approve_all(
    session: Session,
    team_id: int,
    week_id: str,
    day_of_week: int | None = None,
    actor: Employee | None = None,
    service: SegmentService | None = None,
    rules: CalendarRules | None = None,
) -> BatchResult:
    """Approve every interval of a team's day (or week); failures are collected, not raised."""
    result = BatchResult(operation="approve")

    for interval_id in [i.id for i in team_intervals(session, team_id, week_id, day_of_week)]:
        try:
            outcome = approve(session, interval_id, actor=actor, service=service, rules=rules)
        except TimetrackError as e:
            session.rollback()
            result.record_failure(interval_id, e.message)
            continue

        result.succeeded.append(interval_id)
        if not outcome.changed:
            result.unchanged.append(interval_id)

    logger.info(
        "Team %s approval for %s/%s: %d succeeded, %d failed",
        team_id,
        week_id,
        day_of_week,
        result.succeeded_count,
        result.failed_count,
    )
    return result


def edit_team(
    session: Session,
    team_id: int,
    week_id: str,
    day_of_week: int,
    start_time: datetime.time | None = None,
    end_time: datetime.time | None = None,
    actor: Employee | None = None,
    service: SegmentService | None = None,
    rules: CalendarRules | None = None,
    delay_seconds: float = TEAM_RECALC_DELAY_SECONDS,
    backoff_seconds: float | None = None,
) -> BatchResult:
    """
    Set the same clock-in / clock-out times on every interval of a team's day.

    Intervals are processed one at a time with a pause in between. Each one is
    committed on its own: an interrupted run leaves the processed intervals
    recalculated and the rest untouched. An end time at or before the start
    time means the interval ends the next day.
    """
    result = BatchResult(operation="edit")
    intervals = team_intervals(session, team_id, week_id, day_of_week)

    for index, interval in enumerate(intervals):
        interval_id = interval.id
        work_date = interval.clock_in_time.date()

        new_start = datetime.datetime.combine(work_date, start_time) if start_time else interval.clock_in_time
        if end_time:
            new_end = datetime.datetime.combine(work_date, end_time)
            if new_end <= new_start:
                new_end += datetime.timedelta(days=1)
        else:
            new_end = interval.clock_out_time

        try:
            edit(
                session,
                interval_id,
                new_start,
                new_end,
                actor=actor,
                scope=AUDIT_SCOPE_TEAM,
                service=service,
                rules=rules,
                backoff_seconds=backoff_seconds,
            )
        except TimetrackError as e:
            session.rollback()
            result.record_failure(interval_id, e.message)
        else:
            result.succeeded.append(interval_id)

        if delay_seconds > 0 and index < len(intervals) - 1:
            time.sleep(delay_seconds)

    logger.info(
        "Team %s edit for %s/%s: %d succeeded, %d failed",
        team_id,
        week_id,
        day_of_week,
        result.succeeded_count,
        result.failed_count,
    )
    return result


# === Private helpers ===


def _check_approvable(interval: WorkInterval) -> None:
    if interval.clock_out_time is None:
        raise ApprovalError(interval.id, "clock-out missing, open intervals cannot be approved")

    duration = hours_between(interval.clock_in_time, interval.clock_out_time)
    if duration < MIN_APPROVAL_HOURS:
        raise ApprovalError(interval.id, f"duration {round(duration * 60)} min is below the 10 minute minimum")
    if duration > MAX_APPROVAL_HOURS:
        raise ApprovalError(interval.id, f"duration {duration:.1f}h exceeds {MAX_APPROVAL_HOURS:.0f}h")
