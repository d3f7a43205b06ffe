"""
Recalculation orchestrator.

Runs after any change to an interval's boundaries, in this order:

1. persist the new clock-in / clock-out (fatal on failure, nothing else happens)
2. + 3. replace the stored segments through the segment computation service,
        retried with exponential backoff
4. purge manual overrides of the affected days when the boundaries differ from
   the ones the overrides were last reconciled against, and rebuild the
   auto-generated fallback (final mode only, also after a failed computation)
5. append an audit record (final mode only)
"""

import datetime
import logging
import time
from typing import Protocol

import requests
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timetrack.core.aggregation import day_totals
from timetrack.core.audit import record_audit
from timetrack.core.config import RECALC_BACKOFF_SECONDS, RECALC_MAX_ATTEMPTS
from timetrack.core.constants import AUDIT_SCOPE_SINGLE, HOURS_PER_DAY, RESOURCE_WORK_INTERVAL
from timetrack.core.exceptions import NotFoundError, RangeError, RecalculationFailure, SegmentServiceError
from timetrack.core.models import CalendarRules, RecalculationResult, SegmentSpan
from timetrack.core.overrides import purge_manual_overrides, refresh_fallback_override
from timetrack.core.policy import is_privileged
from timetrack.core.segments import anchored_work_date, compute_segments, holiday_dates
from timetrack.core.sentry_config import capture_exception
from timetrack.core.storage import get_calendar_rules
from timetrack.core.time_utils import hours_between, parse_shift_hint, to_local_naive
from timetrack.database.database import ApprovalStatus, Employee, Segment, WorkInterval

logger = logging.getLogger(__name__)


class SegmentRequest(BaseModel):
    interval_id: int
    clock_in: datetime.datetime
    clock_out: datetime.datetime
    user_id: int
    force_recalculate: bool = False
    is_intermediate_calculation: bool = False


class SegmentResponse(BaseModel):
    success: bool
    segments: list[SegmentSpan] = Field(default_factory=list)
    error: str | None = None


class SegmentService(Protocol):
    """Computes and stores the segments of one interval."""

    def compute(self, request: SegmentRequest) -> SegmentResponse: ...


class LocalSegmentService:
    """
    In-process segment computation.

    Old segments are deleted and the new ones inserted in the same commit, so
    readers never see an interval with a partial set of segments.
    """

    def __init__(self, session: Session, rules: CalendarRules | None = None):
        self.session = session
        self.rules = rules

    def compute(self, request: SegmentRequest) -> SegmentResponse:
        interval = self.session.get(WorkInterval, request.interval_id)
        if interval is None:
            raise NotFoundError("WorkInterval", request.interval_id)

        holidays = holiday_dates(
            request.clock_in.date(),
            request.clock_out.date(),
            self.session,
        )
        spans = compute_segments(
            request.clock_in,
            request.clock_out,
            parse_shift_hint(interval.notes),
            rules=self.rules,
            holidays=holidays,
        )

        try:
            interval.segments = [
                Segment(
                    segment_type=span.category,
                    start_time=span.start,
                    end_time=span.end,
                    hours_decimal=span.hours,
                )
                for span in spans
            ]
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("Failed to store segments for interval %s", request.interval_id)
            raise SegmentServiceError(f"Could not store segments: {e}") from e

        return SegmentResponse(success=True, segments=spans)


class HttpSegmentService:
    """
    Client for a remote segment computation service.

    The remote side stores the segments; the response echoes them back.
    """

    def __init__(self, url: str, token: str | None = None, timeout: float = 30.0):
        self.url = url
        self.token = token
        self.timeout = timeout

    def compute(self, request: SegmentRequest) -> SegmentResponse:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        payload = {
            "intervalId": request.interval_id,
            "clockIn": request.clock_in.isoformat(),
            "clockOut": request.clock_out.isoformat(),
            "userId": request.user_id,
            "forceRecalculate": request.force_recalculate,
            "isIntermediateCalculation": request.is_intermediate_calculation,
        }

        try:
            response = requests.post(self.url, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("Segment service call failed for interval %s: %s", request.interval_id, e)
            raise SegmentServiceError(f"Segment service unavailable: {e}") from e

        return SegmentResponse(
            success=bool(data.get("success")),
            segments=[SegmentSpan(**item) for item in data.get("segments", [])],
            error=data.get("error"),
        )


def recalculate(
    session: Session,
    interval_id: int,
    new_start: datetime.datetime | None = None,
    new_end: datetime.datetime | None = None,
    final_mode: bool = True,
    actor: Employee | None = None,
    scope: str = AUDIT_SCOPE_SINGLE,
    service: SegmentService | None = None,
    rules: CalendarRules | None = None,
    max_attempts: int = RECALC_MAX_ATTEMPTS,
    backoff_seconds: float = RECALC_BACKOFF_SECONDS,
) -> RecalculationResult:
    """
    Apply new boundaries to an interval and rebuild everything derived from them.

    Args:
        new_start: New clock-in, None keeps the current one
        new_end: New clock-out, None keeps the current one
        final_mode: False for interim (preview) runs, which never touch
            overrides and never write audit records
        actor: Employee performing the change
        scope: "single" or "team", recorded in the audit trail
        service: Segment computation service, defaults to LocalSegmentService

    Returns:
        RecalculationResult with the new segments and the updated day totals

    Raises:
        NotFoundError: Unknown interval
        RangeError: Open interval, end <= start or longer than 24 hours
        RecalculationFailure: Computation service failed on every attempt
    """
    rules = rules or get_calendar_rules()
    service = service or LocalSegmentService(session, rules)

    interval = session.get(WorkInterval, interval_id)
    if interval is None:
        raise NotFoundError("WorkInterval", interval_id)

    old_start, old_end = interval.clock_in_time, interval.clock_out_time
    start = to_local_naive(new_start, rules.timezone) if new_start else old_start
    end = to_local_naive(new_end, rules.timezone) if new_end else old_end
    _validate_boundaries(interval_id, start, end)

    boundaries_changed = (start, end) != (old_start, old_end)
    reconciled_start, reconciled_end = _reconciled_boundaries(interval)
    overrides_stale = (start, end) != (reconciled_start, reconciled_end)
    affected_dates = _attributed_dates(interval, rules) | {reconciled_start.date()}

    # Step 1: persist boundaries
    try:
        if boundaries_changed:
            _apply_boundaries(interval, start, end, actor)
        interval.needs_reprocessing = True
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Could not persist boundaries of interval %s", interval_id)
        raise

    # Steps 2 + 3: replace segments
    request = SegmentRequest(
        interval_id=interval.id,
        clock_in=start,
        clock_out=end,
        user_id=interval.employee_id,
        force_recalculate=True,
        is_intermediate_calculation=not final_mode,
    )
    try:
        response, attempts = _compute_with_retry(service, request, max_attempts, backoff_seconds)
    except RecalculationFailure as failure:
        _handle_failure(session, interval, affected_dates, overrides_stale, final_mode, actor, scope, failure)
        raise

    session.refresh(interval)
    affected_dates |= _attributed_dates(interval, rules)

    # Step 4: overrides
    purged: list[datetime.date] = []
    if final_mode:
        if overrides_stale:
            purged = purge_manual_overrides(session, interval.employee_id, affected_dates)
        for work_date in {old_start.date(), reconciled_start.date(), start.date()}:
            refresh_fallback_override(session, interval.employee_id, work_date)
        _mark_reconciled(interval)
        interval.needs_reprocessing = False

        # Step 5: audit
        record_audit(
            session,
            actor.id if actor else None,
            "recalculate",
            RESOURCE_WORK_INTERVAL,
            interval.id,
            {
                "old_value": _boundaries_detail(old_start, old_end),
                "new_value": _boundaries_detail(start, end),
                "scope": scope,
                "affected_employees": [interval.employee_id],
                "purged_override_dates": [d.isoformat() for d in purged],
                "segments": len(response.segments),
            },
        )
    session.commit()

    logger.info(
        "Recalculated interval %s (%s mode, %d segment(s), %d attempt(s))",
        interval.id,
        "final" if final_mode else "interim",
        len(response.segments),
        attempts,
        extra={"extra_fields": {"interval_id": interval.id, "scope": scope, "final_mode": final_mode}},
    )

    return RecalculationResult(
        interval_id=interval.id,
        final_mode=final_mode,
        boundaries_changed=boundaries_changed,
        attempts=attempts,
        segments=response.segments,
        purged_override_dates=purged,
        days=[day_totals(session, interval.employee_id, d, rules) for d in sorted(affected_dates)],
    )


# === Private helpers ===


def _validate_boundaries(interval_id: int, start: datetime.datetime, end: datetime.datetime | None) -> None:
    if end is None:
        raise RangeError(f"Interval {interval_id} is open and cannot be recalculated")
    if end <= start:
        raise RangeError(f"Interval {interval_id}: end {end} is not after start {start}")
    duration = hours_between(start, end)
    if duration > HOURS_PER_DAY:
        raise RangeError(f"Interval {interval_id}: {duration:.2f}h exceeds {HOURS_PER_DAY}h")


def _apply_boundaries(
    interval: WorkInterval,
    start: datetime.datetime,
    end: datetime.datetime,
    actor: Employee | None,
) -> None:
    if interval.original_clock_in_time is None:
        interval.original_clock_in_time = interval.clock_in_time
        interval.original_clock_out_time = interval.clock_out_time

    interval.clock_in_time = start
    interval.clock_out_time = end
    interval.was_edited_by_admin = interval.was_edited_by_admin or is_privileged(actor)

    # an edited interval has to be approved again
    interval.approval_status = ApprovalStatus.PENDING_REVIEW
    interval.approved_at = None
    interval.approved_by = None


def _reconciled_boundaries(interval: WorkInterval) -> tuple[datetime.datetime, datetime.datetime | None]:
    """Boundaries the day overrides currently describe."""
    if interval.reconciled_clock_in_time is not None:
        return interval.reconciled_clock_in_time, interval.reconciled_clock_out_time
    # never reconciled: overrides were entered against the boundaries as clocked
    if interval.original_clock_in_time is not None:
        return interval.original_clock_in_time, interval.original_clock_out_time
    return interval.clock_in_time, interval.clock_out_time


def _mark_reconciled(interval: WorkInterval) -> None:
    interval.reconciled_clock_in_time = interval.clock_in_time
    interval.reconciled_clock_out_time = interval.clock_out_time


def _attributed_dates(interval: WorkInterval, rules: CalendarRules) -> set[datetime.date]:
    dates = {interval.clock_in_time.date()}
    for segment in interval.segments:
        dates.add(anchored_work_date(segment.segment_type, segment.start_time, rules))
    return dates


def _compute_with_retry(
    service: SegmentService,
    request: SegmentRequest,
    max_attempts: int,
    backoff_seconds: float,
) -> tuple[SegmentResponse, int]:
    last_error: Exception | None = None

    for attempt in range(1, max_attempts + 1):
        try:
            response = service.compute(request)
        except SegmentServiceError as e:
            last_error = e
        else:
            if response.success:
                return response, attempt
            last_error = SegmentServiceError(response.error or "Segment service reported failure")

        logger.warning(
            "Segment computation for interval %s failed (attempt %d/%d): %s",
            request.interval_id,
            attempt,
            max_attempts,
            last_error,
        )
        if attempt < max_attempts and backoff_seconds > 0:
            time.sleep(backoff_seconds * 2 ** (attempt - 1))

    raise RecalculationFailure(request.interval_id, max_attempts, last_error)


def _handle_failure(
    session: Session,
    interval: WorkInterval,
    affected_dates: set[datetime.date],
    overrides_stale: bool,
    final_mode: bool,
    actor: Employee | None,
    scope: str,
    failure: RecalculationFailure,
) -> None:
    """
    Leave the interval without stale segments and flagged for reprocessing.

    In final mode stale manual overrides are purged as on success, and the
    auto-generated fallback of every affected day is rebuilt, so the hours
    are counted once, on the day the interval now starts.
    """
    session.rollback()
    interval.segments = []
    interval.needs_reprocessing = True

    if final_mode:
        affected_dates = affected_dates | {interval.clock_in_time.date()}
        purged = []
        if overrides_stale:
            purged = purge_manual_overrides(session, interval.employee_id, affected_dates)
        for work_date in sorted(affected_dates):
            refresh_fallback_override(session, interval.employee_id, work_date)
        _mark_reconciled(interval)
        record_audit(
            session,
            actor.id if actor else None,
            "recalculate_failed",
            RESOURCE_WORK_INTERVAL,
            interval.id,
            {
                "scope": scope,
                "attempts": failure.attempts,
                "error": str(failure.last_error) if failure.last_error else None,
                "affected_dates": sorted(d.isoformat() for d in affected_dates),
                "purged_override_dates": [d.isoformat() for d in purged],
            },
        )
    session.commit()

    logger.error("Recalculation of interval %s failed: %s", interval.id, failure.message)
    capture_exception(failure, {"interval": {"id": interval.id, "employee_id": interval.employee_id}})


def _boundaries_detail(start: datetime.datetime | None, end: datetime.datetime | None) -> dict:
    return {
        "clock_in_time": start.isoformat() if start else None,
        "clock_out_time": end.isoformat() if end else None,
    }
