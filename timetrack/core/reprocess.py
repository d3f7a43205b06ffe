"""Bulk reprocessing of stored intervals."""

import datetime
import logging
from typing import Literal

from sqlalchemy.orm import Session

from timetrack.core.config import REPROCESS_BATCH_SIZE
from timetrack.core.exceptions import RangeError, TimetrackError
from timetrack.core.models import BatchFailure, CalendarRules, ReprocessResult
from timetrack.core.recalculation import SegmentService, recalculate
from timetrack.core.time_utils import day_bounds
from timetrack.database.database import WorkInterval

logger = logging.getLogger(__name__)

ReprocessMode = Literal["missing_segments", "needs_reprocessing", "date_range"]


def reprocess(
    session: Session,
    mode: ReprocessMode = "missing_segments",
    start_date: datetime.date | None = None,
    end_date: datetime.date | None = None,
    batch_size: int = REPROCESS_BATCH_SIZE,
    service: SegmentService | None = None,
    rules: CalendarRules | None = None,
    backoff_seconds: float | None = None,
) -> ReprocessResult:
    """
    Recompute segments of closed intervals in batches.

    Modes:
    - missing_segments: intervals that have no segments at all
    - needs_reprocessing: intervals flagged by an earlier failed or interim run
    - date_range: every interval clocked in between start_date and end_date

    Boundaries are not changed. Manual overrides survive unless an earlier
    interim run moved the boundaries after they were last reconciled. Each
    interval is committed on its own; a failing interval is reported and skipped.

    Returns:
        ReprocessResult(processed, generated, success, errors)
    """
    if mode not in ("missing_segments", "needs_reprocessing", "date_range"):
        raise ValueError(f"Unknown reprocess mode: {mode}")
    if batch_size < 1:
        raise ValueError("batch_size must be positive")
    if mode == "date_range":
        if start_date is None or end_date is None:
            raise RangeError("date_range mode needs start_date and end_date")
        if end_date < start_date:
            raise RangeError(f"End date {end_date} is before start date {start_date}")

    kwargs = {}
    if backoff_seconds is not None:
        kwargs["backoff_seconds"] = backoff_seconds

    result = ReprocessResult(mode=mode)
    seen: set[int] = set()
    batch_number = 0

    while True:
        batch_number += 1
        batch = _next_batch(session, mode, start_date, end_date, batch_size, seen)
        if not batch:
            break

        logger.info("Reprocess %s: batch %d with %d interval(s)", mode, batch_number, len(batch))

        for interval_id in batch:
            seen.add(interval_id)
            result.processed += 1
            try:
                outcome = recalculate(session, interval_id, final_mode=True, service=service, rules=rules, **kwargs)
            except TimetrackError as e:
                session.rollback()
                result.success = False
                result.errors.append(BatchFailure(interval_id=interval_id, reason=e.message))
                continue
            result.generated += len(outcome.segments)

    logger.info(
        "Reprocess %s finished: %d processed, %d segment(s) generated, %d error(s)",
        mode,
        result.processed,
        result.generated,
        len(result.errors),
    )
    return result


def _next_batch(
    session: Session,
    mode: ReprocessMode,
    start_date: datetime.date | None,
    end_date: datetime.date | None,
    batch_size: int,
    seen: set[int],
) -> list[int]:
    query = session.query(WorkInterval.id).filter(WorkInterval.clock_out_time.isnot(None))

    if mode == "missing_segments":
        query = query.filter(~WorkInterval.segments.any())
    elif mode == "needs_reprocessing":
        query = query.filter(WorkInterval.needs_reprocessing.is_(True))
    else:
        window_start, _ = day_bounds(start_date)
        _, window_end = day_bounds(end_date)
        query = query.filter(WorkInterval.clock_in_time >= window_start, WorkInterval.clock_in_time < window_end)

    if seen:
        query = query.filter(WorkInterval.id.notin_(seen))

    return [row[0] for row in query.order_by(WorkInterval.clock_out_time.desc()).limit(batch_size).all()]
