"""Splits a work interval into categorized segments."""

import datetime
import logging

from timetrack.core.constants import HOURS_PER_DAY
from timetrack.core.exceptions import RangeError
from timetrack.core.models import CalendarRules, SegmentSpan, empty_hours
from timetrack.core.storage import get_calendar_rules
from timetrack.core.time_utils import hours_between, round_hours, to_local_naive
from timetrack.database.database import SegmentCategory, ShiftHint

from .calendar import classify_moment, holiday_dates, next_boundary

logger = logging.getLogger(__name__)

#: Special-duty hints are never split by the calendar.
SPECIAL_DUTY_CATEGORIES: dict[ShiftHint, SegmentCategory] = {
    ShiftHint.DRIVING: SegmentCategory.DRIVING,
    ShiftHint.PASSENGER: SegmentCategory.PASSENGER,
    ShiftHint.EQUIPMENT: SegmentCategory.EQUIPMENT,
}


def compute_segments(
    start: datetime.datetime | None,
    end: datetime.datetime | None,
    shift_hint: ShiftHint = ShiftHint.NORMAL,
    rules: CalendarRules | None = None,
    holidays: set[datetime.date] | None = None,
) -> list[SegmentSpan]:
    """
    Decompose [start, end) into contiguous categorized segments.

    Normal shifts are cut wherever the active calendar rule changes
    (holiday > weekend > night > regular); adjacent pieces with the same
    category are merged. Special-duty shifts (driving, passenger, equipment)
    become a single segment of that category.

    Segment hours are rounded to 2 decimals on the cumulative timeline, so the
    hours always add up to the rounded duration of the whole interval.

    Args:
        start: Clock-in. Aware values are converted to the configured zone.
        end: Clock-out. None means the interval is still open.
        shift_hint: Classification supplied at clock-in
        rules: Calendar rules, defaults to data/calendar_rules.json
        holidays: Holiday dates, defaults to the legal holidays of the years touched

    Returns:
        Segments ordered by start time

    Raises:
        RangeError: Open interval, end <= start, or longer than 24 hours
    """
    rules = rules or get_calendar_rules()

    if start is None or end is None:
        raise RangeError("Open interval cannot be segmented")

    start = to_local_naive(start, rules.timezone)
    end = to_local_naive(end, rules.timezone)

    if end <= start:
        raise RangeError(f"Interval end {end} is not after start {start}")

    duration = hours_between(start, end)
    if duration > HOURS_PER_DAY:
        raise RangeError(f"Interval of {duration:.2f}h exceeds {HOURS_PER_DAY}h")

    if shift_hint in SPECIAL_DUTY_CATEGORIES:
        pieces = [(SPECIAL_DUTY_CATEGORIES[shift_hint], start, end)]
    else:
        if holidays is None:
            holidays = holiday_dates(start.date(), end.date())
        pieces = _split_by_calendar(start, end, rules, holidays)

    segments = _with_rounded_hours(start, pieces)
    logger.debug(
        "Computed %d segment(s) for %s -> %s (%s)",
        len(segments),
        start,
        end,
        shift_hint.value,
    )
    return segments


def segment_totals(segments: list[SegmentSpan]) -> dict[SegmentCategory, float]:
    """Sum segment hours per category."""
    totals = empty_hours()
    for segment in segments:
        totals[segment.category] += segment.hours
    return {category: round_hours(hours) for category, hours in totals.items()}


# === Private helpers ===


def _split_by_calendar(
    start: datetime.datetime,
    end: datetime.datetime,
    rules: CalendarRules,
    holidays: set[datetime.date],
) -> list[tuple[SegmentCategory, datetime.datetime, datetime.datetime]]:
    pieces: list[tuple[SegmentCategory, datetime.datetime, datetime.datetime]] = []

    current = start
    while current < end:
        piece_end = min(end, next_boundary(current, rules))
        category = classify_moment(current, rules, holidays)

        if pieces and pieces[-1][0] == category:
            pieces[-1] = (category, pieces[-1][1], piece_end)
        else:
            pieces.append((category, current, piece_end))

        current = piece_end

    return pieces


def _with_rounded_hours(
    origin: datetime.datetime,
    pieces: list[tuple[SegmentCategory, datetime.datetime, datetime.datetime]],
) -> list[SegmentSpan]:
    segments = []
    previous = 0.0

    for category, piece_start, piece_end in pieces:
        cumulative = round_hours(hours_between(origin, piece_end))
        segments.append(
            SegmentSpan(
                category=category,
                start=piece_start,
                end=piece_end,
                hours=round_hours(cumulative - previous),
            )
        )
        previous = cumulative

    return segments
