import datetime
import logging
import re
from zoneinfo import ZoneInfo

from timetrack.core.constants import HOURS_DECIMALS, SECONDS_PER_HOUR
from timetrack.core.exceptions import RangeError
from timetrack.database.database import ShiftHint

logger = logging.getLogger(__name__)

# "Condus Utilaj" must come before "Condus" so the longer label wins.
_SHIFT_HINT_PATTERN = re.compile(
    r"Tip:\s*(Condus Utilaj|Utilaj|Condus|Pasager|Normal)"
    r"|\b(driving|passenger|equipment|normal)\b",
    re.IGNORECASE,
)

_SHIFT_HINT_BY_LABEL = {
    "condus utilaj": ShiftHint.EQUIPMENT,
    "utilaj": ShiftHint.EQUIPMENT,
    "condus": ShiftHint.DRIVING,
    "pasager": ShiftHint.PASSENGER,
    "normal": ShiftHint.NORMAL,
    "driving": ShiftHint.DRIVING,
    "passenger": ShiftHint.PASSENGER,
    "equipment": ShiftHint.EQUIPMENT,
}

_WEEK_ID_PATTERN = re.compile(r"^(\d{4})-W(\d{2})$")


def to_local_naive(value: datetime.datetime, tz_name: str) -> datetime.datetime:
    """
    Convert a timestamp to naive local wall-clock time.

    Naive values are assumed to already be local. Aware values are converted
    to tz_name and stripped of their tzinfo.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(tz_name)).replace(tzinfo=None)


def utc_now() -> datetime.datetime:
    """Current UTC time as a naive datetime, the way timestamp columns store it."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def hours_between(start: datetime.datetime, end: datetime.datetime) -> float:
    """Unrounded decimal hours from start to end."""
    return (end - start).total_seconds() / SECONDS_PER_HOUR


def round_hours(value: float) -> float:
    return round(value, HOURS_DECIMALS)


def parse_shift_hint(notes: str | None) -> ShiftHint:
    """
    Extract the shift classification from free-text interval notes.

    Handles "Tip: Condus" style labels written at clock-in as well as plain
    English category words. Missing or unknown hint means a normal shift.
    """
    if not notes:
        return ShiftHint.NORMAL

    match = _SHIFT_HINT_PATTERN.search(notes)
    if not match:
        return ShiftHint.NORMAL

    label = (match.group(1) or match.group(2)).lower()
    return _SHIFT_HINT_BY_LABEL[label]


def parse_week_id(week_id: str) -> datetime.date:
    """
    Return the Monday of an ISO week.

    Accepts "2026-W42" or any ISO date ("2026-10-14") inside the week.
    """
    match = _WEEK_ID_PATTERN.match(week_id.strip())
    try:
        if match:
            return datetime.date.fromisocalendar(int(match.group(1)), int(match.group(2)), 1)
        day = datetime.date.fromisoformat(week_id.strip())
    except ValueError as e:
        logger.error("Invalid week id %r", week_id)
        raise RangeError(f"Invalid week id: {week_id!r}") from e
    return day - datetime.timedelta(days=day.weekday())


def day_bounds(date_: datetime.date) -> tuple[datetime.datetime, datetime.datetime]:
    """[00:00 of date, 00:00 of the next day)."""
    start = datetime.datetime.combine(date_, datetime.time(0, 0))
    return start, start + datetime.timedelta(days=1)
