"""Calendar rule set: night window, weekend window and holidays."""

import datetime

from sqlalchemy.orm import Session

from timetrack.core.constants import SATURDAY, SUNDAY
from timetrack.core.holidays import legal_holidays
from timetrack.core.models import CalendarRules
from timetrack.database.database import Holiday, SegmentCategory


def is_night(moment: datetime.time, rules: CalendarRules) -> bool:
    """True if the clock time lies in the night window. The window may wrap midnight."""
    start = rules.night_start_time
    end = rules.night_end_time

    if start == end:
        return False
    if start < end:
        return start <= moment < end
    return moment >= start or moment < end


def is_weekend_saturday(moment: datetime.datetime, rules: CalendarRules) -> bool:
    """Saturday from the anchor up to Sunday at the anchor."""
    anchor = rules.weekend_anchor_time
    weekday = moment.weekday()
    return (weekday == SATURDAY and moment.time() >= anchor) or (
        weekday == SUNDAY and moment.time() < anchor
    )


def is_weekend_sunday(moment: datetime.datetime, rules: CalendarRules) -> bool:
    """Sunday from the anchor until midnight."""
    return moment.weekday() == SUNDAY and moment.time() >= rules.weekend_anchor_time


def classify_moment(
    moment: datetime.datetime,
    rules: CalendarRules,
    holidays: set[datetime.date],
) -> SegmentCategory:
    """
    Category of the work minute starting at moment.

    Precedence: holiday > weekend (saturday, sunday) > night > regular.
    """
    if moment.date() in holidays:
        return SegmentCategory.HOLIDAY
    if is_weekend_saturday(moment, rules):
        return SegmentCategory.SATURDAY
    if is_weekend_sunday(moment, rules):
        return SegmentCategory.SUNDAY
    if is_night(moment.time(), rules):
        return SegmentCategory.NIGHT
    return SegmentCategory.REGULAR


def next_boundary(current: datetime.datetime, rules: CalendarRules) -> datetime.datetime:
    """
    First moment strictly after current where a calendar rule can change.

    Candidates are midnight, both ends of the night window and the weekend anchor.
    """
    day = current.date()
    candidates = [
        datetime.datetime.combine(day, clock)
        for clock in (rules.night_start_time, rules.night_end_time, rules.weekend_anchor_time)
    ]
    candidates.append(datetime.datetime.combine(day + datetime.timedelta(days=1), datetime.time(0, 0)))
    return min(c for c in candidates if c > current)


def anchored_work_date(
    category: SegmentCategory,
    start: datetime.datetime,
    rules: CalendarRules,
) -> datetime.date:
    """
    Calendar day a segment is reported under.

    Saturday-category time worked on Sunday before the weekend anchor belongs
    to Saturday: the weekend is one payroll unit from Saturday 06:00 to
    Sunday 06:00. Every other segment belongs to the day it starts on.
    """
    if (
        category == SegmentCategory.SATURDAY
        and start.weekday() == SUNDAY
        and start.time() < rules.weekend_anchor_time
    ):
        return start.date() - datetime.timedelta(days=1)
    return start.date()


def holiday_dates(
    start_date: datetime.date,
    end_date: datetime.date,
    session: Session | None = None,
) -> set[datetime.date]:
    """Legal holidays for the years touched by the range, plus stored ad-hoc holidays."""
    dates: set[datetime.date] = set()
    for year in range(start_date.year, end_date.year + 1):
        dates.update(legal_holidays(year))

    if session is not None:
        rows = session.query(Holiday.date).filter(Holiday.date >= start_date, Holiday.date <= end_date).all()
        dates.update(row[0] for row in rows)

    return dates
