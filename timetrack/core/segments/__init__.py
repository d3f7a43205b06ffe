"""
Segment module - calendar rules and interval decomposition.
"""

from .calculator import SPECIAL_DUTY_CATEGORIES, compute_segments, segment_totals
from .calendar import (
    anchored_work_date,
    classify_moment,
    holiday_dates,
    is_night,
    is_weekend_saturday,
    is_weekend_sunday,
    next_boundary,
)

__all__ = [
    # calculator
    "compute_segments",
    "segment_totals",
    "SPECIAL_DUTY_CATEGORIES",
    # calendar
    "anchored_work_date",
    "classify_moment",
    "holiday_dates",
    "is_night",
    "is_weekend_saturday",
    "is_weekend_sunday",
    "next_boundary",
]
