"""
Unit tests for the Romanian legal holiday calendar.
"""

import sys
from datetime import date
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# ruff: noqa: E402
from timetrack.core.holidays import (
    a_doua_zi_de_paste,
    is_legal_holiday,
    legal_holidays,
    orthodox_easter,
    rusalii,
    vinerea_mare,
)
from timetrack.core.segments import holiday_dates
from timetrack.database.database import Holiday


class TestOrthodoxEaster:
    def test_known_easter_dates(self):
        assert orthodox_easter(2024) == date(2024, 5, 5)
        assert orthodox_easter(2025) == date(2025, 4, 20)
        assert orthodox_easter(2026) == date(2026, 4, 12)

    def test_movable_holidays_2026(self):
        assert vinerea_mare(2026) == date(2026, 4, 10)
        assert a_doua_zi_de_paste(2026) == date(2026, 4, 13)
        assert rusalii(2026) == date(2026, 5, 31)


class TestLegalHolidays:
    def test_fixed_holidays(self):
        holidays = legal_holidays(2026)

        assert holidays[date(2026, 1, 1)] == "Anul Nou"
        assert holidays[date(2026, 12, 1)] == "Ziua Nationala"
        assert holidays[date(2026, 12, 25)] == "Craciunul"

    def test_pentecost_monday_on_childrens_day_keeps_one_entry(self):
        """In 2026 Pentecost Monday falls on 1 June."""
        holidays = legal_holidays(2026)

        assert holidays[date(2026, 6, 1)] == "Ziua Copilului"
        assert holidays[date(2026, 5, 31)] == "Rusaliile"
        assert len(holidays) == 16

    def test_epiphany_only_from_2024(self):
        assert date(2023, 1, 6) not in legal_holidays(2023)
        assert date(2024, 1, 6) in legal_holidays(2024)
        assert date(2024, 1, 7) in legal_holidays(2024)

    def test_is_legal_holiday(self):
        assert is_legal_holiday(date(2026, 11, 30))
        assert not is_legal_holiday(date(2026, 10, 12))


class TestHolidayDates:
    def test_range_over_year_boundary(self):
        dates = holiday_dates(date(2026, 12, 1), date(2027, 1, 31))

        assert date(2026, 12, 25) in dates
        assert date(2027, 1, 24) in dates

    def test_stored_holidays_are_merged(self, test_db):
        test_db.add(Holiday(date=date(2026, 10, 14), name="Hramul orasului"))
        test_db.commit()

        dates = holiday_dates(date(2026, 10, 1), date(2026, 10, 31), test_db)

        assert date(2026, 10, 14) in dates
        assert {d for d in dates if d.month == 10} == {date(2026, 10, 14)}
