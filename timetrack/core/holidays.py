import datetime


def orthodox_easter(year: int) -> datetime.date:
    """Orthodox Easter Sunday (Meeus Julian algorithm, shifted to the Gregorian calendar)."""
    a = year % 4
    b = year % 7
    c = year % 19
    d = (19 * c + 15) % 30
    e = (2 * a + 4 * b - d + 34) % 7
    month = (d + e + 114) // 31
    day = ((d + e + 114) % 31) + 1
    julian = datetime.date(year, month, day)
    # Julian -> Gregorian offset: 13 days for 1900-2099
    return julian + datetime.timedelta(days=13)


def vinerea_mare(year: int) -> datetime.date:
    """Orthodox Good Friday."""
    return orthodox_easter(year) - datetime.timedelta(days=2)


def a_doua_zi_de_paste(year: int) -> datetime.date:
    """Easter Monday."""
    return orthodox_easter(year) + datetime.timedelta(days=1)


def rusalii(year: int) -> datetime.date:
    """Pentecost Sunday: 49 days after Easter."""
    return orthodox_easter(year) + datetime.timedelta(days=49)


def a_doua_zi_de_rusalii(year: int) -> datetime.date:
    """Pentecost Monday."""
    return orthodox_easter(year) + datetime.timedelta(days=50)


# (month, day, name)
_FIXED_HOLIDAYS = (
    (1, 1, "Anul Nou"),
    (1, 2, "Anul Nou"),
    (1, 6, "Boboteaza"),
    (1, 7, "Sfantul Ioan"),
    (1, 24, "Ziua Unirii Principatelor Romane"),
    (5, 1, "Ziua Muncii"),
    (6, 1, "Ziua Copilului"),
    (8, 15, "Adormirea Maicii Domnului"),
    (11, 30, "Sfantul Andrei"),
    (12, 1, "Ziua Nationala"),
    (12, 25, "Craciunul"),
    (12, 26, "Craciunul"),
)

# Boboteaza and Sfantul Ioan became public holidays in 2024.
_EPIPHANY_FROM_YEAR = 2024


def legal_holidays(year: int) -> dict[datetime.date, str]:
    """Romanian public holidays for a year, date -> name."""
    holidays: dict[datetime.date, str] = {}

    for month, day, name in _FIXED_HOLIDAYS:
        if month == 1 and day in (6, 7) and year < _EPIPHANY_FROM_YEAR:
            continue
        holidays[datetime.date(year, month, day)] = name

    holidays[vinerea_mare(year)] = "Vinerea Mare"
    holidays[orthodox_easter(year)] = "Pastele"
    holidays[a_doua_zi_de_paste(year)] = "Pastele"
    # Pentecost Monday can coincide with 1 June; keep the first name.
    holidays.setdefault(rusalii(year), "Rusaliile")
    holidays.setdefault(a_doua_zi_de_rusalii(year), "Rusaliile")

    return holidays


def is_legal_holiday(date_: datetime.date) -> bool:
    return date_ in legal_holidays(date_.year)
