# timetrack/core/constants.py
from typing import Final

# ==========================
# Time conversion
# ==========================

#: Number of seconds per hour. Used when converting a timedelta to decimal hours.
SECONDS_PER_HOUR: Final[int] = 3600

#: Number of hours per day. Upper bound for a single interval and for override values.
HOURS_PER_DAY: Final[int] = 24

#: Number of days per week.
DAYS_PER_WEEK: Final[int] = 7

#: Decimals kept on every stored hour value.
HOURS_DECIMALS: Final[int] = 2


# ==========================
# Weekdays (datetime.weekday())
# ==========================

SATURDAY: Final[int] = 5
SUNDAY: Final[int] = 6


# ==========================
# Provenance markers on daily overrides
# ==========================

#: Prefix written on notes of overrides entered by a supervisor.
#: Such overrides are authoritative for aggregation.
MANUAL_OVERRIDE_MARKER: Final[str] = "[OVERRIDE MANUAL]"

#: Prefix written on notes of overrides created as a fallback when an interval
#: could not be decomposed into segments.
AUTO_OVERRIDE_MARKER: Final[str] = "[AUTO]"


# ==========================
# Audit
# ==========================

AUDIT_SCOPE_SINGLE: Final[str] = "single"
AUDIT_SCOPE_TEAM: Final[str] = "team"

RESOURCE_WORK_INTERVAL: Final[str] = "work_interval"
RESOURCE_DAILY_OVERRIDE: Final[str] = "daily_override"
