# timetrack/core/config.py

import os
from pathlib import Path
from typing import Final

# ==========================
# Data files
# ==========================

#: Directory holding JSON configuration files (calendar_rules.json).
#: Defaults to the data/ directory next to the package.
DATA_DIR: Final[Path] = Path(
    os.getenv("TIMETRACK_DATA_DIR", str(Path(__file__).resolve().parents[2] / "data"))
)

#: File name of the calendar configuration.
CALENDAR_RULES_FILE: Final[str] = "calendar_rules.json"


# ==========================
# Override reconciliation
# ==========================

#: Slack allowed when comparing override totals against the clocked span.
#: 3 minutes = 0.05h.
SPAN_TOLERANCE_HOURS: Final[float] = 0.05


# ==========================
# Approval
# ==========================

#: Shortest interval that may be approved (10 minutes).
MIN_APPROVAL_HOURS: Final[float] = 10 / 60

#: Longest interval that may be approved.
MAX_APPROVAL_HOURS: Final[float] = 24.0


# ==========================
# Recalculation
# ==========================

#: Attempts made against the segment computation service before giving up.
RECALC_MAX_ATTEMPTS: Final[int] = 3

#: Base backoff between attempts. Doubled on each retry.
RECALC_BACKOFF_SECONDS: Final[float] = 0.5

#: Pause between intervals in team-wide loops so the computation service is
#: not flooded.
TEAM_RECALC_DELAY_SECONDS: Final[float] = 0.2

#: Default batch size for bulk reprocessing.
REPROCESS_BATCH_SIZE: Final[int] = 100


# ==========================
# Time formats
# ==========================

#: Format of clock times in calendar_rules.json (for example "22:00").
TIME_FORMAT_HM: Final[str] = "%H:%M"
