import datetime
from typing import Literal

from pydantic import BaseModel, Field, computed_field, field_validator

from timetrack.core.config import TIME_FORMAT_HM
from timetrack.database.database import ApprovalStatus, SegmentCategory

DaySource = Literal["override", "segments", "fallback", "empty"]


def empty_hours() -> dict[SegmentCategory, float]:
    """Zeroed hours for every category."""
    return {category: 0.0 for category in SegmentCategory}


class CalendarRules(BaseModel):
    """Calendar configuration: local zone, night window and weekend anchor."""

    timezone: str = "Europe/Bucharest"
    night_start: str = "22:00"
    night_end: str = "06:00"
    weekend_anchor: str = "06:00"

    @field_validator("night_start", "night_end", "weekend_anchor")
    @classmethod
    def _check_clock_time(cls, value: str) -> str:
        datetime.datetime.strptime(value, TIME_FORMAT_HM)
        return value

    @property
    def night_start_time(self) -> datetime.time:
        return datetime.datetime.strptime(self.night_start, TIME_FORMAT_HM).time()

    @property
    def night_end_time(self) -> datetime.time:
        return datetime.datetime.strptime(self.night_end, TIME_FORMAT_HM).time()

    @property
    def weekend_anchor_time(self) -> datetime.time:
        return datetime.datetime.strptime(self.weekend_anchor, TIME_FORMAT_HM).time()


class SegmentSpan(BaseModel):
    """A computed, not yet persisted, segment."""

    category: SegmentCategory
    start: datetime.datetime
    end: datetime.datetime
    hours: float


class DayTotals(BaseModel):
    """Category totals of one employee for one calendar day."""

    work_date: datetime.date
    hours: dict[SegmentCategory, float] = Field(default_factory=empty_hours)
    total: float = 0.0
    source: DaySource = "empty"
    fully_approved: bool = False


class AggregateReport(BaseModel):
    employee_id: int
    start_date: datetime.date
    end_date: datetime.date
    approved_only: bool = False
    days: list[DayTotals] = Field(default_factory=list)
    totals: dict[SegmentCategory, float] = Field(default_factory=empty_hours)
    grand_total: float = 0.0


class OverrideResult(BaseModel):
    employee_id: int
    work_date: datetime.date
    hours: dict[SegmentCategory, float]
    total: float
    available_hours: float
    is_manual: bool
    notes: str | None = None
    warning: str | None = None
    day: DayTotals


class ApprovalOutcome(BaseModel):
    interval_id: int
    status: ApprovalStatus
    changed: bool
    day: DayTotals | None = None


class BatchFailure(BaseModel):
    interval_id: int
    reason: str


class BatchResult(BaseModel):
    """Per-interval outcome of a batch operation. Never raised, always returned."""

    operation: str
    succeeded: list[int] = Field(default_factory=list)
    unchanged: list[int] = Field(default_factory=list)
    failed: list[BatchFailure] = Field(default_factory=list)

    @computed_field
    @property
    def succeeded_count(self) -> int:
        return len(self.succeeded)

    @computed_field
    @property
    def failed_count(self) -> int:
        return len(self.failed)

    def record_failure(self, interval_id: int, reason: str) -> None:
        self.failed.append(BatchFailure(interval_id=interval_id, reason=reason))


class RecalculationResult(BaseModel):
    interval_id: int
    final_mode: bool
    boundaries_changed: bool
    attempts: int
    segments: list[SegmentSpan] = Field(default_factory=list)
    purged_override_dates: list[datetime.date] = Field(default_factory=list)
    days: list[DayTotals] = Field(default_factory=list)


class ReprocessResult(BaseModel):
    mode: str
    processed: int = 0
    generated: int = 0
    success: bool = True
    errors: list[BatchFailure] = Field(default_factory=list)
