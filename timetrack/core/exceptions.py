# timetrack/core/exceptions.py
"""
Typed exceptions raised by the segmentation and approval engine.

    TimetrackError
    +-- RangeError              duration or hour value out of bounds (never retried)
    +-- NotFoundError           referenced interval / override / employee missing
    +-- ApprovalError           approval precondition violated
    +-- ValidationWarning       override total exceeds the clocked span
    +-- SegmentServiceError     one transient failure of the computation service
    +-- RecalculationFailure    computation service still failing after retries
    +-- StorageError            configuration file unreadable or invalid
"""


class TimetrackError(Exception):
    """Base class for all engine errors."""

    code: str = "TIMETRACK_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RangeError(TimetrackError, ValueError):
    """A duration or category value is outside its allowed range."""

    code = "RANGE_ERROR"


class NotFoundError(TimetrackError, LookupError):
    """A referenced interval, override or employee does not exist."""

    code = "NOT_FOUND"

    def __init__(self, resource_type: str, resource_id):
        super().__init__(f"{resource_type} {resource_id} not found")
        self.resource_type = resource_type
        self.resource_id = resource_id


class ApprovalError(TimetrackError):
    """An interval cannot be approved in its current shape."""

    code = "APPROVAL_ERROR"

    def __init__(self, interval_id: int, reason: str):
        super().__init__(f"Interval {interval_id}: {reason}")
        self.interval_id = interval_id
        self.reason = reason


class ValidationWarning(TimetrackError):
    """
    Override total exceeds the available clocked span.

    Raised for non-privileged actors. Privileged actors get the same text back
    as a warning on the result instead.
    """

    code = "SPAN_EXCEEDED"

    def __init__(self, total_hours: float, available_hours: float):
        super().__init__(
            f"Category total {total_hours:.2f}h exceeds clocked span {available_hours:.2f}h"
        )
        self.total_hours = total_hours
        self.available_hours = available_hours


class SegmentServiceError(TimetrackError):
    """Single failed call to the segment computation service. Retryable."""

    code = "SEGMENT_SERVICE_ERROR"


class RecalculationFailure(TimetrackError):
    """The segment computation service kept failing; surfaced after retries."""

    code = "RECALCULATION_FAILED"

    def __init__(self, interval_id: int, attempts: int, last_error: Exception | None = None):
        reason = f": {last_error}" if last_error else ""
        super().__init__(f"Recalculation of interval {interval_id} failed after {attempts} attempts{reason}")
        self.interval_id = interval_id
        self.attempts = attempts
        self.last_error = last_error


class StorageError(TimetrackError):
    """General error type for problems loading data files."""

    code = "STORAGE_ERROR"
