# timetrack/core/storage.py
"""
Loading of JSON configuration files.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from timetrack.core.config import CALENDAR_RULES_FILE, DATA_DIR
from timetrack.core.exceptions import StorageError
from timetrack.core.models import CalendarRules

logger = logging.getLogger(__name__)

_calendar_rules: CalendarRules | None = None


def _load_json(file_path: Path) -> list[Any] | dict[str, Any]:
    """
    Read and parse JSON with robust error handling.
    Args:
        file_path: Path to the JSON file
    Returns:
        Parsed JSON data as list or dict
    Raises:
        StorageError: If file cannot be read or JSON is invalid
    """
    try:
        raw = file_path.read_text(encoding="utf-8")
    except OSError as e:
        logger.exception("Failed to read JSON file %s", file_path)
        raise StorageError(f"Could not read JSON file {file_path}: {e}") from e

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.exception("Invalid JSON in file %s", file_path)
        raise StorageError(f"Invalid JSON in file {file_path}: {e}") from e


def load_calendar_rules(file_path: Path | None = None) -> CalendarRules:
    """
    Load night window, weekend anchor and time zone from data file.
    Raises:
        StorageError: If file cannot be loaded or parsed
    """
    file_path = file_path or DATA_DIR / CALENDAR_RULES_FILE
    data = _load_json(file_path)
    try:
        if not isinstance(data, dict):
            raise TypeError("Expected calendar rules dict")
        rules = CalendarRules(**data)
    except (TypeError, ValidationError) as e:
        logger.exception("Failed to parse calendar rules from %s", file_path)
        raise StorageError(f"Could not parse calendar rules from {file_path}: {e}") from e
    return rules


def get_calendar_rules() -> CalendarRules:
    """Cached calendar rules."""
    global _calendar_rules
    if _calendar_rules is None:
        _calendar_rules = load_calendar_rules()
    return _calendar_rules


def clear_calendar_cache() -> None:
    global _calendar_rules
    _calendar_rules = None
