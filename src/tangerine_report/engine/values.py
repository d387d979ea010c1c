"""Answer value translation and timestamp helpers.

Raw answers stored in result documents are mapped to the codes used in
the exported spreadsheets (``correct`` -> ``1``, ``skipped`` -> ``999``...).
"""

import logging
import re
from datetime import UTC, datetime, tzinfo
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

NO_RECORD = "no_record"

GRID_VALUE_MAP: dict[str, str] = {
    "correct": "1",
    "incorrect": "0",
    "missing": ".",
    "skipped": "999",
    "logicSkipped": "999",
}

SURVEY_VALUE_MAP: dict[str, str] = {
    "checked": "1",
    "unchecked": "0",
    "not asked": ".",
    "skipped": "999",
    "logicSkipped": "999",
}

_NUMERIC = re.compile(r"^-?\d+(\.\d+)?$")


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def translate_value(value: Any, value_map: dict[str, str]) -> str:
    """Map a stored answer to its export code, passing unknown values through."""
    if value is None:
        value = NO_RECORD
    text = _as_text(value)
    return value_map.get(text, text)


def translate_survey_value(value: Any) -> str:
    """Translate a survey answer."""
    return translate_value(value, SURVEY_VALUE_MAP)


def translate_grid_value(value: Any) -> str:
    """Translate a grid item result."""
    return translate_value(value, GRID_VALUE_MAP)


def field_name(label: str) -> str:
    """Normalize a configured label into a key field name.

    Examples:
        >>> field_name("Sub County")
        'sub_county'

    """
    return re.sub(r"\s+", "_", str(label).strip()).lower()


def variable_name(variable: Any, name: Any) -> str:
    """Variable prefix for grid and camera keys.

    Uses the configured variable name, falling back to the subtest name
    lowercased with whitespace replaced by underscores.
    """
    if variable:
        return str(variable)
    return re.sub(r"\s", "_", str(name or "").lower())


def resolve_zone(name: str | None, default: str = "UTC") -> tzinfo:
    """Return a tzinfo for an IANA zone name, falling back to ``default``."""
    for candidate in (name, default):
        if not candidate:
            continue
        try:
            return ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown time zone '%s', falling back", candidate)
    return UTC


def to_datetime(value: Any, tz: tzinfo = UTC) -> datetime | None:
    """Parse a stored timestamp into an aware datetime.

    Accepts epoch milliseconds (number or numeric string) and ISO 8601
    strings. Naive ISO values are interpreted in ``tz``.

    Returns:
        Aware datetime in ``tz``, or None when the value is absent or
        unparseable.

    """
    if value is None or isinstance(value, bool) or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value if value.tzinfo else value.replace(tzinfo=tz)
        return parsed.astimezone(tz)
    if isinstance(value, int | float) or (isinstance(value, str) and _NUMERIC.match(value)):
        try:
            return datetime.fromtimestamp(float(value) / 1000, tz)
        except (OverflowError, OSError, ValueError):
            logger.debug("Timestamp out of range: %r", value)
            return None
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            logger.debug("Unparseable timestamp: %r", value)
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=tz)
        return parsed.astimezone(tz)
    return None


def format_timestamp(value: Any, tz: tzinfo = UTC, fmt: str = "%H:%M") -> str | None:
    """Format a stored timestamp for a spreadsheet cell, or None if absent."""
    parsed = to_datetime(value, tz)
    if parsed is None:
        return None
    return parsed.strftime(fmt)


__all__ = [
    "GRID_VALUE_MAP",
    "NO_RECORD",
    "SURVEY_VALUE_MAP",
    "field_name",
    "format_timestamp",
    "resolve_zone",
    "to_datetime",
    "translate_grid_value",
    "translate_survey_value",
    "translate_value",
    "variable_name",
]
