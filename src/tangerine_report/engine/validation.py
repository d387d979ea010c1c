"""Time-window validation of collected results.

The flattening engines hand every subtest timestamp of a result (or of a
whole workflow trip) to a TimeWindowValidator. Validation never raises:
failures come back as ``is_valid=False`` with a reason for downstream review.

Usage:
    validator = SchoolHoursValidator(ValidationWindowConfig())
    outcome = validator.validate("assessment-1", "Africa/Nairobi", timestamps)
    if not outcome.is_valid:
        print(outcome.reason)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta

from tangerine_report.core.config.models import ValidationWindowConfig
from tangerine_report.engine.values import resolve_zone

logger = logging.getLogger(__name__)

REASON_NO_TIMESTAMPS = "no timestamps"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a time-window check.

    Attributes:
        is_valid: Whether the result passed every check.
        reason: Semicolon separated failure reasons, empty when valid.
        start_time: Earliest timestamp, or None without timestamps.
        end_time: Latest timestamp, or None without timestamps.

    """

    is_valid: bool
    reason: str
    start_time: datetime | None
    end_time: datetime | None


class TimeWindowValidator(ABC):
    """Contract for result time-window validation."""

    @abstractmethod
    def validate(
        self,
        collection_id: str,
        time_zone: str | None,
        sorted_timestamps: list[datetime],
    ) -> ValidationResult:
        """Validate the timestamps collected for one result row.

        Args:
            collection_id: Assessment, curriculum or workflow id.
            time_zone: IANA zone the checks are evaluated in.
            sorted_timestamps: Aware datetimes in ascending order.

        Returns:
            ValidationResult with start and end times set when available.

        """
        ...


class SchoolHoursValidator(TimeWindowValidator):
    """Accept results captured on school days within school hours.

    Checks, in the group's local time: the first timestamp is not before
    ``earliest_start``, the last is not after ``latest_end``, capture happened
    on a weekday (when ``weekdays_only``), and the session lasted at least
    ``min_duration_minutes``.
    """

    def __init__(self, window: ValidationWindowConfig | None = None) -> None:
        self.window = window or ValidationWindowConfig()

    def validate(
        self,
        collection_id: str,
        time_zone: str | None,
        sorted_timestamps: list[datetime],
    ) -> ValidationResult:
        if not sorted_timestamps:
            logger.debug("No timestamps for %s", collection_id)
            return ValidationResult(False, REASON_NO_TIMESTAMPS, None, None)

        tz = resolve_zone(time_zone)
        start = sorted_timestamps[0].astimezone(tz)
        end = sorted_timestamps[-1].astimezone(tz)
        window = self.window

        reasons = []
        if start.time() < window.earliest_start:
            reasons.append(f"started before {window.earliest_start.strftime('%H:%M')}")
        if end.time() > window.latest_end or end.date() != start.date():
            reasons.append(f"ended after {window.latest_end.strftime('%H:%M')}")
        if window.weekdays_only and start.weekday() >= 5:
            reasons.append("captured on a weekend")
        if end - start < timedelta(minutes=window.min_duration_minutes):
            reasons.append(f"shorter than {window.min_duration_minutes} minutes")

        if reasons:
            logger.debug("Result %s invalid: %s", collection_id, "; ".join(reasons))
        return ValidationResult(not reasons, "; ".join(reasons), start, end)
