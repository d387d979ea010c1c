"""Datetime prototype: assessment date and time of day."""

from typing import Any

from tangerine_report.engine.handlers.base import (
    HeaderContext,
    PrototypeHandler,
    ResultContext,
)
from tangerine_report.engine.types import Prototype

# Result data field for each column
DATETIME_FIELDS: tuple[tuple[str, str], ...] = (
    ("year", "year"),
    ("month", "month"),
    ("day", "day"),
    ("assess_time", "time"),
)


class DatetimeHandler(PrototypeHandler):
    """Handler for ``datetime`` subtests."""

    prototype = Prototype.DATETIME

    def header_fields(
        self,
        subtest: dict[str, Any],
        ctx: HeaderContext,
    ) -> list[tuple[str, str | None]]:
        return [(column, None) for column, _ in DATETIME_FIELDS]

    def result_values(
        self,
        entry: dict[str, Any],
        data: dict[str, Any],
        ctx: ResultContext,
    ) -> dict[str, Any]:
        return {column: data.get(source) for column, source in DATETIME_FIELDS}
