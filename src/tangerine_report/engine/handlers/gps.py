"""GPS prototype: device geolocation reading."""

from typing import Any

from tangerine_report.engine.handlers.base import (
    HeaderContext,
    PrototypeHandler,
    ResultContext,
)
from tangerine_report.engine.types import Prototype

# Column name -> result data field, in column order
GPS_FIELDS: tuple[tuple[str, str], ...] = (
    ("latitude", "lat"),
    ("longitude", "long"),
    ("accuracy", "acc"),
    ("altitude", "alt"),
    ("altitudeAccuracy", "altAcc"),
    ("heading", "heading"),
    ("speed", "speed"),
)


class GpsHandler(PrototypeHandler):
    """Handler for ``gps`` subtests."""

    prototype = Prototype.GPS

    def header_fields(
        self,
        subtest: dict[str, Any],
        ctx: HeaderContext,
    ) -> list[tuple[str, str | None]]:
        return [(column, None) for column, _ in GPS_FIELDS]

    def result_values(
        self,
        entry: dict[str, Any],
        data: dict[str, Any],
        ctx: ResultContext,
    ) -> dict[str, Any]:
        return {column: data.get(source) for column, source in GPS_FIELDS}

    def raw_timestamp(self, entry: dict[str, Any], data: dict[str, Any]) -> Any:
        # The reading's own timestamp wins over the subtest save time
        value = data.get("timestamp")
        if value is None:
            value = entry.get("timestamp")
        return value
