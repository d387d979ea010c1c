"""Location prototype: one column per configured location level."""

import logging
from typing import Any

from tangerine_report.engine.handlers.base import (
    HeaderContext,
    PrototypeHandler,
    ResultContext,
)
from tangerine_report.engine.types import Prototype
from tangerine_report.engine.values import field_name

logger = logging.getLogger(__name__)


def _labels(source: dict[str, Any], subtest_id: str) -> list[str]:
    labels = source.get("labels")
    if isinstance(labels, str):
        labels = [part for part in labels.split(",") if part.strip()]
    if not isinstance(labels, list) or not labels:
        logger.warning("Location subtest %s has no labels", subtest_id)
        return []
    return [str(label) for label in labels]


class LocationHandler(PrototypeHandler):
    """Handler for ``location`` subtests."""

    prototype = Prototype.LOCATION

    def header_fields(
        self,
        subtest: dict[str, Any],
        ctx: HeaderContext,
    ) -> list[tuple[str, str | None]]:
        labels = _labels(subtest, str(subtest.get("_id", "")))
        return [(field_name(label), label.strip()) for label in labels]

    def result_values(
        self,
        entry: dict[str, Any],
        data: dict[str, Any],
        ctx: ResultContext,
    ) -> dict[str, Any]:
        labels = _labels(data, str(entry.get("subtestId", "")))
        location = data.get("location")
        if not isinstance(location, list):
            location = []

        values: dict[str, Any] = {}
        for index, label in enumerate(labels):
            location_id = location[index] if index < len(location) else None
            if location_id is not None and ctx.locations is not None:
                values[field_name(label)] = ctx.locations.resolve(location_id)
            else:
                values[field_name(label)] = location_id
        return values
