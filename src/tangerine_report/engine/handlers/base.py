"""Abstract base class for prototype handlers.

Each supported prototype has exactly one handler providing both halves of
the transformation: ``create_headers`` turns a subtest definition into
column descriptors, ``process_result`` turns the matching entry of a result
document into key/value pairs. Both receive the pass's SubtestCounts by
reference and advance it exactly once per processed subtest.

Usage:
    from tangerine_report.engine.handlers.base import PrototypeHandler

    class MyHandler(PrototypeHandler):
        prototype = Prototype.CONSENT

        def header_fields(self, subtest, ctx):
            return [("consent", None)]

        def result_values(self, entry, data, ctx):
            return {"consent": data.get("consent")}
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo
from typing import TYPE_CHECKING, Any

from tangerine_report.engine.types import (
    ColumnHeader,
    ColumnKey,
    Prototype,
    SubtestCounts,
    timestamp_key,
)
from tangerine_report.engine.values import format_timestamp, to_datetime

if TYPE_CHECKING:
    from tangerine_report.engine.locations import LocationResolver
    from tangerine_report.store.base import DocumentStore

logger = logging.getLogger(__name__)

GridItemLookup = Callable[[str, dict[str, Any]], list[str]]


@dataclass
class HeaderContext:
    """State shared by header handlers during one assessment pass.

    Attributes:
        assessment_id: Assessment whose headers are being built.
        store: Document store for question lookups.
        grid_items: Lookup returning item labels for a grid subtest.
        grid_expanded: Set once the first grid subtest has been expanded.
        grid_item_cache: Item labels already looked up, by subtest id.

    """

    assessment_id: str
    store: DocumentStore
    grid_items: GridItemLookup
    grid_expanded: bool = False
    grid_item_cache: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class ResultContext:
    """State shared by result handlers during one result pass.

    Attributes:
        collection_id: Assessment or curriculum id of the result.
        tz: Time zone used to render timestamps.
        time_format: strftime format for timestamp cells.
        locations: Resolver for location ids, when a location list exists.
        timestamps: Every parsed subtest timestamp seen in the pass.

    """

    collection_id: str
    tz: tzinfo = UTC
    time_format: str = "%H:%M"
    locations: LocationResolver | None = None
    timestamps: list[datetime] = field(default_factory=list)


class PrototypeHandler(ABC):
    """Header and result handler pair for one prototype."""

    prototype: Prototype

    # Header side

    def header_timestamp_cost(self, subtest: dict[str, Any], ctx: HeaderContext) -> int:
        """Amount the shared timestamp counter advances for this subtest."""
        return 1

    @abstractmethod
    def header_fields(
        self,
        subtest: dict[str, Any],
        ctx: HeaderContext,
    ) -> list[tuple[str, str | None]]:
        """Return ``(field, display_label)`` pairs for the subtest.

        A None display label means the suffixed field name is used.
        """
        ...

    def create_headers(
        self,
        subtest: dict[str, Any],
        counts: SubtestCounts,
        ctx: HeaderContext,
    ) -> list[ColumnHeader]:
        """Build descriptors for one subtest and advance the counters.

        Args:
            subtest: Subtest definition document.
            counts: Occurrence counters of the current pass.
            ctx: Header pass context.

        Returns:
            Suffixed field descriptors followed by the timestamp descriptors.

        """
        subtest_id = str(subtest.get("_id", ""))
        fields = self.header_fields(subtest, ctx)
        cost = self.header_timestamp_cost(subtest, ctx)
        first_timestamp = counts.next_timestamp
        suffix = counts.increment(self.prototype, cost)

        headers = []
        for name, display in fields:
            key = ColumnKey(subtest_id, name, suffix)
            headers.append(ColumnHeader.from_key(key, f"{display}{suffix}" if display else None))
        for index in range(first_timestamp, first_timestamp + cost):
            headers.append(ColumnHeader.from_key(timestamp_key(subtest_id, index)))
        return headers

    # Result side

    def result_timestamp_cost(self, entry: dict[str, Any], data: dict[str, Any]) -> int:
        """Amount the shared timestamp counter advances for this result entry."""
        return 1

    @abstractmethod
    def result_values(
        self,
        entry: dict[str, Any],
        data: dict[str, Any],
        ctx: ResultContext,
    ) -> dict[str, Any]:
        """Return field values for the entry, keyed by unsuffixed field name."""
        ...

    def raw_timestamp(self, entry: dict[str, Any], data: dict[str, Any]) -> Any:
        """Stored timestamp of the entry (subtest level, then data level)."""
        value = entry.get("timestamp")
        if value is None:
            value = data.get("timestamp")
        return value

    def process_result(
        self,
        entry: dict[str, Any],
        counts: SubtestCounts,
        ctx: ResultContext,
    ) -> dict[str, Any]:
        """Flatten one result entry and advance the counters.

        Args:
            entry: ``subtestData`` entry of a result document.
            counts: Occurrence counters of the current pass.
            ctx: Result pass context; receives the parsed timestamp.

        Returns:
            Mapping of rendered keys to values, timestamp last.

        """
        subtest_id = str(entry.get("subtestId", ""))
        data = entry.get("data")
        if not isinstance(data, dict):
            logger.debug("Subtest %s has no data object", subtest_id)
            data = {}

        values = self.result_values(entry, data, ctx)
        cost = self.result_timestamp_cost(entry, data)
        timestamp_index = counts.next_timestamp
        suffix = counts.increment(self.prototype, cost)

        result: dict[str, Any] = {}
        for name, value in values.items():
            result[ColumnKey(subtest_id, name, suffix).render()] = value

        raw = self.raw_timestamp(entry, data)
        parsed = to_datetime(raw, ctx.tz)
        if parsed is not None:
            ctx.timestamps.append(parsed)
        result[timestamp_key(subtest_id, timestamp_index).render()] = format_timestamp(
            raw, ctx.tz, ctx.time_format
        )
        return result
