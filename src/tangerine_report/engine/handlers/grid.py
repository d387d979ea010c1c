"""Grid prototype: timed item grid (letters, words, numbers).

Headers expand only the first grid subtest of an assessment; later grids
emit no columns but still advance the counters, so the timestamp numbering
of the subtests after them matches the result side. Results expand every
grid.
Item labels for headers are not part of the subtest schema and come from
the injected ``GridItemLookup``.
"""

import logging
from typing import Any

from tangerine_report.engine.handlers.base import (
    HeaderContext,
    PrototypeHandler,
    ResultContext,
)
from tangerine_report.engine.types import ColumnHeader, Prototype, SubtestCounts
from tangerine_report.engine.values import translate_grid_value, variable_name

logger = logging.getLogger(__name__)

GRID_FIELDS: tuple[str, ...] = (
    "auto_stop",
    "time_remain",
    "capture_item_at_time",
    "attempted",
    "time_intermediate_captured",
    "time_allowed",
)


def _items(data: dict[str, Any]) -> list[dict[str, Any]]:
    items = data.get("items")
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


class GridHandler(PrototypeHandler):
    """Handler for ``grid`` subtests."""

    prototype = Prototype.GRID

    def create_headers(
        self,
        subtest: dict[str, Any],
        counts: SubtestCounts,
        ctx: HeaderContext,
    ) -> list[ColumnHeader]:
        if ctx.grid_expanded:
            logger.info(
                "Skipping headers for grid %s: only the first grid of assessment %s is expanded",
                subtest.get("_id"),
                ctx.assessment_id,
            )
            # Results still count this grid; later timestamp keys must line up.
            counts.increment(self.prototype, self.header_timestamp_cost(subtest, ctx))
            return []
        ctx.grid_expanded = True
        return super().create_headers(subtest, counts, ctx)

    def _item_labels(self, subtest: dict[str, Any], ctx: HeaderContext) -> list[str]:
        subtest_id = str(subtest.get("_id", ""))
        if subtest_id not in ctx.grid_item_cache:
            ctx.grid_item_cache[subtest_id] = list(ctx.grid_items(ctx.assessment_id, subtest))
        return ctx.grid_item_cache[subtest_id]

    def header_timestamp_cost(self, subtest: dict[str, Any], ctx: HeaderContext) -> int:
        return max(1, len(self._item_labels(subtest, ctx)))

    def header_fields(
        self,
        subtest: dict[str, Any],
        ctx: HeaderContext,
    ) -> list[tuple[str, str | None]]:
        var = variable_name(subtest.get("variableName"), subtest.get("name"))
        fields: list[tuple[str, str | None]] = [(f"{var}_{name}", None) for name in GRID_FIELDS]
        fields.extend((f"{var}_{label}", None) for label in self._item_labels(subtest, ctx))
        return fields

    def result_timestamp_cost(self, entry: dict[str, Any], data: dict[str, Any]) -> int:
        return max(1, len(_items(data)))

    def result_values(
        self,
        entry: dict[str, Any],
        data: dict[str, Any],
        ctx: ResultContext,
    ) -> dict[str, Any]:
        var = variable_name(data.get("variable_name"), entry.get("name"))
        values: dict[str, Any] = {f"{var}_{name}": data.get(name) for name in GRID_FIELDS}
        for item in _items(data):
            label = item.get("itemLabel")
            if label is None:
                logger.debug("Grid %s item without label", entry.get("subtestId"))
                continue
            values[f"{var}_{label}"] = translate_grid_value(item.get("itemResult"))
        return values
