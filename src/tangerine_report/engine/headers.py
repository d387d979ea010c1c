"""Header Engine: column descriptors for an assessment.

The ordered descriptor list is the canonical column order of the exported
spreadsheet. It starts with five assessment-level columns, continues with
each subtest's columns in rank order, and ends with ``end_time``.

Usage:
    from tangerine_report.engine.headers import HeaderEngine

    engine = HeaderEngine(store)
    headers = engine.build_assessment_headers("assessment-1")
    store.save_header_set("assessment-1", headers)
"""

import logging
from typing import Any

from tangerine_report.engine.handlers import GridItemLookup, HeaderContext, handler_for
from tangerine_report.engine.types import ColumnHeader, ColumnKey, SubtestCounts, occurrence_suffix
from tangerine_report.store.base import DocumentStore, order_rank

logger = logging.getLogger(__name__)

ASSESSMENT_FIELDS: tuple[str, ...] = (
    "assessment_id",
    "assessment_name",
    "enumerator",
    "start_time",
    "order_map",
)


def result_grid_items(store: DocumentStore) -> GridItemLookup:
    """Build the default grid item lookup backed by collected results.

    Grid item labels are only recorded in result documents. The lookup uses
    the first result of the assessment containing the grid subtest, and
    falls back to the ``items`` list of the subtest definition when no
    result exists yet.
    """

    def lookup(assessment_id: str, subtest: dict[str, Any]) -> list[str]:
        subtest_id = subtest.get("_id")
        results = store.get_all_results_matching(
            lambda doc: (doc.get("assessmentId") or doc.get("curriculumId")) == assessment_id
        )
        for doc in results:
            entries = doc.get("subtestData") or []
            if isinstance(entries, dict):
                entries = [entries]
            for entry in entries:
                if not isinstance(entry, dict) or entry.get("subtestId") != subtest_id:
                    continue
                items = (entry.get("data") or {}).get("items")
                if isinstance(items, list):
                    return [
                        str(item["itemLabel"])
                        for item in items
                        if isinstance(item, dict) and item.get("itemLabel") is not None
                    ]

        definition_items = subtest.get("items")
        if isinstance(definition_items, list):
            logger.debug("No result for grid %s yet, using definition items", subtest_id)
            return [str(item) for item in definition_items]
        logger.warning("No items found for grid %s of assessment %s", subtest_id, assessment_id)
        return []

    return lookup


class HeaderEngine:
    """Builds ordered column descriptors for assessments and curricula.

    Attributes:
        store: Source of assessment, subtest and question definitions.
        grid_items: Item label lookup for grid subtests.
        strict_prototypes: Raise on unknown prototypes instead of skipping.

    """

    def __init__(
        self,
        store: DocumentStore,
        grid_items: GridItemLookup | None = None,
        strict_prototypes: bool = False,
    ) -> None:
        self.store = store
        self.grid_items = grid_items or result_grid_items(store)
        self.strict_prototypes = strict_prototypes

    def build_assessment_headers(self, assessment_id: str, count: int = 0) -> list[ColumnHeader]:
        """Build the header set of one assessment.

        Args:
            assessment_id: Assessment or curriculum id.
            count: Occurrence of this assessment within an enclosing workflow;
                suffixes the assessment-level columns.

        Returns:
            Ordered column descriptors.

        Raises:
            DocumentNotFoundError: If the assessment does not exist.
            StoreError: If the store cannot be read.
            UnknownPrototypeError: In strict mode, for unknown prototypes.

        """
        self.store.get_assessment(assessment_id)
        suffix = occurrence_suffix(count)

        headers = [
            ColumnHeader.from_key(ColumnKey(assessment_id, name, suffix))
            for name in ASSESSMENT_FIELDS
        ]

        subtests = sorted(self.store.get_subtests_by_assessment(assessment_id), key=order_rank)
        counts = SubtestCounts()
        ctx = HeaderContext(assessment_id=assessment_id, store=self.store, grid_items=self.grid_items)

        for subtest in subtests:
            subtest_id = str(subtest.get("_id", ""))
            handler = handler_for(subtest.get("prototype"), subtest_id, self.strict_prototypes)
            if handler is None:
                continue
            headers.extend(handler.create_headers(subtest, counts, ctx))

        headers.append(ColumnHeader.from_key(ColumnKey(assessment_id, "end_time", suffix)))
        logger.debug(
            "Built %d headers for %s from %d subtests",
            len(headers),
            assessment_id,
            len(subtests),
        )
        return headers
