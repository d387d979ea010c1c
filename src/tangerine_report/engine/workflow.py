"""Workflow Composer: one combined row for a workflow trip.

A workflow is an ordered list of assessment, curriculum and message
children. Its header set and its flattened trip result are the
concatenation of the children's outputs in declared order. Assessments and
curricula are counted independently; each child is flattened with its own
fresh occurrence counters.

Usage:
    composer = WorkflowComposer(HeaderEngine(store), ResultEngine(store))
    headers = composer.compose_headers(workflow_doc)
    flat = composer.compose_results(workflow_doc, store.get_trip_results(trip_id))
"""

import logging
from collections import defaultdict
from typing import Any

from tangerine_report.core.exceptions import DocumentNotFoundError, MalformedInputError
from tangerine_report.engine.headers import HeaderEngine
from tangerine_report.engine.results import FlatResult, ResultEngine, collection_id_of
from tangerine_report.engine.types import ColumnHeader, ColumnKey, occurrence_suffix

logger = logging.getLogger(__name__)

ASSESSMENT_CHILD = "assessment"
CURRICULUM_CHILD = "curriculum"
MESSAGE_CHILD = "message"


def workflow_id_of(workflow_doc: dict[str, Any]) -> str:
    """Id of a workflow document."""
    workflow_id = workflow_doc.get("_id") or workflow_doc.get("workflowId")
    if not workflow_id:
        raise MalformedInputError("Workflow document has no _id")
    return str(workflow_id)


def workflow_children(workflow_doc: dict[str, Any]) -> list[dict[str, Any]]:
    """Declared children of a workflow, in order."""
    children = workflow_doc.get("children") or []
    if not isinstance(children, list):
        return []
    return [child for child in children if isinstance(child, dict)]


def message_key(workflow_id: str, count: int) -> ColumnKey:
    """Key of the ``count``-th message child of a workflow."""
    return ColumnKey(workflow_id, "message", occurrence_suffix(count))


class WorkflowComposer:
    """Composes workflow header sets and trip results from their children."""

    def __init__(self, header_engine: HeaderEngine, result_engine: ResultEngine) -> None:
        self.header_engine = header_engine
        self.result_engine = result_engine

    def compose_headers(self, workflow_doc: dict[str, Any]) -> list[ColumnHeader]:
        """Build the header set of a workflow.

        Raises:
            DocumentNotFoundError: If a child assessment or curriculum is
                missing; no partial header set is returned.

        """
        workflow_id = workflow_id_of(workflow_doc)
        counts: dict[str, int] = defaultdict(int)
        headers: list[ColumnHeader] = []

        for child in workflow_children(workflow_doc):
            child_type = child.get("type")
            if child_type in (ASSESSMENT_CHILD, CURRICULUM_CHILD):
                headers.extend(
                    self.header_engine.build_assessment_headers(
                        str(child.get("typesId", "")), counts[child_type]
                    )
                )
            elif child_type == MESSAGE_CHILD:
                key = message_key(workflow_id, counts[child_type])
                headers.append(ColumnHeader.from_key(key))
            else:
                logger.warning("Skipping workflow %s child of unknown type '%s'", workflow_id, child_type)
                continue
            counts[child_type] += 1

        logger.debug("Composed %d headers for workflow %s", len(headers), workflow_id)
        return headers

    def compose_results(
        self,
        workflow_doc: dict[str, Any],
        trip_results: list[dict[str, Any]],
    ) -> FlatResult:
        """Flatten the results of one workflow trip into a single row.

        The n-th child referencing an assessment is paired with the n-th
        trip result of that assessment. Timestamps of every child are
        validated together for the workflow-wide start, end and validity.

        Args:
            workflow_doc: Workflow definition.
            trip_results: Result documents recorded during the trip.

        Returns:
            FlatResult keyed by the workflow id and saved under the trip id.

        Raises:
            DocumentNotFoundError: If a child has no result in the trip.

        """
        workflow_id = workflow_id_of(workflow_doc)
        by_collection: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for doc in trip_results:
            by_collection[collection_id_of(doc)].append(doc)
        used: dict[str, int] = defaultdict(int)

        counts: dict[str, int] = defaultdict(int)
        flat = FlatResult(
            collection_id=workflow_id,
            ref=str(trip_results[0].get("tripId", "")) if trip_results else "",
            time_zone=self.result_engine.config.time_zone,
        )

        for child in workflow_children(workflow_doc):
            child_type = child.get("type")
            if child_type in (ASSESSMENT_CHILD, CURRICULUM_CHILD):
                types_id = str(child.get("typesId", ""))
                available = by_collection.get(types_id, [])
                if used[types_id] >= len(available):
                    raise DocumentNotFoundError(
                        f"Trip {flat.ref or '<unknown>'} has no result for {child_type} {types_id}",
                        doc_id=types_id,
                    )
                doc = available[used[types_id]]
                used[types_id] += 1
                child_flat = self.result_engine.flatten_result(doc, counts[child_type], validate=False)
                flat.values.update(child_flat.values)
                flat.timestamps.extend(child_flat.timestamps)
                flat.time_zone = child_flat.time_zone
            elif child_type == MESSAGE_CHILD:
                key = message_key(workflow_id, counts[child_type])
                flat.values[key.render()] = child.get("message", child.get("name", ""))
            else:
                logger.warning("Skipping workflow %s child of unknown type '%s'", workflow_id, child_type)
                continue
            counts[child_type] += 1

        flat.timestamps.sort()
        if flat.timestamps:
            flat.start_time = flat.timestamps[0]
            flat.end_time = flat.timestamps[-1]
        self.result_engine.apply_validation(flat)
        logger.debug(
            "Composed trip %s of workflow %s: %d values, valid=%s",
            flat.ref,
            workflow_id,
            len(flat.values),
            flat.is_valid,
        )
        return flat
