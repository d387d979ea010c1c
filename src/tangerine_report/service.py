"""Report service: runs the engines against stores and persists the output.

Every operation computes its complete output in memory before writing, so
a pass that fails half way persists nothing.

Usage:
    from tangerine_report.service import build_service

    with build_service(get_config()) as service:
        service.generate_assessment_headers("assessment-1")
        service.process_assessment_result("result-42")
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from tangerine_report.core.config.models import ReportConfig
from tangerine_report.core.exceptions import DocumentNotFoundError, TangerineReportError
from tangerine_report.engine.headers import HeaderEngine
from tangerine_report.engine.results import ResultEngine
from tangerine_report.engine.validation import SchoolHoursValidator, TimeWindowValidator
from tangerine_report.engine.workflow import WorkflowComposer
from tangerine_report.export.csv_writer import write_csv
from tangerine_report.store.base import Document, DocumentStore
from tangerine_report.store.couch import CouchDocumentStore

logger = logging.getLogger(__name__)

HEADER_SOURCE_COLLECTIONS = ("assessment", "curriculum")


@dataclass
class BatchSummary:
    """Outcome of a batch run.

    Attributes:
        processed: Ids saved successfully.
        failed: Ids that failed, with the error message.

    """

    processed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "processed": len(self.processed),
            "failed": len(self.failed),
            "errors": dict(self.failed),
        }


class ReportService:
    """Generates and persists header sets and processed results.

    Attributes:
        store: Source database.
        result_store: Database receiving header sets and result records.
        header_engine: Header Engine bound to ``store``.
        result_engine: Result Engine bound to ``store``.
        composer: Workflow Composer over both engines.

    """

    def __init__(
        self,
        store: DocumentStore,
        result_store: DocumentStore,
        config: ReportConfig | None = None,
        validator: TimeWindowValidator | None = None,
    ) -> None:
        self.config = config or ReportConfig()
        self.store = store
        self.result_store = result_store
        self.header_engine = HeaderEngine(
            store, strict_prototypes=self.config.engine.strict_prototypes
        )
        self.result_engine = ResultEngine(
            store,
            validator or SchoolHoursValidator(self.config.validation),
            self.config.engine,
        )
        self.composer = WorkflowComposer(self.header_engine, self.result_engine)

    def __enter__(self) -> ReportService:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Release store connections."""
        for store in (self.store, self.result_store):
            close = getattr(store, "close", None)
            if close is not None:
                close()

    # Header sets

    def generate_assessment_headers(self, assessment_id: str) -> Document:
        """Build and save the header set of an assessment or curriculum."""
        headers = self.header_engine.build_assessment_headers(assessment_id)
        response = self.result_store.save_header_set(assessment_id, headers)
        logger.info("Saved %d headers for assessment %s", len(headers), assessment_id)
        return response

    def generate_workflow_headers(self, workflow_id: str) -> Document:
        """Build and save the header set of a workflow."""
        workflow_doc = self.store.get_document(workflow_id)
        headers = self.composer.compose_headers(workflow_doc)
        response = self.result_store.save_header_set(workflow_id, headers)
        logger.info("Saved %d headers for workflow %s", len(headers), workflow_id)
        return response

    def generate_all_assessment_headers(self) -> BatchSummary:
        """Regenerate header sets of every assessment and curriculum."""
        ids = [
            str(doc["_id"])
            for collection in HEADER_SOURCE_COLLECTIONS
            for doc in self.store.get_collection(collection)
        ]
        return self._run_batch(ids, self.generate_assessment_headers)

    def generate_all_workflow_headers(self) -> BatchSummary:
        """Regenerate header sets of every workflow."""
        ids = [str(doc["_id"]) for doc in self.store.get_collection("workflow")]
        return self._run_batch(ids, self.generate_workflow_headers)

    # Results

    def process_result_document(self, result_doc: Document) -> Document:
        """Flatten and save one result; trip results reprocess their whole trip."""
        trip_id = result_doc.get("tripId")
        if result_doc.get("workflowId") and trip_id:
            return self.process_workflow_result(str(trip_id))

        flat = self.result_engine.flatten_result(result_doc)
        response = self.result_store.save_result_record(flat.ref, flat.to_record())
        logger.info("Saved result %s (valid=%s)", flat.ref, flat.is_valid)
        return response

    def process_assessment_result(self, result_id: str) -> Document:
        """Fetch, flatten and save one result document."""
        return self.process_result_document(self.store.get_result_document(result_id))

    def process_workflow_result(self, trip_id: str) -> Document:
        """Compose and save the combined row of a workflow trip.

        Raises:
            DocumentNotFoundError: If the trip has no results, or its
                workflow or a child result is missing.

        """
        trip_results = self.store.get_trip_results(trip_id)
        if not trip_results:
            raise DocumentNotFoundError(f"No results recorded for trip {trip_id}", doc_id=trip_id)
        workflow_id = next((doc["workflowId"] for doc in trip_results if doc.get("workflowId")), None)
        if workflow_id is None:
            raise DocumentNotFoundError(f"Trip {trip_id} has no workflowId", doc_id=trip_id)

        workflow_doc = self.store.get_document(str(workflow_id))
        flat = self.composer.compose_results(workflow_doc, trip_results)
        flat.ref = trip_id
        response = self.result_store.save_result_record(trip_id, flat.to_record())
        logger.info("Saved trip %s of workflow %s (valid=%s)", trip_id, workflow_id, flat.is_valid)
        return response

    def process_all_results(self) -> BatchSummary:
        """Reprocess every result; each trip is processed once."""
        summary = BatchSummary()
        seen_trips: set[str] = set()
        for doc in self.store.get_all_results():
            trip_id = doc.get("tripId")
            if doc.get("workflowId") and trip_id:
                if trip_id in seen_trips:
                    continue
                seen_trips.add(str(trip_id))
            ref = str(trip_id or doc.get("_id", ""))
            try:
                self.process_result_document(doc)
            except TangerineReportError as e:
                logger.error("Failed to process result %s: %s", ref, e)
                summary.failed[ref] = str(e)
            else:
                summary.processed.append(ref)
        return summary

    # Export

    def export_csv(self, header_id: str, result_ids: Iterable[str], path: Path) -> int:
        """Write saved results as CSV using a saved header set.

        Args:
            header_id: Assessment or workflow id the header set is saved under.
            result_ids: Ids of processed result records.
            path: Output file.

        Returns:
            Number of rows written.

        """
        header_doc = self.result_store.get_document(header_id)
        rows = [
            self.result_store.get_document(result_id).get("processed_results") or {}
            for result_id in result_ids
        ]
        return write_csv(header_doc.get("column_headers") or [], rows, path)

    def _run_batch(self, ids: list[str], operation: Any) -> BatchSummary:
        summary = BatchSummary()
        for doc_id in ids:
            try:
                operation(doc_id)
            except TangerineReportError as e:
                logger.error("Failed to process %s: %s", doc_id, e)
                summary.failed[doc_id] = str(e)
            else:
                summary.processed.append(doc_id)
        logger.info("Batch complete: %d processed, %d failed", len(summary.processed), len(summary.failed))
        return summary


def build_service(config: ReportConfig) -> ReportService:
    """Create a ReportService over the CouchDB databases named in config."""
    timeout = config.database.timeout
    return ReportService(
        CouchDocumentStore(config.database.base_db, timeout=timeout),
        CouchDocumentStore(config.database.result_db, timeout=timeout),
        config,
    )
