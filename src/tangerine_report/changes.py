"""Change-feed processing.

Every change to the source database recomputes the affected output in full:
a changed result reprocesses its row (or its whole trip), a changed workflow
regenerates the workflow header set, and a changed assessment, curriculum,
subtest or question regenerates the owning assessment's header set.

Changes are handled strictly one after another. A failing change is logged
and does not stop the feed.

Usage:
    processor = ChangeProcessor(service)
    follow_changes(config.database.base_db, processor, config.changes)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from tangerine_report.core.config.models import ChangesConfig
from tangerine_report.core.exceptions import DocumentNotFoundError, TangerineReportError
from tangerine_report.service import ReportService
from tangerine_report.store.base import Document

logger = logging.getLogger(__name__)

DEFINITION_COLLECTIONS = frozenset({"assessment", "curriculum", "subtest", "question"})


class ChangeProcessor:
    """Dispatches single change-feed entries to the report service."""

    def __init__(self, service: ReportService) -> None:
        self.service = service

    def owning_assessment(self, doc: Document) -> str | None:
        """Assessment or curriculum id whose header set a definition change affects."""
        collection = doc.get("collection")
        if collection in ("assessment", "curriculum"):
            return doc.get("_id")
        owner = doc.get("assessmentId") or doc.get("curriculumId")
        if owner:
            return str(owner)
        if collection == "question" and doc.get("subtestId"):
            subtest = self.service.store.get_document(str(doc["subtestId"]))
            return subtest.get("assessmentId") or subtest.get("curriculumId")
        return None

    def process(self, change: dict[str, Any]) -> bool:
        """Handle one change.

        Args:
            change: Change-feed row; ``doc`` holds the changed document.

        Returns:
            True if the change produced output, False if it was ignored or
            failed.

        """
        doc = change.get("doc")
        if not isinstance(doc, dict) or change.get("deleted") or doc.get("_deleted"):
            logger.debug("Ignoring change %s", change.get("id"))
            return False

        collection = doc.get("collection")
        doc_id = doc.get("_id", change.get("id"))
        try:
            if collection == "result":
                if doc.get("workflowId") and doc.get("tripId"):
                    self.service.process_workflow_result(str(doc["tripId"]))
                else:
                    self.service.process_result_document(doc)
            elif collection == "workflow":
                self.service.generate_workflow_headers(str(doc_id))
            elif collection in DEFINITION_COLLECTIONS:
                owner = self.owning_assessment(doc)
                if not owner:
                    logger.warning("Change %s (%s) names no assessment", doc_id, collection)
                    return False
                self.service.generate_assessment_headers(str(owner))
            else:
                logger.debug("Ignoring change %s of collection '%s'", doc_id, collection)
                return False
        except DocumentNotFoundError as e:
            logger.warning("Change %s references a missing document: %s", doc_id, e)
            return False
        except TangerineReportError as e:
            logger.error("Failed to process change %s (%s): %s", doc_id, collection, e)
            return False

        logger.info("Processed change %s (%s)", doc_id, collection)
        return True


def poll_changes(
    client: httpx.Client,
    db_url: str,
    since: str,
    timeout_ms: int,
) -> tuple[list[dict[str, Any]], str]:
    """Run one long-poll request against ``_changes``.

    Returns:
        Changes received and the sequence to resume from.

    Raises:
        httpx.HTTPError: On transport or HTTP status failures.

    """
    response = client.get(
        f"{db_url.rstrip('/')}/_changes",
        params={
            "feed": "longpoll",
            "since": since,
            "include_docs": "true",
            "timeout": str(timeout_ms),
        },
    )
    response.raise_for_status()
    body = response.json()
    return list(body.get("results", [])), str(body.get("last_seq", since))


def follow_changes(
    db_url: str,
    processor: ChangeProcessor,
    config: ChangesConfig | None = None,
    *,
    client: httpx.Client | None = None,
    max_polls: int | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Follow the change feed of a database and process each change.

    Args:
        db_url: Source database URL.
        processor: Handler for individual changes.
        config: Feed settings (start sequence, poll timeout, retry delay).
        client: HTTP client; created when omitted.
        max_polls: Stop after this many poll attempts (None runs forever).
        sleep: Delay function used between failed polls.

    Returns:
        Last sequence seen.

    """
    config = config or ChangesConfig()
    # Long polls stay open for poll_timeout_ms, the client must outlast them.
    http = client or httpx.Client(timeout=config.poll_timeout_ms / 1000 + 10)
    since = config.since
    polls = 0
    logger.info("Following changes of %s from %s", db_url, since)
    try:
        while max_polls is None or polls < max_polls:
            polls += 1
            try:
                changes, since = poll_changes(http, db_url, since, config.poll_timeout_ms)
            except httpx.HTTPError as e:
                logger.warning("Change feed poll failed: %s. Retrying in %.1fs", e, config.retry_delay)
                sleep(config.retry_delay)
                continue
            for change in changes:
                processor.process(change)
    finally:
        if client is None:
            http.close()
    return since
