"""In-memory document store.

Backs tests and offline runs against a JSON or YAML dump of a database.
Query semantics follow the CouchDB views used by CouchDocumentStore.
"""

import copy
import json
import logging
from collections.abc import Iterable
from pathlib import Path

import yaml

from tangerine_report.core.exceptions import DocumentNotFoundError, StoreError
from tangerine_report.store.base import Document, DocumentStore, order_rank

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed DocumentStore.

    Documents are deep-copied on the way in and out so callers can never
    mutate stored state.

    Attributes:
        documents: Stored documents keyed by ``_id``.

    """

    def __init__(self, documents: Iterable[Document] = ()) -> None:
        self.documents: dict[str, Document] = {}
        self._revision = 0
        for doc in documents:
            if "_id" not in doc:
                raise StoreError("Document without _id cannot be stored")
            self.documents[str(doc["_id"])] = copy.deepcopy(doc)

    @classmethod
    def from_file(cls, path: Path) -> "InMemoryDocumentStore":
        """Load documents from a JSON or YAML file.

        The file holds either a list of documents or a CouchDB
        ``_all_docs?include_docs=true`` response.

        Raises:
            StoreError: If the file cannot be read or parsed.

        """
        try:
            text = path.read_text(encoding="utf-8")
            data = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise StoreError(f"Cannot load documents from {path}: {e}") from e

        if isinstance(data, dict) and "rows" in data:
            data = [row["doc"] for row in data["rows"] if row.get("doc")]
        if not isinstance(data, list):
            raise StoreError(f"{path} must contain a list of documents")
        logger.debug("Loaded %d documents from %s", len(data), path)
        return cls(data)

    def get_document(self, doc_id: str) -> Document:
        try:
            return copy.deepcopy(self.documents[doc_id])
        except KeyError:
            raise DocumentNotFoundError(f"Document not found: {doc_id}", doc_id=doc_id) from None

    def _where(self, **criteria: str) -> list[Document]:
        return [
            copy.deepcopy(doc)
            for doc in self.documents.values()
            if all(doc.get(name) == value for name, value in criteria.items())
        ]

    def get_collection(self, collection: str) -> list[Document]:
        return self._where(collection=collection)

    def get_subtests_by_assessment(self, assessment_id: str) -> list[Document]:
        subtests = self._where(collection="subtest", assessmentId=assessment_id)
        return sorted(subtests, key=order_rank)

    def get_questions_by_subtest(self, subtest_id: str) -> list[Document]:
        questions = self._where(collection="question", subtestId=subtest_id)
        return sorted(questions, key=order_rank)

    def get_all_results(self) -> list[Document]:
        return self._where(collection="result")

    def get_trip_results(self, trip_id: str) -> list[Document]:
        results = self._where(collection="result", tripId=trip_id)
        return sorted(results, key=lambda doc: str(doc.get("start_time", "")))

    def save_document(self, doc_id: str, doc: Document) -> Document:
        self._revision += 1
        stored = copy.deepcopy(doc)
        stored["_id"] = doc_id
        stored["_rev"] = f"{self._revision}-memory"
        self.documents[doc_id] = stored
        return {"ok": True, "id": doc_id, "rev": stored["_rev"]}
