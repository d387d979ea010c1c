"""Abstract base class for document stores.

The flattening engines never perform I/O themselves; every document they
need is fetched through a DocumentStore. Implementations return already
parsed documents (plain dicts) and raise DocumentNotFoundError for absent
documents and StoreError for transport failures.

Usage:
    from tangerine_report.store.base import DocumentStore

    class MyStore(DocumentStore):
        def get_document(self, doc_id):
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import Any

from tangerine_report.core.exceptions import DocumentNotFoundError

LOCATION_LIST_ID = "location-list"

Document = dict[str, Any]
ResultPredicate = Callable[[Document], bool]


def order_rank(doc: Document) -> int:
    """Sort key for subtests and questions (``order`` field, missing last-safe)."""
    try:
        return int(doc.get("order", 0) or 0)
    except (TypeError, ValueError):
        return 0


class DocumentStore(ABC):
    """Read and write access to source documents and reporting artifacts."""

    # Reads

    @abstractmethod
    def get_document(self, doc_id: str) -> Document:
        """Fetch any document by id.

        Raises:
            DocumentNotFoundError: If no document has this id.
            StoreError: If the store cannot be reached.

        """
        ...

    @abstractmethod
    def get_collection(self, collection: str) -> list[Document]:
        """Fetch all documents of a collection type (assessment, workflow...)."""
        ...

    @abstractmethod
    def get_subtests_by_assessment(self, assessment_id: str) -> list[Document]:
        """Fetch the subtests of an assessment ordered by rank."""
        ...

    @abstractmethod
    def get_questions_by_subtest(self, subtest_id: str) -> list[Document]:
        """Fetch the questions of a survey subtest ordered by rank."""
        ...

    @abstractmethod
    def get_all_results(self) -> list[Document]:
        """Fetch every result document."""
        ...

    @abstractmethod
    def get_trip_results(self, trip_id: str) -> list[Document]:
        """Fetch the result documents recorded during one workflow trip."""
        ...

    def get_assessment(self, assessment_id: str) -> Document:
        """Fetch an assessment or curriculum definition."""
        return self.get_document(assessment_id)

    def get_result_document(self, result_id: str) -> Document:
        """Fetch a result document."""
        return self.get_document(result_id)

    def get_all_results_matching(self, predicate: ResultPredicate) -> list[Document]:
        """Fetch result documents satisfying ``predicate``."""
        return [doc for doc in self.get_all_results() if predicate(doc)]

    def get_location_list(self) -> Document | None:
        """Fetch the location list, or None when the group has none."""
        try:
            return self.get_document(LOCATION_LIST_ID)
        except DocumentNotFoundError:
            return None

    # Writes

    @abstractmethod
    def save_document(self, doc_id: str, doc: Document) -> Document:
        """Create or replace a document, returning the store's response."""
        ...

    def save_header_set(self, doc_id: str, descriptors: Iterable[Any]) -> Document:
        """Persist an ordered header set as ``{column_headers: [...]}``.

        Args:
            doc_id: Assessment or workflow id the headers belong to.
            descriptors: ColumnHeader instances or ``{header, key}`` dicts.

        """
        column_headers = [d.to_dict() if hasattr(d, "to_dict") else dict(d) for d in descriptors]
        return self.save_document(doc_id, {"column_headers": column_headers})

    def save_result_record(self, ref: str, record: Document) -> Document:
        """Persist a processed result record under its reference id."""
        return self.save_document(ref, record)
