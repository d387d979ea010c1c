"""Document stores: source documents in, header sets and result records out."""

from tangerine_report.store.base import LOCATION_LIST_ID, DocumentStore
from tangerine_report.store.couch import CouchDocumentStore
from tangerine_report.store.memory import InMemoryDocumentStore

__all__ = [
    "LOCATION_LIST_ID",
    "CouchDocumentStore",
    "DocumentStore",
    "InMemoryDocumentStore",
]
