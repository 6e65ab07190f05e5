"""
In-process document client.

Implements the DocumentClient interface over plain dicts so the document
store can run without Firestore (local development, tests). Semantics follow
Firestore: create conflicts on existing documents, update fails on missing
ones, and a commit is all-or-nothing.
"""

import copy
import threading
from typing import Any, Optional, Sequence

from src.integrations.document_store.client import DocumentWrite, QueryFilter
from src.integrations.exceptions import StoreConflictError, StoreNotFoundError


def _matches(document: dict, filters: Sequence[QueryFilter]) -> bool:
    for field_path, op, value in filters:
        actual = document.get(field_path)
        if op == "==":
            if actual != value:
                return False
        elif op == "array_contains":
            if not isinstance(actual, list) or value not in actual:
                return False
        else:
            raise ValueError(f"Unsupported filter operator: {op}")
    return True


def _sort_key(value: Any) -> tuple:
    # Missing values sort first ascending, like Firestore's null ordering.
    return (value is not None, value if value is not None else 0)


class InMemoryDocumentClient:
    """Thread-safe dict-backed document store."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict]] = {}
        self._lock = threading.Lock()

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            document = self._collections.get(collection, {}).get(doc_id)
            if document is None:
                return None
            return {**copy.deepcopy(document), "id": doc_id}

    def query(
        self,
        collection: str,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        with self._lock:
            documents = [
                {**copy.deepcopy(document), "id": doc_id}
                for doc_id, document in self._collections.get(collection, {}).items()
                if _matches(document, filters)
            ]

        if order_by:
            documents.sort(
                key=lambda document: _sort_key(document.get(order_by)),
                reverse=descending,
            )
        if limit is not None:
            documents = documents[:limit]
        return documents

    def commit(self, writes: Sequence[DocumentWrite]) -> None:
        with self._lock:
            staged = copy.deepcopy(self._collections)
            for write in writes:
                documents = staged.setdefault(write.collection, {})
                if write.op == "create":
                    if write.doc_id in documents:
                        raise StoreConflictError(
                            f"Document {write.collection}/{write.doc_id} already exists"
                        )
                    documents[write.doc_id] = copy.deepcopy(write.data)
                elif write.op == "set":
                    documents[write.doc_id] = copy.deepcopy(write.data)
                elif write.op == "update":
                    if write.doc_id not in documents:
                        raise StoreNotFoundError(
                            f"Document {write.collection}/{write.doc_id} not found"
                        )
                    documents[write.doc_id].update(copy.deepcopy(write.data))
                elif write.op == "delete":
                    documents.pop(write.doc_id, None)
                else:
                    raise ValueError(f"Unknown write op: {write.op}")
            self._collections = staged
