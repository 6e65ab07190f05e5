"""
Document store integration (primary store for events and calendars).

Provides:
- FirestoreClient: Firestore SDK wrapper with error translation
- InMemoryDocumentClient: dict-backed client with the same semantics
- DocumentEventStore / DocumentCalendarStore: store protocol implementations
"""

from src.integrations.document_store.adapter import DocumentAdapter
from src.integrations.document_store.client import (
    DocumentClient,
    DocumentWrite,
    FirestoreClient,
    get_service_account_credentials,
)
from src.integrations.document_store.memory import InMemoryDocumentClient
from src.integrations.document_store.repository import (
    DocumentCalendarStore,
    DocumentEventStore,
)

__all__ = [
    "DocumentAdapter",
    "DocumentCalendarStore",
    "DocumentClient",
    "DocumentEventStore",
    "DocumentWrite",
    "FirestoreClient",
    "InMemoryDocumentClient",
    "get_service_account_credentials",
]
