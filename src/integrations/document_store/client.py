"""
Document store client wrapper with error handling.

Provides a small, synchronous interface over Firestore: point reads,
filtered queries and atomic write batches. The same interface is implemented
by InMemoryDocumentClient for development and tests.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, Protocol, Sequence

from google.api_core import exceptions as gcp_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.oauth2 import service_account

from src.integrations.exceptions import (
    StoreConflictError,
    StoreError,
    StoreNotFoundError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)

FIRESTORE_SCOPES = ["https://www.googleapis.com/auth/datastore"]

WriteOp = Literal["create", "set", "update", "delete"]


@dataclass(frozen=True)
class DocumentWrite:
    """
    One write in an atomic batch.

    create fails if the document exists, update fails if it does not,
    set overwrites, delete is unconditional.
    """

    op: WriteOp
    collection: str
    doc_id: str
    data: dict = field(default_factory=dict)


# (field, operator, value); operators: "==", "array_contains"
QueryFilter = tuple[str, str, Any]


class DocumentClient(Protocol):
    """Synchronous document store operations used by the document stores."""

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        """Return the document (with "id") or None."""
        ...

    def query(
        self,
        collection: str,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        ...

    def commit(self, writes: Sequence[DocumentWrite]) -> None:
        """Apply all writes atomically."""
        ...


def _translate_error(error: Exception) -> StoreError:
    """Convert a Google SDK error to the store error hierarchy."""
    if isinstance(error, gcp_exceptions.Conflict):
        return StoreConflictError("Document already exists", original_error=error)
    if isinstance(error, gcp_exceptions.NotFound):
        return StoreNotFoundError("Document not found", original_error=error)
    if isinstance(
        error,
        (
            gcp_exceptions.ServiceUnavailable,
            gcp_exceptions.DeadlineExceeded,
            gcp_exceptions.RetryError,
            gcp_exceptions.Unauthenticated,
            gcp_exceptions.PermissionDenied,
            auth_exceptions.GoogleAuthError,
        ),
    ):
        return StoreUnavailableError(
            f"Firestore unavailable: {error}",
            original_error=error,
        )
    return StoreError(f"Firestore error: {error}", original_error=error)


_HANDLED_ERRORS = (gcp_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError)


def get_service_account_credentials(
    service_account_file: Optional[str] = None,
    service_account_info: Optional[dict] = None,
) -> service_account.Credentials:
    """
    Load service account credentials for Firestore.

    Args:
        service_account_file: Path to service account JSON key file
        service_account_info: Service account info as dict (alternative to file)

    Returns:
        Google credentials object

    Raises:
        StoreUnavailableError: If credentials cannot be loaded
    """
    try:
        if service_account_info:
            return service_account.Credentials.from_service_account_info(
                service_account_info,
                scopes=FIRESTORE_SCOPES,
            )
        if service_account_file:
            file_path = Path(service_account_file)
            if not file_path.exists():
                raise StoreUnavailableError(
                    f"Service account file not found: {service_account_file}"
                )
            return service_account.Credentials.from_service_account_file(
                str(file_path),
                scopes=FIRESTORE_SCOPES,
            )
    except (ValueError, json.JSONDecodeError) as e:
        raise StoreUnavailableError(
            f"Invalid service account credentials: {e}",
            original_error=e,
        ) from e

    raise StoreUnavailableError(
        "No Firestore credentials configured. "
        "Set GOOGLE_SERVICE_ACCOUNT_FILE or GOOGLE_SERVICE_ACCOUNT_JSON."
    )


class FirestoreClient:
    """
    Wrapper around the Firestore client.

    Provides:
    - Consistent error handling (SDK errors become StoreError subclasses)
    - Documents returned as plain dicts carrying their "id"
    - Atomic multi-document write batches
    """

    def __init__(self, project_id: str, credentials: Any = None):
        """
        Initialize the client.

        Args:
            project_id: Google Cloud project ID
            credentials: Google credentials (application default if None)
        """
        try:
            self._db = firestore.Client(project=project_id, credentials=credentials)
        except _HANDLED_ERRORS as e:
            raise _translate_error(e) from e

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        try:
            snapshot = self._db.collection(collection).document(doc_id).get()
        except _HANDLED_ERRORS as e:
            raise _translate_error(e) from e

        if not snapshot.exists:
            return None
        return {**(snapshot.to_dict() or {}), "id": snapshot.id}

    def query(
        self,
        collection: str,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        query = self._db.collection(collection)
        for field_path, op, value in filters:
            query = query.where(filter=FieldFilter(field_path, op, value))
        if order_by:
            direction = (
                firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            )
            query = query.order_by(order_by, direction=direction)
        if limit is not None:
            query = query.limit(limit)

        try:
            documents = [
                {**(snapshot.to_dict() or {}), "id": snapshot.id}
                for snapshot in query.stream()
            ]
        except _HANDLED_ERRORS as e:
            raise _translate_error(e) from e

        logger.debug(f"Queried {len(documents)} documents from {collection}")
        return documents

    def commit(self, writes: Sequence[DocumentWrite]) -> None:
        batch = self._db.batch()
        for write in writes:
            ref = self._db.collection(write.collection).document(write.doc_id)
            if write.op == "create":
                batch.create(ref, write.data)
            elif write.op == "set":
                batch.set(ref, write.data)
            elif write.op == "update":
                batch.update(ref, write.data)
            elif write.op == "delete":
                batch.delete(ref)
            else:
                raise ValueError(f"Unknown write op: {write.op}")

        try:
            batch.commit()
        except _HANDLED_ERRORS as e:
            raise _translate_error(e) from e
