"""
Custom exceptions for backing store operations.

Vendor errors (SQLAlchemy, Google API core, Google auth) are translated into
this hierarchy at the store boundary so repositories never see SDK types.
"""

from typing import Optional


class StoreError(Exception):
    """Base exception for store operations."""

    retryable: bool = False

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class StoreUnavailableError(StoreError):
    """
    Store cannot be reached or is not configured.

    Causes:
    - No backing configuration (store disabled or credentials missing)
    - Connection refused, timeout, service unavailable
    - Credentials rejected

    Distinct from "not found": a read that reaches the store and finds
    nothing never raises this.
    """

    retryable = True


class StoreConflictError(StoreError):
    """
    Uniqueness constraint violated on write.

    Causes:
    - Slug already used by another calendar
    - Invitation already exists for (event, email)
    - Subscription already exists for (calendar, user)
    """

    retryable = False

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message, original_error=original_error)
        self.field = field


class StoreNotFoundError(StoreError):
    """
    Write targeted a record that does not exist.

    Reads return None instead of raising this.
    """

    retryable = False
