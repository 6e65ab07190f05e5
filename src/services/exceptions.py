"""
Repository-layer exceptions.

Validation errors are raised before any store is touched. PrimaryStoreError
is the only way a store failure reaches a caller of a dual-written
repository; secondary store failures are logged and never raised.
"""

from typing import Optional


class RepositoryError(Exception):
    """Base exception for repository operations."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailedError(RepositoryError):
    """Input rejected before any store interaction."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class InvalidEmailError(ValidationFailedError):
    def __init__(self, email: str):
        super().__init__(f"Invalid email address: {email!r}", field="email")
        self.email = email


class InvalidIdentifierError(ValidationFailedError):
    """An identifier that must be a UUID is malformed."""

    def __init__(self, field: str, value: object):
        super().__init__(f"Invalid {field}: {value!r} is not a valid identifier", field=field)
        self.value = value


class InvalidSlugError(ValidationFailedError):
    def __init__(self, slug: str):
        super().__init__(
            f"Invalid slug {slug!r}: use lowercase letters and digits separated by single hyphens",
            field="slug",
        )
        self.slug = slug


class InvalidTransitionError(ValidationFailedError):
    """
    Requested invitation status change is not in the transition table.

    Also raised when a concurrent change moved the invitation to a state
    from which the requested transition no longer applies.
    """

    def __init__(self, from_status: str, to_status: str):
        super().__init__(
            f"Invalid status transition: {from_status} -> {to_status}",
            field="status",
        )
        self.from_status = from_status
        self.to_status = to_status


class PrimaryStoreError(RepositoryError):
    """
    The primary store write failed, so the operation failed.

    The store error is chained as __cause__ and kept on original_error.
    """

    def __init__(
        self,
        operation: str,
        entity: str,
        entity_id: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        target = f"{entity} {entity_id}" if entity_id else entity
        detail = f": {original_error}" if original_error else ""
        super().__init__(f"Failed to {operation} {target} in primary store{detail}")
        self.operation = operation
        self.entity = entity
        self.entity_id = entity_id
        self.original_error = original_error


class SlugTakenError(RepositoryError):
    def __init__(self, slug: str):
        super().__init__(f"Calendar slug already taken: {slug}")
        self.slug = slug


class CalendarNotFoundError(RepositoryError):
    def __init__(self, calendar_id: str):
        super().__init__(f"Calendar not found: {calendar_id}")
        self.calendar_id = calendar_id
