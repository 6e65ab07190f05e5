"""
Backing store integrations for Gatherly.

Provides the store protocols and domain records, the document store
(primary) and relational store (secondary) implementations, and the store
error taxonomy.
"""

from src.integrations.base import (
    Calendar,
    CalendarSubscription,
    Event,
    Invitation,
    InvitationSource,
    InvitationStatus,
)
from src.integrations.exceptions import (
    StoreConflictError,
    StoreError,
    StoreNotFoundError,
    StoreUnavailableError,
)

__all__ = [
    "Calendar",
    "CalendarSubscription",
    "Event",
    "Invitation",
    "InvitationSource",
    "InvitationStatus",
    "StoreConflictError",
    "StoreError",
    "StoreNotFoundError",
    "StoreUnavailableError",
]
