"""
Relational store integration (SQLAlchemy; secondary store for events and
calendars, sole store for subscriptions and invitations).
"""

from src.integrations.relational.adapter import RelationalAdapter
from src.integrations.relational.repository import (
    SQLCalendarStore,
    SQLEventStore,
    SQLInvitationStore,
)

__all__ = [
    "RelationalAdapter",
    "SQLCalendarStore",
    "SQLEventStore",
    "SQLInvitationStore",
]
