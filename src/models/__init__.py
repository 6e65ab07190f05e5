"""
SQLAlchemy models for Gatherly.

This module exports all database models for easy importing and
ensures Alembic can discover them for migrations. Importing it also
registers the counter trigger DDL on Base.metadata.
"""

# Import base classes
from src.models.base import Base, BaseModel, GUID, get_json_type

# Import all models (must be imported for Alembic autogenerate)
from src.models.events import EventModel
from src.models.calendars import CalendarModel, CalendarSubscriptionModel
from src.models.invitations import InvitationModel
from src.models import triggers  # noqa: F401

__all__ = [
    # Base classes
    "Base",
    "BaseModel",
    "GUID",
    "get_json_type",
    # Event model
    "EventModel",
    # Calendar models
    "CalendarModel",
    "CalendarSubscriptionModel",
    # Invitation model
    "InvitationModel",
]
