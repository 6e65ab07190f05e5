"""
Calendar and CalendarSubscription models.

Entities:
- CalendarModel: Subscribable event feed with a unique URL slug
- CalendarSubscriptionModel: A user's subscription to a calendar

subscriber_count and event_count are maintained by database triggers
(see src.models.triggers), never written by application code.
"""

import uuid
from typing import Optional

from sqlalchemy import Boolean, Float, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel, GUID


class CalendarModel(BaseModel):
    """
    Represents a calendar (curated event feed).

    Attributes:
        owner_id: User who owns the calendar
        slug: Unique URL-safe identifier (lowercase words joined by hyphens)
        subscriber_count: Trigger-maintained number of subscriptions
        event_count: Trigger-maintained number of events listing this calendar
    """

    __tablename__ = "calendars"

    owner_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="User who owns the calendar"
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    slug: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        doc="Unique URL slug"
    )

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    color: Mapped[str] = mapped_column(String(32), nullable=False, default="indigo")
    avatar_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cover_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    is_global: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    subscriber_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        doc="Maintained by trigger on calendar_subscriptions"
    )

    event_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        doc="Maintained by trigger on events"
    )

    __table_args__ = (
        Index("idx_calendar_owner", "owner_id"),
        Index("idx_calendar_subscribers", "subscriber_count"),
    )

    def __repr__(self) -> str:
        return f"<CalendarModel(id={self.id}, slug='{self.slug}')>"


class CalendarSubscriptionModel(BaseModel):
    """
    A user's subscription to a calendar.

    (calendar_id, user_id) is unique; inserting a duplicate raises an
    integrity error that the store reports as a conflict.
    """

    __tablename__ = "calendar_subscriptions"

    calendar_id: Mapped[uuid.UUID] = mapped_column(
        GUID,
        nullable=False,
        doc="Subscribed calendar"
    )

    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Subscribing user"
    )

    notify_new_events: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notify_reminders: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("calendar_id", "user_id", name="uq_subscription_calendar_user"),
        Index("idx_subscription_user", "user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<CalendarSubscriptionModel(calendar_id={self.calendar_id}, "
            f"user_id='{self.user_id}')>"
        )
