"""
Event model (relational mirror of the events collection).

Nested records (social links, agenda, hosts, about paragraphs, registration
questions) are stored in JSON columns in the same shape the document store
uses for them. Coordinates are flattened into latitude/longitude.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel, GUID, get_json_type


class EventModel(BaseModel):
    """
    Represents an event listing.

    Key features:
    - organizer_id is always a well-formed UUID
    - calendar_id links to calendars without a foreign key; the counter
      triggers keep calendars.event_count in step with it
    - Deleting an event is a hard delete; its invitations are removed by
      the store in the same transaction
    """

    __tablename__ = "events"

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Event title"
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        doc="Event description"
    )

    date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Event start (UTC)"
    )

    end_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Event end (UTC)"
    )

    location: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    city: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    latitude: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    longitude: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    cover_image: Mapped[str] = mapped_column(Text, nullable=False, default="")

    tags: Mapped[list] = mapped_column(
        get_json_type(),
        nullable=False,
        default=list,
        doc="Tag strings"
    )

    organizer_id: Mapped[uuid.UUID] = mapped_column(
        GUID,
        nullable=False,
        doc="User who organizes the event"
    )

    organizer_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    calendar_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        GUID,
        nullable=True,
        doc="Calendar the event is listed on"
    )

    capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")
    require_stake: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    stake_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    require_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="published",
        doc="Status: draft, published, archived, live, ended"
    )

    visibility: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="public",
        doc="Visibility: public, private"
    )

    social_links: Mapped[dict] = mapped_column(get_json_type(), nullable=False, default=dict)
    agenda: Mapped[list] = mapped_column(get_json_type(), nullable=False, default=list)
    hosts: Mapped[list] = mapped_column(get_json_type(), nullable=False, default=list)
    about: Mapped[list] = mapped_column(get_json_type(), nullable=False, default=list)
    presented_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    registration_questions: Mapped[list] = mapped_column(
        get_json_type(),
        nullable=False,
        default=list,
        doc="Custom registration questions"
    )

    attendee_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_event_organizer", "organizer_id"),
        Index("idx_event_calendar_date", "calendar_id", "date"),
        Index("idx_event_created", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<EventModel(id={self.id}, title='{self.title}')>"
