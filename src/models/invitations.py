"""
Invitation model.

One row per (event, email) pair. The row is keyed for tracking by an opaque
tracking token embedded in the invitation email's pixel and link URLs.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel, GUID, get_json_type


class InvitationModel(BaseModel):
    """
    Stores an invitation and its delivery/engagement lifecycle.

    Attributes:
        event_id: Event the invitation is for
        email: Recipient address, trimmed and lower-cased
        status: pending, sent, opened, clicked, accepted, declined, bounced
        tracking_token: Unique opaque token for open/click tracking
        sent_at/opened_at/clicked_at: First time each lifecycle step happened
        responded_at: When the recipient accepted or declined
        extra_metadata: Free-form JSON (bounce reason, provider ids, ...)
    """

    __tablename__ = "invitations"

    event_id: Mapped[uuid.UUID] = mapped_column(
        GUID,
        nullable=False,
        doc="Event this invitation is for"
    )

    calendar_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        GUID,
        nullable=True,
        doc="Calendar the invitation was sent through"
    )

    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        doc="Normalized recipient email"
    )

    recipient_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    invited_by: Mapped[uuid.UUID] = mapped_column(
        GUID,
        nullable=False,
        doc="User who sent the invitation"
    )

    source: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="manual",
        doc="Source: manual, calendar, import, csv, api"
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pending",
        doc="Lifecycle status"
    )

    tracking_token: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        doc="Opaque token used in tracking URLs"
    )

    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    opened_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    clicked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    responded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # "metadata" is reserved on declarative classes
    extra_metadata: Mapped[dict] = mapped_column(
        "metadata",
        get_json_type(),
        nullable=False,
        default=dict,
        doc="Free-form invitation metadata"
    )

    __table_args__ = (
        UniqueConstraint("event_id", "email", name="uq_invitation_event_email"),
        Index("idx_invitation_event_status", "event_id", "status"),
        Index("idx_invitation_email", "email"),
    )

    def __repr__(self) -> str:
        return f"<InvitationModel(id={self.id}, email='{self.email}', status='{self.status}')>"
