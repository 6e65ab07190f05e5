"""
Pydantic request and response models for the Gatherly API.

Write bodies for events and calendars reuse the repository input models
(src.services.inputs); the models here cover responses and the requests
that only exist at the HTTP layer.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.integrations.base import (
    AgendaItem,
    Coordinates,
    EventStatus,
    EventVisibility,
    Host,
    InvitationSource,
    InvitationStatus,
    RegistrationQuestion,
    SocialLinks,
)
from src.services.inputs import CreateBatchInvitationInput


# =============================================================================
# Request Models
# =============================================================================


class CreateEventInviteRequest(BaseModel):
    """Invite one address to the event in the path."""

    email: str = Field(..., description="Recipient email address", examples=["ada@example.com"])
    recipient_name: Optional[str] = Field(None, max_length=255)
    user_id: Optional[str] = Field(None, description="Recipient's user ID, if known")
    calendar_id: Optional[str] = Field(None, description="Calendar the invite was sent from")
    source: InvitationSource = InvitationSource.MANUAL
    metadata: dict = Field(default_factory=dict)
    send_email: bool = Field(default=True, description="Email the invitation when new")


class BatchInviteRequest(CreateBatchInvitationInput):
    """Invite 1-100 addresses to one event."""

    send_email: bool = Field(default=True, description="Email the new invitations")


class UpdateInvitationStatusRequest(BaseModel):
    status: InvitationStatus = Field(..., description="Target status")
    metadata: Optional[dict] = Field(None, description="Merged into the invitation metadata")


class EmailWebhookEvent(BaseModel):
    """Delivery event posted by the email provider."""

    type: str = Field(..., examples=["email.bounced"])
    created_at: Optional[str] = None
    data: dict = Field(default_factory=dict)


# =============================================================================
# Response Models
# =============================================================================


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    organizer_id: str
    description: str = ""
    date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: str = ""
    city: str = ""
    coords: Coordinates = Field(default_factory=Coordinates)
    cover_image: str = ""
    tags: list[str] = Field(default_factory=list)
    organizer_name: str = ""
    calendar_id: Optional[str] = None
    capacity: Optional[int] = None
    price: Optional[float] = None
    currency: str = "USD"
    require_stake: bool = False
    stake_amount: Optional[float] = None
    require_approval: bool = False
    status: EventStatus = EventStatus.PUBLISHED
    visibility: EventVisibility = EventVisibility.PUBLIC
    social_links: SocialLinks = Field(default_factory=SocialLinks)
    agenda: list[AgendaItem] = Field(default_factory=list)
    hosts: list[Host] = Field(default_factory=list)
    about: list[str] = Field(default_factory=list)
    presented_by: Optional[str] = None
    registration_questions: list[RegistrationQuestion] = Field(default_factory=list)
    attendee_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EventListResponse(BaseModel):
    events: list[EventResponse] = Field(..., description="List of events")
    total: int = Field(..., description="Number of events returned")


class CalendarResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    name: str
    slug: str
    description: Optional[str] = None
    color: str = "indigo"
    avatar_url: Optional[str] = None
    cover_url: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_global: bool = False
    is_private: bool = False
    subscriber_count: int = 0
    event_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CalendarListResponse(BaseModel):
    calendars: list[CalendarResponse]
    total: int


class SlugAvailabilityResponse(BaseModel):
    slug: str
    available: bool


class SubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    calendar_id: str
    user_id: str
    notify_new_events: bool = True
    notify_reminders: bool = True
    created_at: Optional[datetime] = None


class SubscriptionStatusResponse(BaseModel):
    calendar_id: str
    subscribed: bool


class InvitationResponse(BaseModel):
    """Invitation as shown to the inviter (the tracking token is never exposed)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    event_id: str
    email: str
    invited_by: str
    status: InvitationStatus
    source: InvitationSource
    calendar_id: Optional[str] = None
    recipient_name: Optional[str] = None
    user_id: Optional[str] = None
    sent_at: Optional[datetime] = None
    opened_at: Optional[datetime] = None
    clicked_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    metadata: dict = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CreateInvitationResponse(BaseModel):
    invitation: InvitationResponse
    is_new: bool = Field(..., description="False when the address was already invited")
    email_sent: bool = Field(default=False, description="Whether an email went out")


class BatchInvitationResponse(BaseModel):
    created: int
    duplicates: list[str]
    failed: list[str]
    invitations: list[InvitationResponse]
    emails_sent: int = 0


class InvitationListResponse(BaseModel):
    invitations: list[InvitationResponse]
    total: int = Field(..., description="Total matching invitations")
    limit: int
    offset: int


class InvitationStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_sent: int
    total_opened: int
    total_clicked: int
    total_accepted: int
    total_declined: int
    total_bounced: int
    open_rate: float
    click_rate: float
    accept_rate: float
    counts_by_status: dict[str, int] = Field(default_factory=dict)


class DeleteResponse(BaseModel):
    success: bool = Field(..., description="Whether deletion was successful")
    id: str = Field(..., description="ID of the deleted record")
    message: str = Field(..., description="Status message")


class WebhookAck(BaseModel):
    received: bool = True
    handled: bool = False


class ErrorResponse(BaseModel):
    """Error information for failed requests."""

    error_type: Literal[
        "validation_error",
        "unauthorized",
        "forbidden",
        "not_found",
        "conflict",
        "store_unavailable",
        "http_error",
        "internal_error",
    ] = Field(..., description="Type of error")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[dict] = Field(None, description="Additional error details")
    retryable: bool = Field(default=False, description="Whether request can be retried")


class HealthResponse(BaseModel):
    status: Literal["healthy", "degraded", "unhealthy"] = Field(..., description="Health status")
    version: str = Field(..., description="API version")
    primary_store: str = Field(..., description="System of record for events and calendars")
    document_store: str = Field(..., description="Configured document store provider")
    database_connected: bool = Field(..., description="Relational store connection status")
