"""
Write inputs for the repositories.

Pydantic models so that the HTTP layer and direct callers share one shape.
Nested event records reuse the domain dataclasses; pydantic validates and
builds them from plain dicts. Format rules that have dedicated repository
errors (email, identifiers, slug) are checked by the repositories, not here.

Update inputs are partial: only fields explicitly set (model_fields_set)
are written, so an omitted field is never nulled.
"""

from datetime import datetime, timezone
from typing import Optional

from dateutil.parser import ParserError, parse as parse_datetime
from pydantic import BaseModel, Field, field_validator

from src.integrations.base import (
    AgendaItem,
    Coordinates,
    EventStatus,
    EventVisibility,
    Host,
    InvitationSource,
    RegistrationQuestion,
    SocialLinks,
)


def _lenient_datetime(value):
    """Accept datetimes or any date string dateutil understands; naive means UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            value = parse_datetime(value)
        except (ParserError, OverflowError) as e:
            raise ValueError(f"Unrecognized date: {value!r}") from e
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _set_fields(model: BaseModel, required: frozenset[str]) -> dict:
    return {
        name: getattr(model, name)
        for name in model.model_fields_set
        if not (name in required and getattr(model, name) is None)
    }


EVENT_REQUIRED_FIELDS = frozenset({
    "title", "description", "location", "city", "coords", "cover_image", "tags",
    "organizer_name", "currency", "require_stake", "require_approval", "status",
    "visibility", "social_links", "agenda", "hosts", "about",
    "registration_questions", "attendee_count",
})

CALENDAR_REQUIRED_FIELDS = frozenset({"name", "slug", "color", "is_global", "is_private"})


# =============================================================================
# Events
# =============================================================================


class CreateEventInput(BaseModel):
    """New event. organizer_id must be a UUID."""

    title: str = Field(..., min_length=1, max_length=255)
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
    capacity: Optional[int] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0)
    currency: str = "USD"
    require_stake: bool = False
    stake_amount: Optional[float] = Field(None, ge=0)
    require_approval: bool = False
    status: EventStatus = EventStatus.PUBLISHED
    visibility: EventVisibility = EventVisibility.PUBLIC
    social_links: SocialLinks = Field(default_factory=SocialLinks)
    agenda: list[AgendaItem] = Field(default_factory=list)
    hosts: list[Host] = Field(default_factory=list)
    about: list[str] = Field(default_factory=list)
    presented_by: Optional[str] = None
    registration_questions: list[RegistrationQuestion] = Field(default_factory=list)

    @field_validator("date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v):
        return _lenient_datetime(v)

    @field_validator("title")
    @classmethod
    def validate_title_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()


class UpdateEventInput(BaseModel):
    """Partial event update; unset fields are left untouched."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = None
    city: Optional[str] = None
    coords: Optional[Coordinates] = None
    cover_image: Optional[str] = None
    tags: Optional[list[str]] = None
    organizer_name: Optional[str] = None
    calendar_id: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = None
    require_stake: Optional[bool] = None
    stake_amount: Optional[float] = Field(None, ge=0)
    require_approval: Optional[bool] = None
    status: Optional[EventStatus] = None
    visibility: Optional[EventVisibility] = None
    social_links: Optional[SocialLinks] = None
    agenda: Optional[list[AgendaItem]] = None
    hosts: Optional[list[Host]] = None
    about: Optional[list[str]] = None
    presented_by: Optional[str] = None
    registration_questions: Optional[list[RegistrationQuestion]] = None
    attendee_count: Optional[int] = Field(None, ge=0)

    @field_validator("date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v):
        return _lenient_datetime(v)

    def changes(self) -> dict:
        """Explicitly set fields mapped to their values (null is ignored for required fields)."""
        return _set_fields(self, EVENT_REQUIRED_FIELDS)


# =============================================================================
# Calendars
# =============================================================================


class CreateCalendarInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    color: str = "indigo"
    avatar_url: Optional[str] = None
    cover_url: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    is_global: bool = False
    is_private: bool = False


class UpdateCalendarInput(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    color: Optional[str] = None
    avatar_url: Optional[str] = None
    cover_url: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    is_global: Optional[bool] = None
    is_private: Optional[bool] = None

    def changes(self) -> dict:
        return _set_fields(self, CALENDAR_REQUIRED_FIELDS)


class SubscribeInput(BaseModel):
    calendar_id: str
    notify_new_events: bool = True
    notify_reminders: bool = True


# =============================================================================
# Invitations
# =============================================================================


class CreateInvitationInput(BaseModel):
    """Single invitation. The email is normalized and validated by the repository."""

    event_id: str
    email: str
    calendar_id: Optional[str] = None
    recipient_name: Optional[str] = None
    user_id: Optional[str] = None
    source: InvitationSource = InvitationSource.MANUAL
    metadata: dict = Field(default_factory=dict)


class BatchInvitationItem(BaseModel):
    email: str
    recipient_name: Optional[str] = None
    user_id: Optional[str] = None


class CreateBatchInvitationInput(BaseModel):
    """Invite up to 100 addresses to one event."""

    event_id: str
    calendar_id: Optional[str] = None
    invites: list[BatchInvitationItem] = Field(..., min_length=1, max_length=100)
    source: InvitationSource = InvitationSource.MANUAL
