"""
Store protocols and normalized domain records.

Defines the interface for the backing stores (document store, relational
store, seed data) and the single record shape every store is mapped into.
"""

from abc import abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol, Sequence


class EventStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"
    LIVE = "live"
    ENDED = "ended"


class EventVisibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class InvitationStatus(str, Enum):
    """Invitation lifecycle: delivery, then engagement, then response."""

    PENDING = "pending"
    SENT = "sent"
    OPENED = "opened"
    CLICKED = "clicked"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    BOUNCED = "bounced"


class InvitationSource(str, Enum):
    """Where an invitation came from, for attribution."""

    MANUAL = "manual"
    CALENDAR = "calendar"
    IMPORT = "import"
    CSV = "csv"
    API = "api"


# =============================================================================
# Nested event records
# =============================================================================


@dataclass
class Coordinates:
    lat: float = 0.0
    lng: float = 0.0


@dataclass
class SocialLinks:
    website: Optional[str] = None
    twitter: Optional[str] = None
    telegram: Optional[str] = None
    discord: Optional[str] = None
    instagram: Optional[str] = None


@dataclass
class AgendaItem:
    title: str
    description: str = ""
    time: Optional[str] = None


@dataclass
class Host:
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    role: Optional[str] = None


@dataclass
class RegistrationQuestion:
    """
    Custom question asked at registration.

    type is one of: short_text, long_text, single_select, multi_select,
    wallet_address, twitter, telegram. options only applies to select types.
    """

    id: str
    type: str
    label: str
    required: bool = False
    placeholder: Optional[str] = None
    options: list[str] = field(default_factory=list)


# =============================================================================
# Domain records
# =============================================================================


@dataclass
class Event:
    """
    Normalized event representation across stores.

    This is the common format used by the repositories, mapped from
    store-specific shapes by adapters.
    """

    id: str
    title: str
    organizer_id: str
    description: str = ""
    date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: str = ""
    city: str = ""
    coords: Coordinates = field(default_factory=Coordinates)
    cover_image: str = ""
    tags: list[str] = field(default_factory=list)
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
    social_links: SocialLinks = field(default_factory=SocialLinks)
    agenda: list[AgendaItem] = field(default_factory=list)
    hosts: list[Host] = field(default_factory=list)
    about: list[str] = field(default_factory=list)
    presented_by: Optional[str] = None
    registration_questions: list[RegistrationQuestion] = field(default_factory=list)
    attendee_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Calendar:
    """Subscribable event feed owned by a user."""

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


@dataclass
class CalendarSubscription:
    id: str
    calendar_id: str
    user_id: str
    notify_new_events: bool = True
    notify_reminders: bool = True
    created_at: Optional[datetime] = None


@dataclass
class Invitation:
    """A single invitation of one email address to one event."""

    id: str
    event_id: str
    email: str
    invited_by: str
    tracking_token: str
    status: InvitationStatus = InvitationStatus.PENDING
    source: InvitationSource = InvitationSource.MANUAL
    calendar_id: Optional[str] = None
    recipient_name: Optional[str] = None
    user_id: Optional[str] = None
    sent_at: Optional[datetime] = None
    opened_at: Optional[datetime] = None
    clicked_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    metadata: dict = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# Store protocols
# =============================================================================


class EventReader(Protocol):
    """
    Read side of an event store.

    Implemented by the document store, the relational store and the seed
    data source, so any of them can sit in a read chain.
    """

    name: str
    serves_search: bool

    @abstractmethod
    async def get_event(self, event_id: str) -> Optional[Event]:
        """Return an event by ID, or None if the store has no such event."""
        ...

    @abstractmethod
    async def list_events(self) -> Sequence[Event]:
        """Return all events, newest first."""
        ...

    @abstractmethod
    async def find_events_by_organizer(self, organizer_id: str) -> Sequence[Event]:
        """Return an organizer's events, newest first."""
        ...

    @abstractmethod
    async def find_events_by_calendar(self, calendar_id: str) -> Sequence[Event]:
        """Return a calendar's events ordered by event date ascending."""
        ...

    @abstractmethod
    async def search_events(self, query: str) -> Sequence[Event]:
        """Return events whose title or description contains query (case-insensitive)."""
        ...


class EventStore(EventReader, Protocol):
    """
    Protocol for event storage backends.

    Implementations:
    - DocumentEventStore: document store (Firestore or in-memory client)
    - SQLEventStore: relational store (SQLAlchemy)

    All methods are async. Failures raise StoreError subclasses.
    """

    @abstractmethod
    async def insert_event(self, event: Event) -> Event:
        """
        Persist a new event.

        Args:
            event: Fully populated event (ID and timestamps assigned)

        Returns:
            Stored event
        """
        ...

    @abstractmethod
    async def update_event(self, event_id: str, fields: dict) -> bool:
        """
        Apply a partial update.

        Args:
            event_id: Event to update
            fields: Domain field names mapped to new values; other fields untouched

        Returns:
            True if updated, False if the event does not exist
        """
        ...

    @abstractmethod
    async def delete_event(self, event_id: str) -> bool:
        """
        Delete an event and anything the store cascades from it.

        Returns:
            True if deleted, False if not found
        """
        ...


class CalendarReader(Protocol):
    """Read side of a calendar store."""

    name: str
    maintains_counters: bool

    @abstractmethod
    async def get_calendar(self, calendar_id: str) -> Optional[Calendar]:
        ...

    @abstractmethod
    async def get_calendar_by_slug(self, slug: str) -> Optional[Calendar]:
        ...

    @abstractmethod
    async def list_popular_calendars(self, limit: int) -> Sequence[Calendar]:
        """Return calendars ordered by subscriber count descending."""
        ...

    @abstractmethod
    async def find_calendars_by_owner(self, owner_id: str) -> Sequence[Calendar]:
        """Return an owner's calendars, newest first."""
        ...


class CalendarStore(CalendarReader, Protocol):
    """
    Protocol for calendar storage backends.

    insert_calendar and update_calendar raise StoreConflictError(field="slug")
    when the slug is already taken.
    """

    @abstractmethod
    async def insert_calendar(self, calendar: Calendar) -> Calendar:
        ...

    @abstractmethod
    async def update_calendar(self, calendar_id: str, fields: dict) -> bool:
        ...

    @abstractmethod
    async def delete_calendar(self, calendar_id: str) -> bool:
        ...


class SubscriptionStore(Protocol):
    """
    Protocol for calendar subscriptions.

    Only the relational store implements this: it owns the (calendar, user)
    uniqueness constraint and the subscriber counter triggers.
    """

    @abstractmethod
    async def get_subscription(
        self,
        calendar_id: str,
        user_id: str,
    ) -> Optional[CalendarSubscription]:
        ...

    @abstractmethod
    async def insert_subscription(
        self,
        subscription: CalendarSubscription,
    ) -> CalendarSubscription:
        """Raises StoreConflictError if the pair is already subscribed."""
        ...

    @abstractmethod
    async def delete_subscription(self, calendar_id: str, user_id: str) -> bool:
        ...

    @abstractmethod
    async def find_subscribed_calendars(self, user_id: str) -> Sequence[Calendar]:
        ...
