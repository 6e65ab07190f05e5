"""
FastAPI dependency injection providers.

Builds the stores and repositories from settings once at startup and hands
them to route handlers, together with the caller's user context.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.config import Settings
from src.integrations.document_store import (
    DocumentCalendarStore,
    DocumentClient,
    DocumentEventStore,
    FirestoreClient,
    InMemoryDocumentClient,
    get_service_account_credentials,
)
from src.integrations.base import Calendar, Event, Invitation
from src.integrations.exceptions import StoreError
from src.integrations.relational import (
    SQLCalendarStore,
    SQLEventStore,
    SQLInvitationStore,
)
from src.integrations.unconfigured import UnconfiguredStore
from src.services.calendar_repository import CalendarRepository
from src.services.event_repository import EventRepository
from src.services.invitation_repository import InvitationRepository
from src.services.invite_dispatch import InviteMailer
from src.services.seed import SeedDataProvider

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Repositories and collaborators shared by all requests."""

    events: EventRepository
    calendars: CalendarRepository
    invitations: InvitationRepository
    mailer: Optional[InviteMailer]
    primary_store: str
    document_store: str
    engine: Optional[AsyncEngine] = None


# Global services instance (initialized at startup)
_services: Optional[Services] = None


def build_document_client(settings: Settings) -> DocumentClient:
    """
    Create the document client for the configured provider.

    Raises:
        StoreError: If Firestore credentials or the client cannot be set up
        ValueError: If the Firestore settings are incomplete
    """
    if settings.document_store_provider == "memory":
        return InMemoryDocumentClient()

    settings.validate_firestore_config()
    info = None
    if settings.google_service_account_json:
        try:
            info = json.loads(settings.google_service_account_json)
        except json.JSONDecodeError as e:
            raise ValueError(f"GOOGLE_SERVICE_ACCOUNT_JSON is not valid JSON: {e}") from e
    credentials = get_service_account_credentials(
        service_account_file=settings.google_service_account_file or None,
        service_account_info=info,
    )
    return FirestoreClient(settings.firestore_project_id, credentials=credentials)


def build_document_stores(
    settings: Settings,
    document_client: Optional[DocumentClient] = None,
) -> tuple:
    """Return (event store, calendar store) for the document store."""
    if document_client is None:
        if not settings.has_document_store:
            unconfigured = UnconfiguredStore("document")
            return unconfigured, unconfigured
        try:
            document_client = build_document_client(settings)
        except (StoreError, ValueError) as e:
            logger.error(f"Document store unavailable: {e}")
            unconfigured = UnconfiguredStore("document", "failed to initialize")
            return unconfigured, unconfigured
    return DocumentEventStore(document_client), DocumentCalendarStore(document_client)


def load_seed_data(settings: Settings) -> Optional[SeedDataProvider]:
    if not settings.seed_data_enabled:
        return None
    if settings.seed_data_file:
        return SeedDataProvider.from_file(settings.seed_data_file)
    return SeedDataProvider.default()


def build_services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    document_client: Optional[DocumentClient] = None,
    mailer: Optional[InviteMailer] = None,
    engine: Optional[AsyncEngine] = None,
) -> Services:
    """
    Wire stores and repositories according to settings.

    A document store that is disabled or fails to initialize is replaced by
    an UnconfiguredStore, so reads fall back and primary writes fail with
    PrimaryStoreError instead of the app failing to start.

    Args:
        settings: Application settings
        session_factory: Session factory for the relational store
        document_client: Pre-built document client (tests pass an in-memory one)
        mailer: Pre-built mailer; built from settings when email is configured
        engine: Engine behind session_factory, used by the health check
    """
    document_events, document_calendars = build_document_stores(settings, document_client)
    sql_events = SQLEventStore(session_factory)
    sql_calendars = SQLCalendarStore(session_factory)

    if settings.primary_store == "relational":
        event_stores = (sql_events, document_events)
        calendar_stores = (sql_calendars, document_calendars)
    else:
        event_stores = (document_events, sql_events)
        calendar_stores = (document_calendars, sql_calendars)

    seed = load_seed_data(settings)
    if mailer is None and settings.sends_email:
        mailer = InviteMailer.from_settings(settings)

    logger.info(
        f"Stores: primary={settings.primary_store} "
        f"document={settings.document_store_provider} seed={'on' if seed else 'off'}"
    )
    return Services(
        events=EventRepository(*event_stores, seed=seed),
        calendars=CalendarRepository(*calendar_stores, subscriptions=sql_calendars, seed=seed),
        invitations=InvitationRepository(SQLInvitationStore(session_factory)),
        mailer=mailer,
        primary_store=settings.primary_store,
        document_store=settings.document_store_provider,
        engine=engine,
    )


def init_services(services: Services) -> None:
    """Install services at application startup."""
    global _services
    _services = services
    logger.info("Services initialized")


async def shutdown_services() -> None:
    global _services
    if _services is not None and _services.mailer is not None:
        await _services.mailer.aclose()
    _services = None


def get_services() -> Services:
    """
    Dependency injection for services.

    Raises:
        HTTPException: If services not initialized
    """
    if _services is None:
        logger.error("Services not initialized")
        raise HTTPException(
            status_code=503,
            detail="Service temporarily unavailable - services not initialized",
        )
    return _services


def get_event_repository(services: Services = Depends(get_services)) -> EventRepository:
    return services.events


def get_calendar_repository(services: Services = Depends(get_services)) -> CalendarRepository:
    return services.calendars


def get_invitation_repository(
    services: Services = Depends(get_services),
) -> InvitationRepository:
    return services.invitations


def require_user_id(
    x_user_id: Optional[str] = Header(None, description="User ID"),
) -> str:
    """
    Caller's user ID, required.

    Raises:
        HTTPException: 401 if the X-User-ID header is missing
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="X-User-ID header required")
    return x_user_id


# =============================================================================
# Ownership checks
# =============================================================================


async def load_owned_event(events: EventRepository, event_id: str, user_id: str) -> Event:
    """
    Load an event the caller organizes.

    Raises:
        HTTPException: 404 if the event does not exist, 403 if the caller
            is not its organizer
    """
    event = await events.find_by_id(event_id)
    if event is None:
        raise HTTPException(status_code=404, detail=f"Event {event_id} not found")
    if event.organizer_id != user_id:
        logger.warning(f"User {user_id} denied access to event {event_id}")
        raise HTTPException(status_code=403, detail="Only the event organizer can do this")
    return event


async def load_owned_calendar(
    calendars: CalendarRepository,
    calendar_id: str,
    user_id: str,
) -> Calendar:
    """
    Load a calendar the caller owns.

    Raises:
        HTTPException: 404 if the calendar does not exist, 403 if the caller
            is not its owner
    """
    calendar = await calendars.find_by_id(calendar_id)
    if calendar is None:
        raise HTTPException(status_code=404, detail=f"Calendar {calendar_id} not found")
    if calendar.owner_id != user_id:
        logger.warning(f"User {user_id} denied access to calendar {calendar_id}")
        raise HTTPException(status_code=403, detail="Only the calendar owner can do this")
    return calendar


async def load_managed_invitation(
    services: Services,
    invitation_id: str,
    user_id: str,
) -> Invitation:
    """
    Load an invitation the caller may manage: they sent it or organize its event.

    Raises:
        HTTPException: 404 if the invitation does not exist, 403 otherwise
    """
    invitation = await services.invitations.find_by_id(invitation_id)
    if invitation is None:
        raise HTTPException(status_code=404, detail=f"Invitation {invitation_id} not found")
    if invitation.invited_by == user_id:
        return invitation

    event = await services.events.find_by_id(invitation.event_id)
    if event is None or event.organizer_id != user_id:
        logger.warning(f"User {user_id} denied access to invitation {invitation_id}")
        raise HTTPException(status_code=403, detail="Only the event organizer can do this")
    return invitation
