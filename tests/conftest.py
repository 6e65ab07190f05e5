"""
Pytest configuration and fixtures for Gatherly tests.

Provides an in-memory relational store (tables and counter triggers), an
in-memory document store, and sample records for testing.
"""

import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.database import create_engine_for_url, create_session_factory, init_db
from src.integrations.base import Calendar, Event
from src.integrations.document_store import (
    DocumentCalendarStore,
    DocumentEventStore,
    InMemoryDocumentClient,
)
from src.integrations.relational import SQLCalendarStore, SQLEventStore, SQLInvitationStore


def new_uuid() -> str:
    return str(uuid.uuid4())


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    Create a clean in-memory SQLite database for each test.

    Tables and counter triggers are created exactly as at application
    startup, and everything is discarded when the engine is disposed.
    """
    engine = create_engine_for_url("sqlite:///:memory:")
    await init_db(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest.fixture
def sql_event_store(session_factory) -> SQLEventStore:
    return SQLEventStore(session_factory)


@pytest.fixture
def sql_calendar_store(session_factory) -> SQLCalendarStore:
    return SQLCalendarStore(session_factory)


@pytest.fixture
def sql_invitation_store(session_factory) -> SQLInvitationStore:
    return SQLInvitationStore(session_factory)


@pytest.fixture
def document_client() -> InMemoryDocumentClient:
    return InMemoryDocumentClient()


@pytest.fixture
def executor() -> Generator[ThreadPoolExecutor, None, None]:
    pool = ThreadPoolExecutor(max_workers=2)
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def document_event_store(document_client, executor) -> DocumentEventStore:
    return DocumentEventStore(document_client, executor=executor)


@pytest.fixture
def document_calendar_store(document_client, executor) -> DocumentCalendarStore:
    return DocumentCalendarStore(document_client, executor=executor)


@pytest.fixture
def organizer_id() -> str:
    return new_uuid()


@pytest.fixture
def sample_event(organizer_id: str) -> Event:
    """
    Create a sample Event record (not persisted).

    Returns:
        Event: A fully populated event with fixed timestamps
    """
    created = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)
    return Event(
        id=new_uuid(),
        title="Rust Meetup",
        organizer_id=organizer_id,
        organizer_name="Ada",
        description="Monthly talks about systems programming",
        date=datetime(2026, 11, 5, 18, 30, tzinfo=timezone.utc),
        location="Main Hall",
        city="Lisbon",
        tags=["rust", "meetup"],
        created_at=created,
        updated_at=created,
    )


@pytest.fixture
def sample_calendar(organizer_id: str) -> Calendar:
    """
    Create a sample Calendar record (not persisted).

    Returns:
        Calendar: A calendar owned by the sample organizer
    """
    created = datetime(2026, 9, 1, 12, 0, tzinfo=timezone.utc)
    return Calendar(
        id=new_uuid(),
        owner_id=organizer_id,
        name="Lisbon Tech",
        slug="lisbon-tech",
        description="Tech events in Lisbon",
        created_at=created,
        updated_at=created,
    )
