"""
Seed data provider.

Read-only sample events and calendars served as the last source in a read
chain, so the API still has something to show when no store is reachable.
The dataset is injected into the repositories; nothing here is global.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from src.integrations.base import (
    Calendar,
    CalendarReader,
    Coordinates,
    Event,
    EventReader,
    Host,
)
from src.integrations.document_store.adapter import DocumentAdapter

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class SeedDataProvider:
    """Immutable seed dataset."""

    events: tuple[Event, ...] = field(default_factory=tuple)
    calendars: tuple[Calendar, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls) -> "SeedDataProvider":
        return cls()

    @classmethod
    def from_file(cls, path: str) -> "SeedDataProvider":
        """
        Load a dataset from a JSON file.

        The file holds {"events": [...], "calendars": [...]} with documents in
        the document store's camelCase shape, each including its "id".

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not valid JSON
        """
        with open(Path(path), encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid seed data file {path}: {e}") from e

        adapter = DocumentAdapter()
        events = tuple(adapter.event_from_document(d) for d in data.get("events", []))
        calendars = tuple(adapter.calendar_from_document(d) for d in data.get("calendars", []))
        logger.info(f"Loaded seed data from {path}: {len(events)} events, {len(calendars)} calendars")
        return cls(events=events, calendars=calendars)

    @classmethod
    def default(cls) -> "SeedDataProvider":
        """Built-in sample dataset."""
        created = datetime(2026, 1, 1, tzinfo=timezone.utc)
        calendar = Calendar(
            id="6f1c2a3e-0d4b-4f5a-9c8e-1a2b3c4d5e6f",
            owner_id="0b7e4c1d-2f3a-4b5c-8d9e-0f1a2b3c4d5e",
            name="Gatherly Highlights",
            slug="gatherly-highlights",
            description="Hand-picked community events.",
            is_global=True,
            created_at=created,
            updated_at=created,
        )
        events = (
            Event(
                id="a3d5c7e9-1b2c-4d3e-8f4a-5b6c7d8e9f01",
                title="Community Builders Meetup",
                organizer_id=calendar.owner_id,
                organizer_name="Gatherly",
                description="An evening of lightning talks from local organizers.",
                date=datetime(2026, 11, 12, 18, 0, tzinfo=timezone.utc),
                end_date=datetime(2026, 11, 12, 21, 0, tzinfo=timezone.utc),
                location="The Commons, 12 Market Street",
                city="Lisbon",
                coords=Coordinates(lat=38.7223, lng=-9.1393),
                tags=["community", "meetup"],
                calendar_id=calendar.id,
                hosts=[Host(name="Gatherly", role="organizer")],
                created_at=created,
                updated_at=created,
            ),
            Event(
                id="b4e6d8f0-2c3d-4e5f-9a0b-6c7d8e9f0a12",
                title="Open Source Saturday",
                organizer_id=calendar.owner_id,
                organizer_name="Gatherly",
                description="Bring a laptop and contribute to open source projects.",
                date=datetime(2026, 11, 21, 10, 0, tzinfo=timezone.utc),
                location="Online",
                tags=["open-source", "workshop"],
                calendar_id=calendar.id,
                created_at=created,
                updated_at=created,
            ),
        )
        return cls(events=events, calendars=(calendar,))


class SeedEventSource(EventReader):
    """Serves seed events as a read-chain source."""

    name = "seed"
    serves_search = False

    def __init__(self, provider: SeedDataProvider):
        self._provider = provider

    async def get_event(self, event_id: str) -> Optional[Event]:
        return next((e for e in self._provider.events if e.id == event_id), None)

    async def list_events(self) -> Sequence[Event]:
        return sorted(self._provider.events, key=lambda e: e.created_at or _EPOCH, reverse=True)

    async def find_events_by_organizer(self, organizer_id: str) -> Sequence[Event]:
        return [e for e in await self.list_events() if e.organizer_id == organizer_id]

    async def find_events_by_calendar(self, calendar_id: str) -> Sequence[Event]:
        events = [e for e in self._provider.events if e.calendar_id == calendar_id]
        return sorted(events, key=lambda e: (e.date is None, e.date or _EPOCH))

    async def search_events(self, query: str) -> Sequence[Event]:
        needle = query.lower()
        return [
            e
            for e in await self.list_events()
            if needle in e.title.lower() or needle in e.description.lower()
        ]


class SeedCalendarSource(CalendarReader):
    """Serves seed calendars as a read-chain source."""

    name = "seed"
    maintains_counters = False

    def __init__(self, provider: SeedDataProvider):
        self._provider = provider

    async def get_calendar(self, calendar_id: str) -> Optional[Calendar]:
        return next((c for c in self._provider.calendars if c.id == calendar_id), None)

    async def get_calendar_by_slug(self, slug: str) -> Optional[Calendar]:
        return next((c for c in self._provider.calendars if c.slug == slug), None)

    async def list_popular_calendars(self, limit: int) -> Sequence[Calendar]:
        ranked = sorted(self._provider.calendars, key=lambda c: c.subscriber_count, reverse=True)
        return ranked[:limit]

    async def find_calendars_by_owner(self, owner_id: str) -> Sequence[Calendar]:
        owned = [c for c in self._provider.calendars if c.owner_id == owner_id]
        return sorted(owned, key=lambda c: c.created_at or _EPOCH, reverse=True)
