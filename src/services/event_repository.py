"""
Event repository.

Events are dual-written: the primary store is the system of record and the
secondary store is a best-effort mirror. Reads walk primary -> secondary ->
seed data, moving on only when a source is unavailable; text search asks
the store that serves search first.
"""

import logging
from dataclasses import replace
from typing import Optional

from src.integrations.base import Event, EventReader, EventStore
from src.integrations.normalize import is_valid_identifier, new_id, utc_now
from src.services.dual_write import DualWriter, OutcomeObserver
from src.services.exceptions import InvalidIdentifierError
from src.services.inputs import CreateEventInput, UpdateEventInput
from src.services.read_chain import ReadChain, ReadResult
from src.services.seed import SeedDataProvider, SeedEventSource

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2


class EventRepository:
    """
    Event persistence across the primary and secondary stores.

    Args:
        primary: System-of-record store
        secondary: Mirror store
        seed: Optional seed dataset served when no store can answer
        on_outcome: Optional observer receiving every WriteOutcome
    """

    def __init__(
        self,
        primary: EventStore,
        secondary: EventStore,
        seed: Optional[SeedDataProvider] = None,
        on_outcome: Optional[OutcomeObserver] = None,
    ):
        self._primary = primary
        self._secondary = secondary
        self._writer = DualWriter(primary.name, secondary.name, on_outcome=on_outcome)

        sources: list[EventReader] = [primary, secondary]
        if seed is not None:
            sources.append(SeedEventSource(seed))
        self._reads = ReadChain(sources)
        self._search_reads = self._reads.reordered(
            lambda source: 0 if getattr(source, "serves_search", False) else 1
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def lookup_by_id(self, event_id: str) -> ReadResult:
        return await self._reads.lookup_one(
            lambda source: source.get_event(event_id),
            f"event {event_id}",
        )

    async def lookup_all(self) -> ReadResult:
        return await self._reads.lookup_many(lambda source: source.list_events(), "events")

    async def find_all(self) -> list[Event]:
        """All events, newest first."""
        return (await self.lookup_all()).value or []

    async def find_by_id(self, event_id: str) -> Optional[Event]:
        return (await self.lookup_by_id(event_id)).value

    async def find_by_organizer(self, organizer_id: str) -> list[Event]:
        result = await self._reads.lookup_many(
            lambda source: source.find_events_by_organizer(organizer_id),
            f"events of organizer {organizer_id}",
        )
        return result.value or []

    async def find_by_calendar_id(self, calendar_id: str) -> list[Event]:
        """A calendar's events ordered by date ascending."""
        result = await self._reads.lookup_many(
            lambda source: source.find_events_by_calendar(calendar_id),
            f"events of calendar {calendar_id}",
        )
        return result.value or []

    async def search(self, query: str) -> list[Event]:
        """
        Case-insensitive search over title and description.

        Queries shorter than two characters return nothing.
        """
        query = (query or "").strip()
        if len(query) < MIN_SEARCH_LENGTH:
            return []
        result = await self._search_reads.lookup_many(
            lambda source: source.search_events(query),
            f"event search {query!r}",
        )
        return result.value or []

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create(self, data: CreateEventInput) -> Event:
        """
        Create an event in both stores.

        Raises:
            InvalidIdentifierError: If organizer_id or calendar_id is malformed
            PrimaryStoreError: If the primary store write fails
        """
        if not is_valid_identifier(data.organizer_id):
            raise InvalidIdentifierError("organizer_id", data.organizer_id)
        if data.calendar_id is not None and not is_valid_identifier(data.calendar_id):
            raise InvalidIdentifierError("calendar_id", data.calendar_id)

        now = utc_now()
        event = Event(id=new_id(), created_at=now, updated_at=now, **dict(data))

        outcome = await self._writer.execute(
            "create",
            "event",
            event.id,
            primary=lambda: self._primary.insert_event(event),
            secondary=lambda _: self._secondary.insert_event(event),
        )
        logger.info(f"Created event {event.id}: {event.title}")
        return outcome.result

    async def update(self, event_id: str, data: UpdateEventInput) -> Optional[Event]:
        """
        Apply the fields set on data to both stores.

        Returns:
            The pre-update record merged with the changes, or None if the
            event does not exist in the primary store

        Raises:
            InvalidIdentifierError: If calendar_id is set to a malformed value
            PrimaryStoreError: If the primary store read or write fails
        """
        changes = data.changes()
        calendar_id = changes.get("calendar_id")
        if calendar_id is not None and not is_valid_identifier(calendar_id):
            raise InvalidIdentifierError("calendar_id", calendar_id)

        fields = {**changes, "updated_at": utc_now()}

        async def write_primary() -> Optional[Event]:
            existing = await self._primary.get_event(event_id)
            if existing is None:
                return None
            if not await self._primary.update_event(event_id, fields):
                return None
            return replace(existing, **fields)

        async def write_secondary(merged: Optional[Event]) -> None:
            if merged is None:
                return
            if not await self._secondary.update_event(event_id, fields):
                logger.info(f"Mirror row for event {event_id} missing; writing merged record")
                await self._secondary.insert_event(merged)

        outcome = await self._writer.execute(
            "update",
            "event",
            event_id,
            primary=write_primary,
            secondary=write_secondary,
        )
        return outcome.result

    async def remove(self, event_id: str) -> bool:
        """
        Hard-delete an event; the mirror delete also removes its invitations.

        Returns:
            True if the primary store had the event
        """
        outcome = await self._writer.execute(
            "delete",
            "event",
            event_id,
            primary=lambda: self._primary.delete_event(event_id),
            secondary=lambda _: self._secondary.delete_event(event_id),
        )
        if outcome.result:
            logger.info(f"Deleted event {event_id}")
        return bool(outcome.result)
