"""
Document store implementations of the event and calendar store protocols.

The document client is synchronous (the Firestore SDK is), so every call is
run in a thread pool for async compatibility. Calendar slug uniqueness is
enforced with a reservation document per slug written in the same batch as
the calendar itself.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from functools import partial
from typing import Optional, Sequence

from src.integrations.base import Calendar, CalendarStore, Event, EventStore
from src.integrations.document_store.adapter import DocumentAdapter, contains_text
from src.integrations.document_store.client import DocumentClient, DocumentWrite
from src.integrations.exceptions import StoreConflictError, StoreNotFoundError

logger = logging.getLogger(__name__)

EVENTS = "events"
CALENDARS = "calendars"
CALENDAR_SLUGS = "calendarSlugs"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _newest_first(records: list) -> list:
    return sorted(records, key=lambda r: r.created_at or _EPOCH, reverse=True)


class _ExecutorMixin:
    _executor: ThreadPoolExecutor

    async def _run_in_executor(self, func, *args, **kwargs):
        """Run a synchronous client call in the thread pool."""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(
            self._executor,
            partial(func, *args, **kwargs),
        )


class DocumentEventStore(_ExecutorMixin, EventStore):
    """EventStore backed by the document store "events" collection."""

    name = "document"
    serves_search = False

    def __init__(
        self,
        client: DocumentClient,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        """
        Initialize the store.

        Args:
            client: Document client (Firestore or in-memory)
            executor: Thread pool for running sync client calls (creates default if None)
        """
        self._client = client
        self._executor = executor or ThreadPoolExecutor(max_workers=4)
        self._adapter = DocumentAdapter()

    async def get_event(self, event_id: str) -> Optional[Event]:
        document = await self._run_in_executor(self._client.get, EVENTS, event_id)
        if document is None:
            return None
        return self._adapter.event_from_document(document)

    async def list_events(self) -> Sequence[Event]:
        documents = await self._run_in_executor(
            self._client.query,
            EVENTS,
            order_by="createdAt",
            descending=True,
        )
        return [self._adapter.event_from_document(d) for d in documents]

    async def find_events_by_organizer(self, organizer_id: str) -> Sequence[Event]:
        # Filter only; ordering in Python avoids requiring a composite index.
        documents = await self._run_in_executor(
            self._client.query,
            EVENTS,
            filters=[("organizerId", "==", organizer_id)],
        )
        return _newest_first([self._adapter.event_from_document(d) for d in documents])

    async def find_events_by_calendar(self, calendar_id: str) -> Sequence[Event]:
        documents = await self._run_in_executor(
            self._client.query,
            EVENTS,
            filters=[("calendarId", "==", calendar_id)],
        )
        events = [self._adapter.event_from_document(d) for d in documents]
        return sorted(events, key=lambda e: (e.date is None, e.date or _EPOCH))

    async def search_events(self, query: str) -> Sequence[Event]:
        """
        Case-insensitive substring search over title and description.

        The document store has no text index, so this scans the collection.
        """
        needle = query.lower()
        events = await self.list_events()
        return [
            event
            for event in events
            if contains_text(event.title, needle) or contains_text(event.description, needle)
        ]

    async def insert_event(self, event: Event) -> Event:
        write = DocumentWrite(
            "create",
            EVENTS,
            event.id,
            self._adapter.event_to_document(event),
        )
        await self._run_in_executor(self._client.commit, [write])
        logger.debug(f"Created event document {event.id}")
        return event

    async def update_event(self, event_id: str, fields: dict) -> bool:
        write = DocumentWrite("update", EVENTS, event_id, self._adapter.event_update(fields))
        try:
            await self._run_in_executor(self._client.commit, [write])
        except StoreNotFoundError:
            return False
        return True

    async def delete_event(self, event_id: str) -> bool:
        existing = await self._run_in_executor(self._client.get, EVENTS, event_id)
        if existing is None:
            return False
        await self._run_in_executor(
            self._client.commit,
            [DocumentWrite("delete", EVENTS, event_id)],
        )
        return True


class DocumentCalendarStore(_ExecutorMixin, CalendarStore):
    """
    CalendarStore backed by the document store "calendars" collection.

    Subscriber and event counters are not maintained here; they are kept
    by the relational store's triggers.
    """

    name = "document"
    maintains_counters = False

    def __init__(
        self,
        client: DocumentClient,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self._client = client
        self._executor = executor or ThreadPoolExecutor(max_workers=4)
        self._adapter = DocumentAdapter()

    async def get_calendar(self, calendar_id: str) -> Optional[Calendar]:
        document = await self._run_in_executor(self._client.get, CALENDARS, calendar_id)
        if document is None:
            return None
        return self._adapter.calendar_from_document(document)

    async def get_calendar_by_slug(self, slug: str) -> Optional[Calendar]:
        documents = await self._run_in_executor(
            self._client.query,
            CALENDARS,
            filters=[("slug", "==", slug)],
            limit=1,
        )
        if not documents:
            return None
        return self._adapter.calendar_from_document(documents[0])

    async def list_popular_calendars(self, limit: int) -> Sequence[Calendar]:
        documents = await self._run_in_executor(
            self._client.query,
            CALENDARS,
            order_by="subscriberCount",
            descending=True,
            limit=limit,
        )
        return [self._adapter.calendar_from_document(d) for d in documents]

    async def find_calendars_by_owner(self, owner_id: str) -> Sequence[Calendar]:
        documents = await self._run_in_executor(
            self._client.query,
            CALENDARS,
            filters=[("ownerId", "==", owner_id)],
        )
        return _newest_first([self._adapter.calendar_from_document(d) for d in documents])

    def _commit_with_slug(self, writes: list[DocumentWrite], slug: str) -> None:
        """Commit a batch that reserves slug, reporting a taken slug as a slug conflict."""
        try:
            self._client.commit(writes)
        except StoreConflictError as e:
            if self._client.get(CALENDAR_SLUGS, slug) is not None:
                raise StoreConflictError(
                    f"Calendar slug already taken: {slug}",
                    field="slug",
                    original_error=e,
                ) from e
            raise

    def _insert_calendar(self, calendar: Calendar) -> None:
        self._commit_with_slug(
            [
                DocumentWrite("create", CALENDAR_SLUGS, calendar.slug, {"calendarId": calendar.id}),
                DocumentWrite(
                    "create",
                    CALENDARS,
                    calendar.id,
                    self._adapter.calendar_to_document(calendar),
                ),
            ],
            calendar.slug,
        )

    def _update_calendar(self, calendar_id: str, fields: dict) -> bool:
        current = self._client.get(CALENDARS, calendar_id)
        if current is None:
            return False

        writes = [
            DocumentWrite("update", CALENDARS, calendar_id, self._adapter.calendar_update(fields))
        ]
        new_slug = fields.get("slug")
        old_slug = current.get("slug")
        if new_slug and new_slug != old_slug:
            writes.insert(
                0,
                DocumentWrite("create", CALENDAR_SLUGS, new_slug, {"calendarId": calendar_id}),
            )
            if old_slug:
                writes.append(DocumentWrite("delete", CALENDAR_SLUGS, old_slug))
            try:
                self._commit_with_slug(writes, new_slug)
            except StoreNotFoundError:
                return False
            return True

        try:
            self._client.commit(writes)
        except StoreNotFoundError:
            return False
        return True

    def _delete_calendar(self, calendar_id: str) -> bool:
        current = self._client.get(CALENDARS, calendar_id)
        if current is None:
            return False
        writes = [DocumentWrite("delete", CALENDARS, calendar_id)]
        if current.get("slug"):
            writes.append(DocumentWrite("delete", CALENDAR_SLUGS, current["slug"]))
        self._client.commit(writes)
        return True

    async def insert_calendar(self, calendar: Calendar) -> Calendar:
        await self._run_in_executor(self._insert_calendar, calendar)
        logger.debug(f"Created calendar document {calendar.id} ({calendar.slug})")
        return calendar

    async def update_calendar(self, calendar_id: str, fields: dict) -> bool:
        return await self._run_in_executor(self._update_calendar, calendar_id, fields)

    async def delete_calendar(self, calendar_id: str) -> bool:
        return await self._run_in_executor(self._delete_calendar, calendar_id)
