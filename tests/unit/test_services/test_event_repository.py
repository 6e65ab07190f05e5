"""
Unit tests for EventRepository.

Uses the in-memory document store as primary and in-memory SQLite as
secondary, with mocks where a store has to fail.
"""

import uuid
from unittest.mock import AsyncMock

import pytest

from src.integrations.exceptions import StoreUnavailableError
from src.integrations.unconfigured import UnconfiguredStore
from src.services.event_repository import EventRepository
from src.services.exceptions import InvalidIdentifierError, PrimaryStoreError
from src.services.inputs import CreateEventInput, UpdateEventInput
from src.services.seed import SeedDataProvider


@pytest.fixture
def repository(document_event_store, sql_event_store) -> EventRepository:
    return EventRepository(document_event_store, sql_event_store)


def event_input(organizer_id: str, **overrides) -> CreateEventInput:
    values = {
        "title": "Rust Meetup",
        "organizer_id": organizer_id,
        "description": "Monthly talks about systems programming",
        "date": "2026-11-05T18:30:00Z",
        "city": "Lisbon",
        "tags": ["rust"],
    }
    values.update(overrides)
    return CreateEventInput(**values)


class TestCreate:
    """Test event creation."""

    @pytest.mark.asyncio
    async def test_create_writes_both_stores(
        self, repository, document_event_store, sql_event_store, organizer_id
    ):
        event = await repository.create(event_input(organizer_id))

        assert uuid.UUID(event.id)
        assert event.created_at is not None
        assert event.created_at == event.updated_at

        primary = await document_event_store.get_event(event.id)
        mirror = await sql_event_store.get_event(event.id)
        assert primary.title == "Rust Meetup"
        assert mirror.title == "Rust Meetup"
        assert mirror.organizer_id == organizer_id
        assert mirror.date == primary.date

    @pytest.mark.asyncio
    async def test_malformed_organizer_rejected(self, repository, document_event_store):
        with pytest.raises(InvalidIdentifierError) as exc_info:
            await repository.create(event_input("not-a-uuid"))

        assert exc_info.value.field == "organizer_id"
        assert await document_event_store.list_events() == []

    @pytest.mark.asyncio
    async def test_secondary_failure_does_not_fail_create(
        self, document_event_store, sql_event_store, organizer_id
    ):
        sql_event_store.insert_event = AsyncMock(side_effect=StoreUnavailableError("down"))
        repository = EventRepository(document_event_store, sql_event_store)

        event = await repository.create(event_input(organizer_id))

        assert await document_event_store.get_event(event.id) is not None

    @pytest.mark.asyncio
    async def test_primary_failure_raises_and_skips_mirror(self, sql_event_store, organizer_id):
        repository = EventRepository(UnconfiguredStore("document"), sql_event_store)

        with pytest.raises(PrimaryStoreError):
            await repository.create(event_input(organizer_id))

        assert await sql_event_store.list_events() == []


class TestUpdate:
    """Test partial updates."""

    @pytest.mark.asyncio
    async def test_update_changes_only_given_fields(
        self, repository, document_event_store, sql_event_store, organizer_id
    ):
        event = await repository.create(event_input(organizer_id))

        updated = await repository.update(event.id, UpdateEventInput(title="Rust Meetup #2"))

        assert updated.title == "Rust Meetup #2"
        assert updated.city == "Lisbon"
        assert updated.updated_at >= event.updated_at
        for store in (document_event_store, sql_event_store):
            stored = await store.get_event(event.id)
            assert stored.title == "Rust Meetup #2"
            assert stored.description == event.description
            assert stored.tags == ["rust"]

    @pytest.mark.asyncio
    async def test_explicit_null_for_required_field_is_ignored(
        self, repository, organizer_id
    ):
        event = await repository.create(event_input(organizer_id))

        updated = await repository.update(event.id, UpdateEventInput(title=None, city="Porto"))

        assert updated.title == "Rust Meetup"
        assert updated.city == "Porto"

    @pytest.mark.asyncio
    async def test_update_missing_event(self, repository):
        assert await repository.update(str(uuid.uuid4()), UpdateEventInput(title="x")) is None

    @pytest.mark.asyncio
    async def test_missing_mirror_row_is_recreated(
        self, repository, sql_event_store, organizer_id
    ):
        event = await repository.create(event_input(organizer_id))
        await sql_event_store.delete_event(event.id)

        await repository.update(event.id, UpdateEventInput(city="Porto"))

        mirror = await sql_event_store.get_event(event.id)
        assert mirror is not None
        assert mirror.city == "Porto"


class TestRemove:
    @pytest.mark.asyncio
    async def test_remove_deletes_from_both(
        self, repository, document_event_store, sql_event_store, organizer_id
    ):
        event = await repository.create(event_input(organizer_id))

        assert await repository.remove(event.id) is True

        assert await document_event_store.get_event(event.id) is None
        assert await sql_event_store.get_event(event.id) is None

    @pytest.mark.asyncio
    async def test_remove_missing(self, repository):
        assert await repository.remove(str(uuid.uuid4())) is False


class TestReads:
    """Test reads and fallback."""

    @pytest.mark.asyncio
    async def test_find_by_organizer_newest_first(self, repository, organizer_id):
        first = await repository.create(event_input(organizer_id, title="First"))
        second = await repository.create(event_input(organizer_id, title="Second"))
        await repository.create(event_input(str(uuid.uuid4()), title="Someone else"))

        events = await repository.find_by_organizer(organizer_id)

        assert [e.id for e in events] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_find_by_calendar_orders_by_date(self, repository, organizer_id):
        calendar_id = str(uuid.uuid4())
        later = await repository.create(
            event_input(organizer_id, calendar_id=calendar_id, date="2026-12-01T10:00:00Z")
        )
        sooner = await repository.create(
            event_input(organizer_id, calendar_id=calendar_id, date="2026-11-01T10:00:00Z")
        )

        events = await repository.find_by_calendar_id(calendar_id)

        assert [e.id for e in events] == [sooner.id, later.id]

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_and_uses_relational_store(
        self, repository, document_event_store, organizer_id
    ):
        await repository.create(event_input(organizer_id, title="Python Night"))
        await repository.create(event_input(organizer_id, title="Cooking Class", description=""))
        document_event_store.search_events = AsyncMock(return_value=[])

        results = await repository.search("python")

        assert [e.title for e in results] == ["Python Night"]
        document_event_store.search_events.assert_not_called()

    @pytest.mark.asyncio
    async def test_search_treats_wildcards_literally(self, repository, organizer_id):
        await repository.create(event_input(organizer_id, title="100% Fun"))
        await repository.create(event_input(organizer_id, title="1000 Fun"))

        results = await repository.search("100%")

        assert [e.title for e in results] == ["100% Fun"]

    @pytest.mark.asyncio
    async def test_short_search_returns_nothing(self, repository, organizer_id):
        await repository.create(event_input(organizer_id, title="R"))

        assert await repository.search("r") == []

    @pytest.mark.asyncio
    async def test_primary_unavailable_falls_back_to_mirror(
        self, sql_event_store, sample_event
    ):
        await sql_event_store.insert_event(sample_event)
        repository = EventRepository(UnconfiguredStore("document"), sql_event_store)

        result = await repository.lookup_by_id(sample_event.id)

        assert result.value.id == sample_event.id
        assert result.source == "relational"
        assert result.degraded is True

    @pytest.mark.asyncio
    async def test_empty_store_is_not_masked_by_seed(
        self, document_event_store, sql_event_store
    ):
        seeded = EventRepository(
            document_event_store,
            sql_event_store,
            seed=SeedDataProvider.default(),
        )

        assert await seeded.find_all() == []

    @pytest.mark.asyncio
    async def test_seed_served_when_no_store_answers(self):
        seed = SeedDataProvider.default()
        repository = EventRepository(
            UnconfiguredStore("document"),
            UnconfiguredStore("relational"),
            seed=seed,
        )

        events = await repository.find_all()
        found = await repository.find_by_id(seed.events[0].id)

        assert {e.id for e in events} == {e.id for e in seed.events}
        assert found.title == seed.events[0].title
