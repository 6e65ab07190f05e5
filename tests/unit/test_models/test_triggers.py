"""
Unit tests for the calendar counter triggers.

Counters are only ever changed by the triggers, so these tests write rows
through the relational stores and read the counters back.
"""

import uuid
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from src.integrations.base import CalendarSubscription
from src.models.triggers import (
    POSTGRES_TRIGGERS,
    SQLITE_TRIGGERS,
    drops_for,
    triggers_for,
)


class TestTriggerStatements:
    """Test dialect selection of the trigger DDL."""

    def test_sqlite_statements(self):
        assert triggers_for("sqlite") == SQLITE_TRIGGERS
        assert len(drops_for("sqlite")) == len(SQLITE_TRIGGERS)

    def test_postgresql_statements(self):
        assert triggers_for("postgresql") == POSTGRES_TRIGGERS
        assert all("DROP" in statement for statement in drops_for("postgresql"))

    def test_unknown_dialect_has_none(self):
        assert triggers_for("mysql") == []
        assert drops_for("mysql") == []


def _subscription(calendar_id: str, user_id: str) -> CalendarSubscription:
    return CalendarSubscription(
        id=str(uuid.uuid4()),
        calendar_id=calendar_id,
        user_id=user_id,
        created_at=datetime.now(timezone.utc),
    )


class TestSubscriberCount:
    """Test calendars.subscriber_count maintenance."""

    @pytest.mark.asyncio
    async def test_insert_and_delete_subscription(self, sql_calendar_store, sample_calendar):
        await sql_calendar_store.insert_calendar(sample_calendar)

        await sql_calendar_store.insert_subscription(_subscription(sample_calendar.id, "user-1"))
        await sql_calendar_store.insert_subscription(_subscription(sample_calendar.id, "user-2"))
        calendar = await sql_calendar_store.get_calendar(sample_calendar.id)
        assert calendar.subscriber_count == 2

        await sql_calendar_store.delete_subscription(sample_calendar.id, "user-1")
        calendar = await sql_calendar_store.get_calendar(sample_calendar.id)
        assert calendar.subscriber_count == 1

    @pytest.mark.asyncio
    async def test_application_counter_values_are_ignored(
        self, sql_calendar_store, sample_calendar
    ):
        """Counters on the record are never written by the application."""
        await sql_calendar_store.insert_calendar(replace(sample_calendar, subscriber_count=99))

        calendar = await sql_calendar_store.get_calendar(sample_calendar.id)
        assert calendar.subscriber_count == 0


class TestEventCount:
    """Test calendars.event_count maintenance."""

    @pytest.mark.asyncio
    async def test_insert_delete_and_move(
        self, sql_calendar_store, sql_event_store, sample_calendar, sample_event
    ):
        other = replace(sample_calendar, id=str(uuid.uuid4()), slug="porto-tech")
        await sql_calendar_store.insert_calendar(sample_calendar)
        await sql_calendar_store.insert_calendar(other)

        await sql_event_store.insert_event(replace(sample_event, calendar_id=sample_calendar.id))
        assert (await sql_calendar_store.get_calendar(sample_calendar.id)).event_count == 1

        await sql_event_store.update_event(sample_event.id, {"calendar_id": other.id})
        assert (await sql_calendar_store.get_calendar(sample_calendar.id)).event_count == 0
        assert (await sql_calendar_store.get_calendar(other.id)).event_count == 1

        await sql_event_store.delete_event(sample_event.id)
        assert (await sql_calendar_store.get_calendar(other.id)).event_count == 0

    @pytest.mark.asyncio
    async def test_events_without_calendar_do_not_count(
        self, sql_calendar_store, sql_event_store, sample_calendar, sample_event
    ):
        await sql_calendar_store.insert_calendar(sample_calendar)

        await sql_event_store.insert_event(sample_event)

        assert (await sql_calendar_store.get_calendar(sample_calendar.id)).event_count == 0
