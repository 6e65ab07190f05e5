"""
Unit tests for repository input models.
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from src.integrations.base import Coordinates, EventStatus, Host
from src.services.inputs import (
    CreateEventInput,
    SubscribeInput,
    UpdateCalendarInput,
    UpdateEventInput,
)


class TestCreateEventInput:
    """Test CreateEventInput validation."""

    def test_minimal(self):
        data = CreateEventInput(title="Meetup", organizer_id="u1")

        assert data.status == EventStatus.PUBLISHED
        assert data.coords == Coordinates()
        assert data.tags == []

    def test_title_is_stripped_and_required(self):
        assert CreateEventInput(title="  Meetup ", organizer_id="u1").title == "Meetup"
        with pytest.raises(ValidationError):
            CreateEventInput(title="   ", organizer_id="u1")

    @pytest.mark.parametrize(
        "raw",
        ["2026-11-05T18:30:00Z", "2026-11-05 18:30", "Nov 5 2026 6:30pm"],
    )
    def test_lenient_dates(self, raw):
        data = CreateEventInput(title="Meetup", organizer_id="u1", date=raw)

        assert data.date == datetime(2026, 11, 5, 18, 30, tzinfo=timezone.utc)

    def test_unparseable_date(self):
        with pytest.raises(ValidationError):
            CreateEventInput(title="Meetup", organizer_id="u1", date="someday")

    def test_nested_records_built_from_dicts(self):
        data = CreateEventInput(
            title="Meetup",
            organizer_id="u1",
            coords={"lat": 38.7, "lng": -9.1},
            hosts=[{"name": "Ada", "role": "speaker"}],
        )

        assert data.coords == Coordinates(lat=38.7, lng=-9.1)
        assert data.hosts == [Host(name="Ada", role="speaker")]

    def test_negative_capacity_rejected(self):
        with pytest.raises(ValidationError):
            CreateEventInput(title="Meetup", organizer_id="u1", capacity=-1)


class TestUpdateInputs:
    """Test partial update semantics."""

    def test_only_set_fields_are_changes(self):
        assert UpdateEventInput(city="Porto").changes() == {"city": "Porto"}

    def test_null_optional_field_is_a_change(self):
        assert UpdateEventInput(capacity=None).changes() == {"capacity": None}

    def test_null_required_field_is_ignored(self):
        assert UpdateEventInput(title=None, tags=None).changes() == {}

    def test_calendar_changes(self):
        changes = UpdateCalendarInput(name=None, description=None).changes()

        assert changes == {"description": None}


class TestSubscribeInput:
    def test_notifications_default_on(self):
        data = SubscribeInput(calendar_id="c1")

        assert data.notify_new_events is True
        assert data.notify_reminders is True
