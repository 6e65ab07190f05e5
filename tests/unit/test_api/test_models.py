"""
Unit tests for API Pydantic models and webhook helpers.

Tests request validation and response serialization.
"""

import pytest
from pydantic import ValidationError

from src.api.models import (
    BatchInviteRequest,
    CalendarResponse,
    EventResponse,
    InvitationResponse,
    UpdateInvitationStatusRequest,
)
from src.api.webhook_routes import (
    generate_signature,
    invitation_id_from_tags,
    verify_signature,
)
from src.integrations.base import Coordinates, Invitation, InvitationStatus


class TestRequests:
    """Test request validation."""

    def test_batch_defaults(self):
        request = BatchInviteRequest(event_id="e1", invites=[{"email": "ada@example.com"}])

        assert request.send_email is True
        assert request.invites[0].email == "ada@example.com"

    def test_batch_requires_invites(self):
        with pytest.raises(ValidationError):
            BatchInviteRequest(event_id="e1", invites=[])

    def test_status_must_be_known(self):
        assert UpdateInvitationStatusRequest(status="opened").status == InvitationStatus.OPENED
        with pytest.raises(ValidationError):
            UpdateInvitationStatusRequest(status="lost")


class TestResponses:
    """Test response serialization from domain records."""

    def test_event_response(self, sample_event):
        sample_event.coords = Coordinates(lat=38.7, lng=-9.1)

        data = EventResponse.model_validate(sample_event).model_dump(mode="json")

        assert data["id"] == sample_event.id
        assert data["coords"] == {"lat": 38.7, "lng": -9.1}
        assert data["status"] == "published"

    def test_calendar_response(self, sample_calendar):
        data = CalendarResponse.model_validate(sample_calendar)

        assert data.slug == "lisbon-tech"
        assert data.subscriber_count == 0

    def test_invitation_response_hides_tracking_token(self):
        invitation = Invitation(
            id="i1",
            event_id="e1",
            email="ada@example.com",
            invited_by="u1",
            tracking_token="secret",
        )

        data = InvitationResponse.model_validate(invitation).model_dump()

        assert "tracking_token" not in data
        assert data["status"] == InvitationStatus.PENDING


class TestWebhookHelpers:
    """Test webhook signature and tag helpers."""

    def test_signature_round_trip(self):
        signature = generate_signature(b'{"type":"email.bounced"}', "secret")

        assert len(signature) == 64
        assert verify_signature(b'{"type":"email.bounced"}', signature, "secret")
        assert not verify_signature(b'{"type":"email.sent"}', signature, "secret")
        assert not verify_signature(b"{}", None, "secret")

    @pytest.mark.parametrize(
        "tags",
        [
            {"invitation_id": "i1"},
            [{"name": "event", "value": "e1"}, {"name": "invitation_id", "value": "i1"}],
        ],
    )
    def test_invitation_id_from_tags(self, tags):
        assert invitation_id_from_tags(tags) == "i1"

    def test_missing_tag(self):
        assert invitation_id_from_tags(None) is None
        assert invitation_id_from_tags([{"name": "event", "value": "e1"}]) is None
