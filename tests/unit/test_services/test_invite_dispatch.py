"""
Unit tests for invitation email sending.

The email provider is replaced by an httpx.MockTransport; retries use
tenacity's wait_none so tests do not sleep.
"""

import json
import uuid
from unittest.mock import AsyncMock

import httpx
import pytest
from tenacity import wait_none

from src.config import Settings
from src.integrations.base import Invitation, InvitationStatus
from src.services.invite_dispatch import (
    InviteMailer,
    MailerError,
    dispatch_invitations,
)


def make_invitation(status: InvitationStatus = InvitationStatus.PENDING, **overrides) -> Invitation:
    values = {
        "id": str(uuid.uuid4()),
        "event_id": str(uuid.uuid4()),
        "email": "ada@example.com",
        "invited_by": str(uuid.uuid4()),
        "tracking_token": "tok_abc",
        "status": status,
    }
    values.update(overrides)
    return Invitation(**values)


def make_mailer(handler, api_key: str = "re_test", max_attempts: int = 3) -> InviteMailer:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return InviteMailer(
        api_key=api_key,
        from_address="Gatherly <invites@gatherly.app>",
        app_base_url="https://gatherly.app/",
        api_url="https://mail.test/emails",
        client=client,
        max_attempts=max_attempts,
        retry_wait=wait_none(),
    )


class TestBuildMessage:
    """Test the provider payload."""

    def test_urls_use_tracking_token(self):
        mailer = make_mailer(lambda request: httpx.Response(200))

        assert mailer.tracking_pixel_url("tok") == "https://gatherly.app/api/invites/tok/track"
        assert mailer.click_url("tok") == "https://gatherly.app/api/invites/tok/click"

    def test_message_contents(self):
        mailer = make_mailer(lambda request: httpx.Response(200))
        invitation = make_invitation(recipient_name="Ada")

        message = mailer.build_message(invitation, "Rust <Meetup>", sender_name="Grace")

        assert message["to"] == ["ada@example.com"]
        assert message["subject"] == "Grace invited you to Rust <Meetup>"
        assert "Rust &lt;Meetup&gt;" in message["html"]
        assert "/api/invites/tok_abc/track" in message["html"]
        assert "Hi Ada," in message["text"]
        assert {"name": "invitation_id", "value": invitation.id} in message["tags"]

    def test_default_sender(self):
        mailer = make_mailer(lambda request: httpx.Response(200))

        message = mailer.build_message(make_invitation(), "Rust Meetup")

        assert message["subject"] == "Someone invited you to Rust Meetup"

    def test_from_settings(self):
        settings = Settings(
            _env_file=None,
            email_api_key="re_live",
            app_base_url="https://example.org",
        )

        mailer = InviteMailer.from_settings(settings)

        assert mailer.click_url("t") == "https://example.org/api/invites/t/click"


class TestSendInvitation:
    """Test send_invitation."""

    @pytest.mark.asyncio
    async def test_success_returns_provider_id(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"id": "em_123"})

        mailer = make_mailer(handler)

        message_id = await mailer.send_invitation(make_invitation(), "Rust Meetup")

        assert message_id == "em_123"
        assert requests[0].headers["Authorization"] == "Bearer re_test"
        assert json.loads(requests[0].content)["to"] == ["ada@example.com"]

    @pytest.mark.asyncio
    async def test_retries_transient_errors(self):
        responses = iter([
            httpx.Response(503),
            httpx.Response(429),
            httpx.Response(200, json={"id": "em_9"}),
        ])
        mailer = make_mailer(lambda request: next(responses))

        assert await mailer.send_invitation(make_invitation(), "Rust Meetup") == "em_9"

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, text="boom")

        mailer = make_mailer(handler, max_attempts=2)

        with pytest.raises(MailerError) as exc_info:
            await mailer.send_invitation(make_invitation(), "Rust Meetup")

        assert exc_info.value.status_code == 500
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_client_errors_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(422, json={"message": "invalid to"})

        mailer = make_mailer(handler)

        with pytest.raises(MailerError) as exc_info:
            await mailer.send_invitation(make_invitation(), "Rust Meetup")

        assert exc_info.value.retryable is False
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_connection_errors_are_retryable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        mailer = make_mailer(handler, max_attempts=2)

        with pytest.raises(MailerError) as exc_info:
            await mailer.send_invitation(make_invitation(), "Rust Meetup")

        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        mailer = make_mailer(lambda request: httpx.Response(200), api_key="")

        with pytest.raises(MailerError, match="API key"):
            await mailer.send_invitation(make_invitation(), "Rust Meetup")


class TestDispatchInvitations:
    """Test dispatch_invitations."""

    @pytest.mark.asyncio
    async def test_sends_pending_and_marks_sent(self):
        mailer = make_mailer(lambda request: httpx.Response(200, json={"id": "em_1"}))
        repository = AsyncMock()
        pending = make_invitation()
        opened = make_invitation(InvitationStatus.OPENED, email="grace@example.com")

        result = await dispatch_invitations(mailer, repository, [pending, opened], "Rust Meetup")

        assert result.sent == ["ada@example.com"]
        assert result.skipped == ["grace@example.com"]
        repository.mark_as_sent.assert_awaited_once_with(pending.id)

    @pytest.mark.asyncio
    async def test_failed_send_leaves_invitation_pending(self):
        mailer = make_mailer(lambda request: httpx.Response(400, text="bad"))
        repository = AsyncMock()
        invitation = make_invitation()

        result = await dispatch_invitations(mailer, repository, [invitation], "Rust Meetup")

        assert "ada@example.com" in result.failed
        repository.mark_as_sent.assert_not_called()
