"""
Unit tests for InvitationRepository.

Runs against the relational invitation store on in-memory SQLite.
"""

import uuid
from unittest.mock import AsyncMock, patch

import pytest

from src.integrations.base import InvitationStatus
from src.integrations.exceptions import StoreConflictError
from src.services.exceptions import (
    InvalidEmailError,
    InvalidIdentifierError,
    InvalidTransitionError,
)
from src.services.inputs import (
    BatchInvitationItem,
    CreateBatchInvitationInput,
    CreateInvitationInput,
)
from src.services.invitation_repository import (
    InvitationRepository,
    generate_tracking_token,
    is_valid_email,
    normalize_email,
)


@pytest.fixture
def repository(sql_invitation_store) -> InvitationRepository:
    return InvitationRepository(sql_invitation_store)


@pytest.fixture
def event_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def inviter_id() -> str:
    return str(uuid.uuid4())


async def invite(repository, event_id, inviter_id, email="ada@example.com"):
    result = await repository.create(
        CreateInvitationInput(event_id=event_id, email=email),
        invited_by=inviter_id,
    )
    return result.invitation


class TestEmailHelpers:
    def test_normalize(self):
        assert normalize_email("  Ada@Example.COM ") == "ada@example.com"

    @pytest.mark.parametrize("email", ["ada@example.com", "a.b+c@mail.example.org"])
    def test_valid(self, email):
        assert is_valid_email(email)

    @pytest.mark.parametrize("email", ["", "ada", "ada@example", "ada @example.com", "@example.com"])
    def test_invalid(self, email):
        assert not is_valid_email(email)

    def test_tracking_tokens_are_unique_and_url_safe(self):
        tokens = {generate_tracking_token() for _ in range(50)}

        assert len(tokens) == 50
        assert all(len(t) >= 32 and "/" not in t and "+" not in t for t in tokens)


class TestCreate:
    """Test single invitation creation."""

    @pytest.mark.asyncio
    async def test_create_new(self, repository, event_id, inviter_id):
        result = await repository.create(
            CreateInvitationInput(event_id=event_id, email=" Ada@Example.com "),
            invited_by=inviter_id,
        )

        assert result.is_new is True
        invitation = result.invitation
        assert invitation.email == "ada@example.com"
        assert invitation.status == InvitationStatus.PENDING
        assert invitation.tracking_token
        assert invitation.sent_at is None

    @pytest.mark.asyncio
    async def test_create_is_idempotent_per_event_and_email(
        self, repository, event_id, inviter_id
    ):
        first = await repository.create(
            CreateInvitationInput(event_id=event_id, email="ada@example.com"),
            invited_by=inviter_id,
        )
        second = await repository.create(
            CreateInvitationInput(event_id=event_id, email="ADA@example.com"),
            invited_by=inviter_id,
        )

        assert second.is_new is False
        assert second.invitation.id == first.invitation.id
        assert second.invitation.tracking_token == first.invitation.tracking_token

    @pytest.mark.asyncio
    async def test_concurrent_create_returns_winner(
        self, repository, sql_invitation_store, event_id, inviter_id
    ):
        winner = await invite(repository, event_id, inviter_id)
        real_lookup = sql_invitation_store.get_by_event_and_email
        calls = []

        async def stale_then_real(event, email):
            calls.append(email)
            if len(calls) == 1:
                return None
            return await real_lookup(event, email)

        with patch.object(
            sql_invitation_store, "get_by_event_and_email", AsyncMock(side_effect=stale_then_real)
        ):
            result = await repository.create(
                CreateInvitationInput(event_id=event_id, email="ada@example.com"),
                invited_by=inviter_id,
            )

        assert len(calls) == 2
        assert result.is_new is False
        assert result.invitation.id == winner.id
        assert (await repository.find_by_event(event_id)).total == 1

    @pytest.mark.asyncio
    async def test_conflict_without_existing_row_is_raised(
        self, repository, sql_invitation_store, event_id, inviter_id
    ):
        with patch.object(
            sql_invitation_store,
            "insert_invitation",
            AsyncMock(side_effect=StoreConflictError("duplicate", field="email")),
        ):
            with pytest.raises(StoreConflictError):
                await invite(repository, event_id, inviter_id)

    @pytest.mark.asyncio
    async def test_same_email_other_event(self, repository, event_id, inviter_id):
        await invite(repository, event_id, inviter_id)

        result = await repository.create(
            CreateInvitationInput(event_id=str(uuid.uuid4()), email="ada@example.com"),
            invited_by=inviter_id,
        )

        assert result.is_new is True

    @pytest.mark.asyncio
    async def test_invalid_email(self, repository, event_id, inviter_id):
        with pytest.raises(InvalidEmailError):
            await repository.create(
                CreateInvitationInput(event_id=event_id, email="not-an-email"),
                invited_by=inviter_id,
            )

    @pytest.mark.asyncio
    async def test_invalid_event_id(self, repository, inviter_id):
        with pytest.raises(InvalidIdentifierError) as exc_info:
            await repository.create(
                CreateInvitationInput(event_id="event-1", email="ada@example.com"),
                invited_by=inviter_id,
            )

        assert exc_info.value.field == "event_id"

    @pytest.mark.asyncio
    async def test_custom_token_factory(self, sql_invitation_store, event_id, inviter_id):
        repository = InvitationRepository(sql_invitation_store, token_factory=lambda: "fixed-token")

        invitation = await invite(repository, event_id, inviter_id)

        assert invitation.tracking_token == "fixed-token"
        assert (await repository.find_by_tracking_token("fixed-token")).id == invitation.id


class TestCreateBatch:
    """Test batch creation."""

    @pytest.mark.asyncio
    async def test_batch_reports_new_duplicate_and_failed(
        self, repository, event_id, inviter_id
    ):
        await invite(repository, event_id, inviter_id, email="dup@example.com")

        result = await repository.create_batch(
            CreateBatchInvitationInput(
                event_id=event_id,
                invites=[
                    BatchInvitationItem(email="new@example.com"),
                    BatchInvitationItem(email="dup@example.com"),
                    BatchInvitationItem(email="malformed"),
                ],
            ),
            invited_by=inviter_id,
        )

        assert result.created == 1
        assert result.duplicates == ["dup@example.com"]
        assert result.failed == ["malformed"]
        assert [i.email for i in result.invitations] == ["new@example.com"]

    @pytest.mark.asyncio
    async def test_batch_rejects_bad_event_id(self, repository, inviter_id):
        with pytest.raises(InvalidIdentifierError):
            await repository.create_batch(
                CreateBatchInvitationInput(
                    event_id="nope",
                    invites=[BatchInvitationItem(email="a@example.com")],
                ),
                invited_by=inviter_id,
            )

    def test_batch_size_limits(self, event_id):
        with pytest.raises(ValueError):
            CreateBatchInvitationInput(event_id=event_id, invites=[])
        with pytest.raises(ValueError):
            CreateBatchInvitationInput(
                event_id=event_id,
                invites=[BatchInvitationItem(email=f"u{i}@example.com") for i in range(101)],
            )


class TestReads:
    """Test lookups and paging."""

    @pytest.mark.asyncio
    async def test_find_by_email_and_event(self, repository, event_id, inviter_id):
        invitation = await invite(repository, event_id, inviter_id)

        found = await repository.find_by_email_and_event("ADA@example.com", event_id)

        assert found.id == invitation.id

    @pytest.mark.asyncio
    async def test_find_by_event_pages_newest_first(self, repository, event_id, inviter_id):
        emails = [f"guest{i}@example.com" for i in range(5)]
        for email in emails:
            await invite(repository, event_id, inviter_id, email=email)

        page = await repository.find_by_event(event_id, limit=2, offset=1)

        assert page.total == 5
        assert [i.email for i in page.invitations] == [emails[3], emails[2]]

    @pytest.mark.asyncio
    async def test_find_by_event_filters_status(self, repository, event_id, inviter_id):
        sent = await invite(repository, event_id, inviter_id, email="sent@example.com")
        await invite(repository, event_id, inviter_id, email="pending@example.com")
        await repository.mark_as_sent(sent.id)

        page = await repository.find_by_event(event_id, status=InvitationStatus.SENT)

        assert page.total == 1
        assert page.invitations[0].id == sent.id

    @pytest.mark.asyncio
    async def test_find_by_user_email_across_events(self, repository, inviter_id):
        for _ in range(2):
            await invite(repository, str(uuid.uuid4()), inviter_id)

        assert len(await repository.find_by_user_email("Ada@Example.com")) == 2

    @pytest.mark.asyncio
    async def test_unknown_lookups(self, repository):
        assert await repository.find_by_id(str(uuid.uuid4())) is None
        assert await repository.find_by_id("not-a-uuid") is None
        assert await repository.find_by_tracking_token("") is None


class TestStatusChanges:
    """Test update_status and its helpers."""

    @pytest.mark.asyncio
    async def test_lifecycle_stamps_timestamps(self, repository, event_id, inviter_id):
        invitation = await invite(repository, event_id, inviter_id)

        sent = await repository.update_status(invitation.id, InvitationStatus.SENT)
        opened = await repository.update_status(invitation.id, InvitationStatus.OPENED)
        accepted = await repository.update_status(invitation.id, InvitationStatus.ACCEPTED)

        assert sent.sent_at is not None
        assert opened.opened_at is not None
        assert accepted.status == InvitationStatus.ACCEPTED
        assert accepted.responded_at is not None
        assert accepted.sent_at == sent.sent_at

    @pytest.mark.asyncio
    async def test_disallowed_transition_leaves_status(self, repository, event_id, inviter_id):
        invitation = await invite(repository, event_id, inviter_id)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await repository.update_status(invitation.id, InvitationStatus.ACCEPTED)

        assert exc_info.value.from_status == "pending"
        assert exc_info.value.to_status == "accepted"
        assert (await repository.find_by_id(invitation.id)).status == InvitationStatus.PENDING

    @pytest.mark.asyncio
    async def test_skip_validation(self, repository, event_id, inviter_id):
        invitation = await invite(repository, event_id, inviter_id)

        updated = await repository.update_status(
            invitation.id, InvitationStatus.ACCEPTED, skip_validation=True
        )
        stats = await repository.get_stats(event_id)

        assert updated.status == InvitationStatus.ACCEPTED
        assert updated.sent_at is not None
        assert updated.opened_at is not None
        assert stats.total_sent == stats.total_accepted == 1
        assert stats.accept_rate == 100.0

    @pytest.mark.asyncio
    async def test_clicked_status_fills_open(self, repository, event_id, inviter_id):
        invitation = await invite(repository, event_id, inviter_id)
        sent = await repository.update_status(invitation.id, InvitationStatus.SENT)

        clicked = await repository.update_status(invitation.id, InvitationStatus.CLICKED)

        assert clicked.clicked_at is not None
        assert clicked.opened_at is not None
        assert clicked.sent_at == sent.sent_at

    @pytest.mark.asyncio
    async def test_metadata_is_merged(self, repository, event_id, inviter_id):
        result = await repository.create(
            CreateInvitationInput(
                event_id=event_id, email="ada@example.com", metadata={"campaign": "fall"}
            ),
            invited_by=inviter_id,
        )

        updated = await repository.update_status(
            result.invitation.id, InvitationStatus.SENT, metadata={"providerId": "em_1"}
        )

        assert updated.metadata == {"campaign": "fall", "providerId": "em_1"}

    @pytest.mark.asyncio
    async def test_update_missing(self, repository):
        assert await repository.update_status(str(uuid.uuid4()), InvitationStatus.SENT) is None

    @pytest.mark.asyncio
    async def test_mark_as_sent_only_from_pending(self, repository, event_id, inviter_id):
        invitation = await invite(repository, event_id, inviter_id)

        assert (await repository.mark_as_sent(invitation.id)).status == InvitationStatus.SENT
        assert await repository.mark_as_sent(invitation.id) is None

    @pytest.mark.asyncio
    async def test_mark_as_bounced_records_reason(self, repository, event_id, inviter_id):
        invitation = await invite(repository, event_id, inviter_id)
        await repository.mark_as_sent(invitation.id)

        bounced = await repository.mark_as_bounced(invitation.id, "Mailbox does not exist")

        assert bounced.status == InvitationStatus.BOUNCED
        assert bounced.metadata["bounceReason"] == "Mailbox does not exist"


class TestTracking:
    """Test open and click tracking."""

    @pytest.mark.asyncio
    async def test_record_open_once(self, repository, event_id, inviter_id):
        invitation = await invite(repository, event_id, inviter_id)
        await repository.mark_as_sent(invitation.id)

        first = await repository.record_open(invitation.tracking_token)
        opened = await repository.find_by_id(invitation.id)
        second = await repository.record_open(invitation.tracking_token)
        after = await repository.find_by_id(invitation.id)

        assert first.already_opened is False
        assert first.event_id == event_id
        assert opened.status == InvitationStatus.OPENED
        assert second.already_opened is True
        assert after.opened_at == opened.opened_at

    @pytest.mark.asyncio
    async def test_open_after_decline_keeps_status(self, repository, event_id, inviter_id):
        invitation = await invite(repository, event_id, inviter_id)
        await repository.update_status(invitation.id, InvitationStatus.SENT)
        await repository.update_status(invitation.id, InvitationStatus.DECLINED)

        result = await repository.record_open(invitation.tracking_token)
        stored = await repository.find_by_id(invitation.id)

        assert result.already_opened is False
        assert stored.status == InvitationStatus.DECLINED
        assert stored.opened_at is not None

    @pytest.mark.asyncio
    async def test_accept_counts_as_open(self, repository, event_id, inviter_id):
        invitation = await invite(repository, event_id, inviter_id)
        await repository.update_status(invitation.id, InvitationStatus.SENT)
        accepted = await repository.update_status(invitation.id, InvitationStatus.ACCEPTED)

        result = await repository.record_open(invitation.tracking_token)
        stored = await repository.find_by_id(invitation.id)

        assert accepted.opened_at is not None
        assert result.already_opened is True
        assert stored.opened_at == accepted.opened_at

    @pytest.mark.asyncio
    async def test_first_click_counts_as_open(self, repository, event_id, inviter_id):
        invitation = await invite(repository, event_id, inviter_id)
        await repository.mark_as_sent(invitation.id)

        await repository.record_click(invitation.tracking_token)
        clicked = await repository.find_by_id(invitation.id)
        later_open = await repository.record_open(invitation.tracking_token)
        stats = await repository.get_stats(event_id)

        assert clicked.status == InvitationStatus.CLICKED
        assert clicked.opened_at is not None
        assert later_open.already_opened is True
        assert (await repository.find_by_id(invitation.id)).opened_at == clicked.opened_at
        assert stats.total_opened == stats.total_clicked == 1
        assert stats.open_rate == stats.click_rate == 100.0

    @pytest.mark.asyncio
    async def test_click_keeps_earlier_open_time(self, repository, event_id, inviter_id):
        invitation = await invite(repository, event_id, inviter_id)
        await repository.mark_as_sent(invitation.id)
        await repository.record_open(invitation.tracking_token)
        opened = await repository.find_by_id(invitation.id)

        await repository.record_click(invitation.tracking_token)

        assert (await repository.find_by_id(invitation.id)).opened_at == opened.opened_at

    @pytest.mark.asyncio
    async def test_record_click_advances_from_opened(self, repository, event_id, inviter_id):
        invitation = await invite(repository, event_id, inviter_id)
        await repository.mark_as_sent(invitation.id)
        await repository.record_open(invitation.tracking_token)

        first = await repository.record_click(invitation.tracking_token)
        second = await repository.record_click(invitation.tracking_token)

        stored = await repository.find_by_id(invitation.id)
        assert first.already_clicked is False
        assert second.already_clicked is True
        assert stored.status == InvitationStatus.CLICKED
        assert stored.clicked_at is not None

    @pytest.mark.asyncio
    async def test_unknown_token(self, repository):
        result = await repository.record_click("no-such-token")

        assert result.invitation_id is None
        assert result.event_id is None
        assert result.already_clicked is False


class TestStatsAndRemoval:
    """Test statistics and removal."""

    @pytest.mark.asyncio
    async def test_stats_count_engagement_by_timestamp(self, repository, event_id, inviter_id):
        invitations = [
            await invite(repository, event_id, inviter_id, email=f"g{i}@example.com")
            for i in range(4)
        ]
        for invitation in invitations[:3]:
            await repository.mark_as_sent(invitation.id)
        await repository.record_open(invitations[0].tracking_token)
        await repository.update_status(invitations[0].id, InvitationStatus.ACCEPTED)
        await repository.mark_as_bounced(invitations[1].id, "bounced")

        stats = await repository.get_stats(event_id)

        assert stats.total_sent == 3
        assert stats.total_opened == 1
        assert stats.total_accepted == 1
        assert stats.total_bounced == 1
        assert stats.open_rate == 33.3
        assert stats.accept_rate == 33.3

    @pytest.mark.asyncio
    async def test_counts_include_every_status(self, repository, event_id, inviter_id):
        invitation = await invite(repository, event_id, inviter_id)
        await invite(repository, event_id, inviter_id, email="other@example.com")
        await repository.mark_as_sent(invitation.id)

        counts = await repository.get_counts_by_status(event_id)

        assert counts["pending"] == 1
        assert counts["sent"] == 1
        assert counts["declined"] == 0
        assert set(counts) == {s.value for s in InvitationStatus}

    @pytest.mark.asyncio
    async def test_stats_for_event_without_invitations(self, repository, event_id):
        stats = await repository.get_stats(event_id)

        assert stats.total_sent == 0
        assert stats.open_rate == 0.0

    @pytest.mark.asyncio
    async def test_remove_only_undelivered(self, repository, event_id, inviter_id):
        pending = await invite(repository, event_id, inviter_id)
        sent = await invite(repository, event_id, inviter_id, email="sent@example.com")
        await repository.mark_as_sent(sent.id)

        assert await repository.remove(sent.id) is False
        assert await repository.remove(pending.id) is True
        assert await repository.find_by_id(pending.id) is None
        assert await repository.find_by_id(sent.id) is not None

    @pytest.mark.asyncio
    async def test_remove_all_for_event(self, repository, event_id, inviter_id):
        await invite(repository, event_id, inviter_id)
        await invite(repository, event_id, inviter_id, email="other@example.com")

        assert await repository.remove_all_for_event(event_id) == 2
        assert (await repository.find_by_event(event_id)).total == 0
