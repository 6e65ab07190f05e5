"""
Invitation repository.

Implements the invitation lifecycle on top of the relational invitation
store:
- Idempotent creation keyed by (event_id, normalized email)
- Batch creation with per-item duplicate/failure reporting
- Status changes validated against the transition table and applied with
  conditional updates on the observed status
- Open/click tracking keyed by tracking token, idempotent per invitation
- Aggregate statistics per event
"""

import logging
import re
import secrets
from dataclasses import dataclass, field
from typing import Callable, Optional

from src.integrations.base import Invitation, InvitationStatus
from src.integrations.exceptions import StoreConflictError, StoreError
from src.integrations.normalize import is_valid_identifier, new_id, utc_now
from src.integrations.relational.repository import SQLInvitationStore
from src.services.exceptions import (
    InvalidEmailError,
    InvalidIdentifierError,
    InvalidTransitionError,
    ValidationFailedError,
)
from src.services.inputs import CreateBatchInvitationInput, CreateInvitationInput
from src.services.stats import InvitationStats, build_stats
from src.services.transitions import (
    IMPLIED_TIMESTAMPS,
    REMOVABLE_STATUSES,
    STATUS_TIMESTAMPS,
    is_valid_transition,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def generate_tracking_token() -> str:
    """Opaque, URL-safe, unguessable token."""
    return secrets.token_urlsafe(32)


@dataclass(frozen=True)
class CreateInvitationResult:
    invitation: Invitation
    is_new: bool


@dataclass
class BatchInvitationResult:
    """
    Outcome of a batch create.

    created counts new invitations (also listed in invitations);
    duplicates and failed hold the emails as supplied.
    """

    created: int = 0
    duplicates: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    invitations: list[Invitation] = field(default_factory=list)


@dataclass(frozen=True)
class InvitationPage:
    invitations: list[Invitation]
    total: int


@dataclass(frozen=True)
class OpenTrackingResult:
    invitation_id: Optional[str]
    event_id: Optional[str]
    already_opened: bool


@dataclass(frozen=True)
class ClickTrackingResult:
    invitation_id: Optional[str]
    event_id: Optional[str]
    already_clicked: bool


def _require_identifier(field_name: str, value: Optional[str]) -> None:
    if not is_valid_identifier(value):
        raise InvalidIdentifierError(field_name, value)


def _implied_timestamps(status: InvitationStatus, now) -> dict:
    return {field: now for field in IMPLIED_TIMESTAMPS.get(status, ())}


class InvitationRepository:
    """
    Invitation persistence and lifecycle.

    Args:
        store: Relational invitation store
        token_factory: Tracking token generator (override in tests)
    """

    def __init__(
        self,
        store: SQLInvitationStore,
        token_factory: Callable[[], str] = generate_tracking_token,
    ):
        self._store = store
        self._token_factory = token_factory

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    async def create(self, data: CreateInvitationInput, invited_by: str) -> CreateInvitationResult:
        """
        Create an invitation, or return the existing one for (event, email).

        Raises:
            InvalidEmailError: If the email is malformed
            InvalidIdentifierError: If event_id, invited_by or calendar_id is malformed
            StoreError: If the invitation store fails
        """
        email = normalize_email(data.email)
        if not is_valid_email(email):
            raise InvalidEmailError(data.email)
        _require_identifier("event_id", data.event_id)
        _require_identifier("invited_by", invited_by)
        if data.calendar_id is not None:
            _require_identifier("calendar_id", data.calendar_id)

        existing = await self._store.get_by_event_and_email(data.event_id, email)
        if existing is not None:
            return CreateInvitationResult(existing, is_new=False)

        now = utc_now()
        invitation = Invitation(
            id=new_id(),
            event_id=data.event_id,
            email=email,
            invited_by=invited_by,
            tracking_token=self._token_factory(),
            source=data.source,
            calendar_id=data.calendar_id,
            recipient_name=data.recipient_name,
            user_id=data.user_id,
            metadata=dict(data.metadata),
            created_at=now,
            updated_at=now,
        )

        try:
            await self._store.insert_invitation(invitation)
        except StoreConflictError:
            # Lost a race with a concurrent create for the same address
            existing = await self._store.get_by_event_and_email(data.event_id, email)
            if existing is None:
                raise
            return CreateInvitationResult(existing, is_new=False)

        logger.info(f"Created invitation {invitation.id} for event {data.event_id}")
        return CreateInvitationResult(invitation, is_new=True)

    async def create_batch(
        self,
        data: CreateBatchInvitationInput,
        invited_by: str,
    ) -> BatchInvitationResult:
        """
        Create invitations for many addresses to one event.

        One item's failure never aborts the others.

        Raises:
            InvalidIdentifierError: If event_id or invited_by is malformed
        """
        _require_identifier("event_id", data.event_id)
        _require_identifier("invited_by", invited_by)

        result = BatchInvitationResult()
        for item in data.invites:
            try:
                created = await self.create(
                    CreateInvitationInput(
                        event_id=data.event_id,
                        email=item.email,
                        calendar_id=data.calendar_id,
                        recipient_name=item.recipient_name,
                        user_id=item.user_id,
                        source=data.source,
                    ),
                    invited_by,
                )
            except (ValidationFailedError, StoreError) as e:
                logger.warning(f"Batch invitation for {item.email!r} failed: {e}")
                result.failed.append(item.email)
                continue

            if created.is_new:
                result.created += 1
                result.invitations.append(created.invitation)
            else:
                result.duplicates.append(item.email)

        logger.info(
            f"Batch invitations for event {data.event_id}: {result.created} created, "
            f"{len(result.duplicates)} duplicates, {len(result.failed)} failed"
        )
        return result

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def find_by_id(self, invitation_id: str) -> Optional[Invitation]:
        return await self._store.get_invitation(invitation_id)

    async def find_by_tracking_token(self, token: str) -> Optional[Invitation]:
        if not token:
            return None
        return await self._store.get_by_tracking_token(token)

    async def find_by_email_and_event(self, email: str, event_id: str) -> Optional[Invitation]:
        email = normalize_email(email)
        if not is_valid_email(email):
            return None
        return await self._store.get_by_event_and_email(event_id, email)

    async def find_by_event(
        self,
        event_id: str,
        status: Optional[InvitationStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> InvitationPage:
        """An event's invitations, newest first, with the total matching count."""
        invitations, total = await self._store.list_for_event(
            event_id,
            status=InvitationStatus(status) if status is not None else None,
            limit=limit,
            offset=offset,
        )
        return InvitationPage(invitations=invitations, total=total)

    async def find_by_user_email(self, email: str) -> list[Invitation]:
        """Every invitation sent to an address, newest first."""
        email = normalize_email(email)
        if not is_valid_email(email):
            return []
        return await self._store.list_for_email(email)

    # -------------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------------

    async def update_status(
        self,
        invitation_id: str,
        new_status: InvitationStatus,
        skip_validation: bool = False,
        metadata: Optional[dict] = None,
    ) -> Optional[Invitation]:
        """
        Move an invitation to new_status.

        Stamps sent_at/opened_at/clicked_at the first time those states are
        entered and responded_at on accept/decline. Earlier steps the new
        status implies are filled in when missing, so a click also counts as
        an open and an administrative jump to accepted still counts as sent.
        The write is conditional on the status observed before it, so a
        concurrent change is detected.

        Args:
            invitation_id: Invitation to update
            new_status: Target status
            skip_validation: Bypass the transition table (administrative use)
            metadata: Merged into the invitation's metadata

        Returns:
            Updated invitation, or None if it does not exist

        Raises:
            InvalidTransitionError: If the transition is not allowed
        """
        new_status = InvitationStatus(new_status)
        current = await self._store.get_invitation(invitation_id)
        if current is None:
            return None

        if not skip_validation and not is_valid_transition(current.status, new_status):
            raise InvalidTransitionError(current.status.value, new_status.value)

        now = utc_now()
        values: dict = {"status": new_status, "updated_at": now}
        timestamp_field = STATUS_TIMESTAMPS.get(new_status)
        if timestamp_field and getattr(current, timestamp_field) is None:
            values[timestamp_field] = now
        if metadata:
            values["metadata"] = {**current.metadata, **metadata}

        updated = await self._store.update_invitation(
            invitation_id,
            values,
            expected_status=current.status,
            fill_missing=_implied_timestamps(new_status, now),
        )
        if not updated:
            latest = await self._store.get_invitation(invitation_id)
            if latest is None:
                return None
            if latest.status == new_status:
                return latest
            raise InvalidTransitionError(latest.status.value, new_status.value)

        logger.info(
            f"Invitation {invitation_id}: {current.status.value} -> {new_status.value}"
        )
        return await self._store.get_invitation(invitation_id)

    async def mark_as_sent(self, invitation_id: str) -> Optional[Invitation]:
        """
        Move a pending invitation to sent.

        Returns:
            Updated invitation, or None if it is missing or no longer pending
        """
        now = utc_now()
        updated = await self._store.update_invitation(
            invitation_id,
            {"status": InvitationStatus.SENT, "sent_at": now, "updated_at": now},
            expected_status=InvitationStatus.PENDING,
        )
        if not updated:
            logger.debug(f"Invitation {invitation_id} not pending; mark_as_sent skipped")
            return None
        return await self._store.get_invitation(invitation_id)

    async def mark_as_bounced(
        self,
        invitation_id: str,
        reason: Optional[str] = None,
    ) -> Optional[Invitation]:
        """Force an invitation to bounced, recording reason as bounceReason."""
        current = await self._store.get_invitation(invitation_id)
        if current is None:
            return None

        values: dict = {"status": InvitationStatus.BOUNCED, "updated_at": utc_now()}
        if reason:
            values["metadata"] = {**current.metadata, "bounceReason": reason}

        if not await self._store.update_invitation(invitation_id, values):
            return None
        logger.info(f"Invitation {invitation_id} bounced: {reason or 'no reason given'}")
        return await self._store.get_invitation(invitation_id)

    # -------------------------------------------------------------------------
    # Tracking
    # -------------------------------------------------------------------------

    async def _record_first(
        self,
        token: str,
        timestamp_field: str,
        status: InvitationStatus,
    ) -> tuple[Optional[Invitation], bool]:
        """
        Stamp timestamp_field once, advancing to status when the transition allows.

        Returns:
            (invitation or None for an unknown token, whether it was already recorded)
        """
        invitation = await self.find_by_tracking_token(token)
        if invitation is None:
            return None, False

        now = utc_now()
        values = {timestamp_field: now, "updated_at": now}
        implied = _implied_timestamps(status, now)

        if is_valid_transition(invitation.status, status):
            recorded = await self._store.update_invitation(
                invitation.id,
                {**values, "status": status},
                expected_status=invitation.status,
                unset_field=timestamp_field,
                fill_missing=implied,
            )
            if recorded:
                return invitation, False

        # Status moved on (or may not advance); still record the first hit
        recorded = await self._store.update_invitation(
            invitation.id,
            values,
            unset_field=timestamp_field,
            fill_missing=implied,
        )
        return invitation, not recorded

    async def record_open(self, token: str) -> OpenTrackingResult:
        """Record an email open (tracking pixel hit)."""
        invitation, already = await self._record_first(
            token, "opened_at", InvitationStatus.OPENED
        )
        if invitation is None:
            return OpenTrackingResult(None, None, already_opened=False)
        return OpenTrackingResult(invitation.id, invitation.event_id, already_opened=already)

    async def record_click(self, token: str) -> ClickTrackingResult:
        """Record a click on the invitation link."""
        invitation, already = await self._record_first(
            token, "clicked_at", InvitationStatus.CLICKED
        )
        if invitation is None:
            return ClickTrackingResult(None, None, already_clicked=False)
        return ClickTrackingResult(invitation.id, invitation.event_id, already_clicked=already)

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    async def get_stats(self, event_id: str) -> InvitationStats:
        return build_stats(await self._store.aggregate_for_event(event_id))

    async def get_counts_by_status(self, event_id: str) -> dict[str, int]:
        """Invitation count for every status, including zeros."""
        counts = await self._store.count_by_status(event_id)
        return {status.value: counts.get(status.value, 0) for status in InvitationStatus}

    # -------------------------------------------------------------------------
    # Removal
    # -------------------------------------------------------------------------

    async def remove(self, invitation_id: str) -> bool:
        """
        Withdraw an invitation that was never delivered (pending or bounced).

        Returns:
            True if removed, False if missing or already delivered
        """
        removed = await self._store.delete_invitation(invitation_id, REMOVABLE_STATUSES)
        if removed:
            logger.info(f"Removed invitation {invitation_id}")
        return removed

    async def remove_all_for_event(self, event_id: str) -> int:
        count = await self._store.delete_for_event(event_id)
        logger.info(f"Removed {count} invitations for event {event_id}")
        return count
