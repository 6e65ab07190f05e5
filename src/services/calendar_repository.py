"""
Calendar repository: dual-written calendars plus subscriptions.

Calendars follow the same primary/secondary policy as events. Slugs are
checked up front (advisory) and enforced by the stores' uniqueness
constraints; a conflict from the primary store surfaces as SlugTakenError.
Subscriptions live only in the relational store, whose triggers maintain
subscriber_count and event_count, so popularity reads prefer it.
"""

import logging
import re
from dataclasses import replace
from typing import Optional

from src.integrations.base import (
    Calendar,
    CalendarReader,
    CalendarStore,
    CalendarSubscription,
    SubscriptionStore,
)
from src.integrations.exceptions import (
    StoreConflictError,
    StoreUnavailableError,
)
from src.integrations.normalize import is_valid_identifier, new_id, utc_now
from src.services.dual_write import DualWriter, OutcomeObserver
from src.services.exceptions import (
    CalendarNotFoundError,
    InvalidIdentifierError,
    InvalidSlugError,
    PrimaryStoreError,
    SlugTakenError,
)
from src.services.inputs import CreateCalendarInput, SubscribeInput, UpdateCalendarInput
from src.services.read_chain import Found, NotFound, ReadChain, ReadResult
from src.services.seed import SeedCalendarSource, SeedDataProvider

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def normalize_slug(slug: str) -> str:
    return (slug or "").strip().lower()


def is_valid_slug(slug: str) -> bool:
    return bool(SLUG_PATTERN.match(slug))


def _is_slug_conflict(error: PrimaryStoreError) -> bool:
    cause = error.original_error
    return isinstance(cause, StoreConflictError) and cause.field == "slug"


class CalendarRepository:
    """
    Calendar and subscription persistence.

    Args:
        primary: System-of-record calendar store
        secondary: Mirror calendar store
        subscriptions: Store holding calendar subscriptions (relational)
        seed: Optional seed dataset served when no store can answer
        on_outcome: Optional observer receiving every WriteOutcome
    """

    def __init__(
        self,
        primary: CalendarStore,
        secondary: CalendarStore,
        subscriptions: SubscriptionStore,
        seed: Optional[SeedDataProvider] = None,
        on_outcome: Optional[OutcomeObserver] = None,
    ):
        self._primary = primary
        self._secondary = secondary
        self._subscriptions = subscriptions
        self._writer = DualWriter(primary.name, secondary.name, on_outcome=on_outcome)

        self._store_reads = ReadChain([primary, secondary])
        sources: list[CalendarReader] = [primary, secondary]
        if seed is not None:
            sources.append(SeedCalendarSource(seed))
        self._reads = ReadChain(sources)
        self._popular_reads = self._reads.reordered(
            lambda source: 0 if getattr(source, "maintains_counters", False) else 1
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def lookup_by_id(self, calendar_id: str) -> ReadResult:
        return await self._reads.lookup_one(
            lambda source: source.get_calendar(calendar_id),
            f"calendar {calendar_id}",
        )

    async def lookup_by_slug(self, slug: str) -> ReadResult:
        slug = normalize_slug(slug)
        return await self._reads.lookup_one(
            lambda source: source.get_calendar_by_slug(slug),
            f"calendar slug {slug}",
        )

    async def find_by_id(self, calendar_id: str) -> Optional[Calendar]:
        return (await self.lookup_by_id(calendar_id)).value

    async def find_by_slug(self, slug: str) -> Optional[Calendar]:
        return (await self.lookup_by_slug(slug)).value

    async def find_popular(self, limit: int = 6) -> list[Calendar]:
        """Calendars with the most subscribers, served by the counter-maintaining store first."""
        result = await self._popular_reads.lookup_many(
            lambda source: source.list_popular_calendars(limit),
            "popular calendars",
        )
        return result.value or []

    async def find_by_owner(self, owner_id: str) -> list[Calendar]:
        result = await self._reads.lookup_many(
            lambda source: source.find_calendars_by_owner(owner_id),
            f"calendars of owner {owner_id}",
        )
        return result.value or []

    async def is_slug_available(self, slug: str) -> bool:
        """
        Advisory check that no stored calendar uses slug.

        Seed data is not consulted. When no store can answer, the slug is
        reported available and the write's uniqueness constraint decides.
        """
        slug = normalize_slug(slug)
        if not is_valid_slug(slug):
            return False
        result = await self._store_reads.lookup_one(
            lambda source: source.get_calendar_by_slug(slug),
            f"calendar slug {slug}",
        )
        return not isinstance(result, Found)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _validated_slug(self, slug: str) -> str:
        normalized = normalize_slug(slug)
        if not is_valid_slug(normalized):
            raise InvalidSlugError(slug)
        return normalized

    async def create(self, data: CreateCalendarInput, owner_id: str) -> Calendar:
        """
        Create a calendar in both stores.

        Raises:
            InvalidSlugError: If the slug is malformed
            SlugTakenError: If another calendar already uses the slug
            PrimaryStoreError: If the primary store write fails
        """
        slug = self._validated_slug(data.slug)
        if not await self.is_slug_available(slug):
            raise SlugTakenError(slug)

        now = utc_now()
        calendar = Calendar(
            id=new_id(),
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
            **{**dict(data), "slug": slug},
        )

        try:
            outcome = await self._writer.execute(
                "create",
                "calendar",
                calendar.id,
                primary=lambda: self._primary.insert_calendar(calendar),
                secondary=lambda _: self._secondary.insert_calendar(calendar),
            )
        except PrimaryStoreError as e:
            if _is_slug_conflict(e):
                raise SlugTakenError(slug) from e
            raise

        logger.info(f"Created calendar {calendar.id} ({slug})")
        return outcome.result

    async def update(self, calendar_id: str, data: UpdateCalendarInput) -> Optional[Calendar]:
        """
        Apply the fields set on data to both stores.

        Returns:
            The pre-update record merged with the changes, or None if the
            calendar does not exist in the primary store
        """
        changes = data.changes()
        if "slug" in changes:
            slug = self._validated_slug(changes["slug"])
            changes["slug"] = slug
            holder = await self._store_reads.lookup_one(
                lambda source: source.get_calendar_by_slug(slug),
                f"calendar slug {slug}",
            )
            if isinstance(holder, Found) and holder.value.id != calendar_id:
                raise SlugTakenError(slug)

        fields = {**changes, "updated_at": utc_now()}

        async def write_primary() -> Optional[Calendar]:
            existing = await self._primary.get_calendar(calendar_id)
            if existing is None:
                return None
            if not await self._primary.update_calendar(calendar_id, fields):
                return None
            return replace(existing, **fields)

        async def write_secondary(merged: Optional[Calendar]) -> None:
            if merged is None:
                return
            if not await self._secondary.update_calendar(calendar_id, fields):
                logger.info(f"Mirror row for calendar {calendar_id} missing; writing merged record")
                await self._secondary.insert_calendar(merged)

        try:
            outcome = await self._writer.execute(
                "update",
                "calendar",
                calendar_id,
                primary=write_primary,
                secondary=write_secondary,
            )
        except PrimaryStoreError as e:
            if _is_slug_conflict(e):
                raise SlugTakenError(changes["slug"]) from e
            raise
        return outcome.result

    async def remove(self, calendar_id: str) -> bool:
        """
        Delete a calendar; the mirror delete also removes its subscriptions.

        Returns:
            True if the primary store had the calendar
        """
        outcome = await self._writer.execute(
            "delete",
            "calendar",
            calendar_id,
            primary=lambda: self._primary.delete_calendar(calendar_id),
            secondary=lambda _: self._secondary.delete_calendar(calendar_id),
        )
        if outcome.result:
            logger.info(f"Deleted calendar {calendar_id}")
        return bool(outcome.result)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    async def subscribe(self, data: SubscribeInput, user_id: str) -> CalendarSubscription:
        """
        Subscribe user_id to a calendar, returning the existing subscription if any.

        Raises:
            InvalidIdentifierError: If calendar_id is malformed
            CalendarNotFoundError: If the calendar does not exist
            PrimaryStoreError: If no store can confirm the calendar exists
        """
        calendar_id = data.calendar_id
        if not is_valid_identifier(calendar_id):
            raise InvalidIdentifierError("calendar_id", calendar_id)

        found = await self._store_reads.lookup_one(
            lambda source: source.get_calendar(calendar_id),
            f"calendar {calendar_id}",
        )
        if isinstance(found, NotFound):
            raise CalendarNotFoundError(calendar_id)
        if not isinstance(found, Found):
            raise PrimaryStoreError(
                "subscribe to",
                "calendar",
                calendar_id,
                original_error=StoreUnavailableError(found.reason),
            )

        existing = await self._subscriptions.get_subscription(calendar_id, user_id)
        if existing is not None:
            return existing

        subscription = CalendarSubscription(
            id=new_id(),
            calendar_id=calendar_id,
            user_id=user_id,
            notify_new_events=data.notify_new_events,
            notify_reminders=data.notify_reminders,
            created_at=utc_now(),
        )
        try:
            await self._subscriptions.insert_subscription(subscription)
        except StoreConflictError:
            # Concurrent subscribe won the insert
            existing = await self._subscriptions.get_subscription(calendar_id, user_id)
            if existing is None:
                raise
            return existing

        logger.info(f"User {user_id} subscribed to calendar {calendar_id}")
        return subscription

    async def unsubscribe(self, calendar_id: str, user_id: str) -> bool:
        """
        Remove a subscription.

        Returns:
            True if a subscription was removed, False if there was none
        """
        removed = await self._subscriptions.delete_subscription(calendar_id, user_id)
        if removed:
            logger.info(f"User {user_id} unsubscribed from calendar {calendar_id}")
        return removed

    async def find_subscriptions(self, user_id: str) -> list[Calendar]:
        """Calendars user_id subscribes to; empty if the subscription store is down."""
        try:
            return list(await self._subscriptions.find_subscribed_calendars(user_id))
        except StoreUnavailableError as e:
            logger.warning(f"Could not load subscriptions for {user_id}: {e.message}")
            return []

    async def is_subscribed(self, calendar_id: str, user_id: str) -> bool:
        try:
            return await self._subscriptions.get_subscription(calendar_id, user_id) is not None
        except StoreUnavailableError as e:
            logger.warning(
                f"Could not check subscription of {user_id} to {calendar_id}: {e.message}"
            )
            return False
