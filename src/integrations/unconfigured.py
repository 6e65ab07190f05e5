"""
Placeholder store for a backend that is not configured.

Every operation raises StoreUnavailableError, so a read chain skips the
source and a dual writer treats it as a failed write, the same as an
unreachable store.
"""

from typing import Optional, Sequence

from src.integrations.base import (
    Calendar,
    CalendarStore,
    CalendarSubscription,
    Event,
    EventStore,
    SubscriptionStore,
)
from src.integrations.exceptions import StoreUnavailableError


class UnconfiguredStore(EventStore, CalendarStore, SubscriptionStore):
    """Stands in for a store whose configuration is missing."""

    maintains_counters = False
    serves_search = False

    def __init__(self, name: str, reason: str = "not configured"):
        self.name = name
        self.reason = reason

    def _unavailable(self) -> StoreUnavailableError:
        return StoreUnavailableError(f"{self.name} store {self.reason}")

    async def get_event(self, event_id: str) -> Optional[Event]:
        raise self._unavailable()

    async def list_events(self) -> Sequence[Event]:
        raise self._unavailable()

    async def find_events_by_organizer(self, organizer_id: str) -> Sequence[Event]:
        raise self._unavailable()

    async def find_events_by_calendar(self, calendar_id: str) -> Sequence[Event]:
        raise self._unavailable()

    async def search_events(self, query: str) -> Sequence[Event]:
        raise self._unavailable()

    async def insert_event(self, event: Event) -> Event:
        raise self._unavailable()

    async def update_event(self, event_id: str, fields: dict) -> bool:
        raise self._unavailable()

    async def delete_event(self, event_id: str) -> bool:
        raise self._unavailable()

    async def get_calendar(self, calendar_id: str) -> Optional[Calendar]:
        raise self._unavailable()

    async def get_calendar_by_slug(self, slug: str) -> Optional[Calendar]:
        raise self._unavailable()

    async def list_popular_calendars(self, limit: int) -> Sequence[Calendar]:
        raise self._unavailable()

    async def find_calendars_by_owner(self, owner_id: str) -> Sequence[Calendar]:
        raise self._unavailable()

    async def insert_calendar(self, calendar: Calendar) -> Calendar:
        raise self._unavailable()

    async def update_calendar(self, calendar_id: str, fields: dict) -> bool:
        raise self._unavailable()

    async def delete_calendar(self, calendar_id: str) -> bool:
        raise self._unavailable()

    async def get_subscription(
        self,
        calendar_id: str,
        user_id: str,
    ) -> Optional[CalendarSubscription]:
        raise self._unavailable()

    async def insert_subscription(
        self,
        subscription: CalendarSubscription,
    ) -> CalendarSubscription:
        raise self._unavailable()

    async def delete_subscription(self, calendar_id: str, user_id: str) -> bool:
        raise self._unavailable()

    async def find_subscribed_calendars(self, user_id: str) -> Sequence[Calendar]:
        raise self._unavailable()
