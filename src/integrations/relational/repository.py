"""
Relational store implementations (SQLAlchemy asyncio).

Implements the event, calendar and subscription store protocols, plus the
invitation store, which only exists here: the relational store owns the
uniqueness constraints (calendar slug, (calendar, user), (event, email),
tracking token) and the counter triggers.

SQLAlchemy errors are translated at this boundary:
- IntegrityError -> StoreConflictError (with the offending field when known)
- Connection/operational errors -> StoreUnavailableError
- Anything else from SQLAlchemy -> StoreError
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Sequence

from sqlalchemy import case, delete, func, literal, or_, select, update
from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.integrations.base import (
    Calendar,
    CalendarStore,
    CalendarSubscription,
    Event,
    EventStore,
    Invitation,
    InvitationStatus,
    SubscriptionStore,
)
from src.integrations.exceptions import (
    StoreConflictError,
    StoreError,
    StoreUnavailableError,
)
from src.integrations.normalize import is_valid_identifier
from src.integrations.relational.adapter import RelationalAdapter
from src.models import (
    CalendarModel,
    CalendarSubscriptionModel,
    EventModel,
    InvitationModel,
)

logger = logging.getLogger(__name__)


def _conflict_field(error: IntegrityError) -> Optional[str]:
    """Best-effort name of the field whose uniqueness was violated."""
    message = str(error.orig).lower()
    if "tracking_token" in message:
        return "tracking_token"
    if "slug" in message:
        return "slug"
    if "uq_invitation_event_email" in message or "invitations.email" in message:
        return "email"
    if "uq_subscription_calendar_user" in message or "calendar_subscriptions.user_id" in message:
        return "user_id"
    if "pkey" in message or ".id" in message:
        return "id"
    return None


def _like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class _SQLStore:
    """Session handling and error translation shared by the relational stores."""

    name = "relational"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """
        Initialize the store.

        Args:
            session_factory: Async session factory bound to the engine
        """
        self._session_factory = session_factory
        self._adapter = RelationalAdapter()

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        """Yield a session inside a transaction, translating SQLAlchemy errors."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except IntegrityError as e:
            field = _conflict_field(e)
            raise StoreConflictError(
                f"Uniqueness constraint violated{f' on {field}' if field else ''}",
                field=field,
                original_error=e,
            ) from e
        except (OperationalError, InterfaceError, PoolTimeoutError, OSError) as e:
            raise StoreUnavailableError(
                f"Relational store unavailable: {e}",
                original_error=e,
            ) from e
        except SQLAlchemyError as e:
            raise StoreError(f"Relational store error: {e}", original_error=e) from e


class SQLEventStore(_SQLStore, EventStore):
    """EventStore backed by the events table."""

    serves_search = True

    async def get_event(self, event_id: str) -> Optional[Event]:
        if not is_valid_identifier(event_id):
            return None
        async with self._transaction() as session:
            row = await session.scalar(select(EventModel).where(EventModel.id == event_id))
            return self._adapter.event_from_row(row) if row else None

    async def list_events(self) -> Sequence[Event]:
        async with self._transaction() as session:
            rows = await session.scalars(
                select(EventModel).order_by(EventModel.created_at.desc())
            )
            return [self._adapter.event_from_row(row) for row in rows]

    async def find_events_by_organizer(self, organizer_id: str) -> Sequence[Event]:
        if not is_valid_identifier(organizer_id):
            return []
        async with self._transaction() as session:
            rows = await session.scalars(
                select(EventModel)
                .where(EventModel.organizer_id == organizer_id)
                .order_by(EventModel.created_at.desc())
            )
            return [self._adapter.event_from_row(row) for row in rows]

    async def find_events_by_calendar(self, calendar_id: str) -> Sequence[Event]:
        if not is_valid_identifier(calendar_id):
            return []
        async with self._transaction() as session:
            rows = await session.scalars(
                select(EventModel)
                .where(EventModel.calendar_id == calendar_id)
                .order_by(EventModel.date.is_(None), EventModel.date.asc())
            )
            return [self._adapter.event_from_row(row) for row in rows]

    async def search_events(self, query: str) -> Sequence[Event]:
        pattern = _like_pattern(query)
        async with self._transaction() as session:
            rows = await session.scalars(
                select(EventModel)
                .where(
                    or_(
                        EventModel.title.ilike(pattern, escape="\\"),
                        EventModel.description.ilike(pattern, escape="\\"),
                    )
                )
                .order_by(EventModel.created_at.desc())
            )
            return [self._adapter.event_from_row(row) for row in rows]

    async def insert_event(self, event: Event) -> Event:
        async with self._transaction() as session:
            session.add(self._adapter.event_to_row(event))
        logger.debug(f"Inserted event row {event.id}")
        return event

    async def update_event(self, event_id: str, fields: dict) -> bool:
        if not is_valid_identifier(event_id):
            return False
        async with self._transaction() as session:
            result = await session.execute(
                update(EventModel)
                .where(EventModel.id == event_id)
                .values(**self._adapter.event_update(fields))
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0

    async def delete_event(self, event_id: str) -> bool:
        """Delete an event and its invitations in one transaction."""
        if not is_valid_identifier(event_id):
            return False
        async with self._transaction() as session:
            invitations = await session.execute(
                delete(InvitationModel)
                .where(InvitationModel.event_id == event_id)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(
                delete(EventModel)
                .where(EventModel.id == event_id)
                .execution_options(synchronize_session=False)
            )
            removed_invitations = invitations.rowcount
            deleted = result.rowcount > 0
        if removed_invitations:
            logger.info(f"Removed {removed_invitations} invitations of deleted event {event_id}")
        return deleted


class SQLCalendarStore(_SQLStore, CalendarStore, SubscriptionStore):
    """
    CalendarStore and SubscriptionStore backed by the calendars and
    calendar_subscriptions tables. Counters are read as the triggers left them.
    """

    maintains_counters = True

    async def get_calendar(self, calendar_id: str) -> Optional[Calendar]:
        if not is_valid_identifier(calendar_id):
            return None
        async with self._transaction() as session:
            row = await session.scalar(
                select(CalendarModel).where(CalendarModel.id == calendar_id)
            )
            return self._adapter.calendar_from_row(row) if row else None

    async def get_calendar_by_slug(self, slug: str) -> Optional[Calendar]:
        async with self._transaction() as session:
            row = await session.scalar(select(CalendarModel).where(CalendarModel.slug == slug))
            return self._adapter.calendar_from_row(row) if row else None

    async def list_popular_calendars(self, limit: int) -> Sequence[Calendar]:
        async with self._transaction() as session:
            rows = await session.scalars(
                select(CalendarModel)
                .order_by(CalendarModel.subscriber_count.desc(), CalendarModel.created_at.desc())
                .limit(limit)
            )
            return [self._adapter.calendar_from_row(row) for row in rows]

    async def find_calendars_by_owner(self, owner_id: str) -> Sequence[Calendar]:
        async with self._transaction() as session:
            rows = await session.scalars(
                select(CalendarModel)
                .where(CalendarModel.owner_id == owner_id)
                .order_by(CalendarModel.created_at.desc())
            )
            return [self._adapter.calendar_from_row(row) for row in rows]

    async def insert_calendar(self, calendar: Calendar) -> Calendar:
        async with self._transaction() as session:
            session.add(self._adapter.calendar_to_row(calendar))
        logger.debug(f"Inserted calendar row {calendar.id} ({calendar.slug})")
        return calendar

    async def update_calendar(self, calendar_id: str, fields: dict) -> bool:
        if not is_valid_identifier(calendar_id):
            return False
        values = self._adapter.calendar_update(fields)
        async with self._transaction() as session:
            result = await session.execute(
                update(CalendarModel)
                .where(CalendarModel.id == calendar_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0

    async def delete_calendar(self, calendar_id: str) -> bool:
        """Delete a calendar and its subscriptions in one transaction."""
        if not is_valid_identifier(calendar_id):
            return False
        async with self._transaction() as session:
            await session.execute(
                delete(CalendarSubscriptionModel)
                .where(CalendarSubscriptionModel.calendar_id == calendar_id)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(
                delete(CalendarModel)
                .where(CalendarModel.id == calendar_id)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0

    async def get_subscription(
        self,
        calendar_id: str,
        user_id: str,
    ) -> Optional[CalendarSubscription]:
        if not is_valid_identifier(calendar_id):
            return None
        async with self._transaction() as session:
            row = await session.scalar(
                select(CalendarSubscriptionModel).where(
                    CalendarSubscriptionModel.calendar_id == calendar_id,
                    CalendarSubscriptionModel.user_id == user_id,
                )
            )
            return self._adapter.subscription_from_row(row) if row else None

    async def insert_subscription(
        self,
        subscription: CalendarSubscription,
    ) -> CalendarSubscription:
        async with self._transaction() as session:
            session.add(self._adapter.subscription_to_row(subscription))
        return subscription

    async def delete_subscription(self, calendar_id: str, user_id: str) -> bool:
        if not is_valid_identifier(calendar_id):
            return False
        async with self._transaction() as session:
            result = await session.execute(
                delete(CalendarSubscriptionModel)
                .where(
                    CalendarSubscriptionModel.calendar_id == calendar_id,
                    CalendarSubscriptionModel.user_id == user_id,
                )
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0

    async def find_subscribed_calendars(self, user_id: str) -> Sequence[Calendar]:
        async with self._transaction() as session:
            rows = await session.scalars(
                select(CalendarModel)
                .join(
                    CalendarSubscriptionModel,
                    CalendarSubscriptionModel.calendar_id == CalendarModel.id,
                )
                .where(CalendarSubscriptionModel.user_id == user_id)
                .order_by(CalendarSubscriptionModel.created_at.desc())
            )
            return [self._adapter.calendar_from_row(row) for row in rows]


class SQLInvitationStore(_SQLStore):
    """
    Invitation persistence.

    Mutations are conditional single-statement updates so that concurrent
    tracking hits and status changes never overwrite each other; callers
    learn whether their condition held from the returned flag.
    """

    async def get_invitation(self, invitation_id: str) -> Optional[Invitation]:
        if not is_valid_identifier(invitation_id):
            return None
        async with self._transaction() as session:
            row = await session.scalar(
                select(InvitationModel).where(InvitationModel.id == invitation_id)
            )
            return self._adapter.invitation_from_row(row) if row else None

    async def get_by_tracking_token(self, token: str) -> Optional[Invitation]:
        async with self._transaction() as session:
            row = await session.scalar(
                select(InvitationModel).where(InvitationModel.tracking_token == token)
            )
            return self._adapter.invitation_from_row(row) if row else None

    async def get_by_event_and_email(self, event_id: str, email: str) -> Optional[Invitation]:
        if not is_valid_identifier(event_id):
            return None
        async with self._transaction() as session:
            row = await session.scalar(
                select(InvitationModel).where(
                    InvitationModel.event_id == event_id,
                    InvitationModel.email == email,
                )
            )
            return self._adapter.invitation_from_row(row) if row else None

    async def list_for_event(
        self,
        event_id: str,
        status: Optional[InvitationStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Invitation], int]:
        """
        Page through an event's invitations, newest first.

        Returns:
            (invitations on this page, total matching invitations)
        """
        if not is_valid_identifier(event_id):
            return [], 0

        conditions = [InvitationModel.event_id == event_id]
        if status is not None:
            conditions.append(InvitationModel.status == status.value)

        async with self._transaction() as session:
            total = await session.scalar(
                select(func.count()).select_from(InvitationModel).where(*conditions)
            )
            rows = await session.scalars(
                select(InvitationModel)
                .where(*conditions)
                .order_by(InvitationModel.created_at.desc())
                .limit(limit)
                .offset(offset)
            )
            invitations = [self._adapter.invitation_from_row(row) for row in rows]
        return invitations, total or 0

    async def list_for_email(self, email: str) -> list[Invitation]:
        async with self._transaction() as session:
            rows = await session.scalars(
                select(InvitationModel)
                .where(InvitationModel.email == email)
                .order_by(InvitationModel.created_at.desc())
            )
            return [self._adapter.invitation_from_row(row) for row in rows]

    async def insert_invitation(self, invitation: Invitation) -> Invitation:
        """Raises StoreConflictError(field="email") if (event, email) exists."""
        async with self._transaction() as session:
            session.add(self._adapter.invitation_to_row(invitation))
        return invitation

    async def update_invitation(
        self,
        invitation_id: str,
        values: dict,
        expected_status: Optional[InvitationStatus] = None,
        unset_field: Optional[str] = None,
        fill_missing: Optional[dict] = None,
    ) -> bool:
        """
        Conditionally update one invitation.

        Args:
            invitation_id: Invitation to update
            values: Column values to write ("metadata" maps to the JSON column)
            expected_status: Only update if the row still has this status
            unset_field: Only update if this timestamp column is still NULL
            fill_missing: Column values written only where the column is NULL

        Returns:
            True if the row matched the conditions and was updated
        """
        if not is_valid_identifier(invitation_id):
            return False

        conditions = [InvitationModel.id == invitation_id]
        if expected_status is not None:
            conditions.append(InvitationModel.status == expected_status.value)
        if unset_field is not None:
            conditions.append(getattr(InvitationModel, unset_field).is_(None))

        column_values = dict(values)
        if "metadata" in column_values:
            column_values["extra_metadata"] = column_values.pop("metadata")
        if "status" in column_values and isinstance(column_values["status"], InvitationStatus):
            column_values["status"] = column_values["status"].value
        for field, value in (fill_missing or {}).items():
            column = getattr(InvitationModel, field)
            column_values[field] = func.coalesce(column, literal(value, column.type))

        async with self._transaction() as session:
            result = await session.execute(
                update(InvitationModel)
                .where(*conditions)
                .values(**column_values)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0

    async def delete_invitation(
        self,
        invitation_id: str,
        allowed_statuses: Sequence[InvitationStatus],
    ) -> bool:
        """Delete an invitation only while its status is one of allowed_statuses."""
        if not is_valid_identifier(invitation_id):
            return False
        async with self._transaction() as session:
            result = await session.execute(
                delete(InvitationModel)
                .where(
                    InvitationModel.id == invitation_id,
                    InvitationModel.status.in_([s.value for s in allowed_statuses]),
                )
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0

    async def delete_for_event(self, event_id: str) -> int:
        if not is_valid_identifier(event_id):
            return 0
        async with self._transaction() as session:
            result = await session.execute(
                delete(InvitationModel)
                .where(InvitationModel.event_id == event_id)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount

    async def aggregate_for_event(self, event_id: str) -> dict[str, int]:
        """
        Lifecycle totals for an event's invitations.

        sent/opened/clicked count rows whose timestamp is set (an accepted
        invitation was still sent and opened); accepted/declined/bounced
        count rows currently in that status.
        """
        empty = {
            "sent": 0,
            "opened": 0,
            "clicked": 0,
            "accepted": 0,
            "declined": 0,
            "bounced": 0,
        }
        if not is_valid_identifier(event_id):
            return empty

        def status_total(status: InvitationStatus):
            return func.coalesce(
                func.sum(case((InvitationModel.status == status.value, 1), else_=0)),
                0,
            )

        async with self._transaction() as session:
            result = await session.execute(
                select(
                    func.count(InvitationModel.sent_at),
                    func.count(InvitationModel.opened_at),
                    func.count(InvitationModel.clicked_at),
                    status_total(InvitationStatus.ACCEPTED),
                    status_total(InvitationStatus.DECLINED),
                    status_total(InvitationStatus.BOUNCED),
                ).where(InvitationModel.event_id == event_id)
            )
            row = result.one()

        return dict(zip(empty.keys(), (int(value or 0) for value in row)))

    async def count_by_status(self, event_id: str) -> dict[str, int]:
        if not is_valid_identifier(event_id):
            return {}
        async with self._transaction() as session:
            result = await session.execute(
                select(InvitationModel.status, func.count())
                .where(InvitationModel.event_id == event_id)
                .group_by(InvitationModel.status)
            )
            return {status: count for status, count in result.all()}
