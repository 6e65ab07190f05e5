"""
Mapping between domain records and relational rows.

Handles:
- Flattening coordinates into latitude/longitude columns
- Nested records to/from JSON columns
- UUID columns to canonical string identifiers
- Naive SQLite timestamps to aware UTC datetimes
"""

from src.integrations.base import (
    Calendar,
    CalendarSubscription,
    Event,
    EventStatus,
    EventVisibility,
    Invitation,
    InvitationSource,
    InvitationStatus,
)
from src.integrations.normalize import (
    agenda_from,
    coordinates_from,
    hosts_from,
    id_to_str,
    parse_enum,
    parse_timestamp,
    plain,
    questions_from,
    social_links_from,
    strings_from,
    to_int,
)
from src.models import (
    CalendarModel,
    CalendarSubscriptionModel,
    EventModel,
    InvitationModel,
)

# Trigger-maintained; never written by the application
CALENDAR_COUNTERS = {"subscriber_count", "event_count"}


def _without_unset_timestamps(values: dict) -> dict:
    # Let the column defaults apply instead of inserting NULL
    return {
        name: value
        for name, value in values.items()
        if not (name in ("created_at", "updated_at") and value is None)
    }


def _event_values(fields: dict) -> dict:
    values = {}
    for name, value in fields.items():
        if name == "id":
            continue
        if name == "coords":
            values["latitude"] = value.lat if value is not None else 0.0
            values["longitude"] = value.lng if value is not None else 0.0
        elif name == "social_links":
            values[name] = plain(value) or {}
        elif name in ("tags", "agenda", "hosts", "about", "registration_questions"):
            values[name] = plain(value) or []
        else:
            values[name] = plain(value)
    return values


class RelationalAdapter:
    """Maps between domain records and SQLAlchemy models."""

    @staticmethod
    def event_to_row(event: Event) -> EventModel:
        values = _event_values(
            {name: getattr(event, name) for name in event.__dataclass_fields__}
        )
        return EventModel(id=event.id, **_without_unset_timestamps(values))

    @staticmethod
    def event_update(fields: dict) -> dict:
        """Map a partial event update to column values."""
        return _event_values(fields)

    @staticmethod
    def event_from_row(row: EventModel) -> Event:
        return Event(
            id=id_to_str(row.id),
            title=row.title,
            organizer_id=id_to_str(row.organizer_id),
            description=row.description or "",
            date=parse_timestamp(row.date),
            end_date=parse_timestamp(row.end_date),
            location=row.location or "",
            city=row.city or "",
            coords=coordinates_from(row.latitude, row.longitude),
            cover_image=row.cover_image or "",
            tags=strings_from(row.tags),
            organizer_name=row.organizer_name or "",
            calendar_id=id_to_str(row.calendar_id),
            capacity=row.capacity,
            price=row.price,
            currency=row.currency or "USD",
            require_stake=bool(row.require_stake),
            stake_amount=row.stake_amount,
            require_approval=bool(row.require_approval),
            status=parse_enum(EventStatus, row.status, EventStatus.PUBLISHED),
            visibility=parse_enum(EventVisibility, row.visibility, EventVisibility.PUBLIC),
            social_links=social_links_from(row.social_links),
            agenda=agenda_from(row.agenda),
            hosts=hosts_from(row.hosts),
            about=strings_from(row.about),
            presented_by=row.presented_by,
            registration_questions=questions_from(row.registration_questions),
            attendee_count=to_int(row.attendee_count, default=0),
            created_at=parse_timestamp(row.created_at),
            updated_at=parse_timestamp(row.updated_at),
        )

    @staticmethod
    def calendar_to_row(calendar: Calendar) -> CalendarModel:
        values = {
            name: plain(getattr(calendar, name))
            for name in calendar.__dataclass_fields__
            if name != "id" and name not in CALENDAR_COUNTERS
        }
        return CalendarModel(id=calendar.id, **_without_unset_timestamps(values))

    @staticmethod
    def calendar_update(fields: dict) -> dict:
        return {
            name: plain(value)
            for name, value in fields.items()
            if name != "id" and name not in CALENDAR_COUNTERS
        }

    @staticmethod
    def calendar_from_row(row: CalendarModel) -> Calendar:
        return Calendar(
            id=id_to_str(row.id),
            owner_id=row.owner_id,
            name=row.name,
            slug=row.slug,
            description=row.description,
            color=row.color or "indigo",
            avatar_url=row.avatar_url,
            cover_url=row.cover_url,
            location=row.location,
            latitude=row.latitude,
            longitude=row.longitude,
            is_global=bool(row.is_global),
            is_private=bool(row.is_private),
            subscriber_count=row.subscriber_count or 0,
            event_count=row.event_count or 0,
            created_at=parse_timestamp(row.created_at),
            updated_at=parse_timestamp(row.updated_at),
        )

    @staticmethod
    def subscription_to_row(subscription: CalendarSubscription) -> CalendarSubscriptionModel:
        return CalendarSubscriptionModel(
            id=subscription.id,
            calendar_id=subscription.calendar_id,
            user_id=subscription.user_id,
            notify_new_events=subscription.notify_new_events,
            notify_reminders=subscription.notify_reminders,
            created_at=subscription.created_at,
            updated_at=subscription.created_at,
        )

    @staticmethod
    def subscription_from_row(row: CalendarSubscriptionModel) -> CalendarSubscription:
        return CalendarSubscription(
            id=id_to_str(row.id),
            calendar_id=id_to_str(row.calendar_id),
            user_id=row.user_id,
            notify_new_events=bool(row.notify_new_events),
            notify_reminders=bool(row.notify_reminders),
            created_at=parse_timestamp(row.created_at),
        )

    @staticmethod
    def invitation_to_row(invitation: Invitation) -> InvitationModel:
        return InvitationModel(
            id=invitation.id,
            event_id=invitation.event_id,
            calendar_id=invitation.calendar_id,
            email=invitation.email,
            recipient_name=invitation.recipient_name,
            user_id=invitation.user_id,
            invited_by=invitation.invited_by,
            source=invitation.source.value,
            status=invitation.status.value,
            tracking_token=invitation.tracking_token,
            sent_at=invitation.sent_at,
            opened_at=invitation.opened_at,
            clicked_at=invitation.clicked_at,
            responded_at=invitation.responded_at,
            extra_metadata=dict(invitation.metadata),
            created_at=invitation.created_at,
            updated_at=invitation.updated_at,
        )

    @staticmethod
    def invitation_from_row(row: InvitationModel) -> Invitation:
        return Invitation(
            id=id_to_str(row.id),
            event_id=id_to_str(row.event_id),
            email=row.email,
            invited_by=id_to_str(row.invited_by),
            tracking_token=row.tracking_token,
            status=parse_enum(InvitationStatus, row.status, InvitationStatus.PENDING),
            source=parse_enum(InvitationSource, row.source, InvitationSource.MANUAL),
            calendar_id=id_to_str(row.calendar_id),
            recipient_name=row.recipient_name,
            user_id=row.user_id,
            sent_at=parse_timestamp(row.sent_at),
            opened_at=parse_timestamp(row.opened_at),
            clicked_at=parse_timestamp(row.clicked_at),
            responded_at=parse_timestamp(row.responded_at),
            metadata=dict(row.extra_metadata or {}),
            created_at=parse_timestamp(row.created_at),
            updated_at=parse_timestamp(row.updated_at),
        )
