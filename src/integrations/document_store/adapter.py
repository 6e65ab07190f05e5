"""
Bidirectional mapping between domain records and document store documents.

Documents use camelCase keys with nested maps (coords, socialLinks) and
arrays of maps (agenda, hosts, registrationQuestions). Handles:
- Field name mapping for full documents and partial updates
- Legacy documents with string dates or missing nested records
- Enum and dataclass flattening on write
"""

from typing import Any

from src.integrations.base import (
    Calendar,
    Event,
    EventStatus,
    EventVisibility,
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
    to_float,
    to_int,
)


EVENT_FIELDS = {
    "title": "title",
    "description": "description",
    "date": "date",
    "end_date": "endDate",
    "location": "location",
    "city": "city",
    "coords": "coords",
    "cover_image": "coverImage",
    "tags": "tags",
    "organizer_id": "organizerId",
    "organizer_name": "organizerName",
    "calendar_id": "calendarId",
    "capacity": "capacity",
    "price": "price",
    "currency": "currency",
    "require_stake": "requireStake",
    "stake_amount": "stakeAmount",
    "require_approval": "requireApproval",
    "status": "status",
    "visibility": "visibility",
    "social_links": "socialLinks",
    "agenda": "agenda",
    "hosts": "hosts",
    "about": "about",
    "presented_by": "presentedBy",
    "registration_questions": "registrationQuestions",
    "attendee_count": "attendees",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}

CALENDAR_FIELDS = {
    "owner_id": "ownerId",
    "name": "name",
    "slug": "slug",
    "description": "description",
    "color": "color",
    "avatar_url": "avatarUrl",
    "cover_url": "coverUrl",
    "location": "location",
    "latitude": "latitude",
    "longitude": "longitude",
    "is_global": "isGlobal",
    "is_private": "isPrivate",
    "subscriber_count": "subscriberCount",
    "event_count": "eventCount",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}


def _map_fields(fields: dict, mapping: dict) -> dict:
    """Rename domain field names to document keys, flattening values."""
    document = {}
    for name, value in fields.items():
        key = mapping.get(name)
        if key is None:
            raise ValueError(f"Unknown field: {name}")
        document[key] = plain(value)
    return document


class DocumentAdapter:
    """Maps between domain records and document store documents."""

    @staticmethod
    def event_to_document(event: Event) -> dict:
        """
        Convert an event to a document body.

        The ID is the document key and is not repeated in the body.
        """
        return _map_fields(
            {name: getattr(event, name) for name in EVENT_FIELDS},
            EVENT_FIELDS,
        )

    @staticmethod
    def event_update(fields: dict) -> dict:
        """Map a partial event update to document keys."""
        return _map_fields(fields, EVENT_FIELDS)

    @staticmethod
    def event_from_document(document: dict) -> Event:
        """
        Convert a document to an Event.

        Args:
            document: Document body including its "id"

        Returns:
            Normalized Event
        """
        coords = document.get("coords") or {}
        return Event(
            id=str(document["id"]),
            title=document.get("title") or "",
            organizer_id=id_to_str(document.get("organizerId")) or "",
            description=document.get("description") or "",
            date=parse_timestamp(document.get("date")),
            end_date=parse_timestamp(document.get("endDate")),
            location=document.get("location") or "",
            city=document.get("city") or "",
            coords=coordinates_from(coords.get("lat"), coords.get("lng")),
            cover_image=document.get("coverImage") or "",
            tags=strings_from(document.get("tags")),
            organizer_name=document.get("organizerName") or "",
            calendar_id=id_to_str(document.get("calendarId")),
            capacity=to_int(document.get("capacity")),
            price=to_float(document.get("price")),
            currency=document.get("currency") or "USD",
            require_stake=bool(document.get("requireStake", False)),
            stake_amount=to_float(document.get("stakeAmount")),
            require_approval=bool(document.get("requireApproval", False)),
            status=parse_enum(EventStatus, document.get("status"), EventStatus.PUBLISHED),
            visibility=parse_enum(
                EventVisibility, document.get("visibility"), EventVisibility.PUBLIC
            ),
            social_links=social_links_from(document.get("socialLinks")),
            agenda=agenda_from(document.get("agenda")),
            hosts=hosts_from(document.get("hosts")),
            about=strings_from(document.get("about")),
            presented_by=document.get("presentedBy"),
            registration_questions=questions_from(document.get("registrationQuestions")),
            attendee_count=to_int(document.get("attendees"), default=0),
            created_at=parse_timestamp(document.get("createdAt")),
            updated_at=parse_timestamp(document.get("updatedAt")),
        )

    @staticmethod
    def calendar_to_document(calendar: Calendar) -> dict:
        return _map_fields(
            {name: getattr(calendar, name) for name in CALENDAR_FIELDS},
            CALENDAR_FIELDS,
        )

    @staticmethod
    def calendar_update(fields: dict) -> dict:
        return _map_fields(fields, CALENDAR_FIELDS)

    @staticmethod
    def calendar_from_document(document: dict) -> Calendar:
        return Calendar(
            id=str(document["id"]),
            owner_id=id_to_str(document.get("ownerId")) or "",
            name=document.get("name") or "",
            slug=document.get("slug") or "",
            description=document.get("description"),
            color=document.get("color") or "indigo",
            avatar_url=document.get("avatarUrl"),
            cover_url=document.get("coverUrl"),
            location=document.get("location"),
            latitude=to_float(document.get("latitude")),
            longitude=to_float(document.get("longitude")),
            is_global=bool(document.get("isGlobal", False)),
            is_private=bool(document.get("isPrivate", False)),
            subscriber_count=to_int(document.get("subscriberCount"), default=0),
            event_count=to_int(document.get("eventCount"), default=0),
            created_at=parse_timestamp(document.get("createdAt")),
            updated_at=parse_timestamp(document.get("updatedAt")),
        )


def contains_text(value: Any, needle: str) -> bool:
    return isinstance(value, str) and needle in value.lower()
