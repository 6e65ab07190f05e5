"""
Shared normalization helpers.

Store rows arrive in heterogeneous shapes: the document store keeps nested
maps and may hold legacy string dates, the relational store keeps JSON
columns and naive SQLite timestamps. These helpers turn any of those values
into the domain types from src.integrations.base, tolerating missing or
malformed pieces the way the stores actually contain them.
"""

import uuid
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Type, TypeVar

from dateutil.parser import ParserError, parse as parse_datetime

from src.integrations.base import (
    AgendaItem,
    Coordinates,
    Host,
    RegistrationQuestion,
    SocialLinks,
)

E = TypeVar("E", bound=Enum)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a new record identifier."""
    return str(uuid.uuid4())


def is_valid_identifier(value: Any) -> bool:
    """Check that value is a well-formed record identifier (UUID)."""
    if isinstance(value, uuid.UUID):
        return True
    if not isinstance(value, str) or not value:
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def id_to_str(value: Any) -> Optional[str]:
    """Render a UUID or string identifier in canonical string form."""
    if value is None or value == "":
        return None
    if isinstance(value, uuid.UUID):
        return str(value)
    try:
        return str(uuid.UUID(str(value)))
    except ValueError:
        return str(value)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a stored timestamp.

    Accepts aware or naive datetimes (naive values are assumed UTC, as
    SQLite returns them) and date strings in any format dateutil accepts.

    Returns:
        Aware UTC datetime, or None if the value is missing or unparseable
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = parse_datetime(value)
        except (ParserError, ValueError, OverflowError):
            return None
    else:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_enum(enum_cls: Type[E], value: Any, default: E) -> E:
    """Map a stored string onto an enum, falling back to default."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return default


def to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def coordinates_from(lat: Any, lng: Any) -> Coordinates:
    return Coordinates(lat=to_float(lat) or 0.0, lng=to_float(lng) or 0.0)


def social_links_from(data: Any) -> SocialLinks:
    if not isinstance(data, dict):
        return SocialLinks()
    return SocialLinks(
        website=data.get("website"),
        twitter=data.get("twitter"),
        telegram=data.get("telegram"),
        discord=data.get("discord"),
        instagram=data.get("instagram"),
    )


def agenda_from(data: Any) -> list[AgendaItem]:
    items = []
    for entry in data or []:
        if isinstance(entry, AgendaItem):
            items.append(entry)
        elif isinstance(entry, dict) and entry.get("title"):
            items.append(
                AgendaItem(
                    title=entry["title"],
                    description=entry.get("description") or "",
                    time=entry.get("time"),
                )
            )
    return items


def hosts_from(data: Any) -> list[Host]:
    hosts = []
    for entry in data or []:
        if isinstance(entry, Host):
            hosts.append(entry)
        elif isinstance(entry, dict) and entry.get("name"):
            hosts.append(
                Host(
                    name=entry["name"],
                    description=entry.get("description"),
                    icon=entry.get("icon"),
                    role=entry.get("role"),
                )
            )
    return hosts


def questions_from(data: Any) -> list[RegistrationQuestion]:
    questions = []
    for entry in data or []:
        if isinstance(entry, RegistrationQuestion):
            questions.append(entry)
        elif isinstance(entry, dict) and entry.get("id") and entry.get("label"):
            questions.append(
                RegistrationQuestion(
                    id=str(entry["id"]),
                    type=entry.get("type") or "short_text",
                    label=entry["label"],
                    required=bool(entry.get("required", False)),
                    placeholder=entry.get("placeholder"),
                    options=list(entry.get("options") or []),
                )
            )
    return questions


def strings_from(data: Any) -> list[str]:
    """Normalize a stored list of strings (a bare string becomes one item)."""
    if isinstance(data, str):
        return [data] if data else []
    return [str(item) for item in data or [] if item is not None]


def plain(value: Any) -> Any:
    """
    Convert dataclasses (and lists of them) and enums into plain values.

    Used when writing nested fields into JSON columns or document maps.
    """
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [plain(item) for item in value]
    return value
