"""
Event API routes.

Thin handlers over EventRepository; repository errors are mapped to HTTP
responses by the application's exception handlers.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from src.api.dependencies import get_event_repository, load_owned_event, require_user_id
from src.api.models import DeleteResponse, EventListResponse, EventResponse
from src.services.event_repository import EventRepository
from src.services.inputs import CreateEventInput, UpdateEventInput

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])


class CreateEventRequest(CreateEventInput):
    """New event; the organizer is always the caller (X-User-ID)."""

    organizer_id: Optional[str] = None


def _list_response(events) -> EventListResponse:
    return EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        total=len(events),
    )


@router.get("", response_model=EventListResponse)
async def list_events(
    organizer_id: Optional[str] = Query(None, description="Only this organizer's events"),
    calendar_id: Optional[str] = Query(None, description="Only this calendar's events"),
    events: EventRepository = Depends(get_event_repository),
) -> EventListResponse:
    """
    List events, newest first.

    Filtering by calendar orders by event date instead.
    """
    if calendar_id:
        found = await events.find_by_calendar_id(calendar_id)
    elif organizer_id:
        found = await events.find_by_organizer(organizer_id)
    else:
        found = await events.find_all()
    return _list_response(found)


@router.get("/search", response_model=EventListResponse)
async def search_events(
    q: str = Query(..., description="Text to find in title or description"),
    events: EventRepository = Depends(get_event_repository),
) -> EventListResponse:
    return _list_response(await events.search(q))


@router.post("", response_model=EventResponse, status_code=201)
async def create_event(
    request: CreateEventRequest,
    user_id: str = Depends(require_user_id),
    events: EventRepository = Depends(get_event_repository),
) -> EventResponse:
    """Create an event organized by the caller. 403 if the body names someone else."""
    if request.organizer_id is not None and request.organizer_id != user_id:
        raise HTTPException(status_code=403, detail="Events can only be created for yourself")

    values = {name: getattr(request, name) for name in CreateEventInput.model_fields}
    values["organizer_id"] = user_id
    event = await events.create(CreateEventInput.model_construct(**values))
    return EventResponse.model_validate(event)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: str,
    events: EventRepository = Depends(get_event_repository),
) -> EventResponse:
    event = await events.find_by_id(event_id)
    if event is None:
        raise HTTPException(status_code=404, detail=f"Event {event_id} not found")
    return EventResponse.model_validate(event)


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: str,
    request: UpdateEventInput,
    user_id: str = Depends(require_user_id),
    events: EventRepository = Depends(get_event_repository),
) -> EventResponse:
    """Update only the fields present in the body. Organizer only."""
    await load_owned_event(events, event_id, user_id)
    event = await events.update(event_id, request)
    if event is None:
        raise HTTPException(status_code=404, detail=f"Event {event_id} not found")
    return EventResponse.model_validate(event)


@router.delete("/{event_id}", response_model=DeleteResponse)
async def delete_event(
    event_id: str,
    user_id: str = Depends(require_user_id),
    events: EventRepository = Depends(get_event_repository),
) -> DeleteResponse:
    """Hard-delete an event together with its invitations. Organizer only."""
    await load_owned_event(events, event_id, user_id)
    if not await events.remove(event_id):
        raise HTTPException(status_code=404, detail=f"Event {event_id} not found")
    return DeleteResponse(success=True, id=event_id, message="Event deleted successfully")
