"""
Calendar API routes: calendars, slugs and subscriptions.
"""

import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from src.api.dependencies import (
    get_calendar_repository,
    get_event_repository,
    load_owned_calendar,
    require_user_id,
)
from src.api.models import (
    CalendarListResponse,
    CalendarResponse,
    DeleteResponse,
    EventListResponse,
    EventResponse,
    SlugAvailabilityResponse,
    SubscriptionResponse,
    SubscriptionStatusResponse,
)
from src.services.calendar_repository import CalendarRepository, normalize_slug
from src.services.event_repository import EventRepository
from src.services.inputs import CreateCalendarInput, SubscribeInput, UpdateCalendarInput

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/calendars", tags=["calendars"])


def _list_response(calendars) -> CalendarListResponse:
    return CalendarListResponse(
        calendars=[CalendarResponse.model_validate(c) for c in calendars],
        total=len(calendars),
    )


@router.post("", response_model=CalendarResponse, status_code=201)
async def create_calendar(
    request: CreateCalendarInput,
    user_id: str = Depends(require_user_id),
    calendars: CalendarRepository = Depends(get_calendar_repository),
) -> CalendarResponse:
    """Create a calendar owned by the caller. 409 if the slug is taken."""
    calendar = await calendars.create(request, owner_id=user_id)
    return CalendarResponse.model_validate(calendar)


@router.get("", response_model=CalendarListResponse)
async def list_calendars_by_owner(
    owner_id: str = Query(..., description="Owner whose calendars to list"),
    calendars: CalendarRepository = Depends(get_calendar_repository),
) -> CalendarListResponse:
    return _list_response(await calendars.find_by_owner(owner_id))


@router.get("/popular", response_model=CalendarListResponse)
async def list_popular_calendars(
    limit: int = Query(6, ge=1, le=50),
    calendars: CalendarRepository = Depends(get_calendar_repository),
) -> CalendarListResponse:
    return _list_response(await calendars.find_popular(limit))


@router.get("/subscriptions/me", response_model=CalendarListResponse)
async def list_my_subscriptions(
    user_id: str = Depends(require_user_id),
    calendars: CalendarRepository = Depends(get_calendar_repository),
) -> CalendarListResponse:
    return _list_response(await calendars.find_subscriptions(user_id))


@router.get("/slug/{slug}", response_model=CalendarResponse)
async def get_calendar_by_slug(
    slug: str,
    calendars: CalendarRepository = Depends(get_calendar_repository),
) -> CalendarResponse:
    calendar = await calendars.find_by_slug(slug)
    if calendar is None:
        raise HTTPException(status_code=404, detail=f"Calendar {slug} not found")
    return CalendarResponse.model_validate(calendar)


@router.get("/slug/{slug}/available", response_model=SlugAvailabilityResponse)
async def check_slug_available(
    slug: str,
    calendars: CalendarRepository = Depends(get_calendar_repository),
) -> SlugAvailabilityResponse:
    return SlugAvailabilityResponse(
        slug=normalize_slug(slug),
        available=await calendars.is_slug_available(slug),
    )


@router.get("/{calendar_id}", response_model=CalendarResponse)
async def get_calendar(
    calendar_id: str,
    calendars: CalendarRepository = Depends(get_calendar_repository),
) -> CalendarResponse:
    calendar = await calendars.find_by_id(calendar_id)
    if calendar is None:
        raise HTTPException(status_code=404, detail=f"Calendar {calendar_id} not found")
    return CalendarResponse.model_validate(calendar)


@router.get("/{calendar_id}/events", response_model=EventListResponse)
async def list_calendar_events(
    calendar_id: str,
    events: EventRepository = Depends(get_event_repository),
) -> EventListResponse:
    """A calendar's events in date order."""
    found = await events.find_by_calendar_id(calendar_id)
    return EventListResponse(
        events=[EventResponse.model_validate(e) for e in found],
        total=len(found),
    )


@router.patch("/{calendar_id}", response_model=CalendarResponse)
async def update_calendar(
    calendar_id: str,
    request: UpdateCalendarInput,
    user_id: str = Depends(require_user_id),
    calendars: CalendarRepository = Depends(get_calendar_repository),
) -> CalendarResponse:
    """Owner only. 409 if a new slug is taken."""
    await load_owned_calendar(calendars, calendar_id, user_id)
    calendar = await calendars.update(calendar_id, request)
    if calendar is None:
        raise HTTPException(status_code=404, detail=f"Calendar {calendar_id} not found")
    return CalendarResponse.model_validate(calendar)


@router.delete("/{calendar_id}", response_model=DeleteResponse)
async def delete_calendar(
    calendar_id: str,
    user_id: str = Depends(require_user_id),
    calendars: CalendarRepository = Depends(get_calendar_repository),
) -> DeleteResponse:
    """Owner only; subscriptions are removed with the calendar."""
    await load_owned_calendar(calendars, calendar_id, user_id)
    if not await calendars.remove(calendar_id):
        raise HTTPException(status_code=404, detail=f"Calendar {calendar_id} not found")
    return DeleteResponse(success=True, id=calendar_id, message="Calendar deleted successfully")


@router.get("/{calendar_id}/subscription", response_model=SubscriptionStatusResponse)
async def get_subscription_status(
    calendar_id: str,
    user_id: str = Depends(require_user_id),
    calendars: CalendarRepository = Depends(get_calendar_repository),
) -> SubscriptionStatusResponse:
    return SubscriptionStatusResponse(
        calendar_id=calendar_id,
        subscribed=await calendars.is_subscribed(calendar_id, user_id),
    )


@router.post("/{calendar_id}/subscription", response_model=SubscriptionResponse)
async def subscribe(
    calendar_id: str,
    notify_new_events: bool = Body(True, embed=True),
    notify_reminders: bool = Body(True, embed=True),
    user_id: str = Depends(require_user_id),
    calendars: CalendarRepository = Depends(get_calendar_repository),
) -> SubscriptionResponse:
    """Subscribe the caller; subscribing twice returns the existing subscription."""
    subscription = await calendars.subscribe(
        SubscribeInput(
            calendar_id=calendar_id,
            notify_new_events=notify_new_events,
            notify_reminders=notify_reminders,
        ),
        user_id,
    )
    return SubscriptionResponse.model_validate(subscription)


@router.delete("/{calendar_id}/subscription", response_model=SubscriptionStatusResponse)
async def unsubscribe(
    calendar_id: str,
    user_id: str = Depends(require_user_id),
    calendars: CalendarRepository = Depends(get_calendar_repository),
) -> SubscriptionStatusResponse:
    """Unsubscribe the caller; a no-op when not subscribed."""
    await calendars.unsubscribe(calendar_id, user_id)
    return SubscriptionStatusResponse(calendar_id=calendar_id, subscribed=False)
