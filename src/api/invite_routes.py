"""
Invitation API routes.

Creation, listing, statistics and status changes for the inviter, plus the
public tracking endpoints embedded in invitation emails (open pixel and
click-through redirect).
"""

import base64
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse, RedirectResponse, Response

from src.api.dependencies import (
    Services,
    get_invitation_repository,
    get_services,
    load_managed_invitation,
    load_owned_event,
    require_user_id,
)
from src.api.models import (
    BatchInvitationResponse,
    BatchInviteRequest,
    CreateEventInviteRequest,
    CreateInvitationResponse,
    DeleteResponse,
    InvitationListResponse,
    InvitationResponse,
    InvitationStatsResponse,
    UpdateInvitationStatusRequest,
)
from src.config import Settings, get_settings
from src.integrations.base import Event, Invitation, InvitationStatus
from src.services.invitation_repository import InvitationRepository
from src.services.invite_dispatch import dispatch_invitations
from src.services.inputs import CreateBatchInvitationInput, CreateInvitationInput

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["invites"])

# 1x1 transparent GIF
TRACKING_PIXEL = base64.b64decode("R0lGODlhAQABAIAAAAAAAP///yH5BAEAAAAALAAAAAABAAEAAAIBRAA7")

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


async def _send_emails(
    services: Services,
    invitations: list[Invitation],
    event: Event,
    sender_name: Optional[str],
) -> int:
    """Email new invitations when a mailer is configured; returns the number sent."""
    if services.mailer is None or not invitations:
        return 0
    result = await dispatch_invitations(
        services.mailer,
        services.invitations,
        invitations,
        event_title=event.title,
        sender_name=sender_name,
    )
    return len(result.sent)


# =============================================================================
# Inviter endpoints
# =============================================================================


@router.post("/events/{event_id}/invites", response_model=CreateInvitationResponse)
async def create_invite(
    event_id: str,
    request: CreateEventInviteRequest,
    user_id: str = Depends(require_user_id),
    services: Services = Depends(get_services),
):
    """
    Invite one address to an event.

    Returns 201 with the new invitation, or 200 with the existing one when
    the address was already invited.
    """
    event = await load_owned_event(services.events, event_id, user_id)
    result = await services.invitations.create(
        CreateInvitationInput(
            event_id=event_id,
            email=request.email,
            calendar_id=request.calendar_id,
            recipient_name=request.recipient_name,
            user_id=request.user_id,
            source=request.source,
            metadata=request.metadata,
        ),
        invited_by=user_id,
    )

    invitation = result.invitation
    email_sent = False
    if result.is_new and request.send_email:
        email_sent = await _send_emails(services, [invitation], event, None) > 0
        if email_sent:
            invitation = await services.invitations.find_by_id(invitation.id) or invitation

    response = CreateInvitationResponse(
        invitation=InvitationResponse.model_validate(invitation),
        is_new=result.is_new,
        email_sent=email_sent,
    )
    return JSONResponse(
        status_code=201 if result.is_new else 200,
        content=response.model_dump(mode="json"),
    )


@router.post("/invites/batch", response_model=BatchInvitationResponse)
async def create_invites_batch(
    request: BatchInviteRequest,
    user_id: str = Depends(require_user_id),
    services: Services = Depends(get_services),
) -> BatchInvitationResponse:
    """Invite 1-100 addresses; duplicates and failures are reported per email."""
    event = await load_owned_event(services.events, request.event_id, user_id)
    result = await services.invitations.create_batch(
        CreateBatchInvitationInput(
            event_id=request.event_id,
            calendar_id=request.calendar_id,
            invites=request.invites,
            source=request.source,
        ),
        invited_by=user_id,
    )

    emails_sent = 0
    if request.send_email:
        emails_sent = await _send_emails(services, result.invitations, event, None)

    return BatchInvitationResponse(
        created=result.created,
        duplicates=result.duplicates,
        failed=result.failed,
        invitations=[InvitationResponse.model_validate(i) for i in result.invitations],
        emails_sent=emails_sent,
    )


@router.get("/events/{event_id}/invites", response_model=InvitationListResponse)
async def list_invites(
    event_id: str,
    status: Optional[InvitationStatus] = Query(None, description="Only this status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(require_user_id),
    services: Services = Depends(get_services),
) -> InvitationListResponse:
    """An event's invitations, newest first. Organizer only."""
    await load_owned_event(services.events, event_id, user_id)
    page = await services.invitations.find_by_event(
        event_id, status=status, limit=limit, offset=offset
    )
    return InvitationListResponse(
        invitations=[InvitationResponse.model_validate(i) for i in page.invitations],
        total=page.total,
        limit=limit,
        offset=offset,
    )


@router.get("/events/{event_id}/invites/stats", response_model=InvitationStatsResponse)
async def get_invite_stats(
    event_id: str,
    user_id: str = Depends(require_user_id),
    services: Services = Depends(get_services),
) -> InvitationStatsResponse:
    await load_owned_event(services.events, event_id, user_id)
    stats = await services.invitations.get_stats(event_id)
    counts = await services.invitations.get_counts_by_status(event_id)
    return InvitationStatsResponse(
        total_sent=stats.total_sent,
        total_opened=stats.total_opened,
        total_clicked=stats.total_clicked,
        total_accepted=stats.total_accepted,
        total_declined=stats.total_declined,
        total_bounced=stats.total_bounced,
        open_rate=stats.open_rate,
        click_rate=stats.click_rate,
        accept_rate=stats.accept_rate,
        counts_by_status=counts,
    )


@router.patch("/invites/{invitation_id}/status", response_model=InvitationResponse)
async def update_invite_status(
    invitation_id: str,
    request: UpdateInvitationStatusRequest,
    user_id: str = Depends(require_user_id),
    services: Services = Depends(get_services),
) -> InvitationResponse:
    """Move an invitation along its lifecycle. 409 if the transition is not allowed."""
    await load_managed_invitation(services, invitation_id, user_id)
    invitation = await services.invitations.update_status(
        invitation_id,
        request.status,
        metadata=request.metadata,
    )
    if invitation is None:
        raise HTTPException(status_code=404, detail=f"Invitation {invitation_id} not found")
    return InvitationResponse.model_validate(invitation)


@router.delete("/invites/{invitation_id}", response_model=DeleteResponse)
async def delete_invite(
    invitation_id: str,
    user_id: str = Depends(require_user_id),
    services: Services = Depends(get_services),
) -> DeleteResponse:
    """Withdraw an invitation that was never delivered (pending or bounced)."""
    invitation = await load_managed_invitation(services, invitation_id, user_id)
    if await services.invitations.remove(invitation_id):
        return DeleteResponse(success=True, id=invitation_id, message="Invitation removed")
    raise HTTPException(
        status_code=409,
        detail=f"Invitation {invitation_id} is {invitation.status.value} and cannot be removed",
    )


# =============================================================================
# Tracking endpoints (public, embedded in emails)
# =============================================================================


@router.get("/invites/{token}/track", include_in_schema=False)
async def track_open(token: str) -> Response:
    """Tracking pixel. Always answers with the GIF, even when recording fails."""
    try:
        result = await get_services().invitations.record_open(token)
        if result.invitation_id and not result.already_opened:
            logger.info(f"Invitation {result.invitation_id} opened")
    except Exception as e:
        logger.error(f"Failed to record invitation open: {e}", exc_info=True)

    return Response(content=TRACKING_PIXEL, media_type="image/gif", headers=NO_CACHE_HEADERS)


@router.get("/invites/{token}/click", include_in_schema=False)
async def track_click(
    token: str,
    invitations: InvitationRepository = Depends(get_invitation_repository),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Record a click and redirect to the event page (home page for unknown tokens)."""
    base_url = settings.app_base_url.rstrip("/")
    try:
        result = await invitations.record_click(token)
    except Exception as e:
        logger.error(f"Failed to record invitation click: {e}", exc_info=True)
        return RedirectResponse(base_url or "/", status_code=302)

    if result.event_id is None:
        return RedirectResponse(base_url or "/", status_code=302)
    return RedirectResponse(f"{base_url}/events/{result.event_id}", status_code=302)
