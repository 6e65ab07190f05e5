"""
Email provider webhook routes.

Receives delivery events from the email provider. Payloads are signed with
HMAC-SHA256 over the raw body:
- Header: X-Webhook-Signature
- Signature: hex(HMAC-SHA256(payload, EMAIL_WEBHOOK_SECRET))

Only bounces and spam complaints change state (the invitation is marked
bounced); opens and clicks are tracked through the pixel and redirect
endpoints instead.
"""

import hashlib
import hmac
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import ValidationError

from src.api.dependencies import get_invitation_repository
from src.api.models import EmailWebhookEvent, WebhookAck
from src.config import Settings, get_settings
from src.services.invitation_repository import InvitationRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])

# Events after which the address must not be mailed again
UNDELIVERABLE_EVENTS = ("email.bounced", "email.complained")


def generate_signature(payload: bytes, secret: str) -> str:
    """
    Generate HMAC-SHA256 signature for a webhook payload.

    Args:
        payload: Raw request body
        secret: Shared webhook secret

    Returns:
        Hex-encoded signature
    """
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_signature(payload: bytes, signature: Optional[str], secret: str) -> bool:
    if not signature:
        return False
    return hmac.compare_digest(signature, generate_signature(payload, secret))


def invitation_id_from_tags(tags) -> Optional[str]:
    """
    Find the invitation_id tag on a provider event.

    Providers send tags either as a mapping or as a list of
    {"name": ..., "value": ...} pairs.
    """
    if isinstance(tags, dict):
        return tags.get("invitation_id")
    if isinstance(tags, list):
        for tag in tags:
            if isinstance(tag, dict) and tag.get("name") == "invitation_id":
                return tag.get("value")
    return None


@router.post("/email", response_model=WebhookAck)
async def receive_email_event(
    request: Request,
    x_webhook_signature: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    invitations: InvitationRepository = Depends(get_invitation_repository),
) -> WebhookAck:
    """
    Handle an email delivery event.

    The signature is checked whenever EMAIL_WEBHOOK_SECRET is set.
    """
    payload = await request.body()

    if settings.email_webhook_secret:
        if not verify_signature(payload, x_webhook_signature, settings.email_webhook_secret):
            logger.warning("Rejected email webhook with invalid signature")
            raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        event = EmailWebhookEvent.model_validate(json.loads(payload))
    except (json.JSONDecodeError, ValidationError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid webhook payload: {e}") from e

    logger.info(f"Received email webhook {event.type}")
    if event.type not in UNDELIVERABLE_EVENTS:
        return WebhookAck(received=True, handled=False)

    invitation_id = invitation_id_from_tags(event.data.get("tags"))
    if not invitation_id:
        logger.warning(f"{event.type} webhook without invitation_id tag")
        return WebhookAck(received=True, handled=False)

    if event.type == "email.complained":
        reason = "complained"
    else:
        bounce = event.data.get("bounce") or {}
        reason = bounce.get("message") if isinstance(bounce, dict) else None
    bounced = await invitations.mark_as_bounced(invitation_id, reason)
    return WebhookAck(received=True, handled=bounced is not None)
