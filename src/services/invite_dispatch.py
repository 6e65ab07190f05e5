"""
Outbound invitation email.

Sends invitation emails through the email provider's HTTP API. Each message
embeds the invitation's tracking pixel and click-through URLs and is tagged
with the invitation id so provider webhooks can be matched back to it.

Callers (route handlers) invoke the mailer after creating invitations; the
invitation repository never sends email itself.
"""

import html
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from src.config import Settings
from src.integrations.base import Invitation, InvitationStatus

logger = logging.getLogger(__name__)

MAILER_TIMEOUT = 10.0  # seconds
RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)


class MailerError(Exception):
    """Sending an invitation email failed."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.retryable = retryable


def _is_retryable_error(exception: BaseException) -> bool:
    return isinstance(exception, MailerError) and exception.retryable


class InviteMailer:
    """
    Email provider client for invitations.

    Provides:
    - Tracking pixel and click URLs per invitation
    - Automatic retry with exponential backoff on transient failures
    - Consistent MailerError for every failure mode

    Args:
        api_key: Provider API key (sent as a Bearer token)
        from_address: Sender address
        app_base_url: Public base URL of this API
        api_url: Provider send endpoint
        client: Optional httpx.AsyncClient (tests pass one with a MockTransport)
        max_attempts: Attempts per message, including the first
        retry_wait: tenacity wait strategy between attempts
    """

    def __init__(
        self,
        api_key: str,
        from_address: str,
        app_base_url: str,
        api_url: str = "https://api.resend.com/emails",
        client: Optional[httpx.AsyncClient] = None,
        max_attempts: int = 3,
        retry_wait=None,
    ):
        self._api_key = api_key
        self._from_address = from_address
        self._base_url = app_base_url.rstrip("/")
        self._api_url = api_url
        self._client = client or httpx.AsyncClient(timeout=MAILER_TIMEOUT)
        self._owns_client = client is None
        self._max_attempts = max_attempts
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=10)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "InviteMailer":
        return cls(
            api_key=settings.email_api_key,
            from_address=settings.email_from_address,
            app_base_url=settings.app_base_url,
            api_url=settings.email_api_url,
            client=client,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def tracking_pixel_url(self, token: str) -> str:
        return f"{self._base_url}/api/invites/{token}/track"

    def click_url(self, token: str) -> str:
        return f"{self._base_url}/api/invites/{token}/click"

    def build_message(
        self,
        invitation: Invitation,
        event_title: str,
        sender_name: Optional[str] = None,
    ) -> dict:
        """Provider payload for one invitation email."""
        sender = sender_name or "Someone"
        greeting = f"Hi {invitation.recipient_name}," if invitation.recipient_name else "Hi,"
        link = self.click_url(invitation.tracking_token)
        pixel = self.tracking_pixel_url(invitation.tracking_token)

        body = (
            f"<p>{html.escape(greeting)}</p>"
            f"<p>{html.escape(sender)} invited you to "
            f"<strong>{html.escape(event_title)}</strong>.</p>"
            f'<p><a href="{link}">View the event</a></p>'
            f'<img src="{pixel}" width="1" height="1" alt="" style="display:none" />'
        )
        return {
            "from": self._from_address,
            "to": [invitation.email],
            "subject": f"{sender} invited you to {event_title}",
            "html": body,
            "text": f"{greeting}\n\n{sender} invited you to {event_title}.\n\n{link}\n",
            "tags": [
                {"name": "invitation_id", "value": invitation.id},
                {"name": "event_id", "value": invitation.event_id},
            ],
        }

    async def _post(self, payload: dict) -> str:
        try:
            response = await self._client.post(
                self._api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except httpx.TimeoutException as e:
            raise MailerError("Email provider request timed out", retryable=True) from e
        except httpx.RequestError as e:
            raise MailerError(f"Email provider request failed: {e}", retryable=True) from e

        if response.status_code >= 400:
            raise MailerError(
                f"Email provider error ({response.status_code}): {response.text[:200]}",
                status_code=response.status_code,
                retryable=response.status_code in RETRYABLE_STATUS_CODES,
            )

        try:
            return str(response.json().get("id", ""))
        except ValueError:
            return ""

    async def send_invitation(
        self,
        invitation: Invitation,
        event_title: str,
        sender_name: Optional[str] = None,
    ) -> str:
        """
        Send one invitation email.

        Returns:
            Provider message id ("" if the provider did not return one)

        Raises:
            MailerError: If sending failed after all attempts
        """
        if not self._api_key:
            raise MailerError("Email provider API key not configured")

        payload = self.build_message(invitation, event_title, sender_name)
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception(_is_retryable_error),
            reraise=True,
        ):
            with attempt:
                message_id = await self._post(payload)

        logger.info(f"Sent invitation {invitation.id} to {invitation.email} ({message_id})")
        return message_id


@dataclass
class DispatchResult:
    """Per-email outcome of a dispatch run."""

    sent: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


async def dispatch_invitations(
    mailer: InviteMailer,
    repository,
    invitations: Iterable[Invitation],
    event_title: str,
    sender_name: Optional[str] = None,
) -> DispatchResult:
    """
    Email each pending invitation and mark it sent.

    Invitations that are not pending are skipped. A failed send leaves the
    invitation pending and is reported under failed with the error message.

    Args:
        mailer: Configured InviteMailer
        repository: InvitationRepository used for mark_as_sent
        invitations: Invitations to send
        event_title: Title shown in the email
        sender_name: Inviter's display name
    """
    result = DispatchResult()
    for invitation in invitations:
        if invitation.status != InvitationStatus.PENDING:
            result.skipped.append(invitation.email)
            continue
        try:
            await mailer.send_invitation(invitation, event_title, sender_name)
        except MailerError as e:
            logger.warning(f"Could not send invitation {invitation.id}: {e.message}")
            result.failed[invitation.email] = e.message
            continue

        await repository.mark_as_sent(invitation.id)
        result.sent.append(invitation.email)

    logger.info(
        f"Dispatched invitations for {event_title!r}: {len(result.sent)} sent, "
        f"{len(result.skipped)} skipped, {len(result.failed)} failed"
    )
    return result
