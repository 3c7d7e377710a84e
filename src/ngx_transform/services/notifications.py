"""Webhook and email notifications."""

import logging
from dataclasses import dataclass
from typing import Protocol

from ngx_transform.domain.errors import ConfigurationError, UpstreamFailure
from ngx_transform.domain.sessions import SessionRecord

logger = logging.getLogger(__name__)


class WebhookClient(Protocol):
    """Interface for posting automation events."""

    async def post_event(self, url: str, payload: dict[str, object]) -> None:
        """POST a JSON event to the webhook URL."""


class EmailClient(Protocol):
    """Interface for the email delivery provider."""

    async def send_email(self, *, sender: str, to: str, subject: str, html: str) -> None:
        """Send a single HTML email."""


def build_share_url(base_url: str, share_id: str) -> str:
    """Build the public result link for a session."""
    base = base_url.rstrip("/")
    if not base.startswith("http"):
        base = f"https://{base}"
    return f"{base}/s/{share_id}"


@dataclass
class NotificationService:
    """Sends session notifications."""

    webhook_client: WebhookClient
    email_client: EmailClient | None
    webhook_url: str | None
    base_url: str
    sender: str

    async def notify_session_created(self, session: SessionRecord) -> None:
        """Fire the webhook and confirmation email; failures are only logged."""
        await self._post_session_created(session)
        await self._send_processing_email(session)

    async def send_results_email(self, to: str, share_id: str) -> None:
        """Send the "results ready" email with the share link."""
        if self.email_client is None:
            raise ConfigurationError("RESEND_API_KEY not set")
        url = build_share_url(self.base_url, share_id)
        try:
            await self.email_client.send_email(
                sender=self.sender,
                to=to,
                subject="Tus resultados NGX están listos",
                html=_results_html(url),
            )
        except Exception as exc:
            logger.exception("Results email failed", extra={"share_id": share_id})
            raise UpstreamFailure(f"Email delivery failed: {exc}") from exc

    async def _post_session_created(self, session: SessionRecord) -> None:
        if not self.webhook_url:
            return
        payload: dict[str, object] = {
            "type": "ngx_session_created",
            "shareId": session.share_id,
            "email": session.email,
            "input": session.input.to_document(),
            "source": "wizard",
            "createdAt": session.created_at.isoformat() if session.created_at else None,
        }
        try:
            await self.webhook_client.post_event(self.webhook_url, payload)
        except Exception:
            logger.exception(
                "Session webhook failed", extra={"share_id": session.share_id}
            )

    async def _send_processing_email(self, session: SessionRecord) -> None:
        if not session.email or self.email_client is None:
            return
        url = build_share_url(self.base_url, session.share_id)
        try:
            await self.email_client.send_email(
                sender=self.sender,
                to=session.email,
                subject="Tus resultados NGX están en proceso",
                html=(
                    "<p>Estamos generando tu proyección. Podrás verla aquí:</p>"
                    f'<p><a href="{url}">{url}</a></p>'
                    "<p>Puede tardar unos minutos.</p>"
                ),
            )
        except Exception:
            logger.exception(
                "Confirmation email failed", extra={"share_id": session.share_id}
            )


def _results_html(url: str) -> str:
    return (
        "<h1>Tu transformación NGX está lista</h1>"
        "<p>Tu proyección de 12 meses ya está disponible.</p>"
        f'<p><a href="{url}">Ver mis resultados</a></p>'
        f"<p>{url}</p>"
    )
