"""Resend email API client."""

from dataclasses import dataclass

import httpx

from ngx_transform.services.notifications import EmailClient


@dataclass
class ResendEmailClient(EmailClient):
    """Email client for the Resend REST API."""

    api_key: str
    http_client: httpx.AsyncClient
    base_url: str = "https://api.resend.com"

    @classmethod
    def create(cls, api_key: str) -> "ResendEmailClient":
        """Create an email client with a managed httpx session."""
        return cls(api_key=api_key, http_client=httpx.AsyncClient())

    async def send_email(self, *, sender: str, to: str, subject: str, html: str) -> None:
        """Send an HTML email."""
        response = await self.http_client.post(
            f"{self.base_url}/emails",
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={"from": sender, "to": [to], "subject": subject, "html": html},
            timeout=10,
        )
        response.raise_for_status()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
