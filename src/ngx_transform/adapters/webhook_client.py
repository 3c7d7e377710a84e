"""Automation webhook client."""

from dataclasses import dataclass

import httpx

from ngx_transform.services.notifications import WebhookClient


@dataclass
class HttpxWebhookClient(WebhookClient):
    """Posts JSON events with httpx."""

    http_client: httpx.AsyncClient

    @classmethod
    def create(cls) -> "HttpxWebhookClient":
        """Create a webhook client with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient())

    async def post_event(self, url: str, payload: dict[str, object]) -> None:
        """POST the event and raise on non-2xx responses."""
        response = await self.http_client.post(url, json=payload, timeout=10)
        response.raise_for_status()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
