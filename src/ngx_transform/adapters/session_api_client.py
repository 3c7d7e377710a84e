"""HTTP client for the session API, used by pollers."""

from dataclasses import dataclass

import httpx

from ngx_transform.services.polling import StatusSource


@dataclass
class HttpxSessionApiClient(StatusSource):
    """Reads session status from a running API."""

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str) -> "HttpxSessionApiClient":
        """Create a client with a managed httpx session."""
        return cls(base_url=base_url.rstrip("/"), http_client=httpx.AsyncClient())

    async def get_status(self, share_id: str) -> str:
        """Fetch the session and return its status."""
        response = await self.http_client.get(
            f"{self.base_url}/sessions/{share_id}", timeout=10
        )
        response.raise_for_status()
        return str(response.json()["status"])

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
