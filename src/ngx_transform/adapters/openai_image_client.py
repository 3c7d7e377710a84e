"""OpenAI Images API client for stage variants."""

import base64
from dataclasses import dataclass

from openai import AsyncOpenAI

from ngx_transform.services.images import ImageClient

_EXTENSIONS = {"image/png": "png", "image/webp": "webp"}


@dataclass
class OpenAIImageClient(ImageClient):
    """Edits the reference photo into a projected stage image."""

    client: AsyncOpenAI
    size: str = "1024x1536"

    @classmethod
    def create(cls, api_key: str) -> "OpenAIImageClient":
        """Create an OpenAI image client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def generate(
        self, *, model: str, prompt: str, reference_image: bytes, mime_type: str
    ) -> bytes:
        """Return decoded PNG bytes for the first generated image."""
        filename = f"reference.{_EXTENSIONS.get(mime_type, 'jpg')}"
        response = await self.client.images.edit(
            model=model,
            image=(filename, reference_image, mime_type),
            prompt=prompt,
            size=self.size,
        )
        if not response.data or not response.data[0].b64_json:
            raise RuntimeError("OpenAI returned no image data")
        return base64.b64decode(response.data[0].b64_json)
