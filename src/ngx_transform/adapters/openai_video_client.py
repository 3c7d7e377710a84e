"""OpenAI Videos API adapter behind the video job interface."""

import io
from dataclasses import dataclass

from openai import AsyncOpenAI
from PIL import Image, ImageOps

from ngx_transform.services.video import VideoJobClient, VideoJobState, VideoOptions

_SIZES = {
    ("720p", "9:16"): "720x1280",
    ("720p", "16:9"): "1280x720",
    ("1080p", "9:16"): "1024x1792",
    ("1080p", "16:9"): "1792x1024",
}
# Only the pro model renders the larger sizes.
_PRO_ONLY_RESOLUTIONS = {"1080p"}
_PRO_MODEL_PREFIX = "sora-2-pro"


def fit_reference_image(data: bytes, size: str) -> bytes:
    """Center-crop and scale a photo to exactly ``WIDTHxHEIGHT`` as JPEG."""
    width, height = (int(part) for part in size.split("x"))
    with Image.open(io.BytesIO(data)) as image:
        upright = ImageOps.exif_transpose(image).convert("RGB")
    fitted = ImageOps.fit(upright, (width, height), method=Image.Resampling.LANCZOS)
    buffer = io.BytesIO()
    fitted.save(buffer, format="JPEG", quality=92)
    return buffer.getvalue()


@dataclass
class OpenAIVideoClient(VideoJobClient):
    """Submits image-referenced video jobs and downloads the result."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAIVideoClient":
        """Create an OpenAI video client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    def supports(self, model: str, options: VideoOptions) -> bool:
        """Check the format against the sizes the model can render."""
        if (options.resolution, options.aspect_ratio) not in _SIZES:
            return False
        if options.resolution in _PRO_ONLY_RESOLUTIONS:
            return model.startswith(_PRO_MODEL_PREFIX)
        return True

    async def submit(  # noqa: PLR0913
        self,
        *,
        model: str,
        prompt: str,
        reference_image: bytes,
        mime_type: str,
        options: VideoOptions,
    ) -> str:
        """Start a video job and return its id.

        The reference frame must match the output size, so the photo is
        cropped to it first; the original ``mime_type`` is not kept.
        """
        size = _SIZES.get((options.resolution, options.aspect_ratio))
        if size is None:
            raise ValueError(
                f"Unsupported video format {options.resolution} {options.aspect_ratio}"
            )
        video = await self.client.videos.create(
            model=model,
            prompt=prompt,
            input_reference=(
                "reference.jpg",
                fit_reference_image(reference_image, size),
                "image/jpeg",
            ),
            seconds=str(options.duration_seconds),
            size=size,
        )
        return video.id

    async def poll(self, job_id: str) -> VideoJobState:
        """Map the remote job status onto done/error."""
        video = await self.client.videos.retrieve(job_id)
        if video.status == "failed":
            message = video.error.message if video.error else "unknown error"
            return VideoJobState(done=True, error=message)
        return VideoJobState(done=video.status == "completed")

    async def fetch(self, job_id: str) -> bytes:
        """Download the MP4 for a completed job."""
        content = await self.client.videos.download_content(job_id, variant="video")
        return content.content
