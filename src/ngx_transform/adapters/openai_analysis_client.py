"""OpenAI Responses API client for photo analysis."""

import json
import logging
from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from ngx_transform.domain.errors import UpstreamFailure, ValidationError
from ngx_transform.services.analysis import AnalysisClient

logger = logging.getLogger(__name__)

SCHEMA_NAME = "transformation_analysis"


def _build_input(prompt: str, image_url: str) -> list[dict[str, object]]:
    return [
        {
            "role": "user",
            "content": [
                {"type": "input_text", "text": prompt},
                {"type": "input_image", "image_url": image_url},
            ],
        }
    ]


def _find_refusal(response: object) -> str | None:
    """Return the refusal text if the model declined to answer."""
    for item in getattr(response, "output", None) or []:
        for part in getattr(item, "content", None) or []:
            if getattr(part, "type", None) == "refusal":
                return getattr(part, "refusal", None) or "request refused"
    return None


@dataclass
class OpenAIAnalysisClient(AnalysisClient):
    """Analysis client backed by OpenAI structured outputs.

    Anything that leaves no usable answer raises ``UpstreamFailure``; text
    that is not JSON is a ``ValidationError``.
    """

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAIAnalysisClient":
        """Create an OpenAI analysis client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def analyze(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Call the Responses API with the signed photo URL."""
        options: dict[str, object] = {}
        if reasoning_effort:
            options["reasoning"] = {"effort": reasoning_effort}

        try:
            response = await self.client.responses.create(
                model=model,
                input=_build_input(prompt, image_url),
                text={
                    "format": {
                        "type": "json_schema",
                        "name": SCHEMA_NAME,
                        "strict": True,
                        "schema": schema,
                    }
                },
                store=store,
                **options,
            )
        except openai.APIError as exc:
            raise UpstreamFailure(f"OpenAI request failed: {exc.message}") from exc

        refusal = _find_refusal(response)
        if refusal is not None:
            logger.warning("Analysis refused", extra={"model": model})
            raise UpstreamFailure(f"Model refused the analysis: {refusal}")

        output_text = response.output_text
        if not output_text:
            raise UpstreamFailure("OpenAI returned an empty response")
        try:
            return json.loads(output_text)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Model output is not valid JSON: {exc.msg}") from exc
