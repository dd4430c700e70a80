"""
OpenAI Provider - Image edits.

Style transfer only: the source image is sent to the images/edits endpoint
with a style prompt. There is no mood enhancement model.

API Reference: https://platform.openai.com/docs/api-reference/images
"""

from __future__ import annotations

import aiohttp

from mediavault_filters.core.errors import ProviderFailure
from mediavault_filters.core.models import ArtisticStyle
from mediavault_filters.providers.base import (
    AIProvider,
    AIRequest,
    ModelMapping,
    ProviderOutput,
    RequestKind,
)
from mediavault_filters.providers.prompts import style_prompt


class OpenAIProvider(AIProvider):
    """OpenAI image edits provider."""

    id = "openai"
    name = "OpenAI"
    base_url = "https://api.openai.com/v1"
    nominal_confidence = 0.9

    mappings = (
        ModelMapping(
            kind=RequestKind.STYLE_TRANSFER,
            models={s.value: "gpt-image-1" for s in ArtisticStyle},
            default_params={"size": "1024x1024"},
        ),
    )

    async def process(self, request: AIRequest, model_id: str) -> ProviderOutput:
        """Edit the source image toward the requested style."""
        prompt = f"Transform this image into {style_prompt(request.style_or_mood)}"
        size = request.extra_params.get("size", self.mapping_for(request.kind).default_params["size"])

        form = aiohttp.FormData()
        form.add_field("model", model_id)
        form.add_field("prompt", prompt)
        form.add_field("n", "1")
        form.add_field("size", str(size))
        form.add_field("image", request.source_image, filename="image.png", content_type="image/png")

        data = await self._post_multipart(f"{self.base_url}/images/edits", form)

        items = data.get("data") if isinstance(data, dict) else None
        if not items or not items[0].get("b64_json"):
            raise ProviderFailure(self.id, "no image in response")

        params = {"prompt": prompt, "size": size}
        if items[0].get("revised_prompt"):
            params["revised_prompt"] = items[0]["revised_prompt"]
        return ProviderOutput(image=self._decode_base64(items[0]["b64_json"]), params=params)
