"""
Hugging Face Provider - Inference API image-to-image.

Style transfer only. The inference API answers with raw image bytes on
success and a JSON error body otherwise.
"""

from __future__ import annotations

import base64

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


class HuggingFaceProvider(AIProvider):
    """Hugging Face inference provider."""

    id = "huggingface"
    name = "Hugging Face"
    base_url = "https://api-inference.huggingface.co"
    nominal_confidence = 0.85

    mappings = (
        ModelMapping(
            kind=RequestKind.STYLE_TRANSFER,
            models={s.value: "runwayml/stable-diffusion-v1-5" for s in ArtisticStyle},
        ),
    )

    def get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "image/png",
        }

    async def process(self, request: AIRequest, model_id: str) -> ProviderOutput:
        """Send the image with a style prompt; the body of a 200 is the image."""
        prompt = style_prompt(request.style_or_mood)
        body = {
            "inputs": base64.b64encode(request.source_image).decode("ascii"),
            "parameters": {"prompt": prompt, "strength": request.intensity},
        }

        resp = await self._send("POST", f"{self.base_url}/models/{model_id}", json=body, headers=self.get_headers())
        if resp.status >= 400 or not resp.is_image:
            self._check_error(resp.status, resp.json())
            raise ProviderFailure(self.id, f"expected image response, got {resp.content_type or 'no content type'}")
        if not resp.body:
            raise ProviderFailure(self.id, "empty image response")

        return ProviderOutput(image=resp.body, params={"prompt": prompt})
