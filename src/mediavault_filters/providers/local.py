"""
Local Provider - Offline processor.

Answers style transfer and mood enhancement without any network call by
returning the source image unchanged. Used for development and as the
default provider when no API is configured.
"""

from __future__ import annotations

from mediavault_filters.core.models import ArtisticStyle, MoodType
from mediavault_filters.providers.base import (
    AIProvider,
    AIRequest,
    ModelMapping,
    ProviderOutput,
    RequestKind,
)


class LocalProvider(AIProvider):
    """Pass-through processor."""

    id = "local"
    name = "Local"
    base_url = ""
    nominal_confidence = 0.8

    mappings = (
        ModelMapping(
            kind=RequestKind.STYLE_TRANSFER,
            models={s.value: "local-style-processor" for s in ArtisticStyle},
        ),
        ModelMapping(
            kind=RequestKind.MOOD_ENHANCEMENT,
            models={m.value: "local-mood-enhancement" for m in MoodType},
        ),
    )

    @property
    def is_configured(self) -> bool:
        return True

    async def process(self, request: AIRequest, model_id: str) -> ProviderOutput:
        confidence = 0.8 if request.kind is RequestKind.STYLE_TRANSFER else 0.7
        return ProviderOutput(image=request.source_image, confidence=confidence, params={"passthrough": True})
