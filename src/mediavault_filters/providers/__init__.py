"""
AI Providers.

This package provides integrations with AI image services for style transfer
and mood enhancement:
- Stability AI: SDXL image-to-image (style + mood)
- Replicate: SDXL predictions (style + mood)
- OpenAI: image edits (style)
- Hugging Face: inference API (style)
- Local: offline pass-through (style + mood)

Usage:
    from mediavault_filters.providers import ProviderGateway, AIRequest, RequestKind

    gateway = ProviderGateway(settings.provider)
    result = gateway.process_sync(AIRequest(RequestKind.MOOD_ENHANCEMENT, image, "cozy"))
"""

from mediavault_filters.providers.base import (
    AIProcessingResult,
    AIProvider,
    AIRequest,
    ModelMapping,
    ProviderOutput,
    RequestKind,
)

from mediavault_filters.providers.gateway import (
    PROVIDER_CLASSES,
    ProviderGateway,
    list_providers,
    register_provider,
)

__all__ = [
    "AIProcessingResult",
    "AIProvider",
    "AIRequest",
    "ModelMapping",
    "ProviderOutput",
    "RequestKind",
    "PROVIDER_CLASSES",
    "ProviderGateway",
    "list_providers",
    "register_provider",
]
