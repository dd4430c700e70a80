"""
Provider Gateway - Single entry point for AI style transfer and mood enhancement.

The gateway owns one provider instance, chosen at construction from
ProviderConfig.provider. Each call is bounded by a deadline; when the
deadline passes the caller gets ProviderTimeout, and other transport or
response problems surface as ProviderFailure. There is no fallback to
another provider.

Usage:
    gateway = ProviderGateway(ProviderConfig(provider="stability", api_key="..."))
    result = gateway.process_sync(AIRequest(RequestKind.STYLE_TRANSFER, image, "watercolor"))
"""

from __future__ import annotations

import asyncio
import logging
import time

import aiohttp

from mediavault_filters.core.errors import (
    InvalidInput,
    ProviderFailure,
    ProviderTimeout,
)
from mediavault_filters.core.settings import ProviderConfig
from mediavault_filters.providers.base import (
    AIProcessingResult,
    AIProvider,
    AIRequest,
    RequestKind,
)
from mediavault_filters.providers.huggingface import HuggingFaceProvider
from mediavault_filters.providers.local import LocalProvider
from mediavault_filters.providers.openai import OpenAIProvider
from mediavault_filters.providers.replicate import ReplicateProvider
from mediavault_filters.providers.stability import StabilityProvider

logger = logging.getLogger(__name__)


PROVIDER_CLASSES: dict[str, type[AIProvider]] = {}


def register_provider(provider_class: type[AIProvider]) -> None:
    """Register a provider implementation under its id."""
    PROVIDER_CLASSES[provider_class.id] = provider_class


def list_providers() -> list[str]:
    """Get list of registered provider IDs."""
    return list(PROVIDER_CLASSES.keys())


for _cls in (StabilityProvider, ReplicateProvider, OpenAIProvider, HuggingFaceProvider, LocalProvider):
    register_provider(_cls)


class ProviderGateway:
    """
    Dispatches AI requests to the configured provider.

    Holds no per-call state; one gateway may serve concurrent calls.
    """

    def __init__(self, config: ProviderConfig | None = None):
        self.config = config or ProviderConfig()
        provider_class = PROVIDER_CLASSES.get(self.config.provider)
        if provider_class is None:
            raise InvalidInput(
                f"Unknown AI provider '{self.config.provider}'. "
                f"Available: {', '.join(list_providers())}"
            )
        self.provider = provider_class(self.config)
        if not self.provider.is_configured:
            logger.warning("Provider %s has no API key configured", self.provider.id)

    @property
    def provider_id(self) -> str:
        return self.provider.id

    def supports(self, kind: RequestKind) -> bool:
        return self.provider.supports(kind)

    async def process(self, request: AIRequest, timeout: float | None = None) -> AIProcessingResult:
        """
        Run a request against the configured provider.

        Args:
            request: Style transfer or mood enhancement request
            timeout: Deadline in seconds; defaults to ProviderConfig.timeout

        Returns:
            AIProcessingResult with confidence in [0, 1]

        Raises:
            InvalidInput: Malformed request
            UnsupportedOperation: Provider has no model for the kind or style/mood
            ProviderTimeout: Deadline exceeded
            ProviderFailure: Network, HTTP or parse failure
        """
        request.validate()
        model_id = self.provider.resolve_model(request)
        deadline = self.config.timeout if timeout is None else timeout

        start = time.perf_counter()
        try:
            output = await asyncio.wait_for(self.provider.process(request, model_id), deadline)
        except asyncio.TimeoutError as e:
            raise ProviderTimeout(self.provider.id, f"no response within {deadline:g}s") from e
        except ProviderFailure:
            raise
        except aiohttp.ClientError as e:
            raise ProviderFailure(self.provider.id, f"request failed: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderFailure(self.provider.id, f"unusable response: {e}") from e
        duration = time.perf_counter() - start

        if not output.image:
            raise ProviderFailure(self.provider.id, "empty image in response")

        confidence = output.confidence if output.confidence is not None else self.provider.nominal_confidence
        confidence = min(max(float(confidence), 0.0), 1.0)

        logger.debug(
            "%s %s '%s' via %s in %.2fs",
            self.provider.id,
            request.kind.value,
            request.style_or_mood,
            model_id,
            duration,
        )

        key = "style" if request.kind is RequestKind.STYLE_TRANSFER else "mood"
        params = {
            key: request.style_or_mood,
            "intensity": request.intensity,
            "provider": self.provider.id,
            **request.extra_params,
            **output.params,
        }
        return AIProcessingResult(
            processed_image=output.image,
            confidence=confidence,
            model_id=model_id,
            duration=duration,
            params=params,
        )

    def process_sync(self, request: AIRequest, timeout: float | None = None) -> AIProcessingResult:
        """
        Blocking form of process() for synchronous callers.

        Must not be called from a running event loop.
        """
        return asyncio.run(self.process(request, timeout))
