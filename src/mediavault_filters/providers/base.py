"""
Provider Base - Abstract base class, requests, results and model mappings.

This module provides the foundation for all AI providers:
- RequestKind: the two AI operations (style transfer, mood enhancement)
- ModelMapping: style/mood -> model id table for one provider and kind
- AIRequest / AIProcessingResult: request/response data structures
- AIProvider: Abstract base class for provider implementations

Every HTTP call goes through ``AIProvider._send``; providers shape the request
body and parse the response, the base class owns the transport.
"""

from __future__ import annotations

import base64
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

import aiohttp

from mediavault_filters.core.errors import (
    InvalidInput,
    ProviderFailure,
    UnsupportedOperation,
)
from mediavault_filters.core.settings import ProviderConfig

logger = logging.getLogger(__name__)


class RequestKind(Enum):
    """Supported AI operations."""
    STYLE_TRANSFER = "style_transfer"
    MOOD_ENHANCEMENT = "mood_enhancement"


@dataclass(frozen=True)
class ModelMapping:
    """
    Model table for one provider and one request kind.

    Attributes:
        kind: Operation this table serves
        models: style or mood value -> provider model id
        default_params: Extra request parameters sent with every call
    """
    kind: RequestKind
    models: Mapping[str, str]
    default_params: Mapping[str, Any] = field(default_factory=dict)

    def model_for(self, style_or_mood: str) -> str | None:
        return self.models.get(style_or_mood)


@dataclass
class AIRequest:
    """Request for a style transfer or mood enhancement."""
    kind: RequestKind
    source_image: bytes
    style_or_mood: str
    intensity: float = 0.8

    # Provider-specific extra parameters (e.g. "color_tone" for moods)
    extra_params: dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        """
        Raises:
            InvalidInput: Empty image, empty style/mood or intensity outside [0, 1]
        """
        if not isinstance(self.kind, RequestKind):
            raise InvalidInput(f"Unknown request kind: {self.kind!r}")
        if not self.source_image:
            raise InvalidInput("AI request needs a source image")
        if not self.style_or_mood:
            raise InvalidInput("AI request needs a style or mood")
        if isinstance(self.intensity, bool) or not isinstance(self.intensity, (int, float)):
            raise InvalidInput(f"Intensity must be a number, got {self.intensity!r}")
        if not 0.0 <= self.intensity <= 1.0:
            raise InvalidInput(f"Intensity must be within [0, 1], got {self.intensity}")


@dataclass
class AIProcessingResult:
    """Result from an AI provider call."""
    processed_image: bytes
    confidence: float
    model_id: str
    duration: float = 0.0  # Seconds
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderOutput:
    """Raw provider output before the gateway normalizes it."""
    image: bytes
    confidence: float | None = None  # None = use the provider's nominal value
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class HttpResponse:
    """Status, content type and body of one HTTP exchange."""
    status: int
    content_type: str
    body: bytes

    def json(self) -> Any:
        try:
            return json.loads(self.body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            return None

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")


class AIProvider(ABC):
    """
    Abstract base class for AI providers.

    Each provider handles communication with a specific API. The models it
    can use are defined in its ``mappings`` table; a kind or style missing
    from the table is an UnsupportedOperation, raised before any request.
    """

    # Provider identification
    id: str = ""
    name: str = ""
    base_url: str = ""

    # Confidence reported when the API itself gives none
    nominal_confidence: float = 0.8

    mappings: tuple[ModelMapping, ...] = ()

    def __init__(self, config: ProviderConfig):
        self.config = config
        if config.base_url:
            self.base_url = config.base_url.rstrip("/")

    @property
    def api_key(self) -> str:
        return self.config.api_key

    @property
    def is_configured(self) -> bool:
        """Check if provider has necessary configuration."""
        return bool(self.config.api_key)

    def supports(self, kind: RequestKind) -> bool:
        return any(m.kind is kind for m in self.mappings)

    def mapping_for(self, kind: RequestKind) -> ModelMapping | None:
        for mapping in self.mappings:
            if mapping.kind is kind:
                return mapping
        return None

    def resolve_model(self, request: AIRequest) -> str:
        """
        Model id for a request.

        Raises:
            UnsupportedOperation: No mapping for the kind or the style/mood
        """
        mapping = self.mapping_for(request.kind)
        if mapping is None:
            raise UnsupportedOperation(self.id, f"{request.kind.value} is not supported")
        model_id = mapping.model_for(request.style_or_mood)
        if model_id is None:
            raise UnsupportedOperation(
                self.id,
                f"no {request.kind.value} model for '{request.style_or_mood}'",
            )
        return model_id

    @abstractmethod
    async def process(self, request: AIRequest, model_id: str) -> ProviderOutput:
        """
        Run one request against the API.

        Args:
            request: Validated request
            model_id: Model resolved from this provider's mappings

        Returns:
            ProviderOutput with encoded image bytes

        Raises:
            ProviderFailure: HTTP error status or unusable response
            aiohttp.ClientError: Transport failure (mapped by the gateway)
        """
        ...

    def get_headers(self) -> dict[str, str]:
        """Get default headers for API requests."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }

    async def _send(self, method: str, url: str, **kwargs: Any) -> HttpResponse:
        """
        Perform one HTTP request and read the whole body.

        Keyword arguments are passed to ``aiohttp.ClientSession.request``.
        """
        logger.debug("%s %s %s", self.id, method, url)
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.request(method, url, **kwargs) as resp:
                body = await resp.read()
                return HttpResponse(status=resp.status, content_type=resp.content_type or "", body=body)

    async def _post(self, url: str, body: dict) -> Any:
        """POST a JSON body and return the decoded JSON response."""
        resp = await self._send("POST", url, json=body, headers=self.get_headers())
        return self._json_or_error(resp)

    async def _post_multipart(self, url: str, form: aiohttp.FormData) -> Any:
        """POST multipart form data and return the decoded JSON response."""
        resp = await self._send("POST", url, data=form, headers=self.get_headers())
        return self._json_or_error(resp)

    async def _get(self, url: str) -> Any:
        resp = await self._send("GET", url, headers=self.get_headers())
        return self._json_or_error(resp)

    async def _download(self, url: str) -> bytes:
        """Fetch a result image by URL."""
        resp = await self._send("GET", url)
        if resp.status != 200:
            raise ProviderFailure(self.id, f"failed to download image: HTTP {resp.status}")
        return resp.body

    def _json_or_error(self, resp: HttpResponse) -> Any:
        data = resp.json()
        self._check_error(resp.status, data)
        if data is None:
            raise ProviderFailure(self.id, f"expected JSON response, got {resp.content_type or 'no content type'}")
        return data

    def _check_error(self, status: int, data: Any) -> None:
        """Check for API errors."""
        if status == 401 or status == 403:
            raise ProviderFailure(self.id, f"invalid {self.name} API key (HTTP {status})")
        elif status == 429:
            raise ProviderFailure(self.id, f"{self.name} rate limit exceeded")
        elif status >= 400:
            raise ProviderFailure(self.id, f"HTTP {status}: {self._error_message(data)}")

    def _error_message(self, data: Any) -> str:
        """Pull a readable message out of an error body."""
        if isinstance(data, dict):
            error = data.get("error") or data.get("message") or data.get("detail")
            if isinstance(error, dict):
                return str(error.get("message", "Unknown error"))
            if error:
                return str(error)
        return "Unknown error"

    def _decode_base64(self, value: str) -> bytes:
        """Decode plain base64 or a ``data:image/...;base64,`` URI."""
        if value.startswith("data:"):
            value = value.split(",", 1)[1]
        try:
            return base64.b64decode(value, validate=True)
        except ValueError as e:
            raise ProviderFailure(self.id, "invalid base64 image in response") from e

    @staticmethod
    def _to_data_uri(image: bytes, mime_type: str = "image/png") -> str:
        return f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"
