"""
Tests for AI providers and the provider gateway.

HTTP traffic is faked by replacing the provider's ``_send`` coroutine.
"""

import asyncio
import base64
import json

import aiohttp
import pytest

from mediavault_filters.core.errors import (
    InvalidInput,
    ProviderFailure,
    ProviderTimeout,
    UnsupportedOperation,
)
from mediavault_filters.core.settings import ProviderConfig
from mediavault_filters.providers import (
    AIRequest,
    ProviderGateway,
    ProviderOutput,
    RequestKind,
    list_providers,
)
from mediavault_filters.providers.base import HttpResponse
from mediavault_filters.providers.prompts import mood_prompt, style_prompt
from mediavault_filters.providers.stability import SDXL_ENGINE

RESULT_IMAGE = b"\x89PNG\r\n\x1a\nprocessed"


def _json(status, body):
    return HttpResponse(status=status, content_type="application/json", body=json.dumps(body).encode())


class FakeTransport:
    """Replays canned responses and records each request."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    async def __call__(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


def _gateway(provider, monkeypatch=None, transport=None, **config):
    gateway = ProviderGateway(ProviderConfig(provider=provider, api_key="test-key", **config))
    if transport is not None:
        monkeypatch.setattr(gateway.provider, "_send", transport)
    return gateway


def _style(style="watercolor", intensity=0.7, **extra):
    return AIRequest(RequestKind.STYLE_TRANSFER, b"source-image", style, intensity, extra)


def _mood(mood="cozy", intensity=0.5, **extra):
    return AIRequest(RequestKind.MOOD_ENHANCEMENT, b"source-image", mood, intensity, extra)


class TestPrompts:
    """Tests for prompt phrasing."""

    def test_style_prompt(self):
        assert style_prompt("noir") == "film noir, black and white, dramatic shadows, cinematic"

    def test_mood_prompt_with_color_tone(self):
        assert mood_prompt("cozy", "amber") == "warm, cozy, comfortable, homely feeling, amber color tones"

    def test_mood_prompt_without_color_tone(self):
        assert mood_prompt("calm") == "calm, peaceful, serene, tranquil"


class TestGatewaySetup:
    """Provider selection and request validation."""

    def test_all_providers_registered(self):
        assert set(list_providers()) >= {"stability", "replicate", "openai", "huggingface", "local"}

    def test_unknown_provider(self):
        with pytest.raises(InvalidInput, match="midjourney"):
            ProviderGateway(ProviderConfig(provider="midjourney"))

    def test_supported_kinds(self):
        assert _gateway("stability").supports(RequestKind.MOOD_ENHANCEMENT)
        assert not _gateway("openai").supports(RequestKind.MOOD_ENHANCEMENT)
        assert not _gateway("huggingface").supports(RequestKind.MOOD_ENHANCEMENT)

    @pytest.mark.parametrize("intensity", [-0.1, 1.5, True])
    async def test_intensity_out_of_range(self, intensity):
        with pytest.raises(InvalidInput):
            await _gateway("local").process(_style(intensity=intensity))

    async def test_empty_image_rejected(self):
        with pytest.raises(InvalidInput):
            await _gateway("local").process(AIRequest(RequestKind.STYLE_TRANSFER, b"", "anime"))


class TestUnsupportedOperations:
    """Unmapped kinds and styles fail before any request."""

    async def test_replicate_has_no_noir(self, monkeypatch):
        transport = FakeTransport()
        gateway = _gateway("replicate", monkeypatch, transport)
        with pytest.raises(UnsupportedOperation) as exc:
            await gateway.process(_style("noir"))
        assert exc.value.provider == "replicate"
        assert transport.calls == []

    async def test_openai_has_no_mood(self, monkeypatch):
        transport = FakeTransport()
        gateway = _gateway("openai", monkeypatch, transport)
        with pytest.raises(UnsupportedOperation):
            await gateway.process(_mood("happy"))
        assert transport.calls == []

    async def test_unknown_style(self, monkeypatch):
        transport = FakeTransport()
        gateway = _gateway("stability", monkeypatch, transport)
        with pytest.raises(UnsupportedOperation):
            await gateway.process(_style("pointillism"))
        assert transport.calls == []


class TestLocalProvider:
    """Offline pass-through provider."""

    async def test_style_transfer(self):
        result = await _gateway("local").process(_style("anime"))
        assert result.processed_image == b"source-image"
        assert result.confidence == 0.8
        assert result.model_id == "local-style-processor"
        assert result.params["style"] == "anime"
        assert result.duration >= 0

    async def test_mood_enhancement(self):
        result = await _gateway("local").process(_mood("calm", color_tone="blue"))
        assert result.confidence == 0.7
        assert result.model_id == "local-mood-enhancement"
        assert result.params["mood"] == "calm"
        assert result.params["color_tone"] == "blue"

    def test_process_sync(self):
        result = _gateway("local").process_sync(_style("sketch"))
        assert result.processed_image == b"source-image"

    async def test_confidence_is_clamped(self, monkeypatch):
        gateway = _gateway("local")

        async def overconfident(request, model_id):
            return ProviderOutput(image=b"x", confidence=1.7)

        monkeypatch.setattr(gateway.provider, "process", overconfident)
        result = await gateway.process(_style())
        assert result.confidence == 1.0


class TestStabilityProvider:
    """Stability AI request and response handling."""

    async def test_success(self, monkeypatch):
        encoded = base64.b64encode(RESULT_IMAGE).decode()
        transport = FakeTransport(_json(200, {"artifacts": [{"base64": encoded, "finishReason": "SUCCESS"}]}))
        result = await _gateway("stability", monkeypatch, transport).process(_style("oil-painting"))

        assert result.processed_image == RESULT_IMAGE
        assert result.confidence == 0.9
        assert result.model_id == SDXL_ENGINE
        assert result.params["cfg_scale"] == 7
        assert result.params["steps"] == 50

        method, url, kwargs = transport.calls[0]
        assert method == "POST"
        assert url == f"https://api.stability.ai/v1/generation/{SDXL_ENGINE}/image-to-image"
        assert kwargs["headers"]["Authorization"] == "Bearer test-key"
        assert isinstance(kwargs["data"], aiohttp.FormData)

    async def test_mood_uses_lighter_settings(self, monkeypatch):
        encoded = base64.b64encode(RESULT_IMAGE).decode()
        transport = FakeTransport(_json(200, {"artifacts": [{"base64": encoded, "finishReason": "SUCCESS"}]}))
        result = await _gateway("stability", monkeypatch, transport).process(_mood("dramatic"))
        assert result.params["cfg_scale"] == 5
        assert result.params["steps"] == 30

    async def test_base_url_override(self, monkeypatch):
        encoded = base64.b64encode(RESULT_IMAGE).decode()
        transport = FakeTransport(_json(200, {"artifacts": [{"base64": encoded}]}))
        gateway = _gateway("stability", monkeypatch, transport, base_url="http://proxy.local/v1/")
        await gateway.process(_style())
        assert transport.calls[0][1].startswith("http://proxy.local/v1/generation/")

    async def test_http_error(self, monkeypatch):
        transport = FakeTransport(_json(500, {"message": "engine overloaded"}))
        with pytest.raises(ProviderFailure, match="engine overloaded"):
            await _gateway("stability", monkeypatch, transport).process(_style())

    async def test_auth_error(self, monkeypatch):
        transport = FakeTransport(_json(401, {"message": "bad key"}))
        with pytest.raises(ProviderFailure, match="API key"):
            await _gateway("stability", monkeypatch, transport).process(_style())

    async def test_filtered_artifact(self, monkeypatch):
        transport = FakeTransport(_json(200, {"artifacts": [{"base64": "", "finishReason": "CONTENT_FILTERED"}]}))
        with pytest.raises(ProviderFailure, match="CONTENT_FILTERED"):
            await _gateway("stability", monkeypatch, transport).process(_style())

    async def test_non_json_response(self, monkeypatch):
        transport = FakeTransport(HttpResponse(200, "text/html", b"<html>gateway</html>"))
        with pytest.raises(ProviderFailure):
            await _gateway("stability", monkeypatch, transport).process(_style())


class TestReplicateProvider:
    """Replicate predictions and polling."""

    async def test_polls_until_succeeded(self, monkeypatch):
        data_uri = "data:image/png;base64," + base64.b64encode(RESULT_IMAGE).decode()
        transport = FakeTransport(
            _json(201, {"id": "p1", "status": "starting", "urls": {"get": "https://api.replicate.com/v1/predictions/p1"}}),
            _json(200, {"id": "p1", "status": "processing", "urls": {"get": "https://api.replicate.com/v1/predictions/p1"}}),
            _json(200, {"id": "p1", "status": "succeeded", "output": [data_uri]}),
        )
        gateway = _gateway("replicate", monkeypatch, transport)
        monkeypatch.setattr(gateway.provider, "poll_interval", 0)

        result = await gateway.process(_style("anime"))
        assert result.processed_image == RESULT_IMAGE
        assert result.confidence == 0.85
        assert result.params["prediction_id"] == "p1"

        assert [c[0] for c in transport.calls] == ["POST", "GET", "GET"]
        body = transport.calls[0][2]["json"]
        assert body["version"] == "39ed52f2a78e934b3ba6e2a89f5b1c712de7dfea535525255b1aa35c5565e08b"
        assert body["input"]["prompt"].startswith("anime style")
        assert transport.calls[0][2]["headers"]["Authorization"] == "Token test-key"

    async def test_failed_prediction(self, monkeypatch):
        transport = FakeTransport(_json(201, {"id": "p1", "status": "failed", "error": "NSFW"}))
        with pytest.raises(ProviderFailure, match="NSFW"):
            await _gateway("replicate", monkeypatch, transport).process(_mood("romantic"))


class TestOpenAIProvider:
    """OpenAI image edits."""

    async def test_success(self, monkeypatch):
        encoded = base64.b64encode(RESULT_IMAGE).decode()
        transport = FakeTransport(_json(200, {"data": [{"b64_json": encoded}]}))
        result = await _gateway("openai", monkeypatch, transport).process(_style("cyberpunk"))
        assert result.processed_image == RESULT_IMAGE
        assert result.confidence == 0.9
        assert transport.calls[0][1] == "https://api.openai.com/v1/images/edits"

    async def test_error_message(self, monkeypatch):
        transport = FakeTransport(_json(400, {"error": {"message": "image too large"}}))
        with pytest.raises(ProviderFailure, match="image too large"):
            await _gateway("openai", monkeypatch, transport).process(_style())


class TestHuggingFaceProvider:
    """Hugging Face inference API."""

    async def test_raw_image_response(self, monkeypatch):
        transport = FakeTransport(HttpResponse(200, "image/png", RESULT_IMAGE))
        result = await _gateway("huggingface", monkeypatch, transport).process(_style("vintage"))
        assert result.processed_image == RESULT_IMAGE
        assert result.confidence == 0.85
        assert transport.calls[0][1].endswith("/models/runwayml/stable-diffusion-v1-5")

    async def test_json_error(self, monkeypatch):
        transport = FakeTransport(_json(503, {"error": "Model is loading"}))
        with pytest.raises(ProviderFailure, match="Model is loading"):
            await _gateway("huggingface", monkeypatch, transport).process(_style())


class TestFailures:
    """Transport failures and deadlines."""

    async def test_timeout(self, monkeypatch):
        gateway = _gateway("stability")

        async def slow(method, url, **kwargs):
            await asyncio.sleep(5)

        monkeypatch.setattr(gateway.provider, "_send", slow)
        with pytest.raises(ProviderTimeout) as exc:
            await gateway.process(_style(), timeout=0.05)
        assert isinstance(exc.value, ProviderFailure)
        assert exc.value.provider == "stability"

    def test_timeout_from_config_in_sync_call(self, monkeypatch):
        gateway = _gateway("openai", timeout=0.05)

        async def slow(method, url, **kwargs):
            await asyncio.sleep(5)

        monkeypatch.setattr(gateway.provider, "_send", slow)
        with pytest.raises(ProviderTimeout):
            gateway.process_sync(_style())

    async def test_connection_error(self, monkeypatch):
        error = aiohttp.ClientConnectionError("connection refused")
        transport = FakeTransport(error)
        with pytest.raises(ProviderFailure) as exc:
            await _gateway("openai", monkeypatch, transport).process(_style())
        assert exc.value.__cause__ is error
        assert not isinstance(exc.value, ProviderTimeout)
