"""
Tests for the filter engine.
"""

from dataclasses import replace
from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from mediavault_filters.core.data_types import ImageData
from mediavault_filters.core.errors import (
    DecodeFailure,
    InvalidInput,
    UnknownPreset,
    UnsupportedMediaType,
)
from mediavault_filters.core.models import Effect, FilterCategory, FilterConfig, FilterPreset
from mediavault_filters.filters.engine import FilterEngine
from mediavault_filters.filters.presets import InMemoryPresetStore, PresetResolver, PresetTable


class RecordingSink:
    def __init__(self):
        self.events = []

    def submit(self, media_id, user_id, filter_id, override=None):
        self.events.append((media_id, user_id, filter_id, override))
        return True


class FailingSink:
    def submit(self, media_id, user_id, filter_id, override=None):
        raise RuntimeError("queue exploded")


def _neutral_engine(**kwargs):
    neutral = FilterPreset(
        id="neutral",
        name="Neutral",
        category=FilterCategory.COLOR,
        type="custom",
        config=FilterConfig(),
        is_custom=True,
        owner="u1",
    )
    return FilterEngine(PresetResolver(PresetTable(), InMemoryPresetStore([neutral])), **kwargs)


def _decode(data: bytes) -> Image.Image:
    image = Image.open(BytesIO(data))
    image.load()
    return image


class TestFormats:
    """Output format selection."""

    def test_png_stays_png(self, png_bytes):
        result = FilterEngine().apply(png_bytes, "vintage")
        assert result.format == "png"
        assert result.mime_type == "image/png"
        assert _decode(result.data).format == "PNG"

    def test_jpeg_stays_jpeg(self, jpeg_bytes):
        result = FilterEngine().apply(jpeg_bytes, "noir")
        assert result.format == "jpeg"
        assert _decode(result.data).format == "JPEG"

    def test_unencodable_format_falls_back_to_jpeg(self, make_image):
        gif = make_image(fmt="GIF")
        result = FilterEngine().apply(gif, "happy")
        assert result.format == "jpeg"
        assert _decode(result.data).format == "JPEG"

    def test_png_alpha_survives(self, make_image):
        pixels = np.zeros((4, 4, 4), dtype=np.uint8)
        pixels[:, :] = (10, 20, 30, 128)
        result = _neutral_engine().apply(make_image(pixels), "neutral")
        assert _decode(result.data).mode == "RGBA"

    def test_neutral_preset_round_trips_png(self, make_image):
        rng = np.random.default_rng(3)
        pixels = rng.integers(0, 256, size=(9, 7, 3), dtype=np.uint8)
        result = _neutral_engine().apply(make_image(pixels), "neutral")
        np.testing.assert_array_equal(np.asarray(_decode(result.data).convert("RGB")), pixels)


class TestApply:
    """Preset resolution, merging and failure modes."""

    def test_dramatic_with_override(self, png_bytes):
        result = FilterEngine().apply(png_bytes, "dramatic", FilterConfig(contrast=1.2))
        assert result.preset_id == "dramatic"
        assert result.config.brightness == 0.9
        assert result.config.contrast == 1.2
        assert result.config.saturation == 0.8
        assert result.config.effects[0] == Effect("vignette", {"intensity": 0.6, "radius": 0.7})

    def test_filter_changes_pixels(self, png_bytes):
        result = FilterEngine().apply(png_bytes, "noir")
        before = ImageData.from_bytes(png_bytes).to_numpy(np.uint8)
        after = ImageData.from_bytes(result.data).to_numpy(np.uint8)
        assert not np.array_equal(before, after)

    def test_unknown_preset(self, png_bytes):
        with pytest.raises(UnknownPreset) as exc:
            FilterEngine().apply(png_bytes, "pointillism")
        assert exc.value.preset_id == "pointillism"

    def test_non_image_media_type(self, png_bytes):
        with pytest.raises(UnsupportedMediaType):
            FilterEngine().apply(png_bytes, "noir", mime_type="video/mp4")

    def test_image_media_type_accepted(self, png_bytes):
        assert FilterEngine().apply(png_bytes, "noir", mime_type="image/png").data

    def test_garbage_bytes(self):
        with pytest.raises(DecodeFailure):
            FilterEngine().apply(b"definitely not an image", "noir")

    def test_empty_bytes(self):
        with pytest.raises(DecodeFailure):
            FilterEngine().apply(b"", "noir")

    def test_oversized_image_is_a_decode_failure(self, png_bytes, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
        with pytest.raises(DecodeFailure):
            FilterEngine().apply(png_bytes, "noir")

    def test_out_of_domain_override(self, png_bytes):
        with pytest.raises(InvalidInput):
            FilterEngine().apply(png_bytes, "noir", FilterConfig(brightness=3.0))

    def test_custom_preset_config_out_of_domain(self):
        with pytest.raises(InvalidInput, match="brightness"):
            FilterPreset(
                id="bad",
                name="Bad",
                category=FilterCategory.COLOR,
                type="custom",
                config=FilterConfig(brightness=5.0, sepia=3.0),
                is_custom=True,
                owner="u1",
            )

    def test_effective_config_without_override_is_in_domain(self):
        engine = FilterEngine()
        config = engine.effective_config("dramatic")
        assert config == engine.resolve_preset("dramatic").config
        with pytest.raises(InvalidInput, match="sepia"):
            replace(config, sepia=3.0)

    def test_effective_config_without_decoding(self):
        config = FilterEngine().effective_config("calm", FilterConfig(saturation=1.0))
        assert config.saturation == 1.0
        assert config.brightness == 1.05


class TestUsageEvents:
    """Usage events handed to the recorder."""

    def test_event_emitted_on_success(self, png_bytes):
        sink = RecordingSink()
        override = FilterConfig(contrast=1.2)
        FilterEngine(recorder=sink).apply(png_bytes, "dramatic", override, media_id="m1", user_id="u1")
        assert sink.events == [("m1", "u1", "dramatic", override)]

    def test_no_event_without_ids(self, png_bytes):
        sink = RecordingSink()
        FilterEngine(recorder=sink).apply(png_bytes, "dramatic")
        assert sink.events == []

    def test_no_event_on_failure(self):
        sink = RecordingSink()
        with pytest.raises(DecodeFailure):
            FilterEngine(recorder=sink).apply(b"junk", "dramatic", media_id="m1", user_id="u1")
        assert sink.events == []

    def test_recorder_errors_do_not_fail_apply(self, png_bytes):
        result = FilterEngine(recorder=FailingSink()).apply(png_bytes, "noir", media_id="m1", user_id="u1")
        assert result.data
