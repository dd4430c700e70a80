"""
Filter Engine - Preset lookup, config merge, pixel pipeline and codec.

FilterEngine.apply is all-or-nothing: any failure raises and no partial
output is returned. On success a usage event is handed to the recorder,
which queues it without blocking.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Protocol

from mediavault_filters.core.data_types import ImageData
from mediavault_filters.core.errors import UnknownPreset, UnsupportedMediaType
from mediavault_filters.core.models import FilterConfig, FilterPreset, merge_configs
from mediavault_filters.core.settings import FilterSettings
from mediavault_filters.filters.effect_stack import EffectStack
from mediavault_filters.filters.pixel_transformer import PixelTransformer
from mediavault_filters.filters.presets import PresetResolver

logger = logging.getLogger(__name__)


class UsageSink(Protocol):
    """Receives usage events; must return immediately."""

    def submit(
        self,
        media_id: str,
        user_id: str,
        filter_id: str,
        override: FilterConfig | None = None,
    ) -> bool: ...


@dataclass(frozen=True)
class FilterResult:
    """Encoded output of a filter application."""
    data: bytes
    format: str  # lowercase, e.g. "jpeg", "png"
    preset_id: str
    config: FilterConfig

    @property
    def mime_type(self) -> str:
        return f"image/{self.format}"


class FilterEngine:
    """
    Applies presets to encoded images.

    Usage:
        engine = FilterEngine(PresetResolver(PresetTable(), custom_store))
        result = engine.apply(image_bytes, "dramatic", FilterConfig(contrast=1.2))
    """

    def __init__(
        self,
        presets: PresetResolver | None = None,
        transformer: PixelTransformer | None = None,
        effects: EffectStack | None = None,
        settings: FilterSettings | None = None,
        recorder: UsageSink | None = None,
    ):
        self.presets = presets or PresetResolver()
        self.transformer = transformer or PixelTransformer()
        self.effects = effects or EffectStack()
        self.settings = settings or FilterSettings()
        self.recorder = recorder

    def resolve_preset(self, preset_id: str) -> FilterPreset:
        """
        Look up a preset, built-in table first.

        Raises:
            UnknownPreset: If neither the table nor the store has it
        """
        preset = self.presets.get(preset_id)
        if preset is None:
            raise UnknownPreset(preset_id)
        return preset

    def effective_config(self, preset_id: str, override: FilterConfig | None = None) -> FilterConfig:
        """Preset config with the override merged over it."""
        return merge_configs(self.resolve_preset(preset_id).config, override)

    def render(self, image: ImageData, config: FilterConfig) -> ImageData:
        """Run PixelTransformer then EffectStack on a decoded image."""
        toned = self.transformer.transform(image, config)
        return self.effects.apply(toned, config.effects)

    def apply(
        self,
        image_bytes: bytes,
        preset_id: str,
        override: FilterConfig | None = None,
        *,
        mime_type: str | None = None,
        media_id: str | None = None,
        user_id: str | None = None,
    ) -> FilterResult:
        """
        Apply a preset (plus optional override) to encoded image bytes.

        Args:
            image_bytes: Encoded source image
            preset_id: Built-in or custom preset id
            override: Partial config merged over the preset
            mime_type: Media type of the source, if known; must be image/*
            media_id: Source media id, for usage recording
            user_id: Acting user, for usage recording

        Returns:
            FilterResult with encoded bytes and the output format

        Raises:
            UnsupportedMediaType: mime_type is not an image type
            UnknownPreset: preset_id not found
            InvalidInput: merged config out of domain
            DecodeFailure: image_bytes could not be decoded
            EncodeFailure: result could not be encoded
        """
        if mime_type is not None and not mime_type.lower().startswith("image/"):
            raise UnsupportedMediaType(f"Filters can only be applied to images, got {mime_type}")

        start = time.perf_counter()
        config = self.effective_config(preset_id, override)

        image = ImageData.from_bytes(image_bytes)
        rendered = self.render(image, config)

        fmt = self._output_format(image.metadata.source_format)
        data = rendered.to_bytes(fmt, quality=self.settings.jpeg_quality)

        logger.debug(
            "Applied preset %s to %dx%d %s image in %.3fs",
            preset_id,
            image.width,
            image.height,
            image.metadata.source_format,
            time.perf_counter() - start,
        )

        if self.recorder is not None and media_id and user_id:
            try:
                self.recorder.submit(media_id, user_id, preset_id, override)
            except Exception:
                logger.exception("Failed to dispatch usage event for preset %s", preset_id)

        return FilterResult(data=data, format=fmt.lower(), preset_id=preset_id, config=config)

    def _output_format(self, source_format: str | None) -> str:
        """Source format if encodable, otherwise the fallback."""
        encodable = {f.upper() for f in self.settings.encodable_formats}
        if source_format and source_format.upper() in encodable:
            return source_format.upper()
        return self.settings.fallback_format.upper()
