"""
Media Filter Service - Public entry point for the filter pipeline.

Wires the preset table, FilterEngine, ProviderGateway, usage ledger and
SuggestionEngine from one Settings object. All methods are synchronous.

Usage:
    service = MediaFilterService(load_settings(), media_store=media)
    result = service.apply_filter(media_id, user_id, "dramatic", {"contrast": 1.2})
    suggestions = service.get_suggestions(user_id, media_id)
    service.close()
"""

from __future__ import annotations

from typing import Any, Mapping

from mediavault_filters.core.errors import NotFound, UnsupportedMediaType
from mediavault_filters.core.media import InMemoryMediaStore, MediaFile, MediaStore
from mediavault_filters.core.models import (
    FilterCategory,
    FilterConfig,
    FilterPreset,
    StyleProfile,
    Suggestion,
)
from mediavault_filters.core.settings import Settings
from mediavault_filters.filters.engine import FilterEngine, FilterResult
from mediavault_filters.filters.presets import PresetResolver, PresetStore, PresetTable
from mediavault_filters.providers.base import AIProcessingResult, AIRequest, RequestKind
from mediavault_filters.providers.gateway import ProviderGateway
from mediavault_filters.usage.analytics import FilterAnalytics, FilterHistoryPage, UsageAnalytics
from mediavault_filters.usage.ledger import UsageLedger, UsageRecorder
from mediavault_filters.usage.store import InMemoryUsageStore, SQLiteUsageStore, UsageStore
from mediavault_filters.usage.suggestions import SuggestionEngine


class MediaFilterService:
    """Facade over filters, AI providers, usage and suggestions."""

    def __init__(
        self,
        settings: Settings | None = None,
        media_store: MediaStore | None = None,
        preset_store: PresetStore | None = None,
        usage_store: UsageStore | None = None,
        gateway: ProviderGateway | None = None,
    ):
        self.settings = settings or Settings()
        self.media_store = media_store if media_store is not None else InMemoryMediaStore()
        self.presets = PresetResolver(PresetTable(), preset_store)

        self._owns_store = usage_store is None
        if usage_store is None:
            if self.settings.usage.database_path:
                usage_store = SQLiteUsageStore(self.settings.usage.database_path)
            else:
                usage_store = InMemoryUsageStore()
        self.usage_store = usage_store

        self.ledger = UsageLedger(self.usage_store, self.settings.usage)
        self.recorder = UsageRecorder(self.ledger)
        self.engine = FilterEngine(self.presets, settings=self.settings.filters, recorder=self.recorder)
        self.gateway = gateway or ProviderGateway(self.settings.provider)
        self.suggestions = SuggestionEngine(
            self.usage_store,
            self.presets,
            self.settings.suggestions,
            media_store=self.media_store,
        )
        self.analytics = UsageAnalytics(self.usage_store, self.presets)

    # -------------------------------------------------------------------------
    # Filters
    # -------------------------------------------------------------------------

    def apply_filter(
        self,
        media_id: str,
        user_id: str,
        preset_id: str,
        override: FilterConfig | Mapping[str, Any] | None = None,
    ) -> FilterResult:
        """
        Apply a preset to a stored image.

        Raises:
            NotFound: Unknown media, or media owned by another user
            UnsupportedMediaType: Media is not an image
            UnknownPreset, InvalidInput, DecodeFailure, EncodeFailure
        """
        if override is not None and not isinstance(override, FilterConfig):
            override = FilterConfig.from_dict(override)

        media = self._image_media(media_id, user_id)
        return self.engine.apply(
            self.media_store.get_bytes(media.file_name),
            preset_id,
            override,
            mime_type=media.mime_type,
            media_id=media.id,
            user_id=user_id,
        )

    def list_presets(self, category: FilterCategory | None = None) -> list[FilterPreset]:
        return self.presets.list(category)

    # -------------------------------------------------------------------------
    # AI
    # -------------------------------------------------------------------------

    def apply_style_transfer(
        self,
        media_id: str,
        style: str,
        intensity: float = 0.8,
        user_id: str | None = None,
        **extra_params: Any,
    ) -> AIProcessingResult:
        """
        Restyle a stored image with the configured AI provider.

        Raises:
            NotFound, UnsupportedMediaType, InvalidInput
            UnsupportedOperation: Provider has no model for the style
            ProviderTimeout, ProviderFailure
        """
        return self._process(RequestKind.STYLE_TRANSFER, media_id, style, intensity, user_id, extra_params)

    def apply_mood_enhancement(
        self,
        media_id: str,
        mood: str,
        intensity: float = 0.8,
        color_tone: str | None = None,
        user_id: str | None = None,
        **extra_params: Any,
    ) -> AIProcessingResult:
        """Like apply_style_transfer, for moods. color_tone steers the palette."""
        if color_tone:
            extra_params["color_tone"] = color_tone
        return self._process(RequestKind.MOOD_ENHANCEMENT, media_id, mood, intensity, user_id, extra_params)

    def _process(
        self,
        kind: RequestKind,
        media_id: str,
        style_or_mood: str,
        intensity: float,
        user_id: str | None,
        extra_params: dict[str, Any],
    ) -> AIProcessingResult:
        media = self._image_media(media_id, user_id)
        request = AIRequest(
            kind=kind,
            source_image=self.media_store.get_bytes(media.file_name),
            style_or_mood=style_or_mood,
            intensity=intensity,
            extra_params=extra_params,
        )
        return self.gateway.process_sync(request)

    # -------------------------------------------------------------------------
    # Usage
    # -------------------------------------------------------------------------

    def get_suggestions(self, user_id: str, media_id: str) -> list[Suggestion]:
        return self.suggestions.suggest(user_id, media_id)

    def analyze_style(self, user_id: str) -> StyleProfile:
        return self.suggestions.analyze_style(user_id)

    def get_filter_analytics(self, user_id: str | None = None) -> FilterAnalytics:
        return self.analytics.get_filter_analytics(user_id)

    def get_filter_history(self, user_id: str, page: int = 1, limit: int = 20) -> FilterHistoryPage:
        return self.analytics.get_filter_history(user_id, page, limit)

    def close(self) -> None:
        """Drain pending usage events and close a store this service opened."""
        self.recorder.close()
        if self._owns_store and isinstance(self.usage_store, SQLiteUsageStore):
            self.usage_store.close()

    def __enter__(self) -> MediaFilterService:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _image_media(self, media_id: str, user_id: str | None) -> MediaFile:
        media = self.media_store.get_media(media_id)
        if user_id is not None and media.owner is not None and media.owner != user_id:
            raise NotFound(f"Media not found: {media_id}")
        if not media.is_image:
            raise UnsupportedMediaType(f"Filters can only be applied to images, got {media.mime_type}")
        return media
