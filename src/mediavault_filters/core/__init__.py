"""
Core module - Value types, image container, errors, settings and tasks.

This module provides the fundamental building blocks for the filter pipeline:
- Models: FilterConfig, FilterPreset, usage and suggestion records
- Data Types: ImageData and its metadata
- Errors: FilterError hierarchy
- Media: MediaStore protocol and an in-memory store
- Settings: dataclass settings and loader
- Tasks: bounded background queue
"""

from mediavault_filters.core.data_types import (
    ImageData,
    ImageMetadata,
)

from mediavault_filters.core.media import (
    InMemoryMediaStore,
    MediaFile,
    MediaStore,
)

from mediavault_filters.core.errors import (
    DecodeFailure,
    EncodeFailure,
    FilterError,
    InvalidInput,
    NotFound,
    ProviderFailure,
    ProviderTimeout,
    StorageFailure,
    UnknownPreset,
    UnsupportedMediaType,
    UnsupportedOperation,
)

from mediavault_filters.core.models import (
    ArtisticStyle,
    ColorPaletteEntry,
    Effect,
    FilterApplication,
    FilterCategory,
    FilterConfig,
    FilterPreset,
    MoodType,
    StyleProfile,
    Suggestion,
    SuggestionReason,
    UserFilterPreference,
    merge_configs,
)

from mediavault_filters.core.settings import (
    FilterSettings,
    ProviderConfig,
    Settings,
    SuggestionSettings,
    UsageSettings,
    configure_logging,
    load_settings,
)

from mediavault_filters.core.tasks import BackgroundQueue


__all__ = [
    # data_types.py
    "ImageData",
    "ImageMetadata",
    # media.py
    "InMemoryMediaStore",
    "MediaFile",
    "MediaStore",
    # errors.py
    "DecodeFailure",
    "EncodeFailure",
    "FilterError",
    "InvalidInput",
    "NotFound",
    "ProviderFailure",
    "ProviderTimeout",
    "StorageFailure",
    "UnknownPreset",
    "UnsupportedMediaType",
    "UnsupportedOperation",
    # models.py
    "ArtisticStyle",
    "ColorPaletteEntry",
    "Effect",
    "FilterApplication",
    "FilterCategory",
    "FilterConfig",
    "FilterPreset",
    "MoodType",
    "StyleProfile",
    "Suggestion",
    "SuggestionReason",
    "UserFilterPreference",
    "merge_configs",
    # settings.py
    "FilterSettings",
    "ProviderConfig",
    "Settings",
    "SuggestionSettings",
    "UsageSettings",
    "configure_logging",
    "load_settings",
    # tasks.py
    "BackgroundQueue",
]
