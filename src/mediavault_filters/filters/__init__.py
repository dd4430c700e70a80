"""
Filters module - Tone adjustments, effects, presets and the filter engine.

This package provides the filter transformation pipeline:
- PixelTransformer: scalar tone/color stages
- EffectStack / EffectRegistry: ordered named effects
- PresetTable / PresetStore: built-in and custom presets
- FilterEngine: decode, transform, encode
"""

from mediavault_filters.filters.effect_stack import (
    EffectRegistry,
    EffectSpec,
    EffectStack,
    default_effect_registry,
)
from mediavault_filters.filters.engine import FilterEngine, FilterResult
from mediavault_filters.filters.pixel_transformer import PixelTransformer
from mediavault_filters.filters.presets import (
    BUILTIN_PRESETS,
    InMemoryPresetStore,
    PresetResolver,
    PresetStore,
    PresetTable,
)

__all__ = [
    "PixelTransformer",
    "EffectRegistry",
    "EffectSpec",
    "EffectStack",
    "default_effect_registry",
    "FilterEngine",
    "FilterResult",
    "BUILTIN_PRESETS",
    "InMemoryPresetStore",
    "PresetResolver",
    "PresetStore",
    "PresetTable",
]
