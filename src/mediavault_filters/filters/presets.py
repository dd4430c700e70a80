"""
Presets - Built-in filter presets and preset lookup.

This module manages:
- The built-in preset table (immutable seed data)
- PresetTable: read-only lookup over built-in presets
- PresetStore: protocol for custom presets owned by users
- InMemoryPresetStore: simple PresetStore for tests and local use

The engine checks the built-in table before the custom preset store.
"""

from __future__ import annotations

import threading
from types import MappingProxyType
from typing import Iterable, Mapping, Protocol

from mediavault_filters.core.errors import InvalidInput
from mediavault_filters.core.models import (
    ArtisticStyle,
    Effect,
    FilterCategory,
    FilterConfig,
    FilterPreset,
    MoodType,
)


# ============================================================================
# Built-in Presets
# ============================================================================

def _preset(
    type_: ArtisticStyle | MoodType,
    name: str,
    description: str,
    effects: list[tuple[str, dict]],
    **scalars: float,
) -> FilterPreset:
    category = FilterCategory.ARTISTIC if isinstance(type_, ArtisticStyle) else FilterCategory.MOOD
    return FilterPreset(
        id=type_.value,
        name=name,
        category=category,
        type=type_.value,
        description=description,
        config=FilterConfig(
            effects=tuple(Effect(n, p) for n, p in effects),
            **scalars,
        ),
    )


BUILTIN_PRESETS: tuple[FilterPreset, ...] = (
    # -------------------------------------------------------------------------
    # Artistic
    # -------------------------------------------------------------------------
    _preset(
        ArtisticStyle.WATERCOLOR, "Watercolor",
        "Soft, flowing watercolor painting effect with gentle transitions",
        [("edge_preserve", {"strength": 0.3}),
         ("texture_overlay", {"texture": "watercolor", "opacity": 0.4})],
        brightness=1.1, contrast=0.9, saturation=0.8, blur=0.5,
    ),
    _preset(
        ArtisticStyle.OIL_PAINTING, "Oil Painting",
        "Rich, textured oil painting effect with visible brush strokes",
        [("brush_strokes", {"size": 3, "strength": 0.7}),
         ("impasto", {"depth": 0.5})],
        brightness=0.95, contrast=1.2, saturation=1.3,
    ),
    _preset(
        ArtisticStyle.CYBERPUNK, "Cyberpunk",
        "Futuristic cyberpunk aesthetic with neon accents and high contrast",
        [("neon_glow", {"color": "#00ff41", "intensity": 0.8}),
         ("chromatic_aberration", {"strength": 0.3}),
         ("scanlines", {"density": 0.2, "opacity": 0.1})],
        contrast=1.4, saturation=1.5, hue=30,
    ),
    _preset(
        ArtisticStyle.ANIME, "Anime Style",
        "Clean, vibrant anime-style illustration with enhanced colors",
        [("cell_shading", {"levels": 4, "smoothing": 0.2}),
         ("edge_enhance", {"strength": 0.8})],
        brightness=1.05, contrast=1.3, saturation=1.4,
    ),
    _preset(
        ArtisticStyle.SKETCH, "Pencil Sketch",
        "Hand-drawn pencil sketch effect with fine line details",
        [("edge_detection", {"threshold": 0.1}),
         ("pencil_texture", {"grain": 0.3})],
        brightness=1.2, contrast=1.1, grayscale=0.8,
    ),
    _preset(
        ArtisticStyle.VINTAGE, "Vintage",
        "Classic vintage photography with aged appearance",
        [("vignette", {"intensity": 0.4}),
         ("film_grain", {"amount": 0.3})],
        brightness=0.9, contrast=0.8, sepia=0.6,
    ),
    _preset(
        ArtisticStyle.NOIR, "Film Noir",
        "Classic black and white film noir with dramatic shadows",
        [("vignette", {"intensity": 0.7}),
         ("high_contrast", {"strength": 0.8})],
        brightness=0.85, contrast=1.6, grayscale=1.0,
    ),
    # -------------------------------------------------------------------------
    # Mood
    # -------------------------------------------------------------------------
    _preset(
        MoodType.HAPPY, "Happy Vibes",
        "Bright and cheerful mood with warm, uplifting tones",
        [("warm_tint", {"intensity": 0.3}),
         ("highlight_boost", {"amount": 0.2})],
        brightness=1.15, contrast=1.1, saturation=1.2, hue=10,
    ),
    _preset(
        MoodType.DRAMATIC, "Dramatic Scene",
        "High contrast dramatic effect with intense shadows",
        [("vignette", {"intensity": 0.6, "radius": 0.7}),
         ("shadow_lift", {"amount": -0.2})],
        brightness=0.9, contrast=1.5, saturation=0.8,
    ),
    _preset(
        MoodType.COZY, "Cozy Comfort",
        "Warm, comfortable atmosphere perfect for intimate moments",
        [("warm_filter", {"temperature": 3200}),
         ("soft_glow", {"radius": 2, "intensity": 0.3})],
        brightness=1.05, contrast=0.95, saturation=1.1, hue=15,
    ),
    _preset(
        MoodType.ENERGETIC, "High Energy",
        "Dynamic and vibrant filter for action and movement",
        [("vibrance", {"amount": 0.4}),
         ("clarity", {"strength": 0.3})],
        brightness=1.1, contrast=1.3, saturation=1.4,
    ),
    _preset(
        MoodType.CALM, "Peaceful Calm",
        "Serene and tranquil atmosphere with soft tones",
        [("soft_focus", {"radius": 1, "amount": 0.2}),
         ("cool_tone", {"intensity": 0.2})],
        brightness=1.05, contrast=0.9, saturation=0.9,
    ),
    _preset(
        MoodType.MYSTERIOUS, "Mysterious Shadow",
        "Dark and enigmatic atmosphere with deep shadows",
        [("dark_corners", {"intensity": 0.5}),
         ("desaturate_highlights", {"amount": 0.3})],
        brightness=0.8, contrast=1.4, saturation=0.7,
    ),
    _preset(
        MoodType.ROMANTIC, "Romantic Glow",
        "Soft, dreamy lighting perfect for romantic scenes",
        [("soft_light", {"intensity": 0.4}),
         ("warm_highlights", {"amount": 0.3}),
         ("dreamy_glow", {"radius": 3, "opacity": 0.2})],
        brightness=1.1, contrast=0.9, saturation=1.15,
    ),
)


class PresetTable:
    """
    Read-only lookup over a fixed set of presets.

    Passed to the engine and suggestion engine at construction; never
    mutated after creation.
    """

    def __init__(self, presets: Iterable[FilterPreset] = BUILTIN_PRESETS):
        table: dict[str, FilterPreset] = {}
        for preset in presets:
            if preset.is_custom:
                raise InvalidInput(f"Preset table only holds built-in presets, got custom '{preset.id}'")
            if preset.id in table:
                raise InvalidInput(f"Duplicate preset id: {preset.id}")
            table[preset.id] = preset
        self._presets: Mapping[str, FilterPreset] = MappingProxyType(table)

    def get(self, preset_id: str) -> FilterPreset | None:
        return self._presets.get(preset_id)

    def find_by_type(self, type_: str, category: FilterCategory) -> FilterPreset | None:
        """First preset with the given type and category."""
        for preset in self._presets.values():
            if preset.type == type_ and preset.category is category:
                return preset
        return None

    def list(self, category: FilterCategory | None = None) -> list[FilterPreset]:
        return [p for p in self._presets.values() if category is None or p.category is category]

    def __contains__(self, preset_id: str) -> bool:
        return preset_id in self._presets

    def __len__(self) -> int:
        return len(self._presets)


# ============================================================================
# Custom preset storage
# ============================================================================

class PresetStore(Protocol):
    """Storage for user-owned custom presets."""

    def get_preset(self, preset_id: str) -> FilterPreset | None: ...

    def find_by_type(self, type_: str, category: FilterCategory) -> FilterPreset | None: ...

    def list_presets(self, category: FilterCategory | None = None) -> list[FilterPreset]: ...


class InMemoryPresetStore:
    """Thread-safe dict-backed PresetStore."""

    def __init__(self, presets: Iterable[FilterPreset] = ()):
        self._lock = threading.Lock()
        self._presets: dict[str, FilterPreset] = {}
        for preset in presets:
            self.add(preset)

    def add(self, preset: FilterPreset) -> FilterPreset:
        if not preset.is_custom:
            raise InvalidInput(f"Preset store only holds custom presets, got built-in '{preset.id}'")
        with self._lock:
            self._presets[preset.id] = preset
        return preset

    def get_preset(self, preset_id: str) -> FilterPreset | None:
        with self._lock:
            return self._presets.get(preset_id)

    def find_by_type(self, type_: str, category: FilterCategory) -> FilterPreset | None:
        with self._lock:
            for preset in self._presets.values():
                if preset.type == type_ and preset.category is category:
                    return preset
        return None

    def list_presets(self, category: FilterCategory | None = None) -> list[FilterPreset]:
        with self._lock:
            return [p for p in self._presets.values() if category is None or p.category is category]


class PresetResolver:
    """Built-in table first, then the custom store."""

    def __init__(self, table: PresetTable | None = None, store: PresetStore | None = None):
        self.table = table if table is not None else PresetTable()
        self.store = store

    def get(self, preset_id: str) -> FilterPreset | None:
        preset = self.table.get(preset_id)
        if preset is None and self.store is not None:
            preset = self.store.get_preset(preset_id)
        return preset

    def find_by_type(self, type_: str, category: FilterCategory) -> FilterPreset | None:
        preset = self.table.find_by_type(type_, category)
        if preset is None and self.store is not None:
            preset = self.store.find_by_type(type_, category)
        return preset

    def list(self, category: FilterCategory | None = None) -> list[FilterPreset]:
        presets = self.table.list(category)
        if self.store is not None:
            presets.extend(self.store.list_presets(category))
        return presets
