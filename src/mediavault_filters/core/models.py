"""
Models - Value types for filter parameters, presets, usage and suggestions.

This module defines the data that flows between components:
- FilterConfig / Effect: optional tone scalars plus an ordered effect list
- FilterPreset: named, reusable FilterConfig (built-in or user-owned)
- FilterApplication / UserFilterPreference: usage ledger records
- StyleProfile / Suggestion: derived, never authored directly

Every scalar on FilterConfig is either None (inherit) or a value inside its
domain. ``merge_configs`` implements the override rule used by the engine.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, TypeAlias
from uuid import uuid4

from mediavault_filters.core.errors import InvalidInput


ParamValue: TypeAlias = str | int | float | bool


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex


class FilterCategory(Enum):
    """Preset categories."""
    ARTISTIC = "artistic"
    MOOD = "mood"
    COLOR = "color"
    TECHNICAL = "technical"


class ArtisticStyle(Enum):
    """Preset types within the artistic category."""
    WATERCOLOR = "watercolor"
    OIL_PAINTING = "oil-painting"
    CYBERPUNK = "cyberpunk"
    ANIME = "anime"
    SKETCH = "sketch"
    VINTAGE = "vintage"
    NOIR = "noir"


class MoodType(Enum):
    """Preset types within the mood category."""
    HAPPY = "happy"
    DRAMATIC = "dramatic"
    COZY = "cozy"
    ENERGETIC = "energetic"
    CALM = "calm"
    MYSTERIOUS = "mysterious"
    ROMANTIC = "romantic"


class SuggestionReason(Enum):
    """Why a filter was suggested. Declaration order is tie-break priority."""
    FREQUENTLY_USED = "frequently_used"
    STYLE_MATCH = "style_match"
    MOOD_MATCH = "mood_match"
    TRENDING = "trending"
    CONTENT_SIMILARITY = "content_similarity"


# name -> (min, max, neutral); max None = unbounded
SCALAR_DOMAINS: dict[str, tuple[float, float | None, float]] = {
    "brightness": (0.0, 2.0, 1.0),
    "contrast": (0.0, 2.0, 1.0),
    "saturation": (0.0, 2.0, 1.0),
    "hue": (-180.0, 180.0, 0.0),
    "sepia": (0.0, 1.0, 0.0),
    "grayscale": (0.0, 1.0, 0.0),
    "blur": (0.0, None, 0.0),
    "opacity": (0.0, 1.0, 1.0),
    "invert": (0.0, 1.0, 0.0),
}

SCALAR_FIELDS: tuple[str, ...] = tuple(SCALAR_DOMAINS)


@dataclass(frozen=True)
class Effect:
    """A named, parameterized post-processing step."""
    name: str
    params: Mapping[str, ParamValue] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Effect:
        if not isinstance(data, Mapping):
            raise InvalidInput(f"Effect must be a mapping, got {type(data).__name__}")
        name = data.get("type", data.get("name"))
        if not isinstance(name, str) or not name:
            raise InvalidInput("Effect requires a non-empty 'type'")
        params = data.get("params") or {}
        if not isinstance(params, Mapping):
            raise InvalidInput(f"Effect '{name}' params must be a mapping")
        for key, value in params.items():
            if not isinstance(value, (str, int, float, bool)):
                raise InvalidInput(f"Effect '{name}' param '{key}' must be a scalar or string")
        return cls(name=name, params=dict(params))

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.name, "params": dict(self.params)}


@dataclass(frozen=True)
class FilterConfig:
    """
    Tone/color scalars and an ordered effect list.

    A field left as None is "unset": it inherits during a merge and its
    pixel stage is skipped. ``effects=None`` means "not specified", while an
    empty tuple explicitly means "no effects".
    Every set scalar is checked against its domain on construction, so an
    out-of-domain config cannot exist.
    """
    brightness: float | None = None
    contrast: float | None = None
    saturation: float | None = None
    hue: float | None = None
    sepia: float | None = None
    grayscale: float | None = None
    blur: float | None = None
    opacity: float | None = None
    invert: float | None = None
    effects: tuple[Effect, ...] | None = None

    def __post_init__(self) -> None:
        if self.effects is not None and not isinstance(self.effects, tuple):
            object.__setattr__(self, "effects", tuple(self.effects))
        self.validate()

    @classmethod
    def neutral(cls) -> FilterConfig:
        """Config with every scalar at its neutral value and no effects."""
        values = {name: domain[2] for name, domain in SCALAR_DOMAINS.items()}
        return cls(effects=(), **values)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> FilterConfig:
        """
        Build a config from a JSON-style mapping.

        Missing or null keys stay unset. Unknown keys raise InvalidInput.
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise InvalidInput(f"Filter config must be a mapping, got {type(data).__name__}")

        unknown = set(data) - set(SCALAR_FIELDS) - {"effects"}
        if unknown:
            raise InvalidInput(f"Unknown filter config field(s): {', '.join(sorted(unknown))}")

        values: dict[str, Any] = {}
        for name in SCALAR_FIELDS:
            value = data.get(name)
            if value is not None:
                values[name] = _coerce_scalar(name, value)

        effects = data.get("effects")
        if effects is not None:
            if not isinstance(effects, (list, tuple)):
                raise InvalidInput("'effects' must be a list")
            values["effects"] = tuple(Effect.from_dict(e) for e in effects)

        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Serialize set fields only."""
        data: dict[str, Any] = {
            name: getattr(self, name) for name in SCALAR_FIELDS if getattr(self, name) is not None
        }
        if self.effects is not None:
            data["effects"] = [e.to_dict() for e in self.effects]
        return data

    def is_set(self, name: str) -> bool:
        return getattr(self, name) is not None

    def set_fields(self) -> list[str]:
        """Names of all fields (scalars and effects) that carry a value."""
        return [f.name for f in fields(self) if getattr(self, f.name) is not None]

    def validate(self) -> None:
        """
        Check every set scalar against its domain.

        Raises:
            InvalidInput: naming the first offending field
        """
        for name, (lo, hi, _) in SCALAR_DOMAINS.items():
            value = getattr(self, name)
            if value is None:
                continue
            _coerce_scalar(name, value)
            if value < lo or (hi is not None and value > hi):
                upper = "inf" if hi is None else hi
                raise InvalidInput(f"'{name}' must be within [{lo}, {upper}], got {value}")


def _coerce_scalar(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f"'{name}' must be a number, got {value!r}")
    if math.isnan(value) or math.isinf(value):
        raise InvalidInput(f"'{name}' must be finite, got {value}")
    return float(value)


def merge_configs(base: FilterConfig, override: FilterConfig | None) -> FilterConfig:
    """
    Merge an override over a preset config.

    Each scalar set on the override replaces the base value; unset scalars
    keep the base value. The effects list is replaced wholesale whenever the
    override supplies one (even an empty one) and is never merged per-effect.
    """
    if override is None:
        return base

    changes: dict[str, Any] = {
        name: getattr(override, name)
        for name in SCALAR_FIELDS
        if getattr(override, name) is not None
    }
    if override.effects is not None:
        changes["effects"] = override.effects

    return replace(base, **changes)


@dataclass
class FilterPreset:
    """Named, reusable filter configuration."""
    id: str
    name: str
    category: FilterCategory
    type: str
    description: str = ""
    config: FilterConfig = field(default_factory=FilterConfig)
    is_custom: bool = False
    owner: str | None = None
    thumbnail: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if self.is_custom and not self.owner:
            raise InvalidInput(f"Custom preset '{self.name}' requires an owner")
        if not self.is_custom and self.owner:
            raise InvalidInput(f"Built-in preset '{self.name}' cannot have an owner")

    @property
    def artistic_style(self) -> ArtisticStyle | None:
        """The preset's type as an ArtisticStyle, if it is a valid artistic preset."""
        if self.category is not FilterCategory.ARTISTIC:
            return None
        try:
            return ArtisticStyle(self.type)
        except ValueError:
            return None

    @property
    def mood_type(self) -> MoodType | None:
        """The preset's type as a MoodType, if it is a valid mood preset."""
        if self.category is not FilterCategory.MOOD:
            return None
        try:
            return MoodType(self.type)
        except ValueError:
            return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "type": self.type,
            "description": self.description,
            "thumbnail": self.thumbnail,
            "config": self.config.to_dict(),
            "isCustom": self.is_custom,
            "createdBy": self.owner,
        }


@dataclass(frozen=True)
class FilterApplication:
    """Append-only record of one filter application."""
    media_id: str
    user_id: str
    filter_id: str
    override_config: FilterConfig | None = None
    applied_at: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_id)


@dataclass
class ColorPaletteEntry:
    """A dominant color in the user's preferred content."""
    color: str  # hex
    frequency: float  # 0.0 - 1.0
    saturation: float
    brightness: float


@dataclass
class StyleProfile:
    """Learned summary of a user's filter preferences."""
    preferred_styles: list[ArtisticStyle] = field(default_factory=list)
    preferred_moods: list[MoodType] = field(default_factory=list)
    preferred_colors: list[str] = field(default_factory=list)
    color_palette: list[ColorPaletteEntry] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.preferred_styles or self.preferred_moods or self.color_palette)

    def to_dict(self) -> dict[str, Any]:
        return {
            "preferredStyles": [s.value for s in self.preferred_styles],
            "preferredMoods": [m.value for m in self.preferred_moods],
            "preferredColors": list(self.preferred_colors),
            "colorPalette": [
                {
                    "color": c.color,
                    "frequency": c.frequency,
                    "saturation": c.saturation,
                    "brightness": c.brightness,
                }
                for c in self.color_palette
            ],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> StyleProfile:
        """Inverse of to_dict; unknown style or mood values are dropped."""
        if not data:
            return cls()
        styles = {s.value: s for s in ArtisticStyle}
        moods = {m.value: m for m in MoodType}
        return cls(
            preferred_styles=[styles[v] for v in data.get("preferredStyles", []) if v in styles],
            preferred_moods=[moods[v] for v in data.get("preferredMoods", []) if v in moods],
            preferred_colors=list(data.get("preferredColors", [])),
            color_palette=[ColorPaletteEntry(**c) for c in data.get("colorPalette", [])],
        )


@dataclass
class UserFilterPreference:
    """Per-user usage aggregate, updated incrementally."""
    user_id: str
    usage_count: dict[str, int] = field(default_factory=dict)
    recently_used: list[str] = field(default_factory=list)  # most recent first
    last_used: str | None = None
    style_profile: StyleProfile = field(default_factory=StyleProfile)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def frequently_used(self, limit: int = 3) -> list[str]:
        """Top filters by usage count; ties go to the more recently used."""
        recency = {fid: i for i, fid in enumerate(self.recently_used)}
        ranked = sorted(
            (fid for fid, count in self.usage_count.items() if count > 0),
            key=lambda fid: (-self.usage_count[fid], recency.get(fid, len(recency)), fid),
        )
        return ranked[:limit]


@dataclass(frozen=True)
class Suggestion:
    """A ranked filter recommendation. Computed on demand, never persisted."""
    filter_id: str
    confidence: float
    reason: SuggestionReason
    media_id: str
    user_id: str

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise InvalidInput(f"Suggestion confidence must be within [0, 1], got {self.confidence}")
