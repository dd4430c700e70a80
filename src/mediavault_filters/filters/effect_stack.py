"""
Effect Stack - Ordered, named post-processing effects.

This module defines EffectSpec and EffectRegistry for describing effects and
their handlers, along with the built-in effect set. Effects run after the
tone adjustments, in the order the config lists them; each one consumes the
output of the previous one.

Effect names without a registered handler pass the image through unchanged,
so a config that references a future effect still renders.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping

import numpy as np

from mediavault_filters.core.data_types import ImageData
from mediavault_filters.core.models import Effect, ParamValue

logger = logging.getLogger(__name__)


EffectHandler = Callable[[ImageData, Mapping[str, ParamValue]], ImageData]


@dataclass
class EffectSpec:
    """
    Specification for an effect.

    Attributes:
        name: Effect name as it appears in FilterConfig.effects
        handler: Pure function (image, params) -> image
        defaults: Default parameter values
        description: Short description
        implemented: False for declared effects that pass the image through
    """
    name: str
    handler: EffectHandler
    defaults: dict[str, ParamValue] = field(default_factory=dict)
    description: str = ""
    implemented: bool = True


class EffectRegistry:
    """
    Lookup table from effect name to handler.

    Instances are independent; use ``default_effect_registry()`` for the
    built-in set and register extra handlers on your own instance.
    """

    def __init__(self, specs: Iterable[EffectSpec] = ()):
        self._specs: dict[str, EffectSpec] = {}
        for spec in specs:
            self.register(spec)

    def register(self, spec: EffectSpec) -> EffectSpec:
        """Register (or replace) an effect specification."""
        self._specs[spec.name] = spec
        return spec

    def get(self, name: str) -> EffectSpec | None:
        return self._specs.get(name)

    def names(self) -> list[str]:
        return sorted(self._specs)

    def __contains__(self, name: str) -> bool:
        return name in self._specs


class EffectStack:
    """Applies an ordered list of effects through an EffectRegistry."""

    def __init__(self, registry: EffectRegistry | None = None):
        self.registry = registry or default_effect_registry()

    def apply(self, image: ImageData, effects: Iterable[Effect] | None) -> ImageData:
        """
        Run effects in list order.

        Unregistered effects are identity. Handler exceptions propagate.
        """
        result = image
        for effect in effects or ():
            spec = self.registry.get(effect.name)
            if spec is None:
                logger.debug("No handler for effect '%s'; passing through", effect.name)
                continue
            params = {**spec.defaults, **effect.params}
            result = spec.handler(result, params)
        return result


# =============================================================================
# EFFECT HANDLERS
# =============================================================================

def _param_float(params: Mapping[str, ParamValue], name: str, default: float) -> float:
    value = params.get(name, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return float(value)


def apply_vignette(image: ImageData, params: Mapping[str, ParamValue]) -> ImageData:
    """
    Darken RGB by distance from the image center.

    factor = clamp(1 - (distance / max_radius) * intensity, 0, 1), where
    max_radius is the center-to-corner distance. Alpha is kept.
    """
    intensity = _param_float(params, "intensity", 0.6)
    h, w = image.height, image.width

    cx, cy = w / 2.0, h / 2.0
    max_radius = float(np.hypot(cx, cy)) or 1.0

    ys, xs = np.mgrid[0:h, 0:w].astype(np.float32)
    distance = np.hypot(xs - cx, ys - cy)
    factor = np.clip(1.0 - (distance / max_radius) * intensity, 0.0, 1.0).astype(np.float32)

    pixels = image.pixels.copy()
    pixels[:, :, :3] *= factor[:, :, np.newaxis]
    return image.with_pixels(pixels)


def passthrough(image: ImageData, params: Mapping[str, ParamValue]) -> ImageData:
    """Declared effect with no defined algorithm."""
    return image


# =============================================================================
# BUILT-IN EFFECTS
# =============================================================================

def builtin_effects() -> list[EffectSpec]:
    """Specifications for every built-in effect."""
    return [
        EffectSpec(
            name="vignette",
            handler=apply_vignette,
            defaults={"intensity": 0.6},
            description="Radial darkening toward the corners",
        ),
        EffectSpec(
            name="edge_preserve",
            handler=passthrough,
            defaults={"strength": 0.3},
            description="Edge-preserving smoothing",
            implemented=False,
        ),
        EffectSpec(
            name="brush_strokes",
            handler=passthrough,
            defaults={"size": 3, "strength": 0.7},
            description="Painterly brush strokes",
            implemented=False,
        ),
        EffectSpec(
            name="neon_glow",
            handler=passthrough,
            defaults={"color": "#00ff41", "intensity": 0.8},
            description="Neon glow around bright edges",
            implemented=False,
        ),
        EffectSpec(
            name="warm_filter",
            handler=passthrough,
            defaults={"temperature": 3200},
            description="Warm color temperature",
            implemented=False,
        ),
        EffectSpec(
            name="cell_shading",
            handler=passthrough,
            defaults={"levels": 4, "smoothing": 0.2},
            description="Cel-shaded flat color bands",
            implemented=False,
        ),
    ]


def default_effect_registry() -> EffectRegistry:
    """A fresh registry holding the built-in effects."""
    return EffectRegistry(builtin_effects())
