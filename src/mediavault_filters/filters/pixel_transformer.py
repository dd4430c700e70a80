"""
Pixel Transformer - Scalar tone and color adjustments.

Stages run in a fixed order on normalized RGBA pixels:

    brightness -> contrast -> saturation -> sepia -> grayscale -> opacity -> invert

Each stage runs only if its field is set on the config. Every channel is
clamped to [0, 1] after the last stage. ``hue`` and ``blur`` are part of
FilterConfig but have no pixel stage: they are accepted and ignored.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from mediavault_filters.core.data_types import ImageData
from mediavault_filters.core.models import FilterConfig

# Rec. 601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float32)

SEPIA_MATRIX = np.array(
    [
        [0.393, 0.769, 0.189],
        [0.349, 0.686, 0.168],
        [0.272, 0.534, 0.131],
    ],
    dtype=np.float32,
)


def luminance(rgb: NDArray[np.float32]) -> NDArray[np.float32]:
    """Per-pixel luminance of an (H, W, 3) array, shaped (H, W, 1)."""
    return (rgb @ LUMA_WEIGHTS)[..., np.newaxis]


class PixelTransformer:
    """
    Applies FilterConfig scalars to an image.

    Stateless: one instance can be shared across threads.
    """

    def transform(self, image: ImageData, config: FilterConfig) -> ImageData:
        """
        Apply tone adjustments and return a new image.

        The input image is not modified.
        """
        pixels = image.pixels.astype(np.float32, copy=True)
        rgb = pixels[:, :, :3]
        alpha = pixels[:, :, 3:4]

        if config.brightness is not None:
            rgb = rgb * np.float32(config.brightness)

        if config.contrast is not None:
            rgb = (rgb - 0.5) * np.float32(config.contrast) + 0.5

        if config.saturation is not None:
            lum = luminance(rgb)
            rgb = lum + (rgb - lum) * np.float32(config.saturation)

        if config.sepia is not None:
            amount = np.float32(config.sepia)
            rgb = rgb * (1 - amount) + (rgb @ SEPIA_MATRIX.T) * amount

        if config.grayscale is not None:
            amount = np.float32(config.grayscale)
            rgb = rgb * (1 - amount) + luminance(rgb) * amount

        if config.opacity is not None:
            alpha = alpha * np.float32(config.opacity)

        if config.invert is not None:
            amount = np.float32(config.invert)
            rgb = rgb * (1 - amount) + (1 - rgb) * amount

        out = np.concatenate([rgb, alpha], axis=-1)
        np.clip(out, 0.0, 1.0, out=out)
        return image.with_pixels(out.astype(np.float32, copy=False))
