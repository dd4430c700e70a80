"""
Palette - Dominant colors of a set of images.

Each image is downsampled and reduced to a handful of colors with Pillow's
median-cut quantizer; pixel counts are pooled across images so the result
reflects the whole set.
"""

from __future__ import annotations

import colorsys
import logging
from collections import Counter
from io import BytesIO
from typing import Iterable

from PIL import Image, UnidentifiedImageError

from mediavault_filters.core.errors import DecodeFailure
from mediavault_filters.core.models import ColorPaletteEntry

logger = logging.getLogger(__name__)

# Longest side after downsampling
SAMPLE_SIZE = 128


def _hex(rgb: tuple[int, int, int]) -> str:
    return "#{:02x}{:02x}{:02x}".format(*rgb)


def image_colors(data: bytes, colors: int = 5) -> Counter[tuple[int, int, int]]:
    """
    Pixel counts of the dominant colors in one encoded image.

    Raises:
        DecodeFailure: data is not a readable image
    """
    try:
        with Image.open(BytesIO(data)) as img:
            img = img.convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeFailure(f"Cannot read image for palette: {e}") from e

    img.thumbnail((SAMPLE_SIZE, SAMPLE_SIZE))
    quantized = img.quantize(colors=colors, method=Image.Quantize.MEDIANCUT)
    palette = quantized.getpalette() or []

    counts: Counter[tuple[int, int, int]] = Counter()
    for count, index in quantized.getcolors(maxcolors=256) or []:
        rgb = tuple(palette[index * 3:index * 3 + 3])
        if len(rgb) == 3:
            counts[rgb] += count
    return counts


def extract_palette(images: Iterable[bytes], colors: int = 5) -> list[ColorPaletteEntry]:
    """
    Top colors across images, most frequent first.

    Frequencies are fractions of all sampled pixels and sum to at most 1.
    Images that fail to decode are skipped.
    """
    pooled: Counter[tuple[int, int, int]] = Counter()
    for data in images:
        try:
            pooled.update(image_colors(data, colors))
        except DecodeFailure as e:
            logger.warning("Skipping image in palette: %s", e)

    total = sum(pooled.values())
    if not total:
        return []

    entries = []
    for rgb, count in pooled.most_common(colors):
        _, saturation, value = colorsys.rgb_to_hsv(*(c / 255.0 for c in rgb))
        entries.append(
            ColorPaletteEntry(
                color=_hex(rgb),
                frequency=count / total,
                saturation=round(saturation, 4),
                brightness=round(value, 4),
            )
        )
    return entries
