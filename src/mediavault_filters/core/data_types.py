"""
Data Types - Image container and codec helpers.

ImageData holds pixels as a float32 HWC numpy array in [0, 1], always with
four channels (RGBA). Decoding and encoding go through Pillow; the detected
source format and whether the source carried alpha are kept in metadata so
the engine can re-encode in kind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
from typing import Any

import numpy as np
from numpy.typing import NDArray
from PIL import Image, UnidentifiedImageError

from mediavault_filters.core.errors import DecodeFailure, EncodeFailure


@dataclass
class ImageMetadata:
    """Metadata associated with an image."""

    # Format detected by the decoder ("JPEG", "PNG", ...), None for synthetic images
    source_format: str | None = None
    source_has_alpha: bool = False

    original_width: int | None = None
    original_height: int | None = None

    custom: dict[str, Any] = field(default_factory=dict)

    def copy(self) -> ImageMetadata:
        """Create a shallow copy of this metadata."""
        return ImageMetadata(
            source_format=self.source_format,
            source_has_alpha=self.source_has_alpha,
            original_width=self.original_width,
            original_height=self.original_height,
            custom=self.custom.copy(),
        )


@dataclass
class ImageData:
    """
    Container for image data flowing through the filter pipeline.

    Attributes:
        pixels: numpy array of shape (H, W, 4) with float32 values [0, 1]
        metadata: Source format and size information
    """
    pixels: NDArray[np.float32]
    metadata: ImageMetadata = field(default_factory=ImageMetadata)

    @classmethod
    def from_numpy(
        cls,
        array: NDArray,
        metadata: ImageMetadata | None = None
    ) -> ImageData:
        """
        Create ImageData from a numpy array.

        Handles various input formats:
        - uint8 [0, 255] -> float32 [0, 1]
        - float64 -> float32
        - HW (grayscale) -> HWC
        - RGB -> RGBA with opaque alpha
        """
        arr = np.array(array, copy=True)

        if arr.dtype == np.uint8:
            arr = arr.astype(np.float32) / 255.0
        elif arr.dtype != np.float32:
            arr = arr.astype(np.float32)

        if arr.ndim == 2:
            arr = np.stack([arr, arr, arr], axis=-1)

        if arr.shape[2] == 3:
            alpha = np.ones((*arr.shape[:2], 1), dtype=np.float32)
            arr = np.concatenate([arr, alpha], axis=-1)

        return cls(pixels=arr, metadata=metadata or ImageMetadata())

    @classmethod
    def from_pil(cls, image: Image.Image, metadata: ImageMetadata | None = None) -> ImageData:
        """Create ImageData from a PIL Image."""
        if not isinstance(image, Image.Image):
            raise TypeError(f"Expected PIL Image, got {type(image)}")

        meta = metadata or ImageMetadata()
        meta.original_width = image.width
        meta.original_height = image.height
        meta.source_has_alpha = image.mode in ("RGBA", "LA", "PA") or (
            image.mode == "P" and "transparency" in image.info
        )

        rgba = image.convert("RGBA")
        arr = np.asarray(rgba, dtype=np.float32) / 255.0
        return cls(pixels=arr, metadata=meta)

    @classmethod
    def from_bytes(cls, data: bytes) -> ImageData:
        """
        Decode encoded image bytes.

        Raises:
            DecodeFailure: If Pillow cannot identify or load the data
        """
        if not data:
            raise DecodeFailure("Empty image data")
        try:
            with Image.open(BytesIO(data)) as image:
                image.load()
                meta = ImageMetadata(source_format=image.format)
                return cls.from_pil(image, meta)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise DecodeFailure(f"Failed to decode image: {e}") from e

    @property
    def width(self) -> int:
        """Image width in pixels."""
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        """Image height in pixels."""
        return self.pixels.shape[0]

    @property
    def is_opaque(self) -> bool:
        """True if every pixel has full alpha."""
        return bool(np.all(self.pixels[:, :, 3] >= 1.0))

    def to_numpy(self, dtype: np.dtype = np.float32) -> NDArray:
        """
        Convert to numpy array.

        uint8 output rounds to the nearest level so that a float round trip
        of an 8-bit source is lossless.
        """
        if dtype == np.uint8:
            return np.rint(self.pixels.clip(0.0, 1.0) * 255.0).astype(np.uint8)
        return self.pixels.astype(dtype)

    def to_pil(self, keep_alpha: bool = True) -> Image.Image:
        """Convert to PIL Image (RGBA, or RGB when keep_alpha is False)."""
        arr = self.to_numpy(np.uint8)
        if keep_alpha:
            return Image.fromarray(arr)
        return Image.fromarray(np.ascontiguousarray(arr[:, :, :3]))

    def to_bytes(self, fmt: str, quality: int = 90) -> bytes:
        """
        Encode to the given Pillow format name.

        JPEG drops alpha. PNG keeps alpha only when the source had it or the
        pixels are no longer opaque.

        Raises:
            EncodeFailure: If Pillow cannot encode the image
        """
        fmt = fmt.upper()
        keep_alpha = fmt != "JPEG" and (self.metadata.source_has_alpha or not self.is_opaque)
        buf = BytesIO()
        try:
            pil_img = self.to_pil(keep_alpha=keep_alpha)
            if fmt == "JPEG":
                pil_img.save(buf, format=fmt, quality=quality)
            else:
                pil_img.save(buf, format=fmt)
        except (OSError, ValueError, KeyError) as e:
            raise EncodeFailure(f"Failed to encode image as {fmt}: {e}") from e
        return buf.getvalue()

    def with_pixels(self, pixels: NDArray[np.float32]) -> ImageData:
        """Return a new ImageData with the same metadata and new pixels."""
        return ImageData(pixels=pixels, metadata=self.metadata.copy())
