from __future__ import annotations

import sys
from io import BytesIO
from pathlib import Path

import numpy as np
import pytest
from PIL import Image


def pytest_configure() -> None:
    """
    Ensure `src/` is on sys.path so tests can import `mediavault_filters`
    without requiring an editable install.
    """
    repo_root = Path(__file__).resolve().parents[1]
    src_root = repo_root / "src"
    sys.path.insert(0, str(src_root))


def encode_image(
    pixels: np.ndarray | None = None,
    fmt: str = "PNG",
    size: tuple[int, int] = (16, 12),
    color: tuple[int, ...] = (200, 120, 40),
) -> bytes:
    """Encode a uint8 array (or a solid color of the given size) with Pillow."""
    if pixels is None:
        w, h = size
        pixels = np.zeros((h, w, len(color)), dtype=np.uint8)
        pixels[:, :] = color
    image = Image.fromarray(pixels)
    if fmt == "GIF":
        image = image.convert("P")
    buf = BytesIO()
    image.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return encode_image(fmt="PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return encode_image(fmt="JPEG")


@pytest.fixture
def make_image():
    """The encode_image helper, for tests that need custom pixels or formats."""
    return encode_image
