"""
Media - Access to stored media files.

The filter pipeline never owns media storage; it reads through the MediaStore
protocol. InMemoryMediaStore backs tests and local scripts.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Protocol

from mediavault_filters.core.errors import NotFound


@dataclass(frozen=True)
class MediaFile:
    """Metadata for one stored media file."""
    id: str
    file_name: str
    mime_type: str
    owner: str | None = None

    @property
    def is_image(self) -> bool:
        return self.mime_type.lower().startswith("image/")


class MediaStore(Protocol):
    """Read access to media metadata and content."""

    def get_media(self, media_id: str) -> MediaFile:
        """Raises NotFound for an unknown id."""
        ...

    def get_bytes(self, file_name: str) -> bytes:
        """Raises NotFound for an unknown file."""
        ...


class InMemoryMediaStore:
    """Dict-backed MediaStore."""

    def __init__(self):
        self._lock = threading.Lock()
        self._media: dict[str, MediaFile] = {}
        self._files: dict[str, bytes] = {}

    def add(self, media: MediaFile, data: bytes) -> MediaFile:
        with self._lock:
            self._media[media.id] = media
            self._files[media.file_name] = data
        return media

    def get_media(self, media_id: str) -> MediaFile:
        with self._lock:
            media = self._media.get(media_id)
        if media is None:
            raise NotFound(f"Media not found: {media_id}")
        return media

    def get_bytes(self, file_name: str) -> bytes:
        with self._lock:
            data = self._files.get(file_name)
        if data is None:
            raise NotFound(f"Media file not found: {file_name}")
        return data
