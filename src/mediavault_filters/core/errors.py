"""
Errors - Exception taxonomy shared by every component.

Pipeline errors (decode/encode/unsupported media) are terminal for the call.
Provider errors are raised typed so the caller decides what to do next.
Storage errors raised from the usage ledger are logged by the background
recorder and never reach the caller of ``apply_filter``.
"""

from __future__ import annotations


class FilterError(Exception):
    """Base exception for all filter pipeline errors."""
    pass


class InvalidInput(FilterError):
    """Bad media type, malformed config or out-of-domain scalar."""
    pass


class UnsupportedMediaType(InvalidInput):
    """Filters can only be applied to image media."""
    pass


class NotFound(FilterError):
    """Unknown preset, filter or media."""
    pass


class UnknownPreset(NotFound):
    """Preset id is neither built-in nor in the preset store."""

    def __init__(self, preset_id: str):
        super().__init__(f"Unknown filter preset: {preset_id}")
        self.preset_id = preset_id


class DecodeFailure(FilterError):
    """Input bytes could not be decoded as an image."""
    pass


class EncodeFailure(FilterError):
    """Processed image could not be encoded."""
    pass


class UnsupportedOperation(FilterError):
    """Provider has no mapping for the requested kind or style."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ProviderFailure(FilterError):
    """Network, HTTP or response-parsing failure from an AI provider."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider} error: {message}")
        self.provider = provider


class ProviderTimeout(ProviderFailure):
    """Provider did not answer within the caller's deadline."""
    pass


class StorageFailure(FilterError):
    """Usage store read or write failed."""
    pass
