"""
Settings - Tunables for the filter pipeline, ledger and suggestion engine.

Settings are plain dataclasses with defaults. ``load_settings`` reads an
optional JSON file and then applies ``MEDIAVAULT_*`` environment overrides.

JSON layout:
    {
        "filters": {"fallback_format": "JPEG", "jpeg_quality": 90, ...},
        "usage": {"recently_used_limit": 10, ...},
        "suggestions": {"max_suggestions": 6, ...},
        "provider": {"provider": "stability", "api_key": "...", "timeout": 60}
    }
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

from mediavault_filters.core.errors import InvalidInput

logger = logging.getLogger(__name__)

ENV_PREFIX = "MEDIAVAULT_"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "mediavault_filters" / "settings.json"


@dataclass
class FilterSettings:
    """Codec settings for FilterEngine."""
    encodable_formats: tuple[str, ...] = ("JPEG", "PNG")
    fallback_format: str = "JPEG"
    jpeg_quality: int = 90


@dataclass
class UsageSettings:
    """Ledger and background recorder settings."""
    recently_used_limit: int = 10
    recorder_queue_size: int = 256
    recorder_workers: int = 2
    database_path: str | None = None  # None = in-memory store


@dataclass
class SuggestionSettings:
    """Suggestion source sizes and windows."""
    max_suggestions: int = 6
    frequent_limit: int = 3
    trending_window_days: int = 7
    trending_limit: int = 3
    style_history_limit: int = 20
    palette_media_limit: int = 5
    palette_colors: int = 5
    palette_min_frequency: float = 0.10


@dataclass
class ProviderConfig:
    """Configuration for the active AI provider."""
    provider: str = "local"
    api_key: str = ""
    base_url: str | None = None  # Override default URL
    timeout: float = 60.0
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class Settings:
    """Top-level settings bundle."""
    filters: FilterSettings = field(default_factory=FilterSettings)
    usage: UsageSettings = field(default_factory=UsageSettings)
    suggestions: SuggestionSettings = field(default_factory=SuggestionSettings)
    provider: ProviderConfig = field(default_factory=ProviderConfig)


_SECTIONS: dict[str, type] = {
    "filters": FilterSettings,
    "usage": UsageSettings,
    "suggestions": SuggestionSettings,
    "provider": ProviderConfig,
}


def load_settings(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """
    Load settings from a JSON file and environment overrides.

    A missing file is not an error; defaults are used. Environment variables
    take the form ``MEDIAVAULT_<SECTION>_<FIELD>``, e.g.
    ``MEDIAVAULT_PROVIDER_API_KEY`` or ``MEDIAVAULT_FILTERS_JPEG_QUALITY``.

    Raises:
        InvalidInput: If the file is not valid JSON or a value has the wrong type
    """
    data: dict[str, Any] = {}
    if path is None:
        path = DEFAULT_CONFIG_PATH

    if path.exists():
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidInput(f"Invalid settings file {path}: {e}") from e
        logger.info("Loaded settings from %s", path)

    env = os.environ if environ is None else environ
    sections = {}
    for name, cls in _SECTIONS.items():
        values = dict(data.get(name, {}))
        for f in fields(cls):
            key = f"{ENV_PREFIX}{name.upper()}_{f.name.upper()}"
            if key in env:
                values[f.name] = env[key]
        sections[name] = _build_section(cls, values)

    return Settings(**sections)


def _build_section(cls: type, values: dict[str, Any]):
    known = {f.name: f for f in fields(cls)}
    unknown = set(values) - set(known)
    if unknown:
        logger.warning("Ignoring unknown %s settings: %s", cls.__name__, ", ".join(sorted(unknown)))

    kwargs = {}
    for name, f in known.items():
        if name not in values:
            continue
        kwargs[name] = _convert(cls.__name__, name, f.default, values[name])
    return cls(**kwargs)


def _convert(section: str, name: str, default: Any, value: Any) -> Any:
    """Convert a raw JSON or env value to the type of the field's default."""
    try:
        if isinstance(default, bool):
            if isinstance(value, str):
                return value.strip().lower() in ("1", "true", "yes", "on")
            return bool(value)
        if isinstance(default, int):
            return int(value)
        if isinstance(default, float):
            return float(value)
        if isinstance(default, tuple):
            if isinstance(value, str):
                value = [v.strip() for v in value.split(",") if v.strip()]
            return tuple(str(v).upper() for v in value)
        if isinstance(value, str) and isinstance(default, str) and name.endswith("format"):
            return value.upper()
        return value
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"Invalid value for {section}.{name}: {value!r}") from e


def configure_logging(level: int | str = logging.INFO) -> None:
    """Attach a stderr handler to the package logger. For scripts only."""
    package_logger = logging.getLogger("mediavault_filters")
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        package_logger.addHandler(handler)
    package_logger.setLevel(level.upper() if isinstance(level, str) else level)
