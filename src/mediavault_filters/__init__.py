"""Media filter pipeline, AI provider gateway and usage-based suggestions."""

__version__ = "0.1.0"
