"""Utility modules for the Searchable Visibility Engine."""

from .config import Settings, get_settings
from .url_normalizer import (
    UrlNormalizationError,
    normalize_url,
    normalize_domain,
    strip_www,
    is_valid_url,
)

__all__ = [
    "Settings",
    "get_settings",
    # URL normalization
    "UrlNormalizationError",
    "normalize_url",
    "normalize_domain",
    "strip_www",
    "is_valid_url",
]
