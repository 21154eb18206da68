"""
i18n (Internationalization) package

Provides locale helpers, the bundle store, and the deduplicating bundle
loader behind the storefront's ``t()`` translation function.
"""

from .loader import LocaleLoader
from .locale import (
    DEFAULT_LANGUAGE,
    LANGUAGE_NAMES,
    SUPPORTED_LANGUAGES,
    detect_language,
    get_language_info,
    is_supported_locale,
    normalize_locale,
    parse_accept_language,
)
from .store import LocaleStore, interpolate, resolve_key

__all__ = [
    "DEFAULT_LANGUAGE",
    "LANGUAGE_NAMES",
    "SUPPORTED_LANGUAGES",
    "LocaleLoader",
    "LocaleStore",
    "detect_language",
    "get_language_info",
    "interpolate",
    "is_supported_locale",
    "normalize_locale",
    "parse_accept_language",
    "resolve_key",
]
