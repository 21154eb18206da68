"""
Locale Store

Holds the translation bundles that have finished loading and resolves dotted
keys against them. The store never talks to the network; LocaleLoader owns it
and is the only writer.
"""

from __future__ import annotations

import copy
import logging
import re
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{(\w+)\}")


def resolve_key(bundle: Mapping[str, Any], key: str) -> str | None:
    """Look up a dotted key in a (possibly nested) bundle.

    A literal flat key ("search.placeholder": "...") wins over descent so that
    bundles shipped in either shape work. Only string leaves count as a hit.
    """
    value = bundle.get(key)
    if isinstance(value, str):
        return value

    current: Any = bundle
    for part in key.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]

    return current if isinstance(current, str) else None


def interpolate(template: str, variables: Mapping[str, Any] | None = None) -> str:
    """Replace every ``{name}`` placeholder with its value from `variables`.

    Placeholders without a matching variable are left verbatim.
    """
    if not variables:
        return template

    def _substitute(match: re.Match) -> str:
        name = match.group(1)
        if name in variables:
            return str(variables[name])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(_substitute, template)


class LocaleStore:
    """In-memory registry of loaded bundles, keyed by locale code."""

    def __init__(self) -> None:
        self._bundles: dict[str, dict[str, Any]] = {}

    def put(self, locale: str, bundle: Mapping[str, Any]) -> None:
        """Cache a bundle, replacing any previous entry wholesale."""
        self._bundles[locale] = copy.deepcopy(dict(bundle))
        logger.debug("Locale bundle cached: %s (%d top-level keys)", locale, len(bundle))

    def get(self, locale: str) -> dict[str, Any] | None:
        """Return a deep copy of the cached bundle, or None."""
        bundle = self._bundles.get(locale)
        return copy.deepcopy(bundle) if bundle is not None else None

    def has(self, locale: str) -> bool:
        return locale in self._bundles

    def lookup(self, locale: str, key: str) -> str | None:
        """Resolve `key` in the cached bundle for `locale` (None if absent or not loaded)."""
        bundle = self._bundles.get(locale)
        if bundle is None:
            return None
        return resolve_key(bundle, key)

    def locales(self) -> list[str]:
        return list(self._bundles)

    def clear(self) -> None:
        self._bundles.clear()
