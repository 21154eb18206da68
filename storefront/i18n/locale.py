"""
Locale helpers

Pure functions for storefront locale handling:
- Supported-locale checks and normalisation
- Accept-Language header parsing with quality-value (q=) support
- Preferred-language detection (explicit request, stored preference, browser)
- Language metadata lookup
"""

from __future__ import annotations

# ── Constants ─────────────────────────────────────────────────────────────────

DEFAULT_LANGUAGE = "en"

SUPPORTED_LANGUAGES: tuple[str, ...] = ("en", "hi", "ta", "te", "kn", "ml", "mr", "gu", "bn", "pa")

# Human-readable names for supported locales, in their own script
LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "hi": "हिन्दी",
    "ta": "தமிழ்",
    "te": "తెలుగు",
    "kn": "ಕನ್ನಡ",
    "ml": "മലയാളം",
    "mr": "मराठी",
    "gu": "ગુજરાતી",
    "bn": "বাংলা",
    "pa": "ਪੰਜਾਬੀ",
}


# ── Public helpers ────────────────────────────────────────────────────────────


def normalize_locale(locale: str | None) -> str:
    """Lower-case and trim a locale code. ``None`` becomes an empty string."""
    return (locale or "").strip().lower()


def is_supported_locale(locale: str | None, supported: list[str] | tuple[str, ...] = SUPPORTED_LANGUAGES) -> bool:
    """Return True when the locale is an exact (case-insensitive) member of `supported`."""
    code = normalize_locale(locale)
    return bool(code) and code in {s.lower() for s in supported}


def parse_accept_language(header: str, supported: list[str] | tuple[str, ...]) -> str | None:
    """Parse an Accept-Language header and return the best matching locale.

    Algorithm:
    1. Split header into tags with optional q-values (default q=1.0).
    2. Sort by q-value descending.
    3. For each tag, try exact match in `supported`, then base-language match.
    4. Return the first match or None if nothing matches.

    Args:
        header:    Accept-Language value, e.g. "hi-IN,hi;q=0.9,en;q=0.8".
        supported: Ordered list of locale codes the storefront ships.

    Returns:
        The best matching locale from `supported`, or None.
    """
    if not header:
        return None

    weighted: list[tuple[float, str]] = []
    for part in header.split(","):
        part = part.strip()
        if not part:
            continue
        if ";q=" in part:
            tag, q_str = part.split(";q=", 1)
            try:
                q = float(q_str.strip())
            except ValueError:
                q = 1.0
        else:
            tag = part
            q = 1.0
        weighted.append((q, tag.strip()))

    # Stable sort keeps header order for equal q-values
    weighted.sort(key=lambda x: x[0], reverse=True)

    supported_lower = [s.lower() for s in supported]

    for _, tag in weighted:
        tag_lower = tag.lower()
        if tag_lower in supported_lower:
            return supported[supported_lower.index(tag_lower)]
        # "ta-IN" → "ta"
        base = tag_lower.split("-")[0]
        if base in supported_lower:
            return supported[supported_lower.index(base)]

    return None


def detect_language(
    requested: str | None = None,
    stored: str | None = None,
    accept_language: str = "",
    supported: list[str] | tuple[str, ...] = SUPPORTED_LANGUAGES,
    default: str = DEFAULT_LANGUAGE,
) -> str:
    """Pick the guest's language.

    Priority: explicit request (``?lang=``) > stored preference >
    Accept-Language > `default`. Unsupported candidates are skipped.
    """
    for candidate in (requested, stored):
        if is_supported_locale(candidate, supported):
            return normalize_locale(candidate)

    return parse_accept_language(accept_language, supported) or default


def get_language_info(locale: str) -> dict[str, str | bool]:
    """Return a metadata dict describing the given locale.

    Returns:
        Dict with keys: ``code`` (str), ``name`` (str), ``supported`` (bool).
    """
    return {
        "code": locale,
        "name": LANGUAGE_NAMES.get(locale, locale),
        "supported": is_supported_locale(locale),
    }
