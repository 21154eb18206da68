"""
Custom Exception Classes for Storefront Core

Every failure mode of the telemetry pipeline and the locale cache has its own
exception type. Most of them never leave the component that raised them: the
public operations catch, log and fall back silently.
"""

from typing import Any


class StorefrontException(Exception):
    """Base exception class for all storefront-core exceptions"""

    code = "storefront_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# Locale Exceptions
# ============================================================================


class UnsupportedLocaleError(StorefrontException):
    """Raised before any network activity when a locale code is not supported"""

    code = "unsupported_locale"

    def __init__(self, locale: str, supported: list[str] | None = None):
        super().__init__(
            message=f"Locale '{locale}' is not supported",
            details={"locale": locale, "supported": list(supported or [])},
        )
        self.locale = locale


class LocaleLoadError(StorefrontException):
    """Raised when a locale bundle fetch fails or returns a malformed payload"""

    code = "locale_load_failed"

    def __init__(self, locale: str, reason: str, status_code: int | None = None):
        details: dict[str, Any] = {"locale": locale, "reason": reason}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message=f"Failed to load bundle for locale '{locale}': {reason}", details=details)
        self.locale = locale
        self.status_code = status_code


# ============================================================================
# Analytics Exceptions
# ============================================================================


class EventValidationError(StorefrontException):
    """Raised when an event name is unknown or a required property is missing"""

    code = "event_validation_failed"

    def __init__(self, event: str, missing_fields: list[str] | None = None):
        if missing_fields:
            message = f"Missing required fields for '{event}': {', '.join(missing_fields)}"
        else:
            message = f"Unknown event: '{event}'"
        super().__init__(message=message, details={"event": event, "missing_fields": list(missing_fields or [])})
        self.event = event
        self.missing_fields = list(missing_fields or [])


class DeliveryError(StorefrontException):
    """Raised inside the transport when an analytics send fails"""

    code = "delivery_failed"

    def __init__(self, event: str | None, reason: str):
        super().__init__(message=f"Delivery failed: {reason}", details={"event": event, "reason": reason})


# ============================================================================
# Storage Exceptions
# ============================================================================


class PersistenceError(StorefrontException):
    """Raised when the client storage cannot be read or written"""

    code = "persistence_failed"

    def __init__(self, message: str = "Client storage operation failed", key: str | None = None):
        details = {"key": key} if key else {}
        super().__init__(message=message, details=details)
