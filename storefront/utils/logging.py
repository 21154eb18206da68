"""
Structured Logging

JSON-line diagnostics for the storefront core. Each record is stamped with the
anonymous analytics session id bound by the EventTracker, so everything one
page lifetime logged can be grouped without any personal data.

Components attach context through ``extra=``; only the keys listed in
``CONTEXT_FIELDS`` are emitted, which keeps event property values out of logs.
"""

import json
import logging
from contextvars import ContextVar, Token
from datetime import datetime, timezone

from storefront.config import Settings

# Anonymous analytics session id for the current page lifetime
session_id_var: ContextVar[str] = ContextVar("session_id", default="")

# extra= keys copied into the JSON line (names only, never payload values)
CONTEXT_FIELDS: tuple[str, ...] = ("event", "missing_fields", "locale", "status_code", "state")

# Third-party loggers held back regardless of the storefront level
LIBRARY_LOG_LEVELS: dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
}

PLAIN_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [session=%(session_id)s] %(message)s"


class SessionIdFilter(logging.Filter):
    """Stamp records with the bound session id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = session_id_var.get()
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per record.

    ``component`` is the logger name relative to the ``storefront`` package
    (``services.event_tracker``); records from other libraries keep their
    full name. An empty session id is left out.
    """

    def format(self, record: logging.LogRecord) -> str:
        component = record.name.removeprefix("storefront.")
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "component": component,
            "msg": record.getMessage(),
        }

        session_id = getattr(record, "session_id", "")
        if session_id:
            entry["session_id"] = session_id

        entry.update({key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)})

        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


def setup_structured_logging(
    log_level: str = "INFO",
    json_format: bool = True,
    log_file: str | None = None,
) -> logging.Handler:
    """
    Route storefront diagnostics to a single root handler.

    Args:
        log_level: Level for the ``storefront`` logger tree (DEBUG, INFO, ...)
        json_format: JSON lines when True, a readable single-line format otherwise
        log_file: Append to this file instead of stderr

    Returns:
        The installed handler.
    """
    level = logging.getLevelName(log_level.upper())

    handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8") if log_file else logging.StreamHandler()
    handler.setFormatter(StructuredFormatter() if json_format else logging.Formatter(PLAIN_FORMAT))
    handler.addFilter(SessionIdFilter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    logging.getLogger("storefront").setLevel(level)
    for name, library_level in LIBRARY_LOG_LEVELS.items():
        logging.getLogger(name).setLevel(library_level)

    return handler


def configure_logging(settings: Settings) -> logging.Handler:
    """``setup_structured_logging`` driven by ``log_level`` / ``log_json``."""
    return setup_structured_logging(log_level=settings.log_level, json_format=settings.log_json)


def bind_session_id(session_id: str) -> Token:
    """Attach `session_id` to records logged from the current context."""
    return session_id_var.set(session_id)


def get_session_id() -> str:
    return session_id_var.get()
