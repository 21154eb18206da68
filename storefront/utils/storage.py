"""
Client Storage (JSON file with in-memory fallback)

Durable key-value storage for the guest's consent record and language
preference, plus expiring markers (the cookie equivalent). All failures are
raised as PersistenceError so callers can treat durability as advisory.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path

from storefront.config import Settings
from storefront.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class ClientStorage(ABC):
    """Minimal string key-value interface."""

    @abstractmethod
    def get_item(self, key: str) -> str | None: ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None: ...

    @abstractmethod
    def remove_item(self, key: str) -> None: ...


class InMemoryStorage(ClientStorage):
    """
    In-memory storage used when no storage path is configured.
    Note: values are lost when the process exits.
    """

    def __init__(self, initial: dict[str, str] | None = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JSONFileStorage(ClientStorage):
    """Storage persisted as a single JSON object on disk."""

    def __init__(self, path: str | Path):
        self._path = Path(path)

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Failed to read storage file {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Storage file {self._path} does not contain an object")
        return data

    def _write_all(self, data: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(json.dumps(data), encoding="utf-8")
            tmp.replace(self._path)
        except OSError as e:
            raise PersistenceError(f"Failed to write storage file {self._path}: {e}") from e

    def get_item(self, key: str) -> str | None:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove_item(self, key: str) -> None:
        data = self._read_all()
        if data.pop(key, None) is not None:
            self._write_all(data)


class MarkerStore:
    """
    Expiring name/value markers layered on a ClientStorage.

    Markers are stored as ``{"value": ..., "expires_at": ...}`` under the
    ``marker:`` namespace; an expired marker reads as absent and is removed.
    """

    PREFIX = "marker:"

    def __init__(self, storage: ClientStorage):
        self._storage = storage

    def set_marker(self, name: str, value: str, max_age_days: int) -> datetime:
        expires_at = datetime.now(timezone.utc) + timedelta(days=max_age_days)
        self._storage.set_item(
            self.PREFIX + name,
            json.dumps({"value": value, "expires_at": expires_at.isoformat()}),
        )
        return expires_at

    def get_marker(self, name: str, now: datetime | None = None) -> str | None:
        raw = self._storage.get_item(self.PREFIX + name)
        if raw is None:
            return None
        try:
            entry = json.loads(raw)
            expires_at = datetime.fromisoformat(entry["expires_at"])
            value = entry["value"]
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding unreadable marker '%s'", name)
            self._storage.remove_item(self.PREFIX + name)
            return None

        if (now or datetime.now(timezone.utc)) >= expires_at:
            self._storage.remove_item(self.PREFIX + name)
            return None
        return value

    def remove_marker(self, name: str) -> None:
        self._storage.remove_item(self.PREFIX + name)


def create_storage(settings: Settings) -> ClientStorage:
    """Return file-backed storage when a path is configured, else in-memory."""
    if settings.storage_path:
        logger.info("Using file client storage at %s", settings.storage_path)
        return JSONFileStorage(settings.storage_path)
    logger.info("Using in-memory client storage (no storage_path configured)")
    return InMemoryStorage()
