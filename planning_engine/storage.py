"""Key-value persistence for engine state."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

SIGNALS_KEY = "heuristic-behavioral-signals"
WEIGHTS_KEY = "heuristic-weights"
ENGAGEMENT_KEY = "notification-manager-history"
SEGMENTS_KEY = "planning-segments"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """In-process store, mostly for tests and the demo."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """One JSON document per key inside a directory."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(value, encoding="utf-8")


def load_record(store: Optional[KeyValueStore], key: str) -> Optional[dict]:
    """Read a JSON object, returning None when it is absent or unreadable."""

    if store is None:
        return None
    try:
        raw = store.get(key)
    except OSError as exc:
        logger.warning("Failed to read %s: %s", key, exc)
        return None
    if raw is None:
        return None

    try:
        payload = json.loads(raw)
    except ValueError as exc:
        logger.warning("Stored record %s is corrupt, falling back to defaults: %s", key, exc)
        return None

    if not isinstance(payload, dict):
        logger.warning("Stored record %s is not an object, falling back to defaults", key)
        return None
    return payload


def save_record(store: Optional[KeyValueStore], key: str, payload: dict) -> bool:
    """Write a JSON object; failures are logged and reported as False."""

    if store is None:
        return False
    try:
        store.set(key, json.dumps(payload, sort_keys=True))
    except (OSError, TypeError, ValueError) as exc:
        logger.warning("Failed to save %s: %s", key, exc)
        return False
    return True
