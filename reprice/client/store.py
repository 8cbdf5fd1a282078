"""
Client-side key-value persistence.

Plays the role browser ``localStorage`` plays for the web front end: auth
credentials, versioned search cache entries, the resolved AI base URL and the
pricing-unsupported flags all live here as strings.
"""

import json
import logging
import os
from pathlib import Path
from typing import Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=BaseModel)


@runtime_checkable
class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Process-local store. Nothing survives a restart."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStore:
    """Store backed by a single JSON object on disk.

    A missing or corrupt file reads as empty. Write failures are logged and
    otherwise ignored so a read-only disk never breaks the caller.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._data: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._data is not None:
            return self._data
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raw = {}
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable client state file %s: %s", self.path, e)
            raw = {}
        if not isinstance(raw, dict):
            raw = {}
        self._data = {str(k): v for k, v in raw.items() if isinstance(v, str)}
        return self._data

    def _flush(self) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(self._load(), sort_keys=True), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.warning("Failed to persist client state to %s: %s", self.path, e)

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        self._load()[key] = value
        self._flush()

    def delete(self, key: str) -> None:
        if self._load().pop(key, None) is not None:
            self._flush()


def read_entry(store: KeyValueStore, key: str, model: type[E]) -> E | None:
    """Load a JSON-encoded model from the store. Malformed payloads read as absent."""
    raw = store.get(key)
    if not raw:
        return None
    try:
        return model.model_validate_json(raw)
    except ValidationError:
        logger.debug("Discarding malformed store entry %s", key)
        return None


def write_entry(store: KeyValueStore, key: str, entry: BaseModel) -> None:
    store.set(key, entry.model_dump_json())
