"""
Durable local storage.

Design (local.py)
- Purpose: Keep a few JSON values across restarts, the way a browser's
  local storage would: the last known document id and the session mirror.
- Layout: one `<key>.json` file per key inside the configured data dir.
- Side effects: Reads/writes files. Unreadable files read as missing;
  write failures are logged and ignored.
"""

import json
from pathlib import Path
from typing import Any, Optional

import structlog

from thcontrol.services.storage.interface import KeyValueStoreInterface

logger = structlog.get_logger(__name__)


class JsonFileKeyValueStore(KeyValueStoreInterface):
    """File-backed key/value store, one JSON file per key."""

    def __init__(self, directory: Path):
        self._directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._directory / f"{key}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("local_storage_read_failed", key=key, error=str(e))
            return None

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False, indent=2)
            tmp_path.replace(path)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("local_storage_write_failed", key=key, error=str(e))

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("local_storage_remove_failed", key=key, error=str(e))


class InMemoryKeyValueStore(KeyValueStoreInterface):
    """Volatile key/value store for tests and throwaway sessions."""

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        # Stored serialized so callers can't mutate what was saved.
        self._data[key] = json.dumps(value, ensure_ascii=False)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)
