"""JSON file storage: one file per profile under the data directory."""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import StorageError
from ..profiles import ProfileSession

logger = logging.getLogger(__name__)


class JsonFileStorageAdapter:
    def __init__(self, data_dir: Path, profiles: ProfileSession) -> None:
        self._data_dir = Path(data_dir)
        self._profiles = profiles
        self._lock = threading.RLock()

    def path_for(self, profile_id: str) -> Path:
        return self._data_dir / f"{profile_id}.json"

    def _current_path(self) -> Path:
        return self.path_for(self._profiles.require())

    def _load_unlocked(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with path.open("r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.exception("Failed to read profile storage %s", path)
            raise StorageError(f"Could not read {path.name}: {exc}") from exc
        if not isinstance(raw, dict):
            raise StorageError(f"Profile storage {path.name} is not a JSON object.")
        return raw

    def _write_unlocked(self, path: Path, payload: Dict[str, Any]) -> None:
        tmp_path = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as exc:
            logger.exception("Failed to write profile storage %s", path)
            raise StorageError(f"Could not write {path.name}: {exc}") from exc

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._load_unlocked(self._current_path()).get(key)

    def set(self, key: str, value: Any) -> None:
        path = self._current_path()
        with self._lock:
            payload = self._load_unlocked(path)
            payload[key] = value
            self._write_unlocked(path, payload)

    def delete(self, key: str) -> None:
        path = self._current_path()
        with self._lock:
            payload = self._load_unlocked(path)
            if key in payload:
                del payload[key]
                self._write_unlocked(path, payload)

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._load_unlocked(self._current_path())

    def clear(self) -> None:
        path = self._current_path()
        with self._lock:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                raise StorageError(f"Could not remove {path.name}: {exc}") from exc


__all__ = ["JsonFileStorageAdapter"]
