"""In-memory storage adapter used by tests and the ``memory`` backend."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from ..errors import StorageError
from ..profiles import ProfileSession


class MemoryStorageAdapter:
    """Keeps one dict per profile; values are JSON round-tripped on the way in and out."""

    def __init__(self, profiles: ProfileSession) -> None:
        self._profiles = profiles
        self._partitions: Dict[str, Dict[str, str]] = {}

    def _partition(self) -> Dict[str, str]:
        return self._partitions.setdefault(self._profiles.require(), {})

    def get(self, key: str) -> Optional[Any]:
        raw = self._partition().get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Value for '{key}' is not JSON serializable: {exc}") from exc
        self._partition()[key] = encoded

    def delete(self, key: str) -> None:
        self._partition().pop(key, None)

    def exists(self, key: str) -> bool:
        return key in self._partition()

    def clear(self) -> None:
        self._partition().clear()


__all__ = ["MemoryStorageAdapter"]
