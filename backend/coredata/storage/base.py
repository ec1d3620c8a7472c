"""Key/value persistence contract scoped to the active profile."""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class StorageAdapter(Protocol):
    """Values are JSON-compatible structures; keys live inside the current profile."""

    def get(self, key: str) -> Optional[Any]:  # pragma: no cover - protocol definition
        ...

    def set(self, key: str, value: Any) -> None:  # pragma: no cover - protocol definition
        ...

    def delete(self, key: str) -> None:  # pragma: no cover - protocol definition
        ...

    def exists(self, key: str) -> bool:  # pragma: no cover - protocol definition
        ...

    def clear(self) -> None:  # pragma: no cover - protocol definition
        ...


__all__ = ["StorageAdapter"]
