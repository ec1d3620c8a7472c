"""Holder for the active profile id that scopes storage."""

from __future__ import annotations

import logging
from threading import RLock
from typing import Callable, List, Optional

from .errors import StorageError

logger = logging.getLogger(__name__)

ProfileListener = Callable[[Optional[str], Optional[str]], None]


def normalize_profile_id(profile_id: str) -> str:
    normalized = profile_id.strip().lower()
    if not normalized:
        raise ValueError("Profile id cannot be empty.")
    return normalized


class ProfileSession:
    """Tracks the current profile and notifies listeners when it changes."""

    def __init__(self, profile_id: Optional[str] = None) -> None:
        self._current = normalize_profile_id(profile_id) if profile_id else None
        self._listeners: List[ProfileListener] = []
        self._lock = RLock()

    @property
    def current(self) -> Optional[str]:
        return self._current

    def require(self) -> str:
        if self._current is None:
            raise StorageError("No active profile; switch to a profile before accessing core data.")
        return self._current

    def subscribe(self, listener: ProfileListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def switch(self, profile_id: Optional[str]) -> bool:
        """Change the active profile. Returns False when it was already active."""
        target = normalize_profile_id(profile_id) if profile_id else None
        with self._lock:
            previous = self._current
            if previous == target:
                return False
            self._current = target
            listeners = list(self._listeners)
        logger.info("Profile switched from %s to %s", previous, target)
        for listener in listeners:
            listener(previous, target)
        return True


__all__ = ["ProfileSession", "normalize_profile_id"]
