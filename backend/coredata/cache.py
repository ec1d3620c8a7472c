"""Profile-keyed in-memory cache for core data documents."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

from .models import CoreDocument
from .profiles import normalize_profile_id


@dataclass
class _DocumentEntry:
    document: CoreDocument
    cached_at: datetime


class DocumentCache:
    """Process-local cache; callers always receive deep copies."""

    def __init__(self) -> None:
        self._entries: Dict[str, _DocumentEntry] = {}

    def get(self, profile_id: str) -> Optional[CoreDocument]:
        entry = self._entries.get(normalize_profile_id(profile_id))
        if entry is None:
            return None
        return entry.document.model_copy(deep=True)

    def set(self, profile_id: str, document: CoreDocument) -> None:
        self._entries[normalize_profile_id(profile_id)] = _DocumentEntry(
            document=document.model_copy(deep=True),
            cached_at=datetime.now(timezone.utc),
        )

    def cached_at(self, profile_id: str) -> Optional[datetime]:
        entry = self._entries.get(normalize_profile_id(profile_id))
        return entry.cached_at if entry else None

    def invalidate(self, profile_id: str) -> None:
        self._entries.pop(normalize_profile_id(profile_id), None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, profile_id: object) -> bool:
        return isinstance(profile_id, str) and normalize_profile_id(profile_id) in self._entries


__all__ = ["DocumentCache"]
