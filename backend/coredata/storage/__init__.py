"""Storage adapters the core data store persists through."""

from __future__ import annotations

import logging

from ..config import Settings
from ..profiles import ProfileSession
from .base import StorageAdapter
from .json_file import JsonFileStorageAdapter
from .memory import MemoryStorageAdapter

logger = logging.getLogger(__name__)


def build_storage(settings: Settings, profiles: ProfileSession) -> StorageAdapter:
    backend = settings.storage_backend
    logger.info("Using %s storage backend", backend)
    if backend == "memory":
        return MemoryStorageAdapter(profiles)
    if backend == "json":
        return JsonFileStorageAdapter(settings.data_dir, profiles)
    from ..db.session import init_db
    from .database import SqlStorageAdapter

    init_db()
    return SqlStorageAdapter(profiles)


__all__ = [
    "JsonFileStorageAdapter",
    "MemoryStorageAdapter",
    "StorageAdapter",
    "build_storage",
]
