"""Database utilities for the SQL storage backend."""

from .session import (
    dispose_engine,
    get_engine,
    get_session_factory,
    init_db,
    session_scope,
)

__all__ = [
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "init_db",
    "session_scope",
]
