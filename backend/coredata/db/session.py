"""Lazily built engine and session scope for the SQL storage backend."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from ..config import Settings, get_settings
from .base import Base


def engine_options(settings: Settings) -> Dict[str, Any]:
    """Keyword arguments for ``create_engine``; SQLite gets no pool sizing."""
    options: Dict[str, Any] = {"echo": settings.database_echo, "pool_pre_ping": True}
    if (settings.database_url or "").startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )
    return options


class _Database:
    def __init__(self) -> None:
        self.engine: Optional[Engine] = None
        self.sessions: Optional[sessionmaker[Session]] = None

    def connect(self) -> Engine:
        if self.engine is None:
            settings = get_settings()
            if not settings.database_url:
                raise RuntimeError(
                    "COREDATA_DATABASE_URL must be configured before using the database backend."
                )
            self.engine = create_engine(settings.database_url, **engine_options(settings))
            self.sessions = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        return self.engine

    def reset(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self.sessions = None


_database = _Database()


def get_engine() -> Engine:
    return _database.connect()


def get_session_factory() -> sessionmaker[Session]:
    _database.connect()
    assert _database.sessions is not None
    return _database.sessions


def init_db() -> None:
    """Create the core data tables; there is no migration engine, only a version tag."""
    from . import models  # noqa: F401

    Base.metadata.create_all(get_engine())


@contextmanager
def session_scope(*, commit: bool = True) -> Generator[Session, None, None]:
    """Session closed on exit; with ``commit=False`` pending work is discarded."""
    with get_session_factory()() as session:
        if not commit:
            yield session
            return
        with session.begin():
            yield session


def dispose_engine() -> None:
    """Drop the engine so the next use rebuilds it from fresh settings."""
    _database.reset()


__all__ = [
    "dispose_engine",
    "engine_options",
    "get_engine",
    "get_session_factory",
    "init_db",
    "session_scope",
]
