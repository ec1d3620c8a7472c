from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from coredata.config import Settings, get_settings
from coredata.db.session import engine_options
from coredata.logging_config import logging_config


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("COREDATA_STORAGE_BACKEND", "COREDATA_MAX_ACTIVE_GOALS", "COREDATA_EVENT_LOG_LIMIT"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.storage_backend == "json"
    assert settings.data_dir == Path("data")
    assert settings.max_active_goals == 3
    assert settings.event_log_limit == 1000


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("COREDATA_STORAGE_BACKEND", "memory")
    monkeypatch.setenv("COREDATA_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("COREDATA_MAX_ACTIVE_GOALS", "5")

    settings = get_settings()

    assert settings.storage_backend == "memory"
    assert settings.data_dir == tmp_path
    assert settings.max_active_goals == 5
    assert get_settings() is settings


def test_invalid_configuration_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COREDATA_MAX_ACTIVE_GOALS", "0")

    with pytest.raises(RuntimeError, match="Invalid core data configuration"):
        get_settings()


def test_logging_config_honours_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COREDATA_TELEMETRY_LOGS", "0")
    monkeypatch.setenv("COREDATA_DEBUG_SQL", "1")

    config = logging_config("debug")

    assert config["root"]["level"] == "DEBUG"
    assert config["loggers"] == {
        "coredata.telemetry": {"level": "WARNING"},
        "sqlalchemy.engine": {"level": "INFO"},
    }


def test_sqlite_engine_options_skip_pool_sizing() -> None:
    settings = Settings(COREDATA_DATABASE_URL="sqlite://", _env_file=None)
    server = Settings(COREDATA_DATABASE_URL="postgresql+psycopg://db/coredata", _env_file=None)

    assert "pool_size" not in engine_options(settings)
    assert engine_options(settings)["connect_args"] == {"check_same_thread": False}
    assert engine_options(server)["pool_size"] == 5
