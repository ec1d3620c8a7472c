from __future__ import annotations

import json
from pathlib import Path
from typing import Iterator

import pytest

from coredata.config import get_settings
from coredata.db.models import ProfileRecordModel
from coredata.db.session import dispose_engine, init_db, session_scope
from coredata.errors import StorageError
from coredata.profiles import ProfileSession
from coredata.storage import JsonFileStorageAdapter, MemoryStorageAdapter, StorageAdapter, build_storage
from coredata.storage.database import SqlStorageAdapter
from coredata.store import CoreDataStore


@pytest.fixture
def sqlite_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[str]:
    url = f"sqlite:///{tmp_path / 'coredata.db'}"
    monkeypatch.setenv("COREDATA_DATABASE_URL", url)
    monkeypatch.setenv("COREDATA_STORAGE_BACKEND", "database")
    get_settings.cache_clear()
    dispose_engine()
    yield url
    dispose_engine()
    get_settings.cache_clear()


def test_adapters_satisfy_protocol(tmp_path: Path) -> None:
    session = ProfileSession("alice")
    assert isinstance(MemoryStorageAdapter(session), StorageAdapter)
    assert isinstance(JsonFileStorageAdapter(tmp_path, session), StorageAdapter)
    assert isinstance(SqlStorageAdapter(session), StorageAdapter)


def test_memory_adapter_partitions_by_profile() -> None:
    session = ProfileSession("alice")
    adapter = MemoryStorageAdapter(session)
    adapter.set("coreData", {"goals": []})

    session.switch("bob")
    assert adapter.exists("coreData") is False
    adapter.set("coreData", {"goals": ["x"]})

    session.switch("alice")
    assert adapter.get("coreData") == {"goals": []}
    adapter.clear()
    assert adapter.get("coreData") is None
    session.switch("bob")
    assert adapter.get("coreData") == {"goals": ["x"]}


def test_memory_adapter_rejects_unserializable_values() -> None:
    adapter = MemoryStorageAdapter(ProfileSession("alice"))

    with pytest.raises(StorageError):
        adapter.set("coreData", {"when": object()})


def test_json_adapter_writes_one_file_per_profile(tmp_path: Path) -> None:
    session = ProfileSession("alice")
    adapter = JsonFileStorageAdapter(tmp_path, session)

    adapter.set("coreData", {"goals": [1]})
    session.switch("bob")
    adapter.set("coreData", {"goals": [2]})
    adapter.set("other", True)
    adapter.delete("other")
    adapter.delete("never-written")

    assert json.loads(adapter.path_for("alice").read_text()) == {"coreData": {"goals": [1]}}
    assert json.loads(adapter.path_for("bob").read_text()) == {"coreData": {"goals": [2]}}
    assert adapter.exists("other") is False

    adapter.clear()
    assert not adapter.path_for("bob").exists()
    assert adapter.path_for("alice").exists()


def test_json_adapter_reports_corrupt_files(tmp_path: Path) -> None:
    session = ProfileSession("alice")
    adapter = JsonFileStorageAdapter(tmp_path, session)
    adapter.path_for("alice").write_text("{not json", encoding="utf-8")

    with pytest.raises(StorageError):
        adapter.get("coreData")

    adapter.path_for("alice").write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(StorageError):
        adapter.get("coreData")


def test_adapters_require_a_profile(tmp_path: Path) -> None:
    session = ProfileSession()

    with pytest.raises(StorageError):
        JsonFileStorageAdapter(tmp_path, session).get("coreData")
    with pytest.raises(StorageError):
        MemoryStorageAdapter(session).set("coreData", {})


def test_store_persists_across_instances_with_json_files(tmp_path: Path) -> None:
    session = ProfileSession("alice")
    first = CoreDataStore(JsonFileStorageAdapter(tmp_path, session), session)
    first.append_event("note_added", {"noteId": "n1"})

    second = CoreDataStore(JsonFileStorageAdapter(tmp_path, session), session)

    assert [event.type for event in second.load().events] == ["note_added"]


def test_sql_adapter_round_trip(sqlite_url: str) -> None:
    init_db()
    session = ProfileSession("alice")
    adapter = SqlStorageAdapter(session)

    adapter.set("coreData", {"goals": [], "metadata": {"version": "1.0.0"}})
    adapter.set("coreData", {"goals": ["updated"]})
    assert adapter.get("coreData") == {"goals": ["updated"]}
    assert adapter.exists("coreData") is True

    session.switch("bob")
    assert adapter.get("coreData") is None
    adapter.set("coreData", {"goals": ["bob"]})
    adapter.clear()
    assert adapter.exists("coreData") is False

    session.switch("alice")
    adapter.delete("coreData")
    assert adapter.get("coreData") is None


def test_session_scope_commits_only_clean_blocks(sqlite_url: str) -> None:
    init_db()

    with session_scope(commit=False) as session:
        session.add(ProfileRecordModel(profile_id="alice", key="draft", value={"n": 1}))
        session.flush()
    with pytest.raises(RuntimeError):
        with session_scope() as session:
            session.add(ProfileRecordModel(profile_id="alice", key="broken", value={"n": 2}))
            session.flush()
            raise RuntimeError("abort")
    with session_scope() as session:
        session.add(ProfileRecordModel(profile_id="alice", key="kept", value={"n": 3}))

    with session_scope(commit=False) as session:
        keys = [record.key for record in session.query(ProfileRecordModel).all()]
    assert keys == ["kept"]


def test_build_storage_selects_backend(sqlite_url: str, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    session = ProfileSession("alice")
    adapter = build_storage(get_settings(), session)
    assert isinstance(adapter, SqlStorageAdapter)

    store = CoreDataStore(adapter, session)
    store.append_event("stored_in_sql")
    store.clear_cache()
    assert [event.type for event in store.load().events] == ["stored_in_sql"]

    monkeypatch.setenv("COREDATA_STORAGE_BACKEND", "json")
    monkeypatch.setenv("COREDATA_DATA_DIR", str(tmp_path / "profiles"))
    get_settings.cache_clear()
    json_adapter = build_storage(get_settings(), session)
    assert isinstance(json_adapter, JsonFileStorageAdapter)
    assert json_adapter.path_for("alice") == tmp_path / "profiles" / "alice.json"
