from __future__ import annotations

from typing import Any, Dict, Iterator

import pytest

from coredata.profiles import ProfileSession
from coredata.service import CoreDataService
from coredata.storage.memory import MemoryStorageAdapter
from coredata.store import CoreDataStore
from coredata.telemetry import clear_listeners


def goal_data(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "title": "Learn React",
        "description": "Build interactive front ends.",
        "category": "frontend",
        "priority": 3,
        "targetLevel": "beginner",
        "estimatedTimeWeeks": 8,
        "requiredSkills": ["html", "css"],
        "outcomes": ["Ship a portfolio site"],
    }
    payload.update(overrides)
    return payload


def node_data(node_id: str, minutes: int = 60, **overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": node_id,
        "title": f"Node {node_id}",
        "type": "concept",
        "estimatedMinutes": minutes,
        "difficulty": 2,
    }
    payload.update(overrides)
    return payload


@pytest.fixture(autouse=True)
def _reset_telemetry() -> Iterator[None]:
    clear_listeners()
    yield
    clear_listeners()


@pytest.fixture
def profiles() -> ProfileSession:
    return ProfileSession("learner-one")


@pytest.fixture
def storage(profiles: ProfileSession) -> MemoryStorageAdapter:
    return MemoryStorageAdapter(profiles)


@pytest.fixture
def store(storage: MemoryStorageAdapter, profiles: ProfileSession) -> CoreDataStore:
    return CoreDataStore(storage, profiles)


@pytest.fixture
def service(storage: MemoryStorageAdapter, profiles: ProfileSession) -> CoreDataService:
    return CoreDataService(storage, profiles)
