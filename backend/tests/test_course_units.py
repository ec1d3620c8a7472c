from __future__ import annotations

import pytest

from conftest import goal_data, node_data
from coredata.errors import NotFoundError, ValidationError
from coredata.repositories import CourseUnitRepository, GoalRepository, PathRepository
from coredata.store import CoreDataStore


@pytest.fixture
def units(store: CoreDataStore) -> CourseUnitRepository:
    goal = GoalRepository(store).create(goal_data())
    paths = PathRepository(store)
    path = paths.create({"goalId": goal.id, "title": "React basics"})
    paths.update(path.id, {"nodes": [node_data("node_a"), node_data("node_b")]})
    return CourseUnitRepository(store)


def test_create_binds_unit_to_existing_node(units: CourseUnitRepository, store: CoreDataStore) -> None:
    unit = units.create(
        {
            "nodeId": "node_a",
            "title": "JSX in depth",
            "type": "example",
            "content": {"markdown": "# JSX"},
            "metadata": {"difficulty": 2, "estimatedTime": 20, "learningObjectives": ["Read JSX"]},
        }
    )

    assert unit.id.startswith("unit_")
    assert unit.metadata.estimated_time == 20
    assert units.get_by_id(unit.id) == unit
    event = store.recent_events(limit=1)[0]
    assert event.type == "course_unit_created"
    assert event.data["nodeId"] == "node_a"


def test_create_rejects_unknown_node(units: CourseUnitRepository) -> None:
    with pytest.raises(ValidationError) as excinfo:
        units.create({"nodeId": "node_missing", "title": "Nowhere"})

    assert excinfo.value.fields == ["node_id"]
    assert units.get_all() == []


def test_validate_reports_range_and_warnings(units: CourseUnitRepository) -> None:
    report = units.validate(
        {"nodeId": "node_a", "title": "Quiz", "type": "quiz", "metadata": {"difficulty": 7}}
    )

    assert report.is_valid is False
    assert [error.field for error in report.errors] == ["metadata.difficulty"]
    assert {warning.field for warning in report.warnings} == {"metadata.learning_objectives", "content"}

    clean = units.validate({"nodeId": "node_b", "title": "Practice", "type": "exercise"})
    assert clean.is_valid is True


def test_validate_rejects_unknown_type(units: CourseUnitRepository) -> None:
    report = units.validate({"nodeId": "node_a", "title": "Odd", "type": "podcast"})

    assert [error.code for error in report.errors] == ["INVALID_VALUE"]


def test_get_by_node_orders_by_position(units: CourseUnitRepository) -> None:
    last = units.create({"nodeId": "node_a", "title": "Unordered"})
    second = units.create({"nodeId": "node_a", "title": "Second", "metadata": {"order": 2}})
    first = units.create({"nodeId": "node_a", "title": "First", "metadata": {"order": 1}})
    units.create({"nodeId": "node_b", "title": "Elsewhere"})

    assert [unit.id for unit in units.get_by_node("node_a")] == [first.id, second.id, last.id]


def test_update_moves_unit_and_checks_reference(units: CourseUnitRepository, store: CoreDataStore) -> None:
    unit = units.create({"nodeId": "node_a", "title": "JSX"})

    moved = units.update(unit.id, {"nodeId": "node_b", "title": "JSX again"})

    assert moved.node_id == "node_b"
    assert store.recent_events(limit=1)[0].data["changes"] == ["node_id", "title"]
    with pytest.raises(ValidationError):
        units.update(unit.id, {"nodeId": "node_gone"})
    with pytest.raises(NotFoundError):
        units.update("unit_missing", {"title": "x"})


def test_unchanged_update_does_not_write(units: CourseUnitRepository, store: CoreDataStore) -> None:
    unit = units.create({"nodeId": "node_a", "title": "JSX"})
    before = len(store.load().events)

    assert units.update(unit.id, {"title": "JSX"}) == unit
    assert len(store.load().events) == before


def test_delete_is_idempotent(units: CourseUnitRepository, store: CoreDataStore) -> None:
    unit = units.create({"nodeId": "node_a", "title": "JSX"})

    assert units.delete(unit.id) is True
    assert units.delete(unit.id) is False
    assert store.recent_events(limit=1)[0].type == "course_unit_deleted"
