from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from conftest import goal_data, node_data
from coredata.activation import ActivationResult
from coredata.config import Settings
from coredata.profiles import ProfileSession
from coredata.service import CoreDataService, build_service
from coredata.storage import MemoryStorageAdapter


def test_create_goal_failures_come_back_as_results(service: CoreDataService) -> None:
    result = service.create_goal(goal_data(priority=7))

    assert result.success is False
    assert result.error_code == "validation_error"
    assert [error["field"] for error in result.details["errors"]] == ["priority"]
    assert service.list_goals() == []


def test_goal_lifecycle_through_service(service: CoreDataService) -> None:
    created = service.create_goal(goal_data())
    goal_id = created.data.id

    activated = service.activate_goal(goal_id)
    assert activated.success is True
    assert isinstance(activated.data, ActivationResult)

    updated = service.update_goal(goal_id, {"title": "Learn React deeply"})
    assert updated.data.title == "Learn React deeply"
    assert [goal.id for goal in service.list_goals(status="active", query="deeply")] == [goal_id]
    assert service.list_goals(category="ai") == []

    assert service.pause_goal(goal_id).data.new_status == "paused"
    assert service.complete_goal(goal_id).success is True
    assert service.cancel_goal(goal_id).success is True
    assert service.update_goal("goal_missing", {"title": "x"}).error_code == "not_found"


def test_ceiling_failure_is_reported_with_code(service: CoreDataService) -> None:
    ids = [service.create_goal(goal_data(title=f"Goal {index}")).data.id for index in range(4)]

    batch = service.activate_goals(ids)
    refused = service.activate_goal(ids[3])

    assert batch.success is False
    assert batch.data.success_count == 3
    assert refused.success is False
    assert refused.error_code == "activation_limit_exceeded"


def test_configured_ceiling(storage: MemoryStorageAdapter, profiles: ProfileSession) -> None:
    service = CoreDataService(storage, profiles, max_active_goals=1)
    first = service.create_goal(goal_data()).data
    second = service.create_goal(goal_data(title="Second")).data

    assert service.activate_goal(first.id).success is True
    assert service.activate_goal(second.id).error_code == "activation_limit_exceeded"


def test_paths_units_and_cascade(service: CoreDataService) -> None:
    goal = service.create_goal(goal_data()).data
    path = service.create_path({"goalId": goal.id, "title": "React basics"}).data
    service.update_path(path.id, {"nodes": [node_data("node_1"), node_data("node_2", 30)]})
    unit = service.create_course_unit({"nodeId": "node_1", "title": "JSX"}).data

    assert service.activate_path(path.id).success is True
    assert service.update_node_status(path.id, "node_1", "in_progress").success is True
    assert [item.id for item in service.list_course_units(node_id="node_1")] == [unit.id]
    assert service.update_course_unit(unit.id, {"title": "JSX again"}).data.title == "JSX again"
    assert [item.id for item in service.list_paths(goal_id=goal.id, status="active")] == [path.id]
    assert service.get_path(path.id).total_estimated_hours == 1.5

    deleted = service.delete_goal(goal.id)
    assert deleted.success is True
    assert deleted.data.path_ids == [path.id]
    assert service.get_course_unit(unit.id) is None
    assert service.delete_course_unit(unit.id).error_code == "not_found"
    assert service.delete_path(path.id).error_code == "not_found"


def test_create_path_for_missing_goal(service: CoreDataService) -> None:
    result = service.create_path({"goalId": "goal_missing", "title": "Orphan"})

    assert result.success is False
    assert result.error_code == "validation_error"


def test_validate_goal_returns_report(service: CoreDataService) -> None:
    result = service.validate_goal(goal_data(category="cooking"))

    assert result.success is False
    assert result.data.errors[0].field == "category"


def test_profile_switch_isolates_data(service: CoreDataService) -> None:
    service.create_goal(goal_data())
    service.switch_profile("learner-two")

    assert service.list_goals() == []
    service.switch_profile("LEARNER-ONE")
    assert len(service.list_goals()) == 1


def test_profile_scope_holds_the_profile_for_the_whole_block(service: CoreDataService) -> None:
    def create(index: int) -> str:
        profile_id = f"learner-{index % 3}"
        with service.profile_scope(profile_id) as scoped:
            result = scoped.create_goal(goal_data(title=f"{profile_id} goal {index}"))
            return f"{scoped.profiles.current}:{result.data.title}"

    with ThreadPoolExecutor(max_workers=6) as pool:
        created = list(pool.map(create, range(60)))

    assert all(entry.split(":")[1].startswith(entry.split(":")[0]) for entry in created)
    for index in range(3):
        with service.profile_scope(f"learner-{index}") as scoped:
            assert len(scoped.list_goals()) == 20


def test_agent_actions_profile_and_metrics(service: CoreDataService) -> None:
    action = service.record_agent_action("create_goal", {"title": "x"}, {"ok": True})
    assert action.success is True

    saved = service.set_ability_profile({"overallScore": 64, "strengths": ["sql"], "source": "quiz"})
    assert saved.success is True
    assert service.store.get_ability_profile().model_extra == {"source": "quiz"}

    bad_profile = service.set_ability_profile({"overallScore": "lots"})
    assert bad_profile.error_code == "validation_error"

    metrics = service.update_study_metrics(total_study_time=3.5, streak_days=2)
    assert metrics.data.streak_days == 2
    assert service.update_study_metrics(streak_days=-3).error_code == "validation_error"


def test_sync_export_and_stats(service: CoreDataService) -> None:
    service.create_goal(goal_data())

    synced = service.force_sync()
    exported = service.export_data()
    stats = service.data_stats()

    assert synced.data["isValid"] is True
    assert exported.data["coreData"]["goals"][0]["title"] == "Learn React"
    assert stats.data.total_goals == 1
    assert [event.type for event in service.recent_events(event_type="goal_created")] == ["goal_created"]


def test_build_service_uses_settings(tmp_path: Path) -> None:
    settings = Settings(
        COREDATA_STORAGE_BACKEND="memory",
        COREDATA_PROFILE="Default",
        COREDATA_MAX_ACTIVE_GOALS=2,
        COREDATA_EVENT_LOG_LIMIT=10,
        COREDATA_DATA_DIR=tmp_path,
    )

    service = build_service(settings)

    assert service.profiles.current == "default"
    assert service.goals.max_active_goals == 2
    assert isinstance(service.store.storage, MemoryStorageAdapter)
