from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterator

import pytest
from fastapi.testclient import TestClient

from conftest import goal_data, node_data
from coredata.main import app
from coredata.routes import get_service
from coredata.service import CoreDataService

BASE = "/api/profiles/learner-one"


@pytest.fixture
def client(service: CoreDataService) -> Iterator[TestClient]:
    app.dependency_overrides[get_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create_goal(client: TestClient, **overrides: Any) -> str:
    response = client.post(f"{BASE}/goals", json=goal_data(**overrides))
    assert response.status_code == 201
    return response.json()["data"]["id"]


def test_healthz(client: TestClient) -> None:
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_create_and_fetch_goal(client: TestClient) -> None:
    goal_id = _create_goal(client)

    response = client.get(f"{BASE}/goals/{goal_id}")

    assert response.status_code == 200
    body = response.json()
    assert body["targetLevel"] == "beginner"
    assert body["status"] == "paused"
    assert [goal["id"] for goal in client.get(f"{BASE}/goals", params={"status": "paused"}).json()] == [goal_id]


def test_invalid_goal_is_422_with_field_errors(client: TestClient) -> None:
    response = client.post(f"{BASE}/goals", json=goal_data(title="", category="cooking"))

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["code"] == "validation_error"
    assert {error["field"] for error in detail["details"]["errors"]} == {"title", "category"}


def test_validate_endpoint_returns_warnings(client: TestClient) -> None:
    response = client.post(f"{BASE}/goals/validate", json=goal_data(estimatedTimeWeeks=200))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["warnings"][0]["field"] == "estimated_time_weeks"


def test_missing_goal_is_404(client: TestClient) -> None:
    assert client.get(f"{BASE}/goals/goal_missing").status_code == 404
    assert client.patch(f"{BASE}/goals/goal_missing", json={"priority": 2}).status_code == 404
    assert client.post(f"{BASE}/goals/goal_missing/activate").status_code == 404
    assert client.post(f"{BASE}/goals/goal_missing/explode").status_code == 404


def test_fourth_activation_is_409(client: TestClient) -> None:
    ids = [_create_goal(client, title=f"Goal {index}") for index in range(4)]
    for goal_id in ids[:3]:
        assert client.post(f"{BASE}/goals/{goal_id}/activate").status_code == 200

    response = client.post(f"{BASE}/goals/{ids[3]}/activate")

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "activation_limit_exceeded"
    stats = client.get(f"{BASE}/goals/activation-stats").json()
    assert stats["active"] == 3
    assert stats["availableSlots"] == 0


def test_batch_activation(client: TestClient) -> None:
    ids = [_create_goal(client, title=f"Goal {index}", priority=index + 1) for index in range(2)]

    response = client.post(f"{BASE}/goals/activate-batch", json={"goalIds": ids, "priorityOrder": True})

    assert response.status_code == 200
    body = response.json()
    assert body["data"]["successCount"] == 2
    assert [item["goalId"] for item in body["data"]["results"]] == [ids[1], ids[0]]


def test_path_flow_and_cascading_delete(client: TestClient) -> None:
    goal_id = _create_goal(client)
    path = client.post(f"{BASE}/paths", json={"goalId": goal_id, "title": "React basics"})
    assert path.status_code == 201
    path_id = path.json()["data"]["id"]

    patched = client.patch(
        f"{BASE}/paths/{path_id}",
        json={"nodes": [node_data("node_1", 120)], "dependencies": []},
    )
    assert patched.json()["data"]["totalEstimatedHours"] == 2.0
    unit = client.post(f"{BASE}/course-units", json={"nodeId": "node_1", "title": "JSX"})
    assert unit.status_code == 201

    assert client.post(f"{BASE}/paths/{path_id}/activate").status_code == 200
    node = client.put(f"{BASE}/paths/{path_id}/nodes/node_1/status", json={"status": "completed"})
    assert node.status_code == 200
    progress = client.get(f"{BASE}/paths/{path_id}/progress").json()
    assert progress["percentage"] == 100.0

    deleted = client.delete(f"{BASE}/goals/{goal_id}")
    assert deleted.status_code == 200
    assert deleted.json()["data"]["pathIds"] == [path_id]
    assert client.get(f"{BASE}/paths").json() == []
    assert client.get(f"{BASE}/course-units").json() == []


def test_path_for_unknown_goal_is_422(client: TestClient) -> None:
    response = client.post(f"{BASE}/paths", json={"goalId": "goal_missing", "title": "Orphan"})

    assert response.status_code == 422


def test_profiles_are_isolated_by_url(client: TestClient) -> None:
    _create_goal(client)

    assert client.get("/api/profiles/learner-two/goals").json() == []
    assert len(client.get(f"{BASE}/goals").json()) == 1


def test_events_status_and_export(client: TestClient) -> None:
    _create_goal(client)
    client.put(f"{BASE}/ability-profile", json={"overallScore": 80})
    client.put(f"{BASE}/metrics", json={"totalStudyTime": 4})
    assert client.post(f"{BASE}/agent-actions", json={"type": "suggest_goal"}).status_code == 201

    events = client.get(f"{BASE}/events", params={"limit": 2}).json()
    status = client.get(f"{BASE}/status").json()
    exported = client.get(f"{BASE}/export").json()
    stats = client.get(f"{BASE}/stats").json()

    assert [event["type"] for event in events] == ["ability_profile_updated", "goal_created"]
    assert status["currentPhase"] == "goal_setting"
    assert exported["data"]["profileId"] == "learner-one"
    assert stats["goals"]["total"] == 1
    assert stats["data"]["totalGoals"] == 1
    assert client.post(f"{BASE}/sync").json()["success"] is True


def test_concurrent_requests_keep_writes_in_their_own_profile(client: TestClient) -> None:
    profiles = [f"learner-{index}" for index in range(4)]

    def post(index: int) -> int:
        profile_id = profiles[index % len(profiles)]
        response = client.post(
            f"/api/profiles/{profile_id}/goals",
            json=goal_data(title=f"{profile_id} goal {index}"),
        )
        return response.status_code

    with ThreadPoolExecutor(max_workers=8) as pool:
        codes = list(pool.map(post, range(200)))

    assert codes == [201] * 200
    for profile_id in profiles:
        titles = [goal["title"] for goal in client.get(f"/api/profiles/{profile_id}/goals").json()]
        assert len(titles) == 50
        assert all(title.startswith(f"{profile_id} goal ") for title in titles)


def test_non_finite_priority_is_422(client: TestClient) -> None:
    body = '{"title": "Learn React", "category": "frontend", "priority": NaN}'

    response = client.post(f"{BASE}/goals", content=body, headers={"Content-Type": "application/json"})

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "validation_error"
