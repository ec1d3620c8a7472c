"""Profile-scoped REST endpoints over the core data service."""

from __future__ import annotations

import logging
from contextlib import ExitStack, contextmanager
from functools import lru_cache
from typing import Any, Dict, Iterator, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from .errors import CoreDataError
from .results import OperationResult
from .service import CoreDataService, build_service

router = APIRouter(prefix="/api/profiles/{profile_id}", tags=["coredata"])
logger = logging.getLogger(__name__)

ERROR_STATUS: Dict[str, int] = {
    "validation_error": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "not_found": status.HTTP_404_NOT_FOUND,
    "activation_limit_exceeded": status.HTTP_409_CONFLICT,
    "storage_error": status.HTTP_503_SERVICE_UNAVAILABLE,
}

GOAL_ACTIONS: Dict[str, str] = {
    "activate": "activate_goal",
    "pause": "pause_goal",
    "complete": "complete_goal",
    "cancel": "cancel_goal",
}


class NodeStatusRequest(BaseModel):
    status: str = Field(..., min_length=1)


class BatchActivationRequest(BaseModel):
    goal_ids: List[str] = Field(default_factory=list, alias="goalIds")
    priority_order: bool = Field(default=False, alias="priorityOrder")

    model_config = {"populate_by_name": True}


class AgentActionRequest(BaseModel):
    type: str = Field(..., min_length=1)
    params: Any = None
    result: Any = None
    success: bool = True


class StudyMetricsRequest(BaseModel):
    total_study_time: Optional[float] = Field(default=None, alias="totalStudyTime")
    streak_days: Optional[int] = Field(default=None, alias="streakDays")

    model_config = {"populate_by_name": True}


@lru_cache
def _default_service() -> CoreDataService:
    return build_service()


def get_service() -> CoreDataService:
    return _default_service()


def status_for(code: Optional[str]) -> int:
    return ERROR_STATUS.get(code or "", status.HTTP_400_BAD_REQUEST)


def error_detail(message: str, code: Optional[str], details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"message": message, "code": code, "details": details or {}}


@contextmanager
def _scoped(profile_id: str, service: CoreDataService) -> Iterator[CoreDataService]:
    """Hold the shared service on ``profile_id`` until the handler has built its response."""
    with ExitStack() as stack:
        try:
            scoped = stack.enter_context(service.profile_scope(profile_id))
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        yield scoped


def _unwrap(result: OperationResult) -> Dict[str, Any]:
    if not result.success:
        raise HTTPException(
            status_code=status_for(result.error_code),
            detail=error_detail(result.message, result.error_code, result.details),
        )
    return result.to_payload()


def _not_found(entity: str, entity_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=error_detail(f"{entity} '{entity_id}' was not found.", "not_found"),
    )


@router.get("/goals")
def list_goals(
    profile_id: str,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    category: Optional[str] = None,
    q: Optional[str] = None,
    service: CoreDataService = Depends(get_service),
) -> List[Dict[str, Any]]:
    with _scoped(profile_id, service) as scoped:
        goals = scoped.list_goals(status=status_filter, category=category, query=q)
    return [goal.to_payload() for goal in goals]


@router.post("/goals", status_code=status.HTTP_201_CREATED)
def create_goal(
    profile_id: str,
    payload: Dict[str, Any] = Body(...),
    service: CoreDataService = Depends(get_service),
) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return _unwrap(scoped.create_goal(payload))


@router.post("/goals/validate")
def validate_goal(
    profile_id: str,
    payload: Dict[str, Any] = Body(...),
    service: CoreDataService = Depends(get_service),
) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return scoped.validate_goal(payload).to_payload()


@router.post("/goals/activate-batch")
def activate_goals(
    profile_id: str,
    request: BatchActivationRequest,
    service: CoreDataService = Depends(get_service),
) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        result = scoped.activate_goals(request.goal_ids, priority_order=request.priority_order)
    return result.to_payload()


@router.get("/goals/activation-stats")
def activation_stats(profile_id: str, service: CoreDataService = Depends(get_service)) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return scoped.activation.activation_stats().to_payload()


@router.get("/goals/{goal_id}")
def get_goal(profile_id: str, goal_id: str, service: CoreDataService = Depends(get_service)) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        goal = scoped.get_goal(goal_id)
    if goal is None:
        raise _not_found("Goal", goal_id)
    return goal.to_payload()


@router.patch("/goals/{goal_id}")
def update_goal(
    profile_id: str,
    goal_id: str,
    payload: Dict[str, Any] = Body(...),
    service: CoreDataService = Depends(get_service),
) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return _unwrap(scoped.update_goal(goal_id, payload))


@router.delete("/goals/{goal_id}")
def delete_goal(profile_id: str, goal_id: str, service: CoreDataService = Depends(get_service)) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return _unwrap(scoped.delete_goal(goal_id))


@router.post("/goals/{goal_id}/{action}")
def change_goal_status(
    profile_id: str,
    goal_id: str,
    action: str,
    service: CoreDataService = Depends(get_service),
) -> Dict[str, Any]:
    if action not in GOAL_ACTIONS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown goal action '{action}'.")
    with _scoped(profile_id, service) as scoped:
        return _unwrap(getattr(scoped, GOAL_ACTIONS[action])(goal_id))


@router.get("/paths")
def list_paths(
    profile_id: str,
    goal_id: Optional[str] = Query(default=None, alias="goalId"),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    service: CoreDataService = Depends(get_service),
) -> List[Dict[str, Any]]:
    with _scoped(profile_id, service) as scoped:
        paths = scoped.list_paths(goal_id=goal_id, status=status_filter)
    return [path.to_payload() for path in paths]


@router.post("/paths", status_code=status.HTTP_201_CREATED)
def create_path(
    profile_id: str,
    payload: Dict[str, Any] = Body(...),
    service: CoreDataService = Depends(get_service),
) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return _unwrap(scoped.create_path(payload))


@router.get("/paths/{path_id}")
def get_path(profile_id: str, path_id: str, service: CoreDataService = Depends(get_service)) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        path = scoped.get_path(path_id)
    if path is None:
        raise _not_found("Path", path_id)
    return path.to_payload()


@router.patch("/paths/{path_id}")
def update_path(
    profile_id: str,
    path_id: str,
    payload: Dict[str, Any] = Body(...),
    service: CoreDataService = Depends(get_service),
) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return _unwrap(scoped.update_path(path_id, payload))


@router.delete("/paths/{path_id}")
def delete_path(profile_id: str, path_id: str, service: CoreDataService = Depends(get_service)) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return _unwrap(scoped.delete_path(path_id))


@router.post("/paths/{path_id}/activate")
def activate_path(profile_id: str, path_id: str, service: CoreDataService = Depends(get_service)) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return _unwrap(scoped.activate_path(path_id))


@router.get("/paths/{path_id}/progress")
def path_progress(profile_id: str, path_id: str, service: CoreDataService = Depends(get_service)) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        progress = scoped.stats.path_progress(path_id)
    if progress is None:
        raise _not_found("Path", path_id)
    return progress.to_payload()


@router.put("/paths/{path_id}/nodes/{node_id}/status")
def update_node_status(
    profile_id: str,
    path_id: str,
    node_id: str,
    request: NodeStatusRequest,
    service: CoreDataService = Depends(get_service),
) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return _unwrap(scoped.update_node_status(path_id, node_id, request.status))


@router.get("/course-units")
def list_course_units(
    profile_id: str,
    node_id: Optional[str] = Query(default=None, alias="nodeId"),
    service: CoreDataService = Depends(get_service),
) -> List[Dict[str, Any]]:
    with _scoped(profile_id, service) as scoped:
        units = scoped.list_course_units(node_id=node_id)
    return [unit.to_payload() for unit in units]


@router.post("/course-units", status_code=status.HTTP_201_CREATED)
def create_course_unit(
    profile_id: str,
    payload: Dict[str, Any] = Body(...),
    service: CoreDataService = Depends(get_service),
) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return _unwrap(scoped.create_course_unit(payload))


@router.get("/course-units/{unit_id}")
def get_course_unit(profile_id: str, unit_id: str, service: CoreDataService = Depends(get_service)) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        unit = scoped.get_course_unit(unit_id)
    if unit is None:
        raise _not_found("Course unit", unit_id)
    return unit.to_payload()


@router.patch("/course-units/{unit_id}")
def update_course_unit(
    profile_id: str,
    unit_id: str,
    payload: Dict[str, Any] = Body(...),
    service: CoreDataService = Depends(get_service),
) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return _unwrap(scoped.update_course_unit(unit_id, payload))


@router.delete("/course-units/{unit_id}")
def delete_course_unit(profile_id: str, unit_id: str, service: CoreDataService = Depends(get_service)) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return _unwrap(scoped.delete_course_unit(unit_id))


@router.get("/events")
def recent_events(
    profile_id: str,
    limit: int = Query(default=50, ge=1, le=1000),
    event_type: Optional[str] = Query(default=None, alias="type"),
    service: CoreDataService = Depends(get_service),
) -> List[Dict[str, Any]]:
    with _scoped(profile_id, service) as scoped:
        events = scoped.recent_events(limit, event_type)
    return [event.to_payload() for event in events]


@router.post("/agent-actions", status_code=status.HTTP_201_CREATED)
def record_agent_action(
    profile_id: str,
    request: AgentActionRequest,
    service: CoreDataService = Depends(get_service),
) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return _unwrap(
            scoped.record_agent_action(
                request.type,
                request.params,
                request.result,
                success=request.success,
            )
        )


@router.put("/ability-profile")
def set_ability_profile(
    profile_id: str,
    payload: Dict[str, Any] = Body(...),
    service: CoreDataService = Depends(get_service),
) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return _unwrap(scoped.set_ability_profile(payload))


@router.put("/metrics")
def update_study_metrics(
    profile_id: str,
    request: StudyMetricsRequest,
    service: CoreDataService = Depends(get_service),
) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return _unwrap(
            scoped.update_study_metrics(
                total_study_time=request.total_study_time,
                streak_days=request.streak_days,
            )
        )


@router.get("/stats")
def stats(profile_id: str, service: CoreDataService = Depends(get_service)) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return {
            "goals": scoped.stats.goal_stats().to_payload(),
            "paths": scoped.stats.path_stats().to_payload(),
            "content": scoped.stats.content_stats().to_payload(),
            "nodeCompletion": scoped.stats.node_completion(),
            "data": _unwrap(scoped.data_stats())["data"],
        }


@router.get("/status")
def system_status(profile_id: str, service: CoreDataService = Depends(get_service)) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return scoped.stats.system_status().to_payload()


@router.post("/sync")
def force_sync(profile_id: str, service: CoreDataService = Depends(get_service)) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return _unwrap(scoped.force_sync())


@router.get("/export")
def export_data(profile_id: str, service: CoreDataService = Depends(get_service)) -> Dict[str, Any]:
    with _scoped(profile_id, service) as scoped:
        return _unwrap(scoped.export_data())


def core_data_error_payload(exc: CoreDataError) -> Dict[str, Any]:
    return error_detail(exc.message, exc.code, exc.details)


__all__ = [
    "core_data_error_payload",
    "get_service",
    "router",
    "status_for",
]
