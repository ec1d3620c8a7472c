"""Read-only views derived from the core data document on every call."""

from __future__ import annotations

import math
from collections import Counter
from typing import Dict, List, Literal, Optional

from pydantic import Field

from .models import CoreDocument, CoreModel, LearningPath
from .store import CoreDataStore, IntegrityReport

Phase = Literal["assessment", "goal_setting", "path_planning", "learning", "review"]

SECONDS_PER_WEEK = 7 * 24 * 60 * 60
MAX_RECOMMENDATIONS = 3


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class GoalStats(CoreModel):
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_category: Dict[str, int] = Field(default_factory=dict)
    average_completion_weeks: int = 0


class PathStats(CoreModel):
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    total_estimated_hours: float = 0.0
    average_progress: float = 0.0


class ContentStats(CoreModel):
    total: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
    total_estimated_minutes: int = 0
    average_difficulty: float = 0.0


class PathProgress(CoreModel):
    path_id: str
    total_nodes: int
    completed_nodes: int
    in_progress_nodes: int
    percentage: float


class ProgressSummary(CoreModel):
    has_ability_profile: bool
    active_goals: int
    active_paths: int
    completed_nodes: int
    total_nodes: int
    overall_progress: float


class HealthFlags(CoreModel):
    integrity_ok: bool
    issues: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    missing_data: List[str] = Field(default_factory=list)


class SystemStatus(CoreModel):
    setup_complete: bool
    current_phase: Phase
    progress: ProgressSummary
    recommendations: List[str] = Field(default_factory=list)
    next_actions: List[str] = Field(default_factory=list)
    health: HealthFlags


def goal_stats(document: CoreDocument) -> GoalStats:
    goals = document.goals
    completed = [goal for goal in goals if goal.status == "completed"]
    average = 0
    if completed:
        weeks = [
            math.ceil((goal.updated_at - goal.created_at).total_seconds() / SECONDS_PER_WEEK)
            for goal in completed
        ]
        average = _round_half_up(sum(weeks) / len(weeks))
    return GoalStats(
        total=len(goals),
        by_status=dict(Counter(goal.status for goal in goals)),
        by_category=dict(Counter(goal.category for goal in goals)),
        average_completion_weeks=average,
    )


def path_progress(path: LearningPath) -> PathProgress:
    total = len(path.nodes)
    completed = sum(1 for node in path.nodes if node.status == "completed")
    in_progress = sum(1 for node in path.nodes if node.status == "in_progress")
    return PathProgress(
        path_id=path.id,
        total_nodes=total,
        completed_nodes=completed,
        in_progress_nodes=in_progress,
        percentage=round(completed / total * 100, 1) if total else 0.0,
    )


def path_stats(document: CoreDocument) -> PathStats:
    paths = document.paths
    progress = [path_progress(path).percentage for path in paths]
    return PathStats(
        total=len(paths),
        by_status=dict(Counter(path.status for path in paths)),
        total_estimated_hours=round(sum(path.total_estimated_hours for path in paths), 1),
        average_progress=round(sum(progress) / len(progress), 1) if progress else 0.0,
    )


def content_stats(document: CoreDocument) -> ContentStats:
    units = document.course_units
    return ContentStats(
        total=len(units),
        by_type=dict(Counter(unit.type for unit in units)),
        total_estimated_minutes=sum(unit.metadata.estimated_time for unit in units),
        average_difficulty=(
            round(sum(unit.metadata.difficulty for unit in units) / len(units), 1) if units else 0.0
        ),
    )


def node_completion(document: CoreDocument) -> float:
    """Percentage of completed nodes across active paths; 0 when there are none."""
    nodes = [node for path in document.paths if path.status == "active" for node in path.nodes]
    if not nodes:
        return 0.0
    completed = sum(1 for node in nodes if node.status == "completed")
    return round(completed / len(nodes) * 100, 1)


def current_phase(document: CoreDocument) -> Phase:
    if document.ability_profile is None:
        return "assessment"
    if not any(goal.status == "active" for goal in document.goals):
        return "goal_setting"
    active_paths = [path for path in document.paths if path.status == "active"]
    if not active_paths:
        return "path_planning"
    if any(node.status == "in_progress" for path in active_paths for node in path.nodes):
        return "learning"
    return "review"


def _progress(document: CoreDocument) -> ProgressSummary:
    active_paths = [path for path in document.paths if path.status == "active"]
    nodes = [node for path in active_paths for node in path.nodes]
    return ProgressSummary(
        has_ability_profile=document.ability_profile is not None,
        active_goals=sum(1 for goal in document.goals if goal.status == "active"),
        active_paths=len(active_paths),
        completed_nodes=sum(1 for node in nodes if node.status == "completed"),
        total_nodes=len(nodes),
        overall_progress=node_completion(document),
    )


def _recommendations(phase: Phase, progress: ProgressSummary) -> List[str]:
    recommendations: List[str] = []
    if not progress.has_ability_profile:
        recommendations.append("Complete the ability assessment to personalise your goals.")
    if progress.active_goals == 0:
        recommendations.append("Set and activate a learning goal.")
    if progress.active_goals and progress.active_paths == 0:
        recommendations.append("Generate a learning path for your active goal.")
    if phase == "review" and progress.total_nodes:
        if progress.completed_nodes == progress.total_nodes:
            recommendations.append("Every node is complete; review the path or set a new goal.")
        else:
            recommendations.append("Start the next node of your active path.")
    return recommendations[:MAX_RECOMMENDATIONS]


_NEXT_ACTIONS: Dict[str, List[str]] = {
    "assessment": ["Take the ability assessment."],
    "goal_setting": ["Create a goal.", "Activate one of your paused goals."],
    "path_planning": ["Create a path for an active goal.", "Activate a draft path."],
    "learning": ["Continue the node in progress."],
    "review": ["Pick the next node to start.", "Review completed nodes."],
}


def system_status(document: CoreDocument, integrity: Optional[IntegrityReport] = None) -> SystemStatus:
    phase = current_phase(document)
    progress = _progress(document)
    missing = []
    if not progress.has_ability_profile:
        missing.append("abilityProfile")
    if not document.goals:
        missing.append("goals")
    if not document.paths:
        missing.append("paths")
    health = HealthFlags(
        integrity_ok=integrity.is_valid if integrity else True,
        issues=list(integrity.issues) if integrity else [],
        warnings=list(integrity.warnings) if integrity else [],
        missing_data=missing,
    )
    return SystemStatus(
        setup_complete=bool(progress.has_ability_profile and progress.active_goals and progress.active_paths),
        current_phase=phase,
        progress=progress,
        recommendations=_recommendations(phase, progress),
        next_actions=list(_NEXT_ACTIONS[phase]),
        health=health,
    )


class StatsAggregator:
    """Thin wrapper that always reads the latest document before computing."""

    def __init__(self, store: CoreDataStore) -> None:
        self._store = store

    def goal_stats(self) -> GoalStats:
        return goal_stats(self._store.load())

    def path_stats(self) -> PathStats:
        return path_stats(self._store.load())

    def content_stats(self) -> ContentStats:
        return content_stats(self._store.load())

    def path_progress(self, path_id: str) -> Optional[PathProgress]:
        path = self._store.load().find_path(path_id)
        return path_progress(path) if path else None

    def node_completion(self) -> float:
        return node_completion(self._store.load())

    def current_phase(self) -> Phase:
        return current_phase(self._store.load())

    def system_status(self) -> SystemStatus:
        return system_status(self._store.load(), self._store.check_integrity())


__all__ = [
    "ContentStats",
    "GoalStats",
    "HealthFlags",
    "PathProgress",
    "PathStats",
    "ProgressSummary",
    "StatsAggregator",
    "SystemStatus",
    "content_stats",
    "current_phase",
    "goal_stats",
    "node_completion",
    "path_progress",
    "path_stats",
    "system_status",
]
