"""Cross-entity activation rules: the goal ceiling and one active path per goal."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from pydantic import Field

from .cascade import CascadeReport
from .errors import ActivationLimitExceeded, CoreDataError
from .models import CoreModel, Goal
from .repositories.goals import GoalRepository
from .repositories.paths import PathRepository
from .results import OperationResult
from .rules import lowest_priority_goal

logger = logging.getLogger(__name__)


class ActivationResult(CoreModel):
    success: bool
    goal_id: str
    old_status: str
    new_status: str
    message: str
    error_code: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    affected_paths: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class PathActivationResult(CoreModel):
    success: bool
    path_id: str
    goal_id: Optional[str] = None
    message: str
    error_code: Optional[str] = None
    frozen_path_ids: List[str] = Field(default_factory=list)


class BatchActivationResult(CoreModel):
    success_count: int
    failure_count: int
    results: List[ActivationResult]
    summary: str
    recommendations: List[str] = Field(default_factory=list)


class RecentActivation(CoreModel):
    goal_id: str
    title: str
    activated_at: datetime
    days_since_activation: int


class ActivationStats(CoreModel):
    total: int
    active: int
    paused: int
    completed: int
    cancelled: int
    max_active: int
    available_slots: int
    utilization_rate: float
    completion_rate: float
    recent_activations: List[RecentActivation] = Field(default_factory=list)


class ActivationManager:
    """Applies goal and path status changes and reports them as result objects.

    Business failures never raise out of this class: they come back as results
    with ``success=False`` and the error taxonomy ``code`` in ``error_code``.
    """

    def __init__(self, goals: GoalRepository, paths: PathRepository) -> None:
        self._goals = goals
        self._paths = paths
        self._store = goals.store

    @property
    def max_active_goals(self) -> int:
        return self._goals.max_active_goals

    def activate_goal(self, goal_id: str, *, reason: str = "manual_activation") -> ActivationResult:
        goal = self._goals.get_by_id(goal_id)
        if goal is None:
            return self._missing_goal(goal_id, "active")
        if goal.status == "active":
            return ActivationResult(
                success=True,
                goal_id=goal_id,
                old_status="active",
                new_status="active",
                message="Goal is already active.",
                recommendations=["Keep focusing on the current goal."],
            )

        try:
            self._goals.activate(goal_id)
        except ActivationLimitExceeded as exc:
            suggestion = lowest_priority_goal(self._goals.get_by_status("active"))
            recommendations = (
                [f"Consider pausing '{suggestion.title}' first."]
                if suggestion
                else ["Pause or complete another goal first."]
            )
            logger.info("Activation of %s refused: ceiling of %d reached", goal_id, exc.limit)
            return ActivationResult(
                success=False,
                goal_id=goal_id,
                old_status=goal.status,
                new_status=goal.status,
                message=exc.message,
                error_code=exc.code,
                recommendations=recommendations,
            )
        except CoreDataError as exc:
            return self._failure(goal, "active", exc)

        active_count = len(self._goals.get_by_status("active"))
        self._store.append_event(
            "goal_activated",
            {
                "goalId": goal_id,
                "title": goal.title,
                "previousStatus": goal.status,
                "reason": reason,
                "currentActiveCount": active_count,
            },
        )
        recommendations: List[str] = []
        if goal.status == "paused":
            recommendations.append("Check whether the goal's learning path needs updating.")
        if active_count >= self.max_active_goals:
            recommendations.append("All activation slots are in use; plan study time accordingly.")
        return ActivationResult(
            success=True,
            goal_id=goal_id,
            old_status=goal.status,
            new_status="active",
            message="Goal activated.",
            recommendations=recommendations,
        )

    def pause_goal(self, goal_id: str, *, reason: str = "manual_pause") -> ActivationResult:
        return self._transition(
            goal_id,
            "paused",
            "goal_paused",
            reason,
            message="Goal paused.",
            recommendations=["Focus on your other goals meanwhile.", "Reactivate the goal when you are ready."],
        )

    def complete_goal(self, goal_id: str) -> ActivationResult:
        return self._transition(
            goal_id,
            "completed",
            "goal_completed",
            "manual_completion",
            message="Goal completed.",
            recommendations=["Set a new learning goal.", "Consider sharing what you built."],
        )

    def cancel_goal(self, goal_id: str) -> ActivationResult:
        return self._transition(
            goal_id,
            "cancelled",
            "goal_cancelled",
            "manual_cancel",
            message="Goal cancelled.",
        )

    def _transition(
        self,
        goal_id: str,
        status: str,
        event_type: str,
        reason: str,
        *,
        message: str,
        recommendations: Sequence[str] = (),
    ) -> ActivationResult:
        goal = self._goals.get_by_id(goal_id)
        if goal is None:
            return self._missing_goal(goal_id, status)
        if goal.status == status:
            return ActivationResult(
                success=True,
                goal_id=goal_id,
                old_status=status,
                new_status=status,
                message=f"Goal is already {status}.",
            )
        try:
            self._goals.update(goal_id, {"status": status})
        except CoreDataError as exc:
            return self._failure(goal, status, exc)
        self._store.append_event(
            event_type,
            {"goalId": goal_id, "title": goal.title, "previousStatus": goal.status, "reason": reason},
        )
        return ActivationResult(
            success=True,
            goal_id=goal_id,
            old_status=goal.status,
            new_status=status,
            message=message,
            recommendations=list(recommendations),
        )

    def activate_path(self, path_id: str) -> PathActivationResult:
        path = self._paths.get_by_id(path_id)
        if path is None:
            return PathActivationResult(
                success=False,
                path_id=path_id,
                message=f"Path '{path_id}' was not found.",
                error_code="not_found",
            )
        if path.status == "active":
            return PathActivationResult(
                success=True,
                path_id=path_id,
                goal_id=path.goal_id,
                message="Path is already active.",
            )
        try:
            _, frozen = self._paths.activate(path_id)
        except CoreDataError as exc:
            return PathActivationResult(
                success=False,
                path_id=path_id,
                goal_id=path.goal_id,
                message=exc.message,
                error_code=exc.code,
            )
        self._store.append_event(
            "path_activated",
            {"pathId": path_id, "goalId": path.goal_id, "frozenPathIds": frozen},
        )
        message = "Path activated."
        if frozen:
            message = f"Path activated; {len(frozen)} other path(s) of this goal were frozen."
        return PathActivationResult(
            success=True,
            path_id=path_id,
            goal_id=path.goal_id,
            message=message,
            frozen_path_ids=frozen,
        )

    def activate_goals(self, goal_ids: Sequence[str], *, priority_order: bool = False) -> BatchActivationResult:
        ordered = list(goal_ids)
        if priority_order:
            known = {goal.id: goal for goal in self._goals.get_all()}
            ordered.sort(key=lambda goal_id: -known[goal_id].priority if goal_id in known else math.inf)

        results = [self.activate_goal(goal_id, reason="batch_activation") for goal_id in ordered]
        success_count = sum(1 for result in results if result.success)
        failure_count = len(results) - success_count
        self._store.append_event(
            "goals_batch_activated",
            {
                "requestedGoals": len(ordered),
                "successCount": success_count,
                "failureCount": failure_count,
                "priorityOrder": priority_order,
            },
        )
        recommendations: List[str] = []
        if success_count:
            recommendations.append(f"Activated {success_count} goal(s).")
        if failure_count:
            recommendations.append(f"{failure_count} goal(s) could not be activated; check the individual results.")
        return BatchActivationResult(
            success_count=success_count,
            failure_count=failure_count,
            results=results,
            summary=f"Batch activation finished: {success_count} succeeded, {failure_count} failed.",
            recommendations=recommendations,
        )

    def reorder_active_goals(self, goal_ids: Sequence[str]) -> BatchActivationResult:
        """Pause every active goal, then activate ``goal_ids`` in order up to the ceiling."""
        paused = [
            self.pause_goal(goal.id, reason="reorder")
            for goal in self._goals.get_by_status("active")
        ]
        activated = [
            self.activate_goal(goal_id, reason="reorder")
            for goal_id in list(goal_ids)[: self.max_active_goals]
        ]
        results = paused + activated
        success_count = sum(1 for result in results if result.success)
        return BatchActivationResult(
            success_count=success_count,
            failure_count=len(results) - success_count,
            results=results,
            summary=f"Reorder finished: {success_count} succeeded, {len(results) - success_count} failed.",
        )

    def activation_stats(self) -> ActivationStats:
        goals = self._goals.get_all()
        counts = {status: 0 for status in ("active", "paused", "completed", "cancelled")}
        for goal in goals:
            counts[goal.status] += 1
        total = len(goals)
        limit = self.max_active_goals
        now = datetime.now(timezone.utc)
        recent = sorted(
            (
                RecentActivation(
                    goal_id=goal.id,
                    title=goal.title,
                    activated_at=goal.updated_at,
                    days_since_activation=max((now - goal.updated_at).days, 0),
                )
                for goal in goals
                if goal.status == "active"
            ),
            key=lambda item: item.days_since_activation,
            reverse=True,
        )[:5]
        return ActivationStats(
            total=total,
            max_active=limit,
            available_slots=max(0, limit - counts["active"]),
            utilization_rate=round(counts["active"] / limit * 100, 1) if limit else 0.0,
            completion_rate=round(counts["completed"] / total * 100, 1) if total else 0.0,
            recent_activations=recent,
            **counts,
        )

    def delete_goal(self, goal_id: str) -> OperationResult:
        try:
            report = self._goals.delete_with_report(goal_id)
        except CoreDataError as exc:
            return OperationResult.from_error(exc)
        if report is None:
            return OperationResult.fail(f"Goal '{goal_id}' was not found.", error_code="not_found")
        return OperationResult.ok(report, _cascade_message("Goal", report))

    def delete_path(self, path_id: str) -> OperationResult:
        try:
            report = self._paths.delete_with_report(path_id)
        except CoreDataError as exc:
            return OperationResult.from_error(exc)
        if report is None:
            return OperationResult.fail(f"Path '{path_id}' was not found.", error_code="not_found")
        return OperationResult.ok(report, _cascade_message("Path", report))

    def _missing_goal(self, goal_id: str, target: str) -> ActivationResult:
        return ActivationResult(
            success=False,
            goal_id=goal_id,
            old_status="unknown",
            new_status=target,
            message=f"Goal '{goal_id}' was not found.",
            error_code="not_found",
        )

    def _failure(self, goal: Goal, target: str, exc: CoreDataError) -> ActivationResult:
        logger.warning("Status change of %s to %s failed: %s", goal.id, target, exc.message)
        return ActivationResult(
            success=False,
            goal_id=goal.id,
            old_status=goal.status,
            new_status=goal.status,
            message=exc.message,
            error_code=exc.code,
        )


def _cascade_message(entity: str, report: CascadeReport) -> str:
    parts = []
    if report.path_ids and entity == "Goal":
        parts.append(f"{len(report.path_ids)} path(s)")
    if report.course_unit_ids:
        parts.append(f"{len(report.course_unit_ids)} course unit(s)")
    if not parts:
        return f"{entity} deleted."
    return f"{entity} deleted together with {' and '.join(parts)}."


__all__ = [
    "ActivationManager",
    "ActivationResult",
    "ActivationStats",
    "BatchActivationResult",
    "PathActivationResult",
    "RecentActivation",
]
