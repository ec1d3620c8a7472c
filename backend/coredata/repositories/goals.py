"""Goal repository: CRUD, validation and named status transitions."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from ..cascade import CascadeReport, apply_cascade, plan_goal_removal
from ..errors import NotFoundError, ValidationError
from ..models import CreateGoalData, Goal
from ..rules import DEFAULT_MAX_ACTIVE_GOALS, ensure_goal_capacity
from ..store import CoreDataStore
from ..validation import ValidationReport, validate_goal
from .base import StoreRepository, build_model, resolve_changes

logger = logging.getLogger(__name__)

GoalInput = Union[CreateGoalData, Mapping[str, Any]]

_CREATE_DEFAULTS: Dict[str, Any] = {"description": "", "priority": 3}


class GoalRepository(StoreRepository):
    entity = "goal"

    def __init__(self, store: CoreDataStore, *, max_active_goals: int = DEFAULT_MAX_ACTIVE_GOALS) -> None:
        super().__init__(store)
        self.max_active_goals = max_active_goals

    def _create_payload(self, data: GoalInput) -> tuple[Dict[str, Any], ValidationReport]:
        if isinstance(data, CreateGoalData):
            raw: Mapping[str, Any] = data.model_dump(exclude_none=True)
        else:
            raw = data
        payload, report = resolve_changes(CreateGoalData, raw, immutable=())
        for key, value in _CREATE_DEFAULTS.items():
            payload.setdefault(key, value)
        return payload, report

    def validate(self, data: GoalInput) -> ValidationReport:
        payload, report = self._create_payload(data)
        return report.extend(validate_goal(payload))

    def get_all(self) -> List[Goal]:
        return self._load().goals

    def get_by_id(self, goal_id: str) -> Optional[Goal]:
        return self._load().find_goal(goal_id)

    def get_by_status(self, status: str) -> List[Goal]:
        return [goal for goal in self.get_all() if goal.status == status]

    def get_by_category(self, category: str) -> List[Goal]:
        return [goal for goal in self.get_all() if goal.category == category]

    def search(self, query: str) -> List[Goal]:
        needle = query.strip().lower()
        if not needle:
            return self.get_all()
        results = []
        for goal in self.get_all():
            haystack = [goal.title, goal.description, goal.category, *goal.required_skills, *goal.outcomes]
            if any(needle in text.lower() for text in haystack):
                results.append(goal)
        return results

    def create(self, data: GoalInput) -> Goal:
        payload, report = self._create_payload(data)
        report.extend(validate_goal(payload))
        if not report.is_valid:
            raise ValidationError(self.entity, report)

        goal = build_model(Goal, self.entity, {k: v for k, v in payload.items() if v is not None})
        document = self._load()
        if goal.status == "active":
            ensure_goal_capacity(document, goal.id, self.max_active_goals)
        document.goals.append(goal)
        self._commit(
            document,
            "goal_created",
            {"goalId": goal.id, "title": goal.title, "category": goal.category},
        )
        logger.info("Goal created: %s (%s)", goal.title, goal.id)
        return goal

    def update(self, goal_id: str, partial: Mapping[str, Any]) -> Goal:
        """Merge ``partial`` into the goal and persist it.

        Raises ``NotFoundError`` for an unknown id, ``ValidationError`` when the
        merged record breaks a rule and ``ActivationLimitExceeded`` when the
        update would activate a goal beyond the ceiling.
        """
        document = self._load()
        current = document.find_goal(goal_id)
        if current is None:
            raise NotFoundError(self.entity, goal_id)

        changes, report = resolve_changes(Goal, partial)
        merged = current.model_dump()
        merged.update(changes)
        report.extend(validate_goal(merged))
        if not report.is_valid:
            raise ValidationError(self.entity, report)

        changed = [name for name, value in changes.items() if getattr(current, name) != value]
        if not changed:
            return current
        if merged["status"] == "active" and current.status != "active":
            ensure_goal_capacity(document, goal_id, self.max_active_goals)

        merged["updated_at"] = max(datetime.now(timezone.utc), current.updated_at)
        updated = build_model(Goal, self.entity, merged)
        index = document.goals.index(current)
        document.goals[index] = updated
        self._commit(
            document,
            "goal_updated",
            {"goalId": goal_id, "title": updated.title, "changes": changed},
        )
        return updated

    def delete_with_report(self, goal_id: str) -> Optional[CascadeReport]:
        document = self._load()
        goal = document.find_goal(goal_id)
        if goal is None:
            return None
        report = plan_goal_removal(document, goal_id)
        apply_cascade(document, report)
        self._commit(
            document,
            "goal_deleted",
            {
                "goalId": goal_id,
                "title": goal.title,
                "relatedPathsDeleted": len(report.path_ids),
                "removedPathIds": report.path_ids,
                "removedCourseUnitIds": report.course_unit_ids,
            },
        )
        logger.info(
            "Goal %s deleted with %d paths and %d course units",
            goal_id,
            len(report.path_ids),
            len(report.course_unit_ids),
        )
        return report

    def delete(self, goal_id: str) -> bool:
        return self.delete_with_report(goal_id) is not None

    def activate(self, goal_id: str) -> Goal:
        return self.update(goal_id, {"status": "active"})

    def pause(self, goal_id: str) -> Goal:
        return self.update(goal_id, {"status": "paused"})

    def complete(self, goal_id: str) -> Goal:
        return self.update(goal_id, {"status": "completed"})

    def cancel(self, goal_id: str) -> Goal:
        return self.update(goal_id, {"status": "cancelled"})


__all__ = ["GoalRepository"]
