"""Path repository: learning paths, their nodes and per-goal exclusivity."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Tuple, Union

from ..cascade import CascadeReport, apply_cascade, plan_node_removal, plan_path_removal
from ..errors import NotFoundError, ValidationError
from ..models import NODE_STATUSES, CoreDocument, CreatePathData, Goal, LearningPath
from ..rules import active_sibling_paths
from ..validation import INVALID_VALUE, ValidationReport, validate_path
from .base import IMMUTABLE_FIELDS, StoreRepository, build_model, coerce_input, resolve_changes

logger = logging.getLogger(__name__)

PathInput = Union[CreatePathData, Mapping[str, Any]]

_DERIVED_FIELDS = IMMUTABLE_FIELDS | {"total_estimated_hours"}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def estimated_hours(path: LearningPath) -> float:
    return round(sum(node.estimated_minutes for node in path.nodes) / 60, 1)


def _foreign_node_ids(document: CoreDocument, path_id: str) -> set[str]:
    return {node.id for path in document.paths if path.id != path_id for node in path.nodes}


class PathRepository(StoreRepository):
    entity = "path"

    def get_all(self) -> List[LearningPath]:
        return self._load().paths

    def get_by_id(self, path_id: str) -> Optional[LearningPath]:
        return self._load().find_path(path_id)

    def get_all_by_goal(self, goal_id: str) -> List[LearningPath]:
        return [path for path in self.get_all() if path.goal_id == goal_id]

    def get_by_status(self, status: str) -> List[LearningPath]:
        return [path for path in self.get_all() if path.status == status]

    def goal_for_path(self, path_id: str) -> Optional[Goal]:
        document = self._load()
        path = document.find_path(path_id)
        return document.find_goal(path.goal_id) if path else None

    def create(self, data: PathInput) -> LearningPath:
        request = coerce_input(CreatePathData, self.entity, data)
        document = self._load()
        path = build_model(
            LearningPath,
            self.entity,
            {"goal_id": request.goal_id, "title": request.title, "description": request.description},
        )
        report = validate_path(
            path,
            goal_ids=[goal.id for goal in document.goals],
            foreign_node_ids=set(),
        )
        if not report.is_valid:
            raise ValidationError(self.entity, report)

        document.paths.append(path)
        self._commit(
            document,
            "path_created",
            {"pathId": path.id, "goalId": path.goal_id, "title": path.title},
        )
        logger.info("Path created: %s for goal %s", path.id, path.goal_id)
        return path

    def update(self, path_id: str, partial: Mapping[str, Any]) -> LearningPath:
        """Merge ``partial`` into the path, re-validating nodes and references.

        Nodes dropped by the update take their bound course units with them.
        A transition to ``active`` freezes the goal's other active path first.
        """
        updated, _ = self._apply_update(path_id, partial)
        return updated

    def _apply_update(self, path_id: str, partial: Mapping[str, Any]) -> Tuple[LearningPath, List[str]]:
        document = self._load()
        current = document.find_path(path_id)
        if current is None:
            raise NotFoundError(self.entity, path_id)

        changes, report = resolve_changes(LearningPath, partial, immutable=_DERIVED_FIELDS)
        if not report.is_valid:
            raise ValidationError(self.entity, report)
        merged = current.model_dump()
        merged.update(changes)
        candidate = build_model(LearningPath, self.entity, merged)
        candidate.total_estimated_hours = estimated_hours(candidate)

        report.extend(
            validate_path(
                candidate,
                goal_ids=[goal.id for goal in document.goals],
                foreign_node_ids=_foreign_node_ids(document, path_id),
            )
        )
        if not report.is_valid:
            raise ValidationError(self.entity, report)

        changed = [name for name in changes if getattr(current, name) != getattr(candidate, name)]
        if not changed:
            return current, []

        frozen_ids: List[str] = []
        joins_active = candidate.status == "active" and (
            current.status != "active" or current.goal_id != candidate.goal_id
        )
        if joins_active:
            frozen_ids = self._freeze_siblings(document, candidate)

        removed_nodes = set(current.node_ids()) - set(candidate.node_ids())
        cascade = plan_node_removal(document, path_id, removed_nodes)
        apply_cascade(document, cascade)

        candidate.updated_at = max(_now(), current.updated_at)
        index = next(i for i, path in enumerate(document.paths) if path.id == path_id)
        document.paths[index] = candidate
        self._commit(
            document,
            "path_updated",
            {
                "pathId": path_id,
                "goalId": candidate.goal_id,
                "changes": changed,
                "removedCourseUnitIds": cascade.course_unit_ids,
            },
        )
        return candidate, frozen_ids

    def _freeze_siblings(self, document: CoreDocument, target: LearningPath) -> List[str]:
        frozen: List[str] = []
        for sibling in active_sibling_paths(document, target):
            sibling.status = "frozen"
            sibling.updated_at = max(_now(), sibling.updated_at)
            self._commit(
                document,
                "path_frozen",
                {"pathId": sibling.id, "goalId": sibling.goal_id, "reason": f"activated {target.id}"},
            )
            frozen.append(sibling.id)
        return frozen

    def activate(self, path_id: str) -> Tuple[LearningPath, List[str]]:
        """Activate a path; returns it with the ids of the sibling paths that were frozen."""
        return self._apply_update(path_id, {"status": "active"})

    def freeze(self, path_id: str) -> LearningPath:
        return self.update(path_id, {"status": "frozen"})

    def archive(self, path_id: str) -> LearningPath:
        return self.update(path_id, {"status": "archived"})

    def update_node_status(self, path_id: str, node_id: str, status: str) -> LearningPath:
        if status not in NODE_STATUSES:
            report = ValidationReport()
            report.error("status", INVALID_VALUE, f"Node status must be one of: {', '.join(NODE_STATUSES)}.")
            raise ValidationError("node", report)

        document = self._load()
        path = document.find_path(path_id)
        if path is None:
            raise NotFoundError(self.entity, path_id)
        node = next((item for item in path.nodes if item.id == node_id), None)
        if node is None:
            raise NotFoundError("node", node_id)

        previous = node.status
        node.status = status  # type: ignore[assignment]
        node.completed_at = _now() if status == "completed" else None
        path.updated_at = max(_now(), path.updated_at)
        self._commit(
            document,
            "node_status_updated",
            {"pathId": path_id, "nodeId": node_id, "status": status, "previousStatus": previous},
        )
        return path

    def delete_with_report(self, path_id: str) -> Optional[CascadeReport]:
        document = self._load()
        path = document.find_path(path_id)
        if path is None:
            return None
        report = plan_path_removal(document, [path_id])
        apply_cascade(document, report)
        self._commit(
            document,
            "path_deleted",
            {
                "pathId": path_id,
                "goalId": path.goal_id,
                "title": path.title,
                "removedCourseUnitIds": report.course_unit_ids,
            },
        )
        return report

    def delete(self, path_id: str) -> bool:
        return self.delete_with_report(path_id) is not None


__all__ = ["PathRepository", "estimated_hours"]
