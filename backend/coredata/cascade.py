"""Top-down walk of the Goal -> Path -> CourseUnit dependency graph."""

from __future__ import annotations

from typing import Iterable, List, Set

from pydantic import Field

from .models import CoreDocument, CoreModel


class CascadeReport(CoreModel):
    """Ids removed by one delete, level by level."""

    goal_ids: List[str] = Field(default_factory=list)
    path_ids: List[str] = Field(default_factory=list)
    course_unit_ids: List[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.goal_ids or self.path_ids or self.course_unit_ids)


def _units_for_nodes(document: CoreDocument, node_ids: Set[str], surviving_paths: Iterable[str]) -> List[str]:
    keep = set(surviving_paths)
    still_held = {
        node.id
        for path in document.paths
        if path.id in keep
        for node in path.nodes
    }
    orphaned = node_ids - still_held
    return [unit.id for unit in document.course_units if unit.node_id in orphaned]


def plan_path_removal(document: CoreDocument, path_ids: Iterable[str]) -> CascadeReport:
    doomed = [path for path in document.paths if path.id in set(path_ids)]
    doomed_ids = {path.id for path in doomed}
    node_ids = {node.id for path in doomed for node in path.nodes}
    surviving = [path.id for path in document.paths if path.id not in doomed_ids]
    return CascadeReport(
        path_ids=[path.id for path in doomed],
        course_unit_ids=_units_for_nodes(document, node_ids, surviving),
    )


def plan_goal_removal(document: CoreDocument, goal_id: str) -> CascadeReport:
    if document.find_goal(goal_id) is None:
        return CascadeReport()
    report = plan_path_removal(
        document,
        [path.id for path in document.paths if path.goal_id == goal_id],
    )
    report.goal_ids = [goal_id]
    return report


def plan_node_removal(document: CoreDocument, path_id: str, removed_node_ids: Iterable[str]) -> CascadeReport:
    """Course units orphaned when ``removed_node_ids`` leave path ``path_id``."""
    surviving = [path.id for path in document.paths if path.id != path_id]
    return CascadeReport(
        course_unit_ids=_units_for_nodes(document, set(removed_node_ids), surviving),
    )


def apply_cascade(document: CoreDocument, report: CascadeReport) -> None:
    goal_ids = set(report.goal_ids)
    path_ids = set(report.path_ids)
    unit_ids = set(report.course_unit_ids)
    document.course_units = [unit for unit in document.course_units if unit.id not in unit_ids]
    document.paths = [path for path in document.paths if path.id not in path_ids]
    document.goals = [goal for goal in document.goals if goal.id not in goal_ids]


__all__ = [
    "CascadeReport",
    "apply_cascade",
    "plan_goal_removal",
    "plan_node_removal",
    "plan_path_removal",
]
