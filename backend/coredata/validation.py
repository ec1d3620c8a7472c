"""Field-level validation reports for goals, paths and course units."""

from __future__ import annotations

import math
from typing import Any, Iterable, List, Mapping, Optional, Set

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from .models import (
    COURSE_UNIT_TYPES,
    GOAL_CATEGORIES,
    GOAL_STATUSES,
    TARGET_LEVELS,
    CoreModel,
    CourseUnit,
    LearningPath,
)

MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 1000
LONG_GOAL_WEEKS = 104

REQUIRED = "REQUIRED"
MAX_LENGTH = "MAX_LENGTH"
INVALID_VALUE = "INVALID_VALUE"
INVALID_RANGE = "INVALID_RANGE"
UNKNOWN_FIELD = "UNKNOWN_FIELD"
IMMUTABLE = "IMMUTABLE"
REFERENCE_NOT_FOUND = "REFERENCE_NOT_FOUND"
DUPLICATE_ID = "DUPLICATE_ID"


class FieldError(CoreModel):
    field: str
    code: str
    message: str


class FieldWarning(CoreModel):
    field: str
    message: str
    suggestion: Optional[str] = None


class ValidationReport(CoreModel):
    is_valid: bool = True
    errors: List[FieldError] = Field(default_factory=list)
    warnings: List[FieldWarning] = Field(default_factory=list)

    def error(self, field: str, code: str, message: str) -> None:
        self.errors.append(FieldError(field=field, code=code, message=message))
        self.is_valid = False

    def warn(self, field: str, message: str, suggestion: Optional[str] = None) -> None:
        self.warnings.append(FieldWarning(field=field, message=message, suggestion=suggestion))

    def error_fields(self) -> List[str]:
        return [entry.field for entry in self.errors]

    def extend(self, other: "ValidationReport") -> "ValidationReport":
        for entry in other.errors:
            self.error(entry.field, entry.code, entry.message)
        self.warnings.extend(other.warnings)
        return self


_PYDANTIC_CODES = {
    "missing": REQUIRED,
    "string_too_long": MAX_LENGTH,
    "literal_error": INVALID_VALUE,
    "enum": INVALID_VALUE,
    "greater_than": INVALID_RANGE,
    "greater_than_equal": INVALID_RANGE,
    "less_than": INVALID_RANGE,
    "less_than_equal": INVALID_RANGE,
}


def report_from_pydantic(exc: PydanticValidationError) -> ValidationReport:
    """Translate a pydantic failure into the same report shape the rule checks produce."""
    report = ValidationReport()
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "__root__"
        report.error(field, _PYDANTIC_CODES.get(error.get("type", ""), INVALID_VALUE), error.get("msg", "Invalid value"))
    return report


def _is_number(value: Any) -> bool:
    """Finite int or float; NaN and infinities arrive as valid JSON numbers."""
    if isinstance(value, bool):
        return False
    return isinstance(value, int) or (isinstance(value, float) and math.isfinite(value))


def _check_title(report: ValidationReport, title: Any) -> None:
    if not isinstance(title, str) or not title.strip():
        report.error("title", REQUIRED, "Title is required.")
    elif len(title) > MAX_TITLE_LENGTH:
        report.error("title", MAX_LENGTH, f"Title must be at most {MAX_TITLE_LENGTH} characters.")


def _check_description(report: ValidationReport, description: Any, *, suggestion: str) -> None:
    if description is None or (isinstance(description, str) and not description.strip()):
        report.warn("description", "A description is recommended.", suggestion)
    elif not isinstance(description, str):
        report.error("description", INVALID_VALUE, "Description must be text.")
    elif len(description) > MAX_DESCRIPTION_LENGTH:
        report.error(
            "description",
            MAX_LENGTH,
            f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters.",
        )


def validate_goal(data: Mapping[str, Any]) -> ValidationReport:
    """Check a goal record (snake_case keys) and collect every violation."""
    report = ValidationReport()
    _check_title(report, data.get("title"))
    _check_description(
        report,
        data.get("description"),
        suggestion="Describing the goal makes it easier to plan a path for it.",
    )

    category = data.get("category")
    if category not in GOAL_CATEGORIES:
        report.error("category", INVALID_VALUE, f"Category must be one of: {', '.join(GOAL_CATEGORIES)}.")

    priority = data.get("priority")
    if not _is_number(priority) or int(priority) != priority or not 1 <= priority <= 5:
        report.error("priority", INVALID_RANGE, "Priority must be an integer between 1 and 5.")

    target_level = data.get("target_level")
    if target_level not in TARGET_LEVELS:
        report.error("target_level", INVALID_VALUE, f"Target level must be one of: {', '.join(TARGET_LEVELS)}.")

    weeks = data.get("estimated_time_weeks")
    if not _is_number(weeks) or weeks <= 0:
        report.error("estimated_time_weeks", INVALID_VALUE, "Estimated time must be a number of weeks greater than 0.")
    elif weeks > LONG_GOAL_WEEKS:
        report.warn(
            "estimated_time_weeks",
            "The goal spans more than two years.",
            "Consider splitting it into several shorter goals.",
        )

    status = data.get("status")
    if status is not None and status not in GOAL_STATUSES:
        report.error("status", INVALID_VALUE, f"Status must be one of: {', '.join(GOAL_STATUSES)}.")

    for field, suggestion in (
        ("required_skills", "Listing prerequisite skills helps estimate difficulty."),
        ("outcomes", "Explicit outcomes make progress measurable."),
    ):
        value = data.get(field)
        if value is None or (isinstance(value, list) and not value):
            report.warn(field, f"Adding {field.replace('_', ' ')} is recommended.", suggestion)
        elif not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            report.error(field, INVALID_VALUE, f"{field} must be a list of strings.")
    return report


def validate_path(
    path: LearningPath,
    *,
    goal_ids: Iterable[str],
    foreign_node_ids: Set[str],
) -> ValidationReport:
    """Check references and structure of an already type-checked path.

    ``foreign_node_ids`` are the node ids held by every other path; node ids
    are unique across the whole document so a course unit binds to exactly one node.
    """
    report = ValidationReport()
    _check_title(report, path.title)
    if len(path.description) > MAX_DESCRIPTION_LENGTH:
        report.error(
            "description",
            MAX_LENGTH,
            f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters.",
        )
    if path.goal_id not in set(goal_ids):
        report.error("goal_id", REFERENCE_NOT_FOUND, f"Goal '{path.goal_id}' does not exist.")

    seen: Set[str] = set()
    for index, node in enumerate(path.nodes):
        if node.id in seen or node.id in foreign_node_ids:
            report.error(f"nodes.{index}.id", DUPLICATE_ID, f"Node id '{node.id}' is already in use.")
        seen.add(node.id)
        if not node.title.strip():
            report.error(f"nodes.{index}.title", REQUIRED, "Node title is required.")

    for index, edge in enumerate(path.dependencies):
        for end, node_id in (("from", edge.from_node), ("to", edge.to_node)):
            if node_id not in seen:
                report.error(
                    f"dependencies.{index}.{end}",
                    REFERENCE_NOT_FOUND,
                    f"Dependency references unknown node '{node_id}'.",
                )
        if edge.from_node == edge.to_node:
            report.error(f"dependencies.{index}", INVALID_VALUE, "A node cannot depend on itself.")

    for index, milestone in enumerate(path.milestones):
        missing = [node_id for node_id in milestone.node_ids if node_id not in seen]
        if missing:
            report.error(
                f"milestones.{index}.node_ids",
                REFERENCE_NOT_FOUND,
                f"Milestone references unknown nodes: {', '.join(missing)}.",
            )

    if not path.nodes:
        report.warn("nodes", "The path has no nodes yet.", "Add nodes before activating the path.")
    return report


def validate_course_unit(unit: CourseUnit, *, node_ids: Set[str]) -> ValidationReport:
    report = ValidationReport()
    _check_title(report, unit.title)
    if unit.node_id not in node_ids:
        report.error("node_id", REFERENCE_NOT_FOUND, f"Node '{unit.node_id}' does not exist in any path.")
    if unit.type not in COURSE_UNIT_TYPES:
        report.error("type", INVALID_VALUE, f"Type must be one of: {', '.join(COURSE_UNIT_TYPES)}.")
    if not 1 <= unit.metadata.difficulty <= 5:
        report.error("metadata.difficulty", INVALID_RANGE, "Difficulty must be between 1 and 5.")
    if unit.metadata.estimated_time < 0:
        report.error("metadata.estimated_time", INVALID_RANGE, "Estimated time cannot be negative.")
    if not unit.metadata.learning_objectives:
        report.warn(
            "metadata.learning_objectives",
            "No learning objectives listed.",
            "Objectives help learners know what the unit covers.",
        )
    content = unit.content
    if content.markdown is None and content.code is None and not content.quiz and content.project is None:
        report.warn("content", "The unit has no content yet.")
    return report


__all__ = [
    "FieldError",
    "FieldWarning",
    "ValidationReport",
    "report_from_pydantic",
    "validate_course_unit",
    "validate_goal",
    "validate_path",
]
