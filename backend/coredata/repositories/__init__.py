"""Typed repositories over the core data document."""

from .course_units import CourseUnitRepository
from .goals import GoalRepository
from .paths import PathRepository

__all__ = ["CourseUnitRepository", "GoalRepository", "PathRepository"]
