"""Cross-entity business rules shared by repositories and the activation manager."""

from __future__ import annotations

from typing import List, Optional

from .errors import ActivationLimitExceeded
from .models import CoreDocument, Goal, LearningPath

DEFAULT_MAX_ACTIVE_GOALS = 3


def active_goals(document: CoreDocument, *, exclude: Optional[str] = None) -> List[Goal]:
    return [goal for goal in document.goals if goal.status == "active" and goal.id != exclude]


def ensure_goal_capacity(document: CoreDocument, goal_id: str, limit: int) -> None:
    """Raise unless ``goal_id`` can become active without exceeding ``limit``."""
    others = active_goals(document, exclude=goal_id)
    if len(others) >= limit:
        raise ActivationLimitExceeded(limit, [goal.id for goal in others])


def active_sibling_paths(document: CoreDocument, path: LearningPath) -> List[LearningPath]:
    return [
        other
        for other in document.paths
        if other.goal_id == path.goal_id and other.status == "active" and other.id != path.id
    ]


def lowest_priority_goal(goals: List[Goal]) -> Optional[Goal]:
    """Priority 5 is the most important; ties go to the oldest goal."""
    if not goals:
        return None
    return min(goals, key=lambda goal: (goal.priority, goal.created_at))


__all__ = [
    "DEFAULT_MAX_ACTIVE_GOALS",
    "active_goals",
    "active_sibling_paths",
    "ensure_goal_capacity",
    "lowest_priority_goal",
]
