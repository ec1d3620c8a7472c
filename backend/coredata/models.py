"""Entity models persisted inside the per-profile core data document."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = "1.0.0"
PATH_VERSION = "1.0.0"

GoalCategory = Literal[
    "frontend",
    "backend",
    "fullstack",
    "automation",
    "ai",
    "mobile",
    "game",
    "data",
    "custom",
]
TargetLevel = Literal["beginner", "intermediate", "advanced", "expert"]
GoalStatus = Literal["active", "paused", "completed", "cancelled"]
PathStatus = Literal["draft", "active", "completed", "archived", "frozen", "paused"]
NodeType = Literal["concept", "practice", "project", "assessment", "milestone"]
NodeStatus = Literal["not_started", "in_progress", "completed", "skipped"]
CourseUnitType = Literal["theory", "example", "exercise", "project", "quiz"]

GOAL_CATEGORIES = get_args(GoalCategory)
TARGET_LEVELS = get_args(TargetLevel)
GOAL_STATUSES = get_args(GoalStatus)
PATH_STATUSES = get_args(PathStatus)
NODE_STATUSES = get_args(NodeStatus)
COURSE_UNIT_TYPES = get_args(CourseUnitType)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


class CoreModel(BaseModel):
    """Base for every persisted record: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Goal(CoreModel):
    id: str = Field(default_factory=lambda: new_id("goal"))
    title: str
    description: str = ""
    category: GoalCategory
    priority: int = Field(default=3, ge=1, le=5)
    target_level: TargetLevel
    estimated_time_weeks: float = Field(gt=0)
    required_skills: List[str] = Field(default_factory=list)
    outcomes: List[str] = Field(default_factory=list)
    status: GoalStatus = "paused"
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class PathNode(CoreModel):
    id: str = Field(default_factory=lambda: new_id("node"))
    title: str
    description: str = ""
    type: NodeType = "concept"
    estimated_minutes: int = Field(default=0, ge=0)
    difficulty: int = Field(default=1, ge=1, le=5)
    skills: List[str] = Field(default_factory=list)
    status: NodeStatus = "not_started"
    completed_at: Optional[datetime] = None


class PathDependency(CoreModel):
    from_node: str = Field(alias="from")
    to_node: str = Field(alias="to")


class PathMilestone(CoreModel):
    id: str = Field(default_factory=lambda: new_id("milestone"))
    title: str
    node_ids: List[str] = Field(default_factory=list)
    reward: Optional[str] = None


class LearningPath(CoreModel):
    id: str = Field(default_factory=lambda: new_id("path"))
    goal_id: str
    title: str
    description: str = ""
    total_estimated_hours: float = Field(default=0.0, ge=0.0)
    nodes: List[PathNode] = Field(default_factory=list)
    dependencies: List[PathDependency] = Field(default_factory=list)
    milestones: List[PathMilestone] = Field(default_factory=list)
    status: PathStatus = "draft"
    version: str = PATH_VERSION
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]


class CourseUnitContent(CoreModel):
    markdown: Optional[str] = None
    code: Optional[str] = None
    quiz: Optional[List[Any]] = None
    project: Optional[Any] = None


class CourseUnitMetadata(CoreModel):
    difficulty: int = 1
    estimated_time: int = 0
    keywords: List[str] = Field(default_factory=list)
    learning_objectives: List[str] = Field(default_factory=list)
    order: Optional[int] = None


class CourseUnit(CoreModel):
    id: str = Field(default_factory=lambda: new_id("unit"))
    node_id: str
    title: str
    description: str = ""
    type: CourseUnitType = "theory"
    content: CourseUnitContent = Field(default_factory=CourseUnitContent)
    metadata: CourseUnitMetadata = Field(default_factory=CourseUnitMetadata)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class CoreEvent(CoreModel):
    id: str = Field(default_factory=lambda: new_id("event"))
    type: str
    timestamp: datetime = Field(default_factory=_now)
    data: Any = None
    metadata: Optional[Dict[str, Any]] = None


class AgentAction(CoreModel):
    id: str = Field(default_factory=lambda: new_id("action"))
    type: str
    params: Any = None
    result: Any = None
    success: bool = True
    timestamp: datetime = Field(default_factory=_now)


class AbilityProfile(CoreModel):
    """Snapshot written by the assessment module; extra keys are preserved verbatim."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    overall_score: float = 0.0
    dimensions: Dict[str, Any] = Field(default_factory=dict)
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=_now)


class CoreMetadata(CoreModel):
    version: str = SCHEMA_VERSION
    last_updated: datetime = Field(default_factory=_now)
    total_study_time: float = Field(default=0.0, ge=0.0)
    streak_days: int = Field(default=0, ge=0)


class CoreDocument(CoreModel):
    """The single per-profile blob stored under the ``coreData`` key."""

    events: List[CoreEvent] = Field(default_factory=list)
    goals: List[Goal] = Field(default_factory=list)
    paths: List[LearningPath] = Field(default_factory=list)
    course_units: List[CourseUnit] = Field(default_factory=list)
    agent_actions: List[AgentAction] = Field(default_factory=list)
    metadata: CoreMetadata = Field(default_factory=CoreMetadata)
    ability_profile: Optional[AbilityProfile] = None

    def find_goal(self, goal_id: str) -> Optional[Goal]:
        return next((goal for goal in self.goals if goal.id == goal_id), None)

    def find_path(self, path_id: str) -> Optional[LearningPath]:
        return next((path for path in self.paths if path.id == path_id), None)

    def find_course_unit(self, unit_id: str) -> Optional[CourseUnit]:
        return next((unit for unit in self.course_units if unit.id == unit_id), None)

    def all_node_ids(self) -> set[str]:
        return {node.id for path in self.paths for node in path.nodes}


class CreateGoalData(CoreModel):
    title: str
    description: str = ""
    category: str
    priority: int = 3
    target_level: str
    estimated_time_weeks: float
    required_skills: Optional[List[str]] = None
    outcomes: Optional[List[str]] = None
    status: Optional[str] = None


class CreatePathData(CoreModel):
    goal_id: str
    title: str
    description: str = ""


class CreateCourseUnitData(CoreModel):
    node_id: str
    title: str
    description: str = ""
    type: str = "theory"
    content: CourseUnitContent = Field(default_factory=CourseUnitContent)
    metadata: CourseUnitMetadata = Field(default_factory=CourseUnitMetadata)


def default_document() -> CoreDocument:
    return CoreDocument()


__all__ = [
    "AbilityProfile",
    "AgentAction",
    "COURSE_UNIT_TYPES",
    "CoreDocument",
    "CoreEvent",
    "CoreMetadata",
    "CoreModel",
    "CourseUnit",
    "CourseUnitContent",
    "CourseUnitMetadata",
    "CreateCourseUnitData",
    "CreateGoalData",
    "CreatePathData",
    "GOAL_CATEGORIES",
    "GOAL_STATUSES",
    "Goal",
    "LearningPath",
    "NODE_STATUSES",
    "PATH_STATUSES",
    "PathDependency",
    "PathMilestone",
    "PathNode",
    "SCHEMA_VERSION",
    "TARGET_LEVELS",
    "default_document",
    "new_id",
]
