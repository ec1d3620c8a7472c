"""Facade wiring the store, repositories and rules for UI and API callers."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from .activation import ActivationManager
from .cache import DocumentCache
from .config import Settings, get_settings
from .errors import CoreDataError, ValidationError
from .models import AbilityProfile, CoreEvent, CourseUnit, Goal, LearningPath
from .profiles import ProfileSession
from .repositories import CourseUnitRepository, GoalRepository, PathRepository
from .results import OperationResult
from .stats import StatsAggregator
from .storage import StorageAdapter, build_storage
from .store import CoreDataStore
from .validation import report_from_pydantic

logger = logging.getLogger(__name__)


class CoreDataService:
    """Entry point for callers; mutating methods never raise core data errors."""

    def __init__(
        self,
        storage: StorageAdapter,
        profiles: ProfileSession,
        *,
        max_active_goals: int = 3,
        event_log_limit: int = 1000,
        cache: Optional[DocumentCache] = None,
    ) -> None:
        self.profiles = profiles
        self.store = CoreDataStore(storage, profiles, cache=cache, event_log_limit=event_log_limit)
        self.goals = GoalRepository(self.store, max_active_goals=max_active_goals)
        self.paths = PathRepository(self.store)
        self.course_units = CourseUnitRepository(self.store)
        self.activation = ActivationManager(self.goals, self.paths)
        self.stats = StatsAggregator(self.store)
        self._lock = threading.RLock()

    def switch_profile(self, profile_id: Optional[str]) -> None:
        if not self.profiles.switch(profile_id):
            return
        # The store listens for switches too; clear again for sessions shared by several services.
        self.store.clear_cache()

    @contextmanager
    def profile_scope(self, profile_id: Optional[str]) -> Iterator["CoreDataService"]:
        """Switch to ``profile_id`` and keep other callers out until the block exits.

        Callers sharing one service from several threads must go through this,
        otherwise a concurrent switch redirects their read-modify-write.
        """
        with self._lock:
            self.switch_profile(profile_id)
            yield self

    def _run(self, action: str, operation: Callable[[], Any], message: str = "") -> OperationResult:
        try:
            data = operation()
        except CoreDataError as exc:
            logger.info("%s failed: %s (%s)", action, exc.message, exc.code)
            return OperationResult.from_error(exc)
        return OperationResult.ok(data, message)

    @staticmethod
    def _wrap_activation(result: Any) -> OperationResult:
        if result.success:
            return OperationResult.ok(result, result.message)
        return OperationResult(
            success=False,
            data=result,
            message=result.message,
            error=result.message,
            error_code=result.error_code,
        )

    # Goals

    def list_goals(
        self,
        *,
        status: Optional[str] = None,
        category: Optional[str] = None,
        query: Optional[str] = None,
    ) -> List[Goal]:
        goals = self.goals.search(query) if query else self.goals.get_all()
        if status:
            goals = [goal for goal in goals if goal.status == status]
        if category:
            goals = [goal for goal in goals if goal.category == category]
        return goals

    def get_goal(self, goal_id: str) -> Optional[Goal]:
        return self.goals.get_by_id(goal_id)

    def validate_goal(self, data: Mapping[str, Any]) -> OperationResult:
        report = self.goals.validate(data)
        return OperationResult(success=report.is_valid, data=report, message="" if report.is_valid else "Invalid goal")

    def create_goal(self, data: Mapping[str, Any]) -> OperationResult:
        return self._run("create_goal", lambda: self.goals.create(data), "Goal created.")

    def update_goal(self, goal_id: str, partial: Mapping[str, Any]) -> OperationResult:
        return self._run("update_goal", lambda: self.goals.update(goal_id, partial), "Goal updated.")

    def delete_goal(self, goal_id: str) -> OperationResult:
        return self.activation.delete_goal(goal_id)

    def activate_goal(self, goal_id: str) -> OperationResult:
        return self._wrap_activation(self.activation.activate_goal(goal_id))

    def pause_goal(self, goal_id: str) -> OperationResult:
        return self._wrap_activation(self.activation.pause_goal(goal_id))

    def complete_goal(self, goal_id: str) -> OperationResult:
        return self._wrap_activation(self.activation.complete_goal(goal_id))

    def cancel_goal(self, goal_id: str) -> OperationResult:
        return self._wrap_activation(self.activation.cancel_goal(goal_id))

    def activate_goals(self, goal_ids: List[str], *, priority_order: bool = False) -> OperationResult:
        result = self.activation.activate_goals(goal_ids, priority_order=priority_order)
        return OperationResult(success=result.failure_count == 0, data=result, message=result.summary)

    # Paths

    def list_paths(self, *, goal_id: Optional[str] = None, status: Optional[str] = None) -> List[LearningPath]:
        paths = self.paths.get_all_by_goal(goal_id) if goal_id else self.paths.get_all()
        if status:
            paths = [path for path in paths if path.status == status]
        return paths

    def get_path(self, path_id: str) -> Optional[LearningPath]:
        return self.paths.get_by_id(path_id)

    def create_path(self, data: Mapping[str, Any]) -> OperationResult:
        return self._run("create_path", lambda: self.paths.create(data), "Path created.")

    def update_path(self, path_id: str, partial: Mapping[str, Any]) -> OperationResult:
        return self._run("update_path", lambda: self.paths.update(path_id, partial), "Path updated.")

    def delete_path(self, path_id: str) -> OperationResult:
        return self.activation.delete_path(path_id)

    def activate_path(self, path_id: str) -> OperationResult:
        return self._wrap_activation(self.activation.activate_path(path_id))

    def update_node_status(self, path_id: str, node_id: str, status: str) -> OperationResult:
        return self._run(
            "update_node_status",
            lambda: self.paths.update_node_status(path_id, node_id, status),
            "Node status updated.",
        )

    # Course units

    def list_course_units(self, *, node_id: Optional[str] = None) -> List[CourseUnit]:
        return self.course_units.get_by_node(node_id) if node_id else self.course_units.get_all()

    def get_course_unit(self, unit_id: str) -> Optional[CourseUnit]:
        return self.course_units.get_by_id(unit_id)

    def create_course_unit(self, data: Mapping[str, Any]) -> OperationResult:
        return self._run("create_course_unit", lambda: self.course_units.create(data), "Course unit created.")

    def update_course_unit(self, unit_id: str, partial: Mapping[str, Any]) -> OperationResult:
        return self._run(
            "update_course_unit",
            lambda: self.course_units.update(unit_id, partial),
            "Course unit updated.",
        )

    def delete_course_unit(self, unit_id: str) -> OperationResult:
        result = self._run("delete_course_unit", lambda: self.course_units.delete(unit_id))
        if result.success and not result.data:
            return OperationResult.fail(f"Course unit '{unit_id}' was not found.", error_code="not_found")
        return result

    # Events, agent actions and profile data

    def recent_events(self, limit: int = 50, event_type: Optional[str] = None) -> List[CoreEvent]:
        return self.store.recent_events(limit, event_type)

    def record_agent_action(
        self,
        action_type: str,
        params: Any = None,
        result: Any = None,
        *,
        success: bool = True,
    ) -> OperationResult:
        return self._run(
            "record_agent_action",
            lambda: self.store.record_agent_action(action_type, params, result, success=success),
        )

    def set_ability_profile(self, profile: Optional[Mapping[str, Any]]) -> OperationResult:
        def _apply() -> Optional[AbilityProfile]:
            model = None
            if profile is not None:
                try:
                    model = AbilityProfile.model_validate(profile)
                except PydanticValidationError as exc:
                    raise ValidationError("ability profile", report_from_pydantic(exc)) from exc
            self.store.set_ability_profile(model)
            return model

        return self._run("set_ability_profile", _apply, "Ability profile saved.")

    def update_study_metrics(
        self,
        *,
        total_study_time: Optional[float] = None,
        streak_days: Optional[int] = None,
    ) -> OperationResult:
        try:
            document = self.store.update_study_metrics(
                total_study_time=total_study_time,
                streak_days=streak_days,
            )
        except ValueError as exc:
            return OperationResult.fail(str(exc), error_code="validation_error")
        except CoreDataError as exc:
            return OperationResult.from_error(exc)
        return OperationResult.ok(document.metadata, "Study metrics updated.")

    def force_sync(self) -> OperationResult:
        """Drop the cache, re-read from storage, check integrity and write back."""

        def _sync() -> Dict[str, Any]:
            self.store.clear_cache()
            integrity = self.store.check_integrity()
            self.store.save(self.store.load())
            return integrity.to_payload()

        return self._run("force_sync", _sync, "Core data synchronised.")

    def export_data(self) -> OperationResult:
        return self._run("export_data", self.store.export_snapshot, "Export ready.")

    def data_stats(self) -> OperationResult:
        return self._run("data_stats", self.store.data_stats)


def build_service(settings: Optional[Settings] = None) -> CoreDataService:
    settings = settings or get_settings()
    profiles = ProfileSession(settings.default_profile)
    storage = build_storage(settings, profiles)
    return CoreDataService(
        storage,
        profiles,
        max_active_goals=settings.max_active_goals,
        event_log_limit=settings.event_log_limit,
    )


__all__ = ["CoreDataService", "build_service"]
