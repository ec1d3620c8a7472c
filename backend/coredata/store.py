"""Aggregate root: the per-profile core data document and its event log."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from .cache import DocumentCache
from .errors import StorageError
from .models import (
    SCHEMA_VERSION,
    AbilityProfile,
    AgentAction,
    CoreDocument,
    CoreEvent,
    CoreModel,
    default_document,
)
from .profiles import ProfileSession
from .storage.base import StorageAdapter
from .telemetry import emit_event

logger = logging.getLogger(__name__)

CORE_DATA_KEY = "coreData"
DEFAULT_EVENT_LOG_LIMIT = 1000
STALE_AFTER = timedelta(days=365)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class IntegrityReport(CoreModel):
    is_valid: bool
    issues: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class DataStats(CoreModel):
    total_events: int
    total_goals: int
    total_paths: int
    total_course_units: int
    total_agent_actions: int
    data_size: int
    last_updated: datetime


class CoreDataStore:
    """Loads, caches and persists the ``coreData`` document of the active profile.

    ``load`` hands out private deep copies, so a caller mutating a document
    never touches the cache until ``save`` has written it through the adapter.
    """

    def __init__(
        self,
        storage: StorageAdapter,
        profiles: ProfileSession,
        *,
        cache: Optional[DocumentCache] = None,
        event_log_limit: int = DEFAULT_EVENT_LOG_LIMIT,
    ) -> None:
        self._storage = storage
        self._profiles = profiles
        self._cache = cache or DocumentCache()
        self._event_log_limit = event_log_limit
        profiles.subscribe(self._on_profile_switch)

    @property
    def storage(self) -> StorageAdapter:
        return self._storage

    @property
    def profiles(self) -> ProfileSession:
        return self._profiles

    @property
    def cache(self) -> DocumentCache:
        return self._cache

    @property
    def event_log_limit(self) -> int:
        return self._event_log_limit

    def _on_profile_switch(self, previous: Optional[str], current: Optional[str]) -> None:
        self.clear_cache()

    def load(self) -> CoreDocument:
        profile_id = self._profiles.require()
        cached = self._cache.get(profile_id)
        if cached is not None:
            return cached

        raw = self._storage.get(CORE_DATA_KEY)
        if raw is None:
            logger.info("Creating core data document for profile %s", profile_id)
            document = default_document()
            self.save(document)
            return document

        try:
            document = CoreDocument.model_validate(raw)
        except PydanticValidationError as exc:
            logger.error("Stored core data for %s is unreadable: %s", profile_id, exc)
            raise StorageError(
                f"Stored core data for profile '{profile_id}' could not be parsed.",
                details={"errorCount": exc.error_count()},
            ) from exc
        self._cache.set(profile_id, document)
        return document

    def save(self, document: CoreDocument) -> None:
        profile_id = self._profiles.require()
        document.metadata.last_updated = max(_now(), _aware(document.metadata.last_updated))
        self._storage.set(CORE_DATA_KEY, document.to_payload())
        self._cache.set(profile_id, document)

    def clear_cache(self) -> None:
        self._cache.clear()

    def push_event(
        self,
        document: CoreDocument,
        event_type: str,
        data: Any = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> CoreEvent:
        """Append an event to an unsaved document, evicting the oldest past the limit."""
        event = CoreEvent(type=event_type, data=data, metadata=metadata)
        document.events.append(event)
        overflow = len(document.events) - self._event_log_limit
        if overflow > 0:
            del document.events[:overflow]
        return event

    def commit(self, document: CoreDocument, *events: CoreEvent) -> None:
        """Save a document whose events were added with ``push_event`` and publish them."""
        self.save(document)
        for event in events:
            emit_event(event.type, eventId=event.id, data=event.data)

    def append_event(
        self,
        event_type: str,
        data: Any = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> CoreEvent:
        document = self.load()
        event = self.push_event(document, event_type, data, metadata)
        self.commit(document, event)
        return event

    def recent_events(self, limit: int = 50, event_type: Optional[str] = None) -> List[CoreEvent]:
        events = self.load().events
        if event_type is not None:
            events = [event for event in events if event.type == event_type]
        return list(reversed(events))[: max(limit, 0)]

    def record_agent_action(
        self,
        action_type: str,
        params: Any = None,
        result: Any = None,
        *,
        success: bool = True,
    ) -> AgentAction:
        document = self.load()
        action = AgentAction(type=action_type, params=params, result=result, success=success)
        document.agent_actions.append(action)
        self.save(document)
        return action

    def get_agent_actions(self) -> List[AgentAction]:
        return self.load().agent_actions

    def get_ability_profile(self) -> Optional[AbilityProfile]:
        return self.load().ability_profile

    def set_ability_profile(self, profile: Optional[AbilityProfile]) -> None:
        document = self.load()
        document.ability_profile = profile
        event = self.push_event(
            document,
            "ability_profile_updated",
            {"present": profile is not None},
        )
        self.commit(document, event)

    def update_study_metrics(
        self,
        *,
        total_study_time: Optional[float] = None,
        streak_days: Optional[int] = None,
    ) -> CoreDocument:
        if total_study_time is not None and total_study_time < 0:
            raise ValueError("total_study_time cannot be negative.")
        if streak_days is not None and streak_days < 0:
            raise ValueError("streak_days cannot be negative.")
        document = self.load()
        if total_study_time is not None:
            document.metadata.total_study_time = total_study_time
        if streak_days is not None:
            document.metadata.streak_days = streak_days
        self.save(document)
        return document

    def check_integrity(self) -> IntegrityReport:
        document = self.load()
        issues: List[str] = []
        warnings: List[str] = []

        goal_ids = {goal.id for goal in document.goals}
        for path in document.paths:
            if path.goal_id not in goal_ids:
                issues.append(f"Path '{path.id}' references missing goal '{path.goal_id}'.")

        node_ids = document.all_node_ids()
        for unit in document.course_units:
            if unit.node_id not in node_ids:
                warnings.append(f"Course unit '{unit.id}' references missing node '{unit.node_id}'.")

        if not document.metadata.version:
            issues.append("Document is missing its schema version.")
        elif document.metadata.version != SCHEMA_VERSION:
            warnings.append(
                f"Document schema version {document.metadata.version} differs from {SCHEMA_VERSION}."
            )

        if _now() - _aware(document.metadata.last_updated) > STALE_AFTER:
            warnings.append("Core data has not been updated for more than a year.")

        return IntegrityReport(is_valid=not issues, issues=issues, warnings=warnings)

    def data_stats(self) -> DataStats:
        document = self.load()
        return DataStats(
            total_events=len(document.events),
            total_goals=len(document.goals),
            total_paths=len(document.paths),
            total_course_units=len(document.course_units),
            total_agent_actions=len(document.agent_actions),
            data_size=len(json.dumps(document.to_payload())),
            last_updated=document.metadata.last_updated,
        )

    def export_snapshot(self) -> Dict[str, Any]:
        document = self.load()
        return {
            "version": SCHEMA_VERSION,
            "exportDate": _now().isoformat(),
            "profileId": self._profiles.require(),
            "coreData": document.to_payload(),
        }

    def reset(self) -> CoreDocument:
        """Replace the active profile's document with an empty one."""
        document = default_document()
        self.save(document)
        logger.info("Core data reset for profile %s", self._profiles.current)
        return document


__all__ = [
    "CORE_DATA_KEY",
    "CoreDataStore",
    "DataStats",
    "IntegrityReport",
]
