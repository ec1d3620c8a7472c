"""Error taxonomy raised by the core data layer."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from .validation import ValidationReport


class CoreDataError(Exception):
    """Base class carrying a stable machine-readable ``code``."""

    code = "core_data_error"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details or {}


class ValidationError(CoreDataError):
    code = "validation_error"

    def __init__(self, entity: str, report: ValidationReport) -> None:
        fields = report.error_fields()
        super().__init__(
            f"Invalid {entity}: {', '.join(fields) or 'unknown field'}",
            details={"errors": [entry.to_payload() for entry in report.errors]},
        )
        self.entity = entity
        self.report = report

    @property
    def fields(self) -> List[str]:
        return self.report.error_fields()


class NotFoundError(CoreDataError):
    code = "not_found"

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(
            f"{entity.capitalize()} '{entity_id}' was not found.",
            details={"entity": entity, "id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class ActivationLimitExceeded(CoreDataError):
    code = "activation_limit_exceeded"

    def __init__(self, limit: int, active_ids: Sequence[str]) -> None:
        super().__init__(
            f"Activation limit reached: at most {limit} goals can be active at once. "
            "Pause or complete an active goal before activating another.",
            details={"limit": limit, "activeGoalIds": list(active_ids)},
        )
        self.limit = limit
        self.active_ids = list(active_ids)


class StorageError(CoreDataError):
    code = "storage_error"


__all__ = [
    "ActivationLimitExceeded",
    "CoreDataError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
]
