"""Shared plumbing for the typed repositories over the core data store."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from ..models import CoreDocument, CoreModel
from ..store import CoreDataStore
from ..validation import IMMUTABLE, UNKNOWN_FIELD, ValidationReport, report_from_pydantic

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=CoreModel)

IMMUTABLE_FIELDS = frozenset({"id", "created_at", "updated_at"})


def _field_lookup(model: Type[BaseModel]) -> Dict[str, str]:
    """Map both python names and camelCase aliases to python field names."""
    lookup: Dict[str, str] = {}
    for name, info in model.model_fields.items():
        lookup[name] = name
        if info.alias:
            lookup[info.alias] = name
    return lookup


def coerce_input(
    model: Type[ModelT],
    entity: str,
    data: Union[ModelT, Mapping[str, Any]],
) -> ModelT:
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(entity, report_from_pydantic(exc)) from exc


def resolve_changes(
    model: Type[BaseModel],
    partial: Mapping[str, Any],
    *,
    immutable: Iterable[str] = IMMUTABLE_FIELDS,
) -> Tuple[Dict[str, Any], ValidationReport]:
    """Normalise a partial update to python field names and flag unusable keys."""
    lookup = _field_lookup(model)
    frozen = set(immutable)
    report = ValidationReport()
    changes: Dict[str, Any] = {}
    for key, value in partial.items():
        name = lookup.get(key)
        if name is None:
            report.error(key, UNKNOWN_FIELD, f"'{key}' is not a known field.")
        elif name in frozen:
            report.error(name, IMMUTABLE, f"'{name}' cannot be changed.")
        else:
            changes[name] = value
    return changes, report


def build_model(model: Type[ModelT], entity: str, payload: Mapping[str, Any]) -> ModelT:
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(entity, report_from_pydantic(exc)) from exc


class StoreRepository:
    """Base for repositories: each mutation is load, change, commit with one event."""

    entity = "record"

    def __init__(self, store: CoreDataStore) -> None:
        self._store = store

    @property
    def store(self) -> CoreDataStore:
        return self._store

    def _load(self) -> CoreDocument:
        return self._store.load()

    def _commit(
        self,
        document: CoreDocument,
        event_type: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        event = self._store.push_event(document, event_type, data)
        self._store.commit(document, event)
        logger.debug("%s committed for %s", event_type, self.entity)


__all__ = [
    "IMMUTABLE_FIELDS",
    "StoreRepository",
    "build_model",
    "coerce_input",
    "resolve_changes",
]
