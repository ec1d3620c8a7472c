"""Course unit repository: learning content bound to path nodes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Union

from ..errors import NotFoundError, ValidationError
from ..models import CourseUnit, CreateCourseUnitData
from ..validation import ValidationReport, validate_course_unit
from .base import StoreRepository, build_model, coerce_input, resolve_changes

CourseUnitInput = Union[CreateCourseUnitData, Mapping[str, Any]]


class CourseUnitRepository(StoreRepository):
    entity = "course unit"

    def get_all(self) -> List[CourseUnit]:
        return self._load().course_units

    def get_by_id(self, unit_id: str) -> Optional[CourseUnit]:
        return self._load().find_course_unit(unit_id)

    def get_by_node(self, node_id: str) -> List[CourseUnit]:
        units = [unit for unit in self.get_all() if unit.node_id == node_id]
        return sorted(units, key=lambda unit: (unit.metadata.order is None, unit.metadata.order or 0))

    def validate(self, data: CourseUnitInput) -> ValidationReport:
        try:
            request = coerce_input(CreateCourseUnitData, self.entity, data)
        except ValidationError as exc:
            return exc.report
        unit = CourseUnit.model_construct(
            node_id=request.node_id,
            title=request.title,
            description=request.description,
            type=request.type,
            content=request.content,
            metadata=request.metadata,
        )
        return validate_course_unit(unit, node_ids=self._load().all_node_ids())

    def create(self, data: CourseUnitInput) -> CourseUnit:
        request = coerce_input(CreateCourseUnitData, self.entity, data)
        document = self._load()
        unit = build_model(CourseUnit, self.entity, request.model_dump())
        report = validate_course_unit(unit, node_ids=document.all_node_ids())
        if not report.is_valid:
            raise ValidationError(self.entity, report)

        document.course_units.append(unit)
        self._commit(
            document,
            "course_unit_created",
            {"unitId": unit.id, "nodeId": unit.node_id, "title": unit.title},
        )
        return unit

    def update(self, unit_id: str, partial: Mapping[str, Any]) -> CourseUnit:
        document = self._load()
        current = document.find_course_unit(unit_id)
        if current is None:
            raise NotFoundError(self.entity, unit_id)

        changes, report = resolve_changes(CourseUnit, partial)
        if not report.is_valid:
            raise ValidationError(self.entity, report)
        merged = current.model_dump()
        merged.update(changes)
        candidate = build_model(CourseUnit, self.entity, merged)
        report.extend(validate_course_unit(candidate, node_ids=document.all_node_ids()))
        if not report.is_valid:
            raise ValidationError(self.entity, report)

        changed = [name for name in changes if getattr(current, name) != getattr(candidate, name)]
        if not changed:
            return current
        candidate.updated_at = max(datetime.now(timezone.utc), current.updated_at)
        index = next(i for i, unit in enumerate(document.course_units) if unit.id == unit_id)
        document.course_units[index] = candidate
        self._commit(
            document,
            "course_unit_updated",
            {"unitId": unit_id, "nodeId": candidate.node_id, "changes": changed},
        )
        return candidate

    def delete(self, unit_id: str) -> bool:
        document = self._load()
        unit = document.find_course_unit(unit_id)
        if unit is None:
            return False
        document.course_units = [item for item in document.course_units if item.id != unit_id]
        self._commit(
            document,
            "course_unit_deleted",
            {"unitId": unit_id, "nodeId": unit.node_id, "title": unit.title},
        )
        return True


__all__ = ["CourseUnitRepository"]
