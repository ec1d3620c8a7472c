"""Discriminated success/failure records returned to UI and API callers."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import Field

from .errors import CoreDataError
from .models import CoreModel


class OperationResult(CoreModel):
    success: bool
    data: Any = None
    message: str = ""
    error: Optional[str] = None
    error_code: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any = None, message: str = "") -> "OperationResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(
        cls,
        message: str,
        *,
        error_code: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> "OperationResult":
        return cls(
            success=False,
            message=message,
            error=message,
            error_code=error_code,
            details=details or {},
        )

    @classmethod
    def from_error(cls, exc: CoreDataError) -> "OperationResult":
        return cls.fail(exc.message, error_code=exc.code, details=exc.details)


__all__ = ["OperationResult"]
