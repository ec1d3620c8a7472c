"""Profile-scoped learning core data: goals, paths, course units and their events."""

from .activation import ActivationManager
from .errors import (
    ActivationLimitExceeded,
    CoreDataError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from .profiles import ProfileSession
from .results import OperationResult
from .service import CoreDataService, build_service
from .stats import StatsAggregator
from .store import CoreDataStore

__all__ = [
    "ActivationLimitExceeded",
    "ActivationManager",
    "CoreDataError",
    "CoreDataService",
    "CoreDataStore",
    "NotFoundError",
    "OperationResult",
    "ProfileSession",
    "StatsAggregator",
    "StorageError",
    "ValidationError",
    "build_service",
]
