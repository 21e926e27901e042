"""Route optimization engine.

Tour planning lives in ``tours``, which also reads the assignments repository.
"""

from .errors import ConstraintMappingError, InvalidInput, PlanningError, ProviderUnavailable
from .models import (
    Coordinate,
    CrossingPreference,
    PlanningRequest,
    PlanningResult,
    Stop,
    StopKind,
    StopResult,
    TourKey,
)
from .planner import plan

__all__ = [
    "ConstraintMappingError",
    "Coordinate",
    "CrossingPreference",
    "InvalidInput",
    "PlanningError",
    "PlanningRequest",
    "PlanningResult",
    "ProviderUnavailable",
    "Stop",
    "StopKind",
    "StopResult",
    "TourKey",
    "plan",
]
