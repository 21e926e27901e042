"""Routing domain models."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence

from .errors import InvalidInput


@dataclass(frozen=True, slots=True)
class Coordinate:
    lat: float
    lng: float

    def __post_init__(self) -> None:
        for name, value, bound in (("lat", self.lat, 90.0), ("lng", self.lng, 180.0)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidInput(name, f"expected a number, got {value!r}")
            if not math.isfinite(value) or not -bound <= value <= bound:
                raise InvalidInput(name, f"{value} is outside [-{bound:g}, {bound:g}]")

    def to_lnglat(self) -> tuple[float, float]:
        """Wire order used by OSRM: longitude first."""
        return (self.lng, self.lat)

    @classmethod
    def from_lnglat(cls, pair: Sequence[float]) -> "Coordinate":
        if len(pair) < 2:
            raise InvalidInput("coordinate", f"expected a [lng, lat] pair, got {pair!r}")
        return cls(lat=pair[1], lng=pair[0])


Geometry = List[Coordinate]


class StopKind(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"
    DEPOT_RETURN = "depot-return"


class CrossingPreference(str, Enum):
    ANY = "any"
    CROSSING_A_ONLY = "crossing_a_only"
    CROSSING_B_ONLY = "crossing_b_only"
    CROSSING_C_ONLY = "crossing_c_only"

    @classmethod
    def _missing_(cls, value: object) -> Optional["CrossingPreference"]:
        # Vehicle records exported by the dispatch system still carry bridge names.
        legacy = {
            "fsm_only": cls.CROSSING_A_ONLY,
            "bosphorus_only": cls.CROSSING_B_ONLY,
            "fatih_only": cls.CROSSING_C_ONLY,
        }
        if isinstance(value, str):
            return legacy.get(value.strip().lower())
        return None


@dataclass(slots=True)
class Stop:
    id: str
    coordinate: Optional[Coordinate]
    time_window: Optional[str] = None
    kind: StopKind = StopKind.DELIVERY
    weight: float = 0.0
    tour_number: Optional[int] = None
    name: Optional[str] = None


@dataclass(slots=True)
class Leg:
    distance_m: float
    duration_s: float
    geometry: Geometry = field(default_factory=list)


@dataclass(slots=True)
class RouteResult:
    distance_m: float
    duration_s: float
    geometry: Geometry
    legs: List[Leg]


@dataclass(slots=True)
class TripResult:
    order: List[int]
    distance_m: float
    duration_s: float
    geometry: Geometry
    legs: List[Leg]


@dataclass(slots=True)
class StopResult:
    stop: Stop
    route_order: int
    eta: datetime
    cumulative_distance_m: float
    cumulative_duration_s: float

    @property
    def is_depot_return(self) -> bool:
        return self.stop.kind is StopKind.DEPOT_RETURN


@dataclass(slots=True)
class PlanningRequest:
    origin: Coordinate
    stops: List[Stop]
    end: Optional[Coordinate] = None
    keep_order: bool = False
    crossing_preference: CrossingPreference = CrossingPreference.ANY
    departure_time: Optional[datetime] = None


@dataclass(slots=True)
class PlanningResult:
    stop_results: List[StopResult]
    total_distance_m: float
    total_duration_s: float
    path_segments: List[Geometry]
    degraded: bool = False
    downgrade_reason: Optional[str] = None
    traffic_adjusted_duration_s: float = 0.0
    unplannable: List[str] = field(default_factory=list)
    injected_waypoints: int = 0
    corridor: Optional[str] = None
    source: str = "empty"


@dataclass(frozen=True, slots=True)
class TourKey:
    vehicle_id: str
    tour_number: int
