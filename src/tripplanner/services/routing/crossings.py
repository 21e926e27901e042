"""Forced crossings over a geographic divide.

When a vehicle is bound to one crossing (e.g. a single Bosphorus bridge) and
its route has to change sides, three waypoints are inserted right after the
origin: the approach on the origin's side, the crossing itself, and the
approach on the far side. The backend still picks the streets in between.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional, Sequence

from ...config import settings
from ..geospatial import segment_crosses_line
from .errors import ConstraintMappingError
from .models import Coordinate, CrossingPreference

logger = logging.getLogger(__name__)

INJECTED_WAYPOINT_COUNT = 3


@dataclass(frozen=True, slots=True)
class Divide:
    axis: Literal["lng", "lat"]
    threshold: float

    def value(self, point: Coordinate) -> float:
        return point.lng if self.axis == "lng" else point.lat

    def side(self, point: Coordinate) -> int:
        """-1 on side A (below the threshold), 1 on side B, 0 on the line."""
        value = self.value(point)
        if value < self.threshold:
            return -1
        if value > self.threshold:
            return 1
        return 0

    def as_line(self) -> tuple[tuple[float, float], tuple[float, float]]:
        # (x, y) == (lng, lat)
        if self.axis == "lng":
            return ((self.threshold, -90.0), (self.threshold, 90.0))
        return ((-180.0, self.threshold), (180.0, self.threshold))


@dataclass(frozen=True, slots=True)
class Corridor:
    name: str
    center: Coordinate
    side_a_approach: Coordinate
    side_b_approach: Coordinate
    divide: Divide


def _bosphorus(divide_longitude: float | None = None) -> Divide:
    threshold = settings.divide_longitude if divide_longitude is None else divide_longitude
    return Divide(axis="lng", threshold=threshold)


def corridor_table(divide_longitude: float | None = None) -> dict[CrossingPreference, Corridor]:
    """Static crossings keyed by preference; side A is the European shore."""
    divide = _bosphorus(divide_longitude)
    return {
        CrossingPreference.CROSSING_A_ONLY: Corridor(
            name="Yavuz Sultan Selim",
            center=Coordinate(lat=41.1876, lng=29.0802),
            side_a_approach=Coordinate(lat=41.1950, lng=29.0650),
            side_b_approach=Coordinate(lat=41.1800, lng=29.0950),
            divide=divide,
        ),
        CrossingPreference.CROSSING_B_ONLY: Corridor(
            name="15 Temmuz Sehitler",
            center=Coordinate(lat=41.0422, lng=29.0097),
            side_a_approach=Coordinate(lat=41.0450, lng=28.9950),
            side_b_approach=Coordinate(lat=41.0400, lng=29.0250),
            divide=divide,
        ),
        CrossingPreference.CROSSING_C_ONLY: Corridor(
            name="Fatih Sultan Mehmet",
            center=Coordinate(lat=41.0892, lng=29.0551),
            side_a_approach=Coordinate(lat=41.0950, lng=29.0400),
            side_b_approach=Coordinate(lat=41.0850, lng=29.0700),
            divide=divide,
        ),
    }


def resolve_corridor(
    preference: CrossingPreference, divide_longitude: float | None = None
) -> Optional[Corridor]:
    return corridor_table(divide_longitude).get(CrossingPreference(preference))


def leg_crosses(a: Coordinate, b: Coordinate, divide: Divide) -> bool:
    return segment_crosses_line(a.to_lnglat(), b.to_lnglat(), divide.as_line())


def route_crosses(
    origin: Coordinate,
    stops: Sequence[Coordinate],
    end: Optional[Coordinate],
    divide: Divide,
) -> bool:
    """True if any leg the vehicle may drive crosses the divide.

    Order is not known before optimization, so origin-to-stop legs are checked
    alongside the legs of the given sequence and the return leg.
    """
    if any(leg_crosses(origin, stop, divide) for stop in stops):
        return True
    sequence = [origin, *stops]
    if any(leg_crosses(sequence[k], sequence[k + 1], divide) for k in range(len(sequence) - 1)):
        return True
    if end is not None:
        return leg_crosses(sequence[-1], end, divide)
    return False


@dataclass(slots=True)
class Injection:
    points: list[Coordinate]
    injected: int
    corridor: Optional[Corridor]


def inject_crossing(
    points: Sequence[Coordinate],
    preference: CrossingPreference,
    stops: Sequence[Coordinate],
    end: Optional[Coordinate] = None,
    divide_longitude: float | None = None,
) -> Injection:
    """Insert the corridor's waypoints after points[0] if the route crosses."""
    corridor = resolve_corridor(preference, divide_longitude)
    if corridor is None or not points:
        return Injection(points=list(points), injected=0, corridor=None)

    origin = points[0]
    if not route_crosses(origin, stops, end, corridor.divide):
        return Injection(points=list(points), injected=0, corridor=None)

    if corridor.divide.side(origin) <= 0:
        forced = [corridor.side_a_approach, corridor.center, corridor.side_b_approach]
    else:
        forced = [corridor.side_b_approach, corridor.center, corridor.side_a_approach]

    logger.info(f"Forcing route through {corridor.name} with {len(forced)} waypoints")
    return Injection(points=[origin, *forced, *points[1:]], injected=len(forced), corridor=corridor)


@dataclass(frozen=True, slots=True)
class WaypointLayout:
    """Index bookkeeping for [origin, *injected, *stops, end?]."""

    injected: int
    stop_count: int
    has_end: bool

    @property
    def total(self) -> int:
        return 1 + self.injected + self.stop_count + (1 if self.has_end else 0)

    @property
    def end_index(self) -> Optional[int]:
        return self.total - 1 if self.has_end else None

    def classify(self, index: int) -> tuple[str, Optional[int]]:
        """Return ("origin" | "constraint" | "stop" | "end", stop index or None)."""
        if not 0 <= index < self.total:
            raise ConstraintMappingError(self.total, index + 1, f"Index {index} is outside the waypoint list.")
        if index == 0:
            return "origin", None
        if index <= self.injected:
            return "constraint", None
        if index == self.end_index:
            return "end", None
        return "stop", index - 1 - self.injected

    def verify(self, order: Sequence[int]) -> None:
        if len(order) != self.total:
            raise ConstraintMappingError(self.total, len(order))
        if sorted(order) != list(range(self.total)):
            raise ConstraintMappingError(
                self.total, len(order), f"Order {list(order)} is not a permutation of the waypoints."
            )
