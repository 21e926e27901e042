"""Domain models for vehicles and their assigned stops."""

from dataclasses import dataclass
from typing import Optional

from ..services.routing.models import Coordinate, CrossingPreference, Stop


@dataclass(slots=True)
class Vehicle:
    """A vehicle as exported by the dispatch system."""

    vehicle_id: str
    plate: Optional[str]
    current_lat: Optional[float]
    current_lng: Optional[float]
    crossing_preference: CrossingPreference = CrossingPreference.ANY

    @property
    def location(self) -> Optional[Coordinate]:
        if self.current_lat is None or self.current_lng is None:
            return None
        return Coordinate(lat=self.current_lat, lng=self.current_lng)


@dataclass(slots=True)
class Assignment:
    """A stop assigned to a vehicle, with the dispatcher's draft position."""

    vehicle_id: str
    stop: Stop
    delivery_order: Optional[int] = None
