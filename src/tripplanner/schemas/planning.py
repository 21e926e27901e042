"""Planning request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..services.routing.models import (
    Coordinate,
    CrossingPreference,
    PlanningRequest,
    Stop,
    StopKind,
)


class CoordinateModel(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_coordinate(self) -> Coordinate:
        return Coordinate(lat=self.lat, lng=self.lng)


class StopModel(BaseModel):
    id: str = Field(..., min_length=1)
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)
    time_window: Optional[str] = Field(default=None, description="Preferred delivery time, e.g. '14:00'.")
    kind: StopKind = StopKind.DELIVERY
    weight: float = Field(default=0.0, ge=0)
    tour_number: Optional[int] = Field(default=None, ge=1)
    name: Optional[str] = None

    def to_stop(self) -> Stop:
        coordinate = None
        if self.lat is not None and self.lng is not None:
            coordinate = Coordinate(lat=self.lat, lng=self.lng)
        return Stop(
            id=self.id,
            coordinate=coordinate,
            time_window=self.time_window or None,
            kind=self.kind,
            weight=self.weight,
            tour_number=self.tour_number,
            name=self.name,
        )


class PlanRequestModel(BaseModel):
    origin: CoordinateModel
    stops: List[StopModel] = Field(default_factory=list)
    end: Optional[CoordinateModel] = Field(default=None, description="Return point, e.g. the depot.")
    keep_order: bool = Field(
        default=False,
        description="If True, stops are visited in the given order and only timings are computed.",
    )
    crossing_preference: CrossingPreference = CrossingPreference.ANY
    departure_time: Optional[datetime] = None
    persist: bool = False

    @field_validator("crossing_preference", mode="before")
    @classmethod
    def _parse_preference(cls, value: Any) -> CrossingPreference:
        if value is None or value == "":
            return CrossingPreference.ANY
        return CrossingPreference(value)

    def to_planning_request(self) -> PlanningRequest:
        return PlanningRequest(
            origin=self.origin.to_coordinate(),
            stops=[stop.to_stop() for stop in self.stops],
            end=self.end.to_coordinate() if self.end else None,
            keep_order=self.keep_order,
            crossing_preference=self.crossing_preference,
            departure_time=self.departure_time,
        )


class StopResultModel(BaseModel):
    id: str
    name: Optional[str]
    kind: StopKind
    lat: Optional[float]
    lng: Optional[float]
    time_window: Optional[str]
    weight: float
    route_order: int
    eta: datetime
    cumulative_distance_m: float
    cumulative_duration_s: float
    is_depot_return: bool


class PlanResponseModel(BaseModel):
    stop_results: List[StopResultModel]
    total_distance_m: float
    total_duration_s: float
    traffic_adjusted_duration_s: float
    total_distance_display: str
    total_duration_display: str
    path_segments: List[List[List[float]]]
    degraded: bool
    downgrade_reason: Optional[str]
    unplannable: List[str]
    injected_waypoints: int
    corridor: Optional[str]
    source: str


class TourPlanRequestModel(BaseModel):
    departure_time: Optional[datetime] = None
    keep_order: bool = Field(
        default=False,
        description="If True, the stored delivery order is kept (a dispatcher's draft).",
    )


class TourGroupResponseModel(BaseModel):
    vehicle_id: str
    tours: Dict[int, PlanResponseModel]
