"""Per-tour planning for a vehicle's assigned stops.

Every (vehicle, tour) pair is an independent sequencing problem. Tours all
start from the same vehicle position and are never chained in time, so they
can be planned in parallel.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Optional, Sequence

from ...config import Settings, settings as default_settings
from ...data.assignments_repository import AssignmentsRepository
from ...models.domain import Assignment, Vehicle
from .errors import InvalidInput
from .models import (
    Coordinate,
    CrossingPreference,
    PlanningRequest,
    PlanningResult,
    Stop,
    TourKey,
)
from .planner import plan

logger = logging.getLogger(__name__)

DEFAULT_TOUR_NUMBER = 1


def partition_by_tour(stops: Sequence[Stop]) -> dict[int, list[Stop]]:
    """Group stops by tour number, keeping input order inside each tour."""
    groups: dict[int, list[Stop]] = {}
    for stop in stops:
        tour = stop.tour_number if stop.tour_number is not None else DEFAULT_TOUR_NUMBER
        groups.setdefault(tour, []).append(stop)
    return {tour: groups[tour] for tour in sorted(groups)}


def plan_tours(
    vehicle_id: str,
    origin: Coordinate,
    stops: Sequence[Stop],
    *,
    end: Optional[Coordinate] = None,
    keep_order: bool = False,
    crossing_preference: CrossingPreference = CrossingPreference.ANY,
    departure_time: Optional[datetime] = None,
    provider=None,
    config: Settings | None = None,
) -> dict[TourKey, PlanningResult]:
    """Plan each of the vehicle's tours on its own; metrics are never merged."""
    config = config or default_settings
    groups = partition_by_tour(stops)
    if not groups:
        return {}

    def run(tour_stops: list[Stop]) -> PlanningResult:
        request = PlanningRequest(
            origin=origin,
            stops=tour_stops,
            end=end,
            keep_order=keep_order,
            crossing_preference=crossing_preference,
            departure_time=departure_time,
        )
        return plan(request, provider=provider, config=config)

    logger.info(f"Planning {len(groups)} tours for vehicle {vehicle_id}")
    workers = min(config.tour_max_workers, len(groups))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {tour: executor.submit(run, tour_stops) for tour, tour_stops in groups.items()}
        return {TourKey(vehicle_id, tour): future.result() for tour, future in futures.items()}


def resolve_origin(vehicle: Vehicle, config: Settings) -> Coordinate:
    """Vehicle position, then the configured depot, then the default city center."""
    if vehicle.location is not None:
        return vehicle.location
    if config.depot is not None:
        lat, lng = config.depot
        return Coordinate(lat=lat, lng=lng)
    logger.warning(f"Vehicle {vehicle.vehicle_id} has no location and no depot is configured, using default origin")
    return Coordinate(lat=config.default_origin_lat, lng=config.default_origin_lng)


def _draft_order(assignments: Sequence[Assignment]) -> list[Stop]:
    # Stops without a stored position go last, in their original order.
    ranked = sorted(
        enumerate(assignments),
        key=lambda item: (item[1].delivery_order is None, item[1].delivery_order or 0, item[0]),
    )
    return [assignment.stop for _, assignment in ranked]


def plan_tour_group(
    vehicle_id: str,
    *,
    repository: AssignmentsRepository | None = None,
    provider=None,
    departure_time: Optional[datetime] = None,
    keep_order: bool = False,
    config: Settings | None = None,
) -> dict[int, PlanningResult]:
    """Plan every tour of one vehicle, keyed by tour number."""
    config = config or default_settings
    repository = repository or AssignmentsRepository()

    vehicle = repository.get_vehicle(vehicle_id)
    if vehicle is None:
        raise InvalidInput("vehicle_id", f"vehicle '{vehicle_id}' not found")

    assignments = repository.get_assignments(vehicle_id)
    stops = _draft_order(assignments) if keep_order else [assignment.stop for assignment in assignments]

    end = None
    if config.return_to_depot and config.depot is not None:
        lat, lng = config.depot
        end = Coordinate(lat=lat, lng=lng)

    results = plan_tours(
        vehicle_id,
        resolve_origin(vehicle, config),
        stops,
        end=end,
        keep_order=keep_order,
        crossing_preference=vehicle.crossing_preference,
        departure_time=departure_time,
        provider=provider,
        config=config,
    )
    return {key.tour_number: result for key, result in results.items()}
