"""Trip planning orchestration for a single vehicle and tour."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from ...config import Settings, settings as default_settings
from ..geospatial import estimate_duration_s, haversine_m
from .crossings import WaypointLayout, inject_crossing
from .errors import ConstraintMappingError, InvalidInput, ProviderUnavailable
from .local_solver import solve_local_trip
from .models import (
    Coordinate,
    Geometry,
    Leg,
    PlanningRequest,
    PlanningResult,
    Stop,
    StopKind,
    StopResult,
)
from .osrm_client import OSRMClient
from .time_windows import parse_time_window, reconcile_time_windows

logger = logging.getLogger(__name__)

DEPOT_RETURN_ID = "depot-return"


@dataclass(slots=True)
class _Sequenced:
    """Waypoint indices in visiting order plus the legs between them."""

    order: list[int]
    legs: list[Leg]
    geometry: Geometry
    degraded: bool
    reason: Optional[str]
    source: str


def _validate(request: PlanningRequest) -> None:
    if not isinstance(request.origin, Coordinate):
        raise InvalidInput("origin", "a vehicle start coordinate is required")
    if request.end is not None and not isinstance(request.end, Coordinate):
        raise InvalidInput("end", "expected a coordinate or nothing")

    seen: set[str] = set()
    for index, stop in enumerate(request.stops):
        if not isinstance(stop, Stop):
            raise InvalidInput(f"stops[{index}]", f"expected a Stop, got {type(stop).__name__}")
        if stop.id in seen:
            raise InvalidInput("stops", f"duplicate stop id '{stop.id}'")
        seen.add(stop.id)
        if stop.coordinate is not None and not isinstance(stop.coordinate, Coordinate):
            raise InvalidInput(f"stops[{index}].coordinate", "expected a coordinate or nothing")
        if stop.time_window:
            parse_time_window(stop.time_window, field=f"stops[{index}].time_window")


def _departure(request: PlanningRequest) -> datetime:
    departure = request.departure_time or datetime.now(timezone.utc)
    if departure.tzinfo is None:
        departure = departure.replace(tzinfo=timezone.utc)
    return departure


def _default_provider(config: Settings):
    if not config.osrm_base_url:
        logger.warning("OSRM client unavailable: no base URL configured")
        return None, "OSRM base URL is not configured."
    try:
        client = OSRMClient(
            base_url=config.osrm_base_url,
            profile=config.osrm_profile,
            timeout=config.osrm_timeout_seconds,
        )
    except ValueError as e:
        logger.warning(f"OSRM client unavailable: {e}")
        return None, str(e)
    return client, None


def _haversine_legs(points: Sequence[Coordinate], config: Settings) -> list[Leg]:
    legs: list[Leg] = []
    for a, b in zip(points, points[1:]):
        distance = haversine_m(a.lat, a.lng, b.lat, b.lng)
        legs.append(
            Leg(
                distance_m=distance,
                duration_s=estimate_duration_s(distance, config.average_speed_kmh),
                geometry=[a, b],
            )
        )
    return legs


def _route_in_order(points: Sequence[Coordinate], provider, provider_error: Optional[str], config: Settings) -> _Sequenced:
    order = list(range(len(points)))
    if provider is not None:
        try:
            result = provider.route(points)
            return _Sequenced(order, result.legs, result.geometry, False, None, "osrm-route")
        except ProviderUnavailable as e:
            logger.warning(f"OSRM route failed: {e}. Using haversine estimates.")
            provider_error = str(e)
    return _Sequenced(
        order,
        _haversine_legs(points, config),
        list(points),
        True,
        f"Routing backend unavailable, distances estimated with haversine: {provider_error}",
        "haversine",
    )


def _optimize(
    points: Sequence[Coordinate], fixed_last: bool, provider, provider_error: Optional[str], config: Settings
) -> _Sequenced:
    if provider is not None:
        try:
            result = provider.trip(points, fixed_first=True, fixed_last=fixed_last)
            return _Sequenced(result.order, result.legs, result.geometry, False, None, "osrm-trip")
        except ProviderUnavailable as e:
            logger.warning(f"OSRM trip optimization failed: {e}. Falling back to local heuristic.")
            provider_error = str(e)

    local = solve_local_trip(
        points,
        provider,
        fixed_last=fixed_last,
        average_speed_kmh=config.average_speed_kmh,
        max_workers=config.local_solver_max_workers,
    )
    geometry = [points[index] for index in local.order]
    return _Sequenced(
        local.order,
        local.legs,
        geometry,
        True,
        f"Trip optimization unavailable, order computed locally: {provider_error}",
        "local-heuristic",
    )


def _walk(
    sequenced: _Sequenced,
    layout: WaypointLayout,
    stops: Sequence[Stop],
) -> list[tuple[Optional[Stop], float, float]]:
    """Map backend order back to stops with cumulative distance and duration."""
    layout.verify(sequenced.order)
    if len(sequenced.legs) != len(sequenced.order) - 1:
        raise ConstraintMappingError(
            len(sequenced.order) - 1, len(sequenced.legs), "Leg count does not match waypoint order."
        )

    visits: list[tuple[Optional[Stop], float, float]] = []
    trailing: list[tuple[Optional[Stop], float, float]] = []
    distance = duration = 0.0
    for position, index in enumerate(sequenced.order):
        if position > 0:
            leg = sequenced.legs[position - 1]
            distance += leg.distance_m
            duration += leg.duration_s
        role, stop_index = layout.classify(index)
        if role == "stop":
            visits.append((stops[stop_index], distance, duration))
        elif role == "end":
            trailing.append((None, distance, duration))
    return visits + trailing


def _depot_return_stop(end: Coordinate) -> Stop:
    return Stop(id=DEPOT_RETURN_ID, coordinate=end, kind=StopKind.DEPOT_RETURN, name="Depot return")


def _path_segments(sequenced: _Sequenced) -> list[Geometry]:
    segments = [list(leg.geometry) for leg in sequenced.legs if leg.geometry]
    if not segments and sequenced.geometry:
        segments = [list(sequenced.geometry)]
    return segments


def plan(
    request: PlanningRequest,
    *,
    provider=None,
    config: Settings | None = None,
) -> PlanningResult:
    """Plan the visiting order and timings for one vehicle's stops.

    Args:
        request: Vehicle start, stops and options for this call
        provider: Object exposing ``route(points)`` and ``trip(points, fixed_first, fixed_last)``;
            defaults to an OSRMClient built from settings
        config: Settings override (defaults to the module settings)

    Returns:
        PlanningResult; ``degraded`` is set when the routing backend could not be used
    """
    config = config or default_settings
    _validate(request)
    departure = _departure(request)

    plannable = [stop for stop in request.stops if stop.coordinate is not None]
    unplannable = [stop.id for stop in request.stops if stop.coordinate is None]
    if unplannable:
        logger.warning(f"Skipping {len(unplannable)} stops without coordinates: {unplannable}")

    if not plannable:
        return PlanningResult(
            stop_results=[],
            total_distance_m=0.0,
            total_duration_s=0.0,
            path_segments=[],
            unplannable=unplannable,
            source="empty",
        )

    provider_error: Optional[str] = None
    if provider is None:
        provider, provider_error = _default_provider(config)

    end = request.end
    stop_points = [stop.coordinate for stop in plannable]
    base_points = [request.origin, *stop_points, *([end] if end is not None else [])]
    injection = inject_crossing(
        base_points, request.crossing_preference, stop_points, end, divide_longitude=config.divide_longitude
    )
    layout = WaypointLayout(injected=injection.injected, stop_count=len(plannable), has_end=end is not None)
    if len(injection.points) != layout.total:
        raise ConstraintMappingError(layout.total, len(injection.points), "Injected waypoint bookkeeping is off.")

    optimize = not request.keep_order and not (len(plannable) == 1 and end is None)
    if optimize:
        sequenced = _optimize(injection.points, end is not None, provider, provider_error, config)
    else:
        sequenced = _route_in_order(injection.points, provider, provider_error, config)

    visits = _walk(sequenced, layout, plannable)
    degraded = sequenced.degraded
    reasons = [sequenced.reason] if sequenced.reason else []
    source = sequenced.source

    if optimize:
        ordered = [stop for stop, _, _ in visits if stop is not None]
        reconciled = reconcile_time_windows(ordered)
        if [stop.id for stop in reconciled] != [stop.id for stop in ordered]:
            logger.info("Time windows changed the optimized order, re-routing the reconciled sequence")
            forced = injection.points[1 : 1 + injection.injected]
            points = [
                request.origin,
                *forced,
                *[stop.coordinate for stop in reconciled],
                *([end] if end is not None else []),
            ]
            sequenced = _route_in_order(points, provider, provider_error, config)
            # "<ordering source>+<metrics source>", e.g. "osrm-trip+osrm-route"
            source = f"{source}+{sequenced.source}"
            visits = _walk(sequenced, layout, reconciled)
            degraded = degraded or sequenced.degraded
            if sequenced.reason and sequenced.reason not in reasons:
                reasons.append(sequenced.reason)

    stop_results: list[StopResult] = []
    for route_order, (stop, distance, duration) in enumerate(visits, start=1):
        stop_results.append(
            StopResult(
                stop=stop if stop is not None else _depot_return_stop(end),
                route_order=route_order,
                eta=departure + timedelta(seconds=duration * config.traffic_factor),
                cumulative_distance_m=distance,
                cumulative_duration_s=duration,
            )
        )

    total_distance = sum(leg.distance_m for leg in sequenced.legs)
    total_duration = sum(leg.duration_s for leg in sequenced.legs)
    logger.info(
        f"Planned {len(plannable)} stops via {source}: {total_distance:.0f} m, "
        f"{total_duration:.0f} s (degraded={degraded})"
    )
    return PlanningResult(
        stop_results=stop_results,
        total_distance_m=total_distance,
        total_duration_s=total_duration,
        path_segments=_path_segments(sequenced),
        degraded=degraded,
        downgrade_reason="; ".join(reasons) or None,
        traffic_adjusted_duration_s=total_duration * config.traffic_factor,
        unplannable=unplannable,
        injected_waypoints=injection.injected,
        corridor=injection.corridor.name if injection.corridor else None,
        source=source,
    )
