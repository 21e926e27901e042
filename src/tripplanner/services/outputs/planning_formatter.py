"""Serializers for planning outputs."""

from __future__ import annotations

import csv
import io

from ..routing.models import Geometry, PlanningResult, StopResult
from .formatter import format_distance, format_duration


def _geometry_to_list(geometry: Geometry) -> list[list[float]]:
    # [lat, lng] for map clients
    return [[point.lat, point.lng] for point in geometry]


def stop_result_to_json(result: StopResult) -> dict:
    stop = result.stop
    return {
        "id": stop.id,
        "name": stop.name,
        "kind": stop.kind.value,
        "lat": stop.coordinate.lat if stop.coordinate else None,
        "lng": stop.coordinate.lng if stop.coordinate else None,
        "time_window": stop.time_window,
        "weight": stop.weight,
        "route_order": result.route_order,
        "eta": result.eta.isoformat(),
        "cumulative_distance_m": result.cumulative_distance_m,
        "cumulative_duration_s": result.cumulative_duration_s,
        "is_depot_return": result.is_depot_return,
    }


def planning_result_to_json(result: PlanningResult) -> dict:
    return {
        "stop_results": [stop_result_to_json(stop_result) for stop_result in result.stop_results],
        "total_distance_m": result.total_distance_m,
        "total_duration_s": result.total_duration_s,
        "traffic_adjusted_duration_s": result.traffic_adjusted_duration_s,
        "total_distance_display": format_distance(result.total_distance_m),
        "total_duration_display": format_duration(result.traffic_adjusted_duration_s),
        "path_segments": [_geometry_to_list(segment) for segment in result.path_segments],
        "degraded": result.degraded,
        "downgrade_reason": result.downgrade_reason,
        "unplannable": list(result.unplannable),
        "injected_waypoints": result.injected_waypoints,
        "corridor": result.corridor,
        "source": result.source,
    }


def planning_result_to_csv(result: PlanningResult) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "route_order",
        "stop_id",
        "kind",
        "lat",
        "lng",
        "time_window",
        "eta",
        "cumulative_distance_m",
        "cumulative_duration_s",
        "degraded",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for stop_result in result.stop_results:
        stop = stop_result.stop
        writer.writerow(
            {
                "route_order": stop_result.route_order,
                "stop_id": stop.id,
                "kind": stop.kind.value,
                "lat": stop.coordinate.lat if stop.coordinate else "",
                "lng": stop.coordinate.lng if stop.coordinate else "",
                "time_window": stop.time_window or "",
                "eta": stop_result.eta.isoformat(),
                "cumulative_distance_m": round(stop_result.cumulative_distance_m, 1),
                "cumulative_duration_s": round(stop_result.cumulative_duration_s, 1),
                "degraded": result.degraded,
            }
        )
    return buffer.getvalue()
