"""Read-only access to vehicles and their assigned stops."""

from __future__ import annotations

import functools
import json
import logging
from pathlib import Path
from typing import Any, Optional

from ..config import settings
from ..models.domain import Assignment, Vehicle
from ..services.routing.errors import InvalidInput
from ..services.routing.models import Coordinate, CrossingPreference, Stop, StopKind

logger = logging.getLogger(__name__)


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(str(value).replace(",", ""))
    except ValueError as exc:
        raise ValueError(f"Unable to parse float from value '{value}'") from exc


def _coerce_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def _first_present(row: dict, *keys: str) -> Any:
    """Value of the first key that is set; 0 counts as set."""
    for key in keys:
        value = row.get(key)
        if value is not None and value != "":
            return value
    return None


def _parse_vehicle(row: dict) -> Vehicle:
    preference = row.get("crossing_preference") or row.get("bridge_preference") or "any"
    try:
        crossing = CrossingPreference(preference)
    except ValueError:
        logger.warning(f"Unknown crossing preference '{preference}' for vehicle {row.get('id')}, using 'any'")
        crossing = CrossingPreference.ANY
    return Vehicle(
        vehicle_id=str(row["id"]).strip(),
        plate=(row.get("plate") or "").strip() or None,
        current_lat=_coerce_float(row.get("current_lat")),
        current_lng=_coerce_float(row.get("current_lng")),
        crossing_preference=crossing,
    )


def _parse_assignment(row: dict) -> Assignment:
    lat = _coerce_float(_first_present(row, "lat", "delivery_lat"))
    lng = _coerce_float(_first_present(row, "lng", "delivery_lng"))
    # Stops without coordinates are kept; the planner reports them as unplannable.
    coordinate = Coordinate(lat=lat, lng=lng) if lat is not None and lng is not None else None
    stop = Stop(
        id=str(row["id"]).strip(),
        coordinate=coordinate,
        time_window=(row.get("time_window") or row.get("delivery_time") or "").strip() or None,
        kind=StopKind(row.get("kind") or StopKind.DELIVERY.value),
        weight=_coerce_float(row.get("weight")) or 0.0,
        tour_number=_coerce_int(row.get("tour_number")),
        name=(row.get("name") or row.get("customer_name") or "").strip() or None,
    )
    return Assignment(
        vehicle_id=str(row["vehicle_id"]).strip(),
        stop=stop,
        delivery_order=_coerce_int(row.get("delivery_order")),
    )


@functools.lru_cache(maxsize=4)
def load_assignments(source: Optional[Path] = None) -> tuple[tuple[Vehicle, ...], tuple[Assignment, ...]]:
    """Load vehicles and assignments from the configured JSON export."""

    json_path = source or settings.assignments_file
    if not json_path.exists():
        raise FileNotFoundError(f"Assignments file not found: {json_path}")

    with json_path.open(mode="r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"Assignments file '{json_path}' must contain a JSON object.")

    vehicles: list[Vehicle] = []
    for row in payload.get("vehicles", []):
        try:
            vehicles.append(_parse_vehicle(row))
        except (KeyError, ValueError, InvalidInput) as e:
            logger.warning(f"Skipping invalid vehicle row: {e}")

    assignments: list[Assignment] = []
    for row in payload.get("stops", []):
        try:
            assignments.append(_parse_assignment(row))
        except (KeyError, ValueError, InvalidInput) as e:
            logger.warning(f"Skipping invalid stop row: {e}")

    logger.info(f"Loaded {len(vehicles)} vehicles and {len(assignments)} assigned stops from {json_path}")
    return tuple(vehicles), tuple(assignments)


class AssignmentsRepository:
    """Lookup of vehicles and their assigned stops, backed by the JSON export."""

    def __init__(self, source: Path | None = None) -> None:
        self.source = source

    def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        vehicles, _ = load_assignments(self.source)
        return next((vehicle for vehicle in vehicles if vehicle.vehicle_id == vehicle_id), None)

    def get_assignments(self, vehicle_id: str) -> list[Assignment]:
        _, assignments = load_assignments(self.source)
        return [assignment for assignment in assignments if assignment.vehicle_id == vehicle_id]
