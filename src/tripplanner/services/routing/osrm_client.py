"""HTTP client for the OSRM route and trip services."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx

from ...config import settings
from .errors import InvalidInput, ProviderTimeout, ProviderUnavailable
from .models import Coordinate, Geometry, Leg, RouteResult, TripResult

logger = logging.getLogger(__name__)

# geojson geometries keep coordinates as plain [lng, lat] arrays; steps are needed for per-leg geometry
ROUTE_PARAMS = {
    "overview": "full",
    "geometries": "geojson",
    "steps": "true",
}


class OSRMClient:
    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_seconds

    def _get_client(self) -> httpx.Client:
        """Get a short-lived HTTP client; calls may come from worker threads."""
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 10.0)),
            limits=httpx.Limits(max_connections=1, max_keepalive_connections=0),
        )

    def _request(self, service: str, points: Sequence[Coordinate], params: dict[str, str]) -> dict:
        coordinate_str = ";".join(f"{lng},{lat}" for lng, lat in (p.to_lnglat() for p in points))
        url = f"{self.base_url}/{service}/v1/{self.profile}/{coordinate_str}"
        logger.debug(f"OSRM {service} request with {len(points)} coordinates: {url}")

        client = self._get_client()
        try:
            response = client.get(url, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise ProviderTimeout(f"OSRM {service} request timed out after {self.timeout}s: {e}") from e
        except httpx.HTTPStatusError as e:
            raise ProviderUnavailable(
                f"OSRM {service} request failed with HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, OSError) as e:
            raise ProviderUnavailable(f"Failed to connect to OSRM service at {self.base_url}: {e}") from e
        except ValueError as e:
            raise ProviderUnavailable(f"OSRM {service} response is not valid JSON: {e}") from e
        finally:
            client.close()

        if not isinstance(data, dict):
            raise ProviderUnavailable(f"OSRM {service} response is not a JSON object.")
        if data.get("code") != "Ok":
            error_msg = data.get("message", "Unknown OSRM error")
            raise ProviderUnavailable(f"OSRM {service} request failed ({data.get('code')}): {error_msg}")
        return data

    def route(self, points: Sequence[Coordinate]) -> RouteResult:
        """Route through the points in the given order.

        Args:
            points: Waypoints in visiting order (at least two)

        Returns:
            RouteResult with totals, full geometry and one leg per consecutive pair
        """
        if len(points) < 2:
            raise InvalidInput("points", "At least two coordinates are required for OSRM route.")

        data = self._request("route", points, dict(ROUTE_PARAMS))
        routes = data.get("routes")
        if not isinstance(routes, list) or not routes:
            raise ProviderUnavailable("OSRM route response contains no routes.")

        route = routes[0]
        legs = _parse_legs(route, expected=len(points) - 1)
        try:
            return RouteResult(
                distance_m=float(route["distance"]),
                duration_s=float(route["duration"]),
                geometry=_parse_geometry(route.get("geometry")),
                legs=legs,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderUnavailable(f"Malformed OSRM route payload: {e}") from e

    def trip(self, points: Sequence[Coordinate], fixed_first: bool = True, fixed_last: bool = False) -> TripResult:
        """Let OSRM choose the visiting order of the points.

        OSRM only serves open trips when both ends are fixed, so without
        ``fixed_last`` a round trip is requested and its closing leg dropped.
        """
        if len(points) < 3:
            raise InvalidInput("points", "At least three coordinates are required for OSRM trip.")

        roundtrip = not fixed_last
        params = dict(ROUTE_PARAMS)
        params.update(
            {
                "source": "first" if fixed_first else "any",
                "destination": "last" if fixed_last else "any",
                "roundtrip": "true" if roundtrip else "false",
            }
        )
        data = self._request("trip", points, params)

        trips = data.get("trips")
        waypoints = data.get("waypoints")
        if not isinstance(trips, list) or not trips:
            raise ProviderUnavailable("OSRM trip response contains no trips.")
        if not isinstance(waypoints, list) or len(waypoints) != len(points):
            raise ProviderUnavailable(
                f"OSRM trip returned {len(waypoints) if isinstance(waypoints, list) else 0} waypoints "
                f"for {len(points)} coordinates."
            )

        order = _order_from_waypoints(waypoints)
        trip = trips[0]
        legs = _parse_legs(trip, expected=len(points) if roundtrip else len(points) - 1)

        if roundtrip:
            # The trip comes back to the first point; drop that closing leg.
            if order[0] != 0 and fixed_first:
                raise ProviderUnavailable(f"OSRM trip does not start at the first coordinate: {order}")
            legs = legs[:-1]
            return TripResult(
                order=order,
                distance_m=sum(leg.distance_m for leg in legs),
                duration_s=sum(leg.duration_s for leg in legs),
                geometry=_join_geometries([leg.geometry for leg in legs]),
                legs=legs,
            )

        try:
            return TripResult(
                order=order,
                distance_m=float(trip["distance"]),
                duration_s=float(trip["duration"]),
                geometry=_parse_geometry(trip.get("geometry")),
                legs=legs,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderUnavailable(f"Malformed OSRM trip payload: {e}") from e


def _parse_geometry(geometry: Any) -> Geometry:
    """Convert a GeoJSON LineString into coordinates, validating [lng, lat] order."""
    if geometry is None:
        return []
    if not isinstance(geometry, dict) or not isinstance(geometry.get("coordinates"), list):
        raise ProviderUnavailable("OSRM geometry is not a GeoJSON LineString.")
    try:
        return [Coordinate.from_lnglat(pair) for pair in geometry["coordinates"]]
    except (InvalidInput, TypeError) as e:
        raise ProviderUnavailable(f"OSRM returned an invalid coordinate: {e}") from e


def _parse_legs(route: dict, expected: int) -> list[Leg]:
    raw_legs = route.get("legs")
    if not isinstance(raw_legs, list) or len(raw_legs) != expected:
        raise ProviderUnavailable(
            f"OSRM returned {len(raw_legs) if isinstance(raw_legs, list) else 0} legs, expected {expected}."
        )
    legs: list[Leg] = []
    for raw in raw_legs:
        try:
            geometry = _join_geometries(
                [_parse_geometry(step.get("geometry")) for step in raw.get("steps") or []]
            )
            legs.append(
                Leg(
                    distance_m=float(raw["distance"]),
                    duration_s=float(raw["duration"]),
                    geometry=geometry,
                )
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ProviderUnavailable(f"Malformed OSRM leg: {e}") from e
    return legs


def _join_geometries(parts: Sequence[Geometry]) -> Geometry:
    joined: Geometry = []
    for part in parts:
        for point in part:
            if not joined or joined[-1] != point:
                joined.append(point)
    return joined


def _order_from_waypoints(waypoints: list) -> list[int]:
    """Invert OSRM's per-input ``waypoint_index`` into the visiting order."""
    order: list[int | None] = [None] * len(waypoints)
    for input_index, waypoint in enumerate(waypoints):
        try:
            position = int(waypoint["waypoint_index"])
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderUnavailable(f"Malformed OSRM waypoint at index {input_index}: {e}") from e
        if not 0 <= position < len(order) or order[position] is not None:
            raise ProviderUnavailable(f"OSRM returned an invalid waypoint_index {position}.")
        order[position] = input_index
    return [index for index in order if index is not None]


def check_health(base_url: str | None = None) -> bool:
    """Check OSRM service health by routing between two fixed points."""
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    try:
        OSRMClient(base_url=base, timeout=5.0).route(
            [Coordinate(lat=41.0082, lng=28.9784), Coordinate(lat=41.0100, lng=28.9800)]
        )
        return True
    except ProviderUnavailable as e:
        logger.warning(f"OSRM health check failed: {e}")
        return False
