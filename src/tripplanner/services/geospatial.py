"""Geospatial helper functions."""

from __future__ import annotations

import math

from shapely.geometry import LineString

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return haversine_km(lat1, lon1, lat2, lon2) * 1000.0


def estimate_duration_s(distance_m: float, average_speed_kmh: float) -> float:
    """Travel time in seconds for a distance driven at a constant average speed."""
    return (distance_m / 1000.0) / average_speed_kmh * 3600.0


def segment_crosses_line(
    start: tuple[float, float],
    end: tuple[float, float],
    line: tuple[tuple[float, float], tuple[float, float]],
) -> bool:
    """Return True if the segment start->end passes through the interior of line.

    Points are (x, y) pairs, i.e. (lng, lat). A segment that merely touches the
    line with one endpoint does not cross it.
    """

    if start == end:
        return False
    return LineString([start, end]).crosses(LineString(list(line)))
