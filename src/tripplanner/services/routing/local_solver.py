"""Backend-independent trip ordering: nearest neighbor construction plus 2-opt.

Used when the OSRM trip service cannot be reached. Index 0 is always the
vehicle position and stays first; with ``fixed_last`` the final index is a
return point and stays last.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Sequence

from ...config import settings
from ..geospatial import estimate_duration_s, haversine_m
from .errors import ProviderTimeout, ProviderUnavailable
from .models import Coordinate, Leg

logger = logging.getLogger(__name__)

IMPROVEMENT_EPSILON = 1e-9


@dataclass(slots=True)
class DistanceMatrix:
    distances: list[list[float]]
    durations: list[list[float]]
    degraded: bool
    fallback_pairs: int = 0

    def __len__(self) -> int:
        return len(self.distances)


@dataclass(slots=True)
class LocalTripResult:
    order: list[int]
    distance_m: float
    duration_s: float
    legs: list[Leg]
    degraded: bool
    nearest_neighbor_distance_m: float


def _haversine_pair(a: Coordinate, b: Coordinate, average_speed_kmh: float) -> tuple[float, float]:
    distance = haversine_m(a.lat, a.lng, b.lat, b.lng)
    return distance, estimate_duration_s(distance, average_speed_kmh)


def build_distance_matrix(
    points: Sequence[Coordinate],
    provider=None,
    *,
    average_speed_kmh: float | None = None,
    max_workers: int | None = None,
) -> DistanceMatrix:
    """Build symmetric distance (m) and duration (s) matrices.

    Each pair is routed through ``provider.route`` when a provider is given;
    pairs the provider cannot answer use the haversine estimate instead. Once
    one pair times out, the remaining pairs skip the provider.
    """
    speed = average_speed_kmh or settings.average_speed_kmh
    n = len(points)
    distances = [[0.0] * n for _ in range(n)]
    durations = [[0.0] * n for _ in range(n)]
    pairs = [(i, j) for i in range(n) for j in range(i + 1, n)]
    timed_out = threading.Event()

    def measure(i: int, j: int) -> tuple[int, int, float, float, bool]:
        if provider is not None and not timed_out.is_set():
            try:
                result = provider.route([points[i], points[j]])
                return i, j, result.distance_m, result.duration_s, False
            except ProviderTimeout as e:
                logger.warning(f"Pair ({i}, {j}) timed out, estimating remaining pairs with haversine: {e}")
                timed_out.set()
            except ProviderUnavailable as e:
                logger.debug(f"Pair ({i}, {j}) unavailable from provider, using haversine: {e}")
        distance, duration = _haversine_pair(points[i], points[j], speed)
        return i, j, distance, duration, True

    fallback_pairs = 0
    if provider is not None and pairs:
        with ThreadPoolExecutor(max_workers=max_workers or settings.local_solver_max_workers) as executor:
            futures = [executor.submit(measure, i, j) for i, j in pairs]
            results = [future.result() for future in as_completed(futures)]
    else:
        results = [measure(i, j) for i, j in pairs]

    for i, j, distance, duration, estimated in results:
        distances[i][j] = distances[j][i] = distance
        durations[i][j] = durations[j][i] = duration
        if estimated:
            fallback_pairs += 1

    if fallback_pairs:
        logger.warning(f"{fallback_pairs}/{len(pairs)} matrix pairs estimated with haversine distance")
    return DistanceMatrix(
        distances=distances,
        durations=durations,
        degraded=fallback_pairs > 0 or provider is None,
        fallback_pairs=fallback_pairs,
    )


def route_length(route: Sequence[int], matrix: DistanceMatrix) -> float:
    return sum(matrix.distances[route[k]][route[k + 1]] for k in range(len(route) - 1))


def nearest_neighbor(matrix: DistanceMatrix, fixed_last: bool = False) -> list[int]:
    """Greedy tour from index 0; ties go to the lowest index."""
    n = len(matrix)
    if n == 0:
        return []
    last = n - 1 if fixed_last and n > 1 else None
    unvisited = [i for i in range(1, n) if i != last]
    route = [0]
    current = 0
    while unvisited:
        nearest = min(unvisited, key=lambda i: (matrix.distances[current][i], i))
        unvisited.remove(nearest)
        route.append(nearest)
        current = nearest
    if last is not None:
        route.append(last)
    return route


def two_opt(route: Sequence[int], matrix: DistanceMatrix, fixed_last: bool = False) -> list[int]:
    """Reverse segments while doing so strictly shortens the open path."""
    best = list(route)
    size = len(best)
    if size < 3:
        return best
    d = matrix.distances
    # edge (i, i+1) and (j, j+1); reversing best[i+1..j]. Without a fixed end the
    # tail itself may be reversed, which has no (j, j+1) edge.
    last_j = size - 2 if fixed_last else size - 1

    improved = True
    while improved:
        improved = False
        for i in range(0, size - 2):
            for j in range(i + 2, last_j + 1):
                a, b = best[i], best[i + 1]
                c = best[j]
                if j + 1 < size:
                    e = best[j + 1]
                    delta = d[a][c] + d[b][e] - d[a][b] - d[c][e]
                else:
                    delta = d[a][c] - d[a][b]
                if delta < -IMPROVEMENT_EPSILON:
                    best[i + 1 : j + 1] = reversed(best[i + 1 : j + 1])
                    improved = True
    return best


def legs_for_order(points: Sequence[Coordinate], order: Sequence[int], matrix: DistanceMatrix) -> list[Leg]:
    return [
        Leg(
            distance_m=matrix.distances[order[k]][order[k + 1]],
            duration_s=matrix.durations[order[k]][order[k + 1]],
            geometry=[points[order[k]], points[order[k + 1]]],
        )
        for k in range(len(order) - 1)
    ]


def solve_local_trip(
    points: Sequence[Coordinate],
    provider=None,
    fixed_last: bool = False,
    *,
    matrix: DistanceMatrix | None = None,
    average_speed_kmh: float | None = None,
    max_workers: int | None = None,
) -> LocalTripResult:
    """Order the points locally, starting at points[0]."""
    if matrix is None:
        matrix = build_distance_matrix(
            points, provider, average_speed_kmh=average_speed_kmh, max_workers=max_workers
        )
    initial = nearest_neighbor(matrix, fixed_last=fixed_last)
    initial_distance = route_length(initial, matrix)
    order = two_opt(initial, matrix, fixed_last=fixed_last)
    legs = legs_for_order(points, order, matrix)

    distance = sum(leg.distance_m for leg in legs)
    logger.info(
        f"Local trip over {len(points)} points: nearest neighbor {initial_distance:.0f} m, "
        f"after 2-opt {distance:.0f} m"
    )
    return LocalTripResult(
        order=order,
        distance_m=distance,
        duration_s=sum(leg.duration_s for leg in legs),
        legs=legs,
        degraded=matrix.degraded,
        nearest_neighbor_distance_m=initial_distance,
    )
