import csv
import io
from datetime import datetime, timezone

import pytest

from tripplanner.services.outputs import format_distance, format_duration
from tripplanner.services.outputs.planning_formatter import planning_result_to_csv, planning_result_to_json
from tripplanner.services.routing.models import (
    Coordinate,
    PlanningResult,
    Stop,
    StopKind,
    StopResult,
)


@pytest.mark.parametrize(
    "meters, expected",
    [(0, "0 m"), (999.4, "999 m"), (1000, "1.0 km"), (12345, "12.3 km")],
)
def test_format_distance(meters, expected):
    assert format_distance(meters) == expected


@pytest.mark.parametrize(
    "seconds, expected",
    [(59, "0 min"), (300, "5 min"), (3600, "1 h 0 min"), (3959, "1 h 5 min")],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def _result():
    eta = datetime(2024, 5, 6, 8, 30, tzinfo=timezone.utc)
    a = Coordinate(lat=41.0082, lng=28.9784)
    b = Coordinate(lat=41.0300, lng=28.9500)
    return PlanningResult(
        stop_results=[
            StopResult(
                stop=Stop(id="s1", coordinate=b, time_window="09:00", name="Market"),
                route_order=1,
                eta=eta,
                cumulative_distance_m=3456.78,
                cumulative_duration_s=420.0,
            ),
            StopResult(
                stop=Stop(id="depot-return", coordinate=a, kind=StopKind.DEPOT_RETURN),
                route_order=2,
                eta=eta,
                cumulative_distance_m=6913.56,
                cumulative_duration_s=840.0,
            ),
        ],
        total_distance_m=6913.56,
        total_duration_s=840.0,
        path_segments=[[a, b], [b, a]],
        traffic_adjusted_duration_s=1260.0,
        source="osrm-trip",
    )


def test_planning_result_to_json():
    data = planning_result_to_json(_result())

    assert data["total_distance_display"] == "6.9 km"
    assert data["total_duration_display"] == "21 min"
    assert data["path_segments"][0] == [[41.0082, 28.9784], [41.03, 28.95]]
    first, last = data["stop_results"]
    assert first["kind"] == "delivery"
    assert first["eta"] == "2024-05-06T08:30:00+00:00"
    assert first["is_depot_return"] is False
    assert last["kind"] == "depot-return"
    assert last["is_depot_return"] is True


def test_planning_result_to_csv():
    rows = list(csv.DictReader(io.StringIO(planning_result_to_csv(_result()))))

    assert [row["stop_id"] for row in rows] == ["s1", "depot-return"]
    assert rows[0]["time_window"] == "09:00"
    assert rows[0]["cumulative_distance_m"] == "3456.8"
    assert rows[1]["kind"] == "depot-return"
