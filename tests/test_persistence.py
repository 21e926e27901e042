import csv
import io
from datetime import datetime, timezone
from pathlib import Path

from tripplanner.persistence.filesystem import STOPS_FILENAME, SUMMARY_FILENAME, FileStorage
from tripplanner.services.routing.models import Coordinate, PlanningResult, Stop, StopResult


def _result() -> PlanningResult:
    origin = Coordinate(lat=41.0082, lng=28.9784)
    stop = Stop(id="s1", coordinate=Coordinate(lat=41.0300, lng=28.9500), name="Balat Bakkal")
    return PlanningResult(
        stop_results=[
            StopResult(
                stop=stop,
                route_order=1,
                eta=datetime(2024, 5, 6, 8, 10, tzinfo=timezone.utc),
                cumulative_distance_m=3400.0,
                cumulative_duration_s=400.0,
            )
        ],
        total_distance_m=3400.0,
        total_duration_s=400.0,
        path_segments=[[origin, stop.coordinate]],
        traffic_adjusted_duration_s=600.0,
        source="osrm-route",
    )


def test_make_run_directory_is_unique(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)

    first = storage.make_run_directory(prefix="plan")
    second = storage.make_run_directory(prefix="plan")

    assert first != second
    assert first.parent == tmp_path / "outputs"


def test_save_plan_writes_summary_and_stops(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)

    run_dir = storage.save_plan(_result(), prefix="tour")

    assert run_dir.name.startswith("tour_")
    summary = storage.load_summary(run_dir)
    assert summary["source"] == "osrm-route"
    assert summary["stop_results"][0]["name"] == "Balat Bakkal"
    rows = list(csv.DictReader(io.StringIO((run_dir / STOPS_FILENAME).read_text(encoding="utf-8"))))
    assert [row["stop_id"] for row in rows] == ["s1"]
    assert (run_dir / SUMMARY_FILENAME).exists()
