import json

import pytest
from fastapi.testclient import TestClient

from tripplanner.api.routes import planning
from tripplanner.config import settings
from tripplanner.data.assignments_repository import load_assignments
from tripplanner.main import app
from tripplanner.persistence.filesystem import FileStorage
from tripplanner.services.geospatial import haversine_m
from tripplanner.services.routing import planner
from tripplanner.services.routing.errors import ProviderUnavailable
from tripplanner.services.routing.models import Leg, RouteResult, TripResult


def _legs(points):
    legs = []
    for a, b in zip(points, points[1:]):
        distance = haversine_m(a.lat, a.lng, b.lat, b.lng)
        legs.append(Leg(distance_m=distance, duration_s=distance / 10, geometry=[a, b]))
    return legs


class DummyOSRMClient:
    """Stands in for the routing backend; the trip keeps the input order."""

    def __init__(self, base_url=None, profile=None, timeout=None):
        self.base_url = base_url

    def route(self, points):
        legs = _legs(points)
        return RouteResult(
            distance_m=sum(leg.distance_m for leg in legs),
            duration_s=sum(leg.duration_s for leg in legs),
            geometry=list(points),
            legs=legs,
        )

    def trip(self, points, fixed_first=True, fixed_last=False):
        result = self.route(points)
        return TripResult(
            order=list(range(len(points))),
            distance_m=result.distance_m,
            duration_s=result.duration_s,
            geometry=result.geometry,
            legs=result.legs,
        )


class UnreachableOSRMClient:
    def __init__(self, base_url=None, profile=None, timeout=None):
        self.base_url = base_url

    def route(self, points):
        raise ProviderUnavailable("Failed to connect to OSRM service")

    def trip(self, points, fixed_first=True, fixed_last=False):
        raise ProviderUnavailable("Failed to connect to OSRM service")


@pytest.fixture
def client(monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "osrm_base_url", "http://osrm.test")
    monkeypatch.setattr(planner, "OSRMClient", DummyOSRMClient)
    monkeypatch.setattr(planning, "FileStorage", lambda: FileStorage(root=tmp_path))
    return TestClient(app)


@pytest.fixture
def assignments_file(monkeypatch, tmp_path):
    payload = {
        "vehicles": [{"id": "v1", "current_lat": 41.0082, "current_lng": 28.9784, "bridge_preference": "fsm_only"}],
        "stops": [
            {"id": "a", "vehicle_id": "v1", "lat": 41.0300, "lng": 28.9500, "tour_number": 1},
            {"id": "b", "vehicle_id": "v1", "lat": 41.0200, "lng": 29.0500, "tour_number": 2},
        ],
    }
    path = tmp_path / "assignments.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    monkeypatch.setattr(settings, "assignments_file", path)
    load_assignments.cache_clear()
    yield path
    load_assignments.cache_clear()


def _plan_payload(**overrides):
    payload = {
        "origin": {"lat": 41.0082, "lng": 28.9784},
        "stops": [
            {"id": "s1", "lat": 41.0300, "lng": 28.9500, "time_window": "11:00"},
            {"id": "s2", "lat": 41.0120, "lng": 28.9750, "time_window": "09:00"},
        ],
        "departure_time": "2024-05-06T08:00:00Z",
    }
    payload.update(overrides)
    return payload


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_plan_endpoint(client):
    response = client.post("/api/plan", json=_plan_payload())

    assert response.status_code == 200
    data = response.json()
    assert [stop["id"] for stop in data["stop_results"]] == ["s2", "s1"]
    assert data["source"] == "osrm-trip+osrm-route"
    assert data["degraded"] is False
    assert data["total_distance_m"] > 0
    assert data["stop_results"][0]["eta"].startswith("2024-05-06T08:")
    assert data["path_segments"][0][0] == [41.0082, 28.9784]


def test_plan_endpoint_with_depot_return(client):
    response = client.post("/api/plan", json=_plan_payload(end={"lat": 41.0000, "lng": 28.9700}))

    assert response.status_code == 200
    stop_results = response.json()["stop_results"]
    assert stop_results[-1]["is_depot_return"] is True
    assert stop_results[-1]["route_order"] == 3


def test_plan_endpoint_reports_degraded_backend(client, monkeypatch):
    monkeypatch.setattr(planner, "OSRMClient", UnreachableOSRMClient)

    response = client.post("/api/plan", json=_plan_payload(keep_order=True))

    assert response.status_code == 200
    data = response.json()
    assert data["degraded"] is True
    assert data["source"] == "haversine"
    assert "OSRM" in data["downgrade_reason"]


def test_plan_endpoint_persists_artifacts(client, tmp_path):
    response = client.post("/api/plan", json=_plan_payload(persist=True))

    assert response.status_code == 200
    [run_dir] = list((tmp_path / "outputs").iterdir())
    assert (run_dir / "summary.json").exists()
    assert (run_dir / "stops.csv").exists()


def test_plan_endpoint_rejects_duplicate_ids(client):
    stops = [{"id": "s1", "lat": 41.03, "lng": 28.95}, {"id": "s1", "lat": 41.01, "lng": 28.97}]

    response = client.post("/api/plan", json=_plan_payload(stops=stops))

    assert response.status_code == 400
    assert "duplicate" in response.json()["detail"]


def test_plan_endpoint_rejects_bad_time_window(client):
    stops = [{"id": "s1", "lat": 41.03, "lng": 28.95, "time_window": "after lunch"}]

    response = client.post("/api/plan", json=_plan_payload(stops=stops))

    assert response.status_code == 400


def test_plan_endpoint_validates_coordinates(client):
    response = client.post("/api/plan", json=_plan_payload(origin={"lat": 128.97, "lng": 41.0}))

    assert response.status_code == 422


def test_tours_endpoint(client, assignments_file):
    response = client.post("/api/vehicles/v1/tours/plan", json={"departure_time": "2024-05-06T08:00:00Z"})

    assert response.status_code == 200
    data = response.json()
    assert data["vehicle_id"] == "v1"
    assert set(data["tours"]) == {"1", "2"}
    assert [stop["id"] for stop in data["tours"]["1"]["stop_results"]] == ["a"]
    # tour 2 crosses to the Asian side through the vehicle's bridge
    assert data["tours"]["2"]["corridor"] == "Yavuz Sultan Selim"
    assert data["tours"]["2"]["injected_waypoints"] == 3


def test_tours_endpoint_unknown_vehicle(client, assignments_file):
    response = client.post("/api/vehicles/v9/tours/plan")

    assert response.status_code == 404


def test_tours_endpoint_without_assignments(client, monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "assignments_file", tmp_path / "missing.json")
    load_assignments.cache_clear()

    response = client.post("/api/vehicles/v1/tours/plan")

    assert response.status_code == 503
    load_assignments.cache_clear()
