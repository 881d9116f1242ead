import json
from datetime import datetime, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from territory_intel.data.boundary_repository import BoundaryStore, get_boundary_store
from territory_intel.data.metrics_repository import MetricsRepository, get_metrics_repository
from territory_intel.main import create_app
from territory_intel.models.domain import Origin, Point, Polygon, Ring
from territory_intel.services.coverage import (
    CoverageCache,
    CoverageCalculator,
    ProviderConfigurationError,
    get_coverage_cache,
    get_coverage_calculator,
)
from territory_intel.services.territories import (
    RepresentativeStore,
    TerritoryStore,
    get_representative_store,
    get_territory_store,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _square_geometry(lat: float, lon: float, half: float = 0.01) -> dict:
    return {
        "type": "Polygon",
        "coordinates": [
            [
                [lon - half, lat - half],
                [lon + half, lat - half],
                [lon + half, lat + half],
                [lon - half, lat + half],
                [lon - half, lat - half],
            ]
        ],
    }


class SquareProvider:
    def __init__(self) -> None:
        self.calls = 0

    def isochrone(self, origin: Origin, minutes: int) -> list[Polygon]:
        self.calls += 1
        half = 0.5
        corners = [
            (origin.latitude - half, origin.longitude - half),
            (origin.latitude - half, origin.longitude + half),
            (origin.latitude + half, origin.longitude + half),
            (origin.latitude + half, origin.longitude - half),
        ]
        return [Polygon(Ring(tuple(Point(lat, lon) for lat, lon in corners)))]


class UnconfiguredProvider:
    def isochrone(self, origin: Origin, minutes: int) -> list[Polygon]:
        raise ProviderConfigurationError("Mapbox access token not configured")


@pytest.fixture
def boundaries(tmp_path: Path) -> BoundaryStore:
    path = tmp_path / "zipcode-boundaries.geojson"
    features = [
        {"type": "Feature", "properties": {"ZCTA5CE20": "19103"}, "geometry": _square_geometry(40.0, -75.0)},
        {"type": "Feature", "properties": {"ZCTA5CE20": "19104"}, "geometry": _square_geometry(41.5, -75.0)},
    ]
    path.write_text(json.dumps({"type": "FeatureCollection", "features": features}), encoding="utf-8")
    return BoundaryStore(path)


@pytest.fixture
def provider() -> SquareProvider:
    return SquareProvider()


@pytest.fixture
def api_client(tmp_path: Path, boundaries: BoundaryStore, provider: SquareProvider) -> TestClient:
    app = create_app()
    cache = CoverageCache(tmp_path / "drive-time-cache.json", clock=lambda: NOW)
    territories = TerritoryStore(tmp_path / "territories.json", tmp_path / "assignments.json", reference_policy="reject")
    representatives = RepresentativeStore(tmp_path / "representatives.json")
    metrics = MetricsRepository(tmp_path / "funnel-data.json", tmp_path / "zipcode-metadata.json")

    app.dependency_overrides[get_boundary_store] = lambda: boundaries
    app.dependency_overrides[get_coverage_cache] = lambda: cache
    app.dependency_overrides[get_coverage_calculator] = lambda: CoverageCalculator(provider, boundaries, cache)
    app.dependency_overrides[get_territory_store] = lambda: territories
    app.dependency_overrides[get_representative_store] = lambda: representatives
    app.dependency_overrides[get_metrics_repository] = lambda: metrics
    return TestClient(app)


def test_root_and_health(api_client: TestClient) -> None:
    assert api_client.get("/").json()["status"] == "running"
    assert api_client.get("/api/health").json() == {"status": "ok"}

    data = api_client.get("/api/health/data").json()
    assert data["zones_loaded"] == 2
    assert data["coverage_cache_entries"] == 0


def test_coverage_endpoint_and_cache(api_client: TestClient, provider: SquareProvider) -> None:
    body = {"minutes": 30, "repLocations": [{"lat": 40.0, "lng": -75.0, "repId": "r1"}]}

    first = api_client.post("/api/coverage", json=body)
    second = api_client.post("/api/coverage", json=body)

    assert first.status_code == 200
    assert first.json()["coveredZipCodes"] == ["19103"]
    assert first.json()["fromCache"] is False
    assert len(first.json()["isochrones"]) == 1
    assert second.json()["fromCache"] is True
    assert second.json()["coveredZipCodes"] == ["19103"]
    assert provider.calls == 1

    fingerprint = first.json()["fingerprint"]
    assert api_client.delete(f"/api/coverage/cache/{fingerprint}").json() == {"success": True, "removed": 1}
    assert api_client.delete(f"/api/coverage/cache/{fingerprint}").status_code == 404
    assert api_client.post("/api/coverage", json=body).json()["fromCache"] is False
    assert api_client.delete("/api/coverage/cache").json() == {"success": True, "removed": 1}


def test_coverage_validation(api_client: TestClient) -> None:
    assert api_client.post("/api/coverage", json={"minutes": 30, "repLocations": []}).status_code == 400
    assert api_client.post("/api/coverage", json={"minutes": -1, "repLocations": [{"lat": 0, "lng": 0}]}).status_code == 422
    assert api_client.post("/api/coverage", json={"minutes": 30, "repLocations": [{"lat": 95, "lng": 0}]}).status_code == 422


def test_coverage_without_provider_configuration(api_client: TestClient, boundaries: BoundaryStore, tmp_path: Path) -> None:
    cache = CoverageCache(tmp_path / "other-cache.json", clock=lambda: NOW)
    api_client.app.dependency_overrides[get_coverage_calculator] = lambda: CoverageCalculator(
        UnconfiguredProvider(), boundaries, cache
    )

    response = api_client.post("/api/coverage", json={"minutes": 30, "repLocations": [{"lat": 40.0, "lng": -75.0}]})

    assert response.status_code == 503


def test_representative_coverage(api_client: TestClient) -> None:
    reps = [
        {"id": "r1", "name": "Ann", "location": {"lat": 40.0, "lng": -75.0}},
        {"id": "r2", "name": "Bo", "active": False, "location": {"lat": 41.5, "lng": -75.0}},
    ]
    assert api_client.put("/api/representatives", json=reps).status_code == 200

    response = api_client.post("/api/coverage/representatives", json={"minutes": 30})
    assert response.json()["coveredZipCodes"] == ["19103"]

    missing = api_client.post("/api/coverage/representatives", json={"minutes": 30, "representativeIds": ["r2"]})
    assert missing.status_code == 400


def test_representatives_crud(api_client: TestClient) -> None:
    created = api_client.post("/api/representatives", json={"name": "Cy", "email": "cy@example.com"})
    assert created.status_code == 200
    rep_id = created.json()["id"]
    assert rep_id.startswith("rep-")

    api_client.post("/api/representatives", json={"id": rep_id, "name": "Cy Two", "active": False})

    listed = api_client.get("/api/representatives").json()
    assert [(rep["id"], rep["name"], rep["active"]) for rep in listed] == [(rep_id, "Cy Two", False)]


def test_territory_lifecycle_and_assignments(api_client: TestClient) -> None:
    created = api_client.post("/api/territories", json={"name": "North", "color": "#00FF00"})
    assert created.status_code == 201
    territory = created.json()["territory"]

    assert api_client.get(f"/api/territories/{territory['id']}").json()["name"] == "North"
    updated = api_client.put(f"/api/territories/{territory['id']}", json={"name": "Far North"})
    assert updated.json()["territory"]["name"] == "Far North"
    assert updated.json()["territory"]["color"] == "#00FF00"

    assigned = api_client.post("/api/zones/19103/assign", json={"territoryId": territory["id"]})
    assert assigned.json() == {"success": True, "assignment": {"zipCode": "19103", "territoryId": territory["id"]}}
    assert api_client.get("/api/assignments").json() == {"19103": territory["id"]}

    zones = api_client.get("/api/zones").json()["boundaries"]["features"]
    colors = {feature["properties"]["zipCode"]: feature["properties"]["territoryColor"] for feature in zones}
    assert colors == {"19103": "#00FF00", "19104": "#ffffff"}

    zone = api_client.get("/api/zones/19103").json()
    assert zone["territoryId"] == territory["id"]
    assert zone["centroid"]["lat"] == pytest.approx(40.0)

    assert api_client.delete(f"/api/territories/{territory['id']}").json()["success"] is True
    assert api_client.get(f"/api/territories/{territory['id']}").status_code == 404
    assert api_client.get("/api/assignments").json() == {"19103": territory["id"]}


def test_assignment_to_unknown_territory_is_rejected(api_client: TestClient) -> None:
    assert api_client.post("/api/zones/19103/assign", json={"territoryId": "ghost"}).status_code == 422
    assert api_client.put("/api/assignments", json={"19103": "ghost"}).status_code == 422
    assert api_client.get("/api/assignments").json() == {}


def test_unassign_and_bulk_replace(api_client: TestClient) -> None:
    territory = api_client.post("/api/territories", json={}).json()["territory"]
    assert territory["name"] == "New Territory"

    saved = api_client.put("/api/assignments", json={"19103": territory["id"], "19104": None})
    assert saved.json()["assignments"] == {"19103": territory["id"]}

    api_client.post("/api/zones/19103/assign", json={"territoryId": None})
    assert api_client.get("/api/assignments").json() == {}


def test_unknown_zone_and_territory(api_client: TestClient) -> None:
    assert api_client.get("/api/zones/00000").status_code == 404
    assert api_client.put("/api/territories/nope", json={"name": "x"}).status_code == 404
    assert api_client.delete("/api/territories/nope").status_code == 404


def test_export_json_and_csv(api_client: TestClient) -> None:
    territory = api_client.post("/api/territories", json={"name": "South"}).json()["territory"]
    api_client.post("/api/zones/19104/assign", json={"territoryId": territory["id"]})

    as_json = api_client.get("/api/assignments/export")
    assert as_json.json() == [{"zipCode": "19104", "territoryId": territory["id"], "territoryName": "South"}]
    assert "territory-assignments-" in as_json.headers["content-disposition"]

    as_csv = api_client.get("/api/assignments/export", params={"format": "csv"})
    assert as_csv.headers["content-type"].startswith("text/csv")
    assert as_csv.text == f'zipCode,territoryId,territoryName\n"19104","{territory["id"]}","South"\n'


def test_metrics_upload_and_series(api_client: TestClient) -> None:
    funnel = [
        {"zipCode": "19103", "date": "2024-01-01", "leads": 4},
        {"zipCode": "19103", "date": "2024-02-01", "leads": 6},
        {"zipCode": "19104", "date": "2024-01-15", "leads": 1},
    ]
    uploaded = api_client.post("/api/metrics/datasets", json={"type": "funnel", "data": funnel})
    assert uploaded.json() == {"success": True, "count": 3, "type": "funnel"}
    assert api_client.post("/api/metrics/datasets", json={"type": "funnel", "data": {"a": 1}}).status_code == 400

    datasets = api_client.get("/api/metrics/datasets").json()
    assert [(d["id"], d["recordCount"]) for d in datasets] == [("funnel-data", 3)]

    series = api_client.get("/api/metrics/leads").json()
    assert series["groupBy"] == "zone"
    assert [(z["zipCode"], z["value"]) for z in series["zones"]] == [("19103", 10.0), ("19104", 1.0)]
    assert (series["min"], series["max"]) == (1.0, 10.0)

    filtered = api_client.get("/api/metrics/leads", params={"start": "2024-01-10", "end": "2024-01-31"}).json()
    assert [(z["zipCode"], z["value"]) for z in filtered["zones"]] == [("19104", 1.0)]

    territory = api_client.post("/api/territories", json={"name": "Core"}).json()["territory"]
    api_client.post("/api/zones/19103/assign", json={"territoryId": territory["id"]})
    rollup = api_client.get("/api/metrics/leads", params={"by": "territory"}).json()
    assert [(t["territoryName"], t["value"], t["zoneCount"]) for t in rollup["territories"]] == [
        ("Core", 10.0, 1),
        ("Unassigned", 1.0, 1),
    ]

    assert api_client.get("/api/metrics/happiness").status_code == 400


def test_zone_metadata_upload_and_listing(api_client: TestClient) -> None:
    metadata = {"19103": {"population": 1200, "householdIncome": 61000}}
    assert api_client.post("/api/metrics/datasets", json={"type": "metrics", "data": metadata}).json()["count"] == 1
    assert api_client.post("/api/metrics/datasets", json={"type": "metrics", "data": []}).status_code == 400

    zones = api_client.get("/api/zones", params={"metadata": "true"}).json()
    assert zones["metadata"] == metadata

    series = api_client.get("/api/metrics/householdIncome").json()
    assert series["zones"] == [{"zipCode": "19103", "value": 61000.0, "metric": "householdIncome"}]


def test_assignment_write_failure_returns_500_and_keeps_document(
    api_client: TestClient, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    territory = api_client.post("/api/territories", json={"name": "East"}).json()["territory"]
    api_client.post("/api/zones/19103/assign", json={"territoryId": territory["id"]})
    store = api_client.app.dependency_overrides[get_territory_store]()

    def failing_write(path, data, *, indent: int = 2) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(store._storage, "write_json", failing_write)

    response = api_client.post("/api/zones/19104/assign", json={"territoryId": territory["id"]})

    assert response.status_code == 500
    assert "disk full" in response.json()["detail"]
    saved = json.loads((tmp_path / "assignments.json").read_text(encoding="utf-8"))
    assert saved == {"19103": territory["id"]}


def test_malformed_territory_document_returns_500(api_client: TestClient, tmp_path: Path) -> None:
    (tmp_path / "territories.json").write_text('[{"name": "No id"}]', encoding="utf-8")

    assert api_client.post("/api/territories", json={"name": "New"}).status_code == 500
    assert api_client.put("/api/territories/any", json={"name": "x"}).status_code == 500
    assert api_client.get("/api/territories").json() == []


def test_blank_territory_name_update_keeps_existing_name(api_client: TestClient) -> None:
    territory = api_client.post("/api/territories", json={"name": "Harbor"}).json()["territory"]

    updated = api_client.put(f"/api/territories/{territory['id']}", json={"name": ""})

    assert updated.json()["territory"]["name"] == "Harbor"


def test_malformed_representatives_document_is_not_overwritten(api_client: TestClient, tmp_path: Path) -> None:
    path = tmp_path / "representatives.json"
    broken = '[{"id": "r1", "name": "Ann"}, {"id": "r2"'
    path.write_text(broken, encoding="utf-8")

    response = api_client.post("/api/representatives", json={"id": "r3", "name": "Cy"})

    assert response.status_code == 500
    assert path.read_text(encoding="utf-8") == broken


def test_empty_representative_selection_is_rejected(api_client: TestClient, provider: SquareProvider) -> None:
    api_client.put("/api/representatives", json=[{"id": "r1", "name": "Ann", "location": {"lat": 40.0, "lng": -75.0}}])

    response = api_client.post("/api/coverage/representatives", json={"minutes": 30, "representativeIds": []})

    assert response.status_code == 400
    assert provider.calls == 0
