from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

import api.main as api_main
from parts_core.data import VIEWS
from parts_core.session import DatasetSession


@pytest.fixture()
def client(data_dir: Path, monkeypatch) -> TestClient:
    monkeypatch.setattr(api_main, "SESSIONS", {name: DatasetSession(view) for name, view in VIEWS.items()})
    return TestClient(api_main.app)


def test_load_endpoint(client: TestClient):
    resp = client.post("/datasets/duplicates/load")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ready"
    assert body["rows"] == 6
    assert body["generation"] == 1


def test_load_endpoint_failures(client: TestClient, data_dir: Path):
    resp = client.post("/datasets/duplicates/load", params={"source": "missing.csv"})
    assert resp.status_code == 502
    assert resp.json()["type"] == "LoadFailure"

    (data_dir / "header.csv").write_text("Part,Branch\n", encoding="utf-8")
    resp = client.post("/datasets/duplicates/load", params={"source": "header.csv"})
    assert resp.status_code == 404
    assert resp.json()["type"] == "EmptyDatasetFailure"

    (data_dir / "bad.csv").write_text("a,b\n1,2\n3,4,5,6\n", encoding="utf-8")
    resp = client.post("/datasets/duplicates/load", params={"source": "bad.csv"})
    assert resp.status_code == 422
    assert resp.json()["type"] == "ParseFailure"


def test_load_endpoint_unexpected_error_has_json_body(client: TestClient, monkeypatch):
    def boom(dataset, view):
        raise RuntimeError("reader crashed")

    monkeypatch.setattr("parts_core.data.build_context", boom)
    resp = client.post("/datasets/duplicates/load")
    assert resp.status_code == 502
    assert resp.json()["type"] == "LoadFailure"
    assert "reader crashed" in resp.json()["error"]

    resp = client.get("/meta/duplicates/locations")
    assert resp.json()["type"] == "LoadFailure"


def test_unknown_view(client: TestClient):
    resp = client.get("/meta/nope/locations")
    assert resp.status_code == 404
    assert resp.json()["type"] == "KeyError"


def test_meta_endpoints(client: TestClient):
    assert client.get("/meta/duplicates/locations").json() == {"values": ["North", "South", "East", "West"]}
    assert client.get("/meta/duplicates/planners").json() == {"values": ["Alice", "Bob", "Carol"]}
    assert client.get("/meta/part_matrix/metric-columns").json() == {"values": ["North", "South", "East"]}


def test_duplicates_endpoint(client: TestClient):
    resp = client.post("/duplicates", json={"location_contains": "south"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["summary"]["total_duplicates"] == 2
    assert body["summary"]["filtered"] == 1
    assert body["table"][0]["part_id"] == "A100"
    assert body["table"][0]["coefficient_of_variation"] == 0


def test_duplicates_endpoint_sorted(client: TestClient):
    resp = client.post("/duplicates", params={"sort_key": "range", "sort_direction": "asc"})
    assert [row["part_id"] for row in resp.json()["table"]] == ["C300", "A100"]


def test_matrix_endpoint(client: TestClient):
    resp = client.post("/matrix/part_matrix", json={"identifier_contains": "00"}, params={"sort_key": "South", "sort_direction": "desc"})
    assert resp.status_code == 200
    assert [row["Part"] for row in resp.json()["rows"]] == ["C300", "D400", "A100", "B200"]


def test_debug_endpoint(client: TestClient):
    body = client.get("/debug/duplicates").json()
    assert body["cleaning_checks"]["non_numeric_values"] == 2


def test_export_endpoints(client: TestClient):
    resp = client.post("/export/duplicates")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    lines = resp.text.strip().splitlines()
    assert lines[0].startswith("part_id,")
    assert len(lines) == 6

    resp = client.post("/export/part_matrix", json={"column_non_zero": "North"})
    assert resp.text.strip().splitlines() == ["Part,North,South,East", "A100,5,0,-2"]
