"""
HTTP smoke tests for the FastAPI app.
"""

import logging
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from lakebreak import __version__
from lakebreak.server import DATA_DIR_ENV, app


TABLE = "\n".join([
    "lake_id," + ",".join(str(y) for y in range(2000, 2010)),
    "step," + ",".join(['0'] * 6 + ['10'] * 4),
])


@pytest.fixture
def client(tmp_path, monkeypatch):
    public = tmp_path / 'public'
    public.mkdir()
    (public / 'lake_temperature.csv').write_text(TABLE, encoding='utf-8')
    monkeypatch.setenv(DATA_DIR_ENV, str(tmp_path))

    with TestClient(app) as test_client:
        yield test_client


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "version": __version__}
    assert response.headers["X-Request-ID"]


def test_full_round_trip(client):
    """Ingest, preprocess, then detect over HTTP."""
    ingest = client.get("/api/lakeTemp", params={"agg": "avg"})
    assert ingest.status_code == 200
    raw = ingest.json()["series"]
    assert [s["id"] for s in raw] == ["step"]

    prep = client.post("/api/preprocessTimeSeries", params={"diffOrder": "1"}, json=raw)
    assert prep.status_code == 200
    processed = prep.json()["processedSeries"]
    assert len(processed[0]["points"]) == 9

    detect = client.post(
        "/api/detectMutation",
        params={"mutationMethod": "pettitt", "minSegLen": "2"},
        json={"processedSeries": processed, "rawSeries": raw},
    )
    assert detect.status_code == 200
    payload = detect.json()
    assert payload["error"] is None
    point = payload["mutationPoints"][0]
    assert point["lakeId"] == "step"
    assert point["year"] == 2005
    assert point["index"] == 5


def test_ingest_missing_column(client):
    response = client.get("/api/lakeTemp", params={"idColumn": "station"})
    assert response.status_code == 400
    assert response.json()["series"] == []


def test_ingest_missing_file(client):
    response = client.get("/api/lakeTemp", params={"csvPath": "missing.csv"})
    assert response.status_code == 500
    assert response.json()["error"] == "Failed to read CSV file from disk"


def test_malformed_json(client):
    """Unparseable bodies are rejected with the endpoint's empty collection."""
    response = client.post(
        "/api/detectMutation",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    body = response.json()
    assert body["mutationPoints"] == []
    assert body["error"] == "Failed to parse request body"

    response = client.post(
        "/api/preprocessTimeSeries",
        content=b"",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["processedSeries"] == []


def test_preprocess_rejects_object_body(client):
    response = client.post("/api/preprocessTimeSeries", json={"rawSeries": []})
    assert response.status_code == 400
    assert response.json()["error"] == "rawSeries must be an array"


def test_preprocess_infinite_parameter(client):
    response = client.post("/api/preprocessTimeSeries", params={"diffOrder": "1e400"}, json=[])
    assert response.status_code == 400
    assert response.json()["processedSeries"] == []


def test_logger_does_not_propagate(client):
    """App log lines are emitted once, not again by root handlers."""
    assert logging.getLogger("lakebreak").propagate is False


def test_detect_no_valid_series(client):
    response = client.post("/api/detectMutation", json=[])
    assert response.status_code == 400
    assert response.json()["error"] == "No valid processed time series provided"
