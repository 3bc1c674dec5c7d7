"""Tests for the MalleableEngine HTTP API."""

import pytest
from fastapi.testclient import TestClient

from api.server import APP_NAME, APP_VERSION, app


CHAIN = {
    "jobs": [
        {"job_id": 1, "processing_times": [6, 4]},
        {"job_id": 2, "processing_times": [8, 5]},
    ],
    "constraints": [{"before": 1, "after": 2}],
    "processor_count": 2,
}


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


class TestInfo:
    def test_root(self, client):
        r = client.get("/")
        assert r.status_code == 200
        body = r.json()
        assert body["name"] == APP_NAME
        assert body["engines"] == ["dp", "lp", "ilp"]
        assert [t["endpoint"] for t in body["tools"]] == ["/solve", "/validate_schedule"]

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json() == {"status": "healthy", "version": APP_VERSION}


class TestSolveEndpoint:
    @pytest.mark.parametrize("engine", ["dp", "lp", "ilp"])
    def test_chain(self, client, engine):
        r = client.post("/solve", json={**CHAIN, "engine": engine})
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "solved"
        assert body["metrics"]["makespan"] == 4 + 5
        assert [g["label"] for g in body["gantt"]] == ["J1 ×2", "J2 ×2"]

    def test_invalid_instance_is_reported(self, client):
        payload = {**CHAIN, "constraints": [{"before": 1, "after": 2}, {"before": 2, "after": 1}]}
        r = client.post("/solve", json=payload)
        assert r.status_code == 200
        assert r.json()["status"] == "invalid"

    def test_schema_violation(self, client):
        r = client.post("/solve", json={**CHAIN, "processor_count": 0})
        assert r.status_code == 422

    def test_unknown_engine(self, client):
        r = client.post("/solve", json={**CHAIN, "engine": "greedy"})
        assert r.status_code == 422


class TestValidateEndpoint:
    def test_round_trip_through_solve(self, client):
        solved = client.post("/solve", json=CHAIN).json()
        r = client.post("/validate_schedule", json={**CHAIN, "schedule": solved["schedule"]})
        assert r.status_code == 200
        body = r.json()
        assert body["is_valid"] is True
        assert body["metrics"]["makespan"] == 9

    def test_violation(self, client):
        schedule = [
            {"job_id": 1, "index": 0, "allotment": 2, "start": 0, "end": 4},
            {"job_id": 2, "index": 1, "allotment": 2, "start": 2, "end": 7},
        ]
        r = client.post("/validate_schedule", json={**CHAIN, "schedule": schedule})
        body = r.json()
        assert body["is_valid"] is False
        assert "precedence" in {v["violation_type"] for v in body["violations"]}
