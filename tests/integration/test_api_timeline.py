"""
Integration tests for the timeline API endpoints.
"""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from apps.api.main import app

FIXTURES = Path(__file__).resolve().parent.parent / "fixtures"


def _load(name):
    return json.loads((FIXTURES / name).read_text(encoding="utf-8"))


@pytest.fixture
def client():
    return TestClient(app)


class TestTimelineEndpoint:
    def test_fixed_schema_document(self, client):
        resp = client.post("/timeline", json={"document": _load("rx_claims.json")})
        assert resp.status_code == 200
        body = resp.json()
        assert body["metadata"]["strategy"] == "fixed_schema"
        assert body["metadata"]["totalClaims"] == 6
        assert body["dateRange"] == {"start": "2023-11-20", "end": "2024-05-30"}
        assert body["claims"][0]["startDate"] == "2023-11-20"

    def test_inline_config_applies(self, client):
        resp = client.post(
            "/timeline",
            json={"document": _load("rx_claims.json"), "config": {"sortDirection": "newest_first"}},
        )
        assert resp.status_code == 200
        assert resp.json()["claims"][0]["id"] == "rx2"

    def test_user_claim_types(self, client):
        resp = client.post(
            "/timeline",
            json={"document": _load("encounters.json"), "config": _load("parser_config.json")},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["metadata"]["strategy"] == "configurable_schema"
        assert [c["id"] for c in body["claims"]] == ["e2", "e1"]

    def test_unrecognised_document_is_422(self, client):
        resp = client.post("/timeline", json={"document": _load("not_claims.json")})
        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "STRUCTURE_VALIDATION_ERROR"
        assert error["message"].startswith("Invalid JSON structure:")
        assert error["suggestions"]

    def test_missing_document_is_422(self, client):
        resp = client.post("/timeline", json={})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "STRUCTURE_VALIDATION_ERROR"

    def test_invalid_config_is_400(self, client):
        resp = client.post(
            "/timeline",
            json={"document": _load("rx_claims.json"), "config": {"globalDateFormat": "YYYYMMDD"}},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "CONFIGURATION_ERROR"

    def test_request_id_is_echoed(self, client):
        resp = client.post("/timeline", json={"document": {"rxTba": []}}, headers={"X-Request-Id": "req-123"})
        assert resp.status_code == 200
        assert resp.headers["X-Request-Id"] == "req-123"


class TestClassifyEndpoint:
    @pytest.mark.parametrize("fixture,strategy", [
        ("rx_claims.json", "fixed_schema"),
        ("custom_layout.json", "configurable_schema"),
        ("heuristic_only.json", "heuristic"),
        ("not_claims.json", "none"),
    ])
    def test_strategies(self, client, fixture, strategy):
        resp = client.post("/timeline/classify", json={"document": _load(fixture)})
        assert resp.status_code == 200
        assert resp.json() == {"strategy": strategy}


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
