"""
backend/tests/test_main_app.py

Purpose:
    Application wiring: health payload without a database and the
    validation error shape. The lifespan (Mongo, scheduler) is not started.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

import oddsbook.database as db_module
from oddsbook.main import app


def test_health_reports_degraded_without_database(monkeypatch):
    monkeypatch.setattr(db_module, "db", None)

    body = TestClient(app).get("/health").json()

    assert body["status"] == "degraded"
    assert body["db"] == "disconnected"
    assert body["odds_provider"]["circuit"] in {"closed", "open", "half_open"}
    assert set(body["odds_provider"]["usage"]) == {"requests_used", "requests_remaining"}
    assert body["poller"]["next_run"] is None


def test_validation_errors_are_flattened():
    resp = TestClient(app).post("/scores", json={"sport": "soccer_epl", "days_from": 0})

    assert resp.status_code == 422
    body = resp.json()
    assert body["error"] == "Validation error."
    assert [e["field"] for e in body["errors"]] == ["days_from"]


def test_response_carries_request_id():
    resp = TestClient(app).get("/health")
    assert resp.headers.get("X-Request-ID")
