"""
tests/integration/test_health_errors.py — Health probe, error envelope for
routing errors, and CORS headers.
"""

from __future__ import annotations


def test_health(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.get_json()["data"] == {"status": "ok", "database": "connected"}


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/api/v1/nope")
    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "NOT_FOUND"


def test_wrong_method_uses_error_envelope(client):
    resp = client.delete("/api/v1/health")
    assert resp.status_code == 405
    assert resp.get_json()["error"]["code"] == "METHOD_NOT_ALLOWED"


def test_cors_origin_reflected_in_testing(client):
    resp = client.get("/api/v1/health", headers={"Origin": "http://localhost:8080"})
    assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:8080"
    assert "Authorization" in resp.headers["Access-Control-Allow-Headers"]


def test_no_cors_headers_without_origin(client):
    resp = client.get("/api/v1/health")
    assert "Access-Control-Allow-Origin" not in resp.headers


def test_non_json_body_is_treated_as_empty(client):
    resp = client.post(
        "/api/v1/auth/login",
        data="not json",
        content_type="text/plain",
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "MISSING_FIELD"
