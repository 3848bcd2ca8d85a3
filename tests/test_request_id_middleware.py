from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.core.app_factory import create_app


@pytest.fixture
def client(tracker, registry) -> TestClient:
    return TestClient(create_app(quota_tracker=tracker, registry_client=registry))


def test_preserves_incoming_request_id_header(client):
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID")
    assert resp.headers.get("X-Request-Duration-ms") is not None


def test_error_envelope_carries_request_id(client):
    resp = client.post(
        "/api/company", json={"inn": "1"}, headers={"X-Request-ID": "req-err-1"}
    )

    assert resp.status_code == 400
    assert resp.json()["request_id"] == "req-err-1"
    assert resp.headers.get("X-Request-ID") == "req-err-1"
