"""Tests for global exception handlers.

Validates that every error type is rendered as the gateway's error envelope
with the right HTTP status and without leaking internals.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.errors import (
    AccessDeniedError,
    AppError,
    ErrorDetails,
    InvalidCredentialError,
    MissingInputError,
    NotFoundError,
    QuotaExceededError,
    TransportFailureError,
    UpstreamError,
    UpstreamRateLimitedError,
)
from app.core.exception_handlers import (
    general_exception_handler,
    setup_exception_handlers,
    status_code_for,
)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


@pytest.mark.parametrize(
    ("error_type", "status_code"),
    [
        (MissingInputError, 400),
        (InvalidCredentialError, 401),
        (AccessDeniedError, 403),
        (NotFoundError, 404),
        (QuotaExceededError, 429),
        (UpstreamRateLimitedError, 429),
        (UpstreamError, 502),
        (TransportFailureError, 504),
    ],
)
def test_status_code_mapping(error_type: type[AppError], status_code: int) -> None:
    assert status_code_for(error_type(code="c", message="m")) == status_code


class TestAppErrorHandler:
    def test_envelope_without_usage(self, client: TestClient, app_with_handlers: FastAPI) -> None:
        @app_with_handlers.get("/missing")
        async def endpoint():
            raise MissingInputError(code="missing_inn", message="API key and INN are required")

        response = client.get("/missing")

        assert response.status_code == 400
        body = response.json()
        assert body["status"] == "error"
        assert body["code"] == "missing_inn"
        assert body["message"] == "API key and INN are required"
        assert "request_id" in body
        assert "requestsUsedToday" not in body
        assert "details" not in body

    def test_usage_is_lifted_to_top_level(
        self, client: TestClient, app_with_handlers: FastAPI
    ) -> None:
        @app_with_handlers.get("/quota")
        async def endpoint():
            raise QuotaExceededError(
                code="quota_exceeded",
                message="Not enough requests left",
                details={"required": 6},
            ).with_usage(95, 5)

        response = client.get("/quota")

        assert response.status_code == 429
        body = response.json()
        assert body["requestsUsedToday"] == 95
        assert body["remainingRequests"] == 5
        assert body["details"] == {"required": 6}

    def test_zero_usage_is_still_reported(
        self, client: TestClient, app_with_handlers: FastAPI
    ) -> None:
        @app_with_handlers.get("/upstream")
        async def endpoint():
            raise NotFoundError(code="not_found", message="nothing").with_usage(0, 100)

        body = client.get("/upstream").json()

        assert body["requestsUsedToday"] == 0
        assert body["remainingRequests"] == 100


class TestGeneralExceptionHandler:
    def test_registered(self, app_with_handlers: FastAPI) -> None:
        assert Exception in app_with_handlers.exception_handlers
        assert AppError in app_with_handlers.exception_handlers

    def test_never_leaks_exception_text(self) -> None:
        request = AsyncMock()
        request.url.path = "/api/company"
        request.method = "POST"

        exc = RuntimeError("connection pool exhausted at 10.0.0.3")
        response = asyncio.run(general_exception_handler(request, exc))

        body = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert body["status"] == "error"
        assert body["code"] == "internal_server_error"
        assert "10.0.0.3" not in json.dumps(body)
        assert "RuntimeError" not in json.dumps(body)


def test_with_usage_keeps_existing_details() -> None:
    error = UpstreamError(
        code="upstream_error", message="boom", details={"http_status": 500}
    ).with_usage(3, 97)

    assert error.details == {
        "http_status": 500,
        "requests_used_today": 3,
        "remaining_requests": 97,
    }
    assert str(error) == "boom"


def test_error_details_keys_are_the_ones_the_gateway_emits() -> None:
    assert ErrorDetails.__optional_keys__ == {
        "inn",
        "kind",
        "required",
        "requests_used_today",
        "remaining_requests",
        "http_status",
        "upstream_message",
    }
