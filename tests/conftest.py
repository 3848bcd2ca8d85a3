"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any app import so settings never pick up
a developer's local .env file.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("CHECKO_BASE_URL", "https://registry.test/v2")

from datetime import datetime, timezone
from typing import Any
from unittest.mock import Mock

import pytest

from app.adapters.quota import InMemoryQuotaTracker
from app.adapters.registry.base import AbstractRegistryClient, LookupKind

# 2024-01-01 12:00:00 UTC
NOON_JAN_1 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc).timestamp()


class FakeRegistryClient(AbstractRegistryClient):
    """Registry double returning canned payloads and recording every call.

    ``failures`` maps (inn, kind) to the exception that lookup should raise.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, LookupKind]] = []
        self.failures: dict[tuple[str, LookupKind], Exception] = {}
        self.closed = False

    async def lookup(self, credential: str, inn: str, kind: LookupKind) -> dict[str, Any]:
        self.calls.append((credential, inn, kind))
        failure = self.failures.get((inn, kind))
        if failure is not None:
            raise failure
        return {"data": {"inn": inn, "kind": kind.value}, "meta": {"status": "ok"}}

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> Mock:
    return Mock(return_value=NOON_JAN_1)


@pytest.fixture
def tracker(clock: Mock) -> InMemoryQuotaTracker:
    return InMemoryQuotaTracker(clock=clock)


@pytest.fixture
def registry() -> FakeRegistryClient:
    return FakeRegistryClient()


def use_quota(tracker: InMemoryQuotaTracker, credential: str, units: int) -> None:
    for _ in range(units):
        tracker.record_usage(credential)


@pytest.fixture
def spend():
    """Record ``units`` calls for a credential ahead of the test."""
    return use_quota
