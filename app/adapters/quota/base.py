"""Quota tracker interfaces.

The workflow should depend on this abstraction (not the concrete
implementation) so the storage backend can be swapped later with minimal
changes.
"""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date

# Maximum upstream calls a single credential may trigger per calendar day.
DAILY_LIMIT = 100


def digest_credential(credential: str) -> str:
    """Return the SHA-256 hex digest used as the storage key for a credential.

    Args:
        credential: Caller-supplied secret.

    Returns:
        64-character lowercase hex digest.
    """
    return hashlib.sha256(credential.encode("utf-8")).hexdigest()


@dataclass
class UsageRecord:
    """Per-credential usage for a single calendar day."""

    day: date
    count: int


@dataclass(frozen=True)
class QuotaUsage:
    """Snapshot of a credential's quota.

    Attributes:
        used: Calls recorded today.
        remaining: Calls still allowed today (never negative).
        limit: Daily limit the snapshot was computed against.
    """

    used: int
    remaining: int
    limit: int


class AbstractQuotaTracker(ABC):
    """Interface for daily quota trackers.

    Callers gate upstream calls on ``remaining`` and report completed calls
    through ``record_usage``; the tracker itself never refuses.
    """

    def __init__(self, *, daily_limit: int = DAILY_LIMIT) -> None:
        if daily_limit < 1:
            raise ValueError("daily_limit must be >= 1")
        self._daily_limit = daily_limit

    @property
    def daily_limit(self) -> int:
        return self._daily_limit

    @abstractmethod
    def current_usage(self, credential: str) -> int:
        """Return today's call count for the credential (0 if none or stale)."""
        raise NotImplementedError

    @abstractmethod
    def record_usage(self, credential: str) -> int:
        """Record one call for the credential and return the new count."""
        raise NotImplementedError

    def remaining(self, credential: str) -> int:
        """Return how many calls the credential may still make today."""
        return max(0, self._daily_limit - self.current_usage(credential))

    def usage(self, credential: str) -> QuotaUsage:
        """Return used/remaining/limit for the credential."""
        used = self.current_usage(credential)
        return QuotaUsage(
            used=used,
            remaining=max(0, self._daily_limit - used),
            limit=self._daily_limit,
        )
