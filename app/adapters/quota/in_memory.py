"""In-memory daily quota tracker.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Not persisted: all usage is forgotten when the process restarts.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import date, datetime, tzinfo
from typing import Callable
from zoneinfo import ZoneInfo

from app.adapters.quota.base import (
    DAILY_LIMIT,
    AbstractQuotaTracker,
    UsageRecord,
    digest_credential,
)

logger = logging.getLogger(__name__)


class InMemoryQuotaTracker(AbstractQuotaTracker):
    """Quota tracker keeping one usage record per credential digest.

    A record only counts for the day it was written on. Records from earlier
    days are treated as zero usage and replaced on the next increment, so
    nothing is ever explicitly deleted.
    """

    def __init__(
        self,
        *,
        daily_limit: int = DAILY_LIMIT,
        timezone: str | tzinfo = "UTC",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the tracker.

        Args:
            daily_limit: Maximum calls per credential per day.
            timezone: Zone (IANA name or tzinfo) whose calendar day is used.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If daily_limit is invalid.
            ZoneInfoNotFoundError: If the zone name is unknown.
        """
        super().__init__(daily_limit=daily_limit)
        self._tz = ZoneInfo(timezone) if isinstance(timezone, str) else timezone
        self._clock = clock
        self._lock = threading.RLock()
        self._records: dict[str, UsageRecord] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _today(self) -> date:
        return datetime.fromtimestamp(self._clock(), tz=self._tz).date()

    def current_usage(self, credential: str) -> int:
        key = digest_credential(credential)
        today = self._today()

        with self._lock:
            record = self._records.get(key)
            if record is None or record.day != today:
                return 0
            return record.count

    def record_usage(self, credential: str) -> int:
        """Record one call for the credential.

        Starts a fresh ``{today, 1}`` record when none exists or the stored
        one belongs to another day; otherwise increments it.

        Args:
            credential: Caller-supplied secret.

        Returns:
            The credential's call count for today after this call.
        """
        key = digest_credential(credential)
        today = self._today()

        with self._lock:
            record = self._records.get(key)
            if record is None or record.day != today:
                record = UsageRecord(day=today, count=0)
                self._records[key] = record
            record.count += 1
            count = record.count

        logger.debug(
            "quota.recorded",
            extra={
                "credential_hash": key[:16],
                "day": today.isoformat(),
                "count": count,
                "limit": self.daily_limit,
            },
        )
        return count
