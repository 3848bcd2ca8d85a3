"""Daily quota tracking adapters.

The API depends on ``AbstractQuotaTracker`` so the in-memory store can later be
replaced by a shared key-value store without changing the workflow.
"""

from app.adapters.quota.base import (
    DAILY_LIMIT,
    AbstractQuotaTracker,
    QuotaUsage,
    UsageRecord,
    digest_credential,
)
from app.adapters.quota.in_memory import InMemoryQuotaTracker

__all__ = [
    "DAILY_LIMIT",
    "AbstractQuotaTracker",
    "InMemoryQuotaTracker",
    "QuotaUsage",
    "UsageRecord",
    "digest_credential",
]
