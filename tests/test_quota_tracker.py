"""Unit tests for the in-memory daily quota tracker."""

import secrets
import threading
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from app.adapters.quota import DAILY_LIMIT, InMemoryQuotaTracker, digest_credential

ONE_DAY = 24 * 60 * 60


def test_daily_limit_is_100() -> None:
    assert DAILY_LIMIT == 100
    assert InMemoryQuotaTracker().daily_limit == 100


def test_first_record_returns_one_and_nth_returns_n(tracker: InMemoryQuotaTracker) -> None:
    assert tracker.record_usage("key") == 1
    for expected in range(2, 11):
        assert tracker.record_usage("key") == expected
    assert tracker.current_usage("key") == 10


def test_unknown_credential_has_zero_usage(tracker: InMemoryQuotaTracker) -> None:
    assert tracker.current_usage("never-seen") == 0
    assert tracker.remaining("never-seen") == DAILY_LIMIT


@pytest.mark.parametrize("calls", [0, 1, 57, 99, 100, 101, 130])
def test_remaining_is_limit_minus_usage_clamped_at_zero(
    tracker: InMemoryQuotaTracker, spend, calls: int
) -> None:
    spend(tracker, "key", calls)

    assert tracker.current_usage("key") == calls
    assert tracker.remaining("key") == max(0, DAILY_LIMIT - calls)

    usage = tracker.usage("key")
    assert (usage.used, usage.remaining, usage.limit) == (
        calls,
        max(0, DAILY_LIMIT - calls),
        DAILY_LIMIT,
    )


def test_record_usage_never_refuses(tracker: InMemoryQuotaTracker, spend) -> None:
    spend(tracker, "key", DAILY_LIMIT)
    assert tracker.record_usage("key") == DAILY_LIMIT + 1


def test_record_from_previous_day_counts_as_zero(
    clock: Mock, tracker: InMemoryQuotaTracker, spend
) -> None:
    spend(tracker, "key", DAILY_LIMIT)
    assert tracker.remaining("key") == 0

    clock.return_value += ONE_DAY

    assert tracker.current_usage("key") == 0
    assert tracker.remaining("key") == DAILY_LIMIT
    assert tracker.record_usage("key") == 1


def test_no_carryover_across_midnight(clock: Mock, tracker: InMemoryQuotaTracker) -> None:
    clock.return_value = datetime(2024, 1, 1, 23, 59, 59, tzinfo=timezone.utc).timestamp()
    tracker.record_usage("key")
    tracker.record_usage("key")

    clock.return_value += 2

    assert tracker.record_usage("key") == 1


def test_usage_is_isolated_by_credential(tracker: InMemoryQuotaTracker, spend) -> None:
    spend(tracker, "k1", 5)

    assert tracker.current_usage("k1") == 5
    assert tracker.current_usage("k2") == 0
    assert tracker.record_usage("k2") == 1


def test_store_is_keyed_by_digest_not_raw_credential(tracker: InMemoryQuotaTracker) -> None:
    tracker.record_usage("super-secret-key")

    assert "super-secret-key" not in tracker._records
    assert digest_credential("super-secret-key") in tracker._records
    assert len(tracker) == 1


def test_read_operations_do_not_create_records(tracker: InMemoryQuotaTracker) -> None:
    tracker.current_usage("key")
    tracker.remaining("key")
    tracker.usage("key")

    assert len(tracker) == 0


def test_day_follows_configured_timezone() -> None:
    # 21:30 UTC on Jan 1 is already 00:30 on Jan 2 in Moscow (UTC+3)
    clock = Mock(return_value=datetime(2024, 1, 1, 20, 30, tzinfo=timezone.utc).timestamp())
    moscow = InMemoryQuotaTracker(timezone="Europe/Moscow", clock=clock)
    utc = InMemoryQuotaTracker(timezone="UTC", clock=clock)
    moscow.record_usage("key")
    utc.record_usage("key")

    clock.return_value = datetime(2024, 1, 1, 21, 30, tzinfo=timezone.utc).timestamp()

    assert moscow.current_usage("key") == 0
    assert utc.current_usage("key") == 1


def test_concurrent_increments_are_not_lost(tracker: InMemoryQuotaTracker) -> None:
    threads_count, per_thread = 8, 250
    barrier = threading.Barrier(threads_count)

    def worker() -> None:
        barrier.wait()
        for _ in range(per_thread):
            tracker.record_usage("shared-key")

    threads = [threading.Thread(target=worker) for _ in range(threads_count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert tracker.current_usage("shared-key") == threads_count * per_thread


def test_invalid_daily_limit() -> None:
    with pytest.raises(ValueError):
        InMemoryQuotaTracker(daily_limit=0)


class TestDigestCredential:
    def test_is_deterministic_sha256_hex(self) -> None:
        first = digest_credential("my-key")

        assert first == digest_credential("my-key")
        assert len(first) == 64
        assert int(first, 16) >= 0
        # sha256("abc")
        assert digest_credential("abc") == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_distinct_credentials_do_not_collide(self) -> None:
        credentials = {secrets.token_hex(16) for _ in range(10_000)}

        digests = {digest_credential(c) for c in credentials}

        assert len(digests) == len(credentials)
