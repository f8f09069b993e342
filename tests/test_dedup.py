"""Tests for single-flight request deduplication."""

import threading
import time

import pytest

from paychat.dedup import RequestDeduplicator


@pytest.fixture
def dedup(store):
    return RequestDeduplicator(store, default_ttl_seconds=5)


def test_returns_producer_result_and_caches(dedup):
    calls = []

    def producer():
        calls.append(1)
        return {"amount": "42"}

    assert dedup.dedupe("balance:1", producer) == {"amount": "42"}
    assert dedup.dedupe("balance:1", producer) == {"amount": "42"}
    assert len(calls) == 1


def test_cache_expires(dedup, clock):
    calls = []

    def producer():
        calls.append(1)
        return len(calls)

    assert dedup.dedupe("k", producer, ttl_seconds=5) == 1
    clock.advance(6)
    assert dedup.dedupe("k", producer, ttl_seconds=5) == 2


def test_different_fingerprints_do_not_share(dedup):
    assert dedup.dedupe("price:USD", lambda: "usd") == "usd"
    assert dedup.dedupe("price:EUR", lambda: "eur") == "eur"


def test_concurrent_callers_share_one_producer(dedup):
    calls = []
    started = threading.Event()
    release = threading.Event()

    def slow_producer():
        calls.append(1)
        started.set()
        release.wait(timeout=5)
        return "result"

    results = []

    def worker():
        results.append(dedup.dedupe("k", slow_producer, ttl_seconds=5))

    leader = threading.Thread(target=worker)
    leader.start()
    assert started.wait(timeout=5)

    followers = [threading.Thread(target=worker) for _ in range(3)]
    for t in followers:
        t.start()
    # Give followers time to attach to the in-flight future
    time.sleep(0.1)
    assert dedup.in_flight_count() == 1
    release.set()

    leader.join(timeout=5)
    for t in followers:
        t.join(timeout=5)

    assert len(calls) == 1
    assert results == ["result"] * 4
    assert dedup.in_flight_count() == 0


def test_failure_is_not_cached(dedup):
    attempts = []

    def flaky():
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("upstream down")
        return "ok"

    with pytest.raises(RuntimeError):
        dedup.dedupe("k", flaky)
    assert dedup.dedupe("k", flaky) == "ok"
    assert len(attempts) == 2


def test_concurrent_callers_receive_the_same_failure(dedup):
    started = threading.Event()
    release = threading.Event()

    def failing():
        started.set()
        release.wait(timeout=5)
        raise ValueError("boom")

    errors = []

    def worker():
        try:
            dedup.dedupe("k", failing)
        except ValueError as e:
            errors.append(str(e))

    threads = [threading.Thread(target=worker) for _ in range(2)]
    threads[0].start()
    assert started.wait(timeout=5)
    threads[1].start()
    time.sleep(0.05)
    release.set()
    for t in threads:
        t.join(timeout=5)

    assert errors == ["boom", "boom"]


def test_clear_drops_cached_value(dedup):
    dedup.dedupe("k", lambda: 1)
    dedup.clear("k")
    assert dedup.dedupe("k", lambda: 2) == 2
