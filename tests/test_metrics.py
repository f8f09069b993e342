"""Tests for the in-process metrics collector."""

from paychat.metrics import MetricsCollector, get_metrics_collector, is_metrics_enabled


def test_record_command_counts_and_latency():
    metrics = MetricsCollector()
    metrics.record_command("balance", "ok", 10.0)
    metrics.record_command("balance", "ok", 30.0)
    metrics.record_command("send", "NOT_AUTHENTICATED", 20.0)

    snapshot = metrics.get_snapshot()
    assert snapshot["command_counts"] == {"balance": 2, "send": 1}
    assert snapshot["outcome_counts"] == {"ok": 2, "NOT_AUTHENTICATED": 1}
    assert snapshot["command_latency_ms"]["count"] == 3
    assert snapshot["command_latency_ms"]["p50"] == 20.0
    assert snapshot["command_latency_ms"]["p95"] == 30.0


def test_confirmation_and_rate_limit_counters():
    metrics = MetricsCollector()
    metrics.record_confirmation("executed")
    metrics.record_confirmation("cancelled")
    metrics.record_confirmation("executed")
    metrics.record_rate_limited("payment")

    snapshot = metrics.get_snapshot()
    assert snapshot["confirm_outcomes"] == {"executed": 2, "cancelled": 1}
    assert snapshot["rate_limited_counts"] == {"payment": 1}


def test_empty_snapshot_has_no_percentiles():
    snapshot = MetricsCollector().get_snapshot()
    assert snapshot["command_latency_ms"] == {"p50": None, "p95": None, "count": 0}


def test_reset_clears_everything():
    metrics = MetricsCollector()
    metrics.record_command("help", "ok", 1.0)
    metrics.record_rate_limited("help")
    metrics.reset()
    snapshot = metrics.get_snapshot()
    assert snapshot["command_counts"] == {}
    assert snapshot["rate_limited_counts"] == {}


def test_global_collector_is_singleton():
    assert get_metrics_collector() is get_metrics_collector()


def test_is_metrics_enabled(monkeypatch):
    monkeypatch.setenv("PAYCHAT_ENABLE_METRICS", "true")
    assert is_metrics_enabled() is True
    monkeypatch.setenv("PAYCHAT_ENABLE_METRICS", "0")
    assert is_metrics_enabled() is False


def test_latency_window_keeps_recent_samples():
    metrics = MetricsCollector(latency_window=2)
    for latency in (100.0, 1.0, 2.0):
        metrics.record_command("price", "ok", latency)

    latency = metrics.get_snapshot()["command_latency_ms"]
    assert latency["count"] == 2
    assert latency["p95"] == 2.0
