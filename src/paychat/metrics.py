"""In-process counters for message handling.

Each worker keeps its own numbers, so with several workers ``/v1/metrics``
only describes the worker that answered.
"""

import os
import threading
from collections import Counter, deque
from typing import Any

# Latency percentiles are computed over the most recent samples only
LATENCY_WINDOW = 1000


def _percentile(ordered: list[float], fraction: float) -> float | None:
    if not ordered:
        return None
    return ordered[min(int(len(ordered) * fraction), len(ordered) - 1)]


class MetricsCollector:
    """Thread-safe counters fed by executor events and the chat engine."""

    def __init__(self, latency_window: int = LATENCY_WINDOW) -> None:
        self._lock = threading.Lock()
        self._commands: Counter[str] = Counter()
        # "ok" or the error code of a failed result
        self._outcomes: Counter[str] = Counter()
        # executed / cancelled
        self._confirmations: Counter[str] = Counter()
        self._rate_limited: Counter[str] = Counter()
        self._latencies: deque[float] = deque(maxlen=latency_window)

    def record_command(self, command: str, outcome: str, latency_ms: float) -> None:
        with self._lock:
            self._commands[command] += 1
            self._outcomes[outcome] += 1
            self._latencies.append(latency_ms)

    def record_confirmation(self, outcome: str) -> None:
        with self._lock:
            self._confirmations[outcome] += 1

    def record_rate_limited(self, category: str) -> None:
        with self._lock:
            self._rate_limited[category] += 1

    def get_snapshot(self) -> dict[str, Any]:
        with self._lock:
            latencies = sorted(self._latencies)
            return {
                "command_counts": dict(self._commands),
                "outcome_counts": dict(self._outcomes),
                "confirm_outcomes": dict(self._confirmations),
                "rate_limited_counts": dict(self._rate_limited),
                "command_latency_ms": {
                    "p50": _percentile(latencies, 0.5),
                    "p95": _percentile(latencies, 0.95),
                    "count": len(latencies),
                },
            }

    def reset(self) -> None:
        with self._lock:
            for counter in (self._commands, self._outcomes, self._confirmations, self._rate_limited):
                counter.clear()
            self._latencies.clear()


_collector: MetricsCollector | None = None
_collector_lock = threading.Lock()


def get_metrics_collector() -> MetricsCollector:
    """Process-wide collector used by the HTTP app."""
    global _collector
    with _collector_lock:
        if _collector is None:
            _collector = MetricsCollector()
        return _collector


def is_metrics_enabled() -> bool:
    return os.getenv("PAYCHAT_ENABLE_METRICS", "false").lower() in ("true", "1", "yes")
