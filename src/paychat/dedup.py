"""Single-flight request deduplication.

When several identical operations arrive at once, only the first runs; the
others wait for and receive the same result. Successful results are cached in
the shared store for a short TTL so duplicates arriving just after also reuse
them. Failures are never cached.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future
from typing import Any, TypeVar

from .store import KeyValueStore, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 5.0


class RequestDeduplicator:
    """Coalesce concurrent calls that share a fingerprint."""

    def __init__(
        self,
        store: KeyValueStore,
        default_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        key_prefix: str = "dedupe:",
    ) -> None:
        """Initialize the deduplicator.

        Args:
            store: Shared store holding cached results
            default_ttl_seconds: How long a result is reused (default: 5s)
            key_prefix: Prefix for cache keys (default: "dedupe:")
        """
        self.store = store
        self.default_ttl_seconds = default_ttl_seconds
        self.key_prefix = key_prefix
        # fingerprint -> future of the producer currently running for it
        self._in_flight: dict[str, Future] = {}
        self._lock = threading.Lock()

    def _make_key(self, fingerprint: str) -> str:
        return f"{self.key_prefix}{fingerprint}"

    def _read_cached(self, fingerprint: str) -> tuple[bool, Any]:
        try:
            entry = self.store.get_encrypted(self._make_key(fingerprint))
        except StoreError as e:
            logger.warning("Dedupe cache read failed for %s: %s", fingerprint, e)
            return False, None
        if isinstance(entry, dict) and "value" in entry:
            return True, entry["value"]
        return False, None

    def _write_cached(self, fingerprint: str, value: Any, ttl_seconds: float) -> None:
        try:
            self.store.set_encrypted(self._make_key(fingerprint), {"value": value}, ttl_seconds)
        except (StoreError, TypeError) as e:
            logger.warning("Dedupe cache write failed for %s: %s", fingerprint, e)

    def dedupe(
        self,
        fingerprint: str,
        producer: Callable[[], T],
        ttl_seconds: float | None = None,
    ) -> T:
        """Return the result of ``producer`` shared across identical callers.

        Args:
            fingerprint: Key identifying the logical operation (e.g. "balance:<id>")
            producer: Function performing the expensive operation
            ttl_seconds: How long to reuse the result (default: instance default);
                0 disables caching but keeps in-flight coalescing

        Returns:
            The producer's result (possibly computed by another caller)

        Raises:
            Exception: Whatever the producer raised, for every waiting caller
        """
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds

        hit, value = self._read_cached(fingerprint)
        if hit:
            logger.debug("Returning cached result for %s", fingerprint)
            return value

        with self._lock:
            future = self._in_flight.get(fingerprint)
            leader = future is None
            if leader:
                future = Future()
                self._in_flight[fingerprint] = future

        if not leader:
            logger.debug("Request already in flight for %s", fingerprint)
            return future.result()

        try:
            # A previous leader may have finished between our cache read and
            # taking leadership.
            hit, value = self._read_cached(fingerprint)
            if not hit:
                logger.debug("Starting new request for %s", fingerprint)
                value = producer()
                if ttl > 0:
                    self._write_cached(fingerprint, value, ttl)
            future.set_result(value)
            return value
        except Exception as e:
            logger.error("Deduplicated request failed for %s: %s", fingerprint, e)
            future.set_exception(e)
            raise
        finally:
            with self._lock:
                self._in_flight.pop(fingerprint, None)

    def clear(self, fingerprint: str) -> None:
        """Drop the cached result for a fingerprint."""
        self.store.delete(self._make_key(fingerprint))

    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._in_flight)
