"""Key-value store with per-key expiry and encrypted records.

This implementation provides:
- Redis-backed storage shared across workers
- Automatic expiration via Redis TTL
- Authenticated encryption for sensitive values
- Self-healing reads: records that fail to decrypt are deleted
- Fallback to in-memory if Redis unavailable
"""

import json
import logging
import threading
import time
from collections.abc import Callable
from typing import Any

import redis

from .crypto import Cipher, DecryptionError, load_cipher

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the backing store cannot be reached or rejects a command."""


class InMemoryStore:
    """Process-local key-value store with per-key expiry.

    Expired entries are dropped when read, and every ``sweep_every`` writes
    a full sweep removes the ones nobody reads again.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_every: int = 256) -> None:
        self._clock = clock
        # key -> (value, expires_at or None)
        self._data: dict[str, tuple[str, float | None]] = {}
        self._lock = threading.Lock()
        self._sweep_every = max(1, sweep_every)
        self._writes = 0

    def _live_entry(self, key: str) -> tuple[str, float | None] | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        _, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return entry

    def _sweep(self) -> int:
        now = self._clock()
        expired = [k for k, (_, exp) in self._data.items() if exp is not None and now >= exp]
        for key in expired:
            del self._data[key]
        return len(expired)

    def purge_expired(self) -> int:
        """Drop every expired entry now and return how many were removed."""
        with self._lock:
            return self._sweep()

    def set(self, key: str, value: str, ttl_seconds: float | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        with self._lock:
            self._data[key] = (value, expires_at)
            self._writes += 1
            if self._writes % self._sweep_every == 0:
                self._sweep()

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._live_entry(key)
            return entry[0] if entry else None

    def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                if self._live_entry(key) is not None:
                    del self._data[key]
                    removed += 1
        return removed

    def exists(self, key: str) -> bool:
        with self._lock:
            return self._live_entry(key) is not None


class KeyValueStore:
    """Shared store used by confirmations, deduplication and rate limiting."""

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        cipher: Cipher | None = None,
        key_prefix: str = "paychat:",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the store.

        Args:
            redis_client: Redis client instance (None to use in-memory fallback)
            cipher: Cipher for encrypted records (default: from PAYCHAT_ENCRYPTION_KEY)
            key_prefix: Prefix for Redis keys (default: "paychat:")
            clock: Monotonic clock for the in-memory fallback
        """
        self.redis = redis_client
        self.cipher = cipher or load_cipher()
        self.key_prefix = key_prefix

        if self.redis is None:
            logger.warning("Redis not available, using in-memory fallback store")
            self._fallback: InMemoryStore | None = InMemoryStore(clock)
        else:
            logger.info("Using Redis-backed store")
            self._fallback = None

    @property
    def backend(self) -> str:
        return "memory" if self._fallback is not None else "redis"

    def _make_redis_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def set(self, key: str, value: str, ttl_seconds: float | None = None) -> None:
        """Write a plaintext value, optionally expiring after ``ttl_seconds``."""
        if self._fallback is not None:
            self._fallback.set(key, value, ttl_seconds)
            return

        try:
            if ttl_seconds:
                self.redis.set(
                    self._make_redis_key(key), value, px=max(1, int(ttl_seconds * 1000))
                )
            else:
                self.redis.set(self._make_redis_key(key), value)
        except redis.RedisError as e:
            raise StoreError(f"Redis error writing {key}: {e}") from e

    def _read(self, key: str) -> str | bytes | None:
        if self._fallback is not None:
            return self._fallback.get(key)

        try:
            return self.redis.get(self._make_redis_key(key))
        except redis.RedisError as e:
            raise StoreError(f"Redis error reading {key}: {e}") from e

    def get(self, key: str) -> str | None:
        """Read a plaintext value, or None when absent or expired."""
        data = self._read(key)
        if isinstance(data, bytes):
            data = data.decode()
        return data

    def delete(self, *keys: str) -> int:
        """Delete keys and return how many existed."""
        if not keys:
            return 0
        if self._fallback is not None:
            return self._fallback.delete(*keys)

        try:
            return int(self.redis.delete(*(self._make_redis_key(k) for k in keys)))
        except redis.RedisError as e:
            raise StoreError(f"Redis error deleting {keys}: {e}") from e

    def exists(self, key: str) -> bool:
        if self._fallback is not None:
            return self._fallback.exists(key)

        try:
            return int(self.redis.exists(self._make_redis_key(key))) > 0
        except redis.RedisError as e:
            raise StoreError(f"Redis error checking {key}: {e}") from e

    def set_encrypted(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Serialize ``value`` as JSON, encrypt it and write it."""
        payload = json.dumps(value)
        self.set(key, self.cipher.encrypt(payload), ttl_seconds)

    def get_encrypted(self, key: str) -> Any | None:
        """Read and decrypt a value written by :meth:`set_encrypted`.

        A record that fails to authenticate, decrypt or parse is deleted and
        reported as absent, so one bad record cannot fail every later read.

        Returns:
            The decoded value, or None if not found or unreadable
        """
        raw = self._read(key)
        if raw is None:
            return None

        try:
            if isinstance(raw, bytes):
                raw = raw.decode("ascii")
            return json.loads(self.cipher.decrypt(raw))
        except (UnicodeDecodeError, DecryptionError, json.JSONDecodeError) as e:
            logger.warning("Discarding unreadable encrypted record %s: %s", key, e)
            self.delete(key)
            return None
