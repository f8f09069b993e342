"""Sliding-window rate limiting per user and per conversation group.

Each command category has its own window and limits. Recent request timestamps
are kept in the shared store under ``rate:<group>:<user>:<category>`` and
``rate:<group>:*:<category>``. A per-user block marker
(``rate:block:<group>:<user>``) can short-circuit checks for a while after a
user hits the limit of a category that configures ``block_duration_ms``.
"""

import json
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from .store import KeyValueStore, StoreError

logger = logging.getLogger(__name__)

# Extra TTL on timestamp lists beyond the window itself
KEY_TTL_BUFFER_SECONDS = 60


@dataclass(frozen=True)
class RateLimitConfig:
    """Limits for one command category."""

    window_ms: int
    max_per_user: int
    max_per_group: int
    block_duration_ms: int | None = None


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""

    allowed: bool
    reason: str
    retry_after_seconds: int | None = None
    remaining_user: int | None = None
    remaining_group: int | None = None
    is_blocked: bool = False


DEFAULT_RATE_LIMITS: dict[str, RateLimitConfig] = {
    "default": RateLimitConfig(window_ms=60_000, max_per_user=10, max_per_group=30),
    "price": RateLimitConfig(window_ms=60_000, max_per_user=5, max_per_group=20),
    "link": RateLimitConfig(window_ms=300_000, max_per_user=3, max_per_group=10),
    "help": RateLimitConfig(window_ms=60_000, max_per_user=5, max_per_group=15),
    "payment": RateLimitConfig(
        window_ms=60_000, max_per_user=3, max_per_group=10, block_duration_ms=300_000
    ),
}


class GroupRateLimiter:
    """Admission control for inbound commands."""

    def __init__(
        self,
        store: KeyValueStore,
        configs: dict[str, RateLimitConfig] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Shared store holding timestamp lists and block markers
            configs: Limits per category; must contain "default"
            clock: Wall clock in seconds
        """
        self.store = store
        self.configs = dict(configs or DEFAULT_RATE_LIMITS)
        if "default" not in self.configs:
            self.configs["default"] = DEFAULT_RATE_LIMITS["default"]
        self._clock = clock

    def config_for(self, category: str) -> RateLimitConfig:
        return self.configs.get(category, self.configs["default"])

    @staticmethod
    def _user_key(group_id: str, user_id: str, category: str) -> str:
        return f"rate:{group_id}:{user_id}:{category}"

    @staticmethod
    def _group_key(group_id: str, category: str) -> str:
        return f"rate:{group_id}:*:{category}"

    @staticmethod
    def _block_key(group_id: str, user_id: str) -> str:
        return f"rate:block:{group_id}:{user_id}"

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _recent(self, key: str, window_start_ms: int) -> list[int]:
        """Read a timestamp list, pruning entries at or before the window start."""
        raw = self.store.get(key)
        if not raw:
            return []
        timestamps = json.loads(raw)
        return [ts for ts in timestamps if ts > window_start_ms]

    def _record(self, key: str, timestamps: list[int], config: RateLimitConfig) -> None:
        ttl = math.ceil(config.window_ms / 1000) + KEY_TTL_BUFFER_SECONDS
        self.store.set(key, json.dumps(timestamps), ttl)

    def check(self, group_id: str, user_id: str, category: str = "default") -> RateLimitResult:
        """Check and record one request.

        Args:
            group_id: Conversation group (or direct conversation) identifier
            user_id: Sender identifier
            category: Command category used to pick limits

        Returns:
            RateLimitResult; failures of the store admit the request
        """
        config = self.config_for(category)
        now_ms = self._now_ms()
        window_start_ms = now_ms - config.window_ms

        user_key = self._user_key(group_id, user_id, category)
        group_key = self._group_key(group_id, category)
        block_key = self._block_key(group_id, user_id)

        try:
            blocked_until = self.store.get(block_key)
            if blocked_until and int(blocked_until) > now_ms:
                retry_after = max(1, math.ceil((int(blocked_until) - now_ms) / 1000))
                return RateLimitResult(
                    allowed=False,
                    reason="You are temporarily blocked from using commands here.",
                    retry_after_seconds=retry_after,
                    remaining_user=0,
                    is_blocked=True,
                )

            user_timestamps = self._recent(user_key, window_start_ms)
            group_timestamps = self._recent(group_key, window_start_ms)

            if len(user_timestamps) >= config.max_per_user:
                if config.block_duration_ms:
                    self.store.set(
                        block_key,
                        str(now_ms + config.block_duration_ms),
                        config.block_duration_ms / 1000,
                    )
                    logger.info(
                        "Blocking %s in %s for %dms (category=%s)",
                        user_id,
                        group_id,
                        config.block_duration_ms,
                        category,
                    )
                retry_after = max(
                    1, math.ceil((user_timestamps[0] + config.window_ms - now_ms) / 1000)
                )
                return RateLimitResult(
                    allowed=False,
                    reason="You've sent too many commands. Please wait before trying again.",
                    retry_after_seconds=retry_after,
                    remaining_user=0,
                    remaining_group=max(0, config.max_per_group - len(group_timestamps)),
                )

            if len(group_timestamps) >= config.max_per_group:
                retry_after = max(
                    1, math.ceil((group_timestamps[0] + config.window_ms - now_ms) / 1000)
                )
                return RateLimitResult(
                    allowed=False,
                    reason="This group has reached its command limit. Please try again later.",
                    retry_after_seconds=retry_after,
                    remaining_user=max(0, config.max_per_user - len(user_timestamps)),
                    remaining_group=0,
                )

            user_timestamps.append(now_ms)
            group_timestamps.append(now_ms)
            self._record(user_key, user_timestamps, config)
            self._record(group_key, group_timestamps, config)

            return RateLimitResult(
                allowed=True,
                reason=(
                    f"Rate limit ok: {len(user_timestamps)}/{config.max_per_user} requests "
                    f"in the last {config.window_ms // 1000}s"
                ),
                remaining_user=config.max_per_user - len(user_timestamps),
                remaining_group=config.max_per_group - len(group_timestamps),
            )

        except (StoreError, ValueError, TypeError) as e:
            logger.error("Rate limit check failed, admitting request: %s", e)
            return RateLimitResult(allowed=True, reason="Rate limiter unavailable")

    def status(self, group_id: str, user_id: str, category: str = "default") -> dict[str, object]:
        """Current counts for a user without recording a request."""
        config = self.config_for(category)
        now_ms = self._now_ms()
        window_start_ms = now_ms - config.window_ms
        blocked_until = self.store.get(self._block_key(group_id, user_id))
        return {
            "user_count": len(self._recent(self._user_key(group_id, user_id, category), window_start_ms)),
            "group_count": len(self._recent(self._group_key(group_id, category), window_start_ms)),
            "is_blocked": bool(blocked_until) and int(blocked_until) > now_ms,
            "config": config,
        }

    def clear_user(self, group_id: str, user_id: str) -> int:
        """Remove a user's timestamps and block marker in a group.

        Returns:
            Number of keys removed
        """
        keys = [self._user_key(group_id, user_id, category) for category in self.configs]
        keys.append(self._block_key(group_id, user_id))
        return self.store.delete(*keys)
