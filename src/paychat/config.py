"""Runtime configuration.

Settings come from environment variables; per-category rate limits are loaded
from a YAML file with safe defaults.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .rate_limit import DEFAULT_RATE_LIMITS, RateLimitConfig

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid value for %s=%r, using %s", name, raw, default)
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in ("true", "1", "yes")


@dataclass
class Settings:
    """Engine settings read from the environment.

    Transport auth (``PAYCHAT_AUTH_MODE``) and the metrics switch
    (``PAYCHAT_ENABLE_METRICS``) are read where they are used, in
    ``paychat.auth`` and ``paychat.metrics``.
    """

    encryption_key: str | None = None
    confirmation_ttl_seconds: float = 300.0
    balance_cache_ttl_seconds: float = 30.0
    price_cache_ttl_seconds: float = 60.0
    redis_enabled: bool = True
    rate_limits: dict[str, RateLimitConfig] = field(
        default_factory=lambda: dict(DEFAULT_RATE_LIMITS)
    )

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from PAYCHAT_* environment variables."""
        rate_limits_path = os.getenv("PAYCHAT_RATE_LIMITS_PATH")
        return cls(
            encryption_key=os.getenv("PAYCHAT_ENCRYPTION_KEY") or None,
            confirmation_ttl_seconds=_env_float("PAYCHAT_CONFIRMATION_TTL_SECONDS", 300.0),
            balance_cache_ttl_seconds=_env_float("PAYCHAT_BALANCE_CACHE_TTL_SECONDS", 30.0),
            price_cache_ttl_seconds=_env_float("PAYCHAT_PRICE_CACHE_TTL_SECONDS", 60.0),
            redis_enabled=_env_bool("REDIS_ENABLED", True),
            rate_limits=load_rate_limits(rate_limits_path),
        )


def _parse_rate_limit(name: str, data: Any) -> RateLimitConfig:
    """Parse one category entry.

    Raises:
        ValueError: If required fields are missing or invalid.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Rate limit '{name}' must be a dictionary")

    for required in ("window_ms", "max_per_user", "max_per_group"):
        if required not in data:
            raise ValueError(f"Rate limit '{name}' missing required field: {required}")
        value = data[required]
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValueError(f"Field '{name}.{required}' must be a positive integer")

    block = data.get("block_duration_ms")
    if block is not None and (isinstance(block, bool) or not isinstance(block, int) or block < 0):
        raise ValueError(f"Field '{name}.block_duration_ms' must be a non-negative integer")

    return RateLimitConfig(
        window_ms=data["window_ms"],
        max_per_user=data["max_per_user"],
        max_per_group=data["max_per_group"],
        block_duration_ms=block or None,
    )


def load_rate_limits(config_path: str | None = None) -> dict[str, RateLimitConfig]:
    """Load per-category rate limits from a YAML file.

    Categories in the file override the built-in defaults; categories it does
    not mention keep them.

    Args:
        config_path: Path to the YAML file.
                    If None, uses default path: config/rate_limits.yaml

    Returns:
        Mapping of category name to RateLimitConfig.
        If the file is missing or invalid, returns the built-in defaults.
    """
    if config_path is None:
        project_root = Path(__file__).parent.parent.parent
        config_path = os.path.join(project_root, "config", "rate_limits.yaml")

    if not os.path.exists(config_path):
        return dict(DEFAULT_RATE_LIMITS)

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a YAML dictionary")

        categories = data.get("categories")
        if not isinstance(categories, dict):
            raise ValueError("Config file must contain a 'categories' section")

        limits = dict(DEFAULT_RATE_LIMITS)
        for name, entry in categories.items():
            if not isinstance(name, str):
                raise ValueError(f"Category name must be a string: {name}")
            limits[name] = _parse_rate_limit(name, entry)
        return limits

    except (yaml.YAMLError, ValueError, OSError) as e:
        logger.warning("Failed to load rate limits from %s: %s", config_path, e)
        logger.warning("Using default rate limits")
        return dict(DEFAULT_RATE_LIMITS)


_cached_settings: Settings | None = None


def get_settings() -> Settings:
    """Get process settings (cached)."""
    global _cached_settings
    if _cached_settings is None:
        _cached_settings = Settings.from_env()
    return _cached_settings


def clear_settings_cache() -> None:
    """Clear cached settings (useful for testing)."""
    global _cached_settings
    _cached_settings = None
