"""Redis connection for the shared key-value store.

The server is described either by ``REDIS_URL`` or by the individual
``REDIS_HOST`` / ``REDIS_PORT`` / ``REDIS_DB`` / ``REDIS_PASSWORD`` variables.
An unreachable server is not fatal: callers get None and run on the
in-memory store, which only suits a single process.
"""

import logging
import os
from urllib.parse import quote, urlsplit

import redis

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 2.0


def redis_enabled() -> bool:
    return os.environ.get("REDIS_ENABLED", "true").lower() not in ("false", "0", "no")


def redis_url_from_env() -> str:
    url = os.environ.get("REDIS_URL")
    if url:
        return url
    password = os.environ.get("REDIS_PASSWORD")
    credentials = f":{quote(password, safe='')}@" if password else ""
    host = os.environ.get("REDIS_HOST", "localhost")
    port = os.environ.get("REDIS_PORT", "6379")
    db = os.environ.get("REDIS_DB", "0")
    return f"redis://{credentials}{host}:{port}/{db}"


def describe_url(url: str) -> str:
    """``host:port/db`` for log lines, without credentials."""
    parts = urlsplit(url)
    return f"{parts.hostname}:{parts.port or 6379}/{parts.path.lstrip('/') or '0'}"


def get_redis_client(
    url: str | None = None,
    timeout_seconds: float = CONNECT_TIMEOUT_SECONDS,
) -> redis.Redis | None:
    """Connect and ping, or return None when Redis is disabled or unreachable.

    Responses are left as bytes; the store decodes what it reads.
    """
    if not redis_enabled():
        logger.info("REDIS_ENABLED is off, confirmations and caches stay in memory")
        return None

    url = url or redis_url_from_env()
    location = describe_url(url)
    try:
        client = redis.Redis.from_url(
            url,
            socket_connect_timeout=timeout_seconds,
            socket_timeout=timeout_seconds,
        )
        client.ping()
    except (redis.RedisError, ValueError) as e:
        logger.warning("Redis at %s unavailable, falling back to memory: %s", location, e)
        return None

    logger.info("Connected to Redis at %s", location)
    return client
