# Shared Redis connection for the rate limiter.
# Opt-in via REDIS_ENABLED; every failure degrades to "no Redis" instead of raising.
import logging
import os

import redis

_logger = logging.getLogger("stayhub.redis")

_TRUTHY = {"1", "true", "t", "yes", "y", "on"}


def is_redis_enabled() -> bool:
    return os.getenv("REDIS_ENABLED", "false").strip().lower() in _TRUTHY


# Connected client, and whether a connection attempt already happened in this process
_client = None
_attempted = False


def get_redis():
    """
    Return a connected Redis client, or None when disabled or unreachable.

    The first call connects and pings. A failed attempt is remembered for the
    lifetime of the process so callers do not pay the connect timeout per request.
    """
    global _client, _attempted
    if not is_redis_enabled():
        return None
    if _client is not None or _attempted:
        return _client

    _attempted = True
    url = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    try:
        client = redis.Redis.from_url(
            url,
            socket_timeout=0.25,
            socket_connect_timeout=0.25,
            retry_on_timeout=False,
        )
        client.ping()
    except Exception as exc:
        _logger.warning("Redis unavailable, continuing without it: %s", exc)
        return None

    _client = client
    _logger.info("Connected to Redis at %s", url)
    return _client


def reset_redis() -> None:
    """Forget the cached client so the next get_redis() reconnects."""
    global _client, _attempted
    _client = None
    _attempted = False
