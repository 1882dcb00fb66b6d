# Fixed-window rate limiting on Redis counters, keyed per client IP and scope.
# Fails open: with Redis disabled or erroring, requests are never throttled.
import logging
import os
from typing import Callable, Dict, Literal, Optional, Tuple

from fastapi import Request, HTTPException, status

from .redis_client import get_redis

logger = logging.getLogger("stayhub.rate_limit")

Scope = Literal["login", "signup", "write"]

# scope -> (env var holding the per-window cap, default cap)
_SCOPE_LIMITS: Dict[str, Tuple[str, int]] = {
    "login": ("RATE_LIMIT_LOGIN_PER_WINDOW", 10),
    "signup": ("RATE_LIMIT_SIGNUP_PER_WINDOW", 5),
    "write": ("RATE_LIMIT_WRITE_PER_WINDOW", 30),
}


def _env_int(name: str, default: int) -> int:
    raw: Optional[str] = os.getenv(name)
    try:
        return int(raw) if raw is not None else default
    except ValueError:
        return default


def window_seconds() -> int:
    return _env_int("RATE_LIMIT_WINDOW_SECONDS", 60)


def limit_for_scope(scope: Scope) -> int:
    env_name, default = _SCOPE_LIMITS[scope]
    return _env_int(env_name, default)


def _client_ip(request: Request) -> str:
    # Remote address only; X-Forwarded-For is not trusted
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit(scope: Scope) -> Callable[[Request], None]:
    """
    Build a FastAPI dependency enforcing the per-window cap of `scope`.

    Keys are rl:v1:ip:{ip}:{scope}; the first hit in a window sets the TTL.
    Exceeding the cap raises 429 with the seconds left in the window.
    """
    window = window_seconds()
    limit = limit_for_scope(scope)

    def _dependency(request: Request) -> None:
        r = get_redis()
        if r is None:
            return

        ip = _client_ip(request)
        key = f"rl:v1:ip:{ip}:{scope}"
        try:
            current = r.incr(key, amount=1)
            if current == 1:
                r.expire(key, window)
            if current <= limit:
                return
            ttl = r.ttl(key)
        except Exception as exc:
            logger.warning("Rate limit fail-open (scope=%s, ip=%s): %s", scope, ip, exc)
            return

        retry_after = ttl if isinstance(ttl, int) and ttl > 0 else window
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "message": "Too many requests, please retry later",
                "error": "rate_limited",
                "scope": scope,
                "limit": limit,
                "window_seconds": window,
                "retry_after": retry_after,
            },
        )

    return _dependency
