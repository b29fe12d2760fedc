"""
Hybrid in-memory + Redis rate limiting.

Counts live in process memory and are synced to Redis every few seconds so several
workers converge on roughly the same window without a Redis round-trip per request.
"""

import logging
import os
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request, status

logger = logging.getLogger(__name__)

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"

# Sync counts to Redis at most this often (seconds)
SYNC_INTERVAL = 10
CLEANUP_INTERVAL = 60

redis_client: Optional[redis.Redis] = None

# {key: {"count": int, "reset_time": int, "last_sync": int}}
_windows: dict[str, dict] = {}
_windows_lock = Lock()
_last_cleanup = 0


def get_redis_client() -> redis.Redis:
    """Get or create the shared Redis client (REDIS_URL, or host/port settings)"""
    global redis_client

    if redis_client is None:
        redis_url = os.getenv("REDIS_URL")
        options = {
            "decode_responses": True,
            "socket_connect_timeout": 5,
            "socket_timeout": 10,
            "retry_on_timeout": True,
            "health_check_interval": 30,
        }
        try:
            if redis_url:
                client = redis.from_url(redis_url, **options)
            else:
                client = redis.Redis(
                    host=os.getenv("REDIS_HOST", "localhost"),
                    port=int(os.getenv("REDIS_PORT", "6379")),
                    password=os.getenv("REDIS_PASSWORD") or None,
                    db=int(os.getenv("REDIS_DB", "0")),
                    ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
                    **options,
                )
            client.ping()
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise
        redis_client = client
        logger.info("Redis connected")

    return redis_client


def set_redis_client(client: Optional[redis.Redis]) -> None:
    """Replace the shared client (used by tests and by workers with their own pool)"""
    global redis_client
    redis_client = client
    reset_windows()


def reset_windows() -> None:
    with _windows_lock:
        _windows.clear()


def _cleanup_expired(now: int) -> None:
    global _last_cleanup
    if now - _last_cleanup < CLEANUP_INTERVAL:
        return
    with _windows_lock:
        expired = [k for k, v in _windows.items() if now >= v["reset_time"]]
        for k in expired:
            del _windows[k]
    if expired:
        logger.debug(f"Cleaned up {len(expired)} expired rate limit windows")
    _last_cleanup = now


def _load_window(key: str, window_seconds: int, client: redis.Redis, now: int) -> dict:
    try:
        stored = client.get(key)
        ttl = client.ttl(key)
        if stored and ttl and ttl > 0:
            return {"count": int(stored), "reset_time": now + ttl, "last_sync": now}
    except Exception as e:
        logger.warning(f"Failed to load rate limit window from Redis, using memory only: {e}")
    return {"count": 0, "reset_time": now + window_seconds, "last_sync": now}


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: redis.Redis
) -> tuple[bool, int, int]:
    """
    Fixed-window check for `key`.

    Returns:
        (is_allowed, current_count, seconds_until_reset)
    """
    now = int(time.time())
    _cleanup_expired(now)

    with _windows_lock:
        window = _windows.get(key)
        if window is None:
            window = _windows[key] = _load_window(key, window_seconds, client, now)

        if now >= window["reset_time"]:
            window.update(count=0, reset_time=now + window_seconds, last_sync=0)

        allowed = window["count"] < limit
        if allowed:
            window["count"] += 1

        if now - window["last_sync"] >= SYNC_INTERVAL or not allowed:
            try:
                client.set(key, window["count"], ex=max(1, window["reset_time"] - now))
                window["last_sync"] = now
            except Exception as e:
                logger.warning(f"Failed to sync rate limit window to Redis: {e}")

        return allowed, window["count"], max(0, window["reset_time"] - now)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _identity(request: Request, per: str) -> str:
    if per == "user":
        user_id = getattr(request.state, "user_id", None)
        if user_id:
            return f"user:{user_id}"
    if per == "global":
        return "global"
    return f"ip:{client_ip(request)}"


async def enforce_rate_limit(
    request: Request, limit: int, window_seconds: int, key_prefix: str, per: str = "ip"
) -> None:
    """
    Raise 429 when the caller is over the limit.

    `per` is "ip", "user" (falls back to IP before authentication) or "global".
    Limiter failures deny the request with 503.
    """
    if not RATE_LIMIT_ENABLED:
        return

    try:
        key = f"rl:{key_prefix}:{_identity(request, per)}"
        allowed, count, ttl = check_rate_limit(key, limit, window_seconds, get_redis_client())
    except Exception as e:
        logger.error(f"Rate limiting error, denying request: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rate limiting service temporarily unavailable",
        ) from e

    if not allowed:
        logger.warning(f"Rate limit exceeded for {key} ({count}/{limit})")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "message": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                "retry_after": ttl,
            },
            headers={"Retry-After": str(ttl)},
        )

    request.state.rate_limit_remaining = limit - count


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str, per: str = "ip"):
    """
    Build a rate limiting dependency.

    Example:
        rate_limit_reports = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="reports", per="user")

        @router.post("/reports")
        async def create_report(..., _: None = Depends(rate_limit_reports)):
            ...
    """

    async def rate_limiter(request: Request):
        await enforce_rate_limit(request, limit, window_seconds, key_prefix, per)

    return rate_limiter
