"""
Fixed-window request throttling backed by Redis

Every (scope, client) pair owns a counter that expires with its window.
Redis INCR keeps the count shared between API workers; if Redis cannot be
reached the counters live in this process instead.
"""

import logging
import os
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"

# Expired local windows are pruned once the table grows past this
MAX_LOCAL_KEYS = 10_000


def connect_redis() -> Optional[redis.Redis]:
    redis_url = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    try:
        client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            health_check_interval=30,
        )
        client.ping()
    except redis.RedisError as e:
        logger.warning(f"⚠️ Redis unavailable ({e}) - rate limits are tracked per process")
        return None
    logger.info("✅ Redis connected for rate limiting")
    return client


class WindowCounter:
    """Counts hits per key inside a fixed window"""

    def __init__(self, client: Optional[redis.Redis] = None):
        self.client = client
        self._local: dict[str, list] = {}
        self._lock = Lock()

    def hit(self, key: str, window_seconds: int, now: Optional[float] = None) -> tuple[int, int]:
        """Record one request; returns (count in window, seconds until reset)"""
        if self.client is not None:
            try:
                return self._hit_redis(key, window_seconds)
            except redis.RedisError as e:
                logger.warning(f"⚠️ Redis hit failed for {key}, counting locally: {e}")
        return self._hit_local(key, window_seconds, time.monotonic() if now is None else now)

    def _hit_redis(self, key: str, window_seconds: int) -> tuple[int, int]:
        pipe = self.client.pipeline()
        pipe.incr(key)
        pipe.ttl(key)
        count, ttl = pipe.execute()
        if ttl < 0:
            # first hit of the window
            self.client.expire(key, window_seconds)
            ttl = window_seconds
        return int(count), int(ttl)

    def _hit_local(self, key: str, window_seconds: int, now: float) -> tuple[int, int]:
        with self._lock:
            if len(self._local) > MAX_LOCAL_KEYS:
                self._local = {k: v for k, v in self._local.items() if v[1] > now}

            entry = self._local.get(key)
            if entry is None or now >= entry[1]:
                entry = [0, now + window_seconds]
                self._local[key] = entry
            entry[0] += 1
            return entry[0], max(0, int(entry[1] - now))


_counter: Optional[WindowCounter] = None


def get_counter() -> WindowCounter:
    global _counter
    if _counter is None:
        _counter = WindowCounter(connect_redis())
    return _counter


def client_identity(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str):
    """
    Build a dependency allowing `limit` requests per client IP per window

    Example:
        rate_limit_login = create_rate_limiter(limit=10, window_seconds=300, key_prefix="login")

        @router.post("/login")
        async def login(data: LoginRequest, _: None = Depends(rate_limit_login)):
            ...
    """

    async def rate_limiter(request: Request):
        if not RATE_LIMIT_ENABLED:
            return

        key = f"rate_limit:{key_prefix}:{client_identity(request)}"
        count, retry_after = get_counter().hit(key, window_seconds)
        if count > limit:
            logger.warning(f"🚫 Rate limit exceeded for {key} ({count}/{limit})")
            raise HTTPException(
                status_code=429,
                detail={
                    "message": f"Too many requests. Maximum {limit} per {window_seconds} seconds.",
                    "retry_after": retry_after,
                },
                headers={"Retry-After": str(retry_after)},
            )
        request.state.rate_limit_remaining = limit - count

    return rate_limiter
