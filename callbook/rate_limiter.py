"""
Per-IP request limiting for public endpoints (Redis fixed window)

The per-phone verification limit lives in the database and is always enforced;
this layer only blunts bulk abuse from a single address, so it fails open when
Redis is unreachable.
"""

import logging
import os
import time
from typing import Optional

import redis
from fastapi import Request

from .errors import ErrorKind, ServiceError

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client
    Supports a single REDIS_URL or individual host settings
    """
    global redis_client

    if redis_client is None:
        redis_url = os.getenv("REDIS_URL")
        options = dict(
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
            max_connections=20,
        )

        if redis_url:
            client = redis.from_url(redis_url, **options)
        else:
            client = redis.Redis(
                host=os.getenv("REDIS_HOST", "localhost"),
                port=int(os.getenv("REDIS_PORT", "6379")),
                password=os.getenv("REDIS_PASSWORD", None),
                db=int(os.getenv("REDIS_DB", "0")),
                ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
                **options,
            )
        client.ping()
        redis_client = client
        logger.info("Redis connected for rate limiting")

    return redis_client


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: redis.Redis
) -> tuple[bool, int, int]:
    """Count one request against ``key``

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    window = int(time.time()) // window_seconds
    window_key = f"{key}:{window}"

    pipe = client.pipeline()
    pipe.incr(window_key)
    pipe.expire(window_key, window_seconds)
    count, _ = pipe.execute()

    ttl = window_seconds - int(time.time()) % window_seconds
    return int(count) <= limit, int(count), ttl


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def rate_limit_dependency(
    request: Request, limit: int, window_seconds: int, key_prefix: str = "rate_limit"
):
    try:
        client = get_redis_client()
        key = f"{key_prefix}:{client_ip(request)}"
        is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds, client)
    except redis.RedisError as e:
        logger.warning(f"Rate limiter unavailable, allowing request: {e}")
        return

    if not is_allowed:
        logger.warning(f"Rate limit exceeded for {key} - {current_count}/{limit}")
        raise ServiceError(
            ErrorKind.RATE_LIMITED,
            "Too many requests. Please try again later.",
            headers={"Retry-After": str(ttl)},
        )


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    """
    Create a rate limiter dependency with specific parameters

    Example usage:
        rate_limit_verify = create_rate_limiter(limit=10, window_seconds=600, key_prefix="verify")

        @router.post("/verify-phone")
        async def verify_phone(..., _: None = Depends(rate_limit_verify)):
            ...
    """

    async def rate_limiter(request: Request):
        return await rate_limit_dependency(request, limit, window_seconds, key_prefix)

    return rate_limiter
