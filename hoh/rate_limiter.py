"""
Redis fixed-window rate limiting for public endpoints
"""

import logging
import os
from typing import Optional

import redis
from fastapi import HTTPException, Request, status

from .config import RATE_LIMIT_ENABLED

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """Get or create the shared Redis client (REDIS_URL or REDIS_HOST/PORT/...)"""
    global redis_client

    if redis_client is None:
        logger.info("🔄 Initializing Redis connection for rate limiting...")
        redis_url = os.getenv("REDIS_URL")

        if redis_url:
            redis_client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=15,
                socket_timeout=30,
                retry_on_timeout=True,
                health_check_interval=30,
                max_connections=20,
            )
        else:
            redis_client = redis.Redis(
                host=os.getenv("REDIS_HOST", "localhost"),
                port=int(os.getenv("REDIS_PORT", "6379")),
                password=os.getenv("REDIS_PASSWORD"),
                db=int(os.getenv("REDIS_DB", "0")),
                ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
                decode_responses=True,
                socket_connect_timeout=15,
                socket_timeout=30,
                retry_on_timeout=True,
                health_check_interval=30,
                max_connections=20,
            )

    return redis_client


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: redis.Redis
) -> tuple[bool, int, int]:
    """
    Count one request against key.

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    pipe = client.pipeline()
    pipe.incr(key)
    pipe.ttl(key)
    count, ttl = pipe.execute()

    if ttl is None or ttl < 0:
        # First hit of a new window
        client.expire(key, window_seconds)
        ttl = window_seconds

    return count <= limit, count, ttl


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def rate_limit_dependency(
    request: Request,
    limit: int,
    window_seconds: int,
    key_prefix: str = "rate_limit",
):
    """FastAPI dependency body; fails closed when Redis is unreachable"""
    if not RATE_LIMIT_ENABLED:
        return

    key = f"{key_prefix}:{_client_ip(request)}"
    try:
        is_allowed, current_count, ttl = check_rate_limit(
            key, limit, window_seconds, get_redis_client()
        )
    except redis.RedisError as e:
        logger.error(f"❌ Rate limiting error: {str(e)}")
        logger.warning("🔒 Denying request due to rate limiting error (fail-closed mode)")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rate limiting service temporarily unavailable",
        ) from e

    if not is_allowed:
        logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {current_count}/{limit} requests used")
        raise HTTPException(
            status_code=429,
            detail=f"Too many requests. Please try again in {ttl} seconds.",
            headers={"Retry-After": str(ttl)},
        )


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    """
    Create a rate limiter dependency with specific parameters

    Example usage:
        rate_limit_track = create_rate_limiter(limit=20, window_seconds=900, key_prefix="booking_track")

        @router.post("/track")
        async def track_booking(data: TrackBookingRequest, _: None = Depends(rate_limit_track)):
            ...
    """

    async def rate_limiter(request: Request):
        return await rate_limit_dependency(request, limit, window_seconds, key_prefix)

    return rate_limiter


# Public booking endpoints
rate_limit_booking_create = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="booking_create")
rate_limit_booking_track = create_rate_limiter(limit=20, window_seconds=900, key_prefix="booking_track")
rate_limit_booking_otp = create_rate_limiter(limit=10, window_seconds=900, key_prefix="booking_otp")
rate_limit_login = create_rate_limiter(limit=10, window_seconds=900, key_prefix="login")
