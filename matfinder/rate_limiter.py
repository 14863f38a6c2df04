"""
Redis rate limiting utilities
Fixed-window counters keyed by client IP or account
"""

import logging
import os
import time
from typing import Optional

import redis
from fastapi import HTTPException, Request, status

from .config import RATE_LIMIT_ENABLED

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None


def _mask_redis_url(redis_url: str) -> str:
    if "@" in redis_url:
        url_parts = redis_url.split("@")
        protocol = url_parts[0].split(":")[0]
        return f"{protocol}:****@{url_parts[1]}"
    return "****"


def get_redis_client() -> redis.Redis:
    """
    Get or create the shared Redis client.
    Uses REDIS_URL when set, otherwise REDIS_HOST/REDIS_PORT settings.
    """
    global redis_client

    if redis_client is None:
        redis_url = os.getenv("REDIS_URL")
        common = {
            "decode_responses": True,
            "socket_connect_timeout": 5,
            "socket_timeout": 10,
            "retry_on_timeout": True,
            "health_check_interval": 30,
        }

        if redis_url:
            logger.info(f"📡 Using Redis URL connection: {_mask_redis_url(redis_url)}")
            client = redis.from_url(redis_url, **common)
        else:
            redis_host = os.getenv("REDIS_HOST", "localhost")
            redis_port = int(os.getenv("REDIS_PORT", "6379"))
            redis_ssl = os.getenv("REDIS_SSL", "false").lower() == "true"
            logger.info(f"📡 Using Redis at {redis_host}:{redis_port} (SSL: {redis_ssl})")
            client = redis.Redis(
                host=redis_host,
                port=redis_port,
                password=os.getenv("REDIS_PASSWORD"),
                db=int(os.getenv("REDIS_DB", "0")),
                ssl=redis_ssl,
                **common,
            )

        try:
            client.ping()
        except redis.RedisError as e:
            logger.error(f"❌ Failed to connect to Redis: {e}")
            raise
        logger.info("✅ Redis connected successfully")
        redis_client = client

    return redis_client


def get_client_ip(request: Request) -> str:
    """Client IP, honouring the first X-Forwarded-For hop behind a proxy"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def check_rate_limit(key: str, limit: int, window_seconds: int) -> tuple[bool, int]:
    """
    Count one hit against a fixed window.

    Returns:
        (allowed, retry_after_seconds)
    """
    window = int(time.time()) // window_seconds
    redis_key = f"ratelimit:{key}:{window}"

    client = get_redis_client()
    pipe = client.pipeline()
    pipe.incr(redis_key)
    pipe.expire(redis_key, window_seconds)
    count, _ = pipe.execute()

    if count > limit:
        retry_after = window_seconds - int(time.time()) % window_seconds
        return False, retry_after
    return True, 0


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str, use_ip: bool = True):
    """
    Build a FastAPI dependency enforcing `limit` requests per `window_seconds`.

    Example:
        rate_limit_login = create_rate_limiter(10, 60, "login")

        @router.post("/login", dependencies=[Depends(rate_limit_login)])
    """

    async def rate_limit_dependency(request: Request):
        if not RATE_LIMIT_ENABLED:
            return

        identifier = get_client_ip(request) if use_ip else request.url.path
        key = f"{key_prefix}:{identifier}"

        try:
            allowed, retry_after = check_rate_limit(key, limit, window_seconds)
        except redis.RedisError as e:
            # Fail closed: an unreachable limiter must not open the endpoint to abuse
            logger.error(f"❌ Rate limiter unavailable for {key_prefix}: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Service temporarily unavailable. Please try again shortly.",
            ) from e

        if not allowed:
            logger.warning(f"⚠️ Rate limit exceeded for {key}")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please slow down.",
                headers={"Retry-After": str(retry_after)},
            )

    return rate_limit_dependency


rate_limit_register = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="register")
rate_limit_login = create_rate_limiter(limit=10, window_seconds=300, key_prefix="login")
rate_limit_search = create_rate_limiter(limit=120, window_seconds=60, key_prefix="search")
