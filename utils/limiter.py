import logging
import os

import redis
from fastapi import Request
from slowapi import Limiter

logger = logging.getLogger("backend.limiter")

# Per-IP limit for the public submission endpoints
SUBMIT_RATE_LIMIT = os.getenv("SUBMIT_RATE_LIMIT", "30/minute")


def forwarded_for_ip(request: Request) -> str:
    """Resolve client IP using X-Forwarded-For first, then fallback to socket IP."""
    xff = request.headers.get("x-forwarded-for")
    if xff:
        ip = xff.split(',')[0].strip()
        if ip:
            return ip
    return request.client.host if request.client else ""


def _redis_reachable(redis_url: str) -> bool:
    try:
        client = redis.from_url(redis_url, socket_connect_timeout=2)
        client.ping()
        client.close()
        return True
    except redis.RedisError as e:
        logger.warning("Redis at REDIS_URL is unreachable, falling back to memory: %s", e)
        return False


def _create_limiter() -> Limiter:
    """Create limiter with Redis storage if configured and reachable, otherwise use in-memory."""
    redis_url = os.environ.get("REDIS_URL")
    if redis_url and _redis_reachable(redis_url):
        logger.info("Using Redis for rate limiting")
        return Limiter(key_func=forwarded_for_ip, storage_uri=redis_url)
    logger.info("Using in-memory rate limiting (Redis not configured)")
    return Limiter(key_func=forwarded_for_ip)


# Global limiter instance to be shared across the app and routers
limiter = _create_limiter()
