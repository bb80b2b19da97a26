"""
Lazy shared redis connection. It backs the Redis OTP registry (OTP_BACKEND=redis) and is
closed in the app lifespan.
"""
import redis.asyncio as redis
from purevia.config import settings

_redis: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    global _redis
    if _redis is None:
        _redis = redis.from_url(settings.redis_url, decode_responses=True)
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
