import logging
from typing import Optional

import httpx
import redis.asyncio as aioredis
from app.core.config import get_settings

logger = logging.getLogger(__name__)

# Global clients, created in the app lifespan
redis_client: Optional[aioredis.Redis] = None
http_client: Optional[httpx.AsyncClient] = None


async def get_redis() -> Optional[aioredis.Redis]:
    return redis_client


async def connect():
    global redis_client, http_client
    settings = get_settings()
    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds, connect=2.0),
        follow_redirects=True,
    )
    if settings.redis_url and settings.fare_cache_ttl_seconds > 0:
        redis_client = aioredis.from_url(settings.redis_url, decode_responses=True)
    else:
        logger.info("Fare cache disabled (no REDIS_URL or zero TTL)")


async def disconnect():
    global redis_client, http_client
    if http_client:
        await http_client.aclose()
        http_client = None
    if redis_client:
        await redis_client.aclose()
        redis_client = None
