import hashlib
import logging
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.schemas.schemas import FareRequest, FareResponse

logger = logging.getLogger(__name__)


class FareCache:
    """Short-lived cache of fare responses. A no-op when Redis is not configured."""

    def __init__(self, redis: Optional[aioredis.Redis], ttl_seconds: int = 30):
        self.redis = redis
        self.ttl = ttl_seconds

    @property
    def enabled(self) -> bool:
        return self.redis is not None and self.ttl > 0

    @staticmethod
    def key(payload: FareRequest) -> str:
        raw = payload.model_dump_json(exclude_none=True)
        return "fares:" + hashlib.sha256(raw.encode()).hexdigest()[:32]

    async def get(self, key: str) -> Optional[FareResponse]:
        if not self.enabled:
            return None
        try:
            cached = await self.redis.get(key)
        except RedisError as e:
            logger.warning(f"Fare cache read failed: {e}")
            return None
        if not cached:
            return None
        try:
            return FareResponse.model_validate_json(cached)
        except ValueError:
            logger.warning(f"Discarding unreadable cache entry {key}")
            return None

    async def set(self, key: str, response: FareResponse):
        if not self.enabled:
            return
        try:
            await self.redis.setex(key, self.ttl, response.model_dump_json(by_alias=True))
        except RedisError as e:
            logger.warning(f"Fare cache write failed: {e}")
