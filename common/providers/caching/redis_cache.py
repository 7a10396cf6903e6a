import json
from typing import Any, Optional
import redis.asyncio as redis

from common.core.config import settings
from .interface import CacheInterface
from common.core.telemetry import get_logger, trace_span

logger = get_logger(__name__)


class RedisCache(CacheInterface):
    """Redis-backed cache; values are stored as JSON strings."""

    def __init__(self):
        self._client: Optional[redis.Redis] = None
        self._connected = False

    @trace_span
    async def connect(self) -> bool:
        try:
            self._client = redis.Redis(
                host=settings.redis_host,
                port=settings.redis_port,
                password=settings.redis_password,
                db=settings.redis_db,
                decode_responses=True,
            )
            await self._client.ping()
            self._connected = True
            logger.info("Redis cache provider connected")
            return True
        except Exception as e:
            logger.error(f"Failed to connect to Redis cache: {e}")
            self._connected = False
            return False

    async def disconnect(self) -> None:
        if self._client:
            await self._client.aclose()
            self._connected = False

    async def _ensure_connected(self) -> bool:
        if self._connected:
            return True
        return await self.connect()

    @trace_span
    async def get(self, key: str) -> Optional[Any]:
        if not await self._ensure_connected():
            return None
        value = await self._client.get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding undecodable cache value for {key}: {e}")
            await self._client.delete(key)
            return None

    @trace_span
    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if not await self._ensure_connected():
            return False
        serialized_value = json.dumps(value, default=str)
        if ttl:
            return bool(await self._client.setex(key, ttl, serialized_value))
        return bool(await self._client.set(key, serialized_value))

    @trace_span
    async def delete(self, key: str) -> bool:
        if not await self._ensure_connected():
            return False
        return await self._client.delete(key) > 0

    async def clear(self) -> bool:
        if not await self._ensure_connected():
            return False
        await self._client.flushdb()
        return True
