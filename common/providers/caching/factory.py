from typing import Optional

from common.core.config import settings
from common.core.constants import CacheBackend
from common.core.telemetry import get_logger

from .interface import CacheInterface
from .memory_cache import MemoryCache
from .passthrough_cache import PassthroughCache
from .redis_cache import RedisCache

logger = get_logger(__name__)

# Global instance
_cache_provider: Optional[CacheInterface] = None


def get_cache_provider() -> CacheInterface:
    """Get the cache provider selected by settings.cache_backend."""
    global _cache_provider

    if _cache_provider is None:
        if settings.cache_backend == CacheBackend.REDIS:
            _cache_provider = RedisCache()
        elif settings.cache_backend == CacheBackend.MEMORY:
            _cache_provider = MemoryCache()
        else:
            _cache_provider = PassthroughCache()
        logger.info(f"Initialized {settings.cache_backend.value} cache provider")

    return _cache_provider


async def close_cache_provider() -> None:
    global _cache_provider

    if isinstance(_cache_provider, RedisCache):
        await _cache_provider.disconnect()
    _cache_provider = None
