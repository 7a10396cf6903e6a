from .interface import CacheInterface
from .decorators import cache, invalidate
from .factory import get_cache_provider
from .redis_cache import RedisCache
from .memory_cache import MemoryCache
from .passthrough_cache import PassthroughCache

__all__ = [
    "CacheInterface",
    "cache",
    "invalidate",
    "get_cache_provider",
    "RedisCache",
    "MemoryCache",
    "PassthroughCache",
]
