import time
from typing import Any, Optional, Dict
from dataclasses import dataclass

from .interface import CacheInterface
from common.core.telemetry import get_logger

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    value: Any
    expires_at: Optional[float] = None

    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return time.time() > self.expires_at


class MemoryCache(CacheInterface):
    """Process-local cache for single-instance deployments and tests."""

    def __init__(self):
        self._cache: Dict[str, CacheEntry] = {}

    async def get(self, key: str) -> Optional[Any]:
        entry = self._cache.get(key)
        if entry is None:
            return None

        if entry.is_expired():
            del self._cache[key]
            return None

        return entry.value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        expires_at = time.time() + ttl if ttl else None
        self._cache[key] = CacheEntry(value=value, expires_at=expires_at)
        return True

    async def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None

    async def clear(self) -> bool:
        self._cache.clear()
        return True
