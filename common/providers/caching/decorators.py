import functools
from typing import Callable, Type
from pydantic import BaseModel

from common.core.telemetry import get_logger
from .factory import get_cache_provider

logger = get_logger(__name__)


def cache(model_type: Type[BaseModel], ttl: int, key_generator: Callable[..., str]):
    """
    Cache the result of an async method returning a pydantic model (or None).

    key_generator receives the call arguments without self. Cache failures are
    logged and the wrapped coroutine runs as if the cache were empty. None
    results are not cached.
    """

    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            cache_key = key_generator(*args, **kwargs)

            try:
                cached_value = await get_cache_provider().get(cache_key)
                if cached_value is not None:
                    logger.debug(f"Cache hit for key: {cache_key}")
                    return model_type.model_validate(cached_value)
            except Exception as e:
                logger.warning(f"Cache get failed for key {cache_key}: {e}")

            result = await func(self, *args, **kwargs)

            if result is not None:
                try:
                    await get_cache_provider().set(
                        cache_key, result.model_dump(mode="json"), ttl
                    )
                except Exception as e:
                    logger.warning(f"Cache set failed for key {cache_key}: {e}")

            return result

        return wrapper

    return decorator


async def invalidate(cache_key: str) -> None:
    """Best-effort delete of a single key."""
    try:
        await get_cache_provider().delete(cache_key)
    except Exception as e:
        logger.warning(f"Cache invalidation failed for key {cache_key}: {e}")
