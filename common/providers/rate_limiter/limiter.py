"""Global rate limiter instance for SlowAPI."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from common.core.config import settings

# Shared storage (Redis) keeps limits consistent across API pods; without it
# each process counts on its own.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["20/second", "600/minute"],
    storage_uri=settings.rate_limit_storage_uri or "memory://",
)
