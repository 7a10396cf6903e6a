from enum import Enum


class Environment(str, Enum):
    """Environment profiles."""

    LOCAL = "local"
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class CacheBackend(str, Enum):
    """Cache provider selection."""

    REDIS = "redis"
    MEMORY = "memory"
    NONE = "none"


class NotificationTransport(str, Enum):
    """Where outbound notifications are handed off."""

    RABBITMQ = "rabbitmq"
    LOG = "log"
