from typing import Optional, List
from pydantic_settings import BaseSettings, SettingsConfigDict

from common.core.constants import CacheBackend, Environment, NotificationTransport


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment Profile
    environment: Environment = Environment.LOCAL

    # API Settings
    app_name: str = "quota-service"
    api_version: str = "1.0.0"
    debug: bool = False

    # Database Components
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "quota"
    db_use_nullpool: bool = (
        False  # True for workers (sequential), False for API (concurrent)
    )
    db_pool_size: int = 10
    db_pool_overflow: int = 5

    @property
    def database_url(self) -> str:
        """Construct database URL from components."""
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    cache_backend: CacheBackend = CacheBackend.REDIS
    subscription_cache_ttl_seconds: int = 300

    # Rate limiting storage (falls back to in-process memory)
    rate_limit_storage_uri: Optional[str] = None

    # RabbitMQ
    rabbitmq_host: str = "localhost"
    rabbitmq_port: int = 5672
    rabbitmq_username: str = "guest"
    rabbitmq_password: str = "guest"
    rabbitmq_vhost: str = ""

    # Notifications
    notification_transport: NotificationTransport = NotificationTransport.LOG
    notification_queue: str = "notifications"

    # OpenTelemetry
    otel_service_name: str = "quota-service"
    otel_service_version: str = "1.0.0"

    # Axiom (exporter disabled when no token is set)
    axiom_token: Optional[str] = None
    axiom_dataset: Optional[str] = None

    # Auth (HS256 bearer tokens issued by the identity service)
    auth_jwt_secret: str = "change-me"
    auth_jwt_algorithm: str = "HS256"

    # Billing - Stripe (payments)
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    # Stripe price IDs per tier and billing interval
    stripe_price_starter_monthly: str = ""
    stripe_price_starter_yearly: str = ""
    stripe_price_pro_monthly: str = ""
    stripe_price_pro_yearly: str = ""

    # Usage ledger maintenance
    usage_log_retention_days: int = 90
    maintenance_interval_seconds: int = 3600

    @property
    def cors_allowed_origins(self) -> List[str]:
        """Auto-select CORS origins based on environment."""
        if self.environment == Environment.LOCAL:
            return [
                "http://localhost:3000",
                "http://localhost:3001",
            ]
        return ["https://app.example.com"]


settings = Settings()
