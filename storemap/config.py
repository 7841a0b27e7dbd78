from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import model_validator
from typing import Optional


class Settings(BaseSettings):
    """Application configuration using Pydantic Settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_name: str = "Store Map"
    app_version: str = "1.0.0"
    debug: bool = False
    api_prefix: str = "/api"

    # Server
    host: str = "0.0.0.0"
    port: int = 8010

    # Database
    postgres_host: str = "localhost"
    postgres_port: Optional[int] = 5432
    postgres_db: str = "storemap"
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    db_pool_min_size: Optional[int] = 2
    db_pool_max_size: Optional[int] = 10
    db_command_timeout: float = 30.0

    @property
    def database_url(self) -> str:
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis
    redis_host: str = "localhost"
    redis_port: Optional[int] = 6379
    redis_db: Optional[int] = 0
    redis_password: Optional[str] = None

    @property
    def redis_url(self) -> str:
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # Security (tokens are issued by the identity provider, we only verify them)
    secret_key: str = "your-secret-key-min-32-characters-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_hours: int = 24
    allowed_origins: str = "http://localhost:3000,http://localhost:3001"

    @property
    def cors_origins(self) -> list[str]:
        """Get list of allowed CORS origins"""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    # cijene.dev inventory API
    cijene_api_url: str = "https://api.cijene.dev"
    cijene_api_token: Optional[str] = None
    cijene_rps: float = 10.0  # one request every 100ms

    # Photon geocoder
    geocoder_url: str = "https://photon.komoot.io/api/"
    geocoder_country: str = "Croatia"

    # Outbound HTTP
    http_timeout_seconds: float = 20.0
    http_connect_timeout_seconds: float = 10.0

    # Geocoding politeness
    geocode_batch_size: int = 5
    geocode_batch_delay_seconds: float = 1.0
    geocode_update_delay_seconds: float = 0.2

    # Store sync
    sync_lock_ttl_seconds: int = 1800
    store_sync_interval_minutes: int = 0  # 0 disables the background sync

    # Logging
    log_level: str = "INFO"
    log_file: str = "logs/app.log"

    @model_validator(mode='after')
    def validate_secrets(self):
        if 'change-in-production' in self.secret_key:
            raise ValueError("SECRET_KEY must be set via environment variable")
        if self.geocode_batch_size < 1:
            raise ValueError("GEOCODE_BATCH_SIZE must be at least 1")
        return self


settings = Settings()
