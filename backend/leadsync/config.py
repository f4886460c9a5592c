"""Application configuration using Pydantic settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Target database (portal primary store)
    database_url: str = "postgresql+asyncpg://localhost:5432/portal"

    # Source database (external lead system, read-only)
    source_database_url: str = "mysql+aiomysql://localhost:3306/leads"
    source_pool_size: int = 10
    source_max_retries: int = 3

    # Trigger auth - open when unset
    sync_api_secret: str | None = None

    # Sync settings
    sync_source_type: str = "mysql_leads"
    daily_batch_size: int = 2500
    historic_batch_size: int = 2500
    sync_concurrency: int = 15
    create_chunk_size: int = 1000
    update_chunk_size: int = 25
    existing_lookup_chunk_size: int = 1000
    remark_lookup_chunk_size: int = 500
    remark_insert_chunk_size: int = 1000
    error_sample_size: int = 20
    error_details_limit: int = 10
    sync_timezone: str = "Asia/Kolkata"
    historic_sync_from_date: str | None = None
    initial_lookback_days: int = 1
    incremental_max_seconds: int = 540  # cron callers time out at 10 minutes
    sync_lease_ttl_seconds: int = 900

    # Owner resolution
    auto_create_owners: bool = True
    owner_login_domain: str = "mediend.local"
    owner_placeholder_password: str = "Temp@123"
    default_circle: str = "North"
    require_treatment: bool = True

    # Scheduler
    scheduler_enabled: bool = True
    daily_sync_hour: int = 0
    daily_sync_minute: int = 30
    incremental_poll_interval_minutes: int | None = None

    # API settings
    api_v1_prefix: str = "/api/v1"
    cors_origins: list[str] = ["*"]  # Restrict in production
    rate_limit_per_minute: int = 60

    # Environment
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
