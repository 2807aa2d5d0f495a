"""Application configuration."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # Application
    app_name: str = Field(default="Clinic Scheduling API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Database
    database_url: str = Field(
        default="postgresql://localhost:5432/clinic_scheduling",
        alias="DATABASE_URL",
    )

    # Redis
    redis_enabled: bool = Field(default=False, alias="REDIS_ENABLED")
    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_username: str = Field(default="default", alias="REDIS_USERNAME")
    redis_password: str = Field(default="", alias="REDIS_PASSWORD")

    # Tenant defaults (used when a tenant has no stored settings row)
    default_tenant_timezone: str = Field(default="America/Toronto", alias="DEFAULT_TENANT_TIMEZONE")
    default_session_duration_minutes: int = Field(
        default=30, ge=1, alias="DEFAULT_SESSION_DURATION_MINUTES"
    )
    default_appointment_status: str = Field(default="pending", alias="DEFAULT_APPOINTMENT_STATUS")
    tenant_cache_ttl: int = Field(default=300, alias="TENANT_CACHE_TTL")

    # Calendar sync gateway
    calendar_sync_url: str | None = Field(default=None, alias="CALENDAR_SYNC_URL")
    calendar_sync_api_key: str = Field(default="", alias="CALENDAR_SYNC_API_KEY")
    calendar_sync_timeout: float = Field(default=10.0, alias="CALENDAR_SYNC_TIMEOUT")

    # Post-commit effect retries
    effect_max_attempts: int = Field(default=3, ge=1, alias="EFFECT_MAX_ATTEMPTS")

    # CORS
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        if isinstance(self.cors_origins_str, str):
            return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]
        return [self.cors_origins_str]

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
