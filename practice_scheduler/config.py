"""Application configuration."""

from datetime import time
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from practice_scheduler.scheduling.config import SchedulingConfig


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
    app_name: str = Field(default="Practice Scheduler API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Database
    database_url: str = Field(..., alias="DATABASE_URL")

    # JWT (tokens are issued by the practice's identity service)
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Scheduling rules
    working_window_start: time = Field(default=time(8, 0), alias="WORKING_WINDOW_START")
    working_window_end: time = Field(default=time(20, 0), alias="WORKING_WINDOW_END")
    min_duration_minutes: int = Field(default=15, alias="MIN_DURATION_MINUTES")
    max_duration_minutes: int = Field(default=480, alias="MAX_DURATION_MINUTES")
    min_lead_time_minutes: int = Field(default=60, alias="MIN_LEAD_TIME_MINUTES")
    slot_granularity_minutes: int = Field(default=30, alias="SLOT_GRANULARITY_MINUTES")
    clinic_timezone: str = Field(default="UTC", alias="CLINIC_TIMEZONE")

    # CORS
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @property
    def scheduling(self) -> SchedulingConfig:
        """Scheduling rules handed to the engine."""
        return SchedulingConfig(
            working_window_start=self.working_window_start,
            working_window_end=self.working_window_end,
            min_duration_minutes=self.min_duration_minutes,
            max_duration_minutes=self.max_duration_minutes,
            min_lead_time_minutes=self.min_lead_time_minutes,
            slot_granularity_minutes=self.slot_granularity_minutes,
            timezone=self.clinic_timezone,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
