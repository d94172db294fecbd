from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    app_id: str = Field(default="moso-mastodon", alias="APP_ID")
    app_display_version: str = Field(default="0.1.0", alias="APP_DISPLAY_VERSION")
    app_channel: str = Field(default="development", alias="APP_CHANNEL")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    telemetry_enabled: bool = Field(default=True, alias="TELEMETRY_ENABLED")
    telemetry_queue_size: int = Field(default=1000, alias="TELEMETRY_QUEUE_SIZE")
    telemetry_flush_timeout_seconds: float = Field(default=5.0, alias="TELEMETRY_FLUSH_TIMEOUT_SECONDS")
    default_handle_domain: str = Field(default="mozilla.social", alias="DEFAULT_HANDLE_DOMAIN")
    trust_forwarded_for: bool = Field(default=False, alias="TRUST_FORWARDED_FOR")
    cache_control_default: str = Field(default="private, no-store", alias="CACHE_CONTROL_DEFAULT")
    enable_metrics_endpoint: bool = Field(default=True, alias="ENABLE_METRICS_ENDPOINT")

    jwt_secret: str = Field(default="change-me", alias="JWT_SECRET")
    jwt_cookie_name: str = Field(default="_session_id", alias="JWT_COOKIE_NAME")
    jwt_exp_minutes: int = Field(default=60 * 24 * 7, alias="JWT_EXP_MINUTES")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
