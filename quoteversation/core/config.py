from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    app_name: str = Field(default="Quoteversation API", alias="APP_NAME")
    app_env: Literal["dev", "staging", "prod"] = Field(default="dev", alias="APP_ENV")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=5000, alias="APP_PORT")
    api_prefix: str = Field(default="/api/v1", alias="API_PREFIX")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        alias="MONGODB_URI",
        validation_alias=AliasChoices("MONGODB_URI", "ATLAS_URI"),
    )
    mongodb_database: str = Field(default="social_data", alias="MONGODB_DATABASE")
    search_index_name: str = Field(default="postsIndex", alias="SEARCH_INDEX_NAME")
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    use_in_memory_backends: bool = Field(default=False, alias="USE_IN_MEMORY_BACKENDS")

    session_secret: str = Field(default="change-me-to-a-long-random-session-secret", alias="SESSION_SECRET")
    session_algorithm: str = Field(default="HS256", alias="SESSION_ALGORITHM")
    session_ttl_seconds: int = Field(default=60 * 60 * 24, alias="SESSION_TTL_SECONDS")
    session_cookie_name: str = Field(default="qv_session", alias="SESSION_COOKIE_NAME")

    allowed_cors_origins: str = Field(default="http://localhost:5173", alias="ALLOWED_CORS_ORIGINS")
    rate_limit_per_minute: int = Field(default=120, alias="RATE_LIMIT_PER_MINUTE")
    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED")

    @property
    def cors_origins(self) -> list[str]:
        return [x.strip() for x in self.allowed_cors_origins.split(",") if x.strip()]

    @property
    def secure_cookies(self) -> bool:
        return self.app_env != "dev"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
