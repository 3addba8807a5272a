"""Library settings (environment and .env).

Uses pydantic-settings with the RBAC_ env prefix. These are the ambient
knobs (logging, cache backend and TTL, reference SQL adapter URL); the schema
configuration a host passes at start-up lives in tenant_rbac.core.rbac_config.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_CACHE_BACKENDS = ("memory", "redis")
_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    """RBAC settings loaded from environment and .env.

    All settings have defaults; validate_backends rejects unknown cache
    backends, non-positive TTLs and unknown log levels.
    """

    debug: bool = False
    log_level: str = "INFO"

    # Effective-permission cache: derived, frequently invalidated view, keep TTL short.
    cache_backend: str = "memory"
    cache_ttl_seconds: int = 30

    # Redis cache (cache_backend == "redis")
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None

    # Reference SQLAlchemy adapter
    database_url: str = ""
    database_echo: bool = False
    database_create_tables: bool = False

    model_config = SettingsConfigDict(
        env_prefix="RBAC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_backends(self) -> "Settings":
        """Validate cache backend, TTL and log level."""
        if self.cache_backend not in _CACHE_BACKENDS:
            raise ValueError(
                f"cache_backend must be one of {_CACHE_BACKENDS}, got: {self.cache_backend!r}"
            )
        if self.cache_ttl_seconds <= 0:
            raise ValueError("cache_ttl_seconds must be a positive number of seconds")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {_LOG_LEVELS}, got: {self.log_level!r}")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
