"""
Vacancy API - Application configuration.

Centralized configuration using Pydantic Settings for environment variable management.

Environment Variables:
    All settings can be overridden via environment variables with VACANCY_ prefix.

    Rate Limiting:
        VACANCY_RATE_LIMIT_REQUESTS=100      - Requests allowed per window, per client IP
        VACANCY_RATE_LIMIT_WINDOW=3600       - Window length in seconds
        VACANCY_RATE_LIMIT_FAIL_OPEN=true    - Admit requests when the cache is unreachable

    Cache:
        VACANCY_CACHE_BACKEND=memory         - "memory" (per process) or "redis" (shared)
        VACANCY_CACHE_REDIS_URL=...          - Redis connection URL

    Auth:
        VACANCY_AUTH_REQUIRE_TOKEN_FOR_WRITES=false - Require a bearer token for POST/PUT/DELETE
"""
from pydantic import Field
from pydantic_settings import BaseSettings


class RateLimitSettings(BaseSettings):
    """
    Leaky-bucket rate limiting, keyed by client IP and endpoint.

    When the cache store cannot be reached the limiter fails open by default:
    a cache outage should not turn into an API outage.
    """
    enabled: bool = True
    requests: int = Field(100, gt=0)
    window: int = Field(3600, gt=0)
    fail_open: bool = True

    # Only enable behind a reverse proxy that overwrites X-Forwarded-For
    trust_forwarded_for: bool = False

    class Config:
        env_prefix = "VACANCY_RATE_LIMIT_"
        env_file = ".env"
        extra = "ignore"


class CacheSettings(BaseSettings):
    """Result cache and rate-limit counter storage."""
    backend: str = Field("memory", pattern="^(memory|redis)$")
    redis_url: str = "redis://localhost:6379/0"
    key_prefix: str = "vacancy-api:"
    socket_timeout: float = 2.0

    class Config:
        env_prefix = "VACANCY_CACHE_"
        env_file = ".env"
        extra = "ignore"


class AuthSettings(BaseSettings):
    """
    Optional access-token lookup for write endpoints.

    Tokens are issued with scripts/manage_api_user.py.
    """
    require_token_for_writes: bool = False

    class Config:
        env_prefix = "VACANCY_AUTH_"
        env_file = ".env"
        extra = "ignore"


class Settings(BaseSettings):
    """Combined application settings."""
    rate_limit: RateLimitSettings = RateLimitSettings()
    cache: CacheSettings = CacheSettings()
    auth: AuthSettings = AuthSettings()

    # CORS allowed origins (comma-separated, e.g. "http://localhost:3000,https://myapp.com")
    allowed_origins: str = "http://localhost:3000"

    # Database
    database_url: str = "sqlite:///./data/vacancies.db"

    # Database connection pool (server databases only)
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800

    # PostgreSQL text search configuration used by the search_vector trigger
    fulltext_config: str = Field("english", pattern=r"^[a-z_]+$")

    run_migrations_on_startup: bool = True
    log_level: str = "INFO"

    class Config:
        env_prefix = "VACANCY_"
        env_file = ".env"
        extra = "ignore"


# Global settings instance
settings = Settings()
