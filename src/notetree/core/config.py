"""
Application Configuration

Centralized settings management using Pydantic BaseSettings.
All values are loaded from environment variables or .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable binding.

    Database:
        POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_HOST, POSTGRES_DB build the
        PostgreSQL URL. DATABASE_URL_OVERRIDE replaces it entirely (any async
        SQLAlchemy URL, e.g. ``sqlite+aiosqlite://`` for local runs).

    Optional env vars:
        POSTGRES_PORT (5432), REDIS_HOST (redis), REDIS_PORT (6379),
        LOG_LEVEL (INFO), LOG_SQL (false), LOG_ACCESS (true),
        OPENAI_API_KEY (mock mode when unset),
        JWT_SECRET, ANTHROPIC_API_KEY, ANTHROPIC_ROUTE
    """

    PROJECT_NAME: str = "Notetree"
    ENVIRONMENT: str = "local"

    # Database
    POSTGRES_USER: str = "notetree"
    POSTGRES_PASSWORD: str = "notetree_password"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "notetree_db"
    DATABASE_URL_OVERRIDE: str | None = None

    # Redis (query embedding cache)
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    QUERY_CACHE_TTL: int = 600

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_SQL: bool = False
    LOG_ACCESS: bool = True

    # Embeddings
    OPENAI_API_KEY: str | None = None
    EMBEDDING_MODEL: str = "text-embedding-ada-002"
    EMBEDDING_DIMENSION: int = 1536
    SEARCH_DISTANCE_THRESHOLD: float = 0.8

    # Authentication
    JWT_SECRET: str = "default-secret-key-change-in-production-min-32-chars"
    JWT_ALGORITHM: str = "HS256"
    CORS_ORIGINS: list[str] = ["https://modelpad.app", "http://localhost:5173"]

    # Completion relay
    ANTHROPIC_API_KEY: str | None = None
    ANTHROPIC_ROUTE: str = "https://api.anthropic.com/v1/messages"
    ANTHROPIC_TIMEOUT: float = 60.0
    ALLOWED_MODELS: list[str] = [
        "claude-3-5-haiku-20241022",
        "claude-3-5-sonnet-20241022",
    ]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",  # Silently ignore unknown env vars
    )

    @property
    def DATABASE_URL(self) -> str:
        """Async connection string (asyncpg driver unless overridden)."""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def REDIS_URL(self) -> str:
        """Redis connection string."""
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"


settings = Settings()
