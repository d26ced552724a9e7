from __future__ import annotations
import os
from pydantic import BaseModel

class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "quizarena-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "Quiz Arena")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/quizarena_dev")
    redis_url: str = os.getenv("REDIS_URL", "redis://redis:6379/0")

    # Result cache: memory | redis | none
    cache_backend: str = os.getenv("CACHE_BACKEND", "memory")
    leaderboard_ttl_ongoing: int = int(os.getenv("LEADERBOARD_TTL_ONGOING", "60"))
    leaderboard_ttl_ended: int = int(os.getenv("LEADERBOARD_TTL_ENDED", "3600"))
    history_ttl: int = int(os.getenv("HISTORY_TTL", "300"))

    # Logging: json | console
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_format: str = os.getenv("LOG_FORMAT", "json")

    # Pagination
    default_page_size: int = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
    max_page_size: int = int(os.getenv("MAX_PAGE_SIZE", "100"))

settings = Settings()
