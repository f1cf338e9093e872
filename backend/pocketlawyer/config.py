"""Application configuration using Pydantic Settings."""
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    debug: bool = False
    cors_origins: str = "http://localhost:3000"

    # Public URL used in tracking pixels, tracked links and as redirect fallback
    base_url: str = "http://localhost:3000"

    # Database
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    db_pass: str = "postgres"
    db_name: str = "pocketlawyer"
    database_url: Optional[str] = None

    @property
    def get_database_url(self) -> str:
        """Get the database URL, either from environment or constructed from components."""
        if self.database_url:
            return self.database_url
        return f"postgresql+asyncpg://{self.db_user}:{self.db_pass}@{self.db_host}:{self.db_port}/{self.db_name}"

    # Redis (Celery broker for the beat-driven sweep)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_user: Optional[str] = "default"
    redis_password: Optional[str] = None
    redis_url: Optional[str] = None

    @property
    def get_redis_url(self) -> str:
        """Get the Redis URL, either from environment or constructed from components."""
        if self.redis_url:
            return self.redis_url

        user_pass = ""
        if self.redis_password:
            user_pass = f"{self.redis_user or 'default'}:{self.redis_password}@"
        elif self.redis_user and self.redis_user != "default":
            user_pass = f"{self.redis_user}@"

        return f"redis://{user_pass}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # Resend
    resend_api_key: str = ""
    resend_from_email: str = "notifications@pocketlawyer.cm"
    resend_from_name: str = "PocketLawyer"
    resend_reply_to: Optional[str] = None

    # Scheduler
    scheduler_api_key: str = ""  # shared secret expected in the x-api-key header
    scheduled_email_batch_limit: int = 100
    campaign_batch_limit: int = 10
    sweep_interval_seconds: int = 60

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def public_base_url(self) -> str:
        return self.base_url.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
