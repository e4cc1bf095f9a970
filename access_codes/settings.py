from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_env: str = "dev"
    log_level: str = "INFO"

    # Store
    store_backend: Literal["sqlite", "postgres"] = "sqlite"
    database_path: str = "data/access_codes.db"
    database_url: str = "postgresql://app:app@db:5432/app"

    # Membership collaborator
    membership_backend: Literal["memory", "redis"] = "memory"
    membership_adapter: Literal["direct", "backing_set"] = "direct"
    redis_url: str = "redis://redis:6379/0"
    membership_redis_key: str = "access:members"

    # Code policy
    code_length: int = 6
    code_alphabet: str = "0123456789"
    code_max_attempts: int = 32

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
