from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "ILA Companion Calendar"
    database_url: str = "sqlite:///./calendar_feeds.db"

    # Public origin used when building subscribe links; request origin when unset
    public_base_url: Optional[str] = None

    # Identity provider (bearer token verification)
    identity_url: str = "http://localhost:54321"
    identity_api_key: str = ""
    identity_timeout_seconds: float = 10.0

    feed_cache_max_age: int = 300
    token_bytes: int = 32
    token_max_attempts: int = 6

    log_level: str = "INFO"

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
