"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - get_settings() is cached (lru_cache) — single instance per process
    - MONGO_URI selects the database; defaults to a local mongod

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all settings: works out-of-the-box next to a local mongod
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

from speedster.core.domain_types import MAX_BODY_BYTES


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_database: str = "speedster"
    mongo_collection: str = "scans"
    mongo_connect_timeout_seconds: float = 20.0
    mongo_insert_timeout_seconds: float = 5.0

    @field_validator("mongo_uri", mode="before")
    @classmethod
    def default_empty_uri(cls, v: str) -> str:
        """An exported-but-empty MONGO_URI falls back to the local default."""
        if isinstance(v, str) and not v.strip():
            return "mongodb://localhost:27017"
        return v

    # Lighthouse
    lighthouse_binary: str = "lighthouse"
    lighthouse_chrome_flags: str = "--headless"
    lighthouse_timeout_seconds: float | None = None
    reports_dir: str = "/home/chrome/reports"
    persist_failed_audits: bool = True

    # API
    host: str = "0.0.0.0"
    port: int = 8000
    max_body_bytes: int = MAX_BODY_BYTES
    cors_origins: list[str] = []

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
