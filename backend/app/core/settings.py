from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="REGISTRY_",
        case_sensitive=False,
    )

    # Design default: local async sqlite database.
    db_url: str = "sqlite+aiosqlite:///./data/dev.db"

    # Reject writes on the primary during maintenance; the failures surface
    # as the read-only mode response.
    db_read_only_mode: bool = False
    # Optional read-only replica for GET endpoints. Unset means reads use
    # the primary.
    db_replica_url: str | None = None
    db_statement_timeout_s: int = 30

    # Public host name, used in messages pointing users back to the site.
    domain_name: str = "crates.io"

    # Session cookie (HS256 JWT).
    session_secret: str = "dev-session-secret"
    session_cookie_name: str = "cargo_session"

    # GitHub API
    github_base_url: str = "https://api.github.com"
    github_timeout_s: float = 10.0

    cors_allow_origin: str = "http://localhost:4200"
    cors_allow_credentials: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
