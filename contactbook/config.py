"""Contact book configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class ContactBookSettings(BaseSettings):
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///contactbook.db"
    echo_sql: bool = False
    app_title: str = "Contact Book"
    log_level: str = "INFO"

    auth_secret: str = ""
    auth_cookie_name: str = "contactbook_session"
    auth_cookie_secure: bool = False
    auth_session_ttl_seconds: int = 86400
    auth_rate_limit_window_seconds: int = 300
    auth_rate_limit_max_attempts: int = 10
    auth_rate_limit_block_seconds: int = 600
    # Only enable when a reverse proxy overwrites X-Forwarded-For.
    auth_trust_forwarded_for: bool = False

    # "server" runs one SQL query; "local" filters the owner's list in-process.
    search_mode: str = "server"
    cache_enabled: bool = True
    avatar_base_url: str = "https://api.dicebear.com/7.x/personas/svg"

    model_config = {"env_prefix": "CONTACTBOOK_", "env_file": ".env", "extra": "ignore"}

    @property
    def base_dir(self) -> Path:
        return Path(__file__).resolve().parent

    @property
    def project_dir(self) -> Path:
        return self.base_dir.parent

    @property
    def alembic_ini(self) -> Path:
        return self.base_dir / "alembic.ini"

    @property
    def local_search(self) -> bool:
        return self.search_mode.strip().lower() == "local"

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}


settings = ContactBookSettings()
