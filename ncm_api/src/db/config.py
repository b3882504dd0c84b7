from __future__ import annotations

import re
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    """
    Database settings read from environment variables (or .env via pydantic-settings):
      - DB_HOST      (default localhost)
      - DB_PORT      (default 5432)
      - DB_USER      (default root)
      - DB_PASSWORD  (default admin)
      - DB_NAME      (default codexfiscal)
      - DB_SSLMODE   (default disable)

    DATABASE_URL, when set, takes precedence over the individual DB_* variables.
    """

    DATABASE_URL: Optional[str] = Field(
        default=None, description="If provided, full SQLAlchemy connection URL."
    )
    DB_HOST: str = Field(default="localhost", description="Database host")
    DB_PORT: int = Field(default=5432, description="Database port")
    DB_USER: str = Field(default="root", description="DB username")
    DB_PASSWORD: str = Field(default="admin", description="DB password")
    DB_NAME: str = Field(default="codexfiscal", description="Database name")
    DB_SSLMODE: str = Field(
        default="disable",
        description="SSL mode passed to the driver (disable/prefer/require/verify-ca/verify-full)",
    )

    # SQLAlchemy engine options
    SQL_ECHO: bool = Field(
        default=False, description="Echo SQL statements for debugging (default False)"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def database_url(self) -> str:
        """
        Compute the base (sync-neutral) database URL. Prefers DATABASE_URL if
        present, otherwise builds one from the DB_* variables.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL

        url = URL.create(
            "postgresql",
            username=self.DB_USER,
            password=self.DB_PASSWORD,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
            query={"ssl": self.DB_SSLMODE} if self.DB_SSLMODE else {},
        )
        return url.render_as_string(hide_password=False)

    @property
    def async_database_url(self) -> str:
        """
        Convert base URL to an asyncpg-enabled SQLAlchemy URL, required for AsyncEngine.
        Non-PostgreSQL URLs (e.g. sqlite+aiosqlite) are returned unchanged.
        """
        url = self.database_url
        if not url.startswith("postgresql"):
            return url
        return re.sub(r"^postgresql(\+\w+)?://", "postgresql+asyncpg://", url)

    @property
    def sync_database_url(self) -> str:
        """
        Sync URL variant for Alembic offline mode; strips any async driver tag.
        """
        url = self.database_url
        return re.sub(r"^(postgresql|sqlite)\+\w+://", r"\1://", url)


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return a settings object populated from the environment."""
    return Settings()
