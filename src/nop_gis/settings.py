from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "sig-nop"
    app_env: str = "local"
    log_level: str = "INFO"
    api_prefix: str = "/api"

    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "maps"
    db_sslmode: str = "prefer"
    db_pool_size: int = 20
    # Takes precedence over the DB_* parts when set.
    database_url: str | None = None

    sismiop_api_url: str = "https://bapenda.pasuruankota.go.id:5151/sismiop/sig_api"
    sismiop_verify_ssl: bool = False
    request_timeout_seconds: int = 30

    upload_root: Path = Field(default_factory=lambda: Path("public/uploads"))

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        url = URL.create(
            "postgresql+psycopg",
            username=self.db_user,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
            query={"sslmode": self.db_sslmode},
        )
        return url.render_as_string(hide_password=False)

    @property
    def nop_photo_root(self) -> Path:
        return self.upload_root / "nop"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
