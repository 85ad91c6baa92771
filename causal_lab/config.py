import logging
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central config loaded from environment variables and optionally .env (local).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # -------------------------
    # Record store
    # "auto" picks Postgres when DATABASE_URL is set, otherwise the in-memory store.
    # -------------------------
    store_backend: Literal["auto", "memory", "postgres"] = Field("auto", alias="STORE_BACKEND")
    database_url: str = Field("", alias="DATABASE_URL")
    db_ssl: str = Field("prefer", alias="DB_SSL")
    db_auto_migrate: bool = Field(True, alias="DB_AUTO_MIGRATE")

    # -------------------------
    # Uploaded file persistence (local disk / container)
    # -------------------------
    data_dir: str = Field("./data", alias="DATA_DIR")

    # -------------------------
    # API behaviour
    # -------------------------
    default_page_limit: int = Field(50, alias="DEFAULT_PAGE_LIMIT", gt=0)
    validate_analysis_columns: bool = Field(False, alias="VALIDATE_ANALYSIS_COLUMNS")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # -------------------------
    # CORS
    # -------------------------
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ALLOW_ORIGINS")

    def resolved_backend(self) -> str:
        if self.store_backend != "auto":
            return self.store_backend
        return "postgres" if self.database_url.strip() else "memory"


def configure_logging(level: str = "INFO") -> None:
    """Install a root handler once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    logging.getLogger("causal_lab").setLevel(level.upper())


settings = Settings()
