from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseModel):
    """Application-specific configuration values."""

    name: str = "Cinedex"
    env: str = "development"
    debug: bool = True
    log_level: Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"] = "INFO"


class DatabaseConfig(BaseModel):
    """Database configuration values."""

    # Default to docker-compose service credentials
    url: str = "postgresql+psycopg://user:password@db:5432/cinedex"
    echo: bool = False


class SearchConfig(BaseModel):
    """Search index configuration shared by the movie and person indexes."""

    storage_dir: Path = Path("storage")
    # Backups default to the storage directory, e.g. storage/movie-backup.gz
    backup_dir: Optional[Path] = None
    batch_size: int = Field(default=50, gt=0)
    # Language of the stopword list handed to the analyzer
    language: str = "fr"
    group_top: int = Field(default=10, ge=0)

    def index_path(self, entity: str) -> Path:
        return self.storage_dir / f"search-{entity}s"

    def backup_path(self, entity: str) -> Path:
        return (self.backup_dir or self.storage_dir) / f"{entity}-backup.gz"


class Settings(BaseSettings):
    """Top-level settings loaded from environment variables and .env only."""

    model_config = SettingsConfigDict(
        env_prefix="CINEDEX_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app: AppConfig = AppConfig()
    database: DatabaseConfig = DatabaseConfig()
    search: SearchConfig = SearchConfig()


def load_settings() -> Settings:
    """Load settings from environment variables and .env only."""
    return Settings()  # type: ignore[call-arg]
