"""Configuration for the workflow engine.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from docflow.engine.store import SQLiteStore


class DocflowSettings(BaseSettings):
    """Settings for the engine.

    Environment variables:
    - DOCFLOW_DATABASE_PATH         (optional)
    - DOCFLOW_BUSY_TIMEOUT_SECONDS  (optional)
    - LOG_LEVEL                     (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `DocflowSettings(_env_file=path_to_env)`.
    """

    database_path: Path = Field(
        default=Path("docflow.sqlite3"),
        validation_alias="DOCFLOW_DATABASE_PATH",
        description="SQLite database holding workflow definitions and events",
    )
    busy_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        validation_alias="DOCFLOW_BUSY_TIMEOUT_SECONDS",
        description="How long a unit of work waits for the database write lock",
    )
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value!r}")
        return level

    def open_store(self) -> SQLiteStore:
        """Build the store described by these settings."""

        return SQLiteStore(self.database_path, timeout=self.busy_timeout_seconds)
