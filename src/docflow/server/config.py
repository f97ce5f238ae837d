"""Configuration for the REST server."""

from __future__ import annotations

from pydantic import Field

from docflow.engine.config import DocflowSettings


class ServerSettings(DocflowSettings):
    """Engine settings plus HTTP hosting concerns."""

    # Dev-friendly CORS. Override via DOCFLOW_CORS_ORIGINS=...
    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        validation_alias="DOCFLOW_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
