"""Service settings.

Read once at startup from ``USERS_*`` environment variables (and a local
``.env`` file if present).  The resulting object is frozen and handed to
everything that needs it; nothing else reads the environment.
"""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-wide configuration."""

    model_config = SettingsConfigDict(
        env_prefix="USERS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Token signing secret; startup fails without it.
    jwt_private_key: str = Field(..., min_length=1)

    port: int = 3000
    environment: str = "development"
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"
