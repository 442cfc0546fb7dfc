"""
Configuration and settings for the portfolio API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Admin secret. Leaving it unset opens every admin endpoint (dev mode).
    admin_key: Optional[str] = Field(default=None)

    # Document store
    db_file: str = Field(default="db.json")
    use_in_memory_store: bool = Field(default=False)

    # HTTP
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)
    cors_origins: str = Field(default="*")
    static_dir: str = Field(default="public")
    log_level: str = Field(default="INFO")

    # Contact notification (SMTP)
    smtp_host: Optional[str] = Field(default=None)
    smtp_port: int = Field(default=587)
    smtp_secure: bool = Field(default=False)
    smtp_user: Optional[str] = Field(default=None)
    smtp_pass: Optional[str] = Field(default=None)
    contact_dest: Optional[str] = Field(default=None)
    contact_sender_name: str = Field(default="Portfolio Contact")

    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
