"""Human-friendly configuration loader.

The ``AppSettings`` class centralises every environment variable we rely on.
That means anyone inspecting the project can quickly answer the questions:

*What:* Which settings exist and what do they control?
*When:* They are read once, the first time ``get_settings`` is called.
*Why:* Centralising configuration prevents magic strings (page sizes, base
URLs, tokens) scattered all over the codebase.
*How:* pydantic-settings reads the environment and optional ``.env`` files,
with sensible defaults so the service can boot in development.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any, Iterable

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Asset Desk"

    # ---- External inventory API (the opaque backend we talk to)
    INVENTORY_API_URL: str = Field(
        default="http://localhost:3000/api",
        validation_alias=AliasChoices("INVENTORY_API_URL", "API_URL"),
    )
    INVENTORY_API_TOKEN: str = ""
    INVENTORY_TIMEOUT: float = 15.0

    # Availability pools are always a full re-fetch of one bounded page.
    POOL_PAGE_SIZE: int = 2000
    # Page size used by the duplicate phone fallback scan.
    PHONE_SCAN_PAGE_SIZE: int = 1000
    # Re-check selected accessory ids against a fresh pool before saving.
    REVALIDATE_ACCESSORIES: bool = False

    # ---- This service's own surface
    # ``API_KEY`` acts like a master key for machine-to-machine calls.
    API_KEY: str = Field(default="", validation_alias=AliasChoices("API_KEY", "API_TOKEN"))
    # Comma separated in the environment.
    ALLOWED_ORIGINS: Annotated[list[str], NoDecode] = Field(default_factory=list)
    LOG_LEVEL: str = "INFO"

    HOST: str = "0.0.0.0"
    PORT: int = 8089

    @property
    def inventory_base_url(self) -> str:
        return self.INVENTORY_API_URL.rstrip("/")

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: Any) -> list[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, Iterable):
            return [str(item).strip() for item in value if str(item).strip()]
        raise TypeError("ALLOWED_ORIGINS must be a comma separated string or list")

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, value: Any) -> str:
        return str(value or "INFO").strip().upper()


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()


# Instantiating here means importing ``settings`` anywhere instantly gives you
# access to the configured values without rebuilding the object each time.
settings = get_settings()
