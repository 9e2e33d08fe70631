"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the MercadoLibre clients
and the maintenance scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import AnyHttpUrl, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file into the process env."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class _EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")


class MeliSettings(_EnvSettings):
    """Credentials and endpoints for the MercadoLibre API."""

    client_id: str = Field(..., validation_alias="MELI_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="MELI_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(..., validation_alias="MELI_REDIRECT_URI")
    api_url: str = Field(
        "https://api.mercadolibre.com", validation_alias="MELI_API_URL"
    )
    auth_url: str = Field(
        "https://auth.mercadolibre.com.ar/authorization",
        validation_alias="MELI_AUTH_URL",
        description="Country-specific consent screen sellers are sent to.",
    )
    token_url: str = Field(
        "https://api.mercadolibre.com/oauth/token", validation_alias="MELI_TOKEN_URL"
    )
    http_timeout: float = Field(30.0, validation_alias="MELI_HTTP_TIMEOUT")

    @field_validator("api_url", "auth_url", "token_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class SecuritySettings(_EnvSettings):
    """Security-related configuration."""

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class OAuthSettings(_EnvSettings):
    """OAuth link flow configuration."""

    state_ttl_seconds: int = Field(900, validation_alias="OAUTH_STATE_TTL")


class AppSettings(_EnvSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        populate_by_name=True,
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    frontend_base_url: Optional[HttpUrl] = Field(
        None,
        validation_alias="FRONTEND_BASE_URL",
        description="Optional URL for redirecting sellers back after linking.",
    )
    database_path: str = Field(
        "data/meli_gateway.db", validation_alias="DATABASE_PATH"
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    meli: MeliSettings = Field(default_factory=MeliSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "MeliSettings",
    "OAuthSettings",
    "SecuritySettings",
    "get_settings",
]
