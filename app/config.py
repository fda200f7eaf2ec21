# Configuration for OpenAI-compatible relay to Raycast AI

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_USER_AGENT = "Raycast/1.94.2 (macOS Version 15.3.2 (Build 24D81))"


def _flag_enabled(value: Optional[str]) -> bool:
    # Flags stay on unless explicitly set to "false"
    return (value or "").strip().lower() != "false"


class Settings(BaseSettings):
    """
    Settings loaded from environment variables only.
    In Docker: variables are injected via docker-compose env_file directive.
    In local dev: export variables before starting uvicorn.
    """
    model_config = SettingsConfigDict(
        case_sensitive=True,
        extra="ignore",
    )

    # Gateway auth (optional - if not set, every caller is accepted)
    API_KEY: Optional[str] = Field(None, description="API key for the gateway", alias="API_KEY")

    # Upstream Raycast API (token is checked per request so /health works without it)
    RAYCAST_BEARER_TOKEN: Optional[str] = Field(None, description="Raycast bearer token", alias="RAYCAST_BEARER_TOKEN")
    RAYCAST_BASE_URL: str = Field("https://backend.raycast.com", description="Base URL for Raycast backend", alias="RAYCAST_BASE_URL")
    RAYCAST_USER_AGENT: str = Field(DEFAULT_USER_AGENT, alias="RAYCAST_USER_AGENT")
    RAYCAST_TIMEOUT: int = Field(30, description="Timeout in seconds", alias="RAYCAST_TIMEOUT")

    # Model catalog filters: 'false' hides premium / deprecated models
    ADVANCED: Optional[str] = Field(None, alias="ADVANCED")
    INCLUDE_DEPRECATED: Optional[str] = Field(None, alias="INCLUDE_DEPRECATED")

    # Model resolution
    DEFAULT_MODEL_ID: str = Field("openai-gpt-4o-mini", alias="DEFAULT_MODEL_ID")
    MODEL_FALLBACK: bool = Field(False, description="Use the fallback model instead of rejecting unknown ids", alias="MODEL_FALLBACK")
    MODELS_CACHE_TTL: int = Field(0, description="Model catalog cache TTL in seconds, 0 disables caching", alias="MODELS_CACHE_TTL")

    # Logging
    LOG_REQUEST_BODY_MAX_LENGTH: int = Field(40000, alias="LOG_REQUEST_BODY_MAX_LENGTH")

    # Server
    HOST: str = Field("0.0.0.0", alias="HOST")
    PORT: int = Field(8787, alias="PORT")

    @property
    def show_premium(self) -> bool:
        return _flag_enabled(self.ADVANCED)

    @property
    def include_deprecated(self) -> bool:
        return _flag_enabled(self.INCLUDE_DEPRECATED)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def check_gateway_api_key(auth_header: Optional[str], settings: Optional[Settings] = None) -> bool:
    """
    Validate Authorization: Bearer <key> header.
    Passes unconditionally when no API_KEY is configured.
    """
    s = settings or get_settings()
    if not s.API_KEY:
        return True
    if not auth_header:
        return False
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return False
    return parts[1] == s.API_KEY
