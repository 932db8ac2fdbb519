# =============================================================================
# core/settings.py  —  Runtime Configuration
# =============================================================================
#
# All configuration comes from environment variables (or a local .env
# file), each prefixed with AGENTAUDIT_:
#
#   AGENTAUDIT_API_BASE   → base URL of the AgentAudit REST API
#   AGENTAUDIT_TIMEOUT    → per-request timeout in seconds (default 10, > 0)
#   AGENTAUDIT_LOG_LEVEL  → logging level for the server (default INFO)
#
# A value that fails validation (e.g. AGENTAUDIT_TIMEOUT=soon) raises a
# pydantic ValidationError the first time get_settings() runs, which stops
# the server at startup.
#
# get_settings() is cached; tests call get_settings.cache_clear() after
# changing the environment.
# =============================================================================

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_BASE = "https://www.agentaudit.dev/api"
DEFAULT_TIMEOUT_SECONDS = 10.0

# Public site links shown in tool output.  These are not configurable: they
# are what the assistant hands back to the user.
SITE_URL = "https://agentaudit.dev"
PACKAGE_PAGE_URL = f"{SITE_URL}/packages"
HEALTH_PAGE_URL = f"{SITE_URL}/api/health"


class Settings(BaseSettings):
    """Resolved configuration for one server process."""

    model_config = SettingsConfigDict(
        env_prefix="AGENTAUDIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_base: str = DEFAULT_API_BASE
    timeout: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    log_level: str = "INFO"

    @field_validator("api_base")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _upper_case_level(cls, value: str) -> str:
        return value.upper()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
