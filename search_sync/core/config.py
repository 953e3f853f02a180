"""
Configuration module for the Search Sync service.

This module defines the settings and configuration parameters for the change-event
publisher. It uses Pydantic's Settings management to load configuration from
environment variables.
"""

import json
from enum import Enum
from typing import Annotated, Any, List, Optional
from urllib.parse import urlsplit, urlunsplit

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_SUFFIXES = ["_products", "_categories"]

# Characters allowed between a tenant prefix and its entity kind
SUFFIX_SEPARATORS = "_-.:"


class LogLevel(str, Enum):
    """Log level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Environment(str, Enum):
    """Environment enumeration."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    An absent ``REDIS_URL`` is a valid configuration: the publisher stays inert
    for the lifetime of the process.
    """
    # General settings
    PROJECT_NAME: str = "Search Sync"
    PROJECT_DESCRIPTION: str = "Forwards content change events to a Redis stream for search indexing"
    VERSION: str = "0.1.0"
    ENVIRONMENT: Environment = Environment.DEVELOPMENT
    DEBUG: bool = False
    LOG_LEVEL: LogLevel = LogLevel.INFO
    API_PREFIX: str = "/api/v1"
    HOST: str = "0.0.0.0"
    PORT: int = 8057

    # Shared secret expected in the X-Hook-Token header (disabled when unset)
    HOOK_TOKEN: Optional[SecretStr] = None

    # Redis settings
    REDIS_URL: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("REDIS_URL", "REDIS_CONNECTION_STRING"),
    )
    REDIS_TLS_VERIFY: bool = True
    REDIS_CONNECT_TIMEOUT: float = Field(default=5.0, gt=0)
    REDIS_HEALTH_CHECK_INTERVAL: float = Field(default=5.0, gt=0)
    REDIS_MAX_RETRIES: int = Field(default=5, ge=0)
    REDIS_BACKOFF_STEP_MS: int = Field(default=200, ge=0)
    REDIS_BACKOFF_CAP_MS: int = Field(default=2000, ge=0)

    # Stream settings
    SEARCH_SYNC_STREAM: str = "search:sync"
    SEARCH_SYNC_SUFFIXES: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_SUFFIXES)
    )
    SEARCH_SYNC_STREAM_MAXLEN: Optional[int] = Field(default=None, gt=0)

    @field_validator("REDIS_URL", mode="before")
    def blank_url_is_absent(cls, v: Any) -> Any:
        """Treat an empty or whitespace-only URL as not configured."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("SEARCH_SYNC_SUFFIXES", mode="before")
    def split_suffixes(cls, v: Any) -> Any:
        """
        Accept the suffix list as a JSON array or a comma separated string.

        Args:
            v: The raw value

        Returns:
            Ordered list of non-empty suffixes
        """
        if isinstance(v, str):
            raw = v.strip()
            if raw.startswith("["):
                return json.loads(raw)
            return [part.strip() for part in raw.split(",") if part.strip()]
        return v

    @field_validator("SEARCH_SYNC_SUFFIXES")
    def suffixes_name_an_entity(cls, v: List[str]) -> List[str]:
        """Reject suffixes made only of separators, which name no entity kind."""
        for suffix in v:
            if suffix and not suffix.lstrip(SUFFIX_SEPARATORS):
                raise ValueError(f"suffix {suffix!r} has no entity kind after its separator")
        return v

    @property
    def search_sync_enabled(self) -> bool:
        """Whether a stream endpoint is configured."""
        return self.REDIS_URL is not None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        use_enum_values=True,
        extra="ignore",
    )


def mask_url(url: Optional[str]) -> Optional[str]:
    """
    Hide the password component of a connection URL for logging.

    Args:
        url: Connection URL

    Returns:
        The URL with any password replaced by ``***``
    """
    if not url:
        return url

    parts = urlsplit(url)
    if parts.password is None:
        return url

    userinfo, _, hostport = parts.netloc.rpartition("@")
    username = userinfo.split(":", 1)[0]
    return urlunsplit(
        (parts.scheme, f"{username}:***@{hostport}", parts.path, parts.query, parts.fragment)
    )


def get_settings() -> Settings:
    """Create a settings instance from the current environment."""
    return Settings()
