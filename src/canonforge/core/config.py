"""Configuration management for canonforge.

Settings are loaded with pydantic-settings from environment variables and an
optional ``.env`` file. The mapping code itself is pure; configuration only
supplies defaults such as the active host system identifier, which callers
may always override per call.

Example:
    >>> from canonforge.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.host.active_system_id
    'pf2e'

Environment Variables:
    CANONFORGE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    CANONFORGE_JSON_LOGS: Emit JSON log lines instead of console output
    CANONFORGE_HOST_ACTIVE_SYSTEM_ID: Game system the host store is running
    CANONFORGE_SYNTHESIS_IDENTIFIER_LENGTH: Length of synthesized identifiers
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from canonforge.core.constants import SYSTEM_IDS
from canonforge.core.exceptions import ConfigurationError


class HostSettings(BaseSettings):
    """Description of the host document store the records are written to.

    Attributes:
        active_system_id: Game system identifier of the running host.
        system_version: Host game-system version stamped into documents.
        core_version: Host core version stamped into documents.
    """

    model_config = SettingsConfigDict(
        env_prefix="CANONFORGE_HOST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    active_system_id: str = Field(
        default="pf2e",
        description="Game system identifier of the active host",
    )
    system_version: str = Field(
        default="7.5.2",
        description="Host game-system version",
    )
    core_version: str = Field(
        default="13.348",
        description="Host core version",
    )

    @field_validator("active_system_id", mode="after")
    @classmethod
    def validate_system_id(cls, value: str) -> str:
        """Reject system identifiers the canonical schema does not know.

        Raises:
            ConfigurationError: If the identifier is not a known system.
        """
        if value not in SYSTEM_IDS:
            raise ConfigurationError(
                f"Unknown host system id {value!r}; expected one of {', '.join(SYSTEM_IDS)}",
                config_key="active_system_id",
            )
        return value


class SynthesisSettings(BaseSettings):
    """Defaults used while synthesizing document graphs.

    Attributes:
        identifier_length: Number of characters in a synthesized identifier.
        publication_license: License stamped into publication blocks.
        token_disposition: Default prototype-token disposition (-1 hostile).
    """

    model_config = SettingsConfigDict(
        env_prefix="CANONFORGE_SYNTHESIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    identifier_length: int = Field(
        default=16,
        ge=8,
        le=64,
        description="Length of synthesized identifiers",
    )
    publication_license: Literal["OGL", "ORC"] = Field(
        default="OGL",
        description="License stamped into publication blocks",
    )
    token_disposition: int = Field(
        default=-1,
        ge=-1,
        le=1,
        description="Default prototype token disposition",
    )


class Settings(BaseSettings):
    """Main settings object aggregating every configuration domain.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Logging level.
        json_logs: Emit JSON log lines.
        host: Host store settings.
        synthesis: Synthesis defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="CANONFORGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(default="canonforge", description="Application name")
    app_version: str = Field(default="0.3.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_logs: bool = Field(default=False, description="Emit JSON log lines")

    host: HostSettings = Field(default_factory=HostSettings)
    synthesis: SynthesisSettings = Field(default_factory=SynthesisSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the settings singleton.

    Returns:
        The cached Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "HostSettings",
    "SynthesisSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
