"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        CanonForgeError: Base exception for all canonforge errors.
        SchemaViolationError: Structural mismatch against the declared schema.
        SystemMismatchError: Record targets a different game system.

    Configuration:
        Settings: Main settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
"""

from __future__ import annotations

from canonforge.core.config import (
    HostSettings,
    Settings,
    SynthesisSettings,
    clear_settings_cache,
    get_settings,
)
from canonforge.core.exceptions import (
    CanonForgeError,
    ConfigurationError,
    LibraryNotFoundError,
    MigrationError,
    PatchScopeError,
    SchemaViolationError,
    SystemMismatchError,
    UnresolvedReferenceError,
)
from canonforge.core.logging import (
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
    record_context,
)


__all__ = [
    # Exceptions
    "CanonForgeError",
    "ConfigurationError",
    "SchemaViolationError",
    "SystemMismatchError",
    "MigrationError",
    "PatchScopeError",
    "UnresolvedReferenceError",
    "LibraryNotFoundError",
    # Configuration
    "HostSettings",
    "SynthesisSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "bind_context",
    "clear_context",
    "record_context",
]
