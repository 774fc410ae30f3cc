"""Schema validation and schema-version migrations."""

from __future__ import annotations

from canonforge.validation.migrations import migrate, migrate_to_latest
from canonforge.validation.schema import (
    SCHEMA_REGISTRY,
    ValidationResult,
    Violation,
    ensure_valid,
    normalize_payload,
    schema_for,
    validate,
    validate_patch,
)


__all__ = [
    "Violation",
    "ValidationResult",
    "SCHEMA_REGISTRY",
    "schema_for",
    "validate",
    "validate_patch",
    "ensure_valid",
    "normalize_payload",
    "migrate",
    "migrate_to_latest",
]
