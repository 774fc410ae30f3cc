"""Custom exception hierarchy for canonforge.

All exceptions inherit from CanonForgeError so that callers can handle
every mapping failure at one boundary while keeping the domain-specific
context (violations, system identifiers, sections) attached to the error.

Parsers never raise for malformed text; they return ``None``. The errors
below are reserved for structural and precondition failures.

Example:
    >>> from canonforge.core.exceptions import SystemMismatchError
    >>> raise SystemMismatchError("Wrong system", expected="pf2e", active="sf2e")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from canonforge.validation.schema import Violation


class CanonForgeError(Exception):
    """Base exception for all canonforge errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


class ConfigurationError(CanonForgeError):
    """Raised when settings cannot be loaded or are inconsistent."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with the offending key.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


# =============================================================================
# Schema Domain Exceptions
# =============================================================================


class SchemaViolationError(CanonForgeError):
    """Raised when a canonical record does not match its declared schema.

    Always fatal to the current operation. The full violation list is kept
    verbatim on the exception so that callers can surface it for diagnostics.
    """

    def __init__(
        self,
        message: str,
        *,
        violations: Sequence[Violation],
        entity_type: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize schema violation error.

        Args:
            message: Human-readable error description.
            violations: Every violation reported by the validator.
            entity_type: The canonical record type that failed, if known.
            details: Optional dictionary containing additional error context.
        """
        self.violations: tuple[Violation, ...] = tuple(violations)
        combined_details = details or {}
        if entity_type:
            combined_details["entity_type"] = entity_type
        combined_details["violation_count"] = len(self.violations)
        super().__init__(message, details=combined_details)

    def describe(self) -> list[str]:
        """Render every violation as ``path: expected (got actual)`` lines."""
        return [violation.describe() for violation in self.violations]


class SystemMismatchError(CanonForgeError):
    """Raised when a record targets a different game system than the host."""

    def __init__(
        self,
        message: str,
        *,
        expected: str,
        active: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize system mismatch error.

        Args:
            message: Human-readable error description.
            expected: System identifier declared by the payload.
            active: System identifier of the active host.
            details: Optional dictionary containing additional error context.
        """
        self.expected = expected
        self.active = active
        combined_details = details or {}
        combined_details["expected"] = expected
        combined_details["active"] = active
        super().__init__(message, details=combined_details)


class MigrationError(CanonForgeError):
    """Raised when a record cannot be migrated between schema versions."""

    def __init__(
        self,
        message: str,
        *,
        entity_type: str | None = None,
        from_version: int | None = None,
        to_version: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize migration error with version context.

        Args:
            message: Human-readable error description.
            entity_type: The canonical record type being migrated.
            from_version: Source schema version.
            to_version: Requested schema version.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if entity_type:
            combined_details["entity_type"] = entity_type
        if from_version is not None:
            combined_details["from_version"] = from_version
        if to_version is not None:
            combined_details["to_version"] = to_version
        super().__init__(message, details=combined_details)


# =============================================================================
# Merge Domain Exceptions
# =============================================================================


class PatchScopeError(CanonForgeError):
    """Raised when a section patch carries data for unselected sections."""

    def __init__(
        self,
        message: str,
        *,
        sections: Iterable[str],
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize patch scope error.

        Args:
            message: Human-readable error description.
            sections: Sections present in the patch but not selected.
            details: Optional dictionary containing additional error context.
        """
        self.sections = sorted(sections)
        combined_details = details or {}
        combined_details["sections"] = self.sections
        super().__init__(message, details=combined_details)


class UnresolvedReferenceError(CanonForgeError):
    """A spell references a spellcasting entry that could not be resolved.

    Not fatal: the merge engine skips the spell and reports an instance of
    this error in the outcome instead of raising it.
    """

    def __init__(
        self,
        message: str,
        *,
        spell: str,
        location: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize unresolved reference error.

        Args:
            message: Human-readable error description.
            spell: Name of the skipped spell.
            location: The provisional entry identifier that failed to resolve.
            details: Optional dictionary containing additional error context.
        """
        self.spell = spell
        self.location = location
        combined_details = details or {}
        combined_details["spell"] = spell
        if location:
            combined_details["location"] = location
        super().__init__(message, details=combined_details)


# =============================================================================
# Store Domain Exceptions
# =============================================================================


class LibraryNotFoundError(CanonForgeError):
    """Raised when a named shared content library does not exist."""

    def __init__(
        self,
        message: str,
        *,
        library_id: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize library lookup error.

        Args:
            message: Human-readable error description.
            library_id: The library identifier that was requested.
            details: Optional dictionary containing additional error context.
        """
        self.library_id = library_id
        combined_details = details or {}
        combined_details["library_id"] = library_id
        super().__init__(message, details=combined_details)


__all__ = [
    "CanonForgeError",
    "ConfigurationError",
    "SchemaViolationError",
    "SystemMismatchError",
    "MigrationError",
    "PatchScopeError",
    "UnresolvedReferenceError",
    "LibraryNotFoundError",
]
