"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

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
from canonforge.validation.schema import Violation


class TestCanonForgeError:
    """Tests for the base CanonForgeError exception."""

    def test_basic_message(self) -> None:
        """Test exception with basic message."""
        exc = CanonForgeError("Test error message")
        assert exc.message == "Test error message"
        assert exc.details == {}
        assert str(exc) == "Test error message"

    def test_with_details(self) -> None:
        """Test exception with additional details."""
        exc = CanonForgeError("Test error", details={"key": "value", "count": 42})
        assert exc.details == {"key": "value", "count": 42}
        assert "key='value'" in str(exc)
        assert "count=42" in str(exc)

    def test_repr(self) -> None:
        """Test exception repr output."""
        repr_str = repr(CanonForgeError("Test", details={"x": 1}))
        assert "CanonForgeError" in repr_str
        assert "Test" in repr_str
        assert "x" in repr_str


class TestSchemaExceptions:
    """Tests for schema domain exceptions."""

    def test_schema_violation_keeps_violations(self) -> None:
        """Test that every violation is kept verbatim."""
        violations = [
            Violation("slug", "required property"),
            Violation("level", "Input should be a valid integer", "high"),
        ]
        exc = SchemaViolationError("Invalid record", violations=violations, entity_type="actor")

        assert exc.violations == tuple(violations)
        assert exc.details["entity_type"] == "actor"
        assert exc.details["violation_count"] == 2
        assert exc.describe() == [
            "slug: required property (got None)",
            "level: Input should be a valid integer (got 'high')",
        ]

    def test_system_mismatch(self) -> None:
        """Test SystemMismatchError with both system identifiers."""
        exc = SystemMismatchError("Wrong system", expected="sf2e", active="pf2e")
        assert exc.expected == "sf2e"
        assert exc.active == "pf2e"
        assert exc.details == {"expected": "sf2e", "active": "pf2e"}

    def test_migration_error(self) -> None:
        """Test MigrationError with version context."""
        exc = MigrationError("Backwards", entity_type="item", from_version=3, to_version=1)
        assert exc.details == {"entity_type": "item", "from_version": 3, "to_version": 1}


class TestMergeExceptions:
    """Tests for merge and store exceptions."""

    def test_patch_scope_sorts_sections(self) -> None:
        """Test PatchScopeError lists the offending sections in order."""
        exc = PatchScopeError("Out of scope", sections={"spells", "core"})
        assert exc.sections == ["core", "spells"]

    def test_unresolved_reference(self) -> None:
        """Test UnresolvedReferenceError carries the spell and location."""
        exc = UnresolvedReferenceError("Missing entry", spell="Fear", location="abc")
        assert exc.spell == "Fear"
        assert exc.details["location"] == "abc"

    def test_library_not_found(self) -> None:
        """Test LibraryNotFoundError carries the library identifier."""
        exc = LibraryNotFoundError("Missing", library_id="bestiary")
        assert exc.details["library_id"] == "bestiary"

    @pytest.mark.parametrize(
        "exc",
        [
            ConfigurationError("x", config_key="log_level"),
            SchemaViolationError("x", violations=[]),
            SystemMismatchError("x", expected="a", active="b"),
            MigrationError("x"),
            PatchScopeError("x", sections=[]),
            UnresolvedReferenceError("x", spell="Fear"),
            LibraryNotFoundError("x", library_id="y"),
        ],
    )
    def test_inheritance(self, exc: CanonForgeError) -> None:
        """Test every error shares the base class."""
        assert isinstance(exc, CanonForgeError)
        assert isinstance(exc, Exception)


class TestExceptionChaining:
    """Tests for exception chaining behavior."""

    def test_raise_from(self) -> None:
        """Test that exceptions can be properly chained."""
        original = ValueError("Original error")

        with pytest.raises(MigrationError) as exc_info:
            try:
                raise original
            except ValueError as e:
                raise MigrationError("Wrapped error") from e

        assert exc_info.value.__cause__ is original
