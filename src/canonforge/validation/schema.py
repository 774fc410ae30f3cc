"""Structural validation of canonical records.

Records are validated against the model registered for their *declared*
``schema_version`` and ``type``. Failures are reported as a flat list of
:class:`Violation` objects (path, expected shape, actual value) built from
pydantic's error list, so that diagnostics can be surfaced verbatim.

Example:
    >>> result = validate({"schema_version": 3, "type": "action"})
    >>> result.ok
    False
    >>> result.violations[0].path
    'systemId'
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ValidationError

from canonforge.core.constants import (
    DEFAULT_SYSTEM_ID,
    LATEST_SCHEMA_VERSION,
    SUPPORTED_SCHEMA_VERSIONS,
)
from canonforge.core.exceptions import SchemaViolationError
from canonforge.core.logging import get_logger
from canonforge.models.canonical import (
    ActionRecord,
    ActorPatch,
    ActorRecord,
    BaseRecord,
    CanonicalModel,
    ItemRecord,
    LegacyActorRecord,
)
from canonforge.models.enums import EntityType
from canonforge.parsing.slugs import slugify
from canonforge.validation.migrations import migrate_to_latest


logger = get_logger(__name__)


# =============================================================================
# Result Types
# =============================================================================


@dataclass(frozen=True)
class Violation:
    """One structural mismatch.

    Attributes:
        path: Dotted path to the offending value (``attributes.hp.value``);
            empty for the record itself.
        expected: Description of the expected shape.
        actual: The value found, or None when the property is missing.
    """

    path: str
    expected: str
    actual: Any = None

    def describe(self) -> str:
        """Render as ``path: expected (got actual)``."""
        return f"{self.path or '<record>'}: {self.expected} (got {self.actual!r})"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation.

    Attributes:
        ok: True when the data conforms.
        record: The parsed model when ``ok``.
        violations: Every violation when not ``ok``; never empty on failure.
    """

    ok: bool
    record: BaseModel | None = None
    violations: tuple[Violation, ...] = field(default_factory=tuple)


# =============================================================================
# Schema Registry
# =============================================================================

SCHEMA_REGISTRY: dict[tuple[int, EntityType], type[BaseRecord]] = {
    (1, EntityType.ACTION): ActionRecord,
    (2, EntityType.ACTION): ActionRecord,
    (3, EntityType.ACTION): ActionRecord,
    (1, EntityType.ITEM): ItemRecord,
    (2, EntityType.ITEM): ItemRecord,
    (3, EntityType.ITEM): ItemRecord,
    (1, EntityType.ACTOR): LegacyActorRecord,
    (2, EntityType.ACTOR): LegacyActorRecord,
    (3, EntityType.ACTOR): ActorRecord,
}
"""Record model for each (schema version, entity type) pair."""

_EXPECTED_BY_ERROR_TYPE: dict[str, str] = {
    "missing": "required property",
    "extra_forbidden": "no additional properties",
    "string_too_short": "non-empty string",
    "too_short": "at least one entry",
}


def schema_for(version: int, entity_type: EntityType | str) -> type[BaseRecord] | None:
    """Return the record model registered for ``version`` and ``entity_type``."""
    try:
        return SCHEMA_REGISTRY.get((version, EntityType(entity_type)))
    except ValueError:
        return None


def _violations_from(error: ValidationError) -> tuple[Violation, ...]:
    violations = []
    for detail in error.errors(include_url=False):
        path = ".".join(str(part) for part in detail["loc"])
        expected = _EXPECTED_BY_ERROR_TYPE.get(detail["type"], detail["msg"])
        actual = None if detail["type"] == "missing" else detail.get("input")
        violations.append(Violation(path=path, expected=expected, actual=actual))
    return tuple(violations)


def _failure(*violations: Violation) -> ValidationResult:
    return ValidationResult(ok=False, violations=tuple(violations))


# =============================================================================
# Validation
# =============================================================================


def validate(data: object) -> ValidationResult:
    """Validate a canonical record against the schema for its declared version.

    Args:
        data: A mapping, or an already-built record model (which is dumped
            and checked again).

    Returns:
        The validation result; ``record`` holds the parsed model on success.
    """
    if isinstance(data, CanonicalModel):
        data = data.to_payload()
    if not isinstance(data, Mapping):
        return _failure(Violation("", "object", type(data).__name__))

    version = data.get("schema_version")
    raw_type = data.get("type")
    header: list[Violation] = []
    if not isinstance(version, int) or isinstance(version, bool) or version not in SUPPORTED_SCHEMA_VERSIONS:
        header.append(
            Violation(
                "schema_version",
                "one of " + ", ".join(map(str, SUPPORTED_SCHEMA_VERSIONS)),
                version,
            )
        )
    if raw_type not in {entity.value for entity in EntityType}:
        header.append(
            Violation("type", "one of " + ", ".join(entity.value for entity in EntityType), raw_type)
        )
    if header:
        return _failure(*header)

    model = SCHEMA_REGISTRY[(version, EntityType(raw_type))]
    try:
        record = model.model_validate(data)
    except ValidationError as exc:
        return _failure(*_violations_from(exc))
    return ValidationResult(ok=True, record=record)


def validate_patch(data: object) -> ValidationResult:
    """Validate a section patch; ``record`` is an :class:`ActorPatch`."""
    if isinstance(data, ActorPatch):
        return ValidationResult(ok=True, record=data)
    if not isinstance(data, Mapping):
        return _failure(Violation("", "object", type(data).__name__))
    try:
        patch = ActorPatch.model_validate(data)
    except ValidationError as exc:
        return _failure(*_violations_from(exc))
    return ValidationResult(ok=True, record=patch)


def ensure_valid(data: object, *, coerce: bool = False) -> BaseModel:
    """Validate and return the parsed record, raising on failure.

    Args:
        data: The canonical record.
        coerce: When True, repair the payload with :func:`normalize_payload`
            and migrate it to the latest schema version before validating.

    Returns:
        The parsed record model.

    Raises:
        SchemaViolationError: Carrying every violation when validation fails.
    """
    if isinstance(data, BaseRecord) and not coerce:
        return data
    if coerce and isinstance(data, Mapping):
        data = normalize_payload(data)
        if (
            data.get("type") in {entity.value for entity in EntityType}
            and data.get("schema_version") in SUPPORTED_SCHEMA_VERSIONS
        ):
            data = migrate_to_latest(data)

    result = validate(data)
    if not result.ok:
        entity_type = data.get("type") if isinstance(data, Mapping) else None
        logger.warning(
            "Canonical record failed validation",
            entity_type=entity_type,
            violations=[violation.describe() for violation in result.violations],
        )
        raise SchemaViolationError(
            "Canonical record failed validation",
            violations=result.violations,
            entity_type=entity_type if isinstance(entity_type, str) else None,
        )
    return result.record


# =============================================================================
# Payload Repair
# =============================================================================

_ACTION_COST_ALIASES: dict[str, str] = {
    "one": "one-action",
    "1": "one-action",
    "action": "one-action",
    "two": "two-actions",
    "2": "two-actions",
    "three": "three-actions",
    "3": "three-actions",
    "free-action": "free",
}

_ITEM_TYPE_ALIASES: dict[str, str] = {
    "shield": "armor",
    "treasure": "other",
    "backpack": "equipment",
}

_SIZE_ALIASES: dict[str, str] = {
    "small": "sm",
    "medium": "med",
    "large": "lg",
    "gargantuan": "grg",
}


def _aliased(value: Any, aliases: Mapping[str, str]) -> Any:
    if not isinstance(value, str):
        return value
    key = value.strip().lower()
    return aliases.get(key, key)


def normalize_payload(data: Mapping[str, Any]) -> dict[str, Any]:
    """Repair common generation mistakes before validation.

    Fills a missing slug from the name, lowercases enumerations and maps
    their aliases (``one`` to ``one-action``, ``shield`` to ``armor``), and
    defaults ``schema_version`` and ``systemId``. The input is not mutated.
    """
    repaired: dict[str, Any] = copy.deepcopy(dict(data))

    repaired.setdefault("schema_version", LATEST_SCHEMA_VERSION)
    if not repaired.get("systemId"):
        repaired["systemId"] = DEFAULT_SYSTEM_ID
    for key in ("systemId", "type", "rarity", "actorType"):
        if isinstance(repaired.get(key), str):
            repaired[key] = repaired[key].strip().lower()

    slug = repaired.get("slug")
    if (not isinstance(slug, str) or not slug.strip()) and isinstance(repaired.get("name"), str):
        repaired["slug"] = slugify(repaired["name"])

    if "actionType" in repaired:
        repaired["actionType"] = _aliased(repaired["actionType"], _ACTION_COST_ALIASES)
    if "itemType" in repaired:
        repaired["itemType"] = _aliased(repaired["itemType"], _ITEM_TYPE_ALIASES)
    if "size" in repaired:
        repaired["size"] = _aliased(repaired["size"], _SIZE_ALIASES)

    for action in repaired.get("actions") or []:
        if isinstance(action, dict) and "actionCost" in action:
            action["actionCost"] = _aliased(action["actionCost"], _ACTION_COST_ALIASES)
    for entry in repaired.get("inventory") or []:
        if isinstance(entry, dict) and entry.get("itemType") is not None:
            entry["itemType"] = _aliased(entry["itemType"], _ITEM_TYPE_ALIASES)
    for strike in repaired.get("strikes") or []:
        if isinstance(strike, dict) and isinstance(strike.get("type"), str):
            strike["type"] = strike["type"].strip().lower()

    return repaired


__all__ = [
    "Violation",
    "ValidationResult",
    "SCHEMA_REGISTRY",
    "schema_for",
    "validate",
    "validate_patch",
    "ensure_valid",
    "normalize_payload",
]
