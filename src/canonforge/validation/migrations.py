"""Stepwise migrations between canonical schema versions.

Each registered step upgrades a record of one entity type by exactly one
version. :func:`migrate` chains steps and refuses to move backwards.

Version history:
    1 -> 2: ``source`` became a required string (defaults to ``""``).
    2 -> 3: actors gained ``inventory`` (defaults to ``[]``).
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from canonforge.core.constants import LATEST_SCHEMA_VERSION
from canonforge.core.exceptions import MigrationError
from canonforge.core.logging import get_logger
from canonforge.models.enums import EntityType


logger = get_logger(__name__)

MigrationStep = Callable[[dict[str, Any]], dict[str, Any]]

_STEPS: dict[tuple[EntityType, int], MigrationStep] = {}


def register_migration(
    entity_type: EntityType, from_version: int
) -> Callable[[MigrationStep], MigrationStep]:
    """Register ``step`` as the upgrade from ``from_version`` to the next."""

    def decorator(step: MigrationStep) -> MigrationStep:
        _STEPS[(entity_type, from_version)] = step
        return step

    return decorator


def _default_source(data: dict[str, Any]) -> dict[str, Any]:
    if not isinstance(data.get("source"), str):
        data["source"] = ""
    return data


@register_migration(EntityType.ACTION, 1)
@register_migration(EntityType.ITEM, 1)
@register_migration(EntityType.ACTOR, 1)
def _v1_to_v2(data: dict[str, Any]) -> dict[str, Any]:
    return _default_source(data)


@register_migration(EntityType.ACTION, 2)
@register_migration(EntityType.ITEM, 2)
def _v2_to_v3(data: dict[str, Any]) -> dict[str, Any]:
    return data


@register_migration(EntityType.ACTOR, 2)
def _actor_v2_to_v3(data: dict[str, Any]) -> dict[str, Any]:
    if not isinstance(data.get("inventory"), list):
        data["inventory"] = []
    return data


def migrate(
    entity_type: EntityType | str,
    from_version: int,
    to_version: int,
    data: Mapping[str, Any],
) -> dict[str, Any]:
    """Upgrade ``data`` from one schema version to another.

    Args:
        entity_type: The record's ``type``.
        from_version: Version ``data`` currently conforms to.
        to_version: Target version.
        data: The record; it is copied, never mutated.

    Returns:
        The migrated record stamped with ``to_version``.

    Raises:
        MigrationError: If ``to_version`` is older than ``from_version`` or a
            step in between is not registered.
    """
    try:
        kind = EntityType(entity_type)
    except ValueError as exc:
        raise MigrationError(
            f"Unknown entity type {entity_type!r}",
            entity_type=str(entity_type),
            from_version=from_version,
            to_version=to_version,
        ) from exc

    if to_version < from_version:
        raise MigrationError(
            "Cannot migrate to an older schema version",
            entity_type=kind,
            from_version=from_version,
            to_version=to_version,
        )

    migrated = dict(data)
    for version in range(from_version, to_version):
        step = _STEPS.get((kind, version))
        if step is None:
            raise MigrationError(
                f"No migration registered from version {version}",
                entity_type=kind,
                from_version=from_version,
                to_version=to_version,
            )
        migrated = step(migrated)
        migrated["schema_version"] = version + 1

    if from_version != to_version:
        logger.debug(
            "Record migrated",
            entity_type=kind.value,
            from_version=from_version,
            to_version=to_version,
        )
    return migrated


def migrate_to_latest(data: Mapping[str, Any]) -> dict[str, Any]:
    """Upgrade a record from its declared version to the latest one."""
    return migrate(data["type"], data["schema_version"], LATEST_SCHEMA_VERSION, data)


__all__ = ["MigrationStep", "register_migration", "migrate", "migrate_to_latest"]
