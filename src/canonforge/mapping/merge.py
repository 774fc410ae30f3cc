"""Section merge engine.

An actor is split into sections (core, defenses, skills, strikes, actions,
inventory, spells, narrative). A generated :class:`ActorPatch` may only
carry fields of the sections the caller selected, and each selected section
is merged with either ``replace`` or ``add`` semantics:

- ``replace`` substitutes the section wholesale. For list sections an
  omitted field means an empty list, so nothing present before survives.
- ``add`` upserts list entries by a dedup key: a colliding key overwrites
  the fields the incoming entry sets, a new key appends exactly one entry.
  Scalar sections (core, defenses, narrative) behave as ``replace``.

:func:`merge_sections` merges canonical records. :func:`plan_mutations`
translates a merge into host mutations against an existing document graph;
:mod:`canonforge.store.importer` applies the plan.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from canonforge.core.constants import LATEST_SCHEMA_VERSION
from canonforge.core.exceptions import PatchScopeError, SchemaViolationError
from canonforge.core.logging import get_logger
from canonforge.mapping.tables import (
    SECTION_BY_EMBEDDED_TYPE,
    document_item_category,
    infer_item_category,
    section_for,
)
from canonforge.models.canonical import (
    ActorPatch,
    ActorRecord,
    BaseRecord,
    CanonicalModel,
    InventoryEntry,
    Spell,
    SpellcastingEntry,
)
from canonforge.models.documents import DocumentGraph
from canonforge.models.enums import MergeOperation, Section
from canonforge.parsing.slugs import normalize_key, slugify
from canonforge.validation.migrations import migrate_to_latest
from canonforge.validation.schema import Violation, ensure_valid, validate_patch


logger = get_logger(__name__)

Model = TypeVar("Model", bound=CanonicalModel)


# =============================================================================
# Section Tables
# =============================================================================

SECTION_FIELDS: dict[Section, tuple[str, ...]] = {
    Section.CORE: ("level", "size", "rarity", "traits", "alignment", "languages", "abilities"),
    Section.DEFENSES: ("attributes",),
    Section.SKILLS: ("skills",),
    Section.STRIKES: ("strikes",),
    Section.ACTIONS: ("actions",),
    Section.INVENTORY: ("inventory",),
    Section.SPELLS: ("spellcasting",),
    Section.NARRATIVE: ("description", "recall_knowledge"),
}
"""Canonical actor fields owned by each section."""

LIST_SECTIONS = frozenset(
    {Section.SKILLS, Section.STRIKES, Section.ACTIONS, Section.INVENTORY, Section.SPELLS}
)

SECTION_ROOT_PATHS: dict[Section, tuple[str, ...]] = {
    Section.CORE: (
        "system.details.level",
        "system.details.alignment",
        "system.details.languages",
        "system.traits",
        "system.abilities",
        "prototypeToken.width",
        "prototypeToken.height",
    ),
    Section.DEFENSES: ("system.attributes", "system.perception", "system.saves"),
    Section.SKILLS: ("system.skills",),
    Section.NARRATIVE: ("system.details.publicNotes", "system.details.privateNotes"),
}
"""Root document paths owned by each section; list sections own embedded records."""

SECTION_EMBEDDED_TYPES: dict[Section, frozenset[str]] = {
    section: frozenset(
        embedded_type
        for embedded_type, owner in SECTION_BY_EMBEDDED_TYPE.items()
        if owner is section
    )
    for section in Section
}
"""Embedded record types owned by each section."""


def sections_in(patch: ActorPatch) -> set[Section]:
    """Return the sections a patch actually carries fields for."""
    return {
        section
        for section, fields in SECTION_FIELDS.items()
        if patch.model_fields_set.intersection(fields)
    }


def _selection(selection: Mapping[Section | str, MergeOperation | str]) -> dict[Section, MergeOperation]:
    return {Section(section): MergeOperation(operation) for section, operation in selection.items()}


# =============================================================================
# Dedup Keys
# =============================================================================


def _name_category(entry: InventoryEntry) -> tuple[str, str]:
    category = entry.item_type or infer_item_category(entry.name, entry.description)
    return (normalize_key(entry.name), category.value)


def inventory_key(entry: InventoryEntry) -> Hashable:
    """Slug when present, else normalised name plus (inferred) category."""
    if entry.slug:
        return entry.slug
    return _name_category(entry)


def adopt_inventory_slugs(
    existing: Iterable[InventoryEntry],
    incoming: Iterable[InventoryEntry],
) -> list[InventoryEntry]:
    """Give unslugged incoming entries the slug of the stored entry they name.

    Stored entries always carry a slug once read back from the host, while
    generated entries often do not. An incoming entry without a slug whose
    name and category match a stored entry takes that entry's slug, so both
    sides of :func:`inventory_key` agree.
    """
    slugs: dict[tuple[str, str], str] = {}
    for entry in existing:
        if entry.slug:
            slugs.setdefault(_name_category(entry), entry.slug)
    adopted = []
    for entry in incoming:
        slug = None if entry.slug else slugs.get(_name_category(entry))
        adopted.append(entry.model_copy(update={"slug": slug}) if slug else entry)
    return adopted


def _merge_inventory(existing: list[InventoryEntry], incoming: list[InventoryEntry]) -> list[InventoryEntry]:
    return upsert(existing, adopt_inventory_slugs(existing, incoming), inventory_key)


def entry_key(entry: SpellcastingEntry) -> tuple[str, str, str]:
    """Normalised name, tradition and casting type."""
    return (normalize_key(entry.name), entry.tradition.lower(), entry.casting_type.value)


def spell_key(spell: Spell) -> tuple[int, str]:
    """Spell level and normalised name."""
    return (spell.level, normalize_key(spell.name))


def _name_key(entry: Any) -> str:
    return normalize_key(entry.name)


def _slug_key(entry: Any) -> str:
    return entry.slug


# =============================================================================
# Canonical Merge
# =============================================================================


def _overlay(existing: Model, incoming: Model) -> Model:
    """Overwrite the fields ``incoming`` explicitly sets."""
    return existing.model_copy(
        update={name: getattr(incoming, name) for name in incoming.model_fields_set}
    )


def upsert(
    existing: Iterable[Model],
    incoming: Iterable[Model],
    key: Callable[[Model], Hashable],
    combine: Callable[[Model, Model], Model] = _overlay,
) -> list[Model]:
    """Merge ``incoming`` into ``existing`` by ``key``.

    A colliding key replaces the stored entry with ``combine(stored,
    incoming)`` in place; a new key is appended. Later incoming entries win
    over earlier ones with the same key.
    """
    merged = list(existing)
    positions = {key(entry): index for index, entry in enumerate(merged)}
    for entry in incoming:
        entry_id = key(entry)
        if entry_id in positions:
            merged[positions[entry_id]] = combine(merged[positions[entry_id]], entry)
        else:
            positions[entry_id] = len(merged)
            merged.append(entry)
    return merged


def _merge_entry(existing: SpellcastingEntry, incoming: SpellcastingEntry) -> SpellcastingEntry:
    update = {name: getattr(incoming, name) for name in incoming.model_fields_set if name != "spells"}
    update["spells"] = upsert(existing.spells, incoming.spells, spell_key)
    return existing.model_copy(update=update)


_ADD_MERGERS: dict[str, Callable[[list[Any], list[Any]], list[Any]]] = {
    "skills": lambda existing, incoming: upsert(existing, incoming, _slug_key),
    "strikes": lambda existing, incoming: upsert(existing, incoming, _name_key),
    "actions": lambda existing, incoming: upsert(existing, incoming, _name_key),
    "inventory": _merge_inventory,
    "spellcasting": lambda existing, incoming: upsert(existing, incoming, entry_key, _merge_entry),
}
"""``add`` mergers for list fields; every other field is replaced."""


def _as_actor(snapshot: ActorRecord | Mapping[str, Any]) -> ActorRecord:
    record = snapshot if isinstance(snapshot, BaseRecord) else ensure_valid(snapshot)
    if record.schema_version < LATEST_SCHEMA_VERSION:
        record = ensure_valid(migrate_to_latest(record.to_payload()))
    if not isinstance(record, ActorRecord):
        actual = getattr(record, "type", None)
        raise SchemaViolationError(
            "Section merges require an actor snapshot",
            violations=(Violation("type", "actor", actual),),
            entity_type=actual,
        )
    return record


def _as_patch(patch: ActorPatch | Mapping[str, Any]) -> ActorPatch:
    result = validate_patch(patch)
    if not result.ok:
        logger.warning(
            "Section patch failed validation",
            violations=[violation.describe() for violation in result.violations],
        )
        raise SchemaViolationError(
            "Section patch failed validation",
            violations=result.violations,
            entity_type="actor",
        )
    return result.record


def merge_sections(
    snapshot: ActorRecord | Mapping[str, Any],
    patch: ActorPatch | Mapping[str, Any],
    selection: Mapping[Section | str, MergeOperation | str],
) -> ActorRecord:
    """Merge a section patch into an actor snapshot.

    Args:
        snapshot: The current canonical actor.
        patch: A partial actor restricted to the selected sections.
        selection: Operation per selected section.

    Returns:
        The merged actor, validated again against the latest schema.

    Raises:
        SchemaViolationError: If the snapshot, the patch or the merged
            result is invalid.
        PatchScopeError: If the patch carries fields of unselected sections.

    Example:
        >>> merged = merge_sections(
        ...     goblin,
        ...     {"inventory": [{"name": "Potion of Healing", "slug": "potion-of-healing"}]},
        ...     {"inventory": "add"},
        ... )
    """
    record = _as_actor(snapshot)
    actor_patch = _as_patch(patch)
    operations = _selection(selection)

    unselected = sections_in(actor_patch) - operations.keys()
    if unselected:
        raise PatchScopeError(
            "Patch carries sections that were not selected: "
            + ", ".join(sorted(section.value for section in unselected)),
            sections=(section.value for section in unselected),
        )

    update: dict[str, Any] = {}
    for section, operation in operations.items():
        for name in SECTION_FIELDS[section]:
            supplied = name in actor_patch.model_fields_set
            incoming = getattr(actor_patch, name)
            if operation is MergeOperation.ADD and name in _ADD_MERGERS:
                if supplied and incoming:
                    update[name] = _ADD_MERGERS[name](getattr(record, name), incoming)
            elif section in LIST_SECTIONS:
                update[name] = list(incoming or [])
            elif supplied and incoming is not None:
                update[name] = incoming
        logger.debug("Section merged", section=section.value, operation=operation.value)

    merged = ensure_valid(record.model_copy(update=update).to_payload())
    logger.info(
        "Sections merged",
        slug=record.slug,
        sections=sorted(section.value for section in operations),
    )
    return merged


# =============================================================================
# Document Mutation Planning
# =============================================================================


@dataclass
class MutationPlan:
    """Host mutations that apply a section merge to an existing document.

    Attributes:
        root_update: Dotted root paths (``system.details.level``) to new values.
        deletions: Identifiers of embedded records to delete.
        creations: Embedded payloads to create, spellcasting excluded.
        entry_creations: Spellcasting-entry payloads to create.
        spell_creations: Spell payloads; their ``system.location.value``
            holds a provisional entry identifier until remapped.
        entry_remap: Provisional entry identifier to the identifier of an
            existing entry with the same dedup key.
    """

    root_update: dict[str, Any] = field(default_factory=dict)
    deletions: list[str] = field(default_factory=list)
    creations: list[dict[str, Any]] = field(default_factory=list)
    entry_creations: list[dict[str, Any]] = field(default_factory=list)
    spell_creations: list[dict[str, Any]] = field(default_factory=list)
    entry_remap: dict[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (
            self.root_update
            or self.deletions
            or self.creations
            or self.entry_creations
            or self.spell_creations
        )


def classify_embedded(items: Iterable[Mapping[str, Any]]) -> dict[Section, list[Mapping[str, Any]]]:
    """Group embedded payloads by the section that owns them."""
    grouped: dict[Section, list[Mapping[str, Any]]] = {}
    for item in items:
        section = section_for(item.get("type"))
        if section is not None:
            grouped.setdefault(section, []).append(item)
    return grouped


def _walk(payload: Mapping[str, Any], path: str) -> Any:
    current: Any = payload
    for part in path.split("."):
        current = current.get(part) if isinstance(current, Mapping) else None
    return current


def _system(document: Mapping[str, Any]) -> Mapping[str, Any]:
    system = document.get("system")
    return system if isinstance(system, Mapping) else {}


def _value(value: Any) -> Any:
    return value.get("value") if isinstance(value, Mapping) else value


def document_key(section: Section, document: Mapping[str, Any]) -> Hashable:
    """Dedup key of a non-spell embedded payload.

    Inventory documents without a slug are keyed by ``slugify(name)``, the
    slug the normalizer gives them, so stored and synthesized records agree.
    """
    if section is Section.INVENTORY:
        slug = _system(document).get("slug")
        if isinstance(slug, str) and slug.strip():
            return slug.strip()
        name = document.get("name")
        if isinstance(name, str) and slugify(name):
            return slugify(name)
        return (normalize_key(document.get("name")), document_item_category(document).value)
    return normalize_key(document.get("name"))


def document_entry_key(document: Mapping[str, Any]) -> tuple[str, str, str]:
    """Dedup key of a spellcasting-entry payload."""
    system = _system(document)
    return (
        normalize_key(document.get("name")),
        str(_value(system.get("tradition")) or "").lower(),
        str(_value(system.get("prepared")) or "").lower(),
    )


def _document_spell_key(document: Mapping[str, Any]) -> tuple[int, str]:
    level = _value(_system(document).get("level"))
    return (level if isinstance(level, int) else 0, normalize_key(document.get("name")))


def _location(document: Mapping[str, Any]) -> str | None:
    return _value(_system(document).get("location"))


def _plan_spells(
    plan: MutationPlan,
    operation: MergeOperation,
    existing: list[Mapping[str, Any]],
    synthesized: list[dict[str, Any]],
) -> None:
    existing_entries = [item for item in existing if item.get("type") == "spellcastingEntry"]
    new_entries = [item for item in synthesized if item.get("type") == "spellcastingEntry"]
    new_spells = [item for item in synthesized if item.get("type") == "spell"]

    if operation is MergeOperation.REPLACE:
        plan.deletions.extend(item["_id"] for item in existing if item.get("_id"))
        plan.entry_creations.extend(new_entries)
        plan.spell_creations.extend(new_spells)
        return

    entries_by_key = {document_entry_key(item): item["_id"] for item in existing_entries}
    known_spells = {
        (_location(item), _document_spell_key(item))
        for item in existing
        if item.get("type") == "spell"
    }
    for entry in new_entries:
        existing_id = entries_by_key.get(document_entry_key(entry))
        if existing_id is None:
            plan.entry_creations.append(entry)
        else:
            plan.entry_remap[entry["_id"]] = existing_id

    for spell in new_spells:
        location = plan.entry_remap.get(_location(spell), _location(spell))
        if (location, _document_spell_key(spell)) in known_spells:
            continue
        plan.spell_creations.append(spell)


def plan_mutations(
    existing_document: Mapping[str, Any],
    synthesized: DocumentGraph,
    selection: Mapping[Section | str, MergeOperation | str],
) -> MutationPlan:
    """Translate a section merge into mutations of an existing document.

    Args:
        existing_document: The current host document, embedded records
            under ``items``.
        synthesized: The graph synthesized from the merged canonical record.
        selection: Operation per selected section.

    Returns:
        The plan. ``replace`` deletes every embedded record the section owns
        and creates the synthesized ones; ``add`` creates only records whose
        dedup key is not already present.
    """
    operations = _selection(selection)
    root = synthesized.root.to_payload()
    existing = classify_embedded(
        item for item in existing_document.get("items") or [] if isinstance(item, Mapping)
    )
    created = classify_embedded(record.to_payload() for record in synthesized.embedded)

    plan = MutationPlan()
    for section, operation in operations.items():
        for path in SECTION_ROOT_PATHS.get(section, ()):
            plan.root_update[path] = _walk(root, path)
        if section not in LIST_SECTIONS or section is Section.SKILLS:
            continue

        current = existing.get(section, [])
        incoming = created.get(section, [])
        if section is Section.SPELLS:
            _plan_spells(plan, operation, current, incoming)
        elif operation is MergeOperation.REPLACE:
            plan.deletions.extend(item["_id"] for item in current if item.get("_id"))
            plan.creations.extend(incoming)
        else:
            known = {document_key(section, item) for item in current}
            plan.creations.extend(
                item for item in incoming if document_key(section, item) not in known
            )

    logger.debug(
        "Mutations planned",
        slug=synthesized.slug,
        root_paths=len(plan.root_update),
        deletions=len(plan.deletions),
        creations=len(plan.creations),
        entries=len(plan.entry_creations),
        spells=len(plan.spell_creations),
    )
    return plan


__all__ = [
    "ActorPatch",
    "SECTION_FIELDS",
    "LIST_SECTIONS",
    "SECTION_ROOT_PATHS",
    "SECTION_EMBEDDED_TYPES",
    "sections_in",
    "inventory_key",
    "adopt_inventory_slugs",
    "entry_key",
    "spell_key",
    "upsert",
    "merge_sections",
    "MutationPlan",
    "classify_embedded",
    "document_key",
    "document_entry_key",
    "plan_mutations",
]
