"""Applying synthesized documents to a document store.

Two write paths exist:

- :func:`import_record` synthesizes a canonical record and either updates
  the slug-matched document in place or creates a new one.
- :func:`apply_section_merge` merges a section patch into an existing actor
  and applies the resulting mutations in a fixed order: root update,
  deletions, creations, spellcasting-entry creation, identifier remap, spell
  creation. Spells must reference the identifiers the store assigned to
  their entries, not the provisional ones from synthesis.

Store mutations are not atomic. Store errors propagate unchanged; an
:class:`ApplyReport` supplied by the caller records the completed steps and
keeps the synthesized payload so the generated content can be recovered.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from canonforge.core.exceptions import UnresolvedReferenceError
from canonforge.core.logging import get_logger, record_context
from canonforge.mapping.identifiers import IdentifierAllocator
from canonforge.mapping.merge import MutationPlan, merge_sections, plan_mutations
from canonforge.mapping.normalizer import normalize_actor
from canonforge.mapping.synthesizer import synthesize, synthesize_actor
from canonforge.models.canonical import ActorPatch, ActorRecord, BaseRecord
from canonforge.models.documents import DocumentGraph
from canonforge.models.enums import MergeOperation, Section
from canonforge.store.protocol import DocumentHandle, DocumentStore, resolve_existing


logger = get_logger(__name__)

EMBEDDED_TYPE_NAME = "Item"
"""Host type name of every embedded record owned by an actor."""


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class ImportOptions:
    """Where an imported record goes.

    Attributes:
        library_id: Shared content library to import into; None for the world.
        folder_id: Folder to file the document under.
        document_id: Update this document instead of resolving by slug.
    """

    library_id: str | None = None
    folder_id: str | None = None
    document_id: str | None = None


@dataclass
class ApplyReport:
    """Progress of a multi-step store mutation.

    Attributes:
        payload: The synthesized creation payload, kept for manual recovery.
        plan: The mutation plan being applied.
        completed: Names of the steps that finished.
        created: Handles of every embedded record created so far.
    """

    payload: dict[str, Any] | None = None
    plan: MutationPlan | None = None
    completed: list[str] = field(default_factory=list)
    created: list[DocumentHandle] = field(default_factory=list)


@dataclass
class MergeOutcome:
    """Result of a section merge applied to the store.

    Attributes:
        record: The merged canonical actor.
        graph: The document graph synthesized from it.
        plan: The applied mutation plan.
        entry_ids: Provisional spellcasting-entry identifier to the
            identifier the entry has in the store.
        unresolved: Spells skipped because their entry could not be resolved.
    """

    record: ActorRecord
    graph: DocumentGraph
    plan: MutationPlan
    entry_ids: dict[str, str] = field(default_factory=dict)
    unresolved: list[UnresolvedReferenceError] = field(default_factory=list)


# =============================================================================
# Import
# =============================================================================


async def import_record(
    store: DocumentStore,
    record: BaseRecord | Mapping[str, Any],
    options: ImportOptions | None = None,
    *,
    allocator: IdentifierAllocator | None = None,
    allowed_traits: Iterable[str] = (),
    active_system_id: str | None = None,
) -> DocumentHandle:
    """Synthesize a record and write it to the store.

    The existing document is found by slug (see :func:`resolve_existing`)
    and updated in place; otherwise a new document is created in the
    requested scope.

    Raises:
        SchemaViolationError: If the record fails validation.
        SystemMismatchError: If the record targets another game system.
        LibraryNotFoundError: If the requested library does not exist.
    """
    options = options or ImportOptions()
    graph = synthesize(
        record,
        allocator=allocator,
        allowed_traits=allowed_traits,
        active_system_id=active_system_id,
    )
    payload = graph.to_payload()
    if options.folder_id:
        payload["folder"] = options.folder_id

    with record_context(slug=graph.slug, operation="import"):
        if options.document_id:
            existing = DocumentHandle(options.document_id, graph.document_type, options.library_id)
        else:
            existing = await resolve_existing(store, graph.slug, options.library_id)

        if existing is not None:
            if not options.folder_id:
                payload.pop("folder", None)
            await store.update(existing, payload)
            logger.info("Document updated", id=existing.id, scope=existing.scope)
            return existing

        handle = await store.create(graph.document_type, payload, scope=options.library_id)
        logger.info("Document created", id=handle.id, scope=handle.scope)
        return handle


# =============================================================================
# Section Merge
# =============================================================================


def _location(spell: Mapping[str, Any]) -> str | None:
    return spell.get("system", {}).get("location", {}).get("value")


def _relocated(spell: Mapping[str, Any], entry_id: str) -> dict[str, Any]:
    payload = copy.deepcopy(dict(spell))
    payload["system"]["location"]["value"] = entry_id
    return payload


async def apply_section_merge(
    store: DocumentStore,
    handle: DocumentHandle,
    existing_document: Mapping[str, Any] | DocumentGraph,
    patch: ActorPatch | Mapping[str, Any],
    selection: Mapping[Section | str, MergeOperation | str],
    *,
    allocator: IdentifierAllocator | None = None,
    allowed_traits: Iterable[str] = (),
    active_system_id: str | None = None,
    report: ApplyReport | None = None,
) -> MergeOutcome:
    """Merge a section patch into an actor and apply it to the store.

    Args:
        store: The document store.
        handle: Handle of the actor being updated.
        existing_document: The actor's current document, embedded records
            under ``items``.
        patch: Section patch from the generation layer.
        selection: Operation per selected section.
        allocator: Identifier allocator for the synthesis run.
        allowed_traits: Trait keys the host recognises.
        active_system_id: Game system of the host; defaults to settings.
        report: Filled in as steps complete, so a caller can inspect a
            partially applied merge after a store error.

    Returns:
        The outcome, including spells skipped for unresolved entries.

    Raises:
        SchemaViolationError: If the patch or the merged actor is invalid.
        PatchScopeError: If the patch carries unselected sections.
        SystemMismatchError: If the actor targets another game system.
    """
    report = report if report is not None else ApplyReport()
    if isinstance(existing_document, DocumentGraph):
        existing_document = existing_document.to_payload()

    snapshot = normalize_actor(existing_document, system_id=active_system_id)
    merged = merge_sections(snapshot, patch, selection)
    graph = synthesize_actor(
        merged,
        allocator=allocator,
        allowed_traits=allowed_traits,
        active_system_id=active_system_id,
    )
    plan = plan_mutations(existing_document, graph, selection)
    report.payload = graph.to_payload()
    report.plan = plan
    outcome = MergeOutcome(record=merged, graph=graph, plan=plan, entry_ids=dict(plan.entry_remap))

    with record_context(slug=merged.slug, operation="section_merge"):
        if plan.root_update:
            await store.update(handle, plan.root_update)
            report.completed.append("root_update")

        if plan.deletions:
            await store.delete_embedded(handle, EMBEDDED_TYPE_NAME, plan.deletions)
            report.completed.append("deletions")

        if plan.creations:
            created = await store.create_embedded(handle, EMBEDDED_TYPE_NAME, plan.creations)
            report.created.extend(created)
            report.completed.append("creations")

        if plan.entry_creations:
            created = await store.create_embedded(handle, EMBEDDED_TYPE_NAME, plan.entry_creations)
            report.created.extend(created)
            for payload, entry_handle in zip(plan.entry_creations, created):
                outcome.entry_ids[payload["_id"]] = entry_handle.id
            report.completed.append("entry_creations")

        spells = []
        for spell in plan.spell_creations:
            location = _location(spell)
            entry_id = outcome.entry_ids.get(location)
            if entry_id is None:
                error = UnresolvedReferenceError(
                    f"Spell {spell.get('name')!r} references an unresolved spellcasting entry",
                    spell=str(spell.get("name")),
                    location=location,
                )
                logger.warning("Skipping spell", spell=spell.get("name"), location=location)
                outcome.unresolved.append(error)
                continue
            spells.append(_relocated(spell, entry_id))
        report.completed.append("remap")

        if spells:
            created = await store.create_embedded(handle, EMBEDDED_TYPE_NAME, spells)
            report.created.extend(created)
            report.completed.append("spell_creations")

        logger.info(
            "Section merge applied",
            sections=sorted(Section(section).value for section in selection),
            created=len(report.created),
            deleted=len(plan.deletions),
            unresolved=len(outcome.unresolved),
        )
        return outcome


__all__ = [
    "EMBEDDED_TYPE_NAME",
    "ImportOptions",
    "ApplyReport",
    "MergeOutcome",
    "import_record",
    "apply_section_merge",
]
