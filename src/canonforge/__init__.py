"""canonforge - canonical tabletop content records for a host virtual tabletop.

Generated creatures, items and actions are described as flat, validated
canonical records. canonforge turns those records into the nested document
graphs the host stores, reads host documents back into canonical form, and
merges partial regenerations into existing creatures section by section.

Example:
    >>> from canonforge import IdentifierAllocator, ensure_valid, synthesize
    >>>
    >>> record = ensure_valid(payload)
    >>> graph = synthesize(record, allocator=IdentifierAllocator())
    >>> document = graph.to_payload()

Modules:
    core: Configuration, logging, and base exceptions.
    models: Canonical record models, host document models and enums.
    parsing: Slug, rich-text, frequency, sense, trait and price parsers.
    validation: Schema validation and schema-version migrations.
    mapping: Synthesis, normalization and section merging.
    store: Document-store protocol plus the import and merge write paths.
"""

from __future__ import annotations

# Core
from canonforge.core.config import Settings, get_settings
from canonforge.core.exceptions import (
    CanonForgeError,
    LibraryNotFoundError,
    PatchScopeError,
    SchemaViolationError,
    SystemMismatchError,
    UnresolvedReferenceError,
)
from canonforge.core.logging import configure_from_settings, configure_logging, get_logger

# Records and documents
from canonforge.models.canonical import (
    ActionRecord,
    ActorPatch,
    ActorRecord,
    ItemRecord,
)
from canonforge.models.documents import DocumentGraph
from canonforge.models.enums import EntityType, MergeOperation, Section, SystemId

# Validation
from canonforge.validation.migrations import migrate_to_latest
from canonforge.validation.schema import ensure_valid, validate

# Mapping
from canonforge.mapping.identifiers import IdentifierAllocator
from canonforge.mapping.merge import merge_sections, plan_mutations
from canonforge.mapping.normalizer import normalize_document
from canonforge.mapping.synthesizer import synthesize

# Store
from canonforge.store.importer import ImportOptions, apply_section_merge, import_record
from canonforge.store.protocol import DocumentHandle, DocumentStore


__version__ = "0.3.0"

__all__ = [
    "__version__",
    # Core
    "Settings",
    "get_settings",
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "CanonForgeError",
    "SchemaViolationError",
    "SystemMismatchError",
    "PatchScopeError",
    "UnresolvedReferenceError",
    "LibraryNotFoundError",
    # Records and documents
    "ActionRecord",
    "ItemRecord",
    "ActorRecord",
    "ActorPatch",
    "DocumentGraph",
    "EntityType",
    "SystemId",
    "Section",
    "MergeOperation",
    # Validation
    "validate",
    "ensure_valid",
    "migrate_to_latest",
    # Mapping
    "IdentifierAllocator",
    "synthesize",
    "normalize_document",
    "merge_sections",
    "plan_mutations",
    # Store
    "DocumentHandle",
    "DocumentStore",
    "ImportOptions",
    "import_record",
    "apply_section_merge",
]
