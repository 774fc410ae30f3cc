"""Document-store protocol and the import and merge write paths."""

from __future__ import annotations

from canonforge.store.importer import (
    ApplyReport,
    ImportOptions,
    MergeOutcome,
    apply_section_merge,
    import_record,
)
from canonforge.store.protocol import DocumentHandle, DocumentStore, resolve_existing


__all__ = [
    "DocumentHandle",
    "DocumentStore",
    "resolve_existing",
    "ImportOptions",
    "ApplyReport",
    "MergeOutcome",
    "import_record",
    "apply_section_merge",
]
