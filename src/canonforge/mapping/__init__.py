"""Conversion between canonical records and host documents.

The synthesizer turns canonical records into host document graphs, the
normalizer reads host documents back into canonical records, and the merge
module combines an existing actor with a section patch.
"""

from __future__ import annotations

from canonforge.mapping.identifiers import IdentifierAllocator, position_key
from canonforge.mapping.merge import (
    MutationPlan,
    entry_key,
    inventory_key,
    merge_sections,
    plan_mutations,
    sections_in,
    spell_key,
    upsert,
)
from canonforge.mapping.normalizer import (
    normalize_action,
    normalize_actor,
    normalize_document,
    normalize_item,
)
from canonforge.mapping.synthesizer import (
    SynthesisContext,
    synthesize,
    synthesize_action,
    synthesize_actor,
    synthesize_item,
)
from canonforge.mapping.tables import infer_item_category, section_for


__all__ = [
    # Identifiers
    "IdentifierAllocator",
    "position_key",
    # Synthesis
    "SynthesisContext",
    "synthesize",
    "synthesize_action",
    "synthesize_item",
    "synthesize_actor",
    "infer_item_category",
    "section_for",
    # Normalization
    "normalize_action",
    "normalize_item",
    "normalize_actor",
    "normalize_document",
    # Merge
    "MutationPlan",
    "sections_in",
    "inventory_key",
    "entry_key",
    "spell_key",
    "upsert",
    "merge_sections",
    "plan_mutations",
]
