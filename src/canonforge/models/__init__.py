"""Canonical record models, host document models and shared enums."""

from __future__ import annotations

from canonforge.models.canonical import (
    AbilityModifiers,
    ActionRecord,
    ActorAction,
    ActorAttributes,
    ActorPatch,
    ActorRecord,
    CanonicalRecord,
    InventoryEntry,
    ItemRecord,
    LegacyActorRecord,
    Skill,
    Spell,
    SpellcastingEntry,
    Strike,
    StrikeDamage,
)
from canonforge.models.documents import (
    ActionDocument,
    Coins,
    DocumentGraph,
    EmbeddedRecord,
    FrequencyValue,
    HostSense,
    InventoryDocument,
    SpellcastingEntryDocument,
    SpellDocument,
    StrikeDocument,
)
from canonforge.models.enums import (
    ActionCost,
    ActionExecution,
    ActorCategory,
    ActorSize,
    EntityType,
    FrequencyInterval,
    ItemCategory,
    MergeOperation,
    Rarity,
    Section,
    SenseAcuity,
    SpellcastingCategory,
    StrikeType,
    SystemId,
)


__all__ = [
    # Canonical records
    "ActionRecord",
    "ItemRecord",
    "ActorRecord",
    "LegacyActorRecord",
    "CanonicalRecord",
    "ActorAttributes",
    "ActorPatch",
    "AbilityModifiers",
    "Skill",
    "Strike",
    "StrikeDamage",
    "ActorAction",
    "InventoryEntry",
    "Spell",
    "SpellcastingEntry",
    # Host documents
    "DocumentGraph",
    "EmbeddedRecord",
    "StrikeDocument",
    "ActionDocument",
    "SpellcastingEntryDocument",
    "SpellDocument",
    "InventoryDocument",
    "Coins",
    "FrequencyValue",
    "HostSense",
    # Enums
    "SystemId",
    "EntityType",
    "ActionExecution",
    "ActionCost",
    "ItemCategory",
    "ActorCategory",
    "ActorSize",
    "Rarity",
    "StrikeType",
    "SpellcastingCategory",
    "FrequencyInterval",
    "SenseAcuity",
    "Section",
    "MergeOperation",
]
