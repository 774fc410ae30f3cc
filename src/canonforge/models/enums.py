"""Enumeration types for the canonical schema.

Every closed vocabulary of the canonical schema lives here so that the
validator, the normalizer and the synthesizer share one definition. Values
are the exact strings used on the wire.
"""

from __future__ import annotations

from enum import StrEnum


class SystemId(StrEnum):
    """Game systems a canonical record can target."""

    PF2E = "pf2e"
    SF2E = "sf2e"


class EntityType(StrEnum):
    """Discriminator for the three canonical record kinds."""

    ACTION = "action"
    ITEM = "item"
    ACTOR = "actor"


class ActionExecution(StrEnum):
    """Action cost of a standalone action record."""

    ONE = "one-action"
    TWO = "two-actions"
    THREE = "three-actions"
    FREE = "free"
    REACTION = "reaction"

    @property
    def count(self) -> int | None:
        """Number of actions spent, or None for free actions and reactions."""
        return {
            ActionExecution.ONE: 1,
            ActionExecution.TWO: 2,
            ActionExecution.THREE: 3,
        }.get(self)


class ActionCost(StrEnum):
    """Action cost of an actor ability; adds ``passive`` to the executions."""

    ONE = "one-action"
    TWO = "two-actions"
    THREE = "three-actions"
    FREE = "free"
    REACTION = "reaction"
    PASSIVE = "passive"


class ItemCategory(StrEnum):
    """Canonical item categories."""

    WEAPON = "weapon"
    ARMOR = "armor"
    EQUIPMENT = "equipment"
    CONSUMABLE = "consumable"
    FEAT = "feat"
    SPELL = "spell"
    WAND = "wand"
    STAFF = "staff"
    OTHER = "other"


class ActorCategory(StrEnum):
    """Canonical actor categories."""

    CHARACTER = "character"
    NPC = "npc"
    HAZARD = "hazard"
    VEHICLE = "vehicle"
    FAMILIAR = "familiar"


class ActorSize(StrEnum):
    """Size categories in host abbreviation form."""

    TINY = "tiny"
    SMALL = "sm"
    MEDIUM = "med"
    LARGE = "lg"
    HUGE = "huge"
    GARGANTUAN = "grg"


class Rarity(StrEnum):
    """Rarity tiers."""

    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    UNIQUE = "unique"


class StrikeType(StrEnum):
    """Whether a strike is a melee or ranged attack."""

    MELEE = "melee"
    RANGED = "ranged"


class SpellcastingCategory(StrEnum):
    """How a spellcasting entry casts its spells."""

    PREPARED = "prepared"
    SPONTANEOUS = "spontaneous"
    INNATE = "innate"
    FOCUS = "focus"
    RITUAL = "ritual"


class FrequencyInterval(StrEnum):
    """Intervals a mechanical frequency can reset on."""

    ROUND = "round"
    TURN = "turn"
    MINUTE = "PT1M"
    TEN_MINUTES = "PT10M"
    HOUR = "PT1H"
    DAY = "day"


class SenseAcuity(StrEnum):
    """Acuity of a sense."""

    PRECISE = "precise"
    IMPRECISE = "imprecise"
    VAGUE = "vague"


class Section(StrEnum):
    """Sections of an actor that a partial patch may target."""

    CORE = "core"
    DEFENSES = "defenses"
    SKILLS = "skills"
    STRIKES = "strikes"
    ACTIONS = "actions"
    INVENTORY = "inventory"
    SPELLS = "spells"
    NARRATIVE = "narrative"


class MergeOperation(StrEnum):
    """Per-section merge operation."""

    ADD = "add"
    REPLACE = "replace"


__all__ = [
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
