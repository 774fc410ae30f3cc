"""Canonical record models.

The canonical schema is the versioned, system-agnostic JSON shape that the
generation layer produces and that the normalizer exports. Records are
pydantic models with ``extra="forbid"`` so unknown properties are rejected,
and camelCase wire aliases so that ``model_dump(by_alias=True)`` reproduces
the JSON exactly.

Models:
    ActionRecord: A standalone action.
    ItemRecord: A standalone item.
    ActorRecord: A creature with nested strikes, actions, inventory and
        spellcasting (schema version 3).
    LegacyActorRecord: The actor shape of schema versions 1 and 2, which
        predates inventory.

Example:
    >>> record = ActionRecord.model_validate(
    ...     {
    ...         "schema_version": 3,
    ...         "systemId": "pf2e",
    ...         "type": "action",
    ...         "slug": "power-attack",
    ...         "name": "Power Attack",
    ...         "actionType": "two-actions",
    ...         "description": "Make a Strike.",
    ...     }
    ... )
    >>> record.action_type.count
    2
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    model_validator,
)
from pydantic.alias_generators import to_camel

from canonforge.models.enums import (
    ActionCost,
    ActionExecution,
    ActorCategory,
    ActorSize,
    ItemCategory,
    Rarity,
    SpellcastingCategory,
    StrikeType,
    SystemId,
)


# =============================================================================
# Type Definitions
# =============================================================================

NonEmptyStr = Annotated[StrictStr, Field(min_length=1)]
Level = Annotated[StrictInt, Field(ge=-1, description="Level (-1 or higher)")]
NonNegativeInt = Annotated[StrictInt, Field(ge=0)]


class CanonicalModel(BaseModel):
    """Base class for every canonical model.

    Null values are accepted for properties that have a non-null default
    (``traits: null`` means ``traits: []``), matching the nullable-with-default
    behaviour of the JSON schema.
    """

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls_with_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        cleaned = dict(data)
        for name, field in cls.model_fields.items():
            if field.is_required():
                continue
            if field.default is None and field.default_factory is None:
                continue
            key = field.alias or name
            if key in cleaned and cleaned[key] is None:
                del cleaned[key]
        return cleaned

    def to_payload(self) -> dict[str, Any]:
        """Dump the model to its JSON wire shape."""
        return self.model_dump(mode="json", by_alias=True)


class BaseRecord(CanonicalModel):
    """Fields shared by every canonical record."""

    schema_version: StrictInt = Field(alias="schema_version", ge=1)
    system_id: SystemId
    slug: NonEmptyStr
    name: NonEmptyStr


# =============================================================================
# Action & Item
# =============================================================================


class ActionRecord(BaseRecord):
    """A standalone action."""

    type: Literal["action"]
    action_type: ActionExecution
    description: NonEmptyStr
    traits: list[NonEmptyStr] = Field(default_factory=list)
    requirements: str | None = None
    img: str | None = None
    rarity: Rarity = Rarity.COMMON
    source: str = ""


class ItemRecord(BaseRecord):
    """A standalone item. ``price`` is in gold pieces."""

    type: Literal["item"]
    item_type: ItemCategory
    rarity: Rarity
    level: Level
    price: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    traits: list[NonEmptyStr] = Field(default_factory=list)
    description: str = ""
    img: str | None = None
    source: str = ""


# =============================================================================
# Actor Attributes
# =============================================================================


class HitPoints(CanonicalModel):
    value: NonNegativeInt
    max: NonNegativeInt
    temp: StrictInt = 0
    details: str | None = None


class ArmorClass(CanonicalModel):
    value: StrictInt
    details: str | None = None


class Perception(CanonicalModel):
    """Perception modifier plus free-text senses.

    Senses are kept as text in the canonical shape; the synthesizer parses
    them into structured host senses.
    """

    value: StrictInt
    details: str | None = None
    senses: list[NonEmptyStr] = Field(default_factory=list)


class SpeedEntry(CanonicalModel):
    type: NonEmptyStr
    value: NonNegativeInt
    details: str | None = None


class Speed(CanonicalModel):
    value: NonNegativeInt
    details: str | None = None
    other: list[SpeedEntry] = Field(default_factory=list)


class SaveValue(CanonicalModel):
    value: StrictInt
    details: str | None = None


class Saves(CanonicalModel):
    fortitude: SaveValue
    reflex: SaveValue
    will: SaveValue


class Immunity(CanonicalModel):
    type: NonEmptyStr
    exceptions: list[NonEmptyStr] = Field(default_factory=list)
    details: str | None = None


class Weakness(CanonicalModel):
    type: NonEmptyStr
    value: NonNegativeInt
    exceptions: list[NonEmptyStr] = Field(default_factory=list)
    details: str | None = None


class Resistance(CanonicalModel):
    type: NonEmptyStr
    value: NonNegativeInt
    exceptions: list[NonEmptyStr] = Field(default_factory=list)
    double_vs: list[NonEmptyStr] = Field(default_factory=list)
    details: str | None = None


class ActorAttributes(CanonicalModel):
    """Defensive and sensory statistics of an actor."""

    hp: HitPoints
    ac: ArmorClass
    perception: Perception
    speed: Speed
    saves: Saves
    immunities: list[Immunity] = Field(default_factory=list)
    weaknesses: list[Weakness] = Field(default_factory=list)
    resistances: list[Resistance] = Field(default_factory=list)


class AbilityModifiers(CanonicalModel):
    """The six ability modifiers.

    ``str`` and ``int`` are exposed as ``str_`` and ``int_`` in Python.
    """

    str_: StrictInt = Field(alias="str")
    dex: StrictInt
    con: StrictInt
    int_: StrictInt = Field(alias="int")
    wis: StrictInt
    cha: StrictInt


# =============================================================================
# Actor Sub-Records
# =============================================================================


class Skill(CanonicalModel):
    slug: NonEmptyStr
    modifier: StrictInt
    details: str | None = None


class StrikeDamage(CanonicalModel):
    formula: NonEmptyStr
    damage_type: str | None = None
    notes: str | None = None


class Strike(CanonicalModel):
    """A melee or ranged attack."""

    name: NonEmptyStr
    type: StrikeType
    attack_bonus: StrictInt
    traits: list[NonEmptyStr] = Field(default_factory=list)
    damage: list[StrikeDamage] = Field(min_length=1)
    effects: list[NonEmptyStr] = Field(default_factory=list)
    description: str | None = None


class ActorAction(CanonicalModel):
    """An ability on an actor's stat block.

    ``frequency`` is free text such as "once per day"; the synthesizer parses
    it into a mechanical frequency when it can.
    """

    name: NonEmptyStr
    action_cost: ActionCost
    description: NonEmptyStr
    traits: list[NonEmptyStr] = Field(default_factory=list)
    requirements: str | None = None
    trigger: str | None = None
    frequency: str | None = None


class InventoryEntry(CanonicalModel):
    """One carried item. A missing ``itemType`` is inferred at synthesis."""

    name: NonEmptyStr
    slug: str | None = None
    item_type: ItemCategory | None = None
    quantity: StrictInt = Field(default=1, ge=1)
    level: Level = 0
    description: str | None = None
    img: str | None = None


class Spell(CanonicalModel):
    level: NonNegativeInt
    name: NonEmptyStr
    description: str | None = None
    tradition: str | None = None


class SpellcastingEntry(CanonicalModel):
    """A spellcasting entry with its ordered spell list."""

    name: NonEmptyStr
    tradition: NonEmptyStr
    casting_type: SpellcastingCategory
    attack_bonus: StrictInt | None = None
    save_dc: StrictInt | None = Field(default=None, alias="saveDC")
    notes: str | None = None
    spells: list[Spell]


# =============================================================================
# Actor Records
# =============================================================================


class LegacyActorRecord(BaseRecord):
    """Actor shape for schema versions 1 and 2 (no inventory)."""

    type: Literal["actor"]
    actor_type: ActorCategory
    rarity: Rarity
    level: Level
    size: ActorSize
    traits: list[NonEmptyStr] = Field(default_factory=list)
    alignment: str | None = None
    languages: list[NonEmptyStr] = Field(default_factory=list)
    attributes: ActorAttributes
    abilities: AbilityModifiers
    skills: list[Skill] = Field(default_factory=list)
    strikes: list[Strike] = Field(default_factory=list)
    actions: list[ActorAction] = Field(default_factory=list)
    spellcasting: list[SpellcastingEntry] = Field(default_factory=list)
    description: str | None = None
    recall_knowledge: str | None = None
    img: str | None = None
    source: str = ""


class ActorRecord(LegacyActorRecord):
    """Actor shape for the latest schema version."""

    inventory: list[InventoryEntry] = Field(default_factory=list)


CanonicalRecord = ActionRecord | ItemRecord | ActorRecord


class ActorPatch(CanonicalModel):
    """A partial actor restricted to mergeable sections.

    Every field is optional; which fields were actually supplied is read
    from ``model_fields_set``. Identity fields (slug, name, type) are not
    patchable and are rejected as additional properties.
    """

    level: Level | None = None
    size: ActorSize | None = None
    rarity: Rarity | None = None
    traits: list[NonEmptyStr] | None = None
    alignment: str | None = None
    languages: list[NonEmptyStr] | None = None
    abilities: AbilityModifiers | None = None
    attributes: ActorAttributes | None = None
    skills: list[Skill] | None = None
    strikes: list[Strike] | None = None
    actions: list[ActorAction] | None = None
    inventory: list[InventoryEntry] | None = None
    spellcasting: list[SpellcastingEntry] | None = None
    description: str | None = None
    recall_knowledge: str | None = None


__all__ = [
    "NonEmptyStr",
    "Level",
    "CanonicalModel",
    "BaseRecord",
    "ActionRecord",
    "ItemRecord",
    "HitPoints",
    "ArmorClass",
    "Perception",
    "SpeedEntry",
    "Speed",
    "SaveValue",
    "Saves",
    "Immunity",
    "Weakness",
    "Resistance",
    "ActorAttributes",
    "AbilityModifiers",
    "Skill",
    "StrikeDamage",
    "Strike",
    "ActorAction",
    "InventoryEntry",
    "Spell",
    "SpellcastingEntry",
    "LegacyActorRecord",
    "ActorRecord",
    "CanonicalRecord",
    "ActorPatch",
]
