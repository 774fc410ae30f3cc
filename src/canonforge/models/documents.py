"""Host document graph models.

A document graph is the host store's representation of one entity: a root
document with a nested ``system`` object, plus the ordered embedded records
it owns. Every embedded-record kind (strike, action, spellcasting entry,
spell, inventory item) is a closed model with explicit field paths, so the
synthesizer and the merge planner never guess at unknown shapes.

The normalizer reads documents coming *from* the host as plain mappings,
because those may be partial or legacy-shaped; these models describe what
canonforge *writes*.
"""

from __future__ import annotations

from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, model_serializer
from pydantic.alias_generators import to_camel

from canonforge.models.enums import FrequencyInterval, SenseAcuity


class HostModel(BaseModel):
    """Base class for host document models.

    Fields listed in ``omit_when_none`` are left out of the dump entirely
    when unset, because the host treats a missing key and ``null``
    differently.
    """

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    omit_when_none: ClassVar[frozenset[str]] = frozenset()

    @model_serializer(mode="wrap")
    def _omit_absent(self, handler: Any) -> Any:
        data = handler(self)
        for name in self.omit_when_none:
            if getattr(self, name) is None:
                field = type(self).model_fields[name]
                data.pop(field.alias or name, None)
                data.pop(name, None)
        return data

    def to_payload(self) -> dict[str, Any]:
        """Dump the model to the host's JSON shape."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# Wrapper Shapes
# =============================================================================


class TextValue(HostModel):
    value: str = ""


class IntValue(HostModel):
    value: int | None = None


class NumberValue(HostModel):
    value: float = 0


class ListValue(HostModel):
    value: list[str] = Field(default_factory=list)


class Description(HostModel):
    value: str = ""
    gm: str = ""


class Publication(HostModel):
    title: str = ""
    authors: str = ""
    license: str = "OGL"
    remaster: bool = False


class TagBlock(HostModel):
    """Trait block of an embedded record: recognised keys plus overflow."""

    value: list[str] = Field(default_factory=list)
    other_tags: list[str] = Field(default_factory=list)


class RarityTraits(HostModel):
    """Trait block of a standalone action or item."""

    value: list[str] = Field(default_factory=list)
    rarity: str = "common"


class Coins(HostModel):
    """A price in the four host denominations."""

    model_config = ConfigDict(frozen=True)

    pp: int = Field(default=0, ge=0)
    gp: int = Field(default=0, ge=0)
    sp: int = Field(default=0, ge=0)
    cp: int = Field(default=0, ge=0)


class Price(HostModel):
    value: Coins = Field(default_factory=Coins)


class FrequencyValue(HostModel):
    """Mechanical frequency: ``max`` uses per ``per`` interval."""

    value: int
    max: int
    per: FrequencyInterval


# =============================================================================
# Embedded Records
# =============================================================================


class DamageRoll(HostModel):
    damage: str
    damage_type: str | None = None
    category: str | None = None
    notes: str | None = None

    omit_when_none: ClassVar[frozenset[str]] = frozenset({"notes"})


class StrikeSystem(HostModel):
    slug: str
    bonus: IntValue
    damage_rolls: dict[str, DamageRoll]
    weapon_type: TextValue
    traits: TagBlock
    attack_effects: ListValue
    description: Description
    publication: Publication = Field(default_factory=Publication)
    rules: list[Any] = Field(default_factory=list)


class ActionSystem(HostModel):
    slug: str
    action_type: TextValue
    actions: IntValue
    category: str = "offensive"
    traits: TagBlock
    description: Description
    requirements: TextValue = Field(default_factory=TextValue)
    trigger: TextValue = Field(default_factory=TextValue)
    frequency: FrequencyValue | None = None
    publication: Publication = Field(default_factory=Publication)
    rules: list[Any] = Field(default_factory=list)

    omit_when_none: ClassVar[frozenset[str]] = frozenset({"frequency"})


class SpellDC(HostModel):
    value: int | None = None
    dc: int | None = None


class SpellcastingEntrySystem(HostModel):
    slug: str
    tradition: TextValue
    prepared: TextValue
    spelldc: SpellDC
    description: Description
    publication: Publication = Field(default_factory=Publication)
    rules: list[Any] = Field(default_factory=list)


class SpellSystem(HostModel):
    slug: str
    level: IntValue
    location: TextValue
    description: Description
    traditions: ListValue = Field(default_factory=ListValue)
    publication: Publication = Field(default_factory=Publication)
    rules: list[Any] = Field(default_factory=list)


class InventorySystem(HostModel):
    slug: str
    description: Description
    level: IntValue
    quantity: int = 1
    usage: TextValue = Field(default_factory=lambda: TextValue(value="held-in-one-hand"))
    bulk: NumberValue = Field(default_factory=NumberValue)
    size: str = "med"
    price: Price = Field(default_factory=Price)
    traits: RarityTraits = Field(default_factory=RarityTraits)
    category: str | None = None
    publication: Publication = Field(default_factory=Publication)
    rules: list[Any] = Field(default_factory=list)

    omit_when_none: ClassVar[frozenset[str]] = frozenset({"category"})


class EmbeddedDocument(HostModel):
    """Fields shared by every embedded record."""

    id: str = Field(alias="_id")
    name: str
    type: str
    img: str
    sort: int = 0
    effects: list[Any] = Field(default_factory=list)
    folder: None = None
    flags: dict[str, Any] = Field(default_factory=dict)


class StrikeDocument(EmbeddedDocument):
    type: Literal["melee"] = "melee"
    system: StrikeSystem


class ActionDocument(EmbeddedDocument):
    type: Literal["action"] = "action"
    system: ActionSystem


class SpellcastingEntryDocument(EmbeddedDocument):
    type: Literal["spellcastingEntry"] = "spellcastingEntry"
    system: SpellcastingEntrySystem


class SpellDocument(EmbeddedDocument):
    type: Literal["spell"] = "spell"
    system: SpellSystem


class InventoryDocument(EmbeddedDocument):
    """A physical item; ``type`` is the host item type (weapon, consumable...)."""

    system: InventorySystem


EmbeddedRecord = (
    StrikeDocument
    | ActionDocument
    | SpellcastingEntryDocument
    | SpellDocument
    | InventoryDocument
)


# =============================================================================
# Standalone Roots
# =============================================================================


class ActionItemSystem(HostModel):
    slug: str
    description: TextValue
    traits: RarityTraits
    action_type: TextValue
    actions: IntValue
    requirements: TextValue
    source: TextValue
    publication: Publication = Field(default_factory=Publication)
    rules: list[Any] = Field(default_factory=list)


class ItemSystem(HostModel):
    slug: str
    description: TextValue
    traits: RarityTraits
    level: IntValue
    price: Price
    quantity: int = 1
    category: str | None = None
    source: TextValue
    publication: Publication = Field(default_factory=Publication)
    rules: list[Any] = Field(default_factory=list)

    omit_when_none: ClassVar[frozenset[str]] = frozenset({"category"})


class RootDocument(HostModel):
    name: str
    type: str
    img: str
    folder: str | None = None
    flags: dict[str, Any] = Field(default_factory=dict)


class ActionItemDocument(RootDocument):
    type: Literal["action"] = "action"
    system: ActionItemSystem


class ItemDocument(RootDocument):
    system: ItemSystem


# =============================================================================
# Actor Root
# =============================================================================


class ActorTraits(HostModel):
    value: list[str] = Field(default_factory=list)
    rarity: str = "common"
    size: TextValue
    other_tags: list[str] = Field(default_factory=list)


class Languages(HostModel):
    value: list[str] = Field(default_factory=list)
    details: str = ""


class ActorDetails(HostModel):
    level: IntValue
    alignment: TextValue
    public_notes: str = ""
    private_notes: str = ""
    blurb: str = ""
    languages: Languages
    source: TextValue
    publication: Publication


class Initiative(HostModel):
    statistic: str = "perception"


class HostHitPoints(HostModel):
    value: int
    max: int
    temp: int = 0
    details: str = ""


class HostArmorClass(HostModel):
    value: int
    details: str = ""


class HostSpeedEntry(HostModel):
    type: str
    value: int
    details: str = ""


class HostSpeed(HostModel):
    value: int
    details: str = ""
    other_speeds: list[HostSpeedEntry] = Field(default_factory=list)


class HostImmunity(HostModel):
    type: str
    exceptions: list[str] = Field(default_factory=list)
    notes: str = ""


class HostWeakness(HostModel):
    type: str
    value: int
    exceptions: list[str] = Field(default_factory=list)
    notes: str = ""


class HostResistance(HostModel):
    type: str
    value: int
    exceptions: list[str] = Field(default_factory=list)
    double_vs: list[str] = Field(default_factory=list)
    notes: str = ""


class HostAttributes(HostModel):
    hp: HostHitPoints
    ac: HostArmorClass
    speed: HostSpeed
    immunities: list[HostImmunity] = Field(default_factory=list)
    weaknesses: list[HostWeakness] = Field(default_factory=list)
    resistances: list[HostResistance] = Field(default_factory=list)
    all_saves: TextValue = Field(default_factory=TextValue)


class HostSense(HostModel):
    """A structured sense; ``range`` is in feet."""

    type: str
    acuity: SenseAcuity | None = None
    range: int | None = None

    omit_when_none: ClassVar[frozenset[str]] = frozenset({"acuity", "range"})


class HostPerception(HostModel):
    mod: int
    details: str = ""
    senses: list[HostSense] = Field(default_factory=list)
    vision: bool = True


class HostSave(HostModel):
    value: int
    save_detail: str = ""


class HostSaves(HostModel):
    fortitude: HostSave
    reflex: HostSave
    will: HostSave


class AbilityMod(HostModel):
    mod: int


class HostSkill(HostModel):
    value: int
    base: int
    details: str = ""


class ActorSystem(HostModel):
    slug: str
    traits: ActorTraits
    details: ActorDetails
    initiative: Initiative = Field(default_factory=Initiative)
    attributes: HostAttributes
    perception: HostPerception
    saves: HostSaves
    abilities: dict[str, AbilityMod]
    skills: dict[str, HostSkill] = Field(default_factory=dict)
    resources: dict[str, Any] = Field(default_factory=dict)


class TokenTexture(HostModel):
    src: str
    fit: str = "contain"
    scale_x: float = 1
    scale_y: float = 1


class TokenBar(HostModel):
    attribute: str | None = None


class PrototypeToken(HostModel):
    name: str
    display_name: int = 20
    actor_link: bool = False
    width: float
    height: float
    texture: TokenTexture
    lock_rotation: bool = True
    disposition: int = -1
    display_bars: int = 20
    bar1: TokenBar = Field(default_factory=lambda: TokenBar(attribute="attributes.hp"))
    bar2: TokenBar = Field(default_factory=TokenBar)


class ActorDocument(RootDocument):
    system: ActorSystem
    prototype_token: PrototypeToken
    effects: list[Any] = Field(default_factory=list)


# =============================================================================
# Document Graph
# =============================================================================


class DocumentGraph(BaseModel):
    """A root document plus the ordered embedded records it owns.

    Attributes:
        document_type: Host collection the root belongs to (``Item`` or
            ``Actor``).
        root: The root document without its embedded records.
        embedded: Embedded records in creation order.
    """

    model_config = ConfigDict(extra="forbid")

    document_type: Literal["Item", "Actor"]
    root: ActionItemDocument | ItemDocument | ActorDocument
    embedded: list[EmbeddedRecord] = Field(default_factory=list)

    @property
    def slug(self) -> str:
        return self.root.system.slug

    def embedded_of(self, *types: type[EmbeddedDocument]) -> list[EmbeddedRecord]:
        """Return the embedded records that are instances of ``types``."""
        return [record for record in self.embedded if isinstance(record, types)]

    def to_payload(self) -> dict[str, Any]:
        """Dump the full creation payload (root plus ``items``).

        Standalone items and actions have no embedded records, so their
        payload carries no ``items`` key.
        """
        payload = self.root.to_payload()
        if self.document_type == "Actor":
            payload["items"] = [record.to_payload() for record in self.embedded]
        return payload


__all__ = [
    "HostModel",
    "TextValue",
    "IntValue",
    "NumberValue",
    "ListValue",
    "Description",
    "Publication",
    "TagBlock",
    "RarityTraits",
    "Coins",
    "Price",
    "FrequencyValue",
    "DamageRoll",
    "StrikeSystem",
    "ActionSystem",
    "SpellDC",
    "SpellcastingEntrySystem",
    "SpellSystem",
    "InventorySystem",
    "EmbeddedDocument",
    "StrikeDocument",
    "ActionDocument",
    "SpellcastingEntryDocument",
    "SpellDocument",
    "InventoryDocument",
    "EmbeddedRecord",
    "ActionItemSystem",
    "ItemSystem",
    "RootDocument",
    "ActionItemDocument",
    "ItemDocument",
    "ActorTraits",
    "Languages",
    "ActorDetails",
    "Initiative",
    "HostHitPoints",
    "HostArmorClass",
    "HostSpeedEntry",
    "HostSpeed",
    "HostImmunity",
    "HostWeakness",
    "HostResistance",
    "HostAttributes",
    "HostSense",
    "HostPerception",
    "HostSave",
    "HostSaves",
    "AbilityMod",
    "HostSkill",
    "ActorSystem",
    "TokenTexture",
    "TokenBar",
    "PrototypeToken",
    "ActorDocument",
    "DocumentGraph",
]
