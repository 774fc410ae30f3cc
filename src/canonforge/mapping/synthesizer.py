"""Canonical record -> host document graph synthesis.

The synthesizer is pure with respect to the host store: it validates the
canonical record, checks it targets the active game system, and returns a
:class:`DocumentGraph`. Whether that graph is created, used to replace an
existing document, or handed to the merge planner is the caller's decision.

Embedded records (strikes, actions, inventory, spellcasting entries and
spells) get their identifiers from an :class:`IdentifierAllocator` keyed by
content position, so synthesizing the same record twice yields the same
identifiers. Spellcasting-entry identifiers are allocated before any spell so
that each spell's ``location`` references its entry.

A few canonical details have no host field. They are kept under
``flags.canonforge`` so the normalizer can read them back:

- ``itemType``: the canonical category of an item or inventory entry
  (wands and staves share host types with other categories).
- ``unpriced``: the item had no price (the host always stores coins).
- ``frequency``: action frequency text that has no mechanical equivalent.
- ``effects``: every strike effect, including the ones the host does not
  understand and that were appended to the description.

Example:
    >>> graph = synthesize(record, allocator=IdentifierAllocator(), active_system_id="pf2e")
    >>> graph.document_type
    'Actor'
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from canonforge.core.config import get_settings
from canonforge.core.constants import (
    ACTOR_PORTRAITS,
    DEFAULT_ACTION_IMAGE,
    DEFAULT_ACTOR_IMAGE,
    DEFAULT_ITEM_IMAGE,
    DEFAULT_RANGED_STRIKE_IMAGE,
    DEFAULT_SPELL_IMAGE,
    DEFAULT_SPELLCASTING_IMAGE,
    DEFAULT_STRIKE_IMAGE,
    DEFAULT_TOKEN_SIZE,
    FLAG_SCOPE,
    INVENTORY_CATEGORY_IMAGES,
    KNOWN_ATTACK_EFFECTS,
    LATEST_SCHEMA_VERSION,
    PHYSICAL_ITEM_TYPES,
    TOKEN_SIZE_MAP,
)
from canonforge.core.exceptions import SchemaViolationError, SystemMismatchError
from canonforge.core.logging import get_logger
from canonforge.mapping.identifiers import IdentifierAllocator, position_key
from canonforge.mapping.tables import (
    ACTION_COST_TO_HOST,
    ITEM_CATEGORY_TO_HOST,
    chosen_image,
    infer_item_category,
)
from canonforge.models.canonical import (
    ActionRecord,
    ActorAction,
    ActorRecord,
    BaseRecord,
    InventoryEntry,
    ItemRecord,
    SpellcastingEntry,
    Strike,
)
from canonforge.models.documents import (
    AbilityMod,
    ActionDocument,
    ActionItemDocument,
    ActionItemSystem,
    ActionSystem,
    ActorDetails,
    ActorDocument,
    ActorSystem,
    ActorTraits,
    DamageRoll,
    Description,
    DocumentGraph,
    EmbeddedRecord,
    FrequencyValue,
    HostArmorClass,
    HostAttributes,
    HostHitPoints,
    HostImmunity,
    HostPerception,
    HostResistance,
    HostSave,
    HostSaves,
    HostSense,
    HostSkill,
    HostSpeed,
    HostSpeedEntry,
    HostWeakness,
    IntValue,
    InventoryDocument,
    InventorySystem,
    ItemDocument,
    ItemSystem,
    Languages,
    ListValue,
    Price,
    PrototypeToken,
    Publication,
    RarityTraits,
    SpellcastingEntryDocument,
    SpellcastingEntrySystem,
    SpellDC,
    SpellDocument,
    SpellSystem,
    StrikeDocument,
    StrikeSystem,
    TagBlock,
    TextValue,
    TokenTexture,
)
from canonforge.models.enums import (
    ActionCost,
    ActorCategory,
    EntityType,
    ItemCategory,
    StrikeType,
)
from canonforge.parsing.currency import decimal_to_coins
from canonforge.parsing.frequency import parse_frequency
from canonforge.parsing.rich_text import to_rich_text
from canonforge.parsing.senses import parse_senses
from canonforge.parsing.slugs import slugify
from canonforge.parsing.traits import dedupe_casefold, sanitize_traits
from canonforge.validation.migrations import migrate_to_latest
from canonforge.validation.schema import Violation, ensure_valid


logger = get_logger(__name__)

SORT_STEP = 100000
"""Gap between the ``sort`` values of consecutive embedded records."""

_ACTION_CATEGORIES: dict[str, str] = {
    ActionCost.REACTION: "defensive",
    ActionCost.PASSIVE: "defensive",
}
"""Host action category per cost; everything else is offensive."""

_INVENTORY_USAGE: dict[str, str] = {
    ItemCategory.ARMOR: "worn-armor",
    ItemCategory.EQUIPMENT: "worn",
    ItemCategory.STAFF: "held-in-two-hands",
}
"""Host usage per inventory category; everything else is held in one hand."""


# =============================================================================
# Synthesis Context
# =============================================================================


@dataclass(frozen=True)
class SynthesisContext:
    """Per-run collaborators shared by every builder.

    Attributes:
        allocator: Request-scoped identifier allocator.
        allowed_traits: Trait keys the host recognises; empty means
            unrestricted.
        publication_license: License stamped into publication blocks.
    """

    allocator: IdentifierAllocator
    allowed_traits: frozenset[str] = frozenset()
    publication_license: str = "OGL"

    def identifier(self, owner: str, section: str, index: int, *extra: object) -> str:
        return self.allocator.identifier_for(position_key(owner, section, index, *extra))

    def publication(self, source: str = "") -> Publication:
        return Publication(
            title=source,
            license=self.publication_license,
            remaster=self.publication_license == "ORC",
        )


def _context(
    allocator: IdentifierAllocator | None,
    allowed_traits: Iterable[str],
) -> SynthesisContext:
    settings = get_settings()
    if allocator is None:
        allocator = IdentifierAllocator(length=settings.synthesis.identifier_length)
    return SynthesisContext(
        allocator=allocator,
        allowed_traits=frozenset(allowed_traits),
        publication_license=settings.synthesis.publication_license,
    )


def _prepare(
    record: BaseRecord | Mapping[str, Any],
    expected: type[BaseRecord],
    entity_type: EntityType,
    active_system_id: str | None,
) -> BaseRecord:
    """Validate, migrate and system-check a record before synthesis.

    Raises:
        SchemaViolationError: If the record is invalid or of the wrong type.
        SystemMismatchError: If the record targets another game system.
    """
    if not isinstance(record, BaseRecord):
        record = ensure_valid(record)
    if record.schema_version < LATEST_SCHEMA_VERSION:
        logger.info(
            "Migrating legacy record before synthesis",
            slug=record.slug,
            from_version=record.schema_version,
        )
        record = ensure_valid(migrate_to_latest(record.to_payload()))

    if not isinstance(record, expected):
        actual = getattr(record, "type", None)
        raise SchemaViolationError(
            f"Expected a canonical {entity_type.value} record",
            violations=(Violation("type", entity_type.value, actual),),
            entity_type=actual,
        )

    active = active_system_id or get_settings().host.active_system_id
    if record.system_id != active:
        logger.error(
            "Record targets a different game system",
            slug=record.slug,
            expected=record.system_id.value,
            active=active,
        )
        raise SystemMismatchError(
            f"Record {record.slug!r} targets {record.system_id.value!r} "
            f"but the active system is {active!r}",
            expected=record.system_id.value,
            active=active,
        )
    return record


def _flags(**values: Any) -> dict[str, Any]:
    scoped = {key: value for key, value in values.items() if value is not None}
    return {FLAG_SCOPE: scoped} if scoped else {}


# =============================================================================
# Standalone Action & Item
# =============================================================================


def _action_root(record: ActionRecord, context: SynthesisContext) -> ActionItemDocument:
    action_type, actions = ACTION_COST_TO_HOST[record.action_type]
    return ActionItemDocument(
        name=record.name,
        img=chosen_image(record.img) or DEFAULT_ACTION_IMAGE,
        system=ActionItemSystem(
            slug=record.slug,
            description=TextValue(value=to_rich_text(record.description)),
            traits=RarityTraits(
                value=sanitize_traits(record.traits).recognized,
                rarity=record.rarity.value,
            ),
            action_type=TextValue(value=action_type),
            actions=IntValue(value=actions),
            requirements=TextValue(value=record.requirements or ""),
            source=TextValue(value=record.source),
            publication=context.publication(record.source),
        ),
    )


def _host_category(category: ItemCategory) -> str | None:
    return "wand" if category is ItemCategory.WAND else None


def _item_root(record: ItemRecord, context: SynthesisContext) -> ItemDocument:
    category = record.item_type
    return ItemDocument(
        name=record.name,
        type=ITEM_CATEGORY_TO_HOST[category],
        img=chosen_image(record.img) or INVENTORY_CATEGORY_IMAGES.get(category, DEFAULT_ITEM_IMAGE),
        system=ItemSystem(
            slug=record.slug,
            description=TextValue(value=to_rich_text(record.description)),
            traits=RarityTraits(
                value=sanitize_traits(record.traits).recognized,
                rarity=record.rarity.value,
            ),
            level=IntValue(value=record.level),
            price=Price(value=decimal_to_coins(record.price)),
            category=_host_category(category),
            source=TextValue(value=record.source),
            publication=context.publication(record.source),
        ),
        flags=_flags(
            itemType=category.value,
            unpriced=True if record.price is None else None,
        ),
    )


def synthesize_action(
    record: ActionRecord | Mapping[str, Any],
    *,
    allocator: IdentifierAllocator | None = None,
    allowed_traits: Iterable[str] = (),
    active_system_id: str | None = None,
) -> DocumentGraph:
    """Synthesize a standalone action item document.

    Args:
        record: A validated action record or a raw canonical mapping.
        allocator: Unused by actions; accepted for a uniform signature.
        allowed_traits: Unused by standalone actions, whose traits are
            unrestricted.
        active_system_id: Game system of the host; defaults to settings.

    Returns:
        A graph with an ``Item`` root and no embedded records.

    Raises:
        SchemaViolationError: If the record fails validation.
        SystemMismatchError: If the record targets another game system.
    """
    action = _prepare(record, ActionRecord, EntityType.ACTION, active_system_id)
    context = _context(allocator, allowed_traits)
    graph = DocumentGraph(document_type="Item", root=_action_root(action, context))
    logger.debug("Action synthesized", slug=action.slug)
    return graph


def synthesize_item(
    record: ItemRecord | Mapping[str, Any],
    *,
    allocator: IdentifierAllocator | None = None,
    allowed_traits: Iterable[str] = (),
    active_system_id: str | None = None,
) -> DocumentGraph:
    """Synthesize a standalone item document.

    Wands become consumables with ``system.category: wand`` and staves become
    weapons; the canonical category is kept in the document flags. A missing
    price becomes zero coins plus an ``unpriced`` flag.

    Raises:
        SchemaViolationError: If the record fails validation.
        SystemMismatchError: If the record targets another game system.
    """
    item = _prepare(record, ItemRecord, EntityType.ITEM, active_system_id)
    context = _context(allocator, allowed_traits)
    graph = DocumentGraph(document_type="Item", root=_item_root(item, context))
    logger.debug("Item synthesized", slug=item.slug, item_type=item.item_type.value)
    return graph


# =============================================================================
# Actor Root
# =============================================================================


def _actor_attributes(record: ActorRecord) -> HostAttributes:
    attributes = record.attributes
    return HostAttributes(
        hp=HostHitPoints(
            value=attributes.hp.value,
            max=attributes.hp.max,
            temp=attributes.hp.temp,
            details=attributes.hp.details or "",
        ),
        ac=HostArmorClass(value=attributes.ac.value, details=attributes.ac.details or ""),
        speed=HostSpeed(
            value=attributes.speed.value,
            details=attributes.speed.details or "",
            other_speeds=[
                HostSpeedEntry(type=slugify(entry.type), value=entry.value, details=entry.details or "")
                for entry in attributes.speed.other
            ],
        ),
        immunities=[
            HostImmunity(
                type=immunity.type.lower(),
                exceptions=[exception.lower() for exception in immunity.exceptions],
                notes=immunity.details or "",
            )
            for immunity in attributes.immunities
        ],
        weaknesses=[
            HostWeakness(
                type=weakness.type.lower(),
                value=weakness.value,
                exceptions=[exception.lower() for exception in weakness.exceptions],
                notes=weakness.details or "",
            )
            for weakness in attributes.weaknesses
        ],
        resistances=[
            HostResistance(
                type=resistance.type.lower(),
                value=resistance.value,
                exceptions=[exception.lower() for exception in resistance.exceptions],
                double_vs=[entry.lower() for entry in resistance.double_vs],
                notes=resistance.details or "",
            )
            for resistance in attributes.resistances
        ],
    )


def _actor_perception(record: ActorRecord) -> HostPerception:
    perception = record.attributes.perception
    return HostPerception(
        mod=perception.value,
        details=perception.details or "",
        senses=[
            HostSense(type=sense.type, acuity=sense.acuity, range=sense.range)
            for sense in parse_senses(perception.senses)
        ],
    )


def _actor_saves(record: ActorRecord) -> HostSaves:
    saves = record.attributes.saves
    return HostSaves(
        fortitude=HostSave(value=saves.fortitude.value, save_detail=saves.fortitude.details or ""),
        reflex=HostSave(value=saves.reflex.value, save_detail=saves.reflex.details or ""),
        will=HostSave(value=saves.will.value, save_detail=saves.will.details or ""),
    )


def _actor_abilities(record: ActorRecord) -> dict[str, AbilityMod]:
    abilities = record.abilities
    return {
        "str": AbilityMod(mod=abilities.str_),
        "dex": AbilityMod(mod=abilities.dex),
        "con": AbilityMod(mod=abilities.con),
        "int": AbilityMod(mod=abilities.int_),
        "wis": AbilityMod(mod=abilities.wis),
        "cha": AbilityMod(mod=abilities.cha),
    }


def _actor_root(record: ActorRecord, context: SynthesisContext) -> ActorDocument:
    settings = get_settings()
    partition = sanitize_traits(record.traits, context.allowed_traits)
    img = chosen_image(record.img) or ACTOR_PORTRAITS.get(record.actor_type, DEFAULT_ACTOR_IMAGE)
    footprint = TOKEN_SIZE_MAP.get(record.size, DEFAULT_TOKEN_SIZE)

    system = ActorSystem(
        slug=record.slug,
        traits=ActorTraits(
            value=partition.recognized,
            rarity=record.rarity.value,
            size=TextValue(value=record.size.value),
            other_tags=partition.extra,
        ),
        details=ActorDetails(
            level=IntValue(value=record.level),
            alignment=TextValue(value=record.alignment or ""),
            public_notes=to_rich_text(record.description),
            private_notes=to_rich_text(record.recall_knowledge),
            languages=Languages(value=dedupe_casefold(record.languages)),
            source=TextValue(value=record.source),
            publication=context.publication(record.source),
        ),
        attributes=_actor_attributes(record),
        perception=_actor_perception(record),
        saves=_actor_saves(record),
        abilities=_actor_abilities(record),
        skills={
            slugify(skill.slug): HostSkill(
                value=skill.modifier,
                base=skill.modifier,
                details=skill.details or "",
            )
            for skill in record.skills
        },
    )
    return ActorDocument(
        name=record.name,
        type=record.actor_type.value,
        img=img,
        system=system,
        prototype_token=PrototypeToken(
            name=record.name,
            actor_link=record.actor_type is ActorCategory.CHARACTER,
            width=footprint,
            height=footprint,
            texture=TokenTexture(src=img),
            disposition=settings.synthesis.token_disposition,
        ),
    )


# =============================================================================
# Embedded Records
# =============================================================================


def _strike_document(
    strike: Strike,
    index: int,
    owner: str,
    context: SynthesisContext,
) -> StrikeDocument:
    partition = sanitize_traits(strike.traits, context.allowed_traits)
    known_effects = [slugify(effect) for effect in strike.effects if slugify(effect) in KNOWN_ATTACK_EFFECTS]
    other_effects = [effect for effect in strike.effects if slugify(effect) not in KNOWN_ATTACK_EFFECTS]
    description = "\n\n".join(part for part in [strike.description or "", *other_effects] if part)

    damage_rolls = {
        context.identifier(owner, "strikes", index, "damage", position): DamageRoll(
            damage=damage.formula,
            damage_type=damage.damage_type.lower() if damage.damage_type else None,
            notes=damage.notes,
        )
        for position, damage in enumerate(strike.damage)
    }
    ranged = strike.type is StrikeType.RANGED
    return StrikeDocument(
        id=context.identifier(owner, "strikes", index),
        name=strike.name,
        img=DEFAULT_RANGED_STRIKE_IMAGE if ranged else DEFAULT_STRIKE_IMAGE,
        sort=(index + 1) * SORT_STEP,
        system=StrikeSystem(
            slug=slugify(strike.name),
            bonus=IntValue(value=strike.attack_bonus),
            damage_rolls=damage_rolls,
            weapon_type=TextValue(value=strike.type.value),
            traits=TagBlock(value=partition.recognized, other_tags=partition.extra),
            attack_effects=ListValue(value=dedupe_casefold(known_effects)),
            description=Description(value=to_rich_text(description)),
            publication=context.publication(),
        ),
        flags=_flags(effects=list(strike.effects) or None),
    )


def _action_document(
    action: ActorAction,
    index: int,
    owner: str,
    context: SynthesisContext,
) -> ActionDocument:
    action_type, actions = ACTION_COST_TO_HOST[action.action_cost]
    partition = sanitize_traits(action.traits, context.allowed_traits)
    frequency = parse_frequency(action.frequency)
    if action.frequency and frequency is None:
        logger.debug("Frequency kept as text", action=action.name, frequency=action.frequency)

    return ActionDocument(
        id=context.identifier(owner, "actions", index),
        name=action.name,
        img=DEFAULT_ACTION_IMAGE,
        sort=(index + 1) * SORT_STEP,
        system=ActionSystem(
            slug=slugify(action.name),
            action_type=TextValue(value=action_type),
            actions=IntValue(value=actions),
            category=_ACTION_CATEGORIES.get(action.action_cost, "offensive"),
            traits=TagBlock(value=partition.recognized, other_tags=partition.extra),
            description=Description(value=to_rich_text(action.description)),
            requirements=TextValue(value=action.requirements or ""),
            trigger=TextValue(value=action.trigger or ""),
            frequency=(
                FrequencyValue(value=frequency.max, max=frequency.max, per=frequency.per)
                if frequency is not None
                else None
            ),
            publication=context.publication(),
        ),
        flags=_flags(frequency=action.frequency if action.frequency and frequency is None else None),
    )


def _inventory_document(
    entry: InventoryEntry,
    index: int,
    owner: str,
    context: SynthesisContext,
) -> InventoryDocument:
    category = entry.item_type or infer_item_category(entry.name, entry.description)
    host_type = ITEM_CATEGORY_TO_HOST[category]
    if host_type not in PHYSICAL_ITEM_TYPES:
        host_type = "equipment"

    return InventoryDocument(
        id=context.identifier(owner, "inventory", index),
        name=entry.name,
        type=host_type,
        img=chosen_image(entry.img) or INVENTORY_CATEGORY_IMAGES.get(category, DEFAULT_ITEM_IMAGE),
        sort=(index + 1) * SORT_STEP,
        system=InventorySystem(
            slug=entry.slug or slugify(entry.name),
            description=Description(value=to_rich_text(entry.description)),
            level=IntValue(value=entry.level),
            quantity=entry.quantity,
            usage=TextValue(value=_INVENTORY_USAGE.get(category, "held-in-one-hand")),
            category=_host_category(category),
            publication=context.publication(),
        ),
        flags=_flags(itemType=category.value),
    )


def _spellcasting_documents(
    entries: list[SpellcastingEntry],
    owner: str,
    context: SynthesisContext,
) -> list[EmbeddedRecord]:
    entry_ids = [context.identifier(owner, "spellcasting", index) for index in range(len(entries))]

    documents: list[EmbeddedRecord] = []
    for index, (entry, entry_id) in enumerate(zip(entries, entry_ids)):
        documents.append(
            SpellcastingEntryDocument(
                id=entry_id,
                name=entry.name,
                img=DEFAULT_SPELLCASTING_IMAGE,
                sort=(index + 1) * SORT_STEP,
                system=SpellcastingEntrySystem(
                    slug=slugify(entry.name),
                    tradition=TextValue(value=entry.tradition.lower()),
                    prepared=TextValue(value=entry.casting_type.value),
                    spelldc=SpellDC(value=entry.attack_bonus, dc=entry.save_dc),
                    description=Description(value=to_rich_text(entry.notes)),
                    publication=context.publication(),
                ),
            )
        )

    for index, (entry, entry_id) in enumerate(zip(entries, entry_ids)):
        for position, spell in enumerate(entry.spells):
            documents.append(
                SpellDocument(
                    id=context.identifier(owner, "spellcasting", index, "spells", position),
                    name=spell.name,
                    img=DEFAULT_SPELL_IMAGE,
                    sort=(position + 1) * SORT_STEP,
                    system=SpellSystem(
                        slug=slugify(spell.name),
                        level=IntValue(value=spell.level),
                        location=TextValue(value=entry_id),
                        description=Description(value=to_rich_text(spell.description)),
                        traditions=ListValue(value=[spell.tradition.lower()] if spell.tradition else []),
                        publication=context.publication(),
                    ),
                )
            )
    return documents


def synthesize_actor(
    record: ActorRecord | Mapping[str, Any],
    *,
    allocator: IdentifierAllocator | None = None,
    allowed_traits: Iterable[str] = (),
    active_system_id: str | None = None,
) -> DocumentGraph:
    """Synthesize an actor document graph.

    Embedded records come out in the order strikes, actions, inventory,
    spellcasting entries, spells.

    Args:
        record: A validated actor record or a raw canonical mapping. Legacy
            schema versions are migrated first.
        allocator: Identifier allocator for this run. A fresh one is created
            when omitted.
        allowed_traits: Trait keys the host recognises. Actor, strike and
            action traits outside the set go to ``otherTags``.
        active_system_id: Game system of the host; defaults to settings.

    Returns:
        A graph with an ``Actor`` root and its embedded records.

    Raises:
        SchemaViolationError: If the record fails validation.
        SystemMismatchError: If the record targets another game system.
    """
    actor = _prepare(record, ActorRecord, EntityType.ACTOR, active_system_id)
    context = _context(allocator, allowed_traits)
    owner = actor.slug

    embedded: list[EmbeddedRecord] = []
    embedded.extend(
        _strike_document(strike, index, owner, context) for index, strike in enumerate(actor.strikes)
    )
    embedded.extend(
        _action_document(action, index, owner, context) for index, action in enumerate(actor.actions)
    )
    embedded.extend(
        _inventory_document(entry, index, owner, context) for index, entry in enumerate(actor.inventory)
    )
    embedded.extend(_spellcasting_documents(actor.spellcasting, owner, context))

    graph = DocumentGraph(document_type="Actor", root=_actor_root(actor, context), embedded=embedded)
    logger.info(
        "Actor synthesized",
        slug=actor.slug,
        strikes=len(actor.strikes),
        actions=len(actor.actions),
        inventory=len(actor.inventory),
        spellcasting=len(actor.spellcasting),
    )
    return graph


# =============================================================================
# Dispatch
# =============================================================================

_SYNTHESIZERS = {
    EntityType.ACTION: synthesize_action,
    EntityType.ITEM: synthesize_item,
    EntityType.ACTOR: synthesize_actor,
}


def synthesize(
    record: BaseRecord | Mapping[str, Any],
    *,
    allocator: IdentifierAllocator | None = None,
    allowed_traits: Iterable[str] = (),
    active_system_id: str | None = None,
) -> DocumentGraph:
    """Synthesize any canonical record, dispatching on its type.

    Raises:
        SchemaViolationError: If the record fails validation.
        SystemMismatchError: If the record targets another game system.
    """
    if not isinstance(record, BaseRecord):
        record = ensure_valid(record)
    synthesizer = _SYNTHESIZERS[EntityType(record.type)]
    return synthesizer(
        record,
        allocator=allocator,
        allowed_traits=allowed_traits,
        active_system_id=active_system_id,
    )


__all__ = [
    "SORT_STEP",
    "SynthesisContext",
    "synthesize",
    "synthesize_action",
    "synthesize_item",
    "synthesize_actor",
    "infer_item_category",
]
