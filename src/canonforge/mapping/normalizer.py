"""Host document -> canonical record normalization.

Documents coming from the host may be partial, legacy-shaped or hand-edited,
so they are read as plain mappings and every field is looked up tolerantly:
wrapper shapes (``{"value": X}``) and bare values are both accepted, missing
numbers fall back to documented defaults, and unknown enumeration values map
to a safe default through the tables in :mod:`canonforge.mapping.tables`.

Descriptions are converted from host HTML back to canonical plain text, and
placeholder images are read as "no image". Details the synthesizer parked
under ``flags.canonforge`` (canonical item category, unpriced items, free-text
frequencies, strike effects) are restored from there.

Example:
    >>> record = normalize_document(graph)
    >>> record.slug
    'goblin-warrior'
"""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Mapping
from typing import Any

from canonforge.core.config import get_settings
from canonforge.core.constants import FLAG_SCOPE, KNOWN_ATTACK_EFFECTS, LATEST_SCHEMA_VERSION
from canonforge.core.logging import get_logger
from canonforge.mapping.tables import (
    chosen_image,
    document_item_category,
    resolve_action_cost,
    resolve_action_execution,
    resolve_actor_category,
    resolve_actor_size,
    section_for,
)
from canonforge.models.canonical import (
    AbilityModifiers,
    ActionRecord,
    ActorAction,
    ActorAttributes,
    ActorRecord,
    ArmorClass,
    BaseRecord,
    HitPoints,
    Immunity,
    InventoryEntry,
    ItemRecord,
    Perception,
    Resistance,
    SaveValue,
    Saves,
    Skill,
    Speed,
    SpeedEntry,
    Spell,
    SpellcastingEntry,
    Strike,
    StrikeDamage,
    Weakness,
)
from canonforge.models.documents import DocumentGraph, HostModel
from canonforge.models.enums import (
    ActorCategory,
    FrequencyInterval,
    Rarity,
    Section,
    SpellcastingCategory,
    StrikeType,
    SystemId,
)
from canonforge.parsing.currency import parse_price
from canonforge.parsing.frequency import Frequency, format_frequency
from canonforge.parsing.rich_text import html_to_text, normalize_whitespace
from canonforge.parsing.senses import format_sense, parse_senses
from canonforge.parsing.slugs import slugify
from canonforge.parsing.traits import dedupe_casefold, split_list


logger = get_logger(__name__)

DEFAULT_NAME = "Unnamed"
DEFAULT_SLUG = "unnamed"
DEFAULT_HIT_POINTS = 1
DEFAULT_ARMOR_CLASS = 10
DEFAULT_SPEED = 25
DEFAULT_TRADITION = "arcane"


# =============================================================================
# Tolerant Field Access
# =============================================================================


def _as_mapping(value: object) -> Mapping[str, Any]:
    if isinstance(value, (DocumentGraph, HostModel)):
        return value.to_payload()
    return value if isinstance(value, Mapping) else {}


def _get(mapping: object, *path: str) -> Any:
    """Walk ``path`` through nested mappings, returning None on any miss."""
    current = mapping
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def _unwrap(value: object) -> Any:
    """Accept both ``{"value": X}`` and a bare ``X``."""
    if isinstance(value, Mapping):
        return value.get("value")
    return value


def _int(value: object, default: int) -> int:
    number = _optional_int(value)
    return default if number is None else number


def _optional_int(value: object) -> int | None:
    value = _unwrap(value)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _str(value: object) -> str | None:
    value = _unwrap(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _text(value: object) -> str | None:
    return html_to_text(_unwrap(value)) or None


def _list(value: object) -> list[str]:
    return dedupe_casefold(split_list(_unwrap(value)))


def _scoped_flags(document: Mapping[str, Any]) -> Mapping[str, Any]:
    flags = _get(document, "flags", FLAG_SCOPE)
    return flags if isinstance(flags, Mapping) else {}


def _rarity(value: object) -> Rarity:
    rarity = _str(value)
    if rarity and rarity.lower() in {entry.value for entry in Rarity}:
        return Rarity(rarity.lower())
    return Rarity.COMMON


def _level(value: object) -> int:
    return max(_int(value, 0), -1)


def _identity(document: Mapping[str, Any], system: Mapping[str, Any]) -> tuple[str, str]:
    name = _str(document.get("name")) or DEFAULT_NAME
    slug = _str(system.get("slug")) or slugify(name) or DEFAULT_SLUG
    return name, slug


def _source(system: Mapping[str, Any]) -> str:
    return (
        _str(system.get("source"))
        or _str(_get(system, "details", "source"))
        or _str(_get(system, "publication", "title"))
        or _str(_get(system, "details", "publication", "title"))
        or ""
    )


def _system_id(system_id: str | None) -> SystemId:
    return SystemId(system_id or get_settings().host.active_system_id)


# =============================================================================
# Standalone Action & Item
# =============================================================================


def normalize_action(document: object, *, system_id: str | None = None) -> ActionRecord:
    """Normalize a standalone action document.

    Args:
        document: The host action document (mapping or model).
        system_id: Game system to stamp; defaults to the active host system.

    Returns:
        A latest-version action record.
    """
    document = _as_mapping(document)
    system = _as_mapping(document.get("system"))
    name, slug = _identity(document, system)
    traits = _as_mapping(system.get("traits"))

    return ActionRecord(
        schema_version=LATEST_SCHEMA_VERSION,
        system_id=_system_id(system_id),
        type="action",
        slug=slug,
        name=name,
        action_type=resolve_action_execution(
            _unwrap(system.get("actionType")),
            _unwrap(system.get("actions")),
        ),
        description=_text(system.get("description")) or name,
        traits=_list(traits.get("value", system.get("traits"))),
        requirements=_text(system.get("requirements")),
        img=chosen_image(document.get("img")),
        rarity=_rarity(traits.get("rarity")),
        source=_source(system),
    )


def normalize_item(document: object, *, system_id: str | None = None) -> ItemRecord:
    """Normalize a standalone item document.

    The price is None when the document carries no parseable price, or when
    it was synthesized from an unpriced record and still holds zero coins.
    """
    document = _as_mapping(document)
    system = _as_mapping(document.get("system"))
    name, slug = _identity(document, system)
    traits = _as_mapping(system.get("traits"))

    price = parse_price(system.get("price"))
    if _scoped_flags(document).get("unpriced") and not price:
        price = None

    return ItemRecord(
        schema_version=LATEST_SCHEMA_VERSION,
        system_id=_system_id(system_id),
        type="item",
        slug=slug,
        name=name,
        item_type=document_item_category(document),
        rarity=_rarity(traits.get("rarity")),
        level=_level(system.get("level")),
        price=price,
        traits=_list(traits.get("value", system.get("traits"))),
        description=_text(system.get("description")) or "",
        img=chosen_image(document.get("img")),
        source=_source(system),
    )


# =============================================================================
# Actor Attributes
# =============================================================================


def _senses(system: Mapping[str, Any]) -> list[str]:
    raw = _get(system, "perception", "senses")
    if raw is None:
        raw = _get(system, "traits", "senses")
    if isinstance(raw, Mapping):
        raw = raw.get("value")
    values = split_list(raw) if isinstance(raw, str) else raw if isinstance(raw, list) else []
    return [format_sense(sense) for sense in parse_senses(values)]


def _speed_entries(value: object) -> list[SpeedEntry]:
    entries = []
    for entry in value if isinstance(value, list) else []:
        entry_type = _str(_get(entry, "type"))
        if entry_type is None:
            continue
        entries.append(
            SpeedEntry(
                type=entry_type,
                value=max(_int(_get(entry, "value"), 0), 0),
                details=_str(_get(entry, "details")),
            )
        )
    return entries


def _exceptions(value: object) -> list[str]:
    return [entry.lower() for entry in _list(value)]


def _defense_entries(value: object) -> list[Mapping[str, Any]]:
    """Read a defense list; bare strings become ``{type: ...}`` entries."""
    entries: list[Mapping[str, Any]] = []
    for entry in value if isinstance(value, list) else split_list(value):
        if isinstance(entry, str):
            entry = {"type": entry}
        if isinstance(entry, Mapping) and _str(entry.get("type")):
            entries.append(entry)
    return entries


def _save(saves: object, key: str) -> SaveValue:
    save = _get(saves, key)
    return SaveValue(
        value=_int(save, 0),
        details=_str(_get(save, "saveDetail")),
    )


def _attributes(system: Mapping[str, Any]) -> ActorAttributes:
    attributes = _as_mapping(system.get("attributes"))
    hp_value = max(_int(_get(attributes, "hp", "value"), DEFAULT_HIT_POINTS), 0)
    perception = _optional_int(_get(system, "perception", "mod"))
    if perception is None:
        perception = _int(_get(attributes, "perception", "value"), 0)
    saves = system.get("saves")

    return ActorAttributes(
        hp=HitPoints(
            value=hp_value,
            max=max(_int(_get(attributes, "hp", "max"), hp_value), 0),
            temp=_int(_get(attributes, "hp", "temp"), 0),
            details=_str(_get(attributes, "hp", "details")),
        ),
        ac=ArmorClass(
            value=_int(_get(attributes, "ac", "value"), DEFAULT_ARMOR_CLASS),
            details=_str(_get(attributes, "ac", "details")),
        ),
        perception=Perception(
            value=perception,
            details=_str(_get(system, "perception", "details")),
            senses=_senses(system),
        ),
        speed=Speed(
            value=max(_int(_get(attributes, "speed", "value"), DEFAULT_SPEED), 0),
            details=_str(_get(attributes, "speed", "details")),
            other=_speed_entries(_get(attributes, "speed", "otherSpeeds")),
        ),
        saves=Saves(
            fortitude=_save(saves, "fortitude"),
            reflex=_save(saves, "reflex"),
            will=_save(saves, "will"),
        ),
        immunities=[
            Immunity(
                type=_str(entry.get("type")).lower(),
                exceptions=_exceptions(entry.get("exceptions")),
                details=_str(entry.get("notes")),
            )
            for entry in _defense_entries(attributes.get("immunities"))
        ],
        weaknesses=[
            Weakness(
                type=_str(entry.get("type")).lower(),
                value=max(_int(entry.get("value"), 0), 0),
                exceptions=_exceptions(entry.get("exceptions")),
                details=_str(entry.get("notes")),
            )
            for entry in _defense_entries(attributes.get("weaknesses"))
        ],
        resistances=[
            Resistance(
                type=_str(entry.get("type")).lower(),
                value=max(_int(entry.get("value"), 0), 0),
                exceptions=_exceptions(entry.get("exceptions")),
                double_vs=_exceptions(entry.get("doubleVs")),
                details=_str(entry.get("notes")),
            )
            for entry in _defense_entries(attributes.get("resistances"))
        ],
    )


def _abilities(system: Mapping[str, Any]) -> AbilityModifiers:
    abilities = _as_mapping(system.get("abilities"))

    def modifier(key: str) -> int:
        return _int(_get(abilities, key, "mod"), 0)

    return AbilityModifiers(
        str_=modifier("str"),
        dex=modifier("dex"),
        con=modifier("con"),
        int_=modifier("int"),
        wis=modifier("wis"),
        cha=modifier("cha"),
    )


def _skills(system: Mapping[str, Any]) -> list[Skill]:
    skills = []
    for key, skill in _as_mapping(system.get("skills")).items():
        slug = slugify(key)
        if not slug:
            continue
        modifier = _optional_int(_get(skill, "value"))
        if modifier is None:
            modifier = _int(_get(skill, "base"), 0)
        skills.append(Skill(slug=slug, modifier=modifier, details=_str(_get(skill, "details"))))
    return skills


def _languages(system: Mapping[str, Any]) -> list[str]:
    languages = _list(_get(system, "traits", "languages"))
    return languages or _list(_get(system, "details", "languages"))


# =============================================================================
# Embedded Records
# =============================================================================


def _embedded_traits(system: Mapping[str, Any]) -> list[str]:
    traits = _as_mapping(system.get("traits"))
    return dedupe_casefold(split_list(traits.get("value")) + split_list(traits.get("otherTags")))


def _strip_effect_paragraphs(text: str | None, effects: list[str]) -> str | None:
    """Remove the unknown-effect paragraphs the synthesizer appended."""
    if not text:
        return None
    paragraphs = text.split("\n\n")
    for effect in reversed(effects):
        if paragraphs and normalize_whitespace(paragraphs[-1]) == normalize_whitespace(effect):
            paragraphs.pop()
    return "\n\n".join(paragraphs) or None


def _strike(document: Mapping[str, Any]) -> Strike | None:
    system = _as_mapping(document.get("system"))
    name = _str(document.get("name")) or DEFAULT_NAME

    rolls = system.get("damageRolls")
    rolls = rolls.values() if isinstance(rolls, Mapping) else rolls if isinstance(rolls, list) else []
    damage = [
        StrikeDamage(
            formula=_str(_get(roll, "damage")),
            damage_type=(_str(_get(roll, "damageType")) or "").lower() or None,
            notes=_str(_get(roll, "notes")),
        )
        for roll in rolls
        if _str(_get(roll, "damage"))
    ]
    if not damage:
        logger.warning("Skipping strike without damage", strike=name)
        return None

    flagged = _scoped_flags(document).get("effects")
    if isinstance(flagged, list):
        effects = [effect for effect in flagged if isinstance(effect, str) and effect.strip()]
    else:
        effects = _list(_get(system, "attackEffects"))
    unknown = [effect for effect in effects if slugify(effect) not in KNOWN_ATTACK_EFFECTS]

    traits = _embedded_traits(system)
    weapon_type = (_str(system.get("weaponType")) or "").lower()
    ranged = weapon_type == "ranged" or any(trait.startswith("range") for trait in traits)
    return Strike(
        name=name,
        type=StrikeType.RANGED if ranged else StrikeType.MELEE,
        attack_bonus=_int(system.get("bonus"), 0),
        traits=traits,
        damage=damage,
        effects=effects,
        description=_strip_effect_paragraphs(_text(system.get("description")), unknown),
    )


def _frequency(document: Mapping[str, Any], system: Mapping[str, Any]) -> str | None:
    flagged = _scoped_flags(document).get("frequency")
    if isinstance(flagged, str) and flagged.strip():
        return flagged.strip()
    frequency = system.get("frequency")
    if not isinstance(frequency, Mapping):
        return _str(frequency)
    count = _optional_int(frequency.get("max"))
    per = frequency.get("per")
    if not count or per not in {interval.value for interval in FrequencyInterval}:
        return None
    return format_frequency(Frequency(max=count, per=FrequencyInterval(per)))


def _action(document: Mapping[str, Any]) -> ActorAction:
    system = _as_mapping(document.get("system"))
    name = _str(document.get("name")) or DEFAULT_NAME
    return ActorAction(
        name=name,
        action_cost=resolve_action_cost(
            _unwrap(system.get("actionType")),
            _unwrap(system.get("actions")),
        ),
        description=_text(system.get("description")) or name,
        traits=_embedded_traits(system),
        requirements=_text(system.get("requirements")),
        trigger=_text(system.get("trigger")),
        frequency=_frequency(document, system),
    )


def _inventory_entry(document: Mapping[str, Any]) -> InventoryEntry:
    system = _as_mapping(document.get("system"))
    name, slug = _identity(document, system)
    quantity = _unwrap(system.get("quantity"))
    return InventoryEntry(
        name=name,
        slug=slug,
        item_type=document_item_category(document),
        quantity=max(_int(quantity, 1), 1),
        level=_level(system.get("level")),
        description=_text(system.get("description")),
        img=chosen_image(document.get("img")),
    )


def _casting_type(value: object) -> SpellcastingCategory:
    casting = (_str(value) or "").lower()
    if casting in {entry.value for entry in SpellcastingCategory}:
        return SpellcastingCategory(casting)
    return SpellcastingCategory.INNATE


def _spell(document: Mapping[str, Any]) -> Spell:
    system = _as_mapping(document.get("system"))
    traditions = _list(_get(system, "traditions"))
    return Spell(
        level=max(_int(system.get("level"), 0), 0),
        name=_str(document.get("name")) or DEFAULT_NAME,
        description=_text(system.get("description")),
        tradition=traditions[0].lower() if traditions else None,
    )


def _spellcasting(
    entries: list[Mapping[str, Any]],
    spells: list[Mapping[str, Any]],
) -> list[SpellcastingEntry]:
    spells_by_entry: dict[str, list[Spell]] = {}
    entry_ids = {document.get("_id") for document in entries}
    for document in spells:
        location = _str(_get(document, "system", "location"))
        if location not in entry_ids:
            logger.warning(
                "Dropping spell without a spellcasting entry",
                spell=document.get("name"),
                location=location,
            )
            continue
        spells_by_entry.setdefault(location, []).append(_spell(document))

    result = []
    for document in entries:
        system = _as_mapping(document.get("system"))
        spelldc = _as_mapping(system.get("spelldc"))
        result.append(
            SpellcastingEntry(
                name=_str(document.get("name")) or DEFAULT_NAME,
                tradition=(_str(system.get("tradition")) or DEFAULT_TRADITION).lower(),
                casting_type=_casting_type(system.get("prepared")),
                attack_bonus=_optional_int(spelldc.get("value")),
                save_dc=_optional_int(spelldc.get("dc")),
                notes=_text(system.get("description")),
                spells=spells_by_entry.get(document.get("_id"), []),
            )
        )
    return result


# =============================================================================
# Actor
# =============================================================================


def normalize_actor(document: object, *, system_id: str | None = None) -> ActorRecord:
    """Normalize an actor document and its embedded records.

    Embedded records are read back into strikes, actions, inventory and
    spellcasting; spells are grouped under the entry their ``location``
    references. Strikes without damage and spells without an entry are
    dropped with a warning.

    Args:
        document: The host actor document, with embedded records under
            ``items``, or a :class:`DocumentGraph`.
        system_id: Game system to stamp; defaults to the active host system.

    Returns:
        A latest-version actor record.
    """
    document = _as_mapping(document)
    system = _as_mapping(document.get("system"))
    name, slug = _identity(document, system)
    traits = _as_mapping(system.get("traits"))
    details = _as_mapping(system.get("details"))

    grouped: defaultdict[str, list[Mapping[str, Any]]] = defaultdict(list)
    for item in document.get("items") or []:
        if not isinstance(item, Mapping):
            continue
        section = section_for(item.get("type"))
        if section is Section.SPELLS:
            grouped[item.get("type")].append(item)
        elif section is not None:
            grouped[section.value].append(item)
        else:
            logger.debug("Ignoring embedded record", type=item.get("type"), name=item.get("name"))

    strikes = [strike for strike in map(_strike, grouped["strikes"]) if strike is not None]
    size = _unwrap(traits.get("size")) or system.get("size")
    record = ActorRecord(
        schema_version=LATEST_SCHEMA_VERSION,
        system_id=_system_id(system_id),
        type="actor",
        slug=slug,
        name=name,
        actor_type=resolve_actor_category(document.get("type")),
        rarity=_rarity(traits.get("rarity")),
        level=_level(details.get("level")),
        size=resolve_actor_size(size),
        traits=dedupe_casefold(split_list(traits.get("value")) + split_list(traits.get("otherTags"))),
        alignment=_str(details.get("alignment")),
        languages=_languages(system),
        attributes=_attributes(system),
        abilities=_abilities(system),
        skills=_skills(system),
        strikes=strikes,
        actions=[_action(item) for item in grouped["actions"]],
        inventory=[_inventory_entry(item) for item in grouped["inventory"]],
        spellcasting=_spellcasting(grouped["spellcastingEntry"], grouped["spell"]),
        description=_text(details.get("publicNotes")),
        recall_knowledge=_text(details.get("privateNotes")),
        img=chosen_image(document.get("img")),
        source=_source(system),
    )
    logger.debug("Actor normalized", slug=slug, embedded=len(document.get("items") or []))
    return record


_ACTOR_TYPES = frozenset(category.value for category in ActorCategory)


def normalize_document(document: object, *, system_id: str | None = None) -> BaseRecord:
    """Normalize any host document, dispatching on its ``type``.

    ``action`` documents become actions, actor types become actors and every
    other type is read as an item.
    """
    document = _as_mapping(document)
    kind = _str(document.get("type"))
    if kind == "action":
        return normalize_action(document, system_id=system_id)
    if kind in _ACTOR_TYPES:
        return normalize_actor(document, system_id=system_id)
    return normalize_item(document, system_id=system_id)


__all__ = [
    "normalize_action",
    "normalize_item",
    "normalize_actor",
    "normalize_document",
]
