"""Lookup tables shared by the synthesizer, the normalizer and the merge planner.

Every enumeration crosses the canonical/host boundary through an explicit
table here, with a terminal default for values the table does not know.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from canonforge.core.constants import FLAG_SCOPE, PHYSICAL_ITEM_TYPES, PLACEHOLDER_IMAGE_PATTERNS
from canonforge.models.enums import (
    ActionCost,
    ActionExecution,
    ActorCategory,
    ActorSize,
    ItemCategory,
    Section,
)


# =============================================================================
# Actions
# =============================================================================

ACTION_COST_TO_HOST: dict[str, tuple[str, int | None]] = {
    ActionCost.ONE: ("action", 1),
    ActionCost.TWO: ("action", 2),
    ActionCost.THREE: ("action", 3),
    ActionCost.FREE: ("free", None),
    ActionCost.REACTION: ("reaction", None),
    ActionCost.PASSIVE: ("passive", None),
}
"""Canonical action cost -> host ``(actionType, actions)`` pair."""

HOST_ACTION_ALIASES: dict[str, ActionCost] = {
    "one": ActionCost.ONE,
    "1": ActionCost.ONE,
    "two": ActionCost.TWO,
    "2": ActionCost.TWO,
    "three": ActionCost.THREE,
    "3": ActionCost.THREE,
    "free": ActionCost.FREE,
    "free-action": ActionCost.FREE,
    "reaction": ActionCost.REACTION,
    "passive": ActionCost.PASSIVE,
}
"""Legacy or shorthand host action types."""

_COUNT_TO_COST = {1: ActionCost.ONE, 2: ActionCost.TWO, 3: ActionCost.THREE}


def resolve_action_cost(action_type: object, actions: object) -> ActionCost:
    """Read a host ``(actionType, actions)`` pair back into an action cost.

    Unknown values fall back to ``free``.
    """
    kind = action_type.strip().lower() if isinstance(action_type, str) else ""
    if kind == "action":
        count = actions if isinstance(actions, int) and not isinstance(actions, bool) else None
        if isinstance(actions, str) and actions.strip().isdigit():
            count = int(actions)
        return _COUNT_TO_COST.get(count or 1, ActionCost.ONE)
    if kind in HOST_ACTION_ALIASES:
        return HOST_ACTION_ALIASES[kind]
    if kind in {cost.value for cost in ActionCost}:
        return ActionCost(kind)
    if isinstance(actions, (int, str)) and str(actions) in HOST_ACTION_ALIASES:
        return HOST_ACTION_ALIASES[str(actions)]
    return ActionCost.FREE


def resolve_action_execution(action_type: object, actions: object) -> ActionExecution:
    """Like :func:`resolve_action_cost` but without ``passive``."""
    cost = resolve_action_cost(action_type, actions)
    if cost is ActionCost.PASSIVE:
        return ActionExecution.FREE
    return ActionExecution(cost.value)


# =============================================================================
# Items
# =============================================================================

ITEM_CATEGORY_TO_HOST: dict[str, str] = {
    ItemCategory.WEAPON: "weapon",
    ItemCategory.ARMOR: "armor",
    ItemCategory.EQUIPMENT: "equipment",
    ItemCategory.CONSUMABLE: "consumable",
    ItemCategory.FEAT: "feat",
    ItemCategory.SPELL: "spell",
    ItemCategory.WAND: "consumable",
    ItemCategory.STAFF: "weapon",
    ItemCategory.OTHER: "equipment",
}
"""Canonical item category -> host item type."""

HOST_ITEM_TYPE_TO_CATEGORY: dict[str, ItemCategory] = {
    "weapon": ItemCategory.WEAPON,
    "armor": ItemCategory.ARMOR,
    "shield": ItemCategory.ARMOR,
    "equipment": ItemCategory.EQUIPMENT,
    "backpack": ItemCategory.EQUIPMENT,
    "consumable": ItemCategory.CONSUMABLE,
    "feat": ItemCategory.FEAT,
    "spell": ItemCategory.SPELL,
    "wand": ItemCategory.WAND,
    "staff": ItemCategory.STAFF,
    "treasure": ItemCategory.OTHER,
}


def resolve_item_category(host_type: object, category: object = None) -> ItemCategory:
    """Map a host item type (and ``system.category``) to a canonical category.

    A consumable whose category is ``wand`` is a wand. Unknown types fall
    back to ``other``.
    """
    kind = host_type.strip().lower() if isinstance(host_type, str) else ""
    if kind == "consumable" and isinstance(category, str) and category.lower() == "wand":
        return ItemCategory.WAND
    return HOST_ITEM_TYPE_TO_CATEGORY.get(kind, ItemCategory.OTHER)


def document_item_category(document: Mapping[str, Any]) -> ItemCategory:
    """Canonical category of a host item document.

    Prefers the category kept in ``flags.canonforge.itemType`` and falls back
    to the host type.
    """
    flags = document.get("flags")
    scoped = flags.get(FLAG_SCOPE) if isinstance(flags, Mapping) else None
    flagged = scoped.get("itemType") if isinstance(scoped, Mapping) else None
    if isinstance(flagged, str) and flagged in {entry.value for entry in ItemCategory}:
        return ItemCategory(flagged)
    system = document.get("system")
    category = system.get("category") if isinstance(system, Mapping) else None
    return resolve_item_category(document.get("type"), category)


ITEM_KEYWORDS: tuple[tuple[ItemCategory, tuple[str, ...]], ...] = (
    (ItemCategory.WAND, ("wand",)),
    (ItemCategory.STAFF, ("staff", "stave")),
    (
        ItemCategory.CONSUMABLE,
        ("potion", "elixir", "scroll", "bomb", "oil", "talisman", "poison",
         "draught", "tonic", "ammunition", "arrow", "bolt"),
    ),
    (ItemCategory.ARMOR, ("armor", "armour", "shield", "breastplate", "chain mail", "plate")),
    (
        ItemCategory.WEAPON,
        ("sword", "longsword", "shortsword", "greatsword", "axe", "battleaxe",
         "greataxe", "bow", "longbow", "shortbow", "crossbow", "dagger", "mace",
         "spear", "hammer", "warhammer", "blade", "rapier", "scimitar", "flail",
         "whip", "halberd", "glaive", "sling", "club", "greatclub", "pick",
         "weapon"),
    ),
)
"""Keyword table for inferring a missing inventory category, most specific first.

Keywords match whole words, optionally pluralized with a trailing "s".
"""

_KEYWORD_PATTERNS: tuple[tuple[ItemCategory, re.Pattern[str]], ...] = tuple(
    (category, re.compile(r"\b(?:" + "|".join(map(re.escape, keywords)) + r")s?\b"))
    for category, keywords in ITEM_KEYWORDS
)


def infer_item_category(name: str, description: str | None = None) -> ItemCategory:
    """Infer an inventory category from the item's name, then its description.

    Falls back to ``equipment``.
    """
    for text in (name, description or ""):
        lowered = text.lower()
        for category, pattern in _KEYWORD_PATTERNS:
            if pattern.search(lowered):
                return category
    return ItemCategory.EQUIPMENT


# =============================================================================
# Actors
# =============================================================================

ACTOR_TYPE_ALIASES: dict[str, ActorCategory] = {
    "pc": ActorCategory.CHARACTER,
    "creature": ActorCategory.NPC,
    "monster": ActorCategory.NPC,
}

SIZE_ALIASES: dict[str, ActorSize] = {
    "small": ActorSize.SMALL,
    "medium": ActorSize.MEDIUM,
    "large": ActorSize.LARGE,
    "gargantuan": ActorSize.GARGANTUAN,
}


def resolve_actor_category(value: object) -> ActorCategory:
    """Map a host actor type to a canonical category; unknown means ``npc``."""
    kind = value.strip().lower() if isinstance(value, str) else ""
    if kind in {category.value for category in ActorCategory}:
        return ActorCategory(kind)
    return ACTOR_TYPE_ALIASES.get(kind, ActorCategory.NPC)


def resolve_actor_size(value: object) -> ActorSize:
    """Map a host size to a canonical size; unknown means ``med``."""
    size = value.strip().lower() if isinstance(value, str) else ""
    if size in {entry.value for entry in ActorSize}:
        return ActorSize(size)
    return SIZE_ALIASES.get(size, ActorSize.MEDIUM)


# =============================================================================
# Embedded Record Ownership
# =============================================================================

SECTION_BY_EMBEDDED_TYPE: dict[str, Section] = {
    "melee": Section.STRIKES,
    "action": Section.ACTIONS,
    "spellcastingEntry": Section.SPELLS,
    "spell": Section.SPELLS,
    **{item_type: Section.INVENTORY for item_type in PHYSICAL_ITEM_TYPES},
}
"""Which actor section owns each embedded record type."""


def section_for(embedded_type: object) -> Section | None:
    """Return the section owning an embedded record type, if any."""
    if not isinstance(embedded_type, str):
        return None
    return SECTION_BY_EMBEDDED_TYPE.get(embedded_type)


# =============================================================================
# Images
# =============================================================================


def is_placeholder_image(img: object) -> bool:
    """True for host default/mystery icons that mean "no image chosen"."""
    return isinstance(img, str) and any(
        pattern.search(img.strip()) for pattern in PLACEHOLDER_IMAGE_PATTERNS
    )


def chosen_image(img: object) -> str | None:
    """Return the image path when the user actually chose one, else None."""
    if not isinstance(img, str) or not img.strip() or is_placeholder_image(img):
        return None
    return img.strip()


__all__ = [
    "ACTION_COST_TO_HOST",
    "HOST_ACTION_ALIASES",
    "resolve_action_cost",
    "resolve_action_execution",
    "ITEM_CATEGORY_TO_HOST",
    "HOST_ITEM_TYPE_TO_CATEGORY",
    "resolve_item_category",
    "document_item_category",
    "ITEM_KEYWORDS",
    "infer_item_category",
    "ACTOR_TYPE_ALIASES",
    "SIZE_ALIASES",
    "resolve_actor_category",
    "resolve_actor_size",
    "SECTION_BY_EMBEDDED_TYPE",
    "section_for",
    "is_placeholder_image",
    "chosen_image",
]
