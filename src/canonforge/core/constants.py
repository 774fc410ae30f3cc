"""Constants shared across canonforge.

Schema versions, host icon paths, lookup tables that every mapping direction
must agree on, and the denomination table for currency conversion.
"""

from __future__ import annotations

import re

# =============================================================================
# Schema
# =============================================================================

LATEST_SCHEMA_VERSION = 3
"""The canonical schema version the synthesizer consumes."""

SUPPORTED_SCHEMA_VERSIONS = (1, 2, 3)
"""Every schema version the validator has a registered schema for."""

SYSTEM_IDS = ("pf2e", "sf2e")
"""Game systems a canonical record may target."""

DEFAULT_SYSTEM_ID = "pf2e"

# =============================================================================
# Document Flags
# =============================================================================

FLAG_SCOPE = "canonforge"
"""Key under a document's ``flags`` where canonforge keeps round-trip data."""

# =============================================================================
# Host Icons
# =============================================================================

DEFAULT_ICON_ROOT = "systems/pf2e/icons/default-icons"

DEFAULT_ACTION_IMAGE = f"{DEFAULT_ICON_ROOT}/action.svg"
DEFAULT_ITEM_IMAGE = f"{DEFAULT_ICON_ROOT}/item.svg"
DEFAULT_ACTOR_IMAGE = f"{DEFAULT_ICON_ROOT}/monster.svg"
DEFAULT_STRIKE_IMAGE = f"{DEFAULT_ICON_ROOT}/melee.svg"
DEFAULT_RANGED_STRIKE_IMAGE = f"{DEFAULT_ICON_ROOT}/ranged.svg"
DEFAULT_SPELL_IMAGE = f"{DEFAULT_ICON_ROOT}/spell.svg"
DEFAULT_SPELLCASTING_IMAGE = f"{DEFAULT_ICON_ROOT}/spellcastingEntry.svg"

PLACEHOLDER_IMAGE_PATTERNS = (
    re.compile(r"icons/svg/mystery-man\.svg$", re.IGNORECASE),
    re.compile(r"icons/svg/item-bag\.svg$", re.IGNORECASE),
    re.compile(r"systems/pf2e/icons/default-icons/", re.IGNORECASE),
)
"""Host images that mean "the user never chose an image"."""

INVENTORY_CATEGORY_IMAGES: dict[str, str] = {
    "weapon": f"{DEFAULT_ICON_ROOT}/weapon.svg",
    "armor": f"{DEFAULT_ICON_ROOT}/armor.svg",
    "equipment": f"{DEFAULT_ICON_ROOT}/equipment.svg",
    "consumable": f"{DEFAULT_ICON_ROOT}/consumable.svg",
    "wand": f"{DEFAULT_ICON_ROOT}/wand.svg",
    "staff": f"{DEFAULT_ICON_ROOT}/staff.svg",
    "feat": f"{DEFAULT_ICON_ROOT}/feat.svg",
    "spell": f"{DEFAULT_ICON_ROOT}/spell.svg",
}

ACTOR_PORTRAITS: dict[str, str] = {
    "npc": DEFAULT_ACTOR_IMAGE,
    "character": "icons/svg/mystery-man.svg",
    "hazard": f"{DEFAULT_ICON_ROOT}/hazard.svg",
    "vehicle": f"{DEFAULT_ICON_ROOT}/vehicle.svg",
    "familiar": f"{DEFAULT_ICON_ROOT}/familiar.svg",
}

# =============================================================================
# Token Footprints
# =============================================================================

TOKEN_SIZE_MAP: dict[str, float] = {
    "tiny": 0.5,
    "sm": 1,
    "med": 1,
    "lg": 2,
    "huge": 3,
    "grg": 4,
}
"""Token footprint in grid squares per size category."""

DEFAULT_TOKEN_SIZE = 1

# =============================================================================
# Currency
# =============================================================================

COIN_VALUES_IN_COPPER: dict[str, int] = {
    "pp": 1000,
    "gp": 100,
    "sp": 10,
    "cp": 1,
}
"""1 pp = 10 gp = 100 sp = 1000 cp; the canonical unit is the gold piece."""

DENOMINATIONS = ("pp", "gp", "sp", "cp")

# =============================================================================
# Host Item Types
# =============================================================================

PHYSICAL_ITEM_TYPES = frozenset(
    {"weapon", "armor", "shield", "equipment", "consumable", "treasure", "backpack"}
)
"""Embedded record types that belong to an actor's inventory section."""

KNOWN_ATTACK_EFFECTS = frozenset(
    {
        "grab",
        "improved-grab",
        "knockdown",
        "improved-knockdown",
        "push",
        "improved-push",
        "trip",
        "constrict",
        "greater-constrict",
        "rend",
        "swallow-whole",
        "engulf",
        "poison",
        "disease",
    }
)
"""Attack-effect slugs the host understands natively."""


__all__ = [
    "LATEST_SCHEMA_VERSION",
    "SUPPORTED_SCHEMA_VERSIONS",
    "SYSTEM_IDS",
    "DEFAULT_SYSTEM_ID",
    "FLAG_SCOPE",
    "DEFAULT_ICON_ROOT",
    "DEFAULT_ACTION_IMAGE",
    "DEFAULT_ITEM_IMAGE",
    "DEFAULT_ACTOR_IMAGE",
    "DEFAULT_STRIKE_IMAGE",
    "DEFAULT_RANGED_STRIKE_IMAGE",
    "DEFAULT_SPELL_IMAGE",
    "DEFAULT_SPELLCASTING_IMAGE",
    "PLACEHOLDER_IMAGE_PATTERNS",
    "INVENTORY_CATEGORY_IMAGES",
    "ACTOR_PORTRAITS",
    "TOKEN_SIZE_MAP",
    "DEFAULT_TOKEN_SIZE",
    "COIN_VALUES_IN_COPPER",
    "DENOMINATIONS",
    "PHYSICAL_ITEM_TYPES",
    "KNOWN_ATTACK_EFFECTS",
]
