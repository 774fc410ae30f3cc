"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the canonforge test suite: canonical record payloads, identifier
allocators and an in-memory document store.
"""

from __future__ import annotations

import copy
import itertools
from typing import TYPE_CHECKING, Any

import pytest


if TYPE_CHECKING:
    from collections.abc import Generator


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from canonforge.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "CANONFORGE_DEBUG": "true",
        "CANONFORGE_LOG_LEVEL": "DEBUG",
        "CANONFORGE_HOST_ACTIVE_SYSTEM_ID": "sf2e",
        "CANONFORGE_SYNTHESIS_IDENTIFIER_LENGTH": "20",
        "CANONFORGE_SYNTHESIS_PUBLICATION_LICENSE": "ORC",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Canonical Record Fixtures
# =============================================================================


@pytest.fixture
def action_payload() -> dict[str, Any]:
    """Provide a standalone two-action canonical action.

    Returns:
        Canonical action JSON.
    """
    return {
        "schema_version": 3,
        "systemId": "pf2e",
        "type": "action",
        "slug": "shield-bash",
        "name": "Shield Bash",
        "actionType": "two-actions",
        "description": "Make a **Strike** with your shield. On a hit, the target is pushed 5 feet.",
        "traits": ["attack", "manipulate"],
        "requirements": "You are wielding a shield.",
        "rarity": "uncommon",
        "source": "Guards and Gauntlets",
    }


@pytest.fixture
def item_payload() -> dict[str, Any]:
    """Provide a priced canonical consumable.

    Returns:
        Canonical item JSON.
    """
    return {
        "schema_version": 3,
        "systemId": "pf2e",
        "type": "item",
        "slug": "elixir-of-life-minor",
        "name": "Elixir of Life (Minor)",
        "itemType": "consumable",
        "rarity": "common",
        "level": 1,
        "price": 3.5,
        "traits": ["alchemical", "elixir", "healing"],
        "description": "You regain 1d6 Hit Points.",
        "source": "Core Rulebook",
    }


@pytest.fixture
def wand_payload() -> dict[str, Any]:
    """Provide an unpriced canonical wand.

    Returns:
        Canonical item JSON without a price.
    """
    return {
        "schema_version": 3,
        "systemId": "pf2e",
        "type": "item",
        "slug": "wand-of-heal",
        "name": "Wand of Heal",
        "itemType": "wand",
        "rarity": "uncommon",
        "level": 3,
        "traits": ["magical", "wand"],
        "description": "Cast *heal* once per day.",
    }


@pytest.fixture
def actor_payload() -> dict[str, Any]:
    """Provide a level 1 goblin spellcaster with every section populated.

    Returns:
        Canonical actor JSON.
    """
    return {
        "schema_version": 3,
        "systemId": "pf2e",
        "type": "actor",
        "slug": "goblin-warchanter",
        "name": "Goblin Warchanter",
        "actorType": "npc",
        "rarity": "common",
        "level": 1,
        "size": "sm",
        "traits": ["goblin", "humanoid"],
        "alignment": "CE",
        "languages": ["Common", "Goblin"],
        "attributes": {
            "hp": {"value": 18, "max": 18},
            "ac": {"value": 17},
            "perception": {"value": 5, "senses": ["darkvision 60 feet"]},
            "speed": {"value": 25, "other": [{"type": "climb", "value": 15}]},
            "saves": {
                "fortitude": {"value": 5},
                "reflex": {"value": 7},
                "will": {"value": 3},
            },
            "weaknesses": [{"type": "fire", "value": 2}],
            "resistances": [{"type": "poison", "value": 3}],
        },
        "abilities": {"str": 0, "dex": 3, "con": 1, "int": 0, "wis": 1, "cha": 2},
        "skills": [
            {"slug": "acrobatics", "modifier": 5},
            {"slug": "performance", "modifier": 6},
        ],
        "strikes": [
            {
                "name": "Dogslicer",
                "type": "melee",
                "attackBonus": 8,
                "traits": ["agile", "backstabber", "finesse"],
                "damage": [{"formula": "1d6", "damageType": "slashing"}],
            },
            {
                "name": "Shortbow",
                "type": "ranged",
                "attackBonus": 8,
                "traits": ["deadly-d10", "range-increment-60-feet"],
                "damage": [{"formula": "1d6", "damageType": "piercing"}],
                "effects": ["Grab", "Goblin Song"],
            },
        ],
        "actions": [
            {
                "name": "Goblin Song",
                "actionCost": "one-action",
                "description": "Allies within 30 feet gain a +1 status bonus to attack rolls.",
                "traits": ["auditory", "concentrate"],
                "frequency": "once per round",
            },
            {
                "name": "Scuttle",
                "actionCost": "reaction",
                "description": "The goblin Steps.",
                "trigger": "An ally ends a move action adjacent to the goblin.",
            },
            {
                "name": "War Cry",
                "actionCost": "free",
                "description": "The warchanter shrieks.",
                "frequency": "when the moon is full",
            },
        ],
        "inventory": [
            {"name": "Dogslicer", "slug": "dogslicer", "itemType": "weapon"},
            {
                "name": "Healing Potion (Minor)",
                "slug": "healing-potion-minor",
                "itemType": "consumable",
                "quantity": 2,
                "level": 1,
                "description": "Restores 1d8 Hit Points.",
            },
            {
                "name": "Wand of Shocking Grasp",
                "slug": "wand-of-shocking-grasp",
                "itemType": "wand",
                "level": 3,
            },
        ],
        "spellcasting": [
            {
                "name": "Occult Innate Spells",
                "tradition": "occult",
                "castingType": "innate",
                "attackBonus": 9,
                "saveDC": 17,
                "spells": [
                    {"level": 1, "name": "Fear"},
                    {"level": 0, "name": "Ghost Sound", "tradition": "occult"},
                ],
            }
        ],
        "description": "Goblins rally around their warchanters.",
        "recallKnowledge": "**Society** DC 15",
        "source": "Bestiary",
    }


@pytest.fixture
def goblin(actor_payload: dict[str, Any]) -> Any:
    """Create the validated goblin actor record.

    Args:
        actor_payload: Canonical actor JSON.

    Returns:
        ActorRecord instance.
    """
    from canonforge.validation.schema import ensure_valid

    return ensure_valid(actor_payload)


@pytest.fixture
def legacy_actor_payload(actor_payload: dict[str, Any]) -> dict[str, Any]:
    """Provide the goblin as a schema version 1 record (no inventory or source).

    Returns:
        Canonical actor JSON at version 1.
    """
    payload = copy.deepcopy(actor_payload)
    payload["schema_version"] = 1
    del payload["inventory"]
    del payload["source"]
    return payload


# =============================================================================
# Mapping Fixtures
# =============================================================================


@pytest.fixture
def allocator() -> Any:
    """Create a digest-based IdentifierAllocator.

    Returns:
        IdentifierAllocator instance.
    """
    from canonforge.mapping.identifiers import IdentifierAllocator

    return IdentifierAllocator()


@pytest.fixture
def seeded_allocator() -> Any:
    """Create an IdentifierAllocator drawing from a fixed seed for reproducible tests.

    Returns:
        IdentifierAllocator instance backed by random.Random(42).
    """
    import random

    from canonforge.mapping.identifiers import IdentifierAllocator

    return IdentifierAllocator(rng=random.Random(42))


# =============================================================================
# Store Fixtures
# =============================================================================


class FakeDocumentStore:
    """In-memory document store implementing the DocumentStore protocol.

    Root documents live per scope (None is the world). Embedded records get
    fresh store identifiers on creation, like the real host, so callers must
    use the returned handles rather than the payload ``_id``. Every call is
    recorded in ``calls`` for ordering assertions; ``fail_on`` names a method
    that raises RuntimeError instead of running, and embedded types listed in
    ``lost_handles`` are created without a handle being returned.
    """

    def __init__(self, libraries: tuple[str, ...] = ()) -> None:
        self.libraries = set(libraries)
        self.documents: dict[str, dict[str, Any]] = {}
        self.scopes: dict[str, str | None] = {}
        self.calls: list[tuple[str, Any]] = []
        self.fail_on: str | None = None
        self.lost_handles: set[str] = set()
        self._ids = itertools.count(1)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}{next(self._ids):06d}"

    def _record(self, method: str, detail: Any) -> None:
        if self.fail_on == method:
            raise RuntimeError(f"{method} failed")
        self.calls.append((method, detail))

    def add(self, payload: dict[str, Any], *, scope: str | None = None) -> Any:
        """Seed a root document directly, assigning embedded identifiers.

        Spell locations are rewritten to the identifiers their entries
        received, as the host does when it creates an actor with its items.
        """
        from canonforge.store.protocol import DocumentHandle

        document = copy.deepcopy(payload)
        document_id = self._next_id("doc")
        assigned: dict[str | None, str] = {}
        for item in document.get("items", []):
            new_id = self._next_id("emb")
            assigned[item.get("_id")] = new_id
            item["_id"] = new_id
        for item in document.get("items", []):
            location = item.get("system", {}).get("location")
            if isinstance(location, dict) and location.get("value") in assigned:
                location["value"] = assigned[location["value"]]
        self.documents[document_id] = document
        self.scopes[document_id] = scope
        return DocumentHandle(document_id, "Actor" if "items" in document else "Item", scope)

    def items_of(self, handle: Any) -> list[dict[str, Any]]:
        return self.documents[handle.id].setdefault("items", [])

    async def create(
        self,
        document_type: str,
        payload: dict[str, Any],
        *,
        scope: str | None = None,
    ) -> Any:
        from canonforge.store.protocol import DocumentHandle

        self._record("create", document_type)
        handle = self.add(payload, scope=scope)
        return DocumentHandle(handle.id, document_type, scope)

    async def update(self, handle: Any, payload: dict[str, Any]) -> None:
        self._record("update", sorted(payload))
        document = self.documents[handle.id]
        for path, value in payload.items():
            if path == "items":
                document["items"] = copy.deepcopy(value)
                for item in document["items"]:
                    item["_id"] = self._next_id("emb")
                continue
            target = document
            *parents, leaf = path.split(".")
            for part in parents:
                target = target.setdefault(part, {})
            target[leaf] = copy.deepcopy(value)

    async def delete(self, handle: Any) -> None:
        self._record("delete", handle.id)
        self.documents.pop(handle.id)
        self.scopes.pop(handle.id)

    async def create_embedded(
        self,
        owner: Any,
        type_name: str,
        payloads: list[dict[str, Any]],
    ) -> list[Any]:
        from canonforge.store.protocol import DocumentHandle

        self._record("create_embedded", [payload.get("type") for payload in payloads])
        handles = []
        for payload in payloads:
            item = copy.deepcopy(payload)
            item["_id"] = self._next_id("emb")
            self.items_of(owner).append(item)
            if item.get("type") not in self.lost_handles:
                handles.append(DocumentHandle(item["_id"], type_name, owner.scope))
        return handles

    async def delete_embedded(self, owner: Any, type_name: str, ids: list[str]) -> None:
        self._record("delete_embedded", list(ids))
        doomed = set(ids)
        self.documents[owner.id]["items"] = [
            item for item in self.items_of(owner) if item.get("_id") not in doomed
        ]

    async def find_by_slug(self, slug: str, scope: str | None = None) -> Any:
        from canonforge.store.protocol import DocumentHandle

        for document_id, document in self.documents.items():
            if self.scopes[document_id] == scope and document.get("system", {}).get("slug") == slug:
                kind = "Actor" if "items" in document else "Item"
                return DocumentHandle(document_id, kind, scope)
        return None

    async def has_library(self, library_id: str) -> bool:
        return library_id in self.libraries


@pytest.fixture
def store() -> FakeDocumentStore:
    """Create an empty in-memory store with one shared library.

    Returns:
        FakeDocumentStore instance knowing the ``bestiary`` library.
    """
    return FakeDocumentStore(libraries=("bestiary",))
