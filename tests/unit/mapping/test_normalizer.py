"""Tests for host document -> canonical record normalization."""

from __future__ import annotations

from typing import Any

import pytest

from canonforge.mapping.identifiers import IdentifierAllocator
from canonforge.mapping.normalizer import (
    DEFAULT_ARMOR_CLASS,
    DEFAULT_SPEED,
    normalize_action,
    normalize_actor,
    normalize_document,
    normalize_item,
)
from canonforge.mapping.synthesizer import synthesize_actor, synthesize_item
from canonforge.models.canonical import ActionRecord, ActorRecord, ItemRecord
from canonforge.models.enums import (
    ActionCost,
    ActionExecution,
    ActorSize,
    ItemCategory,
    SpellcastingCategory,
    StrikeType,
)


@pytest.fixture
def hand_made_actor() -> dict[str, Any]:
    """Provide a sparse, hand-edited host actor.

    Returns:
        Host actor JSON with bare values and legacy shapes.
    """
    return {
        "name": "Cave Troll",
        "type": "monster",
        "img": "icons/svg/mystery-man.svg",
        "system": {
            "traits": {"value": "giant, troll", "rarity": "Rare", "size": {"value": "large"}},
            "details": {"level": "5", "publicNotes": "<p>Big &amp; mean.</p>"},
            "attributes": {
                "hp": {"value": 95},
                "speed": {"value": 30, "otherSpeeds": [{"type": "swim", "value": "20"}, {"value": 5}]},
                "weaknesses": ["fire", {"type": "acid", "value": 5}],
            },
            "perception": {"mod": 11, "senses": {"value": "darkvision; scent (imprecise) 30 feet"}},
            "saves": {"fortitude": 14, "reflex": {"value": 9}, "will": {"value": "7"}},
            "abilities": {"str": {"mod": 5}},
            "skills": {"athletics": {"base": 13}},
        },
        "items": [
            {
                "_id": "strike1",
                "name": "Jaws",
                "type": "melee",
                "system": {
                    "bonus": {"value": 15},
                    "damageRolls": {"a": {"damage": "2d10+7", "damageType": "Piercing"}},
                    "traits": {"value": ["reach-10-feet"], "otherTags": ["Troll"]},
                    "attackEffects": {"value": ["grab"]},
                },
            },
            {"_id": "strike2", "name": "Broken Claw", "type": "melee", "system": {"bonus": 3}},
            {
                "_id": "action1",
                "name": "Regeneration",
                "type": "action",
                "system": {
                    "actionType": {"value": "passive"},
                    "description": {"value": "<p>Regains 20 HP.</p>"},
                    "frequency": {"value": 1, "max": 1, "per": "PT10M"},
                },
            },
            {
                "_id": "loot1",
                "name": "Sack of Bones",
                "type": "backpack",
                "system": {"quantity": {"value": 0}, "level": {"value": -5}},
            },
            {
                "_id": "entry1",
                "name": "Troll Rituals",
                "type": "spellcastingEntry",
                "system": {"prepared": {"value": "chanted"}, "spelldc": {"dc": 20}},
            },
            {
                "_id": "spell1",
                "name": "Curse",
                "type": "spell",
                "system": {"level": {"value": 3}, "location": {"value": "entry1"}},
            },
            {
                "_id": "spell2",
                "name": "Orphan",
                "type": "spell",
                "system": {"location": {"value": "missing"}},
            },
            {"_id": "lore1", "name": "Cave Lore", "type": "lore", "system": {}},
        ],
    }


class TestNormalizeActor:
    """Tests for actor normalization."""

    def test_round_trip(self, goblin: ActorRecord, allocator: IdentifierAllocator) -> None:
        """Test that a synthesized actor normalizes back to the same record."""
        payload = synthesize_actor(goblin, allocator=allocator, active_system_id="pf2e").to_payload()
        assert normalize_actor(payload, system_id="pf2e").to_payload() == goblin.to_payload()

    def test_graph_input(self, goblin: ActorRecord, allocator: IdentifierAllocator) -> None:
        """Test that a DocumentGraph is accepted directly."""
        graph = synthesize_actor(goblin, allocator=allocator, active_system_id="pf2e")
        assert normalize_actor(graph, system_id="pf2e").slug == "goblin-warchanter"

    def test_tolerant_identity(self, hand_made_actor: dict[str, Any]) -> None:
        """Test aliases, bare values and slug derivation."""
        record = normalize_actor(hand_made_actor, system_id="pf2e")
        assert record.slug == "cave-troll"
        assert record.actor_type == "npc"
        assert record.size is ActorSize.LARGE
        assert record.rarity == "rare"
        assert record.level == 5
        assert record.traits == ["giant", "troll"]
        assert record.img is None
        assert record.description == "Big & mean."

    def test_attribute_defaults(self, hand_made_actor: dict[str, Any]) -> None:
        """Test the documented fallbacks for missing numbers."""
        attributes = normalize_actor(hand_made_actor, system_id="pf2e").attributes
        assert attributes.hp.value == attributes.hp.max == 95
        assert attributes.ac.value == DEFAULT_ARMOR_CLASS
        assert attributes.speed.value == 30
        assert [(entry.type, entry.value) for entry in attributes.speed.other] == [("swim", 20)]
        assert [(entry.type, entry.value) for entry in attributes.weaknesses] == [("fire", 0), ("acid", 5)]
        assert attributes.saves.fortitude.value == 14
        assert attributes.saves.will.value == 7
        assert attributes.perception.value == 11
        assert attributes.perception.senses == ["darkvision", "scent (imprecise) 30 feet"]

    def test_empty_document(self) -> None:
        """Test that an empty document still yields a valid actor."""
        record = normalize_actor({"type": "npc"}, system_id="pf2e")
        assert record.name == "Unnamed"
        assert record.attributes.speed.value == DEFAULT_SPEED
        assert record.attributes.hp.value == 1
        assert record.abilities.str_ == 0

    def test_abilities_and_skills(self, hand_made_actor: dict[str, Any]) -> None:
        """Test ability modifiers and skills read from their base value."""
        record = normalize_actor(hand_made_actor, system_id="pf2e")
        assert record.abilities.str_ == 5
        assert record.abilities.dex == 0
        assert [(skill.slug, skill.modifier) for skill in record.skills] == [("athletics", 13)]

    def test_strikes(self, hand_made_actor: dict[str, Any]) -> None:
        """Test strikes; one without damage is dropped."""
        (jaws,) = normalize_actor(hand_made_actor, system_id="pf2e").strikes
        assert jaws.type is StrikeType.MELEE
        assert jaws.attack_bonus == 15
        assert jaws.traits == ["reach-10-feet", "Troll"]
        assert jaws.effects == ["grab"]
        assert jaws.damage[0].damage_type == "piercing"

    def test_actions(self, hand_made_actor: dict[str, Any]) -> None:
        """Test passive actions and frequencies read back as text."""
        (regeneration,) = normalize_actor(hand_made_actor, system_id="pf2e").actions
        assert regeneration.action_cost is ActionCost.PASSIVE
        assert regeneration.description == "Regains 20 HP."
        assert regeneration.frequency == "once per 10 minutes"

    def test_inventory(self, hand_made_actor: dict[str, Any]) -> None:
        """Test quantity and level clamping of inventory entries."""
        (sack,) = normalize_actor(hand_made_actor, system_id="pf2e").inventory
        assert sack.item_type is ItemCategory.EQUIPMENT
        assert sack.quantity == 1
        assert sack.level == -1
        assert sack.slug == "sack-of-bones"

    def test_spellcasting(self, hand_made_actor: dict[str, Any]) -> None:
        """Test entry defaults and grouping of spells by location."""
        (entry,) = normalize_actor(hand_made_actor, system_id="pf2e").spellcasting
        assert entry.tradition == "arcane"
        assert entry.casting_type is SpellcastingCategory.INNATE
        assert entry.save_dc == 20
        assert entry.attack_bonus is None
        assert [(spell.level, spell.name) for spell in entry.spells] == [(3, "Curse")]


class TestNormalizeStandalone:
    """Tests for standalone documents."""

    def test_item_round_trip(self, item_payload: dict[str, Any], wand_payload: dict[str, Any]) -> None:
        """Test that priced and unpriced items survive a round trip."""
        for payload in (item_payload, wand_payload):
            document = synthesize_item(payload, active_system_id="pf2e").to_payload()
            record = normalize_item(document, system_id="pf2e")
            assert record.to_payload() == ItemRecord.model_validate(payload).to_payload()

    def test_zero_price_kept_without_flag(self) -> None:
        """Test that zero coins mean zero unless the item was flagged unpriced."""
        document = {
            "name": "Pebble",
            "type": "treasure",
            "system": {"price": {"value": {"gp": 0}}},
        }
        record = normalize_item(document, system_id="pf2e")
        assert record.price == 0
        assert record.item_type is ItemCategory.OTHER

    def test_escaped_description(self) -> None:
        """Test that an entity-escaped HTML description is decoded and stripped."""
        document = {
            "name": "Lantern",
            "type": "equipment",
            "system": {"description": {"value": "&lt;p&gt;Hello&lt;/p&gt;"}},
        }
        assert normalize_item(document, system_id="pf2e").description == "Hello"

    def test_action(self) -> None:
        """Test a legacy-shaped action document."""
        record = normalize_action(
            {
                "name": "Sweep",
                "type": "action",
                "system": {
                    "actionType": "action",
                    "actions": "2",
                    "traits": {"value": ["Attack"], "rarity": "bogus"},
                    "source": {"value": "Homebrew"},
                },
            },
            system_id="pf2e",
        )
        assert record.action_type is ActionExecution.TWO
        assert record.description == "Sweep"
        assert record.traits == ["Attack"]
        assert record.rarity == "common"
        assert record.source == "Homebrew"

    @pytest.mark.parametrize(
        ("document", "model"),
        [
            ({"name": "A", "type": "action"}, ActionRecord),
            ({"name": "B", "type": "character"}, ActorRecord),
            ({"name": "C", "type": "weapon"}, ItemRecord),
            ({"name": "D"}, ItemRecord),
        ],
    )
    def test_dispatch(self, document: dict[str, Any], model: type) -> None:
        """Test dispatch on the document type."""
        assert type(normalize_document(document, system_id="pf2e")) is model

    def test_system_from_settings(self, mock_env_vars: dict[str, str]) -> None:
        """Test that the active host system is stamped by default."""
        assert normalize_action({"name": "Wait", "type": "action"}).system_id == "sf2e"
