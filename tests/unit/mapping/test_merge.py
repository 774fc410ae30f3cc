"""Tests for the section merge engine and mutation planning."""

from __future__ import annotations

from typing import Any

import pytest

from canonforge.core.exceptions import PatchScopeError, SchemaViolationError
from canonforge.mapping.identifiers import IdentifierAllocator
from canonforge.mapping.merge import (
    SECTION_ROOT_PATHS,
    MutationPlan,
    adopt_inventory_slugs,
    document_key,
    inventory_key,
    merge_sections,
    plan_mutations,
    sections_in,
    upsert,
)
from canonforge.mapping.synthesizer import synthesize_actor
from canonforge.models.canonical import ActorPatch, ActorRecord, InventoryEntry
from canonforge.models.enums import ItemCategory, Section


class TestSectionsIn:
    """Tests for sections_in."""

    def test_only_supplied_fields(self) -> None:
        """Test that sections are derived from the fields actually set."""
        patch = ActorPatch.model_validate({"level": 2, "description": "New.", "strikes": []})
        assert sections_in(patch) == {Section.CORE, Section.NARRATIVE, Section.STRIKES}
        assert sections_in(ActorPatch()) == set()


class TestUpsert:
    """Tests for the keyed upsert."""

    def test_collision_overwrites_set_fields(self) -> None:
        """Test that only the incoming entry's explicit fields are overwritten."""
        existing = [InventoryEntry(name="Rope", description="Hemp.")]
        incoming = [InventoryEntry.model_validate({"name": "rope ", "quantity": 3})]
        (merged,) = upsert(existing, incoming, inventory_key)
        assert merged.quantity == 3
        assert merged.description == "Hemp."
        assert merged.name == "rope "

    def test_new_key_appends_once(self) -> None:
        """Test that a new key appends exactly one entry."""
        existing = [InventoryEntry(name="Rope")]
        merged = upsert(existing, [InventoryEntry(name="Torch")], inventory_key)
        assert [entry.name for entry in merged] == ["Rope", "Torch"]

    def test_later_incoming_wins(self) -> None:
        """Test last-write-wins among incoming duplicates."""
        incoming = [
            InventoryEntry.model_validate({"name": "Torch", "quantity": 2}),
            InventoryEntry.model_validate({"name": "Torch", "quantity": 5}),
        ]
        (merged,) = upsert([], incoming, inventory_key)
        assert merged.quantity == 5

    def test_idempotent(self) -> None:
        """Test that upserting the same entries twice changes nothing."""
        incoming = [InventoryEntry(name="Rope", slug="rope"), InventoryEntry(name="Torch")]
        once = upsert([], incoming, inventory_key)
        assert upsert(once, incoming, inventory_key) == once

    def test_category_is_part_of_the_key(self) -> None:
        """Test that same-named items of different categories do not collide."""
        existing = [InventoryEntry(name="Oil", item_type=ItemCategory.CONSUMABLE)]
        incoming = [InventoryEntry(name="Oil", item_type=ItemCategory.EQUIPMENT)]
        assert len(upsert(existing, incoming, inventory_key)) == 2


class TestMergeSections:
    """Tests for merge_sections."""

    def test_inventory_add_upserts(self, goblin: ActorRecord) -> None:
        """Test that add updates a matching slug and appends new items."""
        merged = merge_sections(
            goblin,
            {
                "inventory": [
                    {"name": "Healing Potion (Minor)", "slug": "healing-potion-minor", "quantity": 5},
                    {"name": "Rope", "slug": "rope"},
                ]
            },
            {"inventory": "add"},
        )
        assert [entry.slug for entry in merged.inventory] == [
            "dogslicer",
            "healing-potion-minor",
            "wand-of-shocking-grasp",
            "rope",
        ]
        potion = merged.inventory[1]
        assert potion.quantity == 5
        assert potion.description == "Restores 1d8 Hit Points."
        assert potion.item_type is ItemCategory.CONSUMABLE

    def test_unslugged_add_updates_stored_entry(self, goblin: ActorRecord) -> None:
        """Test that an entry without a slug lands on the stored entry of the same name."""
        patch = {"inventory": [{"name": "Dogslicer", "itemType": "weapon", "quantity": 2}]}
        merged = merge_sections(goblin, patch, {"inventory": "add"})

        assert [entry.name for entry in merged.inventory] == [
            "Dogslicer",
            "Healing Potion (Minor)",
            "Wand of Shocking Grasp",
        ]
        assert merged.inventory[0].slug == "dogslicer"
        assert merged.inventory[0].quantity == 2

    def test_unslugged_add_other_category_appends(self, goblin: ActorRecord) -> None:
        """Test that the same name under another category is a new entry."""
        patch = {"inventory": [{"name": "Dogslicer", "itemType": "equipment"}]}
        merged = merge_sections(goblin, patch, {"inventory": "add"})

        assert len(merged.inventory) == 4
        assert merged.inventory[-1].slug is None

    def test_add_without_entries_keeps_section(self, goblin: ActorRecord) -> None:
        """Test that an omitted list field under add changes nothing."""
        merged = merge_sections(goblin, {}, {"strikes": "add"})
        assert merged.strikes == goblin.strikes

    def test_replace_clears_prior_state(self, goblin: ActorRecord) -> None:
        """Test that replace leaves nothing of the previous section."""
        merged = merge_sections(
            goblin,
            {"inventory": [{"name": "Rope", "slug": "rope"}]},
            {"inventory": "replace"},
        )
        assert [entry.slug for entry in merged.inventory] == ["rope"]

    def test_replace_with_omitted_field_empties_section(self, goblin: ActorRecord) -> None:
        """Test that replace with no entries yields an empty list."""
        merged = merge_sections(goblin, {}, {"strikes": "replace", "actions": "replace"})
        assert merged.strikes == []
        assert merged.actions == []
        assert merged.skills == goblin.skills

    def test_scalar_section_add_replaces_supplied_fields(self, goblin: ActorRecord) -> None:
        """Test that add on a scalar section replaces only supplied fields."""
        merged = merge_sections(goblin, {"level": 3, "traits": ["goblin"]}, {"core": "add"})
        assert merged.level == 3
        assert merged.traits == ["goblin"]
        assert merged.languages == ["Common", "Goblin"]
        assert merged.size == goblin.size

    def test_skills_add_by_slug(self, goblin: ActorRecord) -> None:
        """Test that skills upsert by slug."""
        merged = merge_sections(
            goblin,
            {"skills": [{"slug": "acrobatics", "modifier": 9}, {"slug": "stealth", "modifier": 7}]},
            {"skills": "add"},
        )
        assert [(skill.slug, skill.modifier) for skill in merged.skills] == [
            ("acrobatics", 9),
            ("performance", 6),
            ("stealth", 7),
        ]

    def test_spells_merge_by_entry_then_spell(self, goblin: ActorRecord) -> None:
        """Test nested upsert with last-write-wins for duplicate spells."""
        merged = merge_sections(
            goblin,
            {
                "spellcasting": [
                    {
                        "name": "Occult Innate Spells",
                        "tradition": "Occult",
                        "castingType": "innate",
                        "spells": [
                            {"level": 1, "name": "Fear", "description": "first"},
                            {"level": 1, "name": "Fear", "description": "second"},
                            {"level": 0, "name": "Daze"},
                        ],
                    }
                ]
            },
            {"spells": "add"},
        )
        (entry,) = merged.spellcasting
        assert entry.attack_bonus == 9
        assert entry.tradition == "Occult"
        assert [(spell.name, spell.description) for spell in entry.spells] == [
            ("Fear", "second"),
            ("Ghost Sound", None),
            ("Daze", None),
        ]

    def test_unselected_section_rejected(self, goblin: ActorRecord) -> None:
        """Test that a patch may not carry unselected sections."""
        with pytest.raises(PatchScopeError) as exc_info:
            merge_sections(
                goblin,
                {"level": 4, "description": "Taller.", "inventory": []},
                {"inventory": "add"},
            )
        assert exc_info.value.sections == ["core", "narrative"]

    def test_invalid_patch(self, goblin: ActorRecord) -> None:
        """Test that identity fields in a patch fail validation."""
        with pytest.raises(SchemaViolationError, match="Section patch failed validation"):
            merge_sections(goblin, {"name": "Renamed"}, {"core": "replace"})

    def test_snapshot_must_be_actor(self, action_payload: dict[str, Any]) -> None:
        """Test that merges need an actor snapshot."""
        with pytest.raises(SchemaViolationError, match="require an actor snapshot"):
            merge_sections(action_payload, {}, {"core": "add"})

    def test_legacy_snapshot_migrated(self, legacy_actor_payload: dict[str, Any]) -> None:
        """Test that an old snapshot is migrated before merging."""
        merged = merge_sections(
            legacy_actor_payload,
            {"inventory": [{"name": "Rope"}]},
            {"inventory": "add"},
        )
        assert merged.schema_version == 3
        assert [entry.name for entry in merged.inventory] == ["Rope"]

    def test_snapshot_not_mutated(self, goblin: ActorRecord) -> None:
        """Test that the snapshot record is left unchanged."""
        before = goblin.to_payload()
        merge_sections(goblin, {"strikes": []}, {"strikes": "replace"})
        assert goblin.to_payload() == before


class TestPlanMutations:
    """Tests for plan_mutations."""

    @pytest.fixture
    def existing(self, goblin: ActorRecord, allocator: IdentifierAllocator) -> dict[str, Any]:
        """Provide the goblin as currently stored.

        Returns:
            Host actor JSON with embedded items.
        """
        return synthesize_actor(goblin, allocator=allocator, active_system_id="pf2e").to_payload()

    def _plan(
        self,
        existing: dict[str, Any],
        goblin: ActorRecord,
        patch: dict[str, Any],
        selection: dict[str, str],
    ) -> MutationPlan:
        merged = merge_sections(goblin, patch, selection)
        graph = synthesize_actor(merged, allocator=IdentifierAllocator(), active_system_id="pf2e")
        return plan_mutations(existing, graph, selection)

    def test_add_creates_only_new_keys(self, existing: dict[str, Any], goblin: ActorRecord) -> None:
        """Test that add leaves existing records alone."""
        plan = self._plan(
            existing,
            goblin,
            {"inventory": [{"name": "Dogslicer", "slug": "dogslicer"}, {"name": "Rope", "slug": "rope"}]},
            {"inventory": "add"},
        )
        assert [item["name"] for item in plan.creations] == ["Rope"]
        assert plan.deletions == []
        assert plan.root_update == {}

    def test_replace_deletes_section_records(self, existing: dict[str, Any], goblin: ActorRecord) -> None:
        """Test that replace deletes only records of the replaced section."""
        plan = self._plan(
            existing,
            goblin,
            {"strikes": [{"name": "Club", "type": "melee", "attackBonus": 6, "damage": [{"formula": "1d6"}]}]},
            {"strikes": "replace"},
        )
        strike_ids = [item["_id"] for item in existing["items"] if item["type"] == "melee"]
        assert plan.deletions == strike_ids
        assert [item["name"] for item in plan.creations] == ["Club"]

    def test_scalar_sections_update_root(self, existing: dict[str, Any], goblin: ActorRecord) -> None:
        """Test that scalar sections become root path updates."""
        plan = self._plan(existing, goblin, {"level": 4, "size": "lg"}, {"core": "replace"})
        assert set(plan.root_update) == set(SECTION_ROOT_PATHS[Section.CORE])
        assert plan.root_update["system.details.level"] == {"value": 4}
        assert plan.root_update["prototypeToken.width"] == 2
        assert plan.creations == []
        assert plan.deletions == []

    def test_skills_are_root_only(self, existing: dict[str, Any], goblin: ActorRecord) -> None:
        """Test that skills update the root and touch no embedded records."""
        plan = self._plan(existing, goblin, {"skills": [{"slug": "stealth", "modifier": 7}]}, {"skills": "add"})
        assert set(plan.root_update["system.skills"]) == {"acrobatics", "performance", "stealth"}
        assert plan.creations == []

    def test_spells_add_remaps_existing_entry(self, goblin: ActorRecord, store: Any) -> None:
        """Test that a matching entry is remapped and known spells are skipped."""
        handle = store.add(
            synthesize_actor(goblin, allocator=IdentifierAllocator(), active_system_id="pf2e").to_payload()
        )
        stored = store.documents[handle.id]
        entry_id = next(item["_id"] for item in stored["items"] if item["type"] == "spellcastingEntry")

        plan = self._plan(
            stored,
            goblin,
            {
                "spellcasting": [
                    {
                        "name": "Occult Innate Spells",
                        "tradition": "occult",
                        "castingType": "innate",
                        "spells": [{"level": 0, "name": "Daze"}],
                    }
                ]
            },
            {"spells": "add"},
        )
        assert plan.entry_creations == []
        assert list(plan.entry_remap.values()) == [entry_id]
        assert [spell["name"] for spell in plan.spell_creations] == ["Daze"]

    def test_spells_replace(self, existing: dict[str, Any], goblin: ActorRecord) -> None:
        """Test that replacing spells recreates entries and spells."""
        plan = self._plan(existing, goblin, {}, {"spells": "replace"})
        assert len(plan.deletions) == 3
        assert plan.entry_creations == []
        assert plan.spell_creations == []
        assert not plan.is_empty

    def test_empty_plan(self, existing: dict[str, Any], goblin: ActorRecord) -> None:
        """Test that re-adding what exists plans nothing."""
        plan = self._plan(existing, goblin, {}, {"inventory": "add", "strikes": "add"})
        assert plan.is_empty

    def test_unslugged_add_matches_stored_document(self, existing: dict[str, Any], goblin: ActorRecord) -> None:
        """Test that an unslugged add of a stored item plans no creation."""
        plan = self._plan(
            existing,
            goblin,
            {"inventory": [{"name": "Dogslicer", "itemType": "weapon"}]},
            {"inventory": "add"},
        )
        assert plan.creations == []


class TestInventoryKeys:
    """Tests for inventory identity across records and stored documents."""

    def test_adopt_slug_of_same_name_and_category(self) -> None:
        """Test that only an unslugged entry with a matching name and category adopts a slug."""
        existing = [InventoryEntry(name="Dogslicer", slug="dogslicer", item_type=ItemCategory.WEAPON)]
        incoming = [
            InventoryEntry(name="  DOGSLICER ", item_type=ItemCategory.WEAPON),
            InventoryEntry(name="Dogslicer", item_type=ItemCategory.EQUIPMENT),
            InventoryEntry(name="Dogslicer", slug="dogslicer-2", item_type=ItemCategory.WEAPON),
        ]
        adopted = adopt_inventory_slugs(existing, incoming)
        assert [entry.slug for entry in adopted] == ["dogslicer", None, "dogslicer-2"]
        assert incoming[0].slug is None

    def test_document_without_slug_keyed_by_name(self) -> None:
        """Test that a stored document without a slug is keyed like the normalizer slugs it."""
        document = {"name": "Rusty Dogslicer", "type": "weapon", "system": {}}
        assert document_key(Section.INVENTORY, document) == "rusty-dogslicer"
        assert document_key(Section.INVENTORY, {"name": "Rope", "system": {"slug": " rope "}}) == "rope"
