"""Tests for host document models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from canonforge.mapping.identifiers import IdentifierAllocator
from canonforge.mapping.synthesizer import synthesize
from canonforge.models.canonical import ActorRecord
from canonforge.models.documents import (
    ActionDocument,
    Coins,
    DamageRoll,
    HostSense,
    InventoryDocument,
    SpellDocument,
    StrikeDocument,
)
from canonforge.models.enums import SenseAcuity


class TestOmitWhenNone:
    """Tests for keys the host must not receive as null."""

    def test_sense_without_range(self) -> None:
        """Test that unset acuity and range are left out."""
        assert HostSense(type="scent").to_payload() == {"type": "scent"}

    def test_sense_with_range(self) -> None:
        """Test a fully specified sense."""
        sense = HostSense(type="darkvision", acuity=SenseAcuity.PRECISE, range=60)
        assert sense.to_payload() == {"type": "darkvision", "acuity": "precise", "range": 60}

    def test_other_none_fields_kept(self) -> None:
        """Test that only listed fields are omitted."""
        payload = DamageRoll(damage="1d6").to_payload()
        assert payload == {"damage": "1d6", "damageType": None, "category": None}


class TestCoins:
    """Tests for Coins."""

    def test_frozen(self) -> None:
        """Test that coin values are immutable."""
        coins = Coins(gp=3, sp=5)
        with pytest.raises(ValidationError):
            coins.gp = 4

    def test_negative_rejected(self) -> None:
        """Test that denominations cannot be negative."""
        with pytest.raises(ValidationError):
            Coins(cp=-1)


class TestDocumentGraph:
    """Tests for DocumentGraph."""

    def test_actor_payload(self, goblin: ActorRecord, allocator: IdentifierAllocator) -> None:
        """Test that actors carry embedded records under items."""
        graph = synthesize(goblin, allocator=allocator, active_system_id="pf2e")

        payload = graph.to_payload()

        assert graph.slug == "goblin-warchanter"
        assert [item["_id"] for item in payload["items"]] == [record.id for record in graph.embedded]
        assert "prototypeToken" in payload

    def test_embedded_of(self, goblin: ActorRecord, allocator: IdentifierAllocator) -> None:
        """Test filtering embedded records by kind."""
        graph = synthesize(goblin, allocator=allocator, active_system_id="pf2e")

        assert len(graph.embedded_of(StrikeDocument)) == 2
        assert len(graph.embedded_of(ActionDocument)) == 3
        assert len(graph.embedded_of(SpellDocument)) == 2
        assert len(graph.embedded_of(StrikeDocument, InventoryDocument)) == 5

    def test_standalone_payload(self, wand_payload: dict, allocator: IdentifierAllocator) -> None:
        """Test that standalone items have no items key."""
        graph = synthesize(wand_payload, allocator=allocator, active_system_id="pf2e")

        payload = graph.to_payload()

        assert graph.document_type == "Item"
        assert "items" not in payload
        assert payload["type"] == "consumable"
