"""Tests for consumable use in combat."""

from datetime import datetime, timezone

import pytest

from engine.errors import NotFound, StateConflict, ValidationError
from engine.items import use_item
from models.campaign import Campaign
from models.characters import CharacterSheet, GearItem, InventoryItem, ItemEffects
from models.combat import (
    CombatSession,
    Combatant,
    EntityType,
    SessionStatus,
    TurnOrderEntry,
)
from models.statuses import DamageOverTimeStatus


def _make_campaign() -> Campaign:
    """Helper to create a campaign whose single character carries a few items."""
    sheet = CharacterSheet(
        id="char-1",
        player_id="player_a",
        name="Brannoc",
        inventory=[
            InventoryItem(id="minor-draught", name="Minor Draught", quantity=2),
            InventoryItem(id="ether", name="Ether", effects=ItemEffects(power_gain=10)),
            InventoryItem(id="ink-bomb", name="Ink Bomb", effects=ItemEffects(damage=500)),
            InventoryItem(id="antidote", name="Antidote", effects=ItemEffects(cleanse=["inked"])),
            InventoryItem(id="empty-flask", name="Empty Flask", quantity=0),
            InventoryItem(
                id="weapon-rare-1-1",
                name="Steel Sword",
                item_type="gear",
                gear=GearItem(id="weapon-rare-1-1", name="Steel Sword", slot="weapon", rarity="rare"),
            ),
        ],
    )
    return Campaign(id="camp1", name="Inkwell", owner_id="dm", characters={sheet.id: sheet})


def _make_session() -> CombatSession:
    """Helper: pc-1 (hurt) acts first against one NPC."""
    pc = Combatant(
        id="pc-1", session_id="s1", entity_type=EntityType.PLAYER, player_id="player_a",
        character_id="char-1", name="Brannoc", hp=50, hp_max=100, power=5, power_max=40,
        position=(1, 1),
    )
    npc = Combatant(
        id="npc-1", session_id="s1", entity_type=EntityType.NPC, name="Ink Ghoul 1",
        hp=60, hp_max=60, barrier=10, position=(3, 1),
    )
    session = CombatSession(
        id="s1", campaign_id="camp1", seed=1, status=SessionStatus.ACTIVE,
        grid_width=12, grid_height=8, created_at=datetime.now(timezone.utc),
    )
    session.combatants = {"pc-1": pc, "npc-1": npc}
    session.turn_order = (
        TurnOrderEntry(session_id="s1", turn_index=0, combatant_id="pc-1"),
        TurnOrderEntry(session_id="s1", turn_index=1, combatant_id="npc-1"),
    )
    return session


def _stack(campaign: Campaign, item_id: str) -> InventoryItem:
    return next(i for i in campaign.characters["char-1"].inventory if i.id == item_id)


class TestUseItem:
    """Tests for use_item()."""

    def test_default_heal_on_self(self):
        session, campaign = _make_session(), _make_campaign()
        result = use_item(session, campaign, "pc-1", "minor-draught")
        types = [e.event_type for e in result.events]
        assert types[:2] == ["item_used", "healed"]
        assert session.combatants["pc-1"].hp == 82
        assert _stack(campaign, "minor-draught").quantity == 1
        assert result.next_actor_combatant_id == "npc-1"

    def test_power_gain_clamped(self):
        session, campaign = _make_session(), _make_campaign()
        use_item(session, campaign, "pc-1", "ether")
        assert session.combatants["pc-1"].power == 15
        assert session.combatants["pc-1"].hp == 50

    def test_used_up_stack_removed(self):
        session, campaign = _make_session(), _make_campaign()
        result = use_item(session, campaign, "pc-1", "ether")
        assert result.events[0].payload["quantity_after"] == 0
        assert "ether" not in [i.id for i in campaign.characters["char-1"].inventory]

    def test_cleanse(self):
        session, campaign = _make_session(), _make_campaign()
        pc = session.combatants["pc-1"]
        pc.statuses.append(DamageOverTimeStatus(id="inked", expires_turn=5))
        result = use_item(session, campaign, "pc-1", "antidote")
        cleanse = next(e for e in result.events if e.event_type == "cleanse")
        assert cleanse.payload["ids"] == ["inked"]
        assert pc.statuses == []

    def test_damage_through_barrier_and_kill(self):
        session, campaign = _make_session(), _make_campaign()
        result = use_item(session, campaign, "pc-1", "ink-bomb", target_position=(3, 1))
        types = [e.event_type for e in result.events]
        assert types == ["item_used", "damage", "death", "combat_end"]
        damage = result.events[1]
        assert damage.payload["damage_to_barrier"] == 10
        assert damage.payload["barrier_broken"]
        assert result.ended
        assert result.outcome.won

    def test_depleted(self):
        session, campaign = _make_session(), _make_campaign()
        with pytest.raises(StateConflict, match="depleted"):
            use_item(session, campaign, "pc-1", "empty-flask")

    def test_gear_rejected(self):
        session, campaign = _make_session(), _make_campaign()
        with pytest.raises(ValidationError, match="consumables"):
            use_item(session, campaign, "pc-1", "weapon-rare-1-1")

    def test_unknown_item(self):
        session, campaign = _make_session(), _make_campaign()
        with pytest.raises(NotFound, match="Inventory item"):
            use_item(session, campaign, "pc-1", "elixir")

    def test_empty_tile(self):
        session, campaign = _make_session(), _make_campaign()
        with pytest.raises(NotFound, match="tile"):
            use_item(session, campaign, "pc-1", "ink-bomb", target_position=(7, 7))

    def test_dead_target(self):
        session, campaign = _make_session(), _make_campaign()
        session.combatants["npc-1"].is_alive = False
        with pytest.raises(StateConflict, match="not alive"):
            use_item(session, campaign, "pc-1", "minor-draught", target_id="npc-1")

    def test_npc_has_no_inventory(self):
        session, campaign = _make_session(), _make_campaign()
        session.current_turn_index = 1
        with pytest.raises(NotFound, match="no inventory"):
            use_item(session, campaign, "npc-1", "minor-draught")

    def test_rejection_changes_nothing(self):
        session, campaign = _make_session(), _make_campaign()
        before = (session.model_dump(), campaign.model_dump())
        with pytest.raises(StateConflict):
            use_item(session, campaign, "pc-1", "empty-flask")
        with pytest.raises(StateConflict, match="Not your turn"):
            use_item(session, campaign, "npc-1", "minor-draught")
        assert (session.model_dump(), campaign.model_dump()) == before
