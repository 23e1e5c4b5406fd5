"""Tests for the status engine."""

from engine.status import (
    apply_status_effect,
    cleanse,
    cooldown_remaining,
    effective_stats,
    install_cooldown,
    is_immune,
    prune_expired,
    tick_statuses,
)
from models.characters import DerivedStats
from models.combat import Combatant, EntityType
from models.statuses import (
    BuffStatus,
    DebuffStatus,
    StatModifiers,
    StatusDefinition,
)


def _make_combatant(hp: int = 100, barrier: int = 0) -> Combatant:
    """Helper to create a test combatant."""
    return Combatant(
        id="c1",
        session_id="s1",
        entity_type=EntityType.PLAYER,
        name="Test",
        hp=hp,
        hp_max=100,
        barrier=barrier,
        stats=DerivedStats(hp=100, atk=20, defense=10, matk=20, speed=12),
        position=(0, 0),
    )


def _burning(stacking: str = "refresh", duration: int = 3) -> StatusDefinition:
    return StatusDefinition(
        id="burning",
        kind="dot",
        duration_turns=duration,
        element="fire",
        base_tick=4,
        rank_tick=0,
        dot_scale=0,
        stacking=stacking,
    )


class TestApplyStatusEffect:
    """Tests for apply_status_effect()."""

    def test_applies_with_expiry(self):
        target = _make_combatant()
        result = apply_status_effect(target, _burning(), None, None, current_turn=2)
        assert result.applied
        assert result.reason == "applied"
        assert result.expires_turn == 5
        assert [s.id for s in target.statuses] == ["burning"]

    def test_refresh_never_duplicates(self):
        target = _make_combatant()
        apply_status_effect(target, _burning(), None, None, current_turn=1)
        result = apply_status_effect(target, _burning(), None, None, current_turn=3)
        assert result.reason == "refreshed"
        assert len(target.statuses) == 1
        assert target.statuses[0].expires_turn == 6

    def test_refresh_keeps_later_expiry(self):
        target = _make_combatant()
        apply_status_effect(target, _burning(duration=5), None, None, current_turn=1)
        apply_status_effect(target, _burning(duration=1), None, None, current_turn=2)
        assert target.statuses[0].expires_turn == 6

    def test_stacking_none_ignored(self):
        target = _make_combatant()
        apply_status_effect(target, _burning("none"), None, None, current_turn=1)
        result = apply_status_effect(target, _burning("none"), None, None, current_turn=3)
        assert not result.applied
        assert result.reason == "ignored"
        assert target.statuses[0].expires_turn == 4

    def test_intensity_caps(self):
        target = _make_combatant()
        definition = _burning("intensity").model_copy(update={"intensity_cap": 2})
        for turn in range(4):
            apply_status_effect(target, definition, None, None, current_turn=turn)
        assert len(target.statuses) == 1
        assert target.statuses[0].intensity == 2

    def test_immunity(self):
        target = _make_combatant()
        target.statuses.append(BuffStatus(id="ward", expires_turn=9, immunities=["dot"]))
        result = apply_status_effect(target, _burning(), None, None, current_turn=1)
        assert result.reason == "immune"
        assert not result.applied
        assert [s.id for s in target.statuses] == ["ward"]

    def test_dot_captures_source_matk(self):
        source = _make_combatant()
        target = _make_combatant()
        apply_status_effect(target, _burning(), source, "ember", current_turn=1)
        assert target.statuses[0].source_matk == 20
        assert target.statuses[0].source_skill_id == "ember"


class TestIsImmune:
    """Tests for is_immune()."""

    def test_all_token(self):
        c = _make_combatant()
        c.statuses.append(BuffStatus(id="aegis", expires_turn=9, immunities=["all"]))
        assert is_immune(c, "stun", "debuff")

    def test_debuffs_grant_nothing(self):
        c = _make_combatant()
        c.statuses.append(DebuffStatus(id="weak", expires_turn=9))
        assert not is_immune(c, "stun", "debuff")


class TestTickStatuses:
    """Tests for tick_statuses()."""

    def test_dot_damages(self):
        target = _make_combatant()
        apply_status_effect(target, _burning(), None, None, current_turn=1)
        ticks = tick_statuses(target, current_turn=2)
        assert len(ticks) == 1
        assert ticks[0].kind == "dot"
        assert ticks[0].amount == 4
        assert target.hp == 96

    def test_dot_hits_barrier_first(self):
        target = _make_combatant(barrier=3)
        apply_status_effect(target, _burning(), None, None, current_turn=1)
        ticks = tick_statuses(target, current_turn=2)
        assert ticks[0].damage_to_barrier == 3
        assert target.barrier == 0
        assert target.hp == 99

    def test_hot_clamped_to_max(self):
        target = _make_combatant(hp=98)
        regen = StatusDefinition(id="regen", kind="hot", duration_turns=3, base_tick=10, hot_scale=0)
        apply_status_effect(target, regen, None, None, current_turn=1)
        ticks = tick_statuses(target, current_turn=2)
        assert ticks[0].effect == "heal"
        assert target.hp == 100

    def test_expired_removed_after_tick(self):
        target = _make_combatant()
        apply_status_effect(target, _burning(duration=1), None, None, current_turn=1)
        ticks = tick_statuses(target, current_turn=2)
        assert len(ticks) == 1
        assert target.statuses == []

    def test_lethal_dot_marks_dead(self):
        target = _make_combatant(hp=3)
        apply_status_effect(target, _burning(), None, None, current_turn=1)
        tick_statuses(target, current_turn=2)
        assert target.hp == 0
        assert not target.is_alive


class TestPruneExpired:
    """Tests for prune_expired()."""

    def test_boundary_is_inclusive(self):
        c = _make_combatant()
        c.statuses.append(DebuffStatus(id="weak", expires_turn=4))
        assert prune_expired(c, 3) == []
        assert prune_expired(c, 4) == ["weak"]


class TestCooldowns:
    """Tests for install_cooldown() and cooldown_remaining()."""

    def test_remaining(self):
        c = _make_combatant()
        install_cooldown(c, "fireball", 2, current_turn=5)
        assert cooldown_remaining(c, "fireball", 5) == 2
        assert cooldown_remaining(c, "fireball", 7) == 0

    def test_zero_cooldown_installs_nothing(self):
        c = _make_combatant()
        install_cooldown(c, "basic_attack", 0, current_turn=5)
        assert c.statuses == []

    def test_reinstall_replaces(self):
        c = _make_combatant()
        install_cooldown(c, "fireball", 2, current_turn=1)
        install_cooldown(c, "fireball", 2, current_turn=4)
        assert len(c.statuses) == 1
        assert c.statuses[0].expires_turn == 6


class TestCleanse:
    """Tests for cleanse()."""

    def test_default_strips_harmful_only(self):
        c = _make_combatant()
        c.statuses.append(DebuffStatus(id="weak", expires_turn=9))
        c.statuses.append(BuffStatus(id="haste", expires_turn=9))
        apply_status_effect(c, _burning(), None, None, current_turn=1)
        install_cooldown(c, "fireball", 3, current_turn=1)
        removed = cleanse(c)
        assert sorted(removed) == ["burning", "weak"]
        assert sorted(s.id for s in c.statuses) == ["cd:fireball", "haste"]

    def test_named_ids_skip_cooldowns(self):
        c = _make_combatant()
        install_cooldown(c, "fireball", 3, current_turn=1)
        assert cleanse(c, ["cd:fireball"]) == []


class TestEffectiveStats:
    """Tests for effective_stats()."""

    def test_flat_and_pct(self):
        c = _make_combatant()
        c.statuses.append(BuffStatus(
            id="guard", expires_turn=9, modifiers=StatModifiers(flat={"defense": 5}),
        ))
        c.statuses.append(DebuffStatus(
            id="weak", expires_turn=9, modifiers=StatModifiers(pct={"atk": -0.25}),
        ))
        stats = effective_stats(c)
        assert stats.defense == 15
        assert stats.atk == 15
        assert c.stats.atk == 20
