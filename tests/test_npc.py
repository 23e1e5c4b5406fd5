"""Tests for NPC roster generation and autonomous planning."""

from datetime import datetime, timezone

from engine.catalog import ink_spit
from engine.npc import (
    GHOUL_NAME,
    SPITTER_NAME,
    build_npc,
    build_npc_roster,
    opponents_of,
    plan_autonomous_turn,
)
from engine.status import install_cooldown
from models.characters import DerivedStats
from models.combat import (
    CombatSession,
    Combatant,
    EntityType,
    SessionStatus,
    TurnOrderEntry,
)
from models.statuses import DebuffStatus


def _make_combatant(
    cid: str,
    position: tuple[int, int],
    entity_type: EntityType = EntityType.PLAYER,
) -> Combatant:
    """Helper to create a test combatant."""
    return Combatant(
        id=cid,
        session_id="s1",
        entity_type=entity_type,
        name=cid,
        stats=DerivedStats(hp=100, mp=40, atk=20, acc=90, speed=10),
        hp=100,
        hp_max=100,
        power=40,
        power_max=40,
        position=position,
    )


def _make_session(*combatants: Combatant, blocked=None) -> CombatSession:
    session = CombatSession(
        id="s1",
        campaign_id="camp1",
        seed=21,
        status=SessionStatus.ACTIVE,
        grid_width=12,
        grid_height=8,
        blocked_tiles=blocked or [],
        created_at=datetime.now(timezone.utc),
    )
    for c in combatants:
        session.combatants[c.id] = c
    session.turn_order = tuple(
        TurnOrderEntry(session_id="s1", turn_index=i, combatant_id=c.id)
        for i, c in enumerate(combatants)
    )
    return session


class TestBuildNpc:
    """Tests for build_npc() and build_npc_roster()."""

    def test_deterministic(self):
        a = build_npc("s1", 33, 0, 2)
        b = build_npc("s2", 33, 0, 2)
        assert a.attributes == b.attributes
        assert a.stats == b.stats
        assert a.name == b.name

    def test_full_health_npc(self):
        npc = build_npc("s1", 33, 1, 1)
        assert npc.id == "npc-2"
        assert npc.entity_type == EntityType.NPC
        assert npc.hp == npc.hp_max > 0
        assert npc.power == npc.power_max

    def test_roster_kinds(self):
        roster = build_npc_roster("s1", 7, 30, 1)
        names = {npc.name.rsplit(" ", 1)[0] for npc in roster}
        assert names == {GHOUL_NAME, SPITTER_NAME}
        for npc in roster:
            skill_ids = [s.id for s in npc.skills]
            if npc.name.startswith(SPITTER_NAME):
                assert "ink_spit" in skill_ids
            assert "npc_swipe" in skill_ids

    def test_level_scales(self):
        low = build_npc("s1", 5, 0, 1)
        high = build_npc("s1", 5, 0, 10)
        assert high.hp_max > low.hp_max


class TestOpponentsOf:
    """Tests for opponents_of()."""

    def test_living_other_side_sorted(self):
        dead = _make_combatant("pc-3", (1, 3))
        dead.is_alive = False
        session = _make_session(
            _make_combatant("npc-1", (8, 1), EntityType.NPC),
            _make_combatant("pc-2", (1, 2)),
            _make_combatant("pc-1", (1, 1)),
            dead,
            _make_combatant("sum-1", (2, 1), EntityType.SUMMON),
        )
        ids = [c.id for c in opponents_of(session, session.combatants["npc-1"])]
        assert ids == ["pc-1", "pc-2", "sum-1"]


class TestPlanAutonomousTurn:
    """Tests for plan_autonomous_turn()."""

    def test_attacks_in_reach(self):
        session = _make_session(_make_combatant("npc-1", (2, 1), EntityType.NPC), _make_combatant("pc-1", (1, 1)))
        plan = plan_autonomous_turn(session, session.combatants["npc-1"])
        assert plan.path is None
        assert plan.skill_id == "basic_attack"
        assert plan.target.target_id == "pc-1"

    def test_walks_then_attacks(self):
        session = _make_session(_make_combatant("npc-1", (5, 1), EntityType.NPC), _make_combatant("pc-1", (1, 1)))
        plan = plan_autonomous_turn(session, session.combatants["npc-1"])
        assert plan.path == [(5, 1), (4, 1), (3, 1)]
        assert plan.skill_id == "basic_attack"

    def test_walk_stops_short_of_target(self):
        session = _make_session(_make_combatant("npc-1", (9, 1), EntityType.NPC), _make_combatant("pc-1", (1, 1)))
        session.combatants["npc-1"].mobility = 200
        plan = plan_autonomous_turn(session, session.combatants["npc-1"])
        assert plan.skill_id == "basic_attack"
        assert len(plan.path) == 8
        assert plan.path[-1] == (2, 1)

    def test_no_opponents_waits(self):
        session = _make_session(_make_combatant("npc-1", (2, 1), EntityType.NPC))
        plan = plan_autonomous_turn(session, session.combatants["npc-1"])
        assert plan.path is None
        assert plan.skill_id is None

    def test_rooted_far_away_waits(self):
        session = _make_session(_make_combatant("npc-1", (10, 1), EntityType.NPC), _make_combatant("pc-1", (1, 1)))
        session.combatants["npc-1"].statuses.append(DebuffStatus(id="root", expires_turn=4))
        plan = plan_autonomous_turn(session, session.combatants["npc-1"])
        assert plan.path is None
        assert plan.skill_id is None

    def test_prefers_own_skill_when_ready(self):
        npc = _make_combatant("npc-1", (4, 1), EntityType.NPC)
        npc.skills = [ink_spit()]
        session = _make_session(npc, _make_combatant("pc-1", (1, 1)))
        assert plan_autonomous_turn(session, npc).skill_id == "ink_spit"

    def test_skips_skill_on_cooldown(self):
        npc = _make_combatant("npc-1", (4, 1), EntityType.NPC)
        npc.skills = [ink_spit()]
        install_cooldown(npc, "ink_spit", 3, 0)
        session = _make_session(npc, _make_combatant("pc-1", (1, 1)))
        plan = plan_autonomous_turn(session, npc)
        assert plan.skill_id == "basic_attack"
        assert plan.path is not None

    def test_same_state_same_plan(self):
        session = _make_session(
            _make_combatant("npc-1", (9, 4), EntityType.NPC),
            _make_combatant("pc-1", (1, 1)),
            _make_combatant("pc-2", (1, 6)),
        )
        first = plan_autonomous_turn(session, session.combatants["npc-1"])
        second = plan_autonomous_turn(session, session.combatants["npc-1"])
        assert first == second
