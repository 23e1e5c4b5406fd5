"""Tests for the damage model."""

from engine.damage import absorb_damage, compute_damage_roll
from engine.rng import value01
from models.characters import CoreStats, DerivedStats
from models.combat import Combatant, EntityType

ATTACKER = DerivedStats(hp=100, atk=20, matk=20, acc=90, crit=0, speed=12)
TARGET = DerivedStats(hp=100, defense=0, mdef=0, eva=10, speed=10)
CORE = CoreStats(strength=10, intelligence=10)


def _seed_where(label: str, predicate) -> int:
    """First seed whose draw for label satisfies predicate."""
    return next(s for s in range(5000) if predicate(value01(s, label)))


def _roll(seed: int, **overrides):
    kwargs = dict(
        attacker_stats=ATTACKER,
        attacker_core=CORE,
        target_stats=TARGET,
        target_resistances={},
        target_barrier=0,
        skill_power=10,
        damage_kind="physical",
        seed=seed,
        label="atk",
    )
    kwargs.update(overrides)
    return compute_damage_roll(**kwargs)


class TestComputeDamageRoll:
    """Tests for compute_damage_roll()."""

    def test_deterministic(self):
        assert _roll(77) == _roll(77)

    def test_miss_deals_nothing(self):
        seed = _seed_where("atk:hit", lambda v: v > 0.8)
        roll = _roll(seed, target_barrier=12)
        assert not roll.did_hit
        assert roll.final_damage == 0
        assert roll.target_barrier_after == 12

    def test_hit_damage_in_variance_band(self):
        seed = _seed_where("atk:hit", lambda v: v < 0.5)
        roll = _roll(seed)
        assert roll.did_hit
        assert not roll.did_crit
        # (20 + 10) * 1.1 = 33 before variance
        assert 29 <= roll.final_damage <= 36

    def test_defense_mitigates(self):
        seed = _seed_where("atk:hit", lambda v: v < 0.5)
        open_roll = _roll(seed)
        armored = _roll(seed, target_stats=TARGET.model_copy(update={"defense": 100}))
        assert armored.final_damage < open_roll.final_damage

    def test_negative_armor_gives_no_bonus(self):
        seed = _seed_where("atk:hit", lambda v: v < 0.5)
        assert _roll(seed, target_armor=-50).final_damage == _roll(seed).final_damage

    def test_magical_uses_mdef(self):
        seed = _seed_where("atk:hit", lambda v: v < 0.5)
        tough = TARGET.model_copy(update={"mdef": 100})
        physical = _roll(seed, target_stats=tough)
        magical = _roll(seed, target_stats=tough, damage_kind="magical")
        assert magical.final_damage < physical.final_damage

    def test_crit_multiplies(self):
        seed = next(
            s for s in range(5000)
            if value01(s, "atk:hit") < 0.5 and value01(s, "atk:crit") < 0.3
        )
        normal = _roll(seed)
        crit = _roll(seed, attacker_stats=ATTACKER.model_copy(update={"crit": 0.5}))
        assert crit.did_crit
        assert crit.final_damage > normal.final_damage

    def test_full_resist_floors_at_one(self):
        seed = _seed_where("atk:hit", lambda v: v < 0.5)
        roll = _roll(seed, skill_power=0, target_resistances={"physical": 0.95},
                     target_stats=TARGET.model_copy(update={"defense": 400}))
        assert roll.final_damage >= 1

    def test_hit_chance_clamped(self):
        blind = ATTACKER.model_copy(update={"acc": 1})
        roll = _roll(3, attacker_stats=blind)
        assert roll.hit_chance == 0.05
        sharp = ATTACKER.model_copy(update={"acc": 500})
        assert _roll(3, attacker_stats=sharp).hit_chance == 0.95

    def test_barrier_split(self):
        seed = _seed_where("atk:hit", lambda v: v < 0.5)
        roll = _roll(seed, target_barrier=5)
        assert roll.damage_to_barrier == 5
        assert roll.damage_to_hp == roll.final_damage - 5
        assert roll.target_barrier_after == 0
        assert roll.barrier_broken


def _make_combatant(hp: int = 50, barrier: int = 0) -> Combatant:
    return Combatant(
        id="c1",
        session_id="s1",
        entity_type=EntityType.NPC,
        name="Goblin",
        hp=hp,
        hp_max=50,
        barrier=barrier,
        position=(0, 0),
    )


class TestAbsorbDamage:
    """Tests for absorb_damage()."""

    def test_barrier_absorbs_first(self):
        c = _make_combatant(barrier=10)
        assert absorb_damage(c, 4) == (4, 0, False)
        assert c.barrier == 6
        assert c.hp == 50

    def test_overflow_to_hp(self):
        c = _make_combatant(barrier=10)
        assert absorb_damage(c, 15) == (10, 5, True)
        assert c.hp == 45

    def test_lethal_clamps_at_zero(self):
        c = _make_combatant(hp=5)
        absorb_damage(c, 40)
        assert c.hp == 0
        assert not c.is_alive

    def test_negative_is_noop(self):
        c = _make_combatant()
        assert absorb_damage(c, -3) == (0, 0, False)
        assert c.hp == 50
