"""Damage model: hit, crit, mitigation, variance, resist, and barrier."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel

from engine import tunables as t
from engine.rng import value01
from engine.stats import clamp

if TYPE_CHECKING:
    from models.characters import CoreStats, DerivedStats
    from models.combat import Combatant


class DamageRoll(BaseModel):
    """Outcome of one attack against one target."""
    did_hit: bool
    did_crit: bool = False
    hit_chance: float
    hit_roll: float
    crit_chance: float = 0
    crit_roll: float | None = None
    raw: float = 0
    mitigated: float = 0
    final_damage: int = 0
    damage_to_barrier: int = 0
    damage_to_hp: int = 0
    target_barrier_after: int
    barrier_broken: bool = False


def absorb_damage(target: Combatant, amount: int) -> tuple[int, int, bool]:
    """Apply damage to a combatant, barrier first, then hp.

    Every hp-damage source goes through here: skills, items, and
    damage-over-time ticks.

    Args:
        target: Combatant to damage (mutated in place).
        amount: Non-negative damage.

    Returns:
        (damage_to_barrier, damage_to_hp, barrier_broken) tuple.
    """
    amount = max(0, int(amount))
    to_barrier = min(target.barrier, amount)
    to_hp = amount - to_barrier
    barrier_broken = target.barrier > 0 and to_barrier >= target.barrier
    target.barrier -= to_barrier
    target.hp = max(0, target.hp - to_hp)
    if target.hp <= 0:
        target.is_alive = False
    return to_barrier, to_hp, barrier_broken


def compute_damage_roll(
    attacker_stats: DerivedStats,
    attacker_core: CoreStats,
    target_stats: DerivedStats,
    target_resistances: dict[str, float],
    target_barrier: int,
    skill_power: float,
    damage_kind: Literal["physical", "magical"],
    seed: int,
    label: str,
    element: str = "physical",
    target_armor: int = 0,
    target_resist: float = 0,
    hit_bonus: float = 0,
    crit_bonus: float = 0,
) -> DamageRoll:
    """Resolve a single skill hit against a single target.

    Pure: nothing is mutated. A miss short-circuits with zero damage and
    leaves the barrier untouched.

    Args:
        attacker_stats: Attacker's effective derived stats.
        attacker_core: Attacker's core stats (strength/intelligence scaling).
        target_stats: Target's effective derived stats.
        target_resistances: Target's per-element resistances.
        target_barrier: Barrier the target currently holds.
        skill_power: Power of the skill being used.
        damage_kind: "physical" (atk vs defense) or "magical" (matk vs mdef).
        seed: Session seed.
        label: Draw label unique to this (turn, actor, skill, target).
        element: Element key used to look up resistance.
        target_armor: Flat armor stacked on the target's defense.
        target_resist: Extra resist fraction carried by the target.
        hit_bonus: Accuracy points added to the hit calculation.
        crit_bonus: Crit chance added before clamping.

    Returns:
        DamageRoll describing the outcome.
    """
    hit_chance = clamp(
        (attacker_stats.acc - target_stats.eva + hit_bonus) / 100,
        t.HIT_CHANCE_MIN,
        t.HIT_CHANCE_MAX,
    )
    hit_roll = value01(seed, f"{label}:hit")
    if hit_roll > hit_chance:
        return DamageRoll(
            did_hit=False,
            hit_chance=hit_chance,
            hit_roll=hit_roll,
            target_barrier_after=target_barrier,
        )

    crit_chance = clamp(
        attacker_stats.crit + crit_bonus - target_stats.crit_res,
        t.CRIT_CHANCE_MIN,
        t.CRIT_CHANCE_MAX,
    )
    crit_roll = value01(seed, f"{label}:crit")
    did_crit = crit_roll < crit_chance

    if damage_kind == "magical":
        raw = (attacker_stats.matk + skill_power) * (1 + attacker_core.intelligence * t.MAGICAL_INT_SCALE)
        mitigation = 100 / (100 + max(0, target_stats.mdef + target_armor))
    else:
        raw = (attacker_stats.atk + skill_power) * (1 + attacker_core.strength * t.PHYSICAL_STR_SCALE)
        mitigation = 100 / (100 + max(0, target_stats.defense + target_armor))

    amount = raw * mitigation
    if did_crit:
        amount *= t.CRIT_MULTIPLIER
    variance = 1 + (value01(seed, f"{label}:variance") * 2 - 1) * t.VARIANCE_PCT
    amount *= variance
    resist = clamp(
        target_resistances.get(element, target_stats.res) + target_resist,
        t.DAMAGE_RESIST_MIN,
        t.DAMAGE_RESIST_MAX,
    )
    amount *= 1 - resist
    final = max(t.MIN_DAMAGE_ON_HIT, math.floor(amount))

    to_barrier = min(target_barrier, final)
    return DamageRoll(
        did_hit=True,
        did_crit=did_crit,
        hit_chance=hit_chance,
        hit_roll=hit_roll,
        crit_chance=crit_chance,
        crit_roll=crit_roll,
        raw=round(raw, 4),
        mitigated=round(raw * mitigation, 4),
        final_damage=final,
        damage_to_barrier=to_barrier,
        damage_to_hp=final - to_barrier,
        target_barrier_after=target_barrier - to_barrier,
        barrier_broken=target_barrier > 0 and to_barrier >= target_barrier,
    )
