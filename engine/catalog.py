"""Built-in skills and skill scaling formulas."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from engine import tunables as t
from models.skills import (
    BarrierEffect,
    DamageEffect,
    PowerGainEffect,
    Skill,
    TargetFilter,
    TargetingKind,
)
from models.statuses import StatModifiers, StatusDefinition

if TYPE_CHECKING:
    from models.combat import Combatant

BASIC_ATTACK_ID = "basic_attack"
BASIC_DEFEND_ID = "basic_defend"
BASIC_RECOVER_ID = "basic_recover"


def skill_power(skill: Skill, level: int) -> float:
    """base_power + rank * power_scale + floor(level * level_scale)."""
    rank = max(1, skill.rank)
    return skill.base_power + rank * skill.power_scale + math.floor(max(1, level) * skill.level_scale)


def skill_cost(skill: Skill, level: int) -> int:
    """Power cost, scaled by rank and level, clamped to [0, MP_COST_MAX]."""
    if skill.cost <= 0 and skill.cost_scale <= 0:
        return 0
    raw = skill.cost + max(1, skill.rank) * skill.cost_scale + max(1, level) * t.DEFAULT_MP_LEVEL_SCALE
    return int(min(t.MP_COST_MAX, max(0, math.ceil(raw))))


def basic_attack(combatant: Combatant) -> Skill:
    """Weapon strike; reach grows with mobility."""
    return Skill(
        id=BASIC_ATTACK_ID,
        name="Attack",
        targeting=TargetingKind.SINGLE,
        range_tiles=max(1, min(6, combatant.mobility // 20 + 2)),
        base_power=2,
        level_scale=0.5,
        effects=[DamageEffect()],
    )


def basic_defend() -> Skill:
    """Raise a barrier and brace for one turn."""
    return Skill(
        id=BASIC_DEFEND_ID,
        name="Defend",
        targeting=TargetingKind.SELF,
        range_tiles=0,
        target_filter=TargetFilter.ALLIES,
        effects=[BarrierEffect(amount=4, defense_scale=0.22, support_scale=0.1)],
        status=StatusDefinition(
            id="guard",
            kind="buff",
            duration_turns=1,
            modifiers=StatModifiers(pct={"defense": 0.25}),
        ),
    )


def basic_recover() -> Skill:
    """Catch a breath and regain power."""
    return Skill(
        id=BASIC_RECOVER_ID,
        name="Recover",
        targeting=TargetingKind.SELF,
        range_tiles=0,
        target_filter=TargetFilter.ALLIES,
        effects=[PowerGainEffect(amount=6, utility_scale=0.18, support_scale=0.12)],
    )


def npc_swipe() -> Skill:
    return Skill(
        id="npc_swipe",
        name="Savage Swipe",
        targeting=TargetingKind.SINGLE,
        range_tiles=1,
        base_power=4,
        level_scale=0.6,
        effects=[DamageEffect(multiplier=1.1)],
    )


def ink_spit() -> Skill:
    return Skill(
        id="ink_spit",
        name="Ink Spit",
        targeting=TargetingKind.SINGLE,
        range_tiles=3,
        cooldown_turns=3,
        base_power=3,
        requires_los=True,
        effects=[DamageEffect(damage_kind="magical", element="poison")],
        status=StatusDefinition(id="inked", kind="dot", duration_turns=3, element="poison", base_tick=2),
        status_chance=0.6,
    )


def builtin_skills(combatant: Combatant) -> list[Skill]:
    return [basic_attack(combatant), basic_defend(), basic_recover()]


def find_skill(combatant: Combatant, skill_id: str) -> Skill | None:
    """A combatant's own skill by id, falling back to the built-ins."""
    for skill in combatant.skills:
        if skill.id == skill_id:
            return skill
    for skill in builtin_skills(combatant):
        if skill.id == skill_id:
            return skill
    return None
