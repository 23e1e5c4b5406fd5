"""NPC definitions and server-controlled AI for autonomous turns."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

from engine.catalog import (
    BASIC_ATTACK_ID,
    find_skill,
    ink_spit,
    npc_swipe,
    skill_cost,
)
from engine.grid import distance, find_path, line_of_sight, movement_budget, occupied_tiles
from engine.rng import rng_int, rng_pick
from engine.stats import base_stats_from_attributes, derive_stats
from engine.status import cooldown_remaining
from models.characters import Attributes
from models.combat import Combatant, EntityType
from models.skills import CombatTarget, DamageEffect, TargetingKind

if TYPE_CHECKING:
    from models.combat import CombatSession
    from models.skills import Skill

# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------

GHOUL_NAME = "Ink Ghoul"
SPITTER_NAME = "Ink Spitter"


def build_npc(session_id: str, seed: int, index: int, level: int) -> Combatant:
    """Create one seeded NPC.

    Roughly one in three is a ranged Ink Spitter; the rest are melee
    Ink Ghouls. Attributes jitter around a level-scaled base.
    """
    label = f"npc:{index}"
    base = 6 + level + rng_int(seed, f"{label}:base", 0, 6)
    attributes = Attributes(
        offense=base + rng_int(seed, f"{label}:off", 0, 4),
        defense=base + rng_int(seed, f"{label}:def", -2, 2),
        control=base + rng_int(seed, f"{label}:ctl", -3, 3),
        support=max(1, base - 4),
        mobility=base + rng_int(seed, f"{label}:mob", 0, 10),
        utility=max(1, base - 4),
    )
    spitter = rng_int(seed, f"{label}:kind", 0, 2) == 0
    stats, resistances = derive_stats(level, base_stats_from_attributes(attributes))
    name = SPITTER_NAME if spitter else GHOUL_NAME
    return Combatant(
        id=f"npc-{index + 1}",
        session_id=session_id,
        entity_type=EntityType.NPC,
        name=f"{name} {index + 1}",
        level=level,
        attributes=attributes,
        stats=stats,
        resistances=resistances,
        hp=stats.hp,
        hp_max=stats.hp,
        power=stats.mp,
        power_max=stats.mp,
        mobility=attributes.mobility,
        position=(0, 0),
        skills=[ink_spit(), npc_swipe()] if spitter else [npc_swipe()],
    )


def build_npc_roster(session_id: str, seed: int, count: int, level: int) -> list[Combatant]:
    return [build_npc(session_id, seed, i, level) for i in range(count)]


# ---------------------------------------------------------------------------
# AI: called by the engine when an NPC or summon holds the turn
# ---------------------------------------------------------------------------


class AutonomousPlan(BaseModel):
    """What an autonomous combatant does with its turn."""
    path: list[tuple[int, int]] | None = None   # Walk first, if set
    skill_id: str | None = None                 # Then use this skill
    target: CombatTarget | None = None


def opponents_of(session: CombatSession, combatant: Combatant) -> list[Combatant]:
    """Living combatants on the other side, in stable id order."""
    return sorted(
        (
            c for c in session.combatants.values()
            if c.is_alive and c.allegiance != combatant.allegiance
        ),
        key=lambda c: c.id,
    )


def _usable_attacks(session: CombatSession, actor: Combatant) -> list[Skill]:
    """Damaging single-target skills the actor can afford and has off cooldown."""
    candidates = list(actor.skills)
    basic = find_skill(actor, BASIC_ATTACK_ID)
    if basic is not None:
        candidates.append(basic)
    usable = []
    for skill in candidates:
        if skill.targeting != TargetingKind.SINGLE:
            continue
        if not any(isinstance(e, DamageEffect) for e in skill.effects):
            continue
        if cooldown_remaining(actor, skill.id, session.turn_number) > 0:
            continue
        if skill_cost(skill, actor.level) > actor.power:
            continue
        usable.append(skill)
    return usable


def _in_reach(session: CombatSession, skill: Skill, src: tuple[int, int], dst: tuple[int, int]) -> bool:
    if distance(src, dst) > skill.range_tiles:
        return False
    return not skill.requires_los or line_of_sight(src, dst, session.blocked_tiles)


def plan_autonomous_turn(session: CombatSession, actor: Combatant) -> AutonomousPlan:
    """Pick a target, close distance if needed, and attack if possible.

    The target is a seeded pick among living opponents. The actor uses
    the first usable attack already in reach; otherwise it walks up to its
    movement budget along the shortest path toward the target and attacks
    from there if it can.

    Args:
        session: Current session (not mutated).
        actor: The NPC or summon holding the turn.

    Returns:
        AutonomousPlan; an empty plan means wait.
    """
    opponents = opponents_of(session, actor)
    attacks = _usable_attacks(session, actor)
    if not opponents or not attacks:
        return AutonomousPlan()

    target = rng_pick(session.seed, f"tick:{session.turn_number}:{actor.id}:target", opponents)
    for skill in attacks:
        if _in_reach(session, skill, actor.position, target.position):
            return AutonomousPlan(skill_id=skill.id, target=CombatTarget(target_id=target.id))

    budget = movement_budget(actor)
    if budget <= 0:
        return AutonomousPlan()
    route = find_path(
        actor.position,
        target.position,
        session.grid_width,
        session.grid_height,
        session.blocked_tiles,
        occupied_tiles(session, exclude_id=actor.id),
        allow_occupied_goal=True,
    )
    if route is None or len(route) < 3:
        return AutonomousPlan()
    # Stop short of the target's own tile
    path = route[: min(budget, len(route) - 2) + 1]
    destination = path[-1]
    for skill in attacks:
        if _in_reach(session, skill, destination, target.position):
            return AutonomousPlan(path=path, skill_id=skill.id, target=CombatTarget(target_id=target.id))
    return AutonomousPlan(path=path)
