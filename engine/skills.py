"""Skill resolution: targeting, validation, effects, statuses, and events."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from engine.catalog import find_skill, skill_cost, skill_power
from engine.combat import complete_action, record_death, require_actor_turn
from engine.damage import absorb_damage, compute_damage_roll
from engine.errors import NotFound, StateConflict, ValidationError
from engine.events import animation_hint, append_event
from engine.grid import (
    distance,
    in_bounds,
    line_of_sight,
    occupied_tiles,
    tiles_in_cone,
    tiles_in_line,
    tiles_in_radius,
)
from engine.rng import value01
from engine.stats import base_stats_from_attributes
from engine.status import (
    apply_status_effect,
    cleanse,
    cooldown_remaining,
    effective_stats,
    install_cooldown,
)
from models.skills import (
    ArmorShredEffect,
    BarrierEffect,
    CleanseEffect,
    CombatTarget,
    DamageEffect,
    HealEffect,
    PowerGainEffect,
    SkillKind,
    TargetFilter,
    TargetingKind,
    TeleportEffect,
)

if TYPE_CHECKING:
    from models.actions import ActionOutcome
    from models.combat import CombatSession, Combatant
    from models.skills import Skill

logger = logging.getLogger(__name__)

Tile = tuple[int, int]


def _passes_filter(skill: Skill, actor: Combatant, candidate: Combatant) -> bool:
    if skill.target_filter == TargetFilter.ANY:
        return True
    same_side = candidate.allegiance == actor.allegiance
    return same_side if skill.target_filter == TargetFilter.ALLIES else not same_side


def resolve_targets(
    session: CombatSession,
    actor: Combatant,
    skill: Skill,
    target: CombatTarget,
) -> tuple[list[Combatant], Tile | None]:
    """Validate a target against a skill's shape and collect affected combatants.

    Args:
        session: Current session (not mutated).
        actor: The skill user.
        skill: The skill being used.
        target: Caller-supplied target.

    Returns:
        (affected_combatants, target_tile) tuple. SELF ignores the supplied
        target; SINGLE returns exactly one combatant.

    Raises:
        ValidationError: Missing or malformed target, tile off the grid,
            or a single target on the wrong side.
        NotFound: Unknown target combatant.
        StateConflict: Dead target, out of range, or no line of sight.
    """
    if skill.targeting == TargetingKind.SELF:
        return [actor], None

    if skill.targeting == TargetingKind.SINGLE:
        if target.target_id is None:
            raise ValidationError("Skill requires a target combatant")
        chosen = session.combatants.get(target.target_id)
        if chosen is None:
            raise NotFound("Target not found")
        if not chosen.is_alive:
            raise StateConflict("Target is not alive")
        if not _passes_filter(skill, actor, chosen):
            raise ValidationError(f"Skill can only target {skill.target_filter.value}")
        if distance(actor.position, chosen.position) > skill.range_tiles:
            raise StateConflict("Target out of range")
        if skill.requires_los and not line_of_sight(actor.position, chosen.position, session.blocked_tiles):
            raise StateConflict("No line of sight to target")
        return [chosen], chosen.position

    if target.target_position is None:
        raise ValidationError("Skill requires a target tile")
    tile = (int(target.target_position[0]), int(target.target_position[1]))
    if not in_bounds(tile, session.grid_width, session.grid_height):
        raise ValidationError("Target tile is outside the combat grid")

    width, height = session.grid_width, session.grid_height
    blocked = set(session.blocked_tiles)
    if skill.targeting in (TargetingKind.LINE, TargetingKind.CONE):
        if tile == actor.position:
            raise ValidationError("Aim tile must differ from the actor's position")
        if skill.targeting == TargetingKind.LINE:
            tiles = []
            for step in tiles_in_line(actor.position, tile, skill.range_tiles, width, height):
                if step in blocked:
                    break
                tiles.append(step)
        else:
            tiles = [
                t for t in tiles_in_cone(actor.position, tile, skill.range_tiles, width, height)
                if not skill.requires_los or line_of_sight(actor.position, t, blocked)
            ]
    else:
        if distance(actor.position, tile) > skill.range_tiles:
            raise StateConflict("Target tile out of range")
        if skill.requires_los and not line_of_sight(actor.position, tile, blocked):
            raise StateConflict("No line of sight to target tile")
        if skill.targeting == TargetingKind.AREA:
            tiles = tiles_in_radius(tile, skill.radius, width, height)
        else:
            tiles = [tile]

    wanted = set(tiles)
    affected = [
        c for c in session.combatants.values()
        if c.is_alive and c.position in wanted and _passes_filter(skill, actor, c)
    ]
    affected.sort(key=lambda c: (c.position[1], c.position[0], c.id))
    return affected, tile


def _validate_teleport(session: CombatSession, actor: Combatant, skill: Skill, tile: Tile | None) -> None:
    if not any(isinstance(e, TeleportEffect) for e in skill.effects):
        return
    if tile is None or skill.targeting != TargetingKind.TILE:
        raise ValidationError("Teleport skills require a tile target")
    if tile in set(session.blocked_tiles):
        raise StateConflict("Destination tile is blocked")
    if tile in occupied_tiles(session, exclude_id=actor.id):
        raise StateConflict("Destination tile is occupied")


def use_skill(
    session: CombatSession,
    actor_id: str,
    skill_id: str,
    target: CombatTarget | None = None,
) -> ActionOutcome:
    """Use a skill on the actor's turn and advance the turn.

    All checks run before any mutation: session active, actor's turn,
    skill known and usable, off cooldown, affordable, valid target.

    Args:
        session: Current session (mutated in place on success).
        actor_id: Acting combatant.
        skill_id: Skill to use (own skills, then built-ins).
        target: Target combatant or tile.

    Returns:
        ActionOutcome.

    Raises:
        CombatError subclasses; see resolve_targets and require_actor_turn.
    """
    actor = require_actor_turn(session, actor_id)
    skill = find_skill(actor, skill_id)
    if skill is None:
        raise NotFound("Skill not found")
    if skill.kind == SkillKind.PASSIVE:
        raise ValidationError("Passive skills cannot be used")
    remaining = cooldown_remaining(actor, skill.id, session.turn_number)
    if remaining > 0:
        raise StateConflict(f"Skill is on cooldown ({remaining} turns remaining)")
    if skill_cost(skill, actor.level) > actor.power:
        raise StateConflict("Not enough power")
    targets, tile = resolve_targets(session, actor, skill, target or CombatTarget())
    _validate_teleport(session, actor, skill, tile)

    since_seq = len(session.events)
    hint = resolve_skill(session, actor, skill, targets, tile)
    logger.debug("Session %s: %s used %s on %d target(s)", session.id, actor.id, skill.id, len(targets))
    return complete_action(session, "skill", since_seq, hint)


def resolve_skill(
    session: CombatSession,
    actor: Combatant,
    skill: Skill,
    targets: list[Combatant],
    tile: Tile | None = None,
) -> dict:
    """Apply an already-validated skill use. Does not advance the turn.

    Emits skill_used, then per target the effect events, status_apply or
    status_resisted, and death, in that order.

    Returns:
        The skill's animation hint.
    """
    turn = session.turn_number
    cost = skill_cost(skill, actor.level)
    actor.power -= cost
    hint = animation_hint("skill", 320, skill_id=skill.id, targeting=skill.targeting.value)
    append_event(session, "skill_used", {
        "skill_id": skill.id,
        "skill_name": skill.name,
        "targeting": skill.targeting.value,
        "target_ids": [t.id for t in targets],
        "target_position": tile,
        "power_cost": cost,
        "power_after": actor.power,
        "animation_hint": hint,
    }, actor_id=actor.id)
    install_cooldown(actor, skill.id, skill.cooldown_turns, turn)

    if tile is not None and any(isinstance(e, TeleportEffect) for e in skill.effects):
        origin = actor.position
        actor.position = tile
        append_event(session, "moved", {
            "actor_combatant_id": actor.id,
            "from": origin,
            "to": tile,
            "path": [origin, tile],
            "animation_hint": animation_hint("teleport", 240),
        }, actor_id=actor.id)

    power = skill_power(skill, actor.level)
    actor_stats = effective_stats(actor)
    actor_core = base_stats_from_attributes(actor.attributes)
    deals_damage = any(isinstance(e, DamageEffect) for e in skill.effects)

    for target in targets:
        was_alive = target.is_alive
        label = f"skill:{turn}:{actor.id}:{skill.id}:{target.id}"
        dealt = 0
        for i, effect in enumerate(skill.effects):
            if not target.is_alive:
                break
            if isinstance(effect, DamageEffect):
                dealt += _apply_damage(session, actor, target, effect, power, actor_stats, actor_core, skill, f"{label}:{i}")
            elif isinstance(effect, HealEffect):
                _apply_heal(session, actor, target, math.ceil(power * effect.multiplier * (1 + actor_stats.heal_bonus)))
            elif isinstance(effect, BarrierEffect):
                amount = max(effect.amount, math.floor(
                    actor_stats.defense * effect.defense_scale + actor.attributes.support * effect.support_scale
                ))
                target.barrier += amount
                append_event(session, "barrier_gain", {
                    "target_combatant_id": target.id,
                    "amount": amount,
                    "barrier_after": target.barrier,
                    "animation_hint": animation_hint("shield", 200),
                }, actor_id=actor.id)
            elif isinstance(effect, PowerGainEffect):
                amount = max(effect.amount, math.floor(
                    actor.attributes.utility * effect.utility_scale + actor.attributes.support * effect.support_scale
                ))
                target.power = min(target.power_max, target.power + amount)
                append_event(session, "power_gain", {
                    "target_combatant_id": target.id,
                    "amount": amount,
                    "power_after": target.power,
                    "animation_hint": animation_hint("resource_gain", 200),
                }, actor_id=actor.id)
            elif isinstance(effect, ArmorShredEffect):
                target.armor = max(-target.stats.defense, target.armor - effect.amount)
                append_event(session, "armor_shred", {
                    "target_combatant_id": target.id,
                    "amount": effect.amount,
                    "armor_after": target.armor,
                }, actor_id=actor.id)
            elif isinstance(effect, CleanseEffect):
                removed = cleanse(target, effect.status_ids)
                append_event(session, "cleanse", {
                    "target_combatant_id": target.id,
                    "ids": removed,
                    "animation_hint": animation_hint("cleanse", 190),
                }, actor_id=actor.id)

        if skill.status is not None and target.is_alive and (dealt > 0 or not deals_damage):
            _apply_skill_status(session, actor, target, skill, label)

        if was_alive and target.hp <= 0:
            record_death(session, target, {"combatant_id": actor.id, "skill_id": skill.id})

    return hint


def _apply_damage(
    session: CombatSession,
    actor: Combatant,
    target: Combatant,
    effect: DamageEffect,
    power: float,
    actor_stats,
    actor_core,
    skill: Skill,
    label: str,
) -> int:
    roll = compute_damage_roll(
        attacker_stats=actor_stats,
        attacker_core=actor_core,
        target_stats=effective_stats(target),
        target_resistances=target.resistances,
        target_barrier=target.barrier,
        skill_power=power * effect.multiplier,
        damage_kind=effect.damage_kind,
        seed=session.seed,
        label=label,
        element=effect.element,
        target_armor=target.armor,
        target_resist=target.resist,
        hit_bonus=effect.hit_bonus,
        crit_bonus=effect.crit_bonus,
    )
    if roll.did_hit:
        absorb_damage(target, roll.final_damage)
    append_event(session, "damage", {
        "source_combatant_id": actor.id,
        "target_combatant_id": target.id,
        "skill_id": skill.id,
        "element": effect.element,
        "roll": roll.model_dump(),
        "damage_to_barrier": roll.damage_to_barrier,
        "damage_to_hp": roll.damage_to_hp,
        "hp_after": target.hp,
        "barrier_after": target.barrier,
        "animation_hint": animation_hint("hit" if roll.did_hit else "miss", 260 if roll.did_crit else 200),
    }, actor_id=actor.id)
    return roll.final_damage


def _apply_heal(session: CombatSession, actor: Combatant, target: Combatant, amount: int) -> None:
    amount = max(1, amount)
    target.hp = min(target.hp_max, target.hp + amount)
    append_event(session, "healed", {
        "target_combatant_id": target.id,
        "amount": amount,
        "hp_after": target.hp,
        "animation_hint": animation_hint("heal", 220),
    }, actor_id=actor.id)


def _apply_skill_status(
    session: CombatSession,
    actor: Combatant,
    target: Combatant,
    skill: Skill,
    label: str,
) -> None:
    definition = skill.status
    if skill.status_chance < 1 and value01(session.seed, f"{label}:status") >= skill.status_chance:
        append_event(session, "status_resisted", {
            "target_combatant_id": target.id,
            "status_id": definition.id,
            "reason": "chance",
        }, actor_id=actor.id)
        return
    result = apply_status_effect(target, definition, actor, skill.id, session.turn_number, rank=skill.rank)
    if not result.applied:
        append_event(session, "status_resisted", {
            "target_combatant_id": target.id,
            "status_id": definition.id,
            "reason": result.reason,
        }, actor_id=actor.id)
        return
    append_event(session, "status_apply", {
        "target_combatant_id": target.id,
        "status_id": definition.id,
        "kind": definition.kind,
        "expires_turn": result.expires_turn,
        "reason": result.reason,
    }, actor_id=actor.id)
