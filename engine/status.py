"""Status engine: apply, refresh, tick, expire, and cleanse timed effects."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from pydantic import BaseModel

from engine import tunables as t
from engine.damage import absorb_damage
from engine.stats import base_stats_from_attributes, clamp
from models.characters import DerivedStats
from models.statuses import (
    BuffStatus,
    CooldownStatus,
    DamageOverTimeStatus,
    DebuffStatus,
    HealOverTimeStatus,
    cooldown_id,
)

if TYPE_CHECKING:
    from models.combat import Combatant
    from models.statuses import StatusDefinition, StatusEffect


class StatusApplyResult(BaseModel):
    """Outcome of an apply_status_effect call."""
    applied: bool
    reason: str                     # "applied", "refreshed", "intensified", "ignored", "immune"
    expires_turn: int | None = None


class StatusTick(BaseModel):
    """One periodic tick resolved at the start of a combatant's turn."""
    status_id: str
    kind: str                       # "dot" or "hot"
    effect: str                     # "damage" or "heal"
    amount: int
    element: str
    hp_after: int = 0
    damage_to_barrier: int = 0


def find_status(combatant: Combatant, status_id: str) -> StatusEffect | None:
    for status in combatant.statuses:
        if status.id == status_id:
            return status
    return None


def has_control_status(combatant: Combatant) -> bool:
    """True if the combatant is rooted or stunned."""
    return any(s.id in t.CONTROL_STATUS_IDS for s in combatant.statuses)


def is_immune(combatant: Combatant, status_id: str, kind: str) -> bool:
    """Check immunities granted by the combatant's active buffs."""
    incoming = status_id.strip().lower()
    for status in combatant.statuses:
        if not isinstance(status, BuffStatus):
            continue
        for token in status.immunities:
            token = token.strip().lower()
            if token in (incoming, kind, "all"):
                return True
    return False


# ---------------------------------------------------------------------------
# Cooldowns
# ---------------------------------------------------------------------------


def cooldown_remaining(combatant: Combatant, skill_id: str, current_turn: int) -> int:
    """Turns left before a skill may be used again (0 = ready)."""
    status = find_status(combatant, cooldown_id(skill_id))
    if status is None:
        return 0
    return max(0, status.expires_turn - current_turn)


def install_cooldown(combatant: Combatant, skill_id: str, cooldown_turns: int, current_turn: int) -> None:
    """Record a cd:<skill_id> marker, replacing any older one."""
    if cooldown_turns <= 0:
        return
    marker = CooldownStatus(
        id=cooldown_id(skill_id),
        skill_id=skill_id,
        expires_turn=current_turn + cooldown_turns,
        source_combatant_id=combatant.id,
        source_skill_id=skill_id,
    )
    combatant.statuses = [s for s in combatant.statuses if s.id != marker.id] + [marker]


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def _instantiate(
    definition: StatusDefinition,
    source: Combatant | None,
    source_skill_id: str | None,
    expires_turn: int,
    rank: int,
) -> StatusEffect:
    common = {
        "id": definition.id,
        "expires_turn": expires_turn,
        "source_combatant_id": source.id if source else None,
        "source_skill_id": source_skill_id,
    }
    if definition.kind == "buff":
        return BuffStatus(modifiers=definition.modifiers, immunities=definition.immunities, **common)
    if definition.kind == "debuff":
        return DebuffStatus(modifiers=definition.modifiers, **common)
    if definition.kind == "dot":
        return DamageOverTimeStatus(
            element=definition.element,
            base_tick=definition.base_tick,
            rank=max(1, rank),
            rank_tick=definition.rank_tick,
            dot_scale=definition.dot_scale,
            source_matk=source.stats.matk if source else 0,
            intensity_cap=definition.intensity_cap,
            **common,
        )
    wisdom = base_stats_from_attributes(source.attributes).wisdom if source else 0
    return HealOverTimeStatus(
        base_tick=definition.base_tick,
        hot_scale=definition.hot_scale,
        source_wisdom=wisdom,
        intensity_cap=definition.intensity_cap,
        **common,
    )


def apply_status_effect(
    target: Combatant,
    definition: StatusDefinition,
    source: Combatant | None,
    source_skill_id: str | None,
    current_turn: int,
    rank: int = 1,
) -> StatusApplyResult:
    """Apply a status to a target, refreshing rather than duplicating.

    A status already present with the same id is refreshed (its expiry
    extended), ignored, or intensified according to the definition's
    stacking mode; a second instance is never added.

    Args:
        target: Receiving combatant (mutated in place).
        definition: Status template.
        source: Applying combatant, if any.
        source_skill_id: Skill that applied it, if any.
        current_turn: Absolute turn number.
        rank: Skill rank, used by damage-over-time scaling.

    Returns:
        StatusApplyResult.
    """
    if is_immune(target, definition.id, definition.kind):
        return StatusApplyResult(applied=False, reason="immune")

    expires_turn = current_turn + max(0, definition.duration_turns)
    existing = find_status(target, definition.id)
    if existing is None:
        target.statuses.append(_instantiate(definition, source, source_skill_id, expires_turn, rank))
        return StatusApplyResult(applied=True, reason="applied", expires_turn=expires_turn)

    if definition.stacking == "none":
        return StatusApplyResult(applied=False, reason="ignored", expires_turn=existing.expires_turn)

    existing.expires_turn = max(existing.expires_turn, expires_turn)
    if definition.stacking == "intensity" and isinstance(existing, (DamageOverTimeStatus, HealOverTimeStatus)):
        existing.intensity = int(clamp(existing.intensity + 1, 1, existing.intensity_cap))
        return StatusApplyResult(applied=True, reason="intensified", expires_turn=existing.expires_turn)
    return StatusApplyResult(applied=True, reason="refreshed", expires_turn=existing.expires_turn)


# ---------------------------------------------------------------------------
# Ticking
# ---------------------------------------------------------------------------


def tick_statuses(combatant: Combatant, current_turn: int) -> list[StatusTick]:
    """Resolve periodic effects, then drop expired statuses.

    Runs once at the start of the combatant's turn, before it may act.
    Damage goes through the barrier like any other damage; healing is
    clamped to hp_max.

    Args:
        combatant: Combatant whose turn is starting (mutated in place).
        current_turn: Absolute turn number.

    Returns:
        One StatusTick per periodic effect that fired.
    """
    ticks: list[StatusTick] = []
    for status in list(combatant.statuses):
        if not combatant.is_alive:
            break
        if isinstance(status, DamageOverTimeStatus):
            resist = clamp(
                combatant.resistances.get(status.element, combatant.stats.res),
                t.DAMAGE_RESIST_MIN,
                t.DAMAGE_RESIST_MAX,
            )
            raw = status.source_matk * status.dot_scale + status.base_tick + status.rank * status.rank_tick
            amount = max(0, math.ceil(raw * (1 - resist) * max(1, status.intensity)))
            to_barrier, _, _ = absorb_damage(combatant, amount)
            ticks.append(StatusTick(
                status_id=status.id,
                kind="dot",
                effect="damage",
                amount=amount,
                element=status.element,
                hp_after=combatant.hp,
                damage_to_barrier=to_barrier,
            ))
        elif isinstance(status, HealOverTimeStatus):
            raw = status.source_wisdom * status.hot_scale + status.base_tick
            amount = max(0, math.ceil(raw * (1 + combatant.stats.heal_bonus) * max(1, status.intensity)))
            combatant.hp = min(combatant.hp_max, combatant.hp + amount)
            ticks.append(StatusTick(
                status_id=status.id,
                kind="hot",
                effect="heal",
                amount=amount,
                element="holy",
                hp_after=combatant.hp,
            ))

    prune_expired(combatant, current_turn)
    return ticks


def prune_expired(combatant: Combatant, current_turn: int) -> list[str]:
    """Remove statuses whose expires_turn <= current_turn. Returns removed ids."""
    removed = [s.id for s in combatant.statuses if s.expires_turn <= current_turn]
    if removed:
        combatant.statuses = [s for s in combatant.statuses if s.expires_turn > current_turn]
    return removed


def cleanse(combatant: Combatant, status_ids: list[str] | None = None) -> list[str]:
    """Strip statuses by id, or every harmful one when no ids are given.

    Cooldown markers are never cleansed.

    Returns:
        Ids that were removed.
    """
    if status_ids:
        wanted = set(status_ids)
        doomed = [s for s in combatant.statuses if s.id in wanted and s.kind != "cooldown"]
    else:
        doomed = [s for s in combatant.statuses if s.kind in ("debuff", "dot")]
    removed_ids = {s.id for s in doomed}
    combatant.statuses = [s for s in combatant.statuses if s.id not in removed_ids]
    return [s.id for s in doomed]


def effective_stats(combatant: Combatant) -> DerivedStats:
    """Derived stats with active buff and debuff modifiers applied."""
    values = combatant.stats.model_dump()
    pct_totals: dict[str, float] = {}
    for status in combatant.statuses:
        if not isinstance(status, (BuffStatus, DebuffStatus)):
            continue
        for key, amount in status.modifiers.flat.items():
            if key in values:
                values[key] += amount
        for key, amount in status.modifiers.pct.items():
            pct_totals[key] = pct_totals.get(key, 0) + amount
    for key, amount in pct_totals.items():
        if key in values:
            values[key] *= 1 + amount
    for key, field in DerivedStats.model_fields.items():
        if field.annotation is int:
            values[key] = max(0, math.floor(values[key]))
    values["crit"] = clamp(values["crit"], t.CRIT_CHANCE_MIN, t.CRIT_CHANCE_MAX)
    return DerivedStats(**values)
