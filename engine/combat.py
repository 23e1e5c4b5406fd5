"""Combat orchestration: session start, initiative, turns, movement, end of combat."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from uuid import uuid4

from config import GRID_HEIGHT, GRID_WIDTH, MAX_NPCS, MIN_NPCS, TICK_MAX_STEPS
from engine.catalog import find_skill
from engine.errors import NotFound, StateConflict, ValidationError
from engine.events import animation_hint, append_event
from engine.grid import find_path, in_bounds, movement_budget, occupied_tiles
from engine.npc import build_npc_roster, plan_autonomous_turn
from engine.rng import new_seed, rng_int
from engine.stats import derive_character_stats
from engine.status import tick_statuses
from models.actions import ActionOutcome, MoveResult, TickResult
from models.combat import (
    CombatOutcome,
    CombatSession,
    Combatant,
    EntityType,
    SessionStatus,
    TurnOrderEntry,
)

if TYPE_CHECKING:
    from models.campaign import Campaign
    from models.characters import CharacterSheet

logger = logging.getLogger(__name__)

PARTY_START_X = 1
NPC_START_X = 8
MIN_BLOCKED_TILES = 3
MAX_BLOCKED_TILES = 6


def build_player_combatant(
    session_id: str,
    sheet: CharacterSheet,
    index: int,
    position: tuple[int, int],
) -> Combatant:
    """Create a player combatant from a character sheet.

    Args:
        session_id: Owning session.
        sheet: The character's persistent sheet.
        index: 1-based party slot, used for the combatant id.
        position: Starting tile.

    Returns:
        A full-health Combatant.
    """
    stats, resistances = derive_character_stats(sheet)
    return Combatant(
        id=f"pc-{index}",
        session_id=session_id,
        entity_type=EntityType.PLAYER,
        player_id=sheet.player_id,
        character_id=sheet.id,
        name=sheet.name,
        level=sheet.level,
        attributes=sheet.attributes,
        stats=stats,
        resistances=resistances,
        hp=stats.hp,
        hp_max=stats.hp,
        power=stats.mp,
        power_max=stats.mp,
        barrier=stats.barrier,
        mobility=sheet.attributes.mobility,
        position=position,
        skills=[skill.model_copy(deep=True) for skill in sheet.skills],
    )


def roll_initiative(combatant: Combatant, seed: int) -> int:
    """Mobility plus a seeded 0-25 swing."""
    return combatant.mobility + rng_int(seed, f"initiative:{combatant.id}", 0, 25)


def roll_blocked_tiles(
    seed: int,
    width: int,
    height: int,
    reserved: set[tuple[int, int]],
) -> list[tuple[int, int]]:
    """Scatter 3-6 obstacles in the middle band of the grid, off reserved tiles."""
    count = rng_int(seed, "blocked:count", MIN_BLOCKED_TILES, MAX_BLOCKED_TILES)
    x_hi = min(width - 1, 7)
    y_hi = min(height - 1, 4)
    blocked: list[tuple[int, int]] = []
    attempt = 0
    while len(blocked) < count and attempt < count * 10:
        tile = (
            rng_int(seed, f"blocked:{attempt}:x", min(2, x_hi), x_hi),
            rng_int(seed, f"blocked:{attempt}:y", min(1, y_hi), y_hi),
        )
        attempt += 1
        if tile in reserved or tile in blocked:
            continue
        blocked.append(tile)
    return blocked


def start_combat(
    campaign: Campaign,
    seed: int | None = None,
    npc_count: int | None = None,
    width: int = GRID_WIDTH,
    height: int = GRID_HEIGHT,
) -> CombatSession:
    """Create an active combat session for a campaign's party.

    Every character on the campaign roster joins as a player combatant.
    A seeded band of NPCs is placed opposite, obstacles are scattered,
    and the turn order is fixed once by descending initiative.

    Args:
        campaign: The campaign (its active session id is updated).
        seed: Session seed; a fresh one is drawn when omitted.
        npc_count: Number of NPCs; seeded 2-4 when omitted.
        width: Grid width.
        height: Grid height.

    Returns:
        The new CombatSession with round_start and turn_start logged.

    Raises:
        StateConflict: If the campaign has no characters.
        ValidationError: If the party or NPC band does not fit the grid.
    """
    if not campaign.characters:
        raise StateConflict("Campaign has no characters to fight with")
    seed = new_seed() if seed is None else seed
    if npc_count is None:
        npc_count = rng_int(seed, "npc:count", MIN_NPCS, MAX_NPCS)
    if npc_count < 1:
        raise ValidationError("At least one NPC is required")
    party = list(campaign.characters.values())
    if len(party) > height - 1 or npc_count > height - 1:
        raise ValidationError("Too many combatants for the combat grid")

    session = CombatSession(
        id=str(uuid4()),
        campaign_id=campaign.id,
        seed=seed,
        grid_width=width,
        grid_height=height,
        created_at=datetime.now(timezone.utc),
    )

    combatants: list[Combatant] = [
        build_player_combatant(session.id, sheet, i + 1, (PARTY_START_X, 1 + i))
        for i, sheet in enumerate(party)
    ]
    party_level = max(sheet.level for sheet in party)
    for i, npc in enumerate(build_npc_roster(session.id, seed, npc_count, party_level)):
        x = min(width - 1, NPC_START_X + rng_int(seed, f"npc:{i}:x", 0, 2))
        npc.position = (x, 1 + i)
        combatants.append(npc)

    for combatant in combatants:
        combatant.initiative = roll_initiative(combatant, seed)
        session.combatants[combatant.id] = combatant

    session.blocked_tiles = roll_blocked_tiles(
        seed, width, height, {c.position for c in combatants},
    )

    # Stable sort: equal (initiative, name) keeps roster order
    ordered = sorted(combatants, key=lambda c: (-c.initiative, c.name))
    session.turn_order = tuple(
        TurnOrderEntry(session_id=session.id, turn_index=i, combatant_id=c.id)
        for i, c in enumerate(ordered)
    )
    session.status = SessionStatus.ACTIVE
    campaign.active_combat_session_id = session.id

    append_event(session, "round_start", {
        "round": session.round_number,
        "order": [
            {"combatant_id": c.id, "name": c.name, "initiative": c.initiative}
            for c in ordered
        ],
    })
    first = ordered[0]
    append_event(session, "turn_start", {
        "actor_combatant_id": first.id,
        "animation_hint": animation_hint("focus", 220),
    }, actor_id=first.id)

    logger.info(
        "Combat %s started for campaign %s: %d party, %d npcs, seed %d",
        session.id, campaign.id, len(party), npc_count, seed,
    )
    return session


# ---------------------------------------------------------------------------
# Turn ownership
# ---------------------------------------------------------------------------


def get_current_actor(session: CombatSession) -> Combatant | None:
    """The combatant whose turn it is, or None if combat is not active."""
    if session.status != SessionStatus.ACTIVE or not session.turn_order:
        return None
    entry = session.turn_order[session.current_turn_index]
    return session.combatants.get(entry.combatant_id)


def require_actor_turn(session: CombatSession, actor_id: str) -> Combatant:
    """Validate that combat is active and it is actor_id's turn.

    Raises:
        StateConflict: Combat inactive, or not this actor's turn.
        NotFound: Unknown combatant.
    """
    if session.status != SessionStatus.ACTIVE:
        raise StateConflict("Combat is not active")
    actor = session.combatants.get(actor_id)
    if actor is None:
        raise NotFound("Combatant not found")
    current = get_current_actor(session)
    if current is None or current.id != actor_id:
        raise StateConflict("Not your turn")
    if not actor.is_alive:
        raise StateConflict("Actor is not alive")
    return actor


def alive_counts(session: CombatSession) -> tuple[int, int]:
    """(alive players, alive npcs). Summons count for neither side."""
    players = sum(
        1 for c in session.combatants.values()
        if c.is_alive and c.entity_type == EntityType.PLAYER
    )
    npcs = sum(
        1 for c in session.combatants.values()
        if c.is_alive and c.entity_type == EntityType.NPC
    )
    return players, npcs


def check_end(session: CombatSession) -> CombatOutcome | None:
    """Return the outcome if one side has no living combatants."""
    players, npcs = alive_counts(session)
    if players and npcs:
        return None
    return CombatOutcome(alive_players=players, alive_npcs=npcs, won=players > 0 and npcs == 0)


def end_combat(session: CombatSession, outcome: CombatOutcome) -> None:
    """Mark the session ended and log combat_end."""
    session.status = SessionStatus.ENDED
    session.outcome = outcome
    session.ended_at = datetime.now(timezone.utc)
    append_event(session, "combat_end", {
        "alive_players": outcome.alive_players,
        "alive_npcs": outcome.alive_npcs,
        "won": outcome.won,
    })
    logger.info(
        "Combat %s ended: won=%s (players %d, npcs %d)",
        session.id, outcome.won, outcome.alive_players, outcome.alive_npcs,
    )


def record_death(session: CombatSession, target: Combatant, by: dict | None = None) -> None:
    """Log a death. The combatant stays in the roster with is_alive=False."""
    target.is_alive = False
    append_event(session, "death", {
        "target_combatant_id": target.id,
        "target_entity_type": target.entity_type.value,
        "by": by or {},
    }, actor_id=by.get("combatant_id") if by else None)


def advance_turn(session: CombatSession, action: str | None = None) -> None:
    """Hand the turn to the next living combatant in the fixed order.

    Logs turn_end for the outgoing actor, then scans cyclically. Each
    candidate's turn starts with a status tick; if the tick kills it the
    scan continues, and if the tick ends combat the session ends.

    Args:
        session: Current session (mutated in place).
        action: What the outgoing actor did, for the turn_end payload.
    """
    if not session.turn_order:
        return
    outgoing = get_current_actor(session)
    if outgoing is not None:
        append_event(session, "turn_end", {
            "actor_combatant_id": outgoing.id,
            "action": action,
        }, actor_id=outgoing.id)

    order_len = len(session.turn_order)
    for _ in range(order_len):
        next_index = (session.current_turn_index + 1) % order_len
        if next_index <= session.current_turn_index:
            session.round_number += 1
        session.current_turn_index = next_index
        candidate = session.combatants[session.turn_order[next_index].combatant_id]
        if not candidate.is_alive:
            continue

        session.turn_number += 1
        append_event(session, "turn_start", {
            "actor_combatant_id": candidate.id,
            "round": session.round_number,
            "animation_hint": animation_hint("focus", 220),
        }, actor_id=candidate.id)
        _resolve_turn_start(session, candidate)

        if candidate.is_alive:
            logger.debug("Session %s turn %d -> %s", session.id, session.turn_number, candidate.id)
            return
        outcome = check_end(session)
        if outcome is not None:
            end_combat(session, outcome)
            return

    outcome = check_end(session)
    if outcome is not None:
        end_combat(session, outcome)


def _resolve_turn_start(session: CombatSession, combatant: Combatant) -> None:
    """Tick statuses for a combatant whose turn is starting."""
    for tick in tick_statuses(combatant, session.turn_number):
        append_event(session, "status_tick", {
            "target_combatant_id": combatant.id,
            **tick.model_dump(),
        }, actor_id=combatant.id)
    if not combatant.is_alive:
        record_death(session, combatant, {"status": "tick"})


def complete_action(
    session: CombatSession,
    action: str,
    since_seq: int,
    hint: dict | None = None,
) -> ActionOutcome:
    """Finish an accepted action: end combat or advance exactly once.

    Args:
        session: Current session (mutated in place).
        action: Label for the turn_end payload ("skill", "move", ...).
        since_seq: Event seq at which this action began.
        hint: Animation hint to echo back to the caller.

    Returns:
        ActionOutcome including every event the action produced.
    """
    outcome = check_end(session)
    if outcome is None:
        advance_turn(session, action)
        outcome = session.outcome if session.status == SessionStatus.ENDED else None
    else:
        end_combat(session, outcome)

    new_events = session.events[since_seq:]
    if outcome is not None:
        return ActionOutcome(ended=True, outcome=outcome, rewards_ready=True, events=new_events)
    current = get_current_actor(session)
    return ActionOutcome(
        ended=False,
        next_turn_index=session.current_turn_index,
        next_actor_combatant_id=current.id if current else None,
        animation_hint=hint,
        events=new_events,
    )


# ---------------------------------------------------------------------------
# Movement
# ---------------------------------------------------------------------------


def move(
    session: CombatSession,
    actor_id: str,
    to: tuple[int, int] | None = None,
    wait: bool = False,
) -> MoveResult:
    """Move the current actor along a shortest path, or wait in place.

    Rejections never touch state. An accepted move or wait ends the turn.

    Args:
        session: Current session (mutated in place on success).
        actor_id: Acting combatant.
        to: Destination tile.
        wait: Spend the turn without moving.

    Returns:
        MoveResult.

    Raises:
        ValidationError: Neither or both of to/wait; destination off-grid.
        StateConflict: Wrong turn, pinned actor, blocked/occupied
            destination, no route, or route longer than the budget.
        NotFound: Unknown combatant.
    """
    if wait and to is not None:
        raise ValidationError("Provide either a destination or wait, not both")
    if not wait and to is None:
        raise ValidationError("Move requires a destination or wait=true")

    actor = require_actor_turn(session, actor_id)
    budget = movement_budget(actor)
    start = actor.position
    since_seq = len(session.events)

    if wait:
        append_event(session, "wait", {
            "actor_combatant_id": actor.id,
            "animation_hint": animation_hint("idle", 250),
        }, actor_id=actor.id)
        result = complete_action(session, "wait", since_seq)
        return MoveResult(
            moved=False,
            waited=True,
            movement_budget=budget,
            steps_used=0,
            path=[start],
            to=start,
            next_turn_index=result.next_turn_index,
            next_actor_combatant_id=result.next_actor_combatant_id,
            ended=result.ended,
            outcome=result.outcome,
            events=result.events,
        )

    to = (int(to[0]), int(to[1]))
    if budget <= 0:
        raise StateConflict("Actor is unable to move this turn")
    if not in_bounds(to, session.grid_width, session.grid_height):
        raise ValidationError("Destination is outside the combat grid")
    if to == start:
        raise ValidationError("Actor is already on that tile")
    if to in set(session.blocked_tiles):
        raise StateConflict("Destination tile is blocked")
    occupied = occupied_tiles(session, exclude_id=actor.id)
    if to in occupied:
        raise StateConflict("Destination tile is occupied")
    path = find_path(
        start, to, session.grid_width, session.grid_height,
        session.blocked_tiles, occupied,
    )
    if path is None:
        raise StateConflict("No valid route to destination")
    steps = len(path) - 1
    if steps > budget:
        raise StateConflict(f"Move exceeds budget ({steps}/{budget})")

    hint = animation_hint("move", 160 + steps * 55, easing="linear")
    actor.position = to
    append_event(session, "moved", {
        "actor_combatant_id": actor.id,
        "from": start,
        "to": to,
        "path": path,
        "movement_budget": budget,
        "steps_used": steps,
        "animation_hint": hint,
    }, actor_id=actor.id)
    result = complete_action(session, "move", since_seq, hint)
    return MoveResult(
        moved=True,
        waited=False,
        movement_budget=budget,
        steps_used=steps,
        path=path,
        to=to,
        next_turn_index=result.next_turn_index,
        next_actor_combatant_id=result.next_actor_combatant_id,
        ended=result.ended,
        outcome=result.outcome,
        events=result.events,
    )


# ---------------------------------------------------------------------------
# Autonomous turns
# ---------------------------------------------------------------------------


def tick(session: CombatSession, max_steps: int = TICK_MAX_STEPS) -> TickResult:
    """Run NPC and summon turns until a player must act or combat ends.

    Args:
        session: Current session (mutated in place).
        max_steps: Upper bound on autonomous turns resolved in one call.

    Returns:
        TickResult with every event produced during the call.

    Raises:
        StateConflict: If combat is not active.
    """
    if session.status != SessionStatus.ACTIVE:
        raise StateConflict("Combat is not active")
    since_seq = len(session.events)
    ticks = 0
    while ticks < max_steps and session.status == SessionStatus.ACTIVE:
        actor = get_current_actor(session)
        if actor is None or actor.entity_type == EntityType.PLAYER:
            break
        _resolve_autonomous_turn(session, actor)
        ticks += 1

    ended = session.status == SessionStatus.ENDED
    current = get_current_actor(session)
    logger.debug("Session %s ticked %d autonomous turn(s)", session.id, ticks)
    return TickResult(
        ticks=ticks,
        ended=ended,
        requires_player_action=(
            not ended and current is not None and current.entity_type == EntityType.PLAYER
        ),
        current_turn_index=session.current_turn_index,
        next_actor_combatant_id=current.id if current else None,
        outcome=session.outcome,
        events=session.events[since_seq:],
    )


def _resolve_autonomous_turn(session: CombatSession, actor: Combatant) -> ActionOutcome:
    """Carry out an NPC or summon's planned move and attack, then advance."""
    from engine.skills import resolve_skill, resolve_targets

    since_seq = len(session.events)
    plan = plan_autonomous_turn(session, actor)
    hint = None
    if plan.path and len(plan.path) > 1:
        origin = actor.position
        actor.position = plan.path[-1]
        steps = len(plan.path) - 1
        hint = animation_hint("move", 160 + steps * 55, easing="linear")
        append_event(session, "moved", {
            "actor_combatant_id": actor.id,
            "from": origin,
            "to": actor.position,
            "path": plan.path,
            "movement_budget": movement_budget(actor),
            "steps_used": steps,
            "animation_hint": hint,
        }, actor_id=actor.id)

    skill = find_skill(actor, plan.skill_id) if plan.skill_id else None
    if skill is not None and plan.target is not None:
        targets, tile = resolve_targets(session, actor, skill, plan.target)
        hint = resolve_skill(session, actor, skill, targets, tile)
        action = "skill"
    elif plan.path:
        action = "move"
    else:
        append_event(session, "wait", {
            "actor_combatant_id": actor.id,
            "animation_hint": animation_hint("idle", 250),
        }, actor_id=actor.id)
        action = "wait"
    return complete_action(session, action, since_seq, hint)
