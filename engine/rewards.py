"""Once-per-session reward settlement: XP, level-ups, loot, and gold."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from pydantic import BaseModel

from config import XP_CURVE
from engine.errors import NotFound, StateConflict
from engine.events import animation_hint, append_event
from engine.leveling import apply_xp_gain
from engine.loot import generate_loot_batch
from engine.rng import stable_hash
from engine.stats import clamp, gear_score
from models.characters import InventoryItem
from models.combat import EntityType, SessionStatus
from models.rewards import CharacterReward, ClaimResult, RewardGrant, RewardOutcome

if TYPE_CHECKING:
    from models.campaign import Campaign
    from models.characters import CharacterSheet
    from models.combat import CombatSession

logger = logging.getLogger(__name__)

MIN_XP = 12
BASE_XP = 45
XP_PER_DEFEAT = 34
XP_CLEAR_BONUS = 28
XP_ALIVE_BONUS = 18
XP_FALLEN_PENALTY = 16
MAX_LOOT_PER_CHARACTER = 3


class RewardLedger(BaseModel):
    """Reward grants keyed by combat session id. At most one per session."""
    grants: dict[str, RewardGrant] = {}

    def get(self, session_id: str) -> RewardGrant | None:
        return self.grants.get(session_id)

    def record(self, grant: RewardGrant) -> None:
        if grant.session_id in self.grants:
            raise StateConflict("Rewards already granted for this session")
        self.grants[grant.session_id] = grant


def xp_for_outcome(defeated_npcs: int, surviving_npcs: int, alive: bool) -> int:
    """XP for one player character, never below MIN_XP."""
    xp = BASE_XP + defeated_npcs * XP_PER_DEFEAT
    if surviving_npcs == 0:
        xp += XP_CLEAR_BONUS
    xp += XP_ALIVE_BONUS if alive else -XP_FALLEN_PENALTY
    return max(MIN_XP, xp)


def loot_count_for(defeated_npcs: int) -> int:
    return int(clamp(math.ceil(defeated_npcs / 2), 1, MAX_LOOT_PER_CHARACTER))


def _reward_character(
    session: CombatSession,
    sheet: CharacterSheet,
    combatant_id: str,
    outcome: RewardOutcome,
    preset: str,
) -> CharacterReward:
    """Apply XP, points, loot and gold to one sheet (mutated in place)."""
    xp_gained = xp_for_outcome(outcome.defeated_npcs, outcome.surviving_npcs, outcome.player_alive)
    level_before = sheet.level
    gain = apply_xp_gain(sheet.level, sheet.xp, xp_gained, preset)
    sheet.level = gain.level
    sheet.xp = gain.xp
    sheet.unspent_stat_points += gain.stat_points_granted
    sheet.unspent_skill_points += gain.skill_points_granted

    owned_ids = [item.id for item in sheet.equipment.values()]
    owned_ids.extend(stack.gear.id for stack in sheet.inventory if stack.gear is not None)
    batch = generate_loot_batch(
        seed=session.seed + stable_hash(f"{session.id}:{sheet.player_id}:{sheet.id}:loot"),
        level=level_before,
        count=loot_count_for(outcome.defeated_npcs),
        preferred_slots=[
            slot for slot in ("weapon", "offhand", "head", "chest", "legs", "accessory1", "accessory2")
            if slot not in sheet.equipment
        ],
        equipped_scores={slot: gear_score(item) for slot, item in sheet.equipment.items()},
        avoid_item_ids=owned_ids,
    )
    for item in batch.items:
        sheet.inventory.append(InventoryItem(
            id=item.id, name=item.name, item_type="gear", quantity=1, gear=item,
        ))
    sheet.gold += batch.gold

    return CharacterReward(
        character_id=sheet.id,
        combatant_id=combatant_id,
        xp_gained=xp_gained,
        level_before=level_before,
        level_after=gain.level,
        level_ups=gain.levels_gained,
        xp_after=gain.xp,
        xp_to_next=gain.xp_to_next,
        stat_points_granted=gain.stat_points_granted,
        skill_points_granted=gain.skill_points_granted,
        gold=batch.gold,
        loot=batch.items,
        outcome=outcome,
    )


def claim_rewards(
    session: CombatSession,
    campaign: Campaign,
    ledger: RewardLedger,
    preset: str = XP_CURVE,
) -> ClaimResult:
    """Grant rewards for an ended session, at most once.

    A repeat claim returns the stored grant with already_granted=True and
    changes nothing. The first claim updates every participating
    character sheet, records the grant, and logs reward_granted.

    Args:
        session: The combat session (mutated: reward_granted is appended).
        campaign: Campaign whose character sheets receive the rewards.
        ledger: Grant ledger (mutated on first claim).
        preset: XP curve name.

    Returns:
        ClaimResult.

    Raises:
        StateConflict: Combat has not ended.
        NotFound: No player combatant is tied to a character sheet.
    """
    existing = ledger.get(session.id)
    if existing is not None:
        logger.warning("Rewards for session %s already granted; returning stored grant", session.id)
        return ClaimResult(already_granted=True, rewards=existing.rewards)
    if session.status != SessionStatus.ENDED:
        raise StateConflict("Combat rewards can only be claimed after combat ends")

    players = [
        c for c in session.combatants.values()
        if c.entity_type == EntityType.PLAYER and c.character_id in campaign.characters
    ]
    if not players:
        raise NotFound("No player combatant found for reward claim")

    npcs = [c for c in session.combatants.values() if c.entity_type == EntityType.NPC]
    # Defeats are counted from the event log
    defeated = len({
        event.payload["target_combatant_id"] for event in session.events
        if event.event_type == "death" and event.payload.get("target_entity_type") == EntityType.NPC.value
    })
    surviving_npcs = len(npcs) - defeated
    surviving_players = sum(1 for c in players if c.is_alive)

    rewards = []
    for combatant in sorted(players, key=lambda c: c.id):
        outcome = RewardOutcome(
            defeated_npcs=defeated,
            surviving_players=surviving_players,
            surviving_npcs=surviving_npcs,
            player_alive=combatant.is_alive,
        )
        sheet = campaign.characters[combatant.character_id]
        rewards.append(_reward_character(session, sheet, combatant.id, outcome, preset))

    grant = RewardGrant(
        session_id=session.id,
        campaign_id=campaign.id,
        granted_at=datetime.now(timezone.utc),
        rewards=rewards,
    )
    ledger.record(grant)
    append_event(session, "reward_granted", {
        "rewards": [reward.model_dump(mode="json") for reward in rewards],
        "animation_hint": animation_hint("rewards_page_flip", 420),
    })
    logger.info(
        "Rewards granted for session %s: %d character(s), %d npc(s) defeated",
        session.id, len(rewards), defeated,
    )
    return ClaimResult(already_granted=False, rewards=rewards)
