"""Reward grant models."""

from datetime import datetime

from pydantic import BaseModel

from models.characters import GearItem


class RewardOutcome(BaseModel):
    """Combat facts a reward was computed from."""
    defeated_npcs: int
    surviving_players: int
    surviving_npcs: int
    player_alive: bool


class CharacterReward(BaseModel):
    """What one character received from a settlement."""
    character_id: str
    combatant_id: str
    xp_gained: int
    level_before: int
    level_after: int
    level_ups: int
    xp_after: int
    xp_to_next: int
    stat_points_granted: int = 0
    skill_points_granted: int = 0
    gold: int = 0
    loot: list[GearItem] = []
    outcome: RewardOutcome


class RewardGrant(BaseModel):
    """The persisted record that makes a claim idempotent. One per session."""
    session_id: str
    campaign_id: str
    granted_at: datetime
    rewards: list[CharacterReward] = []


class ClaimResult(BaseModel):
    """Response of a reward claim."""
    already_granted: bool
    rewards: list[CharacterReward]
