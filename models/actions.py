"""Action request and response models for the combat API."""

from typing import Any

from pydantic import BaseModel

from models.combat import ActionEvent, CombatOutcome


class SkillRequest(BaseModel):
    """Use a skill on the actor's turn."""
    actor_combatant_id: str
    skill_id: str
    target_id: str | None = None                    # For single-target skills
    target_position: tuple[int, int] | None = None  # For tile-shaped skills


class ItemRequest(BaseModel):
    """Use a consumable from the actor's inventory."""
    actor_combatant_id: str
    inventory_item_id: str
    target_id: str | None = None
    target_position: tuple[int, int] | None = None


class MoveRequest(BaseModel):
    """Move to a tile, or wait in place."""
    actor_combatant_id: str
    to: tuple[int, int] | None = None
    wait: bool = False


class TickRequest(BaseModel):
    """Resolve autonomous turns."""
    max_steps: int | None = None


class ActionOutcome(BaseModel):
    """Result of an accepted skill or item use."""
    ended: bool
    outcome: CombatOutcome | None = None
    rewards_ready: bool = False
    next_turn_index: int | None = None
    next_actor_combatant_id: str | None = None
    animation_hint: dict[str, Any] | None = None
    events: list[ActionEvent] = []


class MoveResult(BaseModel):
    """Result of an accepted move or wait."""
    moved: bool
    waited: bool
    movement_budget: int
    steps_used: int
    path: list[tuple[int, int]]
    to: tuple[int, int]
    next_turn_index: int | None = None
    next_actor_combatant_id: str | None = None
    ended: bool = False
    outcome: CombatOutcome | None = None
    events: list[ActionEvent] = []


class TickResult(BaseModel):
    """Result of resolving autonomous turns."""
    ticks: int
    ended: bool
    requires_player_action: bool
    current_turn_index: int
    next_actor_combatant_id: str | None = None
    outcome: CombatOutcome | None = None
    events: list[ActionEvent] = []
