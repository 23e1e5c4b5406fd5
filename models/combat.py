"""Combat session, combatant, turn order, and event models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from models.characters import Attributes, DerivedStats
from models.skills import Skill
from models.statuses import StatusEffect


class SessionStatus(str, Enum):
    """Lifecycle of a combat session."""
    PENDING = "pending"
    ACTIVE = "active"
    ENDED = "ended"


class EntityType(str, Enum):
    """Who controls a combatant."""
    PLAYER = "player"
    NPC = "npc"
    SUMMON = "summon"               # Fights for the party, driven by tick


class Combatant(BaseModel):
    """One participant in a combat session. Never removed, only marked dead."""
    id: str
    session_id: str
    entity_type: EntityType
    player_id: str | None = None    # Owning user for players and summons
    character_id: str | None = None
    name: str
    level: int = 1
    attributes: Attributes = Attributes()
    stats: DerivedStats = DerivedStats()
    resistances: dict[str, float] = {}
    hp: int
    hp_max: int
    power: int = 0                  # Skill resource
    power_max: int = 0
    armor: int = 0                  # Flat defense, reduced by armor shred
    barrier: int = 0                # Absorbs damage before hp
    resist: float = 0
    mobility: int = 10
    initiative: int = 0
    position: tuple[int, int]
    statuses: list[StatusEffect] = []
    skills: list[Skill] = []
    is_alive: bool = True

    @property
    def allegiance(self) -> str:
        return "enemy" if self.entity_type == EntityType.NPC else "party"


class TurnOrderEntry(BaseModel):
    """A fixed slot in the initiative rotation."""
    model_config = ConfigDict(frozen=True)

    session_id: str
    turn_index: int
    combatant_id: str


class ActionEvent(BaseModel):
    """An append-only record of something that happened."""
    model_config = ConfigDict(frozen=True)

    id: str
    seq: int                        # Insertion order within the session
    session_id: str
    turn_index: int                 # Absolute turn number when appended
    actor_combatant_id: str | None = None
    event_type: str                 # "moved", "damage", "death", ...
    payload: dict[str, Any] = {}
    created_at: datetime


class CombatOutcome(BaseModel):
    """Survivor counts at the moment combat ended."""
    alive_players: int
    alive_npcs: int
    won: bool


class CombatSession(BaseModel):
    """The full server-side state of one combat."""
    id: str
    campaign_id: str
    seed: int
    status: SessionStatus = SessionStatus.PENDING
    grid_width: int
    grid_height: int
    blocked_tiles: list[tuple[int, int]] = []
    combatants: dict[str, Combatant] = {}   # combatant_id -> Combatant
    turn_order: tuple[TurnOrderEntry, ...] = ()
    current_turn_index: int = 0     # Position in turn_order
    turn_number: int = 0            # Absolute turn counter
    round_number: int = 1
    events: list[ActionEvent] = []
    outcome: CombatOutcome | None = None
    created_at: datetime
    ended_at: datetime | None = None
