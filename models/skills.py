"""Skill definitions, effect variants, and combat targets."""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from engine.tunables import DEFAULT_LEVEL_SCALE
from models.statuses import StatusDefinition


class SkillKind(str, Enum):
    """How a skill is used."""
    ACTIVE = "active"
    PASSIVE = "passive"             # Never usable as an action
    ULTIMATE = "ultimate"


class TargetingKind(str, Enum):
    """Shape of the target a skill requires."""
    SELF = "self"
    SINGLE = "single"               # A living combatant id
    TILE = "tile"
    AREA = "area"                   # Radius around a tile
    CONE = "cone"
    LINE = "line"


class TargetFilter(str, Enum):
    """Which side a skill may affect."""
    ENEMIES = "enemies"
    ALLIES = "allies"
    ANY = "any"


# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------


class DamageEffect(BaseModel):
    type: Literal["damage"] = "damage"
    damage_kind: Literal["physical", "magical"] = "physical"
    element: str = "physical"
    multiplier: float = 1.0         # Applied to skill power
    hit_bonus: float = 0            # Accuracy points
    crit_bonus: float = 0           # Crit chance, 0..1


class HealEffect(BaseModel):
    type: Literal["heal"] = "heal"
    multiplier: float = 1.0


class BarrierEffect(BaseModel):
    type: Literal["barrier"] = "barrier"
    amount: int = 0                 # Floor for the computed barrier
    defense_scale: float = 0
    support_scale: float = 0


class PowerGainEffect(BaseModel):
    type: Literal["power_gain"] = "power_gain"
    amount: int = 0                 # Floor for the computed gain
    utility_scale: float = 0
    support_scale: float = 0


class ArmorShredEffect(BaseModel):
    type: Literal["armor_shred"] = "armor_shred"
    amount: int = 1


class CleanseEffect(BaseModel):
    type: Literal["cleanse"] = "cleanse"
    status_ids: list[str] = []      # Empty = every harmful status


class TeleportEffect(BaseModel):
    type: Literal["teleport"] = "teleport"


SkillEffect = Annotated[
    Union[
        DamageEffect,
        HealEffect,
        BarrierEffect,
        PowerGainEffect,
        ArmorShredEffect,
        CleanseEffect,
        TeleportEffect,
    ],
    Field(discriminator="type"),
]


class Skill(BaseModel):
    """A usable (or passive) ability."""
    id: str                         # e.g. "fireball"
    name: str
    kind: SkillKind = SkillKind.ACTIVE
    targeting: TargetingKind = TargetingKind.SINGLE
    range_tiles: int = 1
    radius: int = 1                 # AREA only
    cooldown_turns: int = 0
    rank: int = 1
    base_power: float = 0
    power_scale: float = 0          # Per rank
    level_scale: float = DEFAULT_LEVEL_SCALE
    cost: float = 0                 # Power (mp) cost before scaling
    cost_scale: float = 0           # Per rank
    target_filter: TargetFilter = TargetFilter.ENEMIES
    requires_los: bool = False
    effects: list[SkillEffect] = []
    status: StatusDefinition | None = None
    status_chance: float = 1.0


class CombatTarget(BaseModel):
    """Target supplied with a skill or item use."""
    target_id: str | None = None                    # For SINGLE
    target_position: tuple[int, int] | None = None  # For TILE/AREA/CONE/LINE
