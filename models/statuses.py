"""Status effect definitions and the tagged union of active status instances."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from engine.tunables import (
    DEFAULT_DOT_SCALE,
    DEFAULT_HOT_SCALE,
    DEFAULT_INTENSITY_CAP,
    DEFAULT_RANK_TICK,
)

COOLDOWN_PREFIX = "cd:"


def cooldown_id(skill_id: str) -> str:
    """Synthetic status id that marks a skill as cooling down."""
    return f"{COOLDOWN_PREFIX}{skill_id}"


class StatModifiers(BaseModel):
    """Flat and percentage modifiers keyed by derived-stat name."""
    flat: dict[str, float] = {}     # e.g. {"defense": 10}
    pct: dict[str, float] = {}      # e.g. {"atk": -0.2}


class StatusDefinition(BaseModel):
    """Template a skill uses to apply a status."""
    id: str                         # e.g. "burning", "root"
    kind: Literal["buff", "debuff", "dot", "hot"]
    duration_turns: int = 1
    modifiers: StatModifiers = StatModifiers()
    element: str = "poison"         # dot only
    base_tick: float = 0
    rank_tick: float = DEFAULT_RANK_TICK
    dot_scale: float = DEFAULT_DOT_SCALE
    hot_scale: float = DEFAULT_HOT_SCALE
    stacking: Literal["refresh", "none", "intensity"] = "refresh"
    intensity_cap: int = DEFAULT_INTENSITY_CAP
    immunities: list[str] = []      # status ids or kinds this status blocks, or "all"


# ---------------------------------------------------------------------------
# Active instances
# ---------------------------------------------------------------------------


class _ActiveStatus(BaseModel):
    id: str
    expires_turn: int
    source_combatant_id: str | None = None
    source_skill_id: str | None = None


class BuffStatus(_ActiveStatus):
    """Beneficial stat modifiers."""
    kind: Literal["buff"] = "buff"
    modifiers: StatModifiers = StatModifiers()
    immunities: list[str] = []


class DebuffStatus(_ActiveStatus):
    """Harmful stat modifiers; also control effects such as root and stun."""
    kind: Literal["debuff"] = "debuff"
    modifiers: StatModifiers = StatModifiers()


class DamageOverTimeStatus(_ActiveStatus):
    """Periodic damage, scaled by the source's magic attack at application."""
    kind: Literal["dot"] = "dot"
    element: str = "poison"
    base_tick: float = 0
    rank: int = 1
    rank_tick: float = DEFAULT_RANK_TICK
    dot_scale: float = DEFAULT_DOT_SCALE
    source_matk: int = 0
    intensity: int = 1
    intensity_cap: int = DEFAULT_INTENSITY_CAP


class HealOverTimeStatus(_ActiveStatus):
    """Periodic healing, scaled by the source's wisdom at application."""
    kind: Literal["hot"] = "hot"
    base_tick: float = 0
    hot_scale: float = DEFAULT_HOT_SCALE
    source_wisdom: int = 0
    intensity: int = 1
    intensity_cap: int = DEFAULT_INTENSITY_CAP


class CooldownStatus(_ActiveStatus):
    """Marker that a skill cannot be used until expires_turn."""
    kind: Literal["cooldown"] = "cooldown"
    skill_id: str


StatusEffect = Annotated[
    Union[
        BuffStatus,
        DebuffStatus,
        DamageOverTimeStatus,
        HealOverTimeStatus,
        CooldownStatus,
    ],
    Field(discriminator="kind"),
]
