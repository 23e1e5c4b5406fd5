"""XP curves, level resolution, and stat/skill point grants."""

from __future__ import annotations

import math

from pydantic import BaseModel

from engine import tunables as t
from engine.stats import clamp


class LevelGain(BaseModel):
    """Result of applying an XP grant to a character."""
    level: int
    xp: int                          # Progress into the new level
    xp_to_next: int                  # 0 at max level
    levels_gained: int
    stat_points_granted: int
    skill_points_granted: int


def _curve(preset: str) -> dict:
    try:
        return t.XP_CURVES[preset.upper()]
    except KeyError:
        raise ValueError(f"Unknown XP curve '{preset}'") from None


def xp_to_next(level: int, preset: str = "STANDARD") -> int:
    """XP needed to go from level to level + 1; 0 at the level cap."""
    curve = _curve(preset)
    level = max(1, math.floor(level))
    if level >= curve["max_level"]:
        return 0
    raw = curve["base"] * level ** curve["exponent"] + curve["linear"] * level
    return max(1, math.floor(raw * curve["multiplier"]))


def xp_to_reach_level(level: int, preset: str = "STANDARD") -> int:
    """Total XP from level 1 to the start of level."""
    target = int(clamp(math.floor(level), 1, _curve(preset)["max_level"]))
    return sum(xp_to_next(lv, preset) for lv in range(1, target))


def points_granted_for_level(level_reached: int) -> tuple[int, int]:
    """(stat points, skill points) granted on reaching a level."""
    bonus_stat, bonus_skill = t.MILESTONE_BONUSES.get(max(1, math.floor(level_reached)), (0, 0))
    return t.STAT_POINTS_PER_LEVEL + bonus_stat, t.SKILL_POINTS_PER_LEVEL + bonus_skill


def resolve_level_from_xp(total_xp: int, preset: str = "STANDARD") -> tuple[int, int, int]:
    """Map lifetime XP to (level, xp into level, xp to next)."""
    max_level = _curve(preset)["max_level"]
    remaining = max(0, math.floor(total_xp))
    level = 1
    while level < max_level:
        need = xp_to_next(level, preset)
        if remaining < need:
            return level, remaining, need
        remaining -= need
        level += 1
    return max_level, 0, 0


def apply_xp_gain(level: int, xp: int, amount: int, preset: str = "STANDARD") -> LevelGain:
    """Add XP, resolving any number of level-ups in one grant.

    Args:
        level: Current level.
        xp: Progress into the current level.
        amount: XP gained (negative values count as zero).
        preset: XP curve name (FAST, STANDARD, GRINDY).

    Returns:
        LevelGain with points granted for every level crossed.

    Raises:
        ValueError: If preset is unknown.
    """
    max_level = _curve(preset)["max_level"]
    current = int(clamp(math.floor(level), 1, max_level))
    total = xp_to_reach_level(current, preset) + max(0, math.floor(xp)) + max(0, math.floor(amount))
    new_level, into, to_next = resolve_level_from_xp(total, preset)

    stat_points = skill_points = 0
    for lv in range(current + 1, new_level + 1):
        stat, skill = points_granted_for_level(lv)
        stat_points += stat
        skill_points += skill
    return LevelGain(
        level=new_level,
        xp=into,
        xp_to_next=to_next,
        levels_gained=max(0, new_level - current),
        stat_points_granted=stat_points,
        skill_points_granted=skill_points,
    )
