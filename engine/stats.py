"""Stat derivation: attributes and equipment into combat-usable stats."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from engine import tunables as t
from models.characters import CoreStats, DerivedStats

if TYPE_CHECKING:
    from models.characters import Attributes, CharacterSheet, GearItem


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def safe_pct(value: float) -> float:
    """Normalize a percentage: values above magnitude 2 are whole percents."""
    if abs(value) > 2:
        return value / 100
    return value


def apply_diminishing(
    value: float,
    soft_cap: float,
    hard_cap: float,
    overflow_slope: float,
) -> float:
    """Two-segment diminishing-returns curve.

    Below the soft cap the value passes through unchanged. Above it the
    excess is scaled by overflow_slope (clamped to 0..1) and the result is
    clamped to the hard cap. Monotonic non-decreasing for any slope in
    [0, 1].

    Args:
        value: Raw stat value.
        soft_cap: Where slowdown begins.
        hard_cap: Absolute ceiling.
        overflow_slope: Fraction of excess kept above the soft cap.

    Returns:
        The adjusted value.
    """
    if not math.isfinite(value):
        return 0.0
    if value <= soft_cap:
        return value
    overflow = value - soft_cap
    reduced = soft_cap + overflow * clamp(overflow_slope, 0, 1)
    return clamp(reduced, 0, hard_cap)


def base_stats_from_attributes(attributes: Attributes) -> CoreStats:
    """Map the narrative attributes onto combat base stats."""
    return CoreStats(
        strength=max(1, attributes.offense),
        vitality=max(1, attributes.defense),
        intelligence=max(1, attributes.control),
        wisdom=max(1, (attributes.support + attributes.utility) // 2),
        dexterity=max(1, attributes.mobility),
    )


def aggregate_equipment(items: list[GearItem]) -> tuple[dict[str, float], dict[str, float]]:
    """Sum flat and percentage modifiers of equipped items and their affixes.

    Returns:
        (flat, pct) dicts keyed by stat name.
    """
    flat: dict[str, float] = {}
    pct: dict[str, float] = {}
    for item in items:
        sources = [(item.stats_flat, item.stats_pct)]
        sources.extend((affix.stats_flat, affix.stats_pct) for affix in item.affixes)
        for source_flat, source_pct in sources:
            for key, value in source_flat.items():
                flat[key] = flat.get(key, 0) + value
            for key, value in source_pct.items():
                pct[key] = pct.get(key, 0) + value
    return flat, pct


def _read_any(stats: dict[str, float], keys: tuple[str, ...]) -> float:
    return sum(stats.get(key, 0) for key in keys)


def _first_pct(pct: dict[str, float], *keys: str) -> float:
    for key in keys:
        if key in pct:
            return pct[key]
    return 0


def _apply_pct(value: float, pct_value: float) -> float:
    return value * (1 + safe_pct(pct_value))


def merge_resistances(
    base: dict[str, float],
    gear_flat: dict[str, float],
    core: CoreStats,
) -> dict[str, float]:
    """Combine per-element resistances with wisdom and gear bonuses."""
    merged: dict[str, float] = {}
    shared = core.wisdom * t.ELEMENT_RES_PER_WIS + gear_flat.get("res", 0) / 100
    for element in t.ELEMENTS:
        mixed = base.get(element, 0) + shared + safe_pct(gear_flat.get(element, 0))
        merged[element] = clamp(mixed, t.RESIST_MIN, t.RESIST_MAX)
    return merged


def derive_stats(
    level: int,
    base: CoreStats,
    equipment_flat: dict[str, float] | None = None,
    equipment_pct: dict[str, float] | None = None,
    resistances: dict[str, float] | None = None,
) -> tuple[DerivedStats, dict[str, float]]:
    """Derive combat stats from base stats, level, and equipment.

    Each stat is a base formula plus its flat gear bonus, then percentage
    modifiers, then clamping. Defense, magic defense, and generic resist
    pass through the diminishing-returns curve.

    Args:
        level: Character level (floored at 1).
        base: Core stats.
        equipment_flat: Aggregated flat gear modifiers.
        equipment_pct: Aggregated percentage gear modifiers.
        resistances: Existing per-element resistances.

    Returns:
        (derived_stats, merged_resistances) tuple.
    """
    level = max(1, int(level))
    flat = equipment_flat or {}
    pct = equipment_pct or {}

    gear_hp = _read_any(flat, ("hp", "hp_max"))
    gear_mp = _read_any(flat, ("mp", "mp_max", "power_max"))
    weapon_atk = _read_any(flat, ("atk", "weapon_atk", "weapon_power"))
    staff_matk = _read_any(flat, ("matk", "staff_matk", "spell_power"))
    armor_def = _read_any(flat, ("def", "defense", "armor", "armor_power"))
    armor_mdef = _read_any(flat, ("mdef", "mres"))
    gear_acc = _read_any(flat, ("acc", "accuracy"))
    gear_eva = _read_any(flat, ("eva", "evasion"))
    gear_crit = _read_any(flat, ("crit", "crit_chance"))
    gear_crit_res = _read_any(flat, ("crit_res",))
    gear_speed = _read_any(flat, ("speed", "spd"))
    gear_heal_bonus = safe_pct(_read_any(flat, ("heal_bonus", "healing_bonus")))
    gear_barrier = _read_any(flat, ("barrier", "shield"))

    hp_pre = base.vitality * t.HP_PER_VIT + level * t.HP_PER_LEVEL + gear_hp
    mp_pre = base.intelligence * t.MP_PER_INT + level * t.MP_PER_LEVEL + gear_mp
    atk_pre = base.strength * t.ATK_PER_STR + weapon_atk + level
    matk_pre = base.intelligence * t.MATK_PER_INT + staff_matk + level
    def_pre = base.vitality * t.DEF_PER_VIT + armor_def
    mdef_pre = base.wisdom * t.MDEF_PER_WIS + armor_mdef
    acc_pre = t.ACC_BASE + base.dexterity * t.ACC_PER_DEX + gear_acc
    eva_pre = t.EVA_BASE + base.dexterity * t.EVA_PER_DEX + gear_eva
    crit_pct = clamp(base.dexterity * t.CRIT_PER_DEX + gear_crit, 0, 60)
    crit_res_pct = clamp(base.wisdom * t.CRIT_RES_PER_WIS + gear_crit_res, 0, 40)
    speed_pre = t.SPEED_BASE + base.dexterity * t.SPEED_PER_DEX + gear_speed

    defense = apply_diminishing(
        _apply_pct(def_pre, _first_pct(pct, "def", "defense", "armor")),
        t.DEFENSE_SOFT_CAP, t.DEFENSE_HARD_CAP, t.OVERFLOW_SLOPE,
    )
    mdef = apply_diminishing(
        _apply_pct(mdef_pre, _first_pct(pct, "mdef", "res")),
        t.MDEF_SOFT_CAP, t.MDEF_HARD_CAP, t.OVERFLOW_SLOPE,
    )
    res_raw = clamp(
        base.wisdom * t.RES_PER_WIS + safe_pct(flat.get("res", 0)) + safe_pct(pct.get("res", 0)),
        t.RESIST_MIN, t.RESIST_MAX,
    )
    res = clamp(
        apply_diminishing(res_raw, t.RESIST_SOFT_CAP, t.RESIST_HARD_CAP, t.OVERFLOW_SLOPE),
        t.RESIST_MIN, t.RESIST_MAX,
    )

    derived = DerivedStats(
        hp=max(1, math.floor(_apply_pct(hp_pre, _first_pct(pct, "hp", "hp_max")))),
        mp=max(0, math.floor(_apply_pct(mp_pre, _first_pct(pct, "mp", "mp_max", "power_max")))),
        atk=max(0, math.floor(_apply_pct(atk_pre, pct.get("atk", 0)))),
        defense=max(0, math.floor(defense)),
        matk=max(0, math.floor(_apply_pct(matk_pre, _first_pct(pct, "matk", "spell_power")))),
        mdef=max(0, math.floor(mdef)),
        acc=max(1, math.floor(_apply_pct(acc_pre, _first_pct(pct, "acc", "accuracy")))),
        eva=max(0, math.floor(_apply_pct(eva_pre, _first_pct(pct, "eva", "evasion")))),
        crit=clamp(
            crit_pct / 100 + safe_pct(pct.get("crit", 0)),
            t.CRIT_CHANCE_MIN, t.CRIT_CHANCE_MAX,
        ),
        crit_res=clamp(crit_res_pct / 100 + safe_pct(pct.get("crit_res", 0)), 0, t.CRIT_RES_MAX),
        res=res,
        speed=math.floor(clamp(
            _apply_pct(speed_pre, _first_pct(pct, "speed", "spd")),
            t.SPEED_MIN, t.SPEED_MAX,
        )),
        heal_bonus=clamp(
            base.wisdom * t.HEAL_BONUS_PER_WIS + gear_heal_bonus + safe_pct(pct.get("heal_bonus", 0)),
            0, t.HEAL_BONUS_MAX,
        ),
        barrier=max(0, math.floor(t.BARRIER_BASE + gear_barrier)),
    )
    return derived, merge_resistances(resistances or {}, flat, base)


def derive_character_stats(sheet: CharacterSheet) -> tuple[DerivedStats, dict[str, float]]:
    """Recompute a character sheet's derived stats from attributes and gear."""
    flat, pct = aggregate_equipment(list(sheet.equipment.values()))
    return derive_stats(
        sheet.level,
        base_stats_from_attributes(sheet.attributes),
        flat,
        pct,
        sheet.resistances,
    )


def gear_score(item: GearItem | None) -> float:
    """Single number summarizing an item's stat weight, for smart drops."""
    if item is None:
        return 0.0
    score = 0.0
    for value in item.stats_flat.values():
        # Resist fractions are tiny next to flat stats
        score += value * 100 if abs(value) < 1 else value
    for affix in item.affixes:
        for value in affix.stats_flat.values():
            score += value * 100 if abs(value) < 1 else value
        score += sum(abs(v) * 100 for v in affix.stats_pct.values())
    return round(score, 4)
