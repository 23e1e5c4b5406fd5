"""Seeded loot generation: rarity, slot choice, affixes, names, and gold."""

from __future__ import annotations

import math
import re

from pydantic import BaseModel

from engine import tunables as t
from engine.rng import pick_weighted, stable_hash, value01
from models.characters import EquipmentSlot, GearItem, ItemAffix, Rarity

# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

SUFFIX_POOL: tuple[tuple[str, dict[str, float], tuple[str, ...]], ...] = (
    ("of Power", {"atk": 6}, ("offense",)),
    ("of Fortitude", {"hp": 24}, ("survival",)),
    ("of Focus", {"mp": 18}, ("casting",)),
    ("of Swiftness", {"speed": 4}, ("tempo",)),
    ("of Precision", {"acc": 8}, ("accuracy",)),
    ("of Evasion", {"eva": 7}, ("avoidance",)),
    ("of Ember Guard", {"fire": 0.06}, ("resist", "fire")),
    ("of Frost Guard", {"ice": 0.06}, ("resist", "ice")),
    ("of Storm Guard", {"lightning": 0.06}, ("resist", "lightning")),
    ("of Verdant Antidote", {"poison": 0.06}, ("resist", "poison")),
)

BASE_ITEM_NAMES: dict[str, tuple[str, ...]] = {
    "weapon": ("Oak Wand", "Steel Sword", "Sunlit Spear", "Clockwork Hammer", "Pebble Launcher"),
    "offhand": ("Round Buckler", "Whistle Shield", "Lantern Tome", "Kettle Lid"),
    "head": ("Feather Cap", "Scout Hood", "Brass Helm", "Lucky Bucket"),
    "chest": ("Traveler Coat", "Chain Shirt", "Patchwork Vest", "Festival Armor"),
    "legs": ("Trail Greaves", "Sturdy Slacks", "Moonstep Leggings", "Wobble Pants"),
    "accessory1": ("Star Ring", "Compass Charm", "Jelly Brooch", "Pocket Planet"),
    "accessory2": ("Breeze Ring", "Ribbon Charm", "Wisp Token", "Fizz Locket"),
}

RARITY_FLOURISH: dict[str, tuple[str, ...]] = {
    "common": ("", "", ""),
    "uncommon": ("", "", "Bright"),
    "rare": ("Glimmering", "Sparkly", "Curious"),
    "epic": ("Radiant", "Whimsical", "Arc-bloom"),
    "legendary": ("Grand", "Heroic", "Starbound"),
    "mythic": ("Impossible", "Storybook", "World-tilting"),
}

MAX_AFFIX_ATTEMPTS = 20
DEFAULT_AFFIX_LABEL = "of Sparkles"


class LootBatch(BaseModel):
    """Items and gold rolled for one character."""
    items: list[GearItem]
    rarity_counts: dict[str, int]
    gold: int


def rarity_score(rarity: str) -> int:
    """1 for common up to 6 for mythic."""
    return t.RARITIES.index(rarity) + 1 if rarity in t.RARITIES else 1


def _pick_index(seed: int, label: str, size: int) -> int:
    return min(size - 1, math.floor(value01(seed, label) * size))


def _slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower())


# ---------------------------------------------------------------------------
# Rolls
# ---------------------------------------------------------------------------


def roll_rarity(seed: int, label: str) -> Rarity:
    return pick_weighted(seed, label, list(t.RARITY_WEIGHTS.items()))


def pick_slot(
    seed: int,
    label: str,
    preferred_slots: list[str] | None = None,
    equipped_scores: dict[str, float] | None = None,
    chosen_slots: list[str] | None = None,
) -> EquipmentSlot:
    """Weighted slot pick that favours usable, undergeared, not-yet-dropped slots.

    Args:
        seed: Loot seed.
        label: Draw label.
        preferred_slots: Slots the character can make good use of.
        equipped_scores: gear_score of what is equipped, by slot. Missing
            slots count as fully geared.
        chosen_slots: Slots already dropped in this batch.

    Returns:
        The chosen slot.
    """
    preferred = set(preferred_slots or ())
    scores = equipped_scores or {}
    chosen = set(chosen_slots or ())
    max_score = max([1.0, *(float(v) for v in scores.values())])
    entries = []
    for slot, weight in t.SLOT_BASE_WEIGHTS.items():
        if slot in preferred:
            weight *= t.SMART_DROP_USABLE_BONUS
        score = float(scores.get(slot, max_score))
        undergeared = max(0.0, (max_score - score) / max_score)
        weight *= 1 + undergeared * (t.SMART_DROP_UNDERGEARED_BONUS - 1)
        if slot in chosen:
            weight *= t.DUPLICATE_AVOIDANCE_PENALTY
        entries.append((slot, weight))
    return pick_weighted(seed, label, entries)


def _scaled_affix_value(seed: int, label: str, base: float, level: int, rarity: str) -> float:
    if base < 1:
        return round(base + level * 0.0008 + rarity_score(rarity) * 0.004, 4)
    jitter = 0.9 + value01(seed, f"{label}:jitter") * 0.2
    value = base * (1 + level * 0.06) * (1 + rarity_score(rarity) * 0.14) * jitter
    return max(1, math.floor(value))


def roll_affix(seed: int, label: str, level: int, rarity: str, used_labels: set[str]) -> ItemAffix:
    """Roll one suffix not already on the item; "of Bonking" if the pool runs dry."""
    for attempt in range(MAX_AFFIX_ATTEMPTS):
        suffix, stats, tags = SUFFIX_POOL[_pick_index(seed, f"{label}:affix:{attempt}", len(SUFFIX_POOL))]
        if suffix in used_labels:
            continue
        used_labels.add(suffix)
        return ItemAffix(
            id=f"{_slugify(suffix)}-{level}-{rarity}-{attempt}",
            label=suffix,
            stats_flat={
                key: _scaled_affix_value(seed, f"{label}:{key}", base, level, rarity)
                for key, base in stats.items()
            },
            tags=list(tags),
        )
    return ItemAffix(
        id=f"fallback-affix-{level}-{rarity}",
        label="of Bonking",
        stats_flat={"atk": max(1, math.floor(level * 0.6))},
        tags=["offense"],
    )


def _base_stats(slot: str, level: int, budget: float) -> dict[str, float]:
    stats: dict[str, float] = {"hp": max(0, math.floor(level * 0.9))}
    if slot == "weapon":
        stats["atk"] = max(1, math.floor(budget * 0.5 + level * 1.2))
    elif slot == "offhand":
        stats["def"] = max(1, math.floor(budget * 0.35 + level * 0.8))
    elif slot in ("head", "chest", "legs"):
        stats["def"] = max(1, math.floor(budget * 0.3 + level * 0.9))
        stats["mdef"] = max(1, math.floor(budget * 0.22 + level * 0.7))
    else:
        stats["mp"] = max(0, math.floor(budget * 0.45 + level * 0.7))
    return stats


def _item_name(seed: int, label: str, slot: str, rarity: str, affixes: list[ItemAffix]) -> str:
    pool = BASE_ITEM_NAMES[slot]
    base = pool[_pick_index(seed, f"{label}:base", len(pool))]
    flourishes = RARITY_FLOURISH[rarity]
    flourish = flourishes[_pick_index(seed, f"{label}:flourish", len(flourishes))]
    primary = affixes[0].label if affixes else DEFAULT_AFFIX_LABEL
    return " ".join(part for part in (flourish, base, primary) if part)


def generate_loot_item(seed: int, label: str, level: int, rarity: Rarity, slot: EquipmentSlot) -> GearItem:
    """Build one deterministic item.

    Base stats live on the item; rolled suffixes stay on their affixes so
    stat aggregation counts each once.

    Args:
        seed: Loot seed.
        label: Item label, e.g. "loot:0:weapon:rare".
        level: Item level (floored to at least 1).
        rarity: Rarity key.
        slot: Equipment slot.

    Returns:
        The generated GearItem.
    """
    level = max(1, math.floor(level))
    budget = t.RARITY_STAT_BUDGET[rarity]
    used: set[str] = set()
    affixes = [
        roll_affix(seed, f"{label}:affix:{i}", level, rarity, used)
        for i in range(max(0, t.AFFIX_COUNT_BY_RARITY[rarity]))
    ]
    value_buy = max(1, math.floor((budget + level * 2.4) * t.RARITY_PRICE_MULT[rarity]))
    return GearItem(
        id=f"{slot}-{rarity}-{level}-{stable_hash(f'{seed}:{label}')}",
        name=_item_name(seed, label, slot, rarity, affixes),
        slot=slot,
        rarity=rarity,
        level_req=max(1, level - 1),
        stats_flat=_base_stats(slot, level, budget),
        affixes=affixes,
        value_buy=value_buy,
        value_sell=max(1, math.floor(value_buy * t.SELL_RATE)),
    )


def generate_gold_drop(seed: int, level: int, rarity_counts: dict[str, int]) -> int:
    level = max(1, math.floor(level))
    bonus = sum(t.RARITY_GOLD_BONUS[r] * n for r, n in rarity_counts.items())
    variance = 0.8 + value01(seed, "gold") * 0.4
    return max(1, math.floor((t.GOLD_DROP_BASE + level * t.GOLD_DROP_PER_LEVEL + bonus) * variance))


def generate_loot_batch(
    seed: int,
    level: int,
    count: int,
    preferred_slots: list[str] | None = None,
    equipped_scores: dict[str, float] | None = None,
    avoid_item_ids: list[str] | None = None,
) -> LootBatch:
    """Roll count items (at least one) plus gold.

    Item ids colliding with avoid_item_ids, or with an earlier item in the
    batch, are rerolled with a shifted seed up to LOOT_REROLL_ATTEMPTS times.
    """
    avoid = {item_id.strip() for item_id in avoid_item_ids or () if item_id.strip()}
    counts = {rarity: 0 for rarity in t.RARITIES}
    chosen: list[str] = []
    items: list[GearItem] = []
    for idx in range(max(1, math.floor(count))):
        rarity = roll_rarity(seed, f"loot:{idx}:rarity")
        counts[rarity] += 1
        slot = pick_slot(seed, f"loot:{idx}:slot", preferred_slots, equipped_scores, chosen)
        chosen.append(slot)
        label = f"loot:{idx}:{slot}:{rarity}"
        item = generate_loot_item(seed, label, level, rarity, slot)
        attempt = 0
        while item.id in avoid and attempt < t.LOOT_REROLL_ATTEMPTS:
            item = generate_loot_item(seed + attempt + 1, f"{label}:reroll:{attempt}", level, rarity, slot)
            attempt += 1
        avoid.add(item.id)
        items.append(item)
    return LootBatch(items=items, rarity_counts=counts, gold=generate_gold_drop(seed, level, counts))
