"""Balance constants for stats, damage, statuses, loot, and leveling."""

# ---------------------------------------------------------------------------
# Caps
# ---------------------------------------------------------------------------

CRIT_CHANCE_MIN = 0.0
CRIT_CHANCE_MAX = 0.6
HIT_CHANCE_MIN = 0.05
HIT_CHANCE_MAX = 0.95
SPEED_MIN = 1
SPEED_MAX = 250
RESIST_MIN = -0.5
RESIST_MAX = 0.8
CRIT_RES_MAX = 0.7
HEAL_BONUS_MAX = 2.0

# Applied to incoming damage, wider than RESIST_* so statuses can push past gear
DAMAGE_RESIST_MIN = -0.9
DAMAGE_RESIST_MAX = 0.95

# ---------------------------------------------------------------------------
# Diminishing returns
# ---------------------------------------------------------------------------

DEFENSE_SOFT_CAP = 180
DEFENSE_HARD_CAP = 420
MDEF_SOFT_CAP = 180
MDEF_HARD_CAP = 420
RESIST_SOFT_CAP = 0.5
RESIST_HARD_CAP = 0.8
OVERFLOW_SLOPE = 0.35

# ---------------------------------------------------------------------------
# Stat scalars
# ---------------------------------------------------------------------------

HP_PER_VIT = 12
HP_PER_LEVEL = 8
MP_PER_INT = 8
MP_PER_LEVEL = 4
ATK_PER_STR = 2
MATK_PER_INT = 2
DEF_PER_VIT = 1.5
MDEF_PER_WIS = 1.5
ACC_BASE = 75
ACC_PER_DEX = 1.2
EVA_BASE = 5
EVA_PER_DEX = 0.8
CRIT_PER_DEX = 0.15          # percent per point
CRIT_RES_PER_WIS = 0.08      # percent per point
SPEED_BASE = 10
SPEED_PER_DEX = 0.2
HEAL_BONUS_PER_WIS = 0.01
RES_PER_WIS = 0.003
ELEMENT_RES_PER_WIS = 0.0025
BARRIER_BASE = 0

ELEMENTS = (
    "physical", "fire", "ice", "lightning", "poison", "bleed", "stun",
    "holy", "shadow", "arcane", "wind", "earth", "water",
)

# ---------------------------------------------------------------------------
# Combat
# ---------------------------------------------------------------------------

CRIT_MULTIPLIER = 1.5
VARIANCE_PCT = 0.1
MIN_DAMAGE_ON_HIT = 1
PHYSICAL_STR_SCALE = 0.01
MAGICAL_INT_SCALE = 0.01

# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------

MP_COST_MAX = 99
DEFAULT_MP_LEVEL_SCALE = 0.08
DEFAULT_LEVEL_SCALE = 0.45

# Heal applied by a consumable that declares no effects
DEFAULT_ITEM_HEAL = 32

# ---------------------------------------------------------------------------
# Statuses
# ---------------------------------------------------------------------------

DEFAULT_DOT_SCALE = 0.35
DEFAULT_HOT_SCALE = 0.3
DEFAULT_RANK_TICK = 2
DEFAULT_INTENSITY_CAP = 5
CONTROL_STATUS_IDS = ("root", "stun")

# ---------------------------------------------------------------------------
# Loot
# ---------------------------------------------------------------------------

RARITIES = ("common", "uncommon", "rare", "epic", "legendary", "mythic")

RARITY_WEIGHTS = {
    "common": 54,
    "uncommon": 24,
    "rare": 12,
    "epic": 6,
    "legendary": 3,
    "mythic": 1,
}
RARITY_STAT_BUDGET = {
    "common": 12,
    "uncommon": 18,
    "rare": 27,
    "epic": 40,
    "legendary": 58,
    "mythic": 76,
}
RARITY_PRICE_MULT = {
    "common": 1,
    "uncommon": 1.35,
    "rare": 1.9,
    "epic": 2.8,
    "legendary": 4.1,
    "mythic": 6,
}
AFFIX_COUNT_BY_RARITY = {
    "common": 0,
    "uncommon": 1,
    "rare": 2,
    "epic": 3,
    "legendary": 4,
    "mythic": 5,
}
RARITY_GOLD_BONUS = {
    "common": 0,
    "uncommon": 2,
    "rare": 4,
    "epic": 7,
    "legendary": 11,
    "mythic": 18,
}
SLOT_BASE_WEIGHTS = {
    "weapon": 1.2,
    "offhand": 0.65,
    "head": 0.85,
    "chest": 1,
    "legs": 0.9,
    "accessory1": 0.85,
    "accessory2": 0.85,
}
SMART_DROP_USABLE_BONUS = 1.45
SMART_DROP_UNDERGEARED_BONUS = 1.3
DUPLICATE_AVOIDANCE_PENALTY = 0.18
LOOT_REROLL_ATTEMPTS = 6
GOLD_DROP_BASE = 16
GOLD_DROP_PER_LEVEL = 3.6
SELL_RATE = 0.25

# ---------------------------------------------------------------------------
# Leveling
# ---------------------------------------------------------------------------

XP_CURVES = {
    "FAST": {"max_level": 60, "base": 60, "exponent": 1.18, "linear": 18, "multiplier": 0.8},
    "STANDARD": {"max_level": 60, "base": 70, "exponent": 1.22, "linear": 22, "multiplier": 1},
    "GRINDY": {"max_level": 60, "base": 78, "exponent": 1.28, "linear": 30, "multiplier": 1.35},
}
STAT_POINTS_PER_LEVEL = 3
SKILL_POINTS_PER_LEVEL = 1
MILESTONE_BONUSES = {
    5: (2, 1),
    10: (2, 1),
    20: (3, 1),
    30: (3, 2),
    40: (4, 2),
    50: (4, 2),
}                            # level -> (stat points, skill points)
