"""Character sheet, attribute, derived-stat, and item models."""

from typing import Literal

from pydantic import BaseModel

from models.skills import Skill

EquipmentSlot = Literal[
    "weapon", "offhand", "head", "chest", "legs", "accessory1", "accessory2",
]
Rarity = Literal["common", "uncommon", "rare", "epic", "legendary", "mythic"]


class Attributes(BaseModel):
    """The six narrative attributes a character is built from."""
    offense: int = 10
    defense: int = 10
    control: int = 10
    support: int = 10
    mobility: int = 10
    utility: int = 10


class CoreStats(BaseModel):
    """Combat-facing base stats, derived from Attributes."""
    strength: int = 1
    dexterity: int = 1
    vitality: int = 1
    intelligence: int = 1
    wisdom: int = 1


class DerivedStats(BaseModel):
    """Combat-usable stats recomputed from base stats plus equipment."""
    hp: int = 1
    mp: int = 0
    atk: int = 0
    defense: int = 0
    matk: int = 0
    mdef: int = 0
    acc: int = 1
    eva: int = 0
    crit: float = 0                 # Chance, 0..1
    crit_res: float = 0             # Chance reduction, 0..1
    res: float = 0                  # Generic resist fraction
    speed: int = 1
    heal_bonus: float = 0           # Fraction, 0..2
    barrier: int = 0


class ItemAffix(BaseModel):
    """A rolled suffix such as "of Power"."""
    id: str
    label: str
    stats_flat: dict[str, float] = {}
    stats_pct: dict[str, float] = {}
    tags: list[str] = []


class GearItem(BaseModel):
    """A piece of generated equipment."""
    id: str                         # "{slot}-{rarity}-{level}-{hash}"
    name: str
    slot: EquipmentSlot
    rarity: Rarity
    level_req: int = 1
    stats_flat: dict[str, float] = {}
    stats_pct: dict[str, float] = {}
    affixes: list[ItemAffix] = []
    value_buy: int = 1
    value_sell: int = 1


class ItemEffects(BaseModel):
    """What a consumable does when used in combat."""
    heal: int = 0
    power_gain: int = 0
    damage: int = 0
    cleanse: list[str] = []         # Status ids to strip


class InventoryItem(BaseModel):
    """A stack in a character's inventory."""
    id: str
    name: str
    item_type: Literal["consumable", "gear"] = "consumable"
    quantity: int = 1
    effects: ItemEffects = ItemEffects()
    gear: GearItem | None = None    # Set when item_type == "gear"


class CharacterSheet(BaseModel):
    """A player's persistent character within a campaign."""
    id: str
    player_id: str                  # owner_id of the controlling user
    name: str
    level: int = 1
    xp: int = 0                     # Progress into the current level
    attributes: Attributes = Attributes()
    resistances: dict[str, float] = {}
    equipment: dict[EquipmentSlot, GearItem] = {}
    skills: list[Skill] = []
    inventory: list[InventoryItem] = []
    gold: int = 0
    unspent_stat_points: int = 0
    unspent_skill_points: int = 0
