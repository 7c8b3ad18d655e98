"""
Static game tables (seeds, pets, plot prices, lottery, check-in, levels).
Immutable: loaded once by CatalogLoader and passed into every calculator call.
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class ItemKind(Enum):
    SEED = 'seed'
    FRUIT = 'fruit'
    FERTILIZER = 'fertilizer'


@dataclass(frozen=True)
class ItemId:
    """Backpack key: a closed item kind plus a numeric tier"""
    kind: ItemKind
    tier: Optional[int] = None

    @classmethod
    def parse(cls, key: str) -> 'ItemId':
        if key == ItemKind.FERTILIZER.value:
            return cls(ItemKind.FERTILIZER)
        prefix, sep, tier = str(key).partition('_')
        if not sep or not tier.isdigit():
            raise ValueError(f"Invalid item id: {key}")
        try:
            kind = ItemKind(prefix)
        except ValueError:
            raise ValueError(f"Invalid item id: {key}")
        if kind is ItemKind.FERTILIZER:
            raise ValueError(f"Invalid item id: {key}")
        return cls(kind, int(tier))

    @property
    def key(self) -> str:
        if self.kind is ItemKind.FERTILIZER:
            return self.kind.value
        return f"{self.kind.value}_{self.tier}"

    def __str__(self):
        return self.key


@dataclass(frozen=True)
class SeedDefinition:
    seed_id: str
    tier: int
    name: str
    cost: int            # purchase price of one seed
    price: int           # sale price of one fruit
    exp: int
    stages: Tuple[int, int, int]  # cumulative end of seed / sprout / growing, seconds
    wither_time: int     # grace after the growing boundary
    water_reqs: int
    weed_reqs: int

    @property
    def fruit_id(self) -> str:
        return ItemId(ItemKind.FRUIT, self.tier).key

    def boundaries(self, fertilized: bool = False, multiplier: float = 0.8,
                   grow_time_mode: str = 'cumulative') -> Tuple[int, int, int]:
        """Stage boundaries in effective seconds, fertilizer applied and floored"""
        if grow_time_mode == 'sum':
            # Older rule set: the three numbers are stage durations
            s0, s1, s2 = self.stages
            raw = (s0, s0 + s1, s0 + s1 + s2)
        else:
            raw = tuple(self.stages)
        factor = multiplier if fertilized else 1
        return tuple(math.floor(b * factor) for b in raw)


@dataclass(frozen=True)
class PetDefinition:
    pet_id: str
    index: int
    name: str
    price: int
    coins_per_hour: float


@dataclass(frozen=True)
class PlotPrice:
    index: int
    unlock_cost: int
    level_req: int


@dataclass(frozen=True)
class GluckReward:
    seed_id: str
    probability: float
    min_count: int
    max_count: int


@dataclass(frozen=True)
class CheckinReward:
    probability: float
    min_coins: int
    max_coins: int


@dataclass(frozen=True)
class GameCatalog:
    seeds: Mapping[str, SeedDefinition]
    pets: Mapping[str, PetDefinition]
    plot_prices: Tuple[PlotPrice, ...]
    gluck_rewards: Tuple[GluckReward, ...]
    checkin_rewards: Tuple[CheckinReward, ...]
    levels: Tuple[int, ...]
    fertilizer_price: int = 50
    fertilizer_multiplier: float = 0.8
    pets_by_index: Mapping[int, PetDefinition] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        # Freeze the lookup tables even when plain dicts were passed in
        object.__setattr__(self, 'seeds', MappingProxyType(dict(self.seeds)))
        object.__setattr__(self, 'pets', MappingProxyType(dict(self.pets)))
        object.__setattr__(self, 'plot_prices', tuple(self.plot_prices))
        object.__setattr__(self, 'gluck_rewards', tuple(self.gluck_rewards))
        object.__setattr__(self, 'checkin_rewards', tuple(self.checkin_rewards))
        object.__setattr__(self, 'levels', tuple(self.levels))
        object.__setattr__(self, 'pets_by_index',
                           MappingProxyType({p.index: p for p in self.pets.values()}))

    def get_seed(self, seed_id) -> Optional[SeedDefinition]:
        return self.seeds.get(seed_id)

    def get_seed_by_tier(self, tier) -> Optional[SeedDefinition]:
        return self.seeds.get(ItemId(ItemKind.SEED, tier).key)

    def get_pet(self, pet_id) -> Optional[PetDefinition]:
        return self.pets.get(pet_id)

    def get_plot_price(self, index) -> Optional[PlotPrice]:
        if index < 0 or index >= len(self.plot_prices):
            return None
        return self.plot_prices[index]

    def level_for_exp(self, exp: int) -> int:
        """Level from cumulative experience thresholds"""
        for i in range(len(self.levels) - 1, -1, -1):
            if exp >= self.levels[i]:
                return i + 1
        return 1

    def exp_for_next_level(self, level: int) -> Optional[int]:
        if level >= len(self.levels):
            return None
        return self.levels[level]

    def is_known_item(self, item: ItemId) -> bool:
        if item.kind is ItemKind.FERTILIZER:
            return True
        return self.get_seed_by_tier(item.tier) is not None
