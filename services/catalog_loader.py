"""
Catalog Loader - Load the static game tables from CSV
"""
import csv
import logging
import os
from typing import Dict, List, Optional

from models.catalog import (
    CheckinReward, GameCatalog, GluckReward, ItemId, ItemKind, PetDefinition,
    PlotPrice, SeedDefinition,
)
from services.errors import ConfigError

logger = logging.getLogger(__name__)

DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'data')


class CatalogLoader:
    """Load and cache the game catalog from the data/ CSV files"""

    def __init__(self, data_dir: Optional[str] = None):
        self.data_dir = data_dir or DATA_DIR
        self._cache = None

    def load(self) -> GameCatalog:
        if self._cache is not None:
            return self._cache

        seeds = self.load_seeds()
        pets = self.load_pets()
        catalog = GameCatalog(
            seeds={s.seed_id: s for s in seeds},
            pets={p.pet_id: p for p in pets},
            plot_prices=self.load_plot_prices(),
            gluck_rewards=self.load_gluck_rewards(seeds),
            checkin_rewards=self.load_checkin_rewards(),
            levels=self.load_levels(),
        )
        logger.info(f"[CatalogLoader] Loaded {len(seeds)} seeds, {len(pets)} pets from {self.data_dir}")
        self._cache = catalog
        return catalog

    def _read(self, filename) -> List[Dict[str, str]]:
        path = os.path.join(self.data_dir, filename)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return list(csv.DictReader(f))
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}")

    @staticmethod
    def _int(row, key, filename):
        try:
            return int(row[key])
        except (KeyError, TypeError, ValueError):
            raise ConfigError(f"{filename}: bad integer '{row.get(key)}' in column {key}")

    @staticmethod
    def _float(row, key, filename):
        try:
            return float(row[key])
        except (KeyError, TypeError, ValueError):
            raise ConfigError(f"{filename}: bad number '{row.get(key)}' in column {key}")

    def load_seeds(self) -> List[SeedDefinition]:
        seeds = []
        for row in self._read('seeds.csv'):
            try:
                item = ItemId.parse(row.get('seed_id', ''))
            except ValueError as e:
                raise ConfigError(f"seeds.csv: {e}")
            if item.kind is not ItemKind.SEED:
                raise ConfigError(f"seeds.csv: {item} is not a seed id")

            stages = tuple(self._int(row, k, 'seeds.csv') for k in ('stage_seed', 'stage_sprout', 'stage_growing'))
            if not (0 < stages[0] < stages[1] < stages[2]):
                raise ConfigError(f"seeds.csv: {item} stage boundaries must be strictly increasing, got {stages}")

            seeds.append(SeedDefinition(
                seed_id=item.key,
                tier=item.tier,
                name=row.get('name', ''),
                cost=self._int(row, 'cost', 'seeds.csv'),
                price=self._int(row, 'price', 'seeds.csv'),
                exp=self._int(row, 'exp', 'seeds.csv'),
                stages=stages,
                wither_time=self._int(row, 'wither_time', 'seeds.csv'),
                water_reqs=self._int(row, 'water_reqs', 'seeds.csv'),
                weed_reqs=self._int(row, 'weed_reqs', 'seeds.csv'),
            ))
        return seeds

    def load_pets(self) -> List[PetDefinition]:
        return [
            PetDefinition(
                pet_id=row['pet_id'],
                index=self._int(row, 'index', 'pets.csv'),
                name=row.get('name', ''),
                price=self._int(row, 'price', 'pets.csv'),
                coins_per_hour=self._float(row, 'coins_per_hour', 'pets.csv'),
            )
            for row in self._read('pets.csv')
        ]

    def load_plot_prices(self) -> List[PlotPrice]:
        prices = [
            PlotPrice(
                index=self._int(row, 'plot_index', 'plots.csv'),
                unlock_cost=self._int(row, 'unlock_cost', 'plots.csv'),
                level_req=self._int(row, 'level_req', 'plots.csv'),
            )
            for row in self._read('plots.csv')
        ]
        prices.sort(key=lambda p: p.index)
        if [p.index for p in prices] != list(range(len(prices))):
            raise ConfigError("plots.csv: plot indexes must be contiguous from 0")
        return prices

    def load_gluck_rewards(self, seeds) -> List[GluckReward]:
        known = {s.seed_id for s in seeds}
        rewards = []
        for row in self._read('gluck_rewards.csv'):
            if row.get('seed_id') not in known:
                raise ConfigError(f"gluck_rewards.csv: unknown seed {row.get('seed_id')}")
            rewards.append(GluckReward(
                seed_id=row['seed_id'],
                probability=self._float(row, 'probability', 'gluck_rewards.csv'),
                min_count=self._int(row, 'min_count', 'gluck_rewards.csv'),
                max_count=self._int(row, 'max_count', 'gluck_rewards.csv'),
            ))
        return rewards

    def load_checkin_rewards(self) -> List[CheckinReward]:
        return [
            CheckinReward(
                probability=self._float(row, 'probability', 'checkin_rewards.csv'),
                min_coins=self._int(row, 'min_coins', 'checkin_rewards.csv'),
                max_coins=self._int(row, 'max_coins', 'checkin_rewards.csv'),
            )
            for row in self._read('checkin_rewards.csv')
        ]

    def load_levels(self) -> List[int]:
        rows = sorted(self._read('levels.csv'), key=lambda r: self._int(r, 'level', 'levels.csv'))
        return [self._int(row, 'exp_required', 'levels.csv') for row in rows]


_default_loader = CatalogLoader()


def get_catalog() -> GameCatalog:
    """Catalog from the bundled data directory (cached)"""
    return _default_loader.load()
