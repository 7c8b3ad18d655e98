"""
Requirement Generator - water/weed checkpoint schedule for a planted crop.
"""
import math
from typing import Dict, List, Tuple

import settings
from models.catalog import SeedDefinition


def new_checkpoint(offset: int) -> Dict:
    return {'time': int(offset), 'done': False, 'done_at': None}


def even_offsets(total_grow_time: float, count: int) -> List[int]:
    """count interior points splitting the window into count+1 equal parts"""
    if count <= 0:
        return []
    interval = total_grow_time / (count + 1)
    return [math.floor(interval * i) for i in range(1, count + 1)]


class RequirementGenerator:
    def __init__(self, fertilizer_multiplier=0.8, grow_time_mode=None):
        self.fertilizer_multiplier = fertilizer_multiplier
        self.grow_time_mode = grow_time_mode or settings.GROW_TIME_MODE

    def total_grow_time(self, seed: SeedDefinition, fertilized: bool) -> float:
        """Effective seconds from planting to maturity"""
        if self.grow_time_mode == 'sum':
            total = sum(seed.stages)
        else:
            total = seed.stages[2]
        return total * self.fertilizer_multiplier if fertilized else total

    def generate(self, seed: SeedDefinition, fertilized: bool) -> Tuple[List[Dict], List[Dict]]:
        """
        Build fresh water and weed checkpoint lists.

        Called on plant and again on fertilize; a regenerated schedule never
        carries over completed checkpoints.

        Returns:
            (water_checkpoints, weed_checkpoints)
        """
        total = self.total_grow_time(seed, fertilized)
        water = [new_checkpoint(t) for t in even_offsets(total, seed.water_reqs)]
        weed = [new_checkpoint(t) for t in even_offsets(total, seed.weed_reqs)]
        return water, weed
