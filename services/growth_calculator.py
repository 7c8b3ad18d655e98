"""
Growth Calculator - derives a plot's stage from stored timestamps.

Nothing ticks in the background: every read recomputes pause accounting,
effective growth time, stage, progress and pests from the plot record and the
current time.
"""
import logging
import random
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Iterable, List, Optional, Tuple

import settings

logger = logging.getLogger(__name__)


class PlotStage(str, Enum):
    EMPTY = 'empty'
    SEED = 'seed'
    SPROUT = 'sprout'
    GROWING = 'growing'
    RIPE = 'ripe'
    WITHER = 'wither'
    PAUSED = 'paused'  # waiting for water / weeding


@dataclass
class PlotStatus:
    stage: PlotStage
    needs_water: bool
    has_weeds: bool
    has_pests: bool
    effective_elapsed_time: int
    progress: float  # 0-100 within the current stage

    def to_dict(self):
        data = asdict(self)
        data['stage'] = self.stage.value
        return data


EMPTY_STATUS = PlotStatus(PlotStage.EMPTY, False, False, False, 0, 0)


def _triggered_intervals(planted_at, checkpoints, now) -> List[Tuple[int, int]]:
    """[trigger, done_at] for completed checkpoints, [trigger, now] for pending ones"""
    intervals = []
    for req in checkpoints:
        start = planted_at + req['time']
        if now < start:
            continue
        if req.get('done'):
            done_at = req.get('done_at')
            if done_at is not None and done_at > start:
                intervals.append((start, done_at))
        else:
            intervals.append((start, now))
    return intervals


def merged_pause(planted_at: int, checkpoints: Iterable[dict], now: int) -> Tuple[int, Optional[int]]:
    """
    Total paused seconds with overlapping windows merged.

    Returns:
        (paused_duration, paused_at) where paused_at is the start of the window
        still open at `now`, or None.
    """
    intervals = sorted(_triggered_intervals(planted_at, checkpoints, now))
    if not intervals:
        return 0, None

    merged = []
    cur_start, cur_end = intervals[0]
    for start, end in intervals[1:]:
        if start <= cur_end:
            cur_end = max(cur_end, end)
        else:
            merged.append((cur_start, cur_end))
            cur_start, cur_end = start, end
    merged.append((cur_start, cur_end))

    paused_duration = sum(end - start for start, end in merged)
    paused_at = next((start for start, end in merged if end == now), None)
    return paused_duration, paused_at


def single_window_pause(planted_at: int, checkpoints: Iterable[dict], now: int) -> Tuple[int, Optional[int]]:
    """
    Simpler pause accounting: every completed window counts on its own and
    only the earliest pending checkpoint opens a window. Overlapping
    completed windows are counted twice, which merged_pause avoids.
    """
    paused_duration = 0
    open_start = None
    for req in checkpoints:
        start = planted_at + req['time']
        if now < start:
            continue
        if req.get('done'):
            done_at = req.get('done_at')
            if done_at is not None and done_at > start:
                paused_duration += done_at - start
        elif open_start is None or start < open_start:
            open_start = start
    if open_start is not None:
        paused_duration += now - open_start
    return paused_duration, open_start


def _stage_progress(elapsed, b0, b1, b2):
    """Stage bucket and in-stage progress before maturity"""
    if elapsed < b0:
        return PlotStage.SEED, elapsed / b0 * 100
    if elapsed < b1:
        return PlotStage.SPROUT, (elapsed - b0) / (b1 - b0) * 100
    if elapsed < b2:
        return PlotStage.GROWING, (elapsed - b1) / (b2 - b1) * 100
    return None, 100


class GrowthCalculator:
    """Plot state machine"""

    def __init__(self, pause_mode=None, grow_time_mode=None, pest_mode=None,
                 pest_probability=None, rng=None):
        self.pause_mode = pause_mode or settings.PAUSE_MODE
        self.grow_time_mode = grow_time_mode or settings.GROW_TIME_MODE
        self.pest_mode = pest_mode or settings.PEST_MODE
        self.pest_probability = settings.PEST_PROBABILITY if pest_probability is None else pest_probability
        self.rng = rng or random.Random()

    def paused_duration(self, plot, now) -> Tuple[int, Optional[int]]:
        checkpoints = list(plot.water_requirements or []) + list(plot.weed_requirements or [])
        if self.pause_mode == 'single_window':
            return single_window_pause(plot.planted_at, checkpoints, now)
        return merged_pause(plot.planted_at, checkpoints, now)

    def compute_status(self, plot, catalog, now, rng=None, update_plot=True) -> PlotStatus:
        """
        Compute the plot status at `now` (unix seconds).

        Args:
            plot: Plot row (or any object with the same attributes)
            catalog: GameCatalog with the seed table
            now: current time in seconds
            rng: random source for pest rolls (defaults to the calculator's)
            update_plot: write pause accounting, cached timestamps, pests and
                stage back to the plot. Validation passes False.

        Returns:
            PlotStatus
        """
        if not plot.seed_id or plot.planted_at is None:
            if update_plot:
                self._store_empty(plot)
            return EMPTY_STATUS

        seed = catalog.get_seed(plot.seed_id)
        if seed is None:
            logger.error(f"[GrowthCalculator] Plot {plot.plot_index} references unknown seed {plot.seed_id}")
            if update_plot:
                self._store_empty(plot)
            return EMPTY_STATUS

        paused_duration, paused_at = self.paused_duration(plot, now)
        effective = now - plot.planted_at - paused_duration

        needs_water = any(effective >= req['time'] and not req.get('done') for req in plot.water_requirements or [])
        has_weeds = any(effective >= req['time'] and not req.get('done') for req in plot.weed_requirements or [])

        b0, b1, b2 = seed.boundaries(plot.fertilized, catalog.fertilizer_multiplier, self.grow_time_mode)
        wither_start = b2 + seed.wither_time
        mature_at = plot.planted_at + b2 + paused_duration
        withered_at = plot.planted_at + wither_start + paused_duration

        if needs_water or has_weeds:
            stage = PlotStage.PAUSED
            _, progress = _stage_progress(max(effective, 0), b0, b1, b2)
        elif effective < 0:
            stage, progress = PlotStage.SEED, 0
        else:
            stage, progress = _stage_progress(effective, b0, b1, b2)
            if stage is None:
                if effective < wither_start:
                    stage, progress = PlotStage.RIPE, 100
                else:
                    stage, progress = PlotStage.WITHER, 0

        pests, pests_occurred, last_check = self._evaluate_pests(plot, now, stage, rng or self.rng)

        if update_plot:
            plot.paused_duration = paused_duration
            plot.paused_at = paused_at
            plot.mature_at = mature_at
            plot.withered_at = withered_at
            plot.pests = pests
            plot.pests_occurred = pests_occurred
            plot.last_pest_check_at = last_check
            plot.stage = stage.value

        return PlotStatus(
            stage=stage,
            needs_water=needs_water,
            has_weeds=has_weeds,
            has_pests=pests,
            effective_elapsed_time=effective,
            progress=min(100, max(0, progress)),
        )

    def compute_all(self, user, catalog, now, rng=None):
        """Refresh every plot of a user. Returns [(plot, status)] in index order."""
        return [(plot, self.compute_status(plot, catalog, now, rng)) for plot in user.plots]

    def _evaluate_pests(self, plot, now, stage, rng):
        """
        Pest roll for the current planting cycle.

        Returns:
            (pests, pests_occurred, last_pest_check_at)
        """
        pests = bool(plot.pests)
        occurred = bool(plot.pests_occurred)
        last_check = plot.last_pest_check_at

        if stage not in (PlotStage.GROWING, PlotStage.RIPE):
            return pests, occurred, last_check

        # One pest event per planting cycle; pesticide clears the flag only
        if occurred or pests:
            return pests, occurred, now

        if self.pest_mode == 'protection_window':
            got_pests = not (plot.protected_until and plot.protected_until > now)
        else:
            since = last_check if last_check is not None else plot.planted_at
            delta = max(0, now - since)
            # P(no pest over delta independent one-second trials) = (1 - p) ** delta
            got_pests = delta > 0 and rng.random() >= (1 - self.pest_probability) ** delta

        if got_pests:
            logger.info(f"[GrowthCalculator] Plot {plot.plot_index} got pests")
            return True, True, now
        return False, False, now

    @staticmethod
    def _store_empty(plot):
        plot.stage = PlotStage.EMPTY.value
        plot.mature_at = None
        plot.withered_at = None
