import random
import unittest

from services.growth_calculator import (
    GrowthCalculator, PlotStage, merged_pause, single_window_pause,
)
from tests.test_helpers import checkpoint, make_catalog, make_plot, make_seed, make_user


STAGE_ORDER = [PlotStage.SEED, PlotStage.SPROUT, PlotStage.GROWING, PlotStage.RIPE, PlotStage.WITHER]


class TestGrowthCalculator(unittest.TestCase):
    def setUp(self):
        # pest_probability=0 keeps pests out of the stage tests
        self.calc = GrowthCalculator(pause_mode='merge', grow_time_mode='cumulative',
                                     pest_mode='probabilistic', pest_probability=0,
                                     rng=random.Random(1))
        self.catalog = make_catalog(make_seed(wither_time=0))

    def test_ripe_then_wither(self):
        """Boundaries 30/60/90 with no wither grace"""
        plot = make_plot(seed_id='seed_0', planted_at=0)

        status = self.calc.compute_status(plot, self.catalog, 89)
        self.assertEqual(status.stage, PlotStage.GROWING)

        status = self.calc.compute_status(plot, self.catalog, 91)
        self.assertEqual(status.stage, PlotStage.WITHER)
        self.assertEqual(status.progress, 0)

        catalog = make_catalog(make_seed(wither_time=180))
        status = self.calc.compute_status(plot, catalog, 95)
        self.assertEqual(status.stage, PlotStage.RIPE)
        self.assertEqual(status.progress, 100)
        self.assertEqual(plot.mature_at, 90)
        self.assertEqual(plot.withered_at, 270)

    def test_water_pause_and_resume(self):
        """A pending water checkpoint pauses growth until watered"""
        plot = make_plot(seed_id='seed_0', planted_at=0, water=[checkpoint(50)])

        status = self.calc.compute_status(plot, self.catalog, 60)
        self.assertEqual(status.stage, PlotStage.PAUSED)
        self.assertTrue(status.needs_water)
        self.assertEqual(plot.paused_at, 50)

        plot.water_requirements = [checkpoint(50, done=True, done_at=61)]
        status = self.calc.compute_status(plot, self.catalog, 70)
        self.assertEqual(plot.paused_duration, 11)
        self.assertEqual(status.effective_elapsed_time, 59)
        self.assertFalse(status.needs_water)
        self.assertEqual(status.stage, PlotStage.SPROUT)
        self.assertIsNone(plot.paused_at)
        self.assertEqual(plot.mature_at, 90 + 11)

    def test_growth_frozen_while_paused(self):
        plot = make_plot(seed_id='seed_0', planted_at=0, weed=[checkpoint(40)])
        first = self.calc.compute_status(plot, self.catalog, 45)
        later = self.calc.compute_status(plot, self.catalog, 500)
        self.assertEqual(first.effective_elapsed_time, 40)
        self.assertEqual(later.effective_elapsed_time, 40)
        self.assertEqual(later.stage, PlotStage.PAUSED)
        self.assertTrue(later.has_weeds)

    def test_stage_is_monotonic_without_checkpoints(self):
        catalog = make_catalog(make_seed(wither_time=30))
        plot = make_plot(seed_id='seed_0', planted_at=1000)
        last = 0
        for now in range(1000, 1200, 7):
            stage = self.calc.compute_status(plot, catalog, now).stage
            index = STAGE_ORDER.index(stage)
            self.assertGreaterEqual(index, last, f"stage went back at t={now}")
            last = index
        self.assertEqual(STAGE_ORDER[last], PlotStage.WITHER)

    def test_progress_within_stage(self):
        plot = make_plot(seed_id='seed_0', planted_at=0)
        status = self.calc.compute_status(plot, self.catalog, 45)
        self.assertEqual(status.stage, PlotStage.SPROUT)
        self.assertAlmostEqual(status.progress, 50.0)

    def test_fertilized_boundaries_shrink(self):
        plot = make_plot(seed_id='seed_0', planted_at=0, fertilized=True)
        status = self.calc.compute_status(plot, self.catalog, 72)
        self.assertEqual(status.stage, PlotStage.WITHER)
        self.assertEqual(plot.mature_at, 72)

        status = self.calc.compute_status(plot, self.catalog, 71)
        self.assertEqual(status.stage, PlotStage.GROWING)

    def test_sum_grow_time_mode(self):
        """Stage durations 30+60+90 make maturity 180"""
        calc = GrowthCalculator(grow_time_mode='sum', pest_probability=0)
        plot = make_plot(seed_id='seed_0', planted_at=0)
        self.assertEqual(calc.compute_status(plot, self.catalog, 100).stage, PlotStage.GROWING)
        self.assertEqual(plot.mature_at, 180)

    def test_empty_and_unknown_seed(self):
        plot = make_plot()
        self.assertEqual(self.calc.compute_status(plot, self.catalog, 10).stage, PlotStage.EMPTY)

        plot = make_plot(seed_id='seed_42', planted_at=0)
        plot.mature_at = 99
        with self.assertLogs('services.growth_calculator', level='ERROR'):
            status = self.calc.compute_status(plot, self.catalog, 10)
        self.assertEqual(status.stage, PlotStage.EMPTY)
        self.assertIsNone(plot.mature_at)

    def test_planted_in_future_reads_as_seed(self):
        plot = make_plot(seed_id='seed_0', planted_at=100)
        status = self.calc.compute_status(plot, self.catalog, 50)
        self.assertEqual(status.stage, PlotStage.SEED)
        self.assertEqual(status.progress, 0)

    def test_transient_compute_leaves_plot_untouched(self):
        plot = make_plot(seed_id='seed_0', planted_at=0, water=[checkpoint(10)])
        self.calc.compute_status(plot, self.catalog, 60, update_plot=False)
        self.assertEqual(plot.stage, 'seed')
        self.assertEqual(plot.paused_duration, 0)
        self.assertIsNone(plot.mature_at)

    def test_compute_all(self):
        user = make_user(unlocked=2)
        user.plots[1].seed_id = 'seed_0'
        user.plots[1].planted_at = 0
        results = self.calc.compute_all(user, self.catalog, 45)
        self.assertEqual(len(results), 18)
        self.assertEqual(results[0][1].stage, PlotStage.EMPTY)
        self.assertEqual(results[1][1].stage, PlotStage.SPROUT)
        self.assertEqual(user.plots[1].stage, 'sprout')


class TestPauseAccounting(unittest.TestCase):
    def test_overlapping_windows_counted_once(self):
        checkpoints = [checkpoint(50, True, 60), checkpoint(50, True, 60)]
        self.assertEqual(merged_pause(0, checkpoints, 100), (10, None))
        # The single window rule counts each completed window on its own
        self.assertEqual(single_window_pause(0, checkpoints, 100), (20, None))

    def test_partial_overlap_merges(self):
        checkpoints = [checkpoint(10, True, 30), checkpoint(20, True, 40), checkpoint(60, True, 65)]
        paused, paused_at = merged_pause(0, checkpoints, 100)
        self.assertEqual(paused, 30 + 5)
        self.assertIsNone(paused_at)

    def test_open_window(self):
        checkpoints = [checkpoint(10, True, 20), checkpoint(15)]
        paused, paused_at = merged_pause(0, checkpoints, 50)
        self.assertEqual(paused, 40)
        self.assertEqual(paused_at, 10)

    def test_untriggered_and_undated_checkpoints_ignored(self):
        checkpoints = [checkpoint(500), checkpoint(10, True, None)]
        self.assertEqual(merged_pause(0, checkpoints, 100), (0, None))
        self.assertEqual(single_window_pause(0, checkpoints, 100), (0, None))

    def test_single_window_uses_earliest_pending(self):
        checkpoints = [checkpoint(30), checkpoint(10)]
        self.assertEqual(single_window_pause(0, checkpoints, 50), (40, 10))


class TestPests(unittest.TestCase):
    def setUp(self):
        self.catalog = make_catalog(make_seed(wither_time=1000))

    def test_no_pests_before_growing(self):
        calc = GrowthCalculator(pest_probability=1)
        plot = make_plot(seed_id='seed_0', planted_at=0)
        self.assertFalse(calc.compute_status(plot, self.catalog, 40).has_pests)
        self.assertFalse(plot.pests_occurred)

    def test_pests_are_sticky_per_cycle(self):
        calc = GrowthCalculator(pest_probability=1)
        plot = make_plot(seed_id='seed_0', planted_at=0)
        status = calc.compute_status(plot, self.catalog, 70)
        self.assertTrue(status.has_pests)
        self.assertTrue(plot.pests_occurred)
        self.assertEqual(plot.last_pest_check_at, 70)

        # Pesticide clears the pests but not the occurrence
        plot.pests = False
        status = calc.compute_status(plot, self.catalog, 200)
        self.assertFalse(status.has_pests)
        self.assertTrue(plot.pests_occurred)

    def test_zero_probability_never_infests(self):
        calc = GrowthCalculator(pest_probability=0)
        plot = make_plot(seed_id='seed_0', planted_at=0)
        for now in (70, 95, 500):
            self.assertFalse(calc.compute_status(plot, self.catalog, now).has_pests)

    def test_roll_uses_elapsed_seconds(self):
        calc = GrowthCalculator(pest_probability=0.5)
        plot = make_plot(seed_id='seed_0', planted_at=0)
        plot.last_pest_check_at = 68

        class FixedRng:
            def random(self):
                return 0.7

        # P(no pest over 2s) = 0.25, roll 0.7 >= 0.25
        self.assertTrue(calc.compute_status(plot, self.catalog, 70, rng=FixedRng()).has_pests)

    def test_protection_window_mode(self):
        calc = GrowthCalculator(pest_mode='protection_window')
        plot = make_plot(seed_id='seed_0', planted_at=0)
        plot.protected_until = 1000
        self.assertFalse(calc.compute_status(plot, self.catalog, 70).has_pests)

        plot.protected_until = 50
        self.assertTrue(calc.compute_status(plot, self.catalog, 70).has_pests)


if __name__ == '__main__':
    unittest.main()
