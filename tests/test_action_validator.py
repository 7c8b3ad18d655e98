import calendar
import datetime
import unittest

from services.action_validator import ActionValidator, utc_date
from services.catalog_loader import get_catalog
from services.growth_calculator import GrowthCalculator
from tests.test_helpers import checkpoint, make_user


def ts(year, month, day, hour=12):
    return calendar.timegm(datetime.datetime(year, month, day, hour).timetuple())


class TestActionValidator(unittest.TestCase):
    def setUp(self):
        self.catalog = get_catalog()
        self.validator = ActionValidator(self.catalog, GrowthCalculator(pest_probability=0))
        self.user = make_user(backpack={'seed_0': 2})

    def plant_seed_0(self, plot_index=0, planted_at=0, water=None, weed=None):
        plot = self.user.plots[plot_index]
        plot.seed_id = 'seed_0'
        plot.planted_at = planted_at
        plot.water_requirements = water or []
        plot.weed_requirements = weed or []
        return plot

    # --- plot actions ---

    def test_plant(self):
        ok, data = self.validator.validate(self.user, 'plant', {'plot_id': 0, 'seed_id': 'seed_0'}, 100)
        self.assertTrue(ok)
        self.assertEqual(data, 0)

    def test_plant_rejections(self):
        cases = [
            ({'plot_id': 18, 'seed_id': 'seed_0'}, "Invalid plot index"),
            ({'plot_id': 1, 'seed_id': 'seed_0'}, "Plot is locked"),
            ({'plot_id': 0, 'seed_id': 'banana'}, "Invalid seed id"),
            ({'plot_id': 0, 'seed_id': 'seed_99'}, "Invalid seed id"),
            ({'plot_id': 0, 'seed_id': 'seed_1'}, "No seed_1 in backpack"),
        ]
        for payload, reason in cases:
            ok, message = self.validator.validate(self.user, 'plant', payload, 100)
            self.assertFalse(ok, payload)
            self.assertEqual(message, reason)

        self.plant_seed_0()
        ok, message = self.validator.validate(self.user, 'plant', {'plot_id': 0, 'seed_id': 'seed_0'}, 100)
        self.assertEqual((ok, message), (False, "Plot already has a crop"))

    def test_harvest_requires_ripe(self):
        self.plant_seed_0()
        ok, message = self.validator.validate(self.user, 'harvest', {'plot_id': 0}, 70)
        self.assertFalse(ok)
        self.assertIn("not ripe", message)
        self.assertIn("growing", message)

        ok, data = self.validator.validate(self.user, 'harvest', {'plot_id': 0}, 95)
        self.assertTrue(ok)
        self.assertEqual(data, 0)

    def test_harvest_empty_plot(self):
        ok, message = self.validator.validate(self.user, 'harvest', {'plot_id': 0}, 95)
        self.assertEqual((ok, message), (False, "No crop on this plot"))

    def test_validation_does_not_touch_plot(self):
        plot = self.plant_seed_0(water=[checkpoint(45)])
        self.validator.validate(self.user, 'water', {'plot_id': 0}, 60)
        self.assertEqual(plot.paused_duration, 0)
        self.assertEqual(plot.stage, 'empty')

    def test_water_and_weed(self):
        self.plant_seed_0(water=[checkpoint(45)], weed=[checkpoint(80)])
        self.assertTrue(self.validator.validate(self.user, 'water', {'plot_id': 0}, 50)[0])
        self.assertEqual(self.validator.validate(self.user, 'weed', {'plot_id': 0}, 50),
                         (False, "Crop has no weeds"))
        self.assertEqual(self.validator.validate(self.user, 'water', {'plot_id': 0}, 10),
                         (False, "Crop does not need water"))

    def test_fertilize(self):
        self.plant_seed_0()
        self.assertEqual(self.validator.validate(self.user, 'fertilize', {'plot_id': 0}, 10),
                         (False, "No fertilizer in backpack"))
        self.user.add_item('fertilizer', 1)
        self.assertEqual(self.validator.validate(self.user, 'fertilize', {'plot_id': 0}, 10), (True, 0))
        self.user.plots[0].fertilized = True
        self.assertEqual(self.validator.validate(self.user, 'fertilize', {'plot_id': 0}, 10),
                         (False, "Plot is already fertilized"))

    def test_shovel_protect_pesticide(self):
        self.assertFalse(self.validator.validate(self.user, 'shovel', {'plot_id': 0}, 10)[0])
        self.plant_seed_0()
        self.assertTrue(self.validator.validate(self.user, 'shovel', {'plot_id': 0}, 10)[0])
        self.assertTrue(self.validator.validate(self.user, 'protect', {'plot_id': 0}, 10)[0])
        self.assertEqual(self.validator.validate(self.user, 'pesticide', {'plot_id': 0}, 70),
                         (False, "Crop has no pests"))
        self.user.plots[0].pests = True
        self.user.plots[0].pests_occurred = True
        self.assertTrue(self.validator.validate(self.user, 'pesticide', {'plot_id': 0}, 70)[0])

    # --- economy ---

    def test_gluck_draw(self):
        self.user.tickets = 3
        self.assertEqual(self.validator.validate(self.user, 'gluck_draw', {'count': 3}, 0), (True, 3))
        self.assertEqual(self.validator.validate(self.user, 'draw', {'count': 4}, 0),
                         (False, "Not enough tickets: need 4, have 3"))
        self.assertFalse(self.validator.validate(self.user, 'gluck_draw', {'count': 11}, 0)[0])
        self.assertFalse(self.validator.validate(self.user, 'gluck_draw', {'count': 0}, 0)[0])

    def test_buy_seed(self):
        ok, data = self.validator.validate(self.user, 'buySeed', {'seed_id': 'seed_2', 'count': 4}, 0)
        self.assertTrue(ok)
        self.assertEqual(data, 2 | (4 << 16))

        self.user.coins = 100
        self.assertEqual(self.validator.validate(self.user, 'buySeed', {'seed_id': 'seed_9', 'count': 1}, 0),
                         (False, "Not enough coins: need 1500, have 100"))
        self.assertFalse(self.validator.validate(self.user, 'buySeed', {'seed_id': 'fruit_1', 'count': 1}, 0)[0])
        self.assertFalse(self.validator.validate(self.user, 'buySeed', {'seed_id': 'seed_1', 'count': 0}, 0)[0])

    def test_buy_fertilizer(self):
        self.assertEqual(self.validator.validate(self.user, 'buyFertilizer', {'count': 2}, 0), (True, 2))
        self.user.coins = 60
        self.assertFalse(self.validator.validate(self.user, 'buyFertilizer', {'count': 2}, 0)[0])

    def test_sell_fruit(self):
        self.user.add_item('fruit_3', 2)
        self.assertEqual(self.validator.validate(self.user, 'sellFruit', {'fruit_id': 'fruit_3', 'count': 2}, 0),
                         (True, 3 | (2 << 16)))
        self.assertEqual(self.validator.validate(self.user, 'sellFruit', {'fruit_id': 'fruit_3', 'count': 3}, 0),
                         (False, "Not enough fruit_3: need 3, have 2"))

    def test_unlock_plot(self):
        self.assertEqual(self.validator.validate(self.user, 'unlockPlot', {'plot_id': 1}, 0), (True, 1))
        self.assertEqual(self.validator.validate(self.user, 'unlockPlot', {'plot_id': 0}, 0),
                         (False, "Plot is already unlocked"))
        self.assertEqual(self.validator.validate(self.user, 'unlockPlot', {'plot_id': 2}, 0),
                         (False, "Requires level 2"))
        self.assertEqual(self.validator.validate(self.user, 'unlockPlot', {'plot_id': 30}, 0),
                         (False, "Invalid plot index"))

    def test_buy_pet(self):
        self.assertEqual(self.validator.validate(self.user, 'buyPet', {'pet_id': 'rabbit'}, 0), (True, 1))
        self.assertEqual(self.validator.validate(self.user, 'buyPet', {'pet_id': 4}, 0),
                         (False, "Not enough coins: need 10000, have 1000"))
        self.user.pet_list = ['rabbit']
        self.assertEqual(self.validator.validate(self.user, 'buyPet', {'pet_id': 'rabbit'}, 0),
                         (False, "You already own this pet"))
        self.assertFalse(self.validator.validate(self.user, 'buyPet', {'pet_id': 'dragon'}, 0)[0])

    def test_checkin_once_per_utc_day(self):
        now = ts(2026, 3, 1)
        self.assertEqual(self.validator.validate(self.user, 'checkin', {}, now), (True, 0))
        self.user.last_checkin_date = utc_date(now)
        self.assertEqual(self.validator.validate(self.user, 'checkin', {}, now),
                         (False, "Already checked in today"))
        self.assertTrue(self.validator.validate(self.user, 'checkin', {}, ts(2026, 3, 2))[0])

    def test_unknown_action(self):
        self.assertEqual(self.validator.validate(self.user, 'exchange', {}, 0),
                         (False, "Unknown action type: exchange"))


if __name__ == '__main__':
    unittest.main()
