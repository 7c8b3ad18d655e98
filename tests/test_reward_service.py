import random
import unittest
from unittest.mock import MagicMock

from services.catalog_loader import get_catalog
from services.reward_service import RewardService
from tests.test_helpers import make_user


class TestRewardService(unittest.TestCase):
    def setUp(self):
        self.catalog = get_catalog()
        self.rewards = RewardService(self.catalog, rng=random.Random(42))

    def test_roll_letter(self):
        self.assertIsNone(self.rewards.roll_letter(0))
        letter = self.rewards.roll_letter(1)
        self.assertIn(letter, RewardService.LETTERS)

    def test_draw_gluck_yields_catalog_seeds(self):
        won = self.rewards.draw_gluck(10)
        self.assertTrue(won)
        self.assertTrue(set(won) <= set(self.catalog.seeds))
        self.assertTrue(all(qty >= 1 for qty in won.values()))

    def test_draw_gluck_first_tier(self):
        rng = MagicMock()
        rng.random.return_value = 0.1
        rng.randint.side_effect = lambda a, b: b
        rewards = RewardService(self.catalog, rng=rng)
        self.assertEqual(rewards.draw_gluck(2), {'seed_0': 10})

    def test_checkin_coins_in_range(self):
        for _ in range(50):
            coins = self.rewards.roll_checkin_coins()
            self.assertGreaterEqual(coins, 50)

    def test_apply_exp(self):
        user = make_user(exp=90, level=1)
        self.assertFalse(self.rewards.apply_exp(user, 5))
        self.assertEqual(user.exp, 95)
        self.assertTrue(self.rewards.apply_exp(user, 200))
        self.assertEqual(user.exp, 295)
        self.assertEqual(user.level, 3)


if __name__ == '__main__':
    unittest.main()
