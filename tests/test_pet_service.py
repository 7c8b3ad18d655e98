import datetime
import unittest

from services.catalog_loader import get_catalog
from services.pet_service import PetService
from tests.test_helpers import make_user

START = datetime.datetime(2024, 1, 1, 12, 0, 0)


class TestPetService(unittest.TestCase):
    def setUp(self):
        self.catalog = get_catalog()
        self.pets = PetService(self.catalog, max_hours=24)

    def test_coins_per_hour(self):
        self.assertAlmostEqual(self.pets.coins_per_hour(['chick', 'rabbit']), 0.046296 + 0.231481)
        self.assertEqual(self.pets.coins_per_hour([]), 0)
        with self.assertLogs('services.pet_service', level='ERROR'):
            self.assertEqual(self.pets.coins_per_hour(['dragon']), 0)

    def test_offline_earnings_floor_and_cap(self):
        # rabbit: 0.231481/h, 10h -> 2.31
        self.assertEqual(self.pets.offline_earnings(['rabbit'], START, START + datetime.timedelta(hours=10)), 2)
        # capped at 24h
        self.assertEqual(self.pets.offline_earnings(['rabbit'], START, START + datetime.timedelta(days=5)), 5)
        self.assertEqual(self.pets.offline_earnings(['rabbit'], None, START), 0)
        self.assertEqual(self.pets.offline_earnings([], START, START + datetime.timedelta(days=1)), 0)
        # clock skew never produces negative income
        self.assertEqual(self.pets.offline_earnings(['rabbit'], START, START - datetime.timedelta(hours=3)), 0)

    def test_settle_keeps_fraction(self):
        user = make_user()
        user.pet_list = ['chick']
        user.last_offline_claim_at = START
        coins = user.coins

        self.assertEqual(self.pets.settle(user, START + datetime.timedelta(hours=1)), 0)
        self.assertEqual(user.last_offline_claim_at, START)
        self.assertEqual(user.coins, coins)

        later = START + datetime.timedelta(hours=22)
        self.assertEqual(self.pets.settle(user, later), 1)
        self.assertEqual(user.last_offline_claim_at, later)
        self.assertEqual(user.coins, coins + 1)

    def test_first_pet_starts_clock(self):
        user = make_user()
        user.pet_list = []
        self.pets.add_pet(user, self.catalog.get_pet('chick'), START)
        self.assertEqual(user.pet_list, ['chick'])
        self.assertEqual(user.last_offline_claim_at, START)

        self.pets.add_pet(user, self.catalog.get_pet('rabbit'), START + datetime.timedelta(hours=5))
        self.assertEqual(user.last_offline_claim_at, START)


if __name__ == '__main__':
    unittest.main()
