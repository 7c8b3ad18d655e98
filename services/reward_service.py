import random
import string
from collections import Counter

import settings


class RewardService:
    """Random rewards: harvest letters, lottery draws, daily check-in coins"""

    LETTERS = string.ascii_uppercase

    def __init__(self, catalog, rng=None):
        self.catalog = catalog
        self.rng = rng or random.Random()

    def roll_letter(self, probability=None):
        """A random letter A-Z with the given chance, else None"""
        if probability is None:
            probability = settings.LETTER_DROP_PROBABILITY
        if self.rng.random() < probability:
            return self.rng.choice(self.LETTERS)
        return None

    def draw_gluck(self, count=1):
        """
        Roll the lottery table `count` times.

        Returns:
            Dict seed_id -> total quantity won
        """
        won = Counter()
        for _ in range(count):
            roll = self.rng.random()
            cumulative = 0.0
            for reward in self.catalog.gluck_rewards:
                cumulative += reward.probability
                if roll <= cumulative:
                    won[reward.seed_id] += self.rng.randint(reward.min_count, reward.max_count)
                    break
        return dict(won)

    def roll_checkin_coins(self):
        """Weighted coin reward for the daily check-in"""
        tiers = self.catalog.checkin_rewards
        if not tiers:
            return 0
        roll = self.rng.random()
        cumulative = 0.0
        for tier in tiers:
            cumulative += tier.probability
            if roll <= cumulative:
                return self.rng.randint(tier.min_coins, tier.max_coins)
        # Probabilities summing below 1: lowest tier
        return tiers[0].min_coins

    def apply_exp(self, user, exp):
        """Grant experience and recompute the level. Returns True on level up."""
        user.exp = (user.exp or 0) + exp
        new_level = self.catalog.level_for_exp(user.exp)
        if new_level > (user.level or 1):
            user.level = new_level
            return True
        return False
