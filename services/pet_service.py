"""
Pet Service - passive income from owned pets.
"""
import datetime
import logging
import math

import settings

logger = logging.getLogger(__name__)


class PetService:
    def __init__(self, catalog, max_hours=None):
        self.catalog = catalog
        self.max_hours = settings.OFFLINE_EARNINGS_MAX_HOURS if max_hours is None else max_hours

    def coins_per_hour(self, pet_list):
        total = 0.0
        for pet_id in pet_list or []:
            pet = self.catalog.get_pet(pet_id)
            if pet is None:
                logger.error(f"[PetService] Unknown pet {pet_id}, no income")
                continue
            total += pet.coins_per_hour
        return total

    def offline_earnings(self, pet_list, last_claim_at, now=None):
        """Coins earned since last_claim_at, capped at max_hours"""
        if not pet_list or last_claim_at is None:
            return 0
        now = now or datetime.datetime.now()
        elapsed_hours = max(0.0, (now - last_claim_at).total_seconds() / 3600)
        elapsed_hours = min(elapsed_hours, self.max_hours)
        return math.floor(self.coins_per_hour(pet_list) * elapsed_hours)

    def settle(self, user, now=None):
        """
        Credit offline earnings to the user.

        The claim time only moves when at least one coin was earned, so
        fractional income keeps accumulating between reads.

        Returns:
            Coins credited
        """
        now = now or datetime.datetime.now()
        earned = self.offline_earnings(user.pet_list, user.last_offline_claim_at, now)
        if earned > 0:
            user.coins += earned
            user.last_offline_claim_at = now
            logger.info(f"[PetService] User {user.wallet_address} claimed {earned} offline coins from pets")
        return earned

    def add_pet(self, user, pet, now=None):
        """Give a pet; the first pet starts the income clock"""
        user.add_pet(pet.pet_id)
        if len(user.pet_list) == 1:
            user.last_offline_claim_at = now or datetime.datetime.now()
