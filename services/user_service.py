import datetime
import logging
import time

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

import settings
from database import Database
from models.plot import Plot
from models.user import User
from services.action_validator import utc_date
from services.catalog_loader import get_catalog
from services.errors import PersistenceError
from services.growth_calculator import GrowthCalculator
from services.pet_service import PetService
from services.reward_service import RewardService

logger = logging.getLogger(__name__)

MIN_WALLET_LENGTH = 10


def normalize_wallet(authorization):
    """
    Wallet address from an Authorization header value.

    Accepts "Bearer <wallet>" or a bare "<wallet>".

    Returns:
        Lower-cased address, or None when missing or too short
    """
    if not authorization:
        return None
    wallet = authorization[len('Bearer '):] if authorization.startswith('Bearer ') else authorization
    wallet = wallet.strip()
    if len(wallet) < MIN_WALLET_LENGTH:
        return None
    return wallet.lower()


class UserService:
    def __init__(self, catalog=None, calculator=None, pet_service=None, reward_service=None):
        self.db = Database()
        self.catalog = catalog or get_catalog()
        self.calculator = calculator or GrowthCalculator()
        self.pets = pet_service or PetService(self.catalog)
        self.rewards = reward_service or RewardService(self.catalog)

    def build_user(self, wallet_address, now=None):
        """New farm: starting coins, one seed, plot 0 unlocked"""
        now = now or datetime.datetime.now()
        user = User()
        user.wallet_address = wallet_address
        user.coins = settings.NEW_USER_COINS
        user.zeta = '0.00'
        user.tickets = 0
        user.exp = 0
        user.level = 1
        user.pet_list = []
        user.last_offline_claim_at = now
        user.last_checkin_date = None
        user.backpack = dict(settings.NEW_USER_BACKPACK)
        user.phrase_letters = {}
        user.redeemed_rewards = []
        user.created_at = now
        user.updated_at = now
        user.plots = [Plot.empty(i, unlocked=(i == 0)) for i in range(settings.PLOT_COUNT)]
        return user

    def get_user(self, wallet_address):
        session = self.db.get_session()
        try:
            return session.query(User).filter_by(wallet_address=wallet_address.lower()).first()
        finally:
            session.close()

    def find_or_create(self, session, wallet_address):
        """
        Load the user, creating the farm on first sight.

        Two requests racing on a new wallet both try the insert; the loser
        hits the unique constraint and re-reads the winner's row.
        """
        wallet_address = wallet_address.lower()
        user = session.query(User).filter_by(wallet_address=wallet_address).first()
        if user is not None:
            return user

        user = self.build_user(wallet_address)
        session.add(user)
        try:
            session.flush()
        except IntegrityError:
            session.rollback()
            user = session.query(User).filter_by(wallet_address=wallet_address).first()
            if user is None:
                raise
            return user
        logger.info(f"[UserService] Created farm for {wallet_address}")
        return user

    def get_state(self, wallet_address, now=None):
        """
        Settle pet income, refresh every plot and persist the result.

        Returns:
            Full user state dict
        """
        now = int(now if now is not None else time.time())
        session = self.db.get_session()
        try:
            user = self.find_or_create(session, wallet_address)
            earned = self.pets.settle(user, datetime.datetime.fromtimestamp(now))
            statuses = self.calculator.compute_all(user, self.catalog, now)
            user.updated_at = datetime.datetime.now()
            session.commit()

            state = self.state_to_dict(user, statuses)
            state['_meta'] = {'serverTime': now, 'offlineEarnings': earned}
            logger.info(f"[UserService] State for {user.wallet_address} "
                        f"(coins: {user.coins}, level: {user.level}, plots: {len(user.plots)})")
            return state
        except StaleDataError as e:
            session.rollback()
            raise PersistenceError(f"Concurrent update of {wallet_address}: {e}", conflict=True)
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Could not load state for {wallet_address}: {e}")
        finally:
            session.close()

    def state_to_dict(self, user, statuses):
        plots = []
        for plot, status in statuses:
            data = plot.to_dict()
            data['status'] = status.to_dict()
            plots.append(data)
        return {
            'wallet_address': user.wallet_address,
            'coins': user.coins,
            'zeta': user.zeta,
            'tickets': user.tickets,
            'exp': user.exp,
            'level': user.level,
            'nextLevelExp': self.catalog.exp_for_next_level(user.level),
            'pet_list': list(user.pet_list or []),
            'lastOfflineClaimAt': user.last_offline_claim_at.isoformat() if user.last_offline_claim_at else None,
            'last_checkin_date': user.last_checkin_date,
            'backpack': dict(user.backpack or {}),
            'phrase_letters': dict(user.phrase_letters or {}),
            'redeemed_rewards': list(user.redeemed_rewards or []),
            'plots_list': plots,
        }

    def daily_checkin(self, wallet_address, now=None):
        """
        Once-per-day random coin reward.

        Returns:
            (True, {'reward', 'totalCoins', 'checkinDate'}) or (False, reason)
        """
        now = int(now if now is not None else time.time())
        today = utc_date(now)
        session = self.db.get_session()
        try:
            user = self.find_or_create(session, wallet_address)
            if user.last_checkin_date == today:
                return False, "Already checked in today"

            reward = self.rewards.roll_checkin_coins()
            user.coins += reward
            user.last_checkin_date = today
            session.commit()
            logger.info(f"[UserService] {user.wallet_address} checked in, reward: {reward} coins")
            return True, {'reward': reward, 'totalCoins': user.coins, 'checkinDate': today}
        except StaleDataError as e:
            session.rollback()
            raise PersistenceError(f"Concurrent update of {wallet_address}: {e}", conflict=True)
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Check-in failed for {wallet_address}: {e}")
        finally:
            session.close()
