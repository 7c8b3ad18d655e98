"""
Shop Service - off-chain purchases: seeds, fertilizer, plot unlocks, pets.

Each purchase runs the same validator and reconciler handlers as the on-chain
flow, inside one session: validate, apply, commit.
"""
import datetime
import logging
import time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from database import Database
from models.catalog import ItemId, ItemKind
from services.action_codec import ActionKind
from services.action_validator import ActionValidator
from services.catalog_loader import get_catalog
from services.errors import PersistenceError, ReconciliationError
from services.event_reconciler import EventReconciler
from services.growth_calculator import GrowthCalculator
from services.pet_service import PetService
from services.user_service import UserService

logger = logging.getLogger(__name__)


class ShopService:
    def __init__(self, catalog=None, validator=None, reconciler=None, user_service=None, pet_service=None):
        self.db = Database()
        self.catalog = catalog or get_catalog()
        self.user_service = user_service or UserService(self.catalog)
        self.pets = pet_service or PetService(self.catalog)
        self.validator = validator or ActionValidator(self.catalog, GrowthCalculator())
        self.reconciler = reconciler or EventReconciler(self.catalog, pet_service=self.pets,
                                                        user_service=self.user_service)

    def _purchase(self, wallet_address, kind, payload, now=None, before=None):
        """
        Validate and apply one purchase in a single transaction.

        Args:
            before: optional callable(user, now_dt) run on the loaded user
                before validation (pet income settlement)

        Returns:
            (True, (user, result)) or (False, reason)
        """
        now = int(now if now is not None else time.time())
        session = self.db.get_session()
        try:
            user = self.user_service.find_or_create(session, wallet_address)
            extra = before(user, datetime.datetime.fromtimestamp(now)) if before else None

            ok, data = self.validator.validate(user, kind, payload, now)
            if not ok:
                session.rollback()
                return False, data

            result = self.reconciler.apply(user, kind, data, now)
            if extra is not None:
                result['offlineEarnings'] = extra
            session.commit()
            logger.info(f"[ShopService] {user.wallet_address} {kind.value}: {result}")
            return True, (user, result)
        except ReconciliationError as e:
            session.rollback()
            return False, str(e)
        except StaleDataError as e:
            session.rollback()
            raise PersistenceError(f"Concurrent update of {wallet_address}: {e}", conflict=True)
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"{kind.value} failed for {wallet_address}: {e}")
        finally:
            session.close()

    def buy_item(self, wallet_address, item_id, amount, now=None):
        """Buy seeds or fertilizer with coins"""
        try:
            item = ItemId.parse(item_id)
        except ValueError:
            return False, f"Unknown item: {item_id}"

        if item.kind is ItemKind.FERTILIZER:
            ok, outcome = self._purchase(wallet_address, ActionKind.BUY_FERTILIZER, {'count': amount}, now)
        elif item.kind is ItemKind.SEED:
            ok, outcome = self._purchase(wallet_address, ActionKind.BUY_SEED,
                                         {'seed_id': item.key, 'count': amount}, now)
        else:
            return False, f"{item_id} cannot be bought"

        if not ok:
            return False, outcome
        user, result = outcome
        return True, {
            'itemId': item.key,
            'amount': result['count'],
            'totalCost': result['total_cost'],
            'remainingCoins': user.coins,
            'backpack': dict(user.backpack or {}),
        }

    def unlock_plot(self, wallet_address, plot_index, now=None):
        ok, outcome = self._purchase(wallet_address, ActionKind.UNLOCK_PLOT, {'plot_id': plot_index}, now)
        if not ok:
            return False, outcome
        user, result = outcome
        return True, {
            'plotIndex': result['plot_id'],
            'cost': result['cost'],
            'remainingCoins': user.coins,
        }

    def buy_pet(self, wallet_address, pet_id, now=None):
        """Buy a pet; income from pets already owned is settled first"""
        ok, outcome = self._purchase(wallet_address, ActionKind.BUY_PET, {'pet_id': pet_id}, now,
                                     before=self.pets.settle)
        if not ok:
            return False, outcome
        user, result = outcome
        pet = self.catalog.get_pet(result['pet_id'])
        return True, {
            'petId': pet.pet_id,
            'petName': pet.name,
            'price': pet.price,
            'remainingCoins': user.coins,
            'offlineEarnings': result.get('offlineEarnings', 0),
            'pet_list': list(user.pet_list),
        }
