"""
Event Reconciler - applies confirmed on-chain actions to the user's farm.

Handlers mutate the User row in memory and raise ReconciliationError when the
event cannot be applied; process_event wraps one event in one session so a
failure leaves nothing behind.
"""
import datetime
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from database import Database
from models.catalog import ItemId, ItemKind
from services import action_codec
from services.action_codec import ActionKind, CodecError
from services.action_validator import utc_date
from services.catalog_loader import get_catalog
from services.errors import PersistenceError, ReconciliationError
from services.growth_calculator import PlotStage
from services.pet_service import PetService
from services.requirement_generator import RequirementGenerator
from services.reward_service import RewardService
from services.user_service import UserService
import settings

logger = logging.getLogger(__name__)


class EventReconciler:
    def __init__(self, catalog=None, reward_service=None, pet_service=None,
                 requirement_generator=None, user_service=None):
        self.db = Database()
        self.catalog = catalog or get_catalog()
        self.rewards = reward_service or RewardService(self.catalog)
        self.pets = pet_service or PetService(self.catalog)
        self.requirements = requirement_generator or RequirementGenerator(self.catalog.fertilizer_multiplier)
        self.user_service = user_service or UserService(self.catalog)
        self._handlers = {
            ActionKind.PLANT: self.handle_plant,
            ActionKind.HARVEST: self.handle_harvest,
            ActionKind.WATER: self.handle_water,
            ActionKind.WEED: self.handle_weed,
            ActionKind.FERTILIZE: self.handle_fertilize,
            ActionKind.SHOVEL: self.handle_shovel,
            ActionKind.PESTICIDE: self.handle_pesticide,
            ActionKind.PROTECT: self.handle_protect,
            ActionKind.BUY_SEED: self.handle_buy_seed,
            ActionKind.BUY_FERTILIZER: self.handle_buy_fertilizer,
            ActionKind.SELL_FRUIT: self.handle_sell_fruit,
            ActionKind.UNLOCK_PLOT: self.handle_unlock_plot,
            ActionKind.BUY_PET: self.handle_buy_pet,
            ActionKind.CHECKIN: self.handle_checkin,
            ActionKind.GLUCK_DRAW: self.handle_gluck_draw,
        }

    def apply(self, user, action_kind, data, confirmed_at):
        """
        Apply one confirmed action to `user` in memory.

        Args:
            user: User row with plots loaded
            action_kind: wire name or ActionKind
            data: packed uint256 action data
            confirmed_at: block timestamp, unix seconds

        Returns:
            Handler result dict (what changed), for logging and HTTP replies
        """
        try:
            kind = ActionKind.parse(action_kind)
        except ValueError:
            raise ReconciliationError(f"Unknown action type: {action_kind}",
                                      action_kind, user.wallet_address)
        try:
            fields = action_codec.decode(kind, data)
        except CodecError as e:
            raise ReconciliationError(str(e), kind.value, user.wallet_address)

        logger.info(f"[EventReconciler] {user.wallet_address} {kind.value} {fields}")
        try:
            result = self._handlers[kind](user, confirmed_at=int(confirmed_at), **fields)
        except ReconciliationError as e:
            e.action_kind = e.action_kind or kind.value
            e.wallet_address = e.wallet_address or user.wallet_address
            raise
        user.updated_at = datetime.datetime.now()
        return result

    def process_event(self, wallet_address, action_kind, data, timestamp):
        """
        Apply a ledger event and commit it, all or nothing.

        Raises:
            ReconciliationError: the event does not fit the user's state
            PersistenceError: the store failed or a concurrent update won
        """
        session = self.db.get_session()
        try:
            user = self.user_service.find_or_create(session, wallet_address)
            result = self.apply(user, action_kind, data, timestamp)
            session.commit()
            return result
        except ReconciliationError:
            session.rollback()
            raise
        except StaleDataError as e:
            session.rollback()
            raise PersistenceError(f"Concurrent update of {wallet_address}: {e}", conflict=True)
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Could not save {action_kind} for {wallet_address}: {e}")
        finally:
            session.close()

    # --- helpers ---

    @staticmethod
    def _plot(user, plot_id, planted=True):
        plot = user.get_plot(plot_id)
        if plot is None:
            raise ReconciliationError(f"Plot {plot_id} not found")
        if planted and not plot.is_planted:
            raise ReconciliationError(f"Plot {plot_id} has no crop")
        return plot

    @staticmethod
    def _take_item(user, item_key, quantity):
        owned = user.item_count(item_key)
        if owned < quantity:
            raise ReconciliationError(f"Not enough {item_key}: need {quantity}, have {owned}")
        user.add_item(item_key, -quantity)

    @staticmethod
    def _spend_coins(user, amount):
        if user.coins < amount:
            raise ReconciliationError(f"Insufficient coins: need {amount}, have {user.coins}")
        user.coins -= amount

    def _seed(self, tier):
        seed = self.catalog.get_seed_by_tier(tier)
        if seed is None:
            raise ReconciliationError(f"Invalid seed tier: {tier}")
        return seed

    @staticmethod
    def _complete_first_pending(checkpoints, confirmed_at):
        """Mark the first pending checkpoint done. Returns the new list or None."""
        updated = [dict(req) for req in checkpoints or []]
        for req in updated:
            if not req.get('done'):
                req['done'] = True
                req['done_at'] = confirmed_at
                return updated
        return None

    # --- plot actions ---

    def handle_plant(self, user, plot_id, seed_tier, confirmed_at):
        seed = self._seed(seed_tier)
        plot = self._plot(user, plot_id, planted=False)
        if not plot.unlocked:
            raise ReconciliationError(f"Plot {plot_id} is locked")
        if plot.is_planted:
            raise ReconciliationError(f"Plot {plot_id} already has a crop")
        self._take_item(user, seed.seed_id, 1)

        plot.clear()
        plot.seed_id = seed.seed_id
        plot.planted_at = confirmed_at
        plot.last_pest_check_at = confirmed_at
        plot.stage = PlotStage.SEED.value
        plot.water_requirements, plot.weed_requirements = self.requirements.generate(seed, fertilized=False)
        return {'plot_id': plot_id, 'seed_id': seed.seed_id}

    def handle_harvest(self, user, plot_id, confirmed_at):
        plot = self._plot(user, plot_id)
        seed = self.catalog.get_seed(plot.seed_id)
        if seed is None:
            raise ReconciliationError(f"Invalid seed: {plot.seed_id}")

        leveled_up = self.rewards.apply_exp(user, seed.exp)
        user.add_item(seed.fruit_id, 1)
        letter = self.rewards.roll_letter()
        if letter:
            user.add_letter(letter)
            logger.info(f"[EventReconciler] Letter {letter} dropped for {user.wallet_address}")
        if leveled_up:
            logger.info(f"[EventReconciler] {user.wallet_address} reached level {user.level}")

        plot.clear()
        return {'plot_id': plot_id, 'exp': seed.exp, 'fruit_id': seed.fruit_id,
                'letter': letter, 'level': user.level}

    def _complete(self, user, plot_id, confirmed_at, attr):
        plot = self._plot(user, plot_id)
        updated = self._complete_first_pending(getattr(plot, attr), confirmed_at)
        if updated is None:
            logger.warning(f"[EventReconciler] No pending {attr} on plot {plot_id} of {user.wallet_address}")
            return {'plot_id': plot_id, 'completed': False}
        setattr(plot, attr, updated)
        return {'plot_id': plot_id, 'completed': True}

    def handle_water(self, user, plot_id, confirmed_at):
        return self._complete(user, plot_id, confirmed_at, 'water_requirements')

    def handle_weed(self, user, plot_id, confirmed_at):
        return self._complete(user, plot_id, confirmed_at, 'weed_requirements')

    def handle_fertilize(self, user, plot_id, confirmed_at):
        plot = self._plot(user, plot_id)
        if plot.fertilized:
            raise ReconciliationError(f"Plot {plot_id} is already fertilized")
        seed = self.catalog.get_seed(plot.seed_id)
        if seed is None:
            raise ReconciliationError(f"Invalid seed: {plot.seed_id}")
        self._take_item(user, ItemKind.FERTILIZER.value, 1)

        plot.fertilized = True
        # Fresh schedule on the shortened grow time
        plot.water_requirements, plot.weed_requirements = self.requirements.generate(seed, fertilized=True)
        return {'plot_id': plot_id}

    def handle_shovel(self, user, plot_id, confirmed_at):
        self._plot(user, plot_id).clear()
        return {'plot_id': plot_id}

    def handle_pesticide(self, user, plot_id, confirmed_at):
        plot = self._plot(user, plot_id)
        # No second infestation this cycle, even when the roll was never saved
        plot.pests = False
        plot.pests_occurred = True
        plot.last_pest_check_at = confirmed_at
        return {'plot_id': plot_id}

    def handle_protect(self, user, plot_id, confirmed_at):
        plot = self._plot(user, plot_id)
        plot.protected_until = confirmed_at + settings.PROTECT_DURATION
        return {'plot_id': plot_id, 'protected_until': plot.protected_until}

    # --- economy ---

    def handle_buy_seed(self, user, seed_tier, count, confirmed_at):
        seed = self._seed(seed_tier)
        total = seed.cost * count
        self._spend_coins(user, total)
        user.add_item(seed.seed_id, count)
        return {'item_id': seed.seed_id, 'count': count, 'total_cost': total}

    def handle_buy_fertilizer(self, user, count, confirmed_at):
        total = self.catalog.fertilizer_price * count
        self._spend_coins(user, total)
        user.add_item(ItemKind.FERTILIZER.value, count)
        return {'item_id': ItemKind.FERTILIZER.value, 'count': count, 'total_cost': total}

    def handle_sell_fruit(self, user, fruit_tier, count, confirmed_at):
        seed = self._seed(fruit_tier)
        fruit_id = ItemId(ItemKind.FRUIT, fruit_tier).key
        self._take_item(user, fruit_id, count)
        earnings = seed.price * count
        user.coins += earnings
        return {'item_id': fruit_id, 'count': count, 'earnings': earnings}

    def handle_unlock_plot(self, user, plot_id, confirmed_at):
        plot = self._plot(user, plot_id, planted=False)
        price = self.catalog.get_plot_price(plot_id)
        if price is None:
            raise ReconciliationError(f"No price for plot {plot_id}")
        if plot.unlocked:
            raise ReconciliationError(f"Plot {plot_id} is already unlocked")
        self._spend_coins(user, price.unlock_cost)
        plot.unlocked = True
        return {'plot_id': plot_id, 'cost': price.unlock_cost}

    def handle_buy_pet(self, user, pet_index, confirmed_at):
        pet = self.catalog.pets_by_index.get(pet_index)
        if pet is None:
            raise ReconciliationError(f"Invalid pet index: {pet_index}")
        if pet.pet_id in (user.pet_list or []):
            raise ReconciliationError(f"User already owns pet: {pet.pet_id}")
        confirmed = datetime.datetime.fromtimestamp(confirmed_at)
        # Settle what the current pets earned before the new rate applies
        self.pets.settle(user, confirmed)
        self._spend_coins(user, pet.price)
        self.pets.add_pet(user, pet, confirmed)
        return {'pet_id': pet.pet_id, 'price': pet.price}

    def handle_checkin(self, user, confirmed_at):
        today = utc_date(confirmed_at)
        if user.last_checkin_date == today:
            raise ReconciliationError(f"Already checked in on {today}")
        user.coins += settings.CHECKIN_ACTION_COINS
        user.tickets += settings.CHECKIN_ACTION_TICKETS
        user.last_checkin_date = today
        return {'coins': settings.CHECKIN_ACTION_COINS, 'tickets': settings.CHECKIN_ACTION_TICKETS,
                'checkin_date': today}

    def handle_gluck_draw(self, user, count, confirmed_at):
        if count < 1:
            raise ReconciliationError("Draw count must be at least 1")
        if user.tickets < count:
            raise ReconciliationError(f"Not enough tickets: need {count}, have {user.tickets}")
        user.tickets -= count
        won = self.rewards.draw_gluck(count)
        for seed_id, amount in won.items():
            user.add_item(seed_id, amount)
        return {'count': count, 'rewards': won}
