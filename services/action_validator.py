"""
Action Validator - checks a requested action against the user's current farm
and returns the packed `data` word for the voucher.

Nothing here writes to the user: plot status is recomputed transiently.
"""
import datetime
import logging

import settings
from models.catalog import ItemId, ItemKind
from services import action_codec
from services.action_codec import ActionKind, CodecError
from services.growth_calculator import PlotStage

logger = logging.getLogger(__name__)


def utc_date(timestamp):
    """YYYY-MM-DD of a unix timestamp in UTC"""
    return datetime.datetime.fromtimestamp(timestamp, datetime.timezone.utc).date().isoformat()


class ActionValidator:
    def __init__(self, catalog, calculator):
        self.catalog = catalog
        self.calculator = calculator
        self._validators = {
            ActionKind.PLANT: self.validate_plant,
            ActionKind.HARVEST: self.validate_harvest,
            ActionKind.WATER: self.validate_water,
            ActionKind.WEED: self.validate_weed,
            ActionKind.FERTILIZE: self.validate_fertilize,
            ActionKind.SHOVEL: self.validate_planted,
            ActionKind.PESTICIDE: self.validate_pesticide,
            ActionKind.PROTECT: self.validate_planted,
            ActionKind.GLUCK_DRAW: self.validate_gluck_draw,
            ActionKind.BUY_SEED: self.validate_buy_seed,
            ActionKind.BUY_FERTILIZER: self.validate_buy_fertilizer,
            ActionKind.SELL_FRUIT: self.validate_sell_fruit,
            ActionKind.UNLOCK_PLOT: self.validate_unlock_plot,
            ActionKind.BUY_PET: self.validate_buy_pet,
            ActionKind.CHECKIN: self.validate_checkin,
        }

    def validate(self, user, action_kind, payload, now):
        """
        Check that `user` may perform `action_kind` at `now`.

        Args:
            user: User row with its plots loaded
            action_kind: wire name or ActionKind
            payload: dict with plot_id / seed_id / fruit_id / count / pet_id
            now: unix seconds

        Returns:
            (True, packed_data) or (False, reason)
        """
        try:
            kind = ActionKind.parse(action_kind)
        except ValueError:
            return False, f"Unknown action type: {action_kind}"

        payload = payload or {}
        try:
            ok, result = self._validators[kind](user, payload, now)
            if not ok:
                logger.info(f"[ActionValidator] {user.wallet_address} {kind.value} rejected: {result}")
                return False, result
            return True, action_codec.encode(kind, **result)
        except CodecError as e:
            return False, str(e)

    # --- helpers ---

    @staticmethod
    def _int(payload, key, default=None):
        value = payload.get(key, default)
        if isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    def _plot(self, user, payload):
        """(plot, None) or (None, reason) for an unlocked plot in bounds"""
        plot_id = self._int(payload, 'plot_id')
        if plot_id is None or plot_id < 0 or plot_id >= len(user.plots):
            return None, "Invalid plot index"
        plot = user.get_plot(plot_id)
        if not plot.unlocked:
            return None, "Plot is locked"
        return plot, None

    def _planted_plot(self, user, payload):
        plot, reason = self._plot(user, payload)
        if plot is None:
            return None, reason
        if not plot.is_planted:
            return None, "No crop on this plot"
        return plot, None

    def _status(self, plot, now):
        return self.calculator.compute_status(plot, self.catalog, now, update_plot=False)

    def _count(self, payload):
        count = self._int(payload, 'count', 1)
        if count is None or count < 1:
            return None
        return count

    def _item(self, key, kind):
        try:
            item = ItemId.parse(key)
        except ValueError:
            return None
        if item.kind is not kind or not self.catalog.is_known_item(item):
            return None
        return item

    # --- plot actions ---

    def validate_plant(self, user, payload, now):
        plot, reason = self._plot(user, payload)
        if plot is None:
            return False, reason
        if plot.is_planted:
            return False, "Plot already has a crop"

        seed_item = self._item(payload.get('seed_id'), ItemKind.SEED)
        if seed_item is None:
            return False, "Invalid seed id"
        if user.item_count(seed_item.key) <= 0:
            return False, f"No {seed_item.key} in backpack"
        return True, {'plot_id': plot.plot_index, 'seed_tier': seed_item.tier}

    def validate_harvest(self, user, payload, now):
        plot, reason = self._planted_plot(user, payload)
        if plot is None:
            return False, reason
        status = self._status(plot, now)
        if status.stage is not PlotStage.RIPE:
            return False, f"Crop is not ripe, current stage: {status.stage.value}"
        return True, {'plot_id': plot.plot_index}

    def validate_water(self, user, payload, now):
        plot, reason = self._planted_plot(user, payload)
        if plot is None:
            return False, reason
        if not self._status(plot, now).needs_water:
            return False, "Crop does not need water"
        return True, {'plot_id': plot.plot_index}

    def validate_weed(self, user, payload, now):
        plot, reason = self._planted_plot(user, payload)
        if plot is None:
            return False, reason
        if not self._status(plot, now).has_weeds:
            return False, "Crop has no weeds"
        return True, {'plot_id': plot.plot_index}

    def validate_fertilize(self, user, payload, now):
        if user.item_count(ItemKind.FERTILIZER.value) <= 0:
            return False, "No fertilizer in backpack"
        plot, reason = self._planted_plot(user, payload)
        if plot is None:
            return False, reason
        if plot.fertilized:
            return False, "Plot is already fertilized"
        return True, {'plot_id': plot.plot_index}

    def validate_pesticide(self, user, payload, now):
        plot, reason = self._planted_plot(user, payload)
        if plot is None:
            return False, reason
        if not self._status(plot, now).has_pests:
            return False, "Crop has no pests"
        return True, {'plot_id': plot.plot_index}

    def validate_planted(self, user, payload, now):
        """shovel / protect: any planted plot"""
        plot, reason = self._planted_plot(user, payload)
        if plot is None:
            return False, reason
        return True, {'plot_id': plot.plot_index}

    # --- economy ---

    def validate_gluck_draw(self, user, payload, now):
        count = self._int(payload, 'count', 1)
        if count is None or count < 1 or count > settings.MAX_DRAWS_PER_ACTION:
            return False, f"Draw count must be between 1 and {settings.MAX_DRAWS_PER_ACTION}"
        if user.tickets < count:
            return False, f"Not enough tickets: need {count}, have {user.tickets}"
        return True, {'count': count}

    def validate_buy_seed(self, user, payload, now):
        seed_item = self._item(payload.get('seed_id'), ItemKind.SEED)
        if seed_item is None:
            return False, "Invalid seed id"
        count = self._count(payload)
        if count is None:
            return False, "Count must be at least 1"
        total = self.catalog.get_seed_by_tier(seed_item.tier).cost * count
        if user.coins < total:
            return False, f"Not enough coins: need {total}, have {user.coins}"
        return True, {'seed_tier': seed_item.tier, 'count': count}

    def validate_buy_fertilizer(self, user, payload, now):
        count = self._count(payload)
        if count is None:
            return False, "Count must be at least 1"
        total = self.catalog.fertilizer_price * count
        if user.coins < total:
            return False, f"Not enough coins: need {total}, have {user.coins}"
        return True, {'count': count}

    def validate_sell_fruit(self, user, payload, now):
        fruit_item = self._item(payload.get('fruit_id'), ItemKind.FRUIT)
        if fruit_item is None:
            return False, "Invalid fruit id"
        count = self._count(payload)
        if count is None:
            return False, "Count must be at least 1"
        owned = user.item_count(fruit_item.key)
        if owned < count:
            return False, f"Not enough {fruit_item.key}: need {count}, have {owned}"
        return True, {'fruit_tier': fruit_item.tier, 'count': count}

    def validate_unlock_plot(self, user, payload, now):
        plot_id = self._int(payload, 'plot_id')
        price = self.catalog.get_plot_price(plot_id) if plot_id is not None else None
        if price is None or user.get_plot(plot_id) is None:
            return False, "Invalid plot index"
        if user.get_plot(plot_id).unlocked:
            return False, "Plot is already unlocked"
        if user.level < price.level_req:
            return False, f"Requires level {price.level_req}"
        if user.coins < price.unlock_cost:
            return False, f"Not enough coins: need {price.unlock_cost}, have {user.coins}"
        return True, {'plot_id': plot_id}

    def validate_buy_pet(self, user, payload, now):
        pet_ref = payload.get('pet_id')
        if isinstance(pet_ref, int) and not isinstance(pet_ref, bool):
            pet = self.catalog.pets_by_index.get(pet_ref)
        else:
            pet = self.catalog.get_pet(pet_ref)
        if pet is None:
            return False, "Invalid pet id"
        if pet.pet_id in (user.pet_list or []):
            return False, "You already own this pet"
        if user.coins < pet.price:
            return False, f"Not enough coins: need {pet.price}, have {user.coins}"
        return True, {'pet_index': pet.index}

    def validate_checkin(self, user, payload, now):
        if user.last_checkin_date == utc_date(now):
            return False, "Already checked in today"
        return True, {}
