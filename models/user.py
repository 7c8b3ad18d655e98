from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.orm import relationship
from database import Base
from models.plot import Plot
import datetime


class User(Base):
    """One farm per wallet"""
    __tablename__ = "farm_user"

    id = Column(Integer, primary_key=True)
    wallet_address = Column(String(64), unique=True, nullable=False, index=True)  # lower-cased

    # Balances
    coins = Column(Integer, default=1000, nullable=False)
    zeta = Column(String(32), default='0.00', nullable=False)  # premium exchange currency
    tickets = Column(Integer, default=0, nullable=False)

    exp = Column(Integer, default=0, nullable=False)
    level = Column(Integer, default=1, nullable=False)

    # Pets / passive income
    pet_list = Column(JSON, default=list, nullable=False)
    last_offline_claim_at = Column(DateTime, default=datetime.datetime.now)

    last_checkin_date = Column(String(10), nullable=True)  # YYYY-MM-DD (UTC)

    # Sparse counts keyed by item id: {"seed_0": 1, "fruit_2": 3, "fertilizer": 1}
    backpack = Column(JSON, default=dict, nullable=False)
    # Letter tokens dropped on harvest: {"A": 2}
    phrase_letters = Column(JSON, default=dict, nullable=False)
    redeemed_rewards = Column(JSON, default=list, nullable=False)

    created_at = Column(DateTime, default=datetime.datetime.now)
    updated_at = Column(DateTime, default=datetime.datetime.now)

    # Optimistic concurrency: a stale concurrent commit raises StaleDataError
    version_id = Column(Integer, nullable=False)

    plots = relationship(
        Plot,
        order_by=Plot.plot_index,
        cascade='all, delete-orphan',
        lazy='selectin',
    )

    __mapper_args__ = {'version_id_col': version_id}

    def get_plot(self, plot_index):
        if plot_index is None or plot_index < 0 or plot_index >= len(self.plots):
            return None
        return self.plots[plot_index]

    def item_count(self, item_key):
        return int((self.backpack or {}).get(str(item_key), 0))

    # JSON columns are replaced, not mutated in place, so the ORM sees the change

    def add_item(self, item_key, quantity):
        backpack = dict(self.backpack or {})
        key = str(item_key)
        backpack[key] = backpack.get(key, 0) + quantity
        if backpack[key] <= 0:
            del backpack[key]
        self.backpack = backpack

    def add_letter(self, letter):
        letters = dict(self.phrase_letters or {})
        letters[letter] = letters.get(letter, 0) + 1
        self.phrase_letters = letters

    def add_pet(self, pet_id):
        self.pet_list = list(self.pet_list or []) + [pet_id]
