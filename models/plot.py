from sqlalchemy import Column, Integer, BigInteger, String, Boolean, ForeignKey, JSON, UniqueConstraint
from database import Base


class Plot(Base):
    """One of the 18 farm plots embedded in a user's farm"""
    __tablename__ = "farm_plot"
    __table_args__ = (UniqueConstraint('user_id', 'plot_index', name='uq_farm_plot_user_index'),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('farm_user.id', ondelete='CASCADE'), nullable=False)
    plot_index = Column(Integer, nullable=False)  # 0..17
    unlocked = Column(Boolean, default=False, nullable=False)

    seed_id = Column(String(20), nullable=True)
    planted_at = Column(BigInteger, nullable=True)  # unix seconds
    fertilized = Column(Boolean, default=False, nullable=False)

    # Pause accounting, refreshed on every status computation
    paused_duration = Column(BigInteger, default=0, nullable=False)
    paused_at = Column(BigInteger, nullable=True)

    # JSON: [{"time": 45, "done": false, "done_at": null}, ...]
    water_requirements = Column(JSON, default=list, nullable=False)
    weed_requirements = Column(JSON, default=list, nullable=False)

    pests = Column(Boolean, default=False, nullable=False)
    pests_occurred = Column(Boolean, default=False, nullable=False)  # once per planting cycle
    last_pest_check_at = Column(BigInteger, nullable=True)
    protected_until = Column(BigInteger, nullable=True)

    # Cached derived values for external consumers
    mature_at = Column(BigInteger, nullable=True)
    withered_at = Column(BigInteger, nullable=True)
    stage = Column(String(20), default='empty', nullable=False)

    @classmethod
    def empty(cls, plot_index, unlocked=False):
        plot = cls(plot_index=plot_index, unlocked=unlocked)
        plot.clear()
        return plot

    @property
    def is_planted(self):
        return bool(self.seed_id) and self.planted_at is not None

    def clear(self):
        """Reset every planting field (harvest, shovel, new plot)"""
        self.seed_id = None
        self.planted_at = None
        self.fertilized = False
        self.paused_duration = 0
        self.paused_at = None
        self.water_requirements = []
        self.weed_requirements = []
        self.pests = False
        self.pests_occurred = False
        self.last_pest_check_at = None
        self.protected_until = None
        self.mature_at = None
        self.withered_at = None
        self.stage = 'empty'

    def to_dict(self):
        return {
            'plot_index': self.plot_index,
            'unlocked': self.unlocked,
            'seedId': self.seed_id,
            'plantedAt': self.planted_at,
            'fertilized': self.fertilized,
            'pausedDuration': self.paused_duration,
            'pausedAt': self.paused_at,
            'waterRequirements': list(self.water_requirements or []),
            'weedRequirements': list(self.weed_requirements or []),
            'pests': self.pests,
            'protectedUntil': self.protected_until,
            'matureAt': self.mature_at,
            'witheredAt': self.withered_at,
            'stage': self.stage,
        }
