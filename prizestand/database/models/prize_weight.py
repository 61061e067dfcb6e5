from sqlalchemy import Column, String, Integer, Float, DateTime, UniqueConstraint

from prizestand.database.db import Base
from prizestand.utils.helpers import utcnow


class PrizeWeight(Base):
    __tablename__ = "prize_weights"

    id = Column(Integer, primary_key=True, autoincrement=True)
    campaign_id = Column(String, nullable=False)
    game_type = Column(String, nullable=False)
    prize_key = Column(String, nullable=False)
    weight = Column(Float, nullable=False, default=0)  # Относительный вес приза (>= 0)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('campaign_id', 'game_type', 'prize_key', name='uq_prize_weight'),
    )

    def __repr__(self):
        return f"<PrizeWeight(game_type={self.game_type}, prize_key={self.prize_key}, weight={self.weight})>"
