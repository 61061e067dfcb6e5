from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint, Index

from prizestand.database.db import Base
from prizestand.utils.helpers import utcnow


class Play(Base):
    __tablename__ = "plays"

    id = Column(Integer, primary_key=True, autoincrement=True)
    campaign_id = Column(String, nullable=False)
    game_type = Column(String, nullable=False)
    registration_id = Column(Integer, ForeignKey("registrations.id"), nullable=False)
    prize_key = Column(String, nullable=False)
    forced = Column(Boolean, nullable=False, default=False)  # Приз выдан окном выдачи
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        # Одна игра на регистрацию: защита от повторной игры на уровне БД
        UniqueConstraint('campaign_id', 'game_type', 'registration_id', name='uq_play_registration'),
        Index('idx_plays_campaign_created_at', 'campaign_id', 'created_at'),
    )

    def __repr__(self):
        return f"<Play(id={self.id}, game_type={self.game_type}, registration_id={self.registration_id}, prize_key={self.prize_key})>"
