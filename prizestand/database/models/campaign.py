from sqlalchemy import Column, String, Boolean, DateTime
from datetime import datetime

from prizestand.database.db import Base
from prizestand.utils.helpers import utcnow, as_utc


class Campaign(Base):
    __tablename__ = "campaign"

    id = Column(String, primary_key=True)  # Идентификатор кампании (CAMPAIGN_ID)
    name = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=False)
    starts_at = Column(DateTime(timezone=True), nullable=True)  # Начало акции (необязательно)
    ends_at = Column(DateTime(timezone=True), nullable=True)  # Окончание акции (необязательно)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def is_open(self, now: datetime = None) -> bool:
        """Проверяет, что кампания активна и текущее время попадает в ее период"""
        now = as_utc(now or utcnow())
        if not self.is_active:
            return False
        if self.starts_at and now < as_utc(self.starts_at):
            return False
        if self.ends_at and now > as_utc(self.ends_at):
            return False
        return True

    def __repr__(self):
        return f"<Campaign(id={self.id}, is_active={self.is_active})>"
