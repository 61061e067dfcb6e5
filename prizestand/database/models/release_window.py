from sqlalchemy import Column, String, Integer, Boolean, DateTime, CheckConstraint

from prizestand.database.db import Base
from prizestand.utils.helpers import utcnow


class ReleaseWindow(Base):
    """
    Окно выдачи дефицитного приза (одна строка на кампанию).
    Поле version увеличивается при каждой записи и используется
    для условных обновлений (compare-and-swap).
    """
    __tablename__ = "release_window"

    campaign_id = Column(String, primary_key=True)
    is_enabled = Column(Boolean, nullable=False, default=False)
    remaining_spins = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("remaining_spins >= 0", name="ck_release_window_remaining"),
    )

    def to_dict(self) -> dict:
        return {
            "campaign_id": self.campaign_id,
            "is_enabled": bool(self.is_enabled),
            "remaining_spins": self.remaining_spins,
            "version": self.version,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<ReleaseWindow(campaign_id={self.campaign_id}, is_enabled={self.is_enabled}, remaining_spins={self.remaining_spins}, version={self.version})>"
