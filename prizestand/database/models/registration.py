from sqlalchemy import Column, String, Integer, Boolean, DateTime, UniqueConstraint, Index

from prizestand.database.db import Base
from prizestand.utils.helpers import utcnow


class Registration(Base):
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    campaign_id = Column(String, nullable=False)
    game_type = Column(String, nullable=False)  # wheel | slots | tombola
    name = Column(String, nullable=False)
    rut = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=False)  # Хранится в нижнем регистре
    comuna = Column(String, nullable=True)
    model_preference = Column(String, nullable=True)
    code = Column(String(4), nullable=True)  # 4-значный код, только для тёмболы
    used = Column(Boolean, nullable=False, default=False)  # Код уже погашен
    used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('campaign_id', 'game_type', 'email', name='uq_registration_email'),
        UniqueConstraint('campaign_id', 'game_type', 'code', name='uq_registration_code'),
        Index('idx_registrations_campaign_game', 'campaign_id', 'game_type'),
    )

    def to_public_dict(self) -> dict:
        """Данные регистрации, которые можно показать на стенде"""
        return {"id": self.id, "name": self.name, "email": self.email}

    def __repr__(self):
        return f"<Registration(id={self.id}, game_type={self.game_type}, email={self.email}, code={self.code}, used={self.used})>"
