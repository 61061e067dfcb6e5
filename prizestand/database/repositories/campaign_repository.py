from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime
import logging
from typing import Optional

from prizestand.database.models import Campaign
from prizestand.services.errors import StorageError


class CampaignRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, campaign_id: str) -> Optional[Campaign]:
        """Получает кампанию по ID"""
        try:
            result = await self.session.execute(
                select(Campaign).where(Campaign.id == campaign_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logging.error(f"Ошибка при получении кампании {campaign_id}: {e}")
            raise StorageError(str(e)) from e

    async def upsert(
        self,
        campaign_id: str,
        name: str = None,
        is_active: bool = True,
        starts_at: datetime = None,
        ends_at: datetime = None,
    ) -> Campaign:
        """
        Создает или обновляет кампанию.

        Args:
            campaign_id: ID кампании
            name: Название кампании
            is_active: Активна ли кампания
            starts_at: Начало акции
            ends_at: Окончание акции

        Returns:
            Campaign: Сохраненная кампания
        """
        try:
            campaign = await self.session.get(Campaign, campaign_id)
            if campaign is None:
                campaign = Campaign(id=campaign_id)
                self.session.add(campaign)
            campaign.name = name
            campaign.is_active = is_active
            campaign.starts_at = starts_at
            campaign.ends_at = ends_at
            await self.session.commit()
            logging.info(f"Кампания {campaign_id} сохранена (активна: {is_active})")
            return campaign
        except SQLAlchemyError as e:
            await self.session.rollback()
            logging.error(f"Ошибка при сохранении кампании {campaign_id}: {e}")
            raise StorageError(str(e)) from e
