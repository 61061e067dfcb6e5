from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from typing import List, Sequence

from prizestand.database.models import PrizeWeight
from prizestand.services.errors import StorageError
from prizestand.utils.helpers import utcnow


class PrizeWeightRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for_game(self, campaign_id: str, game_type: str) -> List[PrizeWeight]:
        """Получает веса призов для игры"""
        try:
            result = await self.session.execute(
                select(PrizeWeight)
                .where(PrizeWeight.campaign_id == campaign_id)
                .where(PrizeWeight.game_type == game_type)
                .execution_options(populate_existing=True)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logging.error(f"Ошибка при получении весов для игры {game_type}: {e}")
            raise StorageError(str(e)) from e

    async def list_all(self, campaign_id: str) -> List[PrizeWeight]:
        """Получает все веса кампании"""
        try:
            result = await self.session.execute(
                select(PrizeWeight)
                .where(PrizeWeight.campaign_id == campaign_id)
                .order_by(PrizeWeight.game_type, PrizeWeight.id)
                .execution_options(populate_existing=True)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logging.error(f"Ошибка при получении весов кампании {campaign_id}: {e}")
            raise StorageError(str(e)) from e

    async def upsert_many(self, campaign_id: str, rows: Sequence[dict]) -> int:
        """
        Сохраняет веса одной транзакцией: либо все строки, либо ни одной.

        Args:
            campaign_id: ID кампании
            rows: Словари с ключами game_type, prize_key, weight (уже проверенные)

        Returns:
            int: Количество сохраненных строк
        """
        try:
            now = utcnow()
            for row in rows:
                result = await self.session.execute(
                    update(PrizeWeight)
                    .where(PrizeWeight.campaign_id == campaign_id)
                    .where(PrizeWeight.game_type == row["game_type"])
                    .where(PrizeWeight.prize_key == row["prize_key"])
                    .values(weight=row["weight"], updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    self.session.add(PrizeWeight(
                        campaign_id=campaign_id,
                        game_type=row["game_type"],
                        prize_key=row["prize_key"],
                        weight=row["weight"],
                        updated_at=now,
                    ))
                    # Сразу отправляем INSERT, чтобы дубликаты в одном запросе не конфликтовали
                    await self.session.flush()

            await self.session.commit()
            logging.info(f"Сохранено {len(rows)} весов призов для кампании {campaign_id}")
            return len(rows)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logging.error(f"Ошибка при сохранении весов призов: {e}")
            raise StorageError(str(e)) from e
