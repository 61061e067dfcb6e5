from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime
import logging
from typing import List, Optional, Tuple

from prizestand.database.models import Play
from prizestand.services.errors import StorageError


class PlayRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_for_registration(self, campaign_id: str, game_type: str, registration_id: int) -> Optional[Play]:
        """Ищет уже сыгранную игру регистрации"""
        try:
            result = await self.session.execute(
                select(Play)
                .where(Play.campaign_id == campaign_id)
                .where(Play.game_type == game_type)
                .where(Play.registration_id == registration_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logging.error(f"Ошибка при поиске игры регистрации {registration_id}: {e}")
            raise StorageError(str(e)) from e

    async def insert(
        self,
        campaign_id: str,
        game_type: str,
        registration_id: int,
        prize_key: str,
        forced: bool = False,
    ) -> Optional[Play]:
        """
        Добавляет результат игры в текущую транзакцию.

        Returns:
            Play или None, если игра для этой регистрации уже есть.
            В случае дубликата вся транзакция откатывается.
        """
        play = Play(
            campaign_id=campaign_id,
            game_type=game_type,
            registration_id=registration_id,
            prize_key=prize_key,
            forced=forced,
        )
        try:
            self.session.add(play)
            await self.session.flush()
            return play
        except IntegrityError as e:
            await self.session.rollback()
            logging.info(f"Повторная игра регистрации {registration_id} ({game_type}) отклонена: {e.orig}")
            return None
        except SQLAlchemyError as e:
            await self.session.rollback()
            logging.error(f"Ошибка при сохранении игры регистрации {registration_id}: {e}")
            raise StorageError(str(e)) from e

    async def count_between(self, campaign_id: str, start: datetime, end: datetime) -> List[Tuple[str, str, int]]:
        """
        Считает игры за период [start, end) по типу игры и призу.

        Returns:
            List[Tuple[str, str, int]]: (game_type, prize_key, количество)
        """
        try:
            result = await self.session.execute(
                select(Play.game_type, Play.prize_key, func.count(Play.id))
                .where(Play.campaign_id == campaign_id)
                .where(Play.created_at >= start)
                .where(Play.created_at < end)
                .group_by(Play.game_type, Play.prize_key)
            )
            return [(game_type, prize_key, count) for game_type, prize_key, count in result.all()]
        except SQLAlchemyError as e:
            logging.error(f"Ошибка при подсчете игр кампании {campaign_id}: {e}")
            raise StorageError(str(e)) from e
