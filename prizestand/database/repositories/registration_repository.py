from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from typing import Optional

from prizestand.database.models import Registration
from prizestand.services.errors import StorageError
from prizestand.utils.helpers import utcnow


class RegistrationRepository:
    """
    Репозиторий регистраций игроков.
    Уникальность email и кода в рамках (кампания, игра) гарантирует БД.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _scalar(self, query) -> Optional[Registration]:
        try:
            result = await self.session.execute(query.execution_options(populate_existing=True))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logging.error(f"Ошибка при поиске регистрации: {e}")
            raise StorageError(str(e)) from e

    async def get_by_email(self, campaign_id: str, game_type: str, email: str) -> Optional[Registration]:
        """Ищет регистрацию по email (email уже в нижнем регистре)"""
        return await self._scalar(
            select(Registration)
            .where(Registration.campaign_id == campaign_id)
            .where(Registration.game_type == game_type)
            .where(Registration.email == email)
        )

    async def get_by_code(self, campaign_id: str, game_type: str, code: str) -> Optional[Registration]:
        """Ищет регистрацию по 4-значному коду"""
        return await self._scalar(
            select(Registration)
            .where(Registration.campaign_id == campaign_id)
            .where(Registration.game_type == game_type)
            .where(Registration.code == code)
        )

    async def create(self, **fields) -> Optional[Registration]:
        """
        Создает регистрацию.

        Args:
            **fields: Поля регистрации

        Returns:
            Registration или None, если нарушено ограничение уникальности (email или код заняты)
        """
        registration = Registration(used=False, used_at=None, **fields)
        try:
            self.session.add(registration)
            await self.session.commit()
            logging.info(
                f"Создана регистрация {registration.id} ({registration.game_type}, {registration.email})"
            )
            return registration
        except IntegrityError as e:
            await self.session.rollback()
            logging.info(f"Регистрация не создана, дубликат: {e.orig}")
            return None
        except SQLAlchemyError as e:
            await self.session.rollback()
            logging.error(f"Ошибка при создании регистрации: {e}")
            raise StorageError(str(e)) from e

    async def mark_code_used(self, registration_id: int) -> bool:
        """
        Условно помечает код как использованный (только если он еще не использован).
        Не делает commit: вызывается внутри транзакции выдачи приза.

        Returns:
            bool: True, если именно этот запрос погасил код
        """
        try:
            result = await self.session.execute(
                update(Registration)
                .where(Registration.id == registration_id)
                .where(Registration.used.is_(False))
                .values(used=True, used_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1
        except SQLAlchemyError as e:
            await self.session.rollback()
            logging.error(f"Ошибка при погашении кода регистрации {registration_id}: {e}")
            raise StorageError(str(e)) from e
