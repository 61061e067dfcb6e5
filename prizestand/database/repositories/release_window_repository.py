from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from typing import Optional

from prizestand.database.models import ReleaseWindow
from prizestand.services.errors import StorageError
from prizestand.utils.helpers import utcnow
from prizestand.utils.release_window import ReleaseWindowState


class ReleaseWindowRepository:
    """
    Репозиторий окна выдачи. Строка окна - единственная "горячая точка"
    конкурентного доступа, поэтому игры меняют ее только через compare_and_set.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, campaign_id: str) -> Optional[ReleaseWindow]:
        """Читает актуальную строку окна (минуя identity map сессии)"""
        try:
            result = await self.session.execute(
                select(ReleaseWindow)
                .where(ReleaseWindow.campaign_id == campaign_id)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logging.error(f"Ошибка при чтении окна выдачи кампании {campaign_id}: {e}")
            raise StorageError(str(e)) from e

    async def compare_and_set(self, campaign_id: str, expected_version: int, state: ReleaseWindowState) -> bool:
        """
        Сохраняет новое состояние, только если версия строки не изменилась.
        Не делает commit: вызывается внутри транзакции выдачи приза.

        Args:
            campaign_id: ID кампании
            expected_version: Версия, прочитанная перед вычислением перехода
            state: Новое состояние окна

        Returns:
            bool: True, если обновление применено
        """
        try:
            result = await self.session.execute(
                update(ReleaseWindow)
                .where(ReleaseWindow.campaign_id == campaign_id)
                .where(ReleaseWindow.version == expected_version)
                .values(
                    is_enabled=state.is_enabled,
                    remaining_spins=state.remaining_spins,
                    version=ReleaseWindow.version + 1,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1
        except SQLAlchemyError as e:
            await self.session.rollback()
            logging.error(f"Ошибка при обновлении окна выдачи кампании {campaign_id}: {e}")
            raise StorageError(str(e)) from e

    async def upsert(self, campaign_id: str, state: ReleaseWindowState) -> ReleaseWindow:
        """
        Перезаписывает состояние окна (действие администратора) и увеличивает версию,
        чтобы параллельные игры перечитали строку.

        Returns:
            ReleaseWindow: Сохраненная строка
        """
        for attempt in range(2):
            try:
                result = await self.session.execute(
                    update(ReleaseWindow)
                    .where(ReleaseWindow.campaign_id == campaign_id)
                    .values(
                        is_enabled=state.is_enabled,
                        remaining_spins=state.remaining_spins,
                        version=ReleaseWindow.version + 1,
                        updated_at=utcnow(),
                    )
                    .execution_options(synchronize_session=False)
                )

                # Если строки нет, создаем новую
                if result.rowcount == 0:
                    self.session.add(ReleaseWindow(
                        campaign_id=campaign_id,
                        is_enabled=state.is_enabled,
                        remaining_spins=state.remaining_spins,
                        version=1,
                        updated_at=utcnow(),
                    ))

                await self.session.commit()
                logging.info(
                    f"Окно выдачи кампании {campaign_id}: включено={state.is_enabled}, осталось={state.remaining_spins}"
                )
                return await self.get(campaign_id)
            except IntegrityError:
                # Строку одновременно создал другой запрос - повторяем как обновление
                await self.session.rollback()
                logging.warning(f"Окно выдачи кампании {campaign_id} создано параллельно, повтор (попытка {attempt + 1})")
            except SQLAlchemyError as e:
                await self.session.rollback()
                logging.error(f"Ошибка при сохранении окна выдачи кампании {campaign_id}: {e}")
                raise StorageError(str(e)) from e

        raise StorageError(f"No se pudo guardar la ventana de la campaña {campaign_id}")
