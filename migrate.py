import asyncio
import logging
import sys
import argparse
from datetime import datetime
from pathlib import Path

from alembic import command
from alembic.config import Config

from prizestand.config import settings
from prizestand.database.db import async_session, engine
from prizestand.database.repositories import CampaignRepository, PrizeWeightRepository, ReleaseWindowRepository
from prizestand.utils.probability_manager import default_weights
from prizestand.utils.release_window import ReleaseWindowState


ALEMBIC_INI = Path(__file__).resolve().parent / "alembic.ini"


def upgrade_schema(revision: str = "head") -> bool:
    """
    Применяет миграции Alembic до указанной ревизии.
    Откат делается штатной командой `alembic downgrade`.
    """
    if not ALEMBIC_INI.exists():
        logging.error(f"Не найден {ALEMBIC_INI}")
        return False

    alembic_cfg = Config(str(ALEMBIC_INI))
    alembic_cfg.set_main_option("script_location", str(ALEMBIC_INI.parent / "alembic"))
    try:
        command.upgrade(alembic_cfg, revision)
    except Exception as e:
        logging.error(f"Ошибка при применении миграций до {revision}: {e}")
        return False

    logging.info(f"Схема базы данных обновлена до {revision}")
    return True


def parse_datetime(value: str):
    """Разбирает дату ISO 8601 из аргументов командной строки."""
    return datetime.fromisoformat(value) if value else None


async def seed_campaign(name=None, starts_at=None, ends_at=None, inactive=False, reset_weights=False):
    """
    Создает кампанию, строку окна выдачи и веса по умолчанию.
    Существующие веса и окно не перезаписываются без reset_weights.

    Args:
        name (str): Название кампании
        starts_at (datetime): Начало акции
        ends_at (datetime): Окончание акции
        inactive (bool): Создать кампанию выключенной
        reset_weights (bool): Перезаписать веса значениями по умолчанию
    """
    try:
        async with async_session() as session:
            await CampaignRepository(session).upsert(
                settings.CAMPAIGN_ID,
                name=name or settings.CAMPAIGN_ID,
                is_active=not inactive,
                starts_at=starts_at,
                ends_at=ends_at,
            )

            windows = ReleaseWindowRepository(session)
            if await windows.get(settings.CAMPAIGN_ID) is None:
                await windows.upsert(settings.CAMPAIGN_ID, ReleaseWindowState.disabled())

            weights = PrizeWeightRepository(session)
            if reset_weights or not await weights.list_all(settings.CAMPAIGN_ID):
                rows = [
                    {"game_type": game_type, "prize_key": prize_key, "weight": weight}
                    for game_type in settings.ALLOWED_PRIZES
                    for prize_key, weight in default_weights(game_type)
                ]
                await weights.upsert_many(settings.CAMPAIGN_ID, rows)

        logging.info(f"Кампания {settings.CAMPAIGN_ID} подготовлена")
        return True

    except Exception as e:
        logging.error(f"Ошибка при подготовке кампании: {e}")
        return False
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Миграция базы данных и подготовка кампании")
    parser.add_argument("--skip-migrations", action="store_true", help="Только подготовить кампанию")
    parser.add_argument("--revision", default="head", help="Ревизия Alembic для обновления схемы")
    parser.add_argument("--name", help="Название кампании")
    parser.add_argument("--starts-at", type=parse_datetime, help="Начало акции (ISO 8601)")
    parser.add_argument("--ends-at", type=parse_datetime, help="Окончание акции (ISO 8601)")
    parser.add_argument("--inactive", action="store_true", help="Создать кампанию выключенной")
    parser.add_argument("--reset-weights", action="store_true", help="Сбросить веса призов к значениям по умолчанию")
    parser.add_argument("--debug", action="store_true", help="Включить режим отладки")
    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Включен режим отладки")

    # Alembic запускает свой цикл событий, поэтому миграции идут до asyncio.run
    if not args.skip_migrations and not upgrade_schema(args.revision):
        sys.exit(1)

    success = asyncio.run(seed_campaign(
        name=args.name,
        starts_at=args.starts_at,
        ends_at=args.ends_at,
        inactive=args.inactive,
        reset_weights=args.reset_weights,
    ))

    sys.exit(0 if success else 1)
