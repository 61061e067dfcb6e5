import asyncio
import logging
import sys
import argparse

from prizestand import __version__
from prizestand.config import settings
from prizestand.database.db import init_db, engine
from prizestand.webapp.app import setup_webapp, start_webapp


async def main():
    """Точка входа в приложение."""
    parser = argparse.ArgumentParser(description=f"Запуск Prize Stand v{__version__}")
    parser.add_argument("--host", help="Адрес веб-сервера (переопределяет WEBAPP_HOST)")
    parser.add_argument("--port", type=int, help="Порт веб-сервера (переопределяет WEBAPP_PORT)")
    parser.add_argument("--init-db", action="store_true", help="Создать таблицы по моделям (для разработки)")
    args = parser.parse_args()

    logging.info(f"Запуск Prize Stand v{__version__}, кампания {settings.CAMPAIGN_ID}")

    try:
        if args.init_db:
            logging.info("Инициализация базы данных...")
            await init_db()

        app = setup_webapp()
        await start_webapp(app, host=args.host, port=args.port)
    finally:
        await engine.dispose()
        logging.info("Соединения с базой данных закрыты")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logging.info("Приложение остановлено пользователем")
    except Exception as e:
        logging.critical(f"Критическая ошибка при запуске приложения: {e}")
        sys.exit(1)
