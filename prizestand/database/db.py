from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy import text
import logging

from prizestand.config import settings


# Создаем базовый класс для моделей
Base = declarative_base()


def to_async_url(database_url: str) -> str:
    """Приводит URL базы данных к асинхронному драйверу (asyncpg / aiosqlite)."""
    if database_url.startswith('postgres://'):
        database_url = database_url.replace('postgres://', 'postgresql://', 1)
    if database_url.startswith('postgresql:'):
        return database_url.replace('postgresql:', 'postgresql+asyncpg:', 1)
    if database_url.startswith('sqlite:'):
        return database_url.replace('sqlite:', 'sqlite+aiosqlite:', 1)
    return database_url


def make_engine(database_url: str = None, echo: bool = False) -> AsyncEngine:
    """
    Создает асинхронный движок SQLAlchemy.

    Args:
        database_url (str): URL базы данных, по умолчанию settings.DATABASE_URL
        echo (bool): Логировать SQL-запросы

    Returns:
        AsyncEngine: Асинхронный движок
    """
    url = to_async_url(database_url or settings.DATABASE_URL)

    if url.startswith('sqlite'):
        # SQLite используется для разработки и тестов
        return create_async_engine(url, echo=echo, future=True)

    return create_async_engine(
        url,
        echo=echo,
        future=True,
        pool_size=20,  # Размер пула соединений
        max_overflow=40,  # Максимальное количество дополнительных соединений
        pool_timeout=30,  # Тайм-аут ожидания соединения из пула
        pool_pre_ping=True,  # Проверка соединения перед использованием
        # Важно для PgBouncer (Supabase pooler, pool_mode transaction): отключаем prepared statements
        connect_args={
            "statement_cache_size": 0,
        },
    )


def make_sessionmaker(bind: AsyncEngine) -> async_sessionmaker:
    """Создает фабрику асинхронных сессий для движка."""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,  # Отключаем автоматический flush для более предсказуемого поведения
    )


# Создаем асинхронный движок и фабрику сессий
engine = make_engine(echo=settings.DEBUG)
async_session = make_sessionmaker(engine)


async def init_db(bind: AsyncEngine = None):
    """
    Создает таблицы по моделям (для разработки и тестов, в продакшне используйте Alembic).

    Args:
        bind (AsyncEngine): Движок, по умолчанию глобальный
    """
    # Импортируем модели, чтобы они зарегистрировались в Base.metadata
    from prizestand.database import models  # noqa: F401

    target = bind or engine
    try:
        logging.info("Инициализация структуры базы данных")
        async with target.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logging.info("База данных инициализирована успешно")
    except Exception as e:
        logging.error(f"Ошибка при инициализации базы данных: {e}")
        raise


async def check_connection(session: AsyncSession) -> bool:
    """Проверяет доступность базы данных простым запросом."""
    try:
        await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logging.error(f"База данных недоступна: {e}")
        return False


async def get_session() -> AsyncSession:
    """
    Получение сессии базы данных.

    Yields:
        AsyncSession: Сессия для работы с базой данных
    """
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()
