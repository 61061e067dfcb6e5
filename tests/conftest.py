"""Pytest configuration and fixtures."""

import os

# Окружение задается до импорта prizestand: settings читаются при импорте
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_PIN"] = "4321"
os.environ["CAMPAIGN_ID"] = "test-campaign"
os.environ["LOCAL_TIMEZONE"] = "America/Santiago"
os.environ["ENABLED_GAME_TYPES"] = "wheel,slots,tombola"
os.environ["RATE_LIMIT_ENABLED"] = "True"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import random

import pytest
from httpx import ASGITransport, AsyncClient

from prizestand.config import settings
from prizestand.database.db import get_session, init_db, make_engine, make_sessionmaker
from prizestand.database.repositories import (
    CampaignRepository,
    PrizeWeightRepository,
    RegistrationRepository,
    ReleaseWindowRepository,
)
from prizestand.utils.release_window import ReleaseWindowState
from prizestand.webapp.app import setup_webapp


@pytest.fixture
async def engine(tmp_path):
    """Отдельная файловая SQLite база на каждый тест."""
    engine = make_engine(f"sqlite:///{tmp_path / 'prizestand.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_sessionmaker(engine)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def campaign(session_factory):
    """Активная кампания без ограничений по датам."""
    async with session_factory() as session:
        return await CampaignRepository(session).upsert(settings.CAMPAIGN_ID, name="Test", is_active=True)


@pytest.fixture
def set_weights(session_factory):
    """Сохраняет веса игры: await set_weights("wheel", {"WATER": 80})."""
    async def _set_weights(game_type, weights):
        rows = [
            {"game_type": game_type, "prize_key": prize_key, "weight": weight}
            for prize_key, weight in weights.items()
        ]
        async with session_factory() as session:
            await PrizeWeightRepository(session).upsert_many(settings.CAMPAIGN_ID, rows)
    return _set_weights


@pytest.fixture
def set_window(session_factory):
    """Включает окно выдачи на n игр (None - выключает)."""
    async def _set_window(spins=None):
        state = ReleaseWindowState.disabled()
        if spins is not None:
            state = state.activate(spins)
        async with session_factory() as session:
            return await ReleaseWindowRepository(session).upsert(settings.CAMPAIGN_ID, state)
    return _set_window


@pytest.fixture
def get_window(session_factory):
    async def _get_window():
        async with session_factory() as session:
            return await ReleaseWindowRepository(session).get(settings.CAMPAIGN_ID)
    return _get_window


@pytest.fixture
def add_code(session_factory):
    """Создает регистрацию тёмболы с заданным кодом."""
    async def _add_code(code, email=None, name="Ana"):
        async with session_factory() as session:
            return await RegistrationRepository(session).create(
                campaign_id=settings.CAMPAIGN_ID,
                game_type=settings.GAME_TOMBOLA,
                name=name,
                rut="11.111.111-1",
                phone="+56911111111",
                email=email or f"code{code}@example.com",
                code=code,
            )
    return _add_code


@pytest.fixture
async def client(session_factory):
    """HTTP-клиент к приложению с тестовой базой и детерминированным розыгрышем."""
    app = setup_webapp(rng=random.Random(1234))

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
