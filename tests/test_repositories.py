"""Tests for storage primitives: conditional updates and unique inserts."""

from prizestand.config import settings
from prizestand.database.repositories import PlayRepository, RegistrationRepository, ReleaseWindowRepository
from prizestand.utils.release_window import ReleaseWindowState

CAMPAIGN = settings.CAMPAIGN_ID


async def test_compare_and_set_rejects_stale_version(session, set_window):
    row = await set_window(5)
    repo = ReleaseWindowRepository(session)

    assert await repo.compare_and_set(CAMPAIGN, row.version, ReleaseWindowState(True, 4)) is True
    await session.commit()
    assert await repo.compare_and_set(CAMPAIGN, row.version, ReleaseWindowState(True, 3)) is False
    await session.rollback()

    current = await repo.get(CAMPAIGN)
    assert current.remaining_spins == 4
    assert current.version == row.version + 1


async def test_upsert_creates_then_bumps_version(session):
    repo = ReleaseWindowRepository(session)
    created_version = (await repo.upsert(CAMPAIGN, ReleaseWindowState.disabled().activate(7))).version
    updated = await repo.upsert(CAMPAIGN, ReleaseWindowState.disabled())

    assert created_version == 1
    assert updated.version == 2
    assert updated.is_enabled is False


async def test_duplicate_email_registration_returns_none(session):
    repo = RegistrationRepository(session)
    fields = {"campaign_id": CAMPAIGN, "game_type": "wheel", "name": "Ana", "email": "ana@example.com"}

    assert await repo.create(**fields) is not None
    assert await repo.create(**fields) is None
    # Та же почта в другой игре допустима
    assert await repo.create(**{**fields, "game_type": "slots"}) is not None


async def test_mark_code_used_is_conditional(session, add_code):
    registration = await add_code("0555")
    repo = RegistrationRepository(session)

    assert await repo.mark_code_used(registration.id) is True
    await session.commit()
    assert await repo.mark_code_used(registration.id) is False


async def test_duplicate_play_insert_returns_none(session, add_code):
    registration = await add_code("0556")
    repo = PlayRepository(session)

    assert await repo.insert(CAMPAIGN, "tombola", registration.id, "WATER") is not None
    await session.commit()
    assert await repo.insert(CAMPAIGN, "tombola", registration.id, "LANYARD") is None
    assert (await repo.get_for_registration(CAMPAIGN, "tombola", registration.id)).prize_key == "WATER"
