"""Concurrent plays: each request has its own session, coordination happens in the database."""

import asyncio
import random

from sqlalchemy import func, select

from prizestand.database.models import Play, Registration
from prizestand.services.errors import CodeAlreadyUsedError
from prizestand.services.play_service import STATUS_ALREADY_PLAYED, STATUS_AWARDED, PlayService


async def play_in_own_session(session_factory, seed, **kwargs):
    async with session_factory() as session:
        return await PlayService(session, rng=random.Random(seed)).play(**kwargs)


async def test_same_email_concurrently_awards_once(campaign, session_factory):
    results = await asyncio.gather(
        play_in_own_session(session_factory, 1, game_type="wheel", name="Ana", email="ana@example.com"),
        play_in_own_session(session_factory, 2, game_type="wheel", name="Ana", email="ana@example.com"),
    )

    statuses = sorted(outcome.status for outcome in results)
    assert statuses == [STATUS_ALREADY_PLAYED, STATUS_AWARDED]

    async with session_factory() as session:
        plays = (await session.execute(select(func.count(Play.id)))).scalar_one()
        registrations = (await session.execute(select(func.count(Registration.id)))).scalar_one()
    assert plays == 1
    assert registrations == 1


async def test_same_code_concurrently_redeems_once(campaign, session_factory, add_code):
    await add_code("0042")

    results = await asyncio.gather(
        play_in_own_session(session_factory, 1, game_type="tombola", code="42"),
        play_in_own_session(session_factory, 2, game_type="tombola", code="0042"),
        return_exceptions=True,
    )

    awarded = [r for r in results if not isinstance(r, Exception)]
    failed = [r for r in results if isinstance(r, Exception)]
    assert len(awarded) == 1
    assert awarded[0].status == STATUS_AWARDED
    assert len(failed) == 1
    assert isinstance(failed[0], CodeAlreadyUsedError)

    async with session_factory() as session:
        plays = (await session.execute(select(func.count(Play.id)))).scalar_one()
        registration = (await session.execute(
            select(Registration).where(Registration.code == "0042")
        )).scalar_one()
    assert plays == 1
    assert registration.used is True


async def test_concurrent_plays_force_backpack_once(campaign, session_factory, set_weights, set_window, get_window):
    await set_weights("wheel", {"WATER": 80, "TRY_AGAIN": 20})
    await set_window(1)

    results = await asyncio.gather(*[
        play_in_own_session(session_factory, index, game_type="wheel", name="Jugador", email=f"p{index}@example.com")
        for index in range(4)
    ])

    prizes = [outcome.prize_key for outcome in results]
    assert all(outcome.status == STATUS_AWARDED for outcome in results)
    assert prizes.count("BACKPACK") == 1
    assert sum(outcome.forced for outcome in results) == 1

    window = await get_window()
    assert window.is_enabled is False
