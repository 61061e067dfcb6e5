"""Tests for the staff console service."""

import math
from datetime import datetime, timedelta, timezone

import pytest

from prizestand.config import settings
from prizestand.database.models import Play, Registration
from prizestand.services.admin_service import AdminService, validate_weight_rows
from prizestand.services.errors import AuthError, ValidationError


def test_check_pin():
    service = AdminService(session=None, admin_pin="4321")
    service.check_pin("4321")
    for wrong in ["", "1234", None, "43210"]:
        with pytest.raises(AuthError):
            service.check_pin(wrong)


def test_empty_configured_pin_rejects_everyone():
    service = AdminService(session=None, admin_pin="")
    with pytest.raises(AuthError) as exc_info:
        service.check_pin("")
    assert exc_info.value.status_code == 401


async def test_set_release_window(campaign, session):
    service = AdminService(session)

    release = await service.set_release_window(True)
    assert release["is_enabled"] is True
    assert release["remaining_spins"] == settings.RELEASE_WINDOW_DEFAULT_SPINS
    first_version = release["version"]

    release = await service.set_release_window(True, 500)
    assert release["remaining_spins"] == 200
    assert release["version"] > first_version

    release = await service.set_release_window(True, 0)
    assert release["remaining_spins"] == 1

    release = await service.set_release_window(False)
    assert release["is_enabled"] is False
    assert release["remaining_spins"] == 0


async def test_get_prize_weights_full_grid_with_defaults(campaign, session, set_weights):
    await set_weights("slots", {"WATER": 5})

    items = await AdminService(session).get_prize_weights()

    expected_size = sum(len(settings.ALLOWED_PRIZES[game]) for game in settings.ENABLED_GAME_TYPES)
    assert len(items) == expected_size
    grid = {(item["game_type"], item["prize_key"]): item["weight"] for item in items}
    assert grid[("slots", "WATER")] == 5
    assert grid[("wheel", "WATER")] == settings.DEFAULT_PRIZE_WEIGHTS["wheel"]["WATER"]
    assert grid[("tombola", "BACKPACK")] == 0


async def test_save_prize_weights(campaign, session):
    service = AdminService(session)
    saved = await service.save_prize_weights([
        {"game_type": "wheel", "prize_key": "water", "weight": "12.5"},
        {"game_type": "wheel", "prize_key": "BACKPACK", "weight": 0},
    ])
    assert saved == 2

    grid = {(i["game_type"], i["prize_key"]): i["weight"] for i in await service.get_prize_weights()}
    assert grid[("wheel", "WATER")] == 12.5

    # Повторное сохранение обновляет строку, а не создает новую
    await service.save_prize_weights([{"game_type": "wheel", "prize_key": "WATER", "weight": 3}])
    rows = await service.weights.list_for_game(settings.CAMPAIGN_ID, "wheel")
    assert [(row.prize_key, row.weight) for row in rows if row.prize_key == "WATER"] == [("WATER", 3)]


@pytest.mark.parametrize("bad_row", [
    {"game_type": "slots", "prize_key": "BLANKET", "weight": 1},  # не разрешен для слотов
    {"game_type": "wheel", "prize_key": "GOLD", "weight": 1},
    {"game_type": "poker", "prize_key": "WATER", "weight": 1},
    {"game_type": "wheel", "prize_key": "WATER", "weight": -1},
    {"game_type": "wheel", "prize_key": "WATER", "weight": math.inf},
    {"game_type": "wheel", "prize_key": "WATER", "weight": math.nan},
    {"game_type": "wheel", "prize_key": "WATER", "weight": "abc"},
    {"game_type": "wheel", "prize_key": "WATER", "weight": None},
    {"game_type": "wheel", "prize_key": "WATER", "weight": True},
])
async def test_rejected_save_leaves_weights_unchanged(campaign, session, set_weights, bad_row):
    await set_weights("wheel", {"WATER": 40})
    await set_weights("slots", {"WATER": 60})
    service = AdminService(session)

    with pytest.raises(ValidationError) as exc_info:
        await service.save_prize_weights([
            {"game_type": "slots", "prize_key": "WATER", "weight": 1},
            bad_row,
        ])

    assert exc_info.value.status_code == 400
    assert len(exc_info.value.extra["problems"]) == 1
    grid = {(i["game_type"], i["prize_key"]): i["weight"] for i in await service.get_prize_weights()}
    assert grid[("wheel", "WATER")] == 40
    assert grid[("slots", "WATER")] == 60


def test_validate_weight_rows_requires_list():
    with pytest.raises(ValidationError):
        validate_weight_rows(None)
    with pytest.raises(ValidationError):
        validate_weight_rows({"game_type": "wheel"})


async def test_status_counts_only_local_today(campaign, session_factory):
    # 2026-03-10 12:00 в Сантьяго (UTC-3)
    now = datetime(2026, 3, 10, 15, 0, tzinfo=timezone.utc)
    plays = [
        ("wheel", "BACKPACK", now - timedelta(hours=1)),
        ("wheel", "WATER", now),
        ("slots", "WATER", datetime(2026, 3, 10, 3, 0, tzinfo=timezone.utc)),  # местная полночь
        ("tombola", "TRY_AGAIN", datetime(2026, 3, 11, 2, 59, tzinfo=timezone.utc)),  # 23:59 по местному
        ("wheel", "WATER", datetime(2026, 3, 10, 2, 30, tzinfo=timezone.utc)),  # вчера по местному
        ("slots", "BACKPACK", now - timedelta(days=1)),
    ]

    async with session_factory() as session:
        for index, (game_type, prize_key, created_at) in enumerate(plays):
            registration = Registration(
                campaign_id=settings.CAMPAIGN_ID,
                game_type=game_type,
                name="Jugador",
                email=f"p{index}@example.com",
            )
            session.add(registration)
            await session.flush()
            session.add(Play(
                campaign_id=settings.CAMPAIGN_ID,
                game_type=game_type,
                registration_id=registration.id,
                prize_key=prize_key,
                created_at=created_at,
            ))
        await session.commit()

    async with session_factory() as session:
        status = await AdminService(session).get_status(now=now)

    assert status["today_local_date"] == "2026-03-10"
    assert status["release"] is None
    counts = status["counts"]
    assert counts["total"] == 4
    assert counts["by_prize"]["BACKPACK"] == 1
    assert counts["by_prize"]["WATER"] == 2
    assert counts["by_prize"]["TRY_AGAIN"] == 1
    assert counts["by_prize"]["LANYARD"] == 0
    assert counts["by_game"] == {"wheel": 2, "slots": 1, "tombola": 1}
