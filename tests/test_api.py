"""HTTP API tests (httpx AsyncClient over ASGITransport)."""

import pytest

from prizestand.config import settings

PIN = "4321"
PLAYER = {"name": "Ana", "email": "ana@example.com"}
FORM = {"name": "Ana", "rut": "11.111.111-1", "phone": "+56911111111", "email": "ana@example.com"}


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["ok"] is True


async def test_wheel_play_then_already_played(client, campaign):
    response = await client.post("/api/wheel/play", json=PLAYER)
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["prize_key"] in settings.ALLOWED_PRIZES["wheel"]

    response = await client.post("/api/wheel/play", json=PLAYER)
    assert response.status_code == 200
    assert response.json() == {
        "ok": False,
        "reason": "ALREADY_PLAYED",
        "message": "Ya participaste en la ruleta.",
    }


async def test_generic_play_uses_game_type(client, campaign):
    response = await client.post("/api/play", json={**PLAYER, "gameType": "slots"})
    assert response.status_code == 200
    assert response.json()["prize_key"] in settings.ALLOWED_PRIZES["slots"]


@pytest.mark.parametrize("body", [
    {"name": "Ana", "email": "ana@example.com"},
    {"name": "Ana", "email": "ana@example.com", "gameType": "bingo"},
    {"name": "Ana", "email": "no-arroba", "gameType": "wheel"},
])
async def test_play_validation_errors(client, campaign, body):
    response = await client.post("/api/play", json=body)
    assert response.status_code == 400
    assert response.json()["ok"] is False
    assert response.json()["error"]


async def test_malformed_body_is_400(client, campaign):
    response = await client.post("/api/play", json={"name": ["not", "a", "string"]})
    assert response.status_code == 400
    assert response.json()["ok"] is False


async def test_play_without_campaign(client):
    response = await client.post("/api/wheel/play", json=PLAYER)
    assert response.status_code == 404
    assert response.json() == {"ok": False, "error": "Campaña no encontrada"}


async def test_register_and_redeem_tombola_code(client, campaign):
    response = await client.post("/api/register", json={**FORM, "gameType": "tombola", "modelPreference": "X"})
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    code = body["code"]
    assert len(code) == 4 and code.isdigit()

    response = await client.post("/api/tombola/validate-code", json={"code": int(code)})
    assert response.status_code == 200
    body = response.json()
    assert body["code"] == code
    assert body["registration"]["email"] == "ana@example.com"

    response = await client.post("/api/tombola/play", json={"code": code})
    assert response.status_code == 200
    assert response.json()["prize_key"] in settings.ALLOWED_PRIZES["tombola"]

    response = await client.post("/api/tombola/play", json={"code": code})
    assert response.status_code == 409
    assert response.json() == {"ok": False, "error": "Este código ya fue usado."}


async def test_validate_code_errors(client, campaign):
    response = await client.post("/api/tombola/validate-code", json={"code": "abc"})
    assert response.status_code == 400
    assert response.json()["error"] == "Código inválido."

    response = await client.post("/api/tombola/validate-code", json={"code": "9999"})
    assert response.status_code == 404
    assert response.json()["error"] == "Código no encontrado."


async def test_duplicate_registration(client, campaign):
    first = await client.post("/api/register", json={**FORM, "gameType": "tombola"})
    second = await client.post("/api/register", json={**FORM, "gameType": "tombola", "email": "ANA@example.com"})

    assert second.status_code == 409
    body = second.json()
    assert body["ok"] is False
    assert body["alreadyRegistered"] is True
    assert body["code"] == first.json()["code"]


async def test_register_defaults_to_wheel(client, campaign):
    response = await client.post("/api/register", json=FORM)
    assert response.status_code == 200
    assert response.json()["code"] is None


async def test_admin_requires_pin(client, campaign):
    for path, extra in [
        ("/api/admin/status", {}),
        ("/api/admin/release", {"enable": True}),
        ("/api/admin/prize-weights", {"action": "get"}),
    ]:
        response = await client.post(path, json={"pin": "0000", **extra})
        assert response.status_code == 401
        assert response.json() == {"ok": False, "error": "PIN inválido"}


async def test_admin_status_includes_legacy_fields(client, campaign):
    await client.post("/api/wheel/play", json=PLAYER)

    response = await client.post("/api/admin/status", json={"pin": PIN})
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["todayChile"] == body["todayLocalDate"]
    assert body["counts"]["total"] == 1
    assert body["counts"]["TOTAL"] == 1
    assert body["counts"]["WHEEL"] == 1
    assert body["counts"]["SLOTS"] == 0
    assert "BACKPACK" in body["counts"]


async def test_release_window_via_api(client, campaign):
    response = await client.post("/api/admin/release", json={"pin": PIN, "enable": True, "remainingSpins": 1})
    assert response.status_code == 200
    assert response.json()["release"]["is_enabled"] is True
    assert response.json()["release"]["remaining_spins"] == 1

    response = await client.post("/api/wheel/play", json=PLAYER)
    assert response.json() == {"ok": True, "prize_key": "BACKPACK"}

    status = (await client.post("/api/admin/status", json={"pin": PIN})).json()
    assert status["release"]["is_enabled"] is False
    assert status["counts"]["BACKPACK"] == 1


@pytest.mark.parametrize("token", ["Infinity", "-Infinity", "NaN"])
async def test_release_window_rejects_non_finite_spins(client, campaign, token):
    response = await client.post(
        "/api/admin/release",
        content=f'{{"pin": "{PIN}", "enable": true, "remainingSpins": {token}}}',
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["ok"] is False

    status = (await client.post("/api/admin/status", json={"pin": PIN})).json()
    assert status["release"] is None


async def test_prize_weights_via_api(client, campaign):
    response = await client.post("/api/admin/prize-weights", json={"pin": PIN, "action": "get"})
    assert response.status_code == 200
    assert len(response.json()["items"]) == 15

    response = await client.post("/api/admin/prize-weights", json={
        "pin": PIN,
        "action": "save",
        "items": [{"game_type": "wheel", "prize_key": "WATER", "weight": 99}],
    })
    assert response.json() == {"ok": True, "saved": 1}

    response = await client.post("/api/admin/prize-weights", json={
        "pin": PIN,
        "action": "save",
        "items": [{"game_type": "slots", "prize_key": "BUFF", "weight": 1}],
    })
    assert response.status_code == 400
    assert response.json()["problems"]

    response = await client.post("/api/admin/prize-weights", json={"pin": PIN, "action": "delete"})
    assert response.status_code == 400
    assert response.json()["error"] == "Acción no válida"


async def test_tombola_rate_limit(client, campaign):
    window, max_requests = settings.RATE_LIMIT_PATHS["/api/tombola/"]
    for _ in range(max_requests):
        response = await client.post("/api/tombola/validate-code", json={"code": "1"})
        assert response.status_code == 404

    response = await client.post("/api/tombola/validate-code", json={"code": "1"})
    assert response.status_code == 429
    assert response.json()["ok"] is False
    assert "Retry-After" in response.headers


async def test_generic_play_tombola_codes_are_rate_limited(client, campaign):
    window, max_requests = settings.RATE_LIMIT_PATHS["/api/play"]
    assert (window, max_requests) == settings.RATE_LIMIT_PATHS["/api/tombola/"]

    for index in range(max_requests):
        response = await client.post("/api/play", json={"gameType": "tombola", "code": f"{2000 + index}"})
        assert response.status_code == 404

    response = await client.post("/api/play", json={"gameType": "tombola", "code": "2999"})
    assert response.status_code == 429
    assert response.json()["ok"] is False
