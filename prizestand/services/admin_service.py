"""
Консоль персонала: статус дня, окно выдачи и веса призов.
"""

import logging
import math
import secrets
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from prizestand.config import settings
from prizestand.database.repositories import PlayRepository, PrizeWeightRepository, ReleaseWindowRepository
from prizestand.services.errors import AuthError, ValidationError
from prizestand.utils.helpers import local_day_bounds, local_today
from prizestand.utils.probability_manager import calculate_probabilities, normalize_weights
from prizestand.utils.release_window import ReleaseWindowState, clamp_spins


def validate_weight_rows(rows: Any) -> List[Dict[str, Any]]:
    """
    Проверяет все строки весов до записи.

    Args:
        rows: Список словарей {game_type, prize_key, weight}

    Returns:
        List[Dict[str, Any]]: Нормализованные строки

    Raises:
        ValidationError: Хотя бы одна строка неверна (в extra - список проблем)
    """
    if not isinstance(rows, (list, tuple)):
        raise ValidationError("items inválido")

    problems = []
    cleaned = []
    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            problems.append(f"#{index}: fila inválida")
            continue

        game_type = str(row.get("game_type") or "").strip().lower()
        prize_key = str(row.get("prize_key") or "").strip().upper()
        raw_weight = row.get("weight")

        if game_type not in settings.ALLOWED_PRIZES:
            problems.append(f"#{index}: game_type desconocido '{game_type}'")
            continue
        if prize_key not in settings.ALLOWED_PRIZES[game_type]:
            problems.append(f"#{index}: premio '{prize_key}' no permitido para {game_type}")
            continue

        # bool - подкласс int, но весом не является
        if isinstance(raw_weight, bool):
            weight = None
        else:
            try:
                weight = float(raw_weight)
            except (TypeError, ValueError):
                weight = None

        if weight is None or not math.isfinite(weight) or weight < 0:
            problems.append(f"#{index}: peso inválido para {game_type}/{prize_key}")
            continue

        cleaned.append({"game_type": game_type, "prize_key": prize_key, "weight": weight})

    if problems:
        raise ValidationError("items inválido", problems=problems)

    return cleaned


class AdminService:
    def __init__(self, session: AsyncSession, campaign_id: str = None, admin_pin: str = None):
        self.session = session
        self.campaign_id = campaign_id or settings.CAMPAIGN_ID
        self.admin_pin = settings.ADMIN_PIN if admin_pin is None else admin_pin
        self.windows = ReleaseWindowRepository(session)
        self.weights = PrizeWeightRepository(session)
        self.plays = PlayRepository(session)

    def check_pin(self, pin: Optional[str]) -> None:
        """Проверяет PIN персонала. Пустой PIN в конфигурации запрещает доступ всем."""
        if not self.admin_pin or not isinstance(pin, str):
            raise AuthError("PIN inválido")
        if not secrets.compare_digest(pin.encode("utf-8"), self.admin_pin.encode("utf-8")):
            logging.warning("Попытка входа в админку с неверным PIN")
            raise AuthError("PIN inválido")

    async def get_status(self, now: datetime = None) -> dict:
        """
        Текущее окно выдачи и счетчики игр за локальный календарный день.

        Returns:
            dict: {"release": ..., "counts": {...}, "today_local_date": "YYYY-MM-DD"}
        """
        today = local_today(settings.LOCAL_TIMEZONE, now)
        start, end = local_day_bounds(today, settings.LOCAL_TIMEZONE)

        row = await self.windows.get(self.campaign_id)
        grouped = await self.plays.count_between(self.campaign_id, start, end)

        known_prizes = []
        for game_type in settings.ALLOWED_PRIZES:
            for prize_key in settings.ALLOWED_PRIZES[game_type]:
                if prize_key not in known_prizes:
                    known_prizes.append(prize_key)

        by_prize = {prize_key: 0 for prize_key in known_prizes}
        by_game = {game_type: 0 for game_type in settings.ALLOWED_PRIZES}
        total = 0
        for game_type, prize_key, count in grouped:
            by_prize[prize_key] = by_prize.get(prize_key, 0) + count
            by_game[game_type] = by_game.get(game_type, 0) + count
            total += count

        return {
            "release": row.to_dict() if row else None,
            "counts": {"by_prize": by_prize, "by_game": by_game, "total": total},
            "today_local_date": today.isoformat(),
        }

    async def set_release_window(self, enable: bool, remaining_spins=None) -> dict:
        """
        Включает окно на N квалифицирующих игр или отменяет его.

        Args:
            enable (bool): Включить или выключить окно
            remaining_spins: Размер окна; по умолчанию RELEASE_WINDOW_DEFAULT_SPINS, ограничивается [1, 200]

        Returns:
            dict: Сохраненная строка окна
        """
        if enable:
            spins = settings.RELEASE_WINDOW_DEFAULT_SPINS if remaining_spins is None else clamp_spins(remaining_spins)
            state = ReleaseWindowState.disabled().activate(spins)
        else:
            state = ReleaseWindowState.disabled()

        row = await self.windows.upsert(self.campaign_id, state)
        logging.info(f"Администратор изменил окно выдачи: {state}")
        return row.to_dict()

    async def get_prize_weights(self) -> List[Dict[str, Any]]:
        """
        Полная таблица весов: каждая включенная игра x каждый разрешенный приз.
        Если для игры нет ни одной строки, показываются веса по умолчанию,
        иначе отсутствующие призы имеют вес 0 (как при розыгрыше).
        """
        rows = await self.weights.list_all(self.campaign_id)

        items = []
        for game_type in settings.ENABLED_GAME_TYPES:
            # Те же веса, что использует розыгрыш
            weights = normalize_weights(game_type, [row for row in rows if row.game_type == game_type])
            # Вероятность показывается в консоли для наглядности
            probabilities = calculate_probabilities(weights)
            for prize_key, weight in weights:
                items.append({
                    "game_type": game_type,
                    "prize_key": prize_key,
                    "weight": weight,
                    "probability": round(probabilities[prize_key], 4),
                })
        return items

    async def save_prize_weights(self, rows) -> int:
        """
        Сохраняет веса: сначала проверяются все строки, затем запись одной транзакцией.

        Returns:
            int: Количество сохраненных строк
        """
        cleaned = validate_weight_rows(rows)
        saved = await self.weights.upsert_many(self.campaign_id, cleaned)
        logging.info(f"Администратор сохранил {saved} весов призов")
        return saved
