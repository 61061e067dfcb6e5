import logging
import math
import random
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from prizestand.config import settings

# Пара (ключ приза, вес)
WeightedPrize = Tuple[str, float]


def _coerce_weight(value: Any) -> float:
    """Приводит вес к float; нечисловые и бесконечные значения считаются нулем."""
    try:
        weight = float(value if value is not None else 0)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(weight):
        return 0.0
    return weight


def default_weights(game_type: str) -> List[WeightedPrize]:
    """
    Возвращает веса по умолчанию для игры в порядке списка разрешенных призов.

    Args:
        game_type (str): Тип игры

    Returns:
        List[WeightedPrize]: Список (приз, вес)
    """
    defaults = settings.DEFAULT_PRIZE_WEIGHTS.get(game_type, {})
    return [(key, float(defaults.get(key, 0))) for key in settings.ALLOWED_PRIZES.get(game_type, [])]


def normalize_weights(game_type: str, rows: Iterable[Any]) -> List[WeightedPrize]:
    """
    Нормализует строки весов из БД: оставляет только разрешенные для игры призы,
    приводит ключи к верхнему регистру, а веса к float.
    Если после фильтрации ничего не осталось, используются веса по умолчанию.

    Args:
        game_type (str): Тип игры
        rows (Iterable[Any]): Объекты с атрибутами prize_key и weight (или словари)

    Returns:
        List[WeightedPrize]: Веса в порядке списка разрешенных призов
    """
    allowed = settings.ALLOWED_PRIZES.get(game_type, [])
    stored = {}
    for row in rows:
        if isinstance(row, dict):
            prize_key, weight = row.get("prize_key"), row.get("weight")
        else:
            prize_key, weight = row.prize_key, row.weight
        prize_key = str(prize_key or "").upper()
        if prize_key in allowed:
            stored[prize_key] = _coerce_weight(weight)

    if not stored:
        logging.debug(f"Для игры {game_type} нет весов в БД, используются значения по умолчанию")
        return default_weights(game_type)

    # Разрешенные призы без строки в БД считаются выключенными
    return [(key, stored.get(key, 0.0)) for key in allowed]


def exclude_prize(items: Sequence[WeightedPrize], prize_key: str) -> List[WeightedPrize]:
    """Убирает приз из списка кандидатов."""
    return [(key, weight) for key, weight in items if key != prize_key]


def calculate_probabilities(items: Sequence[WeightedPrize]) -> dict:
    """
    Рассчитывает вероятность каждого приза (от 0.0 до 1.0) по весам.
    Используется в админке для наглядности.
    """
    positive = [(key, _coerce_weight(weight)) for key, weight in items if _coerce_weight(weight) > 0]
    total = sum(weight for _, weight in positive)
    if total <= 0:
        return {key: 0.0 for key, _ in items}
    probabilities = {key: 0.0 for key, _ in items}
    for key, weight in positive:
        probabilities[key] += weight / total
    return probabilities


def pick_weighted(items: Sequence[WeightedPrize], rng: Optional[random.Random] = None) -> str:
    """
    Выбирает приз пропорционально весам.

    Записи с весом <= 0 исключаются. Если сумма весов <= 0, возвращается
    NO_PRIZE. Иначе берется r из [0, total) и последовательно уменьшается на
    вес каждой записи; побеждает первая запись, на которой остаток стал <= 0.
    Если из-за погрешности float такой записи нет, побеждает последняя.

    Args:
        items (Sequence[WeightedPrize]): Упорядоченный список (приз, вес)
        rng (Optional[random.Random]): Источник случайности (для тестов - с seed)

    Returns:
        str: Ключ выбранного приза
    """
    candidates = [(key, _coerce_weight(weight)) for key, weight in items]
    candidates = [(key, weight) for key, weight in candidates if weight > 0]
    total = sum(weight for _, weight in candidates)

    if total <= 0:
        return settings.NO_PRIZE

    source = rng or random
    r = source.random() * total
    for key, weight in candidates:
        r -= weight
        if r <= 0:
            return key

    return candidates[-1][0]
