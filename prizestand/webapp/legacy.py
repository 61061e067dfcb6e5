"""
Совместимость со старыми версиями консоли персонала.

Ранние консоли читали плоские счетчики (BACKPACK, WHEEL, TOTAL, ...) и
поле todayChile. Сервисы возвращают каноническую структуру, а старые ключи
добавляются только здесь, на границе HTTP.
"""

from typing import Any, Dict


def legacy_counts(counts: Dict[str, Any]) -> Dict[str, int]:
    """Разворачивает счетчики в плоский словарь с ключами в верхнем регистре."""
    flat = {}
    for prize_key, count in counts.get("by_prize", {}).items():
        flat[prize_key.upper()] = count
    for game_type, count in counts.get("by_game", {}).items():
        flat[game_type.upper()] = count
    flat["TOTAL"] = counts.get("total", 0)
    return flat


def status_payload(status: Dict[str, Any]) -> Dict[str, Any]:
    """
    Ответ /api/admin/status: канонические поля плюс поля старой консоли.

    Args:
        status: Результат AdminService.get_status()

    Returns:
        Dict[str, Any]: JSON-ответ
    """
    counts = status["counts"]
    return {
        "ok": True,
        "release": status["release"],
        "counts": {**counts, **legacy_counts(counts)},
        "todayLocalDate": status["today_local_date"],
        "todayChile": status["today_local_date"],
    }
