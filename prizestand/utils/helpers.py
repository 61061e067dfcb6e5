import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Optional, Tuple
from zoneinfo import ZoneInfo

CODE_PATTERN = re.compile(r"[0-9]{1,4}")


def format_log_message(message: str, extra: Optional[Dict[str, Any]] = None) -> str:
    """
    Форматирует сообщение для логирования с дополнительными параметрами.

    Args:
        message (str): Основное сообщение
        extra (Optional[Dict[str, Any]]): Дополнительные параметры

    Returns:
        str: Отформатированное сообщение для лога
    """
    if extra:
        return f"{message} | {' | '.join([f'{k}={v}' for k, v in extra.items()])}"
    return message


def utcnow() -> datetime:
    """Текущее время в UTC (с часовым поясом)."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite возвращает наивные даты - считаем их UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_today(tz_name: str, now: Optional[datetime] = None) -> date:
    """
    Возвращает текущую календарную дату в заданном часовом поясе.

    Args:
        tz_name (str): Имя часового пояса (например, America/Santiago)
        now (Optional[datetime]): Момент времени, по умолчанию текущий

    Returns:
        date: Локальная дата
    """
    now = as_utc(now or utcnow())
    return now.astimezone(ZoneInfo(tz_name)).date()


def local_day_bounds(day: date, tz_name: str) -> Tuple[datetime, datetime]:
    """
    Границы локального календарного дня в UTC: [начало дня, начало следующего дня).

    Args:
        day (date): Локальная дата
        tz_name (str): Имя часового пояса

    Returns:
        Tuple[datetime, datetime]: Начало и конец дня в UTC
    """
    tz = ZoneInfo(tz_name)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def normalize_code(raw: Any, length: int = 4) -> Optional[str]:
    """
    Приводит введенный код к 4 цифрам с ведущими нулями ("7" -> "0007").

    Returns:
        Optional[str]: Нормализованный код или None, если формат неверный
    """
    value = str(raw if raw is not None else "").strip()
    if not CODE_PATTERN.fullmatch(value):
        return None
    return value.zfill(length)


def normalize_email(raw: Any) -> str:
    return str(raw if raw is not None else "").strip().lower()


def clean_text(raw: Any) -> str:
    return str(raw if raw is not None else "").strip()
