"""
Машина состояний окна выдачи дефицитного приза.

Состояния: DISABLED и ACTIVE(remaining > 0). Администратор включает окно на
N квалифицирующих игр; каждая такая игра уменьшает счетчик, а игра, на
которой счетчик доходит до 1, получает приз принудительно и закрывает окно.

Класс ничего не знает о БД: переход вычисляется здесь, а сохраняется
репозиторием условным обновлением по полю version.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from prizestand.config import settings


class WindowDecision(str, Enum):
    DRAW_NORMAL = "DRAW_NORMAL"  # Окно закрыто: обычный розыгрыш по всем весам
    DRAW_WITHOUT_SCARCE = "DRAW_WITHOUT_SCARCE"  # Окно открыто: розыгрыш без дефицитного приза
    FORCE = "FORCE"  # Последняя игра окна: выдать дефицитный приз


def clamp_spins(value) -> int:
    """Ограничивает размер окна диапазоном [1, 200]."""
    try:
        spins = int(value)
    except (TypeError, ValueError, OverflowError):
        spins = settings.RELEASE_WINDOW_DEFAULT_SPINS
    return max(settings.RELEASE_WINDOW_MIN_SPINS, min(settings.RELEASE_WINDOW_MAX_SPINS, spins))


@dataclass(frozen=True)
class ReleaseWindowState:
    is_enabled: bool = False
    remaining_spins: int = 0

    @classmethod
    def disabled(cls) -> "ReleaseWindowState":
        return cls(is_enabled=False, remaining_spins=0)

    @classmethod
    def from_row(cls, row) -> "ReleaseWindowState":
        """Строит состояние из строки release_window (None - окно не создавалось)."""
        if row is None:
            return cls.disabled()
        return cls(is_enabled=bool(row.is_enabled), remaining_spins=int(row.remaining_spins or 0))

    @property
    def is_active(self) -> bool:
        return self.is_enabled

    def activate(self, spins) -> "ReleaseWindowState":
        """Включает окно на N игр; предыдущий счетчик сбрасывается."""
        return ReleaseWindowState(is_enabled=True, remaining_spins=clamp_spins(spins))

    def deactivate(self) -> "ReleaseWindowState":
        """Отменяет окно, текущий счетчик отбрасывается."""
        return ReleaseWindowState.disabled()

    def consume(self) -> Tuple["ReleaseWindowState", WindowDecision]:
        """
        Учитывает одну квалифицирующую игру.

        Returns:
            Tuple[ReleaseWindowState, WindowDecision]: Новое состояние и решение для этой игры
        """
        if not self.is_enabled:
            return self, WindowDecision.DRAW_NORMAL

        # Включенное окно с нулем считаем последней игрой, чтобы приз не потерялся
        if self.remaining_spins <= 1:
            return ReleaseWindowState.disabled(), WindowDecision.FORCE

        return (
            ReleaseWindowState(is_enabled=True, remaining_spins=self.remaining_spins - 1),
            WindowDecision.DRAW_WITHOUT_SCARCE,
        )
