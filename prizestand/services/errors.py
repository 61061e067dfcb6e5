"""
Ошибки сервиса промо-стенда.

Каждая ошибка знает свой HTTP-статус; маршрутизаторы превращают их в
ответ {ok: false, error}. "Уже играл" ошибкой не является и возвращается
как обычный результат игры.
"""


class PromoError(Exception):
    """Базовая ошибка предметной области."""

    status_code = 500

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_payload(self) -> dict:
        return {"ok": False, "error": self.message, **self.extra}


class ValidationError(PromoError):
    """Неверные или отсутствующие данные запроса."""

    status_code = 400


class AuthError(PromoError):
    """Неверный PIN администратора."""

    status_code = 401


class NotFoundError(PromoError):
    status_code = 404


class CampaignNotFoundError(NotFoundError):
    pass


class CodeNotFoundError(NotFoundError):
    pass


class ConflictError(PromoError):
    """Конфликт состояния: показывать дружелюбное сообщение, а не ошибку."""

    status_code = 409


class CodeAlreadyUsedError(ConflictError):
    pass


class AlreadyRegisteredError(ConflictError):
    pass


class CampaignInactiveError(ConflictError):
    pass


class CodeSpaceExhaustedError(PromoError):
    status_code = 503


class StorageError(PromoError):
    """Сбой хранилища; сообщение передается как есть для диагностики."""

    status_code = 500


# Код не найден или уже погашен
NotFoundOrUsedError = (CodeNotFoundError, CodeAlreadyUsedError)
