import time
from typing import Callable, Dict, List, Tuple
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import logging
from collections import defaultdict


class RateLimiter:
    """
    Скользящее окно запросов для каждого клиента.
    Состояние хранится в памяти процесса: это защита стенда от перебора
    кодов и PIN, а не общий для всех инстансов лимит.
    """

    def __init__(self, window_size: int = 60, max_requests: int = 60):
        """
        Args:
            window_size (int): Размер временного окна в секундах
            max_requests (int): Максимальное количество запросов в окне
        """
        self.window_size = window_size
        self.max_requests = max_requests
        self.clients: Dict[str, List[float]] = defaultdict(list)

    def is_allowed(self, client_id: str, now: float = None) -> Tuple[bool, Dict]:
        """
        Учитывает запрос клиента, если лимит не превышен.

        Args:
            client_id (str): Идентификатор клиента
            now (float): Текущее время (для тестов)

        Returns:
            Tuple[bool, Dict]: (разрешено, информация о лимите)
        """
        current_time = time.time() if now is None else now

        # Отбрасываем запросы за пределами окна
        timestamps = [t for t in self.clients[client_id] if current_time - t < self.window_size]
        self.clients[client_id] = timestamps

        if len(timestamps) >= self.max_requests:
            reset_time = min(timestamps) + self.window_size
            return False, {
                "limit": self.max_requests,
                "remaining": 0,
                "reset": reset_time,
                "time_remaining": round(max(0, reset_time - current_time), 2),
            }

        timestamps.append(current_time)
        return True, {
            "limit": self.max_requests,
            "remaining": self.max_requests - len(timestamps),
            "reset": min(timestamps) + self.window_size,
            "time_remaining": 0,
        }

    def cleanup(self, max_idle_time: int = 3600):
        """Удаляет клиентов без запросов за max_idle_time секунд."""
        current_time = time.time()
        inactive = [
            client_id for client_id, timestamps in self.clients.items()
            if not timestamps or current_time - max(timestamps) > max_idle_time
        ]
        for client_id in inactive:
            del self.clients[client_id]


class RateLimiterMiddleware(BaseHTTPMiddleware):
    """
    Ограничивает частоту запросов к API. Для отдельных префиксов
    (админка, коды тёмболы) действуют более строгие лимиты.
    """

    def __init__(
        self,
        app,
        default_window_size: int = 60,
        default_max_requests: int = 60,
        include_prefix: str = "/api/",
        path_limits: Dict[str, Tuple[int, int]] = None,
    ):
        """
        Args:
            app: FastAPI приложение
            default_window_size (int): Окно по умолчанию в секундах
            default_max_requests (int): Лимит по умолчанию
            include_prefix (str): Ограничиваются только пути с этим префиксом
            path_limits (Dict[str, Tuple[int, int]]): {префикс: (окно_в_секундах, макс_запросов)}
        """
        super().__init__(app)
        self.include_prefix = include_prefix
        self.default_limiter = RateLimiter(default_window_size, default_max_requests)
        self.path_limiters = {
            prefix: RateLimiter(window, max_requests)
            for prefix, (window, max_requests) in (path_limits or {}).items()
        }
        self._requests_seen = 0

    async def dispatch(self, request: Request, call_next: Callable):
        path = request.url.path
        if not path.startswith(self.include_prefix):
            return await call_next(request)

        client_id = self._get_client_id(request)
        limiter = self._get_limiter_for_path(path)
        allowed, limit_info = limiter.is_allowed(client_id)

        # Периодически очищаем неактивных клиентов
        self._requests_seen += 1
        if self._requests_seen % 1000 == 0:
            limiter.cleanup()

        if not allowed:
            logging.warning(f"Превышен лимит запросов для {client_id} на {path}")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "ok": False,
                    "error": f"Demasiadas solicitudes. Intenta de nuevo en {limit_info['time_remaining']} segundos.",
                },
                headers={"Retry-After": str(int(limit_info["time_remaining"]) + 1)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit_info["limit"])
        response.headers["X-RateLimit-Remaining"] = str(limit_info["remaining"])
        response.headers["X-RateLimit-Reset"] = str(int(limit_info["reset"]))
        return response

    def _get_client_id(self, request: Request) -> str:
        """IP клиента; за прокси берется первый адрес из X-Forwarded-For."""
        client_host = request.client.host if request.client else "unknown"
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            client_host = forwarded_for.split(",")[0].strip()
        return f"ip:{client_host}"

    def _get_limiter_for_path(self, path: str) -> RateLimiter:
        for prefix, limiter in self.path_limiters.items():
            if path.startswith(prefix):
                return limiter
        return self.default_limiter
