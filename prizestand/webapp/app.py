from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import random
import uvicorn

from prizestand import __version__
from prizestand.config import settings
from prizestand.database.db import check_connection, get_session
from prizestand.services.errors import PromoError, StorageError
from prizestand.webapp.routers import play_router, tombola_router, register_router, admin_router
from prizestand.webapp.middlewares import RateLimiterMiddleware


async def promo_error_handler(request: Request, exc: PromoError) -> JSONResponse:
    """Ошибки предметной области -> {ok: false, error} с их HTTP-статусом."""
    if isinstance(exc, StorageError):
        logging.error(f"Ошибка хранилища на {request.url.path}: {exc.message}")
    else:
        logging.info(f"{type(exc).__name__} на {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Некорректное тело запроса -> 400 вместо стандартного 422."""
    details = [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"ok": False, "error": "Solicitud inválida", "details": details})


def setup_webapp(rng: random.Random = None) -> FastAPI:
    """
    Настройка FastAPI приложения.

    Args:
        rng (random.Random): Источник случайности для розыгрышей (в тестах - с seed)

    Returns:
        FastAPI: Настроенное FastAPI приложение
    """
    app = FastAPI(
        title="Prize Stand API",
        description="API промо-стенда: игры, регистрация и консоль персонала",
        version=__version__,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # 1. CORS для страниц стенда и консоли персонала
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials="*" not in settings.CORS_ORIGINS,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
    )

    # 2. Сжатие ответов
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # 3. Ограничение частоты запросов (перебор кодов и PIN)
    if settings.RATE_LIMIT_ENABLED:
        app.add_middleware(
            RateLimiterMiddleware,
            default_window_size=settings.RATE_LIMIT_DEFAULT["window_size"],
            default_max_requests=settings.RATE_LIMIT_DEFAULT["max_requests"],
            path_limits=settings.RATE_LIMIT_PATHS,
        )

    app.add_exception_handler(PromoError, promo_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Источник случайности доступен роутерам
    app.state.rng = rng

    app.include_router(play_router)
    app.include_router(tombola_router)
    app.include_router(register_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health(session: AsyncSession = Depends(get_session)):
        if not await check_connection(session):
            return JSONResponse(status_code=503, content={"ok": False, "error": "Base de datos no disponible"})
        return {"ok": True, "version": __version__}

    logging.info(f"Веб-приложение настроено, доступные игры: {settings.ENABLED_GAME_TYPES}")

    return app


async def start_webapp(app: FastAPI, host: str = None, port: int = None) -> None:
    """
    Запуск веб-сервера с приложением FastAPI.

    Args:
        app (FastAPI): Экземпляр FastAPI приложения
        host (str): Адрес, по умолчанию settings.WEBAPP_HOST
        port (int): Порт, по умолчанию settings.WEBAPP_PORT
    """
    host = host or settings.WEBAPP_HOST
    port = port or settings.WEBAPP_PORT

    config = uvicorn.Config(
        app=app,
        host=host,
        port=port,
        log_level="info" if settings.DEBUG else "warning",
        access_log=settings.DEBUG,  # Отключаем логи доступа в продакшн
        proxy_headers=True,  # Доверяем заголовкам прокси
        forwarded_allow_ips="*",  # Разрешаем все IP для заголовков X-Forwarded-*
    )
    server = uvicorn.Server(config)

    logging.info(f"Веб-сервер запускается на {host}:{port}")
    await server.serve()
    logging.info("Веб-сервер завершил работу")
