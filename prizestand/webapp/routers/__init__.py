"""
Пакет routers содержит модули маршрутизации для API FastAPI.
"""

from .play import router as play_router
from .tombola import router as tombola_router
from .register import router as register_router
from .admin import router as admin_router

__all__ = ['play_router', 'tombola_router', 'register_router', 'admin_router']
