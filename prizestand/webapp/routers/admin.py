from fastapi import APIRouter, Depends, Body
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
import logging

from prizestand.database.db import get_session
from prizestand.services.admin_service import AdminService
from prizestand.services.errors import ValidationError
from prizestand.webapp.legacy import status_payload


class AdminRequest(BaseModel):
    pin: Optional[str] = Field(None, description="PIN персонала")


class ReleaseRequest(AdminRequest):
    model_config = ConfigDict(populate_by_name=True)

    enable: bool = False
    remaining_spins: Optional[float] = Field(None, alias="remainingSpins", allow_inf_nan=False)


class PrizeWeightsRequest(AdminRequest):
    action: Optional[str] = Field(None, description="get | save")
    # Строки проверяются сервисом целиком, чтобы вернуть все ошибки сразу
    items: Optional[List[Dict[str, Any]]] = None


router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/status")
async def admin_status(data: AdminRequest = Body(...), session: AsyncSession = Depends(get_session)):
    """Окно выдачи и счетчики за сегодня (по местному времени)."""
    service = AdminService(session)
    service.check_pin(data.pin)
    return status_payload(await service.get_status())


@router.post("/release")
async def admin_release(data: ReleaseRequest = Body(...), session: AsyncSession = Depends(get_session)):
    """Включает или отменяет окно выдачи."""
    service = AdminService(session)
    service.check_pin(data.pin)
    release = await service.set_release_window(data.enable, data.remaining_spins)
    return {"ok": True, "release": release}


@router.post("/prize-weights")
async def admin_prize_weights(data: PrizeWeightsRequest = Body(...), session: AsyncSession = Depends(get_session)):
    """
    Чтение (action=get) или сохранение (action=save) весов призов.

    Returns:
        dict: {ok: true, items} или {ok: true, saved}
    """
    service = AdminService(session)
    service.check_pin(data.pin)

    if data.action == "get":
        return {"ok": True, "items": await service.get_prize_weights()}

    if data.action == "save":
        saved = await service.save_prize_weights(data.items)
        return {"ok": True, "saved": saved}

    logging.warning(f"Неизвестное действие с весами призов: {data.action}")
    raise ValidationError("Acción no válida")
