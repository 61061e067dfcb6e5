from fastapi import APIRouter, Depends, Request, Body
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from prizestand.config import settings
from prizestand.database.db import get_session
from prizestand.services.registration_service import RegistrationService


class RegisterRequest(BaseModel):
    """Форма регистрации на стенде."""
    model_config = ConfigDict(populate_by_name=True)

    game_type: str = Field(settings.GAME_WHEEL, alias="gameType")
    name: Optional[str] = None
    rut: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    comuna: Optional[str] = None
    model_preference: Optional[str] = Field(None, alias="modelPreference")


router = APIRouter(prefix="/api", tags=["register"])


@router.post("/register")
async def register(
    request: Request,
    data: RegisterRequest = Body(...),
    session: AsyncSession = Depends(get_session),
):
    """
    Регистрирует игрока; для тёмболы выдает 4-значный код.

    Returns:
        dict: {ok: true, registrationId, code}
    """
    service = RegistrationService(session, rng=request.app.state.rng)
    result = await service.register(
        data.game_type,
        name=data.name,
        rut=data.rut,
        phone=data.phone,
        email=data.email,
        comuna=data.comuna,
        model_preference=data.model_preference,
    )
    return {"ok": True, "registrationId": result["registration_id"], "code": result["code"]}
