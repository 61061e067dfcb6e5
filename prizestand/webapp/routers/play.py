from fastapi import APIRouter, Depends, Request, Body
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from prizestand.config import settings
from prizestand.database.db import get_session
from prizestand.services.play_service import PlayService


class PlayRequest(BaseModel):
    """Тело запроса на игру: email-поля для колеса и слотов, code для тёмболы."""
    model_config = ConfigDict(populate_by_name=True)

    game_type: Optional[str] = Field(None, alias="gameType", description="Тип игры")
    name: Optional[str] = None
    rut: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    comuna: Optional[str] = None
    model_preference: Optional[str] = Field(None, alias="modelPreference")
    code: Optional[str] = Field(None, description="Код тёмболы (1-4 цифры)")

    @field_validator("code", mode="before")
    @classmethod
    def code_to_str(cls, v):
        """Стенд может прислать код числом."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


router = APIRouter(prefix="/api", tags=["play"])


async def run_play(request: Request, session: AsyncSession, data: PlayRequest, game_type: str) -> dict:
    service = PlayService(session, rng=request.app.state.rng)
    outcome = await service.play(
        game_type,
        email=data.email,
        name=data.name,
        rut=data.rut,
        phone=data.phone,
        comuna=data.comuna,
        model_preference=data.model_preference,
        code=data.code,
    )
    return outcome.to_payload()


@router.post("/play")
async def play(
    request: Request,
    data: PlayRequest = Body(...),
    session: AsyncSession = Depends(get_session),
):
    """
    Универсальная игра: тип игры берется из поля gameType.

    Returns:
        dict: {ok: true, prize_key} или {ok: false, reason: "ALREADY_PLAYED", message}
    """
    return await run_play(request, session, data, data.game_type)


@router.post("/wheel/play")
async def play_wheel(
    request: Request,
    data: PlayRequest = Body(...),
    session: AsyncSession = Depends(get_session),
):
    """Игра на колесе (gameType из тела игнорируется)."""
    return await run_play(request, session, data, settings.GAME_WHEEL)
