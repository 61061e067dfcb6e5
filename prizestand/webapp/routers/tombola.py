from fastapi import APIRouter, Depends, Request, Body
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from prizestand.config import settings
from prizestand.database.db import get_session
from prizestand.services.play_service import PlayService
from prizestand.services.registration_service import RegistrationService


class CodeRequest(BaseModel):
    code: Optional[str] = Field(None, description="Код тёмболы (1-4 цифры)")

    @field_validator("code", mode="before")
    @classmethod
    def code_to_str(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


router = APIRouter(prefix="/api/tombola", tags=["tombola"])


@router.post("/validate-code")
async def validate_code(data: CodeRequest = Body(...), session: AsyncSession = Depends(get_session)):
    """
    Проверяет код без погашения.

    Returns:
        dict: {ok: true, code, registration: {id, name, email}}
    """
    result = await RegistrationService(session).validate_code(data.code)
    return {"ok": True, **result}


@router.post("/play")
async def play_tombola(
    request: Request,
    data: CodeRequest = Body(...),
    session: AsyncSession = Depends(get_session),
):
    """Гасит код и разыгрывает приз."""
    service = PlayService(session, rng=request.app.state.rng)
    outcome = await service.play(settings.GAME_TOMBOLA, code=data.code)
    return outcome.to_payload()
