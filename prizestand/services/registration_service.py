import logging
import random
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from prizestand.config import settings
from prizestand.database.repositories import CampaignRepository, RegistrationRepository
from prizestand.services.errors import (
    AlreadyRegisteredError,
    CampaignInactiveError,
    CampaignNotFoundError,
    CodeAlreadyUsedError,
    CodeNotFoundError,
    CodeSpaceExhaustedError,
    StorageError,
    ValidationError,
)
from prizestand.services.play_service import check_game_type
from prizestand.utils.helpers import clean_text, normalize_code, normalize_email

ALREADY_REGISTERED_MESSAGE = "Este email ya participó en este juego."


class RegistrationService:
    """
    Регистрация игроков на стенде и выдача 4-значных кодов тёмболы.
    """

    def __init__(self, session: AsyncSession, rng: Optional[random.Random] = None, campaign_id: str = None):
        self.session = session
        self.rng = rng or random.Random()
        self.campaign_id = campaign_id or settings.CAMPAIGN_ID
        self.campaigns = CampaignRepository(session)
        self.registrations = RegistrationRepository(session)

    def _random_code(self) -> str:
        return str(self.rng.randrange(10 ** settings.CODE_LENGTH)).zfill(settings.CODE_LENGTH)

    async def register(
        self,
        game_type: str,
        name: str = None,
        rut: str = None,
        phone: str = None,
        email: str = None,
        comuna: str = None,
        model_preference: str = None,
    ) -> dict:
        """
        Регистрирует игрока: одна регистрация на email в рамках игры.

        Args:
            game_type (str): Тип игры
            name, rut, phone, email: Обязательные поля формы
            comuna, model_preference: Необязательные поля формы

        Returns:
            dict: {"registration_id": ..., "code": ...} (code только для игр по коду)

        Raises:
            AlreadyRegisteredError: Email уже зарегистрирован (содержит существующий код)
            CodeSpaceExhaustedError: Не удалось подобрать свободный код
        """
        game_type = check_game_type(game_type)
        name = clean_text(name)
        rut = clean_text(rut)
        phone = clean_text(phone)
        email = normalize_email(email)

        if not name or not rut or not phone or not email or "@" not in email:
            raise ValidationError("Faltan campos obligatorios o email inválido.")

        campaign = await self.campaigns.get(self.campaign_id)
        if campaign is None:
            raise CampaignNotFoundError("Campaña no encontrada")
        if not campaign.is_open():
            raise CampaignInactiveError("Campaña no activa")

        existing = await self.registrations.get_by_email(self.campaign_id, game_type, email)
        if existing is not None:
            raise AlreadyRegisteredError(ALREADY_REGISTERED_MESSAGE, alreadyRegistered=True, code=existing.code)

        uses_code = settings.GAME_IDENTITY[game_type] == settings.IDENTITY_CODE
        attempts = settings.CODE_GENERATION_ATTEMPTS if uses_code else 1

        for _ in range(attempts):
            code = None
            if uses_code:
                code = self._random_code()
                if await self.registrations.get_by_code(self.campaign_id, game_type, code) is not None:
                    continue

            registration = await self.registrations.create(
                campaign_id=self.campaign_id,
                game_type=game_type,
                name=name,
                rut=rut,
                phone=phone,
                email=email,
                comuna=clean_text(comuna) or None,
                model_preference=clean_text(model_preference) or None,
                code=code,
            )
            if registration is not None:
                return {"registration_id": registration.id, "code": registration.code}

            # Нарушена уникальность: либо email, либо код заняли параллельно
            existing = await self.registrations.get_by_email(self.campaign_id, game_type, email)
            if existing is not None:
                raise AlreadyRegisteredError(ALREADY_REGISTERED_MESSAGE, alreadyRegistered=True, code=existing.code)

        if uses_code:
            logging.error(f"Не удалось подобрать свободный код для {game_type} за {attempts} попыток")
            raise CodeSpaceExhaustedError("No fue posible generar un código único de 4 dígitos.")
        raise StorageError("No se pudo crear el registro")

    async def validate_code(self, code) -> dict:
        """
        Проверяет код тёмболы без погашения.

        Returns:
            dict: {"code": "0007", "registration": {"id", "name", "email"}}
        """
        normalized = normalize_code(code, settings.CODE_LENGTH)
        if normalized is None:
            raise ValidationError("Código inválido.")

        registration = await self.registrations.get_by_code(
            self.campaign_id, settings.GAME_TOMBOLA, normalized
        )
        if registration is None:
            raise CodeNotFoundError("Código no encontrado.")
        if registration.used:
            raise CodeAlreadyUsedError("Este código ya fue usado.")

        return {"code": normalized, "registration": registration.to_public_dict()}
