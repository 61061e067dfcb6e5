"""
Проведение игры: проверка игрока, решение окна выдачи, розыгрыш и запись
результата одной транзакцией.

Вся координация между параллельными запросами лежит в БД:
- уникальный индекс plays (кампания, игра, регистрация) - одна игра на игрока;
- условное обновление release_window по version - один принудительный приз на окно;
- условное погашение кода (used = false) - один розыгрыш на код.
"""

import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from prizestand.config import settings
from prizestand.database.models import Campaign, Registration
from prizestand.database.repositories import (
    CampaignRepository,
    PlayRepository,
    PrizeWeightRepository,
    RegistrationRepository,
    ReleaseWindowRepository,
)
from prizestand.services.errors import (
    CampaignInactiveError,
    CampaignNotFoundError,
    CodeAlreadyUsedError,
    CodeNotFoundError,
    PromoError,
    StorageError,
    ValidationError,
)
from prizestand.utils.helpers import clean_text, format_log_message, normalize_code, normalize_email
from prizestand.utils.probability_manager import WeightedPrize, exclude_prize, normalize_weights, pick_weighted
from prizestand.utils.release_window import ReleaseWindowState, WindowDecision

STATUS_AWARDED = "AWARDED"
STATUS_ALREADY_PLAYED = "ALREADY_PLAYED"

ALREADY_PLAYED_MESSAGES = {
    settings.GAME_WHEEL: "Ya participaste en la ruleta.",
}
DEFAULT_ALREADY_PLAYED_MESSAGE = "Ya participaste en esta campaña. ¡Gracias por jugar!"


@dataclass
class PlayOutcome:
    """Результат игры. ALREADY_PLAYED - штатный исход, а не ошибка."""

    status: str
    game_type: str
    prize_key: Optional[str] = None
    message: Optional[str] = None
    forced: bool = False
    registration_id: Optional[int] = None

    @property
    def is_awarded(self) -> bool:
        return self.status == STATUS_AWARDED

    @classmethod
    def already_played(cls, game_type: str, registration_id: Optional[int] = None) -> "PlayOutcome":
        return cls(
            status=STATUS_ALREADY_PLAYED,
            game_type=game_type,
            message=ALREADY_PLAYED_MESSAGES.get(game_type, DEFAULT_ALREADY_PLAYED_MESSAGE),
            registration_id=registration_id,
        )

    def to_payload(self) -> dict:
        if self.is_awarded:
            return {"ok": True, "prize_key": self.prize_key}
        return {"ok": False, "reason": STATUS_ALREADY_PLAYED, "message": self.message}


def check_game_type(game_type: Optional[str]) -> str:
    """
    Проверяет, что тип игры известен и включен в этом развертывании.

    Returns:
        str: Тип игры в нижнем регистре
    """
    value = clean_text(game_type).lower()
    if value not in settings.ENABLED_GAME_TYPES:
        raise ValidationError("gameType inválido para este endpoint")
    return value


class PlayService:
    def __init__(self, session: AsyncSession, rng: Optional[random.Random] = None, campaign_id: str = None):
        """
        Args:
            session (AsyncSession): Сессия БД (одна на запрос)
            rng (Optional[random.Random]): Источник случайности, в тестах - с фиксированным seed
            campaign_id (str): Кампания, по умолчанию settings.CAMPAIGN_ID
        """
        self.session = session
        self.rng = rng or random.Random()
        self.campaign_id = campaign_id or settings.CAMPAIGN_ID
        self.campaigns = CampaignRepository(session)
        self.registrations = RegistrationRepository(session)
        self.windows = ReleaseWindowRepository(session)
        self.weights = PrizeWeightRepository(session)
        self.plays = PlayRepository(session)

    async def play(
        self,
        game_type: str,
        email: str = None,
        name: str = None,
        rut: str = None,
        phone: str = None,
        comuna: str = None,
        model_preference: str = None,
        code: str = None,
    ) -> PlayOutcome:
        """
        Проводит игру для игрока, идентифицированного email или кодом
        (в зависимости от типа игры).

        Returns:
            PlayOutcome: AWARDED с призом или ALREADY_PLAYED

        Raises:
            PromoError: Ошибки валидации, кампании, кода или хранилища
        """
        game_type = check_game_type(game_type)

        if settings.GAME_IDENTITY[game_type] == settings.IDENTITY_CODE:
            return await self.play_with_code(game_type, code)

        return await self.play_with_email(
            game_type,
            email=email,
            name=name,
            rut=rut,
            phone=phone,
            comuna=comuna,
            model_preference=model_preference,
        )

    async def play_with_email(
        self,
        game_type: str,
        email: str = None,
        name: str = None,
        rut: str = None,
        phone: str = None,
        comuna: str = None,
        model_preference: str = None,
    ) -> PlayOutcome:
        """Игра по email: регистрация создается при первой игре."""
        name = clean_text(name)
        email = normalize_email(email)
        if not name or not email or "@" not in email:
            raise ValidationError("Nombre y email válidos son requeridos")

        campaign = await self._get_campaign()
        if not campaign.is_open():
            raise CampaignInactiveError("Campaña no activa")

        registration = await self._get_or_create_registration(
            game_type,
            email=email,
            name=name,
            rut=clean_text(rut) or None,
            phone=clean_text(phone) or None,
            comuna=clean_text(comuna) or None,
            model_preference=clean_text(model_preference) or None,
        )

        existing = await self.plays.get_for_registration(self.campaign_id, game_type, registration.id)
        if existing is not None:
            logging.info(f"Регистрация {registration.id} уже играла в {game_type}")
            return PlayOutcome.already_played(game_type, registration.id)

        outcome = await self._award(game_type, registration)
        if outcome is None:
            # Параллельный запрос успел записать игру первым
            return PlayOutcome.already_played(game_type, registration.id)
        return outcome

    async def play_with_code(self, game_type: str, code: str) -> PlayOutcome:
        """Игра по одноразовому коду тёмболы."""
        normalized = normalize_code(code, settings.CODE_LENGTH)
        if normalized is None:
            raise ValidationError("Código inválido.")

        await self._get_campaign()

        registration = await self.registrations.get_by_code(self.campaign_id, game_type, normalized)
        if registration is None:
            raise CodeNotFoundError("Código no encontrado.")
        if registration.used:
            raise CodeAlreadyUsedError("Este código ya fue usado.")

        outcome = await self._award(game_type, registration, redeem_code=True)
        if outcome is None:
            raise CodeAlreadyUsedError("Este código ya fue usado.")
        return outcome

    async def _get_campaign(self) -> Campaign:
        campaign = await self.campaigns.get(self.campaign_id)
        if campaign is None:
            raise CampaignNotFoundError("Campaña no encontrada")
        return campaign

    async def _get_or_create_registration(self, game_type: str, email: str, **fields) -> Registration:
        registration = await self.registrations.get_by_email(self.campaign_id, game_type, email)
        if registration is not None:
            return registration

        registration = await self.registrations.create(
            campaign_id=self.campaign_id, game_type=game_type, email=email, **fields
        )
        if registration is not None:
            return registration

        # Регистрацию с тем же email только что создал параллельный запрос
        registration = await self.registrations.get_by_email(self.campaign_id, game_type, email)
        if registration is None:
            raise StorageError("No se pudo crear el registro")
        return registration

    async def _award(self, game_type: str, registration: Registration, redeem_code: bool = False) -> Optional[PlayOutcome]:
        """
        Транзакция выдачи приза: погашение кода, окно выдачи, розыгрыш и запись игры.

        Returns:
            Optional[PlayOutcome]: Результат или None, если игра для регистрации уже записана
                (транзакция при этом откатана, окно выдачи не изменилось)
        """
        try:
            weights = normalize_weights(
                game_type, await self.weights.list_for_game(self.campaign_id, game_type)
            )

            if redeem_code and not await self.registrations.mark_code_used(registration.id):
                await self.session.rollback()
                raise CodeAlreadyUsedError("Este código ya fue usado.")

            prize_key, forced = await self._draw(game_type, weights)

            play = await self.plays.insert(
                self.campaign_id, game_type, registration.id, prize_key, forced=forced
            )
            if play is None:
                return None

            await self.session.commit()
        except PromoError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            logging.error(f"Ошибка при записи игры регистрации {registration.id}: {e}")
            raise StorageError(str(e)) from e

        logging.info(format_log_message(
            "Приз выдан",
            {
                "campaign": self.campaign_id,
                "game": game_type,
                "registration": registration.id,
                "prize": prize_key,
                "forced": forced,
            },
        ))
        return PlayOutcome(
            status=STATUS_AWARDED,
            game_type=game_type,
            prize_key=prize_key,
            forced=forced,
            registration_id=registration.id,
        )

    async def _draw(self, game_type: str, weights: List[WeightedPrize]) -> Tuple[str, bool]:
        """
        Решает, какой приз выдать, и фиксирует переход окна выдачи (без commit).

        Returns:
            Tuple[str, bool]: Ключ приза и признак принудительной выдачи
        """
        # Игры без дефицитного приза окно выдачи не расходуют
        if settings.SCARCE_PRIZE not in settings.ALLOWED_PRIZES.get(game_type, []):
            return pick_weighted(weights, self.rng), False

        for attempt in range(settings.RELEASE_WINDOW_CAS_RETRIES):
            row = await self.windows.get(self.campaign_id)
            state, decision = ReleaseWindowState.from_row(row).consume()

            if decision == WindowDecision.DRAW_NORMAL:
                return pick_weighted(weights, self.rng), False

            if await self.windows.compare_and_set(self.campaign_id, row.version, state):
                if decision == WindowDecision.FORCE:
                    logging.info(f"Окно выдачи кампании {self.campaign_id} закрыто: выдается {settings.SCARCE_PRIZE}")
                    return settings.SCARCE_PRIZE, True
                return self._draw_without_scarce(weights), False

            logging.warning(
                f"Окно выдачи кампании {self.campaign_id} изменено параллельно, повтор (попытка {attempt + 1})"
            )

        raise StorageError("No se pudo actualizar la ventana de entrega, intenta nuevamente")

    def _draw_without_scarce(self, weights: List[WeightedPrize]) -> str:
        return pick_weighted(exclude_prize(weights, settings.SCARCE_PRIZE), self.rng)
