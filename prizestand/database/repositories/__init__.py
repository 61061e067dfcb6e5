from prizestand.database.repositories.campaign_repository import CampaignRepository
from prizestand.database.repositories.registration_repository import RegistrationRepository
from prizestand.database.repositories.release_window_repository import ReleaseWindowRepository
from prizestand.database.repositories.prize_weight_repository import PrizeWeightRepository
from prizestand.database.repositories.play_repository import PlayRepository

__all__ = [
    "CampaignRepository",
    "RegistrationRepository",
    "ReleaseWindowRepository",
    "PrizeWeightRepository",
    "PlayRepository",
]
