from prizestand.database.models.campaign import Campaign
from prizestand.database.models.registration import Registration
from prizestand.database.models.release_window import ReleaseWindow
from prizestand.database.models.prize_weight import PrizeWeight
from prizestand.database.models.play import Play

__all__ = ["Campaign", "Registration", "ReleaseWindow", "PrizeWeight", "Play"]
