from schoolapi.services.promotion import PromotionService
from schoolapi.services.ranking import RankingService

__all__ = ["PromotionService", "RankingService"]
