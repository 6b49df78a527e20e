from .listing_repository import ListingRepository
from .recommendation_repository import RecommendationRepository

__all__ = ['ListingRepository', 'RecommendationRepository']
