from .postgres_listing_repository import PostgresListingRepository
from .redis_recommendation_repository import RedisRecommendationRepository

__all__ = ['PostgresListingRepository', 'RedisRecommendationRepository']
