# Data infrastructure layer
from .config import AppConfig, DatabaseConfig, RedisConfig
from .repository_factory import (
    RepositoryFactory,
    get_repository_factory,
    close_repository_factory
)
from .repositories import PostgresListingRepository, RedisRecommendationRepository

__all__ = [
    # Configuration
    'AppConfig',
    'DatabaseConfig',
    'RedisConfig',

    # Factory and management
    'RepositoryFactory',
    'get_repository_factory',
    'close_repository_factory',

    # Repository implementations
    'PostgresListingRepository',
    'RedisRecommendationRepository'
]
