import logging
from typing import Optional

from .config import AppConfig, DatabaseManager, RedisManager
from .repositories.postgres_listing_repository import PostgresListingRepository
from .repositories.redis_recommendation_repository import RedisRecommendationRepository
from ..domain.services.listing_insight_service import ListingInsightService
from ..domain.services.recommendation_service import RecommendationService

logger = logging.getLogger(__name__)


class RepositoryFactory:
    """Factory for creating and managing repository instances"""

    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config or AppConfig()
        self.db_manager: Optional[DatabaseManager] = None
        self.redis_manager: Optional[RedisManager] = None

        # Repository instances
        self._listing_repository: Optional[PostgresListingRepository] = None
        self._recommendation_repository: Optional[RedisRecommendationRepository] = None

        self._initialized = False

    async def initialize(self):
        """Initialize all data connections and repositories"""
        if self._initialized:
            logger.warning("Repository factory already initialized")
            return

        try:
            self.db_manager = DatabaseManager(self.config.database)
            pool = await self.db_manager.initialize()

            self.redis_manager = RedisManager(self.config.redis)
            redis_client = await self.redis_manager.initialize()

            self._listing_repository = PostgresListingRepository(pool)
            self._recommendation_repository = RedisRecommendationRepository(
                redis_client,
                algorithm=self.config.engine.algorithm_version
            )

            self._initialized = True
            logger.info("Repository factory initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize repository factory: {e}")
            raise

    async def close(self):
        """Close all connections and cleanup"""
        try:
            if self.db_manager:
                await self.db_manager.close()

            if self.redis_manager:
                await self.redis_manager.close()

            self._initialized = False
            logger.info("Repository factory closed successfully")

        except Exception as e:
            logger.error(f"Error closing repository factory: {e}")
            raise

    def get_listing_repository(self) -> PostgresListingRepository:
        """Get listing repository instance"""
        if not self._initialized or not self._listing_repository:
            raise RuntimeError("Repository factory not initialized or listing repository not available")
        return self._listing_repository

    def get_recommendation_repository(self) -> RedisRecommendationRepository:
        """Get recommendation record repository instance"""
        if not self._initialized or not self._recommendation_repository:
            raise RuntimeError("Repository factory not initialized or recommendation repository not available")
        return self._recommendation_repository

    def get_recommendation_service(self) -> RecommendationService:
        return RecommendationService(
            self.get_listing_repository(),
            self.get_recommendation_repository(),
            config=self.config.engine
        )

    def get_listing_insight_service(self) -> ListingInsightService:
        return ListingInsightService(self.get_listing_repository(), config=self.config.engine)

    async def health_check(self) -> dict:
        """Perform health check on all repositories"""
        health_status = {
            "database": False,
            "redis": False,
            "overall": False
        }

        try:
            if self._listing_repository:
                db_health = await self._listing_repository.health_check()
                health_status["database"] = db_health.get("status") == "healthy"

            if self.redis_manager and self.redis_manager.client:
                health_status["redis"] = bool(await self.redis_manager.client.ping())

            health_status["overall"] = health_status["database"] and health_status["redis"]

        except Exception as e:
            logger.error(f"Health check failed: {e}")
            health_status["error"] = str(e)

        return health_status

    def is_initialized(self) -> bool:
        """Check if factory is initialized"""
        return self._initialized


# Global repository factory instance
_repository_factory: Optional[RepositoryFactory] = None


async def get_repository_factory(config: Optional[AppConfig] = None) -> RepositoryFactory:
    """Get or create the global repository factory instance"""
    global _repository_factory

    if _repository_factory is None:
        _repository_factory = RepositoryFactory(config)
        await _repository_factory.initialize()

    return _repository_factory


async def close_repository_factory():
    """Close the global repository factory instance"""
    global _repository_factory

    if _repository_factory:
        await _repository_factory.close()
        _repository_factory = None
