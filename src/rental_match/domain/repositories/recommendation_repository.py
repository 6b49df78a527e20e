from abc import ABC, abstractmethod
from typing import Optional

from ..entities.recommendation import RecommendationRecord


class RecommendationRepository(ABC):
    """Store for per-user recommendation records.

    View and feedback updates must be atomic on the stored record so they are
    not lost when a regeneration races with them.
    """

    @abstractmethod
    async def get(self, user_id: str) -> Optional[RecommendationRecord]:
        pass

    @abstractmethod
    async def get_or_create(self, user_id: str) -> RecommendationRecord:
        pass

    @abstractmethod
    async def replace(self, record: RecommendationRecord) -> RecommendationRecord:
        """Overwrite entries, refreshed_at and the stale flag in one step."""
        pass

    @abstractmethod
    async def mark_stale(self, user_id: str) -> bool:
        pass

    @abstractmethod
    async def mark_viewed(self, user_id: str, listing_id: str) -> Optional[RecommendationRecord]:
        pass

    @abstractmethod
    async def record_feedback(self, user_id: str, helpful: bool) -> Optional[RecommendationRecord]:
        pass
