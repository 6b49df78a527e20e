from abc import ABC, abstractmethod
from typing import List, Optional

from ..entities.listing import ListingSnapshot


class ListingRepository(ABC):
    """Read-only source of listing snapshots and candidate pools."""

    @abstractmethod
    async def get_by_id(self, listing_id: str) -> Optional[ListingSnapshot]:
        pass

    @abstractmethod
    async def get_by_ids(self, listing_ids: List[str]) -> List[ListingSnapshot]:
        pass

    @abstractmethod
    async def get_available_by_price(self, min_price: Optional[float], max_price: Optional[float],
                                     limit: int = 100) -> List[ListingSnapshot]:
        """Available listings in the price band, newest first."""
        pass

    @abstractmethod
    async def get_most_viewed(self, limit: int = 30) -> List[ListingSnapshot]:
        """Available listings ordered by view count then recency."""
        pass

    @abstractmethod
    async def get_verified_top_rated(self, limit: int = 40) -> List[ListingSnapshot]:
        """Available verified listings ordered by rating then recency."""
        pass

    @abstractmethod
    async def get_comparable_pool(self, listing: ListingSnapshot, limit: int = 50) -> List[ListingSnapshot]:
        pass

    @abstractmethod
    async def get_similar_pool(self, reference: ListingSnapshot, limit: int = 18) -> List[ListingSnapshot]:
        pass

    @abstractmethod
    async def get_by_location(self, city: Optional[str], state: Optional[str],
                              limit: int = 500) -> List[ListingSnapshot]:
        pass
