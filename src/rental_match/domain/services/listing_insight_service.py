import logging
from typing import List, Optional

from ..entities.listing import ListingSnapshot
from ..entities.preferences import PreferenceVector
from ..exceptions import ListingNotFoundError
from ..repositories.listing_repository import ListingRepository
from .match_scorer import MatchResult, compute_match
from .price_fairness import FairnessAssessment, PriceStats, assess_price_fairness, location_price_stats
from .recommendation_service import RecommendationConfig
from .similarity_ranker import rank_similar


class ListingInsightService:
    """Per-listing match, price fairness and similarity lookups"""

    def __init__(self, listing_repository: ListingRepository,
                 config: Optional[RecommendationConfig] = None):
        self.listing_repository = listing_repository
        self.config = config or RecommendationConfig()
        self.logger = logging.getLogger(__name__)

    async def _require_listing(self, listing_id: str) -> ListingSnapshot:
        listing = await self.listing_repository.get_by_id(listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        return listing

    async def match_listing(self, listing_id: str, preferences: PreferenceVector) -> MatchResult:
        listing = await self._require_listing(listing_id)
        return compute_match(preferences, listing)

    async def assess_price(self, listing_id: str) -> FairnessAssessment:
        listing = await self._require_listing(listing_id)
        pool = await self.listing_repository.get_comparable_pool(listing, limit=self.config.comparable_cap)
        assessment = assess_price_fairness(listing, pool, cap=self.config.comparable_cap)
        self.logger.debug(
            f"Price fairness for listing {listing_id}: {assessment.label} "
            f"(percentile={assessment.percentile})"
        )
        return assessment

    async def similar_listings(self, listing_id: str, limit: Optional[int] = None) -> List[ListingSnapshot]:
        limit = limit or self.config.similar_default_limit
        reference = await self._require_listing(listing_id)
        # Over-fetch so ranking has room to reorder
        pool = await self.listing_repository.get_similar_pool(reference, limit=limit * 3)
        ranked_ids = rank_similar(reference, pool, limit=limit)
        by_id = {listing.id: listing for listing in pool}
        return [by_id[ranked_id] for ranked_id in ranked_ids]

    async def area_price_stats(self, city: Optional[str], state: Optional[str],
                               bedrooms: Optional[int] = None) -> Optional[PriceStats]:
        pool = await self.listing_repository.get_by_location(city, state)
        return location_price_stats(pool, city, state, bedrooms=bedrooms)
