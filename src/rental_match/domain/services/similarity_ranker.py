import logging
from typing import List, Sequence

from ..entities.listing import ListingSnapshot

logger = logging.getLogger(__name__)


DEFAULT_SIMILAR_LIMIT = 6
PRICE_BAND = 0.3


def in_similarity_pool(reference: ListingSnapshot, candidate: ListingSnapshot) -> bool:
    """Same city or state, available, and priced within 30% of the reference."""
    if candidate.id == reference.id or not candidate.available:
        return False
    if not (candidate.location.same_city(reference.location) or candidate.location.same_state(reference.location)):
        return False
    low = reference.price * (1 - PRICE_BAND)
    high = reference.price * (1 + PRICE_BAND)
    return low <= candidate.price <= high


def score_similarity(reference: ListingSnapshot, candidate: ListingSnapshot) -> float:
    score = 0.0

    if candidate.location.same_city(reference.location):
        score += 30
    if candidate.location.same_state(reference.location):
        score += 10

    if reference.price > 0:
        price_diff = abs(candidate.price - reference.price) / reference.price
        score += (1 - price_diff) * 20

    if candidate.bedrooms == reference.bedrooms:
        score += 15

    reference_amenities = set(reference.amenities)
    overlap = len(set(candidate.amenities) & reference_amenities)
    score += overlap / max(len(reference_amenities), 1) * 25

    return score


def rank_similar(reference: ListingSnapshot, candidate_pool: Sequence[ListingSnapshot],
                 limit: int = DEFAULT_SIMILAR_LIMIT) -> List[str]:
    """
    Rank listings similar to a reference listing.

    Args:
        reference: Listing being browsed
        candidate_pool: Listings to rank; filtered to the similarity pool first
        limit: Number of listing ids to return

    Returns:
        Listing ids ordered by descending similarity (input order on ties)
    """
    scored = [
        (candidate.id, score_similarity(reference, candidate))
        for candidate in candidate_pool
        if in_similarity_pool(reference, candidate)
    ]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    logger.debug(f"Ranked {len(scored)} similar candidates for listing {reference.id}")
    return [listing_id for listing_id, _ in scored[:limit]]
