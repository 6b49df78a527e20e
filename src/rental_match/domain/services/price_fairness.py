"""
Price fairness assessment against comparable listings.

A listing's price is ranked inside a peer group of similar listings (same city
or state, +/-1 bedroom, same property type). The percentile rank selects a
fairness bucket, and a z-score check overrides the bucket for extreme
outliers.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from ..entities.listing import ListingSnapshot, ListingLocation
from .match_scorer import round_half_up

logger = logging.getLogger(__name__)


COMPARABLE_CAP = 50
SAME_CITY_MIN = 5
MIN_COMPARABLES = 3
OUTLIER_Z = 2.0

INSUFFICIENT_DATA = "Insufficient Data"
UNKNOWN = "Unknown"
UNUSUALLY_LOW = "Unusually Low"
OVERPRICED = "Overpriced"

# (inclusive percentile upper bound, score, label)
FAIRNESS_BUCKETS = [
    (20, 95, "Great Deal"),
    (40, 85, "Good Value"),
    (60, 75, "Fair Price"),
    (80, 55, "Above Average"),
    (90, 40, "Premium Price"),
]
TOP_BUCKET = (25, "High End")


@dataclass(frozen=True)
class PriceStats:
    mean: float
    median: float
    min: float
    max: float
    std_dev: float
    count: int


@dataclass(frozen=True)
class PriceComparison:
    sample_size: int
    average_price: int
    median_price: int
    min_price: float
    max_price: float
    listing_price: float
    price_difference: float
    price_difference_percent: int


@dataclass(frozen=True)
class FairnessAssessment:
    score: int
    label: str
    percentile: int
    comparison: Optional[PriceComparison] = None


def select_comparables(listing: ListingSnapshot, pool: Sequence[ListingSnapshot],
                       cap: int = COMPARABLE_CAP) -> List[ListingSnapshot]:
    """
    Choose the peer group used to judge a listing's price.

    Candidates share the listing's city or state, are within one bedroom and
    have the same property type. When at least five of them are in the same
    city, only those are used.
    """
    low = max(0, listing.bedrooms - 1)
    high = listing.bedrooms + 1

    candidates = []
    for other in pool:
        if other.id == listing.id or not other.available:
            continue
        if not (other.location.same_city(listing.location) or other.location.same_state(listing.location)):
            continue
        if not low <= other.bedrooms <= high:
            continue
        if listing.property_type and other.property_type != listing.property_type:
            continue
        candidates.append(other)
        if len(candidates) >= cap:
            break

    same_city = [other for other in candidates if other.location.same_city(listing.location)]
    if len(same_city) >= SAME_CITY_MIN:
        return same_city
    return candidates


def price_stats(prices: Sequence[float]) -> PriceStats:
    """Mean, median, range and sample standard deviation of a price list."""
    values = np.asarray(prices, dtype=float)
    std_dev = float(np.std(values, ddof=1)) if values.size > 1 else 0.0
    return PriceStats(
        mean=float(np.mean(values)),
        median=float(np.median(values)),
        min=float(np.min(values)),
        max=float(np.max(values)),
        std_dev=std_dev,
        count=int(values.size)
    )


def price_percentile(price: float, prices: Sequence[float]) -> int:
    """Tie-adjusted percentile rank: equal prices count half."""
    values = np.asarray(prices, dtype=float)
    below = int(np.sum(values < price))
    equal = int(np.sum(values == price))
    return round_half_up((below + 0.5 * equal) / values.size * 100)


def fairness_bucket(percentile: int):
    for upper, score, label in FAIRNESS_BUCKETS:
        if percentile <= upper:
            return score, label
    return TOP_BUCKET


def z_score(price: float, stats: PriceStats) -> float:
    if stats.std_dev <= 0:
        return 0.0
    return (price - stats.mean) / stats.std_dev


def assess_price_fairness(listing: ListingSnapshot, comparable_pool: Sequence[ListingSnapshot],
                          cap: int = COMPARABLE_CAP) -> FairnessAssessment:
    """
    Judge whether a listing's price is fair relative to its peers.

    Args:
        listing: Listing to assess
        comparable_pool: Candidate peers; the comparable set is selected from it
        cap: Maximum number of comparables considered

    Returns:
        FairnessAssessment with score, label, percentile and a comparison
        payload computed from the same comparable set
    """
    if not listing.price or listing.price <= 0:
        return FairnessAssessment(score=50, label=UNKNOWN, percentile=50)

    comparables = select_comparables(listing, comparable_pool, cap=cap)
    if len(comparables) < MIN_COMPARABLES:
        logger.debug(f"Only {len(comparables)} comparables for listing {listing.id}")
        return FairnessAssessment(score=50, label=INSUFFICIENT_DATA, percentile=50)

    prices = [other.price for other in comparables]
    stats = price_stats(prices)
    percentile = price_percentile(listing.price, prices)
    score, label = fairness_bucket(percentile)

    z = z_score(listing.price, stats)
    if abs(z) > OUTLIER_Z:
        if z < 0:
            score = min(score, 90)
            label = UNUSUALLY_LOW
        else:
            score = max(20, score - 20)
            label = OVERPRICED

    difference = listing.price - stats.mean
    comparison = PriceComparison(
        sample_size=stats.count,
        average_price=round_half_up(stats.mean),
        median_price=round_half_up(stats.median),
        min_price=stats.min,
        max_price=stats.max,
        listing_price=listing.price,
        price_difference=round(difference, 2),
        price_difference_percent=round_half_up(difference / stats.mean * 100) if stats.mean else 0
    )
    return FairnessAssessment(score=score, label=label, percentile=percentile, comparison=comparison)


def location_price_stats(pool: Sequence[ListingSnapshot], city: Optional[str], state: Optional[str],
                         bedrooms: Optional[int] = None) -> Optional[PriceStats]:
    """Price statistics for available listings in a city or state."""
    area = ListingLocation(city=city, state=state)
    prices = [
        listing.price for listing in pool
        if listing.available
        and (listing.location.same_city(area) or listing.location.same_state(area))
        and (bedrooms is None or listing.bedrooms == bedrooms)
    ]
    if not prices:
        return None
    return price_stats(prices)
