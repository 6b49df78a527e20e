"""
Smart match scoring between tenant preferences and listing snapshots.

The score is a weighted blend of five sub-scores, each on a 0-100 scale:

* price (25%)
* location (25%)
* rooms (20%)
* amenities (20%)
* bonus factors (10%)

Every sub-score has a neutral value for missing preferences so a partially
filled preference vector never raises.
"""

import math
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from ..entities.listing import ListingSnapshot, ListingLocation
from ..entities.preferences import PreferenceVector
from ..entities.recommendation import MatchReason
from .geo import distance_between

logger = logging.getLogger(__name__)


WEIGHTS = {
    "price": 25,
    "location": 25,
    "rooms": 20,
    "amenities": 20,
    "bonus": 10,
}

NEUTRAL_SCORE = 50
REASON_THRESHOLD = 80

BONUS_VERIFIED = 30
BONUS_HIGHLY_RATED = 30
BONUS_AVAILABLE_NOW = 20
BONUS_TRENDING = 20
HIGH_RATING = 4.0
TRENDING_VIEWS = 100


@dataclass(frozen=True)
class MatchResult:
    score: int
    reasons: List[MatchReason] = field(default_factory=list)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def price_subscore(preferences: PreferenceVector, price: float) -> float:
    if not preferences.has_price_range():
        return NEUTRAL_SCORE

    min_price = preferences.price_range.lower
    max_price = preferences.price_range.upper

    if min_price <= price <= max_price:
        range_half = (max_price - min_price) / 2
        if range_half <= 0:
            return 100.0
        midpoint = (min_price + max_price) / 2
        proximity = 1 - abs(price - midpoint) / range_half
        return 80 + proximity * 20

    if price < min_price:
        under_pct = (min_price - price) / min_price
        return max(0.0, 70 - under_pct * 100)

    # Over budget is penalised harder than under budget
    over_pct = (price - max_price) / max_price
    return max(0.0, 60 - over_pct * 150)


def location_subscore(preferences: PreferenceVector, location: ListingLocation) -> float:
    if preferences.preferred_locations:
        wanted = [ListingLocation(city=loc.city, state=loc.state) for loc in preferences.preferred_locations]
        if any(location.same_city(loc) for loc in wanted):
            score = 100.0
        elif any(location.same_state(loc) for loc in wanted):
            score = 70.0
        else:
            score = 0.0
    else:
        score = float(NEUTRAL_SCORE)

    if preferences.has_proximity() and location.coordinates is not None:
        max_distance = preferences.max_distance_km
        distance = distance_between(preferences.anchor, location.coordinates)
        if distance <= max_distance:
            proximity = 100 - (distance / max_distance) * 40
            score = max(score, proximity)
        else:
            score = max(0.0, score - 30)

    return score


def rooms_subscore(preferences: PreferenceVector, bedrooms: int) -> float:
    if not preferences.has_room_range():
        return NEUTRAL_SCORE

    min_rooms = preferences.preferred_rooms.lower
    max_rooms = preferences.preferred_rooms.upper

    if min_rooms <= bedrooms <= max_rooms:
        return 100.0
    if bedrooms < min_rooms:
        return max(0.0, 80 - (min_rooms - bedrooms) * 20)
    # Extra rooms are penalised less than missing ones
    return max(0.0, 80 - (bedrooms - max_rooms) * 15)


def amenities_subscore(preferences: PreferenceVector, amenities: List[str]) -> float:
    required = preferences.required_amenities
    if not required:
        return NEUTRAL_SCORE
    if not amenities:
        return 20.0

    offered = set(amenities)
    matched = sum(1 for amenity in required if amenity in offered)
    return float(round_half_up(matched / len(required) * 100))


def bonus_subscore(listing: ListingSnapshot, now: Optional[datetime] = None) -> Tuple[float, List[MatchReason]]:
    bonus = 0
    reasons = []

    if listing.verified:
        bonus += BONUS_VERIFIED
        reasons.append(MatchReason.OWNER_VERIFIED)
    if listing.average_rating >= HIGH_RATING:
        bonus += BONUS_HIGHLY_RATED
        reasons.append(MatchReason.HIGHLY_RATED)
    if listing.is_available_now(now):
        bonus += BONUS_AVAILABLE_NOW
        reasons.append(MatchReason.QUICK_AVAILABILITY)
    if listing.view_count > TRENDING_VIEWS:
        bonus += BONUS_TRENDING
        reasons.append(MatchReason.TRENDING)

    return float(min(bonus, 100)), reasons


def compute_match(preferences: Optional[PreferenceVector], listing: Optional[ListingSnapshot],
                  now: Optional[datetime] = None) -> MatchResult:
    """
    Score how well a listing fits a tenant's preferences.

    Args:
        preferences: Tenant preference vector
        listing: Listing snapshot to score
        now: Reference time for the availability bonus (defaults to now)

    Returns:
        MatchResult with an integer score in [0, 100] and ordered reason tags
    """
    if preferences is None or listing is None:
        return MatchResult(score=0, reasons=[])

    total = 0.0
    reasons = []

    weighted = [
        ("price", price_subscore(preferences, listing.price), MatchReason.PRICE_MATCH),
        ("location", location_subscore(preferences, listing.location), MatchReason.LOCATION_MATCH),
        ("rooms", rooms_subscore(preferences, listing.bedrooms), MatchReason.ROOMS_MATCH),
        ("amenities", amenities_subscore(preferences, listing.amenities), MatchReason.AMENITIES_MATCH),
    ]
    for factor, subscore, reason in weighted:
        total += subscore * WEIGHTS[factor] / 100
        if subscore >= REASON_THRESHOLD:
            reasons.append(reason)

    bonus, bonus_reasons = bonus_subscore(listing, now)
    total += bonus * WEIGHTS["bonus"] / 100
    reasons.extend(bonus_reasons)

    score = round_half_up(min(max(total, 0.0), 100.0))
    return MatchResult(score=score, reasons=reasons)


def top_matches(preferences: Optional[PreferenceVector], listings: List[ListingSnapshot],
                limit: int = 10, now: Optional[datetime] = None) -> List[Tuple[ListingSnapshot, MatchResult]]:
    """Best matching listings first; ties keep input order."""
    if preferences is None:
        return [(listing, MatchResult(score=0)) for listing in listings[:limit]]

    scored = [(listing, compute_match(preferences, listing, now)) for listing in listings]
    scored.sort(key=lambda pair: pair[1].score, reverse=True)
    logger.debug(f"Scored {len(scored)} listings, returning top {limit}")
    return scored[:limit]
