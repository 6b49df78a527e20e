from .listing import GeoPoint, ListingLocation, ListingSnapshot
from .preferences import PriceRange, RoomRange, PreferredLocation, PreferenceVector
from .recommendation import (
    MatchReason,
    ScoredCandidate,
    RecommendationEntry,
    FeedbackCounters,
    RecommendationRecord,
    DEFAULT_ALGORITHM
)

__all__ = [
    'GeoPoint',
    'ListingLocation',
    'ListingSnapshot',
    'PriceRange',
    'RoomRange',
    'PreferredLocation',
    'PreferenceVector',
    'MatchReason',
    'ScoredCandidate',
    'RecommendationEntry',
    'FeedbackCounters',
    'RecommendationRecord',
    'DEFAULT_ALGORITHM'
]
