# Matching, fairness and recommendation services
from .geo import haversine_km, distance_between
from .match_scorer import MatchResult, compute_match, top_matches
from .price_fairness import (
    PriceStats,
    PriceComparison,
    FairnessAssessment,
    select_comparables,
    price_stats,
    price_percentile,
    assess_price_fairness,
    location_price_stats
)
from .similarity_ranker import rank_similar, score_similarity
from .recommendation_service import (
    RecommendationConfig,
    RecommendationService,
    content_based_candidates,
    trending_candidates,
    verified_candidates,
    merge_candidates,
    generate_recommendations,
    needs_refresh,
    regenerate_if_stale,
    mark_viewed,
    record_feedback,
    serve
)
from .listing_insight_service import ListingInsightService

__all__ = [
    'haversine_km',
    'distance_between',
    'MatchResult',
    'compute_match',
    'top_matches',
    'PriceStats',
    'PriceComparison',
    'FairnessAssessment',
    'select_comparables',
    'price_stats',
    'price_percentile',
    'assess_price_fairness',
    'location_price_stats',
    'rank_similar',
    'score_similarity',
    'RecommendationConfig',
    'RecommendationService',
    'content_based_candidates',
    'trending_candidates',
    'verified_candidates',
    'merge_candidates',
    'generate_recommendations',
    'needs_refresh',
    'regenerate_if_stale',
    'mark_viewed',
    'record_feedback',
    'serve',
    'ListingInsightService'
]
