from fastapi import Request

from ...domain.services.listing_insight_service import ListingInsightService
from ...domain.services.recommendation_service import RecommendationService


def get_repository_factory(request: Request):
    """Dependency to get repository factory from app state"""
    return request.app.state.repository_factory


def get_recommendation_service(request: Request) -> RecommendationService:
    return get_repository_factory(request).get_recommendation_service()


def get_listing_insight_service(request: Request) -> ListingInsightService:
    return get_repository_factory(request).get_listing_insight_service()
