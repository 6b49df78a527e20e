"""
Recommendation API router for per-user recommendation lists.

This module provides endpoints for fetching (and refreshing) a user's
recommendations, tracking viewed listings, collecting feedback and
finding listings similar to a given one.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from ....domain.exceptions import (
    InvalidPreferencesError,
    ListingNotFoundError,
    RecommendationRecordNotFoundError
)
from ....domain.services.listing_insight_service import ListingInsightService
from ....domain.services.recommendation_service import RecommendationService
from ...dto.recommendation_dto import (
    RecommendationRequest, RecommendationResponse,
    FeedbackRequest, FeedbackResponse, StatusResponse,
    ListingSummary, SimilarListingsResponse
)
from ..dependencies import get_recommendation_service, get_listing_insight_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/similar/{listing_id}", response_model=SimilarListingsResponse)
async def get_similar_listings(
    listing_id: str,
    limit: int = Query(6, ge=1, le=50, description="Number of similar listings to return"),
    service: ListingInsightService = Depends(get_listing_insight_service)
):
    """Get listings similar to the given one, best match first"""
    try:
        similar = await service.similar_listings(listing_id, limit=limit)
    except ListingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return SimilarListingsResponse(
        listing_id=listing_id,
        similar=[ListingSummary.from_listing(listing) for listing in similar]
    )


@router.post("/{user_id}", response_model=RecommendationResponse)
async def get_recommendations(
    user_id: str,
    recommendation_request: RecommendationRequest,
    service: RecommendationService = Depends(get_recommendation_service)
):
    """
    Get personalized recommendations for a user.

    The cached list is regenerated when it is missing, stale, older than the
    refresh interval or when `refresh` is set. Listings that are no longer
    available are filtered out at serve time.
    """
    try:
        preferences = recommendation_request.preferences.to_domain()
    except InvalidPreferencesError as e:
        raise HTTPException(status_code=400, detail=str(e))

    record, served = await service.get_recommendations(
        user_id,
        preferences,
        limit=recommendation_request.limit,
        refresh=recommendation_request.refresh
    )
    logger.info(f"Served {len(served)} recommendations to user {user_id}")
    return RecommendationResponse.from_record(record, served)


@router.post("/{user_id}/view/{listing_id}", response_model=StatusResponse)
async def mark_listing_viewed(
    user_id: str,
    listing_id: str,
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Mark a recommended listing as viewed"""
    await service.mark_viewed(user_id, listing_id)
    return StatusResponse(message="Listing marked as viewed")


@router.post("/{user_id}/feedback", response_model=FeedbackResponse)
async def submit_feedback(
    user_id: str,
    feedback: FeedbackRequest,
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Record whether a user's recommendations were helpful"""
    if feedback.helpful is None:
        raise HTTPException(status_code=400, detail="Helpful flag is required")

    try:
        record = await service.record_feedback(user_id, feedback.helpful)
    except RecommendationRecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return FeedbackResponse(
        helpful=record.feedback.helpful,
        not_helpful=record.feedback.not_helpful
    )


@router.post("/{user_id}/stale", response_model=StatusResponse)
async def mark_recommendations_stale(
    user_id: str,
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Flag a user's recommendations for regeneration on next request"""
    marked = await service.mark_stale(user_id)
    message = "Recommendations marked for refresh" if marked else "No recommendations to refresh"
    return StatusResponse(success=True, message=message)
