"""
Listing API router for per-listing match scores and price insights.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ....domain.exceptions import InvalidPreferencesError, ListingNotFoundError
from ....domain.services.listing_insight_service import ListingInsightService
from ...dto.listing_dto import MatchResponse, PriceFairnessResponse, PriceStatsResponse
from ...dto.recommendation_dto import PreferenceVectorModel
from ..dependencies import get_listing_insight_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/price-stats", response_model=PriceStatsResponse)
async def get_price_stats(
    city: Optional[str] = Query(None, description="City to aggregate"),
    state: Optional[str] = Query(None, description="State to aggregate"),
    bedrooms: Optional[int] = Query(None, ge=0, description="Restrict to this bedroom count"),
    service: ListingInsightService = Depends(get_listing_insight_service)
):
    """Get summary price statistics for available listings in an area"""
    if not city and not state:
        raise HTTPException(status_code=400, detail="City or state is required")

    stats = await service.area_price_stats(city, state, bedrooms=bedrooms)
    return PriceStatsResponse.from_stats(city, state, bedrooms, stats)


@router.get("/{listing_id}/price-fairness", response_model=PriceFairnessResponse)
async def get_price_fairness(
    listing_id: str,
    service: ListingInsightService = Depends(get_listing_insight_service)
):
    """Assess how a listing's price compares to similar listings nearby"""
    try:
        assessment = await service.assess_price(listing_id)
    except ListingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return PriceFairnessResponse.from_assessment(listing_id, assessment)


@router.post("/{listing_id}/match", response_model=MatchResponse)
async def match_listing(
    listing_id: str,
    preferences: PreferenceVectorModel,
    service: ListingInsightService = Depends(get_listing_insight_service)
):
    """Score a single listing against tenant preferences"""
    try:
        result = await service.match_listing(listing_id, preferences.to_domain())
    except InvalidPreferencesError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ListingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return MatchResponse.from_result(listing_id, result)
