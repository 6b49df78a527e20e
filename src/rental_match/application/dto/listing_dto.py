from typing import List, Optional
from pydantic import BaseModel, Field

from ...domain.services.match_scorer import MatchResult
from ...domain.services.price_fairness import FairnessAssessment, PriceStats


class MatchResponse(BaseModel):
    listing_id: str
    score: int = Field(..., ge=0, le=100)
    reasons: List[str]

    @classmethod
    def from_result(cls, listing_id: str, result: MatchResult) -> "MatchResponse":
        return cls(
            listing_id=listing_id,
            score=result.score,
            reasons=[reason.value for reason in result.reasons]
        )


class PriceComparisonModel(BaseModel):
    sample_size: int
    average_price: int
    median_price: int
    min_price: float
    max_price: float
    listing_price: float
    price_difference: float
    price_difference_percent: int


class PriceFairnessResponse(BaseModel):
    listing_id: str
    score: int
    label: str
    percentile: int = Field(..., ge=0, le=100)
    comparison: Optional[PriceComparisonModel] = None

    @classmethod
    def from_assessment(cls, listing_id: str, assessment: FairnessAssessment) -> "PriceFairnessResponse":
        comparison = None
        if assessment.comparison is not None:
            c = assessment.comparison
            comparison = PriceComparisonModel(
                sample_size=c.sample_size,
                average_price=c.average_price,
                median_price=c.median_price,
                min_price=c.min_price,
                max_price=c.max_price,
                listing_price=c.listing_price,
                price_difference=c.price_difference,
                price_difference_percent=c.price_difference_percent
            )
        return cls(
            listing_id=listing_id,
            score=assessment.score,
            label=assessment.label,
            percentile=assessment.percentile,
            comparison=comparison
        )


class PriceStatsModel(BaseModel):
    mean: float
    median: float
    min: float
    max: float
    std_dev: float
    count: int


class PriceStatsResponse(BaseModel):
    city: Optional[str] = None
    state: Optional[str] = None
    bedrooms: Optional[int] = None
    stats: Optional[PriceStatsModel] = None

    @classmethod
    def from_stats(cls, city: Optional[str], state: Optional[str], bedrooms: Optional[int],
                   stats: Optional[PriceStats]) -> "PriceStatsResponse":
        return cls(
            city=city,
            state=state,
            bedrooms=bedrooms,
            stats=PriceStatsModel(
                mean=round(stats.mean, 2),
                median=round(stats.median, 2),
                min=stats.min,
                max=stats.max,
                std_dev=round(stats.std_dev, 2),
                count=stats.count
            ) if stats else None
        )
