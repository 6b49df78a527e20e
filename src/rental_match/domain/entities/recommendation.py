from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional
from datetime import datetime
from enum import Enum


DEFAULT_ALGORITHM = "smart_match_v1"


class MatchReason(Enum):
    """Explainability tags attached to scored listings"""
    PRICE_MATCH = "price_match"
    LOCATION_MATCH = "location_match"
    ROOMS_MATCH = "rooms_match"
    AMENITIES_MATCH = "amenities_match"
    OWNER_VERIFIED = "owner_verified"
    HIGHLY_RATED = "highly_rated"
    QUICK_AVAILABILITY = "quick_availability"
    TRENDING = "trending"


@dataclass(frozen=True)
class ScoredCandidate:
    listing_id: str
    score: int
    reasons: List[MatchReason]


@dataclass
class RecommendationEntry:
    listing_id: str
    score: int
    reasons: List[MatchReason] = field(default_factory=list)
    viewed: bool = False

    @classmethod
    def from_candidate(cls, candidate: ScoredCandidate) -> "RecommendationEntry":
        return cls(
            listing_id=candidate.listing_id,
            score=candidate.score,
            reasons=list(candidate.reasons)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "listing_id": self.listing_id,
            "score": self.score,
            "reasons": [reason.value for reason in self.reasons],
            "viewed": self.viewed
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecommendationEntry":
        return cls(
            listing_id=str(data["listing_id"]),
            score=int(data["score"]),
            reasons=[MatchReason(value) for value in data.get("reasons", [])],
            viewed=bool(data.get("viewed", False))
        )


@dataclass
class FeedbackCounters:
    helpful: int = 0
    not_helpful: int = 0


@dataclass
class RecommendationRecord:
    """Per-user cached recommendation list.

    Entries hold unique listing ids with integer scores in [0, 100]. The record
    is replaced wholesale on regeneration and otherwise only changes through
    view and feedback events.
    """
    user_id: str
    entries: List[RecommendationEntry]
    refreshed_at: datetime
    algorithm: str = DEFAULT_ALGORITHM
    stale: bool = False
    feedback: FeedbackCounters = field(default_factory=FeedbackCounters)
    # Count of stale marks seen when the record was loaded
    stale_version: int = 0

    @classmethod
    def create(cls, user_id: str, algorithm: str = DEFAULT_ALGORITHM,
               now: Optional[datetime] = None):
        return cls(
            user_id=user_id,
            entries=[],
            refreshed_at=now or datetime.now(),
            algorithm=algorithm
        )

    def listing_ids(self) -> List[str]:
        return [entry.listing_id for entry in self.entries]

    def get_entry(self, listing_id: str) -> Optional[RecommendationEntry]:
        for entry in self.entries:
            if entry.listing_id == listing_id:
                return entry
        return None
