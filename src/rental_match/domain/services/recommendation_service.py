"""
Hybrid recommendation aggregation.

Three independent strategies produce scored candidates from their own pools:

* content-based: every listing in a loosely price-bounded pool is scored with
  the match scorer
* trending: most viewed listings get a popularity score
* verified-boost: verified, well rated listings get a rating score

The lists are merged by keeping the best score per listing id. The result is
cached per user in a RecommendationRecord which is regenerated when stale.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from ..entities.listing import ListingSnapshot
from ..entities.preferences import PreferenceVector
from ..entities.recommendation import (
    DEFAULT_ALGORITHM, FeedbackCounters, MatchReason, RecommendationEntry,
    RecommendationRecord, ScoredCandidate
)
from ..exceptions import RecommendationRecordNotFoundError
from ..repositories.listing_repository import ListingRepository
from ..repositories.recommendation_repository import RecommendationRepository
from .match_scorer import compute_match, round_half_up

logger = logging.getLogger(__name__)


PRICE_EXPANSION_LOW = 0.7
PRICE_EXPANSION_HIGH = 1.3


@dataclass
class RecommendationConfig:
    """Configuration for recommendation aggregation"""
    content_pool_cap: int = 100
    content_top_n: int = 30
    trending_limit: int = 10
    verified_limit: int = 10
    exclusion_window: int = 20
    merged_cap: int = 50
    comparable_cap: int = 50
    refresh_interval_hours: int = 24
    similar_default_limit: int = 6
    algorithm_version: str = DEFAULT_ALGORITHM

    @property
    def refresh_interval(self) -> timedelta:
        return timedelta(hours=self.refresh_interval_hours)


# === STRATEGIES ===

def content_price_bounds(preferences: PreferenceVector) -> Tuple[Optional[float], Optional[float]]:
    """Price band for the content pool, widened so narrow ranges still return listings."""
    if preferences.price_range is None:
        return None, None
    low = max(0, (preferences.price_range.min or 0) * PRICE_EXPANSION_LOW)
    high = preferences.price_range.upper * PRICE_EXPANSION_HIGH
    return low, high


def content_based_candidates(preferences: PreferenceVector, pool: Sequence[ListingSnapshot],
                             top_n: int = 30, now: Optional[datetime] = None) -> List[ScoredCandidate]:
    scored = []
    for listing in pool:
        if not listing.available:
            continue
        result = compute_match(preferences, listing, now)
        scored.append(ScoredCandidate(listing.id, result.score, list(result.reasons)))

    scored.sort(key=lambda candidate: candidate.score, reverse=True)
    return scored[:top_n]


def trending_candidates(pool: Sequence[ListingSnapshot], exclude: Iterable[str] = (),
                        limit: int = 10) -> List[ScoredCandidate]:
    excluded = set(exclude)
    selected = []
    for listing in pool:
        if len(selected) >= limit:
            break
        if not listing.available or listing.id in excluded:
            continue
        score = round_half_up(50 + min(listing.view_count / 10, 25))
        selected.append(ScoredCandidate(listing.id, score, [MatchReason.TRENDING]))
    return selected


def verified_candidates(pool: Sequence[ListingSnapshot], exclude: Iterable[str] = (),
                        limit: int = 10) -> List[ScoredCandidate]:
    excluded = set(exclude)
    selected = []
    for listing in pool:
        if len(selected) >= limit:
            break
        if not listing.available or not listing.verified or listing.id in excluded:
            continue
        score = min(100, round_half_up(60 + listing.average_rating * 5))
        selected.append(ScoredCandidate(
            listing.id, score, [MatchReason.OWNER_VERIFIED, MatchReason.HIGHLY_RATED]
        ))
    return selected


def merge_candidates(*candidate_lists: Sequence[ScoredCandidate], cap: int = 50) -> List[ScoredCandidate]:
    """
    Union candidate lists, one entry per listing id.

    A later entry replaces an earlier one only with a strictly higher score, so
    on equal scores the first-seen entry wins. The cap keeps the best scores;
    equal scores stay in first-seen order.
    """
    merged = {}
    for candidates in candidate_lists:
        for candidate in candidates:
            existing = merged.get(candidate.listing_id)
            if existing is None or existing.score < candidate.score:
                merged[candidate.listing_id] = candidate

    ranked = sorted(merged.values(), key=lambda candidate: candidate.score, reverse=True)
    return ranked[:cap]


async def generate_recommendations(preferences: PreferenceVector, fetcher: ListingRepository,
                                   config: Optional[RecommendationConfig] = None,
                                   now: Optional[datetime] = None) -> List[ScoredCandidate]:
    """
    Build a merged recommendation list for a preference vector.

    The three candidate pools are fetched concurrently; scoring and merging are
    pure and run after the join.
    """
    config = config or RecommendationConfig()
    min_price, max_price = content_price_bounds(preferences)

    content_pool, trending_pool, verified_pool = await asyncio.gather(
        fetcher.get_available_by_price(min_price, max_price, limit=config.content_pool_cap),
        fetcher.get_most_viewed(limit=config.trending_limit + config.exclusion_window),
        fetcher.get_verified_top_rated(
            limit=config.verified_limit + config.trending_limit + config.exclusion_window
        )
    )
    logger.debug(
        f"Candidate pools: content={len(content_pool)}, trending={len(trending_pool)}, "
        f"verified={len(verified_pool)}"
    )

    content = content_based_candidates(preferences, content_pool, top_n=config.content_top_n, now=now)
    already_selected = [candidate.listing_id for candidate in content[:config.exclusion_window]]

    trending = trending_candidates(trending_pool, exclude=already_selected, limit=config.trending_limit)
    already_selected += [candidate.listing_id for candidate in trending]

    verified = verified_candidates(verified_pool, exclude=already_selected, limit=config.verified_limit)

    return merge_candidates(content, trending, verified, cap=config.merged_cap)


# === RECORD LIFECYCLE ===

def needs_refresh(record: RecommendationRecord, force: bool = False, now: Optional[datetime] = None,
                  interval: timedelta = timedelta(hours=24)) -> bool:
    if force or record.stale or not record.entries:
        return True
    now = now or datetime.now()
    return now - record.refreshed_at > interval


async def regenerate_if_stale(record: RecommendationRecord, preferences: PreferenceVector,
                              fetcher: ListingRepository, force: bool = False,
                              now: Optional[datetime] = None,
                              config: Optional[RecommendationConfig] = None) -> RecommendationRecord:
    """Return the record unchanged when fresh, otherwise a regenerated replacement."""
    config = config or RecommendationConfig()
    now = now or datetime.now()

    if not needs_refresh(record, force=force, now=now, interval=config.refresh_interval):
        return record

    candidates = await generate_recommendations(preferences, fetcher, config=config, now=now)
    logger.info(f"Regenerated {len(candidates)} recommendations for user {record.user_id}")
    return replace(
        record,
        entries=[RecommendationEntry.from_candidate(candidate) for candidate in candidates],
        refreshed_at=now,
        stale=False,
        algorithm=config.algorithm_version
    )


def mark_viewed(record: RecommendationRecord, listing_id: str) -> RecommendationRecord:
    entries = [
        replace(entry, viewed=True) if entry.listing_id == listing_id else replace(entry)
        for entry in record.entries
    ]
    return replace(record, entries=entries)


def record_feedback(record: RecommendationRecord, helpful: bool) -> RecommendationRecord:
    counters = FeedbackCounters(
        helpful=record.feedback.helpful + (1 if helpful else 0),
        not_helpful=record.feedback.not_helpful + (0 if helpful else 1)
    )
    return replace(record, feedback=counters)


def mark_stale(record: RecommendationRecord) -> RecommendationRecord:
    return replace(record, stale=True)


def serve(entries: Sequence[RecommendationEntry], available_ids: Set[str],
          limit: int = 10) -> List[RecommendationEntry]:
    """Drop unavailable listings, best score first, truncated to limit."""
    visible = [entry for entry in entries if entry.listing_id in available_ids]
    visible.sort(key=lambda entry: entry.score, reverse=True)
    return visible[:limit]


class RecommendationService:
    """Serves cached per-user recommendations backed by a record store."""

    def __init__(self,
                 listing_repository: ListingRepository,
                 recommendation_repository: RecommendationRepository,
                 config: Optional[RecommendationConfig] = None):
        self.listing_repository = listing_repository
        self.recommendation_repository = recommendation_repository
        self.config = config or RecommendationConfig()
        self.logger = logging.getLogger(__name__)

    async def get_recommendations(self,
                                  user_id: str,
                                  preferences: PreferenceVector,
                                  limit: int = 10,
                                  refresh: bool = False,
                                  now: Optional[datetime] = None
                                  ) -> Tuple[RecommendationRecord, List[RecommendationEntry]]:
        """
        Get the served recommendation list for a user

        Args:
            user_id: Owner of the recommendation record
            preferences: Current tenant preferences
            limit: Maximum number of entries to serve
            refresh: Force regeneration regardless of freshness
            now: Reference time for staleness checks

        Returns:
            The current record and the entries served from it
        """
        now = now or datetime.now()
        record = await self.recommendation_repository.get_or_create(user_id)

        regenerated = await regenerate_if_stale(
            record, preferences, self.listing_repository,
            force=refresh, now=now, config=self.config
        )
        if regenerated is not record:
            record = await self.recommendation_repository.replace(regenerated)
        else:
            self.logger.debug(f"Serving cached recommendations for user {user_id}")

        listings = await self.listing_repository.get_by_ids(record.listing_ids())
        available_ids = {listing.id for listing in listings if listing.available}
        return record, serve(record.entries, available_ids, limit)

    async def mark_stale(self, user_id: str) -> bool:
        marked = await self.recommendation_repository.mark_stale(user_id)
        if marked:
            self.logger.info(f"Marked recommendations stale for user {user_id}")
        return marked

    async def mark_viewed(self, user_id: str, listing_id: str) -> Optional[RecommendationRecord]:
        record = await self.recommendation_repository.mark_viewed(user_id, listing_id)
        if record is None:
            self.logger.debug(f"No recommendation record to mark viewed for user {user_id}")
        return record

    async def record_feedback(self, user_id: str, helpful: bool) -> RecommendationRecord:
        record = await self.recommendation_repository.record_feedback(user_id, helpful)
        if record is None:
            raise RecommendationRecordNotFoundError(user_id)
        self.logger.info(f"Recorded feedback for user {user_id}: helpful={helpful}")
        return record
