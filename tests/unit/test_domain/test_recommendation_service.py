"""
Unit tests for recommendation aggregation and the record lifecycle.

Tests the three candidate strategies, merging, staleness, serve-time
filtering and the RecommendationService orchestration.
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

from rental_match.domain.entities.recommendation import (
    FeedbackCounters, MatchReason, RecommendationEntry, RecommendationRecord, ScoredCandidate
)
from rental_match.domain.exceptions import RecommendationRecordNotFoundError
from rental_match.domain.services.recommendation_service import (
    RecommendationConfig, RecommendationService, content_based_candidates,
    content_price_bounds, generate_recommendations, mark_stale, mark_viewed,
    merge_candidates, needs_refresh, record_feedback, regenerate_if_stale,
    serve, trending_candidates, verified_candidates
)
from tests.utils.data_factories import ListingFactory, PreferenceFactory, FactoryConfig


NOW = datetime(2024, 6, 1, 12, 0, 0)


def _record(entries=None, refreshed_at=NOW, stale=False, feedback=None):
    return RecommendationRecord(
        user_id="user-1",
        entries=entries if entries is not None else [RecommendationEntry("a", 80), RecommendationEntry("b", 60)],
        refreshed_at=refreshed_at,
        stale=stale,
        feedback=feedback or FeedbackCounters()
    )


class TestCandidateStrategies:

    def setup_method(self):
        self.factory = ListingFactory(FactoryConfig(seed=42))
        self.preferences = PreferenceFactory().create(cities=["Addis Ababa"], amenities=["wifi"])

    def test_content_price_bounds(self):
        low, high = content_price_bounds(self.preferences)

        assert low == pytest.approx(1400)
        assert high == pytest.approx(5200)
        assert content_price_bounds(PreferenceFactory().create(price=None)) == (None, None)

    def test_content_candidates_sorted_and_truncated(self):
        pool = self.factory.create_batch(40) + [self.factory.create(available=False)]
        candidates = content_based_candidates(self.preferences, pool, top_n=30, now=NOW)

        scores = [candidate.score for candidate in candidates]
        assert len(candidates) == 30
        assert scores == sorted(scores, reverse=True)
        assert pool[-1].id not in {candidate.listing_id for candidate in candidates}

    def test_trending_scores(self):
        popular = self.factory.create(view_count=150)
        viral = self.factory.create(view_count=5000)
        excluded = self.factory.create(view_count=900)
        unavailable = self.factory.create(view_count=900, available=False)

        candidates = trending_candidates(
            [popular, viral, excluded, unavailable], exclude=[excluded.id], limit=10
        )

        assert [(c.listing_id, c.score) for c in candidates] == [(popular.id, 65), (viral.id, 75)]
        assert all(c.reasons == [MatchReason.TRENDING] for c in candidates)

    def test_trending_limit(self):
        pool = self.factory.create_batch(15, view_count=200)
        assert len(trending_candidates(pool, limit=10)) == 10

    def test_verified_scores(self):
        rated = self.factory.create(verified=True, average_rating=4.5)
        perfect = self.factory.create(verified=True, average_rating=9.0)
        unverified = self.factory.create(verified=False, average_rating=5.0)

        candidates = verified_candidates([rated, perfect, unverified])

        assert [(c.listing_id, c.score) for c in candidates] == [(rated.id, 83), (perfect.id, 100)]
        assert candidates[0].reasons == [MatchReason.OWNER_VERIFIED, MatchReason.HIGHLY_RATED]


class TestMergeCandidates:

    def test_keeps_maximum_score_per_listing(self):
        content = [ScoredCandidate("a", 70, [MatchReason.PRICE_MATCH]), ScoredCandidate("b", 90, [])]
        trending = [ScoredCandidate("a", 75, [MatchReason.TRENDING]), ScoredCandidate("c", 60, [])]
        verified = [ScoredCandidate("b", 83, []), ScoredCandidate("c", 85, [])]

        merged = merge_candidates(content, trending, verified)

        assert [(c.listing_id, c.score) for c in merged] == [("b", 90), ("c", 85), ("a", 75)]
        assert merged[2].reasons == [MatchReason.TRENDING]

    def test_first_seen_wins_on_tie(self):
        content = [ScoredCandidate("a", 75, [MatchReason.PRICE_MATCH])]
        trending = [ScoredCandidate("a", 75, [MatchReason.TRENDING])]

        merged = merge_candidates(content, trending)

        assert len(merged) == 1
        assert merged[0].reasons == [MatchReason.PRICE_MATCH]

    def test_cap(self):
        candidates = [ScoredCandidate(str(i), 50, []) for i in range(80)]
        merged = merge_candidates(candidates, cap=50)

        assert len(merged) == 50
        assert [c.listing_id for c in merged] == [str(i) for i in range(50)]

    def test_cap_keeps_highest_scores_across_lists(self):
        content = [ScoredCandidate(f"content-{i}", 10, []) for i in range(3)]
        trending = [ScoredCandidate(f"trending-{i}", 90, [MatchReason.TRENDING]) for i in range(3)]

        merged = merge_candidates(content, trending, cap=3)

        assert [c.score for c in merged] == [90, 90, 90]
        assert [c.listing_id for c in merged] == ["trending-0", "trending-1", "trending-2"]


class TestGenerateRecommendations:

    def setup_method(self):
        self.factory = ListingFactory(FactoryConfig(seed=42))
        self.preferences = PreferenceFactory().create(cities=["Addis Ababa"])

    @pytest.mark.asyncio
    async def test_fetches_pools_with_configured_limits(self, mock_listing_repository):
        await generate_recommendations(self.preferences, mock_listing_repository, now=NOW)

        args, kwargs = mock_listing_repository.get_available_by_price.call_args
        assert args[0] == pytest.approx(1400)
        assert args[1] == pytest.approx(5200)
        assert kwargs == {"limit": 100}
        mock_listing_repository.get_most_viewed.assert_called_once_with(limit=30)
        mock_listing_repository.get_verified_top_rated.assert_called_once_with(limit=40)

    @pytest.mark.asyncio
    async def test_trending_excludes_content_top(self, mock_listing_repository):
        shared = self.factory.create(price=3000.0, city="Addis Ababa", view_count=500)
        trending_only = self.factory.create(price=9000.0, city="Hawassa", view_count=300)
        verified_only = self.factory.create(verified=True, average_rating=4.0, view_count=0)

        mock_listing_repository.get_available_by_price.return_value = [shared]
        mock_listing_repository.get_most_viewed.return_value = [shared, trending_only]
        mock_listing_repository.get_verified_top_rated.return_value = [trending_only, verified_only]

        merged = await generate_recommendations(self.preferences, mock_listing_repository, now=NOW)
        by_id = {candidate.listing_id: candidate for candidate in merged}

        assert set(by_id) == {shared.id, trending_only.id, verified_only.id}
        assert [c.score for c in merged] == sorted((c.score for c in merged), reverse=True)
        assert MatchReason.PRICE_MATCH in by_id[shared.id].reasons
        assert by_id[trending_only.id].reasons == [MatchReason.TRENDING]
        assert by_id[verified_only.id].score == 80

    @pytest.mark.asyncio
    async def test_empty_pools(self, mock_listing_repository):
        merged = await generate_recommendations(self.preferences, mock_listing_repository, now=NOW)
        assert merged == []


class TestRecordLifecycle:

    def setup_method(self):
        self.preferences = PreferenceFactory().create()

    def test_needs_refresh(self):
        assert not needs_refresh(_record(), now=NOW + timedelta(hours=1))
        assert needs_refresh(_record(refreshed_at=NOW - timedelta(hours=25)), now=NOW)
        assert needs_refresh(_record(stale=True), now=NOW)
        assert needs_refresh(_record(entries=[]), now=NOW)
        assert needs_refresh(_record(), force=True, now=NOW)

    @pytest.mark.asyncio
    async def test_fresh_record_returned_unchanged(self, mock_listing_repository):
        record = _record()
        result = await regenerate_if_stale(record, self.preferences, mock_listing_repository, now=NOW)

        assert result is record
        mock_listing_repository.get_available_by_price.assert_not_called()

    @pytest.mark.asyncio
    async def test_old_record_regenerated(self, mock_listing_repository):
        listing = ListingFactory(FactoryConfig(seed=1)).create(price=3000.0, bedrooms=2)
        mock_listing_repository.get_available_by_price.return_value = [listing]
        record = _record(
            refreshed_at=NOW - timedelta(hours=25),
            stale=True,
            feedback=FeedbackCounters(helpful=2, not_helpful=1)
        )

        result = await regenerate_if_stale(record, self.preferences, mock_listing_repository, now=NOW)

        assert result is not record
        assert result.listing_ids() == [listing.id]
        assert result.refreshed_at == NOW
        assert result.stale is False
        assert result.feedback == FeedbackCounters(helpful=2, not_helpful=1)
        assert result.algorithm == RecommendationConfig().algorithm_version

    def test_mark_viewed_only_touches_matching_entry(self):
        record = _record()
        updated = mark_viewed(record, "b")

        assert [entry.viewed for entry in updated.entries] == [False, True]
        assert [entry.viewed for entry in record.entries] == [False, False]
        assert mark_viewed(record, "zzz").entries == record.entries

    def test_record_feedback_counters(self):
        record = record_feedback(record_feedback(_record(), True), False)
        record = record_feedback(record, True)

        assert record.feedback == FeedbackCounters(helpful=2, not_helpful=1)

    def test_mark_stale(self):
        assert mark_stale(_record()).stale is True

    def test_serve_filters_sorts_and_limits(self):
        entries = [
            RecommendationEntry("a", 60),
            RecommendationEntry("b", 90),
            RecommendationEntry("c", 75),
            RecommendationEntry("d", 99),
        ]

        served = serve(entries, available_ids={"a", "b", "c"}, limit=2)

        assert [entry.listing_id for entry in served] == ["b", "c"]


class TestRecommendationService:

    def setup_method(self):
        self.listing_repo = Mock()
        self.listing_repo.get_by_ids = AsyncMock(return_value=[])
        self.listing_repo.get_available_by_price = AsyncMock(return_value=[])
        self.listing_repo.get_most_viewed = AsyncMock(return_value=[])
        self.listing_repo.get_verified_top_rated = AsyncMock(return_value=[])

        self.record_repo = Mock()
        self.record_repo.get_or_create = AsyncMock()
        self.record_repo.replace = AsyncMock(side_effect=lambda record: record)
        self.record_repo.mark_stale = AsyncMock(return_value=True)
        self.record_repo.mark_viewed = AsyncMock(return_value=None)
        self.record_repo.record_feedback = AsyncMock(return_value=None)

        self.service = RecommendationService(self.listing_repo, self.record_repo)
        self.preferences = PreferenceFactory().create()
        self.factory = ListingFactory(FactoryConfig(seed=5))

    @pytest.mark.asyncio
    async def test_serves_cached_record(self):
        available = self.factory.create()
        gone = self.factory.create(available=False)
        record = _record(entries=[RecommendationEntry(available.id, 70), RecommendationEntry(gone.id, 90)])
        self.record_repo.get_or_create.return_value = record
        self.listing_repo.get_by_ids.return_value = [available, gone]

        result, served = await self.service.get_recommendations(
            "user-1", self.preferences, now=NOW + timedelta(hours=2)
        )

        assert result is record
        assert [entry.listing_id for entry in served] == [available.id]
        self.record_repo.replace.assert_not_called()
        self.listing_repo.get_available_by_price.assert_not_called()

    @pytest.mark.asyncio
    async def test_refresh_regenerates_and_persists(self):
        listing = self.factory.create(price=3000.0)
        self.record_repo.get_or_create.return_value = _record()
        self.listing_repo.get_available_by_price.return_value = [listing]
        self.listing_repo.get_by_ids.return_value = [listing]

        record, served = await self.service.get_recommendations(
            "user-1", self.preferences, refresh=True, now=NOW
        )

        self.record_repo.replace.assert_awaited_once()
        assert record.listing_ids() == [listing.id]
        assert [entry.listing_id for entry in served] == [listing.id]

    @pytest.mark.asyncio
    async def test_regenerates_with_timezone_aware_move_in_dates(self):
        moved_in = self.factory.create(
            price=3000.0, available_from=datetime.now(timezone.utc) - timedelta(days=1)
        )
        upcoming = self.factory.create(
            price=3000.0, available_from=datetime.now(timezone.utc) + timedelta(days=30)
        )
        self.record_repo.get_or_create.return_value = _record(entries=[])
        self.listing_repo.get_available_by_price.return_value = [moved_in, upcoming]
        self.listing_repo.get_by_ids.return_value = [moved_in, upcoming]

        record, served = await self.service.get_recommendations("user-1", self.preferences)

        by_id = {entry.listing_id: entry for entry in record.entries}
        assert MatchReason.QUICK_AVAILABILITY in by_id[moved_in.id].reasons
        assert MatchReason.QUICK_AVAILABILITY not in by_id[upcoming.id].reasons
        assert len(served) == 2

    @pytest.mark.asyncio
    async def test_feedback_without_record_raises(self):
        with pytest.raises(RecommendationRecordNotFoundError):
            await self.service.record_feedback("user-1", True)

    @pytest.mark.asyncio
    async def test_feedback_returns_updated_record(self):
        updated = _record(feedback=FeedbackCounters(helpful=1))
        self.record_repo.record_feedback.return_value = updated

        assert await self.service.record_feedback("user-1", True) is updated
        self.record_repo.record_feedback.assert_awaited_once_with("user-1", True)

    @pytest.mark.asyncio
    async def test_mark_viewed_and_stale_delegate(self):
        assert await self.service.mark_viewed("user-1", "a") is None
        assert await self.service.mark_stale("user-1") is True
        self.record_repo.mark_viewed.assert_awaited_once_with("user-1", "a")
