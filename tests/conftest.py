"""
Global pytest configuration and fixtures for the rental match test suite.

This module provides marker configuration, listing and preference fixtures,
and mocked Redis/repository collaborators shared by all test modules.
"""

import os
import pytest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, Mock

from rental_match.domain.entities.listing import GeoPoint
from rental_match.domain.entities.preferences import PreferenceVector
from rental_match.domain.entities.recommendation import RecommendationRecord
from tests.utils.data_factories import ListingFactory, PreferenceFactory, FactoryConfig

# Test environment setup
os.environ["TESTING"] = "1"


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        path = str(item.fspath)
        if "test_api" in path:
            item.add_marker(pytest.mark.api)
        if "repository" in path:
            item.add_marker(pytest.mark.db)
        if "unit" in path:
            item.add_marker(pytest.mark.unit)


# =======================
# Domain Fixtures
# =======================

@pytest.fixture
def listing_factory() -> ListingFactory:
    return ListingFactory(FactoryConfig(seed=42))


@pytest.fixture
def preference_factory() -> PreferenceFactory:
    return PreferenceFactory()


@pytest.fixture
def sample_preferences(preference_factory) -> PreferenceVector:
    """Preferences used by the end-to-end match example."""
    return preference_factory.create(
        price=(2000, 4000),
        rooms=(2, 3),
        cities=["Addis Ababa"],
        amenities=["wifi", "parking"]
    )


@pytest.fixture
def sample_listing(listing_factory):
    return listing_factory.create(
        price=3000.0,
        city="Addis Ababa",
        state="Addis Ababa",
        bedrooms=2,
        amenities=["wifi", "parking", "gym"],
        coordinates=GeoPoint(9.0054, 38.7636),
        verified=True,
        average_rating=4.5,
        view_count=150,
        available=True
    )


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def empty_record(fixed_now) -> RecommendationRecord:
    return RecommendationRecord.create("user-1", now=fixed_now)


# =======================
# Mock Fixtures
# =======================

@pytest.fixture
def mock_redis():
    """Mock async Redis client with a transactional pipeline."""
    redis_client = MagicMock()
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[{}, set()])
    redis_client.pipeline.return_value.__aenter__.return_value = pipe
    redis_client.pipeline.return_value.__aexit__.return_value = False
    redis_client.hset = AsyncMock(return_value=1)
    redis_client.exists = AsyncMock(return_value=1)
    redis_client.sadd = AsyncMock(return_value=1)
    redis_client.hincrby = AsyncMock(return_value=1)
    redis_client.ping = AsyncMock(return_value=True)
    redis_client.pipe = pipe
    return redis_client


@pytest.fixture
def mock_listing_repository():
    """Mock listing repository with empty pools."""
    repository = Mock()
    repository.get_by_id = AsyncMock(return_value=None)
    repository.get_by_ids = AsyncMock(return_value=[])
    repository.get_available_by_price = AsyncMock(return_value=[])
    repository.get_most_viewed = AsyncMock(return_value=[])
    repository.get_verified_top_rated = AsyncMock(return_value=[])
    repository.get_comparable_pool = AsyncMock(return_value=[])
    repository.get_similar_pool = AsyncMock(return_value=[])
    repository.get_by_location = AsyncMock(return_value=[])
    return repository
