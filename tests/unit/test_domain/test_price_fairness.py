"""
Unit tests for price fairness assessment.

Tests comparable selection, percentile ranking, bucket labels, the outlier
override and the insufficient-data guard.
"""

import pytest

from rental_match.domain.services.price_fairness import (
    INSUFFICIENT_DATA, OVERPRICED, UNKNOWN, UNUSUALLY_LOW,
    assess_price_fairness, fairness_bucket, location_price_stats,
    price_percentile, price_stats, select_comparables
)
from tests.utils.data_factories import ListingFactory, FactoryConfig


class TestPriceFairness:
    """Test cases for assess_price_fairness."""

    def setup_method(self):
        self.factory = ListingFactory(FactoryConfig(seed=42))

    def _listing(self, price, **kwargs):
        defaults = dict(city="Adama", state="Oromia", bedrooms=2, property_type="apartment")
        defaults.update(kwargs)
        return self.factory.create(price=price, **defaults)

    def _pool(self, prices, **kwargs):
        return [self._listing(price, **kwargs) for price in prices]

    def test_equal_prices_land_in_fair_bucket(self):
        listing = self._listing(100.0)
        result = assess_price_fairness(listing, self._pool([100, 100, 100, 100]))

        assert result.percentile == 50
        assert result.label in {"Good Value", "Fair Price"}
        assert result.label == "Fair Price"
        assert result.score == 75

    @pytest.mark.parametrize("prices", [[], [1000], [500, 5000]])
    def test_fewer_than_three_comparables(self, prices):
        listing = self._listing(1000.0)
        result = assess_price_fairness(listing, self._pool(prices))

        assert result.score == 50
        assert result.label == INSUFFICIENT_DATA
        assert result.comparison is None

    def test_overpriced_outlier_override(self):
        listing = self._listing(1200.0)
        result = assess_price_fairness(listing, self._pool([950, 1000, 1050]))

        assert result.label == OVERPRICED
        assert result.percentile == 100
        assert result.score == 20

    def test_unusually_low_outlier_override(self):
        listing = self._listing(800.0)
        result = assess_price_fairness(listing, self._pool([950, 1000, 1050]))

        assert result.label == UNUSUALLY_LOW
        assert result.score == 90

    def test_unknown_when_price_missing(self):
        listing = self._listing(0.0)
        result = assess_price_fairness(listing, self._pool([950, 1000, 1050]))

        assert result.label == UNKNOWN
        assert result.score == 50

    def test_comparison_payload(self):
        listing = self._listing(1100.0)
        result = assess_price_fairness(listing, self._pool([900, 1000, 1100, 1200, 1300]))

        comparison = result.comparison
        assert comparison.sample_size == 5
        assert comparison.average_price == 1100
        assert comparison.median_price == 1100
        assert comparison.min_price == 900
        assert comparison.max_price == 1300
        assert comparison.price_difference == 0
        assert comparison.price_difference_percent == 0
        assert result.percentile == 50

    def test_buckets(self):
        assert fairness_bucket(0) == (95, "Great Deal")
        assert fairness_bucket(20) == (95, "Great Deal")
        assert fairness_bucket(21) == (85, "Good Value")
        assert fairness_bucket(60) == (75, "Fair Price")
        assert fairness_bucket(80) == (55, "Above Average")
        assert fairness_bucket(90) == (40, "Premium Price")
        assert fairness_bucket(91) == (25, "High End")


class TestComparableSelection:

    def setup_method(self):
        self.factory = ListingFactory(FactoryConfig(seed=3))
        self.listing = self.factory.create(price=2000.0, city="Adama", state="Oromia", bedrooms=2)

    def test_filters(self):
        keep = self.factory.create(price=1900.0, city="Bishoftu", state="Oromia", bedrooms=3)
        pool = [
            self.listing,
            keep,
            self.factory.create(price=1900.0, city="Adama", state="Oromia", bedrooms=4),
            self.factory.create(price=1900.0, city="Hawassa", state="Sidama", bedrooms=2),
            self.factory.create(price=1900.0, city="Adama", state="Oromia", bedrooms=2, property_type="house"),
            self.factory.create(price=1900.0, city="Adama", state="Oromia", bedrooms=2, available=False),
        ]

        assert select_comparables(self.listing, pool) == [keep]

    def test_prefers_same_city_with_enough_listings(self):
        same_city = self.factory.create_batch(5, city="Adama", state="Oromia", bedrooms=2)
        same_state = self.factory.create_batch(3, city="Bishoftu", state="Oromia", bedrooms=2)

        assert select_comparables(self.listing, same_state + same_city) == same_city

    def test_falls_back_to_state(self):
        same_city = self.factory.create_batch(4, city="Adama", state="Oromia", bedrooms=2)
        same_state = self.factory.create_batch(3, city="Bishoftu", state="Oromia", bedrooms=2)

        assert len(select_comparables(self.listing, same_city + same_state)) == 7

    def test_cap(self):
        pool = self.factory.create_batch(60, city="Adama", state="Oromia", bedrooms=2)
        assert len(select_comparables(self.listing, pool, cap=50)) == 50


class TestPriceStatistics:

    def test_sample_standard_deviation(self):
        stats = price_stats([950, 1000, 1050])

        assert stats.mean == pytest.approx(1000)
        assert stats.median == pytest.approx(1000)
        assert stats.std_dev == pytest.approx(50)
        assert stats.count == 3

    def test_single_value_has_zero_deviation(self):
        assert price_stats([1200]).std_dev == 0.0

    def test_percentile_counts_ties_half(self):
        assert price_percentile(100, [100, 100, 100, 100]) == 50
        assert price_percentile(150, [100, 150, 200, 250]) == 38
        assert price_percentile(50, [100, 200]) == 0

    def test_location_price_stats(self):
        factory = ListingFactory(FactoryConfig(seed=11))
        pool = [
            factory.create(price=1000.0, city="Adama", state="Oromia", bedrooms=1),
            factory.create(price=2000.0, city="Adama", state="Oromia", bedrooms=2),
            factory.create(price=3000.0, city="Adama", state="Oromia", bedrooms=2),
            factory.create(price=9000.0, city="Adama", state="Oromia", bedrooms=2, available=False),
            factory.create(price=7000.0, city="Hawassa", state="Sidama", bedrooms=2),
        ]

        stats = location_price_stats(pool, "Adama", None, bedrooms=2)
        assert stats.count == 2
        assert stats.mean == pytest.approx(2500)

        assert location_price_stats(pool, None, "Oromia").count == 3
        assert location_price_stats(pool, "Gondar", None) is None
