import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from functools import wraps
from typing import Any, Dict, List, Optional

import asyncpg
from asyncpg import Pool

from ...domain.entities.listing import GeoPoint, ListingLocation, ListingSnapshot
from ...domain.repositories.listing_repository import ListingRepository


LISTING_COLUMNS = """
    id, title, price, city, state, latitude, longitude, bedrooms, bathrooms,
    property_type, amenities, verified, average_rating, view_count, available,
    available_from, created_at
"""


# Performance monitoring decorator
def measure_performance(operation_name: str):
    """Decorator to measure query performance"""
    def decorator(func):
        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            start_time = time.time()
            try:
                result = await func(self, *args, **kwargs)
                execution_time = time.time() - start_time

                if execution_time > 1.0:  # Log slow queries
                    self.logger.warning(
                        f"Slow query detected: {operation_name} took {execution_time:.2f}s"
                    )

                return result
            except Exception as e:
                execution_time = time.time() - start_time
                self.logger.error(
                    f"Query failed: {operation_name} took {execution_time:.2f}s, error: {e}"
                )
                raise
        return wrapper
    return decorator


# Retry decorator for database operations
def retry_on_db_error(max_retries: int = 3, delay: float = 1.0):
    """Decorator to retry database operations on transient errors"""
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except (asyncpg.PostgresError, asyncpg.InterfaceError):
                    if attempt < max_retries - 1:
                        wait_time = delay * (2 ** attempt)  # Exponential backoff
                        await asyncio.sleep(wait_time)
                    else:
                        raise
        return wrapper
    return decorator


class PostgresListingRepository(ListingRepository):
    """Read-only PostgreSQL access to listing snapshots"""

    def __init__(self, connection_pool: Pool):
        self.pool = connection_pool
        self.logger = logging.getLogger(__name__)
        self._connection_timeout = 30.0

    @asynccontextmanager
    async def get_connection(self):
        """Context manager for database connections with proper error handling"""
        connection = None
        try:
            connection = await asyncio.wait_for(
                self.pool.acquire(),
                timeout=self._connection_timeout
            )
            yield connection
        except asyncio.TimeoutError:
            self.logger.error("Database connection timeout")
            raise
        finally:
            if connection:
                await self.pool.release(connection)

    async def health_check(self) -> Dict[str, Any]:
        """Perform health check on database connection"""
        try:
            async with self.get_connection() as conn:
                start_time = time.time()
                await conn.fetchval("SELECT 1")
                response_time = time.time() - start_time

                return {
                    "status": "healthy",
                    "response_time_ms": response_time * 1000,
                    "timestamp": datetime.utcnow().isoformat()
                }
        except Exception as e:
            self.logger.error(f"Health check failed: {e}")
            return {
                "status": "unhealthy",
                "error": str(e),
                "timestamp": datetime.utcnow().isoformat()
            }

    @staticmethod
    def _row_to_listing(row) -> ListingSnapshot:
        coordinates = None
        if row['latitude'] is not None and row['longitude'] is not None:
            coordinates = GeoPoint(lat=float(row['latitude']), lng=float(row['longitude']))

        return ListingSnapshot(
            id=str(row['id']),
            title=row['title'] or "",
            price=float(row['price']),
            location=ListingLocation(city=row['city'], state=row['state'], coordinates=coordinates),
            bedrooms=int(row['bedrooms']),
            bathrooms=float(row['bathrooms'] or 0),
            property_type=row['property_type'] or "apartment",
            amenities=list(row['amenities'] or []),
            verified=bool(row['verified']),
            average_rating=float(row['average_rating'] or 0),
            view_count=int(row['view_count'] or 0),
            available=bool(row['available']),
            available_from=row['available_from'],
            created_at=row['created_at']
        )

    async def _fetch(self, query: str, *args) -> List[ListingSnapshot]:
        async with self.get_connection() as conn:
            rows = await conn.fetch(query, *args)
        return [self._row_to_listing(row) for row in rows]

    @retry_on_db_error()
    @measure_performance("get_listing_by_id")
    async def get_by_id(self, listing_id: str) -> Optional[ListingSnapshot]:
        async with self.get_connection() as conn:
            row = await conn.fetchrow(
                f"SELECT {LISTING_COLUMNS} FROM listings WHERE id::text = $1",
                str(listing_id)
            )
        return self._row_to_listing(row) if row else None

    @retry_on_db_error()
    @measure_performance("get_listings_by_ids")
    async def get_by_ids(self, listing_ids: List[str]) -> List[ListingSnapshot]:
        if not listing_ids:
            return []
        return await self._fetch(
            f"SELECT {LISTING_COLUMNS} FROM listings WHERE id::text = ANY($1::text[])",
            [str(listing_id) for listing_id in listing_ids]
        )

    @retry_on_db_error()
    @measure_performance("get_available_by_price")
    async def get_available_by_price(self, min_price: Optional[float], max_price: Optional[float],
                                     limit: int = 100) -> List[ListingSnapshot]:
        return await self._fetch(
            f"""
            SELECT {LISTING_COLUMNS} FROM listings
            WHERE available = TRUE
              AND ($1::numeric IS NULL OR price >= $1)
              AND ($2::numeric IS NULL OR price <= $2)
            ORDER BY created_at DESC
            LIMIT $3
            """,
            min_price, max_price, limit
        )

    @retry_on_db_error()
    @measure_performance("get_most_viewed")
    async def get_most_viewed(self, limit: int = 30) -> List[ListingSnapshot]:
        return await self._fetch(
            f"""
            SELECT {LISTING_COLUMNS} FROM listings
            WHERE available = TRUE
            ORDER BY view_count DESC, created_at DESC
            LIMIT $1
            """,
            limit
        )

    @retry_on_db_error()
    @measure_performance("get_verified_top_rated")
    async def get_verified_top_rated(self, limit: int = 40) -> List[ListingSnapshot]:
        return await self._fetch(
            f"""
            SELECT {LISTING_COLUMNS} FROM listings
            WHERE available = TRUE AND verified = TRUE
            ORDER BY average_rating DESC, created_at DESC
            LIMIT $1
            """,
            limit
        )

    @retry_on_db_error()
    @measure_performance("get_comparable_pool")
    async def get_comparable_pool(self, listing: ListingSnapshot, limit: int = 50) -> List[ListingSnapshot]:
        return await self._fetch(
            f"""
            SELECT {LISTING_COLUMNS} FROM listings
            WHERE available = TRUE
              AND id::text <> $1
              AND (LOWER(city) = LOWER($2) OR LOWER(state) = LOWER($3))
              AND bedrooms BETWEEN $4 AND $5
              AND ($6::text IS NULL OR property_type = $6)
            LIMIT $7
            """,
            listing.id,
            listing.location.city,
            listing.location.state,
            max(0, listing.bedrooms - 1),
            listing.bedrooms + 1,
            listing.property_type or None,
            limit
        )

    @retry_on_db_error()
    @measure_performance("get_similar_pool")
    async def get_similar_pool(self, reference: ListingSnapshot, limit: int = 18) -> List[ListingSnapshot]:
        return await self._fetch(
            f"""
            SELECT {LISTING_COLUMNS} FROM listings
            WHERE available = TRUE
              AND id::text <> $1
              AND (LOWER(city) = LOWER($2) OR LOWER(state) = LOWER($3))
              AND price BETWEEN $4 AND $5
            LIMIT $6
            """,
            reference.id,
            reference.location.city,
            reference.location.state,
            reference.price * 0.7,
            reference.price * 1.3,
            limit
        )

    @retry_on_db_error()
    @measure_performance("get_listings_by_location")
    async def get_by_location(self, city: Optional[str], state: Optional[str],
                              limit: int = 500) -> List[ListingSnapshot]:
        return await self._fetch(
            f"""
            SELECT {LISTING_COLUMNS} FROM listings
            WHERE available = TRUE
              AND (LOWER(city) = LOWER($1) OR LOWER(state) = LOWER($2))
            LIMIT $3
            """,
            city, state, limit
        )
