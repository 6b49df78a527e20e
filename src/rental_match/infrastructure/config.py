import os
import logging
from typing import Optional
from dataclasses import dataclass, field
import asyncpg
import redis.asyncio as redis
from redis.asyncio import Redis

from ..domain.services.recommendation_service import RecommendationConfig
from ..domain.entities.recommendation import DEFAULT_ALGORITHM

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {value!r}")


@dataclass
class DatabaseConfig:
    """Postgres connection settings"""
    host: str
    port: int
    database: str
    username: str
    password: str
    pool_size: int = 10
    pool_timeout: int = 30

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        return cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=_env_int("DB_PORT", 5432),
            database=os.getenv("DB_NAME", "rental_marketplace"),
            username=os.getenv("DB_USERNAME", "postgres"),
            password=os.getenv("DB_PASSWORD", "password"),
            pool_size=_env_int("DB_POOL_SIZE", 10),
            pool_timeout=_env_int("DB_POOL_TIMEOUT", 30)
        )

    @property
    def asyncpg_url(self) -> str:
        return f"postgresql://{self.username}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class RedisConfig:
    """Redis connection settings for the recommendation record store"""
    host: str
    port: int
    db: int = 0
    password: Optional[str] = None
    max_connections: int = 20
    socket_timeout: int = 5

    @classmethod
    def from_env(cls) -> "RedisConfig":
        return cls(
            host=os.getenv("REDIS_HOST", "localhost"),
            port=_env_int("REDIS_PORT", 6379),
            db=_env_int("REDIS_DB", 0),
            password=os.getenv("REDIS_PASSWORD") or None,
            max_connections=_env_int("REDIS_MAX_CONNECTIONS", 20),
            socket_timeout=_env_int("REDIS_SOCKET_TIMEOUT", 5)
        )

    @property
    def url(self) -> str:
        auth = f":{self.password}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"


def engine_config_from_env() -> RecommendationConfig:
    """Matching engine limits, each overridable with a MATCH_* variable."""
    return RecommendationConfig(
        content_pool_cap=_env_int("MATCH_CONTENT_POOL_CAP", 100),
        content_top_n=_env_int("MATCH_CONTENT_TOP_N", 30),
        trending_limit=_env_int("MATCH_TRENDING_LIMIT", 10),
        verified_limit=_env_int("MATCH_VERIFIED_LIMIT", 10),
        exclusion_window=_env_int("MATCH_EXCLUSION_WINDOW", 20),
        merged_cap=_env_int("MATCH_MERGED_CAP", 50),
        comparable_cap=_env_int("MATCH_COMPARABLE_CAP", 50),
        refresh_interval_hours=_env_int("MATCH_REFRESH_INTERVAL_HOURS", 24),
        similar_default_limit=_env_int("MATCH_SIMILAR_DEFAULT_LIMIT", 6),
        algorithm_version=os.getenv("MATCH_ALGORITHM_VERSION", DEFAULT_ALGORITHM)
    )


@dataclass
class AppConfig:
    """Process-wide settings read from the environment at construction"""
    database: DatabaseConfig = field(default_factory=DatabaseConfig.from_env)
    redis: RedisConfig = field(default_factory=RedisConfig.from_env)
    engine: RecommendationConfig = field(default_factory=engine_config_from_env)
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())


class DatabaseManager:
    """Owns the asyncpg pool used by the listing repository"""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.pool: Optional[asyncpg.Pool] = None

    async def initialize(self) -> asyncpg.Pool:
        try:
            self.pool = await asyncpg.create_pool(
                self.config.asyncpg_url,
                min_size=1,
                max_size=self.config.pool_size,
                command_timeout=self.config.pool_timeout
            )
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
        except Exception as e:
            logger.error(f"Could not open Postgres pool at {self.config.host}:{self.config.port}: {e}")
            raise

        logger.info(f"Postgres pool ready (max {self.config.pool_size} connections)")
        return self.pool

    async def close(self):
        if self.pool is not None:
            await self.pool.close()
            self.pool = None
            logger.info("Postgres pool closed")


class RedisManager:
    """Owns the Redis client used by the recommendation record store"""

    def __init__(self, config: RedisConfig):
        self.config = config
        self.client: Optional[Redis] = None

    async def initialize(self) -> Redis:
        self.client = redis.from_url(
            self.config.url,
            max_connections=self.config.max_connections,
            socket_timeout=self.config.socket_timeout,
            decode_responses=True
        )
        try:
            await self.client.ping()
        except Exception as e:
            logger.error(f"Could not reach Redis at {self.config.host}:{self.config.port}: {e}")
            raise

        logger.info(f"Redis client ready (db {self.config.db})")
        return self.client

    async def close(self):
        if self.client is not None:
            await self.client.aclose()
            self.client = None
            logger.info("Redis client closed")
