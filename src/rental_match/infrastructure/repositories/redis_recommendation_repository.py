import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from redis.asyncio import Redis

from ...domain.entities.recommendation import (
    DEFAULT_ALGORITHM, FeedbackCounters, RecommendationEntry, RecommendationRecord
)
from ...domain.repositories.recommendation_repository import RecommendationRepository


def _decode(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class RedisRecommendationRepository(RecommendationRepository):
    """Redis-backed store for per-user recommendation records.

    Layout per user:
        rec:{user_id}         hash with algorithm, refreshed_at, entries (JSON),
                              stale_version, fresh_version, helpful, not_helpful
        rec:{user_id}:viewed  set of viewed listing ids

    A record is stale while stale_version > fresh_version. Marking stale is a
    HINCRBY on stale_version; a regeneration writes back the stale_version it
    loaded as fresh_version, so a mark landing mid-regeneration survives.
    Feedback counters use HINCRBY and views use SADD. Creation uses HSETNX so
    it never clobbers a record written concurrently.
    """

    def __init__(self, redis_client: Redis, algorithm: str = DEFAULT_ALGORITHM):
        self.redis = redis_client
        self.algorithm = algorithm
        self.logger = logging.getLogger(__name__)
        self.prefix = "rec:"

    def _key(self, user_id: str) -> str:
        return f"{self.prefix}{user_id}"

    def _viewed_key(self, user_id: str) -> str:
        return f"{self.prefix}{user_id}:viewed"

    def _to_record(self, user_id: str, data: Dict[Any, Any], viewed: Iterable[Any]) -> RecommendationRecord:
        fields = {_decode(k): _decode(v) for k, v in data.items()}
        viewed_ids = {_decode(listing_id) for listing_id in viewed}

        entries = [RecommendationEntry.from_dict(item) for item in json.loads(fields.get("entries") or "[]")]
        for entry in entries:
            entry.viewed = entry.listing_id in viewed_ids

        stale_version = int(fields.get("stale_version") or 0)
        fresh_version = int(fields.get("fresh_version") or 0)

        return RecommendationRecord(
            user_id=user_id,
            entries=entries,
            refreshed_at=datetime.fromisoformat(fields["refreshed_at"]),
            algorithm=fields.get("algorithm") or self.algorithm,
            stale=stale_version > fresh_version,
            feedback=FeedbackCounters(
                helpful=int(fields.get("helpful") or 0),
                not_helpful=int(fields.get("not_helpful") or 0)
            ),
            stale_version=stale_version
        )

    def _record_fields(self, record: RecommendationRecord) -> Dict[str, str]:
        # Counters are left out so HINCRBY updates are never overwritten
        fields = {
            "algorithm": record.algorithm,
            "refreshed_at": record.refreshed_at.isoformat(),
            "entries": json.dumps([entry.to_dict() for entry in record.entries])
        }
        if not record.stale:
            fields["fresh_version"] = str(record.stale_version)
        return fields

    async def get(self, user_id: str) -> Optional[RecommendationRecord]:
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.hgetall(self._key(user_id))
                pipe.smembers(self._viewed_key(user_id))
                data, viewed = await pipe.execute()

            if not data:
                return None
            return self._to_record(user_id, data, viewed)

        except Exception as e:
            self.logger.error(f"Failed to load recommendations for user {user_id}: {e}")
            raise

    async def get_or_create(self, user_id: str) -> RecommendationRecord:
        record = await self.get(user_id)
        if record is not None:
            return record

        record = RecommendationRecord.create(user_id, algorithm=self.algorithm)
        key = self._key(user_id)
        async with self.redis.pipeline(transaction=True) as pipe:
            for field, value in self._record_fields(record).items():
                pipe.hsetnx(key, field, value)
            created = await pipe.execute()

        if not any(created):
            self.logger.debug(f"Recommendation record for user {user_id} was created concurrently")
        else:
            self.logger.debug(f"Created empty recommendation record for user {user_id}")
        return await self.get(user_id) or record

    async def replace(self, record: RecommendationRecord) -> RecommendationRecord:
        key = self._key(record.user_id)
        viewed_key = self._viewed_key(record.user_id)
        viewed_ids = [entry.listing_id for entry in record.entries if entry.viewed]

        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.hset(key, mapping=self._record_fields(record))
                pipe.delete(viewed_key)
                if viewed_ids:
                    pipe.sadd(viewed_key, *viewed_ids)
                await pipe.execute()

            self.logger.debug(f"Stored {len(record.entries)} recommendations for user {record.user_id}")

        except Exception as e:
            self.logger.error(f"Failed to store recommendations for user {record.user_id}: {e}")
            raise

        return await self.get(record.user_id)

    async def mark_stale(self, user_id: str) -> bool:
        key = self._key(user_id)
        if not await self.redis.exists(key):
            return False
        await self.redis.hincrby(key, "stale_version", 1)
        return True

    async def mark_viewed(self, user_id: str, listing_id: str) -> Optional[RecommendationRecord]:
        if not await self.redis.exists(self._key(user_id)):
            return None
        await self.redis.sadd(self._viewed_key(user_id), listing_id)
        return await self.get(user_id)

    async def record_feedback(self, user_id: str, helpful: bool) -> Optional[RecommendationRecord]:
        key = self._key(user_id)
        if not await self.redis.exists(key):
            return None
        await self.redis.hincrby(key, "helpful" if helpful else "not_helpful", 1)
        return await self.get(user_id)
