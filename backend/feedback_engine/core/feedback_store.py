"""
Feedback store accessor.
Append-only writes of analyzed feedback and the read queries used by the
listing endpoint and the analytics engine. Driver failures are raised as
StoreError so callers can tell a fetch fault from an empty result.
"""

import asyncio
import functools
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pymongo.errors import PyMongoError

from ..models.feedback import FeedbackRecord
from .db_mongo import MongoDBClient, get_mongodb_client

logger = logging.getLogger(__name__)

CREATED_AT = "createdAt"
RATING_FIELD = "$rating"


class StoreError(RuntimeError):
    """A store operation failed; nothing partial was returned or written."""
    pass


class StoreUnavailableError(StoreError):
    """The store is not connected."""
    pass


def store_operation(name: str):
    """Wrap driver errors of a repository coroutine into StoreError."""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except StoreError:
                raise
            except PyMongoError as e:
                logger.error(f"❌ Store operation '{name}' failed: {e}")
                raise StoreError(f"Store operation '{name}' failed") from e
        return wrapper
    return decorator


@dataclass
class FeedbackFilters:
    """Optional listing filters; None means unfiltered."""
    rating: Optional[int] = None
    sentiment: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    search: Optional[str] = None


@dataclass
class FeedbackPage:
    records: List[FeedbackRecord]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0


def build_feedback_query(filters: FeedbackFilters) -> Dict[str, Any]:
    """Translate listing filters into a MongoDB query document."""
    query: Dict[str, Any] = {}

    if filters.rating is not None:
        query["rating"] = filters.rating

    if filters.sentiment:
        query["sentiment"] = filters.sentiment

    if filters.start_date or filters.end_date:
        query[CREATED_AT] = {}
        if filters.start_date:
            query[CREATED_AT]["$gte"] = filters.start_date
        if filters.end_date:
            query[CREATED_AT]["$lte"] = filters.end_date

    if filters.search:
        # Search text is matched literally, not as a pattern
        pattern = re.escape(filters.search)
        query["$or"] = [
            {"review": {"$regex": pattern, "$options": "i"}},
            {"summary": {"$regex": pattern, "$options": "i"}},
        ]

    return query


class FeedbackRepository:
    """Query contract over the feedback collection."""

    def __init__(self, mongo_client: MongoDBClient):
        self.mongo_client = mongo_client

    @property
    def collection(self):
        if not self.mongo_client.is_connected() or self.mongo_client.feedbacks is None:
            logger.warning("MongoDB not available, feedback store unreachable")
            raise StoreUnavailableError("Database service unavailable")
        return self.mongo_client.feedbacks

    @store_operation("insert_feedback")
    async def insert_feedback(self, record: FeedbackRecord) -> str:
        """Persist one record atomically and return its identifier."""
        result = await self.collection.insert_one(record.to_document())
        feedback_id = str(result.inserted_id)
        logger.info(f"Feedback stored: {feedback_id} (rating: {record.rating}/5, sentiment: {record.sentiment.value})")
        return feedback_id

    @store_operation("list_feedback")
    async def list_feedback(self, filters: FeedbackFilters, page: int, page_size: int) -> FeedbackPage:
        """Newest-first page of records matching the filters."""
        query = build_feedback_query(filters)
        skip = (page - 1) * page_size
        collection = self.collection

        cursor = collection.find(query).sort(CREATED_AT, -1).skip(skip).limit(page_size)
        documents, total = await asyncio.gather(
            cursor.to_list(length=page_size),
            collection.count_documents(query)
        )

        return FeedbackPage(
            records=[FeedbackRecord.from_document(doc) for doc in documents],
            total=total,
            page=page,
            page_size=page_size
        )

    async def _aggregate(self, pipeline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        cursor = self.collection.aggregate(pipeline)
        return await cursor.to_list(length=None)

    @store_operation("overall_stats")
    async def overall_stats(self) -> Tuple[int, Optional[float]]:
        """Total record count and mean rating (None when empty)."""
        results = await self._aggregate([
            {"$group": {"_id": None, "total": {"$sum": 1}, "avgRating": {"$avg": RATING_FIELD}}}
        ])
        if not results:
            return 0, None
        return results[0]["total"], results[0]["avgRating"]

    @store_operation("count_by_field")
    async def count_by_field(self, field: str) -> Dict[Any, int]:
        """Record counts grouped by one field's value."""
        results = await self._aggregate([
            {"$group": {"_id": f"${field}", "count": {"$sum": 1}}}
        ])
        return {row["_id"]: row["count"] for row in results}

    @store_operation("daily_stats")
    async def daily_stats(self, since: datetime, timezone_name: str) -> Dict[str, Tuple[int, float]]:
        """Per-day (count, mean rating) keyed by YYYY-MM-DD in the given time zone."""
        results = await self._aggregate([
            {"$match": {CREATED_AT: {"$gte": since}}},
            {
                "$group": {
                    "_id": {
                        "$dateToString": {
                            "format": "%Y-%m-%d",
                            "date": f"${CREATED_AT}",
                            "timezone": timezone_name
                        }
                    },
                    "count": {"$sum": 1},
                    "avgRating": {"$avg": RATING_FIELD}
                }
            },
            {"$sort": {"_id": 1}}
        ])
        return {row["_id"]: (row["count"], row["avgRating"]) for row in results}

    @store_operation("window_stats")
    async def window_stats(self, since: datetime) -> Tuple[int, Optional[float]]:
        """Count and mean rating of records created at or after `since`."""
        results = await self._aggregate([
            {"$match": {CREATED_AT: {"$gte": since}}},
            {"$group": {"_id": None, "count": {"$sum": 1}, "avgRating": {"$avg": RATING_FIELD}}}
        ])
        if not results:
            return 0, None
        return results[0]["count"], results[0]["avgRating"]

    @store_operation("count_between")
    async def count_between(self, start: datetime, end: Optional[datetime] = None) -> int:
        """Count records with start <= createdAt < end (end open when None)."""
        window: Dict[str, Any] = {"$gte": start}
        if end is not None:
            window["$lt"] = end
        return await self.collection.count_documents({CREATED_AT: window})


def get_feedback_repository() -> FeedbackRepository:
    """Dependency injection for the feedback store accessor."""
    return FeedbackRepository(get_mongodb_client())
