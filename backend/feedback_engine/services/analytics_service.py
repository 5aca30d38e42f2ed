"""
Analytics aggregation over the stored feedback collection.

Every snapshot is recomputed from the store: the independent read queries run
concurrently and the results are folded into an AnalyticsSnapshot by the pure
helpers below. Calendar days and weeks are taken in the configured reference
time zone; weeks start on the configured weekday.
"""

import asyncio
import logging
import math
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, List, Mapping, Optional, Tuple

from ..config import settings
from ..core.feedback_store import FeedbackRepository, get_feedback_repository
from ..models.analytics import (
    AnalyticsSnapshot,
    RatingBucket,
    SentimentBucket,
    TodayStats,
    TrendPoint,
    WeeklyComparison,
)
from ..models.feedback import Sentiment
from ..utils.metrics import metrics_collector, PerformanceTimer

logger = logging.getLogger(__name__)

TREND_DAYS = 7
RATINGS = (1, 2, 3, 4, 5)
SENTIMENTS = (Sentiment.POSITIVE.value, Sentiment.NEUTRAL.value, Sentiment.NEGATIVE.value)


class AnalyticsError(RuntimeError):
    """A snapshot could not be computed; no partial result is returned."""
    pass


def round_half_up(value: float, ndigits: int = 0):
    """Round halves upward (2.5 -> 3, -2.5 -> -2), returning int for ndigits=0."""
    if ndigits == 0:
        return int(math.floor(value + 0.5))
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def percentage(count: int, total: int) -> int:
    """Whole-number share of total; buckets are rounded independently."""
    if total <= 0:
        return 0
    return round_half_up(count / total * 100)


def build_rating_distribution(counts: Mapping[Any, int], total: int) -> List[RatingBucket]:
    return [
        RatingBucket(rating=rating, count=counts.get(rating, 0), percentage=percentage(counts.get(rating, 0), total))
        for rating in RATINGS
    ]


def build_sentiment_distribution(counts: Mapping[Any, int], total: int) -> List[SentimentBucket]:
    return [
        SentimentBucket(
            sentiment=sentiment,
            count=counts.get(sentiment, 0),
            percentage=percentage(counts.get(sentiment, 0), total)
        )
        for sentiment in SENTIMENTS
    ]


def build_recent_trend(daily: Mapping[str, Tuple[int, float]], today: datetime, days: int = TREND_DAYS) -> List[TrendPoint]:
    """Exactly `days` points ending on `today`, oldest first, zero-filled."""
    trend = []
    for offset in range(days - 1, -1, -1):
        date_str = (today - timedelta(days=offset)).strftime("%Y-%m-%d")
        count, avg_rating = daily.get(date_str, (0, None))
        trend.append(TrendPoint(
            date=date_str,
            count=count,
            avg_rating=round_half_up(avg_rating, 1) if count and avg_rating is not None else 0
        ))
    return trend


def weekly_change(this_week: int, last_week: int) -> int:
    """Percent change week over week; growth from a zero baseline reads as 100."""
    if last_week > 0:
        return round_half_up((this_week - last_week) / last_week * 100)
    return 100 if this_week > 0 else 0


def start_of_day(moment: datetime, tz: tzinfo) -> datetime:
    local = moment.astimezone(tz)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(today: datetime, week_start_weekday: int) -> datetime:
    """Most recent day (today included) falling on the week start weekday."""
    return today - timedelta(days=(today.weekday() - week_start_weekday) % 7)


class AnalyticsService:
    """Computes analytics snapshots from the feedback store."""

    def __init__(self, repository: FeedbackRepository, tz: Optional[tzinfo] = None,
                 timezone_name: Optional[str] = None, week_start_weekday: Optional[int] = None):
        self.repository = repository
        self.tz = tz or settings.reference_timezone
        self.timezone_name = timezone_name or settings.analytics_timezone
        self.week_start_weekday = (
            week_start_weekday if week_start_weekday is not None else settings.week_start_weekday
        )

    async def compute_snapshot(self, as_of: Optional[datetime] = None) -> AnalyticsSnapshot:
        """
        Compute the full analytics snapshot.

        Args:
            as_of: Reference instant (defaults to now); naive values are taken as UTC

        Returns:
            AnalyticsSnapshot

        Raises:
            AnalyticsError: If any underlying query fails
        """
        as_of = as_of or datetime.now(timezone.utc)
        if as_of.tzinfo is None:
            as_of = as_of.replace(tzinfo=timezone.utc)
        today = start_of_day(as_of, self.tz)
        trend_start = today - timedelta(days=TREND_DAYS - 1)
        this_week_start = start_of_week(today, self.week_start_weekday)
        last_week_start = this_week_start - timedelta(days=7)

        def utc(moment: datetime) -> datetime:
            return moment.astimezone(timezone.utc)

        repo = self.repository
        with PerformanceTimer("analytics snapshot") as timer:
            try:
                (
                    (total, average),
                    rating_counts,
                    sentiment_counts,
                    daily,
                    (today_count, today_average),
                    this_week,
                    last_week,
                ) = await asyncio.gather(
                    repo.overall_stats(),
                    repo.count_by_field("rating"),
                    repo.count_by_field("sentiment"),
                    repo.daily_stats(utc(trend_start), self.timezone_name),
                    repo.window_stats(utc(today)),
                    repo.count_between(utc(this_week_start)),
                    repo.count_between(utc(last_week_start), utc(this_week_start)),
                )
            except Exception as e:
                logger.error(f"❌ Analytics snapshot failed: {type(e).__name__}: {e}")
                metrics_collector.record_analytics(timer.elapsed, success=False)
                raise AnalyticsError("Failed to compute analytics") from e

            snapshot = AnalyticsSnapshot(
                total_feedbacks=total,
                average_rating=round_half_up(average, 1) if total and average is not None else 0,
                rating_distribution=build_rating_distribution(rating_counts, total),
                sentiment_distribution=build_sentiment_distribution(sentiment_counts, total),
                recent_trend=build_recent_trend(daily, today),
                today_stats=TodayStats(
                    count=today_count,
                    avg_rating=round_half_up(today_average, 1) if today_count and today_average is not None else 0
                ),
                weekly_comparison=WeeklyComparison(
                    this_week=this_week,
                    last_week=last_week,
                    change=weekly_change(this_week, last_week)
                ),
            )
            metrics_collector.record_analytics(timer.elapsed, success=True)

        logger.info(f"✅ Analytics generated: {total} feedbacks, avg {snapshot.average_rating}/5")
        return snapshot


def get_analytics_service() -> AnalyticsService:
    """Dependency injection for the analytics engine."""
    return AnalyticsService(get_feedback_repository())
