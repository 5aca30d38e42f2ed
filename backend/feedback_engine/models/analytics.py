"""
Analytics snapshot models, recomputed per request and never persisted.
"""

from typing import List

from .feedback import CamelModel


class RatingBucket(CamelModel):
    rating: int
    count: int
    percentage: int


class SentimentBucket(CamelModel):
    sentiment: str
    count: int
    percentage: int


class TrendPoint(CamelModel):
    date: str
    count: int
    avg_rating: float


class TodayStats(CamelModel):
    count: int
    avg_rating: float


class WeeklyComparison(CamelModel):
    this_week: int
    last_week: int
    change: int


class AnalyticsSnapshot(CamelModel):
    total_feedbacks: int
    average_rating: float
    rating_distribution: List[RatingBucket]
    sentiment_distribution: List[SentimentBucket]
    recent_trend: List[TrendPoint]
    today_stats: TodayStats
    weekly_comparison: WeeklyComparison
