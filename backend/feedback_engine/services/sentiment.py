"""
Sentiment label normalization.
"""

from typing import Any

from ..models.feedback import Sentiment

_CANONICAL = {s.value: s for s in Sentiment}


def classify_sentiment(raw: Any) -> Sentiment:
    """Map any label onto a canonical sentiment; unknown input is neutral."""
    if not isinstance(raw, str):
        return Sentiment.NEUTRAL
    return _CANONICAL.get(raw.strip().lower(), Sentiment.NEUTRAL)


def sentiment_from_rating(rating: int) -> Sentiment:
    """Derive sentiment from the star rating alone (4-5 positive, 1-2 negative)."""
    if rating >= 4:
        return Sentiment.POSITIVE
    if rating <= 2:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL
