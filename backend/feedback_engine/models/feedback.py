"""
Feedback domain models.
AIAnalysis is the transient output of the analysis pipeline; FeedbackRecord is
the persisted unit. Both serialize with the camelCase keys used in the store
and on the wire.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MAX_RECOMMENDED_ACTIONS = 4


class Sentiment(str, Enum):
    """Canonical sentiment labels."""
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AIAnalysis(CamelModel):
    user_response: str = Field(..., min_length=1)
    summary: str = Field(..., min_length=1)
    sentiment: Sentiment
    recommended_actions: List[str] = Field(default_factory=list, max_length=MAX_RECOMMENDED_ACTIONS)


class FeedbackRecord(CamelModel):
    """A stored feedback submission together with its analysis."""
    id: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    review: str = Field(default="", max_length=5000)
    user_response: str
    summary: str
    sentiment: Sentiment
    recommended_actions: List[str] = Field(default_factory=list)
    created_at: datetime

    @classmethod
    def from_analysis(cls, rating: int, review: str, analysis: AIAnalysis, created_at: datetime) -> "FeedbackRecord":
        return cls(
            rating=rating,
            review=review,
            user_response=analysis.user_response,
            summary=analysis.summary,
            sentiment=analysis.sentiment,
            recommended_actions=list(analysis.recommended_actions),
            created_at=created_at,
        )

    @classmethod
    def from_document(cls, document: dict) -> "FeedbackRecord":
        """Build a record from a raw store document."""
        return cls(
            id=str(document["_id"]),
            rating=document["rating"],
            review=document.get("review", ""),
            user_response=document["userResponse"],
            summary=document["summary"],
            sentiment=document["sentiment"],
            recommended_actions=document.get("recommendedActions", []),
            created_at=document["createdAt"],
        )

    def to_document(self) -> dict:
        """Store representation (without the identifier)."""
        document = self.model_dump(by_alias=True, exclude={"id"})
        document["sentiment"] = self.sentiment.value
        document["updatedAt"] = self.created_at
        return document
