"""
Feedback API routes for collecting star ratings with free-text reviews.
Each submission is analyzed (model or fallback) and stored as one record.
"""

from fastapi import APIRouter, HTTPException, Depends, status
from typing import Optional
from pydantic import BaseModel, Field, field_validator
from datetime import datetime, timezone
import logging

from ..config import settings
from ..core.feedback_store import FeedbackRepository, StoreError, get_feedback_repository
from ..models.feedback import FeedbackRecord
from ..services.review_analyzer import ReviewAnalyzer, get_review_analyzer

logger = logging.getLogger(__name__)

router = APIRouter()


# Pydantic models
class FeedbackRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5, strict=True, description="Star rating from 1 to 5")
    review: Optional[str] = Field(default="", description="Free-text review, may be empty")

    @field_validator("review")
    @classmethod
    def check_review(cls, value: Optional[str]) -> str:
        review = (value or "").strip()
        if len(review) > settings.review_max_length:
            raise ValueError(f"Review cannot exceed {settings.review_max_length} characters")
        return review


class SubmittedFeedback(BaseModel):
    id: str
    userResponse: str
    rating: int


class FeedbackResponse(BaseModel):
    success: bool
    message: str
    data: SubmittedFeedback


@router.post("", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    feedback: FeedbackRequest,
    analyzer: ReviewAnalyzer = Depends(get_review_analyzer),
    repository: FeedbackRepository = Depends(get_feedback_repository)
):
    """
    Submit a rating and review.

    Analysis never fails the request; only a store failure does, in which
    case nothing is written.
    """
    try:
        analysis = await analyzer.analyze(feedback.rating, feedback.review)

        record = FeedbackRecord.from_analysis(
            rating=feedback.rating,
            review=feedback.review,
            analysis=analysis,
            created_at=datetime.now(timezone.utc)
        )
        feedback_id = await repository.insert_feedback(record)

        if feedback.rating <= 2:
            logger.warning(f"⚠️  Critical feedback received: {feedback_id} (rating: {feedback.rating}/5)")

        return FeedbackResponse(
            success=True,
            message="Feedback submitted successfully",
            data=SubmittedFeedback(
                id=feedback_id,
                userResponse=record.user_response,
                rating=record.rating
            )
        )

    except HTTPException:
        raise
    except StoreError as e:
        logger.error(f"Failed to store feedback: {e}")
        raise HTTPException(status_code=500, detail="Failed to process feedback. Please try again later.")
    except Exception as e:
        logger.error(f"Failed to submit feedback: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to process feedback. Please try again later.")


@router.get("/health")
async def feedback_health_check():
    """Health check for feedback service."""
    return {
        "status": "healthy",
        "service": "feedback",
        "features": {
            "rating_collection": True,
            "ai_analysis": bool(settings.llm_api_key),
            "fallback_analysis": True,
            "analytics": True
        }
    }
