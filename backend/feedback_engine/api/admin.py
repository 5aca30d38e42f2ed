"""
Admin API routes: filtered feedback listing and analytics snapshot.
"""

from fastapi import APIRouter, HTTPException, Depends, Query
from typing import Optional
import logging

from ..config import settings
from ..core.feedback_store import FeedbackRepository, StoreError, get_feedback_repository
from ..services.analytics_service import AnalyticsError, AnalyticsService, get_analytics_service
from ..utils.input_validation import build_listing_filters, validate_pagination

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/feedbacks")
async def list_feedbacks(
    page: int = Query(1),
    limit: int = Query(settings.default_page_size),
    rating: Optional[str] = Query(None),
    sentiment: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    search: Optional[str] = Query(None),
    repository: FeedbackRepository = Depends(get_feedback_repository)
):
    """
    List feedback newest first.

    Args:
        page: 1-based page number
        limit: Page size (1-100)
        rating: Optional exact rating filter
        sentiment: Optional sentiment filter
        start_date: Optional inclusive lower bound on creation time
        end_date: Optional inclusive upper bound on creation time
        search: Optional case-insensitive text matched in review and summary
        repository: Feedback store accessor

    Returns:
        Page of feedback records with pagination metadata
    """
    page, limit = validate_pagination(page, limit)
    filters = build_listing_filters(rating, sentiment, start_date, end_date, search)

    try:
        result = await repository.list_feedback(filters, page, limit)
    except StoreError as e:
        logger.error(f"Failed to list feedback: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch feedbacks")

    return {
        "success": True,
        "data": {
            "feedbacks": [record.model_dump(mode="json", by_alias=True) for record in result.records],
            "pagination": {
                "total": result.total,
                "page": result.page,
                "limit": result.page_size,
                "totalPages": result.total_pages
            }
        }
    }


@router.get("/analytics")
async def get_analytics(
    analytics_service: AnalyticsService = Depends(get_analytics_service)
):
    """Get the analytics snapshot over all stored feedback."""
    try:
        snapshot = await analytics_service.compute_snapshot()
    except AnalyticsError as e:
        logger.error(f"Failed to get analytics: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch analytics")

    return {
        "success": True,
        "data": snapshot.model_dump(mode="json", by_alias=True)
    }
