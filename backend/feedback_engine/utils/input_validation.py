"""
Input validation utilities for API endpoints.
Parses listing query parameters into store filters and rejects malformed
pagination before any query is issued.
"""

from datetime import datetime, timezone
from typing import Optional, Union
from fastapi import HTTPException, status
import logging

from ..config import settings
from ..core.feedback_store import FeedbackFilters
from ..models.feedback import Sentiment

logger = logging.getLogger(__name__)

MAX_SEARCH_LENGTH = 200


def validate_pagination(page: int, page_size: int) -> tuple[int, int]:
    """
    Validate pagination parameters.

    Raises:
        HTTPException: If page < 1 or page_size outside 1..max_page_size
    """
    if page < 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Page must be 1 or greater"
        )

    if page_size < 1 or page_size > settings.max_page_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Page size must be between 1 and {settings.max_page_size}"
        )

    return page, page_size


def parse_date_param(value: Optional[str], name: str) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime; naive values are taken as UTC."""
    if not value:
        return None

    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {name}: expected an ISO-8601 date"
        )

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_rating_param(value: Optional[Union[int, str]]) -> Optional[int]:
    """Integer rating from a query value, or None when it is not a whole number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(value.strip())
    except ValueError:
        return None


def build_listing_filters(
    rating: Optional[Union[int, str]] = None,
    sentiment: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    search: Optional[str] = None
) -> FeedbackFilters:
    """
    Build store filters from raw query parameters.

    Non-numeric or out-of-range ratings and unknown sentiments are ignored rather than
    rejected, so a stale dashboard link still lists feedback.
    """
    filters = FeedbackFilters()

    parsed_rating = parse_rating_param(rating)
    if parsed_rating is not None and 1 <= parsed_rating <= 5:
        filters.rating = parsed_rating
    elif rating not in (None, ""):
        logger.debug(f"Ignoring rating filter: {rating!r}")

    if sentiment:
        normalized = sentiment.strip().lower()
        if normalized in {s.value for s in Sentiment}:
            filters.sentiment = normalized

    filters.start_date = parse_date_param(start_date, "startDate")
    filters.end_date = parse_date_param(end_date, "endDate")

    if filters.start_date and filters.end_date and filters.start_date > filters.end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="startDate must not be after endDate"
        )

    if search:
        search = search.strip()
        if len(search) > MAX_SEARCH_LENGTH:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Search text too long. Maximum {MAX_SEARCH_LENGTH} characters allowed"
            )
        filters.search = search or None

    return filters
