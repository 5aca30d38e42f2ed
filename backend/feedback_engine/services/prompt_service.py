"""
Prompt construction for review analysis.
Keeps the prompt template and payload bounding in one place so the analysis
pipeline only deals with orchestration.
"""

import logging

from ..config import settings

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "..."

REVIEW_ANALYSIS_TEMPLATE = """You are an AI assistant for a customer feedback system. Analyze this review and provide a JSON response.

Rating: {rating}/5 stars
Review: "{review}"

Respond with ONLY valid JSON in this exact format (no markdown, no code blocks):
{{
  "userResponse": "A friendly, personalized thank you message to the user (2-3 sentences). Acknowledge their specific feedback.",
  "summary": "A brief 1-2 sentence summary of the review's main points.",
  "sentiment": "positive OR negative OR neutral",
  "recommendedActions": ["action1", "action2", "action3"]
}}

Guidelines:
- userResponse: Be warm, professional, and specific to their feedback
- summary: Capture the essence of their review concisely
- sentiment: Based on both rating and review content
- recommendedActions: 2-4 actionable items for the business team"""


def truncate_review(review: str, max_chars: int = None) -> str:
    """Keep the first `max_chars` characters, marking the cut with an ellipsis."""
    limit = max_chars if max_chars is not None else settings.review_prompt_max_chars
    if len(review) <= limit:
        return review
    logger.debug(f"Truncating review from {len(review)} to {limit} chars for the prompt")
    return review[:limit] + TRUNCATION_MARKER


def build_review_prompt(rating: int, review: str) -> str:
    """Build the structured analysis prompt for an already truncated review."""
    return REVIEW_ANALYSIS_TEMPLATE.format(rating=rating, review=review)
