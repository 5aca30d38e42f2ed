"""
Locally generated analyses used when no model output is available.

Two entry points:
- empty_review_analysis: fixed per-rating templates for submissions without text
- degraded_analysis: templated analysis used when the model path fails
"""

import logging
from typing import Dict

from ..models.feedback import AIAnalysis, Sentiment
from .sentiment import sentiment_from_rating

logger = logging.getLogger(__name__)

NEUTRAL_RATING = 3

EMPTY_REVIEW_TEMPLATES: Dict[int, AIAnalysis] = {
    5: AIAnalysis(
        user_response=(
            "Thank you so much for the 5-star rating! We're thrilled you had a great experience. "
            "We'd love to hear more details about what you enjoyed!"
        ),
        summary="Customer gave 5-star rating without written feedback.",
        sentiment=Sentiment.POSITIVE,
        recommended_actions=["Send follow-up for detailed feedback", "Add to satisfied customers list"],
    ),
    4: AIAnalysis(
        user_response=(
            "Thank you for the 4-star rating! We appreciate your support. "
            "If there's anything we can improve, we'd love to hear your thoughts!"
        ),
        summary="Customer gave 4-star rating without written feedback.",
        sentiment=Sentiment.POSITIVE,
        recommended_actions=["Request detailed feedback", "Identify improvement areas"],
    ),
    3: AIAnalysis(
        user_response=(
            "Thank you for your feedback. We'd really appreciate if you could share more details "
            "about your experience so we can improve!"
        ),
        summary="Customer gave 3-star rating without written feedback.",
        sentiment=Sentiment.NEUTRAL,
        recommended_actions=["Reach out for detailed feedback", "Investigate potential issues"],
    ),
    2: AIAnalysis(
        user_response=(
            "We're sorry your experience wasn't great. We'd really value your feedback on what went wrong "
            "so we can make it right."
        ),
        summary="Customer gave 2-star rating without written feedback.",
        sentiment=Sentiment.NEGATIVE,
        recommended_actions=[
            "Contact customer for feedback",
            "Prioritize issue resolution",
            "Offer compensation if applicable",
        ],
    ),
    1: AIAnalysis(
        user_response=(
            "We sincerely apologize for your disappointing experience. "
            "Please share more details so we can address your concerns immediately."
        ),
        summary="Customer gave 1-star rating without written feedback.",
        sentiment=Sentiment.NEGATIVE,
        recommended_actions=[
            "Urgent: Contact customer immediately",
            "Escalate to management immediately",
            "Prepare service recovery plan",
        ],
    ),
}


def empty_review_analysis(rating: int) -> AIAnalysis:
    """
    Template analysis for a rating submitted without review text.

    Ratings outside 1..5 never pass request validation; if one arrives anyway
    it is answered with the neutral (3-star) template.
    """
    template = EMPTY_REVIEW_TEMPLATES.get(rating)
    if template is None:
        logger.warning(f"No empty-review template for rating {rating!r}, using the {NEUTRAL_RATING}-star template")
        template = EMPTY_REVIEW_TEMPLATES[NEUTRAL_RATING]
    return template.model_copy(deep=True)


def degraded_analysis(rating: int, review: str) -> AIAnalysis:
    """Analysis synthesized from the rating when the model path failed."""
    sentiment = sentiment_from_rating(rating)

    if review:
        summary = f"Customer rated {rating}/5 and provided feedback about their experience."
    else:
        summary = f"Customer rated {rating}/5 without additional comments."

    return AIAnalysis(
        user_response=(
            f"Thank you for taking the time to share your feedback with us. Your {rating}-star rating "
            "and comments help us improve our services. We truly value your input!"
        ),
        summary=summary,
        sentiment=sentiment,
        recommended_actions=[
            "Review customer feedback",
            "Follow up with customer" if sentiment is Sentiment.NEGATIVE else "Thank customer for positive feedback",
            "Log feedback for team review",
        ],
    )
