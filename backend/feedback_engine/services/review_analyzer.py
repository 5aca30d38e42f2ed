"""
Review analysis pipeline.
Turns a (rating, review) pair into an AIAnalysis. The external model is asked
for a structured JSON reply; any failure on that path (timeout, transport
error, unusable output) degrades to a locally generated analysis, so analyze()
always returns a complete result.
"""

import asyncio
import logging
from typing import Optional

from ..config import settings
from ..models.feedback import AIAnalysis
from ..utils.metrics import metrics_collector, PerformanceTimer
from .fallback_responses import degraded_analysis, empty_review_analysis
from .llm_handler import TextGenerator, get_llm_handler
from .prompt_service import build_review_prompt, truncate_review
from .response_parser import parse_model_response

logger = logging.getLogger(__name__)


class ReviewAnalyzer:
    """Analysis pipeline with single-attempt model call and fallback."""

    def __init__(self, generator: TextGenerator, timeout_seconds: Optional[float] = None):
        self.generator = generator
        self.timeout_seconds = timeout_seconds or settings.llm_timeout_seconds

    async def analyze(self, rating: int, review: str) -> AIAnalysis:
        """
        Analyze one submission. Never raises.

        Args:
            rating: Star rating 1-5 (validated by the caller)
            review: Review text, may be empty

        Returns:
            Fully populated AIAnalysis
        """
        with PerformanceTimer("review analysis", log_threshold=self.timeout_seconds) as timer:
            if not review or not review.strip():
                metrics_collector.record_analysis("empty_review", timer.elapsed)
                return empty_review_analysis(rating)

            try:
                analysis = await self._analyze_with_model(rating, review)
            except asyncio.CancelledError:
                raise
            except asyncio.TimeoutError:
                logger.warning(f"⚠️ Review analysis timed out after {self.timeout_seconds}s (rating={rating}), using fallback")
                metrics_collector.record_analysis("degraded", timer.elapsed, reason="timeout")
                return degraded_analysis(rating, review)
            except Exception as e:
                logger.warning(f"⚠️ Review analysis failed (rating={rating}): {type(e).__name__}: {e}, using fallback")
                metrics_collector.record_analysis("degraded", timer.elapsed, reason=type(e).__name__)
                return degraded_analysis(rating, review)

            logger.info(f"✅ Review analyzed by model (rating={rating}, sentiment={analysis.sentiment.value})")
            metrics_collector.record_analysis("model", timer.elapsed)
            return analysis

    async def _analyze_with_model(self, rating: int, review: str) -> AIAnalysis:
        prompt = build_review_prompt(rating, truncate_review(review))
        raw = await asyncio.wait_for(self.generator.generate(prompt), timeout=self.timeout_seconds)
        return parse_model_response(raw)


def get_review_analyzer() -> ReviewAnalyzer:
    """Dependency injection for the analysis pipeline."""
    return ReviewAnalyzer(get_llm_handler())
