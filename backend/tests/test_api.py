"""
HTTP surface tests with the analyzer, store and analytics engine overridden.
"""

import json
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

from fastapi.testclient import TestClient

from feedback_engine.core.feedback_store import FeedbackPage, StoreError, get_feedback_repository
from feedback_engine.main import app
from feedback_engine.models.feedback import FeedbackRecord, Sentiment
from feedback_engine.services.analytics_service import AnalyticsError, AnalyticsService, get_analytics_service
from feedback_engine.services.llm_handler import LLMError
from feedback_engine.services.review_analyzer import ReviewAnalyzer, get_review_analyzer

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
GENERIC_FAILURE = "Failed to process feedback. Please try again later."


@pytest.fixture
def repository():
    repository = Mock()
    repository.insert_feedback = AsyncMock(return_value="65f0c0ffee0000000000abcd")
    repository.list_feedback = AsyncMock(return_value=FeedbackPage(records=[], total=0, page=1, page_size=20))
    return repository


@pytest.fixture
def generator(stub_generator):
    return stub_generator(reply=json.dumps({
        "userResponse": "Thanks so much for the kind words!",
        "summary": "Customer loved the service.",
        "sentiment": "positive",
        "recommendedActions": ["Share with team"],
    }))


@pytest.fixture
def client(repository, generator):
    app.dependency_overrides[get_feedback_repository] = lambda: repository
    app.dependency_overrides[get_review_analyzer] = lambda: ReviewAnalyzer(generator, timeout_seconds=1)
    yield TestClient(app)
    app.dependency_overrides.clear()


def inserted_record(repository) -> FeedbackRecord:
    return repository.insert_feedback.await_args.args[0]


class TestSubmitFeedback:
    """POST /api/feedback"""

    def test_rating_only_submission(self, client, repository, generator):
        response = client.post("/api/feedback", json={"rating": 1, "review": ""})

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["id"] == "65f0c0ffee0000000000abcd"
        assert body["data"]["rating"] == 1
        assert body["data"]["userResponse"]

        record = inserted_record(repository)
        assert record.sentiment is Sentiment.NEGATIVE
        assert "Escalate to management immediately" in record.recommended_actions
        assert generator.prompts == []

    def test_missing_review_treated_as_empty(self, client, repository):
        response = client.post("/api/feedback", json={"rating": 3})

        assert response.status_code == 201
        assert inserted_record(repository).review == ""

    def test_model_analysis_stored(self, client, repository):
        response = client.post("/api/feedback", json={"rating": 5, "review": "  Fantastic support  "})

        assert response.status_code == 201
        assert response.json()["data"]["userResponse"] == "Thanks so much for the kind words!"
        record = inserted_record(repository)
        assert record.review == "Fantastic support"
        assert record.sentiment is Sentiment.POSITIVE
        assert record.summary == "Customer loved the service."
        assert record.created_at.tzinfo is not None

    def test_model_failure_still_succeeds(self, client, repository, generator):
        generator.error = LLMError("upstream down")

        response = client.post("/api/feedback", json={"rating": 5, "review": "Great"})

        assert response.status_code == 201
        record = inserted_record(repository)
        assert record.sentiment is Sentiment.POSITIVE
        assert record.summary == "Customer rated 5/5 and provided feedback about their experience."
        assert "Thank customer for positive feedback" in record.recommended_actions

    @pytest.mark.parametrize("payload", [
        {"rating": 0, "review": "x"},
        {"rating": 6, "review": "x"},
        {"rating": "3", "review": "x"},
        {"rating": 3.5, "review": "x"},
        {"review": "no rating"},
    ])
    def test_invalid_rating_rejected(self, client, repository, payload):
        response = client.post("/api/feedback", json=payload)

        assert response.status_code == 400
        assert response.json()["success"] is False
        repository.insert_feedback.assert_not_awaited()

    def test_review_too_long_rejected(self, client, repository, generator):
        response = client.post("/api/feedback", json={"rating": 3, "review": "a" * 5001})

        assert response.status_code == 400
        assert "5000" in response.json()["error"]
        repository.insert_feedback.assert_not_awaited()
        assert generator.prompts == []

    def test_review_at_limit_accepted(self, client, generator):
        response = client.post("/api/feedback", json={"rating": 3, "review": "a" * 5000})

        assert response.status_code == 201
        assert len(generator.prompts) == 1

    def test_store_failure_is_generic_500(self, client, repository):
        repository.insert_feedback.side_effect = StoreError("insert failed: connection reset")

        response = client.post("/api/feedback", json={"rating": 4, "review": "ok"})

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["error"] == GENERIC_FAILURE


class TestListFeedback:
    """GET /api/admin/feedbacks"""

    def test_page_with_metadata(self, client, repository):
        record = FeedbackRecord(
            id="65f0c0ffee0000000000abcd",
            rating=2,
            review="Slow",
            user_response="Sorry about that.",
            summary="Slow delivery.",
            sentiment=Sentiment.NEGATIVE,
            recommended_actions=["Check courier"],
            created_at=NOW,
        )
        repository.list_feedback.return_value = FeedbackPage(records=[record], total=25, page=2, page_size=10)

        response = client.get("/api/admin/feedbacks", params={"page": 2, "limit": 10})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["pagination"] == {"total": 25, "page": 2, "limit": 10, "totalPages": 3}
        item = data["feedbacks"][0]
        assert item["id"] == "65f0c0ffee0000000000abcd"
        assert item["userResponse"] == "Sorry about that."
        assert item["recommendedActions"] == ["Check courier"]
        assert item["sentiment"] == "negative"
        assert item["createdAt"].startswith("2026-10-18T12:00:00")

    def test_filters_forwarded(self, client, repository):
        client.get("/api/admin/feedbacks", params={
            "rating": 1,
            "sentiment": "negative",
            "startDate": "2026-10-01",
            "endDate": "2026-10-18T23:59:59Z",
            "search": " refund ",
        })

        filters, page, limit = repository.list_feedback.await_args.args
        assert (page, limit) == (1, 20)
        assert filters.rating == 1
        assert filters.sentiment == "negative"
        assert filters.start_date == datetime(2026, 10, 1, tzinfo=timezone.utc)
        assert filters.end_date == datetime(2026, 10, 18, 23, 59, 59, tzinfo=timezone.utc)
        assert filters.search == "refund"

    def test_non_numeric_rating_lists_unfiltered(self, client, repository):
        response = client.get("/api/admin/feedbacks", params={"rating": "abc"})

        assert response.status_code == 200
        filters, _, _ = repository.list_feedback.await_args.args
        assert filters.rating is None

    @pytest.mark.parametrize("params", [
        {"page": 0},
        {"limit": 0},
        {"limit": 500},
        {"page": "abc"},
        {"startDate": "not-a-date"},
        {"startDate": "2026-10-10", "endDate": "2026-10-01"},
    ])
    def test_bad_parameters_rejected(self, client, repository, params):
        response = client.get("/api/admin/feedbacks", params=params)

        assert response.status_code == 400
        assert response.json()["success"] is False
        repository.list_feedback.assert_not_awaited()

    def test_store_failure(self, client, repository):
        repository.list_feedback.side_effect = StoreError("find failed")

        response = client.get("/api/admin/feedbacks")

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to fetch feedbacks"


class TestAnalytics:
    """GET /api/admin/analytics"""

    @pytest.fixture
    def analytics_repository(self):
        repository = Mock()
        repository.overall_stats = AsyncMock(return_value=(1, 4.0))
        repository.count_by_field = AsyncMock(side_effect=lambda field: {"rating": {4: 1}, "sentiment": {"positive": 1}}[field])
        repository.daily_stats = AsyncMock(return_value={})
        repository.window_stats = AsyncMock(return_value=(1, 4.0))
        repository.count_between = AsyncMock(return_value=1)
        return repository

    def test_snapshot(self, client, analytics_repository):
        app.dependency_overrides[get_analytics_service] = lambda: AnalyticsService(analytics_repository)

        response = client.get("/api/admin/analytics")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["totalFeedbacks"] == 1
        assert data["averageRating"] == 4.0
        assert data["ratingDistribution"][3] == {"rating": 4, "count": 1, "percentage": 100}
        assert len(data["recentTrend"]) == 7
        assert data["todayStats"] == {"count": 1, "avgRating": 4.0}

    def test_failure_is_500(self, client):
        service = Mock()
        service.compute_snapshot = AsyncMock(side_effect=AnalyticsError("boom"))
        app.dependency_overrides[get_analytics_service] = lambda: service

        response = client.get("/api/admin/analytics")

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to fetch analytics", "status_code": 500}


class TestServiceEndpoints:

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["endpoints"]["analytics"] == "/api/admin/analytics"

    def test_feedback_health(self, client):
        assert client.get("/api/feedback/health").json()["status"] == "healthy"

    def test_ready_without_store(self, client):
        response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["success"] is False

    def test_unknown_route_uses_envelope(self, client):
        response = client.get("/api/nope")

        assert response.status_code == 404
        assert response.json()["success"] is False
