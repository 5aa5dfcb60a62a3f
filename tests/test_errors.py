"""
Tests for error handling: structured error responses, HTTP status codes,
and the custom exception classes.
"""
from datetime import datetime

import httpx

from monitorwatch.core.config import Settings
from monitorwatch.core.deps import get_settings, get_summarizer
from monitorwatch.core.errors import (
    AINotConfiguredError,
    InvalidDateError,
    InvalidTimeRangeError,
    InvalidTimestampError,
    NoteNotFoundError,
    SummarizationError,
    UnauthorizedError,
)
from monitorwatch.main import app
from monitorwatch.services.summarizer import OpenRouterSummarizer


# ---------------------------------------------------------------------------
# Unit tests on exception classes
# ---------------------------------------------------------------------------

class TestExceptionClasses:
    def test_invalid_timestamp(self):
        err = InvalidTimestampError("yesterday")
        assert err.http_status == 422
        assert err.code == "INVALID_TIMESTAMP"
        assert err.to_dict()["details"]["timestamp"] == "yesterday"

    def test_invalid_time_range(self):
        err = InvalidTimeRangeError(datetime(2024, 1, 15, 15), datetime(2024, 1, 15, 14), "end before start")
        assert err.http_status == 422
        assert err.code == "INVALID_TIME_RANGE"
        assert err.to_dict()["details"]["start"] == "2024-01-15T15:00:00"

    def test_invalid_date(self):
        err = InvalidDateError("2024-13-01")
        assert err.code == "INVALID_DATE"
        assert "2024-13-01" in err.message

    def test_ai_not_configured_carries_reason(self):
        err = AINotConfiguredError(reason="System sleep")
        assert err.http_status == 503
        assert err.to_dict()["details"]["reason"] == "System sleep"

    def test_summarization_error_status(self):
        err = SummarizationError("AI API error: 429", status_code=429, reason="Manual")
        assert err.http_status == 502
        d = err.to_dict()
        assert d["details"]["upstream_status"] == 429
        assert d["details"]["reason"] == "Manual"

    def test_unauthorized(self):
        assert UnauthorizedError().http_status == 401

    def test_to_dict_without_details(self):
        d = UnauthorizedError().to_dict()
        assert set(d) == {"code", "message"}

    def test_not_found(self):
        err = NoteNotFoundError("2024-01-15")
        assert err.http_status == 404
        assert err.to_dict()["details"]["date"] == "2024-01-15"


# ---------------------------------------------------------------------------
# HTTP envelopes
# ---------------------------------------------------------------------------

class TestErrorEnvelopes:
    def test_validation_error_shape(self, client):
        r = client.post("/api/activity", json={"timestamp": "2024-01-15T10:00:00Z", "local_hour": 99})
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"]["errors"][0]["field"] == "local_hour"

    def test_invalid_date_path(self, client):
        r = client.get("/api/notes/not-a-date")
        assert r.status_code == 422
        assert r.json()["code"] == "INVALID_DATE"

    def test_note_not_found(self, client, user_id):
        r = client.get("/api/notes/2024-01-15", headers={"X-User-ID": user_id})
        assert r.status_code == 404
        assert r.json()["code"] == "NOTE_NOT_FOUND"

    def test_malformed_user_id_uses_default_user(self, client):
        r = client.get("/api/config", headers={"X-User-ID": "../../etc/passwd"})
        assert r.status_code == 200


class TestAuth:
    def _secured(self):
        app.dependency_overrides[get_settings] = lambda: Settings(API_SECRET_KEY="s3cret")

    def test_missing_key_rejected(self, client):
        self._secured()
        r = client.get("/api/config")
        assert r.status_code == 401
        assert r.json()["code"] == "UNAUTHORIZED"

    def test_wrong_key_rejected(self, client):
        self._secured()
        r = client.get("/api/config", headers={"Authorization": "Bearer nope"})
        assert r.status_code == 401

    def test_valid_key_accepted(self, client):
        self._secured()
        r = client.get("/api/config", headers={"Authorization": "Bearer s3cret"})
        assert r.status_code == 200

    def test_health_is_open(self, client):
        self._secured()
        assert client.get("/health").status_code == 200


class TestUpstreamFailures:
    def _seed(self, client, user_id) -> str:
        r = client.post("/api/activity", json={
            "timestamp": datetime.now().astimezone().isoformat(),
            "app_name": "Code",
        }, headers={"X-User-ID": user_id})
        return r.json()["local_date"]

    def test_ai_not_configured(self, client, user_id):
        day = self._seed(client, user_id)
        app.dependency_overrides[get_summarizer] = lambda: OpenRouterSummarizer(api_key="")
        r = client.post("/api/notes/generate", json={"date": day}, headers={"X-User-ID": user_id})
        assert r.status_code == 503
        assert r.json()["code"] == "AI_NOT_CONFIGURED"

    def test_upstream_error(self, client, user_id):
        day = self._seed(client, user_id)
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
        summarizer = OpenRouterSummarizer(api_key="k", client=httpx.AsyncClient(transport=transport))
        app.dependency_overrides[get_summarizer] = lambda: summarizer

        r = client.post("/api/notes/generate", json={"date": day}, headers={"X-User-ID": user_id})

        assert r.status_code == 502
        body = r.json()
        assert body["code"] == "SUMMARIZATION_FAILED"
        assert body["details"]["upstream_status"] == 500
        assert body["details"]["reason"] == "Manual"

    def test_failed_trigger_surfaces_error(self, client, user_id):
        now = datetime.now().astimezone()
        client.post("/api/activity", json={
            "timestamp": now.isoformat(),
            "local_date": now.date().isoformat(),
            "local_hour": now.hour,
            "app_name": "Code",
        }, headers={"X-User-ID": user_id})
        app.dependency_overrides[get_summarizer] = lambda: OpenRouterSummarizer(api_key="")

        r = client.post("/api/triggers/manual", headers={"X-User-ID": user_id})

        assert r.status_code == 503
        assert r.json()["details"]["reason"] == "Manual"
        assert app.state.scheduler.state.last_generation_at is None
