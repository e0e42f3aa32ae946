"""
Tests for the HTTP surface: ingestion webhook, job triggers, analytics and health.
"""

import json
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from aeo.main import create_app
from aeo.models import AuditResult, ContentItem, JobRun
from aeo.utils import get_db
from aeo.utils.security import compute_signature, verify_signature
from aeo.workers.tasks import JOB_TASKS

SECRET = "shh"


@pytest.fixture
def client(fake_db):
    app = create_app()

    async def override_get_db():
        yield fake_db.session()

    app.dependency_overrides[get_db] = override_get_db
    # No context manager: the lifespan would try to create tables
    return TestClient(app)


def post_json(client, payload, signature=None):
    body = json.dumps(payload).encode()
    headers = {"Content-Type": "application/json"}
    if signature is not None:
        headers["X-Webhook-Signature"] = signature
    return client.post("/api/webhook", content=body, headers=headers), body


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestWebhook:

    def test_accepts_post(self, client, fake_db):
        response, _ = post_json(client, {"title": "Discovery tips", "text": "Body.", "author": "Ada"})

        assert response.status_code == 202
        [item] = fake_db.of_type(ContentItem)
        assert response.json() == {"id": item.id}
        assert item.title == "Discovery tips"
        assert item.content == "Body."
        assert item.author == "Ada"
        assert item.source_type == "webhook"

    def test_custom_source_type(self, client, fake_db):
        post_json(client, {"title": "T", "text": "Body.", "source_type": "rss"})

        assert fake_db.of_type(ContentItem)[0].source_type == "rss"

    def test_missing_text(self, client, fake_db):
        response, _ = post_json(client, {"title": "T"})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required field: text"}
        assert fake_db.of_type(ContentItem) == []

    def test_missing_title(self, client):
        response, _ = post_json(client, {"text": "Body."})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required field: title"}

    def test_non_string_text(self, client):
        response, _ = post_json(client, {"title": "T", "text": 42})

        assert response.json() == {"error": "Missing required field: text"}

    def test_invalid_json(self, client):
        response = client.post("/api/webhook", content=b"{not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON"}

    def test_json_array_rejected(self, client):
        response, _ = post_json(client, [1, 2])

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON"}

    def test_valid_signature(self, client, fake_db, set_env):
        set_env(WEBHOOK_SECRET=SECRET)
        payload = {"title": "T", "text": "Body."}
        signature = compute_signature(json.dumps(payload).encode(), SECRET)

        response, _ = post_json(client, payload, signature)

        assert response.status_code == 202
        assert len(fake_db.of_type(ContentItem)) == 1

    def test_bad_signature(self, client, fake_db, set_env):
        set_env(WEBHOOK_SECRET=SECRET)

        response, _ = post_json(client, {"title": "T", "text": "Body."}, "deadbeef")

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid signature"}
        assert fake_db.of_type(ContentItem) == []

    def test_non_ascii_signature_rejected(self, client, fake_db, set_env):
        set_env(WEBHOOK_SECRET=SECRET)

        response = client.post(
            "/api/webhook",
            content=json.dumps({"title": "T", "text": "Body."}).encode(),
            headers={"Content-Type": "application/json", "X-Webhook-Signature": "ébad".encode("latin-1")},
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid signature"}
        assert fake_db.of_type(ContentItem) == []

    def test_verify_signature_handles_non_ascii(self):
        assert verify_signature(b"{}", "ébad", SECRET) is False
        assert verify_signature(b"{}", compute_signature(b"{}", SECRET), SECRET) is True

    def test_signature_without_secret_rejected(self, client):
        response, _ = post_json(client, {"title": "T", "text": "Body."}, "anything")

        assert response.status_code == 401

    def test_unsigned_accepted_when_secret_set(self, client, set_env):
        set_env(WEBHOOK_SECRET=SECRET)

        response, _ = post_json(client, {"title": "T", "text": "Body."})

        assert response.status_code == 202


class TestJobTriggers:

    @pytest.fixture
    def tasks(self):
        mocks = {kind: MagicMock() for kind in JOB_TASKS}
        with patch.dict(JOB_TASKS, mocks):
            yield mocks

    @pytest.mark.parametrize("kind", ["audit", "reinforcement", "content_build"])
    def test_queues_job(self, client, fake_db, tasks, kind):
        response = client.post(f"/api/jobs/{kind}")

        assert response.status_code == 202
        body = response.json()
        assert body["job_type"] == kind
        assert body["status"] == "queued"

        [run] = fake_db.of_type(JobRun)
        assert run.id == body["job_run_id"]
        assert run.triggered_by == "user"
        assert fake_db.commits >= 1
        tasks[kind].delay.assert_called_once_with(job_run_id=run.id, triggered_by="user")

    def test_unknown_kind(self, client, fake_db, tasks):
        response = client.post("/api/jobs/backfill")

        assert response.status_code == 404
        assert fake_db.of_type(JobRun) == []
        assert all(not t.delay.called for t in tasks.values())


class TestAnalytics:

    @pytest.fixture
    def seeded(self, fake_db):
        fake_db.seed(
            AuditResult(
                id="r1", run_id="run-1", prompt_id="p1", provider="openai",
                response_text="1. Matey AI", mentioned=True, mention_rank=1, similarity=0.8,
                meta={"intent": "comparison"}, created_at=datetime(2026, 5, 1, 9, 0),
            ),
            AuditResult(
                id="r2", run_id="run-1", prompt_id="p2", provider="openai",
                response_text="Clio", mentioned=False, mention_rank=None, similarity=0.4,
                meta={"intent": "comparison"}, created_at=datetime(2026, 5, 1, 10, 0),
            ),
        )
        return fake_db

    def test_kpis(self, client, seeded):
        response = client.get("/api/analytics/kpis")

        assert response.status_code == 200
        body = response.json()
        assert body["total_prompts"] == 2
        assert body["mention_rate"] == 0.5
        assert body["avg_similarity"] == pytest.approx(0.6)
        assert body["avg_mention_rank"] == 1

    def test_provider_filter_reaches_query(self, client, seeded):
        client.get("/api/analytics/kpis", params={"provider": "openai", "start_date": "2026-05-01T00:00:00"})

        sql = str(seeded.executed[0])
        assert "audit_results.provider" in sql
        assert "audit_results.created_at >=" in sql

    def test_trends(self, client, seeded):
        response = client.get("/api/analytics/trends", params={"last_n": 7})

        assert response.status_code == 200
        [point] = response.json()
        assert point["provider"] == "openai"
        assert point["date"] == "2026-05-01"
        assert point["mentions"] == 1

    def test_breakdown(self, client, seeded):
        response = client.get("/api/analytics/breakdown", params={"limit": 10})

        assert response.status_code == 200
        assert [row["prompt_id"] for row in response.json()] == ["p1", "p2"]

    def test_invalid_limit(self, client, seeded):
        assert client.get("/api/analytics/breakdown", params={"limit": 0}).status_code == 422
