"""
Integration tests for the HTTP API.

The report store dependency is overridden with an in-memory SQLite store.
"""

import os
import sys
import unittest
from datetime import timedelta

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from vibecheck.main import app
from vibecheck.api.deps import get_report_store
from vibecheck.core.database import init_db
from vibecheck.core.exceptions import UpstreamUnavailable
from vibecheck.services.report_store import ReportStore, SqlReportStore
from vibecheck.utils.helpers import utcnow


def report_payload(**overrides):
    payload = {
        "model": "GPT-5",
        "environment": "Cursor IDE",
        "issue_category": "Context Memory",
        "issue_tags": ["Tool Use"],
        "severity": "major",
        "repro": "often",
        "vibe": "worse",
        "details": "Forgot the file I pasted two turns ago",
    }
    payload.update(overrides)
    return payload


class FailingStore(ReportStore):
    """Store whose backend is down."""

    async def append(self, record):
        raise UpstreamUnavailable("store down")

    async def fetch_reports(self, model, date_from, date_to, source=None):
        raise UpstreamUnavailable("store down")

    async def recent_reports(self, model, limit):
        raise UpstreamUnavailable("store down")


class TestAPI(unittest.TestCase):
    """Tests for the API endpoints."""

    def setUp(self):
        """Set up test fixtures."""
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        init_db(bind=self.engine)
        TestingSession = sessionmaker(bind=self.engine)

        def override_store():
            db = TestingSession()
            try:
                yield SqlReportStore(db)
            finally:
                db.close()

        app.dependency_overrides[get_report_store] = override_store
        self.client = TestClient(app)

    def tearDown(self):
        """Tear down test fixtures."""
        app.dependency_overrides.clear()
        self.engine.dispose()

    def test_root(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["name"], "VibeCheck")

    def test_submit_report(self):
        """Submissions return the stored id and timestamp."""
        response = self.client.post(
            "/api/reports",
            json=report_payload(),
            headers={"User-Agent": "pytest", "X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
        )

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body["ok"])
        self.assertTrue(body["id"])
        self.assertIn("timestamp", body)

        recent = self.client.get("/api/models/GPT-5/recent").json()
        self.assertEqual(len(recent), 1)
        self.assertEqual(recent[0]["issue_tags"], ["Context Memory", "Tool Use"])
        self.assertNotIn("ip_address", recent[0])

    def test_submit_invalid(self):
        """Invalid submissions are rejected with the offending field."""
        response = self.client.post("/api/reports", json=report_payload(severity="catastrophic"))

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["field"], "severity")

        response = self.client.post("/api/reports", json=report_payload(model=""))
        self.assertEqual(response.json()["field"], "model")

    def test_read_views(self):
        """Submitted reports flow into every read view."""
        for _ in range(3):
            self.client.post("/api/reports", json=report_payload())
        self.client.post("/api/reports", json=report_payload(
            environment="ChatGPT Web", issue_category="Hallucinations", vibe="better"
        ))

        summary = self.client.get("/api/models/GPT-5/summary")
        self.assertEqual(summary.status_code, 200)
        self.assertEqual(summary.json()["today_index_100"], 50.0)
        self.assertFalse(summary.json()["today_measured"])

        series = self.client.get("/api/models/GPT-5/vibe-series", params={"days": 14}).json()
        self.assertEqual(len(series), 14)
        self.assertAlmostEqual(series[-1]["worse_w"], 3 * 1.44)
        self.assertAlmostEqual(series[-1]["better_w"], 1.44)

        issues = self.client.get("/api/models/GPT-5/issues").json()
        self.assertEqual([row["issue_tag"] for row in issues], ["Context Memory"])
        self.assertAlmostEqual(issues[0]["pct_w"], 100.0)

        tags = self.client.get("/api/models/GPT-5/tags").json()
        self.assertEqual({row["issue_tag"] for row in tags}, {"Context Memory", "Tool Use"})

        envs = self.client.get("/api/models/GPT-5/environments").json()
        self.assertEqual([row["environment"] for row in envs], ["Cursor IDE"])

        clusters = self.client.get("/api/models/GPT-5/clusters", params={"limit": 5}).json()
        self.assertEqual(clusters[0]["cluster_key"], "Context Memory|Cursor IDE")
        self.assertEqual(clusters[0]["cnt_n"], 3)

        overview = self.client.get("/api/models/overview").json()
        self.assertEqual(overview[0]["model"], "GPT-5")
        self.assertEqual(overview[0]["top_issue"], "Context Memory")

    def test_date_range(self):
        self.client.post("/api/reports", json=report_payload())
        tomorrow = (utcnow() + timedelta(days=1)).date().isoformat()

        response = self.client.get(
            "/api/models/GPT-5/issues",
            params={"date_from": tomorrow, "date_to": tomorrow},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), [])

        response = self.client.get("/api/models/GPT-5/issues", params={"date_from": "yesterday"})
        self.assertEqual(response.status_code, 422)

    def test_query_bounds(self):
        self.assertEqual(
            self.client.get("/api/models/GPT-5/vibe-series", params={"days": 5}).status_code, 422
        )
        self.assertEqual(
            self.client.get("/api/models/GPT-5/clusters", params={"limit": 51}).status_code, 422
        )
        self.assertEqual(
            self.client.get("/api/models/GPT-5/recent", params={"limit": 0}).status_code, 422
        )
        self.assertEqual(
            self.client.get("/api/models/overview", params={"order_by": "popularity"}).status_code, 422
        )

    def test_upstream_unavailable(self):
        """Store failures map to a retryable 503."""
        app.dependency_overrides[get_report_store] = lambda: FailingStore()

        response = self.client.get("/api/models/GPT-5/summary")
        self.assertEqual(response.status_code, 503)
        self.assertTrue(response.json()["retryable"])

        response = self.client.post("/api/reports", json=report_payload())
        self.assertEqual(response.status_code, 503)

    def test_health(self):
        response = self.client.get("/api/health")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "operational")
        self.assertIn("database_status", body)
        self.assertEqual(body["analytics_status"], {"status": "disabled"})


if __name__ == "__main__":
    unittest.main()
