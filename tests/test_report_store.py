"""
Tests for the report stores.

The SQL store runs against an in-memory SQLite database; the analytics
store is exercised with a mocked aiohttp session.
"""

import os
import sys
import json
import asyncio
import unittest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import aiohttp
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from vibecheck.core.database import init_db
from vibecheck.core.exceptions import DomainError, UpstreamUnavailable
from vibecheck.models.report import IssueCategory, Mode, Report, Repro, Severity, Vibe
from vibecheck.models.schemas import ReportRecord
from vibecheck.services.report_store import (
    SqlReportStore, TinybirdReportStore, sql_literal, upstream_row_to_record,
)
from vibecheck.utils.helpers import utcnow


def make_report(ts, model="GPT-5", source="web", details=None):
    return ReportRecord(
        timestamp=ts,
        model=model,
        environment="ChatGPT Web",
        issue_category="Hallucinations",
        issue_tags=["Hallucinations", "RAG"],
        severity="major",
        repro="often",
        vibe="worse",
        source=source,
        details=details,
        user_agent="pytest",
    )


def upstream_row(**overrides):
    row = {
        "timestamp": "2025-08-20 10:15:00.000",
        "model": "GPT-5",
        "environment": "Cursor IDE",
        "environment_version": "",
        "mode": "code",
        "issue_category": "Context Memory",
        "issue_tags": "Latency, Tool Use",
        "severity": "major",
        "repro": "often",
        "vibe": "worse",
        "details": "",
        "source": "user",
        "location": "US",
    }
    row.update(overrides)
    return row


class TestSqlReportStore(unittest.TestCase):
    """Tests for SqlReportStore."""

    def setUp(self):
        """Set up test fixtures."""
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        init_db(bind=self.engine)
        self.db = sessionmaker(bind=self.engine)()
        self.store = SqlReportStore(self.db)

    def tearDown(self):
        """Tear down test fixtures."""
        self.db.close()
        self.engine.dispose()

    def test_append_assigns_id(self):
        stored = asyncio.run(self.store.append(make_report(datetime(2025, 8, 20, 9))))

        self.assertIsNotNone(stored.id)
        self.assertEqual(stored.issue_category, IssueCategory.HALLUCINATIONS)
        self.assertEqual(stored.issue_tags, ["Hallucinations", "RAG"])
        self.assertEqual(stored.user_agent, "pytest")

    def test_timestamp_defaults_to_naive_utc(self):
        """Rows written without a timestamp get the current naive UTC time."""
        before = utcnow()
        row = Report(
            model="GPT-5",
            environment="ChatGPT Web",
            issue_category=IssueCategory.RAG,
            issue_tags=["RAG"],
            severity=Severity.MINOR,
            repro=Repro.ONCE,
            vibe=Vibe.NORMAL,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)

        self.assertIsNone(row.timestamp.tzinfo)
        self.assertGreaterEqual(row.timestamp, before)
        self.assertLessEqual(row.timestamp, utcnow())

    def test_fetch_half_open_range(self):
        """fetch_reports returns [date_from, date_to), oldest first."""
        for ts in (datetime(2025, 8, 19, 23, 59), datetime(2025, 8, 20, 0, 0),
                   datetime(2025, 8, 20, 18), datetime(2025, 8, 21, 0, 0)):
            asyncio.run(self.store.append(make_report(ts)))
        asyncio.run(self.store.append(make_report(datetime(2025, 8, 20, 12), model="Grok-3")))

        reports = asyncio.run(self.store.fetch_reports(
            "GPT-5", datetime(2025, 8, 20), datetime(2025, 8, 21)
        ))
        self.assertEqual(
            [r.timestamp for r in reports],
            [datetime(2025, 8, 20, 0, 0), datetime(2025, 8, 20, 18)],
        )

        every_model = asyncio.run(self.store.fetch_reports(
            None, datetime(2025, 8, 20), datetime(2025, 8, 21)
        ))
        self.assertEqual(len(every_model), 3)

    def test_fetch_by_source(self):
        asyncio.run(self.store.append_many([
            make_report(datetime(2025, 8, 20, 9), source="web"),
            make_report(datetime(2025, 8, 20, 10), source="seed"),
            make_report(datetime(2025, 8, 20, 11), source="seed"),
        ]))

        seeded = asyncio.run(self.store.fetch_reports(
            "GPT-5", datetime(2025, 8, 20), datetime(2025, 8, 21), source="seed"
        ))
        self.assertEqual(len(seeded), 2)

    def test_recent_newest_first(self):
        for hour in (8, 10, 9):
            asyncio.run(self.store.append(make_report(datetime(2025, 8, 20, hour))))

        recent = asyncio.run(self.store.recent_reports("GPT-5", 2))
        self.assertEqual([r.timestamp.hour for r in recent], [10, 9])


class TestUpstreamRows(unittest.TestCase):
    """Tests for upstream_row_to_record()."""

    def test_adapts_row(self):
        record = upstream_row_to_record(upstream_row())

        self.assertEqual(record.timestamp, datetime(2025, 8, 20, 10, 15))
        self.assertEqual(record.issue_tags, ["Context Memory", "Latency", "Tool Use"])
        self.assertEqual(record.source, "web")
        self.assertEqual(record.mode, Mode.CODE)
        self.assertIsNone(record.details)
        self.assertIsNone(record.environment_version)

    def test_array_tags_and_offsets(self):
        record = upstream_row_to_record(upstream_row(
            timestamp="2025-08-20T12:15:00+02:00",
            issue_tags=["Context Memory", "RAG"],
            source="seed",
        ))

        self.assertEqual(record.timestamp, datetime(2025, 8, 20, 10, 15))
        self.assertEqual(record.issue_tags, ["Context Memory", "RAG"])
        self.assertEqual(record.source, "seed")

    def test_sql_literal_escapes(self):
        self.assertEqual(sql_literal("it's"), "'it\\'s'")
        self.assertEqual(sql_literal("a\\b"), "'a\\\\b'")


class TestTinybirdReportStore(unittest.TestCase):
    """Tests for TinybirdReportStore."""

    def setUp(self):
        """Set up test fixtures."""
        self.session = MagicMock()
        self.store = TinybirdReportStore(
            host="https://tb.example.com/",
            token="read-token",
            events_base="https://events.example.com",
            events_token="write-token",
            timeout=5,
            session=self.session,
        )

    def mock_response(self, method, status=200, payload=None, text=""):
        response = AsyncMock()
        response.status = status
        response.json.return_value = payload or {"data": []}
        response.text.return_value = text
        getattr(self.session, method).return_value.__aenter__.return_value = response
        return response

    def test_fetch_reports(self):
        """Rows from both datasources are adapted."""
        self.mock_response("get", payload={"data": [upstream_row()]})

        reports = asyncio.run(self.store.fetch_reports(
            "GPT-5", datetime(2025, 8, 20), datetime(2025, 8, 21), source="web"
        ))

        self.assertEqual(len(reports), 1)
        self.assertEqual(reports[0].vibe, Vibe.WORSE)

        args, kwargs = self.session.get.call_args
        self.assertEqual(args[0], "https://tb.example.com/v0/sql")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer read-token")
        sql = kwargs["params"]["q"]
        self.assertIn("ai_model_signals", sql)
        self.assertIn("ai_user_feedback", sql)
        self.assertIn("UNION ALL", sql)
        self.assertIn("model = 'GPT-5'", sql)
        self.assertIn("source IN ('web', 'user')", sql)
        self.assertTrue(sql.endswith("FORMAT JSON"))

    def test_recent_reports_limit(self):
        self.mock_response("get")

        asyncio.run(self.store.recent_reports("GPT-5", 5))

        sql = self.session.get.call_args.kwargs["params"]["q"]
        self.assertIn("ORDER BY timestamp DESC LIMIT 5", sql)

    def test_error_status(self):
        """Non-200 answers raise UpstreamUnavailable carrying the status."""
        self.mock_response("get", status=500, text="boom")

        with self.assertRaises(UpstreamUnavailable) as ctx:
            asyncio.run(self.store.fetch_reports(None, datetime(2025, 8, 20), datetime(2025, 8, 21)))
        self.assertEqual(ctx.exception.status, 500)
        self.assertTrue(ctx.exception.retryable)

    def test_transport_error(self):
        self.session.get.side_effect = aiohttp.ClientConnectionError("refused")

        with self.assertRaises(UpstreamUnavailable):
            asyncio.run(self.store.recent_reports("GPT-5", 5))

    def test_invalid_json_body(self):
        """A 200 answer that is not JSON is a retryable upstream failure."""
        response = self.mock_response("get")
        response.json.side_effect = json.JSONDecodeError("Expecting value", "<html>", 0)

        with self.assertRaises(UpstreamUnavailable) as ctx:
            asyncio.run(self.store.fetch_reports("GPT-5", datetime(2025, 8, 20), datetime(2025, 8, 21)))
        self.assertTrue(ctx.exception.retryable)

    def test_unexpected_payload_shape(self):
        """A JSON body that is not an object with a data list is rejected."""
        self.mock_response("get", payload=[upstream_row()])

        with self.assertRaises(UpstreamUnavailable):
            asyncio.run(self.store.fetch_reports("GPT-5", datetime(2025, 8, 20), datetime(2025, 8, 21)))

        self.mock_response("get", payload={"data": "oops"})

        with self.assertRaises(UpstreamUnavailable):
            asyncio.run(self.store.recent_reports("GPT-5", 5))

    def test_unknown_enum_in_row(self):
        """A row with an unknown severity is surfaced, never silently dropped."""
        self.mock_response("get", payload={"data": [upstream_row(), upstream_row(severity="catastrophic")]})

        with self.assertRaises(DomainError) as ctx:
            asyncio.run(self.store.fetch_reports("GPT-5", datetime(2025, 8, 20), datetime(2025, 8, 21)))
        self.assertIn("row 1", str(ctx.exception))

    def test_row_missing_fields(self):
        self.mock_response("get", payload={"data": [{"model": "GPT-5"}]})

        with self.assertRaises(DomainError):
            asyncio.run(self.store.recent_reports("GPT-5", 5))

    def test_missing_token(self):
        self.store.token = ""

        with self.assertRaises(UpstreamUnavailable):
            asyncio.run(self.store.recent_reports("GPT-5", 5))
        self.session.get.assert_not_called()

    def test_append(self):
        """Appends post one NDJSON event into the feedback datasource."""
        self.mock_response("post", status=202)

        stored = asyncio.run(self.store.append(make_report(datetime(2025, 8, 20, 9), details="slow")))

        self.assertIsNotNone(stored.id)
        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], "https://events.example.com/v0/events")
        self.assertEqual(kwargs["params"]["name"], "ai_user_feedback")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer write-token")
        self.assertTrue(kwargs["data"].endswith("\n"))

        event = json.loads(kwargs["data"])
        self.assertEqual(event["timestamp"], "2025-08-20T09:00:00.000Z")
        self.assertEqual(event["issue_tags"], ["Hallucinations", "RAG"])
        self.assertEqual(event["details"], "slow")
        self.assertNotIn("id", event)

    def test_append_rejected(self):
        self.mock_response("post", status=403, text="forbidden")

        with self.assertRaises(UpstreamUnavailable) as ctx:
            asyncio.run(self.store.append(make_report(datetime(2025, 8, 20, 9))))
        self.assertEqual(ctx.exception.status, 403)


if __name__ == "__main__":
    unittest.main()
