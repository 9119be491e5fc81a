"""
Report stores for VibeCheck.

A report store durably appends reports and answers range queries. Two
backends are provided: the local SQL database and a hosted analytics
backend (Tinybird Events + SQL APIs). Every read is a single query, so a
view computed from one read sees one consistent cut of the data.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vibecheck.core.config import settings
from vibecheck.core.exceptions import DomainError, UpstreamUnavailable
from vibecheck.core.logging import logger
from vibecheck.models.report import Report, ReportSource
from vibecheck.models.schemas import ReportRecord
from vibecheck.utils.helpers import generate_id, parse_utc


class ReportStore(ABC):
    """
    Base class for report stores.
    """

    @abstractmethod
    async def append(self, record: ReportRecord) -> ReportRecord:
        """
        Durably append one report.

        Returns:
            The stored record, with its identifier.
        """
        raise NotImplementedError

    @abstractmethod
    async def fetch_reports(
        self,
        model: Optional[str],
        date_from: datetime,
        date_to: datetime,
        source: Optional[str] = None,
    ) -> List[ReportRecord]:
        """
        Reports with timestamp in [date_from, date_to), oldest first.

        Args:
            model: Model to restrict to, or None for every model.
            date_from: Inclusive lower bound (naive UTC).
            date_to: Exclusive upper bound (naive UTC).
            source: Optional provenance filter.
        """
        raise NotImplementedError

    @abstractmethod
    async def recent_reports(self, model: str, limit: int) -> List[ReportRecord]:
        """The newest reports for a model, newest first."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release any resources held by the store."""
        pass


class SqlReportStore(ReportStore):
    """
    Report store backed by the local SQLAlchemy database.
    """

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _row(record: ReportRecord) -> Report:
        return Report(
            id=record.id or generate_id(),
            timestamp=record.timestamp,
            model=record.model,
            environment=record.environment,
            environment_version=record.environment_version,
            mode=record.mode,
            issue_category=record.issue_category,
            issue_tags=list(record.issue_tags),
            severity=record.severity,
            repro=record.repro,
            vibe=record.vibe,
            details=record.details,
            source=record.source,
            location=record.location,
            user_agent=record.user_agent,
            ip_address=record.ip_address,
        )

    async def append(self, record: ReportRecord) -> ReportRecord:
        row = self._row(record)
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to append report: {e}")
            raise UpstreamUnavailable(f"Report store unavailable: {e}") from e

        return ReportRecord.model_validate(row)

    async def append_many(self, records: List[ReportRecord]) -> int:
        """
        Append a batch of reports in one transaction.

        Returns:
            Number of reports written.
        """
        try:
            self.db.add_all([self._row(record) for record in records])
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to append report batch: {e}")
            raise UpstreamUnavailable(f"Report store unavailable: {e}") from e

        return len(records)

    async def fetch_reports(
        self,
        model: Optional[str],
        date_from: datetime,
        date_to: datetime,
        source: Optional[str] = None,
    ) -> List[ReportRecord]:
        query = self.db.query(Report).filter(
            Report.timestamp >= date_from,
            Report.timestamp < date_to,
        )
        if model is not None:
            query = query.filter(Report.model == model)
        if source:
            query = query.filter(Report.source == source)

        try:
            rows = query.order_by(Report.timestamp).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to query reports: {e}")
            raise UpstreamUnavailable(f"Report store unavailable: {e}") from e

        return [ReportRecord.model_validate(row) for row in rows]

    async def recent_reports(self, model: str, limit: int) -> List[ReportRecord]:
        try:
            rows = (
                self.db.query(Report)
                .filter(Report.model == model)
                .order_by(desc(Report.timestamp))
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to query recent reports: {e}")
            raise UpstreamUnavailable(f"Report store unavailable: {e}") from e

        return [ReportRecord.model_validate(row) for row in rows]


UPSTREAM_COLUMNS = (
    "timestamp", "model", "environment", "environment_version", "mode",
    "issue_category", "issue_tags", "severity", "repro", "vibe", "details",
    "source", "location",
)


def sql_literal(value: str) -> str:
    """Quote a string for inclusion in a ClickHouse SQL statement."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def sql_datetime(value: datetime) -> str:
    return f"toDateTime64({sql_literal(value.strftime('%Y-%m-%d %H:%M:%S'))}, 3, 'UTC')"


def upstream_row_to_record(row: Dict[str, Any]) -> ReportRecord:
    """
    Adapt an analytics row into a ReportRecord.

    Handles the legacy "user" source tag, tags sent as a comma separated
    string and empty strings used by the backend in place of nulls.
    """
    data = {k: v for k, v in row.items() if v not in ("", None)}

    tags = data.get("issue_tags") or []
    if isinstance(tags, str):
        tags = [t.strip() for t in tags.split(",") if t.strip()]
    category = data.get("issue_category")
    if category and category not in tags:
        tags = [category] + list(tags)
    data["issue_tags"] = tags

    source = data.get("source") or ReportSource.WEB.value
    data["source"] = ReportSource.WEB.value if source == "user" else source

    data["timestamp"] = parse_utc(data.get("timestamp"))
    return ReportRecord.model_validate(data)


class TinybirdReportStore(ReportStore):
    """
    Report store backed by the hosted analytics service.

    Appends go through the Events API into the feedback datasource; reads
    select raw rows from both the implicit signals and the explicit
    feedback datasources through the SQL API.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        token: Optional[str] = None,
        events_base: Optional[str] = None,
        events_token: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.host = (host or settings.TB_HOST).rstrip("/")
        self.token = token if token is not None else settings.TB_TOKEN
        self.events_base = (events_base or settings.events_base_url).rstrip("/")
        self.events_token = events_token if events_token is not None else settings.TB_EVENTS_TOKEN
        self.timeout = timeout or settings.TB_TIMEOUT
        self.signals_datasource = settings.TB_SIGNALS_DATASOURCE
        self.feedback_datasource = settings.TB_FEEDBACK_DATASOURCE
        self.session = session

    async def ensure_session(self):
        """Ensure an aiohttp session exists."""
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )

    async def close(self):
        """Close the aiohttp session."""
        if self.session:
            await self.session.close()
            self.session = None

    async def _query(self, sql: str) -> List[Dict[str, Any]]:
        """
        Run a read-only SQL statement.

        Raises:
            UpstreamUnavailable: On missing credentials, transport errors,
                non-200 responses or a body that is not a JSON object.
        """
        if not self.token:
            raise UpstreamUnavailable("Missing TB_TOKEN")

        await self.ensure_session()
        try:
            async with self.session.get(
                f"{self.host}/v0/sql",
                params={"q": f"{sql} FORMAT JSON"},
                headers={"Authorization": f"Bearer {self.token}"},
            ) as response:
                if response.status != 200:
                    text = await response.text()
                    logger.error(f"Analytics query failed: {response.status} {text}")
                    raise UpstreamUnavailable(
                        f"Analytics backend error {response.status}: {text}",
                        status=response.status,
                    )
                payload = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Analytics backend unreachable: {e}")
            raise UpstreamUnavailable(f"Analytics backend unreachable: {e}") from e
        except ValueError as e:
            logger.error(f"Analytics backend sent invalid JSON: {e}")
            raise UpstreamUnavailable(f"Analytics backend sent invalid JSON: {e}") from e

        if not isinstance(payload, dict) or not isinstance(payload.get("data") or [], list):
            logger.error(f"Unexpected analytics payload: {type(payload).__name__}")
            raise UpstreamUnavailable("Analytics backend sent an unexpected payload")
        return payload.get("data") or []

    def _records(self, rows: List[Dict[str, Any]]) -> List[ReportRecord]:
        """
        Adapt analytics rows into records.

        Raises:
            DomainError: If a row carries an unknown enum value or lacks a
                required field.
        """
        records = []
        for position, row in enumerate(rows):
            try:
                records.append(upstream_row_to_record(row))
            except (SchemaValidationError, ValueError, TypeError, AttributeError) as e:
                logger.error(f"Malformed analytics row {position}: {row!r}")
                raise DomainError(f"Malformed analytics row {position}: {e}") from e
        return records

    def _union(self, where: str) -> str:
        columns = ", ".join(UPSTREAM_COLUMNS)
        return (
            f"SELECT {columns} FROM {self.signals_datasource} WHERE {where} "
            f"UNION ALL "
            f"SELECT {columns} FROM {self.feedback_datasource} WHERE {where}"
        )

    async def fetch_reports(
        self,
        model: Optional[str],
        date_from: datetime,
        date_to: datetime,
        source: Optional[str] = None,
    ) -> List[ReportRecord]:
        conditions = [
            f"timestamp >= {sql_datetime(date_from)}",
            f"timestamp < {sql_datetime(date_to)}",
        ]
        if model is not None:
            conditions.append(f"model = {sql_literal(model)}")
        if source:
            sources = [source, "user"] if source == ReportSource.WEB.value else [source]
            conditions.append(f"source IN ({', '.join(sql_literal(s) for s in sources)})")

        sql = (
            f"SELECT * FROM ({self._union(' AND '.join(conditions))}) "
            f"ORDER BY timestamp"
        )
        return self._records(await self._query(sql))

    async def recent_reports(self, model: str, limit: int) -> List[ReportRecord]:
        sql = (
            f"SELECT * FROM ({self._union(f'model = {sql_literal(model)}')}) "
            f"ORDER BY timestamp DESC LIMIT {int(limit)}"
        )
        return self._records(await self._query(sql))

    async def append(self, record: ReportRecord) -> ReportRecord:
        if not self.events_token:
            raise UpstreamUnavailable("Missing TB_EVENTS_TOKEN")

        event = record.model_dump(mode="json", exclude={"id"}, exclude_none=True)
        event["timestamp"] = record.timestamp.isoformat(timespec="milliseconds") + "Z"
        event["issue_tags"] = list(record.issue_tags)

        await self.ensure_session()
        try:
            async with self.session.post(
                f"{self.events_base}/v0/events",
                params={"name": self.feedback_datasource, "wait": "true"},
                data=json.dumps(event) + "\n",
                headers={
                    "Authorization": f"Bearer {self.events_token}",
                    "Content-Type": "application/x-ndjson",
                },
            ) as response:
                if response.status not in (200, 202):
                    text = await response.text()
                    logger.error(f"Event append failed: {response.status} {text}")
                    raise UpstreamUnavailable(
                        f"Analytics events error {response.status}: {text}",
                        status=response.status,
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Analytics events unreachable: {e}")
            raise UpstreamUnavailable(f"Analytics events unreachable: {e}") from e

        return record.model_copy(update={"id": record.id or generate_id()})

    async def ping(self) -> Dict[str, Any]:
        """Check the SQL API answers."""
        await self._query("SELECT 1 AS ok")
        return {"status": "operational", "host": self.host}
