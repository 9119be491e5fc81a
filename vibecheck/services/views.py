"""
Summary and breakdown views for VibeCheck.

Every view performs exactly one read against the report store and computes
its result in memory, so each answer reflects a single consistent cut of
the data. Views hold no state between calls.
"""

import statistics
from datetime import date, datetime, timedelta
from typing import Dict, Hashable, List, Optional, Tuple

from vibecheck.core.config import settings
from vibecheck.core.logging import logger
from vibecheck.models.report import Vibe
from vibecheck.models.schemas import (
    ClusterRow, EnvRow, IssueRow, OverviewRow, RecentReportRow, ReportRecord,
    SummaryIndex, VibePoint,
)
from vibecheck.services.aggregator import (
    VibeSums, aggregate_daily, net_by_day, rollup,
)
from vibecheck.services.index_normalizer import NEUTRAL_INDEX, score_day
from vibecheck.services.report_store import ReportStore
from vibecheck.utils.helpers import day_start, iter_days, parse_utc, utcnow

BASELINE_PREV_DAYS = 7
SERIES_MIN_DAYS, SERIES_MAX_DAYS = 7, 90
CLUSTERS_MAX_LIMIT = 50
RECENT_MAX_LIMIT = 100
OVERVIEW_MAX_LIMIT = 24
OVERVIEW_ORDERS = ("today_index", "delta", "model")


def _bounded(value: int, low: int, high: int) -> int:
    return max(low, min(high, int(value)))


def classify_trend(delta: float, threshold: Optional[float] = None) -> str:
    """Presentation trend for an index delta: up, down or flat."""
    threshold = settings.TREND_THRESHOLD_PTS if threshold is None else threshold
    if delta > threshold:
        return "up"
    if delta < -threshold:
        return "down"
    return "flat"


def share_rows(totals: Dict[Hashable, VibeSums]) -> List[Tuple[Hashable, VibeSums, float]]:
    """
    Percentage share of weighted worse points per key.

    Returns:
        (key, sums, pct_w) tuples ordered by weighted points, largest first.
        pct_w is 0 for every key when the total is 0.
    """
    total = sum(s.worse_w for s in totals.values())
    rows = [
        (key, sums, 100.0 * sums.worse_w / total if total > 0 else 0.0)
        for key, sums in totals.items()
    ]
    rows.sort(key=lambda r: str(r[0]))
    rows.sort(key=lambda r: r[1].worse_w, reverse=True)
    return rows


class VibeViews:
    """
    Read views over stored reports for a single model or all models.
    """

    def __init__(
        self,
        store: ReportStore,
        clock=utcnow,
        window_days: Optional[int] = None,
        scale: Optional[float] = None,
    ):
        self.store = store
        self.clock = clock
        self.window_days = window_days or settings.BASELINE_WINDOW_DAYS
        self.scale = settings.INDEX_SCALE if scale is None else scale

    def today(self) -> date:
        return self.clock().date()

    def resolve_range(
        self,
        date_from=None,
        date_to=None,
    ) -> Tuple[datetime, datetime]:
        """
        Resolve an optional [date_from, date_to) range to naive UTC bounds.

        Missing bounds default to the last DEFAULT_RANGE_DAYS UTC days,
        ending at the start of tomorrow.

        Raises:
            ValueError: If a bound is not ISO-8601.
        """
        today = self.today()
        start = parse_utc(date_from)
        end = parse_utc(date_to)
        if start is None:
            start = day_start(today - timedelta(days=settings.DEFAULT_RANGE_DAYS - 1))
        if end is None:
            end = day_start(today + timedelta(days=1))
        return start, end

    def _score(self, nets: Dict[date, float], day: date):
        return score_day(nets, day, self.window_days, self.scale)

    def _history_start(self, first_day: date) -> datetime:
        return day_start(first_day - timedelta(days=self.window_days))

    def _summarize(self, nets: Dict[date, float], today: date) -> SummaryIndex:
        today_point = self._score(nets, today)

        prev_days = [today - timedelta(days=i) for i in range(BASELINE_PREV_DAYS, 0, -1)]
        prev_index = [self._score(nets, d).index_100 for d in prev_days if d in nets]
        avg_prev = statistics.mean(prev_index) if prev_index else NEUTRAL_INDEX

        delta = today_point.index_100 - avg_prev
        return SummaryIndex(
            today_index_100=today_point.index_100,
            avg_prev_7d_index_100=avg_prev,
            delta_index_pts=delta,
            trend=classify_trend(delta),
            today_measured=today_point.measured,
            baseline_days=today_point.baseline_days,
        )

    async def summary(self, model: str, source: Optional[str] = None) -> SummaryIndex:
        """
        Today's worseness index against the previous 7 days' average.

        Days without reports are left out of the 7-day average; with none at
        all the average is the neutral 50.
        """
        today = self.today()
        reports = await self.store.fetch_reports(
            model,
            self._history_start(today - timedelta(days=BASELINE_PREV_DAYS)),
            day_start(today + timedelta(days=1)),
            source,
        )
        nets = net_by_day(aggregate_daily(reports), model)
        return self._summarize(nets, today)

    async def vibe_series(
        self,
        model: str,
        days: int = 30,
        source: Optional[str] = None,
    ) -> List[VibePoint]:
        """
        Fixed-length daily series ending today, oldest first.

        Args:
            model: Model to chart.
            days: Window length, clamped to [7, 90].
            source: Optional provenance filter.
        """
        days = _bounded(days, SERIES_MIN_DAYS, SERIES_MAX_DAYS)
        today = self.today()
        first_day = today - timedelta(days=days - 1)
        tomorrow = today + timedelta(days=1)

        reports = await self.store.fetch_reports(
            model, self._history_start(first_day), day_start(tomorrow), source
        )
        aggregates = {a.day: a for a in aggregate_daily(reports) if a.model == model}
        nets = {d: a.net_w for d, a in aggregates.items()}

        series = []
        for d in iter_days(first_day, tomorrow):
            sums = aggregates.get(d) or VibeSums()
            point = self._score(nets, d)
            series.append(VibePoint(
                day=d,
                worse_w=sums.worse_w,
                better_w=sums.better_w,
                net_w=sums.net_w,
                index_100=point.index_100,
                measured=point.measured,
            ))
        return series

    async def _worse_reports(self, model, date_from, date_to, source) -> List[ReportRecord]:
        start, end = self.resolve_range(date_from, date_to)
        if start >= end:
            return []
        reports = await self.store.fetch_reports(model, start, end, source)
        return [r for r in reports if r.vibe == Vibe.WORSE]

    async def issue_breakdown(
        self,
        model: str,
        date_from=None,
        date_to=None,
        source: Optional[str] = None,
    ) -> List[IssueRow]:
        """
        Weighted worse points per issue category over a range.

        Returns an empty list for a range without worse reports.
        """
        worse = await self._worse_reports(model, date_from, date_to, source)
        totals = rollup(aggregate_daily(worse, "issue_category"))
        return [
            IssueRow(issue_tag=key, reports_w=sums.worse_w, reports_n=sums.worse_n, pct_w=pct)
            for key, sums, pct in share_rows(totals)
        ]

    async def tag_breakdown(
        self,
        model: str,
        date_from=None,
        date_to=None,
        source: Optional[str] = None,
    ) -> List[IssueRow]:
        """Like issue_breakdown, but a report counts once under each of its tags."""
        worse = await self._worse_reports(model, date_from, date_to, source)
        totals = rollup(aggregate_daily(worse, "issue_tag"))
        return [
            IssueRow(issue_tag=key, reports_w=sums.worse_w, reports_n=sums.worse_n, pct_w=pct)
            for key, sums, pct in share_rows(totals)
        ]

    async def env_breakdown(
        self,
        model: str,
        date_from=None,
        date_to=None,
        source: Optional[str] = None,
    ) -> List[EnvRow]:
        """Weighted worse points per environment over a range."""
        worse = await self._worse_reports(model, date_from, date_to, source)
        totals = rollup(aggregate_daily(worse, "environment"))
        return [
            EnvRow(environment=key, reports_w=sums.worse_w, reports_n=sums.worse_n, pct_w=pct)
            for key, sums, pct in share_rows(totals)
        ]

    async def top_clusters(
        self,
        model: str,
        date_from=None,
        date_to=None,
        limit: int = 20,
        source: Optional[str] = None,
    ) -> List[ClusterRow]:
        """
        Recurring (issue category, environment) pairs among worse reports.

        Ranked by weighted count, then raw count, then recency.
        """
        limit = _bounded(limit, 1, CLUSTERS_MAX_LIMIT)
        worse = await self._worse_reports(model, date_from, date_to, source)
        totals = rollup(aggregate_daily(worse, "cluster"))

        last_seen: Dict[Tuple[str, str], datetime] = {}
        examples: Dict[Tuple[str, str], Tuple[datetime, str]] = {}
        for report in worse:
            key = (report.issue_category.value, report.environment)
            if key not in last_seen or report.timestamp >= last_seen[key]:
                last_seen[key] = report.timestamp
            if report.details and (key not in examples or report.timestamp >= examples[key][0]):
                examples[key] = (report.timestamp, report.details)

        rows = [
            ClusterRow(
                issue_category=category,
                environment=environment,
                cluster_key=f"{category}|{environment}",
                cnt_w=sums.worse_w,
                cnt_n=sums.worse_n,
                example_details=examples.get((category, environment), (None, ""))[1],
                last_seen=last_seen[(category, environment)],
            )
            for (category, environment), sums in totals.items()
        ]
        rows.sort(key=lambda r: r.cluster_key)
        rows.sort(key=lambda r: (r.cnt_w, r.cnt_n, r.last_seen), reverse=True)
        return rows[:limit]

    async def recent(self, model: str, limit: int = 20) -> List[RecentReportRow]:
        """The newest reports for a model, newest first."""
        limit = _bounded(limit, 1, RECENT_MAX_LIMIT)
        records = await self.store.recent_reports(model, limit)
        return [RecentReportRow.model_validate(r.model_dump()) for r in records]

    async def models_overview(
        self,
        limit: int = 8,
        order_by: str = "today_index",
        source: Optional[str] = None,
    ) -> List[OverviewRow]:
        """
        Summaries for every model with reports in the baseline window.

        Args:
            limit: Number of models to return, clamped to [1, 24].
            order_by: "today_index" (desc), "delta" (desc) or "model" (asc).
            source: Optional provenance filter.
        """
        if order_by not in OVERVIEW_ORDERS:
            raise ValueError(
                f"Invalid order_by {order_by!r}. Must be one of: {', '.join(OVERVIEW_ORDERS)}"
            )
        limit = _bounded(limit, 1, OVERVIEW_MAX_LIMIT)
        today = self.today()
        week_start = today - timedelta(days=BASELINE_PREV_DAYS - 1)

        reports = await self.store.fetch_reports(
            None,
            self._history_start(today - timedelta(days=BASELINE_PREV_DAYS)),
            day_start(today + timedelta(days=1)),
            source,
        )
        aggregates = aggregate_daily(reports)

        by_model: Dict[str, List[ReportRecord]] = {}
        for report in reports:
            by_model.setdefault(report.model, []).append(report)

        rows = []
        for model, model_reports in by_model.items():
            summary = self._summarize(net_by_day(aggregates, model), today)
            today_worse = sum(
                a.worse_w for a in aggregates if a.model == model and a.day == today
            )
            recent_worse = [
                r for r in model_reports
                if r.vibe == Vibe.WORSE and r.day >= week_start
            ]
            ranked = share_rows(rollup(aggregate_daily(recent_worse, "issue_category")))
            rows.append(OverviewRow(
                model=model,
                today_worse_w=today_worse,
                top_issue=ranked[0][0] if ranked else None,
                **summary.model_dump(),
            ))

        rows.sort(key=lambda r: r.model)
        if order_by == "today_index":
            rows.sort(key=lambda r: r.today_index_100, reverse=True)
        elif order_by == "delta":
            rows.sort(key=lambda r: r.delta_index_pts, reverse=True)

        logger.debug(f"Models overview: {len(rows)} model(s), order_by={order_by}")
        return rows[:limit]
