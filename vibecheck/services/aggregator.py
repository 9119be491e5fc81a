"""
Daily aggregator for VibeCheck.

Groups reports by (model, UTC day, optional dimension) and sums weighted
points per vibe direction. A key with no reports produces no aggregate;
callers treat absence as "no data", which is distinct from zero.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Tuple

from vibecheck.models.report import Vibe
from vibecheck.models.schemas import ReportRecord
from vibecheck.services.weighting import weight


def _no_dimension(report: ReportRecord) -> Tuple[Hashable, ...]:
    return (None,)


def _issue_category(report: ReportRecord) -> Tuple[Hashable, ...]:
    return (report.issue_category.value,)


def _environment(report: ReportRecord) -> Tuple[Hashable, ...]:
    return (report.environment,)


def _issue_tags(report: ReportRecord) -> Tuple[Hashable, ...]:
    # multi-label: the report counts once under each of its tags
    return tuple(dict.fromkeys(report.issue_tags)) or (report.issue_category.value,)


def _cluster(report: ReportRecord) -> Tuple[Hashable, ...]:
    return ((report.issue_category.value, report.environment),)


DIMENSIONS: Dict[Optional[str], Callable[[ReportRecord], Tuple[Hashable, ...]]] = {
    None: _no_dimension,
    "issue_category": _issue_category,
    "environment": _environment,
    "issue_tag": _issue_tags,
    "cluster": _cluster,
}


@dataclass
class VibeSums:
    """Weighted and raw sums for one bucket."""
    worse_w: float = 0.0
    better_w: float = 0.0
    count_n: int = 0
    worse_n: int = 0
    better_n: int = 0

    @property
    def net_w(self) -> float:
        return self.worse_w - self.better_w

    def add(self, report: ReportRecord) -> None:
        """Count one report into the bucket."""
        w = weight(report.severity, report.repro)
        self.count_n += 1
        if report.vibe == Vibe.WORSE:
            self.worse_w += w
            self.worse_n += 1
        elif report.vibe == Vibe.BETTER:
            self.better_w += w
            self.better_n += 1

    def merge(self, other: "VibeSums") -> None:
        self.worse_w += other.worse_w
        self.better_w += other.better_w
        self.count_n += other.count_n
        self.worse_n += other.worse_n
        self.better_n += other.better_n


@dataclass
class DailyAggregate(VibeSums):
    """Sums for one (model, day, dimension value) key."""
    model: str = ""
    day: Optional[date] = None
    key: Hashable = None


def _resolve_dimension(dimension: Optional[str]):
    try:
        return DIMENSIONS[dimension]
    except KeyError:
        raise ValueError(
            f"Unknown dimension {dimension!r}. Must be one of: "
            f"{', '.join(str(d) for d in DIMENSIONS)}"
        ) from None


def aggregate_daily(
    reports: Iterable[ReportRecord],
    dimension: Optional[str] = None,
) -> List[DailyAggregate]:
    """
    Build daily aggregates from reports.

    Args:
        reports: Reports to aggregate.
        dimension: Optional grouping dimension ("issue_category",
            "environment", "issue_tag" or "cluster").

    Returns:
        Aggregates ordered by model, day and key. Only keys that received at
        least one report are present.
    """
    keys_for = _resolve_dimension(dimension)
    buckets: Dict[Tuple[str, date, Hashable], DailyAggregate] = {}

    for report in reports:
        for key in keys_for(report):
            bucket_key = (report.model, report.day, key)
            bucket = buckets.get(bucket_key)
            if bucket is None:
                bucket = DailyAggregate(model=report.model, day=report.day, key=key)
                buckets[bucket_key] = bucket
            bucket.add(report)

    return sorted(
        buckets.values(),
        key=lambda a: (a.model, a.day, str(a.key)),
    )


def rollup(aggregates: Iterable[DailyAggregate]) -> Dict[Hashable, VibeSums]:
    """
    Sum daily aggregates across days, per dimension key.

    Args:
        aggregates: Daily aggregates, typically for a single model.

    Returns:
        Mapping of dimension key to range totals.
    """
    totals: Dict[Hashable, VibeSums] = defaultdict(VibeSums)
    for aggregate in aggregates:
        totals[aggregate.key].merge(aggregate)
    return dict(totals)


def net_by_day(aggregates: Iterable[DailyAggregate], model: str) -> Dict[date, float]:
    """
    Project undimensioned aggregates of one model into {day: net_w}.

    Days without an aggregate are absent from the mapping.
    """
    return {
        a.day: a.net_w
        for a in aggregates
        if a.model == model and a.key is None
    }
