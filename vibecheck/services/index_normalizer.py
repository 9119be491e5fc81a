"""
Worseness index normalizer for VibeCheck.

Turns a model's daily net weighted points into a bounded 0-100 index:

1. Baseline = net_w of the days in [D - window, D) that have an aggregate.
2. Fewer than two baseline days: neutral 50, flagged as unmeasured.
3. z = (net_w(D) - mean) / sample stdev of the baseline.
4. index = clamp(0, 100, 50 + scale * z).

With zero baseline variance the index is 50 when today equals the mean and
saturates to 100 or 0 otherwise. Day D never contributes to its own
baseline.
"""

import math
import statistics
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Mapping, Optional

from vibecheck.core.config import settings
from vibecheck.core.exceptions import InsufficientBaseline
from vibecheck.utils.helpers import clamp

NEUTRAL_INDEX = 50.0
MIN_BASELINE_DAYS = 2


@dataclass(frozen=True)
class BaselineStats:
    """Mean and sample standard deviation of a baseline sample."""
    size: int
    mean: float
    stdev: float


@dataclass(frozen=True)
class IndexPoint:
    """Worseness index for one (model, day)."""
    day: date
    net_w: float
    index_100: float
    measured: bool
    baseline: Optional[BaselineStats] = None
    baseline_days: int = 0

    @property
    def insufficient_baseline(self) -> bool:
        return not self.measured


def baseline_stats(
    net_by_day: Mapping[date, float],
    day: date,
    window_days: Optional[int] = None,
) -> BaselineStats:
    """
    Compute the baseline for a target day.

    Args:
        net_by_day: Net weighted points per day; absent days have no data.
        day: Target day, excluded from its own baseline.
        window_days: Trailing window length, defaults to BASELINE_WINDOW_DAYS.

    Returns:
        Baseline statistics.

    Raises:
        InsufficientBaseline: If fewer than two days in the window have data.
    """
    window = window_days or settings.BASELINE_WINDOW_DAYS
    start = day - timedelta(days=window)
    sample = [
        value
        for d, value in net_by_day.items()
        if start <= d < day and value is not None and math.isfinite(value)
    ]
    if len(sample) < MIN_BASELINE_DAYS:
        raise InsufficientBaseline(len(sample))

    # statistics works on exact fractions, so identical days give exactly 0
    return BaselineStats(
        size=len(sample),
        mean=statistics.mean(sample),
        stdev=statistics.stdev(sample),
    )


def _current_net(value: Optional[float]) -> float:
    if value is None or not math.isfinite(value) or value < 0:
        return 0.0
    return value


def index_from_baseline(
    net_w: Optional[float],
    baseline: BaselineStats,
    scale: Optional[float] = None,
) -> float:
    """
    Map a day's net onto 0-100 against its baseline.

    Missing, non-finite or negative current-day input is scored as 0.

    With a zero-variance baseline, a day whose raw net equals the baseline
    mean is neutral (50) even when both are negative, e.g. every day at -5.
    Any other negative day is scored as 0 and so saturates to 100 against a
    negative baseline, or to 0 against a positive one.
    """
    scale = settings.INDEX_SCALE if scale is None else scale
    current = _current_net(net_w)

    if baseline.stdev == 0:
        if net_w == baseline.mean or current == baseline.mean:
            return NEUTRAL_INDEX
        return 100.0 if current > baseline.mean else 0.0

    z = (current - baseline.mean) / baseline.stdev
    return clamp(NEUTRAL_INDEX + scale * z, 0.0, 100.0)


def score_day(
    net_by_day: Mapping[date, float],
    day: date,
    window_days: Optional[int] = None,
    scale: Optional[float] = None,
) -> IndexPoint:
    """
    Score one day of one model.

    Args:
        net_by_day: Net weighted points per day for the model.
        day: Day to score.
        window_days: Baseline window length.
        scale: Index points per standard deviation.

    Returns:
        IndexPoint; unmeasured with index 50 when the baseline is insufficient.
    """
    net_w = net_by_day.get(day)
    try:
        baseline = baseline_stats(net_by_day, day, window_days)
    except InsufficientBaseline as e:
        return IndexPoint(
            day=day,
            net_w=net_w or 0.0,
            index_100=NEUTRAL_INDEX,
            measured=False,
            baseline_days=e.sample_size,
        )

    return IndexPoint(
        day=day,
        net_w=net_w or 0.0,
        index_100=index_from_baseline(net_w, baseline, scale),
        measured=True,
        baseline=baseline,
        baseline_days=baseline.size,
    )


def index_series(
    net_by_day: Mapping[date, float],
    days: Iterable[date],
    window_days: Optional[int] = None,
    scale: Optional[float] = None,
) -> List[IndexPoint]:
    """Score each of the given days, in the given order."""
    return [score_day(net_by_day, d, window_days, scale) for d in days]
