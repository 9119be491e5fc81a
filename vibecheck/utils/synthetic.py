"""
Synthetic report generator for VibeCheck.

Produces realistic-looking reports for demos and tests. All randomness comes
from the random.Random instance handed to the generator.
"""

import random
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from vibecheck.models.report import (
    IssueCategory, Repro, ReportSource, Severity, Vibe,
)
from vibecheck.models.schemas import ReportRecord
from vibecheck.services.ingest import guess_mode

DEFAULT_MODELS = ["GPT-5", "GPT-4o", "Gemini 2.5", "Claude 3.7", "Grok-3"]

ENVIRONMENT_WEIGHTS = [
    ("ChatGPT Web", 0.42),
    ("Cursor IDE", 0.22),
    ("OpenAI API", 0.17),
    ("Notion AI", 0.08),
    ("Replit AI", 0.07),
    ("Bard app", 0.04),
]

EXTRA_TAGS = [
    "Context Memory", "Hallucinations", "Latency", "Refusals", "Formatting",
    "Tool Use", "RAG", "Localization", "Safety", "Policy",
]

COUNTRIES = ["US", "DE", "GB", "IN", "CA", "FR", "AU", "BR", "JP", "NL"]

# per-model category multipliers, matched on a lowercase substring
MODEL_ISSUE_BIAS = {
    "gpt-5": {"Context Memory": 1.5, "Slowness": 1.25, "Tool Use": 1.2},
    "gpt-4": {"Formatting": 1.25, "Tone": 1.1},
    "claude": {"Refusals": 1.6, "Tone": 1.25},
    "gemini": {"Hallucinations": 1.6, "RAG": 1.2},
    "grok": {"Safety": 1.4, "Hallucinations": 1.2},
}

DETAIL_TEMPLATES = {
    IssueCategory.CONTEXT_MEMORY: "{model} in {env} seems to forget earlier turns or file context.",
    IssueCategory.HALLUCINATIONS: "{model} produced fabricated facts/citations in {env}.",
    IssueCategory.SLOWNESS: "{env} feels slower than usual with {model}.",
    IssueCategory.REFUSALS: "{model} is refusing prompts it used to accept in {env}.",
    IssueCategory.TONE: "{model} tone/voice feels off/inconsistent in {env}.",
    IssueCategory.FORMATTING: "{model} returns broken or inconsistent formatting/markdown in {env}.",
    IssueCategory.TOOL_USE: "{model} calls tools poorly or ignores tool results in {env}.",
    IssueCategory.RAG: "{model} retrieval seems stale or misses obvious facts in {env}.",
    IssueCategory.LOCALIZATION: "{model} outputs incorrect locale or mixed languages in {env}.",
    IssueCategory.SAFETY: "{model} safety guardrails behave oddly (over/under-blocking) in {env}.",
}


def zipf_weights(items: Sequence, skew: float) -> List[Tuple[object, float]]:
    """Normalized Zipf weights: the i-th item gets 1 / (i + 1) ** skew."""
    raw = [1.0 / (i + 1) ** skew for i in range(len(items))]
    total = sum(raw)
    return [(item, w / total) for item, w in zip(items, raw)]


def normalize(pairs: Sequence[Tuple[object, float]]) -> List[Tuple[object, float]]:
    total = sum(w for _, w in pairs) or 1.0
    return [(item, w / total) for item, w in pairs]


class SyntheticReports:
    """
    Generator of synthetic vibe reports.

    Args:
        rng: Source of randomness, seeded by the caller.
        models: Model names, most popular first.
        model_skew: Zipf exponent of the model mix.
        issue_skew: Zipf exponent of the issue category mix.
        spikes: Incident windows, each (model substring, environment,
            category, first day, last day, multiplier).
    """

    def __init__(
        self,
        rng: random.Random,
        models: Optional[Sequence[str]] = None,
        model_skew: float = 1.4,
        issue_skew: float = 1.25,
        spikes: Optional[Sequence[Tuple[str, str, IssueCategory, date, date, float]]] = None,
    ):
        self.rng = rng
        self.models = list(models or DEFAULT_MODELS)
        self.model_weights = zipf_weights(self.models, model_skew)
        self.issue_base = zipf_weights(list(IssueCategory), issue_skew)
        self.environment_weights = normalize(ENVIRONMENT_WEIGHTS)
        self.spikes = list(spikes or [])

    def _pick(self, pairs: Sequence[Tuple[object, float]]):
        r = self.rng.random()
        for value, w in pairs:
            r -= w
            if r <= 0:
                return value
        return pairs[-1][0]

    def _issue_weights(self, model: str):
        bias: Dict[str, float] = {}
        lowered = model.lower()
        for needle, multipliers in MODEL_ISSUE_BIAS.items():
            if needle in lowered:
                bias = multipliers
                break
        return normalize([(c, w * bias.get(c.value, 1.0)) for c, w in self.issue_base])

    def _severity(self, category: IssueCategory) -> Severity:
        r = self.rng.random()
        if category in (IssueCategory.SLOWNESS, IssueCategory.CONTEXT_MEMORY):
            cuts = (0.05, 0.25, 0.75)
        elif category in (IssueCategory.REFUSALS, IssueCategory.SAFETY):
            cuts = (0.04, 0.30, 0.80)
        else:
            cuts = (0.02, 0.20, 0.75)
        if r < cuts[0]:
            return Severity.BLOCKING
        if r < cuts[1]:
            return Severity.MAJOR
        if r < cuts[2]:
            return Severity.NOTICEABLE
        return Severity.MINOR

    def _repro(self, category: IssueCategory) -> Repro:
        r = self.rng.random()
        if category == IssueCategory.CONTEXT_MEMORY:
            order = ((0.5, Repro.OFTEN), (0.85, Repro.SOMETIMES), (0.97, Repro.ALWAYS))
        elif category == IssueCategory.SLOWNESS:
            order = ((0.4, Repro.OFTEN), (0.8, Repro.SOMETIMES), (0.95, Repro.ALWAYS))
        else:
            order = ((0.2, Repro.OFTEN), (0.75, Repro.SOMETIMES), (0.95, Repro.ONCE))
        for cut, value in order:
            if r < cut:
                return value
        return Repro.ONCE if category in (IssueCategory.CONTEXT_MEMORY, IssueCategory.SLOWNESS) else Repro.ALWAYS

    def _vibe(self, implicit: bool) -> Vibe:
        r = self.rng.random()
        if implicit:
            return Vibe.WORSE if r < 0.82 else Vibe.NORMAL if r < 0.92 else Vibe.BETTER
        return Vibe.WORSE if r < 0.86 else Vibe.BETTER if r < 0.94 else Vibe.NORMAL

    def _tags(self, category: IssueCategory) -> List[str]:
        tags = [category.value]
        for chance in (0.35, 0.12):
            if self.rng.random() < chance:
                tag = self.rng.choice(EXTRA_TAGS)
                if tag not in tags:
                    tags.append(tag)
        return tags

    def spike_factor(self, day: date, model: str, environment: str, category: IssueCategory) -> float:
        for needle, env, cat, first, last, factor in self.spikes:
            if needle in model and env == environment and cat == category and first <= day <= last:
                return factor
        return 1.0

    def report(self, timestamp: datetime, implicit: bool = True, model: Optional[str] = None) -> ReportRecord:
        """Build one synthetic report observed at timestamp."""
        model = model or self._pick(self.model_weights)
        environment = self._pick(self.environment_weights)
        category = self._pick(self._issue_weights(model))
        return ReportRecord(
            timestamp=timestamp,
            model=model,
            environment=environment,
            issue_category=category,
            issue_tags=self._tags(category),
            severity=self._severity(category),
            repro=self._repro(category),
            vibe=self._vibe(implicit),
            details=DETAIL_TEMPLATES[category].format(model=model, env=environment),
            source=ReportSource.SEED.value if implicit else ReportSource.WEB.value,
            environment_version=f"{'web' if 'Web' in environment else 'api' if 'API' in environment else 'desktop'}"
                                f"-2025.{self.rng.randint(7, 8)}.{self.rng.randint(1, 28)}",
            mode=guess_mode(environment, category.value),
            location=self.rng.choice(COUNTRIES),
        )

    def day(self, day: date, signals: int, feedback: int) -> Iterator[ReportRecord]:
        """
        Reports for one UTC day.

        Weekend volume is scaled down; spike windows repeat matching signals.
        """
        multiplier = 0.7 if day.weekday() >= 5 else 1.0
        n_signals = max(1, round(signals * multiplier * self.rng.uniform(0.75, 1.25)))
        n_feedback = max(1, round(feedback * multiplier * self.rng.uniform(0.65, 1.35)))

        midnight = datetime.combine(day, time.min)
        for _ in range(n_signals):
            ts = midnight + timedelta(seconds=self.rng.randint(0, 86399))
            record = self.report(ts, implicit=True)
            copies = max(1, round(self.spike_factor(day, record.model, record.environment, record.issue_category)))
            for _ in range(copies):
                yield record

        for _ in range(n_feedback):
            ts = midnight + timedelta(hours=8, seconds=self.rng.randint(0, 14 * 3600))
            yield self.report(ts, implicit=False)

    def days(self, last_day: date, count: int, signals: int = 220, feedback: int = 40) -> Iterator[ReportRecord]:
        """Reports for count consecutive days ending at last_day, oldest first."""
        for offset in range(count - 1, -1, -1):
            yield from self.day(last_day - timedelta(days=offset), signals, feedback)
