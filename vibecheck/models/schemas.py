"""
Pydantic schemas for VibeCheck.

ReportRecord is the canonical in-memory report shared by the stores, the
scoring pipeline and the views. The row models below are the read-view
shapes returned to API callers.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from vibecheck.models.report import IssueCategory, Mode, Repro, Severity, Vibe


class ReportRecord(BaseModel):
    """One immutable observation of model behavior.

    Attributes:
        id: Store identifier, None until appended to a store that assigns one.
        timestamp: Naive UTC instant the behavior was observed.
        issue_tags: Always contains the issue category's value.
        source: Provenance tag ("web" for explicit feedback).
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: Optional[str] = None
    timestamp: datetime
    model: str
    environment: str
    issue_category: IssueCategory
    issue_tags: List[str] = Field(default_factory=list)
    severity: Severity
    repro: Repro
    vibe: Vibe
    details: Optional[str] = None
    source: str = "web"
    environment_version: Optional[str] = None
    mode: Optional[Mode] = None
    location: Optional[str] = None
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None

    @property
    def day(self) -> date:
        """UTC calendar day of the report."""
        return self.timestamp.date()


class VibePoint(BaseModel):
    """One day of the vibe timeseries."""

    day: date
    worse_w: float
    better_w: float
    net_w: float
    index_100: float = Field(ge=0, le=100)
    measured: bool


class SummaryIndex(BaseModel):
    """Today's index against the trailing 7-day baseline."""

    today_index_100: float = Field(ge=0, le=100)
    avg_prev_7d_index_100: float = Field(ge=0, le=100)
    delta_index_pts: float
    trend: str
    today_measured: bool
    baseline_days: int


class IssueRow(BaseModel):
    issue_tag: str
    reports_w: float
    reports_n: int
    pct_w: float


class EnvRow(BaseModel):
    environment: str
    reports_w: float
    reports_n: int
    pct_w: float


class ClusterRow(BaseModel):
    issue_category: str
    environment: str
    cluster_key: str
    cnt_w: float
    cnt_n: int
    example_details: str
    last_seen: datetime


class RecentReportRow(BaseModel):
    """A stored report as shown in the recent feed, without client metadata."""

    model_config = ConfigDict(from_attributes=True)

    timestamp: datetime
    model: str
    environment: str
    issue_category: IssueCategory
    issue_tags: List[str]
    severity: Severity
    repro: Repro
    vibe: Vibe
    details: Optional[str] = None
    source: str


class OverviewRow(SummaryIndex):
    model: str
    today_worse_w: float
    top_issue: Optional[str] = None


class SubmitResponse(BaseModel):
    ok: bool = True
    id: Optional[str] = None
    timestamp: datetime
