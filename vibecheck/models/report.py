"""
Report model for VibeCheck.

This module provides the report enumerations and the SQLAlchemy model for
stored vibe reports.
"""

import uuid
import enum
from sqlalchemy import Column, String, Text, DateTime, Enum, JSON, Index

from vibecheck.core.database import Base
from vibecheck.utils.helpers import utcnow


class IssueCategory(str, enum.Enum):
    """Enumeration of issue categories."""
    CONTEXT_MEMORY = "Context Memory"
    HALLUCINATIONS = "Hallucinations"
    SLOWNESS = "Slowness"
    REFUSALS = "Refusals"
    TONE = "Tone"
    FORMATTING = "Formatting"
    TOOL_USE = "Tool Use"
    RAG = "RAG"
    LOCALIZATION = "Localization"
    SAFETY = "Safety"


class Severity(str, enum.Enum):
    """Enumeration of severities, mildest first."""
    MINOR = "minor"
    NOTICEABLE = "noticeable"
    MAJOR = "major"
    BLOCKING = "blocking"


class Repro(str, enum.Enum):
    """Enumeration of self-reported reproducibility, rarest first."""
    ONCE = "once"
    SOMETIMES = "sometimes"
    OFTEN = "often"
    ALWAYS = "always"


class Vibe(str, enum.Enum):
    """Enumeration of directional judgments."""
    WORSE = "worse"
    BETTER = "better"
    NORMAL = "normal"


class Mode(str, enum.Enum):
    """Enumeration of interaction modes."""
    TEXT = "text"
    CODE = "code"
    IMAGE = "image"
    AUDIO = "audio"
    MULTIMODAL = "multimodal"


class ReportSource(str, enum.Enum):
    """Enumeration of report provenance tags."""
    WEB = "web"  # explicit user feedback
    SEED = "seed"  # synthetic telemetry
    SIGNAL = "signal"  # implicit telemetry


class Report(Base):
    """
    Report model representing one immutable observation of model behavior.
    """
    __tablename__ = "reports"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)

    # Dimensions
    model = Column(String(100), nullable=False, index=True)
    environment = Column(String(200), nullable=False, index=True)
    environment_version = Column(String(100), nullable=True)
    mode = Column(Enum(Mode), nullable=True)

    # Assessment
    issue_category = Column(Enum(IssueCategory), nullable=False, index=True)
    issue_tags = Column(JSON, nullable=False, default=list)
    severity = Column(Enum(Severity), nullable=False)
    repro = Column(Enum(Repro), nullable=False)
    vibe = Column(Enum(Vibe), nullable=False, index=True)
    details = Column(Text, nullable=True)

    # Provenance and client metadata
    source = Column(String(20), nullable=False, default=ReportSource.WEB.value, index=True)
    location = Column(String(2), nullable=True)
    user_agent = Column(String(500), nullable=True)
    ip_address = Column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_reports_model_timestamp", "model", "timestamp"),
    )

    def __repr__(self):
        return f"<Report {self.id}: {self.model} {self.vibe.value}>"
