"""
Report ingest service for VibeCheck.

This module validates and timestamps report submissions and appends them to
the report store.
"""

import re
from typing import Any, Dict, List, Optional, Type

from vibecheck.core.exceptions import ValidationError
from vibecheck.core.logging import logger
from vibecheck.models.report import (
    IssueCategory, Mode, Repro, ReportSource, Severity, Vibe,
)
from vibecheck.models.schemas import ReportRecord
from vibecheck.services.report_store import ReportStore
from vibecheck.utils.helpers import utcnow

MAX_DETAILS_LENGTH = 2000
REQUIRED_TEXT_FIELDS = ("model", "environment")

CODE_ENVIRONMENTS = re.compile(r"cursor|vscode|replit|jetbrains|zed", re.IGNORECASE)
MULTIMODAL_CATEGORIES = re.compile(r"tool|rag", re.IGNORECASE)


def guess_mode(environment: str, issue_category: str) -> Mode:
    """
    Best-effort interaction mode when the submitter did not give one.

    IDE-like surfaces are code, tool and retrieval issues multimodal,
    everything else text.
    """
    if CODE_ENVIRONMENTS.search(environment or ""):
        return Mode.CODE
    if MULTIMODAL_CATEGORIES.search(issue_category or ""):
        return Mode.MULTIMODAL
    return Mode.TEXT


def _enum_field(payload: Dict[str, Any], field: str, enum_cls: Type, required: bool = True):
    value = payload.get(field)
    if value is None or value == "":
        if required:
            raise ValidationError(field, "Field is required")
        return None
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        raise ValidationError(
            field,
            f"Invalid value {value!r}. Must be one of: {', '.join(m.value for m in enum_cls)}",
        ) from None


def _optional_text(payload: Dict[str, Any], field: str) -> Optional[str]:
    value = payload.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(field, "Must be a string")
    return value.strip() or None


def _normalize_tags(raw: Any, category: IssueCategory) -> List[str]:
    if raw is None:
        raw = []
    if not isinstance(raw, (list, tuple, set)) or not all(isinstance(t, str) for t in raw):
        raise ValidationError("issue_tags", "Must be a list of strings")

    tags = [category.value]
    for tag in raw:
        tag = tag.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


class ReportIngest:
    """
    Validates report submissions and appends them to a store.

    Submission is not idempotent: every accepted call appends a new row.
    """

    def __init__(self, store: ReportStore, clock=utcnow):
        self.store = store
        self.clock = clock

    def validate(
        self,
        payload: Dict[str, Any],
        source: str = ReportSource.WEB.value,
        client: Optional[Dict[str, Optional[str]]] = None,
    ) -> ReportRecord:
        """
        Validate a candidate report and build the canonical record.

        Args:
            payload: Submitted fields.
            source: Provenance tag for the record.
            client: Client metadata (user_agent, ip_address) from the transport.

        Returns:
            Timestamped ReportRecord.

        Raises:
            ValidationError: If a field is missing, malformed or out of range.
        """
        if not isinstance(payload, dict):
            raise ValidationError("body", "Report must be a JSON object")

        text = {}
        for field in REQUIRED_TEXT_FIELDS:
            value = _optional_text(payload, field)
            if not value:
                raise ValidationError(field, "Field is required")
            text[field] = value

        issue_category = _enum_field(payload, "issue_category", IssueCategory)
        severity = _enum_field(payload, "severity", Severity)
        repro = _enum_field(payload, "repro", Repro)
        vibe = _enum_field(payload, "vibe", Vibe)
        mode = _enum_field(payload, "mode", Mode, required=False)

        details = payload.get("details")
        if details is not None:
            if not isinstance(details, str):
                raise ValidationError("details", "Must be a string")
            if len(details) > MAX_DETAILS_LENGTH:
                raise ValidationError(
                    "details", f"Must be at most {MAX_DETAILS_LENGTH} characters"
                )
            details = details.strip() or None

        location = _optional_text(payload, "location")
        if location is not None:
            if len(location) != 2 or not location.isalpha():
                raise ValidationError("location", "Must be a two-letter country code")
            location = location.upper()

        client = client or {}
        return ReportRecord(
            timestamp=self.clock(),
            model=text["model"],
            environment=text["environment"],
            issue_category=issue_category,
            issue_tags=_normalize_tags(payload.get("issue_tags"), issue_category),
            severity=severity,
            repro=repro,
            vibe=vibe,
            details=details,
            source=source,
            environment_version=_optional_text(payload, "environment_version"),
            mode=mode or guess_mode(text["environment"], issue_category.value),
            location=location,
            user_agent=client.get("user_agent") or None,
            ip_address=client.get("ip_address") or None,
        )

    async def submit(
        self,
        payload: Dict[str, Any],
        source: str = ReportSource.WEB.value,
        client: Optional[Dict[str, Optional[str]]] = None,
    ) -> ReportRecord:
        """
        Validate a report and append it to the store.

        Raises:
            ValidationError: If the payload is invalid.
            UpstreamUnavailable: If the store rejects the append.
        """
        record = self.validate(payload, source=source, client=client)
        stored = await self.store.append(record)

        logger.info(
            f"New report {stored.id}: {stored.model} / {stored.environment} / "
            f"{stored.issue_category.value} ({stored.vibe.value}, {stored.severity.value})"
        )
        return stored
