"""
Shared API dependencies for VibeCheck.
"""

from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from vibecheck.core.config import settings
from vibecheck.core.database import get_db
from vibecheck.services.ingest import ReportIngest
from vibecheck.services.report_store import ReportStore, SqlReportStore, TinybirdReportStore
from vibecheck.services.views import VibeViews

# One analytics client per process so its HTTP session is reused
_tinybird_store: Optional[TinybirdReportStore] = None


def get_tinybird_store() -> TinybirdReportStore:
    global _tinybird_store
    if _tinybird_store is None:
        _tinybird_store = TinybirdReportStore()
    return _tinybird_store


async def close_stores() -> None:
    global _tinybird_store
    if _tinybird_store is not None:
        await _tinybird_store.close()
        _tinybird_store = None


def get_report_store(db: Session = Depends(get_db)) -> ReportStore:
    """
    Report store for the configured backend.
    """
    if settings.STORE_BACKEND == "tinybird":
        return get_tinybird_store()
    return SqlReportStore(db)


def get_views(store: ReportStore = Depends(get_report_store)) -> VibeViews:
    return VibeViews(store)


def get_ingest(store: ReportStore = Depends(get_report_store)) -> ReportIngest:
    return ReportIngest(store)
