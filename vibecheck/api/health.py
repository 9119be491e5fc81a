"""
Health API endpoints for VibeCheck.

This module provides endpoints for system health monitoring.
"""

import os
import platform
import psutil
from typing import Dict, Any
from fastapi import APIRouter
from sqlalchemy import func, text

from vibecheck.core.config import settings
from vibecheck.core.exceptions import UpstreamUnavailable
from vibecheck.core.logging import logger
from vibecheck.utils.helpers import utcnow

router = APIRouter()


async def check_database_health() -> Dict[str, Any]:
    """
    Check if the local database is accessible.

    Returns:
        Dict[str, Any]: Status information about the database.
    """
    try:
        from vibecheck.core.database import SessionLocal
        from vibecheck.models.report import Report

        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
            report_count = db.query(func.count(Report.id)).scalar()
            last_report = db.query(func.max(Report.timestamp)).scalar()
        finally:
            db.close()

        db_path = settings.DATABASE_URL.replace("sqlite:///", "")
        db_size = os.path.getsize(db_path) if os.path.exists(db_path) else 0

        return {
            "status": "operational",
            "size_mb": round(db_size / (1024 * 1024), 2),
            "reports": report_count,
            "last_report": last_report.isoformat() if last_report else None,
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "status": "unavailable",
            "error": str(e)
        }


async def check_analytics_health() -> Dict[str, Any]:
    """
    Check the hosted analytics backend when it is the active store.

    Returns:
        Dict[str, Any]: Status information about the analytics backend.
    """
    if settings.STORE_BACKEND != "tinybird":
        return {"status": "disabled"}

    from vibecheck.api.deps import get_tinybird_store

    try:
        return await get_tinybird_store().ping()
    except UpstreamUnavailable as e:
        logger.error(f"Analytics health check failed: {e}")
        return {
            "status": "unavailable",
            "error": str(e)
        }


async def get_system_stats() -> Dict[str, Any]:
    """
    Get system resource statistics.

    Returns:
        Dict[str, Any]: System resource statistics.
    """
    try:
        memory = psutil.virtual_memory()
        disk = psutil.disk_usage('/')

        return {
            "cpu_percent": psutil.cpu_percent(interval=None),
            "memory_percent": memory.percent,
            "memory_used_gb": round(memory.used / (1024 ** 3), 2),
            "disk_percent": disk.percent,
            "platform": platform.platform(),
            "python_version": platform.python_version()
        }
    except Exception as e:
        logger.error(f"Failed to get system stats: {e}")
        return {
            "error": str(e)
        }


@router.get("")
async def health_check():
    """
    System health check endpoint.

    Returns:
        Dict: Health status of various system components.
    """
    return {
        "status": "operational",
        "version": settings.VERSION,
        "store_backend": settings.STORE_BACKEND,
        "timestamp": utcnow().isoformat(),
        "database_status": await check_database_health(),
        "analytics_status": await check_analytics_health(),
        "system": await get_system_stats()
    }
