"""
Report API endpoints for VibeCheck.

This module provides the report submission endpoint.
"""

from typing import Any, Dict
from fastapi import APIRouter, Body, Depends, Request

from vibecheck.api.deps import get_ingest
from vibecheck.models.schemas import SubmitResponse
from vibecheck.services.ingest import ReportIngest

# Create router
router = APIRouter()


def client_metadata(request: Request) -> Dict[str, str]:
    """
    Client metadata taken from the transport.

    The first X-Forwarded-For hop wins over the socket peer when present.
    """
    forwarded = request.headers.get("x-forwarded-for", "")
    ip_address = forwarded.split(",")[0].strip() if forwarded else ""
    if not ip_address and request.client:
        ip_address = request.client.host
    return {
        "user_agent": request.headers.get("user-agent", ""),
        "ip_address": ip_address,
    }


@router.post("", response_model=SubmitResponse, status_code=201)
async def submit_report(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    ingest: ReportIngest = Depends(get_ingest),
):
    """
    Submit a vibe report.

    Args:
        request: Incoming request, for client metadata.
        payload: Report fields.
        ingest: Report ingest service.

    Returns:
        Identifier and timestamp of the stored report.
    """
    record = await ingest.submit(payload, client=client_metadata(request))
    return SubmitResponse(ok=True, id=record.id, timestamp=record.timestamp)
