"""
Prometheus metrics endpoint.

Example:
    GET /metrics

    Response:
        # HELP beds24_sync_runs_total Total number of per-property sync runs
        # TYPE beds24_sync_runs_total counter
        beds24_sync_runs_total{hotel_id="hotel-1",status="success",sync_type="bookings"} 42.0
        ...
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics", response_class=Response)
async def metrics() -> Any:
    """Return all registered metrics in the Prometheus text exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
