"""Dashboard snapshot endpoint."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from syncdash.api.deps import get_settings, get_snapshot_reader
from syncdash.config import Settings
from syncdash.schemas.snapshot import DashboardResponse
from syncdash.services.collector import SnapshotReader

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["dashboard"])


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    reader: Annotated[SnapshotReader, Depends(get_snapshot_reader)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> JSONResponse:
    """Return the most recently published snapshot; never waits on the upstream."""
    snapshot, available = reader.snapshot()
    if not available or snapshot is None:
        logger.debug("Dashboard requested before the first snapshot was published")
        return JSONResponse(status_code=503, content={"error": "snapshot unavailable"})

    response = DashboardResponse(
        **snapshot.model_dump(),
        page_title=settings.page_title,
        page_subtitle=settings.page_subtitle,
        poll_interval_ms=int(settings.poll_interval * 1000),
    )
    return JSONResponse(
        content=response.model_dump(mode="json"),
        headers={"Cache-Control": "no-store"},
    )
