"""Liveness and readiness endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from syncdash.api.deps import get_snapshot_reader
from syncdash.services.collector import SnapshotReader

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict[str, bool]:
    """The process is up and serving requests."""
    return {"ok": True}


@router.get("/readyz")
async def readyz(
    reader: Annotated[SnapshotReader, Depends(get_snapshot_reader)],
) -> JSONResponse:
    """Ready once a snapshot, healthy or degraded, has been published."""
    if not reader.ready():
        return JSONResponse(status_code=503, content={"ready": False})
    return JSONResponse(status_code=200, content={"ready": True})
