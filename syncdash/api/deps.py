"""Shared API dependencies: settings and the snapshot reader."""

from __future__ import annotations

from fastapi import Request

from syncdash.config import Settings
from syncdash.services.collector import SnapshotReader


def get_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    settings: Settings = request.app.state.settings
    return settings


def get_snapshot_reader(request: Request) -> SnapshotReader:
    """Get the active dashboard service (live collector or demo) from app state."""
    reader: SnapshotReader = request.app.state.dashboard_service
    return reader
