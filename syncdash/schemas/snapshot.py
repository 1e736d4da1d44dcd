"""Dashboard snapshot schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SEVERITY_CRITICAL = "critical"
SEVERITY_WARN = "warn"

ALERT_SOURCE_UNREACHABLE = "SOURCE_UNREACHABLE"
ALERT_REMOTE_DISCONNECTED = "REMOTE_DISCONNECTED"
ALERT_FOLDER_ERROR = "FOLDER_ERROR"
ALERT_FOLDER_OUT_OF_SYNC = "FOLDER_OUT_OF_SYNC"

# Folder states the dashboard knows how to present. Other upstream states
# (``scanning``, ``sync-preparing`` ...) are passed through unchanged.
FOLDER_STATE_IDLE = "idle"
FOLDER_STATE_SYNCING = "syncing"
FOLDER_STATE_SCAN_WAITING = "scan-waiting"
FOLDER_STATE_PAUSED = "paused"
FOLDER_STATE_ERROR = "error"
FOLDER_STATE_UNKNOWN = "unknown"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class DeviceStatus(_Frozen):
    """Status of the local Syncthing device."""

    name: str = ""
    id: str = ""
    version: str = ""
    uptime_s: int = 0
    download_bps: float = 0.0
    upload_bps: float = 0.0
    local_files_total: int = 0
    local_dirs_total: int = 0
    local_bytes_total: int = 0
    listeners_ok: int = 0
    listeners_total: int = 0
    discovery_ok: int = 0
    discovery_total: int = 0


class FolderState(_Frozen):
    """Normalized state of one shared folder."""

    id: str
    label: str
    path: str
    state: str
    global_files: int = 0
    local_files: int = 0
    global_bytes: int = 0
    local_bytes: int = 0
    need_items: int = Field(default=0, ge=0)
    need_bytes: int = Field(default=0, ge=0)
    local_changes_items: int = 0
    completion_pct: float | None = None
    last_scan_at: datetime | None = None


class RemoteDeviceState(_Frozen):
    """Normalized state of one remote device."""

    id: str
    name: str
    connected: bool
    address: str = ""
    last_seen_at: datetime | None = None
    in_bytes_total: int = 0
    out_bytes_total: int = 0


class Alert(_Frozen):
    severity: Literal["critical", "warn"]
    code: str
    message: str
    subject_id: str


class DashboardSnapshot(_Frozen):
    """One consistent, timestamped view of the upstream daemon.

    Published snapshots are never mutated; derived copies are made with
    ``model_copy(update=...)``.
    """

    generated_at: datetime
    source_online: bool
    source_error: str | None = None
    device: DeviceStatus = Field(default_factory=DeviceStatus)
    folders: list[FolderState] = Field(default_factory=list)
    remotes: list[RemoteDeviceState] = Field(default_factory=list)
    alerts: list[Alert] = Field(default_factory=list)
    stale: bool = False


class DashboardResponse(DashboardSnapshot):
    """Snapshot plus presentation fields returned by ``/api/v1/dashboard``."""

    page_title: str
    page_subtitle: str
    poll_interval_ms: int
