"""Normalize one cycle of raw Syncthing payloads into a dashboard snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from syncdash.schemas.snapshot import (
    ALERT_FOLDER_ERROR,
    ALERT_FOLDER_OUT_OF_SYNC,
    ALERT_REMOTE_DISCONNECTED,
    FOLDER_STATE_ERROR,
    FOLDER_STATE_PAUSED,
    FOLDER_STATE_UNKNOWN,
    SEVERITY_CRITICAL,
    SEVERITY_WARN,
    Alert,
    DashboardSnapshot,
    DeviceStatus,
    FolderState,
    RemoteDeviceState,
)
from syncdash.services.datetime_service import parse_upstream_time
from syncdash.syncthing.payloads import ConnectionDetails, DeviceStats

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import datetime

    from syncdash.syncthing.payloads import (
        ConfigFolder,
        ConnectionTotals,
        DaemonConfig,
        DBCompletion,
        DBStatus,
        FolderStats,
        ServiceStatus,
        SystemConnections,
        SystemStatus,
        SystemVersion,
    )


@dataclass(frozen=True)
class UpstreamPayloads:
    """Every raw payload fetched during one poll cycle."""

    status: SystemStatus
    version: SystemVersion
    connections: SystemConnections
    device_stats: dict[str, DeviceStats]
    folder_stats: dict[str, FolderStats]
    config: DaemonConfig
    db_statuses: dict[str, DBStatus] = field(default_factory=dict)
    completions: dict[str, DBCompletion] = field(default_factory=dict)


@dataclass(frozen=True)
class TransferRates:
    download_bps: float = 0.0
    upload_bps: float = 0.0


@dataclass(frozen=True)
class RateSample:
    """Cumulative byte counters observed at ``taken_at``."""

    taken_at: datetime
    in_bytes_total: int
    out_bytes_total: int


def compute_transfer_rates(
    totals: ConnectionTotals,
    previous: RateSample | None,
    now: datetime,
) -> tuple[TransferRates, RateSample]:
    """Return the current transfer rates (bytes/s) and the sample to keep.

    The instantaneous upstream rate wins when nonzero. Otherwise the rate is
    derived from the counter delta since ``previous``. First samples,
    non-positive elapsed time and counter resets fall back to the upstream
    rate. The returned sample always reflects ``now``.
    """
    reported = TransferRates(
        download_bps=totals.bits_per_second_in / 8,
        upload_bps=totals.bits_per_second_out / 8,
    )
    sample = RateSample(
        taken_at=now,
        in_bytes_total=totals.in_bytes_total,
        out_bytes_total=totals.out_bytes_total,
    )

    if totals.bits_per_second_in > 0 or totals.bits_per_second_out > 0:
        return reported, sample
    if previous is None:
        return reported, sample

    elapsed = (now - previous.taken_at).total_seconds()
    if elapsed <= 0:
        return reported, sample

    in_delta = totals.in_bytes_total - previous.in_bytes_total
    out_delta = totals.out_bytes_total - previous.out_bytes_total
    if in_delta < 0 or out_delta < 0:
        return reported, sample

    return TransferRates(download_bps=in_delta / elapsed, upload_bps=out_delta / elapsed), sample


def service_health(statuses: Mapping[str, ServiceStatus]) -> tuple[int, int]:
    """Count ``(ok, total)`` where ok means no error was reported."""
    total = len(statuses)
    ok = sum(1 for status in statuses.values() if not (status.error or "").strip())
    return ok, total


def discovery_health(status: SystemStatus) -> tuple[int, int]:
    """Discovery ``(ok, total)``, falling back to method/error counts."""
    ok, total = service_health(status.discovery_status)
    if total > 0:
        return ok, total

    methods = status.discovery_methods
    if methods <= 0:
        return 0, 0
    errors = min(len(status.discovery_errors), methods)
    return methods - errors, methods


def derive_alerts(
    remotes: Iterable[RemoteDeviceState],
    folders: Iterable[FolderState],
) -> list[Alert]:
    """Derive alerts: disconnected remotes first, then folder problems."""
    alerts: list[Alert] = []

    for remote in remotes:
        if remote.connected:
            continue
        alerts.append(
            Alert(
                severity=SEVERITY_CRITICAL,
                code=ALERT_REMOTE_DISCONNECTED,
                message=f"Remote device {remote.name} is disconnected",
                subject_id=remote.id,
            )
        )

    for folder in folders:
        if folder.state == FOLDER_STATE_ERROR:
            alerts.append(
                Alert(
                    severity=SEVERITY_CRITICAL,
                    code=ALERT_FOLDER_ERROR,
                    message=f"Folder {folder.label} reports error state",
                    subject_id=folder.id,
                )
            )
        elif folder.need_items > 0 or folder.need_bytes > 0:
            alerts.append(
                Alert(
                    severity=SEVERITY_WARN,
                    code=ALERT_FOLDER_OUT_OF_SYNC,
                    message=f"Folder {folder.label} has pending sync items",
                    subject_id=folder.id,
                )
            )

    return alerts


def _local_device_name(config: DaemonConfig, device_id: str) -> str:
    for device in config.devices:
        if device.device_id == device_id:
            return device.name if device.name.strip() else device_id
    return device_id


def _folder_state(
    folder: ConfigFolder,
    db_status: DBStatus,
    completion: DBCompletion | None,
    folder_stats: Mapping[str, FolderStats],
) -> FolderState:
    state = db_status.state.strip() or FOLDER_STATE_UNKNOWN
    if folder.paused:
        state = FOLDER_STATE_PAUSED

    need_items = db_status.need_total_items
    need_bytes = db_status.need_bytes
    global_bytes = db_status.global_bytes
    completion_pct: float | None = None
    if completion is not None:
        need_items = completion.need_items
        need_bytes = completion.need_bytes
        global_bytes = max(global_bytes, completion.global_bytes)
        if 0 <= completion.completion <= 100:
            completion_pct = completion.completion

    stats = folder_stats.get(folder.id)
    return FolderState(
        id=folder.id,
        label=folder.label if folder.label.strip() else folder.id,
        path=folder.path,
        state=state,
        global_files=db_status.global_files,
        local_files=db_status.local_files,
        global_bytes=global_bytes,
        local_bytes=db_status.local_bytes,
        need_items=max(need_items, 0),
        need_bytes=max(need_bytes, 0),
        local_changes_items=db_status.receive_only_total_items,
        completion_pct=completion_pct,
        last_scan_at=parse_upstream_time(stats.last_scan) if stats is not None else None,
    )


def build_snapshot(
    payloads: UpstreamPayloads,
    now: datetime,
    rates: TransferRates,
) -> DashboardSnapshot:
    """Build a healthy snapshot from one complete set of payloads.

    Raises:
        KeyError: If a configured folder has no DB status in ``payloads``.
    """
    status = payloads.status
    config = payloads.config
    local_id = status.my_id

    folders = [
        _folder_state(
            folder,
            payloads.db_statuses[folder.id],
            payloads.completions.get(folder.id),
            payloads.folder_stats,
        )
        for folder in config.folders
    ]
    folders.sort(key=lambda folder: (folder.label, folder.id))

    remotes: list[RemoteDeviceState] = []
    for device in config.devices:
        if device.device_id == local_id:
            continue
        conn = payloads.connections.connections.get(device.device_id, ConnectionDetails())
        stats = payloads.device_stats.get(device.device_id, DeviceStats())
        remotes.append(
            RemoteDeviceState(
                id=device.device_id,
                name=device.name if device.name.strip() else device.device_id,
                connected=conn.connected,
                address=conn.address,
                last_seen_at=parse_upstream_time(stats.last_seen),
                in_bytes_total=conn.in_bytes_total,
                out_bytes_total=conn.out_bytes_total,
            )
        )
    remotes.sort(key=lambda remote: (remote.name, remote.id))

    db_statuses = [payloads.db_statuses[folder.id] for folder in config.folders]
    listeners_ok, listeners_total = service_health(status.connection_service_status)
    discovery_ok, discovery_total = discovery_health(status)
    version = payloads.version

    device = DeviceStatus(
        name=_local_device_name(config, local_id),
        id=local_id,
        version=" ".join(part for part in (version.version, version.os, version.arch) if part),
        uptime_s=status.uptime,
        download_bps=rates.download_bps,
        upload_bps=rates.upload_bps,
        local_files_total=sum(db.local_files for db in db_statuses),
        local_dirs_total=sum(db.local_directories for db in db_statuses),
        local_bytes_total=sum(db.local_bytes for db in db_statuses),
        listeners_ok=listeners_ok,
        listeners_total=listeners_total,
        discovery_ok=discovery_ok,
        discovery_total=discovery_total,
    )

    return DashboardSnapshot(
        generated_at=now,
        source_online=True,
        source_error=None,
        device=device,
        folders=folders,
        remotes=remotes,
        alerts=derive_alerts(remotes, folders),
        stale=False,
    )
