"""Synthetic data source used when no Syncthing URL is configured."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from syncdash.schemas.snapshot import (
    FOLDER_STATE_ERROR,
    FOLDER_STATE_IDLE,
    FOLDER_STATE_PAUSED,
    FOLDER_STATE_SCAN_WAITING,
    FOLDER_STATE_SYNCING,
    DashboardSnapshot,
    DeviceStatus,
    FolderState,
    RemoteDeviceState,
)
from syncdash.services.collector import CollectorPhase, PublishedState, SnapshotPublisher
from syncdash.services.datetime_service import now_utc
from syncdash.services.snapshot_builder import derive_alerts

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

KIB = 1024
MIB = 1024 * KIB
GIB = 1024 * MIB


@dataclass(frozen=True)
class _FolderSeed:
    id: str
    label: str
    mode: str
    global_files: int
    global_bytes: int
    base_progress: float = 100.0
    speed: int = 0
    local_changes: int = 0


@dataclass(frozen=True)
class _RemoteSeed:
    id: str
    name: str
    address: str
    mode: str


_FOLDER_SEEDS = (
    _FolderSeed("folder-pictures", "Pictures", "local", 182, 136 * GIB, local_changes=9),
    _FolderSeed("folder-documents", "Documents", "idle", 96, 42 * GIB),
    _FolderSeed("folder-media", "Media", "syncing", 214, 328 * GIB, 35, 3),
    _FolderSeed("folder-music", "Music", "syncing", 484, 78 * GIB, 64, 4),
    _FolderSeed("folder-videos", "Videos", "error", 33, 512 * GIB, 73),
    _FolderSeed("folder-downloads", "Downloads", "scanning", 127, 58 * GIB),
    _FolderSeed("folder-projects", "Projects", "syncing", 71, 24 * GIB, 12, 5),
    _FolderSeed("folder-backups", "Backups", "paused", 65, 910 * GIB),
    _FolderSeed("folder-books", "Books", "local", 143, 19 * GIB, local_changes=3),
    _FolderSeed("folder-taxes", "Taxes", "idle", 22, 4 * GIB),
)

_DEMO_ID_SUFFIX = "DEMO-J24XQXQ-HC2SY5M-NUQ6R7L-W7K6WTV-J5Z62DW-ZZQKAMA-2YBDAQH"

_REMOTE_SEEDS = (
    _RemoteSeed(f"ATTIC-{_DEMO_ID_SUFFIX}", "Attic", "192.168.10.24:22000", "up"),
    _RemoteSeed(f"DESK-{_DEMO_ID_SUFFIX}", "Desk", "192.168.10.42:22000", "up"),
    _RemoteSeed(f"BACKPACK-{_DEMO_ID_SUFFIX}", "Backpack", "100.88.14.7:22000", "flap"),
    _RemoteSeed(f"KEYRING-{_DEMO_ID_SUFFIX}", "Keyring", "10.8.0.18:22000", "down"),
)


def _demo_folder(seed: _FolderSeed, index: int, tick: int, now: datetime) -> FolderState:
    state = FOLDER_STATE_IDLE
    need_items = 0
    need_bytes = 0
    local_changes = seed.local_changes
    local_bytes = seed.global_bytes
    local_files = seed.global_files
    completion = 100.0

    if seed.mode == "syncing":
        state = FOLDER_STATE_SYNCING
        progress = seed.base_progress + (tick * seed.speed + index) % 19
        if progress > 96:
            progress = 96 - (tick + index) % 7
        progress = max(progress, 1)
        completion = progress
        need_bytes = max(int(seed.global_bytes * (100 - progress) / 100), 64 * MIB)
        local_bytes = max(0, seed.global_bytes - need_bytes)
        need_items = max(1, int(seed.global_files * (100 - progress) / 100))
        local_files = max(0, seed.global_files - need_items // 2)
        if tick % 11 == 0 and index % 2 == 0:
            state = FOLDER_STATE_SCAN_WAITING
    elif seed.mode == "local":
        local_changes = max(1, seed.local_changes + tick % 3)
    elif seed.mode == "paused":
        state = FOLDER_STATE_PAUSED
    elif seed.mode == "scanning":
        state = FOLDER_STATE_SCAN_WAITING
    elif seed.mode == "error":
        state = FOLDER_STATE_ERROR
        completion = 72.0
        need_bytes = int(seed.global_bytes * 0.28)
        need_items = max(3, seed.global_files // 4)
        local_bytes = max(0, seed.global_bytes - need_bytes)

    return FolderState(
        id=seed.id,
        label=seed.label,
        path=f"/sync/{seed.label}",
        state=state,
        global_files=seed.global_files,
        local_files=local_files,
        global_bytes=seed.global_bytes,
        local_bytes=local_bytes,
        need_items=need_items,
        need_bytes=need_bytes,
        local_changes_items=local_changes,
        completion_pct=completion,
        last_scan_at=now - timedelta(minutes=(index * 13 + tick) % 170),
    )


def _demo_remote(seed: _RemoteSeed, index: int, tick: int, now: datetime) -> RemoteDeviceState:
    connected = True
    if seed.mode == "down":
        connected = False
    elif seed.mode == "flap":
        connected = tick % 7 not in (0, 1)

    return RemoteDeviceState(
        id=seed.id,
        name=seed.name,
        connected=connected,
        address=seed.address,
        last_seen_at=now - timedelta(minutes=(index + 1) * (tick % 5 + 1)),
        in_bytes_total=(120 + index * 14) * GIB + tick * index * 41 * MIB,
        out_bytes_total=(3 + index) * GIB + tick * index * 11 * MIB,
    )


def build_demo_snapshot(
    now: datetime,
    tick: int,
    started_at: datetime,
    poll_interval: float,
) -> DashboardSnapshot:
    """Build the synthetic snapshot for poll number ``tick``."""
    folders = sorted(
        (_demo_folder(seed, i, tick, now) for i, seed in enumerate(_FOLDER_SEEDS)),
        key=lambda folder: (folder.label, folder.id),
    )
    remotes = sorted(
        (_demo_remote(seed, i, tick, now) for i, seed in enumerate(_REMOTE_SEEDS)),
        key=lambda remote: (remote.name, remote.id),
    )

    uptime = (now - started_at).total_seconds() + tick * poll_interval
    device = DeviceStatus(
        name="Homelab",
        id="HOMELAB-DEMO-A4M9QY7-TK2N6PT-MV7R2FD-GQ9Y1LK-R8SN4WU-CP6E2JD-7YQ4HTA",
        version="v2.0.12 linux amd64",
        uptime_s=int(uptime),
        download_bps=(2.3 + (tick * 3) % 10 / 10) * MIB,
        upload_bps=(145 + (tick * 17) % 115) * KIB,
        local_files_total=sum(folder.local_files for folder in folders),
        local_dirs_total=sum(max(1, folder.local_files // 2) for folder in folders),
        local_bytes_total=sum(folder.local_bytes for folder in folders),
        listeners_ok=1 if tick % 23 >= 19 else 2,
        listeners_total=2,
        discovery_ok=3 if tick % 19 == 0 else 4,
        discovery_total=5,
    )

    return DashboardSnapshot(
        generated_at=now,
        source_online=True,
        device=device,
        folders=folders,
        remotes=remotes,
        alerts=derive_alerts(remotes, folders),
    )


class DemoCollector(SnapshotPublisher):
    """Publishes rotating synthetic snapshots on the normal poll schedule."""

    def __init__(
        self,
        poll_interval: float = 5.0,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        super().__init__(poll_interval, clock)
        self._tick = 0
        self._started_at = clock() - timedelta(hours=73)

    async def _collect_and_publish(self) -> None:
        snapshot = build_demo_snapshot(
            self._clock(), self._tick, self._started_at, self.poll_interval
        )
        self._publish(
            PublishedState(phase=CollectorPhase.HEALTHY, current=snapshot, last_good=snapshot)
        )
        logger.debug("Published demo snapshot #%d", self._tick)
        self._tick += 1
