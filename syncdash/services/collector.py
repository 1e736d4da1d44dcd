"""Background snapshot collection with last-known-good fallback.

A publisher keeps exactly one current ``DashboardSnapshot``. The poll loop
is a single asyncio task; each cycle does its network and normalization work
without touching shared state and then publishes the outcome with one
reference assignment, so readers never see a partial update and never wait
on upstream I/O.
"""

from __future__ import annotations

import abc
import asyncio
import contextlib
import enum
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from syncdash.exceptions import UpstreamError
from syncdash.schemas.snapshot import (
    ALERT_SOURCE_UNREACHABLE,
    SEVERITY_CRITICAL,
    Alert,
    DashboardSnapshot,
)
from syncdash.services.datetime_service import now_utc
from syncdash.services.snapshot_builder import (
    RateSample,
    UpstreamPayloads,
    build_snapshot,
    compute_transfer_rates,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from syncdash.syncthing.client import SyncthingClient

logger = logging.getLogger(__name__)

SOURCE_SUBJECT_ID = "syncthing"


@runtime_checkable
class SnapshotReader(Protocol):
    """What the presentation layer reads."""

    def snapshot(self) -> tuple[DashboardSnapshot | None, bool]:
        """Return the current snapshot and whether one has been published."""
        ...

    def ready(self) -> bool:
        """Whether any snapshot, healthy or degraded, has been published."""
        ...


@runtime_checkable
class DashboardService(SnapshotReader, Protocol):
    """A snapshot reader that also owns its poll loop."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


class CollectorPhase(enum.Enum):
    NEVER_POLLED = "never-polled"
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    FAILING = "never-succeeded-and-failing"


@dataclass(frozen=True)
class PublishedState:
    phase: CollectorPhase = CollectorPhase.NEVER_POLLED
    current: DashboardSnapshot | None = None
    last_good: DashboardSnapshot | None = None
    last_error: str | None = None


def source_unreachable_alert() -> Alert:
    return Alert(
        severity=SEVERITY_CRITICAL,
        code=ALERT_SOURCE_UNREACHABLE,
        message="Syncthing API is unreachable",
        subject_id=SOURCE_SUBJECT_ID,
    )


class SnapshotPublisher(abc.ABC):
    """Owns the published state, the staleness check and the poll loop.

    Subclasses implement ``_collect_and_publish``; it runs under
    ``_refresh_lock`` so cycles never overlap.
    """

    def __init__(
        self,
        poll_interval: float,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        if poll_interval <= 0:
            msg = f"poll_interval must be > 0, got {poll_interval}"
            raise ValueError(msg)
        self.poll_interval = poll_interval
        self._clock = clock
        self._state = PublishedState()
        self._refresh_lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def phase(self) -> CollectorPhase:
        return self._state.phase

    @property
    def last_error(self) -> str | None:
        return self._state.last_error

    def ready(self) -> bool:
        return self._state.current is not None

    def snapshot(self) -> tuple[DashboardSnapshot | None, bool]:
        """Return the current snapshot with staleness re-evaluated now.

        Stale means the source is offline or the snapshot is older than two
        poll intervals, whatever flag it was published with.
        """
        current = self._state.current
        if current is None:
            return None, False

        max_age = timedelta(seconds=2 * self.poll_interval)
        stale = not current.source_online or self._clock() - current.generated_at > max_age
        if stale == current.stale:
            return current, True
        return current.model_copy(update={"stale": stale}), True

    async def start(self) -> None:
        """Run one collection immediately, then keep polling in the background."""
        if self._task is not None and not self._task.done():
            return
        self._stop_event.clear()
        await self.refresh()
        self._task = asyncio.create_task(self._run(), name=f"{type(self).__name__}-poll")

    async def stop(self) -> None:
        """Stop the poll loop, letting an in-flight cycle finish. Idempotent."""
        self._stop_event.set()
        task, self._task = self._task, None
        if task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def refresh(self) -> None:
        """Execute one collection attempt."""
        async with self._refresh_lock:
            await self._collect_and_publish()

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self.poll_interval
        while True:
            delay = max(0.0, next_tick - loop.time())
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            if self._stop_event.is_set():
                return
            await self.refresh()
            # A slow cycle pushes the schedule back instead of queueing ticks.
            next_tick = max(next_tick + self.poll_interval, loop.time())

    @abc.abstractmethod
    async def _collect_and_publish(self) -> None:
        """Run one cycle and publish its outcome with ``_publish``."""

    def _publish(self, state: PublishedState) -> None:
        self._state = state


async def fetch_payloads(client: SyncthingClient) -> UpstreamPayloads:
    """Fetch every payload for one cycle. Any failed call fails the cycle."""
    status = await client.get_system_status()
    version = await client.get_system_version()
    connections = await client.get_system_connections()
    device_stats = await client.get_device_stats()
    folder_stats = await client.get_folder_stats()
    config = await client.get_config()

    db_statuses = {}
    completions = {}
    for folder in config.folders:
        try:
            db_statuses[folder.id] = await client.get_db_status(folder.id)
            completions[folder.id] = await client.get_db_completion(folder.id)
        except UpstreamError as exc:
            raise UpstreamError(f"folder {folder.id}: {exc}") from exc

    return UpstreamPayloads(
        status=status,
        version=version,
        connections=connections,
        device_stats=device_stats,
        folder_stats=folder_stats,
        config=config,
        db_statuses=db_statuses,
        completions=completions,
    )


class Collector(SnapshotPublisher):
    """Polls the Syncthing API and publishes normalized snapshots.

    Args:
        client: Read-only upstream client.
        poll_interval: Seconds between poll cycles.
        clock: Source of the current UTC time.
    """

    def __init__(
        self,
        client: SyncthingClient,
        poll_interval: float,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        super().__init__(poll_interval, clock)
        self._client = client
        self._rate_sample: RateSample | None = None

    async def _collect_and_publish(self) -> None:
        now = self._clock()
        try:
            payloads = await fetch_payloads(self._client)
            rates, self._rate_sample = compute_transfer_rates(
                payloads.connections.total, self._rate_sample, now
            )
            snapshot = build_snapshot(payloads, now, rates)
        except UpstreamError as exc:
            self._publish_failure(str(exc), now)
            return
        except Exception as exc:
            logger.exception("Unexpected error while building snapshot")
            self._publish_failure(f"{type(exc).__name__}: {exc}", now)
            return

        previous = self._state.phase
        self._publish(
            PublishedState(phase=CollectorPhase.HEALTHY, current=snapshot, last_good=snapshot)
        )
        if previous in (CollectorPhase.DEGRADED, CollectorPhase.FAILING):
            logger.info("Syncthing API reachable again")

    def _publish_failure(self, error: str, now: datetime) -> None:
        state = self._state
        alert = source_unreachable_alert()
        if state.last_good is not None:
            fallback = state.last_good.model_copy(
                update={
                    "source_online": False,
                    "source_error": error,
                    "stale": True,
                    "alerts": [alert, *state.last_good.alerts],
                }
            )
            phase = CollectorPhase.DEGRADED
        else:
            fallback = DashboardSnapshot(
                generated_at=now,
                source_online=False,
                source_error=error,
                alerts=[alert],
                stale=True,
            )
            phase = CollectorPhase.FAILING

        logger.warning("Syncthing poll failed (%s): %s", phase.value, error)
        self._publish(
            PublishedState(
                phase=phase,
                current=fallback,
                last_good=state.last_good,
                last_error=error,
            )
        )
