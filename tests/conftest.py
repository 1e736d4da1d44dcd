"""Shared test fixtures for the Syncthing dashboard."""

from __future__ import annotations

import copy
import json
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import httpx
import pytest

from syncdash.syncthing.client import SyncthingClient

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

BASE_URL = "http://syncthing.test:8384"
API_KEY = "test-api-key"

BASE_RESPONSES: dict[str, Any] = {
    "/rest/system/status": {
        "myID": "LOCAL-1",
        "uptime": 120,
        "connectionServiceStatus": {
            "tcp://0.0.0.0:22000": {"error": None},
            "quic://0.0.0.0:22000": {"error": "bind failed"},
        },
        "discoveryStatus": {
            "global": {"error": None},
            "local": {"error": "disabled"},
        },
    },
    "/rest/system/version": {"version": "v2.0.1", "os": "linux", "arch": "amd64"},
    "/rest/system/connections": {
        "total": {"bitsPerSecondIn": 8000, "bitsPerSecondOut": 4000},
        "connections": {
            "REMOTE-1": {
                "address": "tcp://10.0.0.5:22000",
                "connected": False,
                "inBytesTotal": 100,
                "outBytesTotal": 200,
            }
        },
    },
    "/rest/stats/device": {"REMOTE-1": {"lastSeen": "2026-02-05T20:00:00Z"}},
    "/rest/stats/folder": {"app": {"lastScan": "2026-02-05T20:10:00Z"}},
    "/rest/config": {
        "devices": [
            {"deviceID": "LOCAL-1", "name": "vault"},
            {"deviceID": "REMOTE-1", "name": "BHS-HOST40"},
        ],
        "folders": [{"id": "app", "label": "app", "path": "/mnt/vault/app", "paused": False}],
    },
    "/rest/db/status?folder=app": {
        "globalFiles": 30,
        "localFiles": 20,
        "localDirectories": 7,
        "globalBytes": 4096,
        "localBytes": 2048,
        "needFiles": 10,
        "needBytes": 2048,
        "needTotalItems": 10,
        "receiveOnlyTotalItems": 3,
        "state": "syncing",
    },
    "/rest/db/completion?folder=app": {
        "completion": 8.1,
        "needBytes": 3072,
        "needItems": 12,
        "globalBytes": 4096,
    },
}


class FakeSyncthing:
    """In-memory Syncthing API served through ``httpx.MockTransport``.

    Routes are keyed by path, or ``path?folder=<id>`` for per-folder endpoints.
    A route value may be a JSON-able object, an ``httpx.Response``, an
    exception instance to raise, or a callable returning any of those.
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses: dict[str, Any] = copy.deepcopy(
            BASE_RESPONSES if responses is None else responses
        )
        self.requests: list[httpx.Request] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = request.url.path
        folder = request.url.params.get("folder")
        if folder is not None:
            key = f"{key}?folder={folder}"
        if key not in self.responses:
            return httpx.Response(404, text=f"no route for {key}\n")

        result = self.responses[key]
        if callable(result):
            result = result()
        if isinstance(result, Exception):
            raise result
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, content=json.dumps(result).encode())

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


class FixedClock:
    """Manually advanced clock for deterministic time-dependent tests."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 2, 5, 21, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def fake_syncthing() -> FakeSyncthing:
    return FakeSyncthing()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def make_client() -> Callable[[FakeSyncthing], SyncthingClient]:
    def _make(fake: FakeSyncthing) -> SyncthingClient:
        return SyncthingClient(BASE_URL, API_KEY, timeout=2.0, transport=fake.transport)

    return _make


@pytest.fixture
async def syncthing_client(
    fake_syncthing: FakeSyncthing,
    make_client: Callable[[FakeSyncthing], SyncthingClient],
) -> AsyncGenerator[SyncthingClient]:
    client = make_client(fake_syncthing)
    yield client
    await client.aclose()
