"""Integration tests for the dashboard and health endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient

from syncdash.config import Settings
from syncdash.main import build_dashboard_service, create_app
from syncdash.schemas.snapshot import DashboardSnapshot
from syncdash.services.collector import Collector
from syncdash.services.demo_service import DemoCollector
from syncdash.syncthing.client import SyncthingClient

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable
    from pathlib import Path

    from fastapi import FastAPI

    from tests.conftest import FakeSyncthing, FixedClock


class StubService:
    """Dashboard service returning a fixed snapshot."""

    def __init__(self, snapshot: DashboardSnapshot | None = None) -> None:
        self._snapshot = snapshot
        self.started = False
        self.stopped = False

    def snapshot(self) -> tuple[DashboardSnapshot | None, bool]:
        return self._snapshot, self._snapshot is not None

    def ready(self) -> bool:
        return self._snapshot is not None

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True


@pytest.fixture
def app_settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        base_url="",
        poll_interval=5.0,
        page_title="Homelab",
        page_subtitle="Read-only",
        web_dir=tmp_path / "web",
    )


def _client(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.fixture
async def live_app(
    app_settings: Settings,
    fake_syncthing: FakeSyncthing,
    clock: FixedClock,
    make_client: Callable[[FakeSyncthing], SyncthingClient],
) -> AsyncGenerator[FastAPI]:
    client = make_client(fake_syncthing)
    collector = Collector(client, poll_interval=app_settings.poll_interval, clock=clock)
    app = create_app(app_settings, service=collector)
    yield app
    await collector.stop()
    await client.aclose()


class TestDashboardEndpoint:
    async def test_returns_published_snapshot(self, live_app: FastAPI) -> None:
        await live_app.state.dashboard_service.refresh()
        async with _client(live_app) as client:
            resp = await client.get("/api/v1/dashboard")

        assert resp.status_code == 200
        assert resp.headers["cache-control"] == "no-store"
        data = resp.json()
        assert data["page_title"] == "Homelab"
        assert data["page_subtitle"] == "Read-only"
        assert data["poll_interval_ms"] == 5000
        assert data["source_online"] is True
        assert data["stale"] is False
        assert data["generated_at"] == "2026-02-05T21:00:00Z"
        assert data["device"]["name"] == "vault"
        assert data["folders"][0]["completion_pct"] == pytest.approx(8.1)
        assert data["remotes"][0]["last_seen_at"] == "2026-02-05T20:00:00Z"
        assert [alert["code"] for alert in data["alerts"]] == [
            "REMOTE_DISCONNECTED",
            "FOLDER_OUT_OF_SYNC",
        ]

    async def test_unavailable_before_first_cycle(self, app_settings: Settings) -> None:
        app = create_app(app_settings, service=StubService())
        async with _client(app) as client:
            resp = await client.get("/api/v1/dashboard")
        assert resp.status_code == 503
        assert resp.json() == {"error": "snapshot unavailable"}

    async def test_degraded_snapshot_served_with_error(
        self, live_app: FastAPI, fake_syncthing: FakeSyncthing, clock: FixedClock
    ) -> None:
        service = live_app.state.dashboard_service
        await service.refresh()
        fake_syncthing.responses["/rest/system/status"] = [1, 2]
        clock.advance(5)
        await service.refresh()

        async with _client(live_app) as client:
            resp = await client.get("/api/v1/dashboard")

        assert resp.status_code == 200
        data = resp.json()
        assert data["source_online"] is False
        assert data["stale"] is True
        assert "decode response /rest/system/status" in data["source_error"]
        assert data["alerts"][0]["code"] == "SOURCE_UNREACHABLE"
        assert data["folders"][0]["id"] == "app"

    async def test_missing_optional_fields_serialize_as_null(
        self, app_settings: Settings
    ) -> None:
        snapshot = DashboardSnapshot(
            generated_at=datetime(2026, 2, 5, 21, 0, tzinfo=timezone.utc),
            source_online=True,
        )
        app = create_app(app_settings, service=StubService(snapshot))
        async with _client(app) as client:
            data = (await client.get("/api/v1/dashboard")).json()
        assert data["source_error"] is None
        assert data["folders"] == []
        assert data["alerts"] == []


class TestHealthEndpoints:
    async def test_healthz_always_ok(self, app_settings: Settings) -> None:
        app = create_app(app_settings, service=StubService())
        async with _client(app) as client:
            resp = await client.get("/healthz")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}

    async def test_readyz_before_first_snapshot(self, app_settings: Settings) -> None:
        app = create_app(app_settings, service=StubService())
        async with _client(app) as client:
            resp = await client.get("/readyz")
        assert resp.status_code == 503
        assert resp.json() == {"ready": False}

    async def test_readyz_after_failed_first_cycle(
        self, live_app: FastAPI, fake_syncthing: FakeSyncthing
    ) -> None:
        fake_syncthing.responses.clear()
        await live_app.state.dashboard_service.refresh()
        async with _client(live_app) as client:
            resp = await client.get("/readyz")
        assert resp.status_code == 200
        assert resp.json() == {"ready": True}


class TestAppFactory:
    def test_demo_mode_without_base_url(self, app_settings: Settings) -> None:
        service, client = build_dashboard_service(app_settings)
        assert isinstance(service, DemoCollector)
        assert client is None

    async def test_live_mode_with_base_url(self, app_settings: Settings) -> None:
        settings = app_settings.model_copy(
            update={"base_url": "http://127.0.0.1:8384/", "api_key": "abc"}
        )
        service, client = build_dashboard_service(settings)
        assert isinstance(service, Collector)
        assert isinstance(client, SyncthingClient)
        await client.aclose()

    def test_invalid_base_url_rejected(self, app_settings: Settings) -> None:
        settings = app_settings.model_copy(update={"base_url": "not a url", "api_key": "abc"})
        with pytest.raises(ValueError, match="valid absolute URL"):
            create_app(settings)

    def test_docs_disabled_outside_debug(self, app_settings: Settings) -> None:
        app = create_app(app_settings, service=StubService())
        assert app.docs_url is None
        assert app.openapi_url is None

    async def test_serves_web_directory(self, app_settings: Settings) -> None:
        app_settings.web_dir.mkdir()
        (app_settings.web_dir / "index.html").write_text("<h1>dashboard</h1>")
        app = create_app(app_settings, service=StubService())
        async with _client(app) as client:
            index = await client.get("/")
            health = await client.get("/healthz")
        assert index.status_code == 200
        assert "dashboard" in index.text
        assert health.json() == {"ok": True}

    async def test_lifespan_starts_and_stops_service(self, app_settings: Settings) -> None:
        service = StubService()
        app = create_app(app_settings, service=service)
        async with app.router.lifespan_context(app):
            assert service.started is True
            assert service.stopped is False
        assert service.stopped is True
