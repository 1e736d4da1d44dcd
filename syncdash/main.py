"""FastAPI application entry point."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from syncdash.api.dashboard import router as dashboard_router
from syncdash.api.health import router as health_router
from syncdash.config import Settings
from syncdash.services.collector import Collector, DashboardService
from syncdash.services.demo_service import DemoCollector
from syncdash.syncthing.client import SyncthingClient

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool) -> None:
    """Configure application logging."""
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries; httpx logs every upstream request at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)


def build_dashboard_service(settings: Settings) -> tuple[DashboardService, SyncthingClient | None]:
    """Pick the data source: demo mode without a base URL, live collector otherwise."""
    if settings.demo_mode:
        return DemoCollector(settings.poll_interval), None

    client = SyncthingClient(
        settings.normalized_base_url,
        settings.resolve_api_key(),
        timeout=settings.upstream_timeout,
        insecure_skip_verify=settings.insecure_skip_verify,
    )
    return Collector(client, settings.poll_interval), client


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan: start polling on startup, stop it on shutdown."""
    settings: Settings = app.state.settings
    _configure_logging(settings.debug)
    service: DashboardService = app.state.dashboard_service

    if settings.demo_mode:
        logger.info("SYNCTHING_BASE_URL is not set; running in demonstration mode")
    else:
        logger.info(
            "Polling %s every %.1fs", settings.normalized_base_url, settings.poll_interval
        )

    await service.start()
    logger.info(
        "Read-only Syncthing dashboard listening on %s:%d",
        settings.listen_host,
        settings.listen_port,
    )

    yield

    try:
        await service.stop()
    except Exception as exc:
        logger.error("Error while stopping snapshot collection: %s", exc, exc_info=True)

    client: SyncthingClient | None = app.state.syncthing_client
    if client is not None:
        try:
            await client.aclose()
        except Exception as exc:
            logger.error("Error while closing Syncthing client: %s", exc, exc_info=True)

    logger.info("Syncthing dashboard stopped")


def create_app(
    settings: Settings | None = None,
    service: DashboardService | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Raises:
        ValueError: If the upstream settings are invalid.
    """
    if settings is None:
        settings = Settings()
    settings.validate_source()

    client: SyncthingClient | None = None
    if service is None:
        service, client = build_dashboard_service(settings)

    app = FastAPI(
        title="Syncthing Dashboard",
        description="Read-only dashboard for a Syncthing daemon",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.debug else None,
    )
    app.state.settings = settings
    app.state.dashboard_service = service
    app.state.syncthing_client = client

    app.include_router(health_router)
    app.include_router(dashboard_router)

    # Serve the dashboard frontend when it is shipped alongside the service
    web_dir = settings.web_dir
    if web_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(web_dir), html=True), name="static")

    return app


def cli_entry() -> None:
    """CLI entry point for running the server."""
    import uvicorn

    settings = Settings()
    uvicorn.run(
        create_app(settings),
        host=settings.listen_host,
        port=settings.listen_port,
    )
