"""Strict read-only Syncthing REST API client."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from syncdash.exceptions import ReadOnlyViolationError, UpstreamError
from syncdash.syncthing.payloads import (
    DaemonConfig,
    DBCompletion,
    DBStatus,
    DeviceStats,
    DeviceStatsMap,
    FolderStats,
    FolderStatsMap,
    SystemConnections,
    SystemStatus,
    SystemVersion,
)

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)

T = TypeVar("T")

ALLOWED_READ_PATHS: frozenset[str] = frozenset(
    {
        "/rest/system/status",
        "/rest/system/version",
        "/rest/system/connections",
        "/rest/stats/device",
        "/rest/stats/folder",
        "/rest/config",
        "/rest/db/status",
        "/rest/db/completion",
    }
)

_ERROR_BODY_LIMIT = 512

_SYSTEM_STATUS = TypeAdapter(SystemStatus)
_SYSTEM_VERSION = TypeAdapter(SystemVersion)
_SYSTEM_CONNECTIONS = TypeAdapter(SystemConnections)
_DAEMON_CONFIG = TypeAdapter(DaemonConfig)
_DB_STATUS = TypeAdapter(DBStatus)
_DB_COMPLETION = TypeAdapter(DBCompletion)


class SyncthingClient:
    """Allow-listed GET-only wrapper around the Syncthing REST API.

    Args:
        base_url: Absolute URL of the Syncthing GUI/API listener.
        api_key: Value sent in the ``X-API-Key`` header.
        timeout: Per-request timeout in seconds.
        insecure_skip_verify: Disable TLS certificate verification.
        transport: Optional httpx transport (tests inject ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 8.0,
        insecure_skip_verify: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"X-API-Key": api_key},
            timeout=timeout,
            verify=not insecure_skip_verify,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def __aenter__(self) -> SyncthingClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def get_system_status(self) -> SystemStatus:
        return await self._get_json("/rest/system/status", _SYSTEM_STATUS)

    async def get_system_version(self) -> SystemVersion:
        return await self._get_json("/rest/system/version", _SYSTEM_VERSION)

    async def get_system_connections(self) -> SystemConnections:
        return await self._get_json("/rest/system/connections", _SYSTEM_CONNECTIONS)

    async def get_device_stats(self) -> dict[str, DeviceStats]:
        return await self._get_json("/rest/stats/device", DeviceStatsMap)

    async def get_folder_stats(self) -> dict[str, FolderStats]:
        return await self._get_json("/rest/stats/folder", FolderStatsMap)

    async def get_config(self) -> DaemonConfig:
        return await self._get_json("/rest/config", _DAEMON_CONFIG)

    async def get_db_status(self, folder_id: str) -> DBStatus:
        return await self._get_json("/rest/db/status", _DB_STATUS, params={"folder": folder_id})

    async def get_db_completion(self, folder_id: str) -> DBCompletion:
        return await self._get_json(
            "/rest/db/completion", _DB_COMPLETION, params={"folder": folder_id}
        )

    async def _get_json(
        self,
        path: str,
        adapter: TypeAdapter[T],
        params: dict[str, str] | None = None,
    ) -> T:
        """GET ``path`` and decode the body with ``adapter``.

        Raises:
            ReadOnlyViolationError: If ``path`` is not on the allow-list.
            UpstreamError: On transport failure, non-2xx status, or a body
                that does not decode into the expected payload.
        """
        if path not in ALLOWED_READ_PATHS:
            msg = f"path {path!r} is not allowed in read-only mode"
            raise ReadOnlyViolationError(msg)

        # httpx timeouts apply per phase; this bounds the whole call
        try:
            async with asyncio.timeout(self.timeout):
                response = await self._http.get(path, params=params)
        except TimeoutError as exc:
            msg = f"request {path}: timed out after {self.timeout:g}s"
            raise UpstreamError(msg) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"request {path}: {exc}") from exc

        if not response.is_success:
            snippet = response.text[:_ERROR_BODY_LIMIT].strip()
            msg = f"request {path} failed with status {response.status_code}: {snippet}"
            raise UpstreamError(msg)

        try:
            return adapter.validate_json(response.content)
        except ValidationError as exc:
            logger.debug("Undecodable response from %s: %s", path, exc)
            raise UpstreamError(f"decode response {path}: {exc.error_count()} error(s)") from exc
