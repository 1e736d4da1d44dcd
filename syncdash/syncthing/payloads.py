"""Typed payloads for the read-only Syncthing REST endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class _Payload(BaseModel):
    """Base for upstream payloads: unknown keys ignored, ``null`` means default."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class ServiceStatus(_Payload):
    error: str | None = None


class SystemStatus(_Payload):
    """``/rest/system/status``."""

    my_id: str = Field(default="", alias="myID")
    uptime: int = 0
    connection_service_status: dict[str, ServiceStatus] = Field(
        default_factory=dict, alias="connectionServiceStatus"
    )
    discovery_status: dict[str, ServiceStatus] = Field(
        default_factory=dict, alias="discoveryStatus"
    )
    discovery_methods: int = Field(default=0, alias="discoveryMethods")
    discovery_errors: dict[str, str] = Field(default_factory=dict, alias="discoveryErrors")


class SystemVersion(_Payload):
    """``/rest/system/version``."""

    version: str = ""
    os: str = ""
    arch: str = ""


class ConnectionTotals(_Payload):
    in_bytes_total: int = Field(default=0, alias="inBytesTotal")
    out_bytes_total: int = Field(default=0, alias="outBytesTotal")
    bits_per_second_in: float = Field(default=0.0, alias="bitsPerSecondIn")
    bits_per_second_out: float = Field(default=0.0, alias="bitsPerSecondOut")


class ConnectionDetails(_Payload):
    address: str = ""
    connected: bool = False
    in_bytes_total: int = Field(default=0, alias="inBytesTotal")
    out_bytes_total: int = Field(default=0, alias="outBytesTotal")


class SystemConnections(_Payload):
    """``/rest/system/connections``."""

    total: ConnectionTotals = Field(default_factory=ConnectionTotals)
    connections: dict[str, ConnectionDetails] = Field(default_factory=dict)


class DeviceStats(_Payload):
    last_seen: str = Field(default="", alias="lastSeen")


class FolderStats(_Payload):
    last_scan: str = Field(default="", alias="lastScan")


class ConfigDevice(_Payload):
    device_id: str = Field(default="", alias="deviceID")
    name: str = ""


class ConfigFolder(_Payload):
    id: str = ""
    label: str = ""
    path: str = ""
    paused: bool = False


class DaemonConfig(_Payload):
    """``/rest/config`` (only the device and folder sections are read)."""

    devices: list[ConfigDevice] = Field(default_factory=list)
    folders: list[ConfigFolder] = Field(default_factory=list)


class DBStatus(_Payload):
    """``/rest/db/status?folder=<id>``."""

    global_files: int = Field(default=0, alias="globalFiles")
    local_files: int = Field(default=0, alias="localFiles")
    local_directories: int = Field(default=0, alias="localDirectories")
    global_bytes: int = Field(default=0, alias="globalBytes")
    local_bytes: int = Field(default=0, alias="localBytes")
    need_files: int = Field(default=0, alias="needFiles")
    need_directories: int = Field(default=0, alias="needDirectories")
    need_symlinks: int = Field(default=0, alias="needSymlinks")
    need_deletes: int = Field(default=0, alias="needDeletes")
    need_bytes: int = Field(default=0, alias="needBytes")
    need_total_items: int = Field(default=0, alias="needTotalItems")
    receive_only_total_items: int = Field(default=0, alias="receiveOnlyTotalItems")
    receive_only_changed_bytes: int = Field(default=0, alias="receiveOnlyChangedBytes")
    state: str = ""


class DBCompletion(_Payload):
    """``/rest/db/completion?folder=<id>``."""

    completion: float = 0.0
    need_bytes: int = Field(default=0, alias="needBytes")
    need_items: int = Field(default=0, alias="needItems")
    global_bytes: int = Field(default=0, alias="globalBytes")


DeviceStatsMap = TypeAdapter(dict[str, DeviceStats])
FolderStatsMap = TypeAdapter(dict[str, FolderStats])
