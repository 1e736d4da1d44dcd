"""Application configuration loaded from environment variables."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_TRUE_VALUES = frozenset({"1", "t", "true", "y", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "f", "false", "n", "no", "off"})


def parse_duration(value: str) -> float:
    """Parse ``5s``, ``500ms``, ``1m30s`` or a bare integer (seconds) into seconds.

    Raises:
        ValueError: If the value is not a recognised duration.
    """
    text = value.strip()
    if text.isdigit():
        return float(text)
    if not text or _DURATION_PART_RE.sub("", text):
        msg = f"invalid duration: {value!r}"
        raise ValueError(msg)
    return sum(
        float(amount) * _DURATION_UNITS[unit] for amount, unit in _DURATION_PART_RE.findall(text)
    )


class Settings(BaseSettings):
    """Dashboard settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Upstream
    base_url: str = Field(default="", validation_alias="SYNCTHING_BASE_URL")
    api_key: str = Field(default="", validation_alias="SYNCTHING_API_KEY")
    api_key_file: Path | None = Field(default=None, validation_alias="SYNCTHING_API_KEY_FILE")
    upstream_timeout: float = Field(default=8.0, gt=0, validation_alias="SYNCTHING_TIMEOUT")
    insecure_skip_verify: bool = Field(
        default=False, validation_alias="SYNCTHING_INSECURE_SKIP_VERIFY"
    )

    # Collection
    poll_interval: float = Field(
        default=5.0, gt=0, validation_alias="SYNCTHING_DASHBOARD_POLL_INTERVAL"
    )

    # Server
    listen_address: str = Field(
        default=":8080", validation_alias="SYNCTHING_DASHBOARD_LISTEN_ADDRESS"
    )
    web_dir: Path = Field(default=Path("./web"), validation_alias="SYNCTHING_DASHBOARD_WEB_DIR")
    debug: bool = Field(default=False, validation_alias="SYNCTHING_DASHBOARD_DEBUG")

    # Presentation
    page_title: str = Field(default="Syncthing", validation_alias="SYNCTHING_DASHBOARD_TITLE")
    page_subtitle: str = Field(
        default="Read-Only Dashboard", validation_alias="SYNCTHING_DASHBOARD_SUBTITLE"
    )

    @field_validator("upstream_timeout", "poll_interval", mode="before")
    @classmethod
    def _parse_duration(cls, value: Any, info: ValidationInfo) -> Any:
        if not isinstance(value, str):
            return value
        if not value.strip():
            return cls.model_fields[info.field_name].default
        try:
            return parse_duration(value)
        except ValueError:
            default = cls.model_fields[info.field_name].default
            logger.warning("Ignoring invalid %s %r, using %ss", info.field_name, value, default)
            return default

    @field_validator("base_url", "api_key", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator(
        "page_title", "page_subtitle", "listen_address", "web_dir", "api_key_file", mode="before"
    )
    @classmethod
    def _blank_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        if not isinstance(value, str):
            return value
        value = value.strip()
        return value or cls.model_fields[info.field_name].default

    @field_validator("insecure_skip_verify", "debug", mode="before")
    @classmethod
    def _parse_flag(cls, value: Any, info: ValidationInfo) -> Any:
        if not isinstance(value, str):
            return value
        text = value.strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        default = cls.model_fields[info.field_name].default
        if text:
            logger.warning("Ignoring invalid %s %r, using %s", info.field_name, value, default)
        return default

    @property
    def demo_mode(self) -> bool:
        """No upstream configured: serve synthetic data."""
        return not self.base_url

    @property
    def normalized_base_url(self) -> str:
        return self.base_url.rstrip("/")

    @property
    def listen_host(self) -> str:
        host, _, _ = self.listen_address.rpartition(":")
        return host.strip("[]") or "0.0.0.0"

    @property
    def listen_port(self) -> int:
        _, _, port = self.listen_address.rpartition(":")
        return int(port) if port else 8080

    def resolve_api_key(self) -> str:
        """Return the API key from ``api_key`` or the contents of ``api_key_file``.

        Raises:
            ValueError: If neither source yields a key.
        """
        if self.api_key:
            return self.api_key
        if self.api_key_file is None:
            msg = "either SYNCTHING_API_KEY or SYNCTHING_API_KEY_FILE must be set"
            raise ValueError(msg)
        try:
            key = self.api_key_file.read_text(encoding="utf-8").strip()
        except OSError as exc:
            msg = f"failed to read SYNCTHING_API_KEY_FILE: {exc}"
            raise ValueError(msg) from exc
        if not key:
            msg = "SYNCTHING_API_KEY_FILE is empty"
            raise ValueError(msg)
        return key

    def validate_source(self) -> None:
        """Validate upstream settings. Demo mode needs nothing."""
        if self.demo_mode:
            return
        parsed = urlparse(self.base_url)
        if not parsed.scheme or not parsed.netloc:
            msg = "SYNCTHING_BASE_URL must be a valid absolute URL"
            raise ValueError(msg)
        self.resolve_api_key()
