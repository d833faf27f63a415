"""SDK-level configuration loaded from environment and overridable at runtime."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from osaurus_sdk.errors import OsaurusDiscoveryFailedError
from osaurus_sdk.logger import logger

DEFAULT_BUNDLE_IDENTIFIER = "com.dinoki.osaurus"
SHARED_CONFIGURATION_DIRNAME = "SharedConfiguration"


def parse_base_url(value: str | httpx.URL | None) -> httpx.URL | None:
    """Parse an absolute http(s) URL, returning None for anything else."""
    if value is None:
        return None
    try:
        url = httpx.URL(value)
    except (httpx.InvalidURL, TypeError):
        return None
    if url.scheme not in ("http", "https") or not url.host:
        return None
    return url


def application_support_dir() -> Path:
    """Return the per-user application support directory for this platform.

    Raises:
        OsaurusDiscoveryFailedError: If the home directory cannot be resolved.
    """
    try:
        home = Path.home()
    except RuntimeError as exc:
        raise OsaurusDiscoveryFailedError("Could not resolve the user home directory") from exc

    match sys.platform:
        case "darwin":
            return home / "Library" / "Application Support"
        case "win32":
            if appdata := os.environ.get("APPDATA"):
                return Path(appdata)
            return home / "AppData" / "Roaming"
        case _:
            if xdg_data_home := os.environ.get("XDG_DATA_HOME"):
                return Path(xdg_data_home)
            return home / ".local" / "share"


class BaseOsaurusSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="OSAURUS_", extra="ignore")


class ConnectionSettings(BaseOsaurusSettings):
    base_url: str | None = None
    api_key: str | None = None
    timeout: float | None = None

    @field_validator("base_url", mode="after")
    @classmethod
    def check_base_url(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        value = value.strip()
        if parse_base_url(value) is None:
            logger.warning(f"Ignoring base URL override that is not an absolute http(s) URL: {value}")
        return value


class DiscoverySettings(BaseOsaurusSettings):
    bundle_identifier: str = DEFAULT_BUNDLE_IDENTIFIER
    shared_configuration_dir: Path | None = None


class SDKSettings(BaseModel):
    """Global SDK settings for server resolution and client connectivity."""

    connection: ConnectionSettings = Field(default_factory=ConnectionSettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)

    def get_locked(self) -> FrozenSDKSettings:
        payload = self.model_dump()
        return FrozenSDKSettings.model_validate(payload)


class FrozenSDKSettings(SDKSettings):
    model_config = ConfigDict(frozen=True)


settings = SDKSettings()


def get_sdk_config() -> FrozenSDKSettings:
    """Return an immutable snapshot of current global SDK settings."""
    return settings.get_locked()


def shared_configuration_root(config: SDKSettings | None = None) -> Path:
    """Return the directory holding one subdirectory per running instance."""
    config = config or get_sdk_config()
    if config.discovery.shared_configuration_dir is not None:
        return config.discovery.shared_configuration_dir
    return application_support_dir() / config.discovery.bundle_identifier / SHARED_CONFIGURATION_DIRNAME
