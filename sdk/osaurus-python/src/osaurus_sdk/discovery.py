"""Locate a running Osaurus server from the shared configuration files it writes."""

from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from osaurus_sdk.config import SDKSettings, get_sdk_config, parse_base_url, shared_configuration_root
from osaurus_sdk.errors import OsaurusDiscoveryFailedError
from osaurus_sdk.logger import logger
from osaurus_sdk.schemas import OsaurusInstance, SharedConfiguration

CONFIGURATION_FILENAME = "configuration.json"
OLDEST_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)


def parse_timestamp(value: str) -> datetime | None:
    """Parse an ISO-8601 timestamp carrying a UTC offset."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    return parsed


def instance_updated_at(descriptor: SharedConfiguration, directory: Path) -> datetime:
    if (parsed := parse_timestamp(descriptor.updated_at)) is not None:
        return parsed
    try:
        return datetime.fromtimestamp(directory.stat().st_mtime, tz=timezone.utc)
    except OSError:
        return OLDEST_TIMESTAMP


def instance_url(descriptor: SharedConfiguration, address: str, port: int) -> str:
    if parse_base_url(descriptor.url) is not None:
        return descriptor.url
    host = f"[{address}]" if ":" in address else address
    return f"http://{host}:{port}"


def read_instance(directory: Path) -> OsaurusInstance | None:
    """Build an instance from one instance directory.

    Returns:
        The resolved instance, or None when the directory holds no eligible
        descriptor. Unreadable or malformed descriptors are skipped rather than
        raised so a single bad entry never hides its siblings.
    """
    path = directory / CONFIGURATION_FILENAME
    try:
        if not directory.is_dir() or not path.is_file():
            return None
        descriptor = SharedConfiguration.model_validate_json(path.read_bytes())
    except (OSError, ValidationError) as exc:
        logger.debug(f"Skipping unreadable instance configuration {path}: {exc}")
        return None

    if not descriptor.is_eligible:
        return None

    address, port = descriptor.address, descriptor.port
    return OsaurusInstance(
        instance_id=descriptor.instance_id,
        updated_at=instance_updated_at(descriptor, directory),
        address=address,
        port=port,
        url=instance_url(descriptor, address, port),
        expose_to_network=descriptor.expose_to_network or False,
    )


def discover_latest_running_instance(
    root: Path | None = None, config: SDKSettings | None = None
) -> OsaurusInstance:
    """Return the most recently updated running instance.

    Args:
        root: Shared configuration directory to scan. Defaults to the
            platform location derived from `config`.
        config: SDK settings snapshot. Defaults to the global settings.

    Raises:
        OsaurusDiscoveryFailedError: If no eligible instance is found.
    """
    base = root or shared_configuration_root(config or get_sdk_config())

    try:
        entries = sorted(entry for entry in base.iterdir() if not entry.name.startswith("."))
    except OSError as exc:
        raise OsaurusDiscoveryFailedError(f"No shared configuration directory at {base}") from exc

    if not entries:
        raise OsaurusDiscoveryFailedError(f"Shared configuration directory {base} is empty")

    best: OsaurusInstance | None = None
    for entry in entries:
        if (instance := read_instance(entry)) is None:
            continue
        if best is None or instance.updated_at >= best.updated_at:
            best = instance

    if best is None:
        raise OsaurusDiscoveryFailedError(f"No running Osaurus instance found under {base}")

    logger.debug(f"Discovered Osaurus instance {best.instance_id} at {best.url}")
    return best
